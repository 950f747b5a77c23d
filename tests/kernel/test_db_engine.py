"""Engine lifecycle, transactional scope and the UTC datetime column type."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import inspect, select

from dealflow_kernel.db.base import UTCDateTime
from dealflow_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_engine,
    init_engine_from_url,
    reset_engine,
    session_scope,
)
from dealflow_kernel.services.sequence_service import SequenceCounter, SequenceService


@pytest.fixture
def engine():
    init_engine_from_url("sqlite://")
    create_tables()
    yield get_engine()
    reset_engine()


class TestSessionScope:

    def test_commits_on_success(self, engine):
        with session_scope() as session:
            SequenceService(session).next_value("scope")

        with session_scope() as session:
            assert SequenceService(session).current_value("scope") == 1

    def test_rolls_back_on_error(self, engine, captured_logs):
        with pytest.raises(RuntimeError):
            with session_scope() as session:
                SequenceService(session).next_value("scope")
                raise RuntimeError("abort")

        with session_scope() as session:
            assert session.execute(select(SequenceCounter)).first() is None
        assert any(r["message"] == "transaction_rolled_back" for r in captured_logs())


class TestTables:

    def test_create_registers_module_tables(self, engine):
        tables = set(inspect(engine).get_table_names())
        assert {"sequence_counters", "outbox_messages"} <= tables
        assert len(tables) > 10

    def test_drop_tables(self, engine):
        drop_tables()
        assert inspect(engine).get_table_names() == []


class TestUTCDateTime:

    def test_rejects_naive_datetimes(self, engine):
        column_type = UTCDateTime()
        with pytest.raises(ValueError):
            column_type.process_bind_param(datetime(2024, 1, 1), engine.dialect)

    def test_normalises_to_utc(self, engine):
        ist = timezone(timedelta(hours=5, minutes=30))
        bound = UTCDateTime().process_bind_param(datetime(2024, 1, 1, 17, 30, tzinfo=ist), engine.dialect)
        assert bound == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
