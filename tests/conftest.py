"""
Pytest fixtures for the dealflow test suite.

Provides:
- In-memory SQLite sessions (fresh database per test)
- A deterministic clock and seeded RNG
- A fully wired DealflowContainer
- Structured log capture
"""

import json
import logging
import random
from io import StringIO
from uuid import UUID, uuid4

import pytest

from dealflow_kernel.db.engine import (
    create_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from dealflow_kernel.domain.clock import DeterministicClock
from dealflow_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from dealflow_services.container import DealflowContainer

# Test actor ID for operations where the actor does not matter
TEST_ACTOR_ID = uuid4()


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture dealflow logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, container):
            container.sales.create_deal(...)
            logs = captured_logs()
            assert any(r["message"] == "deal_created" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("dealflow")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def session():
    """A session bound to a fresh in-memory database."""
    init_engine_from_url("sqlite://")
    create_tables()
    sess = get_session()
    yield sess
    sess.close()
    reset_engine()


@pytest.fixture
def deterministic_clock():
    """Clock pinned to 2024-01-01 12:00 UTC."""
    return DeterministicClock()


@pytest.fixture
def container(session, deterministic_clock):
    """All services wired against the test session."""
    return DealflowContainer(
        session,
        clock=deterministic_clock,
        rng=random.Random(7),
    )


# =============================================================================
# Actor fixtures
# =============================================================================


@pytest.fixture
def test_actor_id() -> UUID:
    return TEST_ACTOR_ID


@pytest.fixture
def sales_exec_id() -> UUID:
    return UUID("00000000-0000-4000-b000-000000000001")


@pytest.fixture
def sales_manager_id() -> UUID:
    return UUID("00000000-0000-4000-b000-000000000002")


@pytest.fixture
def business_head_id() -> UUID:
    return UUID("00000000-0000-4000-b000-000000000003")


@pytest.fixture
def director_id() -> UUID:
    return UUID("00000000-0000-4000-b000-000000000004")


@pytest.fixture
def ops_manager_id() -> UUID:
    return UUID("00000000-0000-4000-b000-000000000005")


@pytest.fixture
def finance_manager_id() -> UUID:
    return UUID("00000000-0000-4000-b000-000000000006")
