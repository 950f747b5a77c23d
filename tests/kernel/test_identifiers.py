"""Business code formats and sequence-backed allocation."""

import random
from datetime import date, datetime, timezone

from dealflow_kernel.domain.clock import DeterministicClock
from dealflow_kernel.services.identifier_service import IdentifierService
from dealflow_kernel.services.sequence_service import SequenceService
from dealflow_kernel.utils import identifiers
from dealflow_kernel.utils.idempotency import generate_idempotency_key


class TestFormats:

    def test_yearly_code(self):
        assert identifiers.yearly_code("DEAL", 2026, 1) == "DEAL-2026-0001"

    def test_wide_sequence_not_truncated(self):
        assert identifiers.yearly_code("PO", 2026, 12345) == "PO-2026-12345"

    def test_invoice_number(self):
        assert identifiers.invoice_number(date(2026, 10, 5), 7) == "INV-202610-0007"

    def test_opportunity_code(self):
        code = identifiers.opportunity_code(date(2026, 3, 1), 1)
        assert code == "GKT26CH03001"
        assert len(code) == 12

    def test_counter_names_are_period_scoped(self):
        on = date(2026, 10, 19)
        assert identifiers.yearly_counter("deal", on) == "deal:2026"
        assert identifiers.monthly_counter("invoice", on) == "invoice:2026-10"

    def test_po_status_number_shape(self):
        now = datetime(2024, 1, 1, tzinfo=timezone.utc)
        number = identifiers.po_status_number(now, random.Random(1))
        prefix, status, millis, suffix = number.split("-")
        assert (prefix, status) == ("PO", "STATUS")
        assert millis == str(int(now.timestamp() * 1000))
        assert len(suffix) == 9

    def test_seeded_rng_is_reproducible(self):
        now = datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert identifiers.irn_number(now, random.Random(3)) == identifiers.irn_number(
            now, random.Random(3)
        )
        assert identifiers.eway_bill_number(now, random.Random(3)).startswith("EWB")


class TestIdempotencyKey:

    def test_without_suffix(self):
        assert generate_idempotency_key("deal_approved", "Deal", "d-1") == "deal_approved:Deal:d-1"

    def test_with_suffix(self):
        key = generate_idempotency_key("deal_approved", "Deal", "d-1", "notify")
        assert key == "deal_approved:Deal:d-1:notify"


class TestIdentifierService:

    def setup_method(self):
        self.clock = DeterministicClock()

    def test_codes_increment_per_family(self, session):
        ids = IdentifierService(session, self.clock, rng=random.Random(7))
        assert ids.next_deal_code() == "DEAL-2024-0001"
        assert ids.next_deal_code() == "DEAL-2024-0002"
        assert ids.next_po_number() == "PO-2024-0001"
        assert ids.next_vendor_payout_reference() == "VPR-2024-0001"
        assert ids.next_program_code() == "PRG-2024-0001"
        assert ids.next_deal_request_code() == "DR-2024-0001"
        assert ids.next_boc_number() == "BOC-2024-0001"

    def test_monthly_codes(self, session):
        ids = IdentifierService(session, self.clock)
        assert ids.next_invoice_number() == "INV-202401-0001"
        assert ids.next_opportunity_code() == "GKT24CH01001"
        assert ids.next_opportunity_code() == "GKT24CH01002"

    def test_numbering_restarts_in_new_year(self, session):
        ids = IdentifierService(session, self.clock)
        assert ids.next_deal_code() == "DEAL-2024-0001"
        self.clock.set_time(datetime(2025, 2, 1, tzinfo=timezone.utc))
        assert ids.next_deal_code() == "DEAL-2025-0001"

    def test_random_references(self, session):
        ids = IdentifierService(session, self.clock, rng=random.Random(7))
        assert ids.irn_number().startswith("IRN1704110400000")
        assert ids.po_status_number().startswith("PO-STATUS-1704110400000-")


class TestSequenceService:

    def test_monotonic(self, session):
        seq = SequenceService(session)
        assert seq.current_value("x") is None
        assert [seq.next_value("x") for _ in range(3)] == [1, 2, 3]
        assert seq.current_value("x") == 3

    def test_reset(self, session):
        seq = SequenceService(session)
        seq.next_value("x")
        seq.reset("x", 10)
        assert seq.next_value("x") == 11

    def test_rollback_returns_value(self, session):
        seq = SequenceService(session)
        seq.next_value("x")
        session.commit()
        seq.next_value("x")
        session.rollback()
        assert seq.next_value("x") == 2
