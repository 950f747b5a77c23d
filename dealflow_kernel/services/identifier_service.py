"""
IdentifierService -- allocate human-readable business codes.

Combines SequenceService counters (period-scoped) with the formatters in
utils/identifiers.py.  The code is a presentation field; the UUID stays the
key.  Random suffixes come from an injectable ``random.Random`` so tests
can pin them.
"""

import random

from sqlalchemy.orm import Session

from dealflow_kernel.domain.clock import Clock
from dealflow_kernel.services.base import BaseService
from dealflow_kernel.services.sequence_service import SequenceService
from dealflow_kernel.utils import identifiers


class IdentifierService(BaseService):

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        rng: random.Random | None = None,
    ):
        super().__init__(session, clock)
        self._sequences = SequenceService(session)
        self._rng = rng or random.Random()

    def _yearly(self, family: str, prefix: str) -> str:
        today = self.clock.today()
        seq = self._sequences.next_value(identifiers.yearly_counter(family, today))
        return identifiers.yearly_code(prefix, today.year, seq)

    def next_deal_code(self) -> str:
        return self._yearly("deal", identifiers.DEAL_PREFIX)

    def next_po_number(self) -> str:
        return self._yearly("po", identifiers.PO_PREFIX)

    def next_vendor_payout_reference(self) -> str:
        return self._yearly("vpr", identifiers.VENDOR_PAYOUT_PREFIX)

    def next_program_code(self) -> str:
        return self._yearly("program", identifiers.PROGRAM_PREFIX)

    def next_deal_request_code(self) -> str:
        return self._yearly("deal_request", identifiers.DEAL_REQUEST_PREFIX)

    def next_boc_number(self) -> str:
        return self._yearly("boc", identifiers.BOC_PREFIX)

    def next_invoice_number(self) -> str:
        today = self.clock.today()
        seq = self._sequences.next_value(identifiers.monthly_counter("invoice", today))
        return identifiers.invoice_number(today, seq)

    def next_opportunity_code(self) -> str:
        today = self.clock.today()
        seq = self._sequences.next_value(identifiers.monthly_counter("opportunity", today))
        return identifiers.opportunity_code(today, seq)

    def irn_number(self) -> str:
        return identifiers.irn_number(self.clock.now(), self._rng)

    def eway_bill_number(self) -> str:
        return identifiers.eway_bill_number(self.clock.now(), self._rng)

    def po_status_number(self) -> str:
        return identifiers.po_status_number(self.clock.now(), self._rng)
