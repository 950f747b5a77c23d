"""
Receivables Module Service (``dealflow_modules.receivables.service``).

Responsibility
--------------
Invoice generation (from a signed-off program or a bill of confirmation),
invoice tax derivation, the governance duplicate scan, the invoice
lifecycle, and receivable collection (payments, aging, write-off).

Architecture position
---------------------
**Modules layer**.  Public methods own their transaction.  Receivables
are created by the invoice cascade through the flush-only
``create_receivable_for_invoice``.

Invariants enforced
-------------------
* ``total_amount == invoice_amount + tax_amount`` on every invoice.
* An invoice for a program requires the program's client sign-off.
* A BOC converts to exactly one invoice.
* Two or more invoices with the same client name and amount raise a
  ``Duplicate Invoice`` governance alert and flag the newest invoice.
* ``outstanding_amount == invoice_amount - paid_amount`` on every
  receivable; aging is recomputed from the due date on every mutation and
  is idempotent for a fixed ``as_of``.

Failure modes
-------------
* ``InvoiceNotEligibleError``: program has no client sign-off.
* ``DuplicateConversionError``: BOC already converted.
* ``InvalidAmountError``: non-positive or over-collected payment.
* A failure inside the duplicate scan is logged and rolled back to its
  savepoint; it never blocks the invoice.
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from dealflow_engines.aging import DEFAULT_EDGES, AgingEdges, ReceivableStatus, compute_aging
from dealflow_engines.invoice_tax import GstType, InvoiceTaxCalculator, compute_invoice_tax
from dealflow_engines.risk import is_duplicate_invoice
from dealflow_kernel.db.types import ZERO, to_decimal
from dealflow_kernel.domain.cascade import CascadeListener, CascadeTrigger, TriggerEvent
from dealflow_kernel.domain.clock import Clock, SystemClock
from dealflow_kernel.domain.payloads import (
    DuplicateDetectionLog,
    FieldChanges,
    TransitionRecorded,
)
from dealflow_kernel.exceptions import (
    DuplicateConversionError,
    InvalidAmountError,
    InvalidTransitionError,
    InvoiceNotEligibleError,
)
from dealflow_kernel.logging_config import get_logger
from dealflow_kernel.models.ledger import SystemEventType
from dealflow_kernel.services.identifier_service import IdentifierService
from dealflow_kernel.services.ledger_service import LedgerService
from dealflow_modules._helpers import (
    commit_or_rollback,
    load_or_raise,
    parse_enum,
    require_role,
    require_text,
)
from dealflow_modules.delivery.orm import ProgramModel
from dealflow_modules.governance.service import GovernanceService
from dealflow_modules.receivables.models import (
    BillOfConfirmation,
    BocStatus,
    Invoice,
    InvoiceStatus,
    Receivable,
)
from dealflow_modules.receivables.orm import (
    BillOfConfirmationModel,
    InvoiceModel,
    ReceivableModel,
)
from dealflow_modules.receivables.workflows import (
    BOC_CREATORS,
    COLLECTION_ROLES,
    INVOICE_CREATORS,
    INVOICE_WORKFLOW,
)
from dealflow_services.workflow_executor import WorkflowExecutor

logger = get_logger("modules.receivables.service")

INVOICE = "Invoice"
BOC = "BOC"
RECEIVABLE = "Receivable"

DEFAULT_GST_PERCENT = Decimal("18")
DEFAULT_SAC_CODE = "998314"


class ReceivablesService:
    """
    Invoices, bills of confirmation and receivables.

    Contract
    --------
    * Every invoice creation path runs the duplicate scan in the same
      transaction and fires ``INVOICE_CREATED`` after commit.
    * ``tax_calculator`` is optional; without it, or when it fails, the
      GST formula is used.
    """

    def __init__(
        self,
        session: Session,
        workflow_executor: WorkflowExecutor,
        identifiers: IdentifierService,
        ledger: LedgerService,
        governance: GovernanceService,
        clock: Clock | None = None,
        cascade: CascadeListener | None = None,
        tax_calculator: InvoiceTaxCalculator | None = None,
        default_gst_percent: Decimal = DEFAULT_GST_PERCENT,
        default_gst_type: GstType = GstType.IGST,
        default_sac_code: str = DEFAULT_SAC_CODE,
        receivable_terms_days: int = 30,
        aging_edges: AgingEdges = DEFAULT_EDGES,
    ):
        self._session = session
        self._workflow_executor = workflow_executor
        self._identifiers = identifiers
        self._ledger = ledger
        self._governance = governance
        self._clock = clock or SystemClock()
        self._cascade = cascade
        self._tax_calculator = tax_calculator
        self._default_gst_percent = default_gst_percent
        self._default_gst_type = default_gst_type
        self._default_sac_code = default_sac_code
        self._receivable_terms_days = receivable_terms_days
        self._aging_edges = aging_edges

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _build_invoice(
        self,
        client_name: str,
        invoice_amount: Decimal,
        actor_id: UUID,
        gst_percent: Decimal | None,
        gst_type: str | None,
        sac_code: str | None,
        tds_percent: Decimal | None,
        invoice_date: date | None,
        program_id: UUID | None = None,
        deal_id: UUID | None = None,
        boc_id: UUID | None = None,
    ) -> InvoiceModel:
        gst = to_decimal(gst_percent, "gst_percent", default=self._default_gst_percent)
        kind = parse_enum(GstType, gst_type or self._default_gst_type, "gst_type")
        amount = to_decimal(invoice_amount, "invoice_amount")
        if amount <= ZERO:
            raise InvalidAmountError("invoice_amount", invoice_amount, "must be greater than zero")
        tax = compute_invoice_tax(
            invoice_amount=amount,
            gst_percent=gst,
            gst_type=kind,
            tds_percent=to_decimal(tds_percent, "tds_percent"),
            calculator=self._tax_calculator,
        )
        now = self._clock.now()
        return InvoiceModel(
            invoice_number=self._identifiers.next_invoice_number(),
            irn_number=self._identifiers.irn_number(),
            eway_bill_number=self._identifiers.eway_bill_number(),
            client_name=client_name,
            invoice_date=invoice_date or self._clock.today(),
            invoice_amount=amount,
            gst_type=kind.value,
            gst_percent=gst,
            sac_code=sac_code or self._default_sac_code,
            tax_amount=tax.tax_amount,
            total_amount=tax.total_amount,
            tds_percent=to_decimal(tds_percent, "tds_percent"),
            tds_amount=tax.tds_amount,
            tax_source=tax.source,
            program_id=program_id,
            deal_id=deal_id,
            boc_id=boc_id,
            duplicate_flag=False,
            status=InvoiceStatus.GENERATED.value,
            created_by_id=actor_id,
            created_at=now,
            updated_at=now,
        )

    def _scan_for_duplicates(self, invoice: InvoiceModel, actor_id: UUID, actor_role: str) -> bool:
        """
        Flag the invoice and raise a governance alert when another invoice
        has the same client name and amount.  Runs in a savepoint.
        """
        try:
            with self._session.begin_nested():
                matches = self._session.execute(
                    select(InvoiceModel.id)
                    .where(
                        InvoiceModel.client_name == invoice.client_name,
                        InvoiceModel.invoice_amount == invoice.invoice_amount,
                    )
                    .order_by(InvoiceModel.created_at)
                ).scalars().all()
                if not is_duplicate_invoice(len(matches)):
                    return False
                self._governance.raise_duplicate_alert(
                    DuplicateDetectionLog(
                        invoice_id=str(invoice.id),
                        client_name=invoice.client_name,
                        invoice_amount=invoice.invoice_amount,
                        similar_invoice_ids=tuple(str(m) for m in matches if m != invoice.id),
                    ),
                    actor_id,
                    actor_role,
                    deal_id=invoice.deal_id,
                    program_id=invoice.program_id,
                )
                invoice.duplicate_flag = True
                self._session.flush()
        except Exception as exc:
            logger.warning(
                "duplicate_scan_failed",
                extra={"invoice_id": str(invoice.id), "error": f"{type(exc).__name__}: {exc}"},
            )
            return False
        return True

    def _after_invoice_created(
        self,
        invoice: InvoiceModel,
        actor_id: UUID,
        actor_role: str,
        source: str,
    ) -> Invoice:
        logger.info(
            "invoice_created",
            extra={
                "invoice_id": str(invoice.id),
                "invoice_number": invoice.invoice_number,
                "total_amount": str(invoice.total_amount),
                "source": source,
                "duplicate_flag": invoice.duplicate_flag,
            },
        )
        if self._cascade is not None:
            self._cascade.handle(TriggerEvent(
                trigger=CascadeTrigger.INVOICE_CREATED,
                entity_type=INVOICE,
                entity_id=invoice.id,
                actor_id=actor_id,
                actor_role=actor_role,
            ))
        return self.get_invoice(invoice.id)

    # ------------------------------------------------------------------
    # Invoices
    # ------------------------------------------------------------------

    def get_invoice(self, invoice_id: UUID) -> Invoice:
        return load_or_raise(self._session, InvoiceModel, invoice_id, INVOICE).to_dto()

    def create_invoice_for_program(
        self,
        program_id: UUID,
        actor_id: UUID,
        actor_role: str,
        invoice_amount: Decimal | None = None,
        gst_percent: Decimal | None = None,
        gst_type: str | None = None,
        sac_code: str | None = None,
        tds_percent: Decimal | None = None,
        invoice_date: date | None = None,
    ) -> Invoice:
        """
        Generate an invoice for a delivered program.

        ``invoice_amount`` defaults to the program's TOV.

        Raises:
            InvoiceNotEligibleError: The program has no client sign-off.
        """
        require_role(INVOICE, "new", "create", actor_role, INVOICE_CREATORS)
        program = load_or_raise(self._session, ProgramModel, program_id, "Program")
        if not program.client_sign_off:
            logger.warning("invoice_not_eligible", extra={"program_id": str(program_id)})
            raise InvoiceNotEligibleError(str(program_id))

        with commit_or_rollback(self._session, "invoice_create", program_id=str(program_id)):
            invoice = self._build_invoice(
                client_name=program.client_name,
                invoice_amount=program.tov if invoice_amount is None else invoice_amount,
                actor_id=actor_id,
                gst_percent=gst_percent,
                gst_type=gst_type,
                sac_code=sac_code or program.sac_code,
                tds_percent=tds_percent,
                invoice_date=invoice_date,
                program_id=program.id,
                deal_id=program.deal_id,
            )
            self._session.add(invoice)
            self._session.flush()
            self._ledger.record_audit(
                action="invoice_created",
                entity_type=INVOICE,
                entity_id=invoice.id,
                actor_id=actor_id,
                actor_role=actor_role,
                changes=FieldChanges.of(
                    invoice_number=invoice.invoice_number,
                    program_id=program.id,
                    invoice_amount=invoice.invoice_amount,
                    tax_amount=invoice.tax_amount,
                    total_amount=invoice.total_amount,
                ),
            )
            self._scan_for_duplicates(invoice, actor_id, actor_role)

        return self._after_invoice_created(invoice, actor_id, actor_role, source="program")

    def transition_invoice(
        self,
        invoice_id: UUID,
        action: str,
        actor_id: UUID,
        actor_role: str,
        reason: str | None = None,
    ) -> Invoice:
        """Send, mark paid / overdue, or cancel an invoice."""
        with commit_or_rollback(
            self._session, "invoice_transition", invoice_id=str(invoice_id), action=action
        ):
            invoice = load_or_raise(self._session, InvoiceModel, invoice_id, INVOICE)
            from_state = invoice.status
            invoice.status = self._workflow_executor.require_transition(
                INVOICE_WORKFLOW, INVOICE, invoice.id, from_state, action, actor_role,
                reason=reason,
            )
            if invoice.status == InvoiceStatus.SENT.value:
                invoice.sent_at = self._clock.now()
            elif invoice.status == InvoiceStatus.CANCELLED.value:
                invoice.cancellation_reason = reason
            invoice.updated_by_id = actor_id
            invoice.updated_at = self._clock.now()
            self._session.flush()
            self._ledger.record_audit(
                action=f"invoice_{action}",
                entity_type=INVOICE,
                entity_id=invoice.id,
                actor_id=actor_id,
                actor_role=actor_role,
                changes=TransitionRecorded(
                    action=action, from_state=from_state, to_state=invoice.status, reason=reason,
                ),
            )
        return invoice.to_dto()

    # ------------------------------------------------------------------
    # Bills of confirmation
    # ------------------------------------------------------------------

    def get_boc(self, boc_id: UUID) -> BillOfConfirmation:
        return load_or_raise(self._session, BillOfConfirmationModel, boc_id, BOC).to_dto()

    def create_boc(
        self,
        client_name: str,
        confirmed_value: Decimal,
        actor_id: UUID,
        actor_role: str,
        deal_id: UUID | None = None,
        boc_date: date | None = None,
    ) -> BillOfConfirmation:
        require_role(BOC, "new", "create", actor_role, BOC_CREATORS)
        client_name = require_text(BOC, "client_name", client_name)
        value = to_decimal(confirmed_value, "confirmed_value")
        if value <= ZERO:
            raise InvalidAmountError(
                "confirmed_value", confirmed_value, "must be greater than zero"
            )

        with commit_or_rollback(self._session, "boc_create", client_name=client_name):
            now = self._clock.now()
            boc = BillOfConfirmationModel(
                boc_number=self._identifiers.next_boc_number(),
                client_name=client_name,
                confirmed_value=value,
                boc_date=boc_date or self._clock.today(),
                deal_id=deal_id,
                sent_to_operations=False,
                sent_to_finance=False,
                converted_to_invoice=False,
                status=BocStatus.DRAFT.value,
                created_by_id=actor_id,
                created_at=now,
                updated_at=now,
            )
            self._session.add(boc)
            self._session.flush()
            self._ledger.record_audit(
                action="boc_created",
                entity_type=BOC,
                entity_id=boc.id,
                actor_id=actor_id,
                actor_role=actor_role,
                changes=FieldChanges.of(boc_number=boc.boc_number, confirmed_value=value),
            )
        return boc.to_dto()

    def send_boc(self, boc_id: UUID, actor_id: UUID, actor_role: str) -> BillOfConfirmation:
        """Hand a BOC to operations and finance."""
        require_role(BOC, str(boc_id), "send", actor_role, BOC_CREATORS)
        with commit_or_rollback(self._session, "boc_send", boc_id=str(boc_id)):
            boc = load_or_raise(self._session, BillOfConfirmationModel, boc_id, BOC)
            now = self._clock.now()
            boc.sent_to_operations = True
            boc.sent_to_finance = True
            boc.sent_to_operations_at = now
            boc.sent_to_finance_at = now
            if not boc.converted_to_invoice:
                boc.status = BocStatus.SENT_TO_OPERATIONS.value
            boc.updated_by_id = actor_id
            boc.updated_at = now
            self._session.flush()
            self._ledger.record_audit(
                action="boc_sent",
                entity_type=BOC,
                entity_id=boc.id,
                actor_id=actor_id,
                actor_role=actor_role,
                changes=FieldChanges.of(sent_to_operations=True, sent_to_finance=True),
            )
        return boc.to_dto()

    def create_invoice_from_boc(
        self,
        boc_id: UUID,
        actor_id: UUID,
        actor_role: str,
        gst_percent: Decimal | None = None,
        gst_type: str | None = None,
        sac_code: str | None = None,
        tds_percent: Decimal | None = None,
    ) -> Invoice:
        """
        Convert a BOC into an invoice for its confirmed value.

        Raises:
            DuplicateConversionError: The BOC was already converted.
        """
        require_role(INVOICE, "new", "create_from_boc", actor_role, INVOICE_CREATORS)
        boc = load_or_raise(self._session, BillOfConfirmationModel, boc_id, BOC)
        if boc.converted_to_invoice:
            logger.warning(
                "boc_already_converted",
                extra={"boc_id": str(boc_id), "invoice_id": str(boc.invoice_id)},
            )
            raise DuplicateConversionError(str(boc_id), str(boc.invoice_id))

        with commit_or_rollback(self._session, "invoice_create_from_boc", boc_id=str(boc_id)):
            invoice = self._build_invoice(
                client_name=boc.client_name,
                invoice_amount=boc.confirmed_value,
                actor_id=actor_id,
                gst_percent=gst_percent,
                gst_type=gst_type,
                sac_code=sac_code,
                tds_percent=tds_percent,
                invoice_date=None,
                deal_id=boc.deal_id,
                boc_id=boc.id,
            )
            self._session.add(invoice)
            self._session.flush()

            boc.converted_to_invoice = True
            boc.invoice_id = invoice.id
            boc.status = BocStatus.INVOICE_GENERATED.value
            boc.updated_by_id = actor_id
            boc.updated_at = self._clock.now()
            self._session.flush()

            self._ledger.record_audit(
                action="invoice_created_from_boc",
                entity_type=INVOICE,
                entity_id=invoice.id,
                actor_id=actor_id,
                actor_role=actor_role,
                changes=FieldChanges.of(
                    invoice_number=invoice.invoice_number,
                    boc_id=boc.id,
                    total_amount=invoice.total_amount,
                ),
            )
            self._scan_for_duplicates(invoice, actor_id, actor_role)

        return self._after_invoice_created(invoice, actor_id, actor_role, source="boc")

    # ------------------------------------------------------------------
    # Receivables
    # ------------------------------------------------------------------

    def get_receivable(self, receivable_id: UUID) -> Receivable:
        return load_or_raise(self._session, ReceivableModel, receivable_id, RECEIVABLE).to_dto()

    def find_receivable_for_invoice(self, invoice_id: UUID) -> ReceivableModel | None:
        return self._session.execute(
            select(ReceivableModel).where(ReceivableModel.invoice_id == invoice_id)
        ).scalar_one_or_none()

    def receivable_for_invoice(self, invoice_id: UUID) -> Receivable | None:
        row = self.find_receivable_for_invoice(invoice_id)
        return row.to_dto() if row is not None else None

    def _age(self, receivable: ReceivableModel, as_of: date) -> None:
        result = compute_aging(
            due_date=receivable.due_date,
            as_of=as_of,
            invoice_amount=receivable.invoice_amount,
            paid_amount=receivable.paid_amount,
            written_off=receivable.status == ReceivableStatus.WRITTEN_OFF.value,
            edges=self._aging_edges,
        )
        receivable.outstanding_amount = result.outstanding_amount
        receivable.aging_bucket = result.aging_bucket.value
        receivable.days_overdue = result.days_overdue
        receivable.status = result.status.value
        receivable.aged_as_of = as_of

    def create_receivable_for_invoice(
        self,
        invoice: InvoiceModel,
        actor_id: UUID,
        actor_role: str,
    ) -> ReceivableModel:
        """
        Open the receivable for an invoice: amount is the invoice total,
        due date is the invoice date plus the receivable terms.

        Flush-only; the caller owns the existence check and transaction.
        """
        now = self._clock.now()
        receivable = ReceivableModel(
            invoice_id=invoice.id,
            invoice_number=invoice.invoice_number,
            client_name=invoice.client_name,
            invoice_amount=invoice.total_amount,
            taxable_amount=invoice.invoice_amount,
            gst_amount=invoice.tax_amount,
            tds_amount=invoice.tds_amount,
            paid_amount=ZERO,
            outstanding_amount=invoice.total_amount,
            payment_terms=self._receivable_terms_days,
            due_date=invoice.invoice_date + timedelta(days=self._receivable_terms_days),
            status=ReceivableStatus.PENDING.value,
            created_by_id=actor_id,
            created_at=now,
            updated_at=now,
        )
        self._age(receivable, self._clock.today())
        self._session.add(receivable)
        self._session.flush()
        self._ledger.record_system_event(
            event_type=SystemEventType.LEDGER_ENTRY_POSTED,
            entity_type=RECEIVABLE,
            entity_id=receivable.id,
            actor_id=actor_id,
            actor_role=actor_role,
            action="Auto-created receivable from invoice",
            downstream_action="Payment tracking enabled",
        )
        return receivable

    def record_receipt(
        self,
        receivable_id: UUID,
        amount: Decimal,
        actor_id: UUID,
        actor_role: str,
    ) -> Receivable:
        """Record a client payment against a receivable."""
        require_role(RECEIVABLE, str(receivable_id), "record_payment", actor_role, COLLECTION_ROLES)
        received = to_decimal(amount, "amount")
        if received <= ZERO:
            raise InvalidAmountError("amount", amount, "must be greater than zero")

        with commit_or_rollback(
            self._session, "receivable_payment", receivable_id=str(receivable_id)
        ):
            receivable = load_or_raise(self._session, ReceivableModel, receivable_id, RECEIVABLE)
            if received > receivable.outstanding_amount:
                raise InvalidAmountError(
                    "amount", amount, f"exceeds outstanding {receivable.outstanding_amount}"
                )
            receivable.paid_amount = receivable.paid_amount + received
            self._age(receivable, self._clock.today())
            receivable.updated_by_id = actor_id
            receivable.updated_at = self._clock.now()
            self._session.flush()
            self._ledger.record_audit(
                action="receivable_payment_recorded",
                entity_type=RECEIVABLE,
                entity_id=receivable.id,
                actor_id=actor_id,
                actor_role=actor_role,
                changes=FieldChanges.of(
                    amount=received,
                    paid_amount=receivable.paid_amount,
                    outstanding_amount=receivable.outstanding_amount,
                    status=receivable.status,
                ),
            )
            self._ledger.record_system_event(
                event_type=SystemEventType.PAYMENT_PROCESSED,
                entity_type=RECEIVABLE,
                entity_id=receivable.id,
                actor_id=actor_id,
                actor_role=actor_role,
                action=f"Client payment of {received} recorded",
            )

        logger.info(
            "receivable_payment_recorded",
            extra={
                "receivable_id": str(receivable_id),
                "amount": str(received),
                "status": receivable.status,
            },
        )
        return receivable.to_dto()

    def refresh_aging(self, receivable_id: UUID, as_of: date | None = None) -> Receivable:
        """Recompute bucket and status as of a date (default today).  Idempotent."""
        as_of = as_of or self._clock.today()
        with commit_or_rollback(
            self._session, "receivable_aging", receivable_id=str(receivable_id)
        ):
            receivable = load_or_raise(self._session, ReceivableModel, receivable_id, RECEIVABLE)
            self._age(receivable, as_of)
            self._session.flush()
        return receivable.to_dto()

    def refresh_all_aging(self, as_of: date | None = None) -> int:
        """Re-age every open receivable; returns how many were updated."""
        as_of = as_of or self._clock.today()
        with commit_or_rollback(self._session, "receivable_aging_sweep"):
            rows = self._session.execute(
                select(ReceivableModel).where(
                    ReceivableModel.status.not_in(
                        (ReceivableStatus.PAID.value, ReceivableStatus.WRITTEN_OFF.value)
                    )
                )
            ).scalars().all()
            for receivable in rows:
                self._age(receivable, as_of)
            self._session.flush()
        logger.info("receivable_aging_refreshed", extra={"count": len(rows), "as_of": str(as_of)})
        return len(rows)

    def write_off(
        self,
        receivable_id: UUID,
        reason: str,
        actor_id: UUID,
        actor_role: str,
    ) -> Receivable:
        require_role(RECEIVABLE, str(receivable_id), "write_off", actor_role, COLLECTION_ROLES)
        reason = require_text(RECEIVABLE, "reason", reason)
        with commit_or_rollback(
            self._session, "receivable_write_off", receivable_id=str(receivable_id)
        ):
            receivable = load_or_raise(self._session, ReceivableModel, receivable_id, RECEIVABLE)
            before = receivable.status
            if before == ReceivableStatus.WRITTEN_OFF.value or receivable.outstanding_amount <= ZERO:
                raise InvalidTransitionError(RECEIVABLE, str(receivable_id), before, "write_off")
            receivable.status = ReceivableStatus.WRITTEN_OFF.value
            receivable.write_off_reason = reason
            self._age(receivable, self._clock.today())
            receivable.updated_by_id = actor_id
            receivable.updated_at = self._clock.now()
            self._session.flush()
            self._ledger.record_audit(
                action="receivable_written_off",
                entity_type=RECEIVABLE,
                entity_id=receivable.id,
                actor_id=actor_id,
                actor_role=actor_role,
                changes=TransitionRecorded(
                    action="write_off",
                    from_state=before,
                    to_state=receivable.status,
                    reason=reason,
                ),
            )
        logger.warning(
            "receivable_written_off",
            extra={
                "receivable_id": str(receivable_id),
                "outstanding_amount": str(receivable.outstanding_amount),
            },
        )
        return receivable.to_dto()

    def outstanding_total(self) -> Decimal:
        """Sum outstanding across receivables not yet paid or written off."""
        total = self._session.execute(
            select(func.coalesce(func.sum(ReceivableModel.outstanding_amount), 0)).where(
                ReceivableModel.status.not_in(
                    (ReceivableStatus.PAID.value, ReceivableStatus.WRITTEN_OFF.value)
                )
            )
        ).scalar_one()
        return to_decimal(total, "outstanding_total")
