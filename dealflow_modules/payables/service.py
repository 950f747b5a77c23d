"""
Payables Module Service (``dealflow_modules.payables.service``).

Responsibility
--------------
Vendors, vendor payables (created from a purchase order or by direct
entry), hold / release / payment / cancel, and TDS withholding records
including the director override.

Architecture position
---------------------
**Modules layer**.  Public methods own their transaction.
``apply_withholding`` only flushes; it is the body of the payable cascade
step and of ``calculate_withholding``.

Invariants enforced
-------------------
* ``outstanding_amount == adjusted_payable_amount - tds_amount - paid_amount``
  after every mutation (``derive_payable_state``).
* Hold always wins over release in the derived status.
* ``net_payable_amount == payment_amount - tds_amount`` on every TDS record.
* One TDS record per payable; recomputation updates it in place.
* The vendor's yearly total excludes the payable being assessed and any
  cancelled payables.

Failure modes
-------------
* ``InvalidAmountError`` for a non-positive payment or one exceeding the
  outstanding balance.
* ``InvalidTransitionError`` when paying a payable that is not Released.
* ``EntityNotFoundError`` for unknown payable, vendor or PO ids.

Audit relevance
---------------
Every mutation writes an audit entry.  TDS computation writes a
``TDS Calculated`` system event and payments write ``Payment Processed``.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from dealflow_engines.payables import (
    PayableStatus,
    derive_payable_state,
    effective_adjusted_amount,
)
from dealflow_engines.withholding import (
    DEFAULT_RATES,
    NatureOfService,
    ServiceClassifier,
    VendorType,
    WithholdingRates,
    compute_withholding,
    resolve_nature_of_service,
)
from dealflow_kernel.db.types import ZERO, to_decimal
from dealflow_kernel.domain.cascade import CascadeListener, CascadeTrigger, TriggerEvent
from dealflow_kernel.domain.clock import Clock, SystemClock
from dealflow_kernel.domain.payloads import FieldChanges, TransitionRecorded, WithholdingComputed
from dealflow_kernel.exceptions import (
    InvalidAmountError,
    InvalidTransitionError,
    MissingFieldError,
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
from dealflow_modules.payables.models import (
    Payable,
    PaymentMode,
    ReconciliationStatus,
    TaxRecord,
    Vendor,
)
from dealflow_modules.payables.orm import PayableModel, TaxRecordModel, VendorModel
from dealflow_modules.payables.workflows import (
    OVERRIDE_ROLES,
    PAYABLE_ROLES,
    PAYABLE_WORKFLOW,
    VENDOR_MAINTAINERS,
)
from dealflow_modules.procurement.orm import PurchaseOrderModel
from dealflow_services.workflow_executor import WorkflowExecutor

logger = get_logger("modules.payables.service")

PAYABLE = "Payable"
VENDOR = "Vendor"
TAX_RECORD = "TaxEngine"


def vendor_yearly_total(
    session: Session,
    vendor_id: UUID,
    year: int,
    exclude_payable_id: UUID | None = None,
) -> Decimal:
    """Sum of adjusted payable amounts committed to a vendor in ``year``."""
    start = datetime(year, 1, 1, tzinfo=UTC)
    end = datetime(year + 1, 1, 1, tzinfo=UTC)
    stmt = select(func.coalesce(func.sum(PayableModel.adjusted_payable_amount), 0)).where(
        PayableModel.vendor_id == vendor_id,
        PayableModel.created_at >= start,
        PayableModel.created_at < end,
        PayableModel.status != PayableStatus.CANCELLED.value,
    )
    if exclude_payable_id is not None:
        stmt = stmt.where(PayableModel.id != exclude_payable_id)
    return to_decimal(session.execute(stmt).scalar_one(), "vendor_yearly_total")


def _rederive(payable: PayableModel) -> None:
    state = derive_payable_state(
        adjusted_amount=payable.adjusted_payable_amount,
        paid_amount=payable.paid_amount,
        tds_withheld=payable.tds_amount,
        hold=payable.hold_flag,
        release=payable.release_flag,
        cancelled=payable.status == PayableStatus.CANCELLED.value,
    )
    payable.outstanding_amount = state.outstanding_amount
    payable.status = state.status.value


class PayablesService:
    """
    Vendor payables and TDS.

    Contract
    --------
    * Creating a payable fires ``PAYABLE_CREATED`` after commit; the
      cascade computes withholding and applies the net amount.
    * ``classifier`` resolves the nature of service from a description when
      neither the caller nor the vendor supplies one.
    """

    def __init__(
        self,
        session: Session,
        workflow_executor: WorkflowExecutor,
        identifiers: IdentifierService,
        ledger: LedgerService,
        clock: Clock | None = None,
        cascade: CascadeListener | None = None,
        rates: WithholdingRates = DEFAULT_RATES,
        classifier: ServiceClassifier | None = None,
        payment_terms_days: int = 30,
    ):
        self._session = session
        self._workflow_executor = workflow_executor
        self._identifiers = identifiers
        self._ledger = ledger
        self._clock = clock or SystemClock()
        self._cascade = cascade
        self._rates = rates
        self._classifier = classifier
        self._payment_terms_days = payment_terms_days

    # ------------------------------------------------------------------
    # Vendors
    # ------------------------------------------------------------------

    def get_vendor(self, vendor_id: UUID) -> Vendor:
        return load_or_raise(self._session, VendorModel, vendor_id, VENDOR).to_dto()

    def create_vendor(
        self,
        vendor_name: str,
        vendor_type: str,
        actor_id: UUID,
        actor_role: str,
        pan_number: str | None = None,
        gst_number: str | None = None,
        default_nature_of_service: str | None = None,
    ) -> Vendor:
        require_role(VENDOR, "new", "create", actor_role, VENDOR_MAINTAINERS)
        vendor_name = require_text(VENDOR, "vendor_name", vendor_name)
        kind = parse_enum(VendorType, vendor_type, "vendor_type")
        nature = (
            parse_enum(NatureOfService, default_nature_of_service, "default_nature_of_service")
            if default_nature_of_service
            else None
        )
        with commit_or_rollback(self._session, "vendor_create", vendor_name=vendor_name):
            now = self._clock.now()
            vendor = VendorModel(
                vendor_name=vendor_name,
                vendor_type=kind.value,
                pan_number=(pan_number or "").strip() or None,
                gst_number=gst_number,
                default_nature_of_service=nature.value if nature else None,
                created_by_id=actor_id,
                created_at=now,
                updated_at=now,
            )
            self._session.add(vendor)
            self._session.flush()
            self._ledger.record_audit(
                action="vendor_created",
                entity_type=VENDOR,
                entity_id=vendor.id,
                actor_id=actor_id,
                actor_role=actor_role,
                changes=FieldChanges.of(
                    vendor_name=vendor_name,
                    vendor_type=kind.value,
                    pan_present=vendor.pan_number is not None,
                ),
            )
        return vendor.to_dto()

    # ------------------------------------------------------------------
    # Payables
    # ------------------------------------------------------------------

    def get_payable(self, payable_id: UUID) -> Payable:
        return load_or_raise(self._session, PayableModel, payable_id, PAYABLE).to_dto()

    def create_payable(
        self,
        actor_id: UUID,
        actor_role: str,
        purchase_order_id: UUID | None = None,
        vendor_id: UUID | None = None,
        vendor_name: str | None = None,
        amount: Decimal | None = None,
        payment_terms: int | None = None,
        payment_mode: str = PaymentMode.NEFT.value,
        nature_of_service: str | None = None,
        description: str | None = None,
    ) -> Payable:
        """
        Create a payable from a purchase order or by direct entry.

        From a PO, the vendor and amounts come from the PO and ``amount`` is
        ignored.  Direct entry needs a vendor (id or name) and a positive
        amount.  Either way the due date is today plus the payment terms.
        """
        require_role(PAYABLE, "new", "create", actor_role, PAYABLE_ROLES)
        mode = parse_enum(PaymentMode, payment_mode, "payment_mode")
        nature = (
            parse_enum(NatureOfService, nature_of_service, "nature_of_service")
            if nature_of_service
            else None
        )
        terms = self._payment_terms_days if payment_terms is None else int(payment_terms)

        approved_cost: Decimal | None = None
        if purchase_order_id is not None:
            po = load_or_raise(
                self._session, PurchaseOrderModel, purchase_order_id, "PurchaseOrder"
            )
            vendor_id = po.vendor_id or vendor_id
            vendor_name = po.vendor_name
            approved_cost = po.approved_cost
            adjusted = effective_adjusted_amount(po.adjusted_payable_amount, po.approved_cost)
        else:
            adjusted = to_decimal(amount, "amount")
            if adjusted <= ZERO:
                raise InvalidAmountError("amount", amount, "must be greater than zero")

        if vendor_id is not None:
            vendor = load_or_raise(self._session, VendorModel, vendor_id, VENDOR)
            vendor_name = vendor.vendor_name
        if not vendor_name:
            raise MissingFieldError(PAYABLE, "vendor_name")

        with commit_or_rollback(self._session, "payable_create", vendor_name=vendor_name):
            now = self._clock.now()
            payable = PayableModel(
                vendor_payout_reference=self._identifiers.next_vendor_payout_reference(),
                purchase_order_id=purchase_order_id,
                vendor_id=vendor_id,
                vendor_name=vendor_name,
                description=description,
                nature_of_service=nature.value if nature else None,
                approved_cost=approved_cost,
                adjusted_payable_amount=adjusted,
                tds_amount=ZERO,
                paid_amount=ZERO,
                outstanding_amount=adjusted,
                payment_terms=terms,
                payment_mode=mode.value,
                due_date=self._clock.today() + timedelta(days=terms),
                hold_flag=False,
                release_flag=False,
                reconciliation_status=ReconciliationStatus.PENDING.value,
                status=PAYABLE_WORKFLOW.initial_state,
                created_by_id=actor_id,
                created_at=now,
                updated_at=now,
            )
            _rederive(payable)
            self._session.add(payable)
            self._session.flush()
            self._ledger.record_audit(
                action="payable_created",
                entity_type=PAYABLE,
                entity_id=payable.id,
                actor_id=actor_id,
                actor_role=actor_role,
                changes=FieldChanges.of(
                    vendor_payout_reference=payable.vendor_payout_reference,
                    purchase_order_id=purchase_order_id,
                    vendor_name=vendor_name,
                    adjusted_payable_amount=adjusted,
                    due_date=payable.due_date,
                ),
            )

        logger.info(
            "payable_created",
            extra={
                "payable_id": str(payable.id),
                "reference": payable.vendor_payout_reference,
                "adjusted_payable_amount": str(adjusted),
            },
        )

        if self._cascade is not None:
            self._cascade.handle(TriggerEvent(
                trigger=CascadeTrigger.PAYABLE_CREATED,
                entity_type=PAYABLE,
                entity_id=payable.id,
                actor_id=actor_id,
                actor_role=actor_role,
            ))
        return self.get_payable(payable.id)

    def _transition(
        self,
        payable: PayableModel,
        action: str,
        actor_id: UUID,
        actor_role: str,
        reason: str | None = None,
    ) -> None:
        from_state = payable.status
        self._workflow_executor.require_transition(
            PAYABLE_WORKFLOW, PAYABLE, payable.id, from_state, action, actor_role,
            reason=reason, context=payable,
        )
        if action == "hold":
            payable.hold_flag = True
        elif action == "release":
            payable.hold_flag = False
            payable.release_flag = True
        elif action == "cancel":
            payable.status = PayableStatus.CANCELLED.value
        _rederive(payable)
        payable.updated_by_id = actor_id
        payable.updated_at = self._clock.now()
        self._session.flush()
        self._ledger.record_audit(
            action=f"payable_{action}",
            entity_type=PAYABLE,
            entity_id=payable.id,
            actor_id=actor_id,
            actor_role=actor_role,
            changes=TransitionRecorded(
                action=action, from_state=from_state, to_state=payable.status, reason=reason,
            ),
        )

    def hold_payable(self, payable_id: UUID, actor_id: UUID, actor_role: str) -> Payable:
        with commit_or_rollback(self._session, "payable_hold", payable_id=str(payable_id)):
            payable = load_or_raise(self._session, PayableModel, payable_id, PAYABLE)
            self._transition(payable, "hold", actor_id, actor_role)
        logger.info("payable_held", extra={"payable_id": str(payable_id)})
        return payable.to_dto()

    def release_payable(self, payable_id: UUID, actor_id: UUID, actor_role: str) -> Payable:
        with commit_or_rollback(self._session, "payable_release", payable_id=str(payable_id)):
            payable = load_or_raise(self._session, PayableModel, payable_id, PAYABLE)
            self._transition(payable, "release", actor_id, actor_role)
        logger.info("payable_released", extra={"payable_id": str(payable_id)})
        return payable.to_dto()

    def cancel_payable(
        self,
        payable_id: UUID,
        actor_id: UUID,
        actor_role: str,
        reason: str | None = None,
    ) -> Payable:
        with commit_or_rollback(self._session, "payable_cancel", payable_id=str(payable_id)):
            payable = load_or_raise(self._session, PayableModel, payable_id, PAYABLE)
            self._transition(payable, "cancel", actor_id, actor_role, reason=reason)
        logger.info("payable_cancelled", extra={"payable_id": str(payable_id), "reason": reason})
        return payable.to_dto()

    def record_payment(
        self,
        payable_id: UUID,
        amount: Decimal,
        actor_id: UUID,
        actor_role: str,
        payment_mode: str | None = None,
    ) -> Payable:
        """
        Pay part or all of a released payable.

        When the outstanding balance reaches zero the payable moves to
        ``Paid`` through the ``pay`` transition.
        """
        require_role(PAYABLE, str(payable_id), "record_payment", actor_role, PAYABLE_ROLES)
        paid = to_decimal(amount, "amount")
        if paid <= ZERO:
            raise InvalidAmountError("amount", amount, "must be greater than zero")
        mode = parse_enum(PaymentMode, payment_mode, "payment_mode") if payment_mode else None

        with commit_or_rollback(self._session, "payable_payment", payable_id=str(payable_id)):
            payable = load_or_raise(self._session, PayableModel, payable_id, PAYABLE)
            if payable.status != PayableStatus.RELEASED.value:
                self._workflow_executor.require_transition(
                    PAYABLE_WORKFLOW, PAYABLE, payable.id, payable.status, "pay", actor_role,
                    context=payable,
                )
            if paid > payable.outstanding_amount:
                raise InvalidAmountError(
                    "amount", amount, f"exceeds outstanding {payable.outstanding_amount}"
                )
            payable.paid_amount = payable.paid_amount + paid
            if mode is not None:
                payable.payment_mode = mode.value
            payable.vendor_payout_date = self._clock.today()
            payable.outstanding_amount = payable.outstanding_amount - paid
            if payable.outstanding_amount == ZERO:
                self._workflow_executor.require_transition(
                    PAYABLE_WORKFLOW, PAYABLE, payable.id, payable.status, "pay", actor_role,
                    context=payable,
                )
            _rederive(payable)
            payable.updated_by_id = actor_id
            payable.updated_at = self._clock.now()
            self._session.flush()

            self._ledger.record_audit(
                action="payable_payment_recorded",
                entity_type=PAYABLE,
                entity_id=payable.id,
                actor_id=actor_id,
                actor_role=actor_role,
                changes=FieldChanges.of(
                    amount=paid,
                    paid_amount=payable.paid_amount,
                    outstanding_amount=payable.outstanding_amount,
                    status=payable.status,
                ),
            )
            self._ledger.record_system_event(
                event_type=SystemEventType.PAYMENT_PROCESSED,
                entity_type=PAYABLE,
                entity_id=payable.id,
                actor_id=actor_id,
                actor_role=actor_role,
                action=f"Vendor payment of {paid} recorded",
                downstream_action="Bank reconciliation pending",
            )

        logger.info(
            "payable_payment_recorded",
            extra={
                "payable_id": str(payable_id),
                "amount": str(paid),
                "outstanding_amount": str(payable.outstanding_amount),
                "status": payable.status,
            },
        )
        return payable.to_dto()

    def set_reconciliation_status(
        self,
        payable_id: UUID,
        status: str,
        actor_id: UUID,
        actor_role: str,
    ) -> Payable:
        require_role(PAYABLE, str(payable_id), "reconcile", actor_role, PAYABLE_ROLES)
        value = parse_enum(ReconciliationStatus, status, "reconciliation_status")
        with commit_or_rollback(self._session, "payable_reconcile", payable_id=str(payable_id)):
            payable = load_or_raise(self._session, PayableModel, payable_id, PAYABLE)
            payable.reconciliation_status = value.value
            payable.updated_by_id = actor_id
            self._session.flush()
            self._ledger.record_audit(
                action="payable_reconciliation_updated",
                entity_type=PAYABLE,
                entity_id=payable.id,
                actor_id=actor_id,
                actor_role=actor_role,
                changes=FieldChanges.of(reconciliation_status=value.value),
            )
        return payable.to_dto()

    # ------------------------------------------------------------------
    # Withholding (TDS)
    # ------------------------------------------------------------------

    def get_tax_record(self, tax_record_id: UUID) -> TaxRecord:
        return load_or_raise(self._session, TaxRecordModel, tax_record_id, TAX_RECORD).to_dto()

    def tax_record_for_payable(self, payable_id: UUID) -> TaxRecord | None:
        row = self._find_tax_record(payable_id)
        return row.to_dto() if row is not None else None

    def _find_tax_record(self, payable_id: UUID) -> TaxRecordModel | None:
        return self._session.execute(
            select(TaxRecordModel).where(TaxRecordModel.payable_id == payable_id)
        ).scalar_one_or_none()

    def apply_withholding(
        self,
        payable: PayableModel,
        actor_id: UUID,
        actor_role: str,
        nature_of_service: str | None = None,
        director_override: bool = False,
    ) -> TaxRecordModel | None:
        """
        Compute TDS for a payable, upsert its record and apply the net amount.

        Returns None when the payable has no vendor (direct entry by name
        only), since vendor type and PAN are unknown.  Flush-only.

        Raises ``InvalidTransitionError`` on a Paid or Cancelled payable and
        ``InvalidAmountError`` when the new TDS exceeds what is still unpaid.
        """
        if payable.status in PAYABLE_WORKFLOW.terminal_states:
            raise InvalidTransitionError(PAYABLE, str(payable.id), payable.status, "calculate_tds")
        if payable.vendor_id is None:
            logger.info("withholding_skipped_no_vendor", extra={"payable_id": str(payable.id)})
            return None
        vendor = load_or_raise(self._session, VendorModel, payable.vendor_id, VENDOR)

        record = self._find_tax_record(payable.id)
        nature = resolve_nature_of_service(
            explicit=nature_of_service or payable.nature_of_service or (
                record.nature_of_service if record is not None else None
            ),
            vendor_default=vendor.default_nature_of_service,
            description=payable.description or f"Payment for services from {vendor.vendor_name}",
            classifier=self._classifier,
        )
        yearly = vendor_yearly_total(
            self._session, vendor.id, self._clock.today().year, exclude_payable_id=payable.id
        )
        result = compute_withholding(
            vendor_type=VendorType(vendor.vendor_type),
            nature_of_service=nature,
            payment_amount=payable.adjusted_payable_amount,
            pan_present=bool(vendor.pan_number),
            vendor_yearly_total=yearly,
            director_override=director_override,
            rates=self._rates,
        )
        unpaid = payable.adjusted_payable_amount - payable.paid_amount
        if result.tds_amount > unpaid:
            raise InvalidAmountError(
                "tds_amount", result.tds_amount, f"exceeds unpaid balance {unpaid}"
            )

        now = self._clock.now()
        if record is None:
            record = TaxRecordModel(
                payable_id=payable.id,
                vendor_id=vendor.id,
                created_by_id=actor_id,
                created_at=now,
            )
            self._session.add(record)
        record.vendor_type = vendor.vendor_type
        record.nature_of_service = nature.value
        record.tds_section = result.tds_section.value
        record.payee_type = result.payee_type.value
        record.applicable_tds_percent = result.applicable_percent
        record.payment_amount = payable.adjusted_payable_amount
        record.threshold_status = result.threshold_status.value
        record.tds_amount = result.tds_amount
        record.net_payable_amount = result.net_payable_amount
        record.pan_number = vendor.pan_number
        record.pan_available = result.pan_available
        record.pan_absent_percent = result.pan_absent_percent
        record.compliance_status = result.compliance_status.value
        record.director_override = director_override
        record.calculated_at = now
        record.updated_at = now
        record.updated_by_id = actor_id

        payable.tds_amount = result.tds_amount
        _rederive(payable)
        payable.updated_at = now
        self._session.flush()

        self._ledger.record_system_event(
            event_type=SystemEventType.TDS_CALCULATED,
            entity_type=PAYABLE,
            entity_id=payable.id,
            actor_id=actor_id,
            actor_role=actor_role,
            action=(
                "Recalculated TDS under director override"
                if director_override
                else "Auto-calculated TDS on payable creation"
            ),
            downstream_action="Compliance log updated",
            metadata=WithholdingComputed(
                tds_section=result.tds_section.value,
                tds_percent=result.applicable_percent,
                tds_amount=result.tds_amount,
                net_payable_amount=result.net_payable_amount,
                threshold_status=result.threshold_status.value,
                compliance_status=result.compliance_status.value,
            ),
        )
        logger.info(
            "withholding_applied",
            extra={
                "payable_id": str(payable.id),
                "tds_section": result.tds_section.value,
                "tds_amount": str(result.tds_amount),
                "net_payable_amount": str(result.net_payable_amount),
                "compliance_status": result.compliance_status.value,
            },
        )
        return record

    def calculate_withholding(
        self,
        payable_id: UUID,
        actor_id: UUID,
        actor_role: str,
        nature_of_service: str | None = None,
    ) -> TaxRecord | None:
        """Recompute TDS for a payable on demand."""
        require_role(PAYABLE, str(payable_id), "calculate_tds", actor_role, PAYABLE_ROLES)
        if nature_of_service:
            parse_enum(NatureOfService, nature_of_service, "nature_of_service")
        with commit_or_rollback(self._session, "withholding_calculate", payable_id=str(payable_id)):
            payable = load_or_raise(self._session, PayableModel, payable_id, PAYABLE)
            existing = self._find_tax_record(payable.id)
            record = self.apply_withholding(
                payable, actor_id, actor_role,
                nature_of_service=nature_of_service,
                director_override=existing.director_override if existing is not None else False,
            )
        return record.to_dto() if record is not None else None

    def apply_director_override(
        self,
        tax_record_id: UUID,
        actor_id: UUID,
        actor_role: str,
    ) -> TaxRecord:
        """
        Waive the PAN-absent penalty on a TDS record.

        Recomputes at the normal rate, sets compliance ``Director Override``
        and re-applies the net amount to the payable.
        """
        require_role(
            TAX_RECORD, str(tax_record_id), "director_override", actor_role, OVERRIDE_ROLES
        )
        with commit_or_rollback(
            self._session, "withholding_override", tax_record_id=str(tax_record_id)
        ):
            record = load_or_raise(self._session, TaxRecordModel, tax_record_id, TAX_RECORD)
            before_tds = record.tds_amount
            payable = load_or_raise(self._session, PayableModel, record.payable_id, PAYABLE)
            self.apply_withholding(
                payable, actor_id, actor_role,
                nature_of_service=record.nature_of_service,
                director_override=True,
            )
            record.director_override_by_id = actor_id
            record.director_override_at = self._clock.now()
            self._session.flush()
            self._ledger.record_audit(
                action="withholding_director_override",
                entity_type=TAX_RECORD,
                entity_id=record.id,
                actor_id=actor_id,
                actor_role=actor_role,
                changes=FieldChanges(
                    after={
                        "tds_amount": str(record.tds_amount),
                        "compliance_status": record.compliance_status,
                    },
                    before={"tds_amount": str(before_tds)},
                ),
            )

        logger.info(
            "withholding_director_override",
            extra={"tax_record_id": str(tax_record_id), "tds_amount": str(record.tds_amount)},
        )
        return record.to_dto()
