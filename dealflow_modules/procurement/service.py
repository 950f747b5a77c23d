"""
Procurement Module Service (``dealflow_modules.procurement.service``).

Responsibility
--------------
Purchase order creation against approved deals, vendor assignment, the PO
lifecycle, and the placeholder PO status stubs written by the approval
cascade.

Architecture position
---------------------
**Modules layer**.  Public PO methods own their transaction.  The stub
methods used by the cascade orchestrator (``find_stub_for_source``,
``create_po_status_stub``) only flush; the orchestrator owns the
savepoint around them.

Invariants enforced
-------------------
* A PO can only be raised against a deal whose approval status is
  ``Approved``.
* ``adjusted_payable_amount`` of zero reads as ``approved_cost``.
* Issuing requires a vendor other than ``Pending Assignment``.
* At most one stub per (source type, source id); enforced by a unique
  constraint beneath the existence check.

Failure modes
-------------
* ``DealNotApprovedError`` when the deal is Pending or Rejected.
* ``TransitionGuardFailedError`` when issuing without a vendor.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from dealflow_kernel.db.types import ZERO, to_decimal
from dealflow_kernel.domain.clock import Clock, SystemClock
from dealflow_kernel.domain.payloads import FieldChanges, TransitionRecorded
from dealflow_kernel.exceptions import DealNotApprovedError
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
from dealflow_modules.procurement.models import (
    PENDING_VENDOR,
    CostType,
    LinkedSourceType,
    POStatus,
    POStatusStub,
    PurchaseOrder,
)
from dealflow_modules.procurement.orm import POStatusStubModel, PurchaseOrderModel
from dealflow_modules.procurement.workflows import PO_CREATORS, PURCHASE_ORDER_WORKFLOW
from dealflow_modules.sales.models import DealApprovalStatus
from dealflow_modules.sales.orm import DealModel
from dealflow_services.workflow_executor import WorkflowExecutor

logger = get_logger("modules.procurement.service")

PURCHASE_ORDER = "PurchaseOrder"
PO_STATUS_STUB = "POStatusStub"


class ProcurementService:
    """Purchase orders and PO status stubs."""

    def __init__(
        self,
        session: Session,
        workflow_executor: WorkflowExecutor,
        identifiers: IdentifierService,
        ledger: LedgerService,
        clock: Clock | None = None,
    ):
        self._session = session
        self._workflow_executor = workflow_executor
        self._identifiers = identifiers
        self._ledger = ledger
        self._clock = clock or SystemClock()

    # ------------------------------------------------------------------
    # Purchase orders
    # ------------------------------------------------------------------

    def get_purchase_order(self, po_id: UUID) -> PurchaseOrder:
        return load_or_raise(self._session, PurchaseOrderModel, po_id, PURCHASE_ORDER).to_dto()

    def purchase_orders_for_deal(self, deal_id: UUID) -> list[PurchaseOrder]:
        rows = self._session.execute(
            select(PurchaseOrderModel)
            .where(PurchaseOrderModel.deal_id == deal_id)
            .order_by(PurchaseOrderModel.po_number)
        ).scalars()
        return [row.to_dto() for row in rows]

    def create_purchase_order(
        self,
        deal_id: UUID,
        vendor_name: str,
        approved_cost: Decimal,
        actor_id: UUID,
        actor_role: str,
        cost_type: str = CostType.OTHER.value,
        adjusted_payable_amount: Decimal | None = None,
        vendor_id: UUID | None = None,
        program_id: UUID | None = None,
        description: str | None = None,
    ) -> PurchaseOrder:
        """
        Raise a ``Draft`` purchase order against an approved deal.

        Raises:
            DealNotApprovedError: The deal is not ``Approved``.
        """
        require_role(PURCHASE_ORDER, "new", "create", actor_role, PO_CREATORS)
        vendor_name = require_text(PURCHASE_ORDER, "vendor_name", vendor_name)
        kind = parse_enum(CostType, cost_type, "cost_type")
        cost = to_decimal(approved_cost, "approved_cost")
        adjusted = to_decimal(adjusted_payable_amount, "adjusted_payable_amount")

        deal = load_or_raise(self._session, DealModel, deal_id, "Deal")
        if deal.approval_status != DealApprovalStatus.APPROVED.value:
            logger.warning(
                "purchase_order_deal_not_approved",
                extra={"deal_id": str(deal_id), "approval_status": deal.approval_status},
            )
            raise DealNotApprovedError(str(deal_id), deal.approval_status)

        with commit_or_rollback(self._session, "purchase_order_create", deal_id=str(deal_id)):
            now = self._clock.now()
            po = PurchaseOrderModel(
                po_number=self._identifiers.next_po_number(),
                deal_id=deal.id,
                program_id=program_id,
                vendor_id=vendor_id,
                vendor_name=vendor_name,
                cost_type=kind.value,
                description=description,
                approved_cost=cost,
                adjusted_payable_amount=adjusted if adjusted != ZERO else cost,
                status=PURCHASE_ORDER_WORKFLOW.initial_state,
                created_by_id=actor_id,
                created_at=now,
                updated_at=now,
            )
            self._session.add(po)
            self._session.flush()
            self._ledger.record_audit(
                action="purchase_order_created",
                entity_type=PURCHASE_ORDER,
                entity_id=po.id,
                actor_id=actor_id,
                actor_role=actor_role,
                changes=FieldChanges.of(
                    po_number=po.po_number,
                    deal_id=deal.id,
                    vendor_name=vendor_name,
                    approved_cost=cost,
                    adjusted_payable_amount=po.adjusted_payable_amount,
                ),
            )

        logger.info(
            "purchase_order_created",
            extra={"po_id": str(po.id), "po_number": po.po_number, "deal_id": str(deal_id)},
        )
        return po.to_dto()

    def assign_vendor(
        self,
        po_id: UUID,
        vendor_name: str,
        actor_id: UUID,
        actor_role: str,
        vendor_id: UUID | None = None,
    ) -> PurchaseOrder:
        require_role(PURCHASE_ORDER, str(po_id), "assign_vendor", actor_role, PO_CREATORS)
        vendor_name = require_text(PURCHASE_ORDER, "vendor_name", vendor_name)
        with commit_or_rollback(self._session, "purchase_order_assign_vendor", po_id=str(po_id)):
            po = load_or_raise(self._session, PurchaseOrderModel, po_id, PURCHASE_ORDER)
            before = po.vendor_name
            po.vendor_name = vendor_name
            po.vendor_id = vendor_id
            po.updated_by_id = actor_id
            po.updated_at = self._clock.now()
            self._session.flush()
            self._ledger.record_audit(
                action="purchase_order_vendor_assigned",
                entity_type=PURCHASE_ORDER,
                entity_id=po.id,
                actor_id=actor_id,
                actor_role=actor_role,
                changes=FieldChanges(
                    after={"vendor_name": vendor_name}, before={"vendor_name": before}
                ),
            )
        return po.to_dto()

    def transition_purchase_order(
        self,
        po_id: UUID,
        action: str,
        actor_id: UUID,
        actor_role: str,
        reason: str | None = None,
    ) -> PurchaseOrder:
        """Approve, issue, complete or cancel a purchase order."""
        with commit_or_rollback(
            self._session, "purchase_order_transition", po_id=str(po_id), action=action
        ):
            po = load_or_raise(self._session, PurchaseOrderModel, po_id, PURCHASE_ORDER)
            from_state = po.status
            po.status = self._workflow_executor.require_transition(
                PURCHASE_ORDER_WORKFLOW, PURCHASE_ORDER, po.id, from_state, action, actor_role,
                reason=reason, context=po,
            )
            now = self._clock.now()
            if po.status == POStatus.APPROVED.value:
                po.approved_by_id = actor_id
                po.approved_at = now
            elif po.status == POStatus.ISSUED.value:
                po.issued_at = now
            elif po.status == POStatus.COMPLETED.value:
                po.completed_at = now
            elif po.status == POStatus.CANCELLED.value:
                po.cancellation_reason = reason
            po.updated_by_id = actor_id
            po.updated_at = now
            self._session.flush()
            self._ledger.record_audit(
                action=f"purchase_order_{action}",
                entity_type=PURCHASE_ORDER,
                entity_id=po.id,
                actor_id=actor_id,
                actor_role=actor_role,
                changes=TransitionRecorded(
                    action=action, from_state=from_state, to_state=po.status, reason=reason,
                ),
            )

        logger.info(
            "purchase_order_transitioned",
            extra={"po_id": str(po_id), "from_state": from_state, "to_state": po.status},
        )
        return po.to_dto()

    # ------------------------------------------------------------------
    # PO status stubs
    # ------------------------------------------------------------------

    def get_po_status_stub(self, stub_id: UUID) -> POStatusStub:
        return load_or_raise(self._session, POStatusStubModel, stub_id, PO_STATUS_STUB).to_dto()

    def find_stub_for_source(
        self, source_type: LinkedSourceType, source_id: UUID
    ) -> POStatusStubModel | None:
        return self._session.execute(
            select(POStatusStubModel).where(
                POStatusStubModel.linked_source_type == LinkedSourceType(source_type).value,
                POStatusStubModel.linked_source_id == source_id,
            )
        ).scalar_one_or_none()

    def create_po_status_stub(
        self,
        source_type: LinkedSourceType,
        source_id: UUID,
        actor_id: UUID,
        actor_role: str,
    ) -> POStatusStubModel:
        """
        Write the placeholder PO status record for an approved source.

        Flush-only; the caller owns the transaction and the existence check.
        """
        now = self._clock.now()
        stub = POStatusStubModel(
            po_status_number=self._identifiers.po_status_number(),
            linked_source_type=LinkedSourceType(source_type).value,
            linked_source_id=source_id,
            vendor_name=PENDING_VENDOR,
            approved_cost=ZERO,
            cost_type=CostType.OTHER.value,
            status=POStatus.DRAFT.value,
            created_by_id=actor_id,
            created_at=now,
            updated_at=now,
        )
        self._session.add(stub)
        self._session.flush()
        self._ledger.record_system_event(
            event_type=SystemEventType.PO_AUTO_GENERATED,
            entity_type=PO_STATUS_STUB,
            entity_id=stub.id,
            actor_id=actor_id,
            actor_role=actor_role,
            action="Auto-generated PO status from approved deal",
            downstream_action="Awaiting Ops PO creation",
        )
        return stub

    def link_po_status(
        self,
        stub_id: UUID,
        po_id: UUID,
        actor_id: UUID,
        actor_role: str,
    ) -> POStatusStub:
        """Attach a real purchase order to a stub, copying its vendor, cost and status."""
        require_role(PO_STATUS_STUB, str(stub_id), "link", actor_role, PO_CREATORS)
        with commit_or_rollback(self._session, "po_status_link", stub_id=str(stub_id)):
            stub = load_or_raise(self._session, POStatusStubModel, stub_id, PO_STATUS_STUB)
            po = load_or_raise(self._session, PurchaseOrderModel, po_id, PURCHASE_ORDER)
            stub.purchase_order_id = po.id
            stub.vendor_name = po.vendor_name
            stub.approved_cost = po.approved_cost
            stub.cost_type = po.cost_type
            stub.status = po.status
            stub.updated_by_id = actor_id
            stub.updated_at = self._clock.now()
            self._session.flush()
            self._ledger.record_audit(
                action="po_status_linked",
                entity_type=PO_STATUS_STUB,
                entity_id=stub.id,
                actor_id=actor_id,
                actor_role=actor_role,
                changes=FieldChanges.of(purchase_order_id=po.id, po_number=po.po_number),
            )
        return stub.to_dto()
