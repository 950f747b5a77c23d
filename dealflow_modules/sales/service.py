"""
Sales Module Service (``dealflow_modules.sales.service``).

Responsibility
--------------
Opportunity, deal and deal-request operations.  Re-derives gross profit
and contribution margin through ``dealflow_engines`` on every save, drives
the sales state machines through the workflow executor, feeds the
governance gate, and hands completed transitions to the cascade listener.

Architecture position
---------------------
**Modules layer**.  ``SalesService`` is the sole public entry point for
sales operations.  Collaborators (identifiers, ledger, outbox, governance,
workflow executor, cascade listener) are constructor dependencies.

Invariants enforced
-------------------
* Each public method owns the transaction boundary (commit on success,
  rollback and re-raise on any exception).
* Cascade triggers fire only after the parent write is committed.
* ``contribution_margin == total_order_value - total_cost`` after every
  deal save; ``final_gp == tov - total_costs`` after every opportunity save.
* Approving an already-approved deal or deal request does not transition
  again; it re-delivers the approval trigger so a missing downstream
  record can be reconciled.

Failure modes
-------------
* ``MissingFieldError`` / ``InvalidEnumValueError`` / ``InvalidAmountError``
  for bad input.
* ``WorkflowError`` subclasses for rejected transitions.
* ``EntityNotFoundError`` for unknown ids.

Audit relevance
---------------
Every mutation writes a hash-chained audit entry; deal creation and
approval also write system events.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from dealflow_engines.gross_profit import GP_INPUT_FIELDS
from dealflow_engines.margin import (
    DEAL_COST_FIELDS,
    DEFAULT_BANDS,
    DEFAULT_REVENUE_BANDS,
    MarginBands,
    MarginThresholdStatus,
    RevenueBands,
    classify_by_revenue,
    compute_deal_margin,
)
from dealflow_kernel.db.types import ZERO, to_decimal
from dealflow_kernel.domain.cascade import CascadeListener, CascadeTrigger, TriggerEvent
from dealflow_kernel.domain.clock import Clock, SystemClock
from dealflow_kernel.domain.payloads import FieldChanges, TransitionRecorded
from dealflow_kernel.domain.workflow import Workflow
from dealflow_kernel.logging_config import get_logger
from dealflow_kernel.models.ledger import SystemEventType
from dealflow_kernel.services.identifier_service import IdentifierService
from dealflow_kernel.services.ledger_service import LedgerService
from dealflow_kernel.services.outbox_service import OutboxService
from dealflow_modules._helpers import (
    assign_amounts,
    commit_or_rollback,
    derive_gross_profit,
    load_or_raise,
    notify,
    parse_enum,
    require_role,
    require_text,
)
from dealflow_modules.governance.models import ApprovalDecision
from dealflow_modules.governance.service import GovernanceService
from dealflow_modules.sales.models import (
    AcknowledgementStatus,
    Deal,
    DealApprovalStatus,
    DealRequest,
    DealType,
    Opportunity,
    OpportunityStatus,
    RevenueCategory,
)
from dealflow_modules.sales.orm import DealModel, DealRequestModel, OpportunityModel
from dealflow_modules.sales.workflows import (
    ACKNOWLEDGING_ROLES,
    DEAL_APPROVERS,
    DEAL_CREATORS,
    DEAL_REQUEST_APPROVERS,
    DEAL_REQUEST_WORKFLOW,
    DEAL_WORKFLOW,
    OPPORTUNITY_CREATORS,
    OPPORTUNITY_WORKFLOW,
)
from dealflow_services.workflow_executor import WorkflowExecutor

logger = get_logger("modules.sales.service")

OPPORTUNITY = "Opportunity"
DEAL = "Deal"
DEAL_REQUEST = "DealRequest"


class SalesService:
    """
    Orchestrates the sales pipeline.

    Contract
    --------
    * Every public method returns a frozen DTO from ``models.py``.
    * Clock is injectable for deterministic testing.
    * ``cascade`` may be None, in which case no downstream records are
      created (useful for isolated tests).
    """

    def __init__(
        self,
        session: Session,
        workflow_executor: WorkflowExecutor,
        identifiers: IdentifierService,
        ledger: LedgerService,
        outbox: OutboxService,
        governance: GovernanceService,
        clock: Clock | None = None,
        cascade: CascadeListener | None = None,
        margin_bands: MarginBands = DEFAULT_BANDS,
        revenue_bands: RevenueBands = DEFAULT_REVENUE_BANDS,
    ):
        self._session = session
        self._workflow_executor = workflow_executor
        self._identifiers = identifiers
        self._ledger = ledger
        self._outbox = outbox
        self._governance = governance
        self._clock = clock or SystemClock()
        self._cascade = cascade
        self._margin_bands = margin_bands
        self._revenue_bands = revenue_bands

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _fire(self, event: TriggerEvent) -> None:
        if self._cascade is None:
            logger.debug("cascade_not_configured", extra={"trigger": event.trigger.value})
            return
        self._cascade.handle(event)

    def _transition(
        self,
        workflow: Workflow,
        entity_type: str,
        entity_id: UUID,
        current_state: str,
        action: str,
        actor_id: UUID,
        actor_role: str,
        reason: str | None = None,
    ) -> str:
        """Fire a workflow transition and audit it.  Returns the new state."""
        new_state = self._workflow_executor.require_transition(
            workflow, entity_type, entity_id, current_state, action, actor_role, reason=reason,
        )
        self._ledger.record_audit(
            action=f"{entity_type.lower()}_{action}",
            entity_type=entity_type,
            entity_id=entity_id,
            actor_id=actor_id,
            actor_role=actor_role,
            changes=TransitionRecorded(
                action=action, from_state=current_state, to_state=new_state, reason=reason,
            ),
        )
        return new_state

    def _derive_margin(self, deal: DealModel) -> None:
        result = compute_deal_margin(
            total_order_value=deal.total_order_value,
            costs=deal.cost_vector(),
            bands=self._margin_bands,
        )
        deal.total_cost = result.total_cost
        deal.contribution_margin = result.contribution_margin
        deal.break_even_value = result.break_even_value
        deal.gross_margin_percent = result.gross_margin_percent
        deal.margin_threshold_status = result.threshold_status.value

    def _evaluate_governance(self, deal: DealModel, actor_id: UUID, actor_role: str) -> None:
        self._governance.evaluate_deal_risk(
            deal_id=deal.id,
            gross_margin_percent=deal.gross_margin_percent,
            threshold_status=MarginThresholdStatus(deal.margin_threshold_status),
            total_order_value=deal.total_order_value,
            actor_id=actor_id,
            actor_role=actor_role,
        )

    # ------------------------------------------------------------------
    # Opportunities
    # ------------------------------------------------------------------

    def get_opportunity(self, opportunity_id: UUID) -> Opportunity:
        return load_or_raise(self._session, OpportunityModel, opportunity_id, OPPORTUNITY).to_dto()

    def create_opportunity(
        self,
        client_name: str,
        actor_id: UUID,
        actor_role: str,
        course_name: str | None = None,
        costs: Mapping[str, Any] | None = None,
    ) -> Opportunity:
        """
        Create an opportunity in ``New`` with a GKT adhoc id and derived GP.

        ``costs`` is keyed by the GP input names (``tov``,
        ``trainer_po_value`` ... ``contingency_percent``).
        """
        require_role(OPPORTUNITY, "new", "create", actor_role, OPPORTUNITY_CREATORS)
        client_name = require_text(OPPORTUNITY, "client_name", client_name)

        with commit_or_rollback(self._session, "opportunity_create", client_name=client_name):
            now = self._clock.now()
            opportunity = OpportunityModel(
                opportunity_code=self._identifiers.next_opportunity_code(),
                client_name=client_name,
                course_name=course_name,
                status=OPPORTUNITY_WORKFLOW.initial_state,
                gp_percent=ZERO,
                created_by_id=actor_id,
                created_at=now,
                updated_at=now,
                **{name: ZERO for name in GP_INPUT_FIELDS if not name.endswith("_percent")},
            )
            assign_amounts(opportunity, costs, GP_INPUT_FIELDS)
            derive_gross_profit(opportunity)
            self._session.add(opportunity)
            self._session.flush()

            self._ledger.record_audit(
                action="opportunity_created",
                entity_type=OPPORTUNITY,
                entity_id=opportunity.id,
                actor_id=actor_id,
                actor_role=actor_role,
                changes=FieldChanges.of(
                    opportunity_code=opportunity.opportunity_code,
                    tov=opportunity.tov,
                    final_gp=opportunity.final_gp,
                    gp_percent=opportunity.gp_percent,
                ),
            )

        logger.info(
            "opportunity_created",
            extra={
                "opportunity_id": str(opportunity.id),
                "opportunity_code": opportunity.opportunity_code,
                "tov": str(opportunity.tov),
                "gp_percent": str(opportunity.gp_percent),
            },
        )
        return opportunity.to_dto()

    def update_opportunity_costs(
        self,
        opportunity_id: UUID,
        costs: Mapping[str, Any],
        actor_id: UUID,
        actor_role: str,
    ) -> Opportunity:
        """Apply new cost inputs and re-derive GP."""
        with commit_or_rollback(
            self._session, "opportunity_update", opportunity_id=str(opportunity_id)
        ):
            opportunity = load_or_raise(self._session, OpportunityModel, opportunity_id, OPPORTUNITY)
            before = FieldChanges.of(final_gp=opportunity.final_gp, gp_percent=opportunity.gp_percent)
            assign_amounts(opportunity, costs, GP_INPUT_FIELDS)
            derive_gross_profit(opportunity)
            opportunity.updated_by_id = actor_id
            opportunity.updated_at = self._clock.now()
            self._session.flush()

            self._ledger.record_audit(
                action="opportunity_costs_updated",
                entity_type=OPPORTUNITY,
                entity_id=opportunity.id,
                actor_id=actor_id,
                actor_role=actor_role,
                changes=FieldChanges(
                    before=before.after,
                    after=FieldChanges.of(
                        final_gp=opportunity.final_gp, gp_percent=opportunity.gp_percent
                    ).after,
                ),
            )
        return opportunity.to_dto()

    def qualify_opportunity(self, opportunity_id: UUID, actor_id: UUID, actor_role: str) -> Opportunity:
        with commit_or_rollback(
            self._session, "opportunity_qualify", opportunity_id=str(opportunity_id)
        ):
            opportunity = load_or_raise(self._session, OpportunityModel, opportunity_id, OPPORTUNITY)
            opportunity.status = self._transition(
                OPPORTUNITY_WORKFLOW, OPPORTUNITY, opportunity.id, opportunity.status,
                "qualify", actor_id, actor_role,
            )
            opportunity.qualified_at = self._clock.now()
            opportunity.qualified_by_id = actor_id
            opportunity.updated_by_id = actor_id
            notify(
                self._outbox, "opportunity_qualified", OPPORTUNITY, opportunity.id,
                f"Opportunity {opportunity.opportunity_code} qualified",
            )
            self._session.flush()

        logger.info("opportunity_qualified", extra={"opportunity_id": str(opportunity_id)})
        return opportunity.to_dto()

    def send_opportunity_to_delivery(
        self, opportunity_id: UUID, actor_id: UUID, actor_role: str
    ) -> Opportunity:
        with commit_or_rollback(
            self._session, "opportunity_send_to_delivery", opportunity_id=str(opportunity_id)
        ):
            opportunity = load_or_raise(self._session, OpportunityModel, opportunity_id, OPPORTUNITY)
            opportunity.status = self._transition(
                OPPORTUNITY_WORKFLOW, OPPORTUNITY, opportunity.id, opportunity.status,
                "send_to_delivery", actor_id, actor_role,
            )
            opportunity.sent_to_delivery_at = self._clock.now()
            opportunity.sent_to_delivery_by_id = actor_id
            opportunity.updated_by_id = actor_id
            notify(
                self._outbox, "opportunity_sent_to_delivery", OPPORTUNITY, opportunity.id,
                f"Opportunity {opportunity.opportunity_code} sent to delivery",
                recipient_role="Operations Manager",
            )
            self._session.flush()

        logger.info("opportunity_sent_to_delivery", extra={"opportunity_id": str(opportunity_id)})
        return opportunity.to_dto()

    def mark_opportunity_lost(
        self,
        opportunity_id: UUID,
        reason: str,
        actor_id: UUID,
        actor_role: str,
    ) -> Opportunity:
        with commit_or_rollback(
            self._session, "opportunity_mark_lost", opportunity_id=str(opportunity_id)
        ):
            opportunity = load_or_raise(self._session, OpportunityModel, opportunity_id, OPPORTUNITY)
            opportunity.status = self._transition(
                OPPORTUNITY_WORKFLOW, OPPORTUNITY, opportunity.id, opportunity.status,
                "mark_lost", actor_id, actor_role, reason=reason,
            )
            opportunity.lost_at = self._clock.now()
            opportunity.lost_reason = reason.strip()
            opportunity.updated_by_id = actor_id
            notify(
                self._outbox, "opportunity_lost", OPPORTUNITY, opportunity.id,
                f"Opportunity {opportunity.opportunity_code} lost: {opportunity.lost_reason}",
            )
            self._session.flush()

        logger.info(
            "opportunity_lost",
            extra={"opportunity_id": str(opportunity_id), "reason": opportunity.lost_reason},
        )
        return opportunity.to_dto()

    def convert_opportunity_to_deal(
        self,
        opportunity_id: UUID,
        deal_name: str,
        actor_id: UUID,
        actor_role: str,
        total_order_value: Decimal | None = None,
        costs: Mapping[str, Any] | None = None,
        deal_type: str = DealType.TRAINING.value,
        revenue_category: str = RevenueCategory.CORPORATE.value,
    ) -> Deal:
        """
        Create a deal from a ``Qualified`` or ``Sent to Delivery`` opportunity.

        The client name comes from the opportunity; the order value defaults
        to the opportunity's TOV.
        """
        opportunity = load_or_raise(self._session, OpportunityModel, opportunity_id, OPPORTUNITY)
        return self.create_deal(
            client_name=opportunity.client_name,
            deal_name=deal_name,
            total_order_value=(
                opportunity.tov if total_order_value is None else total_order_value
            ),
            actor_id=actor_id,
            actor_role=actor_role,
            costs=costs,
            deal_type=deal_type,
            revenue_category=revenue_category,
            opportunity_id=opportunity_id,
        )

    # ------------------------------------------------------------------
    # Deals
    # ------------------------------------------------------------------

    def get_deal(self, deal_id: UUID) -> Deal:
        return load_or_raise(self._session, DealModel, deal_id, DEAL).to_dto()

    def list_deals(self, approval_status: str | None = None) -> list[Deal]:
        stmt = select(DealModel).order_by(DealModel.deal_code)
        if approval_status is not None:
            status = parse_enum(DealApprovalStatus, approval_status, "approval_status")
            stmt = stmt.where(DealModel.approval_status == status.value)
        return [row.to_dto() for row in self._session.execute(stmt).scalars()]

    def create_deal(
        self,
        client_name: str,
        deal_name: str,
        total_order_value: Decimal,
        actor_id: UUID,
        actor_role: str,
        costs: Mapping[str, Any] | None = None,
        deal_type: str = DealType.TRAINING.value,
        revenue_category: str = RevenueCategory.CORPORATE.value,
        opportunity_id: UUID | None = None,
    ) -> Deal:
        """
        Create a ``Pending`` deal with derived margin and a governance record.

        When ``opportunity_id`` is given the opportunity transitions to
        ``Converted to Deal`` in the same transaction, and the conversion
        cascade (back-reference and notification) runs after commit.
        """
        require_role(DEAL, "new", "create", actor_role, DEAL_CREATORS)
        client_name = require_text(DEAL, "client_name", client_name)
        deal_name = require_text(DEAL, "deal_name", deal_name)
        dtype = parse_enum(DealType, deal_type, "deal_type")
        category = parse_enum(RevenueCategory, revenue_category, "revenue_category")

        with commit_or_rollback(self._session, "deal_create", client_name=client_name):
            now = self._clock.now()
            if opportunity_id is not None:
                opportunity = load_or_raise(
                    self._session, OpportunityModel, opportunity_id, OPPORTUNITY
                )
                opportunity.status = self._transition(
                    OPPORTUNITY_WORKFLOW, OPPORTUNITY, opportunity.id, opportunity.status,
                    "convert", actor_id, actor_role,
                )
                opportunity.updated_by_id = actor_id

            deal = DealModel(
                deal_code=self._identifiers.next_deal_code(),
                opportunity_id=opportunity_id,
                client_name=client_name,
                deal_name=deal_name,
                deal_type=dtype.value,
                revenue_category=category.value,
                total_order_value=to_decimal(total_order_value, "total_order_value"),
                approval_status=DEAL_WORKFLOW.initial_state,
                created_by_id=actor_id,
                created_at=now,
                updated_at=now,
                **{name: ZERO for name in DEAL_COST_FIELDS},
            )
            assign_amounts(deal, costs, DEAL_COST_FIELDS)
            self._derive_margin(deal)
            self._session.add(deal)
            self._session.flush()

            self._evaluate_governance(deal, actor_id, actor_role)
            self._ledger.record_audit(
                action="deal_created",
                entity_type=DEAL,
                entity_id=deal.id,
                actor_id=actor_id,
                actor_role=actor_role,
                changes=FieldChanges.of(
                    deal_code=deal.deal_code,
                    total_order_value=deal.total_order_value,
                    contribution_margin=deal.contribution_margin,
                    gross_margin_percent=deal.gross_margin_percent,
                    margin_threshold_status=deal.margin_threshold_status,
                ),
            )
            self._ledger.record_system_event(
                event_type=SystemEventType.DEAL_CREATED,
                entity_type=DEAL,
                entity_id=deal.id,
                actor_id=actor_id,
                actor_role=actor_role,
                action=f"Created deal {deal.deal_code}",
                downstream_action="Awaiting approval",
            )

        logger.info(
            "deal_created",
            extra={
                "deal_id": str(deal.id),
                "deal_code": deal.deal_code,
                "total_order_value": str(deal.total_order_value),
                "gross_margin_percent": str(deal.gross_margin_percent),
                "margin_threshold_status": deal.margin_threshold_status,
                "opportunity_id": str(opportunity_id) if opportunity_id else None,
            },
        )

        if opportunity_id is not None:
            self._fire(TriggerEvent(
                trigger=CascadeTrigger.OPPORTUNITY_CONVERTED,
                entity_type=OPPORTUNITY,
                entity_id=opportunity_id,
                actor_id=actor_id,
                actor_role=actor_role,
                related_id=deal.id,
            ))
        return self.get_deal(deal.id)

    def update_deal_costs(
        self,
        deal_id: UUID,
        actor_id: UUID,
        actor_role: str,
        total_order_value: Decimal | None = None,
        costs: Mapping[str, Any] | None = None,
    ) -> Deal:
        """Apply new order value / costs, re-derive margin and re-evaluate governance."""
        with commit_or_rollback(self._session, "deal_update", deal_id=str(deal_id)):
            deal = load_or_raise(self._session, DealModel, deal_id, DEAL)
            before = FieldChanges.of(
                contribution_margin=deal.contribution_margin,
                margin_threshold_status=deal.margin_threshold_status,
            )
            if total_order_value is not None:
                deal.total_order_value = to_decimal(total_order_value, "total_order_value")
            assign_amounts(deal, costs, DEAL_COST_FIELDS)
            self._derive_margin(deal)
            deal.updated_by_id = actor_id
            deal.updated_at = self._clock.now()
            self._session.flush()

            self._evaluate_governance(deal, actor_id, actor_role)
            self._ledger.record_audit(
                action="deal_costs_updated",
                entity_type=DEAL,
                entity_id=deal.id,
                actor_id=actor_id,
                actor_role=actor_role,
                changes=FieldChanges(
                    before=before.after,
                    after=FieldChanges.of(
                        contribution_margin=deal.contribution_margin,
                        margin_threshold_status=deal.margin_threshold_status,
                    ).after,
                ),
            )
        return deal.to_dto()

    def approve_deal(
        self,
        deal_id: UUID,
        actor_id: UUID,
        actor_role: str,
        notes: str | None = None,
    ) -> Deal:
        """
        Approve a pending deal.

        Records approver and timestamp, re-evaluates governance, appends to
        the approval history, then fires the PO-stub cascade.  On an
        already-approved deal only the cascade is re-delivered.
        """
        deal = load_or_raise(self._session, DealModel, deal_id, DEAL)
        if deal.approval_status == DealApprovalStatus.APPROVED.value:
            require_role(DEAL, str(deal_id), "approve", actor_role, DEAL_APPROVERS)
            logger.info("deal_approval_redelivered", extra={"deal_id": str(deal_id)})
        else:
            with commit_or_rollback(self._session, "deal_approve", deal_id=str(deal_id)):
                deal.approval_status = self._transition(
                    DEAL_WORKFLOW, DEAL, deal.id, deal.approval_status,
                    "approve", actor_id, actor_role,
                )
                deal.approved_by_id = actor_id
                deal.approved_at = self._clock.now()
                deal.updated_by_id = actor_id
                self._session.flush()

                self._evaluate_governance(deal, actor_id, actor_role)
                self._governance.record_deal_approval(
                    deal.id, ApprovalDecision.APPROVED, actor_id, actor_role, notes or ""
                )
                self._ledger.record_system_event(
                    event_type=SystemEventType.DEAL_APPROVED,
                    entity_type=DEAL,
                    entity_id=deal.id,
                    actor_id=actor_id,
                    actor_role=actor_role,
                    action=f"Approved deal {deal.deal_code}",
                    downstream_action="Auto-generate Internal PO",
                )
            logger.info(
                "deal_approved",
                extra={"deal_id": str(deal_id), "deal_code": deal.deal_code, "actor_role": actor_role},
            )

        self._fire(TriggerEvent(
            trigger=CascadeTrigger.DEAL_APPROVED,
            entity_type=DEAL,
            entity_id=deal.id,
            actor_id=actor_id,
            actor_role=actor_role,
        ))
        return self.get_deal(deal.id)

    def reject_deal(
        self,
        deal_id: UUID,
        actor_id: UUID,
        actor_role: str,
        reason: str | None = None,
    ) -> Deal:
        with commit_or_rollback(self._session, "deal_reject", deal_id=str(deal_id)):
            deal = load_or_raise(self._session, DealModel, deal_id, DEAL)
            deal.approval_status = self._transition(
                DEAL_WORKFLOW, DEAL, deal.id, deal.approval_status,
                "reject", actor_id, actor_role, reason=reason,
            )
            deal.rejection_reason = reason
            deal.updated_by_id = actor_id
            self._session.flush()
            self._governance.record_deal_approval(
                deal.id, ApprovalDecision.REJECTED, actor_id, actor_role, reason or ""
            )

        logger.info("deal_rejected", extra={"deal_id": str(deal_id), "reason": reason})
        return deal.to_dto()

    # ------------------------------------------------------------------
    # Deal requests
    # ------------------------------------------------------------------

    def get_deal_request(self, request_id: UUID) -> DealRequest:
        return load_or_raise(self._session, DealRequestModel, request_id, DEAL_REQUEST).to_dto()

    def create_deal_request(
        self,
        client_name: str,
        course_name: str,
        expected_revenue: Decimal,
        actor_id: UUID,
        actor_role: str,
        margin_status: str | None = None,
    ) -> DealRequest:
        """
        Create a ``Pending`` deal request.

        Without an explicit ``margin_status`` the status is derived from the
        expected revenue bands.
        """
        require_role(DEAL_REQUEST, "new", "create", actor_role, DEAL_REQUEST_APPROVERS)
        client_name = require_text(DEAL_REQUEST, "client_name", client_name)
        course_name = require_text(DEAL_REQUEST, "course_name", course_name)
        revenue = to_decimal(expected_revenue, "expected_revenue")
        if margin_status is None:
            status = classify_by_revenue(revenue, self._revenue_bands)
        else:
            status = parse_enum(MarginThresholdStatus, margin_status, "margin_status")

        with commit_or_rollback(self._session, "deal_request_create", client_name=client_name):
            now = self._clock.now()
            request = DealRequestModel(
                request_code=self._identifiers.next_deal_request_code(),
                client_name=client_name,
                course_name=course_name,
                expected_revenue=revenue,
                margin_status=status.value,
                status=DEAL_REQUEST_WORKFLOW.initial_state,
                acknowledgement_status=AcknowledgementStatus.PENDING.value,
                created_by_id=actor_id,
                created_at=now,
                updated_at=now,
            )
            self._session.add(request)
            self._session.flush()
            self._ledger.record_audit(
                action="deal_request_created",
                entity_type=DEAL_REQUEST,
                entity_id=request.id,
                actor_id=actor_id,
                actor_role=actor_role,
                changes=FieldChanges.of(
                    request_code=request.request_code,
                    expected_revenue=revenue,
                    margin_status=request.margin_status,
                ),
            )
        return request.to_dto()

    def approve_deal_request(
        self,
        request_id: UUID,
        actor_id: UUID,
        actor_role: str,
    ) -> DealRequest:
        """Approve a deal request; an already-approved request re-runs the PO-stub cascade."""
        request = load_or_raise(self._session, DealRequestModel, request_id, DEAL_REQUEST)
        if request.status == DealApprovalStatus.APPROVED.value:
            require_role(
                DEAL_REQUEST, str(request_id), "approve", actor_role, DEAL_REQUEST_APPROVERS
            )
            logger.info("deal_request_approval_redelivered", extra={"request_id": str(request_id)})
        else:
            with commit_or_rollback(
                self._session, "deal_request_approve", request_id=str(request_id)
            ):
                request.status = self._transition(
                    DEAL_REQUEST_WORKFLOW, DEAL_REQUEST, request.id, request.status,
                    "approve", actor_id, actor_role,
                )
                request.approved_by_id = actor_id
                request.approved_at = self._clock.now()
                request.updated_by_id = actor_id
                self._session.flush()
                self._ledger.record_system_event(
                    event_type=SystemEventType.DEAL_APPROVED,
                    entity_type=DEAL_REQUEST,
                    entity_id=request.id,
                    actor_id=actor_id,
                    actor_role=actor_role,
                    action="Approved deal request",
                    downstream_action="Auto-generate Internal PO",
                )
            logger.info("deal_request_approved", extra={"request_id": str(request_id)})

        self._fire(TriggerEvent(
            trigger=CascadeTrigger.DEAL_REQUEST_APPROVED,
            entity_type=DEAL_REQUEST,
            entity_id=request.id,
            actor_id=actor_id,
            actor_role=actor_role,
        ))
        return self.get_deal_request(request.id)

    def reject_deal_request(
        self,
        request_id: UUID,
        reason: str,
        actor_id: UUID,
        actor_role: str,
    ) -> DealRequest:
        with commit_or_rollback(
            self._session, "deal_request_reject", request_id=str(request_id)
        ):
            request = load_or_raise(self._session, DealRequestModel, request_id, DEAL_REQUEST)
            request.status = self._transition(
                DEAL_REQUEST_WORKFLOW, DEAL_REQUEST, request.id, request.status,
                "reject", actor_id, actor_role, reason=reason,
            )
            request.updated_by_id = actor_id
            self._session.flush()
        return request.to_dto()

    def acknowledge_deal_request(
        self,
        request_id: UUID,
        actor_id: UUID,
        actor_role: str,
        clarification: str | None = None,
    ) -> DealRequest:
        """
        Operations acknowledgement of a deal request.

        With ``clarification`` the request is marked ``Clarification
        Requested`` and the comment stored; otherwise ``Acknowledged``.
        """
        require_role(DEAL_REQUEST, str(request_id), "acknowledge", actor_role, ACKNOWLEDGING_ROLES)
        with commit_or_rollback(
            self._session, "deal_request_acknowledge", request_id=str(request_id)
        ):
            request = load_or_raise(self._session, DealRequestModel, request_id, DEAL_REQUEST)
            if clarification and clarification.strip():
                request.acknowledgement_status = AcknowledgementStatus.CLARIFICATION_REQUESTED.value
                request.clarification_notes = clarification.strip()
                action = "Requested clarification"
            else:
                request.acknowledgement_status = AcknowledgementStatus.ACKNOWLEDGED.value
                request.acknowledged_at = self._clock.now()
                request.acknowledged_by_id = actor_id
                action = "Acknowledged deal"
            request.updated_by_id = actor_id
            self._session.flush()
            self._ledger.record_system_event(
                event_type=SystemEventType.DEAL_ACKNOWLEDGED,
                entity_type=DEAL_REQUEST,
                entity_id=request.id,
                actor_id=actor_id,
                actor_role=actor_role,
                action=action,
            )

        logger.info(
            "deal_request_acknowledged",
            extra={
                "request_id": str(request_id),
                "acknowledgement_status": request.acknowledgement_status,
            },
        )
        return request.to_dto()
