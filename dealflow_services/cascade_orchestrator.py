"""
dealflow_services.cascade_orchestrator -- Downstream record creation.

Responsibility:
    Reacts to committed upstream transitions (``TriggerEvent``) by creating
    or updating the downstream records they imply:

        DEAL_APPROVED / DEAL_REQUEST_APPROVED -> PO status stub
        PROGRAM_CLIENT_SIGNED_OFF             -> program invoice eligibility
        INVOICE_CREATED                       -> receivable
        PAYABLE_CREATED                       -> TDS record + payable net amount
        OPPORTUNITY_CONVERTED                 -> opportunity back-reference

Architecture position:
    Services -- stateful orchestration over modules + kernel.  Module
    services receive the orchestrator as a ``CascadeListener`` and never
    import this module.

Invariants enforced:
    - Idempotency: every step checks for its downstream record before
      creating it; a re-delivered trigger reports ``created=False``.
      Unique constraints beneath the checks stop two racing writers that
      both pass the existence query; the loser fails its step.
    - Isolation: each step runs in its own SAVEPOINT and is committed on
      its own.  A failing step never undoes the parent write or an earlier
      step and never stops a later one.
    - Ordering: steps for one trigger run sequentially in declaration
      order, each committed before the next starts.

Failure modes:
    - ``handle`` never raises.  A failed step is rolled back to its
      savepoint, logged as ``cascade_step_failed`` and recorded in the
      system event log as ``Cascade Failed`` with a ``CascadeOutcome``.
    - If even the failure record cannot be written the session is rolled
      back and ``cascade_failure_not_recorded`` is logged at ERROR.

Audit relevance:
    Every step that creates a record writes a system event; every failure
    writes a ``Cascade Failed`` event that reconciliation can query.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.orm import Session

from dealflow_kernel.domain.cascade import (
    CascadeReport,
    CascadeTrigger,
    StepReport,
    TriggerEvent,
)
from dealflow_kernel.domain.clock import Clock, SystemClock
from dealflow_kernel.domain.payloads import CascadeOutcome
from dealflow_kernel.domain.roles import Role
from dealflow_kernel.exceptions import CascadeError
from dealflow_kernel.logging_config import LogContext, get_logger
from dealflow_kernel.models.ledger import SystemEventType
from dealflow_kernel.services.ledger_service import LedgerService
from dealflow_kernel.services.outbox_service import OutboxService
from dealflow_modules._helpers import notify
from dealflow_modules.delivery.orm import ProgramModel
from dealflow_modules.payables.orm import PayableModel
from dealflow_modules.payables.service import PayablesService
from dealflow_modules.payables.workflows import PAYABLE_WORKFLOW
from dealflow_modules.procurement.models import LinkedSourceType
from dealflow_modules.procurement.service import ProcurementService
from dealflow_modules.receivables.orm import InvoiceModel
from dealflow_modules.receivables.service import ReceivablesService
from dealflow_modules.sales.models import DealApprovalStatus
from dealflow_modules.sales.orm import DealModel, DealRequestModel, OpportunityModel

logger = get_logger("services.cascade")

STEP_PO_STATUS_STUB = "po_status_stub"
STEP_INVOICE_ELIGIBILITY = "invoice_eligibility"
STEP_RECEIVABLE = "receivable"
STEP_WITHHOLDING = "withholding"
STEP_OPPORTUNITY_BACK_REFERENCE = "opportunity_back_reference"


@dataclass(frozen=True)
class _StepOutcome:
    created: bool
    target_type: str | None = None
    target_id: UUID | None = None


_Step = Callable[[TriggerEvent], _StepOutcome]


class CascadeOrchestrator:
    """Best-effort, at-least-once downstream record creation.

    Contract:
        ``handle(event)`` runs every step registered for the event's
        trigger and returns a ``CascadeReport``.  The caller's own write
        must already be committed.

    Non-goals:
        - No retries: a failed step waits for the trigger to be delivered
          again (re-approval, re-sign-off) or for manual reconciliation.
        - No cross-step atomicity.
    """

    def __init__(
        self,
        session: Session,
        ledger: LedgerService,
        outbox: OutboxService,
        procurement: ProcurementService,
        payables: PayablesService,
        receivables: ReceivablesService,
        clock: Clock | None = None,
    ) -> None:
        self._session = session
        self._ledger = ledger
        self._outbox = outbox
        self._procurement = procurement
        self._payables = payables
        self._receivables = receivables
        self._clock = clock or SystemClock()

        self._steps: dict[CascadeTrigger, tuple[tuple[str, _Step], ...]] = {
            CascadeTrigger.DEAL_APPROVED: (
                (STEP_PO_STATUS_STUB, self._po_stub_for_deal),
            ),
            CascadeTrigger.DEAL_REQUEST_APPROVED: (
                (STEP_PO_STATUS_STUB, self._po_stub_for_deal_request),
            ),
            CascadeTrigger.PROGRAM_CLIENT_SIGNED_OFF: (
                (STEP_INVOICE_ELIGIBILITY, self._mark_invoice_eligible),
            ),
            CascadeTrigger.INVOICE_CREATED: (
                (STEP_RECEIVABLE, self._receivable_for_invoice),
            ),
            CascadeTrigger.PAYABLE_CREATED: (
                (STEP_WITHHOLDING, self._withholding_for_payable),
            ),
            CascadeTrigger.OPPORTUNITY_CONVERTED: (
                (STEP_OPPORTUNITY_BACK_REFERENCE, self._link_opportunity_to_deal),
            ),
        }

    def steps_for(self, trigger: CascadeTrigger) -> tuple[str, ...]:
        return tuple(name for name, _ in self._steps.get(trigger, ()))

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def handle(self, event: TriggerEvent) -> CascadeReport:
        with LogContext.bind(
            trigger=event.trigger.value,
            entity_type=event.entity_type,
            entity_id=str(event.entity_id),
            actor_id=str(event.actor_id),
            actor_role=event.actor_role,
        ):
            start = time.monotonic()
            reports = tuple(
                self._run_step(name, event, step)
                for name, step in self._steps.get(event.trigger, ())
            )
            report = CascadeReport(trigger=event.trigger, steps=reports)
            logger.info(
                "cascade_completed",
                extra={
                    "step_count": len(reports),
                    "failed_steps": [r.step for r in reports if not r.succeeded],
                    "duration_ms": round((time.monotonic() - start) * 1000, 3),
                },
            )
            return report

    def _run_step(self, name: str, event: TriggerEvent, step: _Step) -> StepReport:
        try:
            with self._session.begin_nested():
                outcome = step(event)
            self._session.commit()
        except Exception as exc:
            self._session.rollback()
            error = f"{type(exc).__name__}: {exc}"
            logger.warning(
                "cascade_step_failed",
                extra={"step": name, "error": error},
                exc_info=True,
            )
            self._record_failure(name, event, error)
            return StepReport(step=name, succeeded=False, error=error)

        logger.info(
            "cascade_step_succeeded" if outcome.created else "cascade_step_skipped",
            extra={
                "step": name,
                "target_type": outcome.target_type,
                "target_id": str(outcome.target_id) if outcome.target_id else None,
            },
        )
        return StepReport(
            step=name,
            succeeded=True,
            created=outcome.created,
            target_id=outcome.target_id,
        )

    def _record_failure(self, name: str, event: TriggerEvent, error: str) -> None:
        try:
            self._ledger.record_system_event(
                event_type=SystemEventType.CASCADE_FAILED,
                entity_type=event.entity_type,
                entity_id=event.entity_id,
                actor_id=event.actor_id,
                actor_role=event.actor_role,
                action=f"Cascade step {name} failed",
                downstream_action="Re-deliver trigger or reconcile manually",
                metadata=CascadeOutcome(
                    step=name,
                    source_type=event.entity_type,
                    source_id=str(event.entity_id),
                    created=False,
                    error=error,
                ),
            )
            self._session.commit()
        except Exception:
            self._session.rollback()
            logger.error("cascade_failure_not_recorded", extra={"step": name}, exc_info=True)

    # ------------------------------------------------------------------
    # Step 1: approval -> PO status stub
    # ------------------------------------------------------------------

    def _po_stub(
        self, source_type: LinkedSourceType, event: TriggerEvent
    ) -> _StepOutcome:
        existing = self._procurement.find_stub_for_source(source_type, event.entity_id)
        if existing is not None:
            return _StepOutcome(False, "POStatusStub", existing.id)
        stub = self._procurement.create_po_status_stub(
            source_type, event.entity_id, event.actor_id, event.actor_role
        )
        return _StepOutcome(True, "POStatusStub", stub.id)

    def _po_stub_for_deal(self, event: TriggerEvent) -> _StepOutcome:
        deal = self._session.get(DealModel, event.entity_id)
        if deal is None:
            raise CascadeError(STEP_PO_STATUS_STUB, f"deal {event.entity_id} not found")
        if deal.approval_status != DealApprovalStatus.APPROVED.value:
            raise CascadeError(
                STEP_PO_STATUS_STUB, f"deal {deal.deal_code} is {deal.approval_status}"
            )
        return self._po_stub(LinkedSourceType.DEAL, event)

    def _po_stub_for_deal_request(self, event: TriggerEvent) -> _StepOutcome:
        request = self._session.get(DealRequestModel, event.entity_id)
        if request is None:
            raise CascadeError(STEP_PO_STATUS_STUB, f"deal request {event.entity_id} not found")
        if request.status != DealApprovalStatus.APPROVED.value:
            raise CascadeError(
                STEP_PO_STATUS_STUB, f"deal request {request.request_code} is {request.status}"
            )
        return self._po_stub(LinkedSourceType.DEAL_REQUEST, event)

    # ------------------------------------------------------------------
    # Step 2: client sign-off -> invoice eligibility
    # ------------------------------------------------------------------

    def _mark_invoice_eligible(self, event: TriggerEvent) -> _StepOutcome:
        program = self._session.get(ProgramModel, event.entity_id)
        if program is None:
            raise CascadeError(STEP_INVOICE_ELIGIBILITY, f"program {event.entity_id} not found")
        if not program.client_sign_off:
            raise CascadeError(
                STEP_INVOICE_ELIGIBILITY, f"program {program.program_code} has no client sign-off"
            )
        if program.invoice_eligible:
            return _StepOutcome(False, "Program", program.id)

        program.invoice_eligible = True
        program.invoice_eligible_at = self._clock.now()
        self._session.flush()
        self._ledger.record_system_event(
            event_type=SystemEventType.INVOICE_AUTO_GENERATED,
            entity_type="Program",
            entity_id=program.id,
            actor_id=event.actor_id,
            actor_role=event.actor_role,
            action="Invoice ready for generation after client sign-off",
            downstream_action="Finance can generate invoice",
        )
        notify(
            self._outbox,
            "program_invoice_eligible",
            "Program",
            program.id,
            f"Program {program.program_code} is ready for invoicing",
            recipient_role=Role.FINANCE_MANAGER.value,
        )
        return _StepOutcome(True, "Program", program.id)

    # ------------------------------------------------------------------
    # Step 3: invoice -> receivable
    # ------------------------------------------------------------------

    def _receivable_for_invoice(self, event: TriggerEvent) -> _StepOutcome:
        invoice = self._session.get(InvoiceModel, event.entity_id, populate_existing=True)
        if invoice is None:
            raise CascadeError(STEP_RECEIVABLE, f"invoice {event.entity_id} not found")
        if not invoice.invoice_number or not invoice.total_amount:
            raise CascadeError(
                STEP_RECEIVABLE, f"invoice {invoice.id} has no number or total amount"
            )
        existing = self._receivables.find_receivable_for_invoice(invoice.id)
        if existing is not None:
            return _StepOutcome(False, "Receivable", existing.id)
        receivable = self._receivables.create_receivable_for_invoice(
            invoice, event.actor_id, event.actor_role
        )
        return _StepOutcome(True, "Receivable", receivable.id)

    # ------------------------------------------------------------------
    # Step 4: payable -> TDS
    # ------------------------------------------------------------------

    def _withholding_for_payable(self, event: TriggerEvent) -> _StepOutcome:
        payable = self._session.get(PayableModel, event.entity_id, populate_existing=True)
        if payable is None:
            raise CascadeError(STEP_WITHHOLDING, f"payable {event.entity_id} not found")
        existing = self._payables.tax_record_for_payable(payable.id)
        if existing is not None and payable.status in PAYABLE_WORKFLOW.terminal_states:
            return _StepOutcome(False, "TaxEngine", existing.id)
        existed = existing is not None
        record = self._payables.apply_withholding(
            payable,
            event.actor_id,
            event.actor_role,
            nature_of_service=event.hints.get("nature_of_service"),
        )
        if record is None:
            return _StepOutcome(False, "Payable", payable.id)
        return _StepOutcome(not existed, "TaxEngine", record.id)

    # ------------------------------------------------------------------
    # Step 5: opportunity conversion -> back-reference
    # ------------------------------------------------------------------

    def _link_opportunity_to_deal(self, event: TriggerEvent) -> _StepOutcome:
        if event.related_id is None:
            raise CascadeError(STEP_OPPORTUNITY_BACK_REFERENCE, "no deal id on the trigger")
        opportunity = self._session.get(OpportunityModel, event.entity_id)
        if opportunity is None:
            raise CascadeError(
                STEP_OPPORTUNITY_BACK_REFERENCE, f"opportunity {event.entity_id} not found"
            )
        if opportunity.converted_deal_id == event.related_id:
            return _StepOutcome(False, "Deal", event.related_id)

        opportunity.converted_deal_id = event.related_id
        opportunity.converted_at = self._clock.now()
        opportunity.updated_by_id = event.actor_id
        self._session.flush()
        self._ledger.record_system_event(
            event_type=SystemEventType.OPPORTUNITY_CONVERTED,
            entity_type="Opportunity",
            entity_id=opportunity.id,
            actor_id=event.actor_id,
            actor_role=event.actor_role,
            action="Opportunity converted to deal",
            downstream_action="Deal approval pending",
            metadata=CascadeOutcome(
                step=STEP_OPPORTUNITY_BACK_REFERENCE,
                source_type="Opportunity",
                source_id=str(opportunity.id),
                created=True,
                target_type="Deal",
                target_id=str(event.related_id),
            ),
        )
        notify(
            self._outbox,
            "opportunity_converted",
            "Opportunity",
            opportunity.id,
            f"Opportunity {opportunity.opportunity_code} converted to a deal",
            recipient_role=Role.SALES_MANAGER.value,
        )
        return _StepOutcome(True, "Deal", event.related_id)
