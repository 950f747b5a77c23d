"""
Governance Module Service (``dealflow_modules.governance.service``).

Responsibility
--------------
The governance gate.  Evaluates deal risk (margin status plus an optional
pluggable risk scorer), raises fraud alerts for duplicate invoices, and
records director decisions in an append-only approval history.

Architecture position
---------------------
**Modules layer**.  Pure risk rules come from ``dealflow_engines.risk``.
Other module services call the flush-only methods (``evaluate_deal_risk``,
``append_approval``, ``raise_duplicate_alert``) inside their own
transaction; the Director-facing methods own their transaction.

Invariants enforced
-------------------
* Governance never blocks persistence: a failing or absent risk scorer
  yields the conservative ``Medium`` level.
* Approval history is append-only (ORM listeners reject UPDATE/DELETE).
* ``Approve`` and ``Reject`` decisions clear ``director_approval_required``;
  any other decision literal is recorded as ``Pending`` and clears nothing.

Audit relevance
---------------
Every governance change writes an audit entry; duplicate detection also
records a ``Compliance Updated`` system event.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from dealflow_engines.margin import MarginThresholdStatus
from dealflow_engines.risk import RiskScorer, assess_deal_risk
from dealflow_kernel.domain.clock import Clock, SystemClock
from dealflow_kernel.domain.payloads import DuplicateDetectionLog, FieldChanges
from dealflow_kernel.domain.roles import Role
from dealflow_kernel.logging_config import get_logger
from dealflow_kernel.models.ledger import SystemEventType
from dealflow_kernel.services.ledger_service import LedgerService
from dealflow_modules._helpers import commit_or_rollback, load_or_raise, require_role
from dealflow_modules.governance.models import (
    ApprovalDecision,
    FraudAlertType,
    Governance,
    decision_outcome,
)
from dealflow_modules.governance.orm import ApprovalHistoryEntry, GovernanceModel

logger = get_logger("modules.governance.service")

ENTITY_TYPE = "Governance"

DIRECTOR_ONLY = (Role.DIRECTOR.value,)


class GovernanceService:
    """
    Risk evaluation, fraud alerts and director decisions.

    Contract
    --------
    * ``evaluate_deal_risk``, ``append_approval`` and ``raise_duplicate_alert``
      flush only; the calling service owns commit/rollback.
    * ``record_director_decision`` and ``set_margin_lock`` commit on success
      and roll back on any exception.
    """

    def __init__(
        self,
        session: Session,
        ledger: LedgerService,
        clock: Clock | None = None,
        risk_scorer: RiskScorer | None = None,
    ):
        self._session = session
        self._ledger = ledger
        self._clock = clock or SystemClock()
        self._risk_scorer = risk_scorer

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _for_deal(self, deal_id: UUID) -> GovernanceModel | None:
        return self._session.execute(
            select(GovernanceModel).where(GovernanceModel.deal_id == deal_id)
        ).scalars().first()

    def _for_program(self, program_id: UUID) -> GovernanceModel | None:
        return self._session.execute(
            select(GovernanceModel).where(GovernanceModel.program_id == program_id)
        ).scalars().first()

    def _new_record(
        self,
        actor_id: UUID,
        deal_id: UUID | None = None,
        program_id: UUID | None = None,
    ) -> GovernanceModel:
        now = self._clock.now()
        record = GovernanceModel(
            deal_id=deal_id,
            program_id=program_id,
            risk_level="Medium",
            loss_making_project_flag=False,
            director_approval_required=False,
            margin_lock_flag=False,
            fraud_alert_type=FraudAlertType.NONE.value,
            created_by_id=actor_id,
            created_at=now,
            updated_at=now,
        )
        self._session.add(record)
        return record

    def get(self, governance_id: UUID) -> Governance:
        return load_or_raise(self._session, GovernanceModel, governance_id, ENTITY_TYPE).to_dto()

    def for_deal(self, deal_id: UUID) -> Governance | None:
        record = self._for_deal(deal_id)
        return record.to_dto() if record else None

    def for_program(self, program_id: UUID) -> Governance | None:
        record = self._for_program(program_id)
        return record.to_dto() if record else None

    def risk_alerts(self) -> list[Governance]:
        """Records that are loss-making, need a director, or carry a fraud alert."""
        rows = self._session.execute(
            select(GovernanceModel)
            .where(
                or_(
                    GovernanceModel.loss_making_project_flag.is_(True),
                    GovernanceModel.director_approval_required.is_(True),
                    GovernanceModel.fraud_alert_type != FraudAlertType.NONE.value,
                )
            )
            .order_by(GovernanceModel.created_at)
        ).scalars()
        return [row.to_dto() for row in rows]

    # ------------------------------------------------------------------
    # Flush-only gate operations (caller owns the transaction)
    # ------------------------------------------------------------------

    def evaluate_deal_risk(
        self,
        deal_id: UUID,
        gross_margin_percent: Decimal,
        threshold_status: MarginThresholdStatus,
        total_order_value: Decimal,
        actor_id: UUID,
        actor_role: str,
    ) -> GovernanceModel:
        """
        Create or refresh the governance record for a deal.

        Sets risk level, ``loss_making_project_flag`` and
        ``director_approval_required`` from ``assess_deal_risk``.
        """
        assessment = assess_deal_risk(
            gross_margin_percent=gross_margin_percent,
            threshold_status=threshold_status,
            total_order_value=total_order_value,
            scorer=self._risk_scorer,
        )
        record = self._for_deal(deal_id) or self._new_record(actor_id, deal_id=deal_id)
        record.risk_level = assessment.risk_level.value
        record.loss_making_project_flag = assessment.loss_making
        record.director_approval_required = assessment.director_approval_required
        record.updated_by_id = actor_id
        record.updated_at = self._clock.now()
        self._session.flush()

        self._ledger.record_audit(
            action="governance_risk_evaluated",
            entity_type=ENTITY_TYPE,
            entity_id=record.id,
            actor_id=actor_id,
            actor_role=actor_role,
            changes=FieldChanges.of(
                deal_id=deal_id,
                risk_level=record.risk_level,
                loss_making_project_flag=record.loss_making_project_flag,
                director_approval_required=record.director_approval_required,
                source=assessment.source,
            ),
        )
        logger.info(
            "governance_risk_evaluated",
            extra={
                "governance_id": str(record.id),
                "deal_id": str(deal_id),
                "risk_level": record.risk_level,
                "director_approval_required": record.director_approval_required,
            },
        )
        return record

    def append_approval(
        self,
        record: GovernanceModel,
        decision: ApprovalDecision,
        actor_id: UUID,
        actor_role: str,
        notes: str = "",
    ) -> ApprovalHistoryEntry:
        """Push one entry onto the append-only approval history."""
        entry = ApprovalHistoryEntry(
            seq=len(record.approval_history) + 1,
            decision=decision.value,
            actor_id=actor_id,
            actor_role=actor_role,
            notes=notes or "",
            decided_at=self._clock.now(),
        )
        record.approval_history.append(entry)
        self._session.flush()
        return entry

    def record_deal_approval(
        self,
        deal_id: UUID,
        decision: ApprovalDecision,
        actor_id: UUID,
        actor_role: str,
        notes: str = "",
    ) -> ApprovalHistoryEntry | None:
        """Append a deal approval/rejection to the deal's history, if it has a record."""
        record = self._for_deal(deal_id)
        if record is None:
            return None
        return self.append_approval(record, decision, actor_id, actor_role, notes)

    def raise_duplicate_alert(
        self,
        log: DuplicateDetectionLog,
        actor_id: UUID,
        actor_role: str,
        deal_id: UUID | None = None,
        program_id: UUID | None = None,
    ) -> GovernanceModel:
        """
        Set ``Duplicate Invoice`` on the subject's governance record.

        The record is found by deal first, then program, and created when
        neither exists.
        """
        record = None
        if deal_id is not None:
            record = self._for_deal(deal_id)
        if record is None and program_id is not None:
            record = self._for_program(program_id)
        if record is None:
            record = self._new_record(actor_id, deal_id=deal_id, program_id=program_id)

        record.fraud_alert_type = FraudAlertType.DUPLICATE_INVOICE.value
        record.duplicate_detection_log = log.to_dict()
        record.updated_by_id = actor_id
        record.updated_at = self._clock.now()
        self._session.flush()

        self._ledger.record_system_event(
            event_type=SystemEventType.COMPLIANCE_UPDATED,
            entity_type=ENTITY_TYPE,
            entity_id=record.id,
            actor_id=actor_id,
            actor_role=actor_role,
            action="Duplicate invoice detected",
            downstream_action="Director review required",
            metadata=log,
        )
        logger.warning(
            "governance_duplicate_invoice_flagged",
            extra={
                "governance_id": str(record.id),
                "invoice_id": log.invoice_id,
                "client_name": log.client_name,
                "invoice_amount": str(log.invoice_amount),
                "similar_count": len(log.similar_invoice_ids),
            },
        )
        return record

    # ------------------------------------------------------------------
    # Director operations (own the transaction)
    # ------------------------------------------------------------------

    def record_director_decision(
        self,
        governance_id: UUID,
        decision: str,
        actor_id: UUID,
        actor_role: str,
        notes: str | None = None,
    ) -> Governance:
        """
        Record a director decision on a governance record.

        ``decision`` is the inbound literal: ``Approve`` -> Approved,
        ``Reject`` -> Rejected, anything else -> Pending.  Approve and
        Reject clear ``director_approval_required``.
        """
        require_role(ENTITY_TYPE, str(governance_id), "record_decision", actor_role, DIRECTOR_ONLY)
        outcome = decision_outcome(decision)

        with commit_or_rollback(
            self._session, "governance_decision", governance_id=str(governance_id)
        ):
            record = load_or_raise(self._session, GovernanceModel, governance_id, ENTITY_TYPE)
            self.append_approval(record, outcome, actor_id, actor_role, notes or decision)
            if outcome is not ApprovalDecision.PENDING:
                record.director_approval_required = False
            if notes:
                record.decision_notes = notes
            record.updated_by_id = actor_id
            record.updated_at = self._clock.now()
            self._session.flush()

            self._ledger.record_audit(
                action="governance_decision_recorded",
                entity_type=ENTITY_TYPE,
                entity_id=record.id,
                actor_id=actor_id,
                actor_role=actor_role,
                changes=FieldChanges.of(
                    decision=outcome.value,
                    director_approval_required=record.director_approval_required,
                ),
            )

        logger.info(
            "governance_decision_recorded",
            extra={
                "governance_id": str(governance_id),
                "decision": outcome.value,
                "actor_role": actor_role,
            },
        )
        return record.to_dto()

    def set_margin_lock(
        self,
        governance_id: UUID,
        locked: bool,
        actor_id: UUID,
        actor_role: str,
    ) -> Governance:
        require_role(ENTITY_TYPE, str(governance_id), "set_margin_lock", actor_role, DIRECTOR_ONLY)
        with commit_or_rollback(
            self._session, "governance_margin_lock", governance_id=str(governance_id)
        ):
            record = load_or_raise(self._session, GovernanceModel, governance_id, ENTITY_TYPE)
            record.margin_lock_flag = locked
            record.updated_by_id = actor_id
            record.updated_at = self._clock.now()
            self._session.flush()
            self._ledger.record_audit(
                action="governance_margin_lock_set",
                entity_type=ENTITY_TYPE,
                entity_id=record.id,
                actor_id=actor_id,
                actor_role=actor_role,
                changes=FieldChanges.of(margin_lock_flag=locked),
            )
        return record.to_dto()
