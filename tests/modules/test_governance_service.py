"""GovernanceService: risk gate, duplicate alerts and director decisions."""

from decimal import Decimal
from uuid import uuid4

import pytest

from dealflow_engines.margin import MarginThresholdStatus
from dealflow_engines.risk import RiskLevel
from dealflow_kernel.domain.payloads import DuplicateDetectionLog
from dealflow_kernel.domain.roles import Role
from dealflow_kernel.exceptions import EntityNotFoundError, UnauthorizedTransitionError
from dealflow_kernel.models.ledger import SystemEventType
from dealflow_modules.governance.models import (
    ApprovalDecision,
    FraudAlertType,
    decision_outcome,
)
from dealflow_modules.governance.service import ENTITY_TYPE, GovernanceService

DIRECTOR = Role.DIRECTOR.value
FM = Role.FINANCE_MANAGER.value


class _HighRisk:
    def score(self, gross_margin_percent, threshold_status, total_order_value):
        return "High"


def _log(**overrides):
    fields = {
        "invoice_id": str(uuid4()),
        "client_name": "Acme Corp",
        "invoice_amount": Decimal("1000000"),
        "similar_invoice_ids": (str(uuid4()),),
    }
    fields.update(overrides)
    return DuplicateDetectionLog(**fields)


class TestDecisionOutcome:

    @pytest.mark.parametrize(
        "literal,expected",
        [
            ("Approve", ApprovalDecision.APPROVED),
            ("Reject", ApprovalDecision.REJECTED),
            ("Hold", ApprovalDecision.PENDING),
            ("", ApprovalDecision.PENDING),
        ],
    )
    def test_mapping(self, literal, expected):
        assert decision_outcome(literal) == expected


class TestRiskEvaluation:

    def test_evaluate_is_upsert(self, container, session, test_actor_id):
        deal_id = uuid4()
        first = container.governance.evaluate_deal_risk(
            deal_id, Decimal("20"), MarginThresholdStatus.AT, Decimal("1000"), test_actor_id, FM
        )
        second = container.governance.evaluate_deal_risk(
            deal_id, Decimal("5"), MarginThresholdStatus.BELOW, Decimal("1000"), test_actor_id, FM
        )
        session.commit()
        assert first.id == second.id
        dto = container.governance.for_deal(deal_id)
        assert dto.loss_making_project_flag
        assert dto.director_approval_required
        assert dto.has_alert

    def test_scorer_drives_risk_level(self, container, session, test_actor_id):
        governance = GovernanceService(session, container.ledger, risk_scorer=_HighRisk())
        record = governance.evaluate_deal_risk(
            uuid4(), Decimal("30"), MarginThresholdStatus.ABOVE, Decimal("1000"), test_actor_id, FM
        )
        assert record.risk_level == RiskLevel.HIGH.value
        assert record.director_approval_required
        assert not record.loss_making_project_flag


class TestDuplicateAlerts:

    def test_alert_creates_record_when_missing(self, container, session, test_actor_id):
        program_id = uuid4()
        log = _log()
        record = container.governance.raise_duplicate_alert(
            log, test_actor_id, FM, program_id=program_id
        )
        session.commit()

        dto = container.governance.for_program(program_id)
        assert dto.id == record.id
        assert dto.fraud_alert_type == FraudAlertType.DUPLICATE_INVOICE
        assert dto.duplicate_detection_log == log

        events = container.ledger.events_for(
            ENTITY_TYPE, record.id, SystemEventType.COMPLIANCE_UPDATED
        )
        assert len(events) == 1
        assert container.ledger.decode_metadata(events[0]) == log

    def test_alert_prefers_deal_record(self, container, session, pending_deal, test_actor_id):
        deal_record = container.governance.for_deal(pending_deal.id)
        record = container.governance.raise_duplicate_alert(
            _log(), test_actor_id, FM, deal_id=pending_deal.id, program_id=uuid4()
        )
        session.commit()
        assert record.id == deal_record.id

    def test_alert_logged(self, container, test_actor_id, captured_logs):
        container.governance.raise_duplicate_alert(_log(), test_actor_id, FM, deal_id=uuid4())
        flagged = [
            r for r in captured_logs() if r["message"] == "governance_duplicate_invoice_flagged"
        ]
        assert flagged[0]["level"] == "WARNING"
        assert flagged[0]["similar_count"] == 1

    def test_risk_alerts_lists_flagged_records(self, container, session, pending_deal, test_actor_id):
        assert container.governance.risk_alerts() == []
        container.governance.raise_duplicate_alert(
            _log(), test_actor_id, FM, deal_id=pending_deal.id
        )
        session.commit()
        assert [g.deal_id for g in container.governance.risk_alerts()] == [pending_deal.id]


class TestDirectorOperations:

    def test_decision_appends_history(self, container, pending_deal, director_id):
        record = container.governance.for_deal(pending_deal.id)
        container.governance.record_director_decision(
            record.id, "Hold", director_id, DIRECTOR, notes="Need revised costs"
        )
        decided = container.governance.record_director_decision(
            record.id, "Approve", director_id, DIRECTOR
        )
        assert [h.decision for h in decided.approval_history] == [
            ApprovalDecision.PENDING,
            ApprovalDecision.APPROVED,
        ]
        assert decided.approval_history[0].notes == "Need revised costs"
        assert decided.approval_history[1].notes == "Approve"
        assert decided.decision_notes == "Need revised costs"
        assert not decided.director_approval_required

    def test_pending_keeps_director_flag(self, container, sales_exec_id, director_id):
        deal = container.sales.create_deal(
            "Initech", "Thin", Decimal("100000"), sales_exec_id, Role.SALES_EXECUTIVE.value,
            costs={"trainer_cost": Decimal("95000")},
        )
        record = container.governance.for_deal(deal.id)
        after = container.governance.record_director_decision(
            record.id, "Defer", director_id, DIRECTOR
        )
        assert after.director_approval_required

    def test_only_director_decides(self, container, pending_deal, finance_manager_id):
        record = container.governance.for_deal(pending_deal.id)
        with pytest.raises(UnauthorizedTransitionError):
            container.governance.record_director_decision(
                record.id, "Approve", finance_manager_id, FM
            )

    def test_margin_lock(self, container, pending_deal, director_id):
        record = container.governance.for_deal(pending_deal.id)
        locked = container.governance.set_margin_lock(record.id, True, director_id, DIRECTOR)
        assert locked.margin_lock_flag
        trail = container.ledger.trail_for(ENTITY_TYPE, record.id)
        assert trail[-1].action == "governance_margin_lock_set"

    def test_unknown_record(self, container, director_id):
        with pytest.raises(EntityNotFoundError):
            container.governance.record_director_decision(
                uuid4(), "Approve", director_id, DIRECTOR
            )
