"""
Governance Domain Models (``dealflow_modules.governance.models``).

Responsibility
--------------
Frozen value objects for the governance gate: the per-deal / per-program
risk record and its append-only approval history.

Architecture position
---------------------
**Modules layer** -- pure data definitions.  No I/O.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID

from dealflow_engines.risk import RiskLevel
from dealflow_kernel.domain.payloads import DuplicateDetectionLog


class FraudAlertType(str, Enum):
    NONE = "None"
    DUPLICATE_INVOICE = "Duplicate Invoice"
    OVERBILLING = "Overbilling"
    SUSPICIOUS_ACTIVITY = "Suspicious Activity"
    DATA_ANOMALY = "Data Anomaly"


class ApprovalDecision(str, Enum):
    """Stored outcome of a director decision."""
    APPROVED = "Approved"
    REJECTED = "Rejected"
    PENDING = "Pending"


# Inbound decision literal -> stored outcome.  Anything else is Pending.
DECISION_OUTCOMES: dict[str, ApprovalDecision] = {
    "Approve": ApprovalDecision.APPROVED,
    "Reject": ApprovalDecision.REJECTED,
}


def decision_outcome(decision: str) -> ApprovalDecision:
    return DECISION_OUTCOMES.get(decision, ApprovalDecision.PENDING)


@dataclass(frozen=True)
class ApprovalRecord:
    """One immutable entry of a governance approval history."""
    id: UUID
    governance_id: UUID
    decision: ApprovalDecision
    actor_id: UUID
    actor_role: str
    decided_at: datetime
    notes: str = ""


@dataclass(frozen=True)
class Governance:
    """Risk and approval state for one deal or program."""
    id: UUID
    risk_level: RiskLevel
    loss_making_project_flag: bool
    director_approval_required: bool
    margin_lock_flag: bool
    fraud_alert_type: FraudAlertType
    deal_id: UUID | None = None
    program_id: UUID | None = None
    duplicate_detection_log: DuplicateDetectionLog | None = None
    decision_notes: str | None = None
    approval_history: tuple[ApprovalRecord, ...] = ()

    @property
    def has_alert(self) -> bool:
        return (
            self.loss_making_project_flag
            or self.director_approval_required
            or self.fraud_alert_type is not FraudAlertType.NONE
        )
