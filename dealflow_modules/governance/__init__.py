"""Governance module: risk gate, fraud alerts, director approval history."""

from dealflow_modules.governance.models import (
    ApprovalDecision,
    ApprovalRecord,
    FraudAlertType,
    Governance,
)
from dealflow_modules.governance.service import GovernanceService

__all__ = [
    "ApprovalDecision",
    "ApprovalRecord",
    "FraudAlertType",
    "Governance",
    "GovernanceService",
]
