"""Sales module: opportunities, deals and deal requests."""

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
from dealflow_modules.sales.service import SalesService

__all__ = [
    "AcknowledgementStatus",
    "Deal",
    "DealApprovalStatus",
    "DealRequest",
    "DealType",
    "Opportunity",
    "OpportunityStatus",
    "RevenueCategory",
    "SalesService",
]
