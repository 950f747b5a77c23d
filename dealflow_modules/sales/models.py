"""
Sales Domain Models (``dealflow_modules.sales.models``).

Responsibility
--------------
Frozen value objects for the sales pipeline: opportunities (leads with a
gross-profit cost vector), deals (approved commercial commitments with a
contribution margin) and deal requests (lightweight approval requests).

Architecture position
---------------------
**Modules layer** -- pure data definitions.  No I/O.  Returned by
``SalesService`` as immutable snapshots.

Invariants enforced
-------------------
* Enum values are the stored literals and are case-sensitive.
* ``OpportunityStatus`` and ``DealApprovalStatus`` align with the states of
  ``workflows.OPPORTUNITY_WORKFLOW`` and ``workflows.DEAL_WORKFLOW``.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from dealflow_engines.margin import MarginThresholdStatus


class OpportunityStatus(str, Enum):
    """Opportunity lifecycle.  Must align with ``OPPORTUNITY_WORKFLOW.states``."""
    NEW = "New"
    QUALIFIED = "Qualified"
    SENT_TO_DELIVERY = "Sent to Delivery"
    CONVERTED = "Converted to Deal"
    LOST = "Lost"


class DealApprovalStatus(str, Enum):
    """Deal and deal request approval.  Must align with ``DEAL_WORKFLOW.states``."""
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class DealType(str, Enum):
    TRAINING = "Training"
    ENABLEMENT = "Enablement"
    CONSULTING = "Consulting"
    RESOURCE_SUPPORT = "Resource Support"


class RevenueCategory(str, Enum):
    CORPORATE = "Corporate"
    ACADEMIC = "Academic"
    SCHOOL = "School"


class AcknowledgementStatus(str, Enum):
    """Operations acknowledgement of an approved deal request."""
    PENDING = "Pending"
    ACKNOWLEDGED = "Acknowledged"
    CLARIFICATION_REQUESTED = "Clarification Requested"


@dataclass(frozen=True)
class Opportunity:
    """A sales lead with its derived gross profit."""
    id: UUID
    opportunity_code: str
    client_name: str
    status: OpportunityStatus
    tov: Decimal
    total_costs: Decimal
    final_gp: Decimal
    gp_percent: Decimal
    marketing_charges_amount: Decimal
    contingency_amount: Decimal
    course_name: str | None = None
    qualified_at: datetime | None = None
    qualified_by_id: UUID | None = None
    sent_to_delivery_at: datetime | None = None
    sent_to_delivery_by_id: UUID | None = None
    converted_deal_id: UUID | None = None
    converted_at: datetime | None = None
    lost_at: datetime | None = None
    lost_reason: str | None = None


@dataclass(frozen=True)
class Deal:
    """An approved-or-pending commercial commitment with derived margin."""
    id: UUID
    deal_code: str
    client_name: str
    deal_name: str
    deal_type: DealType
    revenue_category: RevenueCategory
    total_order_value: Decimal
    costs: dict[str, Decimal]
    total_cost: Decimal
    contribution_margin: Decimal
    break_even_value: Decimal
    gross_margin_percent: Decimal
    margin_threshold_status: MarginThresholdStatus
    approval_status: DealApprovalStatus
    opportunity_id: UUID | None = None
    approved_by_id: UUID | None = None
    approved_at: datetime | None = None
    rejection_reason: str | None = None


@dataclass(frozen=True)
class DealRequest:
    """A deal approval request keyed by expected revenue."""
    id: UUID
    request_code: str
    client_name: str
    course_name: str
    expected_revenue: Decimal
    margin_status: MarginThresholdStatus
    status: DealApprovalStatus
    acknowledgement_status: AcknowledgementStatus
    approved_by_id: UUID | None = None
    approved_at: datetime | None = None
    acknowledged_by_id: UUID | None = None
    acknowledged_at: datetime | None = None
    clarification_notes: str | None = None
