"""
Procurement Domain Models (``dealflow_modules.procurement.models``).

Frozen value objects for vendor purchase orders and the placeholder PO
status records that deal approval creates for operations to complete.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

PENDING_VENDOR = "Pending Assignment"


class POStatus(str, Enum):
    """Must align with ``workflows.PURCHASE_ORDER_WORKFLOW.states``."""
    DRAFT = "Draft"
    APPROVED = "Approved"
    ISSUED = "Issued"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class CostType(str, Enum):
    TRAINER = "Trainer"
    LAB = "Lab"
    LOGISTICS = "Logistics"
    CONTENT = "Content"
    TRAVEL = "Travel"
    MARKETING = "Marketing"
    OTHER = "Other"


class LinkedSourceType(str, Enum):
    DEAL = "Deal"
    DEAL_REQUEST = "DealRequest"


@dataclass(frozen=True)
class PurchaseOrder:
    """
    A vendor commitment.

    ``adjusted_payable_amount`` is the effective payable: the stored
    adjustment, or ``approved_cost`` when no adjustment was made.
    """
    id: UUID
    po_number: str
    deal_id: UUID
    vendor_name: str
    cost_type: CostType
    approved_cost: Decimal
    adjusted_payable_amount: Decimal
    status: POStatus
    vendor_id: UUID | None = None
    program_id: UUID | None = None
    description: str | None = None
    approved_by_id: UUID | None = None
    approved_at: datetime | None = None
    issued_at: datetime | None = None
    completed_at: datetime | None = None
    cancellation_reason: str | None = None


@dataclass(frozen=True)
class POStatusStub:
    """Placeholder created by the approval cascade, later linked to a real PO."""
    id: UUID
    po_status_number: str
    linked_source_type: LinkedSourceType
    linked_source_id: UUID
    vendor_name: str
    approved_cost: Decimal
    cost_type: CostType
    status: POStatus
    purchase_order_id: UUID | None = None
