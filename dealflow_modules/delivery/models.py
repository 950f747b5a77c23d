"""
Delivery Domain Models (``dealflow_modules.delivery.models``).

Frozen value objects for delivery programs: the GP cost vector shared with
opportunities, delivery status, and the trainer / client sign-offs that
gate invoicing.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class DeliveryStatus(str, Enum):
    """Must align with ``workflows.PROGRAM_WORKFLOW.states``."""
    SCHEDULED = "Scheduled"
    IN_PROGRESS = "In Progress"
    ON_HOLD = "On Hold"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class SignOffKind(str, Enum):
    TRAINER = "trainer"
    CLIENT = "client"


@dataclass(frozen=True)
class Program:
    id: UUID
    program_code: str
    program_name: str
    client_name: str
    delivery_status: DeliveryStatus
    tov: Decimal
    total_costs: Decimal
    final_gp: Decimal
    gp_percent: Decimal
    marketing_charges_amount: Decimal
    contingency_amount: Decimal
    trainer_sign_off: bool
    client_sign_off: bool
    invoice_eligible: bool
    deal_id: UUID | None = None
    opportunity_id: UUID | None = None
    sac_code: str | None = None
    trainer_sign_off_at: datetime | None = None
    client_sign_off_at: datetime | None = None
    invoice_eligible_at: datetime | None = None
    deviation_reason: str | None = None
