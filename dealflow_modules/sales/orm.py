"""
Sales ORM Models (``dealflow_modules.sales.orm``).

Responsibility
--------------
SQLAlchemy persistence for opportunities, deals and deal requests.  Maps
the frozen dataclasses in ``models.py`` to tables.  Derived columns
(``final_gp``, ``gross_margin_percent`` ...) are written by ``SalesService``
from the engines on every save; nothing here computes them.

Architecture position
---------------------
**Modules layer** -- persistence.  Imports from ``dealflow_kernel.db`` and
sibling ``models.py``.  MUST NOT be imported by ``dealflow_kernel``.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from dealflow_kernel.db.base import TrackedBase
from dealflow_kernel.db.types import ZERO
from dealflow_engines.margin import DEAL_COST_FIELDS


class OpportunityModel(TrackedBase):
    """
    ORM model for sales opportunities.

    Guarantees:
        - opportunity_code (GKTyyCHmmNNN) is unique.
        - status stored as the OpportunityStatus literal.
        - percent inputs are stored so a later save re-applies them.
    """

    __tablename__ = "sales_opportunities"

    __table_args__ = (
        UniqueConstraint("opportunity_code", name="uq_sales_opportunities_code"),
        Index("idx_sales_opportunities_status", "status"),
    )

    opportunity_code: Mapped[str] = mapped_column(String(40), nullable=False)
    client_name: Mapped[str] = mapped_column(String(255), nullable=False)
    course_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(String(40), nullable=False, default="New")

    tov: Mapped[Decimal] = mapped_column(default=ZERO)
    trainer_po_value: Mapped[Decimal] = mapped_column(default=ZERO)
    lab_po_value: Mapped[Decimal] = mapped_column(default=ZERO)
    course_material: Mapped[Decimal] = mapped_column(default=ZERO)
    royalty_charges: Mapped[Decimal] = mapped_column(default=ZERO)
    travel_charges: Mapped[Decimal] = mapped_column(default=ZERO)
    accommodation: Mapped[Decimal] = mapped_column(default=ZERO)
    per_diem: Mapped[Decimal] = mapped_column(default=ZERO)
    local_conveyance: Mapped[Decimal] = mapped_column(default=ZERO)
    marketing_charges_amount: Mapped[Decimal] = mapped_column(default=ZERO)
    marketing_charges_percent: Mapped[Decimal | None] = mapped_column(nullable=True)
    contingency_amount: Mapped[Decimal] = mapped_column(default=ZERO)
    contingency_percent: Mapped[Decimal | None] = mapped_column(nullable=True)

    total_costs: Mapped[Decimal] = mapped_column(default=ZERO)
    final_gp: Mapped[Decimal] = mapped_column(default=ZERO)
    gp_percent: Mapped[Decimal] = mapped_column(default=ZERO)

    qualified_at: Mapped[datetime | None] = mapped_column(nullable=True)
    qualified_by_id: Mapped[UUID | None] = mapped_column(nullable=True)
    sent_to_delivery_at: Mapped[datetime | None] = mapped_column(nullable=True)
    sent_to_delivery_by_id: Mapped[UUID | None] = mapped_column(nullable=True)
    converted_deal_id: Mapped[UUID | None] = mapped_column(nullable=True)
    converted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    lost_at: Mapped[datetime | None] = mapped_column(nullable=True)
    lost_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self):
        from dealflow_modules.sales.models import Opportunity, OpportunityStatus

        return Opportunity(
            id=self.id,
            opportunity_code=self.opportunity_code,
            client_name=self.client_name,
            course_name=self.course_name,
            status=OpportunityStatus(self.status),
            tov=self.tov,
            total_costs=self.total_costs,
            final_gp=self.final_gp,
            gp_percent=self.gp_percent,
            marketing_charges_amount=self.marketing_charges_amount,
            contingency_amount=self.contingency_amount,
            qualified_at=self.qualified_at,
            qualified_by_id=self.qualified_by_id,
            sent_to_delivery_at=self.sent_to_delivery_at,
            sent_to_delivery_by_id=self.sent_to_delivery_by_id,
            converted_deal_id=self.converted_deal_id,
            converted_at=self.converted_at,
            lost_at=self.lost_at,
            lost_reason=self.lost_reason,
        )

    def __repr__(self) -> str:
        return f"<OpportunityModel {self.opportunity_code} [{self.status}]>"


class DealModel(TrackedBase):
    """
    ORM model for deals.

    Guarantees:
        - deal_code (DEAL-YYYY-NNNN) is unique.
        - contribution_margin == total_order_value - total_cost after every
          service save.
    """

    __tablename__ = "sales_deals"

    __table_args__ = (
        UniqueConstraint("deal_code", name="uq_sales_deals_code"),
        Index("idx_sales_deals_approval_status", "approval_status"),
        Index("idx_sales_deals_opportunity_id", "opportunity_id"),
    )

    deal_code: Mapped[str] = mapped_column(String(40), nullable=False)
    opportunity_id: Mapped[UUID | None] = mapped_column(nullable=True)
    client_name: Mapped[str] = mapped_column(String(255), nullable=False)
    deal_name: Mapped[str] = mapped_column(String(255), nullable=False)
    deal_type: Mapped[str] = mapped_column(String(40), default="Training")
    revenue_category: Mapped[str] = mapped_column(String(40), default="Corporate")

    total_order_value: Mapped[Decimal] = mapped_column(default=ZERO)
    trainer_cost: Mapped[Decimal] = mapped_column(default=ZERO)
    lab_cost: Mapped[Decimal] = mapped_column(default=ZERO)
    logistics_cost: Mapped[Decimal] = mapped_column(default=ZERO)
    content_cost: Mapped[Decimal] = mapped_column(default=ZERO)
    contingency_cost: Mapped[Decimal] = mapped_column(default=ZERO)
    travel_cost: Mapped[Decimal] = mapped_column(default=ZERO)
    marketing_cost: Mapped[Decimal] = mapped_column(default=ZERO)
    other_cost: Mapped[Decimal] = mapped_column(default=ZERO)

    total_cost: Mapped[Decimal] = mapped_column(default=ZERO)
    contribution_margin: Mapped[Decimal] = mapped_column(default=ZERO)
    break_even_value: Mapped[Decimal] = mapped_column(default=ZERO)
    gross_margin_percent: Mapped[Decimal] = mapped_column(default=ZERO)
    margin_threshold_status: Mapped[str] = mapped_column(String(40), default="At Threshold")

    approval_status: Mapped[str] = mapped_column(String(20), default="Pending")
    approved_by_id: Mapped[UUID | None] = mapped_column(nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    def cost_vector(self) -> dict[str, Decimal]:
        return {name: getattr(self, name) for name in DEAL_COST_FIELDS}

    def to_dto(self):
        from dealflow_engines.margin import MarginThresholdStatus
        from dealflow_modules.sales.models import (
            Deal,
            DealApprovalStatus,
            DealType,
            RevenueCategory,
        )

        return Deal(
            id=self.id,
            deal_code=self.deal_code,
            opportunity_id=self.opportunity_id,
            client_name=self.client_name,
            deal_name=self.deal_name,
            deal_type=DealType(self.deal_type),
            revenue_category=RevenueCategory(self.revenue_category),
            total_order_value=self.total_order_value,
            costs=self.cost_vector(),
            total_cost=self.total_cost,
            contribution_margin=self.contribution_margin,
            break_even_value=self.break_even_value,
            gross_margin_percent=self.gross_margin_percent,
            margin_threshold_status=MarginThresholdStatus(self.margin_threshold_status),
            approval_status=DealApprovalStatus(self.approval_status),
            approved_by_id=self.approved_by_id,
            approved_at=self.approved_at,
            rejection_reason=self.rejection_reason,
        )

    def __repr__(self) -> str:
        return f"<DealModel {self.deal_code} [{self.approval_status}]>"


class DealRequestModel(TrackedBase):
    """ORM model for deal requests (DR-YYYY-NNNN)."""

    __tablename__ = "sales_deal_requests"

    __table_args__ = (
        UniqueConstraint("request_code", name="uq_sales_deal_requests_code"),
        Index("idx_sales_deal_requests_status", "status"),
    )

    request_code: Mapped[str] = mapped_column(String(40), nullable=False)
    client_name: Mapped[str] = mapped_column(String(255), nullable=False)
    course_name: Mapped[str] = mapped_column(String(255), nullable=False)
    expected_revenue: Mapped[Decimal] = mapped_column(default=ZERO)
    margin_status: Mapped[str] = mapped_column(String(40), default="At Threshold")
    status: Mapped[str] = mapped_column(String(20), default="Pending")
    approved_by_id: Mapped[UUID | None] = mapped_column(nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    acknowledgement_status: Mapped[str] = mapped_column(String(40), default="Pending")
    acknowledged_by_id: Mapped[UUID | None] = mapped_column(nullable=True)
    acknowledged_at: Mapped[datetime | None] = mapped_column(nullable=True)
    clarification_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self):
        from dealflow_engines.margin import MarginThresholdStatus
        from dealflow_modules.sales.models import (
            AcknowledgementStatus,
            DealApprovalStatus,
            DealRequest,
        )

        return DealRequest(
            id=self.id,
            request_code=self.request_code,
            client_name=self.client_name,
            course_name=self.course_name,
            expected_revenue=self.expected_revenue,
            margin_status=MarginThresholdStatus(self.margin_status),
            status=DealApprovalStatus(self.status),
            acknowledgement_status=AcknowledgementStatus(self.acknowledgement_status),
            approved_by_id=self.approved_by_id,
            approved_at=self.approved_at,
            acknowledged_by_id=self.acknowledged_by_id,
            acknowledged_at=self.acknowledged_at,
            clarification_notes=self.clarification_notes,
        )

    def __repr__(self) -> str:
        return f"<DealRequestModel {self.request_code} [{self.status}]>"
