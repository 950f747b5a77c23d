"""
Procurement ORM Models (``dealflow_modules.procurement.orm``).

Responsibility
--------------
SQLAlchemy persistence for purchase orders and PO status stubs.

Architecture position
---------------------
**Modules layer** -- persistence.

Invariants enforced
-------------------
* One stub per linked source: ``uq_procurement_po_stub_source`` backs the
  cascade's existence check, so two approvals racing past that check
  cannot both insert.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from dealflow_kernel.db.base import TrackedBase
from dealflow_kernel.db.types import ZERO


class PurchaseOrderModel(TrackedBase):
    """
    ORM model for purchase orders.

    Guarantees:
        - po_number (PO-YYYY-NNNN) is unique.
        - adjusted_payable_amount of zero means "use approved_cost".
    """

    __tablename__ = "procurement_purchase_orders"

    __table_args__ = (
        UniqueConstraint("po_number", name="uq_procurement_po_number"),
        Index("idx_procurement_po_deal_id", "deal_id"),
        Index("idx_procurement_po_status", "status"),
    )

    po_number: Mapped[str] = mapped_column(String(40), nullable=False)
    deal_id: Mapped[UUID] = mapped_column(nullable=False)
    program_id: Mapped[UUID | None] = mapped_column(nullable=True)
    vendor_id: Mapped[UUID | None] = mapped_column(nullable=True)
    vendor_name: Mapped[str] = mapped_column(String(255), nullable=False)
    cost_type: Mapped[str] = mapped_column(String(20), default="Other")
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    approved_cost: Mapped[Decimal] = mapped_column(default=ZERO)
    adjusted_payable_amount: Mapped[Decimal] = mapped_column(default=ZERO)
    status: Mapped[str] = mapped_column(String(20), default="Draft")
    approved_by_id: Mapped[UUID | None] = mapped_column(nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    issued_at: Mapped[datetime | None] = mapped_column(nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self):
        from dealflow_engines.payables import effective_adjusted_amount
        from dealflow_modules.procurement.models import CostType, POStatus, PurchaseOrder

        return PurchaseOrder(
            id=self.id,
            po_number=self.po_number,
            deal_id=self.deal_id,
            program_id=self.program_id,
            vendor_id=self.vendor_id,
            vendor_name=self.vendor_name,
            cost_type=CostType(self.cost_type),
            description=self.description,
            approved_cost=self.approved_cost,
            adjusted_payable_amount=effective_adjusted_amount(
                self.adjusted_payable_amount, self.approved_cost
            ),
            status=POStatus(self.status),
            approved_by_id=self.approved_by_id,
            approved_at=self.approved_at,
            issued_at=self.issued_at,
            completed_at=self.completed_at,
            cancellation_reason=self.cancellation_reason,
        )

    def __repr__(self) -> str:
        return f"<PurchaseOrderModel {self.po_number} [{self.status}]>"


class POStatusStubModel(TrackedBase):
    """ORM model for PO status stubs (PO-STATUS-<ms>-<base36>)."""

    __tablename__ = "procurement_po_status_stubs"

    __table_args__ = (
        UniqueConstraint("po_status_number", name="uq_procurement_po_stub_number"),
        UniqueConstraint(
            "linked_source_type", "linked_source_id", name="uq_procurement_po_stub_source"
        ),
    )

    po_status_number: Mapped[str] = mapped_column(String(60), nullable=False)
    linked_source_type: Mapped[str] = mapped_column(String(20), nullable=False)
    linked_source_id: Mapped[UUID] = mapped_column(nullable=False)
    vendor_name: Mapped[str] = mapped_column(String(255), nullable=False)
    approved_cost: Mapped[Decimal] = mapped_column(default=ZERO)
    cost_type: Mapped[str] = mapped_column(String(20), default="Other")
    status: Mapped[str] = mapped_column(String(20), default="Draft")
    purchase_order_id: Mapped[UUID | None] = mapped_column(nullable=True)

    def to_dto(self):
        from dealflow_modules.procurement.models import (
            CostType,
            LinkedSourceType,
            POStatus,
            POStatusStub,
        )

        return POStatusStub(
            id=self.id,
            po_status_number=self.po_status_number,
            linked_source_type=LinkedSourceType(self.linked_source_type),
            linked_source_id=self.linked_source_id,
            vendor_name=self.vendor_name,
            approved_cost=self.approved_cost,
            cost_type=CostType(self.cost_type),
            status=POStatus(self.status),
            purchase_order_id=self.purchase_order_id,
        )

    def __repr__(self) -> str:
        return f"<POStatusStubModel {self.po_status_number} -> {self.linked_source_type}>"
