"""
Delivery ORM Models (``dealflow_modules.delivery.orm``).

Responsibility
--------------
SQLAlchemy persistence for delivery programs.  ``invoice_eligible`` is
written only by the cascade orchestrator in response to a client sign-off.

Architecture position
---------------------
**Modules layer** -- persistence.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from dealflow_kernel.db.base import TrackedBase
from dealflow_kernel.db.types import ZERO


class ProgramModel(TrackedBase):
    """
    ORM model for programs.

    Guarantees:
        - program_code (PRG-YYYY-NNNN) is unique.
        - final_gp == tov - total_costs after every service save.
    """

    __tablename__ = "delivery_programs"

    __table_args__ = (
        UniqueConstraint("program_code", name="uq_delivery_programs_code"),
        Index("idx_delivery_programs_deal_id", "deal_id"),
        Index("idx_delivery_programs_status", "delivery_status"),
    )

    program_code: Mapped[str] = mapped_column(String(40), nullable=False)
    program_name: Mapped[str] = mapped_column(String(255), nullable=False)
    client_name: Mapped[str] = mapped_column(String(255), nullable=False)
    deal_id: Mapped[UUID | None] = mapped_column(nullable=True)
    opportunity_id: Mapped[UUID | None] = mapped_column(nullable=True)
    sac_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    delivery_status: Mapped[str] = mapped_column(String(20), default="Scheduled")
    deviation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

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

    trainer_sign_off: Mapped[bool] = mapped_column(Boolean, default=False)
    trainer_sign_off_at: Mapped[datetime | None] = mapped_column(nullable=True)
    client_sign_off: Mapped[bool] = mapped_column(Boolean, default=False)
    client_sign_off_at: Mapped[datetime | None] = mapped_column(nullable=True)
    invoice_eligible: Mapped[bool] = mapped_column(Boolean, default=False)
    invoice_eligible_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def to_dto(self):
        from dealflow_modules.delivery.models import DeliveryStatus, Program

        return Program(
            id=self.id,
            program_code=self.program_code,
            program_name=self.program_name,
            client_name=self.client_name,
            deal_id=self.deal_id,
            opportunity_id=self.opportunity_id,
            sac_code=self.sac_code,
            delivery_status=DeliveryStatus(self.delivery_status),
            deviation_reason=self.deviation_reason,
            tov=self.tov,
            total_costs=self.total_costs,
            final_gp=self.final_gp,
            gp_percent=self.gp_percent,
            marketing_charges_amount=self.marketing_charges_amount,
            contingency_amount=self.contingency_amount,
            trainer_sign_off=self.trainer_sign_off,
            trainer_sign_off_at=self.trainer_sign_off_at,
            client_sign_off=self.client_sign_off,
            client_sign_off_at=self.client_sign_off_at,
            invoice_eligible=self.invoice_eligible,
            invoice_eligible_at=self.invoice_eligible_at,
        )

    def __repr__(self) -> str:
        return f"<ProgramModel {self.program_code} [{self.delivery_status}]>"
