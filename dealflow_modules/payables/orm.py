"""
Payables ORM Models (``dealflow_modules.payables.orm``).

Responsibility
--------------
SQLAlchemy persistence for vendors, payables and TDS records.

Invariants enforced
-------------------
* ``vendor_payout_reference`` is unique.
* One TDS record per payable (``uq_payables_tax_record_payable``); a
  re-delivered ``PAYABLE_CREATED`` trigger updates the existing record.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from dealflow_kernel.db.base import TrackedBase
from dealflow_kernel.db.types import ZERO


class VendorModel(TrackedBase):
    __tablename__ = "payables_vendors"

    vendor_name: Mapped[str] = mapped_column(String(255), nullable=False)
    vendor_type: Mapped[str] = mapped_column(String(20), nullable=False)
    pan_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    gst_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    default_nature_of_service: Mapped[str | None] = mapped_column(String(40), nullable=True)

    def to_dto(self):
        from dealflow_engines.withholding import NatureOfService, VendorType
        from dealflow_modules.payables.models import Vendor

        return Vendor(
            id=self.id,
            vendor_name=self.vendor_name,
            vendor_type=VendorType(self.vendor_type),
            pan_number=self.pan_number,
            gst_number=self.gst_number,
            default_nature_of_service=(
                NatureOfService(self.default_nature_of_service)
                if self.default_nature_of_service
                else None
            ),
        )

    def __repr__(self) -> str:
        return f"<VendorModel {self.vendor_name} ({self.vendor_type})>"


class PayableModel(TrackedBase):
    """
    ORM model for vendor payables.

    Guarantees:
        - outstanding_amount and status are rewritten by the payable
          derivation after every mutation.
        - tds_amount mirrors the net applied from the TDS record.
    """

    __tablename__ = "payables_payables"

    __table_args__ = (
        UniqueConstraint("vendor_payout_reference", name="uq_payables_vendor_payout_reference"),
        Index("idx_payables_vendor_id", "vendor_id"),
        Index("idx_payables_status", "status"),
    )

    vendor_payout_reference: Mapped[str] = mapped_column(String(40), nullable=False)
    purchase_order_id: Mapped[UUID | None] = mapped_column(nullable=True)
    vendor_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("payables_vendors.id"), nullable=True
    )
    vendor_name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    nature_of_service: Mapped[str | None] = mapped_column(String(40), nullable=True)

    approved_cost: Mapped[Decimal | None] = mapped_column(nullable=True)
    adjusted_payable_amount: Mapped[Decimal] = mapped_column(default=ZERO)
    tds_amount: Mapped[Decimal] = mapped_column(default=ZERO)
    paid_amount: Mapped[Decimal] = mapped_column(default=ZERO)
    outstanding_amount: Mapped[Decimal] = mapped_column(default=ZERO)

    payment_terms: Mapped[int] = mapped_column(default=30)
    payment_mode: Mapped[str] = mapped_column(String(20), default="NEFT")
    due_date: Mapped[date] = mapped_column(nullable=False)
    vendor_payout_date: Mapped[date | None] = mapped_column(nullable=True)

    hold_flag: Mapped[bool] = mapped_column(default=False)
    release_flag: Mapped[bool] = mapped_column(default=False)
    reconciliation_status: Mapped[str] = mapped_column(String(20), default="Pending")
    status: Mapped[str] = mapped_column(String(20), default="Pending")

    def to_dto(self):
        from dealflow_engines.payables import PayableStatus
        from dealflow_engines.withholding import NatureOfService
        from dealflow_modules.payables.models import (
            Payable,
            PaymentMode,
            ReconciliationStatus,
        )

        return Payable(
            id=self.id,
            vendor_payout_reference=self.vendor_payout_reference,
            purchase_order_id=self.purchase_order_id,
            vendor_id=self.vendor_id,
            vendor_name=self.vendor_name,
            description=self.description,
            nature_of_service=(
                NatureOfService(self.nature_of_service) if self.nature_of_service else None
            ),
            approved_cost=self.approved_cost,
            adjusted_payable_amount=self.adjusted_payable_amount,
            tds_amount=self.tds_amount,
            paid_amount=self.paid_amount,
            outstanding_amount=self.outstanding_amount,
            status=PayableStatus(self.status),
            due_date=self.due_date,
            payment_terms=self.payment_terms,
            payment_mode=PaymentMode(self.payment_mode),
            vendor_payout_date=self.vendor_payout_date,
            reconciliation_status=ReconciliationStatus(self.reconciliation_status),
            hold_flag=self.hold_flag,
            release_flag=self.release_flag,
        )

    def __repr__(self) -> str:
        return f"<PayableModel {self.vendor_payout_reference} [{self.status}]>"


class TaxRecordModel(TrackedBase):
    """ORM model for the TDS computation attached to a payable."""

    __tablename__ = "payables_tax_records"

    __table_args__ = (
        UniqueConstraint("payable_id", name="uq_payables_tax_record_payable"),
    )

    payable_id: Mapped[UUID] = mapped_column(ForeignKey("payables_payables.id"), nullable=False)
    vendor_id: Mapped[UUID] = mapped_column(ForeignKey("payables_vendors.id"), nullable=False)
    vendor_type: Mapped[str] = mapped_column(String(20), nullable=False)
    nature_of_service: Mapped[str] = mapped_column(String(40), nullable=False)
    tds_section: Mapped[str] = mapped_column(String(10), nullable=False)
    payee_type: Mapped[str] = mapped_column(String(30), nullable=False)
    applicable_tds_percent: Mapped[Decimal] = mapped_column(default=ZERO)
    payment_amount: Mapped[Decimal] = mapped_column(nullable=False)
    threshold_status: Mapped[str] = mapped_column(String(20), nullable=False)
    tds_amount: Mapped[Decimal] = mapped_column(default=ZERO)
    net_payable_amount: Mapped[Decimal] = mapped_column(nullable=False)
    pan_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    pan_available: Mapped[bool] = mapped_column(default=False)
    pan_absent_percent: Mapped[Decimal] = mapped_column(default=ZERO)
    compliance_status: Mapped[str] = mapped_column(String(20), default="Pending PAN")
    director_override: Mapped[bool] = mapped_column(default=False)
    director_override_by_id: Mapped[UUID | None] = mapped_column(nullable=True)
    director_override_at: Mapped[datetime | None] = mapped_column(nullable=True)
    calculated_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def to_dto(self):
        from dealflow_engines.withholding import (
            ComplianceStatus,
            NatureOfService,
            PayeeType,
            TdsSection,
            ThresholdStatus,
            VendorType,
        )
        from dealflow_modules.payables.models import TaxRecord

        return TaxRecord(
            id=self.id,
            payable_id=self.payable_id,
            vendor_id=self.vendor_id,
            vendor_type=VendorType(self.vendor_type),
            nature_of_service=NatureOfService(self.nature_of_service),
            tds_section=TdsSection(self.tds_section),
            payee_type=PayeeType(self.payee_type),
            applicable_tds_percent=self.applicable_tds_percent,
            payment_amount=self.payment_amount,
            threshold_status=ThresholdStatus(self.threshold_status),
            tds_amount=self.tds_amount,
            net_payable_amount=self.net_payable_amount,
            pan_available=self.pan_available,
            pan_absent_percent=self.pan_absent_percent,
            compliance_status=ComplianceStatus(self.compliance_status),
            director_override=self.director_override,
            director_override_by_id=self.director_override_by_id,
            director_override_at=self.director_override_at,
            calculated_at=self.calculated_at,
        )
