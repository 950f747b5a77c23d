"""
Receivables ORM Models (``dealflow_modules.receivables.orm``).

Invariants enforced
-------------------
* Invoice number, IRN and e-way bill number are unique.
* A BOC converts to at most one invoice (``uq_receivables_invoice_boc``).
* One receivable per invoice (``uq_receivables_receivable_invoice``).
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from dealflow_kernel.db.base import TrackedBase
from dealflow_kernel.db.types import ZERO


class BillOfConfirmationModel(TrackedBase):
    __tablename__ = "receivables_bocs"

    __table_args__ = (
        UniqueConstraint("boc_number", name="uq_receivables_boc_number"),
    )

    boc_number: Mapped[str] = mapped_column(String(40), nullable=False)
    client_name: Mapped[str] = mapped_column(String(255), nullable=False)
    confirmed_value: Mapped[Decimal] = mapped_column(nullable=False)
    boc_date: Mapped[date] = mapped_column(nullable=False)
    deal_id: Mapped[UUID | None] = mapped_column(nullable=True)
    sent_to_operations: Mapped[bool] = mapped_column(default=False)
    sent_to_finance: Mapped[bool] = mapped_column(default=False)
    sent_to_operations_at: Mapped[datetime | None] = mapped_column(nullable=True)
    sent_to_finance_at: Mapped[datetime | None] = mapped_column(nullable=True)
    converted_to_invoice: Mapped[bool] = mapped_column(default=False)
    invoice_id: Mapped[UUID | None] = mapped_column(nullable=True)
    status: Mapped[str] = mapped_column(String(30), default="Draft")

    def to_dto(self):
        from dealflow_modules.receivables.models import BillOfConfirmation, BocStatus

        return BillOfConfirmation(
            id=self.id,
            boc_number=self.boc_number,
            client_name=self.client_name,
            confirmed_value=self.confirmed_value,
            boc_date=self.boc_date,
            deal_id=self.deal_id,
            status=BocStatus(self.status),
            converted_to_invoice=self.converted_to_invoice,
            invoice_id=self.invoice_id,
            sent_to_operations_at=self.sent_to_operations_at,
            sent_to_finance_at=self.sent_to_finance_at,
        )


class InvoiceModel(TrackedBase):
    """
    ORM model for client invoices.

    Guarantees:
        - tax_amount / total_amount / tds_amount are written by the
          invoice tax derivation, never by callers.
    """

    __tablename__ = "receivables_invoices"

    __table_args__ = (
        UniqueConstraint("invoice_number", name="uq_receivables_invoice_number"),
        UniqueConstraint("irn_number", name="uq_receivables_invoice_irn"),
        UniqueConstraint("eway_bill_number", name="uq_receivables_invoice_ewb"),
        UniqueConstraint("boc_id", name="uq_receivables_invoice_boc"),
        Index("idx_receivables_invoice_client_amount", "client_name", "invoice_amount"),
    )

    invoice_number: Mapped[str] = mapped_column(String(40), nullable=False)
    irn_number: Mapped[str | None] = mapped_column(String(40), nullable=True)
    eway_bill_number: Mapped[str | None] = mapped_column(String(40), nullable=True)
    client_name: Mapped[str] = mapped_column(String(255), nullable=False)
    invoice_date: Mapped[date] = mapped_column(nullable=False)
    invoice_amount: Mapped[Decimal] = mapped_column(nullable=False)
    gst_type: Mapped[str] = mapped_column(String(10), default="IGST")
    gst_percent: Mapped[Decimal] = mapped_column(nullable=False)
    sac_code: Mapped[str] = mapped_column(String(10), nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(default=ZERO)
    total_amount: Mapped[Decimal] = mapped_column(default=ZERO)
    tds_percent: Mapped[Decimal] = mapped_column(default=ZERO)
    tds_amount: Mapped[Decimal] = mapped_column(default=ZERO)
    tax_source: Mapped[str] = mapped_column(String(12), default="formula")
    program_id: Mapped[UUID | None] = mapped_column(nullable=True)
    deal_id: Mapped[UUID | None] = mapped_column(nullable=True)
    boc_id: Mapped[UUID | None] = mapped_column(nullable=True)
    duplicate_flag: Mapped[bool] = mapped_column(default=False)
    status: Mapped[str] = mapped_column(String(20), default="Draft")
    sent_at: Mapped[datetime | None] = mapped_column(nullable=True)
    cancellation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self):
        from dealflow_engines.invoice_tax import GstType
        from dealflow_modules.receivables.models import Invoice, InvoiceStatus

        return Invoice(
            id=self.id,
            invoice_number=self.invoice_number,
            irn_number=self.irn_number,
            eway_bill_number=self.eway_bill_number,
            client_name=self.client_name,
            invoice_date=self.invoice_date,
            invoice_amount=self.invoice_amount,
            gst_type=GstType(self.gst_type),
            gst_percent=self.gst_percent,
            sac_code=self.sac_code,
            tax_amount=self.tax_amount,
            total_amount=self.total_amount,
            tds_percent=self.tds_percent,
            tds_amount=self.tds_amount,
            tax_source=self.tax_source,
            program_id=self.program_id,
            deal_id=self.deal_id,
            boc_id=self.boc_id,
            duplicate_flag=self.duplicate_flag,
            status=InvoiceStatus(self.status),
        )

    def __repr__(self) -> str:
        return f"<InvoiceModel {self.invoice_number} {self.total_amount} [{self.status}]>"


class ReceivableModel(TrackedBase):
    """ORM model for client receivables."""

    __tablename__ = "receivables_receivables"

    __table_args__ = (
        UniqueConstraint("invoice_id", name="uq_receivables_receivable_invoice"),
        Index("idx_receivables_receivable_status", "status"),
    )

    invoice_id: Mapped[UUID] = mapped_column(
        ForeignKey("receivables_invoices.id"), nullable=False
    )
    invoice_number: Mapped[str] = mapped_column(String(40), nullable=False)
    client_name: Mapped[str] = mapped_column(String(255), nullable=False)
    invoice_amount: Mapped[Decimal] = mapped_column(nullable=False)
    taxable_amount: Mapped[Decimal] = mapped_column(default=ZERO)
    gst_amount: Mapped[Decimal] = mapped_column(default=ZERO)
    tds_amount: Mapped[Decimal] = mapped_column(default=ZERO)
    paid_amount: Mapped[Decimal] = mapped_column(default=ZERO)
    outstanding_amount: Mapped[Decimal] = mapped_column(nullable=False)
    payment_terms: Mapped[int] = mapped_column(default=30)
    due_date: Mapped[date] = mapped_column(nullable=False)
    aging_bucket: Mapped[str] = mapped_column(String(20), default="Current")
    days_overdue: Mapped[int] = mapped_column(default=0)
    aged_as_of: Mapped[date | None] = mapped_column(nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="Pending")
    write_off_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self):
        from dealflow_engines.aging import AgingBucket, ReceivableStatus
        from dealflow_modules.receivables.models import Receivable

        return Receivable(
            id=self.id,
            invoice_id=self.invoice_id,
            invoice_number=self.invoice_number,
            client_name=self.client_name,
            invoice_amount=self.invoice_amount,
            taxable_amount=self.taxable_amount,
            gst_amount=self.gst_amount,
            tds_amount=self.tds_amount,
            paid_amount=self.paid_amount,
            outstanding_amount=self.outstanding_amount,
            payment_terms=self.payment_terms,
            due_date=self.due_date,
            aging_bucket=AgingBucket(self.aging_bucket),
            days_overdue=self.days_overdue,
            aged_as_of=self.aged_as_of,
            status=ReceivableStatus(self.status),
            write_off_reason=self.write_off_reason,
        )

    def __repr__(self) -> str:
        return f"<ReceivableModel {self.invoice_number} [{self.status}/{self.aging_bucket}]>"
