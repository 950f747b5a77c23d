"""
Receivables Domain Models (``dealflow_modules.receivables.models``).

Client billing documents (invoices), the bill of confirmation an invoice
can be generated from, and the receivable that tracks collection.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from dealflow_engines.aging import AgingBucket, ReceivableStatus
from dealflow_engines.invoice_tax import GstType


class InvoiceStatus(str, Enum):
    """Must align with ``workflows.INVOICE_WORKFLOW.states``."""
    DRAFT = "Draft"
    GENERATED = "Generated"
    SENT = "Sent"
    PAID = "Paid"
    OVERDUE = "Overdue"
    CANCELLED = "Cancelled"


class BocStatus(str, Enum):
    DRAFT = "Draft"
    UPLOADED = "Uploaded"
    SENT_TO_OPERATIONS = "Sent to Operations"
    SENT_TO_FINANCE = "Sent to Finance"
    INVOICE_GENERATED = "Invoice Generated"
    COMPLETED = "Completed"


@dataclass(frozen=True)
class Invoice:
    """``total_amount == invoice_amount + tax_amount``."""
    id: UUID
    invoice_number: str
    client_name: str
    invoice_date: date
    invoice_amount: Decimal
    gst_type: GstType
    gst_percent: Decimal
    sac_code: str
    tax_amount: Decimal
    total_amount: Decimal
    tds_percent: Decimal
    tds_amount: Decimal
    status: InvoiceStatus
    duplicate_flag: bool
    irn_number: str | None = None
    eway_bill_number: str | None = None
    program_id: UUID | None = None
    deal_id: UUID | None = None
    boc_id: UUID | None = None
    tax_source: str = "formula"


@dataclass(frozen=True)
class BillOfConfirmation:
    id: UUID
    boc_number: str
    client_name: str
    confirmed_value: Decimal
    boc_date: date
    status: BocStatus
    converted_to_invoice: bool
    invoice_id: UUID | None = None
    deal_id: UUID | None = None
    sent_to_operations_at: datetime | None = None
    sent_to_finance_at: datetime | None = None


@dataclass(frozen=True)
class Receivable:
    """``outstanding_amount == invoice_amount - paid_amount``; aging derives from due date."""
    id: UUID
    invoice_id: UUID
    invoice_number: str
    client_name: str
    invoice_amount: Decimal
    taxable_amount: Decimal
    gst_amount: Decimal
    tds_amount: Decimal
    paid_amount: Decimal
    outstanding_amount: Decimal
    payment_terms: int
    due_date: date
    aging_bucket: AgingBucket
    days_overdue: int
    status: ReceivableStatus
    aged_as_of: date | None = None
    write_off_reason: str | None = None
