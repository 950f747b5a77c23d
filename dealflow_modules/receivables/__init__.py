"""Receivables module: invoices, bills of confirmation and receivables."""

from dealflow_modules.receivables.models import (
    BillOfConfirmation,
    BocStatus,
    Invoice,
    InvoiceStatus,
    Receivable,
)
from dealflow_modules.receivables.service import ReceivablesService

__all__ = [
    "BillOfConfirmation",
    "BocStatus",
    "Invoice",
    "InvoiceStatus",
    "Receivable",
    "ReceivablesService",
]
