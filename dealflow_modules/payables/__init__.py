"""Payables module: vendors, vendor payables and TDS withholding records."""

from dealflow_modules.payables.models import (
    Payable,
    PaymentMode,
    ReconciliationStatus,
    TaxRecord,
    Vendor,
)
from dealflow_modules.payables.service import PayablesService, vendor_yearly_total

__all__ = [
    "Payable",
    "PayablesService",
    "PaymentMode",
    "ReconciliationStatus",
    "TaxRecord",
    "Vendor",
    "vendor_yearly_total",
]
