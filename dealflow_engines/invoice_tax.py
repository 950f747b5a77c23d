"""
Module: dealflow_engines.invoice_tax
Responsibility:
    Invoice GST and TDS totals.  An optional external calculator (for
    example an assisted-classification service) may supply the tax figures;
    if it is absent, raises, or returns unusable numbers the deterministic
    formula is used instead and ``invoice_tax_fallback_used`` is logged.

Architecture position:
    Engines -- pure calculation layer.  The external calculator is injected
    by the caller; this module performs no I/O of its own.

Invariants enforced:
    - total_amount == invoice_amount + tax_amount.
    - Deterministic formula: tax_amount = round(invoice_amount * gst / 100).
    - tds_amount = round(total_amount * tds_percent / 100) when
      tds_percent > 0, else 0.
    - Never raises for calculator problems; only invalid inputs raise.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Protocol

from dealflow_kernel.db.types import ZERO, percent_of, to_decimal
from dealflow_kernel.logging_config import get_logger
from dealflow_engines.tracer import traced_engine

logger = get_logger("engines.invoice_tax")


class GstType(str, Enum):
    IGST = "IGST"
    CGST = "CGST"
    SGST = "SGST"
    CGST_SGST = "CGST+SGST"


@dataclass(frozen=True)
class InvoiceTaxResult:
    tax_amount: Decimal
    total_amount: Decimal
    tds_amount: Decimal
    source: str  # "calculator" or "formula"


class InvoiceTaxCalculator(Protocol):
    """External tax calculator; returns the tax amount for an invoice."""

    def tax_amount(
        self,
        invoice_amount: Decimal,
        gst_percent: Decimal,
        gst_type: GstType,
    ) -> Decimal:
        ...


def _formula_tax(amount: Decimal, gst_percent: Decimal) -> Decimal:
    return percent_of(amount, gst_percent)


@traced_engine(
    "invoice_tax",
    "1.0",
    fingerprint_fields=("invoice_amount", "gst_percent", "gst_type", "tds_percent"),
)
def compute_invoice_tax(
    *,
    invoice_amount: Decimal,
    gst_percent: Decimal,
    gst_type: GstType = GstType.IGST,
    tds_percent: Decimal = ZERO,
    calculator: InvoiceTaxCalculator | None = None,
) -> InvoiceTaxResult:
    """Derive tax, total and TDS for one invoice."""
    amount = to_decimal(invoice_amount, "invoice_amount")
    gst = to_decimal(gst_percent, "gst_percent")
    tds_pct = to_decimal(tds_percent, "tds_percent")

    tax: Decimal | None = None
    source = "formula"
    if calculator is not None:
        try:
            tax = to_decimal(calculator.tax_amount(amount, gst, GstType(gst_type)), "tax_amount")
            source = "calculator"
        except Exception as exc:
            logger.warning(
                "invoice_tax_fallback_used",
                extra={"reason": f"{type(exc).__name__}: {exc}"},
            )
            tax = None
    if tax is None:
        tax = _formula_tax(amount, gst)
        source = "formula"

    total = amount + tax
    tds = percent_of(total, tds_pct) if tds_pct > ZERO else ZERO
    return InvoiceTaxResult(tax_amount=tax, total_amount=total, tds_amount=tds, source=source)
