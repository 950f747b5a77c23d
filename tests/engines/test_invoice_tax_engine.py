"""Invoice GST/TDS with the deterministic formula and an injected calculator."""

from decimal import Decimal

from dealflow_engines.invoice_tax import GstType, compute_invoice_tax


class _Calculator:
    def __init__(self, amount=None, error=None):
        self.amount = amount
        self.error = error
        self.calls = []

    def tax_amount(self, invoice_amount, gst_percent, gst_type):
        self.calls.append((invoice_amount, gst_percent, gst_type))
        if self.error:
            raise self.error
        return self.amount


class TestFormula:

    def test_gst_and_total(self):
        result = compute_invoice_tax(
            invoice_amount=Decimal("1000000"), gst_percent=Decimal("18"),
        )
        assert result.tax_amount == Decimal("180000.00")
        assert result.total_amount == Decimal("1180000.00")
        assert result.tds_amount == Decimal("0")
        assert result.source == "formula"

    def test_tds_on_total(self):
        result = compute_invoice_tax(
            invoice_amount=Decimal("1000"),
            gst_percent=Decimal("18"),
            gst_type=GstType.CGST_SGST,
            tds_percent=Decimal("10"),
        )
        assert result.tds_amount == Decimal("118.00")

    def test_rounding_half_up(self):
        result = compute_invoice_tax(invoice_amount=Decimal("0.25"), gst_percent=Decimal("18"))
        assert result.tax_amount == Decimal("0.05")


class TestCalculator:

    def test_calculator_result_used(self):
        calc = _Calculator(amount=Decimal("170000"))
        result = compute_invoice_tax(
            invoice_amount=Decimal("1000000"),
            gst_percent=Decimal("18"),
            gst_type="IGST",
            calculator=calc,
        )
        assert result.tax_amount == Decimal("170000")
        assert result.total_amount == Decimal("1170000")
        assert result.source == "calculator"
        assert calc.calls[0][2] == GstType.IGST

    def test_calculator_error_falls_back(self, captured_logs):
        result = compute_invoice_tax(
            invoice_amount=Decimal("1000000"),
            gst_percent=Decimal("18"),
            calculator=_Calculator(error=ConnectionError("offline")),
        )
        assert result.tax_amount == Decimal("180000.00")
        assert result.source == "formula"
        fallback = [r for r in captured_logs() if r["message"] == "invoice_tax_fallback_used"]
        assert fallback and "offline" in fallback[0]["reason"]

    def test_unusable_calculator_value_falls_back(self):
        result = compute_invoice_tax(
            invoice_amount=Decimal("100"),
            gst_percent=Decimal("18"),
            calculator=_Calculator(amount="n/a"),
        )
        assert result.tax_amount == Decimal("18.00")
        assert result.source == "formula"
