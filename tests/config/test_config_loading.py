"""Policy configuration: packaged defaults, overrides, validation and bridges."""

from decimal import Decimal

import pytest

from dealflow_config import DEFAULT_CONFIG_PATH, get_active_config
from dealflow_config.bridges import (
    build_aging_edges,
    build_margin_bands,
    build_revenue_bands,
    build_withholding_rates,
    default_gst_type,
)
from dealflow_config.loader import compute_checksum, load_config, parse_config
from dealflow_config.schema import (
    AgingPolicy,
    InvoicePolicy,
    MarginPolicy,
    OutboxPolicy,
    WithholdingPolicy,
)
from dealflow_engines import AgingEdges, GstType, MarginBands, WithholdingRates


class TestDefaults:

    def test_packaged_defaults(self):
        config = get_active_config()
        assert config.config_id == "dealflow-default"
        assert config.version == 1
        assert config.margin.lower_percent == Decimal("15")
        assert config.withholding.pan_absent_percent == Decimal("20")
        assert config.aging.edges_days == (30, 60, 90)
        assert config.invoice.sac_code == "998314"
        assert config.invoice.receivable_terms_days == 30
        assert config.payables.payment_terms_days == 30
        assert config.outbox.max_attempts == 5

    def test_config_trace_logged(self, captured_logs):
        config = get_active_config()
        traces = [r for r in captured_logs() if r["message"] == "DEALFLOW_CONFIG_TRACE"]
        assert traces[0]["checksum"] == config.checksum
        assert traces[0]["config_id"] == "dealflow-default"

    def test_checksum_is_deterministic(self):
        assert load_config(DEFAULT_CONFIG_PATH).checksum == load_config(DEFAULT_CONFIG_PATH).checksum
        assert compute_checksum({"b": 1, "a": 2}) == compute_checksum({"a": 2, "b": 1})

    def test_defaults_match_engine_defaults(self):
        config = get_active_config()
        assert build_margin_bands(config) == MarginBands()
        assert build_withholding_rates(config) == WithholdingRates()
        assert build_aging_edges(config) == AgingEdges()
        assert default_gst_type(config) == GstType.IGST


class TestOverrides:

    def test_override_file(self, tmp_path):
        path = tmp_path / "policy.yaml"
        path.write_text(
            "config_id: strict\n"
            "version: 3\n"
            "margin:\n"
            "  lower_percent: '20'\n"
            "  upper_percent: '30'\n"
            "aging:\n"
            "  edges_days: [15, 45, 75]\n"
            "invoice:\n"
            "  gst_type: CGST+SGST\n"
        )
        config = get_active_config(path)
        assert config.config_id == "strict"
        assert build_margin_bands(config) == MarginBands(Decimal("20"), Decimal("30"))
        assert build_aging_edges(config) == AgingEdges(15, 45, 75)
        assert default_gst_type(config) == GstType.CGST_SGST
        # Unset sections keep their defaults
        assert build_revenue_bands(config).above_over == Decimal("500000")

    def test_empty_document_gives_defaults(self):
        config = parse_config({})
        assert config.config_id == "dealflow-default"
        assert config.invoice == InvoicePolicy()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path / "missing.yaml")

    def test_unknown_section_rejected(self):
        with pytest.raises(ValueError, match="Unknown configuration sections"):
            parse_config({"ledger": {}})

    def test_amounts_parsed_as_decimal(self):
        config = parse_config({"withholding": {"professional_percent": 7.5}})
        assert config.withholding.professional_percent == Decimal("7.5")


class TestValidation:

    def test_inverted_margin_band(self):
        with pytest.raises(ValueError):
            MarginPolicy(lower_percent=Decimal("30"), upper_percent=Decimal("20"))

    def test_rate_out_of_range(self):
        with pytest.raises(ValueError):
            WithholdingPolicy(pan_absent_percent=Decimal("120"))

    def test_negative_threshold(self):
        with pytest.raises(ValueError):
            WithholdingPolicy(contractor_yearly_threshold=Decimal("-1"))

    @pytest.mark.parametrize("edges", [(30, 60), (60, 30, 90), (0, 30, 60)])
    def test_bad_aging_edges(self, edges):
        with pytest.raises(ValueError):
            AgingPolicy(edges_days=edges)

    def test_outbox_attempts(self):
        with pytest.raises(ValueError):
            OutboxPolicy(max_attempts=0)

    def test_invalid_section_value_surfaces_from_parse(self):
        with pytest.raises(ValueError):
            parse_config({"invoice": {"gst_percent": "150"}})
