"""TDS section selection, thresholds, PAN penalty and director override."""

from decimal import Decimal

import pytest

from dealflow_engines.withholding import (
    ComplianceStatus,
    NatureOfService,
    PayeeType,
    TdsSection,
    ThresholdStatus,
    VendorType,
    WithholdingRates,
    compute_withholding,
    resolve_nature_of_service,
)


class TestContractor:

    def test_single_payment_above_threshold_company(self):
        result = compute_withholding(
            vendor_type=VendorType.COMPANY,
            nature_of_service=NatureOfService.CONTRACTOR,
            payment_amount=Decimal("40000"),
            pan_present=True,
        )
        assert result.tds_section == TdsSection.CONTRACTOR
        assert result.applicable_percent == Decimal("2")
        assert result.tds_amount == Decimal("800.00")
        assert result.net_payable_amount == Decimal("39200.00")
        assert result.payee_type == PayeeType.COMPANY_FIRM_LLP
        assert result.compliance_status == ComplianceStatus.COMPLIANT

    def test_individual_rate(self):
        result = compute_withholding(
            vendor_type="HUF",
            nature_of_service="Contractor",
            payment_amount=Decimal("40000"),
            pan_present=True,
        )
        assert result.applicable_percent == Decimal("1")
        assert result.payee_type == PayeeType.INDIVIDUAL_HUF

    def test_yearly_total_crosses_threshold(self):
        result = compute_withholding(
            vendor_type=VendorType.FIRM,
            nature_of_service=NatureOfService.CONTRACTOR,
            payment_amount=Decimal("20000"),
            pan_present=True,
            vendor_yearly_total=Decimal("90000"),
        )
        assert result.threshold_status == ThresholdStatus.ABOVE
        assert result.tds_amount == Decimal("400.00")

    def test_below_both_thresholds(self):
        result = compute_withholding(
            vendor_type=VendorType.COMPANY,
            nature_of_service=NatureOfService.CONTRACTOR,
            payment_amount=Decimal("30000"),
            pan_present=True,
            vendor_yearly_total=Decimal("70000"),
        )
        assert result.threshold_status == ThresholdStatus.BELOW
        assert result.tds_amount == Decimal("0.00")
        assert result.net_payable_amount == Decimal("30000")


class TestProfessional:

    def test_pan_absent_uses_penalty_rate(self):
        result = compute_withholding(
            vendor_type=VendorType.INDIVIDUAL,
            nature_of_service=NatureOfService.PROFESSIONAL,
            payment_amount=Decimal("250000"),
            pan_present=False,
        )
        assert result.tds_section == TdsSection.PROFESSIONAL
        assert result.applicable_percent == Decimal("20")
        assert result.tds_amount == Decimal("50000.00")
        assert result.net_payable_amount == Decimal("200000.00")
        assert result.pan_absent_percent == Decimal("20")
        assert result.compliance_status == ComplianceStatus.PENDING_PAN

    def test_pan_absent_below_threshold_withholds_nothing(self):
        result = compute_withholding(
            vendor_type=VendorType.INDIVIDUAL,
            nature_of_service=NatureOfService.PROFESSIONAL,
            payment_amount=Decimal("50000"),
            pan_present=False,
        )
        assert result.threshold_status == ThresholdStatus.BELOW
        assert result.tds_amount == Decimal("0.00")
        assert result.compliance_status == ComplianceStatus.PENDING_PAN

    def test_director_override_computes_as_if_pan_present(self):
        result = compute_withholding(
            vendor_type=VendorType.INDIVIDUAL,
            nature_of_service=NatureOfService.PROFESSIONAL,
            payment_amount=Decimal("250000"),
            pan_present=False,
            director_override=True,
        )
        assert result.applicable_percent == Decimal("10")
        assert result.tds_amount == Decimal("25000.00")
        assert result.compliance_status == ComplianceStatus.DIRECTOR_OVERRIDE

    @pytest.mark.parametrize("nature", [NatureOfService.TECHNICAL, NatureOfService.CALL_CENTRE])
    def test_technical_rate(self, nature):
        result = compute_withholding(
            vendor_type=VendorType.COMPANY,
            nature_of_service=nature,
            payment_amount=Decimal("60000"),
            pan_present=True,
        )
        assert result.tds_section == TdsSection.PROFESSIONAL
        assert result.tds_amount == Decimal("1200.00")

    def test_custom_rates(self):
        result = compute_withholding(
            vendor_type=VendorType.COMPANY,
            nature_of_service=NatureOfService.PROFESSIONAL,
            payment_amount=Decimal("100000"),
            pan_present=True,
            rates=WithholdingRates(professional_percent=Decimal("5")),
        )
        assert result.tds_amount == Decimal("5000.00")


class TestOther:

    def test_no_section(self):
        result = compute_withholding(
            vendor_type=VendorType.LLP,
            nature_of_service=NatureOfService.OTHER,
            payment_amount=Decimal("1000000"),
            pan_present=True,
        )
        assert result.tds_section == TdsSection.NONE
        assert result.tds_amount == Decimal("0.00")

    def test_unknown_vendor_type_rejected(self):
        with pytest.raises(ValueError):
            compute_withholding(
                vendor_type="Trust",
                nature_of_service=NatureOfService.OTHER,
                payment_amount=Decimal("1"),
                pan_present=True,
            )


class _StubClassifier:
    def __init__(self, label=None, error=None):
        self.label = label
        self.error = error

    def classify(self, description):
        if self.error:
            raise self.error
        return self.label


class TestResolveNatureOfService:

    def test_explicit_wins(self):
        assert resolve_nature_of_service(
            explicit="Contractor", vendor_default="Professional Services",
        ) == NatureOfService.CONTRACTOR

    def test_vendor_default(self):
        assert resolve_nature_of_service(
            vendor_default="Technical Services",
        ) == NatureOfService.TECHNICAL

    def test_classifier_used_for_description(self):
        nature = resolve_nature_of_service(
            description="cloud lab setup",
            classifier=_StubClassifier(label="Technical Services"),
        )
        assert nature == NatureOfService.TECHNICAL

    def test_classifier_failure_falls_back(self, captured_logs):
        nature = resolve_nature_of_service(
            description="something",
            classifier=_StubClassifier(error=TimeoutError("slow")),
        )
        assert nature == NatureOfService.OTHER
        assert any(r["message"] == "service_classifier_fallback_used" for r in captured_logs())

    def test_unknown_label_falls_back(self):
        nature = resolve_nature_of_service(
            description="something",
            classifier=_StubClassifier(label="Consulting"),
        )
        assert nature == NatureOfService.OTHER

    def test_nothing_supplied(self):
        assert resolve_nature_of_service() == NatureOfService.OTHER
