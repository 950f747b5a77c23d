"""
Module: dealflow_engines.withholding
Responsibility:
    Tax deducted at source (TDS) on vendor payments: statutory section
    selection, threshold test against the vendor's yearly total, PAN-absent
    penalty rate, director override.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  The caller supplies the
    vendor's yearly total; the engine never queries.

Invariants enforced:
    - net_payable_amount == payment_amount - tds_amount, exactly.
    - tds_amount == round_money(payment_amount * applicable_percent / 100).
    - PAN absent: compliance is Pending PAN; when above threshold the rate
      is max(section rate, pan_absent_percent).
    - Director override: compliance is Director Override and the rate is
      computed as if a PAN were present.

Section table (defaults, see WithholdingRates):

    Nature of service        Section  Rate                     Threshold
    -----------------------  -------  -----------------------  -------------------------------
    Contractor               194C     1% Individual/HUF,       payment > 30,000 or
                                      2% Company/Firm/LLP      payment + yearly > 100,000
    Professional Services    194J     10%                      payment + yearly > 50,000
    Technical Services       194J     2%                       payment + yearly > 50,000
    Call Centre Services     194J     2%                       payment + yearly > 50,000
    Other                    None     0%                       never

Failure modes:
    - InvalidAmountError for negative payment or yearly totals.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Protocol

from dealflow_kernel.db.types import ZERO, percent_of, to_decimal
from dealflow_kernel.logging_config import get_logger
from dealflow_engines.tracer import traced_engine

logger = get_logger("engines.withholding")


class VendorType(str, Enum):
    INDIVIDUAL = "Individual"
    COMPANY = "Company"
    HUF = "HUF"
    FIRM = "Firm"
    LLP = "LLP"


class NatureOfService(str, Enum):
    CONTRACTOR = "Contractor"
    PROFESSIONAL = "Professional Services"
    TECHNICAL = "Technical Services"
    CALL_CENTRE = "Call Centre Services"
    OTHER = "Other"


class TdsSection(str, Enum):
    CONTRACTOR = "194C"
    PROFESSIONAL = "194J"
    NONE = "None"


class PayeeType(str, Enum):
    INDIVIDUAL_HUF = "Individual/HUF"
    COMPANY_FIRM_LLP = "Company/Firm/LLP"


class ThresholdStatus(str, Enum):
    ABOVE = "Above Threshold"
    BELOW = "Below Threshold"


class ComplianceStatus(str, Enum):
    COMPLIANT = "Compliant"
    NON_COMPLIANT = "Non-Compliant"
    PENDING_PAN = "Pending PAN"
    DIRECTOR_OVERRIDE = "Director Override"


_INDIVIDUAL_PAYEES = frozenset({VendorType.INDIVIDUAL, VendorType.HUF})


@dataclass(frozen=True)
class WithholdingRates:
    """Statutory rates and thresholds.  Amounts in rupees, rates 0-100."""

    contractor_individual_percent: Decimal = Decimal("1")
    contractor_other_percent: Decimal = Decimal("2")
    contractor_single_payment_threshold: Decimal = Decimal("30000")
    contractor_yearly_threshold: Decimal = Decimal("100000")
    professional_percent: Decimal = Decimal("10")
    technical_percent: Decimal = Decimal("2")
    professional_yearly_threshold: Decimal = Decimal("50000")
    pan_absent_percent: Decimal = Decimal("20")


DEFAULT_RATES = WithholdingRates()


@dataclass(frozen=True)
class WithholdingResult:
    tds_section: TdsSection
    payee_type: PayeeType
    applicable_percent: Decimal
    threshold_status: ThresholdStatus
    tds_amount: Decimal
    net_payable_amount: Decimal
    pan_available: bool
    pan_absent_percent: Decimal
    compliance_status: ComplianceStatus


def payee_type_for(vendor_type: VendorType) -> PayeeType:
    if VendorType(vendor_type) in _INDIVIDUAL_PAYEES:
        return PayeeType.INDIVIDUAL_HUF
    return PayeeType.COMPANY_FIRM_LLP


def _section_and_rate(
    vendor_type: VendorType,
    nature: NatureOfService,
    payment: Decimal,
    yearly_total: Decimal,
    rates: WithholdingRates,
) -> tuple[TdsSection, Decimal, ThresholdStatus]:
    cumulative = payment + yearly_total

    if nature == NatureOfService.CONTRACTOR:
        above = (
            payment > rates.contractor_single_payment_threshold
            or cumulative > rates.contractor_yearly_threshold
        )
        if not above:
            return TdsSection.CONTRACTOR, ZERO, ThresholdStatus.BELOW
        if vendor_type in _INDIVIDUAL_PAYEES:
            return TdsSection.CONTRACTOR, rates.contractor_individual_percent, ThresholdStatus.ABOVE
        return TdsSection.CONTRACTOR, rates.contractor_other_percent, ThresholdStatus.ABOVE

    if nature in (
        NatureOfService.PROFESSIONAL,
        NatureOfService.TECHNICAL,
        NatureOfService.CALL_CENTRE,
    ):
        if cumulative <= rates.professional_yearly_threshold:
            return TdsSection.PROFESSIONAL, ZERO, ThresholdStatus.BELOW
        if nature == NatureOfService.PROFESSIONAL:
            return TdsSection.PROFESSIONAL, rates.professional_percent, ThresholdStatus.ABOVE
        return TdsSection.PROFESSIONAL, rates.technical_percent, ThresholdStatus.ABOVE

    return TdsSection.NONE, ZERO, ThresholdStatus.BELOW


@traced_engine(
    "withholding",
    "1.0",
    fingerprint_fields=(
        "vendor_type",
        "nature_of_service",
        "payment_amount",
        "pan_present",
        "vendor_yearly_total",
        "director_override",
    ),
)
def compute_withholding(
    *,
    vendor_type: VendorType,
    nature_of_service: NatureOfService,
    payment_amount: Decimal,
    pan_present: bool,
    vendor_yearly_total: Decimal = ZERO,
    director_override: bool = False,
    rates: WithholdingRates = DEFAULT_RATES,
) -> WithholdingResult:
    """
    Compute the TDS for one payment.

    ``vendor_yearly_total`` must exclude ``payment_amount`` itself; the
    engine adds the payment when testing cumulative thresholds.
    """
    vendor_type = VendorType(vendor_type)
    nature = NatureOfService(nature_of_service)
    payment = to_decimal(payment_amount, "payment_amount")
    yearly = to_decimal(vendor_yearly_total, "vendor_yearly_total")

    section, percent, threshold = _section_and_rate(vendor_type, nature, payment, yearly, rates)

    if director_override:
        compliance = ComplianceStatus.DIRECTOR_OVERRIDE
        pan_absent_percent = ZERO
    elif not pan_present:
        compliance = ComplianceStatus.PENDING_PAN
        pan_absent_percent = rates.pan_absent_percent
        if threshold == ThresholdStatus.ABOVE:
            percent = max(percent, pan_absent_percent)
    else:
        compliance = ComplianceStatus.COMPLIANT
        pan_absent_percent = ZERO

    tds_amount = percent_of(payment, percent)
    return WithholdingResult(
        tds_section=section,
        payee_type=payee_type_for(vendor_type),
        applicable_percent=percent,
        threshold_status=threshold,
        tds_amount=tds_amount,
        net_payable_amount=payment - tds_amount,
        pan_available=pan_present,
        pan_absent_percent=pan_absent_percent,
        compliance_status=compliance,
    )


class ServiceClassifier(Protocol):
    """External classifier mapping a free-text description to a nature of service."""

    def classify(self, description: str) -> str:
        ...


def resolve_nature_of_service(
    *,
    explicit: str | None = None,
    vendor_default: str | None = None,
    description: str | None = None,
    classifier: ServiceClassifier | None = None,
) -> NatureOfService:
    """
    Pick the nature of service for a withholding computation.

    Order: explicit value, vendor default, classifier on the description,
    then ``Other``.  A classifier error or unknown label falls through to
    ``Other``.
    """
    for candidate in (explicit, vendor_default):
        if candidate:
            return NatureOfService(candidate)
    if classifier is not None and description:
        try:
            return NatureOfService(classifier.classify(description))
        except Exception as exc:
            logger.warning(
                "service_classifier_fallback_used",
                extra={"reason": f"{type(exc).__name__}: {exc}"},
            )
    return NatureOfService.OTHER
