"""
Dealflow configuration schema.

Frozen dataclasses for every policy value the system reads.  The loader
parses ``defaults.yaml`` (or an override file) into these types; bridges
translate them into engine policy objects.

Every dataclass validates itself in ``__post_init__`` and raises
``ValueError`` on nonsense (negative rates, inverted bands).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal


def _require_percent(name: str, value: Decimal) -> None:
    if not Decimal("0") <= value <= Decimal("100"):
        raise ValueError(f"{name} must be between 0 and 100, got {value}")


def _require_non_negative(name: str, value: Decimal | int) -> None:
    if value < 0:
        raise ValueError(f"{name} must not be negative, got {value}")


@dataclass(frozen=True)
class MarginPolicy:
    lower_percent: Decimal = Decimal("15")
    upper_percent: Decimal = Decimal("25")
    revenue_below_under: Decimal = Decimal("100000")
    revenue_above_over: Decimal = Decimal("500000")

    def __post_init__(self) -> None:
        if self.lower_percent > self.upper_percent:
            raise ValueError("margin.lower_percent cannot exceed margin.upper_percent")
        if self.revenue_below_under > self.revenue_above_over:
            raise ValueError("deal request revenue bands are inverted")


@dataclass(frozen=True)
class WithholdingPolicy:
    contractor_individual_percent: Decimal = Decimal("1")
    contractor_other_percent: Decimal = Decimal("2")
    contractor_single_payment_threshold: Decimal = Decimal("30000")
    contractor_yearly_threshold: Decimal = Decimal("100000")
    professional_percent: Decimal = Decimal("10")
    technical_percent: Decimal = Decimal("2")
    professional_yearly_threshold: Decimal = Decimal("50000")
    pan_absent_percent: Decimal = Decimal("20")

    def __post_init__(self) -> None:
        for name in (
            "contractor_individual_percent",
            "contractor_other_percent",
            "professional_percent",
            "technical_percent",
            "pan_absent_percent",
        ):
            _require_percent(f"withholding.{name}", getattr(self, name))
        for name in (
            "contractor_single_payment_threshold",
            "contractor_yearly_threshold",
            "professional_yearly_threshold",
        ):
            _require_non_negative(f"withholding.{name}", getattr(self, name))


@dataclass(frozen=True)
class AgingPolicy:
    edges_days: tuple[int, int, int] = (30, 60, 90)

    def __post_init__(self) -> None:
        if len(self.edges_days) != 3:
            raise ValueError("aging.edges_days must have exactly three entries")
        first, second, third = self.edges_days
        if not 0 < first < second < third:
            raise ValueError("aging.edges_days must be positive and strictly increasing")


@dataclass(frozen=True)
class InvoicePolicy:
    gst_percent: Decimal = Decimal("18")
    gst_type: str = "IGST"
    sac_code: str = "998314"
    receivable_terms_days: int = 30

    def __post_init__(self) -> None:
        _require_percent("invoice.gst_percent", self.gst_percent)
        _require_non_negative("invoice.receivable_terms_days", self.receivable_terms_days)


@dataclass(frozen=True)
class PayablePolicy:
    payment_terms_days: int = 30

    def __post_init__(self) -> None:
        _require_non_negative("payables.payment_terms_days", self.payment_terms_days)


@dataclass(frozen=True)
class OutboxPolicy:
    max_attempts: int = 5

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("outbox.max_attempts must be >= 1")


@dataclass(frozen=True)
class DealflowConfig:
    """The complete, validated runtime configuration."""

    config_id: str
    version: int
    checksum: str
    margin: MarginPolicy = field(default_factory=MarginPolicy)
    withholding: WithholdingPolicy = field(default_factory=WithholdingPolicy)
    aging: AgingPolicy = field(default_factory=AgingPolicy)
    invoice: InvoicePolicy = field(default_factory=InvoicePolicy)
    payables: PayablePolicy = field(default_factory=PayablePolicy)
    outbox: OutboxPolicy = field(default_factory=OutboxPolicy)
