"""
Module: dealflow_engines.margin
Responsibility:
    Deal contribution margin and margin-threshold classification.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import dealflow_kernel (db.types, logging_config).

Invariants enforced:
    - contribution_margin == total_order_value - sum(costs), exactly.
    - break_even_value == total_cost.
    - gross_margin_percent == contribution_margin / total_order_value * 100
      (rounded to 4 places) when total_order_value > 0, else 0.
    - Classification uses the stored (rounded) percent so the status always
      matches the persisted figure.  The At Threshold band is inclusive at
      both edges: 15 and 25 are At Threshold.

Failure modes:
    - InvalidAmountError from to_decimal on non-numeric or negative input.

Audit relevance:
    marginThresholdStatus feeds the governance gate (loss-making flag and
    director approval), so every computation is traced.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from dealflow_kernel.db.types import HUNDRED, ZERO, to_decimal
from dealflow_engines.tracer import traced_engine

DEAL_COST_FIELDS: tuple[str, ...] = (
    "trainer_cost",
    "lab_cost",
    "logistics_cost",
    "content_cost",
    "contingency_cost",
    "travel_cost",
    "marketing_cost",
    "other_cost",
)

_PERCENT_PLACES = Decimal("0.0001")


class MarginThresholdStatus(str, Enum):
    ABOVE = "Above Threshold"
    AT = "At Threshold"
    BELOW = "Below Threshold"


@dataclass(frozen=True)
class MarginBands:
    """
    Margin threshold band.

    ``lower`` and ``upper`` both belong to the At Threshold band.
    """

    lower: Decimal = Decimal("15")
    upper: Decimal = Decimal("25")

    def __post_init__(self) -> None:
        if self.lower > self.upper:
            raise ValueError("lower margin bound cannot exceed upper bound")


DEFAULT_BANDS = MarginBands()


@dataclass(frozen=True)
class MarginResult:
    total_cost: Decimal
    contribution_margin: Decimal
    break_even_value: Decimal
    gross_margin_percent: Decimal
    threshold_status: MarginThresholdStatus


def classify_margin(percent: Decimal, bands: MarginBands = DEFAULT_BANDS) -> MarginThresholdStatus:
    """Bucket a gross margin percent: <lower Below, [lower, upper] At, >upper Above."""
    if percent < bands.lower:
        return MarginThresholdStatus.BELOW
    if percent > bands.upper:
        return MarginThresholdStatus.ABOVE
    return MarginThresholdStatus.AT


def margin_percent(margin: Decimal, base: Decimal) -> Decimal:
    """``margin / base * 100`` at 4 places, or 0 when base <= 0."""
    if base <= ZERO:
        return ZERO
    return (margin / base * HUNDRED).quantize(_PERCENT_PLACES)


@traced_engine("margin", "1.0", fingerprint_fields=("total_order_value", "costs"))
def compute_deal_margin(
    *,
    total_order_value: Decimal,
    costs: Mapping[str, Decimal | None],
    bands: MarginBands = DEFAULT_BANDS,
) -> MarginResult:
    """
    Derive margin fields for a deal.

    ``costs`` is keyed by DEAL_COST_FIELDS; missing or None entries count
    as zero, unknown keys are ignored.
    """
    tov = to_decimal(total_order_value, "total_order_value")
    total_cost = sum(
        (to_decimal(costs.get(name), name) for name in DEAL_COST_FIELDS),
        ZERO,
    )
    contribution = tov - total_cost
    percent = margin_percent(contribution, tov)
    return MarginResult(
        total_cost=total_cost,
        contribution_margin=contribution,
        break_even_value=total_cost,
        gross_margin_percent=percent,
        threshold_status=classify_margin(percent, bands),
    )


@dataclass(frozen=True)
class RevenueBands:
    """Expected-revenue bands used when a deal request carries no margin status."""

    below_under: Decimal = Decimal("100000")
    above_over: Decimal = Decimal("500000")


DEFAULT_REVENUE_BANDS = RevenueBands()


def classify_by_revenue(
    expected_revenue: Decimal,
    bands: RevenueBands = DEFAULT_REVENUE_BANDS,
) -> MarginThresholdStatus:
    """Fallback margin status from expected revenue alone."""
    if expected_revenue < bands.below_under:
        return MarginThresholdStatus.BELOW
    if expected_revenue > bands.above_over:
        return MarginThresholdStatus.ABOVE
    return MarginThresholdStatus.AT
