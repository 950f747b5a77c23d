"""
Module: dealflow_engines.gross_profit
Responsibility:
    Gross profit for opportunities and programs: percentage-driven
    marketing and contingency charges, total delivery cost, final GP and
    GP percent.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - A supplied (non-zero) marketing or contingency percent always wins
      over a previously stored amount when TOV is non-zero.
    - final_gp == tov - total_costs.
    - gp_percent is recomputed only when tov > 0; otherwise the prior value
      is returned unchanged.

Failure modes:
    - InvalidAmountError from to_decimal on non-numeric or negative input.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from decimal import Decimal

from dealflow_kernel.db.types import ZERO, percent_of, to_decimal
from dealflow_engines.margin import margin_percent
from dealflow_engines.tracer import traced_engine


@dataclass(frozen=True)
class GrossProfitInput:
    """
    Cost vector shared by Opportunity and Program.

    All amounts default to zero; percents are on the 0-100 scale.
    """

    tov: Decimal = ZERO
    trainer_po_value: Decimal = ZERO
    lab_po_value: Decimal = ZERO
    course_material: Decimal = ZERO
    royalty_charges: Decimal = ZERO
    travel_charges: Decimal = ZERO
    accommodation: Decimal = ZERO
    per_diem: Decimal = ZERO
    local_conveyance: Decimal = ZERO
    marketing_charges_amount: Decimal = ZERO
    marketing_charges_percent: Decimal | None = None
    contingency_amount: Decimal = ZERO
    contingency_percent: Decimal | None = None


GP_INPUT_FIELDS: tuple[str, ...] = tuple(f.name for f in fields(GrossProfitInput))


@dataclass(frozen=True)
class GrossProfitResult:
    marketing_charges_amount: Decimal
    contingency_amount: Decimal
    total_costs: Decimal
    final_gp: Decimal
    gp_percent: Decimal


def _optional_percent(value: Decimal | None, field_name: str) -> Decimal | None:
    if value is None:
        return None
    return to_decimal(value, field_name)


def _charge(tov: Decimal, percent: Decimal | None, stored: Decimal) -> Decimal:
    if percent and tov:
        return percent_of(tov, percent)
    return stored


@traced_engine("gross_profit", "1.0", fingerprint_fields=("inputs", "prior_gp_percent"))
def compute_gross_profit(
    *,
    inputs: GrossProfitInput,
    prior_gp_percent: Decimal = ZERO,
) -> GrossProfitResult:
    """Derive GP fields from the cost vector."""
    tov = to_decimal(inputs.tov, "tov")
    marketing = _charge(
        tov,
        _optional_percent(inputs.marketing_charges_percent, "marketing_charges_percent"),
        to_decimal(inputs.marketing_charges_amount, "marketing_charges_amount"),
    )
    contingency = _charge(
        tov,
        _optional_percent(inputs.contingency_percent, "contingency_percent"),
        to_decimal(inputs.contingency_amount, "contingency_amount"),
    )

    fixed = (
        inputs.trainer_po_value,
        inputs.lab_po_value,
        inputs.course_material,
        inputs.royalty_charges,
        inputs.travel_charges,
        inputs.accommodation,
        inputs.per_diem,
        inputs.local_conveyance,
    )
    total_costs = sum((to_decimal(v) for v in fixed), ZERO) + marketing + contingency
    final_gp = tov - total_costs
    gp_percent = margin_percent(final_gp, tov) if tov > ZERO else prior_gp_percent

    return GrossProfitResult(
        marketing_charges_amount=marketing,
        contingency_amount=contingency,
        total_costs=total_costs,
        final_gp=final_gp,
        gp_percent=gp_percent,
    )
