"""
Module: dealflow_engines.risk
Responsibility:
    Governance gate evaluation: risk level, loss-making flag and the
    director-approval requirement for a deal, and the duplicate-invoice
    rule.

Architecture position:
    Engines -- pure calculation layer.  An optional external risk scorer is
    injected by the caller.

Invariants enforced:
    - No external signal (scorer absent, failing, or returning an unknown
      level) means risk level Medium; evaluation never fails the save.
    - loss_making == director_required == (risk is High or margin is Below
      Threshold).
    - An invoice is a duplicate when more than one invoice (itself
      included) shares its client name and amount.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Protocol

from dealflow_kernel.logging_config import get_logger
from dealflow_engines.margin import MarginThresholdStatus
from dealflow_engines.tracer import traced_engine

logger = get_logger("engines.risk")


class RiskLevel(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


DEFAULT_RISK_LEVEL = RiskLevel.MEDIUM


class RiskScorer(Protocol):
    """External risk signal for a deal."""

    def score(
        self,
        gross_margin_percent: Decimal,
        threshold_status: MarginThresholdStatus,
        total_order_value: Decimal,
    ) -> str:
        ...


@dataclass(frozen=True)
class RiskAssessment:
    risk_level: RiskLevel
    loss_making: bool
    director_approval_required: bool
    source: str  # "scorer" or "default"


def _scored_level(
    scorer: RiskScorer | None,
    gross_margin_percent: Decimal,
    threshold_status: MarginThresholdStatus,
    total_order_value: Decimal,
) -> tuple[RiskLevel, str]:
    if scorer is None:
        return DEFAULT_RISK_LEVEL, "default"
    try:
        return (
            RiskLevel(scorer.score(gross_margin_percent, threshold_status, total_order_value)),
            "scorer",
        )
    except Exception as exc:
        logger.warning(
            "risk_scorer_fallback_used",
            extra={"reason": f"{type(exc).__name__}: {exc}"},
        )
        return DEFAULT_RISK_LEVEL, "default"


@traced_engine(
    "risk",
    "1.0",
    fingerprint_fields=("gross_margin_percent", "threshold_status", "total_order_value"),
)
def assess_deal_risk(
    *,
    gross_margin_percent: Decimal,
    threshold_status: MarginThresholdStatus,
    total_order_value: Decimal,
    scorer: RiskScorer | None = None,
) -> RiskAssessment:
    """Evaluate the governance flags for a deal."""
    status = MarginThresholdStatus(threshold_status)
    level, source = _scored_level(scorer, gross_margin_percent, status, total_order_value)
    flagged = level == RiskLevel.HIGH or status == MarginThresholdStatus.BELOW
    return RiskAssessment(
        risk_level=level,
        loss_making=flagged,
        director_approval_required=flagged,
        source=source,
    )


def is_duplicate_invoice(matching_invoice_count: int) -> bool:
    """``matching_invoice_count`` includes the invoice being checked."""
    return matching_invoice_count > 1
