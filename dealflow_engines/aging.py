"""
Module: dealflow_engines.aging
Responsibility:
    Receivable aging: days overdue, aging bucket, and collection status.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  ``as_of`` is always passed
    in; the engine never reads a clock.

Invariants enforced:
    - days_overdue == (as_of - due_date).days.
    - Bucket edges (defaults): <=0 Current, 1-30, 31-60, 61-90, >90.
    - Idempotent: the same (as_of, due_date, amounts) always gives the same
      bucket and status.
    - Status precedence: Written Off is sticky; then Paid (outstanding == 0);
      then Overdue (days_overdue > 0); then Partially Paid (paid > 0);
      otherwise Pending.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum

from dealflow_kernel.db.types import ZERO, to_decimal
from dealflow_engines.tracer import traced_engine


class AgingBucket(str, Enum):
    CURRENT = "Current"
    DAYS_1_30 = "1-30 Days"
    DAYS_31_60 = "31-60 Days"
    DAYS_61_90 = "61-90 Days"
    OVER_90 = "Over 90 Days"


class ReceivableStatus(str, Enum):
    PENDING = "Pending"
    PARTIALLY_PAID = "Partially Paid"
    PAID = "Paid"
    OVERDUE = "Overdue"
    WRITTEN_OFF = "Written Off"


@dataclass(frozen=True)
class AgingEdges:
    """Upper edges (inclusive, in days overdue) of the first three overdue buckets."""

    first: int = 30
    second: int = 60
    third: int = 90

    def __post_init__(self) -> None:
        if not 0 < self.first < self.second < self.third:
            raise ValueError("aging edges must be positive and strictly increasing")


DEFAULT_EDGES = AgingEdges()


@dataclass(frozen=True)
class AgingResult:
    days_overdue: int
    aging_bucket: AgingBucket
    outstanding_amount: Decimal
    status: ReceivableStatus


def days_overdue(due_date: date, as_of: date) -> int:
    return (as_of - due_date).days


def classify_age(days: int, edges: AgingEdges = DEFAULT_EDGES) -> AgingBucket:
    if days > edges.third:
        return AgingBucket.OVER_90
    if days > edges.second:
        return AgingBucket.DAYS_61_90
    if days > edges.first:
        return AgingBucket.DAYS_31_60
    if days > 0:
        return AgingBucket.DAYS_1_30
    return AgingBucket.CURRENT


@traced_engine(
    "aging",
    "1.0",
    fingerprint_fields=("due_date", "as_of", "invoice_amount", "paid_amount", "written_off"),
)
def compute_aging(
    *,
    due_date: date,
    as_of: date,
    invoice_amount: Decimal,
    paid_amount: Decimal = ZERO,
    written_off: bool = False,
    edges: AgingEdges = DEFAULT_EDGES,
) -> AgingResult:
    """Derive outstanding amount, aging bucket and status for a receivable."""
    amount = to_decimal(invoice_amount, "invoice_amount")
    paid = to_decimal(paid_amount, "paid_amount")
    outstanding = amount - paid
    days = days_overdue(due_date, as_of)
    bucket = classify_age(days, edges)

    if written_off:
        status = ReceivableStatus.WRITTEN_OFF
    elif outstanding == ZERO:
        status = ReceivableStatus.PAID
    elif days > 0:
        status = ReceivableStatus.OVERDUE
    elif paid > ZERO:
        status = ReceivableStatus.PARTIALLY_PAID
    else:
        status = ReceivableStatus.PENDING

    return AgingResult(
        days_overdue=days,
        aging_bucket=bucket,
        outstanding_amount=outstanding,
        status=status,
    )
