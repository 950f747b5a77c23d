"""
Module: dealflow_engines.payables
Responsibility:
    Payable balance and status derivation.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - outstanding == adjusted - tds_withheld - paid.  With no withholding
      this is adjusted - paid; once TDS is recorded the outstanding amount
      is the TDS net payable less payments.
    - Status: Cancelled is sticky; hold always wins over release; released
      with nothing outstanding is Paid; released otherwise is Released;
      everything else is Pending.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from dealflow_kernel.db.types import ZERO, to_decimal
from dealflow_engines.tracer import traced_engine


class PayableStatus(str, Enum):
    PENDING = "Pending"
    ON_HOLD = "On Hold"
    RELEASED = "Released"
    PAID = "Paid"
    CANCELLED = "Cancelled"


@dataclass(frozen=True)
class PayableState:
    outstanding_amount: Decimal
    status: PayableStatus


def effective_adjusted_amount(adjusted: Decimal | None, approved_cost: Decimal) -> Decimal:
    """A zero (or missing) adjusted payable amount defaults to the approved cost."""
    adjusted = to_decimal(adjusted, "adjusted_payable_amount")
    if adjusted == ZERO:
        return to_decimal(approved_cost, "approved_cost")
    return adjusted


@traced_engine(
    "payable_status",
    "1.0",
    fingerprint_fields=("adjusted_amount", "tds_withheld", "paid_amount", "hold", "release"),
)
def derive_payable_state(
    *,
    adjusted_amount: Decimal,
    paid_amount: Decimal = ZERO,
    tds_withheld: Decimal = ZERO,
    hold: bool = False,
    release: bool = False,
    cancelled: bool = False,
) -> PayableState:
    """Recompute outstanding amount and status."""
    outstanding = (
        to_decimal(adjusted_amount, "adjusted_payable_amount")
        - to_decimal(tds_withheld, "tds_amount")
        - to_decimal(paid_amount, "paid_amount")
    )

    if cancelled:
        status = PayableStatus.CANCELLED
    elif hold:
        status = PayableStatus.ON_HOLD
    elif release and outstanding == ZERO:
        status = PayableStatus.PAID
    elif release:
        status = PayableStatus.RELEASED
    else:
        status = PayableStatus.PENDING

    return PayableState(outstanding_amount=outstanding, status=status)
