"""
Module: dealflow_kernel.db.types
Responsibility: Annotated type aliases and utility functions for money and
    percentage columns.  Centralizes precision and rounding so that every model,
    engine and service uses identical definitions.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/ and the engines.  MUST NOT import from any of those layers.

Invariants enforced:
    - No floats for money.  All monetary amounts use Decimal with explicit
      precision; ``to_decimal`` converts floats through ``str`` so binary
      artefacts never leak into stored values.
    - ``round_money`` is the ONLY sanctioned rounding function for money
      (ROUND_HALF_UP, 2 places by default).

Failure modes:
    - InvalidAmountError from ``to_decimal`` on non-numeric input or, when
      ``allow_negative`` is False, on negative input.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Annotated, Any

from sqlalchemy import Numeric, String

from dealflow_kernel.exceptions import InvalidAmountError

# Monetary amount: 38 digits total, 9 decimal places
Money = Annotated[Decimal, Numeric(38, 9)]

# Percentage (0-100 scale)
Percent = Annotated[Decimal, Numeric(9, 4)]

# Short business codes (DEAL-2026-0001, GKT26CH10001, ...)
BusinessCode = Annotated[str, String(40)]

# Status / enum literals
StatusLiteral = Annotated[str, String(40)]

# SHA-256 hash as hex string
PayloadHash = Annotated[str, String(64)]

MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP
ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(
    value: Any,
    field_name: str = "amount",
    *,
    allow_negative: bool = False,
    default: Decimal | None = ZERO,
) -> Decimal:
    """
    Coerce an inbound amount to Decimal.

    None maps to ``default`` (zero unless overridden).  Floats are converted
    through ``str``.  Raises InvalidAmountError for non-numeric values, NaN or
    infinity, and for negatives unless ``allow_negative``.
    """
    if value is None:
        if default is None:
            raise InvalidAmountError(field_name, value, "value is required")
        return default
    if isinstance(value, bool):
        raise InvalidAmountError(field_name, value, "boolean is not an amount")
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise InvalidAmountError(field_name, value, "not a number") from exc
    if not result.is_finite():
        raise InvalidAmountError(field_name, value, "not a finite number")
    if result < 0 and not allow_negative:
        raise InvalidAmountError(field_name, value, "must not be negative")
    return result


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the given number of decimal places.

    This is the ONLY sanctioned rounding function for money.
    """
    quantize_str = "0." + "0" * decimal_places if decimal_places > 0 else "1"
    return value.quantize(Decimal(quantize_str), rounding=rounding)


def percent_of(amount: Decimal, percent: Decimal) -> Decimal:
    """``amount * percent / 100`` rounded to money precision."""
    return round_money(amount * percent / HUNDRED)
