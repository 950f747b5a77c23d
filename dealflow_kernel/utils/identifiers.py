"""
Business identifier formats.

Pure formatting functions for the human-readable codes carried alongside
every entity's UUID.  Uniqueness comes from SequenceService counters; these
functions only render ``(period, sequence)`` into the published formats:

    DEAL-2026-0001      deal id
    PO-2026-0001        purchase order number
    INV-202610-0001     invoice number (year + month)
    VPR-2026-0001       vendor payout reference
    GKT26CH10001        opportunity ("Adhoc") id, sequence within month
    PRG-2026-0001       program code
    DR-2026-0001        deal request id
    BOC-2026-0001       bill of confirmation number

Sequence values wider than the padding are rendered in full, never
truncated.
"""

import random
from datetime import date, datetime

DEAL_PREFIX = "DEAL"
PO_PREFIX = "PO"
INVOICE_PREFIX = "INV"
VENDOR_PAYOUT_PREFIX = "VPR"
PROGRAM_PREFIX = "PRG"
DEAL_REQUEST_PREFIX = "DR"
BOC_PREFIX = "BOC"
OPPORTUNITY_PREFIX = "GKT"

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def yearly_code(prefix: str, year: int, sequence: int) -> str:
    """``<prefix>-<year>-<4-digit sequence>``."""
    return f"{prefix}-{year}-{sequence:04d}"


def invoice_number(on: date, sequence: int) -> str:
    """``INV-<year><2-digit month>-<4-digit sequence>``."""
    return f"{INVOICE_PREFIX}-{on.year}{on.month:02d}-{sequence:04d}"


def opportunity_code(on: date, sequence: int) -> str:
    """``GKT<yy>CH<mm><3-digit sequence>``, 12 characters below 1000 per month."""
    return f"{OPPORTUNITY_PREFIX}{on.year % 100:02d}CH{on.month:02d}{sequence:03d}"


# Counter names.  One counter per code family and period.

def yearly_counter(family: str, on: date) -> str:
    return f"{family}:{on.year}"


def monthly_counter(family: str, on: date) -> str:
    return f"{family}:{on.year}-{on.month:02d}"


# Opaque compliance references (not sequential)

def _epoch_ms(now: datetime) -> int:
    return int(now.timestamp() * 1000)


def irn_number(now: datetime, rng: random.Random | None = None) -> str:
    """Invoice reference number: ``IRN<epoch-ms><0..9999>``."""
    rng = rng or random.Random()
    return f"IRN{_epoch_ms(now)}{rng.randrange(10000)}"


def eway_bill_number(now: datetime, rng: random.Random | None = None) -> str:
    """E-way bill number: ``EWB<epoch-ms><0..99999>``."""
    rng = rng or random.Random()
    return f"EWB{_epoch_ms(now)}{rng.randrange(100000)}"


def po_status_number(now: datetime, rng: random.Random | None = None) -> str:
    """Placeholder PO number: ``PO-STATUS-<epoch-ms>-<9 base36 chars>``."""
    rng = rng or random.Random()
    suffix = "".join(rng.choice(_BASE36) for _ in range(9))
    return f"PO-STATUS-{_epoch_ms(now)}-{suffix}"
