"""
Configuration Loader (``dealflow_config.loader``).

Responsibility
--------------
Reads a YAML policy file and parses it into the frozen dataclasses of
``dealflow_config.schema``.  This is internal tooling; runtime callers go
through ``dealflow_config.get_active_config()``.

Invariants enforced
-------------------
* Amounts and percents are parsed as ``Decimal`` from their string form,
  never through float.
* ``compute_checksum`` is a deterministic SHA-256 over the canonical JSON
  form of the parsed document.

Failure modes
-------------
* Missing file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Out-of-range values  -> ``ValueError`` from the schema dataclasses.
* Unknown top-level sections  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from dealflow_config.schema import (
    AgingPolicy,
    DealflowConfig,
    InvoicePolicy,
    MarginPolicy,
    OutboxPolicy,
    PayablePolicy,
    WithholdingPolicy,
)

_SECTIONS = frozenset(
    {"config_id", "version", "margin", "withholding", "aging", "invoice", "payables", "outbox"}
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file; an empty file yields an empty dict."""
    with open(path) as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """Deterministic SHA-256 of the parsed document."""
    canonical = json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _dec(section: dict[str, Any], key: str, default: Decimal) -> Decimal:
    value = section.get(key)
    if value is None:
        return default
    return Decimal(str(value))


def parse_margin(data: dict[str, Any]) -> MarginPolicy:
    base = MarginPolicy()
    bands = data.get("deal_request_revenue_bands") or {}
    return MarginPolicy(
        lower_percent=_dec(data, "lower_percent", base.lower_percent),
        upper_percent=_dec(data, "upper_percent", base.upper_percent),
        revenue_below_under=_dec(bands, "below_under", base.revenue_below_under),
        revenue_above_over=_dec(bands, "above_over", base.revenue_above_over),
    )


def parse_withholding(data: dict[str, Any]) -> WithholdingPolicy:
    base = WithholdingPolicy()
    return WithholdingPolicy(
        **{name: _dec(data, name, getattr(base, name)) for name in base.__dataclass_fields__}
    )


def parse_aging(data: dict[str, Any]) -> AgingPolicy:
    edges = data.get("edges_days")
    if edges is None:
        return AgingPolicy()
    return AgingPolicy(edges_days=tuple(int(e) for e in edges))


def parse_invoice(data: dict[str, Any]) -> InvoicePolicy:
    base = InvoicePolicy()
    return InvoicePolicy(
        gst_percent=_dec(data, "gst_percent", base.gst_percent),
        gst_type=str(data.get("gst_type", base.gst_type)),
        sac_code=str(data.get("sac_code", base.sac_code)),
        receivable_terms_days=int(data.get("receivable_terms_days", base.receivable_terms_days)),
    )


def parse_payables(data: dict[str, Any]) -> PayablePolicy:
    return PayablePolicy(
        payment_terms_days=int(data.get("payment_terms_days", PayablePolicy().payment_terms_days)),
    )


def parse_outbox(data: dict[str, Any]) -> OutboxPolicy:
    return OutboxPolicy(max_attempts=int(data.get("max_attempts", OutboxPolicy().max_attempts)))


def parse_config(data: dict[str, Any]) -> DealflowConfig:
    """Parse a loaded YAML document into a DealflowConfig."""
    unknown = set(data) - _SECTIONS
    if unknown:
        raise ValueError(f"Unknown configuration sections: {', '.join(sorted(unknown))}")

    return DealflowConfig(
        config_id=str(data.get("config_id", "dealflow-default")),
        version=int(data.get("version", 1)),
        checksum=compute_checksum(data),
        margin=parse_margin(data.get("margin") or {}),
        withholding=parse_withholding(data.get("withholding") or {}),
        aging=parse_aging(data.get("aging") or {}),
        invoice=parse_invoice(data.get("invoice") or {}),
        payables=parse_payables(data.get("payables") or {}),
        outbox=parse_outbox(data.get("outbox") or {}),
    )


def load_config(path: Path) -> DealflowConfig:
    return parse_config(load_yaml_file(path))
