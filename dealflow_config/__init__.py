"""
dealflow_config -- single public entrypoint for policy configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads YAML files or the
    environment.  Returns a frozen ``DealflowConfig``.

Architecture position:
    Configuration.  Sits above ``dealflow_kernel`` and
    ``dealflow_engines`` and below ``dealflow_modules`` /
    ``dealflow_services``.  Bridges translate the config into engine
    policy objects.

Invariants enforced:
    - Single entrypoint: all runtime config flows through get_active_config().
    - Deterministic: the same YAML always yields the same checksum.

Failure modes:
    - FileNotFoundError for a missing override file.
    - ValueError for out-of-range values or unknown sections.

Audit relevance:
    Every call emits a DEALFLOW_CONFIG_TRACE log record with the config id,
    version and checksum, tying each derivation to the policy that
    governed it.
"""

from __future__ import annotations

from pathlib import Path

from dealflow_config.loader import load_config
from dealflow_config.schema import (
    AgingPolicy,
    DealflowConfig,
    InvoicePolicy,
    MarginPolicy,
    OutboxPolicy,
    PayablePolicy,
    WithholdingPolicy,
)
from dealflow_kernel.logging_config import get_logger

_logger = get_logger("config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults.yaml"


def get_active_config(config_path: Path | None = None) -> DealflowConfig:
    """
    The ONLY public configuration entrypoint.

    Args:
        config_path: Override YAML file.  Defaults to the packaged
            defaults.yaml.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If validation fails.
    """
    path = config_path or DEFAULT_CONFIG_PATH
    config = load_config(path)

    _logger.info(
        "DEALFLOW_CONFIG_TRACE",
        extra={
            "trace_type": "DEALFLOW_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "source": str(path),
        },
    )
    return config


__all__ = [
    "AgingPolicy",
    "DEFAULT_CONFIG_PATH",
    "DealflowConfig",
    "InvoicePolicy",
    "MarginPolicy",
    "OutboxPolicy",
    "PayablePolicy",
    "WithholdingPolicy",
    "get_active_config",
]
