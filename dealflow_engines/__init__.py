"""
Module: dealflow_engines
Responsibility:
    Package entrypoint that re-exports the pure derivation engines.  This
    is the canonical import surface for dealflow_modules and
    dealflow_services.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import dealflow_kernel (db.types, exceptions, logging_config).
    MUST NOT import dealflow_config, dealflow_modules or dealflow_services.

Invariants enforced:
    - Purity: engines never read a clock.  ``as_of`` dates are parameters.
    - Decimal-only arithmetic; money is rounded only through round_money.
    - Determinism: identical inputs always produce identical outputs.
    - Pluggable calculators (invoice tax, risk scorer, service classifier)
      never fail a derivation: errors fall back to the deterministic rule.

Audit relevance:
    Every engine invocation is traced via ``@traced_engine``, emitting
    DEALFLOW_ENGINE_TRACE records with engine name, version, input
    fingerprint and duration.
"""

from dealflow_engines.aging import (
    DEFAULT_EDGES,
    AgingBucket,
    AgingEdges,
    AgingResult,
    ReceivableStatus,
    classify_age,
    compute_aging,
)
from dealflow_engines.gross_profit import (
    GP_INPUT_FIELDS,
    GrossProfitInput,
    GrossProfitResult,
    compute_gross_profit,
)
from dealflow_engines.invoice_tax import (
    GstType,
    InvoiceTaxCalculator,
    InvoiceTaxResult,
    compute_invoice_tax,
)
from dealflow_engines.margin import (
    DEAL_COST_FIELDS,
    DEFAULT_BANDS,
    DEFAULT_REVENUE_BANDS,
    MarginBands,
    MarginResult,
    MarginThresholdStatus,
    RevenueBands,
    classify_by_revenue,
    classify_margin,
    compute_deal_margin,
)
from dealflow_engines.payables import (
    PayableState,
    PayableStatus,
    derive_payable_state,
    effective_adjusted_amount,
)
from dealflow_engines.risk import (
    DEFAULT_RISK_LEVEL,
    RiskAssessment,
    RiskLevel,
    RiskScorer,
    assess_deal_risk,
    is_duplicate_invoice,
)
from dealflow_engines.tracer import compute_input_fingerprint, traced_engine
from dealflow_engines.withholding import (
    DEFAULT_RATES,
    ComplianceStatus,
    NatureOfService,
    PayeeType,
    ServiceClassifier,
    TdsSection,
    ThresholdStatus,
    VendorType,
    WithholdingRates,
    WithholdingResult,
    compute_withholding,
    resolve_nature_of_service,
)

__all__ = [
    "DEAL_COST_FIELDS",
    "DEFAULT_BANDS",
    "DEFAULT_EDGES",
    "DEFAULT_RATES",
    "DEFAULT_REVENUE_BANDS",
    "DEFAULT_RISK_LEVEL",
    "GP_INPUT_FIELDS",
    "AgingBucket",
    "AgingEdges",
    "AgingResult",
    "ComplianceStatus",
    "GrossProfitInput",
    "GrossProfitResult",
    "GstType",
    "InvoiceTaxCalculator",
    "InvoiceTaxResult",
    "MarginBands",
    "MarginResult",
    "MarginThresholdStatus",
    "NatureOfService",
    "PayableState",
    "PayableStatus",
    "PayeeType",
    "ReceivableStatus",
    "RevenueBands",
    "RiskAssessment",
    "RiskLevel",
    "RiskScorer",
    "ServiceClassifier",
    "TdsSection",
    "ThresholdStatus",
    "VendorType",
    "WithholdingRates",
    "WithholdingResult",
    "assess_deal_risk",
    "classify_age",
    "classify_by_revenue",
    "classify_margin",
    "compute_aging",
    "compute_deal_margin",
    "compute_gross_profit",
    "compute_input_fingerprint",
    "compute_invoice_tax",
    "compute_withholding",
    "derive_payable_state",
    "effective_adjusted_amount",
    "is_duplicate_invoice",
    "resolve_nature_of_service",
    "traced_engine",
]
