"""
Config -> Engine Bridges.

Functions that convert a DealflowConfig into the policy objects the pure
engines accept.  They live here (the producer) because engines must never
import dealflow_config.

Usage:
    from dealflow_config.bridges import build_margin_bands

    config = get_active_config()
    bands = build_margin_bands(config)
"""

from __future__ import annotations

from dealflow_config.schema import DealflowConfig
from dealflow_engines import (
    AgingEdges,
    GstType,
    MarginBands,
    RevenueBands,
    WithholdingRates,
)


def build_margin_bands(config: DealflowConfig) -> MarginBands:
    return MarginBands(lower=config.margin.lower_percent, upper=config.margin.upper_percent)


def build_revenue_bands(config: DealflowConfig) -> RevenueBands:
    return RevenueBands(
        below_under=config.margin.revenue_below_under,
        above_over=config.margin.revenue_above_over,
    )


def build_withholding_rates(config: DealflowConfig) -> WithholdingRates:
    policy = config.withholding
    return WithholdingRates(
        contractor_individual_percent=policy.contractor_individual_percent,
        contractor_other_percent=policy.contractor_other_percent,
        contractor_single_payment_threshold=policy.contractor_single_payment_threshold,
        contractor_yearly_threshold=policy.contractor_yearly_threshold,
        professional_percent=policy.professional_percent,
        technical_percent=policy.technical_percent,
        professional_yearly_threshold=policy.professional_yearly_threshold,
        pan_absent_percent=policy.pan_absent_percent,
    )


def build_aging_edges(config: DealflowConfig) -> AgingEdges:
    first, second, third = config.aging.edges_days
    return AgingEdges(first=first, second=second, third=third)


def default_gst_type(config: DealflowConfig) -> GstType:
    return GstType(config.invoice.gst_type)
