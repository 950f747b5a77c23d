"""
Property-based checks on the pure engines.

- Margin: contribution + total cost == TOV; status agrees with the bands.
- Gross profit: final GP + total costs == TOV.
- Withholding: TDS + net == payment; the rate never drops below the
  PAN-absent floor once a threshold is crossed without a PAN.
- Aging: same inputs, same result; buckets never move backwards in time.
"""

from datetime import date, timedelta
from decimal import Decimal

from hypothesis import given, settings
from hypothesis import strategies as st

from dealflow_engines.aging import AgingBucket, compute_aging
from dealflow_engines.gross_profit import GrossProfitInput, compute_gross_profit
from dealflow_engines.margin import (
    DEAL_COST_FIELDS,
    MarginThresholdStatus,
    compute_deal_margin,
)
from dealflow_engines.withholding import (
    NatureOfService,
    ThresholdStatus,
    VendorType,
    compute_withholding,
)

money = st.decimals(min_value=Decimal("0"), max_value=Decimal("10000000"), places=2)
positive_money = st.decimals(min_value=Decimal("0.01"), max_value=Decimal("10000000"), places=2)

BUCKET_ORDER = [
    AgingBucket.CURRENT,
    AgingBucket.DAYS_1_30,
    AgingBucket.DAYS_31_60,
    AgingBucket.DAYS_61_90,
    AgingBucket.OVER_90,
]


@given(tov=positive_money, costs=st.fixed_dictionaries({f: money for f in DEAL_COST_FIELDS}))
@settings(max_examples=200)
def test_margin_identity(tov, costs):
    result = compute_deal_margin(total_order_value=tov, costs=costs)

    assert result.contribution_margin + result.total_cost == tov
    assert result.break_even_value == result.total_cost
    if result.gross_margin_percent < Decimal("15"):
        assert result.threshold_status == MarginThresholdStatus.BELOW
    elif result.gross_margin_percent > Decimal("25"):
        assert result.threshold_status == MarginThresholdStatus.ABOVE
    else:
        assert result.threshold_status == MarginThresholdStatus.AT


@given(costs=st.fixed_dictionaries({f: money for f in DEAL_COST_FIELDS}))
def test_zero_tov_margin_percent_is_zero(costs):
    assert compute_deal_margin(total_order_value=Decimal("0"), costs=costs).gross_margin_percent == 0


@given(
    tov=money,
    trainer=money,
    lab=money,
    travel=money,
    marketing_percent=st.one_of(
        st.none(), st.decimals(min_value=Decimal("0"), max_value=Decimal("30"), places=2)
    ),
)
@settings(max_examples=200)
def test_gross_profit_identity(tov, trainer, lab, travel, marketing_percent):
    result = compute_gross_profit(inputs=GrossProfitInput(
        tov=tov,
        trainer_po_value=trainer,
        lab_po_value=lab,
        travel_charges=travel,
        marketing_charges_percent=marketing_percent,
    ))

    assert result.final_gp + result.total_costs == tov
    assert result.total_costs == trainer + lab + travel + result.marketing_charges_amount


@given(
    vendor_type=st.sampled_from(list(VendorType)),
    nature=st.sampled_from(list(NatureOfService)),
    payment=positive_money,
    yearly=money,
    pan_present=st.booleans(),
    override=st.booleans(),
)
@settings(max_examples=300)
def test_withholding_net_identity(vendor_type, nature, payment, yearly, pan_present, override):
    result = compute_withholding(
        vendor_type=vendor_type,
        nature_of_service=nature,
        payment_amount=payment,
        pan_present=pan_present,
        vendor_yearly_total=yearly,
        director_override=override,
    )

    assert result.tds_amount + result.net_payable_amount == payment
    assert Decimal("0") <= result.tds_amount <= payment
    if result.threshold_status == ThresholdStatus.BELOW:
        assert result.tds_amount == 0
    if not pan_present and not override and result.threshold_status == ThresholdStatus.ABOVE:
        assert result.applicable_percent >= Decimal("20")


@given(
    due=st.dates(min_value=date(2020, 1, 1), max_value=date(2030, 12, 31)),
    offset=st.integers(min_value=-400, max_value=400),
    amount=positive_money,
    paid_fraction=st.decimals(min_value=Decimal("0"), max_value=Decimal("1"), places=2),
)
@settings(max_examples=200)
def test_aging_is_deterministic(due, offset, amount, paid_fraction):
    paid = (amount * paid_fraction).quantize(Decimal("0.01"))
    as_of = due + timedelta(days=offset)

    first = compute_aging(due_date=due, as_of=as_of, invoice_amount=amount, paid_amount=paid)
    second = compute_aging(due_date=due, as_of=as_of, invoice_amount=amount, paid_amount=paid)

    assert first == second
    assert first.days_overdue == offset
    assert first.outstanding_amount == amount - paid


@given(
    due=st.dates(min_value=date(2020, 1, 1), max_value=date(2030, 12, 31)),
    earlier=st.integers(min_value=-200, max_value=200),
    gap=st.integers(min_value=0, max_value=200),
)
def test_aging_bucket_monotonic(due, earlier, gap):
    before = compute_aging(
        due_date=due, as_of=due + timedelta(days=earlier), invoice_amount=Decimal("100")
    )
    after = compute_aging(
        due_date=due, as_of=due + timedelta(days=earlier + gap), invoice_amount=Decimal("100")
    )
    assert BUCKET_ORDER.index(after.aging_bucket) >= BUCKET_ORDER.index(before.aging_bucket)
