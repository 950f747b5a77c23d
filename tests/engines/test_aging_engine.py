"""Receivable aging buckets and status precedence."""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from dealflow_engines.aging import (
    AgingBucket,
    AgingEdges,
    ReceivableStatus,
    classify_age,
    compute_aging,
)

DUE = date(2024, 1, 31)


class TestBuckets:

    @pytest.mark.parametrize(
        "days,bucket",
        [
            (-5, AgingBucket.CURRENT),
            (0, AgingBucket.CURRENT),
            (1, AgingBucket.DAYS_1_30),
            (30, AgingBucket.DAYS_1_30),
            (31, AgingBucket.DAYS_31_60),
            (60, AgingBucket.DAYS_31_60),
            (61, AgingBucket.DAYS_61_90),
            (90, AgingBucket.DAYS_61_90),
            (91, AgingBucket.OVER_90),
        ],
    )
    def test_edges(self, days, bucket):
        assert classify_age(days) == bucket

    def test_custom_edges(self):
        assert classify_age(20, AgingEdges(15, 45, 75)) == AgingBucket.DAYS_31_60

    @pytest.mark.parametrize("edges", [(0, 60, 90), (30, 30, 90), (30, 60, 45)])
    def test_invalid_edges(self, edges):
        with pytest.raises(ValueError):
            AgingEdges(*edges)


class TestStatus:

    def test_overdue_45_days(self):
        result = compute_aging(
            due_date=DUE,
            as_of=DUE + timedelta(days=45),
            invoice_amount=Decimal("1180000"),
        )
        assert result.days_overdue == 45
        assert result.aging_bucket == AgingBucket.DAYS_31_60
        assert result.status == ReceivableStatus.OVERDUE
        assert result.outstanding_amount == Decimal("1180000")

    def test_pending_before_due(self):
        result = compute_aging(due_date=DUE, as_of=DUE, invoice_amount=Decimal("100"))
        assert result.status == ReceivableStatus.PENDING
        assert result.aging_bucket == AgingBucket.CURRENT

    def test_partially_paid_before_due(self):
        result = compute_aging(
            due_date=DUE, as_of=date(2024, 1, 15),
            invoice_amount=Decimal("100"), paid_amount=Decimal("40"),
        )
        assert result.status == ReceivableStatus.PARTIALLY_PAID
        assert result.outstanding_amount == Decimal("60")

    def test_overdue_beats_partially_paid(self):
        result = compute_aging(
            due_date=DUE, as_of=DUE + timedelta(days=1),
            invoice_amount=Decimal("100"), paid_amount=Decimal("40"),
        )
        assert result.status == ReceivableStatus.OVERDUE

    def test_paid_beats_overdue(self):
        result = compute_aging(
            due_date=DUE, as_of=DUE + timedelta(days=100),
            invoice_amount=Decimal("100"), paid_amount=Decimal("100"),
        )
        assert result.status == ReceivableStatus.PAID
        assert result.aging_bucket == AgingBucket.OVER_90

    def test_written_off_is_sticky(self):
        result = compute_aging(
            due_date=DUE, as_of=DUE, invoice_amount=Decimal("100"),
            paid_amount=Decimal("100"), written_off=True,
        )
        assert result.status == ReceivableStatus.WRITTEN_OFF
