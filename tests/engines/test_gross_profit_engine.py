"""Opportunity / program gross profit."""

from decimal import Decimal

from dealflow_engines.gross_profit import GrossProfitInput, compute_gross_profit


class TestGrossProfit:

    def test_percent_driven_charges(self):
        result = compute_gross_profit(
            inputs=GrossProfitInput(
                tov=Decimal("200000"),
                trainer_po_value=Decimal("80000"),
                course_material=Decimal("10000"),
                marketing_charges_percent=Decimal("5"),
                contingency_percent=Decimal("2.5"),
            ),
        )
        assert result.marketing_charges_amount == Decimal("10000.00")
        assert result.contingency_amount == Decimal("5000.00")
        assert result.total_costs == Decimal("105000.00")
        assert result.final_gp == Decimal("95000.00")
        assert result.gp_percent == Decimal("47.5000")

    def test_percent_overrides_stored_amount(self):
        result = compute_gross_profit(
            inputs=GrossProfitInput(
                tov=Decimal("1000"),
                marketing_charges_amount=Decimal("999"),
                marketing_charges_percent=Decimal("10"),
            ),
        )
        assert result.marketing_charges_amount == Decimal("100.00")

    def test_stored_amount_kept_without_percent(self):
        result = compute_gross_profit(
            inputs=GrossProfitInput(
                tov=Decimal("1000"),
                contingency_amount=Decimal("50"),
                contingency_percent=Decimal("0"),
            ),
        )
        assert result.contingency_amount == Decimal("50")
        assert result.final_gp == Decimal("950")

    def test_zero_tov_keeps_prior_percent(self):
        result = compute_gross_profit(
            inputs=GrossProfitInput(
                tov=Decimal("0"),
                per_diem=Decimal("100"),
                marketing_charges_percent=Decimal("10"),
            ),
            prior_gp_percent=Decimal("12.5000"),
        )
        assert result.marketing_charges_amount == Decimal("0")
        assert result.final_gp == Decimal("-100")
        assert result.gp_percent == Decimal("12.5000")

    def test_every_fixed_cost_counts(self):
        result = compute_gross_profit(
            inputs=GrossProfitInput(
                tov=Decimal("100"),
                trainer_po_value=Decimal("1"),
                lab_po_value=Decimal("2"),
                course_material=Decimal("3"),
                royalty_charges=Decimal("4"),
                travel_charges=Decimal("5"),
                accommodation=Decimal("6"),
                per_diem=Decimal("7"),
                local_conveyance=Decimal("8"),
            ),
        )
        assert result.total_costs == Decimal("36")
        assert result.final_gp == Decimal("64")
