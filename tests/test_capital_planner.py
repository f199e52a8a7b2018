"""
Unit tests for the capital planner.
"""

from decimal import Decimal

import pytest

from cl_position_manager.pricing.capital_planner import CapitalPlanner, PoolSnapshot


class TestCapitalPlanner:
    """Test cases for CapitalPlanner."""

    @pytest.fixture
    def planner(self):
        return CapitalPlanner(target_weekly_fees=Decimal('600'), range_percent=Decimal('15'))

    @pytest.fixture
    def snapshot(self):
        return PoolSnapshot(
            daily_volume_usd=Decimal('1002071'),
            active_liquidity_usd=Decimal('3546823'),
            fee_tier=3000
        )

    def test_annual_target(self, planner):
        assert planner.target_annual_fees == Decimal('31200')

    def test_plan_order(self, planner, snapshot):
        names = [s.name for s in planner.plan(snapshot)]
        assert names == ["conservative", "moderate", "optimistic"]

    def test_conservative_needs_most_capital(self, planner, snapshot):
        conservative, moderate, optimistic = planner.plan(snapshot)

        assert conservative.required_capital_usd > moderate.required_capital_usd
        assert moderate.required_capital_usd > optimistic.required_capital_usd

    def test_moderate_matches_observed_pool(self, planner, snapshot):
        moderate = planner.plan(snapshot)[1]

        assert moderate.daily_volume_usd == snapshot.daily_volume_usd
        assert moderate.active_liquidity_usd == snapshot.active_liquidity_usd
        assert float(moderate.base_apr) == pytest.approx(0.3094, rel=1e-3)
        assert float(moderate.concentration_factor) == pytest.approx(6.65, rel=1e-3)
        assert float(moderate.required_capital_usd) == pytest.approx(15128, rel=0.01)

    def test_scenario_multipliers(self, planner, snapshot):
        conservative, _, optimistic = planner.plan(snapshot)

        assert conservative.daily_volume_usd == snapshot.daily_volume_usd * Decimal('0.7')
        assert conservative.active_liquidity_usd == snapshot.active_liquidity_usd * Decimal('1.3')
        assert optimistic.daily_volume_usd == snapshot.daily_volume_usd * Decimal('1.3')
        assert optimistic.active_liquidity_usd == snapshot.active_liquidity_usd * Decimal('0.7')

    def test_effective_apr_is_base_times_factor(self, planner, snapshot):
        for scenario in planner.plan(snapshot):
            assert scenario.effective_apr == scenario.base_apr * scenario.concentration_factor

    def test_allocate_even_split(self):
        allocation = CapitalPlanner.allocate(Decimal('15000'), Decimal('60000'))

        assert allocation.value_a_usd == Decimal('7500')
        assert allocation.amount_b == Decimal('7500')
        assert allocation.amount_a == Decimal('0.125')

    def test_allocate_rejects_bad_price(self):
        with pytest.raises(ValueError):
            CapitalPlanner.allocate(Decimal('15000'), Decimal('0'))

    def test_rejects_empty_pool(self, planner):
        with pytest.raises(ValueError):
            planner.plan(PoolSnapshot(Decimal('1000'), Decimal('0'), 3000))

    def test_rejects_non_positive_target(self):
        with pytest.raises(ValueError):
            CapitalPlanner(Decimal('0'), Decimal('15'))

    def test_to_dict(self, planner, snapshot):
        data = planner.plan(snapshot)[0].to_dict()
        assert data["name"] == "conservative"
        assert Decimal(data["required_capital_usd"]) > 0
