"""
Unit tests for tick/price math.
"""

from decimal import Decimal

import pytest

from cl_position_manager.core.errors import InvalidRangeError
from cl_position_manager.pricing.tick_math import (
    FEE_TIER_TICK_SPACING,
    MAX_TICK,
    MIN_TICK,
    Q96,
    Rounding,
    amounts_for_liquidity,
    compute_optimal_amounts,
    distance_to_bounds,
    is_price_in_range,
    liquidity_for_amounts,
    max_usable_tick,
    min_usable_tick,
    paired_amount,
    price_range,
    price_to_tick,
    range_to_ticks,
    round_to_spacing,
    tick_to_price,
    tick_to_sqrt_price_x96,
    validate_ticks,
)


class TestPriceToTick:
    """Test cases for price/tick conversion."""

    def test_unit_price_is_tick_zero(self):
        assert price_to_tick(1) == 0
        assert price_to_tick(Decimal('1')) == 0

    def test_floors_between_ticks(self):
        """A price between two ticks maps to the lower one."""
        assert price_to_tick(1.00005) == 0
        assert price_to_tick(0.99995) == -1

    def test_monotonic(self):
        prices = [0.01, 0.5, 0.99, 1, 1.5, 2, 100, 65000]
        ticks = [price_to_tick(p) for p in prices]
        assert ticks == sorted(ticks)

    @pytest.mark.parametrize("price", [0, -1, Decimal('-0.5')])
    def test_rejects_non_positive_price(self, price):
        with pytest.raises(InvalidRangeError):
            price_to_tick(price)

    def test_tick_to_price_inverts_roughly(self):
        price = tick_to_price(6932)
        assert float(price) == pytest.approx(2.0, rel=1e-3)
        assert price_to_tick(tick_to_price(-5000) * Decimal('1.00001')) == -5000

    def test_sqrt_price_at_tick_zero(self):
        assert tick_to_sqrt_price_x96(0) == Q96


class TestRoundToSpacing:
    """Test cases for spacing alignment."""

    @pytest.mark.parametrize("tick,spacing,direction,expected", [
        (0, 60, Rounding.DOWN, 0),
        (59, 60, Rounding.DOWN, 0),
        (-1, 60, Rounding.DOWN, -60),
        (-60, 60, Rounding.DOWN, -60),
        (1, 60, Rounding.UP, 60),
        (120, 60, Rounding.UP, 120),
        (-61, 60, Rounding.UP, -60),
        (-59, 10, Rounding.UP, -50),
        (7, 1, Rounding.DOWN, 7),
    ])
    def test_rounding(self, tick, spacing, direction, expected):
        assert round_to_spacing(tick, spacing, direction) == expected

    def test_rejects_bad_spacing(self):
        with pytest.raises(InvalidRangeError):
            round_to_spacing(10, 0, Rounding.DOWN)

    def test_usable_ticks_are_aligned(self):
        for spacing in FEE_TIER_TICK_SPACING.values():
            assert min_usable_tick(spacing) % spacing == 0
            assert max_usable_tick(spacing) % spacing == 0
            assert MIN_TICK <= min_usable_tick(spacing) < max_usable_tick(spacing) <= MAX_TICK


class TestRangeToTicks:
    """Test cases for range computation."""

    @pytest.mark.parametrize("spacing", [1, 10, 60, 200])
    @pytest.mark.parametrize("current_tick", [-880000, -200000, -73, -1, 0, 7, 60, 199999, 880000])
    @pytest.mark.parametrize("range_percent", ["0.001", "0.5", "1", "5", "15", "50", "99.9"])
    def test_bounds_are_strict_and_aligned(self, spacing, current_tick, range_percent):
        """Bounds always bracket the current tick and sit on the spacing grid."""
        lower, upper = range_to_ticks(current_tick, Decimal(range_percent), spacing)

        assert lower < current_tick < upper
        assert lower % spacing == 0
        assert upper % spacing == 0

    @pytest.mark.parametrize("current_tick", [887250, 887271, -887250])
    def test_tick_limits_cannot_be_bracketed(self, current_tick):
        with pytest.raises(InvalidRangeError):
            range_to_ticks(current_tick, 15, 60)

    def test_near_upper_limit_clamps(self):
        lower, upper = range_to_ticks(887000, 15, 60)

        assert upper == max_usable_tick(60)
        assert lower < 887000 < upper

    def test_asymmetric_tick_deltas(self):
        """+r% and -r% are different tick distances in log-price space."""
        lower, upper = range_to_ticks(0, 15, 1)

        assert lower == -1626
        assert upper == 1398
        assert abs(lower) > abs(upper)

    def test_rounds_outward_to_spacing(self):
        assert range_to_ticks(0, 15, 60) == (-1680, 1440)

    def test_range_covers_requested_prices(self):
        lower, upper = range_to_ticks(1000, 10, 60)
        centre = tick_to_price(1000)

        assert tick_to_price(lower) <= centre * Decimal('0.9')
        assert tick_to_price(upper) >= centre * Decimal('1.1')

    @pytest.mark.parametrize("range_percent", [0, -5, 100, 150])
    def test_rejects_invalid_percent(self, range_percent):
        with pytest.raises(InvalidRangeError):
            range_to_ticks(0, range_percent, 60)

    def test_invalid_range_is_a_value_error(self):
        with pytest.raises(ValueError):
            range_to_ticks(0, 0, 60)


class TestValidateTicks:
    """Test cases for tick validation."""

    def test_valid(self):
        validate_ticks(-600, 600, 60)

    @pytest.mark.parametrize("lower,upper", [(600, -600), (60, 60), (-590, 600), (-600, 610)])
    def test_invalid(self, lower, upper):
        with pytest.raises(InvalidRangeError):
            validate_ticks(lower, upper, 60)


class TestPriceHelpers:
    """Test cases for price range helpers."""

    def test_price_range(self):
        lower, upper = price_range(60000, 15)
        assert lower == Decimal('51000')
        assert upper == Decimal('69000')

    def test_is_price_in_range(self):
        assert is_price_in_range(100, 90, 110)
        assert is_price_in_range(90, 90, 110)
        assert not is_price_in_range(111, 90, 110)

    def test_distance_to_bounds(self):
        to_lower, to_upper = distance_to_bounds(100, 90, 110)
        assert to_lower == Decimal('10')
        assert to_upper == Decimal('10')

    def test_distance_negative_outside_range(self):
        to_lower, to_upper = distance_to_bounds(120, 90, 110)
        assert to_upper < 0
        assert to_lower > 0


class TestLiquidityMath:
    """Test cases for amount/liquidity conversion."""

    def test_in_range_uses_both_tokens(self):
        sqrt_price = tick_to_sqrt_price_x96(0)
        liquidity = liquidity_for_amounts(sqrt_price, -600, 600, 10 ** 18, 10 ** 18)
        amount_a, amount_b = amounts_for_liquidity(sqrt_price, -600, 600, liquidity)

        assert liquidity > 0
        assert 0 < amount_a <= 10 ** 18
        assert 0 < amount_b <= 10 ** 18

    def test_below_range_only_token_a(self):
        sqrt_price = tick_to_sqrt_price_x96(-1200)
        liquidity = liquidity_for_amounts(sqrt_price, -600, 600, 10 ** 18, 10 ** 18)
        amount_a, amount_b = amounts_for_liquidity(sqrt_price, -600, 600, liquidity)

        assert amount_a > 0
        assert amount_b == 0

    def test_above_range_only_token_b(self):
        sqrt_price = tick_to_sqrt_price_x96(1200)
        amount_a, amount_b = compute_optimal_amounts(sqrt_price, -600, 600, 10 ** 18, 10 ** 18)

        assert amount_a == 0
        assert 0 < amount_b <= 10 ** 18

    def test_optimal_amounts_never_exceed_available(self):
        sqrt_price = tick_to_sqrt_price_x96(120)
        amount_a, amount_b = compute_optimal_amounts(sqrt_price, -600, 600, 5 * 10 ** 17, 10 ** 18)

        assert amount_a <= 5 * 10 ** 17
        assert amount_b <= 10 ** 18
        # The scarcer side is used almost entirely
        assert amount_a > 5 * 10 ** 17 * 0.999 or amount_b > 10 ** 18 * 0.999

    def test_paired_amount_matches_pool_ratio(self):
        sqrt_price = tick_to_sqrt_price_x96(0)
        needed_b = paired_amount(sqrt_price, -600, 600, 10 ** 18, True)
        amount_a, amount_b = compute_optimal_amounts(sqrt_price, -600, 600, 10 ** 18, needed_b)

        assert needed_b > 0
        assert amount_a == pytest.approx(10 ** 18, rel=1e-9)
        assert amount_b == pytest.approx(needed_b, rel=1e-9)

    def test_paired_amount_outside_range_is_zero(self):
        sqrt_price = tick_to_sqrt_price_x96(1200)
        assert paired_amount(sqrt_price, -600, 600, 10 ** 18, True) == 0
