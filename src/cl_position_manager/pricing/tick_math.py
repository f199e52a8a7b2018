"""
Tick and price conversions for concentrated-liquidity pools.

Pure functions, no state and no I/O. Prices are token B per token A in
the pool's raw units; a tick is one basis point of price (``1.0001``).
"""

import math
from decimal import Decimal
from enum import Enum
from typing import Tuple, Union

from ..core.errors import InvalidRangeError

Q96 = 1 << 96

TICK_BASE = 1.0001
MIN_TICK = -887272
MAX_TICK = 887272

# Uniswap V3 fee tier -> tick spacing
FEE_TIER_TICK_SPACING = {
    100: 1,
    500: 10,
    3000: 60,
    10000: 200,
}

Number = Union[int, float, Decimal]


class Rounding(Enum):
    """Which way to align a tick to the spacing grid."""
    DOWN = "down"
    UP = "up"


def price_to_tick(price: Number) -> int:
    """
    Convert a price to the tick at or below it.

    Args:
        price: Positive price

    Returns:
        ``floor(log(price) / log(1.0001))``
    """
    if price <= 0:
        raise InvalidRangeError(f"Price must be positive, got {price}")
    return int(math.floor(math.log(float(price)) / math.log(TICK_BASE)))


def tick_to_price(tick: int) -> Decimal:
    """Convert a tick to its price."""
    return Decimal(str(TICK_BASE ** tick))


def tick_to_sqrt_price_x96(tick: int) -> int:
    """Convert a tick to sqrtPriceX96 (Q64.96 fixed point)."""
    return int(math.sqrt(TICK_BASE ** tick) * Q96)


def sqrt_price_x96_to_tick(sqrt_price_x96: int) -> int:
    """Convert sqrtPriceX96 to the tick at or below it."""
    price = (sqrt_price_x96 / Q96) ** 2
    if price <= 0:
        return MIN_TICK
    return int(math.floor(math.log(price) / math.log(TICK_BASE)))


def round_to_spacing(tick: int, spacing: int, direction: Rounding) -> int:
    """
    Align a tick to a multiple of the spacing.

    Lower bounds round down (toward negative infinity), upper bounds round up.
    """
    if spacing <= 0:
        raise InvalidRangeError(f"Tick spacing must be positive, got {spacing}")

    if direction == Rounding.DOWN:
        # // floors toward -inf
        return (tick // spacing) * spacing

    remainder = tick % spacing
    if remainder == 0:
        return tick
    return tick + (spacing - remainder)


def min_usable_tick(spacing: int) -> int:
    return round_to_spacing(MIN_TICK, spacing, Rounding.UP)


def max_usable_tick(spacing: int) -> int:
    return round_to_spacing(MAX_TICK, spacing, Rounding.DOWN)


def range_to_ticks(current_tick: int, range_percent: Number, spacing: int) -> Tuple[int, int]:
    """
    Compute spacing-aligned bounds covering ``±range_percent`` around a tick.

    The tick deltas come from the log-price relationship, so ``+15%`` and
    ``-15%`` map to different tick distances.

    Args:
        current_tick: Pool tick to centre the range on
        range_percent: Half-width of the range in percent, ``0 < r < 100``
        spacing: Venue tick spacing

    Returns:
        ``(tick_lower, tick_upper)`` with ``tick_lower < current_tick < tick_upper``

    Raises:
        InvalidRangeError: If ``range_percent`` is outside ``(0, 100)``
            or the current tick is too close to the tick limits to be bracketed
    """
    percent = Decimal(str(range_percent))
    if not (Decimal('0') < percent < Decimal('100')):
        raise InvalidRangeError(
            f"Range percent must be between 0 and 100 (exclusive), got {range_percent}"
        )

    ratio = percent / Decimal('100')
    delta_lower = price_to_tick(Decimal('1') - ratio)
    delta_upper = int(math.ceil(math.log(float(Decimal('1') + ratio)) / math.log(TICK_BASE)))

    tick_lower = round_to_spacing(current_tick + delta_lower, spacing, Rounding.DOWN)
    tick_upper = round_to_spacing(current_tick + delta_upper, spacing, Rounding.UP)

    # Very narrow ranges can collapse onto the current tick
    if tick_lower >= current_tick:
        tick_lower = round_to_spacing(current_tick - 1, spacing, Rounding.DOWN)
    if tick_upper <= current_tick:
        tick_upper = round_to_spacing(current_tick + 1, spacing, Rounding.UP)

    tick_lower = max(tick_lower, min_usable_tick(spacing))
    tick_upper = min(tick_upper, max_usable_tick(spacing))
    if not tick_lower < current_tick < tick_upper:
        raise InvalidRangeError(
            f"No spacing-aligned range brackets tick {current_tick} within the usable ticks "
            f"[{min_usable_tick(spacing)}, {max_usable_tick(spacing)}]"
        )
    return tick_lower, tick_upper


def validate_ticks(tick_lower: int, tick_upper: int, spacing: int) -> None:
    """Raise InvalidRangeError unless the bounds are ordered and aligned."""
    if tick_lower >= tick_upper:
        raise InvalidRangeError(
            f"Lower tick {tick_lower} must be less than upper tick {tick_upper}"
        )
    if tick_lower % spacing or tick_upper % spacing:
        raise InvalidRangeError(
            f"Ticks {tick_lower}/{tick_upper} are not multiples of spacing {spacing}"
        )
    if tick_lower < MIN_TICK or tick_upper > MAX_TICK:
        raise InvalidRangeError("Ticks outside the valid range")


def price_range(current_price: Number, range_percent: Number) -> Tuple[Decimal, Decimal]:
    """Price bounds for ``±range_percent`` around a price."""
    price = Decimal(str(current_price))
    ratio = Decimal(str(range_percent)) / Decimal('100')
    return price * (Decimal('1') - ratio), price * (Decimal('1') + ratio)


def is_price_in_range(price: Number, lower: Number, upper: Number) -> bool:
    return Decimal(str(lower)) <= Decimal(str(price)) <= Decimal(str(upper))


def distance_to_bounds(price: Number, lower: Number, upper: Number) -> Tuple[Decimal, Decimal]:
    """
    Percentage distance from a price to each bound.

    Returns:
        ``(to_lower, to_upper)``; a negative value means the price is beyond that bound
    """
    current = Decimal(str(price))
    to_lower = (current - Decimal(str(lower))) / current * Decimal('100')
    to_upper = (Decimal(str(upper)) - current) / current * Decimal('100')
    return to_lower, to_upper


def liquidity_for_amounts(
    sqrt_price_x96: int,
    tick_lower: int,
    tick_upper: int,
    amount_a: int,
    amount_b: int,
) -> int:
    """
    Compute liquidity from token amounts at the current price.

    Token A is the pool's token0 (base), token B is token1 (quote).
    Below the range only A counts, above it only B, inside both bind.
    """
    sqrt_lower = tick_to_sqrt_price_x96(tick_lower)
    sqrt_upper = tick_to_sqrt_price_x96(tick_upper)

    if sqrt_price_x96 <= sqrt_lower:
        return _liquidity_for_amount_a(sqrt_lower, sqrt_upper, amount_a)
    if sqrt_price_x96 >= sqrt_upper:
        return _liquidity_for_amount_b(sqrt_lower, sqrt_upper, amount_b)

    liquidity_a = _liquidity_for_amount_a(sqrt_price_x96, sqrt_upper, amount_a)
    liquidity_b = _liquidity_for_amount_b(sqrt_lower, sqrt_price_x96, amount_b)
    return min(liquidity_a, liquidity_b)


def _liquidity_for_amount_a(sqrt_lower: int, sqrt_upper: int, amount_a: int) -> int:
    """L = amount_a * sqrtA * sqrtB / (sqrtB - sqrtA)"""
    if sqrt_upper <= sqrt_lower or amount_a <= 0:
        return 0
    return (amount_a * sqrt_lower * sqrt_upper) // ((sqrt_upper - sqrt_lower) * Q96)


def _liquidity_for_amount_b(sqrt_lower: int, sqrt_upper: int, amount_b: int) -> int:
    """L = amount_b * Q96 / (sqrtB - sqrtA)"""
    if sqrt_upper <= sqrt_lower or amount_b <= 0:
        return 0
    return (amount_b * Q96) // (sqrt_upper - sqrt_lower)


def amounts_for_liquidity(
    sqrt_price_x96: int,
    tick_lower: int,
    tick_upper: int,
    liquidity: int,
) -> Tuple[int, int]:
    """Token amounts represented by ``liquidity`` at the current price."""
    sqrt_lower = tick_to_sqrt_price_x96(tick_lower)
    sqrt_upper = tick_to_sqrt_price_x96(tick_upper)

    if sqrt_price_x96 <= sqrt_lower:
        return _amount_a_for_liquidity(sqrt_lower, sqrt_upper, liquidity), 0
    if sqrt_price_x96 >= sqrt_upper:
        return 0, _amount_b_for_liquidity(sqrt_lower, sqrt_upper, liquidity)

    return (
        _amount_a_for_liquidity(sqrt_price_x96, sqrt_upper, liquidity),
        _amount_b_for_liquidity(sqrt_lower, sqrt_price_x96, liquidity),
    )


def _amount_a_for_liquidity(sqrt_lower: int, sqrt_upper: int, liquidity: int) -> int:
    if sqrt_upper <= sqrt_lower or sqrt_lower == 0:
        return 0
    return (liquidity * Q96 * (sqrt_upper - sqrt_lower)) // (sqrt_lower * sqrt_upper)


def _amount_b_for_liquidity(sqrt_lower: int, sqrt_upper: int, liquidity: int) -> int:
    if sqrt_upper <= sqrt_lower:
        return 0
    return (liquidity * (sqrt_upper - sqrt_lower)) // Q96


def compute_optimal_amounts(
    sqrt_price_x96: int,
    tick_lower: int,
    tick_upper: int,
    amount_a_available: int,
    amount_b_available: int,
) -> Tuple[int, int]:
    """
    Largest deposit that fits the available balances at the position's ratio.

    Returns:
        ``(amount_a, amount_b)`` actually consumed by a mint
    """
    liquidity = liquidity_for_amounts(
        sqrt_price_x96, tick_lower, tick_upper, amount_a_available, amount_b_available
    )
    if liquidity == 0:
        return 0, 0
    amount_a, amount_b = amounts_for_liquidity(sqrt_price_x96, tick_lower, tick_upper, liquidity)
    # Integer rounding must never ask for more than is available
    return min(amount_a, amount_a_available), min(amount_b, amount_b_available)


def paired_amount(
    sqrt_price_x96: int,
    tick_lower: int,
    tick_upper: int,
    amount: int,
    given_is_a: bool,
) -> int:
    """
    Amount of the other token needed to deposit all of ``amount``.

    Returns 0 when the current price is outside the range, where only one
    token can be deposited.
    """
    sqrt_lower = tick_to_sqrt_price_x96(tick_lower)
    sqrt_upper = tick_to_sqrt_price_x96(tick_upper)

    if sqrt_price_x96 <= sqrt_lower or sqrt_price_x96 >= sqrt_upper:
        return 0

    if given_is_a:
        liquidity = _liquidity_for_amount_a(sqrt_price_x96, sqrt_upper, amount)
        return _amount_b_for_liquidity(sqrt_lower, sqrt_price_x96, liquidity)

    liquidity = _liquidity_for_amount_b(sqrt_lower, sqrt_price_x96, amount)
    return _amount_a_for_liquidity(sqrt_price_x96, sqrt_upper, liquidity)
