"""
Concentrated-liquidity math.

Tick/price conversions, concentration and yield formulas, and capital
planning. Everything here is pure: no state, no I/O.
"""

from .tick_math import (
    Rounding,
    price_to_tick,
    round_to_spacing,
    range_to_ticks,
)
from .yield_math import (
    concentration_factor,
    base_fee_apr,
    effective_apr,
    required_capital,
    impermanent_loss,
)
from .capital_planner import CapitalPlanner, PoolSnapshot

__all__ = [
    "Rounding",
    "price_to_tick",
    "round_to_spacing",
    "range_to_ticks",
    "concentration_factor",
    "base_fee_apr",
    "effective_apr",
    "required_capital",
    "impermanent_loss",
    "CapitalPlanner",
    "PoolSnapshot",
]
