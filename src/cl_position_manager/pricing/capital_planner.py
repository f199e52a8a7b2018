"""
Capital planning for a weekly fee target.

Projects base APR, effective APR and required capital across conservative,
moderate and optimistic views of a pool's volume and active liquidity.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List

from .yield_math import (
    base_fee_apr,
    concentration_factor,
    effective_apr,
    required_capital,
)

logger = logging.getLogger(__name__)

WEEKS_PER_YEAR = Decimal('52')

# (volume multiplier, liquidity multiplier)
SCENARIO_MULTIPLIERS = {
    "conservative": (Decimal('0.7'), Decimal('1.3')),
    "moderate": (Decimal('1'), Decimal('1')),
    "optimistic": (Decimal('1.3'), Decimal('0.7')),
}


@dataclass
class PoolSnapshot:
    """Observed pool activity used for planning."""

    daily_volume_usd: Decimal
    active_liquidity_usd: Decimal
    fee_tier: int

    def validate(self) -> None:
        if self.daily_volume_usd < 0:
            raise ValueError("Daily volume cannot be negative")
        if self.active_liquidity_usd <= 0:
            raise ValueError("Active liquidity must be positive")
        if self.fee_tier <= 0:
            raise ValueError("Fee tier must be positive")


@dataclass
class TokenAllocation:
    """50/50 split of capital between the two position tokens."""

    amount_a: Decimal
    value_a_usd: Decimal
    amount_b: Decimal
    value_b_usd: Decimal

    def to_dict(self) -> dict:
        return {
            "amount_a": str(self.amount_a),
            "value_a_usd": str(self.value_a_usd),
            "amount_b": str(self.amount_b),
            "value_b_usd": str(self.value_b_usd)
        }


@dataclass
class CapitalScenario:
    """Capital requirement under one market scenario."""

    name: str
    daily_volume_usd: Decimal
    active_liquidity_usd: Decimal
    base_apr: Decimal
    concentration_factor: Decimal
    effective_apr: Decimal
    required_capital_usd: Decimal

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "daily_volume_usd": str(self.daily_volume_usd),
            "active_liquidity_usd": str(self.active_liquidity_usd),
            "base_apr": str(self.base_apr),
            "concentration_factor": str(self.concentration_factor),
            "effective_apr": str(self.effective_apr),
            "required_capital_usd": str(self.required_capital_usd)
        }


class CapitalPlanner:
    """Sizes a position so its fees meet a weekly USD target."""

    def __init__(self, target_weekly_fees: Decimal, range_percent: Decimal):
        """
        Initialize the planner.

        Args:
            target_weekly_fees: Fee income goal per week, in USD
            range_percent: Half-width of the planned range in percent
        """
        if target_weekly_fees <= 0:
            raise ValueError("Weekly fee target must be positive")

        self.target_weekly_fees = Decimal(target_weekly_fees)
        self.range_percent = Decimal(range_percent)

    @property
    def target_annual_fees(self) -> Decimal:
        return self.target_weekly_fees * WEEKS_PER_YEAR

    def scenario(
        self,
        name: str,
        daily_volume_usd: Decimal,
        active_liquidity_usd: Decimal,
        fee_tier: int
    ) -> CapitalScenario:
        """Capital requirement for one volume/liquidity pair."""
        base = base_fee_apr(daily_volume_usd, fee_tier, active_liquidity_usd)
        factor = concentration_factor(self.range_percent)
        effective = effective_apr(base, factor)

        return CapitalScenario(
            name=name,
            daily_volume_usd=Decimal(daily_volume_usd),
            active_liquidity_usd=Decimal(active_liquidity_usd),
            base_apr=base,
            concentration_factor=factor,
            effective_apr=effective,
            required_capital_usd=required_capital(self.target_annual_fees, effective)
        )

    def plan(self, snapshot: PoolSnapshot) -> List[CapitalScenario]:
        """
        Conservative, moderate and optimistic capital requirements.

        Args:
            snapshot: Observed volume and active liquidity

        Returns:
            Scenarios ordered from most to least capital required
        """
        snapshot.validate()

        scenarios = []
        for name, (volume_mult, liquidity_mult) in SCENARIO_MULTIPLIERS.items():
            scenario = self.scenario(
                name,
                snapshot.daily_volume_usd * volume_mult,
                snapshot.active_liquidity_usd * liquidity_mult,
                snapshot.fee_tier
            )
            logger.debug(
                f"{name}: base APR {scenario.base_apr:.4f}, "
                f"effective APR {scenario.effective_apr:.4f}, "
                f"capital ${scenario.required_capital_usd:,.0f}"
            )
            scenarios.append(scenario)

        return scenarios

    @staticmethod
    def allocate(total_capital_usd: Decimal, price_a_usd: Decimal) -> TokenAllocation:
        """
        Split capital 50/50 at the current price.

        Token B is the quote stablecoin and is valued at par.
        """
        if price_a_usd <= 0:
            raise ValueError("Token price must be positive")

        half = Decimal(total_capital_usd) / Decimal('2')
        return TokenAllocation(
            amount_a=half / Decimal(price_a_usd),
            value_a_usd=half,
            amount_b=half,
            value_b_usd=half
        )
