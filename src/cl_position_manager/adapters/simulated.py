"""
In-memory collaborators for paper trading and tests.

The simulated venue keeps real tick/liquidity accounting (same Q64.96 math
as the pool) against a simulated token ledger, so amounts moved by the
manager are consistent end to end.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from nautilus_trader.model.identifiers import Venue

from ..core.errors import VenueError
from ..core.ledger import AssetLedger
from ..core.oracle import Clock, PriceFeed, utc_now
from ..core.venue import IncreaseReceipt, LiquidityVenue, MintReceipt
from ..models.position import Asset, Position, PriceQuote
from ..pricing.tick_math import (
    amounts_for_liquidity,
    compute_optimal_amounts,
    liquidity_for_amounts,
    tick_to_sqrt_price_x96,
    validate_ticks,
)

logger = logging.getLogger(__name__)


class SimulatedLedger(AssetLedger):
    """Token balances kept in a dictionary keyed by holder then asset."""

    def __init__(self, account: str, balances: Optional[Dict[str, Dict[Asset, int]]] = None):
        super().__init__(account)
        self.balances: Dict[str, Dict[Asset, int]] = {}
        for holder, assets in (balances or {}).items():
            for asset, amount in assets.items():
                self.credit(holder, asset, amount)

    def credit(self, holder: str, asset: Asset, amount: int) -> None:
        """Add ``amount`` to a holder's balance."""
        holder_balances = self.balances.setdefault(holder, {})
        holder_balances[asset] = holder_balances.get(asset, 0) + amount

    def debit(self, holder: str, asset: Asset, amount: int) -> None:
        """Remove ``amount`` from a holder's balance."""
        available = self.balances.get(holder, {}).get(asset, 0)
        if amount > available:
            raise VenueError(
                f"Transfer of {amount} {asset.value} exceeds balance {available} of {holder}"
            )
        self.balances[holder][asset] = available - amount

    async def balance_of(self, asset: Asset, holder: str) -> int:
        return self.balances.get(holder, {}).get(asset, 0)

    async def transfer(self, asset: Asset, recipient: str, amount: int) -> None:
        self.debit(self.account, asset, amount)
        self.credit(recipient, asset, amount)

    async def transfer_from(self, asset: Asset, sender: str, amount: int) -> None:
        self.debit(sender, asset, amount)
        self.credit(self.account, asset, amount)


class SimulatedVenue(LiquidityVenue):
    """
    Paper concentrated-liquidity venue.

    Positions are minted from the manager account's ledger balances and
    collected back into the ledger; the pool itself is an unbounded reserve
    standing in for other liquidity providers. Fees never accrue on their
    own; call ``accrue_fees`` to credit them.
    """

    def __init__(
        self,
        ledger: SimulatedLedger,
        current_tick: int = 0,
        tick_spacing: int = 60,
        latency: float = 0.0,
        config: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize the simulated venue.

        Args:
            ledger: Ledger holding the manager's tokens
            current_tick: Starting pool tick
            tick_spacing: Pool tick spacing
            latency: Seconds each call waits before acting
            config: Extra adapter configuration
        """
        super().__init__(Venue("SIM"), config or {})
        self.ledger = ledger
        self.tick = current_tick
        self.tick_spacing = tick_spacing
        self.latency = latency
        self.positions: Dict[int, Position] = {}
        self._next_id = 1

    def set_current_tick(self, tick: int) -> None:
        """Move the simulated pool price."""
        logger.debug(f"Simulated pool tick {self.tick} -> {tick}")
        self.tick = tick

    def accrue_fees(self, position_id: int, amount_a: int, amount_b: int) -> None:
        """Credit trading fees owed to a position."""
        position = self._require(position_id)
        position.owed_amount_a += amount_a
        position.owed_amount_b += amount_b

    async def open_position(
        self,
        amount_a_desired: int,
        amount_b_desired: int,
        tick_lower: int,
        tick_upper: int
    ) -> MintReceipt:
        await asyncio.sleep(self.latency)

        try:
            validate_ticks(tick_lower, tick_upper, self.tick_spacing)
        except ValueError as e:
            raise VenueError(f"Mint rejected: {e}") from e

        liquidity, used_a, used_b = self._deposit(
            tick_lower, tick_upper, amount_a_desired, amount_b_desired
        )

        position_id = self._next_id
        self._next_id += 1
        self.positions[position_id] = Position(
            identifier=position_id,
            tick_lower=tick_lower,
            tick_upper=tick_upper,
            liquidity_amount=liquidity
        )

        logger.info(
            f"Simulated mint #{position_id} [{tick_lower}, {tick_upper}] "
            f"liquidity={liquidity} used=({used_a}, {used_b})"
        )
        return MintReceipt(position_id, liquidity, used_a, used_b)

    async def increase_liquidity(
        self,
        position_id: int,
        amount_a_desired: int,
        amount_b_desired: int
    ) -> IncreaseReceipt:
        await asyncio.sleep(self.latency)
        position = self._require(position_id)

        liquidity, used_a, used_b = self._deposit(
            position.tick_lower, position.tick_upper, amount_a_desired, amount_b_desired
        )
        position.liquidity_amount += liquidity
        return IncreaseReceipt(liquidity, used_a, used_b)

    async def decrease_liquidity_to_zero(self, position_id: int) -> Tuple[int, int]:
        await asyncio.sleep(self.latency)
        position = self._require(position_id)

        amount_a, amount_b = amounts_for_liquidity(
            tick_to_sqrt_price_x96(self.tick),
            position.tick_lower,
            position.tick_upper,
            position.liquidity_amount
        )
        position.liquidity_amount = 0
        position.owed_amount_a += amount_a
        position.owed_amount_b += amount_b
        return amount_a, amount_b

    async def collect(self, position_id: int, recipient: str) -> Tuple[int, int]:
        await asyncio.sleep(self.latency)
        position = self._require(position_id)

        amount_a, amount_b = position.owed_amount_a, position.owed_amount_b
        position.owed_amount_a = 0
        position.owed_amount_b = 0
        self.ledger.credit(recipient, Asset.TOKEN_A, amount_a)
        self.ledger.credit(recipient, Asset.TOKEN_B, amount_b)
        return amount_a, amount_b

    async def burn(self, position_id: int) -> None:
        await asyncio.sleep(self.latency)
        position = self._require(position_id)

        if position.liquidity_amount or position.owed_amount_a or position.owed_amount_b:
            raise VenueError(f"Position {position_id} is not cleared")
        del self.positions[position_id]

    async def current_tick(self) -> int:
        await asyncio.sleep(self.latency)
        return self.tick

    async def get_position(self, position_id: int) -> Position:
        await asyncio.sleep(self.latency)
        position = self._require(position_id)
        return Position(**position.to_dict())

    def _require(self, position_id: int) -> Position:
        position = self.positions.get(position_id)
        if position is None:
            raise VenueError(f"Unknown position {position_id}")
        return position

    def _deposit(
        self,
        tick_lower: int,
        tick_upper: int,
        amount_a_desired: int,
        amount_b_desired: int
    ) -> Tuple[int, int, int]:
        sqrt_price = tick_to_sqrt_price_x96(self.tick)
        used_a, used_b = compute_optimal_amounts(
            sqrt_price, tick_lower, tick_upper, amount_a_desired, amount_b_desired
        )
        liquidity = liquidity_for_amounts(sqrt_price, tick_lower, tick_upper, used_a, used_b)
        if liquidity == 0:
            raise VenueError("Deposit produces zero liquidity")

        account = self.ledger.account
        self.ledger.debit(account, Asset.TOKEN_A, used_a)
        self.ledger.debit(account, Asset.TOKEN_B, used_b)
        return liquidity, used_a, used_b


class StaticPriceFeed(PriceFeed):
    """Price feed returning a settable value."""

    def __init__(
        self,
        value: int,
        decimals: int = 8,
        observed_at: Optional[datetime] = None,
        clock: Optional[Clock] = None
    ):
        self.value = value
        self.decimals = decimals
        self.observed_at = observed_at
        self.clock = clock or utc_now
        self.calls = 0

    async def latest(self) -> PriceQuote:
        self.calls += 1
        return PriceQuote(
            value=self.value,
            observed_at=self.observed_at or self.clock(),
            decimals=self.decimals
        )
