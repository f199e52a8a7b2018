"""
Liquidity venue interface.

The venue owns tick and fee-growth accounting; the manager only consumes
these primitives. Implementations translate, they do not decide.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Tuple

from nautilus_trader.model.identifiers import Venue

from ..models.position import Position


@dataclass
class MintReceipt:
    """What the venue reports after opening a position."""

    position_id: int
    liquidity: int
    used_a: int
    used_b: int


@dataclass
class IncreaseReceipt:
    """What the venue reports after adding liquidity to a position."""

    liquidity: int
    used_a: int
    used_b: int


class LiquidityVenue(ABC):
    """
    Narrow capability set over a concentrated-liquidity venue.

    All token amounts are integers in minor units, with token A the pool's
    base asset and token B its quote asset. Every method raises
    ``VenueError`` on failure and is attempted exactly once.
    """

    def __init__(self, venue: Venue, config: Dict[str, Any]):
        """
        Initialize the venue adapter.

        Args:
            venue: Venue identifier
            config: Adapter configuration
        """
        self.venue = venue
        self.config = config

    @abstractmethod
    async def open_position(
        self,
        amount_a_desired: int,
        amount_b_desired: int,
        tick_lower: int,
        tick_upper: int
    ) -> MintReceipt:
        """
        Mint a new position from the manager's holdings.

        Args:
            amount_a_desired: Maximum token A to deposit
            amount_b_desired: Maximum token B to deposit
            tick_lower: Lower tick bound
            tick_upper: Upper tick bound

        Returns:
            Position identifier, liquidity and the amounts actually used
        """
        pass

    @abstractmethod
    async def increase_liquidity(
        self,
        position_id: int,
        amount_a_desired: int,
        amount_b_desired: int
    ) -> IncreaseReceipt:
        """Add liquidity to an existing position at its own range."""
        pass

    @abstractmethod
    async def decrease_liquidity_to_zero(self, position_id: int) -> Tuple[int, int]:
        """
        Remove all liquidity; the freed tokens become owed to the position.

        Returns:
            ``(amount_a, amount_b)`` credited as owed
        """
        pass

    @abstractmethod
    async def collect(self, position_id: int, recipient: str) -> Tuple[int, int]:
        """
        Transfer everything owed by the position to ``recipient``.

        Returns:
            ``(amount_a, amount_b)`` transferred
        """
        pass

    @abstractmethod
    async def burn(self, position_id: int) -> None:
        """Destroy an empty position."""
        pass

    @abstractmethod
    async def current_tick(self) -> int:
        """Current pool tick."""
        pass

    @abstractmethod
    async def get_position(self, position_id: int) -> Position:
        """Read a position's bounds, liquidity and owed amounts."""
        pass

    def get_connection_status(self) -> Dict[str, Any]:
        return {"venue": str(self.venue)}
