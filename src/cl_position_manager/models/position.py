"""
Data models for the managed liquidity position.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from ..core.errors import InvalidRangeError


class Asset(Enum):
    """Asset types the manager can custody."""
    NATIVE = "native"
    TOKEN_A = "token_a"
    TOKEN_B = "token_b"


class PositionState(Enum):
    """Externally visible lifecycle states."""
    EMPTY = "empty"
    ACTIVE = "active"


@dataclass
class Token:
    """ERC-20 token taking part in the position."""

    address: str
    symbol: str
    decimals: int

    def validate(self) -> None:
        """Validate token data."""
        if not self.address:
            raise ValueError("Token address cannot be empty")

        if not self.symbol:
            raise ValueError("Token symbol cannot be empty")

        if self.decimals < 0 or self.decimals > 18:
            raise ValueError("Token decimals must be between 0 and 18")

    def to_units(self, amount: int) -> Decimal:
        """Convert a minor-unit amount to whole tokens."""
        return Decimal(amount) / (Decimal(10) ** self.decimals)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "address": self.address,
            "symbol": self.symbol,
            "decimals": self.decimals
        }


@dataclass
class Position:
    """Snapshot of the single managed liquidity position as the venue reports it."""

    identifier: int
    tick_lower: int
    tick_upper: int
    liquidity_amount: int
    owed_amount_a: int = 0
    owed_amount_b: int = 0

    def validate(self, tick_spacing: int) -> None:
        """Validate tick bounds and amounts."""
        if self.tick_lower >= self.tick_upper:
            raise InvalidRangeError("Lower tick must be less than upper tick")

        if self.tick_lower % tick_spacing or self.tick_upper % tick_spacing:
            raise InvalidRangeError(
                f"Ticks must be multiples of tick spacing {tick_spacing}"
            )

        if self.liquidity_amount < 0:
            raise ValueError("Liquidity cannot be negative")

        if self.owed_amount_a < 0 or self.owed_amount_b < 0:
            raise ValueError("Owed amounts cannot be negative")

    def is_in_range(self, current_tick: int) -> bool:
        """Check if the position earns fees at the current tick."""
        return self.tick_lower <= current_tick < self.tick_upper

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "identifier": self.identifier,
            "tick_lower": self.tick_lower,
            "tick_upper": self.tick_upper,
            "liquidity_amount": self.liquidity_amount,
            "owed_amount_a": self.owed_amount_a,
            "owed_amount_b": self.owed_amount_b
        }


@dataclass
class RangeConfiguration:
    """Policy governing how new ranges are computed."""

    range_percent: Decimal
    tick_spacing: int

    def validate(self) -> None:
        """Validate range policy."""
        if not (Decimal('0') < self.range_percent < Decimal('100')):
            raise InvalidRangeError(
                f"Range percent must be between 0 and 100 (exclusive), got {self.range_percent}"
            )

        if self.tick_spacing <= 0:
            raise InvalidRangeError("Tick spacing must be positive")

    def to_dict(self) -> dict:
        return {
            "range_percent": str(self.range_percent),
            "tick_spacing": self.tick_spacing
        }


@dataclass
class HoldingsBalance:
    """Token balances held by the manager but not deployed as liquidity."""

    amount_a: int
    amount_b: int

    @property
    def is_empty(self) -> bool:
        return self.amount_a == 0 and self.amount_b == 0

    def to_dict(self) -> dict:
        return {"amount_a": self.amount_a, "amount_b": self.amount_b}


@dataclass
class PriceQuote:
    """
    A single oracle observation.

    ``value`` is the price of token A in the quote currency's minor units,
    scaled by ``10 ** decimals``.
    """

    value: int
    observed_at: datetime
    decimals: int = 8

    @property
    def price(self) -> Decimal:
        """Quote value as a decimal price."""
        return Decimal(self.value) / (Decimal(10) ** self.decimals)

    def to_dict(self) -> dict:
        return {
            "value": self.value,
            "decimals": self.decimals,
            "observed_at": self.observed_at.isoformat()
        }


@dataclass(frozen=True)
class FeeRecord:
    """Immutable record of fees collected or compounded."""

    amount_a: int
    amount_b: int
    usd_value: Optional[Decimal] = None
    source: str = "collect"
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_zero(self) -> bool:
        return self.amount_a == 0 and self.amount_b == 0

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp.isoformat(),
            "amount_a": self.amount_a,
            "amount_b": self.amount_b,
            "usd_value": str(self.usd_value) if self.usd_value is not None else None,
            "source": self.source
        }
