"""
Structured results and events returned by lifecycle operations.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from .position import FeeRecord, HoldingsBalance, PositionState


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EventKind(Enum):
    """Kinds of lifecycle events emitted by the manager."""
    POSITION_CREATED = "position_created"
    LIQUIDITY_INCREASED = "liquidity_increased"
    FEES_COLLECTED = "fees_collected"
    POSITION_CLOSED = "position_closed"
    POSITION_REBALANCED = "position_rebalanced"
    FEES_COMPOUNDED = "fees_compounded"
    LIFECYCLE_DEGRADED = "lifecycle_degraded"
    EMERGENCY_WITHDRAWAL = "emergency_withdrawal"
    RANGE_UPDATED = "range_updated"


class AlertLevel(Enum):
    """How close the current price is to leaving the position range."""
    NORMAL = "normal"
    WARNING = "warning"
    URGENT = "urgent"
    CRITICAL = "critical"


@dataclass(frozen=True)
class LifecycleEvent:
    """Append-only record of something the manager did."""

    kind: EventKind
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "data": self.data,
            "timestamp": self.timestamp.isoformat()
        }


@dataclass
class CreatePositionResult:
    """Outcome of opening a position (or topping up the active one)."""

    position_id: int
    tick_lower: int
    tick_upper: int
    liquidity: int
    used_a: int
    used_b: int
    refunded_a: int = 0
    refunded_b: int = 0

    def to_dict(self) -> dict:
        return {
            "position_id": self.position_id,
            "tick_lower": self.tick_lower,
            "tick_upper": self.tick_upper,
            "liquidity": self.liquidity,
            "used_a": self.used_a,
            "used_b": self.used_b,
            "refunded_a": self.refunded_a,
            "refunded_b": self.refunded_b
        }


@dataclass
class CollectFeesResult:
    """Fees pulled from the active position."""

    position_id: int
    fee_record: FeeRecord

    @property
    def amount_a(self) -> int:
        return self.fee_record.amount_a

    @property
    def amount_b(self) -> int:
        return self.fee_record.amount_b

    def to_dict(self) -> dict:
        return {
            "position_id": self.position_id,
            "fee_record": self.fee_record.to_dict()
        }


@dataclass
class ClosePositionResult:
    """Funds freed by draining and burning a position."""

    position_id: int
    amount_a: int
    amount_b: int

    def to_dict(self) -> dict:
        return {
            "position_id": self.position_id,
            "amount_a": self.amount_a,
            "amount_b": self.amount_b
        }


@dataclass
class RebalanceResult:
    """A completed close-then-recreate cycle."""

    closed: ClosePositionResult
    created: CreatePositionResult

    def to_dict(self) -> dict:
        return {
            "closed": self.closed.to_dict(),
            "created": self.created.to_dict()
        }


@dataclass
class CompoundResult:
    """Fees reinvested into a freshly centred position."""

    fee_record: FeeRecord
    price: Decimal
    prioritized_asset: str
    closed: ClosePositionResult
    created: CreatePositionResult

    def to_dict(self) -> dict:
        return {
            "fee_record": self.fee_record.to_dict(),
            "price": str(self.price),
            "prioritized_asset": self.prioritized_asset,
            "closed": self.closed.to_dict(),
            "created": self.created.to_dict()
        }


@dataclass
class WithdrawResult:
    """Amounts swept to the owner by an emergency withdrawal."""

    native_amount: int = 0
    amount_a: int = 0
    amount_b: int = 0

    @property
    def is_empty(self) -> bool:
        return self.native_amount == 0 and self.amount_a == 0 and self.amount_b == 0

    def to_dict(self) -> dict:
        return {
            "native_amount": self.native_amount,
            "amount_a": self.amount_a,
            "amount_b": self.amount_b
        }


@dataclass
class PositionStatus:
    """Read-only health snapshot of the manager and its position."""

    state: PositionState
    position_id: Optional[int]
    current_tick: int
    holdings: HoldingsBalance
    tick_lower: Optional[int] = None
    tick_upper: Optional[int] = None
    liquidity: int = 0
    in_range: bool = False
    distance_to_lower_pct: Optional[Decimal] = None
    distance_to_upper_pct: Optional[Decimal] = None
    alert_level: AlertLevel = AlertLevel.NORMAL
    timestamp: datetime = field(default_factory=_utcnow)

    @property
    def needs_rebalancing(self) -> bool:
        return self.state == PositionState.ACTIVE and not self.in_range

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "position_id": self.position_id,
            "current_tick": self.current_tick,
            "tick_lower": self.tick_lower,
            "tick_upper": self.tick_upper,
            "liquidity": self.liquidity,
            "in_range": self.in_range,
            "distance_to_lower_pct": (
                str(self.distance_to_lower_pct) if self.distance_to_lower_pct is not None else None
            ),
            "distance_to_upper_pct": (
                str(self.distance_to_upper_pct) if self.distance_to_upper_pct is not None else None
            ),
            "alert_level": self.alert_level.value,
            "needs_rebalancing": self.needs_rebalancing,
            "holdings": self.holdings.to_dict(),
            "timestamp": self.timestamp.isoformat()
        }
