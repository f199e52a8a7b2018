"""
Data models module.

Contains the managed position, range policy, holdings, oracle quotes,
fee records and the structured results of lifecycle operations.
"""

from .trading_mode import TradingMode
from .position import (
    Asset,
    PositionState,
    Token,
    Position,
    RangeConfiguration,
    HoldingsBalance,
    PriceQuote,
    FeeRecord,
)
from .results import (
    EventKind,
    AlertLevel,
    LifecycleEvent,
    CreatePositionResult,
    CollectFeesResult,
    ClosePositionResult,
    RebalanceResult,
    CompoundResult,
    WithdrawResult,
    PositionStatus,
)

__all__ = [
    # Trading mode
    "TradingMode",
    # Position models
    "Asset",
    "PositionState",
    "Token",
    "Position",
    "RangeConfiguration",
    "HoldingsBalance",
    "PriceQuote",
    "FeeRecord",
    # Results
    "EventKind",
    "AlertLevel",
    "LifecycleEvent",
    "CreatePositionResult",
    "CollectFeesResult",
    "ClosePositionResult",
    "RebalanceResult",
    "CompoundResult",
    "WithdrawResult",
    "PositionStatus",
]
