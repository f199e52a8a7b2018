"""
Core engine components.

Contains the error taxonomy and the interfaces the lifecycle manager
depends on: liquidity venue, price oracle, custody ledger and state store.
Import the interfaces from their submodules.
"""

from .errors import (
    PositionManagerError,
    InvalidRangeError,
    InsufficientFundsError,
    NoFundsError,
    NoActivePositionError,
    PositionMismatchError,
    PositionAlreadyOpenError,
    UnauthorizedCallerError,
    ReentrantCallRejected,
    OracleError,
    StaleOracleError,
    InvalidOracleValueError,
    InvalidOracleTimestampError,
    VenueError,
    NoFeesToCompoundError,
    PartialLifecycleError,
    RebalanceIncompleteError,
    CompoundIncompleteError,
)

__all__ = [
    "PositionManagerError",
    "InvalidRangeError",
    "InsufficientFundsError",
    "NoFundsError",
    "NoActivePositionError",
    "PositionMismatchError",
    "PositionAlreadyOpenError",
    "UnauthorizedCallerError",
    "ReentrantCallRejected",
    "OracleError",
    "StaleOracleError",
    "InvalidOracleValueError",
    "InvalidOracleTimestampError",
    "VenueError",
    "NoFeesToCompoundError",
    "PartialLifecycleError",
    "RebalanceIncompleteError",
    "CompoundIncompleteError",
]
