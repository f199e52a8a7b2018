"""
Error taxonomy for the position lifecycle.

Every failure the manager can report is one of these classes. None of them
are retried or absorbed by the manager itself.
"""

from typing import Optional


class PositionManagerError(Exception):
    """Base class for all position manager errors."""


class InvalidRangeError(PositionManagerError, ValueError):
    """A range percent or tick bound is not acceptable."""


class InsufficientFundsError(PositionManagerError):
    """The caller's external balance cannot cover the requested amounts."""

    def __init__(self, asset: str, required: int, available: int):
        super().__init__(
            f"Insufficient {asset}: required {required}, available {available}"
        )
        self.asset = asset
        self.required = required
        self.available = available


class NoFundsError(PositionManagerError):
    """The manager holds no balance of either position token."""


class NoActivePositionError(PositionManagerError):
    """The operation requires an active position but the manager is empty."""


class PositionMismatchError(NoActivePositionError):
    """The caller referenced a position that is not the active one."""


class PositionAlreadyOpenError(PositionManagerError):
    """A new position was requested while one is still active."""


class UnauthorizedCallerError(PositionManagerError):
    """An owner-only operation was invoked by someone else."""


class ReentrantCallRejected(PositionManagerError):
    """Another lifecycle operation is already in flight."""


class OracleError(PositionManagerError):
    """The price oracle could not supply a trustworthy quote."""


class StaleOracleError(OracleError):
    """The latest quote is older than the staleness bound."""


class InvalidOracleValueError(OracleError):
    """The latest quote carries a non-positive value."""


class InvalidOracleTimestampError(OracleError):
    """The latest quote has a timezone-naive or future observation time."""


class VenueError(PositionManagerError):
    """Opaque failure from the external liquidity venue."""


class NoFeesToCompoundError(PositionManagerError):
    """Compounding found nothing to reinvest."""


class PartialLifecycleError(PositionManagerError):
    """
    A multi-step operation destroyed the position but could not recreate it.

    The manager is left empty and the freed funds sit in holdings, ready to
    be redeployed with ``add_liquidity_from_holdings``.
    """

    def __init__(
        self,
        message: str,
        closed_position_id: int,
        freed_amount_a: int,
        freed_amount_b: int,
        cause: Optional[BaseException] = None
    ):
        super().__init__(message)
        self.closed_position_id = closed_position_id
        self.freed_amount_a = freed_amount_a
        self.freed_amount_b = freed_amount_b
        self.cause = cause


class RebalanceIncompleteError(PartialLifecycleError):
    """Rebalance closed the position but failed to open the new one."""


class CompoundIncompleteError(PartialLifecycleError):
    """Compound closed the position but failed to mint the re-centred one."""
