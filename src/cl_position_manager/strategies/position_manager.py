"""
Position Lifecycle Manager

Owns the single concentrated-liquidity position and drives it through its
lifecycle against a liquidity venue, a custody ledger and a price oracle.

Key Features:
- Create, top up, collect, close, rebalance and compound the position
- Emergency sweep of every custodied asset to the owner
- One lifecycle operation in flight at a time; concurrent calls are rejected
- Partial failures of rebalance/compound surface as a distinct degraded error
- Read-only status with range-exit alert levels
"""

import logging
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Callable, List, Optional, Tuple

from nautilus_trader.model.identifiers import StrategyId

from ..core.errors import (
    InsufficientFundsError,
    NoActivePositionError,
    NoFeesToCompoundError,
    NoFundsError,
    PositionAlreadyOpenError,
    PositionMismatchError,
    ReentrantCallRejected,
    UnauthorizedCallerError,
    VenueError,
    RebalanceIncompleteError,
    CompoundIncompleteError,
)
from ..core.ledger import AssetLedger
from ..core.oracle import OracleGateway
from ..core.state_store import JsonStateStore, PersistedState
from ..core.venue import LiquidityVenue
from ..models.position import (
    Asset,
    FeeRecord,
    HoldingsBalance,
    PositionState,
    RangeConfiguration,
    Token,
)
from ..models.results import (
    AlertLevel,
    ClosePositionResult,
    CollectFeesResult,
    CompoundResult,
    CreatePositionResult,
    EventKind,
    LifecycleEvent,
    PositionStatus,
    RebalanceResult,
    WithdrawResult,
)
from ..pricing.tick_math import (
    distance_to_bounds,
    paired_amount,
    range_to_ticks,
    tick_to_price,
    tick_to_sqrt_price_x96,
    validate_ticks,
)

logger = logging.getLogger(__name__)

DEFAULT_STRATEGY_ID = "CLPositionManager-001"


class PositionManager:
    """
    Lifecycle manager for one concentrated-liquidity position.

    State is either EMPTY (no position identifier held) or ACTIVE. All
    mutating operations run under a busy flag: a second call while one is
    in flight raises ``ReentrantCallRejected`` instead of waiting.

    Owner-only operations take the ``caller`` address explicitly.
    ``compound`` is deliberately open to any caller.
    """

    def __init__(
        self,
        owner: str,
        venue: LiquidityVenue,
        ledger: AssetLedger,
        oracle: OracleGateway,
        range_config: RangeConfiguration,
        token_a: Token,
        token_b: Token,
        state_store: Optional[JsonStateStore] = None,
        warning_percent: Decimal = Decimal('5'),
        urgent_percent: Decimal = Decimal('2'),
        strategy_id: Optional[StrategyId] = None
    ):
        """
        Initialize the position manager.

        Args:
            owner: Address allowed to call owner-only operations
            venue: Liquidity venue adapter
            ledger: Custody ledger for the manager's account
            oracle: Validating price gateway (token A priced in USD)
            range_config: Range policy for newly computed ranges
            token_a: Pool base token (token0)
            token_b: Pool quote token (token1), valued at par in USD
            state_store: Where to persist the position id and range policy
            warning_percent: Distance to a bound that raises a WARNING
            urgent_percent: Distance to a bound that raises an URGENT alert
            strategy_id: Identifier used in logs and events
        """
        range_config.validate()
        token_a.validate()
        token_b.validate()

        self.strategy_id = strategy_id or StrategyId(DEFAULT_STRATEGY_ID)
        self.owner = owner
        self.venue = venue
        self.ledger = ledger
        self.oracle = oracle
        self.range_config = range_config
        self.token_a = token_a
        self.token_b = token_b
        self.state_store = state_store
        self.warning_percent = warning_percent
        self.urgent_percent = urgent_percent

        self._position_id: Optional[int] = None
        self._busy_operation: Optional[str] = None

        self.events: List[LifecycleEvent] = []
        self.fee_records: List[FeeRecord] = []
        self.on_event_callback: Optional[Callable[[LifecycleEvent], None]] = None
        self.on_fee_record_callback: Optional[Callable[[FeeRecord], None]] = None

        logger.info(
            f"Initialized {self.strategy_id} for {token_a.symbol}/{token_b.symbol} "
            f"with ±{range_config.range_percent}% ranges"
        )

    @property
    def state(self) -> PositionState:
        return PositionState.EMPTY if self._position_id is None else PositionState.ACTIVE

    @property
    def position_id(self) -> Optional[int]:
        return self._position_id

    @property
    def account(self) -> str:
        """Address of the manager's own custody account."""
        return self.ledger.account

    @property
    def is_busy(self) -> bool:
        return self._busy_operation is not None

    def set_callbacks(
        self,
        on_event: Optional[Callable[[LifecycleEvent], None]] = None,
        on_fee_record: Optional[Callable[[FeeRecord], None]] = None
    ) -> None:
        """
        Set event callbacks.

        Args:
            on_event: Called with every lifecycle event
            on_fee_record: Called with every fee record
        """
        self.on_event_callback = on_event
        self.on_fee_record_callback = on_fee_record

    async def restore(self) -> Optional[PersistedState]:
        """
        Reload the position identifier and range policy from the state store.

        Returns:
            The restored state, or None if nothing was saved
        """
        if self.state_store is None:
            return None

        saved = self.state_store.load()
        if saved is None:
            return None

        range_config = RangeConfiguration(saved.range_percent, saved.tick_spacing)
        range_config.validate()
        self.range_config = range_config

        if saved.position_id is not None:
            # Fails with VenueError if the venue no longer knows the position
            await self.venue.get_position(saved.position_id)
        self._position_id = saved.position_id

        logger.info(f"Restored {self.strategy_id}: state={self.state.value} position={self._position_id}")
        return saved

    # Lifecycle operations

    async def create_position(
        self,
        caller: str,
        amount_a: int,
        amount_b: int,
        tick_lower: int,
        tick_upper: int
    ) -> CreatePositionResult:
        """
        Open a position funded from the caller's balances.

        Unused amounts are always returned to the caller.

        Args:
            caller: Address invoking the operation (must be the owner)
            amount_a: Token A to deposit, in minor units
            amount_b: Token B to deposit, in minor units
            tick_lower: Lower tick bound, a multiple of the tick spacing
            tick_upper: Upper tick bound, a multiple of the tick spacing

        Returns:
            Position details and the amounts used and refunded

        Raises:
            InvalidRangeError: If the ticks are unordered or misaligned
            PositionAlreadyOpenError: If a position is already active
            InsufficientFundsError: If the caller cannot cover the amounts
            VenueError: If the venue rejects the mint (pulled funds are returned)
        """
        self._authorize(caller)
        if amount_a < 0 or amount_b < 0:
            raise ValueError("Deposit amounts cannot be negative")

        async with self._operation("create_position"):
            validate_ticks(tick_lower, tick_upper, self.range_config.tick_spacing)

            if self._position_id is not None:
                raise PositionAlreadyOpenError(
                    f"Position {self._position_id} is already active"
                )

            for asset, amount in ((Asset.TOKEN_A, amount_a), (Asset.TOKEN_B, amount_b)):
                available = await self.ledger.balance_of(asset, caller)
                if available < amount:
                    raise InsufficientFundsError(asset.value, amount, available)

            await self._transfer_in(caller, amount_a, amount_b)

            try:
                receipt = await self.venue.open_position(amount_a, amount_b, tick_lower, tick_upper)
            except VenueError:
                logger.error("Mint failed, returning pulled funds to caller")
                await self._transfer_out(caller, amount_a, amount_b)
                raise

            self._activate(receipt.position_id)

            refunded_a = amount_a - receipt.used_a
            refunded_b = amount_b - receipt.used_b
            await self._transfer_out(caller, refunded_a, refunded_b)

            result = CreatePositionResult(
                position_id=receipt.position_id,
                tick_lower=tick_lower,
                tick_upper=tick_upper,
                liquidity=receipt.liquidity,
                used_a=receipt.used_a,
                used_b=receipt.used_b,
                refunded_a=refunded_a,
                refunded_b=refunded_b
            )
            self._emit(EventKind.POSITION_CREATED, **result.to_dict())
            return result

    async def add_liquidity_from_holdings(self, caller: str) -> CreatePositionResult:
        """
        Deploy everything the manager holds.

        When empty, mints at a range centred on the current tick. When
        active, tops up the existing position at its own range. Any
        remainder the venue's ratio cannot absorb stays in holdings.

        Raises:
            NoFundsError: If both holdings are zero
        """
        self._authorize(caller)

        async with self._operation("add_liquidity_from_holdings"):
            holdings = await self.ledger.holdings()
            if holdings.is_empty:
                raise NoFundsError("Manager holds no token A or token B")

            if self._position_id is not None:
                return await self._increase(holdings)

            tick = await self.venue.current_tick()
            tick_lower, tick_upper = range_to_ticks(
                tick, self.range_config.range_percent, self.range_config.tick_spacing
            )
            return await self._open(holdings.amount_a, holdings.amount_b, tick_lower, tick_upper)

    async def collect_fees(self, caller: str, position_id: int) -> CollectFeesResult:
        """
        Send accrued fees of the active position to the owner.

        Zero accrued fees is a success with a zero-amount record.

        Raises:
            NoActivePositionError: If nothing is active
            PositionMismatchError: If ``position_id`` is not the active position
        """
        self._authorize(caller)

        async with self._operation("collect_fees"):
            self._require_active()
            if position_id != self._position_id:
                raise PositionMismatchError(
                    f"Position {position_id} is not the active position {self._position_id}"
                )

            amount_a, amount_b = await self.venue.collect(position_id, self.owner)
            record = FeeRecord(amount_a=amount_a, amount_b=amount_b, source="collect")
            self._record_fees(record)

            result = CollectFeesResult(position_id=position_id, fee_record=record)
            self._emit(EventKind.FEES_COLLECTED, **result.to_dict())
            return result

    async def close_position(self, caller: str) -> ClosePositionResult:
        """
        Drain, collect into holdings and burn the active position.

        Raises:
            NoActivePositionError: If nothing is active
        """
        self._authorize(caller)

        async with self._operation("close_position"):
            self._require_active()
            return await self._close()

    async def rebalance(self, caller: str) -> RebalanceResult:
        """
        Close the active position and reopen around the current tick.

        The new position is funded with exactly what the close freed;
        anything the new ratio cannot absorb stays in holdings.

        Raises:
            NoActivePositionError: If nothing is active
            RebalanceIncompleteError: If the close succeeded but the reopen did not
        """
        self._authorize(caller)

        async with self._operation("rebalance"):
            self._require_active()
            closed = await self._close()

            try:
                tick = await self.venue.current_tick()
                tick_lower, tick_upper = range_to_ticks(
                    tick, self.range_config.range_percent, self.range_config.tick_spacing
                )
                created = await self._open(closed.amount_a, closed.amount_b, tick_lower, tick_upper)
            except Exception as e:
                self._degraded("rebalance", closed.position_id, closed.amount_a, closed.amount_b, e)
                raise RebalanceIncompleteError(
                    f"Rebalance closed position {closed.position_id} but could not reopen: {e}",
                    closed_position_id=closed.position_id,
                    freed_amount_a=closed.amount_a,
                    freed_amount_b=closed.amount_b,
                    cause=e
                ) from e

            result = RebalanceResult(closed=closed, created=created)
            self._emit(EventKind.POSITION_REBALANCED, **result.to_dict())
            return result

    async def compound(self) -> CompoundResult:
        """
        Reinvest accrued fees into a position re-centred on the current tick.

        Open to any caller. Collects fees into holdings, prices them with a
        validated oracle quote, closes the position and mints a new one
        using all of the higher-USD-value holding and the pool-ratio amount
        of the other.

        Raises:
            NoActivePositionError: If nothing is active
            NoFeesToCompoundError: If both collected amounts are zero
            OracleError: If no valid price is available (position untouched)
            CompoundIncompleteError: If the close succeeded but the mint did not
        """
        async with self._operation("compound"):
            self._require_active()
            position_id = self._position_id

            fee_a, fee_b = await self.venue.collect(position_id, self.account)
            if fee_a == 0 and fee_b == 0:
                raise NoFeesToCompoundError(f"Position {position_id} has no fees to compound")

            quote = await self.oracle.get_validated_price()
            record = FeeRecord(
                amount_a=fee_a,
                amount_b=fee_b,
                usd_value=self._usd_value(fee_a, fee_b, quote.price),
                source="compound"
            )
            self._record_fees(record)

            closed = await self._close()
            holdings = HoldingsBalance(amount_a=closed.amount_a + fee_a, amount_b=closed.amount_b + fee_b)

            try:
                holdings = await self.ledger.holdings()
                tick = await self.venue.current_tick()
                tick_lower, tick_upper = range_to_ticks(
                    tick, self.range_config.range_percent, self.range_config.tick_spacing
                )
                prioritized, amount_a, amount_b = self._prioritized_amounts(
                    holdings, quote.price, tick, tick_lower, tick_upper
                )
                created = await self._open(amount_a, amount_b, tick_lower, tick_upper)
            except Exception as e:
                self._degraded("compound", closed.position_id, holdings.amount_a, holdings.amount_b, e)
                raise CompoundIncompleteError(
                    f"Compound closed position {closed.position_id} but could not mint: {e}",
                    closed_position_id=closed.position_id,
                    freed_amount_a=holdings.amount_a,
                    freed_amount_b=holdings.amount_b,
                    cause=e
                ) from e

            result = CompoundResult(
                fee_record=record,
                price=quote.price,
                prioritized_asset=prioritized,
                closed=closed,
                created=created
            )
            self._emit(EventKind.FEES_COMPOUNDED, **result.to_dict())
            return result

    async def emergency_withdraw(self, caller: str) -> WithdrawResult:
        """
        Sweep native currency and both tokens to the owner.

        Works in any state and leaves an open position untouched. Nothing to
        withdraw is a success with all-zero amounts.
        """
        self._authorize(caller)

        async with self._operation("emergency_withdraw"):
            amounts = {}
            for asset in (Asset.NATIVE, Asset.TOKEN_A, Asset.TOKEN_B):
                balance = await self.ledger.balance_of(asset, self.account)
                if balance > 0:
                    await self.ledger.transfer(asset, self.owner, balance)
                amounts[asset] = balance

            result = WithdrawResult(
                native_amount=amounts[Asset.NATIVE],
                amount_a=amounts[Asset.TOKEN_A],
                amount_b=amounts[Asset.TOKEN_B]
            )
            if result.is_empty:
                logger.info("Emergency withdrawal found nothing to sweep")
            self._emit(EventKind.EMERGENCY_WITHDRAWAL, **result.to_dict())
            return result

    async def update_range(self, caller: str, new_range_percent) -> RangeConfiguration:
        """
        Change the range policy for future range computations.

        The open position keeps its bounds.

        Raises:
            InvalidRangeError: Unless ``0 < new_range_percent < 100``
        """
        self._authorize(caller)

        async with self._operation("update_range"):
            new_config = RangeConfiguration(
                range_percent=Decimal(str(new_range_percent)),
                tick_spacing=self.range_config.tick_spacing
            )
            new_config.validate()

            old_percent = self.range_config.range_percent
            self.range_config = new_config
            self._save_state()

            self._emit(
                EventKind.RANGE_UPDATED,
                old_range_percent=str(old_percent),
                new_range_percent=str(new_config.range_percent)
            )
            return new_config

    async def get_status(self) -> PositionStatus:
        """Read-only snapshot of state, range health and holdings."""
        tick = await self.venue.current_tick()
        holdings = await self.ledger.holdings()

        if self._position_id is None:
            return PositionStatus(
                state=PositionState.EMPTY,
                position_id=None,
                current_tick=tick,
                holdings=holdings
            )

        position = await self.venue.get_position(self._position_id)
        in_range = position.is_in_range(tick)
        to_lower, to_upper = distance_to_bounds(
            tick_to_price(tick),
            tick_to_price(position.tick_lower),
            tick_to_price(position.tick_upper)
        )

        return PositionStatus(
            state=PositionState.ACTIVE,
            position_id=position.identifier,
            current_tick=tick,
            holdings=holdings,
            tick_lower=position.tick_lower,
            tick_upper=position.tick_upper,
            liquidity=position.liquidity_amount,
            in_range=in_range,
            distance_to_lower_pct=to_lower,
            distance_to_upper_pct=to_upper,
            alert_level=self._alert_level(in_range, to_lower, to_upper)
        )

    # Internal steps, composed directly without re-entering the public guard

    async def _open(
        self,
        amount_a: int,
        amount_b: int,
        tick_lower: int,
        tick_upper: int
    ) -> CreatePositionResult:
        receipt = await self.venue.open_position(amount_a, amount_b, tick_lower, tick_upper)
        self._activate(receipt.position_id)

        result = CreatePositionResult(
            position_id=receipt.position_id,
            tick_lower=tick_lower,
            tick_upper=tick_upper,
            liquidity=receipt.liquidity,
            used_a=receipt.used_a,
            used_b=receipt.used_b
        )
        self._emit(EventKind.POSITION_CREATED, **result.to_dict())
        return result

    async def _increase(self, holdings: HoldingsBalance) -> CreatePositionResult:
        position = await self.venue.get_position(self._position_id)
        receipt = await self.venue.increase_liquidity(
            self._position_id, holdings.amount_a, holdings.amount_b
        )

        result = CreatePositionResult(
            position_id=self._position_id,
            tick_lower=position.tick_lower,
            tick_upper=position.tick_upper,
            liquidity=receipt.liquidity,
            used_a=receipt.used_a,
            used_b=receipt.used_b
        )
        self._emit(EventKind.LIQUIDITY_INCREASED, **result.to_dict())
        return result

    async def _close(self) -> ClosePositionResult:
        position_id = self._position_id

        await self.venue.decrease_liquidity_to_zero(position_id)
        amount_a, amount_b = await self.venue.collect(position_id, self.account)
        await self.venue.burn(position_id)
        self._deactivate()

        result = ClosePositionResult(position_id=position_id, amount_a=amount_a, amount_b=amount_b)
        self._emit(EventKind.POSITION_CLOSED, **result.to_dict())
        return result

    def _prioritized_amounts(
        self,
        holdings: HoldingsBalance,
        price: Decimal,
        tick: int,
        tick_lower: int,
        tick_upper: int
    ) -> Tuple[str, int, int]:
        usd_a = self.token_a.to_units(holdings.amount_a) * price
        usd_b = self.token_b.to_units(holdings.amount_b)
        sqrt_price = tick_to_sqrt_price_x96(tick)

        if usd_a >= usd_b:
            needed_b = paired_amount(sqrt_price, tick_lower, tick_upper, holdings.amount_a, True)
            return Asset.TOKEN_A.value, holdings.amount_a, min(needed_b, holdings.amount_b)

        needed_a = paired_amount(sqrt_price, tick_lower, tick_upper, holdings.amount_b, False)
        return Asset.TOKEN_B.value, min(needed_a, holdings.amount_a), holdings.amount_b

    def _usd_value(self, amount_a: int, amount_b: int, price: Decimal) -> Decimal:
        return self.token_a.to_units(amount_a) * price + self.token_b.to_units(amount_b)

    def _alert_level(self, in_range: bool, to_lower: Decimal, to_upper: Decimal) -> AlertLevel:
        if not in_range:
            return AlertLevel.CRITICAL

        nearest = min(to_lower, to_upper)
        if nearest < self.urgent_percent:
            return AlertLevel.URGENT
        if nearest < self.warning_percent:
            return AlertLevel.WARNING
        return AlertLevel.NORMAL

    @asynccontextmanager
    async def _operation(self, name: str):
        # No await between the check and the set
        if self._busy_operation is not None:
            logger.warning(f"Rejected {name}: {self._busy_operation} is in flight")
            raise ReentrantCallRejected(
                f"Cannot run {name} while {self._busy_operation} is in flight"
            )

        self._busy_operation = name
        logger.info(f"{self.strategy_id} starting {name}")
        try:
            yield
            logger.info(f"{self.strategy_id} completed {name} (state={self.state.value})")
        finally:
            self._busy_operation = None

    def _authorize(self, caller: str) -> None:
        if caller.lower() != self.owner.lower():
            logger.warning(f"Rejected owner-only call from {caller}")
            raise UnauthorizedCallerError(f"{caller} is not the owner")

    def _require_active(self) -> None:
        if self._position_id is None:
            raise NoActivePositionError("No active position")

    def _activate(self, position_id: int) -> None:
        self._position_id = position_id
        self._save_state()

    def _deactivate(self) -> None:
        self._position_id = None
        self._save_state()

    def _save_state(self) -> None:
        if self.state_store is None:
            return
        self.state_store.save(PersistedState(
            position_id=self._position_id,
            range_percent=self.range_config.range_percent,
            tick_spacing=self.range_config.tick_spacing
        ))

    async def _transfer_in(self, sender: str, amount_a: int, amount_b: int) -> None:
        if amount_a > 0:
            await self.ledger.transfer_from(Asset.TOKEN_A, sender, amount_a)
        if amount_b > 0:
            await self.ledger.transfer_from(Asset.TOKEN_B, sender, amount_b)

    async def _transfer_out(self, recipient: str, amount_a: int, amount_b: int) -> None:
        if amount_a > 0:
            await self.ledger.transfer(Asset.TOKEN_A, recipient, amount_a)
        if amount_b > 0:
            await self.ledger.transfer(Asset.TOKEN_B, recipient, amount_b)

    def _degraded(
        self,
        operation: str,
        closed_position_id: int,
        freed_a: int,
        freed_b: int,
        error: Exception
    ) -> None:
        logger.error(
            f"{operation} left the manager empty: position {closed_position_id} closed, "
            f"({freed_a}, {freed_b}) idle in holdings: {error}"
        )
        self._emit(
            EventKind.LIFECYCLE_DEGRADED,
            operation=operation,
            closed_position_id=closed_position_id,
            freed_amount_a=freed_a,
            freed_amount_b=freed_b,
            error=str(error)
        )

    def _record_fees(self, record: FeeRecord) -> None:
        self.fee_records.append(record)
        if self.on_fee_record_callback:
            self.on_fee_record_callback(record)

    def _emit(self, kind: EventKind, **data) -> None:
        event = LifecycleEvent(kind=kind, data=data)
        self.events.append(event)
        logger.debug(f"Event {kind.value}: {data}")
        if self.on_event_callback:
            self.on_event_callback(event)
