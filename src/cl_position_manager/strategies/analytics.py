"""
Fee analytics and reporting.

Works on already-recorded ``FeeRecord``s, pull style; it has no
interaction with the lifecycle manager's critical section.
"""

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Deque, Dict, List, Optional

from nautilus_trader.model.currencies import USD
from nautilus_trader.model.objects import Money

from ..core.oracle import Clock, utc_now
from ..models.position import FeeRecord, Token

logger = logging.getLogger(__name__)

ON_TRACK_PERCENT = Decimal('90')
MAX_SNAPSHOTS = 90


@dataclass
class FeeTotals:
    """Summed fees over some window."""

    amount_a: int = 0
    amount_b: int = 0
    usd: Decimal = Decimal('0')

    def to_dict(self) -> dict:
        return {"amount_a": self.amount_a, "amount_b": self.amount_b, "usd": str(self.usd)}


@dataclass
class FeeProjection:
    """Last seven days of fees measured against the weekly target."""

    weekly_earned: Decimal
    weekly_target: Decimal
    percent_of_target: Decimal
    on_track: bool
    daily: Decimal
    monthly: Decimal
    annual: Decimal

    def to_dict(self) -> dict:
        return {
            "weekly_earned": str(self.weekly_earned),
            "weekly_target": str(self.weekly_target),
            "percent_of_target": str(self.percent_of_target),
            "on_track": self.on_track,
            "projection": {
                "daily": str(self.daily),
                "monthly": str(self.monthly),
                "annual": str(self.annual)
            }
        }


@dataclass
class DailySnapshot:
    """End-of-day position health."""

    day: date
    position_value: Decimal
    fees_earned: Decimal
    in_range_percent: Decimal
    cumulative_fees: Decimal

    def to_dict(self) -> dict:
        return {
            "date": self.day.isoformat(),
            "position_value": str(self.position_value),
            "fees_earned": str(self.fees_earned),
            "in_range_percent": str(self.in_range_percent),
            "cumulative_fees": str(self.cumulative_fees)
        }


@dataclass
class _Entry:
    record: FeeRecord
    usd: Decimal


class AnalyticsReporter:
    """
    Aggregates fee records into totals, projections and reports.

    Subscribe it to a manager with
    ``manager.set_callbacks(on_fee_record=reporter.record_fees)``.
    """

    def __init__(
        self,
        target_weekly_fees: Decimal,
        token_a: Token,
        token_b: Token,
        mark_price: Optional[Decimal] = None,
        clock: Optional[Clock] = None
    ):
        """
        Initialize the reporter.

        Args:
            target_weekly_fees: Weekly fee goal in USD
            token_a: Base token, valued at ``mark_price``
            token_b: Quote token, valued at par
            mark_price: USD price of token A for records without a USD value
            clock: Source of "now", UTC-aware
        """
        if Decimal(str(target_weekly_fees)) <= 0:
            raise ValueError("Target weekly fees must be positive")

        self.target_weekly_fees = Decimal(str(target_weekly_fees))
        self.token_a = token_a
        self.token_b = token_b
        self.mark_price = mark_price
        self.clock = clock or utc_now

        self.start_time = self.clock()
        self.entries: List[_Entry] = []
        self.totals = FeeTotals()
        self.snapshots: Deque[DailySnapshot] = deque(maxlen=MAX_SNAPSHOTS)

    @property
    def total_fees_usd(self) -> Money:
        return Money(self.totals.usd, USD)

    def record_fees(self, record: FeeRecord) -> Decimal:
        """
        Append a fee record and update cumulative totals.

        Returns:
            USD value credited for the record
        """
        usd = self._value(record)
        self.entries.append(_Entry(record=record, usd=usd))

        self.totals.amount_a += record.amount_a
        self.totals.amount_b += record.amount_b
        self.totals.usd += usd

        logger.debug(f"Recorded {record.source} fees worth ${usd:.2f}")
        return usd

    def fees_since(self, window: timedelta) -> FeeTotals:
        """Sum of records newer than ``now - window``."""
        cutoff = self.clock() - window
        totals = FeeTotals()
        for entry in self.entries:
            if entry.record.timestamp > cutoff:
                totals.amount_a += entry.record.amount_a
                totals.amount_b += entry.record.amount_b
                totals.usd += entry.usd
        return totals

    def daily_fees(self) -> FeeTotals:
        return self.fees_since(timedelta(days=1))

    def weekly_fees(self) -> FeeTotals:
        return self.fees_since(timedelta(days=7))

    def fee_projection(self) -> FeeProjection:
        """Project the last week's earning rate forward."""
        weekly = self.weekly_fees().usd
        percent = weekly / self.target_weekly_fees * Decimal('100')
        daily = weekly / Decimal('7')

        return FeeProjection(
            weekly_earned=weekly,
            weekly_target=self.target_weekly_fees,
            percent_of_target=percent,
            on_track=percent >= ON_TRACK_PERCENT,
            daily=daily,
            monthly=daily * 30,
            annual=daily * 365
        )

    def realized_apr(self, capital_invested) -> Decimal:
        """
        Annualised fee yield on the invested capital, in percent.

        Returns 0 when nothing was earned or no capital is given.
        """
        capital = Decimal(str(capital_invested))
        annual = self.fee_projection().annual
        if annual == 0 or capital == 0:
            return Decimal('0')
        return annual / capital * Decimal('100')

    def is_target_met(self) -> bool:
        return self.fee_projection().on_track

    def record_daily_snapshot(self, position_value, fees_earned, in_range_percent) -> DailySnapshot:
        """Keep one health snapshot; only the most recent 90 are retained."""
        snapshot = DailySnapshot(
            day=self.clock().date(),
            position_value=Decimal(str(position_value)),
            fees_earned=Decimal(str(fees_earned)),
            in_range_percent=Decimal(str(in_range_percent)),
            cumulative_fees=self.totals.usd
        )
        self.snapshots.append(snapshot)
        return snapshot

    def performance_summary(self, capital_invested) -> Dict[str, Any]:
        projection = self.fee_projection()
        days_active = (self.clock() - self.start_time).days

        return {
            "period": {
                "start": self.start_time.isoformat(),
                "days_active": days_active
            },
            "fees": {
                "total": self.totals.to_dict(),
                "weekly": self.weekly_fees().to_dict(),
                "projection": projection.to_dict()
            },
            "performance": {
                "realized_apr": str(self.realized_apr(capital_invested)),
                "on_track_for_target": projection.on_track,
                "capital_invested": str(capital_invested)
            },
            "snapshots": [s.to_dict() for s in list(self.snapshots)[-7:]]
        }

    def weekly_report(self, capital_invested, in_range_percent=0) -> Dict[str, Any]:
        """Structured seven-day report."""
        projection = self.fee_projection()
        weekly = self.weekly_fees()

        return {
            "title": "Weekly LP Position Report",
            "generated_at": self.clock().isoformat(),
            "period": "7 days",
            "fees": {
                "earned": weekly.to_dict(),
                "target": str(self.target_weekly_fees),
                "percent_of_target": str(projection.percent_of_target),
                "status": "ON TRACK" if projection.on_track else "BELOW TARGET"
            },
            "performance": {
                "realized_apr": str(self.realized_apr(capital_invested)),
                "total_fees_earned": str(self.totals.usd),
                "average_daily_fees": str(weekly.usd / Decimal('7'))
            },
            "position": {
                "capital_invested": str(capital_invested),
                "in_range_percent": str(in_range_percent)
            },
            "projection": projection.to_dict()["projection"]
        }

    def format_report(self, report: Dict[str, Any]) -> str:
        """Render a ``weekly_report`` as plain text."""
        fees = report["fees"]
        perf = report["performance"]
        proj = report["projection"]
        earned = fees["earned"]
        rule = "=" * 70

        lines = [
            rule,
            report["title"],
            f"Generated: {report['generated_at']}",
            rule,
            "",
            f"FEES EARNED ({report['period']}):",
            f"  {self.token_a.symbol}: {self.token_a.to_units(earned['amount_a']):.6f}",
            f"  {self.token_b.symbol}: {self.token_b.to_units(earned['amount_b']):.2f}",
            f"  Total USD: ${Decimal(earned['usd']):.2f}",
            "",
            "TARGET PERFORMANCE:",
            f"  Weekly Target: ${Decimal(fees['target']):.2f}",
            f"  Percent of Target: {Decimal(fees['percent_of_target']):.1f}%",
            f"  Status: {fees['status']}",
            "",
            "PROJECTIONS:",
            f"  Daily: ${Decimal(proj['daily']):.2f}",
            f"  Monthly: ${Decimal(proj['monthly']):.2f}",
            f"  Annual: ${Decimal(proj['annual']):.2f}",
            "",
            "PERFORMANCE METRICS:",
            f"  Realized APR: {Decimal(perf['realized_apr']):.2f}%",
            f"  Total Fees Earned: ${Decimal(perf['total_fees_earned']):.2f}",
            f"  Average Daily Fees: ${Decimal(perf['average_daily_fees']):.2f}",
            "",
            "POSITION HEALTH:",
            f"  Capital Invested: ${Decimal(report['position']['capital_invested']):,.2f}",
            f"  Time In Range: {Decimal(report['position']['in_range_percent']):.1f}%",
            rule,
        ]
        return "\n".join(lines)

    def recommendation(self) -> Dict[str, Any]:
        """Advice based on how the last week compares with the target."""
        projection = self.fee_projection()

        if projection.on_track:
            return {
                "type": "success",
                "message": "Position is meeting fee targets",
                "actions": []
            }

        deficit = self.target_weekly_fees - projection.weekly_earned
        percent_below = Decimal('100') - projection.percent_of_target
        return {
            "type": "warning",
            "message": f"Fees are {percent_below:.1f}% below target. Consider:",
            "actions": [
                "Increase position size",
                "Adjust liquidity range for higher concentration",
                "Wait for higher volume periods",
                f"Need additional ${deficit:.2f}/week to meet target"
            ]
        }

    def export(self) -> Dict[str, Any]:
        """Raw history plus a summary for external analysis."""
        return {
            "fee_history": [
                dict(entry.record.to_dict(), valued_usd=str(entry.usd)) for entry in self.entries
            ],
            "totals": self.totals.to_dict(),
            "snapshots": [s.to_dict() for s in self.snapshots],
            "summary": self.performance_summary(0)
        }

    def _value(self, record: FeeRecord) -> Decimal:
        if record.usd_value is not None:
            return record.usd_value

        value_b = self.token_b.to_units(record.amount_b)
        if self.mark_price is None:
            if record.amount_a:
                logger.warning("No mark price set, token A fees valued at zero")
            return value_b
        return self.token_a.to_units(record.amount_a) * self.mark_price + value_b
