"""
Position lifecycle and analytics.

- PositionManager: owns the single concentrated-liquidity position
- AnalyticsReporter: fee totals, projections and reports
"""

from .position_manager import PositionManager
from .analytics import AnalyticsReporter, FeeProjection, FeeTotals, DailySnapshot

__all__ = [
    'PositionManager',
    'AnalyticsReporter',
    'FeeProjection',
    'FeeTotals',
    'DailySnapshot',
]
