"""
Trading mode enum.
"""

from enum import Enum


class TradingMode(Enum):
    """Enumeration of execution modes."""
    PAPER = "paper"
    LIVE = "live"
