"""
Price oracle interface and the validating gateway in front of it.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from .errors import InvalidOracleTimestampError, InvalidOracleValueError, StaleOracleError
from ..models.position import PriceQuote

logger = logging.getLogger(__name__)

DEFAULT_STALENESS_BOUND = timedelta(hours=1)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PriceFeed(ABC):
    """
    External price oracle: a single request/response per observation.

    Implementations return whatever the oracle reports; validation is the
    gateway's job.
    """

    @abstractmethod
    async def latest(self) -> PriceQuote:
        """
        Fetch the latest observation.

        Returns:
            Raw, unvalidated quote
        """
        pass


class OracleGateway:
    """
    Only sanctioned path for a USD price to reach lifecycle decisions.

    Every call fetches afresh; nothing is cached between calls.
    """

    def __init__(
        self,
        feed: PriceFeed,
        staleness_bound: timedelta = DEFAULT_STALENESS_BOUND,
        clock: Optional[Clock] = None
    ):
        """
        Initialize the gateway.

        Args:
            feed: Underlying price feed
            staleness_bound: Maximum accepted quote age
            clock: Source of "now", UTC-aware
        """
        self.feed = feed
        self.staleness_bound = staleness_bound
        self.clock = clock or utc_now

    async def get_validated_price(self) -> PriceQuote:
        """
        Fetch and validate the latest quote.

        Returns:
            A quote with a positive value observed within the staleness bound

        Raises:
            InvalidOracleTimestampError: If the observation time is naive or in the future
            StaleOracleError: If the quote is older than the bound
            InvalidOracleValueError: If the quote value is not positive
        """
        quote = await self.feed.latest()
        if quote.observed_at.tzinfo is None or quote.observed_at.utcoffset() is None:
            raise InvalidOracleTimestampError(
                f"Oracle observation time {quote.observed_at} carries no timezone"
            )

        age = self.clock() - quote.observed_at
        if age < timedelta(0):
            logger.warning(f"Rejected oracle quote observed {-age.total_seconds():.0f}s in the future")
            raise InvalidOracleTimestampError(
                f"Oracle observation time {quote.observed_at.isoformat()} is in the future"
            )

        if age > self.staleness_bound:
            logger.warning(
                f"Rejected stale oracle quote: age {age.total_seconds():.0f}s "
                f"exceeds {self.staleness_bound.total_seconds():.0f}s"
            )
            raise StaleOracleError(
                f"Oracle quote is {age.total_seconds():.0f}s old "
                f"(limit {self.staleness_bound.total_seconds():.0f}s)"
            )

        if quote.value <= 0:
            logger.warning(f"Rejected non-positive oracle value: {quote.value}")
            raise InvalidOracleValueError(f"Oracle value must be positive, got {quote.value}")

        return quote
