"""
Chainlink aggregator price feed.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from ..core.errors import OracleError
from ..core.oracle import PriceFeed
from ..models.position import PriceQuote
from .abis import AGGREGATOR_V3_ABI
from .web3_client import Web3Client

logger = logging.getLogger(__name__)


class ChainlinkPriceFeed(PriceFeed):
    """Reads ``latestRoundData`` from an AggregatorV3 contract."""

    def __init__(self, client: Web3Client, aggregator_address: str):
        self.client = client
        self.aggregator_address = aggregator_address
        self._aggregator = None
        self._decimals: Optional[int] = None

    @property
    def aggregator(self):
        if self._aggregator is None:
            self._aggregator = self.client.contract(self.aggregator_address, AGGREGATOR_V3_ABI)
        return self._aggregator

    async def latest(self) -> PriceQuote:
        try:
            if self._decimals is None:
                self._decimals = int(await self.client.call(self.aggregator.functions.decimals()))
            _, answer, _, updated_at, _ = await self.client.call(
                self.aggregator.functions.latestRoundData()
            )
        except Exception as e:
            raise OracleError(f"Failed to read Chainlink feed {self.aggregator_address}: {e}") from e

        return PriceQuote(
            value=int(answer),
            observed_at=datetime.fromtimestamp(int(updated_at), tz=timezone.utc),
            decimals=self._decimals
        )
