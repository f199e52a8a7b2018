"""
Uniswap V3 venue adapter.

Translates the venue capability set onto the NonfungiblePositionManager
and pool contracts. No business logic lives here.
"""

import logging
import time
from typing import Any, Dict, Optional, Tuple

from nautilus_trader.model.identifiers import Venue
from web3.logs import DISCARD

from ..core.errors import VenueError
from ..core.venue import IncreaseReceipt, LiquidityVenue, MintReceipt
from ..models.position import Position
from .abis import ERC20_ABI, POOL_ABI, POSITION_MANAGER_ABI
from .web3_client import Web3Client

logger = logging.getLogger(__name__)

MAX_UINT128 = 2 ** 128 - 1
MAX_UINT256 = 2 ** 256 - 1


class UniswapV3Venue(LiquidityVenue):
    """
    Uniswap V3 adapter with Web3 integration.

    Token A must be the pool's token0 and token B its token1.
    """

    def __init__(self, config: Dict[str, Any], client: Optional[Web3Client] = None):
        """
        Initialize Uniswap adapter.

        Args:
            config: Configuration dictionary containing:
                - web3_provider_url: Web3 provider URL (e.g., Infura, Alchemy)
                - private_key: Private key for transactions
                - network: Network name (mainnet, sepolia, etc.)
                - position_manager_address: NonfungiblePositionManager address
                - pool_address: Pool contract address
                - token_a_address: Pool token0 address
                - token_b_address: Pool token1 address
                - fee_tier: Pool fee tier in hundredths of a bip
                - deadline_seconds: Transaction deadline offset
            client: Pre-built Web3 client
        """
        super().__init__(Venue("UNISWAP"), config)

        self.client = client or Web3Client(
            provider_url=config.get("web3_provider_url", ""),
            private_key=config.get("private_key", ""),
            network=config.get("network", "mainnet")
        )
        self.position_manager_address = config.get(
            "position_manager_address",
            "0xC36442b4a4522E871399CD717aBDD847Ab11FE88"
        )
        self.pool_address = config["pool_address"]
        self.token_a_address = config["token_a_address"]
        self.token_b_address = config["token_b_address"]
        self.fee_tier = int(config.get("fee_tier", 3000))
        self.deadline_seconds = int(config.get("deadline_seconds", 300))

        self._npm = None
        self._pool = None

        logger.info(f"Initialized Uniswap adapter for pool {self.pool_address}")

    @property
    def npm(self):
        if self._npm is None:
            self._npm = self.client.contract(self.position_manager_address, POSITION_MANAGER_ABI)
        return self._npm

    @property
    def pool(self):
        if self._pool is None:
            self._pool = self.client.contract(self.pool_address, POOL_ABI)
        return self._pool

    @property
    def recipient(self) -> str:
        self.client.web3()
        return self.client.account_address

    async def open_position(
        self,
        amount_a_desired: int,
        amount_b_desired: int,
        tick_lower: int,
        tick_upper: int
    ) -> MintReceipt:
        try:
            await self._ensure_allowance(self.token_a_address, amount_a_desired)
            await self._ensure_allowance(self.token_b_address, amount_b_desired)

            params = (
                self.token_a_address,
                self.token_b_address,
                self.fee_tier,
                tick_lower,
                tick_upper,
                amount_a_desired,
                amount_b_desired,
                0,
                0,
                self.recipient,
                self._deadline(),
            )
            receipt = await self.client.transact(self.npm.functions.mint(params))
            event = self._single_event("IncreaseLiquidity", receipt)

            logger.info(f"Minted Uniswap position {event['tokenId']} [{tick_lower}, {tick_upper}]")
            return MintReceipt(
                position_id=event["tokenId"],
                liquidity=event["liquidity"],
                used_a=event["amount0"],
                used_b=event["amount1"]
            )
        except VenueError:
            raise
        except Exception as e:
            raise VenueError(f"Mint failed: {e}") from e

    async def increase_liquidity(
        self,
        position_id: int,
        amount_a_desired: int,
        amount_b_desired: int
    ) -> IncreaseReceipt:
        try:
            await self._ensure_allowance(self.token_a_address, amount_a_desired)
            await self._ensure_allowance(self.token_b_address, amount_b_desired)

            params = (position_id, amount_a_desired, amount_b_desired, 0, 0, self._deadline())
            receipt = await self.client.transact(self.npm.functions.increaseLiquidity(params))
            event = self._single_event("IncreaseLiquidity", receipt)

            return IncreaseReceipt(
                liquidity=event["liquidity"],
                used_a=event["amount0"],
                used_b=event["amount1"]
            )
        except VenueError:
            raise
        except Exception as e:
            raise VenueError(f"Increase liquidity on {position_id} failed: {e}") from e

    async def decrease_liquidity_to_zero(self, position_id: int) -> Tuple[int, int]:
        try:
            position = await self.get_position(position_id)
            if position.liquidity_amount == 0:
                return 0, 0

            params = (position_id, position.liquidity_amount, 0, 0, self._deadline())
            receipt = await self.client.transact(self.npm.functions.decreaseLiquidity(params))
            event = self._single_event("DecreaseLiquidity", receipt)
            return event["amount0"], event["amount1"]
        except VenueError:
            raise
        except Exception as e:
            raise VenueError(f"Decrease liquidity on {position_id} failed: {e}") from e

    async def collect(self, position_id: int, recipient: str) -> Tuple[int, int]:
        try:
            params = (position_id, recipient, MAX_UINT128, MAX_UINT128)
            receipt = await self.client.transact(self.npm.functions.collect(params))
            event = self._single_event("Collect", receipt)
            return event["amount0"], event["amount1"]
        except VenueError:
            raise
        except Exception as e:
            raise VenueError(f"Collect on {position_id} failed: {e}") from e

    async def burn(self, position_id: int) -> None:
        try:
            await self.client.transact(self.npm.functions.burn(position_id))
            logger.info(f"Burned Uniswap position {position_id}")
        except Exception as e:
            raise VenueError(f"Burn of {position_id} failed: {e}") from e

    async def current_tick(self) -> int:
        try:
            slot0 = await self.client.call(self.pool.functions.slot0())
            return int(slot0[1])
        except Exception as e:
            raise VenueError(f"Failed to read pool tick: {e}") from e

    async def get_position(self, position_id: int) -> Position:
        try:
            data = await self.client.call(self.npm.functions.positions(position_id))
        except Exception as e:
            raise VenueError(f"Failed to read position {position_id}: {e}") from e

        return Position(
            identifier=position_id,
            tick_lower=int(data[5]),
            tick_upper=int(data[6]),
            liquidity_amount=int(data[7]),
            owed_amount_a=int(data[10]),
            owed_amount_b=int(data[11])
        )

    def get_connection_status(self) -> Dict[str, Any]:
        return {
            "venue": str(self.venue),
            "network": self.client.network,
            "connected": self.client.is_connected,
            "account": self.client.account_address,
            "pool": self.pool_address,
        }

    def _deadline(self) -> int:
        return int(time.time()) + self.deadline_seconds

    def _single_event(self, name: str, receipt: Dict[str, Any]) -> Dict[str, Any]:
        events = getattr(self.npm.events, name)().process_receipt(receipt, errors=DISCARD)
        if not events:
            raise VenueError(f"{name} event missing from receipt")
        return events[0]["args"]

    async def _ensure_allowance(self, token_address: str, amount: int) -> None:
        if amount == 0:
            return
        token = self.client.contract(token_address, ERC20_ABI)
        allowance = await self.client.call(
            token.functions.allowance(self.recipient, self.position_manager_address)
        )
        if allowance < amount:
            logger.info(f"Approving position manager to spend {token_address}")
            await self.client.transact(
                token.functions.approve(self.position_manager_address, MAX_UINT256)
            )
