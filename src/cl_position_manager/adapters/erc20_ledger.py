"""
On-chain custody ledger backed by ERC-20 contracts and the native balance.
"""

import logging
from typing import Dict, Optional

from web3 import Web3

from ..core.errors import VenueError
from ..core.ledger import AssetLedger
from ..models.position import Asset
from .abis import ERC20_ABI
from .web3_client import Web3Client

logger = logging.getLogger(__name__)


class ERC20Ledger(AssetLedger):
    """Balances and transfers for the signing account."""

    def __init__(self, client: Web3Client, token_addresses: Dict[Asset, str], account: Optional[str] = None):
        """
        Initialize the ledger.

        Args:
            client: Web3 client holding the signing key
            token_addresses: Contract address per position token
            account: Manager account; defaults to the signing account
        """
        if account is None:
            client.web3()
            account = client.account_address
        super().__init__(account)
        self.client = client
        self.token_addresses = token_addresses

    async def balance_of(self, asset: Asset, holder: str) -> int:
        try:
            if asset == Asset.NATIVE:
                return await self.client.get_balance(holder)
            token = self._token(asset)
            return await self.client.call(
                token.functions.balanceOf(Web3.to_checksum_address(holder))
            )
        except Exception as e:
            raise VenueError(f"Failed to read {asset.value} balance of {holder}: {e}") from e

    async def transfer(self, asset: Asset, recipient: str, amount: int) -> None:
        try:
            if asset == Asset.NATIVE:
                await self.client.send_value(recipient, amount)
            else:
                token = self._token(asset)
                await self.client.transact(
                    token.functions.transfer(Web3.to_checksum_address(recipient), amount)
                )
            logger.info(f"Transferred {amount} {asset.value} to {recipient}")
        except Exception as e:
            raise VenueError(f"Transfer of {amount} {asset.value} failed: {e}") from e

    async def transfer_from(self, asset: Asset, sender: str, amount: int) -> None:
        if asset == Asset.NATIVE:
            raise VenueError("Native currency cannot be pulled with transferFrom")
        try:
            token = self._token(asset)
            await self.client.transact(
                token.functions.transferFrom(
                    Web3.to_checksum_address(sender),
                    Web3.to_checksum_address(self.account),
                    amount
                )
            )
        except Exception as e:
            raise VenueError(f"Pull of {amount} {asset.value} from {sender} failed: {e}") from e

    def _token(self, asset: Asset):
        return self.client.contract(self.token_addresses[asset], ERC20_ABI)
