"""
Shared Web3 connection and transaction plumbing for the on-chain adapters.
"""

import asyncio
import logging
import os
from typing import Any, Dict, List, Optional

from web3 import Web3
from web3.middleware import ExtraDataToPOAMiddleware

logger = logging.getLogger(__name__)

POA_NETWORKS = ["goerli", "sepolia", "polygon", "bsc"]


class Web3Client:
    """
    Thin wrapper over a synchronous ``Web3`` instance.

    Blocking RPC calls are pushed to a worker thread so adapters can expose
    coroutine methods. Building the instance and loading the signing account
    are local operations and safe to run on the event loop.
    """

    def __init__(
        self,
        provider_url: str = "",
        private_key: str = "",
        network: str = "mainnet",
        receipt_timeout: int = 120
    ):
        self.provider_url = provider_url or os.getenv("WEB3__PROVIDER_URL", "")
        self.private_key = private_key or os.getenv("WEB3__PRIVATE_KEY", "")
        self.network = network
        self.receipt_timeout = receipt_timeout
        self.w3: Optional[Web3] = None
        self.account_address: Optional[str] = None
        self.is_connected = False

    def web3(self) -> Web3:
        """
        Build the Web3 instance and load the signing account.

        No request is sent to the provider.

        Raises:
            ConnectionError: If the provider is not configured
        """
        if self.w3 is not None:
            return self.w3

        if not self.provider_url:
            raise ConnectionError("Web3 provider URL not configured")

        w3 = Web3(Web3.HTTPProvider(self.provider_url))

        # Add PoA middleware if needed (for testnets and sidechains)
        if self.network in POA_NETWORKS:
            w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)

        if self.private_key:
            account = w3.eth.account.from_key(self.private_key)
            self.account_address = account.address
            logger.info(f"Using account: {self.account_address}")

        self.w3 = w3
        return w3

    def connect(self) -> Web3:
        """
        Open the provider connection. Blocks on the provider round trip.

        Returns:
            Connected Web3 instance

        Raises:
            ConnectionError: If the provider is not configured or unreachable
        """
        w3 = self.web3()
        if self.is_connected:
            return w3

        if not w3.is_connected():
            raise ConnectionError(f"Failed to connect to Web3 provider for {self.network}")

        self.is_connected = True
        logger.info(f"Web3 connection established ({self.network})")
        return w3

    def contract(self, address: str, abi: List[Dict[str, Any]]):
        return self.web3().eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    async def call(self, fn) -> Any:
        """Run a read-only contract call."""
        return await asyncio.to_thread(fn.call)

    async def get_balance(self, address: str) -> int:
        """Native currency balance of ``address`` in wei."""
        return await asyncio.to_thread(self._get_balance_sync, address)

    async def transact(self, fn) -> Dict[str, Any]:
        """
        Sign, send and wait for a contract transaction.

        Returns:
            Transaction receipt

        Raises:
            RuntimeError: If the transaction reverted
        """
        return await asyncio.to_thread(self._transact_sync, fn)

    async def send_value(self, recipient: str, amount: int) -> Dict[str, Any]:
        """
        Sign, send and wait for a plain native-currency transfer.

        Returns:
            Transaction receipt

        Raises:
            RuntimeError: If the transaction reverted
        """
        return await asyncio.to_thread(self._send_value_sync, recipient, amount)

    def _get_balance_sync(self, address: str) -> int:
        w3 = self.connect()
        return w3.eth.get_balance(Web3.to_checksum_address(address))

    def _transact_sync(self, fn) -> Dict[str, Any]:
        w3 = self.connect()
        if not self.account_address:
            raise RuntimeError("No signing account configured")

        tx = fn.build_transaction({
            "from": self.account_address,
            "nonce": w3.eth.get_transaction_count(self.account_address),
        })
        return self._sign_and_wait(w3, tx)

    def _send_value_sync(self, recipient: str, amount: int) -> Dict[str, Any]:
        w3 = self.connect()
        if not self.account_address:
            raise RuntimeError("No signing account configured")

        tx = {
            "to": Web3.to_checksum_address(recipient),
            "value": amount,
            "from": self.account_address,
            "nonce": w3.eth.get_transaction_count(self.account_address),
            "gas": 21000,
            "gasPrice": w3.eth.gas_price,
            "chainId": w3.eth.chain_id,
        }
        return self._sign_and_wait(w3, tx)

    def _sign_and_wait(self, w3: Web3, tx: Dict[str, Any]) -> Dict[str, Any]:
        signed = w3.eth.account.sign_transaction(tx, self.private_key)
        tx_hash = w3.eth.send_raw_transaction(signed.raw_transaction)
        receipt = w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout)

        if receipt["status"] != 1:
            raise RuntimeError(f"Transaction {tx_hash.hex()} reverted")

        logger.debug(f"Transaction {tx_hash.hex()} mined in block {receipt['blockNumber']}")
        return receipt
