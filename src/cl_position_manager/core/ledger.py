"""
Custody ledger interface.

The manager's holdings are a live view over externally custodied balances
of its own account; this interface is how it reads and moves them.
"""

from abc import ABC, abstractmethod

from ..models.position import Asset, HoldingsBalance


class AssetLedger(ABC):
    """Balances and transfers for the manager's account."""

    def __init__(self, account: str):
        """
        Initialize the ledger.

        Args:
            account: Address of the account the manager controls
        """
        self.account = account

    @abstractmethod
    async def balance_of(self, asset: Asset, holder: str) -> int:
        """Balance of ``asset`` held by ``holder``, in minor units."""
        pass

    @abstractmethod
    async def transfer(self, asset: Asset, recipient: str, amount: int) -> None:
        """Send ``amount`` of ``asset`` from the manager's account."""
        pass

    @abstractmethod
    async def transfer_from(self, asset: Asset, sender: str, amount: int) -> None:
        """Pull ``amount`` of ``asset`` from ``sender`` into the manager's account."""
        pass

    async def holdings(self) -> HoldingsBalance:
        """Undeployed position-token balances of the manager's account."""
        return HoldingsBalance(
            amount_a=await self.balance_of(Asset.TOKEN_A, self.account),
            amount_b=await self.balance_of(Asset.TOKEN_B, self.account)
        )
