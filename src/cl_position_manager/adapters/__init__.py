"""
Venue, ledger and price feed adapters.

- ``simulated``: in-memory collaborators for paper trading and tests
- ``uniswap_adapter``, ``erc20_ledger``, ``chainlink_adapter``: on-chain adapters over web3
"""

from .simulated import SimulatedLedger, SimulatedVenue, StaticPriceFeed
from .web3_client import Web3Client
from .uniswap_adapter import UniswapV3Venue
from .erc20_ledger import ERC20Ledger
from .chainlink_adapter import ChainlinkPriceFeed

__all__ = [
    'SimulatedLedger',
    'SimulatedVenue',
    'StaticPriceFeed',
    'Web3Client',
    'UniswapV3Venue',
    'ERC20Ledger',
    'ChainlinkPriceFeed',
]
