"""
Pytest configuration and fixtures.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from cl_position_manager.adapters.simulated import SimulatedLedger, SimulatedVenue, StaticPriceFeed
from cl_position_manager.core.oracle import OracleGateway
from cl_position_manager.models.position import Asset, RangeConfiguration, Token
from cl_position_manager.strategies.position_manager import PositionManager

OWNER = "0xOwner"
MANAGER = "0xManager"
STRANGER = "0xStranger"

UNIT = 10 ** 18
OWNER_FUNDS = 10 * UNIT

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    """Fixed UTC clock."""
    return lambda: NOW


@pytest.fixture
def token_a():
    return Token(address="0x" + "aa" * 20, symbol="TKA", decimals=18)


@pytest.fixture
def token_b():
    return Token(address="0x" + "bb" * 20, symbol="USDX", decimals=18)


@pytest.fixture
def ledger():
    """Ledger with a funded owner and an empty manager account."""
    return SimulatedLedger(MANAGER, {
        OWNER: {Asset.TOKEN_A: OWNER_FUNDS, Asset.TOKEN_B: OWNER_FUNDS},
    })


@pytest.fixture
def venue(ledger):
    return SimulatedVenue(ledger, current_tick=0, tick_spacing=60)


@pytest.fixture
def price_feed(clock):
    """Token A at $2.00 with 8 decimals."""
    return StaticPriceFeed(value=2 * 10 ** 8, decimals=8, clock=clock)


@pytest.fixture
def oracle(price_feed, clock):
    return OracleGateway(price_feed, clock=clock)


@pytest.fixture
def range_config():
    return RangeConfiguration(range_percent=Decimal('15'), tick_spacing=60)


@pytest.fixture
def manager(venue, ledger, oracle, range_config, token_a, token_b):
    return PositionManager(
        owner=OWNER,
        venue=venue,
        ledger=ledger,
        oracle=oracle,
        range_config=range_config,
        token_a=token_a,
        token_b=token_b
    )
