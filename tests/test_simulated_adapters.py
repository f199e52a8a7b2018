"""
Unit tests for the simulated venue and ledger.
"""

import pytest

from nautilus_trader.model.identifiers import Venue

from cl_position_manager.core.errors import VenueError
from cl_position_manager.models.position import Asset

from conftest import MANAGER, OWNER, OWNER_FUNDS, UNIT


class TestSimulatedLedger:
    """Test cases for SimulatedLedger."""

    @pytest.mark.asyncio
    async def test_transfer_from_and_back(self, ledger):
        await ledger.transfer_from(Asset.TOKEN_A, OWNER, UNIT)
        assert await ledger.balance_of(Asset.TOKEN_A, MANAGER) == UNIT

        await ledger.transfer(Asset.TOKEN_A, OWNER, UNIT)
        assert await ledger.balance_of(Asset.TOKEN_A, OWNER) == OWNER_FUNDS
        assert await ledger.balance_of(Asset.TOKEN_A, MANAGER) == 0

    @pytest.mark.asyncio
    async def test_overdraft_rejected(self, ledger):
        with pytest.raises(VenueError):
            await ledger.transfer(Asset.TOKEN_B, OWNER, 1)

    @pytest.mark.asyncio
    async def test_unknown_holder_has_zero(self, ledger):
        assert await ledger.balance_of(Asset.NATIVE, "0xNobody") == 0


class TestSimulatedVenue:
    """Test cases for SimulatedVenue."""

    @pytest.fixture
    def funded(self, ledger):
        ledger.credit(MANAGER, Asset.TOKEN_A, UNIT)
        ledger.credit(MANAGER, Asset.TOKEN_B, UNIT)
        return ledger

    def test_identity(self, venue):
        assert venue.venue == Venue("SIM")

    @pytest.mark.asyncio
    async def test_full_lifecycle(self, venue, funded):
        receipt = await venue.open_position(UNIT, UNIT, -600, 600)

        assert receipt.position_id == 1
        assert await funded.balance_of(Asset.TOKEN_A, MANAGER) == UNIT - receipt.used_a

        venue.accrue_fees(1, 3, 4)
        amount_a, amount_b = await venue.decrease_liquidity_to_zero(1)
        position = await venue.get_position(1)
        assert position.liquidity_amount == 0
        assert position.owed_amount_a == amount_a + 3

        collected = await venue.collect(1, MANAGER)
        assert collected == (amount_a + 3, amount_b + 4)

        await venue.burn(1)
        assert venue.positions == {}

    @pytest.mark.asyncio
    async def test_burn_requires_cleared_position(self, venue, funded):
        await venue.open_position(UNIT, UNIT, -600, 600)

        with pytest.raises(VenueError):
            await venue.burn(1)

    @pytest.mark.asyncio
    async def test_misaligned_ticks(self, venue, funded):
        with pytest.raises(VenueError):
            await venue.open_position(UNIT, UNIT, -590, 600)

    @pytest.mark.asyncio
    async def test_zero_liquidity_rejected(self, venue, funded):
        with pytest.raises(VenueError):
            await venue.open_position(0, UNIT, -600, 600)

    @pytest.mark.asyncio
    async def test_unknown_position(self, venue):
        with pytest.raises(VenueError):
            await venue.get_position(7)

    @pytest.mark.asyncio
    async def test_get_position_returns_copy(self, venue, funded):
        await venue.open_position(UNIT, UNIT, -600, 600)

        snapshot = await venue.get_position(1)
        snapshot.liquidity_amount = 0

        assert venue.positions[1].liquidity_amount > 0

    @pytest.mark.asyncio
    async def test_current_tick(self, venue):
        venue.set_current_tick(-120)
        assert await venue.current_tick() == -120
