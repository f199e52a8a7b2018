"""
Unit tests for the on-chain adapters, with the Web3 client mocked out.
"""

import asyncio
import time
from unittest.mock import AsyncMock, MagicMock, Mock

import pytest

from nautilus_trader.model.identifiers import Venue

from cl_position_manager.adapters.erc20_ledger import ERC20Ledger
from cl_position_manager.adapters.uniswap_adapter import MAX_UINT128, UniswapV3Venue
from cl_position_manager.adapters.web3_client import Web3Client
from cl_position_manager.core.errors import VenueError
from cl_position_manager.models.position import Asset

SIGNER = "0x" + "11" * 20
TOKEN_A = "0x" + "aa" * 20
TOKEN_B = "0x" + "bb" * 20


def mock_client():
    client = Mock()
    client.account_address = SIGNER
    client.network = "mainnet"
    client.call = AsyncMock()
    client.transact = AsyncMock(return_value={"status": 1})
    return client


def with_event(contract, name, args):
    """Make ``contract.events.<name>().process_receipt`` yield one event."""
    getattr(contract.events, name).return_value.process_receipt.return_value = [{"args": args}]


class TestUniswapV3Venue:
    """Test cases for UniswapV3Venue."""

    @pytest.fixture
    def client(self):
        return mock_client()

    @pytest.fixture
    def adapter(self, client):
        adapter = UniswapV3Venue(
            {
                "pool_address": "0x" + "cc" * 20,
                "token_a_address": TOKEN_A,
                "token_b_address": TOKEN_B,
                "fee_tier": 3000,
            },
            client=client
        )
        adapter._npm = MagicMock()
        adapter._pool = MagicMock()
        return adapter

    def test_initialization(self, adapter):
        assert adapter.venue == Venue("UNISWAP")
        assert adapter.fee_tier == 3000
        assert adapter.position_manager_address == "0xC36442b4a4522E871399CD717aBDD847Ab11FE88"

    def test_missing_pool_config(self, client):
        with pytest.raises(KeyError):
            UniswapV3Venue({"token_a_address": TOKEN_A, "token_b_address": TOKEN_B}, client=client)

    @pytest.mark.asyncio
    async def test_current_tick(self, adapter, client):
        client.call.return_value = (2 ** 96, -12345, 0, 1, 1, 0, True)

        assert await adapter.current_tick() == -12345

    @pytest.mark.asyncio
    async def test_current_tick_failure(self, adapter, client):
        client.call.side_effect = ConnectionError("rpc down")

        with pytest.raises(VenueError) as exc_info:
            await adapter.current_tick()
        assert isinstance(exc_info.value.__cause__, ConnectionError)

    @pytest.mark.asyncio
    async def test_get_position(self, adapter, client):
        client.call.return_value = (0, SIGNER, TOKEN_A, TOKEN_B, 3000, -600, 600, 12345, 0, 0, 7, 8)

        position = await adapter.get_position(42)

        assert position.identifier == 42
        assert (position.tick_lower, position.tick_upper) == (-600, 600)
        assert position.liquidity_amount == 12345
        assert (position.owed_amount_a, position.owed_amount_b) == (7, 8)

    @pytest.mark.asyncio
    async def test_open_position_approves_and_mints(self, adapter, client):
        client.call.return_value = 0
        with_event(adapter.npm, "IncreaseLiquidity", {"tokenId": 7, "liquidity": 100, "amount0": 3, "amount1": 4})

        receipt = await adapter.open_position(10, 20, -600, 600)

        assert (receipt.position_id, receipt.liquidity, receipt.used_a, receipt.used_b) == (7, 100, 3, 4)
        # Two approvals then the mint
        assert client.transact.await_count == 3

        params = adapter.npm.functions.mint.call_args[0][0]
        assert params[:7] == (TOKEN_A, TOKEN_B, 3000, -600, 600, 10, 20)
        assert params[9] == SIGNER

    @pytest.mark.asyncio
    async def test_open_position_skips_sufficient_allowance(self, adapter, client):
        client.call.return_value = 2 ** 200
        with_event(adapter.npm, "IncreaseLiquidity", {"tokenId": 1, "liquidity": 1, "amount0": 1, "amount1": 1})

        await adapter.open_position(10, 20, -600, 600)

        assert client.transact.await_count == 1

    @pytest.mark.asyncio
    async def test_missing_event_is_venue_error(self, adapter, client):
        client.call.return_value = 2 ** 200
        adapter.npm.events.IncreaseLiquidity.return_value.process_receipt.return_value = []

        with pytest.raises(VenueError):
            await adapter.open_position(10, 20, -600, 600)

    @pytest.mark.asyncio
    async def test_reverted_mint_is_venue_error(self, adapter, client):
        client.call.return_value = 2 ** 200
        client.transact.side_effect = RuntimeError("Transaction reverted")

        with pytest.raises(VenueError) as exc_info:
            await adapter.open_position(10, 20, -600, 600)
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    @pytest.mark.asyncio
    async def test_decrease_uses_full_liquidity(self, adapter, client):
        client.call.return_value = (0, SIGNER, TOKEN_A, TOKEN_B, 3000, -600, 600, 555, 0, 0, 0, 0)
        with_event(adapter.npm, "DecreaseLiquidity", {"tokenId": 3, "liquidity": 555, "amount0": 9, "amount1": 11})

        amounts = await adapter.decrease_liquidity_to_zero(3)

        assert amounts == (9, 11)
        assert adapter.npm.functions.decreaseLiquidity.call_args[0][0][:2] == (3, 555)

    @pytest.mark.asyncio
    async def test_decrease_empty_position(self, adapter, client):
        client.call.return_value = (0, SIGNER, TOKEN_A, TOKEN_B, 3000, -600, 600, 0, 0, 0, 0, 0)

        assert await adapter.decrease_liquidity_to_zero(3) == (0, 0)
        client.transact.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_collect_everything_owed(self, adapter):
        with_event(adapter.npm, "Collect", {"tokenId": 3, "amount0": 5, "amount1": 6})

        amounts = await adapter.collect(3, SIGNER)

        assert amounts == (5, 6)
        assert adapter.npm.functions.collect.call_args[0][0] == (3, SIGNER, MAX_UINT128, MAX_UINT128)

    @pytest.mark.asyncio
    async def test_burn_failure(self, adapter, client):
        client.transact.side_effect = RuntimeError("Not cleared")

        with pytest.raises(VenueError):
            await adapter.burn(3)

    def test_connection_status(self, adapter):
        status = adapter.get_connection_status()

        assert status["venue"] == "UNISWAP"
        assert status["account"] == SIGNER


class TestERC20Ledger:
    """Test cases for ERC20Ledger."""

    @pytest.fixture
    def client(self):
        return mock_client()

    @pytest.fixture
    def ledger(self, client):
        return ERC20Ledger(client, {Asset.TOKEN_A: TOKEN_A, Asset.TOKEN_B: TOKEN_B}, account=SIGNER)

    def test_account_defaults_to_signer(self, client):
        ledger = ERC20Ledger(client, {Asset.TOKEN_A: TOKEN_A, Asset.TOKEN_B: TOKEN_B})

        client.web3.assert_called_once()
        assert ledger.account == SIGNER

    @pytest.mark.asyncio
    async def test_holdings(self, ledger, client):
        client.call.side_effect = [500, 700]

        holdings = await ledger.holdings()

        assert (holdings.amount_a, holdings.amount_b) == (500, 700)

    @pytest.mark.asyncio
    async def test_native_balance(self, ledger, client):
        client.get_balance = AsyncMock(return_value=42)

        assert await ledger.balance_of(Asset.NATIVE, SIGNER) == 42
        client.get_balance.assert_awaited_once_with(SIGNER)

    @pytest.mark.asyncio
    async def test_transfer_native(self, ledger, client):
        client.send_value = AsyncMock(return_value={"status": 1})

        await ledger.transfer(Asset.NATIVE, "0x" + "22" * 20, 5)

        client.send_value.assert_awaited_once_with("0x" + "22" * 20, 5)
        client.transact.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_transfer_token(self, ledger, client):
        token = client.contract.return_value

        await ledger.transfer(Asset.TOKEN_B, "0x" + "22" * 20, 99)

        client.transact.assert_awaited_once()
        assert token.functions.transfer.call_args[0][1] == 99

    @pytest.mark.asyncio
    async def test_transfer_failure(self, ledger, client):
        client.transact.side_effect = RuntimeError("reverted")

        with pytest.raises(VenueError):
            await ledger.transfer(Asset.TOKEN_A, "0x" + "22" * 20, 1)

    @pytest.mark.asyncio
    async def test_native_cannot_be_pulled(self, ledger):
        with pytest.raises(VenueError):
            await ledger.transfer_from(Asset.NATIVE, "0x" + "22" * 20, 1)


class TestWeb3Client:
    """Test cases for Web3Client."""

    def test_connect_without_provider(self, monkeypatch):
        monkeypatch.delenv("WEB3__PROVIDER_URL", raising=False)

        with pytest.raises(ConnectionError):
            Web3Client().connect()

    def test_environment_fallback(self, monkeypatch):
        monkeypatch.setenv("WEB3__PROVIDER_URL", "http://localhost:8545")

        client = Web3Client()
        assert client.provider_url == "http://localhost:8545"
        assert client.w3 is None

    @pytest.mark.asyncio
    async def test_call_runs_in_thread(self):
        fn = Mock()
        fn.call.return_value = 5

        assert await Web3Client(provider_url="http://localhost:8545").call(fn) == 5

    def test_build_without_network_round_trip(self):
        client = Web3Client(provider_url="http://localhost:8545")

        assert client.web3() is client.web3()
        assert not client.is_connected

    @pytest.mark.asyncio
    async def test_native_balance_does_not_block_loop(self):
        def slow_balance(address):
            time.sleep(0.5)
            return 42

        client = Web3Client(provider_url="http://localhost:8545")
        client.w3 = MagicMock()
        client.w3.eth.get_balance.side_effect = slow_balance
        ledger = ERC20Ledger(client, {Asset.TOKEN_A: TOKEN_A, Asset.TOKEN_B: TOKEN_B}, account=SIGNER)

        beats = 0

        async def heartbeat():
            nonlocal beats
            while True:
                await asyncio.sleep(0.05)
                beats += 1

        task = asyncio.create_task(heartbeat())
        try:
            balance = await ledger.balance_of(Asset.NATIVE, SIGNER)
        finally:
            task.cancel()

        assert balance == 42
        assert beats >= 5

    @pytest.mark.asyncio
    async def test_send_value_reverted(self):
        client = Web3Client(provider_url="http://localhost:8545", private_key="0x" + "01" * 32)
        client.w3 = MagicMock()
        client.account_address = SIGNER
        client.w3.eth.wait_for_transaction_receipt.return_value = {"status": 0, "blockNumber": 1}

        with pytest.raises(RuntimeError):
            await client.send_value("0x" + "22" * 20, 1)

        tx = client.w3.eth.account.sign_transaction.call_args[0][0]
        assert (tx["value"], tx["gas"]) == (1, 21000)
