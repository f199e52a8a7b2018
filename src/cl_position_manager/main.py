"""
Main entry point for the concentrated-liquidity position manager.
"""

import asyncio
import json
import logging
import sys
from datetime import timedelta
from decimal import Decimal
from pathlib import Path
from typing import Optional

import click

from cl_position_manager.adapters.chainlink_adapter import ChainlinkPriceFeed
from cl_position_manager.adapters.erc20_ledger import ERC20Ledger
from cl_position_manager.adapters.simulated import SimulatedLedger, SimulatedVenue, StaticPriceFeed
from cl_position_manager.adapters.uniswap_adapter import UniswapV3Venue
from cl_position_manager.adapters.web3_client import Web3Client
from cl_position_manager.config.settings import ManagerConfig, load_config
from cl_position_manager.core.errors import PositionManagerError
from cl_position_manager.core.oracle import OracleGateway
from cl_position_manager.core.state_store import JsonStateStore
from cl_position_manager.models.position import Asset, RangeConfiguration, Token
from cl_position_manager.models.trading_mode import TradingMode
from cl_position_manager.pricing.capital_planner import CapitalPlanner, PoolSnapshot
from cl_position_manager.strategies.position_manager import PositionManager

logger = logging.getLogger(__name__)

PAPER_OWNER = "paper-owner"
PAPER_ACCOUNT = "paper-manager"


def setup_logging(level: str, log_file: Optional[str] = None) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    if log_file:
        handler = logging.FileHandler(log_file)
        handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
        logging.getLogger().addHandler(handler)


def build_manager(config: ManagerConfig) -> PositionManager:
    """
    Wire a manager to simulated (PAPER) or on-chain (LIVE) collaborators.

    Args:
        config: Loaded configuration

    Returns:
        Manager ready for ``restore()``
    """
    token_a = Token(**config.token_a.model_dump())
    token_b = Token(**config.token_b.model_dump())
    range_config = RangeConfiguration(
        range_percent=config.position.range_percent,
        tick_spacing=config.pool.tick_spacing
    )
    staleness = timedelta(seconds=config.oracle.staleness_seconds)

    if config.trading_mode == TradingMode.PAPER:
        owner = config.position.owner_address or PAPER_OWNER
        paper = config.paper
        ledger = SimulatedLedger(PAPER_ACCOUNT, {
            owner: {Asset.TOKEN_A: paper.owner_balance_a, Asset.TOKEN_B: paper.owner_balance_b},
            PAPER_ACCOUNT: {Asset.TOKEN_A: paper.manager_balance_a, Asset.TOKEN_B: paper.manager_balance_b},
        })
        venue = SimulatedVenue(ledger, current_tick=paper.current_tick, tick_spacing=config.pool.tick_spacing)
        feed = StaticPriceFeed(value=int(paper.oracle_price * Decimal(10) ** 8), decimals=8)
        state_store = None
    else:
        if not config.position.owner_address:
            raise click.UsageError("POSITION__OWNER_ADDRESS is required in live mode")
        owner = config.position.owner_address
        client = Web3Client(
            provider_url=config.web3.provider_url,
            private_key=config.web3.private_key,
            network=config.web3.network,
            receipt_timeout=config.web3.receipt_timeout
        )
        venue = UniswapV3Venue({
            "pool_address": config.pool.pool_address,
            "position_manager_address": config.pool.position_manager_address,
            "token_a_address": config.token_a.address,
            "token_b_address": config.token_b.address,
            "fee_tier": config.pool.fee_tier,
        }, client=client)
        ledger = ERC20Ledger(client, {
            Asset.TOKEN_A: config.token_a.address,
            Asset.TOKEN_B: config.token_b.address,
        })
        feed = ChainlinkPriceFeed(client, config.oracle.aggregator_address)
        state_store = JsonStateStore(Path(config.position.state_file))

    return PositionManager(
        owner=owner,
        venue=venue,
        ledger=ledger,
        oracle=OracleGateway(feed, staleness_bound=staleness),
        range_config=range_config,
        token_a=token_a,
        token_b=token_b,
        state_store=state_store,
        warning_percent=config.monitoring.price_warning_percent,
        urgent_percent=config.monitoring.price_urgent_percent
    )


def _run(ctx: click.Context, operation) -> None:
    """Build and restore a manager, run one operation and print its result."""
    config: ManagerConfig = ctx.obj["config"]

    async def runner():
        manager = build_manager(config)
        await manager.restore()
        return await operation(manager)

    try:
        result = asyncio.run(runner())
    except PositionManagerError as e:
        logger.error(f"{type(e).__name__}: {e}")
        sys.exit(1)

    click.echo(json.dumps(result.to_dict(), indent=2))


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    help="Path to JSON configuration file",
)
@click.option(
    "--environment",
    "-e",
    type=click.Choice(["dev", "test", "prod"]),
    default="dev",
    help="Environment to run in",
)
@click.option(
    "--mode",
    type=click.Choice([m.value for m in TradingMode]),
    default=None,
    help="Override the configured trading mode",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    default=None,
    help="Logging level",
)
@click.pass_context
def main(
    ctx: click.Context,
    config: Optional[Path] = None,
    environment: str = "dev",
    mode: Optional[str] = None,
    log_level: Optional[str] = None,
) -> None:
    """
    Manage a single concentrated-liquidity position.
    """
    manager_config = load_config(environment, config)
    if mode:
        manager_config.trading_mode = TradingMode(mode)

    setup_logging(log_level or manager_config.log_level, manager_config.log_file)
    logger.info(f"Running in {environment} environment ({manager_config.trading_mode.value} mode)")

    ctx.ensure_object(dict)
    ctx.obj["config"] = manager_config


@main.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show position state, range health and holdings."""
    _run(ctx, lambda manager: manager.get_status())


@main.command()
@click.option("--daily-volume", type=Decimal, required=True, help="Pool 24h volume in USD")
@click.option("--active-liquidity", type=Decimal, required=True, help="Liquidity active at the current tick, in USD (not TVL)")
@click.option("--fee-tier", type=int, default=None, help="Fee tier, defaults to the configured pool")
@click.option("--price", type=Decimal, default=None, help="Token A price in USD for the allocation split")
@click.pass_context
def plan(
    ctx: click.Context,
    daily_volume: Decimal,
    active_liquidity: Decimal,
    fee_tier: Optional[int],
    price: Optional[Decimal],
) -> None:
    """Estimate the capital needed to hit the weekly fee target."""
    config: ManagerConfig = ctx.obj["config"]
    planner = CapitalPlanner(config.position.target_weekly_fees, config.position.range_percent)
    snapshot = PoolSnapshot(
        daily_volume_usd=daily_volume,
        active_liquidity_usd=active_liquidity,
        fee_tier=fee_tier or config.pool.fee_tier
    )

    output = []
    for scenario in planner.plan(snapshot):
        entry = scenario.to_dict()
        if price is not None:
            entry["allocation"] = planner.allocate(scenario.required_capital_usd, price).to_dict()
        output.append(entry)

    click.echo(json.dumps(output, indent=2))


@main.command()
@click.option("--amount-a", type=int, required=True, help="Token A to deposit, in minor units")
@click.option("--amount-b", type=int, required=True, help="Token B to deposit, in minor units")
@click.option("--tick-lower", type=int, required=True, help="Lower tick bound")
@click.option("--tick-upper", type=int, required=True, help="Upper tick bound")
@click.option("--caller", default=None, help="Calling address, defaults to the owner")
@click.pass_context
def create(
    ctx: click.Context,
    amount_a: int,
    amount_b: int,
    tick_lower: int,
    tick_upper: int,
    caller: Optional[str],
) -> None:
    """Open a position funded from the caller's balances."""
    _run(ctx, lambda manager: manager.create_position(
        caller or manager.owner, amount_a, amount_b, tick_lower, tick_upper
    ))


@main.command("add-from-holdings")
@click.option("--caller", default=None, help="Calling address, defaults to the owner")
@click.pass_context
def add_from_holdings(ctx: click.Context, caller: Optional[str]) -> None:
    """Deploy everything the manager holds."""
    _run(ctx, lambda manager: manager.add_liquidity_from_holdings(caller or manager.owner))


@main.command()
@click.option("--caller", default=None, help="Calling address, defaults to the owner")
@click.pass_context
def collect(ctx: click.Context, caller: Optional[str]) -> None:
    """Send accrued fees of the active position to the owner."""
    _run(ctx, lambda manager: manager.collect_fees(caller or manager.owner, manager.position_id))


@main.command()
@click.option("--caller", default=None, help="Calling address, defaults to the owner")
@click.pass_context
def close(ctx: click.Context, caller: Optional[str]) -> None:
    """Drain and burn the active position, keeping the funds in holdings."""
    _run(ctx, lambda manager: manager.close_position(caller or manager.owner))


@main.command()
@click.option("--caller", default=None, help="Calling address, defaults to the owner")
@click.pass_context
def rebalance(ctx: click.Context, caller: Optional[str]) -> None:
    """Close the position and reopen it around the current price."""
    _run(ctx, lambda manager: manager.rebalance(caller or manager.owner))


@main.command()
@click.pass_context
def compound(ctx: click.Context) -> None:
    """Reinvest accrued fees (open to any caller)."""
    _run(ctx, lambda manager: manager.compound())


@main.command("emergency-withdraw")
@click.option("--caller", default=None, help="Calling address, defaults to the owner")
@click.pass_context
def emergency_withdraw(ctx: click.Context, caller: Optional[str]) -> None:
    """Sweep every custodied asset to the owner."""
    _run(ctx, lambda manager: manager.emergency_withdraw(caller or manager.owner))


@main.command("update-range")
@click.argument("range_percent", type=Decimal)
@click.option("--caller", default=None, help="Calling address, defaults to the owner")
@click.pass_context
def update_range(ctx: click.Context, range_percent: Decimal, caller: Optional[str]) -> None:
    """Set the range half-width used for future positions."""
    _run(ctx, lambda manager: manager.update_range(caller or manager.owner, range_percent))


if __name__ == "__main__":
    main()
