"""
Concentrated-Liquidity Position Paper Trading Example

Runs the full position lifecycle against the simulated venue:
1. Open a WBTC/USDC-style position around the current tick
2. Accrue and compound fees
3. Move the price out of range and rebalance
4. Print the weekly analytics report
"""

import asyncio
from decimal import Decimal

from cl_position_manager.adapters.simulated import SimulatedLedger, SimulatedVenue, StaticPriceFeed
from cl_position_manager.core.errors import PartialLifecycleError
from cl_position_manager.core.oracle import OracleGateway
from cl_position_manager.models.position import Asset, RangeConfiguration, Token
from cl_position_manager.pricing.tick_math import range_to_ticks
from cl_position_manager.strategies.analytics import AnalyticsReporter
from cl_position_manager.strategies.position_manager import PositionManager

OWNER = "0xOwner"
MANAGER = "0xManager"
UNIT = 10 ** 18


async def main():
    print("\n" + "=" * 60)
    print("Concentrated-Liquidity Position - Paper Trading")
    print("=" * 60)

    token_a = Token(address="0x" + "aa" * 20, symbol="TKA", decimals=18)
    token_b = Token(address="0x" + "bb" * 20, symbol="USDX", decimals=18)
    ledger = SimulatedLedger(MANAGER, {
        OWNER: {Asset.TOKEN_A: 10 * UNIT, Asset.TOKEN_B: 20 * UNIT},
    })
    venue = SimulatedVenue(ledger, current_tick=6960, tick_spacing=60)
    feed = StaticPriceFeed(value=2 * 10 ** 8)
    range_config = RangeConfiguration(range_percent=Decimal('15'), tick_spacing=60)

    manager = PositionManager(
        owner=OWNER,
        venue=venue,
        ledger=ledger,
        oracle=OracleGateway(feed),
        range_config=range_config,
        token_a=token_a,
        token_b=token_b
    )
    reporter = AnalyticsReporter(Decimal('600'), token_a, token_b, mark_price=Decimal('2'))
    manager.set_callbacks(on_fee_record=reporter.record_fees)

    tick_lower, tick_upper = range_to_ticks(6960, range_config.range_percent, range_config.tick_spacing)
    created = await manager.create_position(OWNER, 5 * UNIT, 10 * UNIT, tick_lower, tick_upper)
    print(f"\n📊 Opened position #{created.position_id} [{tick_lower}, {tick_upper}]")
    print(f"  Used: {token_a.to_units(created.used_a):.4f} {token_a.symbol}, "
          f"{token_b.to_units(created.used_b):.4f} {token_b.symbol}")

    venue.accrue_fees(created.position_id, UNIT // 10, UNIT // 5)
    compounded = await manager.compound()
    print(f"\n💰 Compounded ${compounded.fee_record.usd_value:.2f} of fees "
          f"(prioritized {compounded.prioritized_asset}) into #{compounded.created.position_id}")

    venue.set_current_tick(8100)
    status = await manager.get_status()
    print(f"\n⚠️  Price moved: tick {status.current_tick}, alert {status.alert_level.value}")

    try:
        rebalanced = await manager.rebalance(OWNER)
        print(f"  Rebalanced into #{rebalanced.created.position_id} "
              f"[{rebalanced.created.tick_lower}, {rebalanced.created.tick_upper}]")
    except PartialLifecycleError as e:
        print(f"  Rebalance degraded, funds idle in holdings: {e}")
        await manager.add_liquidity_from_holdings(OWNER)

    report = reporter.weekly_report(Decimal('15000'), in_range_percent=90)
    print("\n" + reporter.format_report(report))
    print(f"\nRecommendation: {reporter.recommendation()['message']}")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\n\nPaper trading session interrupted by user")
