"""
Univ3 CLI — Command Implementations
====================================

All CLI command handlers live here, keeping run.py as a thin
argparse dispatcher. Each public function corresponds to a
subcommand (info, pools, pool, position, watch).

One-shot commands print the failure and return False so run.py can exit
non-zero; ``watch`` logs per-cycle failures and keeps going.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx

from univ3_cli.central_config import PROJECT_NAME, PROJECT_VERSION, AppConfig, subgraph_api
from univ3_cli.errors import Univ3Error
from univ3_cli.graphql_client import GraphQLClient
from univ3_cli.models import OnchainPosition, Pool


@asynccontextmanager
async def _session(config: AppConfig) -> AsyncIterator[tuple]:
    """One shared HTTP client plus the scout/reader built on top of it."""
    from pool_scout import PoolScout
    from position_reader import PositionReader

    async with httpx.AsyncClient(timeout=subgraph_api.TIMEOUT_SECONDS) as client:
        graphql = GraphQLClient(config.graph_url, api_key=config.graph_api_key, client=client)
        yield PoolScout(graphql), PositionReader(config.rpc_url, client=client)


def _print_pool_row(rank: int, pool: Pool) -> None:
    print(
        f"  {rank:>4}. {pool.pair:<16} {pool.fee_pct:>5.2f}%  "
        f"TVL ${pool.total_value_locked_usd:>16,.2f}  Vol ${pool.volume_usd:>18,.2f}  {pool.id}"
    )


def _print_pool(pool: Pool) -> None:
    print(f"\n🏊 Pool {pool.id}")
    print("=" * 60)
    print(f"  Pair       : {pool.pair}")
    print(f"  Token0     : {pool.token0.symbol} ({pool.token0.name}) {pool.token0.id} · {pool.token0.decimals} dec")
    print(f"  Token1     : {pool.token1.symbol} ({pool.token1.name}) {pool.token1.id} · {pool.token1.decimals} dec")
    print(f"  Fee Tier   : {pool.fee_pct:.2f}%")
    print(f"  Liquidity  : {pool.liquidity}")
    print(f"  TVL (USD)  : ${pool.total_value_locked_usd:,.2f}")
    print(f"  Volume(USD): ${pool.volume_usd:,.2f}")


def _print_position(pos: OnchainPosition) -> None:
    from price_math import UniswapV3Math

    quote = f"{pos.token1_symbol} per {pos.token0_symbol}"
    width = UniswapV3Math.range_width_pct(pos.price_lower, pos.price_upper)

    print("\n" + "=" * 60)
    print(f"  Position #{pos.token_id} — {pos.token0_symbol}/{pos.token1_symbol}")
    print("=" * 60)
    print(f"  Token0     : {pos.token0_symbol} ({pos.token0}) · {pos.decimals0} dec")
    print(f"  Token1     : {pos.token1_symbol} ({pos.token1}) · {pos.decimals1} dec")
    print(f"  Operator   : {pos.operator}")
    print(f"  Fee Tier   : {pos.fee / 10_000:.2f}%")
    print(f"  Tick Range : [{pos.tick_lower}, {pos.tick_upper}]")
    print(f"  Price Range: [{pos.price_lower_display}, {pos.price_upper_display}] {quote}")
    print(f"  Mid Price  : {pos.mid_price_display} {quote}")
    print(f"  Range Width: {width:.2f}%")
    print(f"  Liquidity  : {pos.liquidity}")
    print(f"  Owed       : {pos.tokens_owed0} (token0) · {pos.tokens_owed1} (token1)")
    if pos.has_inverted_range:
        print("  ⚠️  tickLower > tickUpper — inverted range reported by chain")
    print("=" * 60)


# ── Commands ─────────────────────────────────────────────────────────────


def cmd_info(config: AppConfig) -> None:
    """Display version, endpoints and watch targets."""
    print(f"\n📊 {PROJECT_NAME} v{PROJECT_VERSION}")
    print("=" * 55)
    print("🔗 Protocol   : Uniswap V3 (concentrated liquidity)")
    print(f"📡 Subgraph   : {config.graph_url}")
    print(f"🔑 API key    : {'configured' if config.graph_api_key else 'none'}")
    print(f"🌐 RPC        : {config.rpc_url}")
    print(f"🔁 Retry      : {subgraph_api.MAX_ATTEMPTS} attempts, "
          f"{subgraph_api.BACKOFF_BASE_SECONDS}s × {subgraph_api.BACKOFF_FACTOR:g}^n backoff, "
          f"{subgraph_api.TIMEOUT_SECONDS:g}s timeout")
    print(f"👀 Watch      : {len(config.pool_ids)} pool(s), {len(config.position_ids)} position(s) "
          f"every {config.quote_interval_secs}s")


async def cmd_pools(config: AppConfig, top: int, page_size: int) -> bool:
    """List the top pools by TVL."""
    try:
        async with _session(config) as (scout, _reader):
            if top <= min(page_size, subgraph_api.MAX_PAGE_SIZE):
                pools = await scout.top_pools(top)
            else:
                pools = await scout.top_pools_paginated(top, page_size)
    except Univ3Error as e:
        print(f"❌ Failed to fetch top pools: {e}")
        return False

    print(f"\n🏆 Top {len(pools)} Uniswap V3 pools by TVL")
    for rank, pool in enumerate(pools, 1):
        _print_pool_row(rank, pool)
    return True


async def cmd_pool(config: AppConfig, pool_id: str) -> bool:
    """Show a single pool snapshot."""
    try:
        async with _session(config) as (scout, _reader):
            pool = await scout.get_pool_by_id(pool_id)
    except Univ3Error as e:
        print(f"❌ Failed to fetch pool {pool_id}: {e}")
        return False

    if pool is None:
        print(f"❌ Pool {pool_id} not found")
        return False
    _print_pool(pool)
    return True


async def cmd_position(config: AppConfig, token_id: str) -> bool:
    """One-shot on-chain position lookup."""
    try:
        async with _session(config) as (_scout, reader):
            pos = await reader.read_position(token_id)
    except ValueError as e:
        print(f"❌ {e}")
        return False
    except Univ3Error as e:
        print(f"❌ Failed to read position {token_id}: {e}")
        return False

    _print_position(pos)
    return True


async def cmd_watch(config: AppConfig, cycles: int | None = None) -> bool:
    """Poll configured pools/positions every ``quote_interval_secs``."""
    from univ3_cli.poller import PoolPoller, describe

    if not config.has_watch_targets:
        print("❌ Nothing to watch: set uniswap.pool_ids or uniswap.position_ids in the config")
        return False

    print(f"👀 Watching {len(config.pool_ids)} pool(s) and {len(config.position_ids)} "
          f"position(s) every {config.quote_interval_secs}s (Ctrl+C to stop)")
    async with _session(config) as (scout, _reader):
        poller = PoolPoller(
            scout,
            config.pool_ids,
            config.position_ids,
            interval_s=config.quote_interval_secs,
            on_result=lambda result: print(describe(result)),
        )
        await poller.run(max_cycles=cycles)
    return True
