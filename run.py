#!/usr/bin/env python3
"""
Univ3 CLI -- Uniswap V3 Subgraph + On-Chain Reader
===================================================

Usage:
  python run.py pools    [--top N] [--page-size P]     Top pools by TVL (subgraph)
  python run.py pool     <pool_id>                     One pool snapshot (subgraph)
  python run.py position <token_id>                    Position NFT read live from chain
  python run.py watch    [--cycles K]                  Poll configured pools/positions
  python run.py info                                   Endpoints and settings

Global options:
  --config PATH   TOML configuration (default: config.toml; defaults if missing)
  --verbose       Debug logging

Sources:
  Uniswap V3 Whitepaper : https://uniswap.org/whitepaper-v3.pdf
  Uniswap V3 Subgraph   : https://docs.uniswap.org/api/subgraph/overview
  Ethereum JSON-RPC     : https://ethereum.org/en/developers/docs/apis/json-rpc/
"""

import sys
import asyncio
import argparse
from pathlib import Path

from loguru import logger

# ── Imports ───────────────────────────────────────────────────────────────

project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from univ3_cli.central_config import PROJECT_VERSION, subgraph_api, load_config
from univ3_cli.commands import (
    cmd_info,
    cmd_pools,
    cmd_pool,
    cmd_position,
    cmd_watch,
)


# ── CLI Parser ────────────────────────────────────────────────────────────


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="univ3-cli",
        description=f"Univ3 CLI v{PROJECT_VERSION} — Uniswap V3 subgraph and on-chain reader",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run.py pools --top 25                     Top 25 pools by TVL
  python run.py pools --top 500 --page-size 100    Top 500, fetched 100 per page
  python run.py pool 0x8ad599c3a0ff1de082011efddc58f1908eb6e6d8
  python run.py position 5260106                   Read a position NFT on-chain
  python run.py watch                              Poll ids from [uniswap] in config.toml
  python run.py watch --cycles 1                   One poll cycle, then exit

Configuration (config.toml):
  rpc_url = "https://arb1.arbitrum.io/rpc"
  [api]
  thegraph_api_url = "https://gateway.thegraph.com/api/<key>/subgraphs/id/<id>"
  thegraph_api_key = "..."          # or env UNIV3_GRAPH_API_KEY
  [uniswap]
  pool_ids = ["0x..."]
  position_ids = ["12345"]
  quote_interval_secs = 300
  [logging]
  log_level = "INFO"
""",
    )
    parser.add_argument(
        "--version", action="version", version=f"Univ3 CLI v{PROJECT_VERSION}"
    )
    parser.add_argument(
        "--config",
        type=str,
        default="config.toml",
        help="Configuration file path (default: config.toml)",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )

    sub = parser.add_subparsers(dest="command", help="Available commands")

    pools_p = sub.add_parser("pools", help="List top pools by TVL")
    pools_p.add_argument(
        "--top", type=int, default=10, help="Number of pools (default: 10)"
    )
    pools_p.add_argument(
        "--page-size",
        type=int,
        default=subgraph_api.DEFAULT_PAGE_SIZE,
        help=f"Pools per subgraph request (default: {subgraph_api.DEFAULT_PAGE_SIZE})",
    )

    pool_p = sub.add_parser("pool", help="Show one pool by id")
    pool_p.add_argument("pool_id", help="Pool contract address (0x…)")

    position_p = sub.add_parser("position", help="Read a position NFT on-chain")
    position_p.add_argument("token_id", help="Position NFT tokenId (uint256)")

    watch_p = sub.add_parser("watch", help="Poll configured pools/positions")
    watch_p.add_argument(
        "--cycles",
        type=int,
        default=None,
        help="Stop after K cycles (default: run until interrupted)",
    )

    sub.add_parser("info", help="Endpoints and settings")

    return parser


def configure_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


# ── Main ──────────────────────────────────────────────────────────────────


def main() -> int:
    parser = create_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return 0

    try:
        config = load_config(args.config)
    except ValueError as e:
        print(f"❌ Invalid configuration: {e}")
        return 1

    configure_logging("DEBUG" if args.verbose else config.log_level)

    if args.command == "info":
        cmd_info(config)
        return 0
    if args.command == "pools":
        if args.top < 1:
            print("❌ --top must be at least 1")
            return 1
        ok = asyncio.run(cmd_pools(config, args.top, args.page_size))
        return 0 if ok else 1
    if args.command == "pool":
        ok = asyncio.run(cmd_pool(config, args.pool_id))
        return 0 if ok else 1
    if args.command == "position":
        ok = asyncio.run(cmd_position(config, args.token_id))
        return 0 if ok else 1
    if args.command == "watch":
        ok = asyncio.run(cmd_watch(config, args.cycles))
        return 0 if ok else 1

    parser.print_help()
    return 0


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\n❌ Cancelled.")
        sys.exit(130)
