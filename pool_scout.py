#!/usr/bin/env python3
"""
Pool Scout — Uniswap V3 Pool Discovery via the Subgraph
========================================================

Queries the Uniswap V3 subgraph for pool snapshots:

  • top_pools(first)                      — one page, ranked by TVL (desc)
  • top_pools_paginated(total, page_size) — walks skip/first pages
  • get_pool_by_id(pool_id)               — single pool, None if unknown
  • get_pool_by_position_id(position_id)  — position NFT → pool → snapshot

Subgraph schema: https://github.com/Uniswap/v3-subgraph/blob/main/schema.graphql

Pagination relies on the server-side ranking key (totalValueLockedUSD desc).
If the ranked set moves between page fetches, entries can repeat or be
skipped; the subgraph offers no snapshot to page against, so this is
accepted rather than corrected.
"""

import asyncio
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar

from loguru import logger

from univ3_cli.central_config import subgraph_api
from univ3_cli.errors import DecodeError, MissingDataError
from univ3_cli.graphql_client import GraphQLClient
from univ3_cli.models import Pool

T = TypeVar("T")

# ── Queries ──────────────────────────────────────────────────────────────

_POOL_FIELDS = """
    id
    feeTier
    liquidity
    volumeUSD
    totalValueLockedUSD
    token0 { id symbol name decimals }
    token1 { id symbol name decimals }
"""

TOP_POOLS_QUERY = f"""
query TopPools($first: Int!) {{
  pools(first: $first, orderBy: totalValueLockedUSD, orderDirection: desc) {{{_POOL_FIELDS}  }}
}}
"""

TOP_POOLS_PAGE_QUERY = f"""
query TopPools($first: Int!, $skip: Int!) {{
  pools(first: $first, skip: $skip, orderBy: totalValueLockedUSD, orderDirection: desc) {{{_POOL_FIELDS}  }}
}}
"""

POOL_BY_ID_QUERY = f"""
query PoolById($id: ID!) {{
  pool(id: $id) {{{_POOL_FIELDS}  }}
}}
"""

POSITION_POOL_QUERY = """
query PositionById($id: ID!) {
  position(id: $id) {
    id
    pool { id }
  }
}
"""


# ── Pagination Walker ────────────────────────────────────────────────────


async def paginate(
    fetch_page: Callable[[int, int], Awaitable[List[T]]],
    total: int,
    page_size: int,
) -> List[T]:
    """
    Accumulate pages until ``total`` items are collected or a page is empty.

    Args:
        fetch_page: ``async (first, skip) -> list``; called with
            skip = page_size × page_index.
        total: Number of items wanted.
        page_size: Items per request (values < 1 are treated as 1).

    Returns:
        At most ``total`` items, in page order.
    """
    if total <= 0:
        return []
    page_size = max(1, page_size)

    items: List[T] = []
    page_index = 0
    while len(items) < total:
        skip = page_size * page_index
        batch = await fetch_page(page_size, skip)
        if not batch:
            logger.debug("Empty page at skip={}, result set exhausted", skip)
            break
        items.extend(batch)
        page_index += 1

    del items[total:]
    return items


# ── Pool Scout ────────────────────────────────────────────────────────────


class PoolScout:
    """
    Subgraph pool lookups on top of a shared GraphQLClient.

    Usage:
        scout = PoolScout(GraphQLClient(url))
        pools = await scout.top_pools_paginated(250, page_size=100)
    """

    def __init__(self, graphql: GraphQLClient):
        self.graphql = graphql

    @staticmethod
    def _parse_pools(data: Dict[str, Any]) -> List[Pool]:
        rows = data.get("pools")
        if rows is None:
            raise MissingDataError("graph response has no pools field")
        if not isinstance(rows, list):
            raise DecodeError(f"pools is not a list: {type(rows).__name__}")
        return [Pool.from_subgraph(row) for row in rows]

    async def top_pools(self, first: int) -> List[Pool]:
        """Top ``first`` pools by TVL in one request."""
        logger.info("Fetching top {} pools from {}", first, self.graphql.endpoint)
        data = await self.graphql.send(TOP_POOLS_QUERY, {"first": first})
        pools = self._parse_pools(data)
        logger.info("Fetched {} top pools", len(pools))
        return pools

    async def _top_pools_page(self, first: int, skip: int) -> List[Pool]:
        logger.debug("Fetching top pools page first={} skip={}", first, skip)
        data = await self.graphql.send(TOP_POOLS_PAGE_QUERY, {"first": first, "skip": skip})
        return self._parse_pools(data)

    async def top_pools_paginated(
        self, total: int, page_size: int = subgraph_api.DEFAULT_PAGE_SIZE
    ) -> List[Pool]:
        """Top ``total`` pools by TVL, fetched ``page_size`` at a time."""
        page_size = min(page_size, subgraph_api.MAX_PAGE_SIZE)
        logger.info("Fetching top {} pools paginated (page_size={})", total, page_size)
        pools = await paginate(self._top_pools_page, total, page_size)
        logger.info("Completed paginated fetch: {} pools", len(pools))
        return pools

    async def get_pool_by_id(self, pool_id: str) -> Optional[Pool]:
        """Single pool snapshot; None when the subgraph does not know the id."""
        data = await self.graphql.send(POOL_BY_ID_QUERY, {"id": pool_id.lower()})
        row = data.get("pool")
        logger.debug("Fetched pool {} (found={})", pool_id, row is not None)
        return Pool.from_subgraph(row) if row is not None else None

    async def get_pool_by_position_id(self, position_id: str) -> Optional[Pool]:
        """Resolve a position NFT id to its pool, then fetch the pool."""
        data = await self.graphql.send(POSITION_POOL_QUERY, {"id": str(position_id)})
        position = data.get("position")
        if position is None:
            logger.info("Position {} not found in subgraph", position_id)
            return None

        pool_ref = position.get("pool") if isinstance(position, dict) else None
        pool_id = pool_ref.get("id") if isinstance(pool_ref, dict) else None
        if not pool_id:
            raise DecodeError(f"position {position_id} has no pool reference")
        logger.debug("Resolved position {} to pool {}", position_id, pool_id)
        return await self.get_pool_by_id(pool_id)


# ── Standalone Test ──────────────────────────────────────────────────────

async def _test_top_pools(total: int = 10) -> List[Pool]:
    """Quick test against the default endpoint.

    Usage:
        python pool_scout.py [total]
    """
    pools = await PoolScout(GraphQLClient()).top_pools_paginated(total)
    for i, p in enumerate(pools, 1):
        print(f"  {i:>3}. {p.pair:<14} {p.fee_pct:.2f}%  TVL ${p.total_value_locked_usd:,.0f}")
    return pools


if __name__ == "__main__":
    import sys
    asyncio.run(_test_top_pools(int(sys.argv[1]) if len(sys.argv) > 1 else 10))
