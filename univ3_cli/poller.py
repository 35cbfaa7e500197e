"""
Background Poller — Periodic Pool Quotes for Configured Ids
============================================================

Each cycle quotes every configured pool id and every configured position
id (resolved position → pool) concurrently. Fetches are isolated: one
failure is logged and reported in its PollResult, the others proceed.

The loop is cooperative: one full cycle, then ``asyncio.sleep(interval)``.
A failing cycle never terminates the loop.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Callable, Sequence

from loguru import logger

from univ3_cli.models import Pool


@dataclass(frozen=True)
class PollResult:
    """Outcome of one isolated fetch inside a poll cycle."""

    kind: str                      # "pool" | "position"
    target_id: str
    pool: Pool | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def found(self) -> bool:
        return self.pool is not None


def describe(result: PollResult) -> str:
    """One-line human summary of a poll result."""
    label = "Pool" if result.kind == "pool" else "Position"
    if result.error is not None:
        return f"[UNISWAP] Error fetching {label.lower()} {result.target_id}: {result.error}"
    if result.pool is None:
        return f"[UNISWAP] {label} {result.target_id} not found"

    p = result.pool
    prefix = (
        f"[UNISWAP] Pool {p.id}"
        if result.kind == "pool"
        else f"[UNISWAP] Position {result.target_id} -> Pool {p.id}"
    )
    return (
        f"{prefix} | {p.pair} | TVL(USD): {p.total_value_locked_usd:,.2f} "
        f"| Volume(USD): {p.volume_usd:,.2f}"
    )


class PoolPoller:
    """
    Usage:
        poller = PoolPoller(scout, ["0x8ad5..."], ["12345"], interval_s=300)
        await poller.run()                 # forever
        await poller.run(max_cycles=1)     # one cycle
    """

    def __init__(
        self,
        scout: Any,
        pool_ids: Sequence[str] = (),
        position_ids: Sequence[str] = (),
        interval_s: float = 300,
        on_result: Callable[[PollResult], None] | None = None,
    ) -> None:
        if interval_s <= 0:
            raise ValueError("interval_s must be greater than 0")
        self._scout = scout
        self._pool_ids = tuple(pool_ids)
        self._position_ids = tuple(position_ids)
        self._interval_s = interval_s
        self._on_result = on_result

    async def _quote(self, kind: str, target_id: str) -> PollResult:
        fetch = (
            self._scout.get_pool_by_id
            if kind == "pool"
            else self._scout.get_pool_by_position_id
        )
        try:
            pool = await fetch(target_id)
        except Exception as exc:  # noqa: BLE001 — isolate one target from the cycle
            logger.error("Error fetching {} {}: {}", kind, target_id, exc)
            return PollResult(kind, target_id, error=str(exc) or type(exc).__name__)
        return PollResult(kind, target_id, pool=pool)

    async def run_cycle(self) -> list[PollResult]:
        """Quote every configured target once; results keep config order."""
        tasks = [self._quote("pool", pid) for pid in self._pool_ids]
        tasks += [self._quote("position", pid) for pid in self._position_ids]
        results = list(await asyncio.gather(*tasks))

        for result in results:
            logger.info(describe(result))
            if self._on_result is not None:
                self._on_result(result)
        return results

    async def run(self, max_cycles: int | None = None) -> int:
        """
        Poll until cancelled, or for ``max_cycles`` cycles.

        Returns the number of completed cycles.
        """
        cycles = 0
        while max_cycles is None or cycles < max_cycles:
            try:
                await self.run_cycle()
            except Exception as exc:  # noqa: BLE001 — keep the loop alive
                logger.error("Poll cycle {} failed: {}", cycles + 1, exc)
            cycles += 1
            if max_cycles is not None and cycles >= max_cycles:
                break
            await asyncio.sleep(self._interval_s)
        return cycles
