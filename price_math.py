#!/usr/bin/env python3
"""
Tick → Price Math
=================

Converts a position's integer tick bounds into human-readable prices.

FORMULA SOURCES:
────────────────
1. Uniswap V3 Core Whitepaper §6.1 — Tick-Indexed Concentrated Liquidity
   https://uniswap.org/whitepaper-v3.pdf
   p(i) = 1.0001^i

2. Uniswap V3 Docs — Token decimals and human-readable prices
   https://docs.uniswap.org/sdk/v3/guides/background#token-decimals
   human_price = raw_price × 10^(decimals0 − decimals1)

Prices are quoted as token1 per token0 (e.g. USDC per WETH).

Float exponentiation loses precision for very large |tick|; results are
accurate to well under a basis point across realistic liquidity ranges,
and no arbitrary-precision arithmetic is attempted.
"""

import math
from typing import NamedTuple

# Uniswap V3 valid tick range (TickMath.MIN_TICK / MAX_TICK)
MIN_TICK = -887272
MAX_TICK = 887272

TICK_BASE = 1.0001


class PriceRange(NamedTuple):
    """Lower, upper and geometric-mid price of a tick range."""

    lower: float
    upper: float
    mid: float


class UniswapV3Math:
    """Pure functions implementing Uniswap V3 tick/price conversion."""

    @staticmethod
    def tick_to_price(tick: int, decimals0: int = 0, decimals1: int = 0) -> float:
        """
        Convert a tick index to a decimal-adjusted price.

        Formula (Whitepaper §6.1):
            p(i) = 1.0001^i × 10^(decimals0 − decimals1)

        Guard, not part of the formula (CWE-682): out-of-protocol ticks are
        clamped to [MIN_TICK, MAX_TICK] first, so a corrupt int24 cannot
        overflow float exponentiation.
        """
        tick = max(MIN_TICK, min(MAX_TICK, tick))
        return TICK_BASE ** tick * 10.0 ** (decimals0 - decimals1)

    @staticmethod
    def price_range(
        tick_lower: int, tick_upper: int, decimals0: int, decimals1: int
    ) -> PriceRange:
        """
        Price bounds of a position plus its geometric mid price.

            priceLower = 1.0001^tickLower × 10^(d0 − d1)
            priceUpper = 1.0001^tickUpper × 10^(d0 − d1)
            midPrice   = √(priceLower × priceUpper)

        The mid price is computed as √lower × √upper so the product of two
        extreme prices cannot overflow. An inverted range (lower > upper) is
        computed as given.

        Example: ticks (0, 0), equal decimals → (1.0, 1.0, 1.0)
        """
        lower = UniswapV3Math.tick_to_price(tick_lower, decimals0, decimals1)
        upper = UniswapV3Math.tick_to_price(tick_upper, decimals0, decimals1)
        mid = math.sqrt(lower) * math.sqrt(upper)
        return PriceRange(lower, upper, mid)

    @staticmethod
    def range_width_pct(price_lower: float, price_upper: float) -> float:
        """
        Width of a price range relative to its geometric mid, in percent.

            width = (P_upper − P_lower) / √(P_lower × P_upper) × 100
        """
        if price_lower <= 0 or price_upper <= 0:
            return 0.0
        return (price_upper - price_lower) / (math.sqrt(price_lower) * math.sqrt(price_upper)) * 100


def format_price(value: float) -> str:
    """Render a price to 2 decimal places, e.g. 1.0 → '1.00'."""
    return f"{value:.2f}"
