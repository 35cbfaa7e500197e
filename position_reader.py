#!/usr/bin/env python3
"""
On-Chain Position Reader for Uniswap V3
========================================

Reads a position's authoritative state directly from the blockchain via
JSON-RPC ``eth_call``. No web3.py — calldata is built and decoded by
univ3_cli.abi_codec.

Pipeline (linear, no retries):
──────────────────────────────
  a) NonfungiblePositionManager.positions(tokenId)     — fatal on failure
     Contract: 0xC36442b4a4522E871399CD717aBDD847Ab11FE88
     Ref: https://github.com/Uniswap/v3-periphery/blob/main/contracts/NonfungiblePositionManager.sol
  b) Decode the 12-field tuple                          — fatal on failure
  c) ERC-20 symbol() for token0 / token1                — falls back to address
  d) ERC-20 decimals() for token0 / token1              — falls back to 18
  e) Tick bounds → prices (price_math)
  f) Assemble an OnchainPosition

Price Formula (Whitepaper §6.1):
  p(i) = 1.0001^i × 10^(d0 − d1)        token1 per token0
"""

import asyncio
from typing import Optional, Union

import httpx
from loguru import logger

from price_math import UniswapV3Math
from univ3_cli.abi_codec import SIGNATURES, decode, encode_call
from univ3_cli.central_config import onchain
from univ3_cli.models import OnchainPosition
from univ3_cli.rpc_helpers import eth_call
from univ3_cli.token_metadata import TokenMetadataResolver

# positions(uint256) return tuple, in ABI order
POSITIONS_OUTPUT_TYPES = (
    "uint96",     # nonce
    "address",    # operator
    "address",    # token0
    "address",    # token1
    "uint24",     # fee
    "int24",      # tickLower
    "int24",      # tickUpper
    "uint128",    # liquidity
    "uint256",    # feeGrowthInside0LastX128
    "uint256",    # feeGrowthInside1LastX128
    "uint128",    # tokensOwed0
    "uint128",    # tokensOwed1
)

_POSITION_FIELDS = (
    "nonce", "operator", "token0", "token1", "fee", "tickLower", "tickUpper",
    "liquidity", "feeGrowthInside0LastX128", "feeGrowthInside1LastX128",
    "tokensOwed0", "tokensOwed1",
)


def parse_token_id(token_id: Union[int, str]) -> int:
    """Accept an int or a decimal string; reject negatives and garbage."""
    if isinstance(token_id, bool):
        raise ValueError(f"token_id must be an integer, got {token_id!r}")
    if isinstance(token_id, str):
        text = token_id.strip()
        if not text.isdigit():
            raise ValueError(f"token_id must be a non-negative decimal integer, got {token_id!r}")
        return int(text)
    if not isinstance(token_id, int) or token_id < 0:
        raise ValueError(f"token_id must be non-negative, got {token_id!r}")
    return token_id


class PositionReader:
    """
    Reads Uniswap V3 position NFTs from the blockchain.

    Usage:
        reader = PositionReader("https://arb1.arbitrum.io/rpc")
        pos = await reader.read_position(1234567)
        print(pos.token0_symbol, pos.price_lower_display)
    """

    def __init__(
        self,
        rpc_url: str,
        *,
        position_manager: str = onchain.POSITION_MANAGER,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = onchain.TIMEOUT_SECONDS,
    ):
        self.rpc_url = rpc_url
        self.position_manager = position_manager
        self._client = client
        self._timeout = timeout
        self.tokens = TokenMetadataResolver(rpc_url, client=client, timeout=timeout)

    async def read_position(self, token_id: Union[int, str]) -> OnchainPosition:
        """
        Read a position and resolve its token metadata and price range.

        Raises:
            ValueError: token_id is not a non-negative integer.
            Univ3Error: the positions() call or its decode failed.
        """
        token_id = parse_token_id(token_id)
        logger.info("Fetching on-chain position {}", token_id)

        # ── Steps a–b: authoritative read (fatal) ────────────────────────
        pos = await self._read_position_nft(token_id)

        if pos["tickLower"] > pos["tickUpper"]:
            logger.warning(
                "Position {} has inverted tick range [{}, {}]",
                token_id, pos["tickLower"], pos["tickUpper"],
            )

        # ── Steps c–d: auxiliary metadata (fault tolerant) ───────────────
        token0, token1 = pos["token0"], pos["token1"]
        sym0_raw, sym1_raw, dec0, dec1 = await asyncio.gather(
            self.tokens.resolve_symbol(token0),
            self.tokens.resolve_symbol(token1),
            self.tokens.resolve_decimals(token0),
            self.tokens.resolve_decimals(token1),
        )
        symbol0 = self.tokens.alias_symbol(token0, sym0_raw)
        symbol1 = self.tokens.alias_symbol(token1, sym1_raw)

        # ── Step e: prices ───────────────────────────────────────────────
        prices = UniswapV3Math.price_range(pos["tickLower"], pos["tickUpper"], dec0, dec1)

        # ── Step f: assemble ─────────────────────────────────────────────
        position = OnchainPosition(
            token_id=token_id,
            operator=pos["operator"],
            token0=token0,
            token1=token1,
            token0_symbol=symbol0,
            token1_symbol=symbol1,
            fee=pos["fee"],
            tick_lower=pos["tickLower"],
            tick_upper=pos["tickUpper"],
            liquidity=pos["liquidity"],
            tokens_owed0=pos["tokensOwed0"],
            tokens_owed1=pos["tokensOwed1"],
            decimals0=dec0,
            decimals1=dec1,
            price_lower=prices.lower,
            price_upper=prices.upper,
            mid_price=prices.mid,
        )
        logger.info(
            "Fetched on-chain position {}: {}/{} fee={} liquidity={}",
            token_id, symbol0, symbol1, position.fee, position.liquidity,
        )
        return position

    # ── Internal: Read position NFT ──────────────────────────────────

    async def _read_position_nft(self, token_id: int) -> dict:
        """
        Call NonfungiblePositionManager.positions(uint256 tokenId).

        Returns the 12 fields of the contract ABI keyed by their Solidity
        names (nonce, operator, token0, token1, fee, tickLower, tickUpper,
        liquidity, feeGrowthInside0LastX128, feeGrowthInside1LastX128,
        tokensOwed0, tokensOwed1).
        """
        calldata = encode_call(SIGNATURES["positions"], token_id)
        result = await eth_call(
            self.rpc_url,
            self.position_manager,
            calldata,
            client=self._client,
            timeout=self._timeout,
        )
        return dict(zip(_POSITION_FIELDS, decode(result, POSITIONS_OUTPUT_TYPES)))


# ── Standalone Test ──────────────────────────────────────────────────────

async def _test_position(token_id: int, rpc_url: str = onchain.RPC_URL) -> OnchainPosition:
    """Quick test: read a real position from chain.

    Usage:
        python position_reader.py <token_id> [rpc_url]
    """
    pos = await PositionReader(rpc_url).read_position(token_id)
    print(f"  Position #{pos.token_id} — {pos.token0_symbol}/{pos.token1_symbol}")
    print(f"  Ticks : [{pos.tick_lower}, {pos.tick_upper}]")
    print(f"  Range : {pos.price_lower_display} – {pos.price_upper_display} (mid {pos.mid_price_display})")
    return pos


if __name__ == "__main__":
    import sys
    if len(sys.argv) < 2:
        print("Usage: python position_reader.py <token_id> [rpc_url]")
        sys.exit(1)
    asyncio.run(_test_position(int(sys.argv[1]), *sys.argv[2:3]))
