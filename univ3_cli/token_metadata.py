"""
Token Metadata Resolver — ERC-20 symbol() and decimals() with Fallbacks
========================================================================

Auxiliary lookups for the position reader. None of them may abort a
position fetch: every typed failure degrades to a documented default.

symbol():
  The ERC-20 standard returns ``string``, but early tokens (MKR, SAI, …)
  return ``bytes32``. One eth_call is issued and the same raw bytes are run
  through ``SYMBOL_DECODERS`` in order; the first non-empty result wins.
  If the call fails or every decoder fails, the token address is used.

decimals():
  Decoded as ``uint8``. Any failure → 18 (the ERC-20 convention).

Ref: https://eips.ethereum.org/EIPS/eip-20
"""

from typing import Callable, Optional, Tuple

import httpx
from loguru import logger

from univ3_cli.abi_codec import SIGNATURES, decode, encode_call
from univ3_cli.central_config import onchain
from univ3_cli.errors import DecodeError, Univ3Error
from univ3_cli.rpc_helpers import eth_call
from univ3_cli.token_aliases import alias_symbol, clean_symbol

DEFAULT_DECIMALS = onchain.DEFAULT_DECIMALS


# ── Symbol Decode Strategies ────────────────────────────────────────────


def _decode_symbol_string(raw: bytes) -> str:
    (value,) = decode(raw, ["string"])
    return clean_symbol(value)


def _decode_symbol_bytes32(raw: bytes) -> str:
    (value,) = decode(raw, ["bytes32"])
    try:
        return clean_symbol(value.rstrip(b"\x00").decode("utf-8"))
    except UnicodeDecodeError as exc:
        raise DecodeError(f"bytes32 symbol is not valid UTF-8: {exc}") from exc


SYMBOL_DECODERS: Tuple[Tuple[str, Callable[[bytes], str]], ...] = (
    ("string", _decode_symbol_string),
    ("bytes32", _decode_symbol_bytes32),
)


def decode_symbol(raw: bytes) -> Optional[str]:
    """Run ``SYMBOL_DECODERS`` in order; None when none yields a usable symbol."""
    for name, decoder in SYMBOL_DECODERS:
        try:
            symbol = decoder(raw)
        except DecodeError as exc:
            logger.debug("symbol() {} decode failed: {}", name, exc)
            continue
        if symbol:
            return symbol
    return None


# ── Resolver ────────────────────────────────────────────────────────────


class TokenMetadataResolver:
    """
    Resolves ERC-20 symbol and decimals via eth_call.

    Usage:
        resolver = TokenMetadataResolver("https://arb1.arbitrum.io/rpc")
        sym = await resolver.resolve_symbol("0x82aF...")      # "WETH"
        dec = await resolver.resolve_decimals("0x82aF...")    # 18
        canonical = resolver.alias_symbol("0x82aF...", sym)   # "ETH"
    """

    def __init__(
        self,
        rpc_url: str,
        *,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = onchain.TIMEOUT_SECONDS,
    ):
        self.rpc_url = rpc_url
        self._client = client
        self._timeout = timeout

    async def _call(self, address: str, signature: str) -> bytes:
        return await eth_call(
            self.rpc_url,
            address,
            encode_call(signature),
            client=self._client,
            timeout=self._timeout,
        )

    async def resolve_symbol(self, address: str) -> str:
        """Token symbol, or the address itself when it cannot be read."""
        try:
            raw = await self._call(address, SIGNATURES["symbol"])
        except Univ3Error as exc:
            logger.warning("symbol() call failed for {}: {}", address, exc)
            return address

        symbol = decode_symbol(raw)
        if symbol is None:
            logger.warning("symbol() for {} undecodable, using address", address)
            return address
        return symbol

    async def resolve_decimals(self, address: str) -> int:
        """Token decimals, or 18 when they cannot be read."""
        try:
            raw = await self._call(address, SIGNATURES["decimals"])
            (decimals,) = decode(raw, ["uint8"])
        except Univ3Error as exc:
            logger.warning(
                "decimals() failed for {}: {}; defaulting to {}",
                address,
                exc,
                DEFAULT_DECIMALS,
            )
            return DEFAULT_DECIMALS
        return decimals

    @staticmethod
    def alias_symbol(address: str, raw_symbol: str) -> str:
        return alias_symbol(address, raw_symbol)
