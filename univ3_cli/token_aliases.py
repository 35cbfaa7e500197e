"""
Token Aliases — Canonical Symbols for Wrapped and Bridged Assets
=================================================================

Raw ERC-20 symbols are noisy: wrapped native tokens ("WETH", "WETH9"),
bridged stablecoin variants ("USDC.e", "USDT.e"), and non-standard Unicode
("USD₮0"). ``alias_symbol`` collapses them to the canonical ticker a user
expects to see.

Resolution order:
  1. Address override table (case-insensitive) — authoritative for known
     contracts, regardless of what their symbol() returns.
  2. Symbol table — generic wrapped/bridged forms.
  3. Otherwise the raw symbol, upper-cased.

Address sources (Arbitrum One):
  https://docs.arbitrum.io/build-decentralized-apps/reference/contract-addresses
  https://developers.circle.com/stablecoins/usdc-on-main-networks
"""

from types import MappingProxyType

# ── Address Overrides (lower-case keys) ─────────────────────────────────

ADDRESS_ALIASES = MappingProxyType({
    "0x82af49447d8a07e3bd95bd0d56f35241523fbab1": "ETH",   # WETH
    "0xaf88d065e77c8cc2239327c5edb3a432268e5831": "USDC",  # USDC (native)
    "0xff970a61a04b1ca14834a43f5de4533ebddb5cc8": "USDC",  # USDC.e (bridged)
    "0xfd086bc7cd5c481dcc9c85ebe478a1c0b69fcbb9": "USDT",  # USD₮0
    "0xda10009cbd5d07dd0cecc66161fc93d7c9000da1": "DAI",
    "0x2f2a2543b76a4166549f7aab2e75bef0aefc5b0f": "BTC",   # WBTC
    "0x912ce59144191c1204e64559fe8253a0e49e6548": "ARB",
})

# ── Symbol Aliases (upper-case keys) ────────────────────────────────────

SYMBOL_ALIASES = MappingProxyType({
    # Wrapped native
    "WETH": "ETH",
    "WETH9": "ETH",
    "WETH.E": "ETH",
    # Wrapped Bitcoin
    "WBTC": "BTC",
    "WBTC.E": "BTC",
    # Bridged USD stablecoins
    "USDC.E": "USDC",
    "USDCE": "USDC",
    "USDBC": "USDC",
    "USDT.E": "USDT",
    "USDT0": "USDT",
    "USD₮0": "USDT",
    "USD₮": "USDT",
    "DAI.E": "DAI",
})


def clean_symbol(raw_symbol: str) -> str:
    """Strip NUL padding and surrounding whitespace from an on-chain symbol."""
    return raw_symbol.strip().strip("\x00").strip()


def alias_symbol(token_address: str, raw_symbol: str) -> str:
    """
    Canonicalize a token symbol.

    Examples:
        >>> alias_symbol("0x82aF49447D8a07e3bd95BD0d56f35241523fBab1", "WETH")
        'ETH'
        >>> alias_symbol("0x0000000000000000000000000000000000000001", "usdc.e")
        'USDC'
        >>> alias_symbol("0x0000000000000000000000000000000000000001", "link")
        'LINK'
    """
    by_address = ADDRESS_ALIASES.get(token_address.strip().lower())
    if by_address is not None:
        return by_address

    upper = clean_symbol(raw_symbol).upper()
    return SYMBOL_ALIASES.get(upper, upper)
