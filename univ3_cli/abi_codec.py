"""
ABI Codec — Selectors, Argument Encoding and Schema-Driven Tuple Decoding
==========================================================================

Low-level EVM encoding primitives used by the RPC layer, the token metadata
resolver and the position reader:

  • Function selectors (first 4 bytes of keccak256(signature))
  • uint256 argument encoding and full calldata assembly
  • Tuple decoding driven by an explicit list of declared types

All rules follow the Ethereum ABI specification:
  https://docs.soliditylang.org/en/latest/abi-spec.html

Terminology:
  • Word:  32 bytes = 256 bits
  • Head:  one word per declared type (static value, or offset for dynamic)
  • Tail:  length-prefixed payload of dynamic types (string, bytes)

The decoder checks the buffer against the schema before reading any slot,
so a truncated reply from a remote node raises DecodeError instead of
yielding a half-filled tuple.
"""

import re
from typing import Any, Sequence, Tuple

from eth_utils import function_signature_to_4byte_selector

from univ3_cli.errors import DecodeError

# ── ABI Word Constants ──────────────────────────────────────────────────

ABI_WORD_BYTES = 32           # 1 ABI word = 32 bytes
SELECTOR_BYTES = 4            # keccak256(signature)[:4]
ADDRESS_BYTES = 20            # Ethereum address = 20 bytes
ADDRESS_PAD_BYTES = 12        # Left padding in a 32-byte slot = 32 - 20
SIGN_BIT = 1 << 255           # Two's complement sign bit for int256
Q256 = 2 ** 256               # int256 overflow boundary (two's complement wrap)

# ── Canonical Signatures ────────────────────────────────────────────────
# Exact Solidity signatures; any whitespace or alias (uint vs uint256)
# changes the hash.

SIGNATURES = {
    # NonfungiblePositionManager
    "positions": "positions(uint256)",
    # ERC-20 metadata
    "symbol": "symbol()",
    "decimals": "decimals()",
}

_TYPE_RE = re.compile(r"^(uint|int|bytes)(\d*)$")


def selector(signature: str) -> bytes:
    """First 4 bytes of keccak256 over the raw signature bytes.

    >>> selector("transfer(address,uint256)").hex()
    'a9059cbb'
    """
    return bytes(function_signature_to_4byte_selector(signature))


# ── ABI Encoding ────────────────────────────────────────────────────────

def encode_uint256(value: int) -> bytes:
    """ABI-encode an unsigned integer as one big-endian 32-byte word."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"uint256 argument must be an int, got {type(value).__name__}")
    if value < 0 or value >= Q256:
        raise ValueError(f"uint256 argument out of range: {value}")
    return value.to_bytes(ABI_WORD_BYTES, "big")


def encode_call(signature: str, *args: int) -> bytes:
    """Selector followed by the ABI-encoded (unsigned integer) arguments."""
    return selector(signature) + b"".join(encode_uint256(a) for a in args)


# ── ABI Decoding ────────────────────────────────────────────────────────

def _parse_type(abi_type: str) -> Tuple[str, int]:
    """Split a declared type into (kind, size). Size is bits for ints, bytes for bytesN."""
    if abi_type in ("address", "bool", "string"):
        return abi_type, 0
    if abi_type == "bytes":
        return "dynbytes", 0

    match = _TYPE_RE.match(abi_type)
    if not match:
        raise ValueError(f"Unsupported ABI type: {abi_type!r}")
    kind, size_txt = match.groups()
    if kind == "bytes":
        size = int(size_txt)
        if not 1 <= size <= 32:
            raise ValueError(f"Unsupported ABI type: {abi_type!r}")
        return "bytesN", size

    bits = int(size_txt) if size_txt else 256
    if bits % 8 or not 8 <= bits <= 256:
        raise ValueError(f"Unsupported ABI type: {abi_type!r}")
    return kind, bits


def _word(data: bytes, offset: int) -> bytes:
    end = offset + ABI_WORD_BYTES
    if offset < 0 or end > len(data):
        raise DecodeError(
            f"ABI payload too short: need {end} bytes, have {len(data)}"
        )
    return data[offset:end]


def _decode_dynamic(data: bytes, head: bytes) -> bytes:
    offset = int.from_bytes(head, "big")
    length = int.from_bytes(_word(data, offset), "big")
    start = offset + ABI_WORD_BYTES
    if start + length > len(data):
        raise DecodeError(
            f"ABI dynamic value overruns payload: offset={offset} length={length} size={len(data)}"
        )
    return data[start:start + length]


def _decode_one(data: bytes, slot: bytes, kind: str, size: int) -> Any:
    raw = int.from_bytes(slot, "big")

    if kind == "uint":
        if raw >> size:
            raise DecodeError(f"value does not fit uint{size}: {raw}")
        return raw

    if kind == "int":
        value = raw - Q256 if raw & SIGN_BIT else raw
        bound = 1 << (size - 1)
        if not -bound <= value < bound:
            raise DecodeError(f"value does not fit int{size}: {value}")
        return value

    if kind == "address":
        if any(slot[:ADDRESS_PAD_BYTES]):
            raise DecodeError("address slot has non-zero padding")
        return "0x" + slot[ADDRESS_PAD_BYTES:].hex()

    if kind == "bool":
        if raw not in (0, 1):
            raise DecodeError(f"invalid bool value: {raw}")
        return bool(raw)

    if kind == "bytesN":
        if any(slot[size:]):
            raise DecodeError(f"bytes{size} slot has non-zero padding")
        return slot[:size]

    payload = _decode_dynamic(data, slot)
    if kind == "dynbytes":
        return payload
    try:
        return payload.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise DecodeError(f"string is not valid UTF-8: {exc}") from exc


def decode(data: bytes, types: Sequence[str]) -> Tuple[Any, ...]:
    """
    Decode an ABI-encoded tuple according to ``types``.

    Args:
        data: Raw return bytes (no 0x prefix, not hex).
        types: Declared types in order, e.g. ``["address", "int24", "string"]``.

    Returns:
        Tuple of decoded values: str for address/string, int for (u)intN,
        bool for bool, bytes for bytesN/bytes.

    Raises:
        DecodeError: buffer shorter than the schema, or a value does not
            fit its declared type.
        ValueError: ``types`` names an unsupported type.
    """
    parsed = [_parse_type(t) for t in types]
    head_size = ABI_WORD_BYTES * len(parsed)
    if len(data) < head_size:
        raise DecodeError(
            f"ABI payload too short for {len(parsed)} values: "
            f"need {head_size} bytes, have {len(data)}"
        )

    return tuple(
        _decode_one(data, data[i * ABI_WORD_BYTES:(i + 1) * ABI_WORD_BYTES], kind, size)
        for i, (kind, size) in enumerate(parsed)
    )
