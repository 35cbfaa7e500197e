#!/usr/bin/env python3
"""
RPC Helpers — Minimal JSON-RPC Client for eth_call
===================================================

Wraps a single ``eth_call`` request/response cycle over JSON-RPC 2.0:

  POST {"jsonrpc": "2.0", "id": 1, "method": "eth_call",
        "params": [{"to": <contract>, "data": "0x<calldata>"}, "latest"]}

Failure mapping:
  • httpx transport failure / timeout   → TransportError
    (and any other httpx request error)
  • content-encoding decode failure     → DecodeError
  • non-2xx HTTP status                  → HttpStatusError
  • body is not a JSON-RPC object        → DecodeError
  • ``error`` member, missing or ``0x``  → EmptyResultError

No retry at this layer: on-chain reads are issued once per logical field
and the caller decides whether a failure is fatal.
"""

import binascii
import json
from typing import Optional

import httpx
from loguru import logger

from univ3_cli.errors import DecodeError, EmptyResultError, HttpStatusError, TransportError

DEFAULT_RPC_TIMEOUT = 15  # seconds


def _mask_url(url: str) -> str:
    """Hide path/query of an RPC URL; hosted endpoints embed API keys there."""
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL:
        return "<rpc>"
    if parsed.path in ("", "/") and not parsed.query:
        return str(parsed)
    return f"{parsed.scheme}://{parsed.host}/…"


def build_eth_call_payload(to: str, data: bytes, request_id: int = 1) -> dict:
    """JSON-RPC 2.0 envelope for ``eth_call`` against the latest block."""
    return {
        "jsonrpc": "2.0",
        "id": request_id,
        "method": "eth_call",
        "params": [{"to": to, "data": "0x" + data.hex()}, "latest"],
    }


def _parse_result(body: object) -> bytes:
    if not isinstance(body, dict):
        raise DecodeError(f"JSON-RPC response is not an object: {type(body).__name__}")

    if "error" in body:
        err = body["error"]
        message = err.get("message", str(err)) if isinstance(err, dict) else str(err)
        raise EmptyResultError(f"RPC error: {message}", rpc_error=message)

    raw = body.get("result")
    if raw is None or raw in ("", "0x"):
        raise EmptyResultError("Empty response — contract may not exist at this address")
    if not isinstance(raw, str):
        raise DecodeError(f"JSON-RPC result is not a hex string: {raw!r}")

    try:
        return bytes.fromhex(raw[2:] if raw.startswith("0x") else raw)
    except (ValueError, binascii.Error) as exc:
        raise DecodeError(f"JSON-RPC result is not valid hex: {exc}") from exc


async def _post(client: httpx.AsyncClient, rpc_url: str, payload: dict) -> httpx.Response:
    try:
        return await client.post(rpc_url, json=payload)
    except httpx.DecodingError as exc:
        raise DecodeError(f"eth_call response body could not be decoded: {exc}") from exc
    except httpx.RequestError as exc:
        raise TransportError(f"eth_call transport failure: {type(exc).__name__}") from exc


async def eth_call(
    rpc_url: str,
    to: str,
    data: bytes,
    *,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = DEFAULT_RPC_TIMEOUT,
) -> bytes:
    """
    Execute ``eth_call`` on an EVM node.

    Args:
        rpc_url: JSON-RPC endpoint URL.
        to: Contract address (0x...).
        data: ABI-encoded calldata (selector + arguments) as raw bytes.
        client: Shared ``httpx.AsyncClient``; a short-lived one is opened
            when omitted.
        timeout: HTTP timeout in seconds (only used for the short-lived client).

    Returns:
        Raw return bytes.
    """
    payload = build_eth_call_payload(to, data)
    logger.debug("eth_call to={} selector=0x{} rpc={}", to, data[:4].hex(), _mask_url(rpc_url))

    if client is not None:
        resp = await _post(client, rpc_url, payload)
    else:
        async with httpx.AsyncClient(timeout=timeout) as own_client:
            resp = await _post(own_client, rpc_url, payload)

    if not 200 <= resp.status_code < 300:
        raise HttpStatusError(resp.status_code, f"eth_call HTTP {resp.status_code}")

    try:
        body = resp.json()
    except (json.JSONDecodeError, ValueError) as exc:
        raise DecodeError(f"JSON-RPC envelope is not JSON: {exc}") from exc

    return _parse_result(body)
