"""
Error Taxonomy — Typed Failures for Subgraph and On-Chain Reads
================================================================

Every failure the core can surface is one of these types, so callers can
tell a flaky network apart from a malformed payload:

  • TransportError          — connection / timeout failure (no HTTP response)
  • HttpStatusError         — non-2xx HTTP response
  • GraphqlApplicationError — 2xx response carrying a GraphQL ``errors`` list
  • DecodeError             — malformed JSON envelope or ABI payload
  • MissingDataError        — an expected field is absent
  • EmptyResultError        — eth_call returned no result (revert / no code)

DecodeError and GraphqlApplicationError are never retried: a malformed
payload or query does not fix itself on a second attempt.
"""

from typing import List, Optional


class Univ3Error(Exception):
    """Base class for all typed failures raised by univ3_cli."""


class TransportError(Univ3Error):
    """The HTTP exchange itself failed (DNS, connect, read, timeout)."""


class HttpStatusError(Univ3Error):
    """The server answered with a non-2xx status."""

    def __init__(self, status_code: int, message: str = ""):
        self.status_code = status_code
        super().__init__(message or f"HTTP {status_code}")


class GraphqlApplicationError(Univ3Error):
    """2xx response whose envelope carries a populated ``errors`` array."""

    def __init__(self, messages: List[str]):
        self.messages = list(messages) or ["unknown graph error"]
        super().__init__(f"graph error: {self.messages[0]}")


class DecodeError(Univ3Error):
    """A JSON envelope or ABI payload could not be decoded."""


class MissingDataError(Univ3Error):
    """A required field is absent from an otherwise valid response."""


class EmptyResultError(MissingDataError):
    """eth_call produced no usable ``result`` (revert, no contract, ``0x``)."""

    def __init__(self, message: str = "empty eth_call result", rpc_error: Optional[str] = None):
        self.rpc_error = rpc_error
        super().__init__(message)
