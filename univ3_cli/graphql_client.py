"""
GraphQL Query Engine — Subgraph Requests with Retry and Backoff
================================================================

Sends ``{query, variables}`` to a GraphQL endpoint and returns the ``data``
object. A call succeeds only when all four hold:

  1. HTTP status is 2xx
  2. the body parses as a JSON object
  3. the ``errors`` list is absent or empty
  4. the ``data`` field is present

Retry policy (per call, never stored on the instance):
  • up to ``max_attempts`` total attempts (default 3)
  • HTTP 400 is a permanent client error → fail after one attempt
  • any other non-2xx status, or an httpx request failure (timeouts,
    connection errors, redirect loops), is retried after
    base × factor^(n−1) seconds: 0.3s, 0.9s, 2.7s, …
  • GraphQL ``errors``, undecodable bodies (including a corrupt
    content-encoding) and missing ``data`` are
    returned to the caller immediately: a bad query stays bad.

Each attempt is bounded by its own timeout, so the worst case is
attempts × timeout + cumulative backoff.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import httpx
from loguru import logger

from univ3_cli.central_config import subgraph_api
from univ3_cli.errors import (
    DecodeError,
    GraphqlApplicationError,
    HttpStatusError,
    MissingDataError,
    TransportError,
)


def backoff_schedule(
    max_attempts: int = subgraph_api.MAX_ATTEMPTS,
    base_s: float = subgraph_api.BACKOFF_BASE_SECONDS,
    factor: float = subgraph_api.BACKOFF_FACTOR,
) -> list[float]:
    """Delays slept after each failed attempt, e.g. [0.3, 0.9, 2.7] for 3."""
    return [base_s * factor**i for i in range(max_attempts)]


class GraphQLClient:
    """
    Immutable GraphQL client, safe to share between concurrent callers.

    Usage:
        gql = GraphQLClient(url, api_key=key)
        data = await gql.send("query { pools(first: 5) { id } }")
    """

    def __init__(
        self,
        endpoint: str = subgraph_api.BASE_URL,
        *,
        api_key: str | None = None,
        timeout: float = subgraph_api.TIMEOUT_SECONDS,
        max_attempts: int = subgraph_api.MAX_ATTEMPTS,
        backoff_base_s: float = subgraph_api.BACKOFF_BASE_SECONDS,
        backoff_factor: float = subgraph_api.BACKOFF_FACTOR,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._endpoint = str(endpoint)
        self._timeout = timeout
        self._max_attempts = max_attempts
        self._backoff = tuple(backoff_schedule(max_attempts, backoff_base_s, backoff_factor))
        self._client = client

        headers = {
            "Content-Type": "application/json",
            "User-Agent": subgraph_api.USER_AGENT,
        }
        if api_key:
            # The Graph gateway expects a bearer token; some deployments read `apikey`
            headers["Authorization"] = f"Bearer {api_key}"
            headers["apikey"] = api_key
        self._headers = headers

    @property
    def endpoint(self) -> str:
        return self._endpoint

    @property
    def headers(self) -> dict[str, str]:
        return dict(self._headers)

    async def send(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """Execute ``query`` and return the envelope's ``data`` object."""
        payload = {"query": query, "variables": variables or {}}

        if self._client is not None:
            return await self._send_with_retry(self._client, payload)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            return await self._send_with_retry(client, payload)

    async def _send_with_retry(
        self, client: httpx.AsyncClient, payload: dict[str, Any]
    ) -> dict[str, Any]:
        last_error: Exception | None = None

        for attempt in range(1, self._max_attempts + 1):
            logger.debug(
                "Sending request to subgraph (attempt {}/{}) endpoint={}",
                attempt,
                self._max_attempts,
                self._endpoint,
            )
            try:
                resp = await client.post(
                    self._endpoint,
                    headers=self._headers,
                    json=payload,
                    timeout=self._timeout,
                )
            except httpx.DecodingError as exc:
                logger.warning("Subgraph response body could not be decoded: {}", exc)
                raise DecodeError(f"subgraph response body could not be decoded: {exc}") from exc
            except httpx.RequestError as exc:
                last_error = TransportError(
                    f"subgraph transport failure: {type(exc).__name__}"
                )
                last_error.__cause__ = exc
            else:
                status = resp.status_code
                if 200 <= status < 300:
                    data = self._unwrap(resp)
                    logger.debug("Subgraph request succeeded (attempt {})", attempt)
                    return data

                last_error = HttpStatusError(status, f"subgraph request failed, status={status}")
                if status == subgraph_api.NON_RETRYABLE_STATUS:
                    logger.warning("Subgraph rejected request with HTTP {}, not retrying", status)
                    raise last_error

            if attempt >= self._max_attempts:
                break
            delay_s = self._backoff[attempt - 1]
            logger.warning(
                "Subgraph request failed (attempt {}/{}): {}; retrying in {:.1f}s",
                attempt,
                self._max_attempts,
                last_error,
                delay_s,
            )
            await asyncio.sleep(delay_s)

        logger.error("Subgraph request failed after {} attempts: {}", self._max_attempts, last_error)
        raise last_error

    @staticmethod
    def _unwrap(resp: httpx.Response) -> dict[str, Any]:
        try:
            envelope = resp.json()
        except (json.JSONDecodeError, ValueError) as exc:
            raise DecodeError(f"decoding graph response JSON: {exc}") from exc
        if not isinstance(envelope, dict):
            raise DecodeError(f"graph response is not an object: {type(envelope).__name__}")

        errors = envelope.get("errors")
        if errors:
            messages = [
                e.get("message", str(e)) if isinstance(e, dict) else str(e)
                for e in (errors if isinstance(errors, list) else [errors])
            ]
            logger.info("Subgraph returned errors: {}", messages[0])
            raise GraphqlApplicationError(messages)

        data = envelope.get("data")
        if data is None:
            raise MissingDataError("graph response missing data field")
        if not isinstance(data, dict):
            raise DecodeError(f"graph data is not an object: {type(data).__name__}")
        return data
