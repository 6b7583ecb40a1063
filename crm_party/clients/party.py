"""Client for the downstream party service.

``PartyService`` lists the remote operations. ``HttpPartyService`` performs
them over HTTP through the fallback executor, and ``StaticPartyFallback``
supplies the value returned whenever the real call cannot be made or fails.

Callers only ever receive decoded data or the fallback value. The only
exception that reaches them is ``RequestConstructionError``, raised on the
calling thread before anything is dispatched.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import httpx

from crm_party.clients.transport import OPERATION_EXTENSION
from crm_party.core.constants import PARTY_FALLBACK_RESPONSE
from crm_party.core.exceptions import (
    DownstreamUnavailableError,
    RequestConstructionError,
)
from crm_party.resilience.fallback import FallbackExecutor


# =============================================================================
# Constants
# =============================================================================

OP_GET_PARTY = "get_party"
PARTY_PATH = "api/party"


# =============================================================================
# Interface
# =============================================================================


class PartyService(ABC):
    """Operations exposed by the party service."""

    @abstractmethod
    def get_party(self) -> list[str]:
        """GET /api/party: the party entries as a list of strings."""


class StaticPartyFallback(PartyService):
    """Fallback implementation returning a fixed one-element response."""

    def __init__(self, response: str = PARTY_FALLBACK_RESPONSE) -> None:
        self._response = response

    def get_party(self) -> list[str]:
        # New list per call, callers may mutate it
        return [self._response]


# =============================================================================
# HTTP Implementation
# =============================================================================


def decode_string_list(response: httpx.Response, operation: str) -> list[str]:
    """Decode a JSON array of strings.

    Raises:
        DownstreamUnavailableError: Body is not JSON or not an array.
    """
    try:
        payload = response.json()
    except ValueError as e:
        raise DownstreamUnavailableError(
            f"'{operation}' returned an invalid JSON body",
            operation=operation,
            status_code=response.status_code,
        ) from e

    if not isinstance(payload, list):
        raise DownstreamUnavailableError(
            f"'{operation}' returned {type(payload).__name__}, expected a list",
            operation=operation,
            status_code=response.status_code,
        )
    return [str(item) for item in payload]


class HttpPartyService(PartyService):
    """
    ``PartyService`` over HTTP with fallback.

    Args:
        client: httpx client bound to the party base URL, already wrapped
            with the tracing transport.
        executor: Isolates the calls and substitutes the fallback.
        fallback: Implementation used when a call fails.
    """

    def __init__(
        self,
        client: httpx.Client,
        executor: FallbackExecutor,
        fallback: PartyService | None = None,
    ) -> None:
        self._client = client
        self._executor = executor
        self._fallback = fallback or StaticPartyFallback()

    @property
    def executor(self) -> FallbackExecutor:
        return self._executor

    @property
    def base_url(self) -> httpx.URL:
        return self._client.base_url

    def get_party(self) -> list[str]:
        request = self._build_request("GET", PARTY_PATH, OP_GET_PARTY)
        return self._executor.execute(
            OP_GET_PARTY,
            lambda: decode_string_list(self._send(request, OP_GET_PARTY), OP_GET_PARTY),
            fallback=self._fallback.get_party,
        )

    def close(self) -> None:
        """Release the connection pool and stop the worker pool."""
        self._executor.shutdown(wait=False)
        self._client.close()

    def _build_request(self, method: str, path: str, operation: str) -> httpx.Request:
        try:
            return self._client.build_request(
                method,
                path,
                extensions={OPERATION_EXTENSION: operation},
            )
        except (httpx.InvalidURL, TypeError, ValueError) as e:
            raise RequestConstructionError(
                f"Cannot build '{operation}' request: {e!s}",
                operation=operation,
            ) from e

    def _send(self, request: httpx.Request, operation: str) -> httpx.Response:
        try:
            response = self._client.send(request)
        except httpx.HTTPError as e:
            raise DownstreamUnavailableError(
                f"'{operation}' failed: {e!s}",
                operation=operation,
            ) from e

        if not response.is_success:
            raise DownstreamUnavailableError(
                f"'{operation}' returned HTTP {response.status_code}",
                operation=operation,
                status_code=response.status_code,
            )
        return response
