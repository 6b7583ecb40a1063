"""Unit tests for the party service client.

Tests verify:
- A reachable service yields the decoded list
- Every downstream failure yields the fallback value instead of an error
- An open circuit stops calls from reaching the service
- Request construction errors reach the caller
- build_party_client wires base URL, timeout and tracing
"""

from __future__ import annotations

import json
import threading
from unittest.mock import patch

import httpx
import pytest
from opentelemetry.trace import SpanKind

from crm_party.clients.factory import build_fallback_executor, build_party_client
from crm_party.clients.party import (
    OP_GET_PARTY,
    HttpPartyService,
    StaticPartyFallback,
    decode_string_list,
)
from crm_party.core.config import Settings
from crm_party.core.exceptions import DownstreamUnavailableError, RequestConstructionError
from crm_party.resilience.circuit_breaker import CircuitState


# =============================================================================
# Constants
# =============================================================================

FALLBACK_RESPONSE = ["Party response (fallback)"]
PARTY_ENTRIES = ["alice", "bob"]


@pytest.fixture
def make_service(tracer, settings: Settings):
    """Factory for a party client over a given mock handler."""
    services: list[HttpPartyService] = []

    def make(handler) -> HttpPartyService:
        service = build_party_client(
            tracer, settings, transport=httpx.MockTransport(handler)
        )
        services.append(service)
        return service

    yield make
    for service in services:
        service.close()


class TestStaticPartyFallback:
    """Test the fallback implementation."""

    def test_returns_fallback_response(self) -> None:
        assert StaticPartyFallback().get_party() == FALLBACK_RESPONSE

    def test_returns_fresh_list(self) -> None:
        fallback = StaticPartyFallback()
        first = fallback.get_party()
        first.append("mutated")
        assert fallback.get_party() == FALLBACK_RESPONSE


class TestDecodeStringList:
    """Test decode_string_list()."""

    def test_decodes_array(self) -> None:
        response = httpx.Response(200, json=PARTY_ENTRIES)
        assert decode_string_list(response, OP_GET_PARTY) == PARTY_ENTRIES

    def test_invalid_json_rejected(self) -> None:
        response = httpx.Response(200, content=b"not json")
        with pytest.raises(DownstreamUnavailableError):
            decode_string_list(response, OP_GET_PARTY)

    def test_object_rejected(self) -> None:
        response = httpx.Response(200, json={"party": PARTY_ENTRIES})
        with pytest.raises(DownstreamUnavailableError) as exc_info:
            decode_string_list(response, OP_GET_PARTY)
        assert "dict" in exc_info.value.message


class TestGetParty:
    """Test HttpPartyService.get_party()."""

    def test_reachable_service_returns_entries(self, make_service) -> None:
        received: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            received.append(request)
            return httpx.Response(200, content=json.dumps(PARTY_ENTRIES).encode())

        assert make_service(handler).get_party() == PARTY_ENTRIES
        assert received[0].method == "GET"
        assert str(received[0].url) == "http://party:8080/api/party"

    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(500),
            httpx.Response(404),
            httpx.Response(200, content=b"<html>"),
            httpx.Response(200, json={"not": "a list"}),
        ],
        ids=["server-error", "not-found", "invalid-json", "not-a-list"],
    )
    def test_bad_response_returns_fallback(self, make_service, response) -> None:
        service = make_service(lambda request: response)
        assert service.get_party() == FALLBACK_RESPONSE

    def test_unreachable_service_returns_fallback(self, make_service) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        assert make_service(handler).get_party() == FALLBACK_RESPONSE

    def test_slow_service_returns_fallback(self, make_service) -> None:
        release = threading.Event()

        def handler(request: httpx.Request) -> httpx.Response:
            release.wait(5)
            return httpx.Response(200, json=PARTY_ENTRIES)

        try:
            assert make_service(handler).get_party() == FALLBACK_RESPONSE
        finally:
            release.set()

    def test_open_circuit_stops_calls(self, make_service) -> None:
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(503)

        service = make_service(handler)
        for _ in range(3):
            assert service.get_party() == FALLBACK_RESPONSE
        assert service.executor.breaker.state is CircuitState.OPEN

        assert service.get_party() == FALLBACK_RESPONSE
        assert len(calls) == 3

    def test_request_construction_error_reaches_caller(self, make_service) -> None:
        service = make_service(lambda request: httpx.Response(200, json=[]))

        with patch.object(
            httpx.Client, "build_request", side_effect=httpx.InvalidURL("bad url")
        ):
            with pytest.raises(RequestConstructionError) as exc_info:
                service.get_party()
        assert exc_info.value.operation == OP_GET_PARTY

    def test_custom_fallback_used(self, tracer, settings: Settings) -> None:
        class EmptyParty(StaticPartyFallback):
            def get_party(self) -> list[str]:
                return []

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        service = build_party_client(
            tracer,
            settings,
            transport=httpx.MockTransport(handler),
            fallback=EmptyParty(),
        )
        try:
            assert service.get_party() == []
        finally:
            service.close()

    def test_client_span_named_get_party(self, make_service, tracer, span_exporter) -> None:
        service = make_service(lambda request: httpx.Response(200, json=PARTY_ENTRIES))

        with tracer.start_as_current_span("handler") as parent:
            service.get_party()

        client_spans = [
            s for s in span_exporter.get_finished_spans() if s.kind == SpanKind.CLIENT
        ]
        assert [s.name for s in client_spans] == [OP_GET_PARTY]
        assert client_spans[0].parent.span_id == parent.get_span_context().span_id


class TestFactory:
    """Test build_party_client() and build_fallback_executor()."""

    def test_base_url_from_settings(self, tracer) -> None:
        service = build_party_client(
            tracer, Settings(party_base_url="http://party.internal:9000")
        )
        try:
            assert str(service.base_url) == "http://party.internal:9000/"
        finally:
            service.close()

    def test_executor_policy_from_settings(self, settings: Settings) -> None:
        executor = build_fallback_executor(settings)
        try:
            assert executor.name == "party"
            assert executor.timeout_seconds == 0.5
            assert executor.max_workers == 4
            assert executor.breaker.config.request_volume_threshold == 3
            assert executor.breaker.config.sleep_window_seconds == 60.0
        finally:
            executor.shutdown()
