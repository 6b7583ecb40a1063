"""Unit tests for inbound request tracing.

Tests verify:
- get_skip_pattern is stable and matches only /api/health
- Skipped paths produce no span, other paths exactly one
- Inbound trace context becomes the span's parent
- Status codes and exceptions are recorded
"""

from __future__ import annotations

import re

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import SpanKind, StatusCode

from crm_party.observability.middleware import TracingMiddleware, get_skip_pattern


# =============================================================================
# Constants
# =============================================================================

HEALTH_ENDPOINT = "/api/health"
OTHER_ENDPOINT = "/api/other"
FAILING_ENDPOINT = "/api/boom"
UNAVAILABLE_ENDPOINT = "/api/unavailable"
INBOUND_TRACE_ID = "0af7651916cd43dd8448eb211c80319c"
INBOUND_SPAN_ID = "b7ad6b7169203331"


class TestSkipPattern:
    """Test get_skip_pattern()."""

    def test_returns_equivalent_pattern_twice(self) -> None:
        first = get_skip_pattern()
        second = get_skip_pattern()
        assert first.pattern == second.pattern == HEALTH_ENDPOINT

    def test_is_compiled_pattern(self) -> None:
        assert isinstance(get_skip_pattern(), re.Pattern)

    @pytest.mark.parametrize(
        ("path", "skipped"),
        [
            (HEALTH_ENDPOINT, True),
            (OTHER_ENDPOINT, False),
            ("/api/health/details", False),
            ("/", False),
        ],
    )
    def test_full_path_match(self, tracer, path: str, skipped: bool) -> None:
        middleware = TracingMiddleware(FastAPI(), tracer=tracer)
        assert middleware.is_skipped(path) is skipped


class TestTracingMiddleware:
    """Test span creation through a FastAPI app."""

    @pytest.fixture
    def app(self, tracer) -> FastAPI:
        app = FastAPI()

        @app.get(HEALTH_ENDPOINT)
        async def health() -> dict[str, str]:
            return {"status": "ok"}

        @app.get(OTHER_ENDPOINT)
        async def other() -> dict[str, str]:
            return {"status": "traced"}

        @app.get(UNAVAILABLE_ENDPOINT, status_code=503)
        async def unavailable() -> dict[str, str]:
            return {"status": "down"}

        @app.get(FAILING_ENDPOINT)
        async def boom() -> dict[str, str]:
            raise RuntimeError("handler failed")

        app.add_middleware(TracingMiddleware, tracer=tracer, skip_pattern=get_skip_pattern())
        return app

    @pytest.fixture
    def client(self, app: FastAPI) -> TestClient:
        return TestClient(app, raise_server_exceptions=False)

    def test_health_path_creates_no_span(
        self, client: TestClient, span_exporter: InMemorySpanExporter
    ) -> None:
        response = client.get(HEALTH_ENDPOINT)

        assert response.status_code == 200
        assert span_exporter.get_finished_spans() == ()

    def test_other_path_creates_one_span(
        self, client: TestClient, span_exporter: InMemorySpanExporter
    ) -> None:
        response = client.get(OTHER_ENDPOINT)

        assert response.status_code == 200
        spans = span_exporter.get_finished_spans()
        assert len(spans) == 1
        span = spans[0]
        assert span.name == f"GET {OTHER_ENDPOINT}"
        assert span.kind == SpanKind.SERVER
        assert span.attributes["http.method"] == "GET"
        assert span.attributes["http.target"] == OTHER_ENDPOINT
        assert span.attributes["http.status_code"] == 200

    def test_inbound_context_is_parent(
        self, client: TestClient, span_exporter: InMemorySpanExporter
    ) -> None:
        client.get(
            OTHER_ENDPOINT,
            headers={"traceparent": f"00-{INBOUND_TRACE_ID}-{INBOUND_SPAN_ID}-01"},
        )

        span = span_exporter.get_finished_spans()[0]
        assert format(span.context.trace_id, "032x") == INBOUND_TRACE_ID
        assert format(span.parent.span_id, "016x") == INBOUND_SPAN_ID

    def test_server_error_status_marks_span(
        self, client: TestClient, span_exporter: InMemorySpanExporter
    ) -> None:
        client.get(UNAVAILABLE_ENDPOINT)

        span = span_exporter.get_finished_spans()[0]
        assert span.attributes["http.status_code"] == 503
        assert span.status.status_code == StatusCode.ERROR

    def test_exception_is_recorded(
        self, client: TestClient, span_exporter: InMemorySpanExporter
    ) -> None:
        response = client.get(FAILING_ENDPOINT)

        assert response.status_code == 500
        span = span_exporter.get_finished_spans()[0]
        assert span.attributes["http.status_code"] == 500
        assert span.status.status_code == StatusCode.ERROR
        assert any(event.name == "exception" for event in span.events)
