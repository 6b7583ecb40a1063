"""pytest configuration and fixtures for crm-party tests.

This module provides shared fixtures for unit and end-to-end tests:
settings with short timeouts, tracers backed by in-memory exporters, and
mock transports standing in for the party service.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Generator

import httpx
import pytest
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from crm_party.core.config import Settings
from crm_party.core.logging import reset_logging


# =============================================================================
# Constants
# =============================================================================

PARTY_ENTRIES = ["alice", "bob"]


# =============================================================================
# Markers
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Register custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, no external dependencies)")
    config.addinivalue_line("markers", "e2e: Application-level tests through the ASGI stack")


# =============================================================================
# Environment Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the runner's tracing environment out of every test."""
    monkeypatch.delenv("JAEGER_SERVER_HOSTNAME", raising=False)
    monkeypatch.delenv("PARTY_JAEGER_SERVER_HOSTNAME", raising=False)


@pytest.fixture(autouse=True)
def isolated_logging() -> Generator[None, None, None]:
    """Reset the logging singleton around each test."""
    reset_logging()
    yield
    reset_logging()


@pytest.fixture
def settings() -> Settings:
    """Settings with timeouts short enough for tests."""
    return Settings(
        party_base_url="http://party:8080/",
        party_timeout_seconds=0.5,
        fallback_pool_size=4,
        circuit_request_volume_threshold=3,
        circuit_error_threshold_percentage=50,
        circuit_sleep_window_seconds=60.0,
    )


# =============================================================================
# Tracing Fixtures
# =============================================================================


@pytest.fixture
def span_exporter() -> InMemorySpanExporter:
    """Collects finished spans in memory."""
    return InMemorySpanExporter()


@pytest.fixture
def tracer_provider(span_exporter: InMemorySpanExporter) -> Generator[TracerProvider, None, None]:
    """SDK provider exporting synchronously to the in-memory exporter."""
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    yield provider
    provider.shutdown()


@pytest.fixture
def tracer(tracer_provider: TracerProvider):
    """Recording tracer for unit tests."""
    return tracer_provider.get_tracer("tests")


# =============================================================================
# Party Service Fixtures
# =============================================================================


PartyHandler = Callable[[httpx.Request], httpx.Response]


def json_response(payload: object, status_code: int = 200) -> httpx.Response:
    """Build a JSON response for mock transports."""
    return httpx.Response(
        status_code,
        content=json.dumps(payload).encode(),
        headers={"content-type": "application/json"},
    )


@pytest.fixture
def party_requests() -> list[httpx.Request]:
    """Requests received by the mock party service."""
    return []


@pytest.fixture
def party_ok(party_requests: list[httpx.Request]) -> httpx.MockTransport:
    """Party service answering PARTY_ENTRIES."""

    def handler(request: httpx.Request) -> httpx.Response:
        party_requests.append(request)
        return json_response(PARTY_ENTRIES)

    return httpx.MockTransport(handler)


@pytest.fixture
def party_down(party_requests: list[httpx.Request]) -> httpx.MockTransport:
    """Party service refusing connections."""

    def handler(request: httpx.Request) -> httpx.Response:
        party_requests.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    return httpx.MockTransport(handler)
