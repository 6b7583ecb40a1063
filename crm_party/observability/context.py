"""Trace context hand-off between threads.

OpenTelemetry keeps the active span in a contextvar. Work submitted to a
``ThreadPoolExecutor`` runs with the worker's own (empty) context, so spans
started there would begin new traces. ``ContextCarrier`` captures the
caller's context at submit time and attaches it around the task in the
worker thread.

Example:
    carrier = ContextCarrier.capture()
    future = pool.submit(carrier.wrap(fetch_party))
"""

from __future__ import annotations

import functools
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import ParamSpec, TypeVar

from opentelemetry import context as otel_context
from opentelemetry import trace
from opentelemetry.context import Context


P = ParamSpec("P")
R = TypeVar("R")


@dataclass(frozen=True)
class ContextCarrier:
    """Immutable snapshot of the OpenTelemetry context of one thread."""

    context: Context

    @classmethod
    def capture(cls) -> ContextCarrier:
        """Snapshot the calling thread's current context."""
        return cls(context=otel_context.get_current())

    @property
    def span(self) -> trace.Span:
        """The span that was active when the carrier was captured."""
        return trace.get_current_span(self.context)

    @contextmanager
    def attached(self) -> Iterator[Context]:
        """Make the captured context current for the duration of the block."""
        token = otel_context.attach(self.context)
        try:
            yield self.context
        finally:
            otel_context.detach(token)

    def wrap(self, func: Callable[P, R]) -> Callable[P, R]:
        """Return ``func`` running inside the captured context."""

        @functools.wraps(func)
        def run_attached(*args: P.args, **kwargs: P.kwargs) -> R:
            with self.attached():
                return func(*args, **kwargs)

        return run_attached
