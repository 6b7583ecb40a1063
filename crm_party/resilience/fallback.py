"""Isolated execution of downstream calls with fallback substitution.

Each call runs on a dedicated worker pool, bounded by a timeout and guarded
by a circuit breaker. Any downstream failure (open circuit, saturated pool,
timeout, exception) is replaced by the fallback value. Caller errors
(``NonRetriableError``) propagate unchanged.

There is no retry: one failed attempt yields one fallback. A call that times
out is not cancelled and keeps running in the background.

The caller's trace context is captured when the call is submitted and
attached in the worker thread, so spans created by the call stay children of
the caller's span.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from concurrent import futures
from typing import TypeVar

from crm_party.core.constants import (
    DEFAULT_FALLBACK_POOL_SIZE,
    DEFAULT_PARTY_TIMEOUT_SECONDS,
)
from crm_party.core.exceptions import (
    CircuitOpenError,
    DownstreamTimeoutError,
    DownstreamUnavailableError,
    ExecutionRejectedError,
    NonRetriableError,
    RetriableError,
)
from crm_party.core.logging import get_logger
from crm_party.observability.context import ContextCarrier
from crm_party.resilience.circuit_breaker import CircuitBreaker


logger = get_logger(__name__)

R = TypeVar("R")


class FallbackExecutor:
    """
    Runs downstream calls on an isolated pool and absorbs their failures.

    Args:
        name: Dependency name, used for thread names and logs.
        breaker: Circuit breaker shared by every call of this executor.
        timeout_seconds: Time a caller waits for the result.
        max_workers: Pool size; also the maximum number of calls in flight.

    Example:
        >>> executor = FallbackExecutor("party")
        >>> executor.execute("get_party", fetch_party, fallback=lambda: ["n/a"])
    """

    def __init__(
        self,
        name: str,
        breaker: CircuitBreaker | None = None,
        timeout_seconds: float = DEFAULT_PARTY_TIMEOUT_SECONDS,
        max_workers: int = DEFAULT_FALLBACK_POOL_SIZE,
    ) -> None:
        self.name = name
        self.breaker = breaker or CircuitBreaker(name)
        self.timeout_seconds = timeout_seconds
        self.max_workers = max_workers
        self._pool = futures.ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix=f"{name}-fallback",
        )
        self._slots = threading.BoundedSemaphore(max_workers)

    def execute(
        self,
        operation: str,
        func: Callable[[], R],
        fallback: Callable[[], R],
    ) -> R:
        """Run ``func`` and return its result, or ``fallback()`` on failure.

        Raises:
            NonRetriableError: Raised by ``func`` for caller-side errors.
        """
        try:
            return self.run(operation, func)
        except RetriableError as e:
            logger.warning(
                "Fallback substituted",
                dependency=self.name,
                operation=operation,
                reason=e.error_code,
                error=e.message,
            )
            return fallback()

    def run(self, operation: str, func: Callable[[], R]) -> R:
        """Run ``func`` under isolation without fallback substitution.

        Raises:
            CircuitOpenError: The breaker rejected the call.
            ExecutionRejectedError: No free worker slot.
            DownstreamTimeoutError: The call exceeded ``timeout_seconds``.
            DownstreamUnavailableError: The call raised an unexpected exception.
            NonRetriableError: Re-raised from ``func`` unchanged.
        """
        if not self.breaker.allow_request():
            raise CircuitOpenError(
                f"Circuit '{self.name}' is open",
                operation=operation,
            )

        if not self._slots.acquire(blocking=False):
            self.breaker.record_ignored()
            raise ExecutionRejectedError(
                f"All {self.max_workers} '{self.name}' workers are busy",
                operation=operation,
                max_concurrent=self.max_workers,
            )

        carrier = ContextCarrier.capture()
        try:
            future = self._pool.submit(carrier.wrap(func))
        except RuntimeError as e:
            # Pool already shut down
            self._slots.release()
            self.breaker.record_ignored()
            raise ExecutionRejectedError(
                f"'{self.name}' executor is shut down",
                operation=operation,
                max_concurrent=self.max_workers,
            ) from e
        future.add_done_callback(lambda _f: self._slots.release())

        try:
            result = future.result(timeout=self.timeout_seconds)
        except futures.TimeoutError as e:
            self.breaker.record_failure()
            raise DownstreamTimeoutError(
                f"'{operation}' timed out after {self.timeout_seconds}s",
                operation=operation,
                timeout_seconds=self.timeout_seconds,
            ) from e
        except NonRetriableError:
            self.breaker.record_ignored()
            raise
        except RetriableError:
            self.breaker.record_failure()
            raise
        except Exception as e:
            self.breaker.record_failure()
            raise DownstreamUnavailableError(
                f"'{operation}' failed: {e!s}",
                operation=operation,
            ) from e

        self.breaker.record_success()
        return result

    def shutdown(self, wait: bool = False) -> None:
        """Stop accepting calls. Running calls are left to finish."""
        self._pool.shutdown(wait=wait, cancel_futures=True)
