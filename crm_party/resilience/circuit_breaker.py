"""Circuit breaker guarding calls to a downstream dependency.

States:
- CLOSED: Normal operation, all requests allowed
- OPEN: Error percentage exceeded, requests short-circuited
- HALF_OPEN: Sleep window elapsed, one trial request allowed

The error percentage is computed over a rolling time window and only once
the window holds ``request_volume_threshold`` outcomes. The breaker is shared
by every request thread, so all state changes happen under a lock.
"""

from __future__ import annotations

import threading
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from crm_party.core.constants import (
    DEFAULT_CIRCUIT_ERROR_THRESHOLD_PERCENTAGE,
    DEFAULT_CIRCUIT_REQUEST_VOLUME_THRESHOLD,
    DEFAULT_CIRCUIT_ROLLING_WINDOW_SECONDS,
    DEFAULT_CIRCUIT_SLEEP_WINDOW_SECONDS,
)
from crm_party.core.logging import get_logger


logger = get_logger(__name__)


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


@dataclass(frozen=True)
class CircuitBreakerConfig:
    """
    Circuit breaker configuration.

    Attributes:
        request_volume_threshold: Outcomes in the window before the circuit may open
        error_threshold_percentage: Error percentage (0-100) that opens the circuit
        sleep_window_seconds: Time to wait before a trial request
        rolling_window_seconds: Age after which an outcome no longer counts
    """

    request_volume_threshold: int = DEFAULT_CIRCUIT_REQUEST_VOLUME_THRESHOLD
    error_threshold_percentage: int = DEFAULT_CIRCUIT_ERROR_THRESHOLD_PERCENTAGE
    sleep_window_seconds: float = DEFAULT_CIRCUIT_SLEEP_WINDOW_SECONDS
    rolling_window_seconds: float = DEFAULT_CIRCUIT_ROLLING_WINDOW_SECONDS


class CircuitBreaker:
    """
    Thread-safe circuit breaker.

    Example:
        >>> breaker = CircuitBreaker("party")
        >>> if breaker.allow_request():
        ...     try:
        ...         call_party()
        ...     except Exception:
        ...         breaker.record_failure()
        ...     else:
        ...         breaker.record_success()
    """

    def __init__(
        self,
        name: str,
        config: CircuitBreakerConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self.config = config or CircuitBreakerConfig()
        self._clock = clock
        self._lock = threading.Lock()
        self._state = CircuitState.CLOSED
        self._opened_at: float | None = None
        self._outcomes: deque[tuple[float, bool]] = deque()

    @property
    def state(self) -> CircuitState:
        with self._lock:
            return self._state

    @property
    def error_percentage(self) -> float:
        """Failed share of the outcomes in the rolling window, 0-100."""
        with self._lock:
            self._prune(self._clock())
            return self._error_percentage()

    def allow_request(self) -> bool:
        """Decide whether the next call may reach the network."""
        with self._lock:
            if self._state is CircuitState.CLOSED:
                return True

            if self._state is CircuitState.HALF_OPEN:
                # Trial request already in flight
                return False

            if (
                self._opened_at is not None
                and self._clock() - self._opened_at >= self.config.sleep_window_seconds
            ):
                self._state = CircuitState.HALF_OPEN
                logger.info("Circuit breaker HALF_OPEN", circuit=self.name)
                return True

            return False

    def record_success(self) -> None:
        with self._lock:
            now = self._clock()
            if self._state is CircuitState.HALF_OPEN:
                self._close()
                return
            self._outcomes.append((now, True))
            self._prune(now)

    def record_failure(self) -> None:
        with self._lock:
            now = self._clock()
            if self._state is CircuitState.HALF_OPEN:
                self._open(now)
                return
            self._outcomes.append((now, False))
            self._prune(now)
            if self._state is CircuitState.CLOSED and self._should_open():
                self._open(now)

    def record_ignored(self) -> None:
        """Release a trial request whose outcome says nothing about the downstream."""
        with self._lock:
            if self._state is CircuitState.HALF_OPEN:
                # Keep the original opening time so the next call can trial again
                self._state = CircuitState.OPEN

    def reset(self) -> None:
        with self._lock:
            self._close()

    def _should_open(self) -> bool:
        if len(self._outcomes) < self.config.request_volume_threshold:
            return False
        return self._error_percentage() >= self.config.error_threshold_percentage

    def _error_percentage(self) -> float:
        if not self._outcomes:
            return 0.0
        failures = sum(1 for _, ok in self._outcomes if not ok)
        return failures * 100.0 / len(self._outcomes)

    def _prune(self, now: float) -> None:
        horizon = now - self.config.rolling_window_seconds
        while self._outcomes and self._outcomes[0][0] < horizon:
            self._outcomes.popleft()

    def _open(self, now: float) -> None:
        self._state = CircuitState.OPEN
        self._opened_at = now
        logger.warning(
            "Circuit breaker OPENED",
            circuit=self.name,
            error_percentage=round(self._error_percentage(), 2),
            window_calls=len(self._outcomes),
        )

    def _close(self) -> None:
        previous = self._state
        self._state = CircuitState.CLOSED
        self._opened_at = None
        self._outcomes.clear()
        if previous is not CircuitState.CLOSED:
            logger.info("Circuit breaker CLOSED", circuit=self.name)
