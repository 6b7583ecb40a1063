"""Fallback execution for downstream calls.

- circuit_breaker: CircuitBreaker, CircuitBreakerConfig, CircuitState
- fallback: FallbackExecutor
"""

__all__: list[str] = []
