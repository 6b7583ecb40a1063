"""crm-party: tracing and downstream-client wiring for the party service.

This package selects the process tracer (Jaeger over UDP or no-op), traces
inbound requests except health checks, and exposes a traced,
fallback-protected client for the downstream party service.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
