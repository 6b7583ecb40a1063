"""Default values for crm-party.

Centralizes the service identity, the downstream address and the tracing /
fallback policy defaults so that configuration, application wiring and
tests agree on one set of values.

Usage:
    from crm_party.core.constants import DEFAULT_SERVICE_NAME, PARTY_FALLBACK_RESPONSE

Note: These are defaults. They can be overridden via environment variables:
    - JAEGER_SERVER_HOSTNAME → enables the Jaeger tracer
    - PARTY_PARTY_BASE_URL → overrides DEFAULT_PARTY_BASE_URL
    - PARTY_SAMPLING_PROBABILITY → overrides DEFAULT_SAMPLING_PROBABILITY
"""

# =============================================================================
# Service Defaults
# =============================================================================

DEFAULT_SERVICE_NAME = "amazon.crm.party"
SERVICE_VERSION = "0.1.0"
DEFAULT_PORT = 8080
DEFAULT_HOST = "0.0.0.0"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_ENVIRONMENT = "development"


# =============================================================================
# Tracing Defaults
# =============================================================================

# Environment variable read without the PARTY_ prefix (deployment contract)
JAEGER_HOSTNAME_ENV = "JAEGER_SERVER_HOSTNAME"

# Jaeger agent compact Thrift port (UDP)
DEFAULT_JAEGER_AGENT_PORT = 6831
DEFAULT_SAMPLING_PROBABILITY = 1.0
DEFAULT_REPORTER_MAX_BATCH_SIZE = 100
DEFAULT_REPORTER_FLUSH_INTERVAL_MS = 50

HEALTH_PATH = "/api/health"
DEFAULT_TRACING_SKIP_PATTERN = HEALTH_PATH


# =============================================================================
# Downstream "party" Service
# =============================================================================

DEFAULT_PARTY_BASE_URL = "http://party:8080/"
PARTY_FALLBACK_RESPONSE = "Party response (fallback)"


# =============================================================================
# Fallback Execution Defaults
# =============================================================================

DEFAULT_PARTY_TIMEOUT_SECONDS = 1.0
DEFAULT_FALLBACK_POOL_SIZE = 10
DEFAULT_CIRCUIT_REQUEST_VOLUME_THRESHOLD = 20
DEFAULT_CIRCUIT_ERROR_THRESHOLD_PERCENTAGE = 50
DEFAULT_CIRCUIT_SLEEP_WINDOW_SECONDS = 5.0
DEFAULT_CIRCUIT_ROLLING_WINDOW_SECONDS = 10.0
