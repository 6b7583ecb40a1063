"""API route handlers for crm-party.

Routes:
- health: /api/health (never traced)
- party: /api/party (proxied to the party service with fallback)
"""

__all__: list[str] = []
