"""Downstream clients for crm-party.

Clients:
- party: PartyService interface, HTTP implementation and static fallback
- transport: tracing decorator for httpx transports
- factory: build_party_client
"""

from crm_party.clients.factory import build_party_client
from crm_party.clients.party import HttpPartyService, PartyService, StaticPartyFallback


__all__: list[str] = [
    "HttpPartyService",
    "PartyService",
    "StaticPartyFallback",
    "build_party_client",
]
