"""Party API route.

Proxies to the downstream party service through the shared client stored on
the application state. The handler is a plain ``def``: the blocking client
call runs in the server's thread pool.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from crm_party.clients.party import PartyService
from crm_party.core.exceptions import ConfigurationError


router = APIRouter(prefix="/api", tags=["party"])


def get_party_service(request: Request) -> PartyService:
    """Dependency returning the process-wide party client.

    Raises:
        ConfigurationError: The application was built without a client.
    """
    party_service: PartyService | None = getattr(
        request.app.state, "party_service", None
    )
    if party_service is None:
        raise ConfigurationError(
            "Party client not initialized", setting="party_service"
        )
    return party_service


@router.get(
    "/party",
    response_model=list[str],
    summary="Party entries",
    description="Entries from the party service, or the fallback response when it is unavailable.",
)
def get_party(
    party_service: Annotated[PartyService, Depends(get_party_service)],
) -> list[str]:
    return party_service.get_party()
