from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from c6os.core.auth import optional_principal
from c6os.core.rate_limit import enforce_rate_limit

router = APIRouter(tags=["Meta"])


@router.get(
    "/api",
    dependencies=[Depends(optional_principal), Depends(enforce_rate_limit)],
)
def api_index(request: Request) -> dict:
    """Describe the API and its route groups.

    Rate limited but not authenticated. A valid bearer token, when present,
    keys the rate limit by principal instead of client address.
    """

    app_settings = request.app.state.settings
    return {
        "name": "C6Group.AI OS v1.0 - SUPERAAI System API",
        "version": app_settings.app.version,
        "description": "Backend API for AI agent management and control",
        "endpoints": {
            "health": "/health",
            "agents": "/api/agents/*",
            "system": "/api/system/*",
        },
    }
