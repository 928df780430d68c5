from __future__ import annotations

import time
from datetime import datetime, timezone

from fastapi import APIRouter, Request

router = APIRouter(tags=["Health"])

_STARTED_AT = time.monotonic()


@router.get("/health")
def health_check(request: Request) -> dict:
    """Health check endpoint (no authentication, no rate limit).

    Used by load balancers and monitoring systems to determine service health.

    Returns:
        dict: Status, timestamp, version, service name and uptime in seconds.
    """

    app_settings = request.app.state.settings
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": app_settings.app.version,
        "service": app_settings.app.service_name,
        "uptime": round(time.monotonic() - _STARTED_AT, 3),
    }
