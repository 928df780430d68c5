from __future__ import annotations

import platform
from typing import Annotated

from fastapi import APIRouter, Depends, Request

from c6os.api.routes.agents import Registry
from c6os.core.auth import authenticate_request, require_role
from c6os.core.rate_limit import enforce_strict_rate_limit
from c6os.schemas.agents import ConfigurationRequest
from c6os.schemas.principal import Principal, Role

router = APIRouter(prefix="/system", tags=["System"])

CurrentPrincipal = Annotated[Principal, Depends(authenticate_request)]


@router.get("/info")
def system_info(request: Request, principal: CurrentPrincipal) -> dict:
    """Static system description plus the caller's identity."""

    app_settings = request.app.state.settings
    limits = app_settings.rate_limit
    return {
        "success": True,
        "data": {
            "name": "C6Group.AI OS",
            "codename": "SUPERAAI Control System",
            "version": app_settings.app.version,
            "environment": app_settings.app_env,
            "runtime": f"Python {platform.python_version()}",
            "features": {
                "authentication": [verifier.name for verifier in request.app.state.authenticator.verifiers],
                "rateLimiting": limits.enabled,
            },
            "limits": {
                "maxRequests": limits.max_requests,
                "windowMs": limits.window_ms,
                "strictMaxRequests": limits.strict_max_requests,
                "strictWindowMs": limits.strict_window_ms,
            },
            "principal": principal.model_dump(mode="json"),
        },
    }


@router.post(
    "/configure",
    dependencies=[Depends(require_role(Role.ADMIN)), Depends(enforce_strict_rate_limit)],
)
def system_configure(
    body: ConfigurationRequest,
    principal: CurrentPrincipal,
    registry: Registry,
) -> dict:
    """Apply a system configuration change (admin only, strict rate limit)."""

    update = registry.apply_configuration(body.component, body.configuration, principal)
    return {
        "success": True,
        "data": update.model_dump(by_alias=True, mode="json"),
        "message": "System configuration updated successfully",
    }
