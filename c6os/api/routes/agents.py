from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from c6os.core.auth import authenticate_request, require_role
from c6os.core.rate_limit import enforce_strict_rate_limit
from c6os.schemas.agents import AgentCommandRequest, ConfigurationRequest
from c6os.schemas.principal import Principal, Role
from c6os.services.agent_registry import AgentRegistry

router = APIRouter(prefix="/agents", tags=["Agents"])

CurrentPrincipal = Annotated[Principal, Depends(authenticate_request)]


def get_agent_registry(request: Request) -> AgentRegistry:
    return request.app.state.agent_registry


Registry = Annotated[AgentRegistry, Depends(get_agent_registry)]


@router.get("/status")
def agents_status(registry: Registry) -> dict:
    """Status of all agents plus a summary."""

    return {
        "success": True,
        "data": {
            "agents": {
                agent.agent_id: agent.model_dump(by_alias=True)
                for agent in registry.list_agents()
            },
            "summary": registry.summary(),
        },
    }


@router.post("/{agent_id}/command")
def agent_command(
    agent_id: str,
    body: AgentCommandRequest,
    principal: CurrentPrincipal,
    registry: Registry,
) -> dict:
    """Acknowledge a command for an agent.

    Raises:
        ValidationAppError: 400 INVALID_AGENT_ID or INVALID_COMMAND.
    """

    execution = registry.issue_command(agent_id, body.command, body.parameters, principal)
    return {
        "success": True,
        "data": execution.model_dump(by_alias=True, mode="json"),
        "message": f"Command '{execution.command.value}' initiated on {agent_id}",
    }


@router.put(
    "/{agent_id}/config",
    dependencies=[Depends(require_role(Role.ADMIN)), Depends(enforce_strict_rate_limit)],
)
def agent_config(
    agent_id: str,
    body: ConfigurationRequest,
    principal: CurrentPrincipal,
    registry: Registry,
) -> dict:
    """Update an agent's configuration (admin only, strict rate limit)."""

    registry.get_agent(agent_id)
    update = registry.apply_configuration(agent_id, body.configuration, principal)
    return {
        "success": True,
        "data": update.model_dump(by_alias=True, mode="json"),
        "message": "Agent configuration updated successfully",
    }
