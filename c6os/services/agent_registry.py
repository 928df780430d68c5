"""Static agent registry and command handling.

Agent descriptors are fixed. Commands are acknowledged, not executed, and
configuration updates are versioned in memory per target.
"""

from __future__ import annotations

import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Any

from c6os.core.errors import ValidationAppError
from c6os.schemas.agents import (
    AgentCommand,
    AgentCommandExecution,
    AgentDescriptor,
    ConfigurationUpdate,
)
from c6os.schemas.principal import Principal

logger = logging.getLogger(__name__)


AGENTS: dict[str, AgentDescriptor] = {
    "architect": AgentDescriptor(
        agentId="architect",
        name="Architect.AI",
        status="standby",
        health="healthy",
        lastActivity="System design review completed",
        capabilities=["System Architecture Design", "Creative Strategy Planning"],
    ),
    "executor": AgentDescriptor(
        agentId="executor",
        name="Executor.AI",
        status="online",
        health="healthy",
        lastActivity="Production deployment completed",
        capabilities=["Code Generation & Deployment", "CI/CD Pipeline Management"],
    ),
    "observer": AgentDescriptor(
        agentId="observer",
        name="Observer.AI",
        status="processing",
        health="healthy",
        lastActivity="Performance anomaly detection in progress",
        capabilities=["System Analytics & Monitoring", "Learning Feedback"],
    ),
}

# (message template, estimated duration)
_COMMAND_EFFECTS: dict[AgentCommand, tuple[str, str]] = {
    AgentCommand.START: ("Starting {agent} agent...", "5-10 seconds"),
    AgentCommand.STOP: ("Stopping {agent} agent...", "3-5 seconds"),
    AgentCommand.PAUSE: ("Pausing {agent} agent...", "2-3 seconds"),
    AgentCommand.RESTART: ("Restarting {agent} agent...", "10-15 seconds"),
    AgentCommand.STATUS: ("Executing status on {agent}", "5 seconds"),
    AgentCommand.CONFIGURE: ("Updating {agent} configuration...", "5-8 seconds"),
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class AgentRegistry:
    """In-process view of the agents and their configuration versions."""

    def __init__(self, agents: dict[str, AgentDescriptor] | None = None) -> None:
        self._agents = dict(agents or AGENTS)
        self._config_versions: dict[str, int] = {}
        self._lock = threading.Lock()

    def list_agents(self) -> list[AgentDescriptor]:
        return list(self._agents.values())

    def summary(self) -> dict[str, Any]:
        agents = self.list_agents()
        return {
            "totalAgents": len(agents),
            "onlineAgents": sum(1 for agent in agents if agent.status == "online"),
            "healthyAgents": sum(1 for agent in agents if agent.health == "healthy"),
            "lastUpdate": _now(),
        }

    def get_agent(self, agent_id: str) -> AgentDescriptor:
        """Return the agent or raise ``INVALID_AGENT_ID`` (400)."""
        agent = self._agents.get(agent_id)
        if agent is None:
            raise ValidationAppError(
                code="INVALID_AGENT_ID",
                message=f"Invalid agent ID: {agent_id}",
                details={"agent_id": agent_id},
            )
        return agent

    def issue_command(
        self,
        agent_id: str,
        command: str | None,
        parameters: dict[str, Any],
        principal: Principal,
    ) -> AgentCommandExecution:
        """Validate and acknowledge a command for an agent.

        Raises:
            ValidationAppError: Unknown agent (INVALID_AGENT_ID) or command
                (INVALID_COMMAND).
        """
        self.get_agent(agent_id)
        try:
            parsed = AgentCommand(command)
        except ValueError as exc:
            raise ValidationAppError(
                code="INVALID_COMMAND",
                message=f"Invalid command: {command}",
                details={"command": str(command)},
            ) from exc

        message, duration = _COMMAND_EFFECTS[parsed]
        execution = AgentCommandExecution(
            commandId=str(uuid.uuid4()),
            agentId=agent_id,
            command=parsed,
            parameters=parameters,
            message=message.format(agent=agent_id),
            estimatedDuration=duration,
            startTime=_now(),
            executedBy=principal.id,
        )
        logger.info(
            "agent.command_issued",
            extra={
                "agent_id": agent_id,
                "command": parsed.value,
                "command_id": execution.command_id,
            },
        )
        return execution

    def apply_configuration(
        self,
        target: str,
        configuration: dict[str, Any] | None,
        principal: Principal,
    ) -> ConfigurationUpdate:
        """Record a configuration change for ``target`` with the next version.

        Raises:
            ValidationAppError: MISSING_CONFIGURATION when no configuration is given.
        """
        if not configuration:
            raise ValidationAppError(
                code="MISSING_CONFIGURATION",
                message="Configuration data is required",
            )

        with self._lock:
            version = self._config_versions.get(target, 0) + 1
            self._config_versions[target] = version

        update = ConfigurationUpdate(
            configId=str(uuid.uuid4()),
            target=target,
            configuration=configuration,
            version=f"1.0.{version}",
            appliedAt=_now(),
            appliedBy=principal.id,
        )
        logger.info(
            "agent.configuration_applied",
            extra={"target": target, "version": update.version, "config_id": update.config_id},
        )
        return update
