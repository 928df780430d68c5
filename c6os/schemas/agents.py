"""Pydantic schemas for agent and system control endpoints."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field


class AgentCommand(str, Enum):
    """Commands an agent accepts."""

    START = "start"
    STOP = "stop"
    PAUSE = "pause"
    RESTART = "restart"
    STATUS = "status"
    CONFIGURE = "configure"


class AgentDescriptor(BaseModel):
    """Static description of one agent."""

    model_config = ConfigDict(populate_by_name=True)

    agent_id: str = Field(..., alias="agentId")
    name: str
    status: str
    health: str
    last_activity: str = Field(..., alias="lastActivity")
    capabilities: List[str] = Field(default_factory=list)


class AgentCommandRequest(BaseModel):
    """Body of ``POST /api/agents/{agent_id}/command``.

    ``command`` is validated by the service so unknown commands map to
    ``INVALID_COMMAND`` rather than a generic validation error.
    """

    command: str | None = Field(default=None, description="One of start, stop, pause, restart, status, configure.")
    parameters: Dict[str, Any] = Field(default_factory=dict)


class AgentCommandExecution(BaseModel):
    """Execution record returned when a command is accepted."""

    model_config = ConfigDict(populate_by_name=True)

    command_id: str = Field(..., alias="commandId")
    agent_id: str = Field(..., alias="agentId")
    command: AgentCommand
    parameters: Dict[str, Any] = Field(default_factory=dict)
    status: str = "initiated"
    message: str
    estimated_duration: str = Field(..., alias="estimatedDuration")
    start_time: str = Field(..., alias="startTime")
    executed_by: str = Field(..., alias="executedBy")


class ConfigurationRequest(BaseModel):
    """Body of configuration endpoints; ``configuration`` is checked by the service."""

    configuration: Dict[str, Any] | None = None
    component: str = "system"


class ConfigurationUpdate(BaseModel):
    """Record of an applied configuration change."""

    model_config = ConfigDict(populate_by_name=True)

    config_id: str = Field(..., alias="configId")
    target: str
    configuration: Dict[str, Any]
    version: str
    applied_at: str = Field(..., alias="appliedAt")
    applied_by: str = Field(..., alias="appliedBy")
