"""Tests for the agent registry service."""

import pytest

from c6os.core.errors import ValidationAppError
from c6os.schemas.agents import AgentCommand
from c6os.schemas.principal import DEV_PRINCIPAL, AuthSource, Principal, Role
from c6os.services.agent_registry import AgentRegistry


@pytest.fixture
def registry() -> AgentRegistry:
    return AgentRegistry()


def test_summary_counts(registry: AgentRegistry):
    summary = registry.summary()

    assert summary["totalAgents"] == 3
    assert summary["onlineAgents"] == 1
    assert summary["healthyAgents"] == 3


def test_unknown_agent_rejected(registry: AgentRegistry):
    with pytest.raises(ValidationAppError) as exc_info:
        registry.get_agent("ghost")

    assert exc_info.value.code == "INVALID_AGENT_ID"


@pytest.mark.parametrize("command", [None, "", "explode"])
def test_unknown_command_rejected(registry: AgentRegistry, command):
    with pytest.raises(ValidationAppError) as exc_info:
        registry.issue_command("executor", command, {}, DEV_PRINCIPAL)

    assert exc_info.value.code == "INVALID_COMMAND"


def test_command_acknowledged(registry: AgentRegistry):
    principal = Principal(id="op-1", role=Role.MODERATOR, auth_source=AuthSource.SHARED_SECRET)

    execution = registry.issue_command("observer", "restart", {"force": True}, principal)

    assert execution.command is AgentCommand.RESTART
    assert execution.status == "initiated"
    assert execution.executed_by == "op-1"
    assert execution.message == "Restarting observer agent..."
    assert execution.parameters == {"force": True}


def test_configuration_versions_per_target(registry: AgentRegistry):
    first = registry.apply_configuration("architect", {"a": 1}, DEV_PRINCIPAL)
    second = registry.apply_configuration("architect", {"a": 2}, DEV_PRINCIPAL)
    other = registry.apply_configuration("system", {"b": 1}, DEV_PRINCIPAL)

    assert first.version == "1.0.1"
    assert second.version == "1.0.2"
    assert other.version == "1.0.1"
    assert second.applied_by == "dev-user"


@pytest.mark.parametrize("configuration", [None, {}])
def test_missing_configuration_rejected(registry: AgentRegistry, configuration):
    with pytest.raises(ValidationAppError) as exc_info:
        registry.apply_configuration("system", configuration, DEV_PRINCIPAL)

    assert exc_info.value.code == "MISSING_CONFIGURATION"
