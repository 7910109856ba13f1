"""Agent registry: closed agent name set mapped to executors, validated at both ends."""

import logging
from typing import Mapping, Optional, Union

from .errors import AgentNotRegistered, InputValidationError, OutputValidationError
from .models import AgentExecutor, AgentName, AgentOutput
from .schemas import parse_agent_output, parse_review_input

logger = logging.getLogger(__name__)


def resolve_agent_name(name: Union[AgentName, str]) -> AgentName:
    """Coerce a string to ``AgentName``; anything outside the closed set is rejected."""
    if isinstance(name, AgentName):
        return name
    try:
        return AgentName(name)
    except ValueError:
        raise AgentNotRegistered(name) from None


class AgentRegistry:
    def __init__(self, executors: Optional[Mapping[AgentName, AgentExecutor]] = None):
        self._executors: dict[AgentName, AgentExecutor] = {}
        for name, executor in (executors or {}).items():
            self.register(name, executor)

    def register(self, name: Union[AgentName, str], executor: AgentExecutor) -> None:
        if not callable(executor):
            raise TypeError(f"executor for {name} is not callable")
        self._executors[resolve_agent_name(name)] = executor

    def has(self, name: Union[AgentName, str]) -> bool:
        try:
            return resolve_agent_name(name) in self._executors
        except AgentNotRegistered:
            return False

    def names(self) -> list[AgentName]:
        return list(self._executors)

    def run(self, name: Union[AgentName, str], review_input) -> AgentOutput:
        """Validate input, call the executor, validate what it returned."""
        agent = resolve_agent_name(name)
        executor = self._executors.get(agent)
        if executor is None:
            raise AgentNotRegistered(agent.value)

        parsed_input = parse_review_input(review_input)
        if not parsed_input.ok:
            raise InputValidationError(list(parsed_input.errors))

        raw_output = executor(parsed_input.value)

        parsed_output = parse_agent_output(raw_output)
        if not parsed_output.ok:
            logger.debug("agent %s returned malformed output: %s", agent.value, parsed_output.errors)
            raise OutputValidationError(list(parsed_output.errors))
        return parsed_output.value


def build_registry(executors: Optional[Mapping[AgentName, AgentExecutor]] = None) -> AgentRegistry:
    """Registry wired with the heuristic specialists, or with ``executors`` when given."""
    if executors is None:
        from .specialists import SPECIALIST_AGENTS
        executors = SPECIALIST_AGENTS
    return AgentRegistry(executors)
