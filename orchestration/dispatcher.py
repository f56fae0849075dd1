"""
Capability Dispatcher

Maps an agent type to the provider instance that serves it.
Pure lookup: no business logic, no auto-discovery.

DESIGN RULES:
- Providers are registered explicitly
- Registry is the single source of truth for which agents exist
"""

import logging
from typing import Dict, Iterable, List, Optional, Union

from agents.base import BaseAgent
from orchestration.errors import UnknownAgentError
from schemas.plan import AgentType
from schemas.progress import UICommand

logger = logging.getLogger(__name__)


class CapabilityDispatcher:
    """
    Registry of capability providers keyed by AgentType.
    """

    def __init__(self, providers: Optional[Dict[AgentType, BaseAgent]] = None):
        self._providers: Dict[AgentType, BaseAgent] = {}
        for agent, provider in (providers or {}).items():
            self.register(agent, provider)

    def register(self, agent: Union[AgentType, str], provider: BaseAgent) -> None:
        """
        Register (or replace) the provider for an agent type.

        Args:
            agent: Agent type the provider serves
            provider: Provider instance
        """
        agent = AgentType(agent)
        self._providers[agent] = provider
        logger.debug(f"Registered provider for agent '{agent.value}': {type(provider).__name__}")

    def get(self, agent: Union[AgentType, str]) -> BaseAgent:
        """
        Look up the provider for an agent type.

        Raises:
            UnknownAgentError: if nothing is registered for it
        """
        try:
            return self._providers[AgentType(agent)]
        except (KeyError, ValueError):
            raise UnknownAgentError(str(getattr(agent, "value", agent))) from None

    def has(self, agent: Union[AgentType, str]) -> bool:
        try:
            return AgentType(agent) in self._providers
        except ValueError:
            return False

    def agents(self) -> List[AgentType]:
        return list(self._providers.keys())

    def providers(self) -> Iterable[BaseAgent]:
        return self._providers.values()

    def drain_ui_commands(self) -> List[UICommand]:
        """Collect UI commands queued outside any step, from every provider."""
        commands: List[UICommand] = []
        seen = set()
        for provider in self._providers.values():
            if id(provider) in seen:
                continue
            seen.add(id(provider))
            commands.extend(provider.drain_ui_commands())
        return commands
