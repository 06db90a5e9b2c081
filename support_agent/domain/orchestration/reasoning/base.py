from abc import ABC, abstractmethod
from typing import List

from support_agent.domain.models.agent_state import AgentDecision, Turn
from support_agent.domain.tool.tool_registry import ToolDefinition


class ReasoningService(ABC):
    """Decides the agent's next move from the conversation so far.

    Retry behavior belongs here: after a transient tool error the service may
    re-issue the same call. The orchestrator only relays outcomes.
    """

    name: str = "reasoner"

    @abstractmethod
    async def step(self, history: List[Turn], tool_defs: List[ToolDefinition]) -> AgentDecision:
        """Produce a reply, tool calls, or a request for human input"""
        pass
