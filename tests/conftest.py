from __future__ import annotations

import asyncio
import itertools
from typing import Any, Callable

import pytest

from support_agent.application.service import AgentService
from support_agent.domain.exceptions import TransientToolError
from support_agent.domain.models.agent_state import AgentDecision, ToolCall, Turn
from support_agent.domain.orchestration.reasoning.base import ReasoningService
from support_agent.domain.tool.tool_registry import ToolDefinition, ToolRegistry

_call_ids = itertools.count(1)


class ScriptedReasoner(ReasoningService):
    """Replays decisions in order and records every history it was shown"""

    name = "scripted"

    def __init__(self, decisions: list[AgentDecision | Exception] | None = None, repeat_last: bool = False):
        self.decisions = list(decisions or [])
        self.repeat_last = repeat_last
        self.histories: list[list[Turn]] = []

    async def step(self, history: list[Turn], tool_defs: list[ToolDefinition]) -> AgentDecision:
        self.histories.append(list(history))
        if not self.decisions:
            return AgentDecision(text="All done.")
        decision = self.decisions[0] if self.repeat_last and len(self.decisions) == 1 else self.decisions.pop(0)
        if isinstance(decision, Exception):
            raise decision
        if self.repeat_last:
            # Fresh call ids on every replay
            decision = decision.model_copy(update={
                "tool_calls": [call.model_copy(update={"id": f"call_{next(_call_ids)}"}) for call in decision.tool_calls],
            })
        return decision


class StubBackend:
    """Backend whose handlers return canned payloads after optional delays"""

    def __init__(self, results: dict[str, Any] | None = None, delays: dict[str, float] | None = None):
        self.results = results or {}
        self.delays = delays or {}
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.handlers = {name: self._handler(name) for name in ToolRegistry().tools}

    def _handler(self, name: str):
        async def handle(args: dict[str, Any]) -> dict[str, Any]:
            self.calls.append((name, args))
            await asyncio.sleep(self.delays.get(name, 0))
            result = self.results.get(name, {"success": True, "tool": name})
            if isinstance(result, Exception):
                raise result
            return dict(result)

        return handle


def tool_call(name: str, **args: Any) -> ToolCall:
    return ToolCall(id=f"call_{next(_call_ids)}", name=name, args=args)


@pytest.fixture
def scripted_reasoner() -> Callable[..., ScriptedReasoner]:
    return ScriptedReasoner


@pytest.fixture
def stub_backend() -> Callable[..., StubBackend]:
    return StubBackend


@pytest.fixture
def make_call() -> Callable[..., ToolCall]:
    return tool_call


@pytest.fixture
def transient_error() -> Callable[[str], TransientToolError]:
    return TransientToolError


@pytest.fixture
def make_service() -> Callable[..., AgentService]:
    def build(reasoner: ReasoningService, backend: StubBackend | None = None, max_steps: int = 10) -> AgentService:
        return AgentService.build(reasoner, backend=backend or StubBackend(), max_steps=max_steps)

    return build
