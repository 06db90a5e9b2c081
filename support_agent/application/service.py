from typing import AsyncIterator, Optional
import random

import structlog

from support_agent.config import Settings
from support_agent.domain.context.memory.session_store import SessionStore
from support_agent.domain.models.agent_state import RawEvent
from support_agent.domain.orchestration.core.main_agent import AgentOrchestrator
from support_agent.domain.orchestration.reasoning.base import ReasoningService
from support_agent.domain.orchestration.reasoning.chat_model import ChatModelReasoner
from support_agent.domain.orchestration.reasoning.rule_based import RuleBasedReasoner
from support_agent.domain.tool.order_backend import OrderBackend
from support_agent.domain.tool.tool_executor import ToolExecutor
from support_agent.domain.tool.tool_registry import ToolRegistry

logger = structlog.get_logger(__name__)


class AgentService:
    """Process-wide agent components, built once and handed to request handlers"""

    def __init__(
        self,
        orchestrator: AgentOrchestrator,
        session_store: SessionStore,
        tool_registry: ToolRegistry,
    ):
        self.orchestrator = orchestrator
        self.session_store = session_store
        self.tool_registry = tool_registry
        self.started = False

    @classmethod
    def build(
        cls,
        reasoner: ReasoningService,
        backend: Optional[OrderBackend] = None,
        session_store: Optional[SessionStore] = None,
        max_steps: int = 10,
    ) -> "AgentService":
        registry = ToolRegistry()
        store = session_store or SessionStore()
        executor = ToolExecutor(registry, backend or OrderBackend())
        orchestrator = AgentOrchestrator(
            reasoner=reasoner,
            tool_registry=registry,
            tool_executor=executor,
            session_store=store,
            max_steps=max_steps,
        )
        return cls(orchestrator, store, registry)

    @classmethod
    def from_settings(cls, settings: Settings) -> "AgentService":
        if settings.use_chat_model():
            reasoner: ReasoningService = ChatModelReasoner.from_settings(settings)
        else:
            reasoner = RuleBasedReasoner()

        backend = OrderBackend(rng=random.Random(settings.tool_seed))
        return cls.build(reasoner, backend=backend, max_steps=settings.max_steps)

    async def start(self):
        self.started = True
        logger.info(
            "Agent service started",
            reasoner=self.orchestrator.reasoner.name,
            tools=len(self.tool_registry.tools),
            max_steps=self.orchestrator.max_steps,
        )

    async def shutdown(self):
        self.started = False
        logger.info("Agent service stopped", sessions=len(self.session_store.threads))

    def new_session_id(self) -> str:
        return self.session_store.new_session_id()

    async def reset_session(self, session_id: Optional[str] = None) -> str:
        return await self.session_store.reset(session_id)

    def chat(self, session_id: str, message: str) -> AsyncIterator[RawEvent]:
        return self.orchestrator.run(session_id, message)
