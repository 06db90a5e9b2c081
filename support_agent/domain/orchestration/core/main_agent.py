from typing import TypedDict, Annotated, AsyncIterator, List, Dict, Any, Optional, Literal
from contextlib import aclosing
import asyncio
import operator

from langgraph.graph import StateGraph, END
from langgraph.errors import GraphRecursionError
import structlog

from support_agent.domain.context.memory.session_store import SessionStore
from support_agent.domain.exceptions import ReasoningServiceError
from support_agent.domain.models.agent_state import RawEvent, RawEventKind, ToolCall, Turn
from support_agent.domain.orchestration.reasoning.base import ReasoningService
from support_agent.domain.orchestration.reasoning.prompts import STEP_LIMIT_MESSAGE
from support_agent.domain.tool.tool_executor import ToolExecutor
from support_agent.domain.tool.tool_registry import ToolRegistry
from support_agent.infrastructure.observability.logging import agent_logger

logger = structlog.get_logger(__name__)

DEFAULT_MAX_STEPS = 10

NODE_EVENT_KINDS: Dict[str, RawEventKind] = {
    "agent": RawEventKind.AGENT,
    "tools": RawEventKind.TOOLS,
    "human_followup": RawEventKind.HUMAN_FOLLOWUP,
}


class WorkflowState(TypedDict):
    """State for the workflow graph"""
    thread_id: str
    turns: Annotated[List[Turn], operator.add]
    pending_calls: List[ToolCall]
    awaiting_human: bool


class AgentOrchestrator:
    """Drives one reasoning-and-tool cycle per user message using LangGraph.

    History lives in the session store, not in the graph: every node reads and
    appends there, and the graph state only carries what the current run
    produced.
    """

    def __init__(
        self,
        reasoner: ReasoningService,
        tool_registry: ToolRegistry,
        tool_executor: ToolExecutor,
        session_store: SessionStore,
        max_steps: int = DEFAULT_MAX_STEPS,
    ):
        self.reasoner = reasoner
        self.tool_registry = tool_registry
        self.tool_executor = tool_executor
        self.session_store = session_store
        self.max_steps = max_steps
        self.workflow = self._create_workflow()

    def _create_workflow(self):
        """Create the agent/tools loop"""

        workflow = StateGraph(WorkflowState)

        workflow.add_node("agent", self.agent_node)
        workflow.add_node("tools", self.tool_execution_node)
        workflow.add_node("human_followup", self.human_followup_node)

        workflow.set_entry_point("agent")

        workflow.add_conditional_edges(
            "agent",
            self.route_after_agent,
            {
                "tools": "tools",
                "human_followup": "human_followup",
                "end": END
            }
        )
        workflow.add_edge("tools", "agent")
        workflow.add_edge("human_followup", END)

        return workflow.compile()

    async def agent_node(self, state: WorkflowState) -> Dict[str, Any]:
        """Ask the reasoning service for the next move"""
        thread_id = state["thread_id"]

        history = await self.session_store.history(thread_id)
        tool_defs = await self.tool_registry.get_available_tools()
        decision = await self.reasoner.step(history, tool_defs)

        for call in decision.tool_calls:
            if not self.tool_registry.has_tool(call.name):
                raise ReasoningServiceError(f"Reasoning service requested unknown tool: {call.name}")

        turn = Turn.agent(decision.text, decision.tool_calls)
        await self.session_store.append(thread_id, turn)

        return {
            "turns": [turn],
            "pending_calls": decision.tool_calls,
            "awaiting_human": decision.needs_human_input,
        }

    async def tool_execution_node(self, state: WorkflowState) -> Dict[str, Any]:
        """Execute requested tools concurrently, record them in issue order"""
        thread_id = state["thread_id"]
        calls = state["pending_calls"]

        outcomes = await asyncio.gather(
            *(self.tool_executor.invoke(call.name, call.args) for call in calls)
        )

        turns = [Turn.tool(call, outcome) for call, outcome in zip(calls, outcomes)]
        for turn in turns:
            await self.session_store.append(thread_id, turn)

        return {"turns": turns, "pending_calls": []}

    async def human_followup_node(self, state: WorkflowState) -> Dict[str, Any]:
        """Hand control back to the customer"""
        logger.info("Waiting for human input", session_id=state["thread_id"])

        return {"awaiting_human": True}

    def route_after_agent(self, state: WorkflowState) -> Literal["tools", "human_followup", "end"]:
        if state.get("pending_calls"):
            return "tools"
        if state.get("awaiting_human"):
            return "human_followup"
        return "end"

    async def run(
        self,
        thread_id: str,
        user_message: str,
        max_steps: Optional[int] = None
    ) -> AsyncIterator[RawEvent]:
        """Process a message and yield raw events as graph steps complete"""

        steps = self.max_steps if max_steps is None else max_steps
        if steps < 1:
            raise ValueError(f"max_steps must be at least 1, got {steps}")
        await self.session_store.append(thread_id, Turn.user(user_message))

        initial_state: WorkflowState = {
            "thread_id": thread_id,
            "turns": [],
            "pending_calls": [],
            "awaiting_human": False,
        }
        config = {"recursion_limit": steps, "configurable": {"thread_id": thread_id}}

        step = 0
        try:
            async with aclosing(self.workflow.astream(initial_state, config=config, stream_mode="updates")) as stream:
                async for chunk in stream:
                    for node, update in chunk.items():
                        kind = NODE_EVENT_KINDS.get(node)
                        if kind is None:
                            continue
                        step += 1
                        turns = (update or {}).get("turns", [])
                        agent_logger.log_workflow_transition(thread_id, node, len(turns), step)
                        yield RawEvent(kind=kind, turns=turns)

        except GraphRecursionError:
            # Step bound reached: finish gracefully with an explanation
            logger.warning("Step limit reached", session_id=thread_id, max_steps=steps)
            turn = Turn.agent(STEP_LIMIT_MESSAGE.format(max_steps=steps))
            await self.session_store.append(thread_id, turn)
            yield RawEvent(kind=RawEventKind.AGENT, turns=[turn])
