from typing import Any, Dict, List, Optional, Set
import uuid

import structlog
from langchain.chat_models import init_chat_model
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage, ToolMessage

from support_agent.config import Settings
from support_agent.domain.exceptions import ReasoningServiceError
from support_agent.domain.models.agent_state import AgentDecision, ToolCall, Turn, TurnRole
from support_agent.domain.orchestration.reasoning.base import ReasoningService
from support_agent.domain.orchestration.reasoning.prompts import HUMAN_INPUT_TOOL, SYSTEM_PROMPT
from support_agent.domain.tool.tool_registry import ToolDefinition

logger = structlog.get_logger(__name__)


def to_langchain_messages(history: List[Turn]) -> List[BaseMessage]:
    """Convert stored turns into chat messages.

    Tool calls without a recorded result (a run cut short by the step limit)
    are dropped so the provider never sees an unanswered call.
    """

    answered: Set[str] = {
        turn.tool_call_id for turn in history
        if turn.role == TurnRole.TOOL and turn.tool_call_id
    }

    messages: List[BaseMessage] = []
    for turn in history:
        if turn.role == TurnRole.USER:
            messages.append(HumanMessage(content=turn.content))
        elif turn.role == TurnRole.AGENT:
            tool_calls = [
                {"name": call.name, "args": call.args, "id": call.id, "type": "tool_call"}
                for call in turn.tool_calls
                if call.id in answered
            ]
            messages.append(AIMessage(content=turn.content, tool_calls=tool_calls))
        else:
            messages.append(ToolMessage(
                content=turn.content,
                tool_call_id=turn.tool_call_id or "",
                name=turn.tool_name,
                status=turn.tool_status.value if turn.tool_status else "success",
            ))
    return messages


def _text_content(content: Any) -> str:
    if isinstance(content, str):
        return content
    # Content blocks from multimodal providers
    parts = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


class ChatModelReasoner(ReasoningService):
    """Reasoning backed by a LangChain chat model with tool calling"""

    name = "chat_model"

    def __init__(self, model: BaseChatModel, system_prompt: str = SYSTEM_PROMPT):
        self.model = model
        self.system_prompt = system_prompt

    @classmethod
    def from_settings(cls, settings: Settings) -> "ChatModelReasoner":
        model = init_chat_model(
            settings.model_name,
            model_provider=settings.model_provider,
            api_key=settings.together_api_key,
            temperature=settings.temperature,
            timeout=settings.model_timeout,
            max_retries=settings.model_max_retries,
        )
        logger.info("Chat model reasoner created", model=settings.model_name, provider=settings.model_provider)
        return cls(model)

    async def step(self, history: List[Turn], tool_defs: List[ToolDefinition]) -> AgentDecision:
        tools: List[Dict[str, Any]] = [tool.to_function_spec() for tool in tool_defs]
        tools.append(HUMAN_INPUT_TOOL)

        messages = [SystemMessage(content=self.system_prompt)] + to_langchain_messages(history)

        try:
            response = await self.model.bind_tools(tools).ainvoke(messages)
        except Exception as e:
            raise ReasoningServiceError(f"Reasoning service unavailable: {e}") from e

        return self._to_decision(response)

    @staticmethod
    def _to_decision(response: AIMessage) -> AgentDecision:
        text = _text_content(response.content)
        tool_calls: List[ToolCall] = []
        question: Optional[str] = None

        for call in response.tool_calls or []:
            if call["name"] == "request_human_input":
                question = call["args"].get("question") or text
                continue
            tool_calls.append(ToolCall(
                id=call.get("id") or f"call_{uuid.uuid4().hex[:12]}",
                name=call["name"],
                args=call.get("args") or {},
            ))

        # Tool work goes first; a question waits for the next step
        if question and not tool_calls:
            return AgentDecision(text=question, needs_human_input=True)

        return AgentDecision(text=text, tool_calls=tool_calls)
