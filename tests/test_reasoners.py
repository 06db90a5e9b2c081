from __future__ import annotations

from typing import Any

import pytest
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, ToolMessage
from langchain_core.outputs import ChatGeneration, ChatResult

from support_agent.domain.exceptions import ReasoningServiceError
from support_agent.domain.models.agent_state import ToolCall, ToolOutcome, Turn
from support_agent.domain.orchestration.reasoning.chat_model import ChatModelReasoner, to_langchain_messages
from support_agent.domain.orchestration.reasoning.rule_based import RuleBasedReasoner, detect_intents, extract_order_id
from support_agent.domain.tool.tool_registry import ToolRegistry


@pytest.fixture
def tool_defs():
    return list(ToolRegistry().tools.values())


class FakeToolChatModel(BaseChatModel):
    """Replays AI messages and remembers what it was asked"""

    responses: list[Any] = []
    bound_tools: list[dict] = []
    received: list[list[BaseMessage]] = []

    @property
    def _llm_type(self) -> str:
        return "fake-tool-chat"

    def bind_tools(self, tools, **kwargs):  # noqa: ANN001, ANN003
        self.bound_tools = list(tools)
        return self

    def _generate(self, messages, stop=None, run_manager=None, **kwargs):  # noqa: ANN001, ANN003
        self.received.append(list(messages))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return ChatResult(generations=[ChatGeneration(message=response)])


# Rule-based reasoner


def test_extracts_order_ids() -> None:
    assert extract_order_id("Where is my order a1?") == "A1"
    assert extract_order_id("Status for B2 please") == "B2"
    assert extract_order_id("check refund REFABC123") is None
    assert extract_order_id("hello there") is None


def test_refund_lookup_is_not_a_new_refund() -> None:
    assert detect_intents("What is the refund status for REFX12345?") == ["verify_refund"]
    assert detect_intents("I want a refund for item 2 on order A1") == ["process_refund"]


@pytest.mark.asyncio
async def test_rules_plan_a_status_lookup(tool_defs) -> None:
    decision = await RuleBasedReasoner().step([Turn.user("Where is order A1?")], tool_defs)

    assert [(call.name, call.args) for call in decision.tool_calls] == [("get_order_status", {"orderId": "A1"})]
    assert not decision.needs_human_input


@pytest.mark.asyncio
async def test_rules_ask_for_missing_order_id(tool_defs) -> None:
    decision = await RuleBasedReasoner().step([Turn.user("Please cancel my order")], tool_defs)

    assert decision.tool_calls == []
    assert decision.needs_human_input
    assert "order ID" in decision.text


@pytest.mark.asyncio
async def test_rules_retry_transient_failures_twice_then_give_up(tool_defs) -> None:
    reasoner = RuleBasedReasoner()
    history = [Turn.user("Where is order A1?")]

    for attempt in range(3):
        call = ToolCall(id=f"c{attempt}", name="get_order_status", args={"orderId": "A1"})
        history.append(Turn.agent(tool_calls=[call]))
        history.append(Turn.tool(call, ToolOutcome.transient_error("API timeout - please retry")))

        decision = await reasoner.step(history, tool_defs)
        if attempt < 2:
            assert [(c.name, c.args) for c in decision.tool_calls] == [("get_order_status", {"orderId": "A1"})]
        else:
            assert decision.tool_calls == []
            assert "after 3 attempts" in decision.text


@pytest.mark.asyncio
async def test_rules_summarise_results(tool_defs) -> None:
    call = ToolCall(id="c1", name="cancel_order", args={"orderId": "B2"})
    history = [
        Turn.user("cancel order B2"),
        Turn.agent(tool_calls=[call]),
        Turn.tool(call, ToolOutcome.success({
            "success": True, "orderId": "B2", "status": "cancelled",
            "refundAmount": "$80.00", "refundProcessingTime": "3-5 business days",
        })),
    ]

    decision = await RuleBasedReasoner().step(history, tool_defs)

    assert decision.text == "Order B2 has been cancelled. A refund of $80.00 will follow in 3-5 business days."


@pytest.mark.asyncio
async def test_rules_surface_domain_failures(tool_defs) -> None:
    call = ToolCall(id="c1", name="send_replacement", args={"orderId": "A1", "itemId": "item1"})
    outcome = ToolOutcome.domain_failure("out_of_stock", "Item currently out of stock.")
    history = [Turn.user("item 1 arrived broken, order A1"), Turn.agent(tool_calls=[call]), Turn.tool(call, outcome)]

    decision = await RuleBasedReasoner().step(history, tool_defs)

    assert decision.tool_calls == []
    assert decision.text == "Item currently out of stock."


# Chat model reasoner


def test_unanswered_tool_calls_are_dropped() -> None:
    answered = ToolCall(id="c1", name="get_order_status", args={"orderId": "A1"})
    dangling = ToolCall(id="c2", name="verify_refund", args={"refundId": "REF1"})
    history = [
        Turn.user("hi"),
        Turn.agent(tool_calls=[answered]),
        Turn.tool(answered, ToolOutcome.success({"status": "shipped"})),
        Turn.agent(tool_calls=[dangling]),
    ]

    messages = to_langchain_messages(history)

    assert isinstance(messages[0], HumanMessage)
    assert [call["id"] for call in messages[1].tool_calls] == ["c1"]
    assert isinstance(messages[2], ToolMessage)
    assert messages[2].tool_call_id == "c1"
    assert messages[3].tool_calls == []


@pytest.mark.asyncio
async def test_chat_model_tool_calls_become_decisions(tool_defs) -> None:
    model = FakeToolChatModel(responses=[
        AIMessage(content="", tool_calls=[{"name": "get_order_status", "args": {"orderId": "A1"}, "id": "call_1"}]),
    ])

    decision = await ChatModelReasoner(model).step([Turn.user("where is A1")], tool_defs)

    assert [(c.id, c.name, c.args) for c in decision.tool_calls] == [("call_1", "get_order_status", {"orderId": "A1"})]
    names = [tool["function"]["name"] for tool in model.bound_tools]
    assert "tier2_support_escalation" in names
    assert names[-1] == "request_human_input"
    assert model.received[0][0].content.startswith("You are a helpful customer service agent")


@pytest.mark.asyncio
async def test_chat_model_can_ask_the_customer(tool_defs) -> None:
    model = FakeToolChatModel(responses=[
        AIMessage(content="", tool_calls=[
            {"name": "request_human_input", "args": {"question": "Which order?"}, "id": "call_h"},
        ]),
    ])

    decision = await ChatModelReasoner(model).step([Turn.user("cancel it")], tool_defs)

    assert decision.needs_human_input
    assert decision.text == "Which order?"
    assert decision.tool_calls == []


@pytest.mark.asyncio
async def test_chat_model_failures_are_wrapped(tool_defs) -> None:
    model = FakeToolChatModel(responses=[RuntimeError("provider down")])

    with pytest.raises(ReasoningServiceError, match="provider down"):
        await ChatModelReasoner(model).step([Turn.user("hi")], tool_defs)
