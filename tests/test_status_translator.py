from __future__ import annotations

import json

import pytest

from support_agent.domain.models.agent_state import (
    RawEvent, RawEventKind, ToolCall, ToolOutcome, Turn, UpdateKind
)
from support_agent.domain.streaming.status_translator import derive_updates, translate


def _agent_event(*turns: Turn) -> RawEvent:
    return RawEvent(kind=RawEventKind.AGENT, turns=list(turns))


def _tool_turn(name: str, outcome: ToolOutcome) -> Turn:
    return Turn.tool(ToolCall(id="c1", name=name, args={}), outcome)


def test_tool_call_preview_is_truncated() -> None:
    long_input = "x" * 60
    turn = Turn.agent(tool_calls=[ToolCall(id="c1", name="lookup", args={"input": long_input})])

    update = translate(_agent_event(turn))

    assert update.kind == UpdateKind.STATUS
    assert update.message == f"Agent calling tool: lookup ({'x' * 50}...)"


def test_tool_call_preview_uses_first_text_argument() -> None:
    turn = Turn.agent(
        "analysis first",
        tool_calls=[ToolCall(id="c1", name="get_order_status", args={"orderId": "A1"})],
    )

    assert translate(_agent_event(turn)).message == "Agent calling tool: get_order_status (A1)"


def test_tool_call_without_text_arguments_has_no_preview() -> None:
    turn = Turn.agent(tool_calls=[ToolCall(id="c1", name="ping", args={"count": 3})])

    assert translate(_agent_event(turn)).message == "Agent calling tool: ping"


@pytest.mark.parametrize(
    ("content", "expected"),
    [
        ("assistantfinal Your order shipped", "Agent generating final response..."),
        ("assistantfinal after analysis", "Agent generating final response..."),
        ("analysis of the refund", "Agent analyzing situation..."),
        ("assistantcommentary looking at results", "Agent processing tool results..."),
        ("Your order A1 has shipped.", "Agent thinking..."),
        ('json{"orderId": "A1"}', "Agent is analyzing your request..."),
        ("   ", "Agent is analyzing your request..."),
    ],
)
def test_agent_text_markers(content: str, expected: str) -> None:
    assert translate(_agent_event(Turn.agent(content))).message == expected


def test_last_classified_agent_turn_wins() -> None:
    event = _agent_event(Turn.agent("analysis"), Turn.agent("Done!"), Turn.agent(""))

    assert translate(event).message == "Agent thinking..."


def test_tool_outcome_suffixes() -> None:
    success = _tool_turn("get_order_status", ToolOutcome.success({"success": True, "orderId": "A1"}))
    blocked = _tool_turn("process_refund", ToolOutcome.domain_failure("refund_blocked", "Refund blocked"))
    timeout = _tool_turn("get_order_status", ToolOutcome.transient_error("API timeout - please retry"))
    plain = _tool_turn("verify_refund", ToolOutcome.success({"refundId": "REF1", "status": "completed"}))

    def message(turn: Turn) -> str:
        return translate(RawEvent(kind=RawEventKind.TOOLS, turns=[turn])).message

    assert message(success) == "Tool get_order_status: success (success)"
    assert message(blocked) == "Tool process_refund: success (failed)"
    assert message(timeout) == "Tool get_order_status: error (error)"
    assert message(plain) == "Tool verify_refund: success"


def test_unstructured_timeout_text_counts_as_error() -> None:
    turn = Turn(role="tool", content="upstream timeout", tool_name="process_return", tool_status="error")

    update = translate(RawEvent(kind=RawEventKind.TOOLS, turns=[turn]))

    assert update.message == "Tool process_return: error (error)"


def test_tools_event_without_turns_uses_default() -> None:
    assert translate(RawEvent(kind=RawEventKind.TOOLS)).message == "Processing tool results..."


def test_followup_event() -> None:
    assert translate(RawEvent(kind=RawEventKind.HUMAN_FOLLOWUP)).message == "Waiting for human input..."


def test_translation_is_pure() -> None:
    event = _agent_event(Turn.agent("Hello there"))

    assert translate(event) == translate(event)
    assert derive_updates(event) == derive_updates(event)


def test_every_event_is_forwarded_as_chunk() -> None:
    call = ToolCall(id="c1", name="cancel_order", args={"orderId": "B2"})
    turn = Turn.tool(call, ToolOutcome.success({"success": True, "status": "cancelled"}))
    event = RawEvent(kind=RawEventKind.TOOLS, turns=[turn])

    status, chunk = derive_updates(event)

    assert status.kind == UpdateKind.STATUS
    assert chunk.kind == UpdateKind.CHUNK
    assert chunk.timestamp == event.timestamp
    message = chunk.content["tools"]["messages"][0]
    assert message["tool_name"] == "cancel_order"
    assert json.loads(message["content"])["status"] == "cancelled"
