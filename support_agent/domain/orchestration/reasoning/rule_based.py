"""
Offline keyword reasoner.

Used when no chat model is configured. It recognises a handful of intents,
pulls order/item/refund ids out of the latest message, retries transiently
failed calls up to two times and then summarises the results.
"""

from typing import Dict, List, Optional, Tuple
from collections import defaultdict
import json
import re
import uuid

from support_agent.domain.models.agent_state import AgentDecision, ToolCall, ToolStatus, Turn, TurnRole
from support_agent.domain.orchestration.reasoning.base import ReasoningService
from support_agent.domain.tool.tool_registry import ToolDefinition

MAX_RETRIES = 2

ORDER_PHRASE = re.compile(r"\border\s*(?:id\s*)?#?\s*([A-Za-z0-9][A-Za-z0-9-]*\d[A-Za-z0-9-]*)", re.IGNORECASE)
ORDER_TOKEN = re.compile(r"\b(?!REF)([A-Z]{1,4}-?\d{1,10})\b")
ITEM_ID = re.compile(r"\bitem\s*#?\s*(\d+)\b", re.IGNORECASE)
REFUND_ID = re.compile(r"\b(REF[A-Z0-9]{3,})\b")

# Checked in order; the first matching keyword wins per tool
INTENT_KEYWORDS: List[Tuple[str, Tuple[str, ...]]] = [
    ("verify_refund", ("refund status", "verify refund", "check refund", "check my refund", "where is my refund")),
    ("cancel_order", ("cancel",)),
    ("process_refund", ("refund", "money back")),
    ("process_return", ("return",)),
    ("send_replacement", ("replace", "damaged", "broken", "wrong item")),
    ("tier2_support_escalation", ("escalate", "supervisor", "manager", "tier 2")),
    ("get_order_status", ("status", "where is", "track", "shipped", "delivery")),
]

SUCCESS_TEMPLATES: Dict[str, str] = {
    "get_order_status": "Order {orderId} is {status}.",
    "process_refund": "Refund {refundId} for {amount} has been issued for {itemId} on order {orderId} ({processingTime}).",
    "send_replacement": "Replacement order {replacementOrderId} is on its way (tracking {trackingNumber}, {estimatedDelivery}).",
    "cancel_order": "Order {orderId} has been cancelled. A refund of {refundAmount} will follow in {refundProcessingTime}.",
    "verify_refund": "Refund {refundId} is {status}.",
    "process_return": "Return {returnId} is logged. Your label is at {returnLabel}; please ship within {deadline}.",
    "tier2_support_escalation": "I've escalated this to Tier 2 support, ticket {ticketId}. Expect a reply within {expectedResponse}.",
}

GREETING = (
    "I can help with order status, refunds, returns, replacements and cancellations. "
    "What can I do for you today?"
)


def _new_call(name: str, args: Dict[str, str]) -> ToolCall:
    return ToolCall(id=f"call_{uuid.uuid4().hex[:12]}", name=name, args=args)


def _call_key(call: ToolCall) -> str:
    return call.name + json.dumps(call.args, sort_keys=True)


def extract_order_id(text: str) -> Optional[str]:
    match = ORDER_PHRASE.search(text) or ORDER_TOKEN.search(text)
    return match.group(1).upper() if match else None


def detect_intents(text: str) -> List[str]:
    lowered = text.lower()
    intents = [
        tool_name for tool_name, keywords in INTENT_KEYWORDS
        if any(keyword in lowered for keyword in keywords)
    ]
    # A refund lookup is neither a new refund nor an order lookup
    if "verify_refund" in intents or (REFUND_ID.search(text) and "process_refund" in intents):
        intents = [name for name in intents if name not in ("process_refund", "get_order_status")]
        if "verify_refund" not in intents:
            intents.insert(0, "verify_refund")
    return intents


class RuleBasedReasoner(ReasoningService):
    """Deterministic reasoning over keywords and ids"""

    name = "rules"

    async def step(self, history: List[Turn], tool_defs: List[ToolDefinition]) -> AgentDecision:
        available = {tool.name for tool in tool_defs}

        last_user = max(
            (index for index, turn in enumerate(history) if turn.role == TurnRole.USER),
            default=None,
        )
        if last_user is None:
            return AgentDecision(text=GREETING)

        since_user = history[last_user + 1:]
        if not any(turn.role == TurnRole.TOOL for turn in since_user):
            return self._plan(history[last_user].content, available)

        return self._react(since_user)

    def _plan(self, message: str, available: set) -> AgentDecision:
        """Choose tool calls for a fresh user message"""

        order_id = extract_order_id(message)
        intents = [name for name in detect_intents(message) if name in available]
        if not intents and order_id and "get_order_status" in available:
            intents = ["get_order_status"]
        if not intents:
            return AgentDecision(text=GREETING)

        item_match = ITEM_ID.search(message)
        item_id = f"item{item_match.group(1)}" if item_match else "item1"
        refund_match = REFUND_ID.search(message)

        calls: List[ToolCall] = []
        for name in intents:
            if name == "verify_refund":
                if not refund_match:
                    return AgentDecision(
                        text="Could you share the refund ID? It starts with REF.",
                        needs_human_input=True,
                    )
                calls.append(_new_call(name, {"refundId": refund_match.group(1)}))
            elif name == "tier2_support_escalation":
                calls.append(_new_call(name, {"issueSummary": message.strip()[:200]}))
            elif not order_id:
                return AgentDecision(
                    text="Could you share your order ID so I can look into this?",
                    needs_human_input=True,
                )
            elif name in ("get_order_status", "cancel_order"):
                calls.append(_new_call(name, {"orderId": order_id}))
            else:
                calls.append(_new_call(name, {"orderId": order_id, "itemId": item_id}))

        return AgentDecision(text="Let me take care of that.", tool_calls=calls)

    def _react(self, since_user: List[Turn]) -> AgentDecision:
        """Retry transient failures, otherwise summarise what happened"""

        calls_by_id: Dict[str, ToolCall] = {}
        attempts: Dict[str, int] = defaultdict(int)
        for turn in since_user:
            for call in turn.tool_calls:
                calls_by_id[call.id] = call
                attempts[_call_key(call)] += 1

        # Latest result per distinct call, in first-issued order
        latest: Dict[str, Turn] = {}
        for turn in since_user:
            if turn.role == TurnRole.TOOL and turn.tool_call_id in calls_by_id:
                latest[_call_key(calls_by_id[turn.tool_call_id])] = turn

        retries = []
        for key, turn in latest.items():
            call = calls_by_id[turn.tool_call_id]
            if turn.tool_status == ToolStatus.ERROR and attempts[key] <= MAX_RETRIES:
                retries.append(_new_call(call.name, call.args))

        if retries:
            names = ", ".join(call.name for call in retries)
            return AgentDecision(text=f"Retrying after a temporary error: {names}", tool_calls=retries)

        lines = [self._describe(turn, attempts[key]) for key, turn in latest.items()]
        return AgentDecision(text="\n".join(lines))

    @staticmethod
    def _describe(turn: Turn, attempts: int) -> str:
        if turn.tool_status == ToolStatus.ERROR:
            detail = turn.content.removeprefix("Error: ")
            return (
                f"I couldn't complete {turn.tool_name} after {attempts} attempts ({detail}). "
                "I can escalate this to Tier 2 support if you'd like."
            )

        payload = json.loads(turn.content)
        if payload.get("success") is False:
            return payload.get("message", f"{turn.tool_name} could not be completed.")

        summary = SUCCESS_TEMPLATES[turn.tool_name].format_map(defaultdict(str, payload))
        if payload.get("trackingNumber") and turn.tool_name == "get_order_status":
            summary += f" Tracking number {payload['trackingNumber']}, arriving in {payload['estimatedDelivery']}."
        return summary
