"""
Derives human-readable progress messages from raw orchestration events.

Classification is a best-effort reading of opaque model output, so it is kept
as ordered rule tables: the first matching rule wins within a turn, and when
an event carries several turns the last classifiable turn decides.
"""

from typing import Callable, List, NamedTuple, Optional
import json

from support_agent.domain.models.agent_state import (
    RawEvent, RawEventKind, StatusUpdate, Turn, UpdateKind
)

PREVIEW_LIMIT = 50

AGENT_DEFAULT_STATUS = "Agent is analyzing your request..."
TOOLS_DEFAULT_STATUS = "Processing tool results..."
FOLLOWUP_STATUS = "Waiting for human input..."


class ContentRule(NamedTuple):
    """Maps agent text to a status when ``matches`` holds"""
    matches: Callable[[str], bool]
    status: str


AGENT_CONTENT_RULES: List[ContentRule] = [
    ContentRule(lambda text: "assistantfinal" in text, "Agent generating final response..."),
    ContentRule(lambda text: "analysis" in text, "Agent analyzing situation..."),
    ContentRule(lambda text: "assistantcommentary" in text, "Agent processing tool results..."),
    ContentRule(lambda text: bool(text.strip()) and "json{" not in text, "Agent thinking..."),
]


class OutcomeRule(NamedTuple):
    """Maps tool content to a status suffix when ``matches`` holds"""
    matches: Callable[[str], bool]
    details: str


def _json_success(content: str) -> Optional[bool]:
    try:
        parsed = json.loads(content)
    except ValueError:
        return None
    if isinstance(parsed, dict) and isinstance(parsed.get("success"), bool):
        return parsed["success"]
    return None


def _is_json(content: str) -> bool:
    try:
        json.loads(content)
    except ValueError:
        return False
    return True


TOOL_OUTCOME_RULES: List[OutcomeRule] = [
    OutcomeRule(lambda content: _json_success(content) is False, " (failed)"),
    OutcomeRule(lambda content: _json_success(content) is True, " (success)"),
    OutcomeRule(
        lambda content: not _is_json(content) and ("Error:" in content or "timeout" in content),
        " (error)",
    ),
]


def preview_argument(value: str) -> str:
    if len(value) > PREVIEW_LIMIT:
        return value[:PREVIEW_LIMIT] + "..."
    return value


def _primary_argument(args: dict) -> Optional[str]:
    if isinstance(args.get("input"), str):
        return args["input"]
    for value in args.values():
        if isinstance(value, str):
            return value
    return None


def classify_agent_turn(turn: Turn) -> Optional[str]:
    if turn.tool_calls:
        call = turn.tool_calls[0]
        message = f"Agent calling tool: {call.name}"
        argument = _primary_argument(call.args)
        if argument:
            message += f" ({preview_argument(argument)})"
        return message

    for rule in AGENT_CONTENT_RULES:
        if rule.matches(turn.content):
            return rule.status
    return None


def classify_tool_turn(turn: Turn) -> Optional[str]:
    if not turn.tool_name:
        return None

    status = turn.tool_status.value if turn.tool_status else "unknown"
    details = ""
    for rule in TOOL_OUTCOME_RULES:
        if turn.content and rule.matches(turn.content):
            details = rule.details
            break
    return f"Tool {turn.tool_name}: {status}{details}"


def _last_classified(turns: List[Turn], classify: Callable[[Turn], Optional[str]], default: str) -> str:
    message = default
    for turn in turns:
        message = classify(turn) or message
    return message


def translate(event: RawEvent) -> Optional[StatusUpdate]:
    """Map a raw event to at most one status update"""

    if event.kind == RawEventKind.AGENT:
        message = _last_classified(event.turns, classify_agent_turn, AGENT_DEFAULT_STATUS)
    elif event.kind == RawEventKind.TOOLS:
        message = _last_classified(event.turns, classify_tool_turn, TOOLS_DEFAULT_STATUS)
    elif event.kind == RawEventKind.HUMAN_FOLLOWUP:
        message = FOLLOWUP_STATUS
    else:
        return None

    return StatusUpdate(kind=UpdateKind.STATUS, message=message, timestamp=event.timestamp)


def to_chunk(event: RawEvent) -> StatusUpdate:
    """Forward the raw event verbatim"""

    return StatusUpdate(kind=UpdateKind.CHUNK, content=event.to_chunk(), timestamp=event.timestamp)


def derive_updates(event: RawEvent) -> List[StatusUpdate]:
    """Status (when derivable) followed by the raw chunk"""

    updates = []
    status = translate(event)
    if status is not None:
        updates.append(status)
    updates.append(to_chunk(event))
    return updates
