from typing import Dict, Any, List, Optional
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from enum import Enum
import json


class TurnRole(str, Enum):
    """Author of a conversation turn"""
    USER = "user"
    AGENT = "agent"
    TOOL = "tool"


class ToolStatus(str, Enum):
    """Whether a tool ran to completion"""
    SUCCESS = "success"
    ERROR = "error"


class ToolCall(BaseModel):
    """A tool invocation requested by the reasoning service"""
    id: str = Field(description="Identifier linking the call to its tool turn")
    name: str = Field(description="Registered tool name")
    args: Dict[str, Any] = Field(default_factory=dict)


class Turn(BaseModel):
    """One entry of a session's conversation history"""
    role: TurnRole
    content: str = ""
    tool_calls: List[ToolCall] = Field(default_factory=list)
    tool_name: Optional[str] = None
    tool_status: Optional[ToolStatus] = None
    tool_call_id: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)

    @classmethod
    def user(cls, content: str) -> "Turn":
        return cls(role=TurnRole.USER, content=content)

    @classmethod
    def agent(cls, content: str = "", tool_calls: Optional[List[ToolCall]] = None) -> "Turn":
        return cls(role=TurnRole.AGENT, content=content, tool_calls=tool_calls or [])

    @classmethod
    def tool(cls, call: ToolCall, outcome: "ToolOutcome") -> "Turn":
        """Record a tool outcome against the call that produced it"""
        return cls(
            role=TurnRole.TOOL,
            content=outcome.to_content(),
            tool_name=call.name,
            tool_call_id=call.id,
            tool_status=ToolStatus.ERROR if outcome.retryable else ToolStatus.SUCCESS,
        )

    def to_message(self) -> Dict[str, Any]:
        """Serialize the turn for the raw event stream"""
        return self.model_dump(mode="json", exclude_none=True)


class AgentDecision(BaseModel):
    """Output of one reasoning step"""
    text: str = ""
    tool_calls: List[ToolCall] = Field(default_factory=list)
    needs_human_input: bool = False


class OutcomeKind(str, Enum):
    """Three-way result of a simulated tool call"""
    SUCCESS = "success"
    DOMAIN_FAILURE = "domain_failure"
    TRANSIENT_ERROR = "transient_error"


class ToolOutcome(BaseModel):
    """Result of a Tool Executor invocation.

    ``transient_error`` is the only retryable kind and never carries a payload.
    Domain failures are ordinary payloads with ``success: false`` and must be
    surfaced rather than retried.
    """
    kind: OutcomeKind
    payload: Optional[Dict[str, Any]] = None
    reason: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def success(cls, payload: Dict[str, Any]) -> "ToolOutcome":
        return cls(kind=OutcomeKind.SUCCESS, payload=payload)

    @classmethod
    def domain_failure(cls, reason: str, message: str, payload: Optional[Dict[str, Any]] = None) -> "ToolOutcome":
        return cls(
            kind=OutcomeKind.DOMAIN_FAILURE,
            reason=reason,
            message=message,
            payload=payload or {"success": False, "reason": reason, "message": message},
        )

    @classmethod
    def transient_error(cls, message: str) -> "ToolOutcome":
        return cls(kind=OutcomeKind.TRANSIENT_ERROR, message=message)

    @property
    def retryable(self) -> bool:
        return self.kind == OutcomeKind.TRANSIENT_ERROR

    def to_content(self) -> str:
        """Render the outcome as tool-turn content"""
        if self.retryable:
            return f"Error: {self.message}"
        return json.dumps(self.payload)


class RawEventKind(str, Enum):
    """Orchestration step that produced an event"""
    AGENT = "agent"
    TOOLS = "tools"
    HUMAN_FOLLOWUP = "human_followup"


class RawEvent(BaseModel):
    """Externally observable unit of an orchestration run"""
    model_config = ConfigDict(frozen=True)

    kind: RawEventKind
    turns: List[Turn] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=datetime.utcnow)

    def to_chunk(self) -> Dict[str, Any]:
        """Verbatim form, keyed by the node name like a graph update"""
        return {self.kind.value: {"messages": [turn.to_message() for turn in self.turns]}}


class UpdateKind(str, Enum):
    """Client-facing update types"""
    STATUS = "status"
    CHUNK = "chunk"
    DONE = "done"
    ERROR = "error"


class StatusUpdate(BaseModel):
    """Update derived from a raw event; never persisted"""
    model_config = ConfigDict(frozen=True)

    kind: UpdateKind
    message: Optional[str] = None
    content: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    timestamp: Optional[datetime] = None
