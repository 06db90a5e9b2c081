from typing import Dict, Any, Literal, Union
from pydantic import BaseModel, Field, field_serializer
from datetime import datetime, timezone
from enum import Enum

from support_agent.domain.models.agent_state import StatusUpdate, UpdateKind


class StreamEventType(str, Enum):
    """Server-sent event types"""
    STATUS = "status"
    CHUNK = "chunk"
    DONE = "done"
    ERROR = "error"


def _iso_timestamp(value: datetime) -> str:
    # Millisecond precision with a Z suffix, as browsers' Date.toISOString()
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class BaseEvent(BaseModel):
    """Base event model for all stream frames"""
    type: StreamEventType

    def to_frame(self) -> str:
        """Encode as one SSE frame"""
        return f"data: {self.model_dump_json()}\n\n"


class TimestampedEvent(BaseEvent):
    timestamp: datetime = Field(default_factory=datetime.utcnow)

    @field_serializer("timestamp")
    def serialize_timestamp(self, value: datetime) -> str:
        return _iso_timestamp(value)


class StatusEvent(TimestampedEvent):
    """Human-readable progress update"""
    type: Literal[StreamEventType.STATUS] = StreamEventType.STATUS
    message: str


class ChunkEvent(TimestampedEvent):
    """Verbatim raw orchestration event"""
    type: Literal[StreamEventType.CHUNK] = StreamEventType.CHUNK
    content: Dict[str, Any]


class DoneEvent(BaseEvent):
    """Terminal frame on success"""
    type: Literal[StreamEventType.DONE] = StreamEventType.DONE


class ErrorEvent(BaseEvent):
    """Terminal frame on failure"""
    type: Literal[StreamEventType.ERROR] = StreamEventType.ERROR
    error: str


StreamEvent = Union[StatusEvent, ChunkEvent, DoneEvent, ErrorEvent]


def from_update(update: StatusUpdate) -> StreamEvent:
    """Convert a derived update into its wire event"""

    if update.kind == UpdateKind.STATUS:
        return StatusEvent(message=update.message or "", timestamp=update.timestamp or datetime.utcnow())
    if update.kind == UpdateKind.CHUNK:
        return ChunkEvent(content=update.content or {}, timestamp=update.timestamp or datetime.utcnow())
    if update.kind == UpdateKind.ERROR:
        return ErrorEvent(error=update.error or "Unknown error")
    return DoneEvent()
