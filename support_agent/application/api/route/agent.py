from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field
import structlog

from support_agent.application.service import AgentService
from support_agent.application.sse.stream_writer import SSE_HEADERS, StreamWriter

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1/agent", tags=["agent"])


class SessionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: Optional[str] = Field(None, alias="sessionId")


def get_agent_service(request: Request) -> AgentService:
    return request.app.state.agent_service


# Server-sent event stream for one chat message
@router.get("/chat")
async def chat_stream(
    request: Request,
    service: Annotated[AgentService, Depends(get_agent_service)],
    message: Optional[str] = Query(None),
    session_id: Optional[str] = Query(None, alias="sessionId"),
):
    if not message or not message.strip():
        logger.info("Rejected empty chat message", session_id=session_id)
        return JSONResponse(status_code=400, content={"error": "Message is required"})

    thread_id = session_id or service.new_session_id()
    writer = StreamWriter(service)

    return StreamingResponse(
        writer.stream(thread_id, message, request.is_disconnected),
        media_type="text/event-stream",
        headers={**SSE_HEADERS, "X-Session-ID": thread_id},
    )


@router.post("/session/create")
async def create_session(service: Annotated[AgentService, Depends(get_agent_service)]):
    session_id = service.new_session_id()

    return {
        "sessionId": session_id,
        "streamUrl": f"{router.prefix}/chat?sessionId={session_id}",
    }


@router.post("/session/reset")
async def reset_session(
    service: Annotated[AgentService, Depends(get_agent_service)],
    body: Optional[SessionRequest] = None,
):
    previous = body.session_id if body else None
    return {"sessionId": await service.reset_session(previous)}


@router.get("/session/{session_id}/history")
async def session_history(
    session_id: str,
    service: Annotated[AgentService, Depends(get_agent_service)],
):
    turns = await service.session_store.history(session_id)
    return {
        "sessionId": session_id,
        "turns": [turn.model_dump(mode="json", exclude_none=True) for turn in turns],
    }


@router.get("/tools")
async def list_tools(
    service: Annotated[AgentService, Depends(get_agent_service)],
    q: Optional[str] = Query(None),
):
    registry = service.tool_registry
    tools = await registry.search_tools(q) if q else await registry.get_available_tools()
    return {"tools": [tool.model_dump() for tool in tools]}
