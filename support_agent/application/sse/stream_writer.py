from typing import AsyncIterator, Awaitable, Callable, Optional
from contextlib import aclosing
import structlog

from support_agent.application.service import AgentService
from support_agent.application.sse.schema.events import DoneEvent, ErrorEvent, from_update
from support_agent.domain.streaming.status_translator import derive_updates
from support_agent.infrastructure.observability.logging import MetricsCollector, metrics as default_metrics

logger = structlog.get_logger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


class StreamWriter:
    """Frames one chat run onto a server-sent event stream.

    Exactly one terminal frame (``done`` or ``error``) ends every stream that
    the client is still reading; nothing is written after it.
    """

    def __init__(self, service: AgentService, metrics: Optional[MetricsCollector] = None):
        self.service = service
        self.metrics = metrics or default_metrics

    async def stream(
        self,
        session_id: str,
        message: str,
        is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
    ) -> AsyncIterator[str]:
        """Yield encoded frames for a chat run"""

        with structlog.contextvars.bound_contextvars(session_id=session_id):
            logger.info("Starting agent stream")
            self.metrics.increment_counter("chat.started")
            event_count = 0

            try:
                async with aclosing(self.service.chat(session_id, message)) as events:
                    async for event in events:
                        # Abandon the run at the next frame boundary
                        if is_disconnected is not None and await is_disconnected():
                            logger.info("Client disconnected", events=event_count)
                            self.metrics.increment_counter("chat.disconnected")
                            return

                        event_count += 1
                        for update in derive_updates(event):
                            yield from_update(update).to_frame()

            except Exception as e:
                logger.exception("Agent stream failed", error=str(e))
                self.metrics.increment_counter("chat.failed")
                yield ErrorEvent(error=str(e) or e.__class__.__name__).to_frame()
                return

            logger.info("Stream completed", events=event_count)
            self.metrics.increment_counter("chat.completed")
            yield DoneEvent().to_frame()
