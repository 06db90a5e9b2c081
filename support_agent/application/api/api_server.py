from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import structlog

from support_agent.application.api.route.agent import router as agent_router
from support_agent.application.service import AgentService
from support_agent.config import Settings, get_settings
from support_agent.infrastructure.observability.logging import metrics, setup_logging

logger = structlog.get_logger(__name__)


def create_app(service: Optional[AgentService] = None, settings: Optional[Settings] = None) -> FastAPI:
    """Build the HTTP application; the agent service is created at startup unless given"""

    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.agent_service is None:
            app.state.agent_service = AgentService.from_settings(settings)
        await app.state.agent_service.start()
        logger.info("Agent server started", service_name=settings.service_name)

        yield

        await app.state.agent_service.shutdown()
        logger.info("Agent server shutdown")

    app = FastAPI(title="Customer Service Agent", lifespan=lifespan)
    app.state.agent_service = service

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(agent_router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        agent_service: Optional[AgentService] = app.state.agent_service
        return {
            "status": "healthy" if agent_service and agent_service.started else "starting",
            "tools": len(agent_service.tool_registry.tools) if agent_service else 0,
            "sessions": len(agent_service.session_store.threads) if agent_service else 0,
            "metrics": metrics.get_metrics_summary(),
            "timestamp": datetime.utcnow().isoformat()
        }

    return app


def main():
    import uvicorn

    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format, settings.service_name)
    uvicorn.run(create_app(settings=settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
