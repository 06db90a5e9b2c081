# Execution against the simulated backend with monitoring
from typing import Any, Dict, Optional
import time

import structlog

from support_agent.domain.exceptions import TransientToolError, UnknownToolError
from support_agent.domain.models.agent_state import ToolOutcome
from support_agent.domain.tool.order_backend import OrderBackend
from support_agent.domain.tool.tool_registry import ToolRegistry
from support_agent.domain.tool.tool_validator import ToolParameterValidator
from support_agent.infrastructure.observability.logging import (
    MetricsCollector, agent_logger, metrics as default_metrics
)

logger = structlog.get_logger(__name__)


class ToolExecutor:
    """Runs one named tool call and classifies its outcome"""

    def __init__(
        self,
        registry: ToolRegistry,
        backend: Optional[OrderBackend] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.registry = registry
        self.backend = backend or OrderBackend()
        self.metrics = metrics or default_metrics

    async def invoke(self, tool_name: str, args: Dict[str, Any]) -> ToolOutcome:
        tool = await self.registry.get_tool_info(tool_name)
        handler = self.backend.handlers.get(tool_name)
        if tool is None or handler is None:
            raise UnknownToolError(tool_name)

        validation = ToolParameterValidator.validate_tool_call(tool, args)
        if not validation.is_valid:
            outcome = ToolOutcome.domain_failure("invalid_arguments", "; ".join(validation.errors))
            self._record(tool_name, args, outcome, duration_ms=0.0)
            return outcome

        started = time.perf_counter()
        try:
            payload = await handler(args)
        except TransientToolError as e:
            logger.warning("Transient tool failure", tool_name=tool_name, error=str(e))
            outcome = ToolOutcome.transient_error(str(e))
        else:
            outcome = self._classify(payload)

        self._record(tool_name, args, outcome, (time.perf_counter() - started) * 1000)
        return outcome

    @staticmethod
    def _classify(payload: Dict[str, Any]) -> ToolOutcome:
        # Business-rule rejections come back as ordinary payloads
        if payload.get("success") is False:
            reason = payload.get("reason") or payload.get("status") or "rejected"
            return ToolOutcome.domain_failure(reason, payload.get("message", ""), payload=payload)
        return ToolOutcome.success(payload)

    def _record(self, tool_name: str, args: Dict[str, Any], outcome: ToolOutcome, duration_ms: float):
        agent_logger.log_tool_execution(
            tool_name=tool_name,
            input_data=args,
            outcome=outcome.kind.value,
            duration_ms=round(duration_ms, 3),
            error=outcome.message if outcome.retryable else None,
        )
        self.metrics.record_latency(f"tool.{tool_name}", duration_ms)
        self.metrics.increment_counter(f"tool.{tool_name}.{outcome.kind.value}")
