from dataclasses import dataclass
from typing import Dict, Any, Optional, Union
import logging
import os
import sys

import structlog


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    service_name: str = "support-agent"
) -> None:
    """Route structlog through stdlib logging on stdout.

    Context bound with ``structlog.contextvars`` (service details here, the
    session id while a chat streams) is merged into every entry.
    """

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO)
    )

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    processors.append(
        structlog.processors.JSONRenderer() if log_format == "json" else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.bind_contextvars(
        service=service_name,
        environment=os.getenv("ENVIRONMENT", "development"),
        version=os.getenv("SERVICE_VERSION", "unknown")
    )


class AgentLogger:
    """Specialized logger for agent operations"""

    def __init__(self, name: str):
        self.logger = structlog.get_logger(name)

    def log_session_event(
        self,
        event_type: str,
        session_id: str,
        data: Optional[Dict[str, Any]] = None,
        **kwargs
    ):
        """Log session lifecycle events"""

        self.logger.info(
            "session_event",
            event_type=event_type,
            session_id=session_id,
            data=data or {},
            **kwargs
        )

    def log_tool_execution(
        self,
        tool_name: str,
        input_data: Dict[str, Any],
        outcome: str,
        duration_ms: Optional[float] = None,
        error: Optional[str] = None
    ):
        """Log tool execution events"""

        self.logger.info(
            "tool_execution",
            tool_name=tool_name,
            input_data=input_data,
            outcome=outcome,
            duration_ms=duration_ms,
            error=error
        )

    def log_workflow_transition(
        self,
        session_id: str,
        node: str,
        turn_count: int,
        step: Optional[int] = None
    ):
        """Log graph node completions"""

        self.logger.info(
            "workflow_transition",
            session_id=session_id,
            node=node,
            turn_count=turn_count,
            step=step
        )


# Global logger instance
agent_logger = AgentLogger("support_agent")


@dataclass
class LatencyStats:
    count: int = 0
    total_ms: float = 0.0
    min_ms: float = 0.0
    max_ms: float = 0.0

    def add(self, duration_ms: float):
        self.min_ms = duration_ms if self.count == 0 else min(self.min_ms, duration_ms)
        self.max_ms = max(self.max_ms, duration_ms)
        self.total_ms += duration_ms
        self.count += 1

    def summary(self) -> Dict[str, float]:
        return {
            "count": self.count,
            "avg": self.total_ms / self.count if self.count else 0,
            "min": self.min_ms,
            "max": self.max_ms,
        }


class MetricsCollector:
    """In-process latency and counter metrics, surfaced on /health"""

    def __init__(self):
        self.latencies: Dict[str, LatencyStats] = {}
        self.counters: Dict[str, int] = {}

    def record_latency(self, operation: str, duration_ms: float):
        self.latencies.setdefault(operation, LatencyStats()).add(duration_ms)
        agent_logger.logger.debug("metric", metric_type="latency", operation=operation, duration_ms=duration_ms)

    def increment_counter(self, name: str, value: int = 1):
        self.counters[name] = self.counters.get(name, 0) + value
        agent_logger.logger.debug("metric", metric_type="counter", name=name, value=value)

    def get_metrics_summary(self) -> Dict[str, Union[int, Dict[str, float]]]:
        summary: Dict[str, Union[int, Dict[str, float]]] = {
            f"latency.{operation}": stats.summary() for operation, stats in self.latencies.items()
        }
        summary.update(self.counters)
        return summary


# Global metrics collector
metrics = MetricsCollector()
