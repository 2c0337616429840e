"""Observability Module - Logging, Tracing, and Metrics

This module provides:
1. Structured logging with context
2. Execution tracing for AI-facing stages
3. Performance metrics collection
"""
import time
import logging
import functools
from typing import Dict, Any, Optional, Callable
from dataclasses import dataclass, field
from datetime import datetime

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s | %(name)s | %(levelname)s | %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)

logger = logging.getLogger("mentorme")


@dataclass
class StageTrace:
    """A single traced stage (an agent call or a flow step)."""
    stage_name: str
    start_time: datetime = field(default_factory=datetime.now)
    end_time: Optional[datetime] = None
    duration_ms: Optional[float] = None
    input_summary: str = ""
    success: bool = True
    error: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    _started: float = field(default_factory=time.perf_counter, repr=False)

    def complete(self, success: bool = True, error: str = None):
        self.end_time = datetime.now()
        self.duration_ms = (time.perf_counter() - self._started) * 1000
        self.success = success
        self.error = error


@dataclass
class PipelineMetrics:
    """Aggregated metrics across traced stages."""
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    total_latency_ms: float = 0
    stage_latencies: Dict[str, list] = field(default_factory=dict)

    @property
    def success_rate(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.successful_requests / self.total_requests

    @property
    def avg_latency_ms(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.total_latency_ms / self.total_requests

    def record(self, trace: StageTrace):
        self.total_requests += 1
        if trace.success:
            self.successful_requests += 1
        else:
            self.failed_requests += 1

        if trace.duration_ms is not None:
            self.total_latency_ms += trace.duration_ms
            self.stage_latencies.setdefault(trace.stage_name, []).append(trace.duration_ms)

    def summary(self) -> Dict[str, Any]:
        stage_avg = {name: sum(values) / len(values)
                     for name, values in self.stage_latencies.items() if values}
        return {
            "total_requests": self.total_requests,
            "success_rate": f"{self.success_rate:.1%}",
            "avg_latency_ms": f"{self.avg_latency_ms:.0f}ms",
            "stage_avg_latency": stage_avg,
        }

    def reset(self):
        self.total_requests = 0
        self.successful_requests = 0
        self.failed_requests = 0
        self.total_latency_ms = 0
        self.stage_latencies = {}


# Global metrics instance
metrics = PipelineMetrics()


class Tracer:
    """Context manager for tracing a stage."""

    def __init__(self, stage_name: str, input_data: Any = None):
        self.trace = StageTrace(stage_name=stage_name)
        if input_data:
            self.trace.input_summary = str(input_data)[:200]

    def __enter__(self):
        logger.info(f"▶ {self.trace.stage_name} started")
        return self.trace

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            self.trace.complete(success=False, error=str(exc_val))
            logger.error(f"✖ {self.trace.stage_name} failed: {exc_val}")
        else:
            self.trace.complete(success=True)
            logger.info(f"✔ {self.trace.stage_name} completed in {self.trace.duration_ms:.0f}ms")

        metrics.record(self.trace)
        return False  # Don't suppress exceptions


def trace_agent(func: Callable) -> Callable:
    """Decorator that traces a method as `<ClassName>.<method>`."""
    @functools.wraps(func)
    def wrapper(self, *args, **kwargs):
        stage_name = f"{self.__class__.__name__}.{func.__name__}"
        with Tracer(stage_name, args[0] if args else None):
            return func(self, *args, **kwargs)
    return wrapper


def log_context(session, stage: str):
    """Log reflection session state at a flow stage."""
    logger.debug(f"[{stage}] Session {session.id}: {len(session.exchanges)} exchanges")
    if session.patterns:
        logger.debug(f"[{stage}] Patterns: {[p.type.value for p in session.patterns]}")
    if session.recommendations:
        logger.debug(f"[{stage}] Recommendations: {[r.name for r in session.recommendations]}")


def get_metrics_summary() -> Dict[str, Any]:
    """Current metrics summary."""
    return metrics.summary()
