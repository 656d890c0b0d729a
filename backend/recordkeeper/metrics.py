"""Record operation logging and Prometheus instrumentation.

This module provides structured logging for record engine operations and
optional Prometheus metrics for monitoring how often records change and how
long partition rebuilds take.

Metrics logged:
- Operation name (create, update, delete, recalculate)
- Partition touched
- PB/SB flags assigned
- Latency
- Outcome (ok / error)

Log format: JSON lines for easy parsing and aggregation.
"""

import json
import time
import logging
from dataclasses import dataclass, asdict, field
from datetime import datetime, timezone
from typing import Optional, Dict, Any

from prometheus_client import Counter, Histogram, REGISTRY

from recordkeeper.config import settings

metrics_logger = logging.getLogger("record_metrics")


@dataclass
class RecordOperationMetrics:
    """Structured record of one engine operation."""
    operation: str
    athlete_id: Optional[int] = None
    partition: Optional[str] = None
    personal_best: Optional[bool] = None
    season_best: Optional[bool] = None
    latency_ms: float = 0.0
    outcome: str = "ok"
    error_type: Optional[str] = None
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> Dict[str, Any]:
        return {key: value for key, value in asdict(self).items() if value is not None}

    def to_json(self) -> str:
        return json.dumps(self.to_dict())


def _get_or_create(factory, name: str, *args, **kwargs):
    """Create a collector, reusing an existing one on hot reload."""
    try:
        return factory(name, *args, **kwargs)
    except ValueError:
        # Metrics already registered, get existing one
        return REGISTRY._names_to_collectors.get(name)


class RecordMetricsLogger:
    """Logger for record operations with optional Prometheus integration."""

    def __init__(self, prometheus_enabled: Optional[bool] = None):
        if prometheus_enabled is None:
            prometheus_enabled = settings.enable_prometheus_metrics
        self.prometheus_enabled = prometheus_enabled
        self._init_prometheus_metrics()

    def _init_prometheus_metrics(self):
        """Initialize Prometheus metrics if enabled."""
        if not self.prometheus_enabled:
            self.flags_counter = None
            self.operation_counter = None
            self.latency_histogram = None
            return

        self.flags_counter = _get_or_create(
            Counter,
            'record_flags_assigned_total',
            'Number of PB/SB flags assigned to new or rebuilt results',
            ['flag', 'operation'],
        )
        self.operation_counter = _get_or_create(
            Counter,
            'record_operations_total',
            'Record engine operations by outcome',
            ['operation', 'outcome'],
        )
        self.latency_histogram = _get_or_create(
            Histogram,
            'record_operation_latency_ms',
            'Record engine operation latency in milliseconds',
            ['operation'],
            buckets=[1, 5, 10, 25, 50, 100, 250, 500, 1000, 2500],
        )

    def log_operation(
        self,
        operation: str,
        latency_ms: float,
        athlete_id: Optional[int] = None,
        partition: Optional[str] = None,
        personal_best: Optional[bool] = None,
        season_best: Optional[bool] = None,
        error: Optional[Exception] = None,
    ) -> RecordOperationMetrics:
        """Log one operation and record it to Prometheus when enabled.

        Args:
            operation: Operation name
            latency_ms: Elapsed time in milliseconds
            athlete_id: Athlete the operation touched
            partition: Description of the partition touched
            personal_best: Whether a PB was assigned
            season_best: Whether an SB was assigned
            error: Exception that aborted the operation, if any

        Returns:
            RecordOperationMetrics that was logged
        """
        metrics = RecordOperationMetrics(
            operation=operation,
            athlete_id=athlete_id,
            partition=partition,
            personal_best=personal_best,
            season_best=season_best,
            latency_ms=round(latency_ms, 2),
            outcome="error" if error else "ok",
            error_type=type(error).__name__ if error else None,
        )

        if settings.log_record_details or error:
            metrics_logger.info(metrics.to_json())

        if self.prometheus_enabled:
            self._record_prometheus_metrics(metrics)

        return metrics

    def _record_prometheus_metrics(self, metrics: RecordOperationMetrics):
        """Record metrics to Prometheus."""
        if self.operation_counter:
            self.operation_counter.labels(operation=metrics.operation, outcome=metrics.outcome).inc()
        if self.latency_histogram:
            self.latency_histogram.labels(operation=metrics.operation).observe(metrics.latency_ms)
        if self.flags_counter:
            if metrics.personal_best:
                self.flags_counter.labels(flag="personal_best", operation=metrics.operation).inc()
            if metrics.season_best:
                self.flags_counter.labels(flag="season_best", operation=metrics.operation).inc()


class OperationTimer:
    """Context manager for timing record operations."""

    def __init__(self):
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None

    def __enter__(self) -> "OperationTimer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, *args):
        self.end_time = time.perf_counter()

    @property
    def elapsed_ms(self) -> float:
        """Return elapsed time in milliseconds."""
        if self.start_time is None:
            return 0.0
        end = self.end_time or time.perf_counter()
        return (end - self.start_time) * 1000


# Singleton instance for use across the application
record_metrics_logger = RecordMetricsLogger()
