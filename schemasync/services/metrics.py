"""Metrics for import, export and mutation operations."""

import time
import logging
import threading
from typing import Optional, Dict, Any, List
from dataclasses import dataclass, field
from datetime import datetime, timezone
from collections import defaultdict, deque
from contextlib import contextmanager
import json

logger = logging.getLogger("metrics")


@dataclass
class OperationRecord:
    """Metrics for a single operation."""
    operation: str
    success: bool
    duration_ms: float
    timestamp: float
    defect_count: int = 0
    error_type: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


@dataclass
class OperationTrace:
    """Mutable record yielded by ``trace_operation``.

    A caller marks the traced operation as failed (for instance an export
    blocked by defects) without raising.
    """
    operation: str
    success: bool = True
    defect_count: int = 0
    error_type: Optional[str] = None

    def fail(self, error_type: str, defect_count: int = 0) -> None:
        self.success = False
        self.error_type = error_type
        self.defect_count = defect_count


@dataclass
class MetricSummary:
    """Summary of metrics over a time window."""
    operation: str
    count: int
    success_count: int
    failure_count: int
    defect_count: int
    avg_duration_ms: float
    min_duration_ms: float
    max_duration_ms: float
    p50_duration_ms: float
    p95_duration_ms: float
    success_rate: float
    errors: Dict[str, int] = field(default_factory=dict)


class MetricsCollector:
    """Collect and aggregate operation metrics.

    Features:
    - Timing and success/failure tracking per operation
    - Rolling window aggregation
    - Failure reason and defect counting
    - JSON export
    """

    def __init__(
        self,
        window_seconds: int = 300,
        max_window_count: int = 1000
    ):
        """Initialize the metrics collector.

        Args:
            window_seconds: Rolling window size in seconds.
            max_window_count: Maximum records to keep in the window.
        """
        self.window_seconds = window_seconds
        self.max_window_count = max_window_count

        self._lock = threading.RLock()
        self._records: deque[OperationRecord] = deque()
        self._error_counts: Dict[str, Dict[str, int]] = defaultdict(lambda: defaultdict(int))
        self._operation_counts: Dict[str, Dict[str, int]] = defaultdict(lambda: {"success": 0, "failure": 0})
        self._start_time = time.time()

    def record(
        self,
        operation: str,
        success: bool,
        duration_ms: float,
        defect_count: int = 0,
        error_type: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        """Record one operation.

        Args:
            operation: Operation name (e.g., "import", "export", "mutation").
            success: Whether the operation succeeded.
            duration_ms: Duration in milliseconds.
            defect_count: Structural defects reported by the operation.
            error_type: Failure reason if failed.
            details: Additional details to record.
        """
        with self._lock:
            now = time.time()
            self._evict(now)

            self._records.append(OperationRecord(
                operation=operation,
                success=success,
                duration_ms=duration_ms,
                timestamp=now,
                defect_count=defect_count,
                error_type=error_type,
                details=details
            ))
            while len(self._records) > self.max_window_count:
                self._records.popleft()

            status = "success" if success else "failure"
            self._operation_counts[operation][status] += 1
            if error_type:
                self._error_counts[operation][error_type] += 1

    def _evict(self, now: float) -> None:
        window_start = now - self.window_seconds
        while self._records and self._records[0].timestamp < window_start:
            self._records.popleft()

    def get_operation_summary(self, operation: str) -> Optional[MetricSummary]:
        """Get the metrics summary for one operation.

        Returns:
            MetricSummary or None if nothing was recorded in the window.
        """
        with self._lock:
            self._evict(time.time())
            relevant = [r for r in self._records if r.operation == operation]
            if not relevant:
                return None
            return self._summarize(operation, relevant, dict(self._error_counts.get(operation, {})))

    def get_all_summaries(self) -> Dict[str, MetricSummary]:
        """Get summaries for every operation in the window."""
        with self._lock:
            operations = sorted(set(r.operation for r in self._records))
            return {
                op: summary
                for op in operations
                if (summary := self.get_operation_summary(op)) is not None
            }

    def get_global_summary(self) -> MetricSummary:
        """Get one summary across all operations."""
        with self._lock:
            self._evict(time.time())
            all_errors: Dict[str, int] = defaultdict(int)
            for errors in self._error_counts.values():
                for err_type, count in errors.items():
                    all_errors[err_type] += count
            return self._summarize("all", list(self._records), dict(all_errors))

    def _summarize(
        self,
        operation: str,
        records: List[OperationRecord],
        errors: Dict[str, int]
    ) -> MetricSummary:
        if not records:
            return MetricSummary(
                operation=operation,
                count=0,
                success_count=0,
                failure_count=0,
                defect_count=0,
                avg_duration_ms=0,
                min_duration_ms=0,
                max_duration_ms=0,
                p50_duration_ms=0,
                p95_duration_ms=0,
                success_rate=0
            )

        durations = sorted(r.duration_ms for r in records)
        success_count = sum(1 for r in records if r.success)
        return MetricSummary(
            operation=operation,
            count=len(records),
            success_count=success_count,
            failure_count=len(records) - success_count,
            defect_count=sum(r.defect_count for r in records),
            avg_duration_ms=sum(durations) / len(durations),
            min_duration_ms=durations[0],
            max_duration_ms=durations[-1],
            p50_duration_ms=self._percentile(durations, 50),
            p95_duration_ms=self._percentile(durations, 95),
            success_rate=success_count / len(records) * 100,
            errors=errors
        )

    def get_stats(self) -> Dict[str, Any]:
        """Get lifetime counters."""
        with self._lock:
            return {
                "uptime_seconds": time.time() - self._start_time,
                "window_seconds": self.window_seconds,
                "operations_tracked": sorted(self._operation_counts.keys()),
                "total_count": sum(
                    counts["success"] + counts["failure"]
                    for counts in self._operation_counts.values()
                ),
            }

    def reset(self) -> None:
        """Reset all metrics."""
        with self._lock:
            self._records.clear()
            self._error_counts.clear()
            self._operation_counts.clear()
            self._start_time = time.time()

    @staticmethod
    def _percentile(sorted_list: List[float], percentile: float) -> float:
        if not sorted_list:
            return 0
        idx = int(len(sorted_list) * percentile / 100)
        return sorted_list[min(idx, len(sorted_list) - 1)]

    def export_json(self) -> str:
        """Export metrics as JSON."""
        summaries = self.get_all_summaries()
        data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime_seconds": time.time() - self._start_time,
            "operations": {
                name: {
                    "count": summary.count,
                    "success_count": summary.success_count,
                    "failure_count": summary.failure_count,
                    "defect_count": summary.defect_count,
                    "avg_duration_ms": summary.avg_duration_ms,
                    "p95_duration_ms": summary.p95_duration_ms,
                    "success_rate": summary.success_rate,
                    "errors": summary.errors
                }
                for name, summary in summaries.items()
            },
            "global": {
                "total_count": sum(s.count for s in summaries.values()),
                "total_success_rate": self.get_global_summary().success_rate
            }
        }
        return json.dumps(data, indent=2)


_metrics_collector: Optional[MetricsCollector] = None


def get_metrics_collector() -> MetricsCollector:
    """Get or create the default metrics collector."""
    global _metrics_collector
    if _metrics_collector is None:
        _metrics_collector = MetricsCollector()
    return _metrics_collector


@contextmanager
def trace_operation(
    operation: str,
    metrics: Optional[MetricsCollector] = None,
    **context
):
    """Time an operation and record it.

    Usage:
        with trace_operation("export", dialect="mysql") as trace:
            result = generator.generate(...)
            if not result.ok:
                trace.fail("defects", len(result.defects))

    Args:
        operation: Operation name.
        metrics: Metrics collector to use.
        **context: Additional context recorded with the operation.

    Yields:
        The mutable OperationTrace for this operation.
    """
    metrics = metrics or get_metrics_collector()
    trace = OperationTrace(operation=operation)
    start_time = time.time()

    try:
        yield trace
    except Exception as e:
        trace.fail(type(e).__name__, trace.defect_count)
        raise
    finally:
        duration_ms = (time.time() - start_time) * 1000
        if not trace.success:
            logger.debug("%s failed after %.1f ms: %s", operation, duration_ms, trace.error_type)
        metrics.record(
            operation=operation,
            success=trace.success,
            duration_ms=duration_ms,
            defect_count=trace.defect_count,
            error_type=trace.error_type,
            details=context if context else None
        )
