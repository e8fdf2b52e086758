# src/database/monitoring.py
"""
Stored procedure call monitoring.

Every invocation is timed so slow procedures and failing procedures show up
in the logs and in the pool status report.
"""

import logging
import threading
import time
from collections import defaultdict, deque
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class CallMetrics:
    """Metrics for one stored procedure call."""

    procedure: str
    execution_time: float
    rows_returned: int
    timestamp: datetime
    success: bool
    error_message: str | None = None


class DatabaseMetrics:
    """
    Metrics collection for stored procedure calls.

    Shared by every caller of the pool, so updates are serialized with a lock.
    """

    def __init__(self, slow_call_threshold: float = 0.1, retention_minutes: int = 60):
        self.slow_call_threshold = slow_call_threshold
        self.retention_period = timedelta(minutes=retention_minutes)

        self.call_history: deque[CallMetrics] = deque(maxlen=10000)
        self.slow_calls: deque[CallMetrics] = deque(maxlen=1000)
        self.error_counts: defaultdict[str, int] = defaultdict(int)
        self.baseline_call_times: dict[str, float] = {}
        self.performance_degradation_threshold = 2.0  # 2x slower than baseline

        self._lock = threading.Lock()

    def record_call(
        self,
        procedure: str,
        execution_time: float,
        rows_returned: int = 0,
        success: bool = True,
        error: str | None = None,
    ) -> None:
        """Record metrics for a stored procedure call."""
        metrics = CallMetrics(
            procedure=procedure,
            execution_time=execution_time,
            rows_returned=rows_returned,
            timestamp=datetime.now(),
            success=success,
            error_message=error,
        )

        with self._lock:
            self.call_history.append(metrics)
            self._prune_history(metrics.timestamp - self.retention_period)
            if not success:
                self.error_counts[procedure] += 1

            if execution_time > self.slow_call_threshold:
                self.slow_calls.append(metrics)
                logger.warning(f"Slow procedure call: {procedure} took {execution_time:.3f}s")

            self._check_performance_degradation(procedure, execution_time)
            self._update_baseline(procedure, execution_time)

    def _prune_history(self, cutoff: datetime) -> None:
        while self.call_history and self.call_history[0].timestamp < cutoff:
            self.call_history.popleft()

    def _update_baseline(self, procedure: str, execution_time: float) -> None:
        if procedure not in self.baseline_call_times:
            self.baseline_call_times[procedure] = execution_time
        else:
            # Exponential moving average
            alpha = 0.1
            current_baseline = self.baseline_call_times[procedure]
            self.baseline_call_times[procedure] = (
                alpha * execution_time + (1 - alpha) * current_baseline
            )

    def _check_performance_degradation(self, procedure: str, execution_time: float) -> None:
        baseline = self.baseline_call_times.get(procedure)
        if baseline and execution_time > baseline * self.performance_degradation_threshold:
            logger.debug(
                f"Procedure {procedure} took {execution_time:.3f}s "
                f"(baseline: {baseline:.3f}s, {execution_time / baseline:.1f}x slower)"
            )

    def get_performance_summary(self) -> dict[str, Any]:
        """Summary of recent calls for the pool status report."""
        cutoff = datetime.now() - timedelta(minutes=5)
        with self._lock:
            recent_calls = [c for c in self.call_history if c.timestamp >= cutoff]
            error_counts = dict(self.error_counts)
            baselines = dict(self.baseline_call_times)

        if recent_calls:
            avg_call_time = sum(c.execution_time for c in recent_calls) / len(recent_calls)
            max_call_time = max(c.execution_time for c in recent_calls)
            success_rate = sum(1 for c in recent_calls if c.success) / len(recent_calls)
        else:
            avg_call_time = max_call_time = success_rate = 0

        return {
            "call_performance": {
                "average_call_time": avg_call_time,
                "max_call_time": max_call_time,
                "calls_per_5_minutes": len(recent_calls),
                "success_rate": success_rate,
                "slow_calls_count": len(
                    [c for c in recent_calls if c.execution_time > self.slow_call_threshold]
                ),
            },
            "performance_baselines": baselines,
            "error_counts": error_counts,
        }


class CallProfiler:
    """
    Context manager timing a single stored procedure call.

    Exceptions raised inside the block are recorded as failures and propagate.
    """

    def __init__(self, metrics: DatabaseMetrics, procedure: str):
        self.metrics = metrics
        self.procedure = procedure
        self.start_time = 0.0
        self.rows_returned = 0

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.metrics.record_call(
            procedure=self.procedure,
            execution_time=time.perf_counter() - self.start_time,
            rows_returned=self.rows_returned,
            success=exc_type is None,
            error=str(exc_val) if exc_val else None,
        )
        return False

    def add_row(self) -> None:
        self.rows_returned += 1
