"""
Per-target usage counters and derived health metrics.
"""

import threading
from dataclasses import replace
from datetime import datetime
from typing import Callable, Dict, Optional

from ..models import ModelMetrics
from ..utils import get_logger


class MetricsTracker:
    """
    Thread-safe store of ModelMetrics keyed by target id.

    Counters are mutated under a single lock; readers receive copies with the
    derived fields (error rate, uptime, throughput) computed at read time.
    """

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self.logger = get_logger(__name__)
        self._clock = clock
        self._lock = threading.Lock()
        self._metrics: Dict[str, ModelMetrics] = {}
        self._generations: Dict[str, int] = {}

    def initialize(self, target_id: str, generation: int = 0) -> None:
        """Create zeroed counters for a newly registered target."""
        with self._lock:
            self._metrics[target_id] = ModelMetrics(target_id=target_id, registered_at=self._clock())
            self._generations[target_id] = generation

    def remove(self, target_id: str) -> None:
        with self._lock:
            self._metrics.pop(target_id, None)
            self._generations.pop(target_id, None)

    def record_request(self, target_id: str, success: bool = True, generation: Optional[int] = None) -> bool:
        """
        Count one routed request against a target.

        Args:
            target_id: Target that received the request
            success: Whether the request counts as successful
            generation: Registration generation the caller observed; updates for
                a stale generation are dropped

        Returns:
            True if the counters were updated
        """
        with self._lock:
            metrics = self._current(target_id, generation)
            if metrics is None:
                return False

            metrics.total_requests += 1
            metrics.last_used = self._clock()
            if success:
                metrics.successful_requests += 1
            else:
                metrics.failed_requests += 1
            return True

    def record_outcome(self, target_id: str, success: bool, response_time: Optional[float] = None,
                       generation: Optional[int] = None) -> bool:
        """
        Apply a downstream outcome to a previously routed request.

        Routed requests are counted as successful up front; a failed outcome
        moves one of them to the failed column so total_requests keeps matching
        the number of routing decisions.
        """
        with self._lock:
            metrics = self._current(target_id, generation)
            if metrics is None:
                return False

            if not success:
                if metrics.successful_requests > 0:
                    metrics.successful_requests -= 1
                    metrics.failed_requests += 1
                else:
                    self.logger.warning(f"Failure reported for {target_id} with no routed request left to reclassify")

            if response_time is not None:
                metrics.response_time_samples += 1
                # Running mean over reported response times
                metrics.average_response_time += (
                    (response_time - metrics.average_response_time) / metrics.response_time_samples
                )
            return True

    def get(self, target_id: str) -> Optional[ModelMetrics]:
        with self._lock:
            metrics = self._metrics.get(target_id)
            if metrics is None:
                return None
            return self._derive(metrics)

    def snapshot(self) -> Dict[str, ModelMetrics]:
        """Return derived copies of every target's metrics."""
        with self._lock:
            return {target_id: self._derive(metrics) for target_id, metrics in self._metrics.items()}

    def _current(self, target_id: str, generation: Optional[int]) -> Optional[ModelMetrics]:
        metrics = self._metrics.get(target_id)
        if metrics is None:
            self.logger.debug(f"Ignoring metrics update for unknown target {target_id}")
            return None
        if generation is not None and self._generations.get(target_id) != generation:
            self.logger.debug(f"Ignoring metrics update for stale registration of {target_id}")
            return None
        return metrics

    def _derive(self, metrics: ModelMetrics) -> ModelMetrics:
        uptime = max((self._clock() - metrics.registered_at).total_seconds(), 0.0)
        total = metrics.total_requests
        return replace(
            metrics,
            uptime_seconds=uptime,
            error_rate=metrics.failed_requests / total if total else 0.0,
            throughput=total / uptime if uptime > 0 else 0.0,
        )
