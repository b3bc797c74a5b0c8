"""
Advisory health sweep over registered targets.
"""

from typing import List, Optional

from ..models import HealthReport, HealthStatus
from ..models.config import HealthMonitorConfig
from ..utils import get_logger
from ..utils.error_handling import TargetNotFoundError
from .metrics import MetricsTracker
from .registry import TargetRegistry


class HealthMonitor:
    """
    Classifies targets as healthy or unhealthy from their error rate.

    The sweep is triggered externally (for example by a timer in the host
    application). By default it only reports. With
    ``auto_disable_on_high_error_rate`` set, targets whose error rate exceeds
    ``disable_error_rate`` after more than ``disable_min_requests`` requests are
    disabled in the registry.
    """

    def __init__(self, registry: TargetRegistry, metrics: MetricsTracker,
                 config: Optional[HealthMonitorConfig] = None):
        self.registry = registry
        self.metrics = metrics
        self.config = config or HealthMonitorConfig()
        self.logger = get_logger(__name__)

    def run_sweep(self) -> List[HealthReport]:
        """
        Check every registered target once.

        Returns:
            One HealthReport per target, in registry order
        """
        self.logger.info(f"Performing health check on {len(self.registry)} virtual models")
        snapshot = self.metrics.snapshot()
        reports = []

        for target in self.registry.list():
            metrics = snapshot.get(target.id)
            if metrics is None:
                # Unregistered between listing and snapshot
                continue

            healthy = metrics.error_rate < self.config.healthy_error_rate
            status = HealthStatus.HEALTHY if healthy else HealthStatus.UNHEALTHY
            report = HealthReport(
                target_id=target.id,
                status=status,
                error_rate=metrics.error_rate,
                total_requests=metrics.total_requests,
                enabled=target.enabled,
            )

            self.logger.info(
                f"Health check for model {target.id}: {status.value} "
                f"(error_rate={metrics.error_rate:.2f}, total_requests={metrics.total_requests})"
            )

            if target.enabled and self._should_disable(metrics.error_rate, metrics.total_requests):
                self.logger.warning(
                    f"Disabling model {target.id} due to high error rate {metrics.error_rate:.2f}"
                )
                try:
                    self.registry.set_enabled(target.id, False)
                except TargetNotFoundError:
                    self.logger.debug(f"Model {target.id} was unregistered during the sweep")
                    continue
                report.enabled = False
                report.disabled_by_sweep = True

            reports.append(report)

        self.logger.info("Health check completed")
        return reports

    def _should_disable(self, error_rate: float, total_requests: int) -> bool:
        return (
            self.config.auto_disable_on_high_error_rate
            and error_rate > self.config.disable_error_rate
            and total_requests > self.config.disable_min_requests
        )
