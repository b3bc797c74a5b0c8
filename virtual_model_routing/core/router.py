"""
Routing engine: the public entry point for target registration and request routing.
"""

import threading
from typing import Dict, List, Optional, Any, Union

from ..models import (
    Target, RoutingRule, ClientRequest, RoutingDecision, ModelMetrics, HealthReport,
    RoutingPath, SystemConfig,
)
from ..utils import get_logger, RoutingLogger
from ..utils.error_handling import (
    VirtualModelRoutingError, TargetNotFoundError, TargetDisabledError,
    NoEnabledTargetsError, NoSuitableTargetError, handle_error,
)
from .analyzer import FeatureAnalyzer
from .health import HealthMonitor
from .metrics import MetricsTracker
from .registry import TargetRegistry
from .rules import evaluate_rules
from .scorer import CandidateScorer
from .selector import Selector


class RoutingEngine:
    """
    Routes client requests to registered virtual models.

    Requests naming a target are routed strictly: a missing or disabled target
    is an error and nothing is substituted. All other requests go through
    feature analysis, scoring and selection, falling back to the first enabled
    target when selection yields nothing.

    The engine is safe to call from many threads. It performs no I/O; the
    target it returns is handed to a dispatcher by the caller, who reports the
    downstream outcome back through ``record_outcome``.
    """

    def __init__(self, config: Optional[SystemConfig] = None,
                 registry: Optional[TargetRegistry] = None,
                 analyzer: Optional[FeatureAnalyzer] = None,
                 scorer: Optional[CandidateScorer] = None,
                 selector: Optional[Selector] = None):
        self.config = config or SystemConfig()
        self.logger = get_logger(__name__)
        self.routing_logger = RoutingLogger("routing")

        self.registry = registry or TargetRegistry()
        self.metrics: MetricsTracker = self.registry.metrics
        self.analyzer = analyzer or FeatureAnalyzer(self.config.analyzer_config)
        self.scorer = scorer or CandidateScorer(self.config.scoring_weights, self.config.analyzer_config)
        self.selector = selector or Selector()
        self.health_monitor = HealthMonitor(self.registry, self.metrics, self.config.health_config)

        # Routing decision log for audit trail
        self.routing_log: List[RoutingDecision] = []
        self._max_log_entries = self.config.routing_config.max_log_entries

        self._stats_lock = threading.Lock()
        self._routing_stats: Dict[str, Any] = {
            'total_requests': 0,
            'successful_routes': 0,
            'explicit_routes': 0,
            'degraded_routes': 0,
            'fallback_routes': 0,
            'failed_routes': 0,
            'target_usage': {},
        }

        self.logger.info("RoutingEngine initialized")

    @classmethod
    def from_config(cls, config: SystemConfig) -> "RoutingEngine":
        """Build an engine and register the virtual models listed in the configuration."""
        engine = cls(config)
        for entry in config.virtual_models:
            engine.register(entry)
        return engine

    # Registration

    def register(self, target: Union[Target, Dict[str, Any]]) -> Target:
        """
        Register a virtual model.

        Args:
            target: Target instance or configuration dictionary

        Returns:
            The stored target with defaults and derived fields filled in
        """
        if isinstance(target, dict):
            target = Target.from_dict(target)
        return self.registry.register(target)

    def unregister(self, target_id: str) -> None:
        self.registry.unregister(target_id)

    def update_routing_rules(self, target_id: str,
                             rules: List[Union[RoutingRule, Dict[str, Any]]]) -> None:
        """Replace a target's routing rules; invalid rules reject the whole update."""
        parsed = [RoutingRule.from_dict(rule) if isinstance(rule, dict) else rule for rule in rules]
        self.registry.update_rules(target_id, parsed)

    def enable_target(self, target_id: str) -> Target:
        return self.registry.set_enabled(target_id, True)

    def disable_target(self, target_id: str) -> Target:
        return self.registry.set_enabled(target_id, False)

    def get_target(self, target_id: str) -> Optional[Target]:
        return self.registry.get(target_id)

    def list_targets(self) -> List[Target]:
        return self.registry.list()

    def list_enabled_targets(self) -> List[Target]:
        return self.registry.list_enabled()

    # Routing

    def route(self, request: ClientRequest) -> Target:
        """
        Route a request to a target.

        Args:
            request: The client request to route

        Returns:
            The selected target

        Raises:
            TargetNotFoundError: Explicit target is not registered
            TargetDisabledError: Explicit target is disabled
            NoEnabledTargetsError: No enabled target exists for implicit routing
            NoSuitableTargetError: Selection failed and fallback is turned off
        """
        return self.route_with_decision(request).target

    def route_with_decision(self, request: ClientRequest) -> RoutingDecision:
        """Route a request and return the full decision, including confidence and reasoning."""
        self._bump('total_requests')

        try:
            if request.explicit_target_id is not None:
                decision = self._route_explicit(request)
            else:
                decision = self._route_implicit(request)
        except VirtualModelRoutingError as e:
            self._bump('failed_routes')
            self.routing_logger.log_error(e, {'request_id': request.id, 'path': request.path})
            raise
        except Exception as e:
            self._bump('failed_routes')
            raise handle_error(e, self.routing_logger, {'request_id': request.id, 'path': request.path}) from e

        decision.request_id = request.id
        self.metrics.record_request(decision.target.id, success=True, generation=decision.target.generation)
        self.log_routing_decision(decision)
        return decision

    def _route_explicit(self, request: ClientRequest) -> RoutingDecision:
        target_id = request.explicit_target_id
        target = self.registry.get(target_id)

        if target is None:
            self.logger.warning(f"Requested virtual model {target_id} not found")
            raise TargetNotFoundError(target_id, context={'request_id': request.id})
        if not target.enabled:
            self.logger.warning(f"Requested virtual model {target_id} is disabled")
            raise TargetDisabledError(target_id, context={'request_id': request.id})

        self._bump('explicit_routes')
        return RoutingDecision(
            target=target,
            confidence=1.0,
            reason="explicitly requested virtual model",
            path=RoutingPath.EXPLICIT,
        )

    def _route_implicit(self, request: ClientRequest) -> RoutingDecision:
        enabled = self.registry.list_enabled()
        if not enabled:
            raise NoEnabledTargetsError(context={'request_id': request.id})

        features = self.analyzer.analyze(request)
        verdicts = {target.id: evaluate_rules(request, target.routing_rules) for target in enabled}

        eligible = enabled
        if self.config.routing_config.enforce_routing_rules:
            eligible = [target for target in enabled if verdicts[target.id]]
            if len(eligible) < len(enabled):
                self.logger.info(f"Routing rules excluded {len(enabled) - len(eligible)} of {len(enabled)} models")

        snapshot = self.metrics.snapshot()
        candidates = self.scorer.score(features, eligible, snapshot, verdicts)

        try:
            decision = self.selector.select(candidates)
        except NoSuitableTargetError:
            if not self.config.routing_config.enable_fallback:
                raise
            decision = self._fallback_decision(request, features, snapshot)

        if decision.path == RoutingPath.DEGRADED:
            self._bump('degraded_routes')
            self.routing_logger.log_fallback(
                request.id, decision.target.id, "no virtual model scored above zero", RoutingPath.DEGRADED
            )
        decision.features = features
        return decision

    def _fallback_decision(self, request, features, snapshot) -> RoutingDecision:
        """Last resort: the first enabled target."""
        enabled = self.registry.list_enabled()
        if not enabled:
            raise NoEnabledTargetsError(context={'request_id': request.id})

        fallback = enabled[0]
        self._bump('fallback_routes')
        self.routing_logger.log_fallback(request.id, fallback.id, "selection produced no candidate")

        candidate = self.scorer.score_target(features, fallback, snapshot.get(fallback.id))
        return RoutingDecision(
            target=fallback,
            confidence=self.selector.calculate_confidence(candidate),
            reason="fallback to first enabled virtual model",
            path=RoutingPath.FALLBACK,
            alternatives=enabled[1:],
            score=candidate.score,
            metadata={'fallback_used': True},
        )

    # Metrics and health

    def record_outcome(self, target_id: str, success: bool, response_time: Optional[float] = None) -> None:
        """
        Report the downstream result of a routed request.

        Raises:
            TargetNotFoundError: If the target is not registered
        """
        if not self.metrics.record_outcome(target_id, success, response_time):
            raise TargetNotFoundError(target_id)

    def get_metrics(self, target_id: str) -> ModelMetrics:
        """
        Get usage metrics for a target.

        Raises:
            TargetNotFoundError: If the target is not registered
        """
        metrics = self.metrics.get(target_id)
        if metrics is None:
            raise TargetNotFoundError(target_id)
        return metrics

    def run_health_sweep(self) -> List[HealthReport]:
        return self.health_monitor.run_sweep()

    def get_model_status(self) -> Dict[str, Any]:
        """Summarize registered models with their health for debugging."""
        targets = self.registry.list()
        snapshot = self.metrics.snapshot()

        details = []
        for target in targets:
            metrics = snapshot.get(target.id)
            health = (1 - metrics.error_rate) * 100 if metrics else 100.0
            detail = {
                'id': target.id,
                'name': target.name,
                'enabled': target.enabled,
                'capabilities': list(target.capabilities),
                'health': round(health, 2),
            }
            if metrics and metrics.last_used:
                detail['last_used'] = metrics.last_used.isoformat()
            details.append(detail)

        enabled_count = sum(1 for target in targets if target.enabled)
        return {
            'total_models': len(targets),
            'enabled_models': enabled_count,
            'disabled_models': len(targets) - enabled_count,
            'model_details': details,
        }

    # Audit trail

    def log_routing_decision(self, decision: RoutingDecision) -> None:
        """Record a decision in the audit log and usage statistics."""
        with self._stats_lock:
            self.routing_log.append(decision)
            if len(self.routing_log) > self._max_log_entries:
                self.routing_log = self.routing_log[-(self._max_log_entries // 2):]  # Keep last half

            self._routing_stats['successful_routes'] += 1
            usage = self._routing_stats['target_usage']
            usage[decision.target.id] = usage.get(decision.target.id, 0) + 1

        self.routing_logger.log_routing_decision(decision)

    def get_routing_statistics(self) -> Dict[str, Any]:
        """Get routing statistics and usage percentages."""
        with self._stats_lock:
            stats = dict(self._routing_stats)
            stats['target_usage'] = dict(self._routing_stats['target_usage'])
            recent = len(self.routing_log)

        total_requests = stats['total_requests']
        stats['success_rate'] = (stats['successful_routes'] / total_requests * 100) if total_requests > 0 else 0
        stats['fallback_rate'] = (stats['fallback_routes'] / total_requests * 100) if total_requests > 0 else 0
        stats['recent_decisions'] = recent
        stats['log_capacity'] = self._max_log_entries

        if total_requests > 0:
            stats['target_usage_percentages'] = {
                target_id: (count / total_requests * 100)
                for target_id, count in stats['target_usage'].items()
            }

        return stats

    def get_recent_routing_decisions(self, limit: int = 10) -> List[Dict[str, Any]]:
        """Get recent routing decisions for debugging and analysis."""
        with self._stats_lock:
            recent_decisions = self.routing_log[-limit:] if self.routing_log and limit > 0 else []

        return [
            {
                'timestamp': decision.timestamp.isoformat(),
                'request_id': decision.request_id,
                'target': decision.target.id,
                'path': decision.path.value,
                'confidence': decision.confidence,
                'score': decision.score,
                'reason': decision.reason,
                'alternatives': [target.id for target in decision.alternatives],
            }
            for decision in recent_decisions
        ]

    def clear_routing_log(self) -> None:
        with self._stats_lock:
            self.routing_log.clear()
        self.logger.info("Routing decision log cleared")

    def is_healthy(self) -> bool:
        """True when at least one enabled target can receive traffic."""
        return bool(self.registry.list_enabled())

    def _bump(self, counter: str) -> None:
        with self._stats_lock:
            self._routing_stats[counter] += 1
