"""
Data models for the Virtual Model Routing Engine.
"""

from .core import (
    BackendTarget,
    RoutingRule,
    Target,
    ClientRequest,
    RequestFeatures,
    ModelMetrics,
    ScoredCandidate,
    RoutingDecision,
    HealthReport,
)

from .config import (
    SystemConfig,
    AnalyzerConfig,
    ScoringWeights,
    RoutingConfig,
    HealthMonitorConfig,
    DispatcherConfig,
    LoggingConfig,
)

from .enums import (
    Complexity,
    Priority,
    HealthStatus,
    RoutingPath,
)

__all__ = [
    # Core models
    "BackendTarget",
    "RoutingRule",
    "Target",
    "ClientRequest",
    "RequestFeatures",
    "ModelMetrics",
    "ScoredCandidate",
    "RoutingDecision",
    "HealthReport",
    # Configuration models
    "SystemConfig",
    "AnalyzerConfig",
    "ScoringWeights",
    "RoutingConfig",
    "HealthMonitorConfig",
    "DispatcherConfig",
    "LoggingConfig",
    # Enums
    "Complexity",
    "Priority",
    "HealthStatus",
    "RoutingPath",
]
