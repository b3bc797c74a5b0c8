"""
Virtual Model Routing Engine

Routing core of a request gateway: registers virtual models, derives features
from each client request, scores the registered models against them and
selects one, with fallback and per-model usage metrics.
"""

__version__ = "0.1.0"
__author__ = "Virtual Model Routing Engine"

from .models import (
    Target,
    RoutingRule,
    BackendTarget,
    ClientRequest,
    RoutingDecision,
    ModelMetrics,
    HealthReport,
    SystemConfig,
)
from .core import RoutingEngine

__all__ = [
    "Target",
    "RoutingRule",
    "BackendTarget",
    "ClientRequest",
    "RoutingDecision",
    "ModelMetrics",
    "HealthReport",
    "SystemConfig",
    "RoutingEngine",
]
