"""
Core components of the Virtual Model Routing Engine.
"""

from .metrics import MetricsTracker
from .registry import TargetRegistry
from .analyzer import FeatureAnalyzer
from .scorer import CandidateScorer
from .selector import Selector
from .health import HealthMonitor
from .router import RoutingEngine
from .interfaces import Dispatcher, DispatchResponse, HTTPDispatcher, OpenAIDispatcher

__all__ = [
    "MetricsTracker",
    "TargetRegistry",
    "FeatureAnalyzer",
    "CandidateScorer",
    "Selector",
    "HealthMonitor",
    "RoutingEngine",
    "Dispatcher",
    "DispatchResponse",
    "HTTPDispatcher",
    "OpenAIDispatcher",
]
