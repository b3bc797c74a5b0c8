"""
Enumerations for the Virtual Model Routing Engine.
"""

from enum import Enum


class Complexity(Enum):
    """Complexity tier derived from the serialized request size."""
    SIMPLE = "simple"
    MEDIUM = "medium"
    COMPLEX = "complex"


class Priority(Enum):
    """Priority tier requested by the client."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class HealthStatus(Enum):
    """Advisory health classification of a registered target."""
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class RoutingPath(Enum):
    """How a routing decision was reached."""
    EXPLICIT = "explicit"
    SCORED = "scored"
    DEGRADED = "degraded"
    FALLBACK = "fallback"
