"""
Core data models for target registration, request analysis and routing.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Any, Optional, List, Set
from .enums import Complexity, Priority, HealthStatus, RoutingPath


def _pick(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present key, accepting both snake_case and camelCase spellings."""
    for key in keys:
        if key in data:
            return data[key]
    return default


def _capability_list(value: Any) -> List[str]:
    """Accept a list of capabilities or a single comma-separated string."""
    if not value:
        return []
    if isinstance(value, str):
        return [capability.strip() for capability in value.split(',') if capability.strip()]
    return list(value)


@dataclass
class BackendTarget:
    """A provider/model backend listed under a virtual model."""
    provider_id: str
    model_id: str
    key_index: int = 0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BackendTarget":
        return cls(
            provider_id=str(_pick(data, "provider_id", "providerId", default="")),
            model_id=str(_pick(data, "model_id", "modelId", default="")),
            key_index=int(_pick(data, "key_index", "keyIndex", default=0) or 0),
        )


@dataclass
class RoutingRule:
    """Eligibility predicate attached to a target."""
    id: str
    name: str
    condition: str
    weight: float = 1.0
    priority: int = 5
    enabled: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RoutingRule":
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            condition=data.get("condition", ""),
            weight=data.get("weight", 1.0),
            priority=data.get("priority", 5),
            enabled=data.get("enabled", True),
        )


@dataclass
class Target:
    """A registrable virtual model."""
    id: str
    name: str
    provider: str
    model: str = ""
    endpoint: str = ""
    capabilities: List[str] = field(default_factory=list)
    enabled: bool = True
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    routing_rules: List[RoutingRule] = field(default_factory=list)
    targets: List[BackendTarget] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
    generation: int = 0

    def has_capability(self, capability: str) -> bool:
        return capability in self.capabilities

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Target":
        """Build a target from a configuration entry."""
        rules = [
            rule if isinstance(rule, RoutingRule) else RoutingRule.from_dict(rule)
            for rule in _pick(data, "routing_rules", "routingRules", default=[]) or []
        ]
        backends = [
            backend if isinstance(backend, BackendTarget) else BackendTarget.from_dict(backend)
            for backend in data.get("targets") or []
        ]
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            provider=data.get("provider", ""),
            model=data.get("model", "") or "",
            endpoint=data.get("endpoint", "") or "",
            capabilities=_capability_list(data.get("capabilities")),
            enabled=data.get("enabled", True),
            max_tokens=_pick(data, "max_tokens", "maxTokens"),
            temperature=data.get("temperature"),
            top_p=_pick(data, "top_p", "topP"),
            routing_rules=rules,
            targets=backends,
            metadata=dict(data.get("metadata") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "provider": self.provider,
            "model": self.model,
            "endpoint": self.endpoint,
            "capabilities": list(self.capabilities),
            "enabled": self.enabled,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "top_p": self.top_p,
            "routing_rules": [rule.__dict__.copy() for rule in self.routing_rules],
            "targets": [backend.__dict__.copy() for backend in self.targets],
        }


@dataclass
class ClientRequest:
    """A client API call handed over by the HTTP layer."""
    method: str = "POST"
    path: str = "/"
    headers: Dict[str, str] = field(default_factory=dict)
    body: Any = None
    query: Dict[str, str] = field(default_factory=dict)
    explicit_target_id: Optional[str] = None
    client_id: Optional[str] = None
    id: str = field(default_factory=lambda: f"req_{uuid.uuid4().hex[:12]}")
    timestamp: datetime = field(default_factory=datetime.now)

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Case-insensitive header lookup."""
        wanted = name.lower()
        for key, value in (self.headers or {}).items():
            if key.lower() == wanted:
                return value
        return default


@dataclass
class RequestFeatures:
    """Routing-relevant features derived from a single request."""
    capabilities: List[str]
    content_length: int
    complexity: Complexity
    priority: Priority
    special_directives: List[str] = field(default_factory=list)

    def _directive_values(self, prefix: str) -> Set[str]:
        return {
            directive[len(prefix):]
            for directive in self.special_directives
            if directive.startswith(prefix)
        }

    @property
    def preferred_models(self) -> Set[str]:
        return self._directive_values("preferred-model:")

    @property
    def excluded_models(self) -> Set[str]:
        return self._directive_values("exclude-models:")


@dataclass
class ModelMetrics:
    """Point-in-time usage and health counters for one target."""
    target_id: str
    registered_at: datetime
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    average_response_time: float = 0.0
    response_time_samples: int = 0
    last_used: Optional[datetime] = None
    uptime_seconds: float = 0.0
    error_rate: float = 0.0
    throughput: float = 0.0

    @property
    def success_ratio(self) -> float:
        # Unused targets count as fully successful
        if self.total_requests == 0:
            return 1.0
        return self.successful_requests / self.total_requests


@dataclass
class ScoredCandidate:
    """A target paired with its routing score."""
    target: Target
    score: float
    reasons: List[str] = field(default_factory=list)
    breakdown: Dict[str, float] = field(default_factory=dict)
    required_capabilities: List[str] = field(default_factory=list)
    matched_capabilities: List[str] = field(default_factory=list)
    metrics: Optional[ModelMetrics] = None
    degraded: bool = False


@dataclass
class RoutingDecision:
    """Outcome of routing one request."""
    target: Target
    confidence: float
    reason: str
    path: RoutingPath
    alternatives: List[Target] = field(default_factory=list)
    features: Optional[RequestFeatures] = None
    score: Optional[float] = None
    request_id: str = ""
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class HealthReport:
    """Result of one health sweep for a single target."""
    target_id: str
    status: HealthStatus
    error_rate: float
    total_requests: int
    enabled: bool
    disabled_by_sweep: bool = False
    checked_at: datetime = field(default_factory=datetime.now)
