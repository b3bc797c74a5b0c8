"""
Registry of routable virtual models.
"""

import copy
import itertools
import threading
from dataclasses import replace
from numbers import Real
from typing import Dict, List, Optional, Tuple

from ..models import Target, RoutingRule, BackendTarget
from ..utils import get_logger
from ..utils.error_handling import DuplicateTargetError, InvalidTargetError, TargetNotFoundError
from .metrics import MetricsTracker
from .rules import validate_rule


DEFAULT_CAPABILITIES = ["chat"]
BASE_BACKEND_CAPABILITIES = ["chat", "streaming"]
TOOL_CAPABLE_PROVIDERS = ("qwen", "iflow", "openai", "anthropic")

# Substrings of a backend model id and the capability they imply
MODEL_ID_CAPABILITY_HINTS: List[Tuple[Tuple[str, ...], str]] = [
    (("long", "context"), "long-context"),
    (("think", "reason", "r1"), "thinking"),
    (("code", "coder"), "coding"),
    (("vision", "image"), "vision"),
]

PROVIDER_ENDPOINTS = {
    "qwen": "https://dashscope.aliyuncs.com/api/v1",
    "iflow": "https://apis.iflow.cn/v1",
    "openai": "https://api.openai.com/v1",
    "anthropic": "https://api.anthropic.com/v1",
    "lmstudio": "http://localhost:1234/v1",
}
DEFAULT_PROVIDER_ENDPOINT = "http://localhost:8000/v1"

DEFAULT_MAX_TOKENS = 4000
DEFAULT_TEMPERATURE = 0.7
TEMPERATURE_RANGE = (0.0, 2.0)
DEFAULT_TOP_P = 0.9
TOP_P_RANGE = (0.0, 1.0)


def infer_capabilities(backends: List[BackendTarget]) -> List[str]:
    """Infer capabilities from the backend models listed under a virtual model."""
    capabilities = list(BASE_BACKEND_CAPABILITIES)

    for backend in backends:
        model_id = backend.model_id.lower()
        for hints, capability in MODEL_ID_CAPABILITY_HINTS:
            if any(hint in model_id for hint in hints):
                capabilities.append(capability)

        provider_id = backend.provider_id.lower()
        if any(provider in provider_id for provider in TOOL_CAPABLE_PROVIDERS):
            capabilities.extend(["chat", "streaming", "tools"])

    return _unique(capabilities)


def endpoint_for_provider(provider_id: str) -> str:
    return PROVIDER_ENDPOINTS.get(provider_id.lower(), DEFAULT_PROVIDER_ENDPOINT)


def _unique(values: List[str]) -> List[str]:
    return list(dict.fromkeys(values))


class TargetRegistry:
    """
    Owns the set of registered targets and their enablement state.

    Targets are stored in insertion order, which is also the tie-break order
    used when candidates score equally. Stored targets are never mutated in
    place; updates swap in a new Target so readers can hold on to snapshots.
    """

    def __init__(self, metrics: Optional[MetricsTracker] = None):
        self.logger = get_logger(__name__)
        self.metrics = metrics or MetricsTracker()
        self._lock = threading.Lock()
        self._targets: Dict[str, Target] = {}
        self._generations = itertools.count(1)

    def register(self, target: Target) -> Target:
        """
        Register a new target.

        Args:
            target: Target to register; the registry keeps its own copy

        Returns:
            The stored, normalized target

        Raises:
            InvalidTargetError: If id, name or provider is missing
            DuplicateTargetError: If the id is already registered
            InvalidRuleError: If any attached routing rule is malformed
        """
        self._validate_required_fields(target)
        for rule in target.routing_rules:
            validate_rule(rule)

        processed = self._normalize(copy.deepcopy(target))

        with self._lock:
            if processed.id in self._targets:
                raise DuplicateTargetError(processed.id)

            processed = replace(processed, generation=next(self._generations))
            self._targets[processed.id] = processed
            self.metrics.initialize(processed.id, processed.generation)

        self.logger.info(
            f"Registered virtual model {processed.id} "
            f"(provider={processed.provider}, capabilities={processed.capabilities}, "
            f"backends={len(processed.targets)})"
        )
        return processed

    def unregister(self, target_id: str) -> None:
        """
        Remove a target together with its rules and metrics.

        Raises:
            TargetNotFoundError: If the id is not registered
        """
        with self._lock:
            if target_id not in self._targets:
                raise TargetNotFoundError(target_id)
            del self._targets[target_id]
            self.metrics.remove(target_id)

        self.logger.info(f"Unregistered virtual model {target_id}")

    def update_rules(self, target_id: str, rules: List[RoutingRule]) -> None:
        """
        Replace the routing rules of a target.

        Every rule is validated first; an invalid rule rejects the whole update.

        Raises:
            TargetNotFoundError: If the id is not registered
            InvalidRuleError: If any rule is malformed
        """
        new_rules = list(rules)
        for rule in new_rules:
            validate_rule(rule)

        with self._lock:
            current = self._targets.get(target_id)
            if current is None:
                raise TargetNotFoundError(target_id)
            self._targets[target_id] = replace(current, routing_rules=copy.deepcopy(new_rules))

        self.logger.info(f"Updated {len(new_rules)} routing rules for {target_id}")

    def set_enabled(self, target_id: str, enabled: bool) -> Target:
        """Flip the enablement flag of a target."""
        with self._lock:
            current = self._targets.get(target_id)
            if current is None:
                raise TargetNotFoundError(target_id)
            updated = replace(current, enabled=enabled)
            self._targets[target_id] = updated

        self.logger.info(f"Virtual model {target_id} {'enabled' if enabled else 'disabled'}")
        return updated

    def get(self, target_id: str) -> Optional[Target]:
        with self._lock:
            return self._targets.get(target_id)

    def list(self) -> List[Target]:
        with self._lock:
            return list(self._targets.values())

    def list_enabled(self) -> List[Target]:
        with self._lock:
            return [target for target in self._targets.values() if target.enabled]

    def __len__(self) -> int:
        with self._lock:
            return len(self._targets)

    def __contains__(self, target_id: str) -> bool:
        with self._lock:
            return target_id in self._targets

    def _validate_required_fields(self, target: Target) -> None:
        missing = [name for name in ("id", "name", "provider") if not getattr(target, name, None)]
        if missing:
            raise InvalidTargetError(
                f"Model configuration missing required fields: {', '.join(missing)}",
                target_id=getattr(target, "id", None) or None,
            )

    def _normalize(self, target: Target) -> Target:
        """Fill defaults, clamp tuning fields and derive values from backends."""
        target.endpoint = target.endpoint or ""
        target.capabilities = _unique(list(target.capabilities or []))
        target.enabled = target.enabled if isinstance(target.enabled, bool) else True

        target.max_tokens = self._correct_max_tokens(target)
        target.temperature = self._clamp(target, "temperature", DEFAULT_TEMPERATURE, TEMPERATURE_RANGE)
        target.top_p = self._clamp(target, "top_p", DEFAULT_TOP_P, TOP_P_RANGE)

        if target.targets:
            inferred = infer_capabilities(target.targets)
            target.capabilities = _unique(target.capabilities + inferred)

            first_backend = target.targets[0]
            if not target.model:
                target.model = first_backend.model_id
            if not target.endpoint:
                target.endpoint = endpoint_for_provider(first_backend.provider_id)

        if not target.capabilities:
            target.capabilities = list(DEFAULT_CAPABILITIES)

        return target

    def _correct_max_tokens(self, target: Target) -> int:
        value = target.max_tokens
        if value is None:
            return DEFAULT_MAX_TOKENS
        if isinstance(value, bool) or not isinstance(value, Real) or value < 1:
            self.logger.warning(f"Model {target.id} invalid max_tokens {value!r}, using default {DEFAULT_MAX_TOKENS}")
            return DEFAULT_MAX_TOKENS
        return int(value)

    def _clamp(self, target: Target, field_name: str, default: float, bounds: Tuple[float, float]) -> float:
        value = getattr(target, field_name)
        if value is None:
            return default
        if isinstance(value, bool) or not isinstance(value, Real):
            self.logger.warning(f"Model {target.id} invalid {field_name} {value!r}, using default {default}")
            return default

        low, high = bounds
        clamped = min(max(float(value), low), high)
        if clamped != value:
            self.logger.warning(f"Model {target.id} {field_name} {value} out of range, clamped to {clamped}")
        return clamped
