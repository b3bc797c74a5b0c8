"""
Routing rule validation and evaluation.

A rule condition is one of:

    path:<exact path>
    method:<HTTP method>
    header:<name>=<value>

Rules are evaluated in descending priority order and the first match makes the
target eligible. A target with no enabled rules is eligible for every request.
"""

from numbers import Real
from typing import List

from ..models import ClientRequest, RoutingRule
from ..utils import get_logger
from ..utils.error_handling import InvalidRuleError

CONDITION_PREFIXES = ("path:", "method:", "header:")

logger = get_logger(__name__)


def validate_rule(rule: RoutingRule) -> None:
    """
    Check a routing rule for required fields and value ranges.

    Raises:
        InvalidRuleError: If the rule is malformed
    """
    if not isinstance(rule, RoutingRule):
        raise InvalidRuleError(f"Expected RoutingRule, got {type(rule).__name__}")

    if not rule.id or not rule.name or not rule.condition:
        raise InvalidRuleError("Routing rule missing required fields: id, name, condition", rule_id=rule.id or None)

    if isinstance(rule.weight, bool) or not isinstance(rule.weight, Real) or not 0 <= rule.weight <= 1:
        raise InvalidRuleError("Routing rule weight must be between 0 and 1", rule_id=rule.id)

    if isinstance(rule.priority, bool) or not isinstance(rule.priority, int) or not 1 <= rule.priority <= 10:
        raise InvalidRuleError("Routing rule priority must be between 1 and 10", rule_id=rule.id)

    if not rule.condition.startswith(CONDITION_PREFIXES):
        raise InvalidRuleError(f"Unsupported routing rule condition: {rule.condition}", rule_id=rule.id)

    if rule.condition.startswith("header:") and "=" not in rule.condition:
        raise InvalidRuleError("Header conditions must have the form header:name=value", rule_id=rule.id)


def evaluate_condition(condition: str, request: ClientRequest) -> bool:
    """Evaluate a single rule condition against a request."""
    if condition.startswith("path:"):
        return request.path == condition[len("path:"):]

    if condition.startswith("method:"):
        return (request.method or "").upper() == condition[len("method:"):].upper()

    if condition.startswith("header:"):
        header_name, _, expected_value = condition[len("header:"):].partition("=")
        return request.header(header_name.strip()) == expected_value

    return False


def evaluate_rules(request: ClientRequest, rules: List[RoutingRule]) -> bool:
    """Return True if the request is eligible under the given rules."""
    active_rules = sorted((rule for rule in rules if rule.enabled), key=lambda rule: rule.priority, reverse=True)
    if not active_rules:
        return True

    for rule in active_rules:
        if evaluate_condition(rule.condition, request):
            logger.debug(f"Routing rule {rule.id} matched request {request.id}")
            return True

    return False
