"""
Selection of a single target from ranked candidates.
"""

from typing import List

from ..models import ScoredCandidate, RoutingDecision, RoutingPath
from ..utils import get_logger
from ..utils.error_handling import NoSuitableTargetError


class Selector:
    """Picks the best-ranked candidate and explains the choice."""

    def __init__(self):
        self.logger = get_logger(__name__)

    def select(self, candidates: List[ScoredCandidate]) -> RoutingDecision:
        """
        Select a target from candidates ranked by the scorer.

        Args:
            candidates: Candidates sorted by descending score

        Returns:
            RoutingDecision for the top candidate, with the remaining
            candidates as alternatives

        Raises:
            NoSuitableTargetError: If there are no candidates
        """
        if not candidates:
            raise NoSuitableTargetError("No candidates available for selection")

        selected = candidates[0]
        path = RoutingPath.DEGRADED if selected.degraded else RoutingPath.SCORED

        return RoutingDecision(
            target=selected.target,
            confidence=self.calculate_confidence(selected),
            reason=self.generate_reason(selected),
            path=path,
            alternatives=[candidate.target for candidate in candidates[1:]],
            score=selected.score,
            metadata={'reasons': list(selected.reasons), 'breakdown': dict(selected.breakdown)},
        )

    def calculate_confidence(self, candidate: ScoredCandidate) -> float:
        """
        Observability-only confidence in [0, 1].

        Weighs capability coverage at 0.6, health at 0.25 and the historical
        success ratio at 0.15. It never influences ranking.
        """
        required = candidate.required_capabilities
        capability_score = len(candidate.matched_capabilities) / len(required) if required else 1.0

        metrics = candidate.metrics
        if metrics is not None and metrics.total_requests:
            health_score = 1 - metrics.error_rate
            success_ratio = metrics.successful_requests / max(metrics.total_requests, 1)
        else:
            health_score = 1.0
            success_ratio = 1.0

        return capability_score * 0.6 + health_score * 0.25 + success_ratio * 0.15

    def generate_reason(self, candidate: ScoredCandidate) -> str:
        """Human-readable summary of the factors behind a selection."""
        reasons = []

        if candidate.matched_capabilities:
            reasons.append(f"matched capabilities: {', '.join(candidate.matched_capabilities)}")
        if 'long_context' in candidate.breakdown:
            reasons.append('long context support')
        if 'complexity' in candidate.breakdown:
            reasons.append('thinking mode support')
        if 'priority' in candidate.breakdown:
            reasons.append('high performance support')
        if 'preferred_model' in candidate.breakdown and 'excluded_model' not in candidate.breakdown:
            reasons.append('preferred by client')

        return ', '.join(reasons) if reasons else 'default selection'
