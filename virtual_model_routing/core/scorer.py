"""
Candidate scoring for implicit routing.
"""

from typing import Dict, List, Optional

from ..models import (
    Target, RequestFeatures, ModelMetrics, ScoredCandidate, Complexity, Priority,
)
from ..models.config import AnalyzerConfig, ScoringWeights
from ..utils import get_logger


class CandidateScorer:
    """
    Scores targets against request features.

    Each component is computed independently and summed; there is no
    normalization across targets. Scoring is a pure function of its inputs:
    the scorer reads a metrics snapshot and never updates it.

    ========================  ==========================================  ===
    Component                 Awarded when                                Max
    ========================  ==========================================  ===
    capability match          share of required capabilities supported    40
    long context              content longer than threshold, long-context 30
    complexity                complex request, target has thinking        20
    priority                  high priority, target has high-performance  10
    health                    ``(1 - error_rate) * 100 * 0.1``            10
    preferred model           named by a preferred-model directive        25
    excluded model            named by an exclude-models directive        → 0
    ========================  ==========================================  ===
    """

    def __init__(self, weights: Optional[ScoringWeights] = None,
                 analyzer_config: Optional[AnalyzerConfig] = None):
        self.weights = weights or ScoringWeights()
        self.long_context_threshold = (analyzer_config or AnalyzerConfig()).long_context_threshold
        self.logger = get_logger(__name__)

    def score(self, features: RequestFeatures, targets: List[Target],
              metrics: Optional[Dict[str, ModelMetrics]] = None,
              rule_verdicts: Optional[Dict[str, bool]] = None) -> List[ScoredCandidate]:
        """
        Score and rank targets for a request.

        Args:
            features: Features of the request being routed
            targets: Enabled targets in registry order
            metrics: Metrics snapshot keyed by target id
            rule_verdicts: Optional routing rule verdicts keyed by target id,
                recorded in the candidate reasons

        Returns:
            Candidates sorted by descending score. Only targets scoring above
            zero are returned, unless none does, in which case every target is
            returned as a degraded candidate. Equal scores keep registry order.
        """
        metrics = metrics or {}
        rule_verdicts = rule_verdicts or {}

        scored = [
            self.score_target(features, target, metrics.get(target.id), rule_verdicts.get(target.id))
            for target in targets
        ]

        candidates = [candidate for candidate in scored if candidate.score > 0]
        if not candidates and scored:
            self.logger.info("No target scored above zero, using all enabled targets as degraded candidates")
            for candidate in scored:
                candidate.degraded = True
            candidates = scored

        # sorted() is stable, so ties keep registry insertion order
        ranked = sorted(candidates, key=lambda candidate: candidate.score, reverse=True)

        for candidate in ranked:
            self.logger.debug(
                f"Model {candidate.target.id} scored {candidate.score:.1f}: {', '.join(candidate.reasons)}"
            )
        return ranked

    def score_target(self, features: RequestFeatures, target: Target,
                     metrics: Optional[ModelMetrics] = None,
                     rules_matched: Optional[bool] = None) -> ScoredCandidate:
        """Compute the score of a single target."""
        weights = self.weights
        capabilities = set(target.capabilities)
        required = list(features.capabilities)
        matched = [capability for capability in required if capability in capabilities]

        breakdown: Dict[str, float] = {}
        reasons: List[str] = []

        match_ratio = len(matched) / len(required) if required else 1.0
        breakdown['capability_match'] = match_ratio * weights.capability_match
        reasons.append(f"capability-match: {len(matched)}/{len(required)}")

        if features.content_length > self.long_context_threshold and 'long-context' in capabilities:
            breakdown['long_context'] = weights.long_context
            reasons.append('long-context-support')

        if features.complexity == Complexity.COMPLEX and 'thinking' in capabilities:
            breakdown['complexity'] = weights.complexity
            reasons.append('thinking-mode-support')

        if features.priority == Priority.HIGH and 'high-performance' in capabilities:
            breakdown['priority'] = weights.priority
            reasons.append('high-performance-support')

        # Unused targets count as fully healthy
        error_rate = metrics.error_rate if metrics is not None and metrics.total_requests else 0.0
        health_score = (1 - error_rate) * 100
        breakdown['health'] = health_score * weights.health_factor
        reasons.append(f"health-score: {health_score:.1f}")

        if target.id in features.preferred_models:
            breakdown['preferred_model'] = weights.preferred_model
            reasons.append('preferred-model')

        if rules_matched is not None:
            reasons.append('rules-matched' if rules_matched else 'rules-not-matched')

        score = sum(breakdown.values())

        if target.id in features.excluded_models:
            breakdown['excluded_model'] = -score
            score = 0.0
            reasons.append('excluded-model')

        return ScoredCandidate(
            target=target,
            score=score,
            reasons=reasons,
            breakdown=breakdown,
            required_capabilities=required,
            matched_capabilities=matched,
            metrics=metrics,
        )
