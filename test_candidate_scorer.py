"""
Tests for candidate scoring and ranking.
"""

from datetime import datetime

import pytest

from conftest import make_target
from virtual_model_routing.core import CandidateScorer
from virtual_model_routing.models import Complexity, ModelMetrics, Priority, RequestFeatures


def features(capabilities=("chat",), content_length=100, complexity=Complexity.SIMPLE,
             priority=Priority.MEDIUM, directives=()):
    return RequestFeatures(
        capabilities=list(capabilities),
        content_length=content_length,
        complexity=complexity,
        priority=priority,
        special_directives=list(directives),
    )


def metrics_for(target_id, total, failed):
    return ModelMetrics(
        target_id=target_id,
        registered_at=datetime(2026, 1, 1),
        total_requests=total,
        successful_requests=total - failed,
        failed_requests=failed,
        error_rate=failed / total if total else 0.0,
    )


@pytest.fixture
def scorer():
    return CandidateScorer()


def test_capability_match_and_health_for_unused_target(scorer):
    candidate = scorer.score_target(features(["chat", "thinking"]), make_target("gpt", ["chat"]))

    assert candidate.breakdown["capability_match"] == 20
    assert candidate.breakdown["health"] == 10
    assert candidate.score == 30
    assert candidate.matched_capabilities == ["chat"]


def test_bonuses_apply_only_with_matching_capability(scorer):
    request = features(["chat"], content_length=9000, complexity=Complexity.COMPLEX, priority=Priority.HIGH)

    full = scorer.score_target(request, make_target("full", ["chat", "long-context", "thinking", "high-performance"]))
    bare = scorer.score_target(request, make_target("bare", ["chat"]))

    assert full.score == 40 + 30 + 20 + 10 + 10
    assert bare.score == 40 + 10
    assert "long-context-support" in full.reasons
    assert "thinking-mode-support" in full.reasons
    assert "high-performance-support" in full.reasons


def test_long_context_bonus_requires_length_over_threshold(scorer):
    target = make_target("long", ["chat", "long-context"])

    assert "long_context" not in scorer.score_target(features(content_length=4000), target).breakdown
    assert scorer.score_target(features(content_length=4001), target).breakdown["long_context"] == 30


def test_health_contribution_uses_error_rate(scorer):
    candidate = scorer.score_target(features(), make_target("gpt"), metrics_for("gpt", total=10, failed=5))

    assert candidate.breakdown["health"] == pytest.approx(5.0)


def test_capability_monotonicity(scorer):
    request = features(["chat", "streaming", "tools"])
    superset = scorer.score_target(request, make_target("all", ["chat", "streaming", "tools"]))
    subset = scorer.score_target(request, make_target("some", ["chat", "streaming"]))

    assert superset.breakdown["capability_match"] > subset.breakdown["capability_match"]


def test_reasoning_scenario_ranks_thinking_target_first(scorer):
    request = features(["chat", "long-context", "thinking"], content_length=9000, complexity=Complexity.COMPLEX)
    targets = [make_target("gpt", ["chat", "streaming"]), make_target("reasoner", ["chat", "thinking"])]

    ranked = scorer.score(request, targets)

    assert [candidate.target.id for candidate in ranked] == ["reasoner", "gpt"]
    assert ranked[0].score - ranked[1].score == pytest.approx(40 / 3 + 20)


def test_preferred_model_bonus(scorer):
    request = features(directives=["preferred-model:slow"])
    ranked = scorer.score(request, [make_target("fast"), make_target("slow")])

    assert ranked[0].target.id == "slow"
    assert ranked[0].score == 40 + 10 + 25


def test_excluded_model_is_dropped_when_others_score(scorer):
    request = features(directives=["exclude-models:gpt"])
    ranked = scorer.score(request, [make_target("gpt"), make_target("other")])

    assert [candidate.target.id for candidate in ranked] == ["other"]


def test_exclusion_overrides_preference(scorer):
    request = features(directives=["preferred-model:gpt", "exclude-models:gpt"])
    candidate = scorer.score_target(request, make_target("gpt"))

    assert candidate.score == 0
    assert "excluded-model" in candidate.reasons


def test_exclusion_matches_exact_ids_only(scorer):
    request = features(directives=["exclude-models:gpt"])
    candidate = scorer.score_target(request, make_target("gpt-4"))

    assert candidate.score > 0


def test_all_zero_scores_return_every_target_as_degraded(scorer):
    request = features(directives=["exclude-models:a", "exclude-models:b"])
    ranked = scorer.score(request, [make_target("a"), make_target("b")])

    assert [candidate.target.id for candidate in ranked] == ["a", "b"]
    assert all(candidate.degraded for candidate in ranked)
    assert all(candidate.score == 0 for candidate in ranked)


def test_ties_keep_registry_order(scorer):
    targets = [make_target(target_id) for target_id in ("c", "a", "b")]

    ranked = scorer.score(features(), targets)

    assert [candidate.target.id for candidate in ranked] == ["c", "a", "b"]


def test_no_targets_means_no_candidates(scorer):
    assert scorer.score(features(), []) == []


def test_rule_verdicts_are_recorded_in_reasons(scorer):
    ranked = scorer.score(features(), [make_target("a"), make_target("b")], {}, {"a": True, "b": False})

    assert "rules-matched" in ranked[0].reasons
    assert "rules-not-matched" in ranked[1].reasons
