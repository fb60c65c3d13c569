"""Tests for the MatchOrchestrator."""

from unittest.mock import patch

import pytest
from conftest import BlockingProvider, UnavailableProvider, make_service

from gig_match.errors import DeadlineExceeded, InvalidSpecification
from gig_match.matching.orchestrator import MatchOrchestrator
from gig_match.models.entities import BudgetRange, MatchPreferences, Proposer, Reviewer
from gig_match.models.matching import (
    AlgorithmConfig,
    AlgorithmKind,
    CandidateFilters,
    MatchRequest,
    MatchType,
    Stability,
    StrategyName,
)
from gig_match.scoring.hybrid import HybridScoringEngine


@pytest.fixture
def orchestrator(lexical_engine: HybridScoringEngine) -> MatchOrchestrator:
    """Orchestrator with default configuration and lexical similarity."""
    return MatchOrchestrator(lexical_engine)


@pytest.fixture
def fashion_gig(make_proposer) -> Proposer:
    return make_proposer("g-fashion")


class TestSelection:
    """Tests for algorithm selection."""

    def test_empty_pool(self, orchestrator: MatchOrchestrator, fashion_gig: Proposer) -> None:
        """Test the well-formed empty response."""
        response = orchestrator.find_matches([fashion_gig], [])

        assert response.ok
        assert response.matches == []
        assert response.metadata.total_candidates == 0
        assert response.metadata.stability == Stability.NOT_GUARANTEED
        assert response.metadata.algorithm is None

    def test_auto_selects_stable_for_small_pool(
        self,
        orchestrator: MatchOrchestrator,
        fashion_gig: Proposer,
        talent_pool: list[Reviewer],
    ) -> None:
        """Test that auto runs deferred acceptance when the pool fits."""
        response = orchestrator.find_matches([fashion_gig], talent_pool)
        meta = response.metadata

        assert meta.algorithm == StrategyName.GALE_SHAPLEY
        assert meta.requested_algorithm == AlgorithmKind.AUTO
        assert meta.stability == Stability.GUARANTEED
        assert meta.blocking_pairs == 0
        assert meta.iterations == 1
        assert meta.total_candidates == 3
        assert meta.matched_proposers == 1
        assert meta.matched_reviewers == 1
        assert meta.fallbacks == []

        [match] = response.matches
        assert match.reviewer_id == "r-strong"
        assert match.match_type == MatchType.STABLE
        assert match.stability_verified
        assert match.rank == 1
        assert match.reasons

    def test_auto_selects_ranked_when_stable_disabled(
        self,
        lexical_engine: HybridScoringEngine,
        fashion_gig: Proposer,
        talent_pool: list[Reviewer],
    ) -> None:
        """Test that disabling stable matching routes auto to ranked."""
        orchestrator = MatchOrchestrator(lexical_engine, AlgorithmConfig(stable_enabled=False))
        response = orchestrator.find_matches([fashion_gig], talent_pool)
        assert response.metadata.algorithm == StrategyName.RANKED

    def test_auto_selects_ranked_for_large_pool(
        self,
        lexical_engine: HybridScoringEngine,
        fashion_gig: Proposer,
        talent_pool: list[Reviewer],
    ) -> None:
        """Test that an oversized pool is truncated and ranked."""
        orchestrator = MatchOrchestrator(lexical_engine, AlgorithmConfig(candidate_cap=2))
        response = orchestrator.find_matches([fashion_gig], talent_pool)

        assert response.metadata.algorithm == StrategyName.RANKED
        assert response.metadata.total_candidates == 2
        assert any("truncated" in w for w in response.metadata.warnings)

    def test_explicit_stable_ignores_pool_size(
        self,
        lexical_engine: HybridScoringEngine,
        fashion_gig: Proposer,
        talent_pool: list[Reviewer],
    ) -> None:
        """Test that an explicit request wins over the auto policy."""
        orchestrator = MatchOrchestrator(lexical_engine, AlgorithmConfig(candidate_cap=2))
        response = orchestrator.find_matches(
            [fashion_gig], talent_pool, algorithm=AlgorithmKind.STABLE
        )
        assert response.metadata.algorithm == StrategyName.GALE_SHAPLEY

    def test_string_algorithm_accepted(
        self,
        orchestrator: MatchOrchestrator,
        fashion_gig: Proposer,
        talent_pool: list[Reviewer],
    ) -> None:
        """Test that algorithm names are accepted as strings."""
        response = orchestrator.find_matches([fashion_gig], talent_pool, algorithm="ranked")
        assert response.metadata.algorithm == StrategyName.RANKED


class TestRanked:
    """Tests for direct ranked scoring."""

    def test_ranked_order_and_threshold(
        self,
        orchestrator: MatchOrchestrator,
        fashion_gig: Proposer,
        talent_pool: list[Reviewer],
    ) -> None:
        """Test descending order and the minimum qualifying score."""
        response = orchestrator.find_matches(
            [fashion_gig], talent_pool, algorithm=AlgorithmKind.RANKED
        )

        assert [m.reviewer_id for m in response.matches] == ["r-strong", "r-medium"]
        assert [m.rank for m in response.matches] == [1, 2]
        assert all(m.score >= 30 for m in response.matches)
        assert all(m.match_type == MatchType.RANKED for m in response.matches)
        assert response.metadata.qualified_or_matched_count == 2
        assert response.metadata.stability == Stability.NOT_GUARANTEED

    def test_limit(
        self,
        orchestrator: MatchOrchestrator,
        fashion_gig: Proposer,
        talent_pool: list[Reviewer],
    ) -> None:
        """Test truncation to the requested limit."""
        response = orchestrator.find_matches(
            [fashion_gig], talent_pool, algorithm=AlgorithmKind.RANKED, limit=1
        )
        assert [m.reviewer_id for m in response.matches] == ["r-strong"]

    def test_semantic_unavailable(
        self, fashion_gig: Proposer, talent_pool: list[Reviewer]
    ) -> None:
        """Test a full ranked result with zero semantic points when similarity is down."""
        with make_service(UnavailableProvider()) as service:
            orchestrator = MatchOrchestrator(HybridScoringEngine(service))
            response = orchestrator.find_matches(
                [fashion_gig], talent_pool, algorithm=AlgorithmKind.RANKED
            )

        assert response.ok
        assert response.metadata.algorithm == StrategyName.RANKED
        assert response.metadata.semantic_available is False
        assert response.matches
        for match in response.matches:
            assert match.breakdown.semantic_unavailable
            assert match.breakdown.semantic_total == 0
        assert response.metadata.degradations[0]["code"] == "scoring_provider_unavailable"


class TestStable:
    """Tests for the stable path with several proposers."""

    def test_many_proposers(
        self, orchestrator: MatchOrchestrator, make_proposer, talent_pool: list[Reviewer]
    ) -> None:
        """Test a one-to-one stable assignment across gigs."""
        gigs = [
            make_proposer("g1"),
            make_proposer("g2", city="Pune"),
            make_proposer("g3", category="Animation", city="Kolkata"),
        ]
        response = orchestrator.find_matches(gigs, talent_pool)

        reviewer_ids = [m.reviewer_id for m in response.matches]
        assert len(reviewer_ids) == len(set(reviewer_ids))
        assert response.metadata.stability == Stability.GUARANTEED
        assert response.metadata.blocking_pairs == 0
        assert response.metadata.matched_proposers == 3
        assert all(m.stability_verified for m in response.matches)

    def test_iteration_limit_is_reported(
        self, lexical_engine: HybridScoringEngine, make_proposer, talent_pool: list[Reviewer]
    ) -> None:
        """Test that a capped solver run is partial and not guaranteed."""
        orchestrator = MatchOrchestrator(lexical_engine, AlgorithmConfig(max_iterations=1))
        gigs = [make_proposer("g1"), make_proposer("g2")]

        response = orchestrator.find_matches(gigs, talent_pool)

        assert response.metadata.algorithm == StrategyName.GALE_SHAPLEY
        assert response.metadata.stability == Stability.NOT_GUARANTEED
        assert response.metadata.iterations == 1
        assert any("Stopped after" in w for w in response.metadata.warnings)


class TestFallbacks:
    """Tests for the fallback chain."""

    def test_solver_failure_falls_back_to_ranked(
        self,
        orchestrator: MatchOrchestrator,
        fashion_gig: Proposer,
        talent_pool: list[Reviewer],
    ) -> None:
        """Test stable -> ranked."""
        with patch.object(orchestrator.solver, "solve", side_effect=RuntimeError("boom")):
            response = orchestrator.find_matches([fashion_gig], talent_pool)

        assert response.ok
        assert response.metadata.algorithm == StrategyName.RANKED
        [fallback] = response.metadata.fallbacks
        assert fallback.failed == StrategyName.GALE_SHAPLEY
        assert fallback.next == StrategyName.RANKED
        assert "boom" in fallback.reason
        assert response.matches[0].reviewer_id == "r-strong"

    def test_scoring_failure_falls_back_to_rule_only(
        self,
        orchestrator: MatchOrchestrator,
        fashion_gig: Proposer,
        talent_pool: list[Reviewer],
    ) -> None:
        """Test stable -> ranked -> rule-only."""
        with patch.object(orchestrator.builder, "build", side_effect=RuntimeError("db gone")):
            response = orchestrator.find_matches([fashion_gig], talent_pool)

        assert response.metadata.algorithm == StrategyName.RULE_ONLY
        assert [f.failed for f in response.metadata.fallbacks] == [
            StrategyName.GALE_SHAPLEY,
            StrategyName.RANKED,
        ]
        assert response.metadata.semantic_available is False
        assert response.matches
        assert all(m.algorithm == StrategyName.RULE_ONLY for m in response.matches)
        assert all(m.breakdown.algorithm == "rule-only" for m in response.matches)

    def test_deadline_jumps_to_rule_only(
        self,
        orchestrator: MatchOrchestrator,
        fashion_gig: Proposer,
        talent_pool: list[Reviewer],
    ) -> None:
        """Test that a deadline overrun skips the ranked path."""
        with patch.object(orchestrator.builder, "build", side_effect=DeadlineExceeded("late")):
            response = orchestrator.find_matches([fashion_gig], talent_pool)

        [fallback] = response.metadata.fallbacks
        assert fallback.failed == StrategyName.GALE_SHAPLEY
        assert fallback.next == StrategyName.RULE_ONLY
        assert response.metadata.algorithm == StrategyName.RULE_ONLY

    def test_slow_similarity_hits_deadline(
        self, fashion_gig: Proposer, talent_pool: list[Reviewer]
    ) -> None:
        """Test a real deadline overrun caused by a slow provider."""
        provider = BlockingProvider()
        service = make_service(provider, timeout_seconds=5)
        try:
            orchestrator = MatchOrchestrator(HybridScoringEngine(service))
            response = orchestrator.find_matches(
                [fashion_gig], talent_pool, deadline_seconds=0.05
            )
        finally:
            provider.release.set()
            service.close()

        assert response.ok
        assert response.metadata.algorithm == StrategyName.RULE_ONLY
        assert response.matches

    def test_chain_exhausted(
        self,
        orchestrator: MatchOrchestrator,
        fashion_gig: Proposer,
        talent_pool: list[Reviewer],
    ) -> None:
        """Test the structured error when every strategy fails."""
        with (
            patch.object(orchestrator.builder, "build", side_effect=RuntimeError("db gone")),
            patch(
                "gig_match.matching.orchestrator.rank_ids",
                side_effect=RuntimeError("sort failed"),
            ),
        ):
            response = orchestrator.find_matches([fashion_gig], talent_pool)

        assert not response.ok
        assert response.matches == []
        assert response.error.code == "algorithm_chain_exhausted"
        assert response.error.attempted == [
            StrategyName.GALE_SHAPLEY,
            StrategyName.RANKED,
            StrategyName.RULE_ONLY,
        ]
        assert len(response.error.failures) == 3
        assert response.metadata.fallbacks[-1].next is None
        assert response.metadata.algorithm is None


class TestInputHandling:
    """Tests for validation and pool preparation."""

    def test_no_proposers(self, orchestrator: MatchOrchestrator, talent_pool) -> None:
        with pytest.raises(InvalidSpecification):
            orchestrator.find_matches([], talent_pool)

    def test_unknown_algorithm(
        self, orchestrator: MatchOrchestrator, fashion_gig: Proposer, talent_pool
    ) -> None:
        with pytest.raises(InvalidSpecification, match="Unknown algorithm"):
            orchestrator.find_matches([fashion_gig], talent_pool, algorithm="fastest")

    def test_duplicate_proposers(
        self, orchestrator: MatchOrchestrator, fashion_gig: Proposer, talent_pool
    ) -> None:
        with pytest.raises(InvalidSpecification, match="unique"):
            orchestrator.find_matches([fashion_gig, fashion_gig], talent_pool)

    def test_invalid_limit(
        self, orchestrator: MatchOrchestrator, fashion_gig: Proposer, talent_pool
    ) -> None:
        with pytest.raises(InvalidSpecification):
            orchestrator.find_matches([fashion_gig], talent_pool, limit=0)

    def test_malformed_reviewer(self, orchestrator: MatchOrchestrator, fashion_gig) -> None:
        """Test that raw dicts are rejected before scoring."""
        with pytest.raises(InvalidSpecification):
            orchestrator.find_matches([fashion_gig], [{"id": "r1"}])  # type: ignore[list-item]

    def test_duplicate_reviewers_dropped(
        self,
        orchestrator: MatchOrchestrator,
        fashion_gig: Proposer,
        talent_pool: list[Reviewer],
    ) -> None:
        """Test deduplication by id."""
        response = orchestrator.find_matches([fashion_gig], talent_pool + [talent_pool[0]])

        assert response.metadata.total_candidates == 3
        assert any("duplicate" in w for w in response.metadata.warnings)

    def test_filters(
        self,
        orchestrator: MatchOrchestrator,
        fashion_gig: Proposer,
        talent_pool: list[Reviewer],
    ) -> None:
        """Test that filters narrow the pool."""
        response = orchestrator.find_matches(
            [fashion_gig],
            talent_pool,
            algorithm=AlgorithmKind.RANKED,
            filters=CandidateFilters(city="Mumbai"),
        )
        assert response.metadata.total_candidates == 1
        assert [m.reviewer_id for m in response.matches] == ["r-strong"]

    def test_handle_preferences(
        self, orchestrator: MatchOrchestrator, talent_pool: list[Reviewer]
    ) -> None:
        """Test serving a request built from free-form preferences."""
        request = MatchRequest(
            preferences=MatchPreferences(
                profession="Photographer",
                category="Photography",
                location="Mumbai",
                budget_range=BudgetRange(min=20000, max=40000),
                style_tags=["candid"],
            ),
            candidates=talent_pool,
            algorithm=AlgorithmKind.RANKED,
            limit=5,
        )
        response = orchestrator.handle(request)

        assert response.ok
        assert response.matches
        assert all(m.proposer_id.startswith("virtual-gig-") for m in response.matches)
        assert response.matches[0].reviewer_id == "r-strong"

    def test_preferences_rating_filters_candidates(
        self, orchestrator: MatchOrchestrator, talent_pool: list[Reviewer]
    ) -> None:
        """Test that the minimum rating in preferences drops low-rated reviewers."""
        request = MatchRequest(
            preferences=MatchPreferences(
                profession="Photographer",
                category="Photography",
                location="Mumbai",
                budget_range=BudgetRange(min=20000, max=40000),
                rating=3.5,
            ),
            candidates=talent_pool,
            algorithm=AlgorithmKind.RANKED,
        )
        response = orchestrator.handle(request)

        assert response.metadata.total_candidates == 2
        assert "r-weak" not in {m.reviewer_id for m in response.matches}
