"""Hybrid scorer combining rule-based and semantic compatibility."""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from gig_match.errors import ScoringProviderUnavailable
from gig_match.models.matching import AlgorithmConfig, ScoreBreakdown
from gig_match.scoring.models import RuleBasedScores, SemanticScores
from gig_match.scoring.rules import RuleBasedScorer
from gig_match.similarity.service import (
    SemanticSimilarityService,
    SimilarityOutcome,
    SimilarityRequest,
)

if TYPE_CHECKING:
    from gig_match.models.entities import Proposer, Reviewer

logger = logging.getLogger(__name__)

NEUTRAL_SCORE = 50


@dataclass
class SimilarityLookup:
    """Prefetched similarity outcomes for a batch of pairs."""

    outcomes: dict[SimilarityRequest, SimilarityOutcome] = field(default_factory=dict)
    available: bool = True
    degradation: ScoringProviderUnavailable | None = None


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class HybridScoringEngine:
    """Combines rule-based factor scores with semantic similarity.

    Flow:
    1. Compute deterministic rule-based factors (no I/O)
    2. Look up style-tag and brief/profile similarity (prefetched in batches)
    3. Combine: ``clamp(rule * wr + semantic * ws, 0, 100)``, rounded

    Provider trouble never fails a score: semantic points drop to zero and the
    breakdown is flagged ``semantic_unavailable``.
    """

    REASON_THRESHOLD = 0.7

    REASON_LABELS = {
        "location": "Location compatibility",
        "budget": "Budget alignment",
        "skills": "Skills match",
        "experience": "Experience level",
        "availability": "Availability",
        "style_overlap": "Style overlap",
        "style_similarity": "Style similarity",
        "semantic_match": "Brief fit",
    }

    def __init__(
        self,
        similarity: SemanticSimilarityService | None = None,
        config: AlgorithmConfig | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            similarity: Service used for semantic lookups. Defaults to the
                lexical heuristic.
            config: Weights and caps. Defaults to ``AlgorithmConfig()``.
        """
        self.config = config or AlgorithmConfig()
        self.similarity = similarity or SemanticSimilarityService(
            timeout_seconds=self.config.similarity_timeout_seconds,
            max_concurrency=self.config.max_concurrency,
        )
        self.rules = RuleBasedScorer(self.config)

    @staticmethod
    def similarity_requests(
        proposer: Proposer,
        reviewer: Reviewer,
    ) -> tuple[SimilarityRequest | None, SimilarityRequest | None]:
        """Style-tag and brief/profile lookups for a pair, None when inputs are missing."""
        style_request = None
        if proposer.style_tags and reviewer.style_tags:
            style_request = SimilarityRequest.tags(proposer.style_tags, reviewer.style_tags)

        text_request = None
        brief, profile = proposer.brief_text, reviewer.profile_text
        if brief and profile:
            text_request = SimilarityRequest.text(brief, profile)

        return style_request, text_request

    def prefetch(
        self,
        pairs: Sequence[tuple[Proposer, Reviewer]],
        deadline: float | None = None,
    ) -> SimilarityLookup:
        """Resolve every similarity lookup a batch of pairs needs, up front."""
        requests: list[SimilarityRequest] = []
        for proposer, reviewer in pairs:
            requests.extend(r for r in self.similarity_requests(proposer, reviewer) if r)

        available = self.similarity.is_available()
        outcomes = self.similarity.fetch_similarities(requests, deadline=deadline)
        return SimilarityLookup(
            outcomes=dict(zip(requests, outcomes)),
            available=available,
            degradation=self._degradation(available, outcomes),
        )

    def _degradation(
        self, available: bool, outcomes: list[SimilarityOutcome]
    ) -> ScoringProviderUnavailable | None:
        provider = self.similarity.provider.name
        if not available:
            return ScoringProviderUnavailable(
                f"Similarity provider '{provider}' reports unavailable", provider=provider
            )
        failed = [o.error for o in outcomes if o.error]
        if not failed:
            return None
        return ScoringProviderUnavailable(
            f"{len(failed)}/{len(outcomes)} similarity lookups degraded",
            provider=provider,
            first_error=failed[0],
        )

    def score(
        self,
        proposer: Proposer,
        reviewer: Reviewer,
        lookup: SimilarityLookup | None = None,
    ) -> ScoreBreakdown:
        """Compute the hybrid score for one pair.

        Args:
            proposer: The gig being staffed.
            reviewer: The candidate talent.
            lookup: Prefetched similarities. Fetched on demand when omitted.

        Returns:
            ScoreBreakdown with factor points, totals and degradation flags.
        """
        if lookup is None:
            lookup = self.prefetch([(proposer, reviewer)])

        rule = self.rules.compute(proposer, reviewer)
        semantic = self._semantic_scores(proposer, reviewer, lookup)
        if semantic.unavailable:
            logger.debug(
                f"Semantic score unavailable for {proposer.id}/{reviewer.id}: {semantic.reason}"
            )
        return self._combine(rule, semantic)

    def score_pairs(
        self,
        pairs: Sequence[tuple[Proposer, Reviewer]],
        deadline: float | None = None,
    ) -> list[ScoreBreakdown]:
        """Score many pairs with a single batched similarity prefetch."""
        lookup = self.prefetch(pairs, deadline=deadline)
        return [self.score(proposer, reviewer, lookup) for proposer, reviewer in pairs]

    def rule_only(self, proposer: Proposer, reviewer: Reviewer) -> ScoreBreakdown:
        """Score a pair without consulting the similarity service."""
        rule = self.rules.compute(proposer, reviewer)
        semantic = SemanticScores(unavailable=True, source="none", reason="rule-only scoring")
        return self._combine(rule, semantic)

    @staticmethod
    def neutral_breakdown(score: int = NEUTRAL_SCORE) -> ScoreBreakdown:
        """Placeholder used when scoring a pair failed outright."""
        return ScoreBreakdown(
            total=score,
            algorithm="neutral-fallback",
            semantic_unavailable=True,
            semantic_source="none",
            fallback_score=True,
        )

    def explain(self, breakdown: ScoreBreakdown) -> list[str]:
        """Human-readable factors that scored above the reason threshold."""
        caps = {
            "location": self.config.location_cap,
            "budget": self.config.budget_cap,
            "skills": self.config.skills_cap,
            "experience": self.config.experience_cap,
            "availability": self.config.availability_cap,
            "style_overlap": self.config.style_overlap_cap,
            "style_similarity": self.config.style_similarity_cap,
            "semantic_match": self.config.semantic_match_cap,
        }
        factors = breakdown.factors
        return [
            label
            for name, label in self.REASON_LABELS.items()
            if caps[name] > 0 and factors[name] / caps[name] > self.REASON_THRESHOLD
        ]

    def _semantic_scores(
        self,
        proposer: Proposer,
        reviewer: Reviewer,
        lookup: SimilarityLookup,
    ) -> SemanticScores:
        if not lookup.available and not self.similarity.lexical_on_failure:
            return SemanticScores(
                unavailable=True, source="none", reason="similarity provider unavailable"
            )

        style_request, text_request = self.similarity_requests(proposer, reviewer)
        style_cap = self.config.style_similarity_cap
        text_cap = self.config.semantic_match_cap

        outcomes: dict[str, SimilarityOutcome | None] = {}
        if style_request is not None:
            outcomes["style"] = lookup.outcomes.get(style_request)
        if text_request is not None:
            outcomes["text"] = lookup.outcomes.get(text_request)

        for outcome in outcomes.values():
            if outcome is None or not outcome.ok:
                reason = outcome.error if outcome is not None else "similarity not prefetched"
                return SemanticScores(unavailable=True, source="none", reason=reason)

        # Missing inputs on either side earn half points
        style_outcome = outcomes.get("style")
        text_outcome = outcomes.get("text")
        style = style_cap * style_outcome.score if style_outcome else style_cap / 2
        text = text_cap * text_outcome.score if text_outcome else text_cap / 2

        sources = {o.source for o in outcomes.values() if o is not None}
        source = "lexical" if "lexical" in sources or self.similarity.is_lexical else "provider"
        degraded = next((o.error for o in outcomes.values() if o is not None and o.error), None)

        semantic_max = min(self.config.semantic_max, 100 - self.config.rule_based_max)
        return SemanticScores(
            style_similarity=style,
            semantic_match=text,
            total=min(style + text, semantic_max),
            source=source,
            reason=degraded,
        )

    def _combine(self, rule: RuleBasedScores, semantic: SemanticScores) -> ScoreBreakdown:
        wr = self.config.rule_based_weight
        ws = self.config.semantic_weight

        if semantic.unavailable:
            if self.config.rescale_rule_only and self.config.rule_based_max > 0:
                raw = rule.total * wr * 100 / self.config.rule_based_max
            else:
                raw = rule.total * wr
            algorithm = "rule-only"
        else:
            raw = rule.total * wr + semantic.total * ws
            algorithm = "hybrid"

        return ScoreBreakdown(
            location=rule.location,
            budget=rule.budget,
            skills=rule.skills,
            experience=rule.experience,
            availability=rule.availability,
            style_overlap=rule.style_overlap,
            rating=rule.rating,
            style_similarity=semantic.style_similarity,
            semantic_match=semantic.semantic_match,
            rule_based_total=rule.total,
            semantic_total=semantic.total,
            total=_round_half_up(max(0.0, min(100.0, raw))),
            algorithm=algorithm,
            semantic_unavailable=semantic.unavailable,
            semantic_source=semantic.source,
        )
