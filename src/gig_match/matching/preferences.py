"""Build mutual preference lists from hybrid scores."""

import logging
import time
from collections.abc import Sequence
from dataclasses import dataclass, field

from gig_match.errors import DeadlineExceeded, MatchingError, PreferenceBuildPartialFailure
from gig_match.models.entities import Proposer, Reviewer
from gig_match.models.matching import ScoreBreakdown
from gig_match.scoring.hybrid import HybridScoringEngine

logger = logging.getLogger(__name__)

PairKey = tuple[str, str]


@dataclass
class PreferenceTable:
    """Preference lists for both sides plus the pair scores behind them."""

    proposer_prefs: dict[str, list[str]]
    reviewer_prefs: dict[str, list[str]]
    scores: dict[PairKey, ScoreBreakdown]
    fallback_pairs: set[PairKey] = field(default_factory=set)
    semantic_available: bool = True
    degradations: list[MatchingError] = field(default_factory=list)

    def score_of(self, proposer_id: str, reviewer_id: str) -> ScoreBreakdown:
        return self.scores[(proposer_id, reviewer_id)]


def rank_ids(scored: dict[str, int]) -> list[str]:
    """Order ids by score descending, ties broken by id ascending."""
    return sorted(scored, key=lambda other_id: (-scored[other_id], other_id))


class PreferenceListBuilder:
    """Scores every proposer x reviewer pair once and ranks both sides."""

    def __init__(self, engine: HybridScoringEngine) -> None:
        self.engine = engine

    def build(
        self,
        proposers: Sequence[Proposer],
        reviewers: Sequence[Reviewer],
        deadline: float | None = None,
    ) -> PreferenceTable:
        """Build preference lists for both sides.

        Args:
            proposers: Gigs to rank reviewers for.
            reviewers: Talent to rank proposers for.
            deadline: Optional ``time.monotonic()`` value. Passing it while
                pairs remain unscored raises ``DeadlineExceeded``.

        Returns:
            PreferenceTable where every list holds each opposite-side id once.
        """
        pairs = [(p, r) for p in proposers for r in reviewers]
        lookup = self.engine.prefetch(pairs, deadline=deadline)
        self._check_deadline(deadline, scored=0, total=len(pairs))

        scores: dict[PairKey, ScoreBreakdown] = {}
        fallback_pairs: set[PairKey] = set()
        semantic_available = True
        degradations: list[MatchingError] = []
        if lookup.degradation is not None:
            degradations.append(lookup.degradation)

        for index, (proposer, reviewer) in enumerate(pairs):
            self._check_deadline(deadline, scored=index, total=len(pairs))
            key = (proposer.id, reviewer.id)
            try:
                breakdown = self.engine.score(proposer, reviewer, lookup)
            except Exception as e:
                failure = PreferenceBuildPartialFailure(
                    f"Scoring failed for {proposer.id}/{reviewer.id}: {e}",
                    proposer_id=proposer.id,
                    reviewer_id=reviewer.id,
                )
                logger.warning(f"{failure.message}; using neutral score")
                breakdown = self.engine.neutral_breakdown()
                fallback_pairs.add(key)
                degradations.append(failure)

            if breakdown.semantic_unavailable and not breakdown.fallback_score:
                semantic_available = False
            scores[key] = breakdown

        proposer_prefs = {
            p.id: rank_ids({r.id: scores[(p.id, r.id)].total for r in reviewers})
            for p in proposers
        }
        reviewer_prefs = {
            r.id: rank_ids({p.id: scores[(p.id, r.id)].total for p in proposers})
            for r in reviewers
        }

        if fallback_pairs:
            logger.warning(f"{len(fallback_pairs)}/{len(pairs)} pairs used the neutral score")
        logger.info(
            f"Built preference lists for {len(proposers)} proposers x {len(reviewers)} reviewers"
        )

        return PreferenceTable(
            proposer_prefs=proposer_prefs,
            reviewer_prefs=reviewer_prefs,
            scores=scores,
            fallback_pairs=fallback_pairs,
            semantic_available=semantic_available,
            degradations=degradations,
        )

    @staticmethod
    def _check_deadline(deadline: float | None, scored: int, total: int) -> None:
        if deadline is not None and time.monotonic() > deadline:
            raise DeadlineExceeded(
                f"Deadline passed while building preferences ({scored}/{total} pairs scored)",
                scored=scored,
                total=total,
            )
