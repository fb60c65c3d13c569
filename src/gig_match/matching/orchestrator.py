"""Match Orchestrator - algorithm selection and fallback chain.

Implements the matching pipeline:
1. Validate input and narrow the candidate pool
2. Select a strategy (stable matching or direct ranked scoring)
3. Walk the fallback chain stable -> ranked -> rule-only until one succeeds
4. Attach metadata describing what actually ran
"""

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from gig_match.errors import (
    AlgorithmFailure,
    DeadlineExceeded,
    InvalidSpecification,
    MatchingError,
    PreferenceBuildPartialFailure,
)
from gig_match.matching.gale_shapley import GaleShapleySolver
from gig_match.matching.preferences import PreferenceListBuilder, PreferenceTable, rank_ids
from gig_match.matching.stability import verify_stability
from gig_match.models.entities import Proposer, Reviewer
from gig_match.models.matching import (
    AlgorithmConfig,
    AlgorithmKind,
    CandidateFilters,
    FallbackRecord,
    Match,
    MatchError,
    MatchMetadata,
    MatchRequest,
    MatchResponse,
    MatchType,
    ScoreBreakdown,
    Stability,
    StrategyName,
)
from gig_match.scoring.hybrid import HybridScoringEngine

logger = logging.getLogger(__name__)

# Strategy tried next when one fails
FALLBACK_CHAIN: dict[StrategyName, StrategyName | None] = {
    StrategyName.GALE_SHAPLEY: StrategyName.RANKED,
    StrategyName.RANKED: StrategyName.RULE_ONLY,
    StrategyName.RULE_ONLY: None,
}


@dataclass
class RunContext:
    """Inputs and shared intermediate state for one orchestrated run."""

    proposers: list[Proposer]
    reviewers: list[Reviewer]
    limit: int
    deadline: float | None = None
    table: PreferenceTable | None = None


@dataclass
class StrategyOutcome:
    """What a strategy produced: matches, or the failure that stopped it."""

    strategy: StrategyName
    matches: list[Match] = field(default_factory=list)
    failure: AlgorithmFailure | None = None
    stability: Stability = Stability.NOT_GUARANTEED
    semantic_available: bool = True
    fallback_pairs: int = 0
    iterations: int | None = None
    blocking_pairs: int | None = None
    warnings: list[str] = field(default_factory=list)
    degradations: list[MatchingError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def failed(cls, strategy: StrategyName, failure: AlgorithmFailure) -> "StrategyOutcome":
        return cls(strategy=strategy, failure=failure)


class MatchOrchestrator:
    """Top-level entry point for matching proposers against a reviewer pool."""

    def __init__(
        self,
        engine: HybridScoringEngine | None = None,
        config: AlgorithmConfig | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            engine: Hybrid scoring engine. Built from ``config`` when omitted.
            config: Algorithm configuration. Defaults to the engine's.
        """
        if engine is None:
            engine = HybridScoringEngine(config=config)
        self.engine = engine
        self.config = config or engine.config
        self.builder = PreferenceListBuilder(engine)
        self.solver = GaleShapleySolver(self.config.max_iterations)

        self._selectors: dict[AlgorithmKind, Callable[[int], StrategyName]] = {
            AlgorithmKind.AUTO: self._select_auto,
            AlgorithmKind.STABLE: lambda pool_size: StrategyName.GALE_SHAPLEY,
            AlgorithmKind.RANKED: lambda pool_size: StrategyName.RANKED,
        }
        self._strategies: dict[StrategyName, Callable[[RunContext], StrategyOutcome]] = {
            StrategyName.GALE_SHAPLEY: self._run_stable,
            StrategyName.RANKED: self._run_ranked,
            StrategyName.RULE_ONLY: self._run_rule_only,
        }

    def handle(self, request: MatchRequest) -> MatchResponse:
        """Serve a request: one proposer (or preferences) plus its candidates."""
        return self.find_matches(
            [request.resolve_proposer()],
            request.candidates,
            limit=request.limit,
            algorithm=request.algorithm,
            filters=request.effective_filters(),
            deadline_seconds=request.deadline_seconds,
        )

    def find_matches(
        self,
        proposers: Sequence[Proposer],
        reviewers: Sequence[Reviewer],
        *,
        limit: int = 10,
        algorithm: AlgorithmKind | str = AlgorithmKind.AUTO,
        filters: CandidateFilters | None = None,
        deadline_seconds: float | None = None,
    ) -> MatchResponse:
        """Match proposers against a reviewer pool.

        Args:
            proposers: Gigs to staff.
            reviewers: Candidate pool as retrieved upstream.
            limit: Maximum ranked matches per proposer.
            algorithm: ``auto``, ``stable`` or ``ranked``.
            filters: Optional narrowing of the pool.
            deadline_seconds: Wall-clock budget for the run.

        Returns:
            MatchResponse. When every strategy fails, ``error`` is set and
            ``matches`` is empty.

        Raises:
            InvalidSpecification: On malformed input, before any scoring.
        """
        start_time = time.time()
        kind = self._validate(proposers, limit, algorithm, deadline_seconds)
        deadline = time.monotonic() + deadline_seconds if deadline_seconds else None

        pool, pool_size, warnings = self._prepare_pool(reviewers, filters)
        metadata = MatchMetadata(
            total_candidates=len(pool),
            requested_algorithm=kind,
            total_proposers=len(proposers),
            total_reviewers=len(pool),
            warnings=warnings,
        )

        if not pool:
            logger.info("No candidates after filtering; returning empty result")
            metadata.processing_time_ms = _elapsed_ms(start_time)
            return MatchResponse(matches=[], metadata=metadata)

        first = self._selectors[kind](pool_size)
        logger.info(
            f"Matching {len(proposers)} proposers against {len(pool)} reviewers "
            f"(requested={kind.value}, selected={first.value})"
        )

        context = RunContext(
            proposers=list(proposers), reviewers=pool, limit=limit, deadline=deadline
        )
        outcome, fallbacks, error = self._run_chain(first, context)

        metadata.fallbacks = fallbacks
        if outcome is not None:
            metadata.algorithm = outcome.strategy
            metadata.stability = outcome.stability
            metadata.semantic_available = outcome.semantic_available
            metadata.fallback_pairs = outcome.fallback_pairs
            metadata.iterations = outcome.iterations
            metadata.blocking_pairs = outcome.blocking_pairs
            metadata.warnings.extend(outcome.warnings)
            metadata.degradations = [d.to_dict() for d in outcome.degradations]
            metadata.qualified_or_matched_count = len(outcome.matches)
            metadata.matched_proposers = len({m.proposer_id for m in outcome.matches})
            metadata.matched_reviewers = len({m.reviewer_id for m in outcome.matches})
        metadata.processing_time_ms = _elapsed_ms(start_time)

        logger.info(
            f"Matching finished with {metadata.algorithm.value if metadata.algorithm else 'none'}: "
            f"{metadata.qualified_or_matched_count} matches in {metadata.processing_time_ms:.0f}ms"
        )
        return MatchResponse(
            matches=outcome.matches if outcome is not None else [],
            metadata=metadata,
            error=error,
        )

    def _validate(
        self,
        proposers: Sequence[Proposer],
        limit: int,
        algorithm: AlgorithmKind | str,
        deadline_seconds: float | None,
    ) -> AlgorithmKind:
        try:
            kind = AlgorithmKind(algorithm)
        except ValueError as e:
            raise InvalidSpecification(f"Unknown algorithm '{algorithm}'") from e

        if not proposers:
            raise InvalidSpecification("At least one proposer is required")
        if any(not isinstance(p, Proposer) for p in proposers):
            raise InvalidSpecification("Proposers must be Proposer instances")

        ids = [p.id for p in proposers]
        if len(set(ids)) != len(ids):
            raise InvalidSpecification("Proposer ids must be unique", proposer_ids=ids)
        if limit < 1:
            raise InvalidSpecification(f"limit must be >= 1, got {limit}")
        if deadline_seconds is not None and deadline_seconds <= 0:
            raise InvalidSpecification(f"deadline_seconds must be > 0, got {deadline_seconds}")
        return kind

    def _prepare_pool(
        self,
        reviewers: Sequence[Reviewer],
        filters: CandidateFilters | None,
    ) -> tuple[list[Reviewer], int, list[str]]:
        """Deduplicate, filter and cap the pool.

        Returns the capped pool, its size before capping, and any warnings.
        """
        warnings: list[str] = []
        unique: dict[str, Reviewer] = {}
        for reviewer in reviewers:
            if not isinstance(reviewer, Reviewer):
                raise InvalidSpecification("Reviewers must be Reviewer instances")
            unique.setdefault(reviewer.id, reviewer)

        if len(unique) < len(reviewers):
            warnings.append(f"Dropped {len(reviewers) - len(unique)} duplicate reviewers")

        pool = list(unique.values())
        if filters is not None:
            pool = [r for r in pool if filters.accepts(r)]

        pool_size = len(pool)
        if pool_size > self.config.candidate_cap:
            message = f"Candidate pool truncated from {pool_size} to {self.config.candidate_cap}"
            logger.warning(message)
            warnings.append(message)
            pool = pool[: self.config.candidate_cap]
        return pool, pool_size, warnings

    def _select_auto(self, pool_size: int) -> StrategyName:
        if self.config.stable_enabled and pool_size <= self.config.candidate_cap:
            return StrategyName.GALE_SHAPLEY
        return StrategyName.RANKED

    def _run_chain(
        self,
        first: StrategyName,
        context: RunContext,
    ) -> tuple[StrategyOutcome | None, list[FallbackRecord], MatchError | None]:
        """Run strategies until one succeeds or the chain is exhausted."""
        fallbacks: list[FallbackRecord] = []
        attempted: list[StrategyName] = []
        failures: list[dict] = []

        strategy: StrategyName | None = first
        while strategy is not None:
            attempted.append(strategy)
            outcome = self._attempt(strategy, context)
            if outcome.ok:
                return outcome, fallbacks, None

            failure = outcome.failure
            if isinstance(failure, DeadlineExceeded) and strategy is not StrategyName.RULE_ONLY:
                next_strategy: StrategyName | None = StrategyName.RULE_ONLY
            else:
                next_strategy = FALLBACK_CHAIN[strategy]

            logger.warning(
                f"Strategy {strategy.value} failed ({failure.message}); "
                f"falling back to {next_strategy.value if next_strategy else 'nothing'}"
            )
            fallbacks.append(
                FallbackRecord(failed=strategy, next=next_strategy, reason=failure.message)
            )
            failures.append({"strategy": strategy.value, **failure.to_dict()})
            strategy = next_strategy

        logger.error(f"All matching strategies failed: {[s.value for s in attempted]}")
        error = MatchError(
            message="Every matching strategy failed",
            attempted=attempted,
            failures=failures,
        )
        return None, fallbacks, error

    def _attempt(self, strategy: StrategyName, context: RunContext) -> StrategyOutcome:
        """Run one strategy, turning anything it raises into a failed outcome."""
        try:
            return self._strategies[strategy](context)
        except InvalidSpecification:
            raise
        except AlgorithmFailure as e:
            return StrategyOutcome.failed(strategy, e)
        except MatchingError as e:
            return StrategyOutcome.failed(strategy, AlgorithmFailure(e.message, **e.details))
        except Exception as e:
            logger.exception(f"Unexpected error in strategy {strategy.value}")
            return StrategyOutcome.failed(
                strategy, AlgorithmFailure(f"{type(e).__name__}: {e}", strategy=strategy.value)
            )

    def _preference_table(self, context: RunContext) -> PreferenceTable:
        if context.table is None:
            context.table = self.builder.build(
                context.proposers, context.reviewers, deadline=context.deadline
            )
        return context.table

    def _run_stable(self, context: RunContext) -> StrategyOutcome:
        table = self._preference_table(context)
        result = self.solver.solve(table.proposer_prefs, table.reviewer_prefs)
        report = verify_stability(result.matching, table.proposer_prefs, table.reviewer_prefs)

        warnings = []
        if result.warning is not None:
            warnings.append(result.warning.message)
        if not report.is_stable:
            warnings.append(f"Stability check found {report.total_blocking_pairs} blocking pairs")

        matches = []
        for proposer_id in sorted(result.matching):
            reviewer_id = result.matching[proposer_id]
            breakdown = table.score_of(proposer_id, reviewer_id)
            matches.append(
                self._make_match(
                    proposer_id,
                    reviewer_id,
                    breakdown,
                    rank=table.proposer_prefs[proposer_id].index(reviewer_id) + 1,
                    match_type=MatchType.STABLE,
                    algorithm=StrategyName.GALE_SHAPLEY,
                    stability_verified=report.is_stable,
                )
            )

        guaranteed = report.is_stable and result.completed
        return StrategyOutcome(
            strategy=StrategyName.GALE_SHAPLEY,
            matches=matches,
            stability=Stability.GUARANTEED if guaranteed else Stability.NOT_GUARANTEED,
            semantic_available=table.semantic_available,
            fallback_pairs=len(table.fallback_pairs),
            iterations=result.iterations,
            blocking_pairs=report.total_blocking_pairs,
            warnings=warnings,
            degradations=list(table.degradations),
        )

    def _run_ranked(self, context: RunContext) -> StrategyOutcome:
        if context.deadline is not None and time.monotonic() > context.deadline:
            raise DeadlineExceeded("Deadline passed before ranked scoring started")

        table = self._preference_table(context)
        matches = self._rank(
            context,
            lambda proposer, reviewer: table.score_of(proposer.id, reviewer.id),
            StrategyName.RANKED,
        )
        return StrategyOutcome(
            strategy=StrategyName.RANKED,
            matches=matches,
            semantic_available=table.semantic_available,
            fallback_pairs=len(table.fallback_pairs),
            degradations=list(table.degradations),
        )

    def _run_rule_only(self, context: RunContext) -> StrategyOutcome:
        failures: list[MatchingError] = []

        def score(proposer: Proposer, reviewer: Reviewer) -> ScoreBreakdown:
            try:
                return self.engine.rule_only(proposer, reviewer)
            except Exception as e:
                failure = PreferenceBuildPartialFailure(
                    f"Rule scoring failed for {proposer.id}/{reviewer.id}: {e}",
                    proposer_id=proposer.id,
                    reviewer_id=reviewer.id,
                )
                logger.warning(f"{failure.message}; using neutral score")
                failures.append(failure)
                return self.engine.neutral_breakdown()

        matches = self._rank(context, score, StrategyName.RULE_ONLY)
        return StrategyOutcome(
            strategy=StrategyName.RULE_ONLY,
            matches=matches,
            semantic_available=False,
            fallback_pairs=len(failures),
            degradations=failures,
        )

    def _rank(
        self,
        context: RunContext,
        score: Callable[[Proposer, Reviewer], ScoreBreakdown],
        algorithm: StrategyName,
    ) -> list[Match]:
        """Per proposer: qualifying reviewers, best first, truncated to the limit."""
        matches = []
        for proposer in sorted(context.proposers, key=lambda p: p.id):
            breakdowns = {reviewer.id: score(proposer, reviewer) for reviewer in context.reviewers}
            qualified = {
                rid: b.total for rid, b in breakdowns.items() if b.total >= self.config.min_score
            }
            for rank, reviewer_id in enumerate(rank_ids(qualified)[: context.limit], start=1):
                matches.append(
                    self._make_match(
                        proposer.id,
                        reviewer_id,
                        breakdowns[reviewer_id],
                        rank=rank,
                        match_type=MatchType.RANKED,
                        algorithm=algorithm,
                    )
                )
        return matches

    def _make_match(
        self,
        proposer_id: str,
        reviewer_id: str,
        breakdown: ScoreBreakdown,
        *,
        rank: int,
        match_type: MatchType,
        algorithm: StrategyName,
        stability_verified: bool = False,
    ) -> Match:
        return Match(
            proposer_id=proposer_id,
            reviewer_id=reviewer_id,
            score=breakdown.total,
            breakdown=breakdown,
            rank=rank,
            match_type=match_type,
            algorithm=algorithm,
            stability_verified=stability_verified,
            reasons=self.engine.explain(breakdown),
        )


def _elapsed_ms(start_time: float) -> float:
    return (time.time() - start_time) * 1000
