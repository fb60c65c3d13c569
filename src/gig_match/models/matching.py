"""Pydantic models for scoring, matching results and run configuration."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, model_validator

from gig_match.models.entities import MatchPreferences, Proposer, Reviewer


class AlgorithmKind(str, Enum):
    """Algorithm requested by the caller."""

    AUTO = "auto"
    STABLE = "stable"
    RANKED = "ranked"


class StrategyName(str, Enum):
    """Strategy that actually produced a result."""

    GALE_SHAPLEY = "gale-shapley"
    RANKED = "ranked"
    RULE_ONLY = "rule-only"


class MatchType(str, Enum):
    RANKED = "ranked"
    STABLE = "stable"


class Stability(str, Enum):
    GUARANTEED = "guaranteed"
    NOT_GUARANTEED = "not-guaranteed"


class AlgorithmConfig(BaseModel):
    """Weights, caps and limits for one matching run."""

    # Combination weights (need not sum to 1)
    rule_based_weight: float = Field(default=1.0, ge=0)
    semantic_weight: float = Field(default=1.0, ge=0)

    # Point budget split
    rule_based_max: float = Field(default=60, ge=0, le=100)
    semantic_max: float = Field(default=40, ge=0, le=100)

    # Per-factor caps (rule-based)
    location_cap: float = Field(default=15, ge=0)
    budget_cap: float = Field(default=15, ge=0)
    skills_cap: float = Field(default=15, ge=0)
    experience_cap: float = Field(default=10, ge=0)
    availability_cap: float = Field(default=5, ge=0)
    style_overlap_cap: float = Field(default=5, ge=0)
    rating_cap: float = Field(default=5, ge=0)

    # Per-factor caps (semantic)
    style_similarity_cap: float = Field(default=20, ge=0)
    semantic_match_cap: float = Field(default=20, ge=0)

    # Run limits
    candidate_cap: int = Field(default=50, ge=1)
    min_score: float = Field(default=30, ge=0, le=100)
    max_iterations: int = Field(default=1000, ge=1)
    stable_enabled: bool = True
    rescale_rule_only: bool = False

    # Similarity fan-out
    max_concurrency: int = Field(default=8, ge=1, le=64)
    similarity_timeout_seconds: float = Field(default=10.0, gt=0)

    @model_validator(mode="after")
    def check_point_split(self) -> "AlgorithmConfig":
        if self.semantic_max > 100 - self.rule_based_max:
            raise ValueError(
                f"semantic_max ({self.semantic_max}) must not exceed "
                f"100 - rule_based_max ({100 - self.rule_based_max})"
            )
        return self


class ScoreBreakdown(BaseModel):
    """Per-factor points for one proposer/reviewer pair."""

    # Rule-based factors
    location: float = Field(default=0, ge=0)
    budget: float = Field(default=0, ge=0)
    skills: float = Field(default=0, ge=0)
    experience: float = Field(default=0, ge=0)
    availability: float = Field(default=0, ge=0)
    style_overlap: float = Field(default=0, ge=0)
    rating: float = Field(default=0, ge=0)

    # Semantic factors
    style_similarity: float = Field(default=0, ge=0)
    semantic_match: float = Field(default=0, ge=0)

    rule_based_total: float = Field(default=0, ge=0)
    semantic_total: float = Field(default=0, ge=0)
    total: int = Field(ge=0, le=100)

    algorithm: str = "hybrid"  # "hybrid", "rule-only" or "neutral-fallback"
    semantic_unavailable: bool = False
    semantic_source: str = "provider"  # "provider", "lexical" or "none"
    fallback_score: bool = False

    @property
    def factors(self) -> dict[str, float]:
        """Factor points keyed by factor name."""
        return {
            "location": self.location,
            "budget": self.budget,
            "skills": self.skills,
            "experience": self.experience,
            "availability": self.availability,
            "style_overlap": self.style_overlap,
            "rating": self.rating,
            "style_similarity": self.style_similarity,
            "semantic_match": self.semantic_match,
        }


class Match(BaseModel):
    """One proposer/reviewer pairing handed back to the caller."""

    proposer_id: str
    reviewer_id: str
    score: int = Field(ge=0, le=100)
    breakdown: ScoreBreakdown
    rank: int = Field(ge=1)
    match_type: MatchType
    algorithm: StrategyName
    stability_verified: bool = False
    reasons: list[str] = Field(default_factory=list)

    def to_record(self) -> dict[str, Any]:
        """Flat record for the persistence layer."""
        return {
            "proposer_id": self.proposer_id,
            "reviewer_id": self.reviewer_id,
            "score": self.score,
            "rank": self.rank,
            "algorithm": self.algorithm.value,
            "match_type": self.match_type.value,
            "stability_verified": self.stability_verified,
        }


class BlockingPair(BaseModel):
    proposer_id: str
    reviewer_id: str
    reason: str = "mutual_preference"


class StabilityReport(BaseModel):
    """Outcome of a stability audit."""

    is_stable: bool
    blocking_pairs: list[BlockingPair] = Field(default_factory=list)

    @property
    def total_blocking_pairs(self) -> int:
        return len(self.blocking_pairs)


class FallbackRecord(BaseModel):
    """A strategy that failed and what replaced it."""

    failed: StrategyName
    next: StrategyName | None
    reason: str


class MatchError(BaseModel):
    """Structured failure returned when every strategy in the chain failed."""

    code: str = "algorithm_chain_exhausted"
    message: str
    attempted: list[StrategyName] = Field(default_factory=list)
    failures: list[dict[str, Any]] = Field(default_factory=list)


class MatchMetadata(BaseModel):
    """Run summary attached to every response."""

    total_candidates: int = 0
    qualified_or_matched_count: int = 0
    processing_time_ms: float = 0.0
    algorithm: StrategyName | None = None
    requested_algorithm: AlgorithmKind = AlgorithmKind.AUTO
    stability: Stability = Stability.NOT_GUARANTEED

    total_proposers: int = 0
    total_reviewers: int = 0
    matched_proposers: int = 0
    matched_reviewers: int = 0

    semantic_available: bool = True
    fallbacks: list[FallbackRecord] = Field(default_factory=list)
    fallback_pairs: int = 0
    warnings: list[str] = Field(default_factory=list)
    degradations: list[dict[str, Any]] = Field(default_factory=list)
    iterations: int | None = None
    blocking_pairs: int | None = None


class MatchResponse(BaseModel):
    """Response contract of the orchestrator."""

    matches: list[Match] = Field(default_factory=list)
    metadata: MatchMetadata = Field(default_factory=MatchMetadata)
    error: MatchError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class CandidateFilters(BaseModel):
    """Optional narrowing applied to an already retrieved reviewer pool."""

    city: str | None = None
    max_budget: float | None = Field(default=None, ge=0)
    min_experience: float | None = Field(default=None, ge=0)
    categories: list[str] = Field(default_factory=list)
    min_rating: float | None = Field(default=None, ge=0, le=5)

    def accepts(self, reviewer: Reviewer) -> bool:
        if self.city and self.city.lower() not in (reviewer.city or "").lower():
            return False
        if self.max_budget is not None and (
            reviewer.budget_min is None or reviewer.budget_min > self.max_budget
        ):
            return False
        if self.min_experience is not None and (
            reviewer.experience_years or 0
        ) < self.min_experience:
            return False
        if self.categories:
            wanted = {c.lower() for c in self.categories}
            if not any(
                any(w in cat.lower() for w in wanted) for cat in reviewer.categories
            ):
                return False
        if self.min_rating is not None and (reviewer.rating or 0) < self.min_rating:
            return False
        return True


class MatchRequest(BaseModel):
    """Request contract: a proposer (or preferences) plus its candidate pool."""

    proposer: Proposer | None = None
    preferences: MatchPreferences | None = None
    candidates: list[Reviewer] = Field(default_factory=list)
    limit: int = Field(default=10, ge=1, le=100)
    algorithm: AlgorithmKind = AlgorithmKind.AUTO
    filters: CandidateFilters = Field(default_factory=CandidateFilters)
    deadline_seconds: float | None = Field(default=None, gt=0)

    @model_validator(mode="after")
    def check_proposer_source(self) -> "MatchRequest":
        if (self.proposer is None) == (self.preferences is None):
            raise ValueError("Exactly one of proposer or preferences must be provided")
        return self

    def resolve_proposer(self) -> Proposer:
        if self.proposer is not None:
            return self.proposer
        if self.preferences is None:
            raise ValueError("MatchRequest has neither proposer nor preferences")
        return Proposer.from_preferences(self.preferences)

    def effective_filters(self) -> CandidateFilters:
        """Request filters tightened by the minimum rating in preferences."""
        if self.preferences is None or self.preferences.rating is None:
            return self.filters
        floor = self.preferences.rating
        if self.filters.min_rating is not None:
            floor = max(floor, self.filters.min_rating)
        return self.filters.model_copy(update={"min_rating": floor})
