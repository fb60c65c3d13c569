"""Data models for Gig Match."""

from gig_match.models.entities import (
    AvailabilityWindow,
    BudgetRange,
    MatchPreferences,
    Proposer,
    Reviewer,
)
from gig_match.models.matching import (
    AlgorithmConfig,
    AlgorithmKind,
    BlockingPair,
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
    StabilityReport,
    StrategyName,
)

__all__ = [
    "AlgorithmConfig",
    "AlgorithmKind",
    "AvailabilityWindow",
    "BlockingPair",
    "BudgetRange",
    "CandidateFilters",
    "FallbackRecord",
    "Match",
    "MatchError",
    "MatchMetadata",
    "MatchPreferences",
    "MatchRequest",
    "MatchResponse",
    "MatchType",
    "Proposer",
    "Reviewer",
    "ScoreBreakdown",
    "Stability",
    "StabilityReport",
    "StrategyName",
]
