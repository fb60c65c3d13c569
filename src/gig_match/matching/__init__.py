"""Preference building, stable matching and orchestration."""

from gig_match.matching.gale_shapley import GaleShapleySolver, SolverResult
from gig_match.matching.orchestrator import MatchOrchestrator, StrategyOutcome
from gig_match.matching.preferences import PreferenceListBuilder, PreferenceTable
from gig_match.matching.stability import verify_stability

__all__ = [
    "GaleShapleySolver",
    "MatchOrchestrator",
    "PreferenceListBuilder",
    "PreferenceTable",
    "SolverResult",
    "StrategyOutcome",
    "verify_stability",
]
