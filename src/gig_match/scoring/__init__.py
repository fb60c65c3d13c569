"""Scoring module for gig-talent compatibility."""

from gig_match.scoring.hybrid import NEUTRAL_SCORE, HybridScoringEngine, SimilarityLookup
from gig_match.scoring.models import RuleBasedScores, SemanticScores
from gig_match.scoring.rules import RuleBasedScorer

__all__ = [
    "NEUTRAL_SCORE",
    "HybridScoringEngine",
    "RuleBasedScorer",
    "RuleBasedScores",
    "SemanticScores",
    "SimilarityLookup",
]
