"""Semantic similarity providers and the service that guards them."""

from gig_match.similarity.base import SimilarityProvider, get_similarity_provider
from gig_match.similarity.lexical import LexicalSimilarityProvider
from gig_match.similarity.service import (
    SemanticSimilarityService,
    SimilarityOutcome,
    SimilarityRequest,
)

__all__ = [
    "LexicalSimilarityProvider",
    "SemanticSimilarityService",
    "SimilarityOutcome",
    "SimilarityProvider",
    "SimilarityRequest",
    "get_similarity_provider",
]
