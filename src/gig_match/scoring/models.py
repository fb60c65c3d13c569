"""Pydantic models for the two halves of a hybrid score."""

from pydantic import BaseModel, Field


class RuleBasedScores(BaseModel):
    """Deterministic factor points, each already capped."""

    location: float = Field(ge=0)
    budget: float = Field(ge=0)
    skills: float = Field(ge=0)
    experience: float = Field(ge=0)
    availability: float = Field(ge=0)
    style_overlap: float = Field(ge=0)
    rating: float = Field(ge=0)

    # Sum of factors, capped at the configured rule-based maximum
    total: float = Field(ge=0)


class SemanticScores(BaseModel):
    """Similarity-derived points, or zero with a reason when unavailable."""

    style_similarity: float = Field(default=0, ge=0)
    semantic_match: float = Field(default=0, ge=0)
    total: float = Field(default=0, ge=0)

    unavailable: bool = False
    source: str = "provider"
    reason: str | None = None
