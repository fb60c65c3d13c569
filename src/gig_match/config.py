"""Configuration management for Gig Match."""

from functools import lru_cache
from typing import TYPE_CHECKING, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from gig_match.models.matching import AlgorithmConfig
    from gig_match.similarity.service import SemanticSimilarityService


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="GIG_MATCH_",
        env_file=".env.local",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # API Keys (no prefix, standard env vars)
    openai_api_key: str | None = Field(default=None, alias="OPENAI_API_KEY")
    google_api_key: str | None = Field(default=None, alias="GOOGLE_API_KEY")

    # Similarity provider
    similarity_provider: Literal["lexical", "openai", "google"] = "lexical"
    embedding_model: str | None = Field(
        default=None,
        description="Embedding model ID (provider default when unset)",
    )
    similarity_timeout_seconds: float = Field(default=10.0, gt=0, le=120)
    max_concurrency: int = Field(default=8, ge=1, le=64)
    lexical_on_failure: bool = Field(
        default=False,
        description="Score with the lexical heuristic when the provider fails",
    )

    # Scoring
    rule_based_weight: float = Field(default=1.0, ge=0)
    semantic_weight: float = Field(default=1.0, ge=0)
    rule_based_max: float = Field(default=60, ge=0, le=100)
    semantic_max: float = Field(default=40, ge=0, le=100)
    rescale_rule_only: bool = Field(
        default=False,
        description="Scale rule-only scores to the full 0-100 range",
    )

    # Matching
    candidate_cap: int = Field(default=50, ge=1, le=1000)
    min_score: float = Field(default=30, ge=0, le=100)
    max_iterations: int = Field(default=1000, ge=1)
    stable_enabled: bool = True
    default_limit: int = Field(default=10, ge=1, le=100)

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    @property
    def algorithm_config(self) -> "AlgorithmConfig":
        """Get algorithm configuration object."""
        from gig_match.models.matching import AlgorithmConfig

        return AlgorithmConfig(
            rule_based_weight=self.rule_based_weight,
            semantic_weight=self.semantic_weight,
            rule_based_max=self.rule_based_max,
            semantic_max=self.semantic_max,
            candidate_cap=self.candidate_cap,
            min_score=self.min_score,
            max_iterations=self.max_iterations,
            stable_enabled=self.stable_enabled,
            rescale_rule_only=self.rescale_rule_only,
            max_concurrency=self.max_concurrency,
            similarity_timeout_seconds=self.similarity_timeout_seconds,
        )

    def create_similarity_service(self) -> "SemanticSimilarityService":
        """Build the similarity service for the configured provider."""
        from gig_match.similarity.base import get_similarity_provider
        from gig_match.similarity.service import SemanticSimilarityService

        api_key = {
            "openai": self.openai_api_key,
            "google": self.google_api_key,
        }.get(self.similarity_provider)

        provider = get_similarity_provider(
            self.similarity_provider,
            model=self.embedding_model,
            api_key=api_key,
            timeout=self.similarity_timeout_seconds,
        )
        return SemanticSimilarityService(
            provider=provider,
            timeout_seconds=self.similarity_timeout_seconds,
            max_concurrency=self.max_concurrency,
            lexical_on_failure=self.lexical_on_failure,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
