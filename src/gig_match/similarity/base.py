"""Base similarity provider abstraction."""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Literal

ProviderName = Literal["lexical", "openai", "google"]


class SimilarityProvider(ABC):
    """Abstract base class for semantic similarity providers.

    Scores are in [0, 1]. Implementations may block on network I/O; callers
    are expected to wrap them with a timeout.
    """

    name: str = "base"

    @abstractmethod
    def text_similarity(self, text_a: str, text_b: str) -> float:
        """Similarity between two free-text strings."""

    def tag_similarity(self, tags_a: Sequence[str], tags_b: Sequence[str]) -> float:
        """Similarity between two tag sets. Defaults to comparing joined text."""
        return self.text_similarity(", ".join(tags_a), ", ".join(tags_b))

    def is_available(self) -> bool:
        """Whether the provider can currently serve requests."""
        return True

    def close(self) -> None:
        """Release any pooled resources."""
        return None


def get_similarity_provider(
    provider: ProviderName,
    model: str | None = None,
    api_key: str | None = None,
    timeout: float | None = None,
) -> SimilarityProvider:
    """Factory function to get a similarity provider instance."""
    if provider == "lexical":
        from gig_match.similarity.lexical import LexicalSimilarityProvider

        return LexicalSimilarityProvider()
    elif provider == "openai":
        from gig_match.similarity.openai import OpenAISimilarityProvider

        return OpenAISimilarityProvider(
            model=model or "text-embedding-3-small", api_key=api_key, timeout=timeout
        )
    elif provider == "google":
        from gig_match.similarity.google import GoogleSimilarityProvider

        return GoogleSimilarityProvider(
            model=model or "models/gemini-embedding-001", api_key=api_key, timeout=timeout
        )
    else:
        raise ValueError(f"Unknown similarity provider: {provider}")
