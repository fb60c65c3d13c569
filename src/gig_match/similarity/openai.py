"""OpenAI embeddings similarity provider."""

from typing import Any

from langchain_core.embeddings import Embeddings
from langchain_openai import OpenAIEmbeddings

from gig_match.similarity.embeddings import EmbeddingSimilarityProvider


class OpenAISimilarityProvider(EmbeddingSimilarityProvider):
    """OpenAI text-embedding provider."""

    name = "openai"

    def __init__(
        self,
        model: str = "text-embedding-3-small",
        api_key: str | None = None,
        timeout: float | None = None,
        max_retries: int = 1,
    ):
        super().__init__(model=model, api_key=api_key, timeout=timeout, max_retries=max_retries)

    def _create_embeddings(self) -> Embeddings:
        kwargs: dict[str, Any] = {
            "model": self.model,
            "timeout": self.timeout,
            "max_retries": self.max_retries,
        }
        # Without an explicit key the client falls back to OPENAI_API_KEY
        if self.api_key:
            kwargs["api_key"] = self.api_key
        return OpenAIEmbeddings(**kwargs)
