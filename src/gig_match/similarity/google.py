"""Google Generative AI embeddings similarity provider."""

from typing import Any

from langchain_core.embeddings import Embeddings
from langchain_google_genai import GoogleGenerativeAIEmbeddings

from gig_match.similarity.embeddings import EmbeddingSimilarityProvider


class GoogleSimilarityProvider(EmbeddingSimilarityProvider):
    """Google Gemini embedding provider."""

    name = "google"

    def __init__(
        self,
        model: str = "models/gemini-embedding-001",
        api_key: str | None = None,
        timeout: float | None = None,
        max_retries: int = 1,
    ):
        super().__init__(model=model, api_key=api_key, timeout=timeout, max_retries=max_retries)

    def _create_embeddings(self) -> Embeddings:
        kwargs: dict[str, Any] = {
            "model": self.model,
            "request_options": {"timeout": self.timeout},
        }
        # Without an explicit key the client falls back to GOOGLE_API_KEY
        if self.api_key:
            kwargs["google_api_key"] = self.api_key
        return GoogleGenerativeAIEmbeddings(**kwargs)
