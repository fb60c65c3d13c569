"""Embedding-backed similarity providers."""

import logging
import math
import threading
from abc import abstractmethod
from collections.abc import Sequence

from langchain_core.embeddings import Embeddings

from gig_match.similarity.base import SimilarityProvider

logger = logging.getLogger(__name__)

# Default timeout in seconds for embedding requests
DEFAULT_TIMEOUT = 10.0
DEFAULT_MAX_RETRIES = 1


def cosine_similarity(vector_a: Sequence[float], vector_b: Sequence[float]) -> float:
    """Cosine similarity of two vectors; 0.0 for empty, mismatched or zero vectors."""
    if not vector_a or not vector_b or len(vector_a) != len(vector_b):
        return 0.0

    dot = sum(a * b for a, b in zip(vector_a, vector_b))
    norm_a = math.sqrt(sum(a * a for a in vector_a))
    norm_b = math.sqrt(sum(b * b for b in vector_b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


class EmbeddingSimilarityProvider(SimilarityProvider):
    """Similarity via cosine distance of LangChain embeddings.

    The embeddings client is created lazily and cached. Vectors are cached
    per text so a text shared by many pairs is embedded once per run.
    """

    name = "embeddings"

    def __init__(
        self,
        model: str,
        api_key: str | None = None,
        timeout: float | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ):
        self.model = model
        self.api_key = api_key
        self.timeout = timeout or DEFAULT_TIMEOUT
        self.max_retries = max_retries

        self._embeddings: Embeddings | None = None
        self._init_failed = False
        self._closed = False
        self._cache: dict[str, list[float]] = {}
        self._lock = threading.Lock()

    @abstractmethod
    def _create_embeddings(self) -> Embeddings:
        """Create a new embeddings client. Override in subclasses."""

    def get_embeddings(self) -> Embeddings:
        """Get a cached embeddings client."""
        with self._lock:
            if self._embeddings is None:
                self._embeddings = self._create_embeddings()
            return self._embeddings

    def is_available(self) -> bool:
        if self._closed or self._init_failed:
            return False
        try:
            self.get_embeddings()
        except Exception as e:
            logger.warning(f"{self.name} embeddings unavailable: {e}")
            self._init_failed = True
            return False
        return True

    def embed(self, texts: Sequence[str]) -> list[list[float]]:
        """Embed texts, reusing cached vectors."""
        with self._lock:
            missing = [t for t in dict.fromkeys(texts) if t not in self._cache]

        if missing:
            vectors = self.get_embeddings().embed_documents(missing)
            with self._lock:
                self._cache.update(zip(missing, vectors))

        with self._lock:
            return [self._cache[t] for t in texts]

    def text_similarity(self, text_a: str, text_b: str) -> float:
        vector_a, vector_b = self.embed([text_a, text_b])
        return max(0.0, min(1.0, cosine_similarity(vector_a, vector_b)))

    def close(self) -> None:
        with self._lock:
            self._closed = True
            self._embeddings = None
            self._cache.clear()
