"""Semantic similarity service: bounded, timed batch access to a provider.

The service owns a worker pool and is the only place that blocks on the
provider. Every failure mode (provider absent, reporting unavailable, raising,
or exceeding the timeout) comes back as an outcome value, never an exception.
"""

import logging
import math
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Literal

from gig_match.similarity.base import SimilarityProvider
from gig_match.similarity.lexical import LexicalSimilarityProvider

logger = logging.getLogger(__name__)

SimilaritySource = Literal["provider", "lexical", "none"]


@dataclass(frozen=True)
class SimilarityRequest:
    """One similarity lookup. ``kind`` selects text or tag comparison."""

    kind: Literal["text", "tags"]
    left: tuple[str, ...]
    right: tuple[str, ...]

    @classmethod
    def text(cls, left: str, right: str) -> "SimilarityRequest":
        return cls("text", (left,), (right,))

    @classmethod
    def tags(cls, left: list[str], right: list[str]) -> "SimilarityRequest":
        return cls("tags", tuple(left), tuple(right))


@dataclass(frozen=True)
class SimilarityOutcome:
    """Result of one lookup: a score in [0, 1], or the reason there is none."""

    score: float | None
    source: SimilaritySource
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.score is not None


class SemanticSimilarityService:
    """Runs similarity lookups against an injected provider.

    Without a provider the deterministic lexical heuristic serves every
    request. With a provider, lookups fan out over at most
    ``max_concurrency`` threads and each is bounded by ``timeout_seconds``.
    """

    def __init__(
        self,
        provider: SimilarityProvider | None = None,
        timeout_seconds: float = 10.0,
        max_concurrency: int = 8,
        lexical_on_failure: bool = False,
    ) -> None:
        self.provider = provider or LexicalSimilarityProvider()
        self.timeout_seconds = timeout_seconds
        self.max_concurrency = max_concurrency
        self.lexical_on_failure = lexical_on_failure

        self._lexical = LexicalSimilarityProvider()
        self._executor: ThreadPoolExecutor | None = None

    @property
    def is_lexical(self) -> bool:
        return isinstance(self.provider, LexicalSimilarityProvider)

    def __enter__(self) -> "SemanticSimilarityService":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Shut down the worker pool and release the provider."""
        self._discard_executor()
        self.provider.close()

    def is_available(self) -> bool:
        try:
            return self.provider.is_available()
        except Exception as e:
            logger.warning(f"Similarity provider status check failed: {e}")
            return False

    def similarity(self, request: SimilarityRequest) -> SimilarityOutcome:
        """Single lookup with the same guarantees as the batch form."""
        return self.fetch_similarities([request])[0]

    def fetch_similarities(
        self,
        requests: list[SimilarityRequest],
        deadline: float | None = None,
    ) -> list[SimilarityOutcome]:
        """Resolve a batch of lookups, one outcome per request, in order.

        Args:
            requests: Lookups to resolve. Duplicates are computed once.
            deadline: Optional ``time.monotonic()`` value after which pending
                lookups are abandoned as timed out.

        Returns:
            Outcomes aligned with ``requests``.
        """
        unique = list(dict.fromkeys(requests))
        if not unique:
            return []

        if self.is_lexical:
            resolved = {req: self._run_lexical(req) for req in unique}
            return [resolved[req] for req in requests]

        if not self.is_available():
            reason = f"Similarity provider '{self.provider.name}' reports unavailable"
            logger.warning(reason)
            resolved = {req: self._unavailable(req, reason) for req in unique}
            return [resolved[req] for req in requests]

        executor = self._get_executor()
        futures: dict[SimilarityRequest, Future[float]] = {
            req: executor.submit(self._call_provider, req) for req in unique
        }

        timeout = self.timeout_seconds
        if deadline is not None:
            timeout = max(0.0, min(timeout, deadline - time.monotonic()))
        _, pending = wait(futures.values(), timeout=timeout)

        resolved = {}
        for req, future in futures.items():
            if future in pending:
                future.cancel()
                resolved[req] = self._unavailable(req, f"timed out after {timeout:.2f}s")
            else:
                resolved[req] = self._collect(req, future)

        if pending:
            # Workers still blocked on the provider leave with their pool.
            self._discard_executor()

        failures = sum(1 for outcome in resolved.values() if outcome.error)
        if failures:
            logger.warning(
                f"{failures}/{len(unique)} similarity lookups degraded "
                f"(provider={self.provider.name})"
            )
        return [resolved[req] for req in requests]

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.max_concurrency,
                thread_name_prefix="similarity",
            )
        return self._executor

    def _discard_executor(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None

    def _call_provider(self, request: SimilarityRequest) -> float:
        if request.kind == "tags":
            return self.provider.tag_similarity(list(request.left), list(request.right))
        return self.provider.text_similarity(request.left[0], request.right[0])

    def _collect(self, request: SimilarityRequest, future: Future[float]) -> SimilarityOutcome:
        try:
            score = future.result()
        except Exception as e:
            return self._unavailable(request, f"{type(e).__name__}: {e}")

        if score is None or math.isnan(score):
            return self._unavailable(request, "provider returned no score")
        return SimilarityOutcome(score=_clamp_unit(score), source="provider")

    def _run_lexical(self, request: SimilarityRequest) -> SimilarityOutcome:
        if request.kind == "tags":
            score = self._lexical.tag_similarity(list(request.left), list(request.right))
        else:
            score = self._lexical.text_similarity(request.left[0], request.right[0])
        return SimilarityOutcome(score=_clamp_unit(score), source="lexical")

    def _unavailable(self, request: SimilarityRequest, reason: str) -> SimilarityOutcome:
        if self.lexical_on_failure:
            outcome = self._run_lexical(request)
            return SimilarityOutcome(score=outcome.score, source="lexical", error=reason)
        return SimilarityOutcome(score=None, source="none", error=reason)


def _clamp_unit(value: float) -> float:
    return max(0.0, min(1.0, float(value)))
