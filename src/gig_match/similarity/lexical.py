"""Deterministic lexical-overlap similarity.

Used when no embedding provider is configured, and optionally as a stand-in
when the configured provider fails.
"""

import re
from collections.abc import Iterable, Sequence

from gig_match.similarity.base import SimilarityProvider

WORD_PATTERN = re.compile(r"[a-z0-9]+(?:[-'][a-z0-9]+)*")


def tokenize(text: str) -> set[str]:
    """Lower-cased word tokens of a string."""
    return set(WORD_PATTERN.findall(text.lower()))


def jaccard(a: Iterable[str], b: Iterable[str]) -> float:
    """Jaccard index of two collections; 0.0 when both are empty."""
    set_a, set_b = set(a), set(b)
    union = set_a | set_b
    if not union:
        return 0.0
    return len(set_a & set_b) / len(union)


class LexicalSimilarityProvider(SimilarityProvider):
    """Word and tag overlap heuristic. Always available, no I/O."""

    name = "lexical"

    def text_similarity(self, text_a: str, text_b: str) -> float:
        return jaccard(tokenize(text_a), tokenize(text_b))

    def tag_similarity(self, tags_a: Sequence[str], tags_b: Sequence[str]) -> float:
        return jaccard(
            (t.strip().lower() for t in tags_a if t.strip()),
            (t.strip().lower() for t in tags_b if t.strip()),
        )
