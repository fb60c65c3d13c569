"""Pytest configuration and fixtures."""

import threading
from collections.abc import Callable
from datetime import date
from typing import Any

import pytest

from gig_match.models.entities import AvailabilityWindow, Proposer, Reviewer
from gig_match.models.matching import AlgorithmConfig
from gig_match.scoring.hybrid import HybridScoringEngine
from gig_match.similarity.base import SimilarityProvider
from gig_match.similarity.service import SemanticSimilarityService


class StaticProvider(SimilarityProvider):
    """Returns a fixed score and counts calls."""

    name = "static"

    def __init__(self, score: float = 0.5) -> None:
        self.score = score
        self.calls = 0
        self._lock = threading.Lock()

    def text_similarity(self, text_a: str, text_b: str) -> float:
        with self._lock:
            self.calls += 1
        return self.score


class UnavailableProvider(SimilarityProvider):
    """Reports unavailable; must never be called."""

    name = "unavailable"

    def text_similarity(self, text_a: str, text_b: str) -> float:
        raise AssertionError("unavailable provider was called")

    def is_available(self) -> bool:
        return False


class FailingProvider(SimilarityProvider):
    """Available, but every call raises."""

    name = "failing"

    def text_similarity(self, text_a: str, text_b: str) -> float:
        raise ConnectionError("embedding backend down")


class BlockingProvider(SimilarityProvider):
    """Blocks until released, to exercise timeouts."""

    name = "blocking"

    def __init__(self) -> None:
        self.release = threading.Event()

    def text_similarity(self, text_a: str, text_b: str) -> float:
        self.release.wait(timeout=5)
        return 1.0


@pytest.fixture
def gig() -> Proposer:
    """A wedding photography gig in Mumbai."""
    return Proposer(
        id="gig-1",
        title="Wedding Photography",
        category="Photography",
        city="Mumbai",
        budget=50000,
        expectation_level="pro",
        required_skills=["portrait", "wedding"],
        style_tags=["candid", "moody"],
        brief="Candid wedding coverage in Mumbai",
        start_date=date(2025, 3, 10),
    )


@pytest.fixture
def talent() -> Reviewer:
    """A photographer who fits the gig on every factor."""
    return Reviewer(
        id="talent-1",
        name="Asha",
        city="Mumbai",
        experience_years=6,
        budget_min=40000,
        budget_max=80000,
        categories=["Photographer"],
        skills=["Wedding photography", "Portrait"],
        style_tags=["candid", "moody"],
        availability=[
            AvailabilityWindow(from_date=date(2025, 3, 1), to_date=date(2025, 3, 31)),
        ],
        rating=5.0,
        bio="Candid wedding photographer based in Mumbai",
    )


@pytest.fixture
def make_proposer() -> Callable[..., Proposer]:
    """Factory for proposers with sensible defaults."""

    def _make(proposer_id: str, **overrides: Any) -> Proposer:
        fields: dict[str, Any] = {
            "id": proposer_id,
            "title": "Photoshoot",
            "category": "Photography",
            "city": "Mumbai",
            "budget": 30000,
            "expectation_level": "intermediate",
            "style_tags": ["candid"],
            "brief": "Product photoshoot for a fashion label",
        }
        fields.update(overrides)
        return Proposer(**fields)

    return _make


@pytest.fixture
def make_reviewer() -> Callable[..., Reviewer]:
    """Factory for reviewers with sensible defaults."""

    def _make(reviewer_id: str, **overrides: Any) -> Reviewer:
        fields: dict[str, Any] = {
            "id": reviewer_id,
            "name": reviewer_id,
            "city": "Mumbai",
            "experience_years": 3,
            "budget_min": 20000,
            "budget_max": 40000,
            "categories": ["Photographer"],
            "skills": ["Photography", "Fashion"],
            "style_tags": ["candid"],
            "rating": 4.0,
            "bio": "Fashion and product photographer",
        }
        fields.update(overrides)
        return Reviewer(**fields)

    return _make


@pytest.fixture
def talent_pool(make_reviewer: Callable[..., Reviewer]) -> list[Reviewer]:
    """Three reviewers of clearly different fit."""
    return [
        make_reviewer("r-strong"),
        make_reviewer(
            "r-medium",
            city="Pune",
            experience_years=1,
            style_tags=["editorial"],
        ),
        make_reviewer(
            "r-weak",
            city="Kolkata",
            categories=["Animator"],
            skills=["3D"],
            experience_years=0.5,
            budget_min=90000,
            budget_max=120000,
            style_tags=["cartoon"],
            rating=2.0,
            bio="Motion designer",
        ),
    ]


@pytest.fixture
def config() -> AlgorithmConfig:
    """Default algorithm configuration."""
    return AlgorithmConfig()


@pytest.fixture
def lexical_engine(config: AlgorithmConfig) -> HybridScoringEngine:
    """Hybrid engine backed by the lexical heuristic."""
    return HybridScoringEngine(SemanticSimilarityService(), config)


def make_service(provider: SimilarityProvider, **kwargs: Any) -> SemanticSimilarityService:
    """Similarity service around a test provider."""
    kwargs.setdefault("timeout_seconds", 1.0)
    kwargs.setdefault("max_concurrency", 4)
    return SemanticSimilarityService(provider=provider, **kwargs)

