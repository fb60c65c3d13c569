"""Rule-based compatibility scoring for gig-talent pairs.

Computes deterministic, reproducible factor scores. Every factor keeps a
non-zero floor for a clear mismatch so a single weak factor cannot zero out
a candidate.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from gig_match.scoring.models import RuleBasedScores
from gig_match.similarity.lexical import jaccard

if TYPE_CHECKING:
    from gig_match.models.entities import Proposer, Reviewer
    from gig_match.models.matching import AlgorithmConfig

logger = logging.getLogger(__name__)


def _norm(value: str | None) -> str:
    return (value or "").strip().lower()


class RuleBasedScorer:
    """Compute capped rule-based factor scores.

    Fractions below are of each factor's configured cap, so caps can be
    retuned without touching the rules.
    """

    # Location
    LOCATION_ALTERNATE_CITY = 0.8  # reviewer lists the gig city in an availability window
    LOCATION_SAME_REGION = 2 / 3
    LOCATION_FLOOR = 1 / 3

    # Budget: decay per 10% band outside the reviewer's range
    BUDGET_BAND_WIDTH = 0.1
    BUDGET_BAND_DECAY = (0.8, 0.55, 0.35)
    BUDGET_FLOOR = 0.2
    BUDGET_NEUTRAL = 2 / 3

    # Skills: category membership is the majority of the sub-score
    SKILLS_CATEGORY_SHARE = 2 / 3
    SKILLS_PER_MATCH_SHARE = 2 / 15
    SKILLS_OVERLAP_SHARE = 1 / 3

    # Experience
    EXPERIENCE_OVER_QUALIFIED = 0.8
    EXPERIENCE_SLIGHTLY_UNDER = 0.5
    EXPERIENCE_UNDER = 0.3
    EXPERIENCE_UNKNOWN = 0.5

    # Availability
    AVAILABILITY_NEUTRAL = 0.6
    AVAILABILITY_CONFLICT = 0.4

    DEFAULT_RATING = 4.0

    EXPERIENCE_BANDS: dict[str, tuple[float, float]] = {
        "basic": (0, 2),
        "intermediate": (2, 5),
        "pro": (5, 8),
        "top-tier": (8, 15),
        "expert": (15, math.inf),
    }

    LEVEL_ALIASES = {
        "beginner": "basic",
        "entry": "basic",
        "junior": "basic",
        "mid": "intermediate",
        "mid-level": "intermediate",
        "professional": "pro",
        "senior": "pro",
        "toptier": "top-tier",
        "top": "top-tier",
    }

    # Gig category -> talent category
    CATEGORY_TO_TALENT = {
        "photography": "photographer",
        "animation": "animator",
        "direction": "director",
        "video editing": "editor",
        "styling": "stylist",
        "branding": "designer",
        "content writing": "designer",
    }

    # Vocabulary used when a gig lists no required skills
    RELEVANT_SKILLS = {
        "photography": ["photography", "camera", "lighting", "portrait", "fashion", "wedding"],
        "direction": ["direction", "filmmaking", "cinematography", "storytelling"],
        "styling": ["styling", "fashion", "wardrobe", "makeup", "hair"],
        "content writing": ["writing", "content", "copywriting", "blogging"],
        "video editing": ["editing", "post-production", "final cut", "premiere"],
        "animation": ["animation", "motion graphics", "3d", "after effects"],
    }

    # Neighbouring cities treated as the same region when none is declared
    REGION_NEIGHBORS = {
        "mumbai": {"pune", "nashik", "thane"},
        "delhi": {"gurgaon", "noida", "faridabad"},
        "bangalore": {"mysore", "chennai"},
        "chennai": {"bangalore", "hyderabad"},
        "hyderabad": {"chennai", "bangalore"},
        "kolkata": {"howrah", "durgapur"},
        "goa": {"mumbai", "pune"},
    }

    def __init__(self, config: AlgorithmConfig) -> None:
        self.config = config

    def compute(self, proposer: Proposer, reviewer: Reviewer) -> RuleBasedScores:
        """Compute all rule-based factors for one pair.

        Args:
            proposer: The gig being staffed.
            reviewer: The candidate talent.

        Returns:
            RuleBasedScores with every factor and the capped total.
        """
        location = self.score_location(proposer, reviewer)
        budget = self.score_budget(proposer, reviewer)
        skills = self.score_skills(proposer, reviewer)
        experience = self.score_experience(proposer, reviewer)
        availability = self.score_availability(proposer, reviewer)
        style_overlap = self.score_style_overlap(proposer, reviewer)
        rating = self.score_rating(reviewer)

        raw_total = location + budget + skills + experience + availability + style_overlap + rating
        logger.debug(f"Rule score {proposer.id}/{reviewer.id}: {raw_total:.1f} before cap")

        return RuleBasedScores(
            location=location,
            budget=budget,
            skills=skills,
            experience=experience,
            availability=availability,
            style_overlap=style_overlap,
            rating=rating,
            total=min(raw_total, self.config.rule_based_max),
        )

    def score_location(self, proposer: Proposer, reviewer: Reviewer) -> float:
        cap = self.config.location_cap
        if proposer.is_remote_tolerant:
            return cap

        gig_city = _norm(proposer.city)
        talent_city = _norm(reviewer.city)
        if gig_city == talent_city:
            return cap

        if any(_norm(window.city) == gig_city for window in reviewer.availability):
            return cap * self.LOCATION_ALTERNATE_CITY

        if self._same_region(proposer, reviewer):
            return cap * self.LOCATION_SAME_REGION

        return cap * self.LOCATION_FLOOR

    def _same_region(self, proposer: Proposer, reviewer: Reviewer) -> bool:
        if proposer.region and reviewer.region:
            return _norm(proposer.region) == _norm(reviewer.region)

        gig_city = _norm(proposer.city)
        talent_city = _norm(reviewer.city)
        return talent_city in self.REGION_NEIGHBORS.get(
            gig_city, set()
        ) or gig_city in self.REGION_NEIGHBORS.get(talent_city, set())

    def score_budget(self, proposer: Proposer, reviewer: Reviewer) -> float:
        cap = self.config.budget_cap
        budget = proposer.effective_budget
        if budget is None or (reviewer.budget_min is None and reviewer.budget_max is None):
            return cap * self.BUDGET_NEUTRAL

        low = reviewer.budget_min if reviewer.budget_min is not None else 0.0
        high = reviewer.budget_max if reviewer.budget_max is not None else math.inf

        if low <= budget <= high:
            return cap

        # Relative distance to the nearest bound of the range
        if budget < low:
            gap = (low - budget) / low
        else:
            gap = (budget - high) / high if high > 0 else math.inf

        band = math.ceil(gap / self.BUDGET_BAND_WIDTH - 1e-9)
        if 1 <= band <= len(self.BUDGET_BAND_DECAY):
            return cap * self.BUDGET_BAND_DECAY[band - 1]
        return cap * self.BUDGET_FLOOR

    def score_skills(self, proposer: Proposer, reviewer: Reviewer) -> float:
        cap = self.config.skills_cap
        score = 0.0

        category = _norm(proposer.category)
        if category:
            accepted = {category, self.CATEGORY_TO_TALENT.get(category, category)}
            if any(_norm(c) in accepted for c in reviewer.categories):
                score += cap * self.SKILLS_CATEGORY_SHARE

        wanted = [_norm(s) for s in proposer.required_skills] or self.RELEVANT_SKILLS.get(
            category, []
        )
        talent_skills = [_norm(s) for s in reviewer.skills]
        overlap = sum(
            1
            for skill in wanted
            if skill and any(skill in t or t in skill for t in talent_skills if t)
        )
        score += min(overlap * cap * self.SKILLS_PER_MATCH_SHARE, cap * self.SKILLS_OVERLAP_SHARE)

        return min(score, cap)

    def experience_band(self, level: str | None) -> tuple[float, float] | None:
        """Years band for an expectation level, or None when unrecognised."""
        key = _norm(level).replace("_", "-").replace(" ", "-")
        key = self.LEVEL_ALIASES.get(key, key)
        return self.EXPERIENCE_BANDS.get(key)

    def score_experience(self, proposer: Proposer, reviewer: Reviewer) -> float:
        cap = self.config.experience_cap
        band = self.experience_band(proposer.expectation_level)
        if band is None:
            return cap

        years = reviewer.experience_years
        if years is None:
            return cap * self.EXPERIENCE_UNKNOWN

        min_years, max_years = band
        if min_years <= years <= max_years:
            return cap
        if years > max_years:
            return cap * self.EXPERIENCE_OVER_QUALIFIED
        if years >= min_years - 1:
            return cap * self.EXPERIENCE_SLIGHTLY_UNDER
        return cap * self.EXPERIENCE_UNDER

    def score_availability(self, proposer: Proposer, reviewer: Reviewer) -> float:
        cap = self.config.availability_cap
        if proposer.start_date is None or not reviewer.availability:
            return cap * self.AVAILABILITY_NEUTRAL

        if any(window.contains(proposer.start_date) for window in reviewer.availability):
            return cap
        return cap * self.AVAILABILITY_CONFLICT

    def score_style_overlap(self, proposer: Proposer, reviewer: Reviewer) -> float:
        cap = self.config.style_overlap_cap
        if not proposer.style_tags or not reviewer.style_tags:
            return cap / 2
        return cap * jaccard(
            (_norm(t) for t in proposer.style_tags), (_norm(t) for t in reviewer.style_tags)
        )

    def score_rating(self, reviewer: Reviewer) -> float:
        cap = self.config.rating_cap
        rating = reviewer.rating if reviewer.rating is not None else self.DEFAULT_RATING
        return cap * max(0.0, min(1.0, rating / 5.0))
