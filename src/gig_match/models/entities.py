"""Proposer and reviewer data models."""

from datetime import date
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def _coerce_str_list(v: Any) -> list[str]:
    """Accept lists or comma-separated strings, drop blanks."""
    if v is None:
        return []
    if isinstance(v, str):
        return [part.strip() for part in v.split(",") if part.strip()]
    if isinstance(v, (list, tuple, set)):
        return [str(item).strip() for item in v if str(item).strip()]
    return []


class BudgetRange(BaseModel):
    """Inclusive budget bounds."""

    min: float = Field(ge=0)
    max: float = Field(ge=0)

    @model_validator(mode="after")
    def check_order(self) -> "BudgetRange":
        if self.min > self.max:
            raise ValueError(f"budget min {self.min} exceeds max {self.max}")
        return self

    @property
    def midpoint(self) -> float:
        return (self.min + self.max) / 2


class MatchPreferences(BaseModel):
    """Free-form preferences used to synthesize a virtual gig."""

    profession: str
    category: str
    location: str | None = None
    budget_range: BudgetRange
    timeline: str | None = None
    required_skills: list[str] = Field(default_factory=list)
    style_tags: list[str] = Field(default_factory=list)
    experience_level: str | None = None
    project_description: str | None = None
    remote: bool = False
    rating: float | None = Field(default=None, ge=0, le=5)

    @field_validator("required_skills", "style_tags", mode="before")
    @classmethod
    def ensure_list(cls, v: Any) -> list[str]:
        return _coerce_str_list(v)


class Proposer(BaseModel):
    """A gig (or virtual gig) looking for talent."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    title: str = ""
    category: str | None = None
    city: str | None = None
    region: str | None = None
    remote: bool = False

    # Either a single budget or a range
    budget: float | None = Field(default=None, ge=0)
    budget_min: float | None = Field(default=None, ge=0)
    budget_max: float | None = Field(default=None, ge=0)

    expectation_level: str | None = None
    required_skills: list[str] = Field(default_factory=list)
    style_tags: list[str] = Field(default_factory=list)
    brief: str = ""
    start_date: date | None = None
    timeline: str | None = None

    @field_validator("required_skills", "style_tags", mode="before")
    @classmethod
    def ensure_list(cls, v: Any) -> list[str]:
        return _coerce_str_list(v)

    @model_validator(mode="after")
    def check_budget(self) -> "Proposer":
        if (
            self.budget_min is not None
            and self.budget_max is not None
            and self.budget_min > self.budget_max
        ):
            raise ValueError(
                f"Proposer {self.id}: budget_min {self.budget_min} exceeds "
                f"budget_max {self.budget_max}"
            )
        return self

    @property
    def effective_budget(self) -> float | None:
        """Single budget value, or the midpoint of the declared range."""
        if self.budget is not None:
            return self.budget
        if self.budget_min is not None and self.budget_max is not None:
            return (self.budget_min + self.budget_max) / 2
        return self.budget_min if self.budget_min is not None else self.budget_max

    @property
    def is_remote_tolerant(self) -> bool:
        return self.remote or not self.city or self.city.strip().lower() == "remote"

    @property
    def brief_text(self) -> str:
        """Text compared against reviewer profiles."""
        return " ".join(part for part in (self.title, self.brief) if part).strip()

    @classmethod
    def from_preferences(
        cls,
        preferences: MatchPreferences,
        proposer_id: str | None = None,
    ) -> "Proposer":
        """Build a virtual gig from free-form preferences."""
        description = (
            preferences.project_description
            or f"Looking for {preferences.profession} for {preferences.category}"
        )
        return cls(
            id=proposer_id or f"virtual-gig-{uuid4().hex[:12]}",
            title=f"{preferences.profession} - {preferences.category}",
            category=preferences.category,
            city=preferences.location,
            remote=preferences.remote,
            budget=preferences.budget_range.midpoint,
            budget_min=preferences.budget_range.min,
            budget_max=preferences.budget_range.max,
            expectation_level=preferences.experience_level,
            required_skills=preferences.required_skills,
            style_tags=preferences.style_tags,
            brief=description,
            timeline=preferences.timeline,
        )


class AvailabilityWindow(BaseModel):
    """A period a reviewer is available, optionally in another city."""

    model_config = ConfigDict(frozen=True)

    from_date: date
    to_date: date
    city: str | None = None

    @model_validator(mode="after")
    def check_order(self) -> "AvailabilityWindow":
        if self.from_date > self.to_date:
            raise ValueError(f"availability from {self.from_date} is after {self.to_date}")
        return self

    def contains(self, day: date) -> bool:
        return self.from_date <= day <= self.to_date


class Reviewer(BaseModel):
    """A creative-talent profile."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str = ""
    city: str | None = None
    region: str | None = None
    experience_years: float | None = Field(default=None, ge=0)
    budget_min: float | None = Field(default=None, ge=0)
    budget_max: float | None = Field(default=None, ge=0)
    categories: list[str] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)
    style_tags: list[str] = Field(default_factory=list)
    availability: list[AvailabilityWindow] = Field(default_factory=list)
    rating: float | None = Field(default=None, ge=0, le=5)
    bio: str = ""
    portfolio_titles: list[str] = Field(default_factory=list)

    @field_validator("categories", "skills", "style_tags", "portfolio_titles", mode="before")
    @classmethod
    def ensure_list(cls, v: Any) -> list[str]:
        return _coerce_str_list(v)

    @model_validator(mode="after")
    def check_budget(self) -> "Reviewer":
        if (
            self.budget_min is not None
            and self.budget_max is not None
            and self.budget_min > self.budget_max
        ):
            raise ValueError(
                f"Reviewer {self.id}: budget_min {self.budget_min} exceeds "
                f"budget_max {self.budget_max}"
            )
        return self

    @property
    def profile_text(self) -> str:
        """Text compared against proposer briefs."""
        parts = [self.name, self.bio, " ".join(self.skills), " ".join(self.portfolio_titles)]
        return " ".join(part for part in parts if part).strip()
