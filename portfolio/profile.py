"""Portfolio profile — the person's data, loaded from YAML.

The same data is served by /api/portfolio and embedded in LLM prompts so
generated pitches can point at real projects and skills.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, field_validator

logger = logging.getLogger(__name__)

NO_CONTEXT = "No portfolio context available."


class Skill(BaseModel):
    name: str
    value: float  # self-rating, 0-5

    @field_validator("value")
    @classmethod
    def rating_in_range(cls, v: float) -> float:
        if not 0.0 <= v <= 5.0:
            raise ValueError("skill rating must be between 0 and 5")
        return v


class SkillGroups(BaseModel):
    core: list[Skill] = []
    technical: list[Skill] = []
    soft: list[Skill] = []


class Position(BaseModel):
    role: str
    period: str
    details: list[str] = []


class Company(BaseModel):
    """One employer, grouping the positions held there."""

    company: str
    period: str
    location: str | None = None
    positions: list[Position] = []
    awards: list[str] = []


class Project(BaseModel):
    title: str
    description: str
    github_url: str | None = None


class Degree(BaseModel):
    degree: str
    institution: str
    period: str
    details: str | None = None
    score: str | None = None


class Certification(BaseModel):
    name: str
    issuer: str


class Education(BaseModel):
    formal: list[Degree] = []
    certifications: list[Certification] = []


class Profile(BaseModel):
    """Everything the portfolio says about its owner."""

    name: str
    title: str
    experience: str  # e.g. "4+ years"
    summary: str = ""
    skills: SkillGroups = SkillGroups()
    experience_history: list[Company] = []
    projects: list[Project] = []
    education: Education = Education()

    def project_titles(self) -> list[str]:
        return [p.title for p in self.projects]


# ---------------------------------------------------------------------------
# Module-level profile cache
# ---------------------------------------------------------------------------

_profile: Profile | None = None


def load_profile(path: str) -> Profile:
    """Read the profile YAML, validate, and cache."""
    global _profile

    profile_file = Path(path)
    if not profile_file.exists():
        raise FileNotFoundError(f"Profile file not found: {profile_file.resolve()}")

    raw = yaml.safe_load(profile_file.read_text()) or {}
    _profile = Profile(**raw)

    logger.info(
        f"Loaded profile: name={_profile.name!r}, "
        f"companies={len(_profile.experience_history)}, projects={len(_profile.projects)}"
    )
    return _profile


def get_profile() -> Profile:
    """Return cached profile. Raises if not yet loaded."""
    if _profile is None:
        raise RuntimeError("Profile not loaded — call load_profile() first")
    return _profile


def portfolio_context(profile: Profile | None) -> str:
    """Render the profile as a grounding block for an LLM system prompt."""
    if profile is None:
        return NO_CONTEXT

    data = yaml.safe_dump(
        profile.model_dump(exclude_none=True),
        sort_keys=False,
        allow_unicode=True,
    )
    return (
        "Here is the portfolio data of the professional you are representing.\n"
        "Use this information to ground your response and connect the proposed solution\n"
        "to their actual skills and experience.\n\n"
        "--- START PORTFOLIO DATA ---\n"
        f"{data}"
        "--- END PORTFOLIO DATA ---"
    )
