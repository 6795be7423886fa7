"""Difficulty tiers for the automated opponent."""

from __future__ import annotations

from pydantic import BaseModel, Field


class DifficultyTier(BaseModel):
    """
    Search strength bundle for one named tier.

    Args:
        name: Tier name as stored on match records
        search_depth: Maximum search depth in plies
        think_time_ms: Search time budget in milliseconds
        skill_level: UCI "Skill Level" option (0-20), applied when supported
        randomize_probability: Chance of playing a uniformly random legal move
    """

    name: str
    search_depth: int = Field(ge=1)
    think_time_ms: int = Field(gt=0)
    skill_level: int = Field(ge=0, le=20)
    randomize_probability: float = Field(ge=0.0, le=1.0)


TIERS: dict[str, DifficultyTier] = {
    tier.name: tier
    for tier in (
        DifficultyTier(
            name="beginner", search_depth=2, think_time_ms=200, skill_level=0,
            randomize_probability=0.35,
        ),
        DifficultyTier(
            name="intermediate", search_depth=6, think_time_ms=500, skill_level=6,
            randomize_probability=0.15,
        ),
        DifficultyTier(
            name="advanced", search_depth=12, think_time_ms=1000, skill_level=13,
            randomize_probability=0.05,
        ),
        DifficultyTier(
            name="master", search_depth=20, think_time_ms=2000, skill_level=20,
            randomize_probability=0.0,
        ),
    )
}

# Names written by older deployments
ALIASES = {
    "easy": "beginner",
    "medium": "intermediate",
    "hard": "advanced",
}

DEFAULT_TIER = "intermediate"


def resolve_tier(name: str | None) -> DifficultyTier:
    """
    Look up a tier by name or legacy alias.

    Args:
        name: Tier name; None selects the default tier

    Returns:
        The matching DifficultyTier

    Raises:
        ValueError: If the name is unknown
    """
    key = (name or DEFAULT_TIER).strip().lower()
    key = ALIASES.get(key, key)
    try:
        return TIERS[key]
    except KeyError:
        raise ValueError(
            f"Unknown difficulty {name!r}. Choose one of: {', '.join(TIERS)}"
        ) from None
