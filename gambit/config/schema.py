"""Configuration schema for gambit."""

from pathlib import Path

from pydantic import BaseModel, Field

from gambit.config.runtime import settings


def default_data_dir() -> Path:
    return Path(settings.data_dir)


class EngineConfig(BaseModel):
    """Engine bridge configuration."""

    path: str | None = None
    default_difficulty: str = "intermediate"
    timeout_grace_s: float = Field(default=5.0, ge=0.0)
    quit_timeout_s: float = Field(default=2.0, gt=0.0)
    max_concurrent: int | None = Field(default=None, ge=1)
    failure_threshold: int = Field(default=3, ge=1)
    recovery_timeout_s: float = Field(default=60.0, ge=0.0)


class StoreConfig(BaseModel):
    """Match store configuration."""

    path: Path = Field(default_factory=lambda: default_data_dir() / "games.json")


class ChallengeConfig(BaseModel):
    """Challenge registry configuration."""

    expiry_s: float = Field(default=300.0, gt=0.0)
    sweep_interval_s: float = Field(default=60.0, gt=0.0)


class JournalConfig(BaseModel):
    """Move journal configuration. Disabled when log_dir is unset."""

    log_dir: Path | None = None


class Config(BaseModel):
    """Root configuration."""

    engine: EngineConfig = Field(default_factory=EngineConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    challenges: ChallengeConfig = Field(default_factory=ChallengeConfig)
    journal: JournalConfig = Field(default_factory=JournalConfig)
    automated_participants: list[str] = Field(default_factory=lambda: ["gambit"])
