"""Environment-driven runtime settings."""

from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class GambitSettings(BaseSettings):
    """Settings read from ``GAMBIT_*`` environment variables."""

    data_dir: Path = Field(default_factory=lambda: Path.home() / ".gambit")
    stockfish_path: str | None = Field(
        default=None,
        validation_alias=AliasChoices("GAMBIT_STOCKFISH_PATH", "STOCKFISH_PATH"),
    )

    model_config = SettingsConfigDict(env_prefix="GAMBIT_")


settings = GambitSettings()
