"""Configuration module for gambit."""

from gambit.config.runtime import GambitSettings, settings
from gambit.config.schema import (
    ChallengeConfig,
    Config,
    EngineConfig,
    JournalConfig,
    StoreConfig,
)
from gambit.config.loader import get_config_path, load_config, save_config

__all__ = [
    "Config",
    "EngineConfig",
    "StoreConfig",
    "ChallengeConfig",
    "JournalConfig",
    "GambitSettings",
    "settings",
    "load_config",
    "save_config",
    "get_config_path",
]
