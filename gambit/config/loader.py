"""Configuration loading utilities."""

import json
import re
from pathlib import Path
from typing import Any, Callable

from loguru import logger
from pydantic import ValidationError

from gambit.config.schema import Config, default_data_dir


def get_config_path() -> Path:
    """Get the default configuration file path."""
    return default_data_dir() / "config.json"


def load_config(config_path: Path | None = None) -> Config:
    """
    Load configuration from file or create default.

    Args:
        config_path: Optional path to config file. Uses default if not provided.

    Returns:
        Loaded configuration object.
    """
    path = config_path or get_config_path()

    if path.exists():
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            return Config.model_validate(convert_keys(data))
        except (json.JSONDecodeError, ValidationError, OSError) as e:
            logger.warning(f"config.loader.load_config failed path={path} error={e}")
            logger.warning("config.loader.load_config using default configuration")

    return Config()


def save_config(config: Config, config_path: Path | None = None) -> None:
    """
    Save configuration to file.

    Args:
        config: Configuration to save.
        config_path: Optional path to save to. Uses default if not provided.
    """
    path = config_path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    data = convert_to_camel(config.model_dump(mode="json"))

    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def convert_keys(data: Any) -> Any:
    """Convert camelCase keys to snake_case for Pydantic."""
    return _rename_keys(data, camel_to_snake)


def convert_to_camel(data: Any) -> Any:
    """Convert snake_case keys to camelCase for the JSON files."""
    return _rename_keys(data, snake_to_camel)


def _rename_keys(data: Any, rename: Callable[[str], str]) -> Any:
    # values are walked too, so nested sections and lists of objects convert
    if isinstance(data, dict):
        return {rename(key): _rename_keys(value, rename) for key, value in data.items()}
    if isinstance(data, list):
        return [_rename_keys(item, rename) for item in data]
    return data


_UPPER = re.compile(r"(?<!^)(?=[A-Z])")
_UNDERSCORE_LETTER = re.compile(r"_([a-z0-9])")


def camel_to_snake(name: str) -> str:
    """lastMoveSan -> last_move_san"""
    return _UPPER.sub("_", name).lower()


def snake_to_camel(name: str) -> str:
    """last_move_san -> lastMoveSan"""
    return _UNDERSCORE_LETTER.sub(lambda m: m.group(1).upper(), name)
