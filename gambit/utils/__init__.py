"""Utility functions for gambit."""

from gambit.utils.atomic_file import atomic_write_json, quarantine

__all__ = ["atomic_write_json", "quarantine"]
