"""Crash-safe file writes and quarantine for the JSON state files."""

import json
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any


def atomic_write_json(path: Path | str, data: Any) -> None:
    """
    Write JSON so that readers only ever see the old or the new content.

    The payload goes to a temporary file in the same directory, is fsynced,
    then renamed over the target.

    Args:
        path: Destination file
        data: JSON-serialisable payload
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def quarantine(path: Path | str) -> Path:
    """
    Move an unreadable file aside with a timestamp suffix.

    Args:
        path: File to move

    Returns:
        The new location of the file
    """
    path = Path(path)
    stamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    target = path.with_name(f"{path.name}.corrupt-{stamp}")
    counter = 1
    while target.exists():
        target = path.with_name(f"{path.name}.corrupt-{stamp}-{counter}")
        counter += 1
    os.replace(path, target)
    return target
