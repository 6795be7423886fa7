"""Append-only JSONL journal of match events."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import BaseModel, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MatchEvent(BaseModel):
    """
    A structured journal entry.

    ``event`` is one of ``match_started``, ``move``, ``game_over`` or
    ``resigned``. Move events carry the move in UCI and SAN plus the
    resulting position so a game can be replayed from the journal alone.
    """

    event: str
    participant_id: str
    opponent_id: str
    timestamp: datetime = Field(default_factory=utc_now)
    uci: str | None = None
    san: str | None = None
    position_key: str | None = None
    automated: bool = False
    reason: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)


class MoveJournal:
    """
    Writes match events to ``<log_dir>/matches.jsonl``.

    Journal failures never fail a match operation; they are logged and dropped.
    """

    FILENAME = "matches.jsonl"

    def __init__(self, log_dir: Path | str):
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.log_file = self.log_dir / self.FILENAME
        logger.info(f"match.journal.init path={self.log_file}")

    def record(self, event: MatchEvent) -> None:
        try:
            with self.log_file.open("a", encoding="utf-8") as f:
                f.write(event.model_dump_json() + "\n")
        except OSError as e:
            logger.warning(f"match.journal.record write_failed event={event.event} error={e}")

    def read(self, participant_id: str | None = None, limit: int = 100) -> list[MatchEvent]:
        """
        Read back journal entries, most recent last.

        Args:
            participant_id: Only return events involving this participant
            limit: Maximum number of entries

        Returns:
            List of MatchEvent objects
        """
        if not self.log_file.exists():
            return []

        events: list[MatchEvent] = []
        for line in self.log_file.read_text(encoding="utf-8").splitlines():
            if not line.strip():
                continue
            try:
                event = MatchEvent.model_validate_json(line)
            except ValueError:
                continue
            if participant_id and participant_id not in (event.participant_id, event.opponent_id):
                continue
            events.append(event)

        return events[-max(limit, 0):]
