"""Durable match state store.

Matches are kept as mirror pairs: one record per participant, both pointing
at each other and sharing the same position. The whole store lives in one
JSON object keyed by participant id, and every mutation rewrites it before
returning.
"""

from __future__ import annotations

import asyncio
import json
import random
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from gambit.config.loader import convert_keys, convert_to_camel
from gambit.engines.difficulty import resolve_tier
from gambit.match.errors import (
    MatchAlreadyExists,
    NoActiveMatch,
    StorageCorrupt,
    StorageIOError,
)
from gambit.match.rules import ChessRules
from gambit.match.types import Color
from gambit.utils.atomic_file import atomic_write_json, quarantine

_RULES = ChessRules()

# Fields copied onto the opponent's record on every update
MIRRORED_FIELDS = frozenset({"position_key", "last_move_san", "last_move_at", "difficulty"})
IMMUTABLE_FIELDS = frozenset({"participant_id", "opponent", "color"})


class MatchRecord(BaseModel):
    """
    One participant's view of a match.

    The position must be a legal chess setup and the difficulty a known tier;
    aliases are normalised to the canonical tier name.

    Args:
        participant_id: Owner of this record (the JSON key, not stored in the body)
        opponent: The other participant's id
        color: Side this participant plays
        position_key: FEN of the current position, identical on both mirrors
        difficulty: Difficulty tier name for the automated opponent
        channel_ref: Opaque handle to the participant's chat surface
        last_move_at: ISO-8601 timestamp of the last move
        last_move_san: SAN of the last move
    """

    model_config = ConfigDict(frozen=True)

    participant_id: str = Field(exclude=True)
    position_key: str
    color: Color
    opponent: str
    channel_ref: str | None = None
    difficulty: str
    last_move_at: str | None = None
    last_move_san: str | None = None

    @field_validator("position_key")
    @classmethod
    def _check_position(cls, value: str) -> str:
        _RULES.new_position(value)
        return value

    @field_validator("difficulty")
    @classmethod
    def _canonical_difficulty(cls, value: str) -> str:
        # legacy aliases are stored under their canonical tier name
        return resolve_tier(value).name


class MatchStore:
    """
    JSON-file backed store of mirror-pair match records.

    Reads are served from memory. Writes are serialised by a lock, flushed to
    disk off the event loop, and only become visible once the flush succeeded.

    Args:
        path: Location of the JSON file
        rng: Random source for colour assignment
    """

    def __init__(self, path: Path | str, rng: random.Random | None = None):
        self.path = Path(path)
        self._rng = rng or random.Random()
        self._lock = asyncio.Lock()
        self._records: dict[str, MatchRecord] = {}
        self._load()

    def get(self, participant_id: str) -> MatchRecord | None:
        return self._records.get(participant_id)

    def has_match(self, id_a: str, id_b: str) -> bool:
        """Check whether the two participants currently play each other."""
        a, b = self._records.get(id_a), self._records.get(id_b)
        return (a is not None and a.opponent == id_b) or (b is not None and b.opponent == id_a)

    def records(self) -> dict[str, MatchRecord]:
        """Snapshot of all records keyed by participant id."""
        return dict(self._records)

    def __len__(self) -> int:
        return len(self._records)

    async def create_pair(
        self,
        id_a: str,
        id_b: str,
        difficulty: str,
        position_key: str,
    ) -> tuple[str, str, str]:
        """
        Create both mirror records for a new match.

        The first colour goes to id_a or id_b with equal probability.

        Returns:
            Tuple of (first_id, second_id, position_key)

        Raises:
            ValueError: If both ids are the same
            MatchAlreadyExists: If either participant already has a record
            StorageIOError: If the store cannot be flushed
        """
        if id_a == id_b:
            raise ValueError("A participant cannot play against themselves")

        async with self._lock:
            for pid in (id_a, id_b):
                if pid in self._records:
                    raise MatchAlreadyExists(pid)

            first_id, second_id = (id_a, id_b) if self._rng.random() < 0.5 else (id_b, id_a)
            records = dict(self._records)
            records[first_id] = MatchRecord(
                participant_id=first_id,
                opponent=second_id,
                color=Color.FIRST,
                position_key=position_key,
                difficulty=difficulty,
            )
            records[second_id] = MatchRecord(
                participant_id=second_id,
                opponent=first_id,
                color=Color.SECOND,
                position_key=position_key,
                difficulty=difficulty,
            )
            await self._commit(records)

        logger.info(f"match.store.create_pair first={first_id} second={second_id}")
        return first_id, second_id, position_key

    async def update(self, participant_id: str, **patch: Any) -> MatchRecord:
        """
        Patch a participant's record and mirror shared fields to the opponent.

        Args:
            participant_id: Record owner
            **patch: Field values to change

        Returns:
            The updated record

        Raises:
            NoActiveMatch: If the participant has no record
            ValueError: If the patch names unknown or immutable fields
            StorageIOError: If the store cannot be flushed
        """
        unknown = {k for k in patch if k not in MatchRecord.model_fields or k in IMMUTABLE_FIELDS}
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        async with self._lock:
            current = self._records.get(participant_id)
            if current is None:
                raise NoActiveMatch(participant_id)

            records = dict(self._records)
            updated = self._patched(current, patch)
            records[participant_id] = updated

            shared = {k: v for k, v in patch.items() if k in MIRRORED_FIELDS}
            mirror = records.get(current.opponent)
            if shared and mirror is not None:
                records[current.opponent] = self._patched(mirror, shared)

            await self._commit(records)

        logger.debug(f"match.store.update participant={participant_id} fields={sorted(patch)}")
        return updated

    async def remove_pair(self, participant_id: str) -> MatchRecord:
        """
        Delete both mirror records of a participant's match.

        Returns:
            The participant's removed record

        Raises:
            NoActiveMatch: If the participant has no record
            StorageIOError: If the store cannot be flushed
        """
        async with self._lock:
            current = self._records.get(participant_id)
            if current is None:
                raise NoActiveMatch(participant_id)

            records = dict(self._records)
            del records[participant_id]
            mirror = records.get(current.opponent)
            if mirror is not None and mirror.opponent == participant_id:
                del records[current.opponent]

            await self._commit(records)

        logger.info(f"match.store.remove_pair participant={participant_id} opponent={current.opponent}")
        return current

    @staticmethod
    def _patched(record: MatchRecord, patch: dict[str, Any]) -> MatchRecord:
        data = record.model_dump()
        data.update(patch)
        return MatchRecord.model_validate({**data, "participant_id": record.participant_id})

    async def _commit(self, records: dict[str, MatchRecord]) -> None:
        """
        Flush the candidate state, then make it current.

        Once started, a flush runs to completion even if the caller is
        cancelled; the new state is swapped in before the cancellation is
        re-raised so memory never falls behind the file.
        """
        payload = self._serialize(records)
        loop = asyncio.get_running_loop()
        flush = loop.run_in_executor(None, atomic_write_json, self.path, payload)
        cancelled = False
        while True:
            try:
                await asyncio.shield(flush)
                break
            except asyncio.CancelledError:
                if flush.done():
                    raise
                cancelled = True
            except OSError as e:
                logger.error(f"match.store.commit flush_failed path={self.path} error={e}")
                if cancelled:
                    raise asyncio.CancelledError() from e
                raise StorageIOError(f"Failed to write match store {self.path}: {e}") from e

        self._records = records
        if cancelled:
            logger.warning(f"match.store.commit cancelled_after_flush path={self.path}")
            raise asyncio.CancelledError()

    @staticmethod
    def _serialize(records: dict[str, MatchRecord]) -> dict[str, Any]:
        return {
            pid: convert_to_camel(record.model_dump(mode="json"))
            for pid, record in records.items()
        }

    def _load(self) -> None:
        if not self.path.exists():
            logger.info(f"match.store.load no_saved_matches path={self.path}")
            return

        try:
            text = self.path.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            text = None
        except OSError as e:
            raise StorageIOError(f"Failed to read match store {self.path}: {e}") from e

        try:
            if text is None:
                raise StorageCorrupt("file is not valid UTF-8")
            self._records = self._parse(text)
        except StorageCorrupt as e:
            self._recover(e)
            return

        logger.info(f"match.store.load loaded={len(self._records)} path={self.path}")

    def _recover(self, error: StorageCorrupt) -> None:
        """Quarantine the unreadable file and start from an empty store."""
        try:
            moved = quarantine(self.path)
            atomic_write_json(self.path, {})
        except OSError as e:
            raise StorageIOError(f"Failed to reinitialise match store {self.path}: {e}") from e
        self._records = {}
        logger.warning(
            f"match.store.load corrupt path={self.path} quarantined={moved} error={error}"
        )

    @staticmethod
    def _parse(text: str) -> dict[str, MatchRecord]:
        """
        Parse and validate the stored JSON.

        Raises:
            StorageCorrupt: On unreadable JSON, invalid records or broken mirror pairs
        """
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise StorageCorrupt(f"invalid JSON: {e}") from e
        if not isinstance(data, dict):
            raise StorageCorrupt(f"expected an object, got {type(data).__name__}")

        records: dict[str, MatchRecord] = {}
        for pid, body in data.items():
            if not isinstance(body, dict):
                raise StorageCorrupt(f"record for {pid} is not an object")
            try:
                records[pid] = MatchRecord.model_validate(
                    {**convert_keys(body), "participant_id": pid}
                )
            except ValidationError as e:
                raise StorageCorrupt(f"invalid record for {pid}: {e}") from e

        for pid, record in records.items():
            mirror = records.get(record.opponent)
            if mirror is None or mirror.opponent != pid:
                raise StorageCorrupt(f"record for {pid} has no matching mirror")
            if mirror.color == record.color or mirror.position_key != record.position_key:
                raise StorageCorrupt(f"mirror records for {pid} disagree")
        return records
