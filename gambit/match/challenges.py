"""Pending challenge tracking with expiry."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Callable

from loguru import logger


@dataclass(frozen=True)
class ChallengeRecord:
    challenger_id: str
    challenged_id: str
    created_at: float

    def involves(self, participant_id: str) -> bool:
        return participant_id in (self.challenger_id, self.challenged_id)


class ChallengeRegistry:
    """
    In-memory registry of pending challenges, keyed by the challenged participant.

    Every mutation runs synchronously on the event loop without awaiting, so
    the periodic sweep can never interleave with ``propose`` or ``accept``.

    Args:
        expiry_s: Age after which a pending challenge lapses
        sweep_interval_s: Delay between background sweeps
        clock: Time source returning epoch seconds
    """

    def __init__(
        self,
        expiry_s: float = 300.0,
        sweep_interval_s: float = 60.0,
        clock: Callable[[], float] = time.time,
    ):
        self.expiry_s = expiry_s
        self.sweep_interval_s = sweep_interval_s
        self._clock = clock
        self._pending: dict[str, ChallengeRecord] = {}
        self._task: asyncio.Task | None = None

    def propose(self, challenger_id: str, challenged_id: str) -> bool:
        """
        Register a challenge.

        Returns:
            False if either participant is already part of a pending challenge
            (or both ids are the same), True if the challenge was created
        """
        if challenger_id == challenged_id:
            return False
        for challenge in self._pending.values():
            if challenge.involves(challenger_id) or challenge.involves(challenged_id):
                return False

        self._pending[challenged_id] = ChallengeRecord(
            challenger_id=challenger_id,
            challenged_id=challenged_id,
            created_at=self._clock(),
        )
        logger.info(f"match.challenges.propose challenger={challenger_id} challenged={challenged_id}")
        return True

    def accept(self, challenged_id: str) -> ChallengeRecord | None:
        """Consume and return the challenge addressed to a participant, if still valid."""
        challenge = self._pending.pop(challenged_id, None)
        if challenge is None:
            return None
        if self._expired(challenge, self._clock()):
            logger.info(f"match.challenges.accept expired challenged={challenged_id}")
            return None
        logger.info(
            f"match.challenges.accept challenger={challenge.challenger_id} challenged={challenged_id}"
        )
        return challenge

    def cancel(self, participant_id: str) -> bool:
        """Remove the pending challenge the participant is part of, on either side."""
        for key, challenge in list(self._pending.items()):
            if challenge.involves(participant_id):
                del self._pending[key]
                logger.info(f"match.challenges.cancel participant={participant_id}")
                return True
        return False

    def get(self, participant_id: str) -> ChallengeRecord | None:
        for challenge in self._pending.values():
            if challenge.involves(participant_id):
                return challenge
        return None

    def pending(self) -> list[ChallengeRecord]:
        return list(self._pending.values())

    def sweep(self) -> int:
        """
        Remove expired challenges.

        Returns:
            Number of challenges removed
        """
        now = self._clock()
        expired = [key for key, c in self._pending.items() if self._expired(c, now)]
        for key in expired:
            del self._pending[key]
        if expired:
            logger.info(f"match.challenges.sweep expired={len(expired)}")
        return len(expired)

    def _expired(self, challenge: ChallengeRecord, now: float) -> bool:
        return now - challenge.created_at > self.expiry_s

    # ---------------- Background sweep -----------------
    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self._sweep_loop())
            logger.debug(f"match.challenges.start interval={self.sweep_interval_s}s")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.debug("match.challenges.stop")

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval_s)
            self.sweep()

    async def __aenter__(self) -> ChallengeRegistry:
        self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        await self.stop()
        return False
