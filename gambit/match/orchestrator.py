"""Match orchestrator: the per-match state machine.

A match is ``Active(turn)`` while its mirror records exist in the store and
becomes ``Over(reason)`` on checkmate, stalemate, draw or resignation, at
which point the records are removed. The orchestrator keeps no copies of
match state; each operation re-reads the store, mutates, and re-persists.
"""

from __future__ import annotations

import asyncio
import weakref
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Iterable, Protocol, runtime_checkable

from loguru import logger

from gambit.engines.difficulty import DEFAULT_TIER, resolve_tier
from gambit.match.challenges import ChallengeRegistry
from gambit.match.errors import EngineError, NoActiveMatch, NotYourTurn
from gambit.match.journal import MatchEvent, MoveJournal
from gambit.match.rules import ChessRules
from gambit.match.store import MatchRecord, MatchStore
from gambit.match.types import Color, MoveDetail, OverReason, PositionStatus


@runtime_checkable
class MoveSource(Protocol):
    """Anything that can pick a move for the side to move (the engine bridge)."""

    async def best_move(self, position_key: str, difficulty: Any = None) -> MoveDetail:
        ...


@dataclass(frozen=True)
class MoveOutcome:
    """Result of one applied move."""

    participant_id: str
    opponent_id: str
    move: MoveDetail
    position_key: str
    status: PositionStatus
    automated: bool = False
    over_reason: OverReason | None = None
    winner_id: str | None = None

    @property
    def is_over(self) -> bool:
        return self.over_reason is not None


@dataclass(frozen=True)
class MatchStart:
    first_id: str
    second_id: str
    position_key: str
    difficulty: str
    opening_move: MoveOutcome | None = None


@dataclass(frozen=True)
class TurnOutcome:
    """A human move plus the automated reply, if one was due."""

    move: MoveOutcome
    reply: MoveOutcome | None = None
    reply_error: EngineError | None = None


@dataclass(frozen=True)
class ResignOutcome:
    participant_id: str
    winner_id: str
    position_key: str
    reason: OverReason = OverReason.RESIGNATION


class MatchOrchestrator:
    """
    Coordinates rules, store and engine for every active match.

    Operations on the same match are serialised by a per-match lock keyed on
    the participant pair; operations on different matches never wait on
    each other.

    Args:
        rules: Rules adapter
        store: Match state store
        engine: Move source used for automated turns
        automated_participants: Ids played by the engine
        challenges: Challenge registry used to pair participants
        journal: Optional move journal
        default_difficulty: Tier used when a match is created without one
    """

    def __init__(
        self,
        rules: ChessRules,
        store: MatchStore,
        engine: MoveSource,
        automated_participants: Iterable[str] = (),
        challenges: ChallengeRegistry | None = None,
        journal: MoveJournal | None = None,
        default_difficulty: str = DEFAULT_TIER,
    ):
        self.rules = rules
        self.store = store
        self.engine = engine
        self.automated = frozenset(automated_participants)
        self.challenges = challenges or ChallengeRegistry()
        self.journal = journal
        self.default_difficulty = resolve_tier(default_difficulty).name
        self._locks: weakref.WeakValueDictionary[tuple[str, str], asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def is_automated(self, participant_id: str) -> bool:
        return participant_id in self.automated

    # ---------------- Match lifecycle -----------------
    async def create_match(
        self,
        id_a: str,
        id_b: str,
        difficulty: str | None = None,
    ) -> MatchStart:
        """
        Create a match between two participants with random colours.

        If an automated participant is assigned the first move, its opening
        move is played before returning. Should that engine call fail, the
        match stays created and the engine error propagates.

        Raises:
            MatchAlreadyExists: If either participant already has a match
            ValueError: If the difficulty is unknown or the ids are equal
        """
        tier = resolve_tier(difficulty or self.default_difficulty)

        async with self._lock_for(id_a, id_b):
            first_id, second_id, position_key = await self.store.create_pair(
                id_a, id_b, tier.name, self.rules.new_position()
            )
            logger.info(
                f"match.orchestrator.create_match first={first_id} second={second_id} "
                f"difficulty={tier.name}"
            )
            self._journal("match_started", first_id, second_id, position_key=position_key,
                          details={"difficulty": tier.name})

            opening = None
            if self.is_automated(first_id):
                opening = await self._automated_turn(self._require(first_id))

        return MatchStart(
            first_id=first_id,
            second_id=second_id,
            position_key=opening.position_key if opening else position_key,
            difficulty=tier.name,
            opening_move=opening,
        )

    async def apply_move(self, participant_id: str, move_text: str) -> MoveOutcome:
        """
        Apply a participant's (pre-resolved) move.

        Raises:
            NoActiveMatch: If the participant has no match
            NotYourTurn: If the other side is to move
            IllegalMove: If the move is not legal; the position is unchanged
        """
        async with self._locked(participant_id):
            return await self._human_turn(participant_id, move_text)

    async def apply_automated_move(self, participant_id: str) -> MoveOutcome:
        """
        Let the engine move for the automated side of a participant's match.

        The participant may be either the automated player or its human
        opponent; the side to move must be automated.

        Raises:
            NoActiveMatch: If the participant has no match
            NotYourTurn: If the side to move is not automated
            EngineUnavailable, EngineTimeout, NoLegalMoves: Engine failures;
                the position is unchanged
        """
        async with self._locked(participant_id) as record:
            turn = self.rules.status(record.position_key).turn
            mover = record if record.color == turn else self._require(record.opponent)
            if not self.is_automated(mover.participant_id):
                raise NotYourTurn(participant_id, turn.value)
            return await self._automated_turn(mover)

    async def play_turn(self, participant_id: str, move_text: str) -> TurnOutcome:
        """
        Apply a human move and, against an automated opponent, its reply.

        The human move is persisted before the engine is asked. An engine
        failure is returned in ``reply_error`` next to the applied move.
        """
        async with self._locked(participant_id):
            outcome = await self._human_turn(participant_id, move_text)
            if outcome.is_over or not self.is_automated(outcome.opponent_id):
                return TurnOutcome(move=outcome)
            try:
                reply = await self._automated_turn(self._require(outcome.opponent_id))
            except EngineError as e:
                logger.error(
                    f"match.orchestrator.play_turn reply_failed participant={participant_id} error={e}"
                )
                return TurnOutcome(move=outcome, reply_error=e)
            return TurnOutcome(move=outcome, reply=reply)

    async def resign(self, participant_id: str) -> ResignOutcome:
        """
        Resign the participant's match and remove it.

        Raises:
            NoActiveMatch: If there is no match (including a repeated resign)
        """
        async with self._locked(participant_id):
            removed = await self.store.remove_pair(participant_id)

        logger.info(f"match.orchestrator.resign participant={participant_id} winner={removed.opponent}")
        self._journal("resigned", participant_id, removed.opponent,
                      position_key=removed.position_key, reason=OverReason.RESIGNATION.value)
        return ResignOutcome(
            participant_id=participant_id,
            winner_id=removed.opponent,
            position_key=removed.position_key,
        )

    # ---------------- Queries -----------------
    def get_match(self, participant_id: str) -> MatchRecord | None:
        return self.store.get(participant_id)

    def query_turn(self, participant_id: str) -> Color:
        return self.query_status(participant_id).turn

    def query_status(self, participant_id: str) -> PositionStatus:
        return self.rules.status(self._require(participant_id).position_key)

    def legal_moves(self, participant_id: str) -> list[MoveDetail]:
        """Legal moves in the participant's match, for external move resolvers."""
        return self.rules.legal_moves(self._require(participant_id).position_key)

    # ---------------- Record metadata -----------------
    async def attach_channel(self, participant_id: str, channel_ref: str | None) -> MatchRecord:
        async with self._locked(participant_id):
            return await self.store.update(participant_id, channel_ref=channel_ref)

    async def set_difficulty(self, participant_id: str, difficulty: str) -> MatchRecord:
        tier = resolve_tier(difficulty)
        async with self._locked(participant_id):
            updated = await self.store.update(participant_id, difficulty=tier.name)
        logger.info(f"match.orchestrator.set_difficulty participant={participant_id} difficulty={tier.name}")
        return updated

    # ---------------- Challenges -----------------
    def challenge(self, challenger_id: str, challenged_id: str) -> bool:
        """Propose a match; refused while either side is playing or already challenged."""
        if self.store.get(challenger_id) or self.store.get(challenged_id):
            return False
        return self.challenges.propose(challenger_id, challenged_id)

    async def accept_challenge(
        self,
        challenged_id: str,
        difficulty: str | None = None,
    ) -> MatchStart | None:
        """Turn the challenge addressed to a participant into a match."""
        challenge = self.challenges.accept(challenged_id)
        if challenge is None:
            return None
        return await self.create_match(challenge.challenger_id, challenge.challenged_id, difficulty)

    def get_health_status(self) -> dict[str, Any]:
        """Counts for health endpoints and the CLI."""
        return {
            "active_matches": len(self.store) // 2,
            "pending_challenges": len(self.challenges.pending()),
            "challenge_sweep_running": self.challenges.running,
        }

    # ---------------- Internals -----------------
    def _require(self, participant_id: str) -> MatchRecord:
        record = self.store.get(participant_id)
        if record is None:
            raise NoActiveMatch(participant_id)
        return record

    def _lock_for(self, id_a: str, id_b: str) -> asyncio.Lock:
        key = (id_a, id_b) if id_a <= id_b else (id_b, id_a)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @asynccontextmanager
    async def _locked(self, participant_id: str) -> AsyncIterator[MatchRecord]:
        """
        Hold the lock of the participant's current match.

        The opponent is read again once the lock is held; if the match was
        replaced while waiting, the lock of the new pair is taken instead.

        Raises:
            NoActiveMatch: If the participant has no match
        """
        while True:
            opponent = self._require(participant_id).opponent
            async with self._lock_for(participant_id, opponent):
                record = self._require(participant_id)
                if record.opponent == opponent:
                    yield record
                    return
            logger.debug(
                f"match.orchestrator.lock opponent_changed participant={participant_id} "
                f"was={opponent} now={record.opponent}"
            )

    async def _human_turn(self, participant_id: str, move_text: str) -> MoveOutcome:
        record = self._require(participant_id)
        turn = self.rules.status(record.position_key).turn
        if turn != record.color:
            raise NotYourTurn(participant_id, turn.value)
        position_key, move = self.rules.apply_move(record.position_key, move_text)
        return await self._commit(record, position_key, move, automated=False)

    async def _automated_turn(self, mover: MatchRecord) -> MoveOutcome:
        try:
            suggestion = await self.engine.best_move(mover.position_key, mover.difficulty)
        except EngineError as e:
            logger.error(f"match.orchestrator.automated_move engine_failed participant={mover.participant_id} error={e}")
            raise
        position_key, move = self.rules.apply_move(mover.position_key, suggestion.uci)
        return await self._commit(mover, position_key, move, automated=True)

    async def _commit(
        self,
        mover: MatchRecord,
        position_key: str,
        move: MoveDetail,
        automated: bool,
    ) -> MoveOutcome:
        status = self.rules.status(position_key)
        over_reason = status.over_reason
        winner_id = mover.participant_id if status.is_checkmate else None

        if over_reason is not None:
            await self.store.remove_pair(mover.participant_id)
        else:
            await self.store.update(
                mover.participant_id,
                position_key=position_key,
                last_move_san=move.san,
                last_move_at=datetime.now(timezone.utc).isoformat(),
            )

        logger.info(
            f"match.orchestrator.move participant={mover.participant_id} san={move.san} "
            f"automated={automated} over={over_reason.value if over_reason else None}"
        )
        self._journal("move", mover.participant_id, mover.opponent, uci=move.uci, san=move.san,
                      position_key=position_key, automated=automated)
        if over_reason is not None:
            self._journal("game_over", mover.participant_id, mover.opponent,
                          position_key=position_key, reason=over_reason.value,
                          details={"winner": winner_id})

        return MoveOutcome(
            participant_id=mover.participant_id,
            opponent_id=mover.opponent,
            move=move,
            position_key=position_key,
            status=status,
            automated=automated,
            over_reason=over_reason,
            winner_id=winner_id,
        )

    def _journal(self, event: str, participant_id: str, opponent_id: str, **fields: Any) -> None:
        if self.journal is None:
            return
        self.journal.record(
            MatchEvent(event=event, participant_id=participant_id, opponent_id=opponent_id, **fields)
        )
