"""Engine bridge: turns a position into a move using a UCI search engine.

One request owns one engine subprocess. The subprocess is spawned,
configured, asked for a single search and shut down again, and it is
released on every exit path (success, engine error, timeout).
"""

from __future__ import annotations

import asyncio
import os
import random
import shutil
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

import chess
import chess.engine
from loguru import logger

from gambit.config import settings
from gambit.engines.circuit_breaker import EngineCircuitBreaker
from gambit.engines.difficulty import DifficultyTier, resolve_tier
from gambit.match.errors import (
    EngineTimeout,
    EngineUnavailable,
    IllegalMove,
    NoLegalMoves,
)
from gambit.match.rules import ChessRules
from gambit.match.types import MoveDetail

EnginePopen = Callable[[str], Awaitable[tuple[Any, Any]]]


def resolve_engine_path(candidate: str | None = None) -> str:
    """
    Locate the engine binary.

    Precedence:
      1. explicit candidate (config file)
      2. GAMBIT_STOCKFISH_PATH / STOCKFISH_PATH environment
      3. ``stockfish`` on the system PATH

    Raises:
        EngineUnavailable: If no executable can be found
    """
    candidate = candidate or settings.stockfish_path or "stockfish"
    resolved = shutil.which(candidate) or (candidate if os.path.isfile(candidate) else None)
    if not resolved:
        raise EngineUnavailable(
            f"Stockfish engine not found (candidate='{candidate}'). Install stockfish, "
            "set GAMBIT_STOCKFISH_PATH, or configure engine.path."
        )
    return resolved


@dataclass
class _EngineHandle:
    transport: Any = None
    engine: Any = None
    slot: asyncio.Semaphore | None = None


class EngineBridge:
    """
    Strength-tunable move source backed by an external UCI engine.

    Args:
        rules: Rules adapter used for legality checks and move normalisation
        engine_path: Optional explicit path to the engine binary
        timeout_grace_s: Seconds added to the tier's think time for the hard timeout
        quit_timeout_s: Seconds to wait for a clean engine shutdown before killing it
        max_concurrent: Optional cap on engine subprocesses alive at once (no cap
            if None). Waiting for a free slot counts against the hard timeout.
        breaker: Circuit breaker guarding engine launches
        rng: Random source for the randomisation draw and random move choice
        popen: Coroutine spawning an engine, returning (transport, protocol)
    """

    def __init__(
        self,
        rules: ChessRules,
        engine_path: str | None = None,
        timeout_grace_s: float = 5.0,
        quit_timeout_s: float = 2.0,
        max_concurrent: int | None = None,
        breaker: EngineCircuitBreaker | None = None,
        rng: random.Random | None = None,
        popen: EnginePopen = chess.engine.popen_uci,
    ):
        self.rules = rules
        self.engine_path = engine_path
        self.timeout_grace_s = timeout_grace_s
        self.quit_timeout_s = quit_timeout_s
        self.breaker = breaker or EngineCircuitBreaker()
        self._semaphore = asyncio.Semaphore(max_concurrent) if max_concurrent else None
        self._rng = rng or random.Random()
        self._popen = popen

    async def best_move(
        self,
        position_key: str,
        difficulty: str | DifficultyTier | None = None,
    ) -> MoveDetail:
        """
        Choose a move for the side to move.

        Args:
            position_key: FEN of the position to search
            difficulty: Tier name or tier object (default tier if None)

        Returns:
            The chosen move

        Raises:
            NoLegalMoves: If the position has no legal moves (no subprocess is spawned)
            EngineUnavailable: If the engine cannot be started or misbehaves
            EngineTimeout: If the search exceeds its hard time budget
        """
        tier = difficulty if isinstance(difficulty, DifficultyTier) else resolve_tier(difficulty)

        if not self.rules.has_legal_moves(position_key):
            logger.warning(f"engines.bridge.best_move no_legal_moves fen={position_key}")
            raise NoLegalMoves(position_key)

        if tier.randomize_probability > 0 and self._rng.random() < tier.randomize_probability:
            move = self._rng.choice(self.rules.legal_moves(position_key))
            logger.info(f"engines.bridge.best_move randomized tier={tier.name} move={move.uci}")
            return move

        return await self.breaker.call(self._search, position_key, tier)

    async def _search(self, position_key: str, tier: DifficultyTier) -> MoveDetail:
        path = resolve_engine_path(self.engine_path)
        timeout = tier.think_time_ms / 1000 + self.timeout_grace_s
        handle = _EngineHandle()
        try:
            uci = await asyncio.wait_for(self._run(handle, path, position_key, tier), timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"engines.bridge.search timeout={timeout:.1f}s tier={tier.name}")
            raise EngineTimeout(timeout) from e
        finally:
            await self._release(handle)

        try:
            move = self.rules.coerce_move(position_key, uci)
        except IllegalMove as e:
            logger.error(f"engines.bridge.search illegal_engine_move move={uci}")
            raise EngineUnavailable(f"Engine returned an illegal move: {uci}") from e

        logger.info(f"engines.bridge.best_move tier={tier.name} move={move.uci} san={move.san}")
        return move

    async def _run(
        self,
        handle: _EngineHandle,
        path: str,
        position_key: str,
        tier: DifficultyTier,
    ) -> str:
        if self._semaphore is not None:
            await self._semaphore.acquire()
            handle.slot = self._semaphore

        try:
            handle.transport, handle.engine = await self._popen(path)
            engine = handle.engine
            if "Skill Level" in engine.options:
                await engine.configure({"Skill Level": tier.skill_level})
            limit = chess.engine.Limit(
                depth=tier.search_depth,
                time=tier.think_time_ms / 1000,
            )
            result = await engine.play(chess.Board(position_key), limit)
        except (OSError, chess.engine.EngineError) as e:
            logger.error(f"engines.bridge.run engine_error={e!r} path={path}")
            raise EngineUnavailable(f"Engine failed: {e}") from e

        if result.move is None:
            raise EngineUnavailable("Engine did not return a move")
        return result.move.uci()

    async def _release(self, handle: _EngineHandle) -> None:
        """Shut the subprocess down; kill it if it does not quit in time."""
        if handle.engine is not None:
            try:
                await asyncio.wait_for(handle.engine.quit(), self.quit_timeout_s)
            except (asyncio.TimeoutError, chess.engine.EngineError, OSError) as e:
                logger.warning(f"engines.bridge.release quit_failed error={e!r}")
        try:
            if handle.transport is not None:
                handle.transport.close()
        finally:
            if handle.slot is not None:
                handle.slot.release()
                handle.slot = None
