"""Error taxonomy for match orchestration.

Every failure that crosses the orchestrator boundary is one of these kinds.
Callers (chat command handlers, the CLI) decide the user-facing wording.
"""

from __future__ import annotations


class MatchError(Exception):
    """Base class for all match orchestration errors."""


class IllegalMove(MatchError):
    """Raised when a move string does not resolve to a legal move."""

    def __init__(self, move_text: str, position_key: str | None = None):
        self.move_text = move_text
        self.position_key = position_key
        super().__init__(f"Illegal move: {move_text!r}")


class NotYourTurn(MatchError):
    """Raised when a participant moves while the other side is to move."""

    def __init__(self, participant_id: str, turn: str):
        self.participant_id = participant_id
        self.turn = turn
        super().__init__(f"Not {participant_id}'s turn (side to move: {turn})")


class NoActiveMatch(MatchError):
    """Raised when a participant has no match record."""

    def __init__(self, participant_id: str):
        self.participant_id = participant_id
        super().__init__(f"No active match for {participant_id}")


class MatchAlreadyExists(MatchError):
    """Raised when creating a match for a participant who already plays one."""

    def __init__(self, participant_id: str):
        self.participant_id = participant_id
        super().__init__(f"{participant_id} already has an active match")


class NoLegalMoves(MatchError):
    """Raised when a search is requested for a position without legal moves."""

    def __init__(self, position_key: str):
        self.position_key = position_key
        super().__init__(f"No legal moves in position {position_key}")


class EngineError(MatchError):
    """Base class for move-search engine failures."""


class EngineUnavailable(EngineError):
    """Raised when the engine binary cannot be started or stops responding."""


class EngineTimeout(EngineError):
    """Raised when a search exceeds its hard time budget."""

    def __init__(self, timeout_s: float):
        self.timeout_s = timeout_s
        super().__init__(f"Engine did not answer within {timeout_s:.1f}s")


class StorageCorrupt(MatchError):
    """Stored match data is unreadable. Recovered locally by the store."""


class StorageIOError(MatchError):
    """Raised when the match store cannot be flushed to disk."""
