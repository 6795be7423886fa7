"""Match state, rules and orchestration."""

from gambit.match.challenges import ChallengeRecord, ChallengeRegistry
from gambit.match.errors import (
    EngineError,
    EngineTimeout,
    EngineUnavailable,
    IllegalMove,
    MatchAlreadyExists,
    MatchError,
    NoActiveMatch,
    NoLegalMoves,
    NotYourTurn,
    StorageCorrupt,
    StorageIOError,
)
from gambit.match.journal import MatchEvent, MoveJournal
from gambit.match.orchestrator import (
    MatchOrchestrator,
    MatchStart,
    MoveOutcome,
    MoveSource,
    ResignOutcome,
    TurnOutcome,
)
from gambit.match.rules import ChessRules, IllegalPosition
from gambit.match.store import MatchRecord, MatchStore
from gambit.match.types import Color, MoveDetail, OverReason, PositionStatus

__all__ = [
    "ChallengeRecord",
    "ChallengeRegistry",
    "ChessRules",
    "Color",
    "EngineError",
    "EngineTimeout",
    "EngineUnavailable",
    "IllegalMove",
    "IllegalPosition",
    "MatchAlreadyExists",
    "MatchError",
    "MatchEvent",
    "MatchOrchestrator",
    "MatchRecord",
    "MatchStart",
    "MatchStore",
    "MoveDetail",
    "MoveJournal",
    "MoveOutcome",
    "MoveSource",
    "NoActiveMatch",
    "NoLegalMoves",
    "NotYourTurn",
    "OverReason",
    "PositionStatus",
    "ResignOutcome",
    "StorageCorrupt",
    "StorageIOError",
    "TurnOutcome",
]
