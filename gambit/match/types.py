"""Domain types shared by the rules adapter, engine bridge and orchestrator."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Color(str, Enum):
    """Side of the board. ``first`` plays White and moves first."""

    FIRST = "first"
    SECOND = "second"

    @property
    def opposite(self) -> Color:
        return Color.SECOND if self is Color.FIRST else Color.FIRST


class OverReason(str, Enum):
    CHECKMATE = "checkmate"
    STALEMATE = "stalemate"
    DRAW = "draw"
    RESIGNATION = "resignation"


@dataclass(frozen=True)
class MoveDetail:
    """A single legal move, in every notation a renderer might want.

    Args:
        uci: Coordinate notation (e.g. "e2e4", "e7e8q")
        san: Standard algebraic notation relative to the position it was played in
        from_square: Origin square name (e.g. "e2")
        to_square: Destination square name (e.g. "e4")
        promotion: Promotion piece letter ("q", "r", "b", "n") or None
        piece: Moving piece letter, uppercase for White ("P", "n", ...)
    """

    uci: str
    san: str
    from_square: str
    to_square: str
    promotion: str | None = None
    piece: str | None = None

    def to_dict(self) -> dict[str, str | None]:
        return {
            "uci": self.uci,
            "san": self.san,
            "from": self.from_square,
            "to": self.to_square,
            "promotion": self.promotion,
            "piece": self.piece,
        }


@dataclass(frozen=True)
class PositionStatus:
    """Derived status flags for a position."""

    turn: Color
    in_check: bool = False
    is_checkmate: bool = False
    is_stalemate: bool = False
    is_draw: bool = False

    @property
    def is_game_over(self) -> bool:
        return self.is_checkmate or self.is_stalemate or self.is_draw

    @property
    def over_reason(self) -> OverReason | None:
        if self.is_checkmate:
            return OverReason.CHECKMATE
        if self.is_stalemate:
            return OverReason.STALEMATE
        if self.is_draw:
            return OverReason.DRAW
        return None

    @property
    def winner(self) -> Color | None:
        """The side that delivered mate, if any."""
        # the mated side is the one to move
        return self.turn.opposite if self.is_checkmate else None
