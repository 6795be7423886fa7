"""Chess rules adapter backed by python-chess.

Positions travel through the system as FEN strings (position keys). Every
method here rebuilds a ``chess.Board`` from the key, so the adapter holds no
state and never touches storage or the network.
"""

from __future__ import annotations

import chess
from loguru import logger

from gambit.match.errors import IllegalMove
from gambit.match.types import Color, MoveDetail, PositionStatus


class IllegalPosition(ValueError):
    """Raised when a position key is not a valid chess position."""


class ChessRules:
    """
    Stateless chess rules facade.

    Move input format: standard algebraic notation ("Nf3", "O-O", "exd5",
    "e8=Q") or coordinate notation ("g1f3", "e2-e4", "e7e8q"). SAN is tried
    first so that an exact standard-notation match always wins over the
    coordinate fallback.
    """

    def new_position(self, initial: str | None = None) -> str:
        """
        Create a position key.

        Args:
            initial: Optional FEN to start from (standard start if omitted)

        Returns:
            Normalised FEN string

        Raises:
            IllegalPosition: If the FEN cannot be parsed or is not a legal setup
        """
        if initial is None:
            return chess.Board().fen()
        return self._board(initial).fen()

    def apply_move(self, position_key: str, move_text: str) -> tuple[str, MoveDetail]:
        """
        Apply a move to a position.

        Args:
            position_key: FEN of the current position
            move_text: Move in SAN or coordinate notation

        Returns:
            Tuple of (new position key, detail of the move played)

        Raises:
            IllegalMove: If the text does not resolve to a legal move
        """
        board = self._board(position_key)
        move = self._parse(board, move_text)
        detail = self._describe(board, move)
        board.push(move)
        logger.debug(f"match.rules.apply_move move={detail.uci} san={detail.san}")
        return board.fen(), detail

    def legal_moves(self, position_key: str) -> list[MoveDetail]:
        """Return every legal move in the position."""
        board = self._board(position_key)
        return [self._describe(board, move) for move in board.legal_moves]

    def has_legal_moves(self, position_key: str) -> bool:
        board = self._board(position_key)
        return any(True for _ in board.legal_moves)

    def status(self, position_key: str) -> PositionStatus:
        """
        Compute status flags for a position.

        A draw is insufficient material or the fifty-move rule; repetition
        cannot be detected from a single FEN.
        """
        board = self._board(position_key)
        is_checkmate = board.is_checkmate()
        is_stalemate = board.is_stalemate()
        is_draw = not (is_checkmate or is_stalemate) and (
            board.is_insufficient_material() or board.is_fifty_moves()
        )
        return PositionStatus(
            turn=Color.FIRST if board.turn == chess.WHITE else Color.SECOND,
            in_check=board.is_check(),
            is_checkmate=is_checkmate,
            is_stalemate=is_stalemate,
            is_draw=is_draw,
        )

    def coerce_move(self, position_key: str, uci: str) -> MoveDetail:
        """
        Normalise an engine-produced coordinate move.

        A pawn reaching the last rank without a promotion piece promotes to a
        queen.

        Raises:
            IllegalMove: If the move is not legal in the position
        """
        board = self._board(position_key)
        try:
            move = chess.Move.from_uci(uci.strip())
        except ValueError as e:
            raise IllegalMove(uci, position_key) from e
        move = self._with_default_promotion(board, move)
        if not move or not board.is_legal(move):
            raise IllegalMove(uci, position_key)
        return self._describe(board, move)

    def _board(self, position_key: str) -> chess.Board:
        try:
            board = chess.Board(position_key)
        except ValueError as e:
            raise IllegalPosition(f"Invalid position key {position_key!r}: {e}") from e
        if not board.is_valid():
            raise IllegalPosition(f"Invalid position key {position_key!r}: {board.status()!r}")
        return board

    def _parse(self, board: chess.Board, move_text: str) -> chess.Move:
        text = (move_text or "").strip()
        if not text:
            raise IllegalMove(move_text, board.fen())

        try:
            move = board.parse_san(text)
            if move:
                return move
        except ValueError:
            logger.debug(f"match.rules.parse san_failed text={text}")

        coordinate = text.replace("-", "").lower()
        try:
            move = chess.Move.from_uci(coordinate)
        except ValueError as e:
            raise IllegalMove(move_text, board.fen()) from e

        move = self._with_default_promotion(board, move)
        if not move or not board.is_legal(move):
            raise IllegalMove(move_text, board.fen())
        return move

    @staticmethod
    def _with_default_promotion(board: chess.Board, move: chess.Move) -> chess.Move:
        if move.promotion is not None or not move:
            return move
        if board.piece_type_at(move.from_square) != chess.PAWN:
            return move
        if chess.square_rank(move.to_square) not in (0, 7):
            return move
        return chess.Move(move.from_square, move.to_square, promotion=chess.QUEEN)

    @staticmethod
    def _describe(board: chess.Board, move: chess.Move) -> MoveDetail:
        piece = board.piece_at(move.from_square)
        return MoveDetail(
            uci=move.uci(),
            san=board.san(move),
            from_square=chess.square_name(move.from_square),
            to_square=chess.square_name(move.to_square),
            promotion=chess.piece_symbol(move.promotion) if move.promotion else None,
            piece=piece.symbol() if piece else None,
        )
