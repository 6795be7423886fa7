"""Tests for the chess rules adapter."""

from __future__ import annotations

import chess
import pytest

from gambit.match.errors import IllegalMove
from gambit.match.rules import ChessRules, IllegalPosition
from gambit.match.types import Color, OverReason

START = chess.STARTING_FEN
FOOLS_MATE = "rnb1kbnr/pppp1ppp/8/4p3/6Pq/5P2/PPPPP2P/RNBQKBNR w KQkq - 1 3"
STALEMATE = "7k/5Q2/6K1/8/8/8/8/8 b - - 0 1"
BARE_KINGS = "8/8/8/4k3/8/8/8/4K3 w - - 0 1"
FIFTY_MOVES = "8/8/8/4k3/8/8/8/R3K3 w - - 100 80"
PROMOTION = "8/P7/8/8/8/8/8/k6K w - - 0 1"
CASTLING = "r3k2r/pppppppp/8/8/8/8/PPPPPPPP/R3K2R w KQkq - 0 1"


class TestChessRules:
    """Tests for ChessRules."""

    @pytest.fixture
    def rules(self):
        return ChessRules()

    def test_new_position_is_start(self, rules):
        assert rules.new_position() == START

    def test_new_position_from_fen(self, rules):
        assert rules.new_position(BARE_KINGS) == BARE_KINGS

    def test_new_position_rejects_garbage(self, rules):
        with pytest.raises(IllegalPosition):
            rules.new_position("not a fen")

    def test_new_position_rejects_invalid_setup(self, rules):
        """A board without kings parses but is not a legal setup."""
        with pytest.raises(IllegalPosition):
            rules.new_position("8/8/8/8/8/8/8/8 w - - 0 1")

    def test_illegal_position_is_value_error(self, rules):
        with pytest.raises(ValueError):
            rules.status("garbage")

    def test_apply_san(self, rules):
        fen, move = rules.apply_move(START, "e4")
        assert move.uci == "e2e4"
        assert move.san == "e4"
        assert move.from_square == "e2"
        assert move.to_square == "e4"
        assert move.piece == "P"
        assert rules.status(fen).turn == Color.SECOND

    def test_apply_coordinate(self, rules):
        fen, move = rules.apply_move(START, "g1f3")
        assert move.san == "Nf3"
        assert move.piece == "N"
        assert fen == chess.Board("rnbqkbnr/pppppppp/8/8/8/5N2/PPPPPPPP/RNBQKB1R b KQkq - 1 1").fen()

    @pytest.mark.parametrize("text", ["e2-e4", "E2E4", "  e4  "])
    def test_apply_move_input_variants(self, rules, text):
        _, move = rules.apply_move(START, text)
        assert move.uci == "e2e4"

    def test_san_and_coordinate_reach_same_position(self, rules):
        san_fen, _ = rules.apply_move(START, "Nc3")
        uci_fen, _ = rules.apply_move(START, "b1c3")
        assert san_fen == uci_fen

    def test_castling_san(self, rules):
        _, move = rules.apply_move(CASTLING, "O-O")
        assert move.uci == "e1g1"
        assert move.san == "O-O"

    def test_promotion_defaults_to_queen(self, rules):
        fen, move = rules.apply_move(PROMOTION, "a7a8")
        assert move.uci == "a7a8q"
        assert move.promotion == "q"
        assert chess.Board(fen).piece_at(chess.A8) == chess.Piece(chess.QUEEN, chess.WHITE)

    def test_explicit_underpromotion(self, rules):
        _, move = rules.apply_move(PROMOTION, "a8=N")
        assert move.uci == "a7a8n"
        assert move.promotion == "n"

    @pytest.mark.parametrize("text", ["e5", "e2e5", "Ke2", "xyz", "", "0000", "--"])
    def test_illegal_moves(self, rules, text):
        with pytest.raises(IllegalMove) as exc_info:
            rules.apply_move(START, text)
        assert exc_info.value.move_text == text

    def test_legal_moves_at_start(self, rules):
        moves = rules.legal_moves(START)
        assert len(moves) == 20
        assert {"e4", "Nf3", "a3"} <= {m.san for m in moves}

    def test_has_legal_moves(self, rules):
        assert rules.has_legal_moves(START)
        assert not rules.has_legal_moves(FOOLS_MATE)
        assert not rules.has_legal_moves(STALEMATE)

    def test_status_start(self, rules):
        status = rules.status(START)
        assert status.turn == Color.FIRST
        assert not status.in_check
        assert not status.is_game_over
        assert status.over_reason is None

    def test_status_checkmate(self, rules):
        status = rules.status(FOOLS_MATE)
        assert status.in_check
        assert status.is_checkmate
        assert status.over_reason == OverReason.CHECKMATE
        assert status.winner == Color.SECOND

    def test_status_stalemate(self, rules):
        status = rules.status(STALEMATE)
        assert status.is_stalemate
        assert not status.is_draw
        assert status.over_reason == OverReason.STALEMATE
        assert status.winner is None

    def test_status_insufficient_material(self, rules):
        status = rules.status(BARE_KINGS)
        assert status.is_draw
        assert status.over_reason == OverReason.DRAW

    def test_status_fifty_move_rule(self, rules):
        assert rules.status(FIFTY_MOVES).is_draw

    def test_coerce_move(self, rules):
        move = rules.coerce_move(START, "e2e4")
        assert move.san == "e4"

    def test_coerce_move_adds_queen(self, rules):
        assert rules.coerce_move(PROMOTION, "a7a8").uci == "a7a8q"

    def test_coerce_move_rejects_illegal(self, rules):
        with pytest.raises(IllegalMove):
            rules.coerce_move(START, "e2e5")
        with pytest.raises(IllegalMove):
            rules.coerce_move(START, "nonsense")

    def test_move_detail_to_dict(self, rules):
        _, move = rules.apply_move(START, "e4")
        assert move.to_dict() == {
            "uci": "e2e4",
            "san": "e4",
            "from": "e2",
            "to": "e4",
            "promotion": None,
            "piece": "P",
        }
