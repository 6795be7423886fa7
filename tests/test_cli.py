import asyncio
import json

import chess
import pytest
from typer.testing import CliRunner

from gambit.cli.main import app
from gambit.config import settings
from gambit.match.rules import ChessRules
from gambit.match.store import MatchStore
from gambit.service import build_orchestrator

runner = CliRunner()


class FirstLegalEngine:
    def __init__(self, rules):
        self.rules = rules

    async def best_move(self, position_key, difficulty=None):
        return self.rules.legal_moves(position_key)[0]


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    """Point every default path at a temporary directory."""
    monkeypatch.setattr(settings, "data_dir", tmp_path)
    monkeypatch.setattr(settings, "stockfish_path", None)
    return tmp_path


@pytest.fixture
def seeded(data_dir):
    store = MatchStore(data_dir / "games.json")
    asyncio.run(store.create_pair("alice", "bob", "advanced", chess.STARTING_FEN))
    return data_dir / "games.json"


@pytest.fixture
def fake_engine(monkeypatch):
    def build(config=None):
        orchestrator = build_orchestrator(config)
        orchestrator.engine = FirstLegalEngine(orchestrator.rules)
        return orchestrator

    monkeypatch.setattr("gambit.cli.main.build_orchestrator", build)


def test_version():
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "gambit" in result.stdout


def test_list_empty(data_dir):
    result = runner.invoke(app, ["matches", "list"])
    assert result.exit_code == 0
    assert "No active matches" in result.stdout


def test_list_json(seeded):
    result = runner.invoke(app, ["matches", "list", "--json"])

    assert result.exit_code == 0
    rows = json.loads(result.stdout)
    assert len(rows) == 1
    assert {rows[0]["participant"], rows[0]["opponent"]} == {"alice", "bob"}
    assert rows[0]["turn"] == "first"
    assert rows[0]["difficulty"] == "advanced"


def test_list_table(seeded):
    result = runner.invoke(app, ["matches", "list"])
    assert result.exit_code == 0
    assert "Active Matches" in result.stdout
    assert "alice" in result.stdout


def test_show(seeded):
    result = runner.invoke(app, ["matches", "show", "bob"])
    assert result.exit_code == 0
    assert "bob vs alice" in result.stdout
    assert "advanced" in result.stdout


def test_show_missing(data_dir):
    result = runner.invoke(app, ["matches", "show", "nobody"])
    assert result.exit_code == 1
    assert "No active match" in result.stdout


def test_resign(seeded):
    result = runner.invoke(app, ["matches", "resign", "alice"])

    assert result.exit_code == 0
    assert "bob wins" in result.stdout
    assert json.loads(seeded.read_text(encoding="utf-8")) == {}


def test_resign_missing(data_dir):
    result = runner.invoke(app, ["matches", "resign", "alice"])
    assert result.exit_code == 1


def test_history_disabled(data_dir):
    result = runner.invoke(app, ["matches", "history"])
    assert result.exit_code == 0
    assert "Journal is disabled" in result.stdout


def test_engine_tiers():
    result = runner.invoke(app, ["engine", "tiers"])
    assert result.exit_code == 0
    for name in ("beginner", "intermediate", "advanced", "master"):
        assert name in result.stdout


def test_engine_check_without_binary(data_dir, monkeypatch):
    monkeypatch.setattr("gambit.engines.bridge.shutil.which", lambda name: None)
    monkeypatch.chdir(data_dir)

    result = runner.invoke(app, ["engine", "check"])

    assert result.exit_code == 1
    assert "not found" in result.stdout


def test_engine_check_bad_difficulty(data_dir):
    result = runner.invoke(app, ["engine", "check", "--difficulty", "godlike"])
    assert result.exit_code != 0


def test_play_quit_then_resume_and_resign(data_dir, fake_engine):
    result = runner.invoke(app, ["play", "--player", "alice"], input="moves\nzz\nquit\n")

    assert result.exit_code == 0
    assert "New match vs gambit" in result.stdout
    assert "Illegal move: zz" in result.stdout
    assert "Match saved." in result.stdout
    assert MatchStore(data_dir / "games.json").get("alice").opponent == "gambit"

    result = runner.invoke(app, ["play", "--player", "alice"], input="resign\n")

    assert result.exit_code == 0
    assert "Resuming match vs gambit" in result.stdout
    assert "gambit wins" in result.stdout
    assert MatchStore(data_dir / "games.json").get("alice") is None


def test_play_a_move(data_dir, fake_engine):
    result = runner.invoke(app, ["play", "--player", "alice"], input="quit\n")
    assert result.exit_code == 0

    record = MatchStore(data_dir / "games.json").get("alice")
    move = ChessRules().legal_moves(record.position_key)[0].san

    result = runner.invoke(app, ["play", "--player", "alice"], input=f"{move}\nquit\n")

    assert result.exit_code == 0
    assert f"You played {move}." in result.stdout
    assert "gambit played" in result.stdout


def test_play_as_engine_id(data_dir):
    result = runner.invoke(app, ["play", "--player", "gambit"])
    assert result.exit_code != 0
