"""Tests for the match journal."""

from __future__ import annotations

import json

from gambit.match.journal import MatchEvent, MoveJournal


class TestMoveJournal:
    """Tests for MoveJournal."""

    def test_record_and_read(self, tmp_path):
        journal = MoveJournal(tmp_path / "logs")
        journal.record(MatchEvent(event="move", participant_id="alice", opponent_id="bob",
                                  uci="e2e4", san="e4"))
        journal.record(MatchEvent(event="move", participant_id="bob", opponent_id="alice",
                                  uci="e7e5", san="e5", automated=True))

        events = journal.read()

        assert [e.san for e in events] == ["e4", "e5"]
        assert events[1].automated
        assert events[0].timestamp.tzinfo is not None

    def test_lines_are_json(self, tmp_path):
        journal = MoveJournal(tmp_path)
        journal.record(MatchEvent(event="resigned", participant_id="alice", opponent_id="bob",
                                  reason="resignation"))

        lines = journal.log_file.read_text(encoding="utf-8").splitlines()
        data = json.loads(lines[0])
        assert data["event"] == "resigned"
        assert data["reason"] == "resignation"

    def test_filter_and_limit(self, tmp_path):
        journal = MoveJournal(tmp_path)
        for i in range(5):
            journal.record(MatchEvent(event="move", participant_id="alice", opponent_id="bob",
                                      details={"ply": i}))
        journal.record(MatchEvent(event="move", participant_id="carol", opponent_id="dave"))

        assert len(journal.read(participant_id="bob")) == 5
        assert len(journal.read(participant_id="dave")) == 1
        assert [e.details["ply"] for e in journal.read(participant_id="alice", limit=2)] == [3, 4]

    def test_skips_bad_lines(self, tmp_path):
        journal = MoveJournal(tmp_path)
        journal.log_file.write_text("garbage\n\n", encoding="utf-8")
        journal.record(MatchEvent(event="move", participant_id="a", opponent_id="b"))
        assert len(journal.read()) == 1

    def test_missing_file(self, tmp_path):
        assert MoveJournal(tmp_path).read() == []

    def test_write_failure_is_swallowed(self, tmp_path):
        journal = MoveJournal(tmp_path)
        journal.log_file.mkdir()
        journal.record(MatchEvent(event="move", participant_id="a", opponent_id="b"))
