"""Tests for the challenge registry."""

from __future__ import annotations

import asyncio

import pytest

from gambit.match.challenges import ChallengeRegistry


class FakeClock:
    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestChallengeRegistry:
    """Tests for ChallengeRegistry."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def registry(self, clock):
        return ChallengeRegistry(expiry_s=300, sweep_interval_s=60, clock=clock)

    def test_propose_and_accept(self, registry):
        assert registry.propose("alice", "bob")

        challenge = registry.accept("bob")

        assert challenge.challenger_id == "alice"
        assert challenge.challenged_id == "bob"
        assert registry.pending() == []
        assert registry.accept("bob") is None

    def test_conflicting_proposals(self, registry):
        assert registry.propose("alice", "bob")
        assert not registry.propose("alice", "carol")
        assert not registry.propose("carol", "bob")
        assert not registry.propose("bob", "dave")
        assert registry.propose("carol", "dave")

    def test_self_challenge(self, registry):
        assert not registry.propose("alice", "alice")

    def test_accept_only_by_challenged(self, registry):
        registry.propose("alice", "bob")
        assert registry.accept("alice") is None
        assert registry.get("alice").challenged_id == "bob"

    def test_expired_challenge_cannot_be_accepted(self, registry, clock):
        registry.propose("alice", "bob")
        clock.now += 301

        assert registry.accept("bob") is None
        assert registry.propose("alice", "carol")

    def test_challenge_valid_until_expiry(self, registry, clock):
        registry.propose("alice", "bob")
        clock.now += 299
        assert registry.accept("bob") is not None

    def test_cancel(self, registry):
        registry.propose("alice", "bob")
        assert registry.cancel("alice")
        assert not registry.cancel("alice")
        assert registry.get("bob") is None

    def test_sweep(self, registry, clock):
        registry.propose("alice", "bob")
        clock.now += 200
        registry.propose("carol", "dave")
        clock.now += 150

        assert registry.sweep() == 1
        assert registry.get("alice") is None
        assert registry.get("dave") is not None

    @pytest.mark.asyncio
    async def test_background_sweep(self, clock):
        registry = ChallengeRegistry(expiry_s=300, sweep_interval_s=0.01, clock=clock)
        registry.propose("alice", "bob")
        clock.now += 301

        async with registry:
            assert registry.running
            await asyncio.sleep(0.05)
            assert registry.pending() == []

        assert not registry.running

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, registry):
        registry.start()
        task = registry._task
        registry.start()
        assert registry._task is task
        await registry.stop()
        await registry.stop()
        assert not registry.running
