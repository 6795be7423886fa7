"""Wiring: build a ready-to-use orchestrator from configuration."""

from __future__ import annotations

from loguru import logger

from gambit.config import Config, load_config
from gambit.engines.bridge import EngineBridge
from gambit.engines.circuit_breaker import EngineCircuitBreaker
from gambit.match.challenges import ChallengeRegistry
from gambit.match.journal import MoveJournal
from gambit.match.orchestrator import MatchOrchestrator
from gambit.match.rules import ChessRules
from gambit.match.store import MatchStore


def build_orchestrator(config: Config | None = None) -> MatchOrchestrator:
    """
    Assemble rules, store, engine bridge, challenges and journal.

    The challenge sweep is not started here; enter ``orchestrator.challenges``
    as an async context manager (or call ``start()``) inside the event loop.

    Args:
        config: Configuration to use (loaded from disk if omitted)

    Returns:
        Configured MatchOrchestrator
    """
    config = config or load_config()
    rules = ChessRules()

    breaker = EngineCircuitBreaker(
        failure_threshold=config.engine.failure_threshold,
        recovery_timeout=config.engine.recovery_timeout_s,
    )
    engine = EngineBridge(
        rules,
        engine_path=config.engine.path,
        timeout_grace_s=config.engine.timeout_grace_s,
        quit_timeout_s=config.engine.quit_timeout_s,
        max_concurrent=config.engine.max_concurrent,
        breaker=breaker,
    )
    store = MatchStore(config.store.path)
    challenges = ChallengeRegistry(
        expiry_s=config.challenges.expiry_s,
        sweep_interval_s=config.challenges.sweep_interval_s,
    )
    journal = MoveJournal(config.journal.log_dir) if config.journal.log_dir else None

    logger.info(
        f"service.build_orchestrator store={config.store.path} "
        f"automated={config.automated_participants} journal={bool(journal)}"
    )
    return MatchOrchestrator(
        rules,
        store,
        engine,
        automated_participants=config.automated_participants,
        challenges=challenges,
        journal=journal,
        default_difficulty=config.engine.default_difficulty,
    )
