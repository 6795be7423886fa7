"""Move-search engines for the automated opponent."""

from gambit.engines.bridge import EngineBridge, resolve_engine_path
from gambit.engines.circuit_breaker import CircuitState, EngineCircuitBreaker
from gambit.engines.difficulty import DEFAULT_TIER, TIERS, DifficultyTier, resolve_tier

__all__ = [
    "CircuitState",
    "DEFAULT_TIER",
    "DifficultyTier",
    "EngineBridge",
    "EngineCircuitBreaker",
    "TIERS",
    "resolve_engine_path",
    "resolve_tier",
]
