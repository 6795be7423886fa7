"""Circuit breaker around engine launches."""

from __future__ import annotations

import time
from enum import Enum
from typing import Any, Awaitable, Callable

from loguru import logger

from gambit.match.errors import EngineUnavailable


class CircuitState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class EngineCircuitBreaker:
    """Fails fast with EngineUnavailable after repeated engine start failures.

    Only EngineUnavailable counts as a failure: timeouts and positions without
    legal moves say nothing about whether the binary works.
    """

    def __init__(
        self,
        failure_threshold: int = 3,
        recovery_timeout: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.state = CircuitState.CLOSED
        self.failure_count = 0
        self.last_failure_time = 0.0
        self._clock = clock

    async def call(self, func: Callable[..., Awaitable[Any]], *args: Any, **kwargs: Any) -> Any:
        if self.state == CircuitState.OPEN:
            if self._clock() - self.last_failure_time > self.recovery_timeout:
                self.state = CircuitState.HALF_OPEN
                logger.info("engines.circuit_breaker half_open")
            else:
                raise EngineUnavailable("Engine unavailable (circuit open after repeated failures)")

        try:
            result = await func(*args, **kwargs)
        except EngineUnavailable:
            self._on_failure()
            raise

        self._on_success()
        return result

    def _on_success(self) -> None:
        if self.state != CircuitState.CLOSED:
            logger.info("engines.circuit_breaker closed")
        self.state = CircuitState.CLOSED
        self.failure_count = 0

    def _on_failure(self) -> None:
        self.failure_count += 1
        self.last_failure_time = self._clock()
        if self.state == CircuitState.HALF_OPEN or self.failure_count >= self.failure_threshold:
            self.state = CircuitState.OPEN
            logger.warning(f"engines.circuit_breaker open failures={self.failure_count}")
