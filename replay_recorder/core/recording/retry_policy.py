"""
Retry Policy - Backoff between OBS connection attempts.

OBS is often started after the recorder, so the first connection attempt
is expected to fail. A wrong password is not: the connection aborts the
policy and the remaining attempts are skipped.
"""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional

from replay_recorder.core.logging_utils import get_module_logger

logger = get_module_logger("RetryPolicy")


class RetryOutcome(Enum):
    SUCCESS = "success"
    EXHAUSTED = "exhausted"
    ABORTED = "aborted"


@dataclass
class RetryResult:
    outcome: RetryOutcome
    attempt_count: int
    final_error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.outcome is RetryOutcome.SUCCESS


class RetryPolicy:
    """
    Runs a connect attempt until it succeeds, is aborted or runs out of tries.

    Usage:
        policy = RetryPolicy(max_attempts=3, base_delay=1.0)
        result = await policy.execute(lambda: connection.try_connect(url))
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        backoff_factor: float = 2.0,
        jitter: float = 0.1,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.backoff_factor = backoff_factor
        self.jitter = jitter
        self._sleep = sleep
        self._aborted = False

    def abort(self) -> None:
        """Skip the remaining attempts of the current run."""
        self._aborted = True

    def get_delay(self, attempt: int) -> float:
        """Delay in seconds before ``attempt`` (1-based), jitter applied."""
        if attempt <= 1:
            return 0.0

        delay = min(self.base_delay * (self.backoff_factor ** (attempt - 2)), self.max_delay)
        if self.jitter > 0:
            jitter_range = delay * self.jitter
            delay += random.uniform(-jitter_range, jitter_range)
        return max(0.0, delay)

    async def execute(
        self,
        operation: Callable[[], Awaitable[bool]],
        on_retry: Optional[Callable[[int, Optional[str]], None]] = None,
    ) -> RetryResult:
        """Run ``operation`` until it returns True; exceptions count as failures."""
        self._aborted = False
        last_error: Optional[str] = None
        attempts = 0

        for attempt in range(1, self.max_attempts + 1):
            if self._aborted:
                return RetryResult(RetryOutcome.ABORTED, attempts, last_error)

            if attempt > 1:
                if on_retry:
                    on_retry(attempt, last_error)
                await self._sleep(self.get_delay(attempt))

            attempts += 1
            try:
                if await operation():
                    return RetryResult(RetryOutcome.SUCCESS, attempts)
                last_error = "Operation returned False"
            except Exception as e:
                last_error = str(e) or type(e).__name__

            logger.debug("Attempt %d/%d failed: %s", attempt, self.max_attempts, last_error)

        if self._aborted:
            return RetryResult(RetryOutcome.ABORTED, attempts, last_error)
        return RetryResult(RetryOutcome.EXHAUSTED, attempts, last_error)
