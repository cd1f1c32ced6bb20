"""
Exponential backoff for opening the compositor connection.

The reconciler does not use this: its retries run on a fixed delay.
"""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Tuple, Type

from herdview.core.logging_utils import get_module_logger

logger = get_module_logger("RetryPolicy")

RetryCallback = Callable[[int, Optional[str]], None]


class RetryOutcome(Enum):
    SUCCESS = "success"
    EXHAUSTED = "exhausted"
    ABORTED = "aborted"


@dataclass
class RetryAttempt:
    attempt_number: int
    duration_ms: float
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass
class RetryResult:
    outcome: RetryOutcome
    attempts: List[RetryAttempt] = field(default_factory=list)
    total_duration_ms: float = 0.0

    @property
    def success(self) -> bool:
        return self.outcome is RetryOutcome.SUCCESS

    @property
    def attempt_count(self) -> int:
        return len(self.attempts)

    @property
    def final_error(self) -> Optional[str]:
        if self.outcome is RetryOutcome.ABORTED:
            return "Retry aborted"
        if self.attempts:
            return self.attempts[-1].error
        return None


class RetryPolicy:
    """
    Run an async operation until it succeeds, sleeping longer each time.

    The delay before attempt ``n`` (``n >= 2``) is
    ``base_delay * backoff_factor ** (n - 2)``, capped at ``max_delay`` and
    spread by ``+/- jitter`` of itself. Only exceptions listed in
    ``retry_on`` count as a failed attempt; anything else propagates.

    Usage:
        policy = RetryPolicy(max_attempts=5, retry_on=(CompositorError,))
        result = await policy.execute(client.open_socket)
        if not result.success:
            ...
    """

    def __init__(
        self,
        max_attempts: int = 5,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        backoff_factor: float = 2.0,
        jitter: float = 0.1,
        retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    ):
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.backoff_factor = backoff_factor
        self.jitter = jitter
        self.retry_on = retry_on
        self._aborted = False

    def abort(self) -> None:
        """Stop before the next attempt; the one in flight is not interrupted."""
        self._aborted = True

    def get_delay(self, attempt: int) -> float:
        if attempt <= 1:
            return 0.0
        delay = min(self.base_delay * self.backoff_factor ** (attempt - 2), self.max_delay)
        if self.jitter > 0:
            delay *= 1 + random.uniform(-self.jitter, self.jitter)
        return max(0.0, delay)

    async def execute(
        self,
        operation: Callable[[], Awaitable[object]],
        on_retry: Optional[RetryCallback] = None,
    ) -> RetryResult:
        loop = asyncio.get_running_loop()
        started = loop.time()
        attempts: List[RetryAttempt] = []
        self._aborted = False

        def finish(outcome: RetryOutcome) -> RetryResult:
            return RetryResult(outcome, attempts, (loop.time() - started) * 1000)

        for number in range(1, self.max_attempts + 1):
            if self._aborted:
                return finish(RetryOutcome.ABORTED)

            if attempts:
                delay = self.get_delay(number)
                if on_retry is not None:
                    on_retry(number, attempts[-1].error)
                logger.debug("Attempt %d/%d in %.2fs", number, self.max_attempts, delay)
                await asyncio.sleep(delay)

            attempt_started = loop.time()
            try:
                await operation()
            except self.retry_on as e:
                error = str(e) or type(e).__name__
                attempts.append(RetryAttempt(number, (loop.time() - attempt_started) * 1000, error))
                logger.debug("Attempt %d failed: %s", number, error)
                continue

            attempts.append(RetryAttempt(number, (loop.time() - attempt_started) * 1000))
            return finish(RetryOutcome.SUCCESS)

        return finish(RetryOutcome.EXHAUSTED)


__all__ = ["RetryAttempt", "RetryOutcome", "RetryPolicy", "RetryResult"]
