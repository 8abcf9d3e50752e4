from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryDeadlineExceeded(TimeoutError):
    def __init__(self, deadline: float, attempts: int) -> None:
        super().__init__(f"gave up after {attempts} attempt(s): {deadline:.1f}s deadline exceeded")
        self.deadline = deadline
        self.attempts = attempts


def _never(exc: BaseException) -> bool:
    return False


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff: retry ``n`` waits ``base_delay * multiplier ** (n - 1)`` seconds."""

    max_retries: int = 3
    base_delay: float = 2.0
    multiplier: float = 2.0
    retry_on: Callable[[BaseException], bool] = _never

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            msg = "max_retries must be >= 0"
            raise ValueError(msg)
        if self.base_delay < 0:
            msg = "base_delay must be >= 0"
            raise ValueError(msg)
        if self.multiplier < 1:
            msg = "multiplier must be >= 1"
            raise ValueError(msg)

    def delay_for(self, retry_number: int) -> float:
        if retry_number < 1:
            msg = "retry_number starts at 1"
            raise ValueError(msg)
        return self.base_delay * self.multiplier ** (retry_number - 1)


def call_with_retry(
    func: Callable[[float], T],
    policy: RetryPolicy,
    *,
    deadline: float,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> T:
    """Call ``func(remaining_seconds)`` until it succeeds, the policy gives up or ``deadline`` elapses.

    Non-retryable errors and the last retryable error are re-raised unchanged.
    ``RetryDeadlineExceeded`` is raised when no time is left for another attempt,
    regardless of how many retries the policy still allows, and when an attempt
    finishes, successfully or not, after the deadline has passed.
    """
    started = clock()
    attempts = 0
    while True:
        remaining = deadline - (clock() - started)
        if remaining <= 0:
            raise RetryDeadlineExceeded(deadline, attempts)

        attempts += 1
        try:
            result = func(remaining)
        except Exception as exc:
            if clock() - started >= deadline:
                raise RetryDeadlineExceeded(deadline, attempts) from exc

            retries_used = attempts - 1
            if retries_used >= policy.max_retries or not policy.retry_on(exc):
                raise

            delay = policy.delay_for(retries_used + 1)
            remaining = deadline - (clock() - started)
            if delay >= remaining:
                raise RetryDeadlineExceeded(deadline, attempts) from exc

            logger.warning(
                "Attempt %d failed (%s), retrying in %.1fs (%d of %d retries)",
                attempts,
                exc,
                delay,
                retries_used + 1,
                policy.max_retries,
            )
            sleep(delay)
            continue

        if clock() - started > deadline:
            raise RetryDeadlineExceeded(deadline, attempts)
        return result


__all__ = ["RetryDeadlineExceeded", "RetryPolicy", "call_with_retry"]
