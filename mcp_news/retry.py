from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, TypeVar

from .config import NewsConfig
from .exceptions import NewsFetchError
from .models import AttemptOutcome, RetryAttempt
from .trace import Trace

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_timeout: float = 60.0
    timeout_step: float = 15.0
    backoff: float = 1.0

    @classmethod
    def from_config(cls, config: NewsConfig) -> "RetryPolicy":
        return cls(
            max_attempts=config.max_attempts,
            base_timeout=config.base_timeout,
            timeout_step=config.timeout_step,
            backoff=config.backoff,
        )

    def timeout_for(self, attempt: int) -> float:
        """Per-attempt deadline; later attempts get longer to ride out cold starts."""
        return self.base_timeout + (attempt - 1) * self.timeout_step

    def delay_for(self, attempt: int) -> float:
        return self.backoff * attempt


async def call_with_retry(
    operation: Callable[[float], Awaitable[T]],
    policy: RetryPolicy,
    trace: Trace,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    attempts: Optional[List[RetryAttempt]] = None,
) -> T:
    """
    Run ``operation(timeout)`` up to ``policy.max_attempts`` times, sequentially.

    Only errors flagged ``retryable`` (network, timeout, HTTP 5xx) are retried,
    with a linear backoff sleep between attempts. The last error propagates.
    Cancellation propagates from the operation and from the sleep.
    """
    if attempts is None:
        attempts = []
    for number in range(1, policy.max_attempts + 1):
        timeout = policy.timeout_for(number)
        trace.network(f"Attempt {number}/{policy.max_attempts} (timeout {timeout:g}s)")
        try:
            result = await operation(timeout)
        except NewsFetchError as e:
            last = number == policy.max_attempts
            if e.retryable and not last:
                attempts.append(RetryAttempt(number, timeout, AttemptOutcome.RETRYABLE_FAILURE, str(e)))
                delay = policy.delay_for(number)
                trace.warning(f"Attempt {number} failed ({e.reason}): {e}. Retrying in {delay:g}s")
                await sleep(delay)
                continue
            attempts.append(RetryAttempt(number, timeout, AttemptOutcome.TERMINAL_FAILURE, str(e)))
            if e.retryable:
                trace.error(f"Attempt {number} failed ({e.reason}): {e}. No attempts left")
            else:
                trace.error(f"Attempt {number} failed ({e.reason}): {e}. Not retryable")
            raise
        except Exception as e:
            attempts.append(RetryAttempt(number, timeout, AttemptOutcome.TERMINAL_FAILURE, str(e)))
            trace.error(f"Attempt {number} failed unexpectedly ({type(e).__name__}): {e}")
            raise
        attempts.append(RetryAttempt(number, timeout, AttemptOutcome.SUCCESS))
        trace.success(f"Attempt {number} succeeded")
        return result
    raise AssertionError("unreachable: max_attempts must be >= 1")  # pragma: no cover
