"""
Bounded retry bookkeeping with linear backoff.

Used by webhook delivery: attempt n that fails waits n backoff units before
the next attempt, and the schedule gives up after max_retries retries.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class RetryState(str, Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"


@dataclass
class BoundedRetry:
    """
    Explicit retry state machine.

    Usage:
        retry = BoundedRetry(max_retries=2)
        while True:
            ok = await attempt()
            if ok:
                retry.record_success()
                break
            delay = retry.record_failure()
            if delay is None:
                break
            await sleep(delay)
    """

    max_retries: int = 0
    backoff_unit: float = 1.0
    attempts: int = 0
    state: RetryState = RetryState.PENDING

    @property
    def done(self) -> bool:
        return self.state != RetryState.PENDING

    def record_success(self) -> None:
        self.attempts += 1
        self.state = RetryState.SUCCEEDED

    def record_failure(self) -> Optional[float]:
        """
        Register a failed attempt

        Returns:
            Seconds to wait before the next attempt, or None once exhausted
        """
        self.attempts += 1
        if self.attempts > self.max_retries:
            self.state = RetryState.EXHAUSTED
            return None
        return self.backoff_unit * self.attempts
