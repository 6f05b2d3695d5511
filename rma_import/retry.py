from collections.abc import Callable
from dataclasses import dataclass
import time
from typing import TypeVar


T = TypeVar("T")


class RetryExhaustedError(RuntimeError):
    pass


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int
    retry_on: tuple[type[Exception], ...]
    backoff_seconds: float = 0.0

    def should_retry(self, exc: Exception, attempt: int) -> bool:
        return attempt <= self.max_retries and isinstance(exc, self.retry_on)


def run_with_retries(
    fn: Callable[[int], T],
    *,
    policy: RetryPolicy,
    on_attempt_failure: Callable[[int, Exception], None] | None = None,
) -> T:
    """Call ``fn(attempt)`` until it succeeds or the policy stops retrying.

    Only exceptions listed in ``policy.retry_on`` are retried. The last error
    is chained onto the ``RetryExhaustedError``.
    """
    attempt = 1
    while True:
        try:
            return fn(attempt)
        except Exception as exc:
            if on_attempt_failure:
                on_attempt_failure(attempt, exc)
            if not policy.should_retry(exc, attempt):
                raise RetryExhaustedError(str(exc)) from exc
            if policy.backoff_seconds:
                time.sleep(policy.backoff_seconds * attempt)
            attempt += 1
