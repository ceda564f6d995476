"""Retry with multiplicative backoff for fallible portal calls."""

import sys
import time
from typing import Callable, Optional, Tuple, Type, TypeVar

from .models import DEFAULT_RETRY_POLICY, RetryPolicy

T = TypeVar("T")


def execute(
    policy: Optional[RetryPolicy],
    operation: Callable[[], T],
    *,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    label: Optional[str] = None,
    sleep: Optional[Callable[[float], None]] = None,
) -> T:
    """Call *operation* until it succeeds or *policy* runs out of attempts.

    After failed attempt ``n`` the executor waits
    ``initial_delay * backoff_multiplier ** (n - 1)`` seconds. When every
    attempt fails, the last exception is re-raised as is. Exceptions outside
    *retry_on* are never retried.
    """
    if policy is None:
        policy = DEFAULT_RETRY_POLICY
    if sleep is None:
        sleep = time.sleep

    attempt = 1
    while True:
        try:
            return operation()
        except retry_on as exc:
            if attempt >= policy.max_attempts:
                raise
            delay = policy.delay_for(attempt)
            if label:
                print(
                    f"{label} failed (attempt {attempt}/{policy.max_attempts}): {exc}. "
                    f"Retrying in {delay:g}s...",
                    file=sys.stderr,
                )
            sleep(delay)
            attempt += 1
