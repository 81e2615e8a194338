"""Retry decorator with fixed or exponential backoff — stdlib only.

Job board fetches use a :func:`fixed` policy (same pause between every
attempt); LLM and mail calls use :func:`exponential`.
"""
from __future__ import annotations

import functools
import logging
import random
import time
from dataclasses import dataclass
from typing import Any, Callable, Tuple, Type

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    backoff_factor: float = 2.0
    jitter: bool = True

    def delay_for(self, attempt: int) -> float:
        """Pause before attempt ``attempt + 1`` (attempts are 1-based)."""
        delay = min(self.base_delay * (self.backoff_factor ** (attempt - 1)), self.max_delay)
        if self.jitter:
            delay *= 0.5 + random.random()
        return delay


def fixed(max_attempts: int = 3, delay: float = 2.0) -> RetryPolicy:
    return RetryPolicy(max_attempts=max_attempts, base_delay=delay, max_delay=delay,
                       backoff_factor=1.0, jitter=False)


def exponential(max_attempts: int = 3, base_delay: float = 1.0, max_delay: float = 30.0) -> RetryPolicy:
    return RetryPolicy(max_attempts=max_attempts, base_delay=base_delay, max_delay=max_delay)


def retry(
    policy: RetryPolicy | None = None,
    *,
    retryable: Tuple[Type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], None] | None = None,
) -> Callable:
    """Decorator: re-invokes the wrapped callable while it raises ``retryable``.

    The last exception propagates once ``policy.max_attempts`` is exhausted.
    ``sleep`` defaults to :func:`time.sleep`, looked up at call time so tests
    can patch it.
    """
    policy = policy or RetryPolicy()

    def decorator(fn: Callable) -> Callable:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            for attempt in range(1, policy.max_attempts + 1):
                try:
                    return fn(*args, **kwargs)
                except retryable as exc:
                    if attempt == policy.max_attempts:
                        logger.error(
                            "%s failed after %d attempts: %s",
                            fn.__qualname__, policy.max_attempts, exc,
                        )
                        raise
                    delay = policy.delay_for(attempt)
                    logger.warning(
                        "%s attempt %d/%d failed (%s), retrying in %.1fs",
                        fn.__qualname__, attempt, policy.max_attempts, exc, delay,
                    )
                    (sleep or time.sleep)(delay)
            raise RuntimeError("unreachable")  # pragma: no cover

        return wrapper

    return decorator
