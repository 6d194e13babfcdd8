"""Bounded retries with classification-driven exponential backoff.

Wraps any unreliable zero/one-argument callable::

    from mdcapture.retry import RetryPolicy, execute_with_retry

    html = execute_with_retry(
        lambda attempt: fetch(url),
        RetryPolicy(max_attempts=3, base_delay=1.0, max_delay=10.0),
    )

Only errors that :func:`mdcapture.errors.is_retryable` accepts are retried;
anything else is raised immediately as a :class:`ClassifiedError`.
"""

from __future__ import annotations

import inspect
import logging
import random
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from mdcapture.errors import (
    ClassifiedError,
    ErrorKind,
    classify,
    is_retryable,
    wrap_error,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

JITTER_LOW = 0.9
JITTER_HIGH = 1.1


@dataclass(frozen=True)
class RetryEvent:
    """Payload handed to :attr:`RetryPolicy.on_retry` before each sleep."""

    attempt: int
    next_attempt: int
    max_attempts: int
    delay: float
    error: BaseException


@dataclass(frozen=True)
class RetryPolicy:
    """Immutable retry configuration.  Delays are in seconds.

    ``unknown_error_attempts`` lets errors that fall through to the PARSE
    default be retried up to that many extra times.  Zero keeps them
    permanent.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    on_retry: Callable[[RetryEvent], Any] | None = None
    unknown_error_attempts: int = 0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.base_delay <= 0:
            raise ValueError(f"base_delay must be > 0, got {self.base_delay}")
        if self.max_delay < self.base_delay:
            raise ValueError(
                f"max_delay ({self.max_delay}) must be >= base_delay ({self.base_delay})",
            )
        if self.unknown_error_attempts < 0:
            raise ValueError("unknown_error_attempts must be >= 0")


# ---------------------------------------------------------------------------
# Presets
# ---------------------------------------------------------------------------

FAST = RetryPolicy(max_attempts=2, base_delay=0.5, max_delay=2.0)
STANDARD = RetryPolicy(max_attempts=3, base_delay=1.0, max_delay=10.0)
AGGRESSIVE = RetryPolicy(max_attempts=5, base_delay=1.0, max_delay=30.0)
CONSERVATIVE = RetryPolicy(max_attempts=3, base_delay=2.0, max_delay=30.0)


def compute_delay(
    attempt: int,
    policy: RetryPolicy,
    rng: Callable[[float, float], float] | None = None,
) -> float:
    """Return the backoff before attempt ``attempt + 1``.

    ``base_delay * 2**(attempt-1)`` scaled by a jitter factor drawn from
    [0.9, 1.1], capped at ``max_delay``.
    """
    jitter = (rng or random.uniform)(JITTER_LOW, JITTER_HIGH)
    exponential = policy.base_delay * 2 ** (attempt - 1)
    return min(exponential * jitter, policy.max_delay)


def _takes_attempt(operation: Callable[..., Any]) -> bool:
    """Return True if *operation* accepts the attempt number positionally."""
    try:
        params = inspect.signature(operation).parameters.values()
    except (TypeError, ValueError):
        return True
    positional = (
        inspect.Parameter.POSITIONAL_ONLY,
        inspect.Parameter.POSITIONAL_OR_KEYWORD,
        inspect.Parameter.VAR_POSITIONAL,
    )
    return any(p.kind in positional for p in params)


def _may_retry_unknown(error: BaseException, attempt: int, policy: RetryPolicy) -> bool:
    if attempt > policy.unknown_error_attempts:
        return False
    context = getattr(error, "context", None)
    if isinstance(context, dict) and context.get("non_retryable"):
        return False
    return classify(error) is ErrorKind.PARSE


def execute_with_retry(
    operation: Callable[..., T],
    policy: RetryPolicy | None = None,
    *,
    sleep: Callable[[float], Any] | None = None,
    rng: Callable[[float, float], float] | None = None,
) -> T:
    """Run *operation* until it succeeds or the policy gives up.

    Args:
        operation: Callable taking the 1-based attempt number, or no
                   arguments at all.
        policy:    Retry settings (default :data:`STANDARD`).
        sleep:     Suspension function (default :func:`time.sleep`).
        rng:       Jitter source ``(low, high) -> float`` (default
                   :func:`random.uniform`).

    Returns:
        Whatever *operation* returns on its first successful attempt.

    Raises:
        ClassifiedError: With ``non_retryable``/``attempts_made`` in its
            context when a permanent failure is hit, or ``total_attempts``
            when every attempt failed.
    """
    policy = policy or STANDARD
    last_error: BaseException | None = None
    pass_attempt = _takes_attempt(operation)

    for attempt in range(1, policy.max_attempts + 1):
        try:
            return operation(attempt) if pass_attempt else operation()
        except Exception as exc:
            last_error = exc

            if not is_retryable(exc) and not _may_retry_unknown(exc, attempt, policy):
                raise wrap_error(
                    exc,
                    classify(exc),
                    {"non_retryable": True, "attempts_made": attempt},
                ) from exc

            if attempt >= policy.max_attempts:
                break

            delay = compute_delay(attempt, policy, rng)
            if policy.on_retry is not None:
                try:
                    policy.on_retry(RetryEvent(
                        attempt=attempt,
                        next_attempt=attempt + 1,
                        max_attempts=policy.max_attempts,
                        delay=delay,
                        error=exc,
                    ))
                except Exception as cb_exc:
                    logger.debug("on_retry observer failed: %s", cb_exc)

            logger.debug(
                "Attempt %d/%d failed (%s), retrying in %.2fs",
                attempt, policy.max_attempts, exc, delay,
            )
            (sleep or time.sleep)(delay)

    assert last_error is not None
    raise wrap_error(
        last_error,
        classify(last_error),
        {"total_attempts": policy.max_attempts},
        message=f"Operation failed after {policy.max_attempts} attempts: {last_error}",
    ) from last_error


def retry_wrapper(
    operation: Callable[..., T],
    policy: RetryPolicy | None = None,
) -> Callable[..., T]:
    """Return a callable that runs *operation* under :func:`execute_with_retry`."""

    def _wrapped(*args: Any, **kwargs: Any) -> T:
        return execute_with_retry(lambda _attempt: operation(*args, **kwargs), policy)

    return _wrapped


__all__ = [
    "AGGRESSIVE",
    "CONSERVATIVE",
    "FAST",
    "STANDARD",
    "ClassifiedError",
    "RetryEvent",
    "RetryPolicy",
    "compute_delay",
    "execute_with_retry",
    "retry_wrapper",
]
