"""
Reconnection policy helpers.

Purpose:
- Centralize backoff rules for SDK reconnection
- Keep the broker's decisions deterministic and testable

This module contains NO timers, NO async, NO side effects.
"""
from __future__ import annotations

from dataclasses import dataclass

from spec import BASE_RECONNECT_DELAY_MS, MAX_RECONNECT_ATTEMPTS


# =============================================================================
# Retry State
# =============================================================================

@dataclass(frozen=True)
class RetryAttempt:
    """
    Immutable reconnection attempt counter.

    Semantics:
    - attempt == 0 means no reconnection has been tried since the last
      successful login.
    - attempt == N means N attempts have been scheduled.
    """
    attempt: int


def next_attempt(current: RetryAttempt) -> RetryAttempt:
    """Return a new RetryAttempt with attempt incremented by 1."""
    return RetryAttempt(attempt=current.attempt + 1)


def reset_attempt() -> RetryAttempt:
    """Returns a fresh retry attempt counter."""
    return RetryAttempt(attempt=0)


# =============================================================================
# Policy
# =============================================================================

def should_retry(
    attempt: RetryAttempt,
    *,
    max_attempts: int = MAX_RECONNECT_ATTEMPTS,
) -> bool:
    """
    Returns True if another attempt may be scheduled.

    attempt = number of attempts already scheduled
    """
    return attempt.attempt < max_attempts


def get_retry_delay_ms(
    attempt: RetryAttempt,
    *,
    base_delay_ms: int = BASE_RECONNECT_DELAY_MS,
) -> int:
    """
    Returns delay before the next attempt: base * 2**attempt.

    Computed from the count BEFORE it is incremented, so the first attempt
    waits exactly base_delay_ms. Strictly increasing in attempt.
    """
    return base_delay_ms * (2 ** max(attempt.attempt, 0))
