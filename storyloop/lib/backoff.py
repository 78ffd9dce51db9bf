"""Retry delay calculation."""

from storyloop.lib.config import RetryPolicy


def calculate_delay(attempt: int, policy: RetryPolicy) -> float:
    """
    Delay before the next attempt, in seconds.

    attempt=1 yields exactly policy.initial_delay; each further attempt
    multiplies by policy.multiplier until policy.max_delay caps it.
    """
    attempt = max(attempt, 1)
    try:
        delay = policy.initial_delay * (policy.multiplier ** (attempt - 1))
    except OverflowError:
        delay = policy.max_delay
    return max(0.0, min(delay, policy.max_delay))
