"""Retry classification and delay schedules for content fetches.

Two tracks share one attempt counter: overload signals (429/502/503 or
matching error text) back off exponentially, other transient errors retry
on a linear schedule. Client errors other than 408/429 are permanent.
"""

from enum import Enum
from typing import Optional

from core.tab_policy.taxonomy import (
    BACKOFF_MESSAGE_HINTS,
    BACKOFF_STATUS_CODES,
    LEGAL_BLOCK_STATUS,
    RETRYABLE_CLIENT_STATUS_CODES,
)

from .settings import RetryPolicy


class RetryTrack(str, Enum):
    BACKOFF = "backoff"
    PLAIN = "plain"
    NONE = "none"


def error_status(exc: BaseException) -> Optional[int]:
    status = getattr(exc, "status", None)
    try:
        return int(status) if status is not None else None
    except (TypeError, ValueError):
        return None


def classify_error(exc: BaseException) -> RetryTrack:
    status = error_status(exc)
    if status == LEGAL_BLOCK_STATUS:
        return RetryTrack.NONE
    message = str(exc).lower()
    if status in BACKOFF_STATUS_CODES or any(hint in message for hint in BACKOFF_MESSAGE_HINTS):
        return RetryTrack.BACKOFF
    if status is not None and 400 <= status < 500 and status not in RETRYABLE_CLIENT_STATUS_CODES:
        return RetryTrack.NONE
    return RetryTrack.PLAIN


def backoff_delay_ms(attempt: int, policy: RetryPolicy = RetryPolicy()) -> int:
    return min(policy.initial_delay_ms * (2 ** max(0, attempt)), policy.max_delay_ms)


def plain_delay_ms(attempt: int, policy: RetryPolicy = RetryPolicy()) -> int:
    return policy.plain_delay_ms * (max(0, attempt) + 1)


def attempt_budget(track: RetryTrack, policy: RetryPolicy = RetryPolicy()) -> int:
    if track is RetryTrack.BACKOFF:
        return policy.max_backoff_attempts
    if track is RetryTrack.PLAIN:
        return policy.max_plain_attempts
    return 1


def retry_delay_ms(track: RetryTrack, attempt: int, policy: RetryPolicy = RetryPolicy()) -> Optional[int]:
    """Delay before retrying after failed attempt `attempt`, or None to give up."""
    if attempt + 1 >= attempt_budget(track, policy):
        return None
    if track is RetryTrack.BACKOFF:
        return backoff_delay_ms(attempt, policy)
    return plain_delay_ms(attempt, policy)
