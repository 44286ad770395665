"""
Retry and backoff policy for notification delivery.

Real delay queues expose a small fixed set of delay levels rather than
arbitrary durations, so a computed backoff is rounded up to one of the
buckets below. Both queue backends resolve a bucket back to seconds with
``bucket_seconds`` so they stay interchangeable.
"""
from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class RetryPolicy:
    base_delay_seconds: int
    backoff_multiplier: float
    max_delay_seconds: int


DEFAULT_RETRY_POLICY = RetryPolicy(
    base_delay_seconds=60,
    backoff_multiplier=2.0,
    max_delay_seconds=3600,
)


# Bucket level N (1-based) delays by DELAY_BUCKETS[N - 1] seconds
DELAY_BUCKETS: Tuple[int, ...] = (
    1, 5, 10, 30, 60, 120, 180, 240, 300, 360, 420, 480, 540, 600,
    1200, 1800, 3600,
    7200,  # overflow bucket for anything above one hour
)

MIN_BUCKET = 1
MAX_BUCKET = len(DELAY_BUCKETS)


def delay_seconds(retry_count: int, policy: RetryPolicy = DEFAULT_RETRY_POLICY) -> int:
    """
    Backoff before the next attempt.

    ``retry_count`` is the value after incrementing for this retry, so the
    first retry (retry_count=1) waits 120s with the default policy.
    """
    retry_count = max(0, retry_count)
    try:
        delay = policy.base_delay_seconds * (policy.backoff_multiplier ** retry_count)
    except OverflowError:
        return policy.max_delay_seconds
    return int(min(delay, policy.max_delay_seconds))


def delay_bucket(seconds: float) -> int:
    """Round a delay up to the smallest bucket that covers it."""
    for level, bucket in enumerate(DELAY_BUCKETS[:-1], start=1):
        if seconds <= bucket:
            return level
    return MAX_BUCKET


def bucket_seconds(level: int) -> int:
    """Delay in seconds represented by a bucket level."""
    if level < MIN_BUCKET or level > MAX_BUCKET:
        raise ValueError(f"Delay bucket must be between {MIN_BUCKET} and {MAX_BUCKET}, got {level}")
    return DELAY_BUCKETS[level - 1]


def should_retry(task) -> bool:
    """True while the task still has retry budget."""
    return task.retry_count < task.max_retry
