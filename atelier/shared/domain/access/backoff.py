"""Capped exponential backoff for resolver transport failures."""

from typing import List


def backoff_delay(
    attempt: int,
    base: float = 2.0,
    max_exponent: int = 6,
    cap: float = 30.0,
) -> float:
    """Seconds to wait after failed ``attempt`` (1-indexed).

    ``min(base ** min(attempt, max_exponent), cap)``: with the defaults the
    sequence is 2, 4, 8, 16, 30, 30, ...
    """
    if attempt < 1:
        raise ValueError(f"attempt must be >= 1, got {attempt}")
    return min(base ** min(attempt, max_exponent), cap)


def backoff_schedule(count: int, base: float = 2.0, max_exponent: int = 6, cap: float = 30.0) -> List[float]:
    """First ``count`` delays of the backoff sequence."""
    return [backoff_delay(attempt, base, max_exponent, cap) for attempt in range(1, count + 1)]
