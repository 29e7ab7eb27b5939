"""Jittered exponential backoff."""

from __future__ import annotations

from dataclasses import dataclass
import random
from typing import Callable, Optional


DEFAULT_MIN_DELAY = 4.0
DEFAULT_MAX_DELAY = 60.0
DEFAULT_DELAY_FACTOR = 3.0


def compute_delay(
    attempt: int,
    min_delay: float,
    max_delay: float,
    factor: float,
    uniform: Optional[Callable[[float, float], float]] = None,
) -> float:
    """Return seconds to wait before retrying after ``attempt``.

    The exponential value is clamped into ``[min_delay, max_delay]`` and only
    the span above ``min_delay`` is jittered, by a factor in ``[0.5, 1.0]``.
    """
    uniform = uniform or random.uniform
    try:
        raw = min_delay * factor**attempt
    except OverflowError:
        raw = max_delay
    clamped = max(min_delay, min(raw, max_delay))
    return min_delay + uniform(0.5, 1.0) * (clamped - min_delay)


@dataclass(frozen=True)
class BackoffPolicy:
    max_retries: int = 0
    min_delay: float = DEFAULT_MIN_DELAY
    max_delay: float = DEFAULT_MAX_DELAY
    factor: float = DEFAULT_DELAY_FACTOR

    def allows(self, attempt: int) -> bool:
        return attempt <= self.max_retries

    def delay(
        self, attempt: int, uniform: Optional[Callable[[float, float], float]] = None
    ) -> float:
        return compute_delay(attempt, self.min_delay, self.max_delay, self.factor, uniform)
