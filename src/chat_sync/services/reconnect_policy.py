from __future__ import annotations

import random
from dataclasses import dataclass, field
from typing import Callable

from chat_sync.config import Settings


@dataclass(frozen=True, slots=True)
class ReconnectPolicy:
    """Exponential backoff with multiplicative jitter and an attempt cap.

    ``raw = min(max_delay, base_delay * 2**attempt)`` and the scheduled delay
    is ``min(max_delay, raw * (1 + jitter * r))`` with ``r`` in ``[0, 1)``.
    With ``jitter <= 1`` consecutive delays never decrease.
    """

    base_delay: float = 1.0
    max_delay: float = 30.0
    max_attempts: int = 8
    jitter: float = 0.2
    rng: Callable[[], float] = field(default=random.random, compare=False, repr=False)

    def __post_init__(self) -> None:
        if self.base_delay <= 0 or self.max_delay <= 0:
            raise ValueError("delays must be positive")
        if not 0 <= self.jitter <= 1:
            raise ValueError("jitter must be within [0, 1]")
        if self.max_attempts < 0:
            raise ValueError("max_attempts must not be negative")

    @classmethod
    def from_settings(cls, settings: Settings) -> ReconnectPolicy:
        return cls(
            base_delay=settings.RECONNECT_BASE_DELAY,
            max_delay=settings.RECONNECT_MAX_DELAY,
            max_attempts=settings.RECONNECT_MAX_ATTEMPTS,
            jitter=settings.RECONNECT_JITTER,
        )

    def exhausted(self, attempt: int) -> bool:
        return attempt >= self.max_attempts

    def delay_for(self, attempt: int) -> float:
        raw = min(self.max_delay, self.base_delay * (2 ** min(attempt, 32)))
        return min(self.max_delay, raw * (1 + self.jitter * self.rng()))
