"""
Random and time sources consumed by the engine.

Both are injected instances so a seeded RNG and a manual clock make every
roll reproducible in tests and offline simulations.
"""

import random
from datetime import datetime, timedelta
from typing import Any, Optional


# =============================================================================
# RANDOM SOURCE
# =============================================================================

class RandomSource:
    """Uniform random values in [0, 1)."""

    def next_uniform(self) -> float:
        raise NotImplementedError

    def seed(self, value: Any) -> None:
        raise NotImplementedError

    def next_index(self, n: int) -> int:
        """Uniform integer in [0, n). Used by the degenerate-weight fallbacks."""
        if n <= 0:
            raise ValueError(f"Cannot pick an index from {n} slots")
        return min(int(self.next_uniform() * n), n - 1)


class SeededRandomSource(RandomSource):
    """RandomSource backed by its own random.Random instance."""

    def __init__(self, seed: Optional[Any] = None):
        self._rng = random.Random(seed)

    def next_uniform(self) -> float:
        return self._rng.random()

    def seed(self, value: Any) -> None:
        self._rng.seed(value)


# =============================================================================
# CLOCK
# =============================================================================

class Clock:
    """Wall-clock source for the time-bonus modifier."""

    def now(self) -> datetime:
        raise NotImplementedError


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now()


class ManualClock(Clock):
    """
    Clock that only moves when told to.

    Usage:
        clock = ManualClock()
        clock.advance(timedelta(hours=6))
    """

    def __init__(self, start: Optional[datetime] = None):
        self._now = start if start is not None else datetime(2025, 1, 1)

    def now(self) -> datetime:
        return self._now

    def set(self, moment: datetime) -> None:
        self._now = moment

    def advance(self, delta: timedelta) -> datetime:
        self._now = self._now + delta
        return self._now
