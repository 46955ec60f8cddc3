"""
Tier State - Adaptive Probability Model
=======================================
Turns one tier's static configuration plus its roll history into a single
effective probability in [0, 1].

Modifiers, applied in order on top of base_probability * weight_multiplier:

1. Dynamic scaling: if the observed success rate falls below 80% of the base
   rate the weight is pushed up by (base - actual) * factor; above 120% it is
   pulled down at half strength.
2. Streak protection: once consecutive failures reach the threshold the
   weight is multiplied by multiplier * (1 + overage * 0.1), where
   overage = failures - threshold + 1. Grows with every further failure.
3. Time bonus: full multiplier if the tier never succeeded or the last
   success is at least `duration` old; otherwise a linear ramp from 1.0.

The result is clamped to [0, 1] and cached until a mutation invalidates it.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import NamedTuple, Optional

from .config import DynamicScaling, StreakProtection, TierConfig, TimeBonus
from .constants import (
    DYNAMIC_DAMPEN_RATIO,
    DYNAMIC_HIGH_BAND,
    DYNAMIC_LOW_BAND,
    STREAK_STEP,
    TierRank,
)
from .sources import Clock, SystemClock

logger = logging.getLogger(__name__)


class TierStats(NamedTuple):
    """Diagnostic view of a tier's history."""
    attempts: int
    successes: int
    success_rate: float
    consecutive_failures: int


@dataclass(frozen=True)
class TrackingSnapshot:
    """Runtime stats captured before a simulation and restored after it."""
    consecutive_failures: int
    total_attempts: int
    total_successes: int
    last_success_time: Optional[datetime]


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


class TierState:
    """
    Per-tier adaptive probability model.

    Cache invalidation:
        - base_probability / weight_multiplier / modifier setters -> effective probability
        - record_attempt(), reset_tracking(), restore() -> effective probability
        - a time-bonus ramp in progress keeps the cache bypassed (clock is a live input)
    """

    def __init__(
        self,
        rank: TierRank,
        base_probability: float,
        weight_multiplier: float = 1.0,
        dynamic_scaling: Optional[DynamicScaling] = None,
        streak_protection: Optional[StreakProtection] = None,
        time_bonus: Optional[TimeBonus] = None,
        clock: Optional[Clock] = None,
    ):
        self.rank = rank
        self._base_probability = float(base_probability)
        self._weight_multiplier = float(weight_multiplier)
        self._dynamic_scaling = dynamic_scaling
        self._streak_protection = streak_protection
        self._time_bonus = time_bonus
        self.clock = clock if clock is not None else SystemClock()

        # Runtime tracking
        self.consecutive_failures = 0
        self.total_attempts = 0
        self.total_successes = 0
        self.last_success_time: Optional[datetime] = None

        # Effective probability cache
        self._cached_probability: Optional[float] = None
        self._is_dirty = True
        self._ramping = False

        self._lock = threading.RLock()

    @classmethod
    def from_config(cls, config: TierConfig, clock: Optional[Clock] = None) -> "TierState":
        return cls(
            rank=config.rank,
            base_probability=config.base_probability,
            weight_multiplier=config.weight_multiplier,
            dynamic_scaling=config.dynamic_scaling,
            streak_protection=config.streak_protection,
            time_bonus=config.time_bonus,
            clock=clock,
        )

    def to_config(self) -> TierConfig:
        return TierConfig(
            rank=self.rank,
            base_probability=self._base_probability,
            weight_multiplier=self._weight_multiplier,
            dynamic_scaling=self._dynamic_scaling,
            streak_protection=self._streak_protection,
            time_bonus=self._time_bonus,
        )

    def __repr__(self) -> str:
        return (
            f"TierState({self.rank.name}, base={self._base_probability:.4f}, "
            f"attempts={self.total_attempts}, successes={self.total_successes}, "
            f"streak={self.consecutive_failures})"
        )

    # -------------------------------------------------------------------------
    # Configuration (every setter invalidates the effective probability)
    # -------------------------------------------------------------------------

    @property
    def base_probability(self) -> float:
        return self._base_probability

    @base_probability.setter
    def base_probability(self, value: float) -> None:
        with self._lock:
            self._base_probability = float(value)
            self.mark_dirty()

    @property
    def weight_multiplier(self) -> float:
        return self._weight_multiplier

    @weight_multiplier.setter
    def weight_multiplier(self, value: float) -> None:
        with self._lock:
            self._weight_multiplier = float(value)
            self.mark_dirty()

    @property
    def dynamic_scaling(self) -> Optional[DynamicScaling]:
        return self._dynamic_scaling

    @dynamic_scaling.setter
    def dynamic_scaling(self, value: Optional[DynamicScaling]) -> None:
        with self._lock:
            self._dynamic_scaling = value
            self.mark_dirty()

    @property
    def streak_protection(self) -> Optional[StreakProtection]:
        return self._streak_protection

    @streak_protection.setter
    def streak_protection(self, value: Optional[StreakProtection]) -> None:
        with self._lock:
            self._streak_protection = value
            self.mark_dirty()

    @property
    def time_bonus(self) -> Optional[TimeBonus]:
        return self._time_bonus

    @time_bonus.setter
    def time_bonus(self, value: Optional[TimeBonus]) -> None:
        with self._lock:
            self._time_bonus = value
            self.mark_dirty()

    def mark_dirty(self) -> None:
        """Force recalculation on the next effective_probability() call."""
        self._is_dirty = True

    @property
    def is_dirty(self) -> bool:
        return self._is_dirty or self._ramping or self._cached_probability is None

    # -------------------------------------------------------------------------
    # Effective probability
    # -------------------------------------------------------------------------

    def effective_probability(self) -> float:
        """Current probability with all modifiers applied, clamped to [0, 1]."""
        with self._lock:
            if self.is_dirty:
                self._cached_probability = self._calculate_probability()
                self._is_dirty = False
            return self._cached_probability

    def _calculate_probability(self) -> float:
        p = self._base_probability * self._weight_multiplier

        if self._dynamic_scaling is not None:
            p *= self._dynamic_scaling_multiplier()

        streak = self._streak_protection
        if streak is not None and self.consecutive_failures >= streak.max_consecutive_failures:
            overage = self.consecutive_failures - streak.max_consecutive_failures + 1
            p *= streak.multiplier * (1.0 + overage * STREAK_STEP)

        self._ramping = False
        if self._time_bonus is not None:
            p *= self._time_bonus_multiplier()

        return _clamp01(p)

    def _dynamic_scaling_multiplier(self) -> float:
        if self.total_attempts == 0:
            return 1.0

        actual = self.total_successes / self.total_attempts
        expected = self._base_probability
        factor = self._dynamic_scaling.factor

        if actual < expected * DYNAMIC_LOW_BAND:
            return 1.0 + (expected - actual) * factor
        if actual > expected * DYNAMIC_HIGH_BAND:
            return 1.0 - (actual - expected) * factor * DYNAMIC_DAMPEN_RATIO
        return 1.0

    def _time_bonus_multiplier(self) -> float:
        bonus = self._time_bonus
        if self.last_success_time is None:
            return bonus.multiplier

        elapsed = self.clock.now() - self.last_success_time
        if elapsed >= bonus.duration:
            return bonus.multiplier

        # Clock went backwards: treat as a success just now
        if elapsed.total_seconds() < 0:
            elapsed = timedelta(0)

        self._ramping = True
        fraction = elapsed / bonus.duration
        return 1.0 + fraction * (bonus.multiplier - 1.0)

    # -------------------------------------------------------------------------
    # Tracking
    # -------------------------------------------------------------------------

    def record_attempt(self, success: bool) -> None:
        """Record one roll outcome. The only mutator of runtime stats."""
        with self._lock:
            self.total_attempts += 1
            if success:
                self.total_successes += 1
                self.consecutive_failures = 0
                self.last_success_time = self.clock.now()
            else:
                self.consecutive_failures += 1
            self.mark_dirty()

    def reset_tracking(self) -> None:
        """Zero every runtime stat. Configuration is left alone."""
        with self._lock:
            self.consecutive_failures = 0
            self.total_attempts = 0
            self.total_successes = 0
            self.last_success_time = None
            self.mark_dirty()
        logger.debug("Reset tracking for %s", self.rank.name)

    def success_rate(self) -> float:
        if self.total_attempts == 0:
            return 0.0
        return self.total_successes / self.total_attempts

    def stats(self) -> TierStats:
        with self._lock:
            return TierStats(
                attempts=self.total_attempts,
                successes=self.total_successes,
                success_rate=self.success_rate(),
                consecutive_failures=self.consecutive_failures,
            )

    def snapshot(self) -> TrackingSnapshot:
        with self._lock:
            return TrackingSnapshot(
                consecutive_failures=self.consecutive_failures,
                total_attempts=self.total_attempts,
                total_successes=self.total_successes,
                last_success_time=self.last_success_time,
            )

    def restore(self, snapshot: TrackingSnapshot) -> None:
        with self._lock:
            self.consecutive_failures = snapshot.consecutive_failures
            self.total_attempts = snapshot.total_attempts
            self.total_successes = snapshot.total_successes
            self.last_success_time = snapshot.last_success_time
            self.mark_dirty()
