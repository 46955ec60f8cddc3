"""
Probability Engine
==================
Aggregates one TierState per TierRank and turns them into a single selected
tier per roll.

SELECTION (select_one):
- total_weight = sum of probability_of(rank) over every rank, read once per roll
- x = uniform draw * total_weight
- walk ranks in TierRank order, accumulating weights; the first rank whose
  running weight exceeds x is picked
- the pick records a success, EVERY other tier records a failure (this is
  what grows streak protection on tiers that keep losing)
- if rounding exhausts the walk, the last rank in iteration order is returned

INDEPENDENT CHECK (roll_for):
- one Bernoulli trial against probability_of(rank); only that tier records

Every roll runs under the engine lock, so reading effective weights, drawing
and recording outcomes happen as one critical section.
"""

import logging
import threading
from collections import OrderedDict
from typing import Dict, List, Optional

from .config import EngineConfig, TierConfig
from .constants import ALL_TIERS, VALIDATION_SUM_TOLERANCE, TierRank
from .errors import ConfigurationError, InvalidArgumentError
from .sources import Clock, RandomSource, SeededRandomSource, SystemClock
from .tier_state import TierState, TierStats, TrackingSnapshot

logger = logging.getLogger(__name__)


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


class ProbabilityEngine:
    """
    Weighted rarity selection with adaptive per-tier probabilities.

    Usage:
        engine = ProbabilityEngine(rng=SeededRandomSource(7))
        engine.initialize(EngineConfig(tiers=create_standard_distribution()))
        tier = engine.select_one()
        odds = engine.simulate(10000)

    Cache invalidation:
        - total_weight is marked dirty by every roll, by every tier/global
          modifier change, and by reset/restore of tracking data
        - it is never served from cache while a tier is dirty or mid time-bonus ramp
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        rng: Optional[RandomSource] = None,
        clock: Optional[Clock] = None,
    ):
        self.config = config if config is not None else EngineConfig()
        self.rng = rng if rng is not None else SeededRandomSource()
        self.clock = clock if clock is not None else SystemClock()

        self._tiers: "OrderedDict[TierRank, TierState]" = OrderedDict()
        self.global_multiplier = 1.0
        self.luck_factor: Optional[float] = None
        self.auto_normalize = True
        self.maintain_ratios = True

        self._total_weight = 0.0
        self._weight_dirty = True
        self._is_initialized = False
        self._lock = threading.RLock()

    # =========================================================================
    # SETUP
    # =========================================================================

    def initialize(self, config: Optional[EngineConfig] = None, seed: Optional[int] = None) -> None:
        """
        Build the tier map from `config` (or the constructor config).

        Missing ranks are back-filled from config.default_probabilities.
        If auto_normalize is on and the tier weights sum above 1.0, every
        base probability is rescaled by 1/total (when maintain_ratios is on).

        Raises:
            ConfigurationError: for any out-of-range value. Nothing is clamped.
        """
        with self._lock:
            if config is not None:
                self.config = config
            config = self.config
            config.validate()

            if seed is not None:
                self.rng.seed(seed)

            self.global_multiplier = config.global_multiplier
            self.luck_factor = config.luck_factor
            self.auto_normalize = config.auto_normalize
            self.maintain_ratios = config.maintain_ratios

            self._tiers = OrderedDict()
            for rank in ALL_TIERS:
                tier_config = config.get_tier(rank)
                if tier_config is None:
                    tier_config = TierConfig(rank, config.default_probabilities.get(rank, 0.0))
                    logger.info(
                        "No configuration for %s, using default probability %s",
                        rank.name, tier_config.base_probability,
                    )
                self._tiers[rank] = TierState.from_config(tier_config, clock=self.clock)

            self._is_initialized = True
            self._weight_dirty = True
            self._normalize_if_needed()

    def _ensure_initialized(self) -> None:
        if not self._is_initialized:
            self.initialize()

    @property
    def is_initialized(self) -> bool:
        return self._is_initialized

    def _tier_weight_sum(self) -> float:
        return sum(tier.effective_probability() for tier in self._tiers.values())

    def _normalize_if_needed(self) -> None:
        if not self.auto_normalize:
            return

        total = self._tier_weight_sum()
        if total <= 1.0:
            return

        if not self.maintain_ratios:
            logger.info(
                "Tier weights sum to %.4f but maintain_ratios is off; leaving them as configured",
                total,
            )
            return

        factor = 1.0 / total
        for tier in self._tiers.values():
            tier.base_probability = tier.base_probability * factor
        self._weight_dirty = True
        logger.debug("Normalized tier weights from %.4f by factor %.6f", total, factor)

    # =========================================================================
    # PROBABILITIES
    # =========================================================================

    @property
    def tiers(self) -> Dict[TierRank, TierState]:
        with self._lock:
            self._ensure_initialized()
            return dict(self._tiers)

    def get_tier(self, rank: TierRank) -> TierState:
        with self._lock:
            self._ensure_initialized()
            return self._tiers[rank]

    def probability_of(self, rank: TierRank) -> float:
        """Effective tier probability times the global and luck multipliers, clamped to [0, 1]."""
        with self._lock:
            self._ensure_initialized()
            tier = self._tiers.get(rank)
            if tier is None:
                return 0.0
            p = tier.effective_probability() * self.global_multiplier
            if self.luck_factor is not None:
                p *= self.luck_factor
            return _clamp01(p)

    def all_probabilities(self) -> Dict[TierRank, float]:
        with self._lock:
            self._ensure_initialized()
            return {rank: self.probability_of(rank) for rank in self._tiers}

    @property
    def total_weight(self) -> float:
        """Sum of probability_of() over every tier. Not cached while any tier is dirty or ramping."""
        with self._lock:
            self._ensure_initialized()
            if self._weight_dirty or any(tier.is_dirty for tier in self._tiers.values()):
                self._total_weight = sum(self._current_weights().values())
                self._weight_dirty = False
            return self._total_weight

    def _current_weights(self) -> Dict[TierRank, float]:
        # One reading per tier, so a moving clock cannot split total and walk
        return {rank: self.probability_of(rank) for rank in self._tiers}

    def selection_odds(self) -> Dict[TierRank, float]:
        """Chance each tier wins the next select_one(). Sums to 1 unless every weight is 0."""
        with self._lock:
            self._ensure_initialized()
            weights = self._current_weights()
            total = sum(weights.values())
            if total <= 0:
                return {rank: 1.0 / len(weights) for rank in weights}
            return {rank: w / total for rank, w in weights.items()}

    # =========================================================================
    # ROLLING
    # =========================================================================

    def roll_for(self, rank: TierRank) -> bool:
        """Independent success check for one tier. Only that tier records the attempt."""
        with self._lock:
            self._ensure_initialized()
            probability = self.probability_of(rank)
            success = self.rng.next_uniform() < probability
            tier = self._tiers.get(rank)
            if tier is not None:
                tier.record_attempt(success)
                self._weight_dirty = True
            return success

    def select_one(self) -> TierRank:
        """Pick one tier by weighted selection over the live effective weights."""
        with self._lock:
            self._ensure_initialized()
            weights = self._current_weights()
            total = sum(weights.values())
            ranks = list(weights)

            if total <= 0:
                logger.warning("Total tier weight is %s. Selecting uniformly at random.", total)
                picked = ranks[self.rng.next_index(len(ranks))]
            else:
                x = self.rng.next_uniform() * total
                picked = None
                running = 0.0
                for rank in ranks:
                    running += weights[rank]
                    if x < running:
                        picked = rank
                        break
                if picked is None:
                    picked = ranks[-1]
                    logger.debug("Cumulative walk exhausted at x=%s, falling back to %s", x, picked.name)

            self._record_selection(picked)
            return picked

    def _record_selection(self, picked: TierRank) -> None:
        for rank, tier in self._tiers.items():
            tier.record_attempt(rank == picked)
        self._weight_dirty = True

    def simulate(self, roll_count: int) -> Dict[TierRank, float]:
        """
        Run `roll_count` selections and return each tier's observed frequency.

        Tracking data is snapshotted first and restored in a finally block, so
        live state is identical afterwards even if a roll raises.
        """
        if roll_count <= 0:
            raise InvalidArgumentError(f"Simulation needs a positive roll count, got {roll_count}")

        with self._lock:
            self._ensure_initialized()
            counts = {rank: 0 for rank in self._tiers}
            saved = self._save_states()
            try:
                for _ in range(roll_count):
                    counts[self.select_one()] += 1
            finally:
                self._restore_states(saved)

        return {rank: n / roll_count for rank, n in counts.items()}

    def _save_states(self) -> Dict[TierRank, TrackingSnapshot]:
        return {rank: tier.snapshot() for rank, tier in self._tiers.items()}

    def _restore_states(self, states: Dict[TierRank, TrackingSnapshot]) -> None:
        for rank, snapshot in states.items():
            self._tiers[rank].restore(snapshot)
        self._weight_dirty = True

    # =========================================================================
    # RUNTIME ADJUSTMENTS
    # =========================================================================

    def modify_probability(self, rank: TierRank, base_probability: float) -> None:
        """Replace a tier's base probability at runtime. Out-of-range values are clamped."""
        with self._lock:
            self._ensure_initialized()
            clamped = _clamp01(base_probability)
            if clamped != base_probability:
                logger.warning(
                    "Base probability %s for %s is outside [0, 1]; clamped to %s",
                    base_probability, rank.name, clamped,
                )
            self._tiers[rank].base_probability = clamped
            self._weight_dirty = True

    def apply_temporary_multiplier(self, rank: TierRank, multiplier: float) -> None:
        """Replace a tier's weight multiplier (e.g. an event boost)."""
        with self._lock:
            self._ensure_initialized()
            if multiplier < 0:
                logger.warning("Negative multiplier %s for %s. Setting to 0.", multiplier, rank.name)
                multiplier = 0.0
            self._tiers[rank].weight_multiplier = multiplier
            self._weight_dirty = True

    def set_global_multiplier(self, multiplier: float) -> None:
        with self._lock:
            if multiplier < 0:
                logger.warning("Negative global multiplier %s. Setting to 0.", multiplier)
                multiplier = 0.0
            self.global_multiplier = multiplier
            self._weight_dirty = True

    def set_luck_factor(self, luck_factor: Optional[float]) -> None:
        """Enable (float) or disable (None) the global luck factor."""
        with self._lock:
            if luck_factor is not None and luck_factor < 0:
                logger.warning("Negative luck factor %s. Setting to 0.", luck_factor)
                luck_factor = 0.0
            self.luck_factor = luck_factor
            self._weight_dirty = True

    def reset_all_tracking(self) -> None:
        with self._lock:
            self._ensure_initialized()
            for tier in self._tiers.values():
                tier.reset_tracking()
            self._weight_dirty = True

    # =========================================================================
    # DIAGNOSTICS
    # =========================================================================

    def tier_stats(self, rank: TierRank) -> TierStats:
        with self._lock:
            self._ensure_initialized()
            tier = self._tiers.get(rank)
            if tier is None:
                return TierStats(0, 0, 0.0, 0)
            return tier.stats()

    def all_stats(self) -> Dict[TierRank, TierStats]:
        with self._lock:
            self._ensure_initialized()
            return {rank: tier.stats() for rank, tier in self._tiers.items()}

    def validation_errors(self) -> List[str]:
        """
        Everything wrong with the live tiers. Before initialization this
        reports the pending config's errors instead of building from it.
        """
        with self._lock:
            if not self._is_initialized:
                config_errors = self.config.validation_errors()
                if config_errors:
                    return config_errors
                self.initialize()
            errors = []
            for tier in self._tiers.values():
                if not 0.0 <= tier.base_probability <= 1.0:
                    errors.append(f"Invalid probability for {tier.rank.name}: {tier.base_probability}")
            return errors

    def validate(self) -> bool:
        """
        Check the live tier configuration.

        Returns False (logging each violation) if any base probability is
        outside [0, 1], or if the engine is not initialized yet and its
        pending config is invalid. A base sum above 1.01 with
        auto-normalization off only logs a warning: unnormalized weights are
        still usable for selection.
        """
        with self._lock:
            errors = self.validation_errors()
            for error in errors:
                logger.error(error)
            if errors:
                return False

            total = sum(tier.base_probability for tier in self._tiers.values())
            if total > VALIDATION_SUM_TOLERANCE and not self.auto_normalize:
                logger.warning(
                    "Total probability exceeds 1.0: %.4f. Consider enabling auto-normalization.",
                    total,
                )
            return True

    def require_valid(self) -> None:
        """Like validate(), but raises ConfigurationError listing every violation."""
        with self._lock:
            errors = self.validation_errors()
        if errors:
            raise ConfigurationError("; ".join(errors))
