"""
Weighted Sampler
================
Tier-agnostic weighted index selection over a flat array of non-negative
weights.

The cumulative distribution and total are rebuilt lazily: every weight
mutation sets a dirty flag and the next read recomputes both. Picks use a
binary search, so pick_index() returns i exactly when

    cumulative[i-1] <= x < cumulative[i]     (cumulative[-1] = 0)

for the uniform draw x in [0, total). Zero-weight slots can never be hit.

Degenerate input is never fatal: a zero total falls back to a uniform index
and negative weights are clamped to zero, both with a logged warning.
"""

import bisect
import logging
from typing import Dict, Iterable, List, Optional

from .errors import InvalidArgumentError
from .sources import RandomSource, SeededRandomSource

logger = logging.getLogger(__name__)


class WeightedSampler:
    """
    Weighted random index picker.

    Usage:
        sampler = WeightedSampler([1, 1, 2], rng=SeededRandomSource(42))
        idx = sampler.pick_index()
        hand = sampler.pick_unique_indices(2)
    """

    def __init__(self, weights: Iterable[float], rng: Optional[RandomSource] = None):
        self.rng = rng if rng is not None else SeededRandomSource()
        self._weights: List[float] = []
        self._cumulative: List[float] = []
        self._total = 0.0
        self._live = 0
        self._is_dirty = True
        self.set_weights(weights)

    def __len__(self) -> int:
        return self._live

    def __repr__(self) -> str:
        return f"WeightedSampler({self.weights})"

    # -------------------------------------------------------------------------
    # Weight management
    # -------------------------------------------------------------------------

    def set_weights(self, weights: Iterable[float]) -> None:
        """Replace every weight. Negative entries are clamped to 0."""
        new_weights = [float(w) for w in weights]
        if not new_weights:
            raise InvalidArgumentError("Weights array cannot be empty")

        for i, w in enumerate(new_weights):
            if w < 0:
                logger.warning("Negative weight at index %d: %s. Setting to 0.", i, w)
                new_weights[i] = 0.0

        self._weights = new_weights
        self._cumulative = [0.0] * len(new_weights)
        self._live = len(new_weights)
        self._is_dirty = True

    def update_weight(self, index: int, weight: float) -> None:
        self._check_index(index)
        weight = float(weight)
        if weight < 0:
            logger.warning("Negative weight at index %d: %s. Setting to 0.", index, weight)
            weight = 0.0
        self._weights[index] = weight
        self._is_dirty = True

    def normalize(self) -> None:
        """Rescale so the weights sum to 1.0, keeping their ratios."""
        total = self.total_weight
        if total <= 0:
            logger.warning("Cannot normalize weights: total weight is %s", total)
            return

        for i in range(self._live):
            self._weights[i] /= total
        self._is_dirty = True

    def scale(self, multiplier: float) -> None:
        """Multiply every weight. Results below zero are clamped to 0."""
        clamped = 0
        for i in range(self._live):
            w = self._weights[i] * multiplier
            if w < 0:
                clamped += 1
                w = 0.0
            self._weights[i] = w
        if clamped:
            logger.warning(
                "Scaling by %s made %d weight(s) negative. Clamped to 0.", multiplier, clamped
            )
        self._is_dirty = True

    def _check_index(self, index: int) -> None:
        if not 0 <= index < self._live:
            raise IndexError(
                f"Index {index} is out of range for weights array of length {self._live}"
            )

    def _recalculate(self) -> None:
        total = 0.0
        for i in range(self._live):
            total += self._weights[i]
            self._cumulative[i] = total
        self._total = total
        self._is_dirty = False

    def _discard(self, slot: int) -> None:
        """Swap `slot` with the last live slot and shrink the live count."""
        last = self._live - 1
        self._weights[slot], self._weights[last] = self._weights[last], self._weights[slot]
        self._live = last
        self._is_dirty = True

    # -------------------------------------------------------------------------
    # Read access
    # -------------------------------------------------------------------------

    @property
    def weights(self) -> List[float]:
        return self._weights[:self._live]

    @property
    def cumulative(self) -> List[float]:
        if self._is_dirty:
            self._recalculate()
        return self._cumulative[:self._live]

    @property
    def total_weight(self) -> float:
        if self._is_dirty:
            self._recalculate()
        return self._total

    def weight(self, index: int) -> float:
        self._check_index(index)
        return self._weights[index]

    def probability_of(self, index: int) -> float:
        """Chance that pick_index() returns `index`. 0.0 when the total is zero."""
        self._check_index(index)
        total = self.total_weight
        return self._weights[index] / total if total > 0 else 0.0

    def all_probabilities(self) -> List[float]:
        total = self.total_weight
        if total <= 0:
            return [0.0] * self._live
        return [w / total for w in self.weights]

    def is_valid(self) -> bool:
        return self._live > 0 and self.total_weight > 0

    # -------------------------------------------------------------------------
    # Sampling
    # -------------------------------------------------------------------------

    def pick_index(self) -> int:
        """Pick one index with probability proportional to its weight."""
        total = self.total_weight
        if total <= 0:
            logger.warning("Total weight is %s. Returning uniform random index.", total)
            return self.rng.next_index(self._live)

        x = self.rng.next_uniform() * total
        return self._search(x)

    def _search(self, x: float) -> int:
        # First slot whose cumulative weight is strictly above x
        idx = bisect.bisect_right(self._cumulative, x, 0, self._live)
        if idx >= self._live:
            # x landed on the total through rounding: last non-zero slot
            idx = self._live - 1
            while idx > 0 and self._weights[idx] <= 0:
                idx -= 1
        return idx

    def pick_indices(self, count: int) -> List[int]:
        """`count` independent picks (with replacement)."""
        if count < 0:
            raise InvalidArgumentError(f"Cannot pick {count} indices")
        return [self.pick_index() for _ in range(count)]

    def pick_unique_indices(self, count: int) -> List[int]:
        """
        Pick `count` distinct indices without replacement.

        Only strictly positive weights are eligible. Each pick removes its
        slot from a compact working sampler by swapping it with the last live
        slot, so the working arrays are allocated once.

        Raises:
            InvalidArgumentError: if count is negative or exceeds the number
                of non-zero weights. No partial result is returned.
        """
        if count < 0:
            raise InvalidArgumentError(f"Cannot pick {count} unique indices")
        if count > self._live:
            raise InvalidArgumentError(
                f"Cannot select {count} unique indices from array of length {self._live}"
            )

        source_indices = [i for i in range(self._live) if self._weights[i] > 0]
        if count > len(source_indices):
            raise InvalidArgumentError(
                f"Cannot select {count} unique indices from "
                f"{len(source_indices)} available non-zero weighted items"
            )
        if count == 0:
            return []

        working = WeightedSampler([self._weights[i] for i in source_indices], rng=self.rng)
        selected = []
        for _ in range(count):
            slot = working.pick_index()
            selected.append(source_indices[slot])

            last = len(working) - 1
            source_indices[slot], source_indices[last] = source_indices[last], source_indices[slot]
            working._discard(slot)

        return selected

    def simulate(self, count: int) -> Dict[int, float]:
        """
        Pick `count` times and return the observed frequency of every index.

        Read-only: the sampler carries no history, so nothing needs restoring.
        """
        if count <= 0:
            raise InvalidArgumentError(f"Simulation needs a positive count, got {count}")

        tallies = {i: 0 for i in range(self._live)}
        for _ in range(count):
            tallies[self.pick_index()] += 1
        return {i: n / count for i, n in tallies.items()}


# =============================================================================
# ONE-SHOT HELPERS
# =============================================================================

def pick_weighted_index(weights: Iterable[float], rng: Optional[RandomSource] = None) -> int:
    return WeightedSampler(weights, rng=rng).pick_index()


def pick_weighted_indices(
    weights: Iterable[float],
    count: int,
    rng: Optional[RandomSource] = None,
) -> List[int]:
    return WeightedSampler(weights, rng=rng).pick_indices(count)


def pick_unique_weighted_indices(
    weights: Iterable[float],
    count: int,
    rng: Optional[RandomSource] = None,
) -> List[int]:
    return WeightedSampler(weights, rng=rng).pick_unique_indices(count)
