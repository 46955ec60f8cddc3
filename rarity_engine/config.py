"""
Rarity Engine - Configuration
=============================
Plain dataclasses describing tiers and engine-wide settings.

The engine never reads configuration from anywhere itself: callers (an editor
tool, a JSON loader, a test) build these objects and hand them to
ProbabilityEngine.initialize(). to_dict()/from_dict() give a JSON-compatible
form for whatever loader sits outside the package.
"""

import math
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Dict, List, Optional

from .constants import (
    DEFAULT_DYNAMIC_SCALING_FACTOR,
    DEFAULT_MAX_CONSECUTIVE_FAILURES,
    DEFAULT_STREAK_MULTIPLIER,
    DEFAULT_TIER_PROBABILITIES,
    DEFAULT_TIME_BONUS_HOURS,
    DEFAULT_TIME_BONUS_MULTIPLIER,
    TierRank,
    tier_from_string,
)
from .errors import ConfigurationError


def _is_finite(value: float) -> bool:
    return isinstance(value, (int, float)) and math.isfinite(value)


# =============================================================================
# MODIFIERS
# =============================================================================

@dataclass(frozen=True)
class DynamicScaling:
    """Pulls the observed success rate back toward the base rate."""
    factor: float = DEFAULT_DYNAMIC_SCALING_FACTOR

    def __post_init__(self):
        if not _is_finite(self.factor) or self.factor < 0:
            raise ConfigurationError(f"Dynamic scaling factor must be >= 0, got {self.factor}")


@dataclass(frozen=True)
class StreakProtection:
    """Boost applied once consecutive failures reach a threshold."""
    max_consecutive_failures: int = DEFAULT_MAX_CONSECUTIVE_FAILURES
    multiplier: float = DEFAULT_STREAK_MULTIPLIER

    def __post_init__(self):
        if self.max_consecutive_failures < 0:
            raise ConfigurationError(
                f"max_consecutive_failures must be >= 0, got {self.max_consecutive_failures}"
            )
        if not _is_finite(self.multiplier) or self.multiplier < 0:
            raise ConfigurationError(f"Streak multiplier must be >= 0, got {self.multiplier}")


@dataclass(frozen=True)
class TimeBonus:
    """Multiplier that ramps up linearly with time since the last success."""
    multiplier: float = DEFAULT_TIME_BONUS_MULTIPLIER
    duration: timedelta = timedelta(hours=DEFAULT_TIME_BONUS_HOURS)

    def __post_init__(self):
        if not _is_finite(self.multiplier) or self.multiplier < 0:
            raise ConfigurationError(f"Time bonus multiplier must be >= 0, got {self.multiplier}")
        if self.duration <= timedelta(0):
            raise ConfigurationError(f"Time bonus duration must be positive, got {self.duration}")

    @property
    def duration_hours(self) -> float:
        return self.duration.total_seconds() / 3600.0


# =============================================================================
# TIER CONFIG
# =============================================================================

@dataclass
class TierConfig:
    """Static configuration for one tier."""
    rank: TierRank
    base_probability: float
    weight_multiplier: float = 1.0
    dynamic_scaling: Optional[DynamicScaling] = None
    streak_protection: Optional[StreakProtection] = None
    time_bonus: Optional[TimeBonus] = None

    def validation_errors(self) -> List[str]:
        """Human-readable list of everything wrong with this tier (empty if valid)."""
        errors = []
        if not _is_finite(self.base_probability) or not 0.0 <= self.base_probability <= 1.0:
            errors.append(
                f"Invalid probability for {self.rank.name}: {self.base_probability} (must be within [0, 1])"
            )
        if not _is_finite(self.weight_multiplier) or self.weight_multiplier < 0:
            errors.append(
                f"Invalid weight multiplier for {self.rank.name}: {self.weight_multiplier} (must be >= 0)"
            )
        return errors

    def validate(self) -> None:
        errors = self.validation_errors()
        if errors:
            raise ConfigurationError("; ".join(errors))

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "rank": self.rank.value,
            "base_probability": self.base_probability,
            "weight_multiplier": self.weight_multiplier,
        }
        if self.dynamic_scaling is not None:
            data["dynamic_scaling"] = {"factor": self.dynamic_scaling.factor}
        if self.streak_protection is not None:
            data["streak_protection"] = {
                "max_consecutive_failures": self.streak_protection.max_consecutive_failures,
                "multiplier": self.streak_protection.multiplier,
            }
        if self.time_bonus is not None:
            data["time_bonus"] = {
                "multiplier": self.time_bonus.multiplier,
                "duration_hours": self.time_bonus.duration_hours,
            }
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TierConfig":
        """
        Build a TierConfig from its dict form.

        Modifier entries may be omitted or None (disabled), a dict of
        overrides, or True (enabled with defaults).
        """
        if "rank" not in data or "base_probability" not in data:
            raise ConfigurationError(f"Tier config needs 'rank' and 'base_probability': {data}")

        rank = data["rank"]
        if not isinstance(rank, TierRank):
            rank = tier_from_string(str(rank))

        dynamic = _modifier_from_dict(data.get("dynamic_scaling"), DynamicScaling)
        streak = _modifier_from_dict(data.get("streak_protection"), StreakProtection)

        time_data = data.get("time_bonus")
        if isinstance(time_data, dict):
            time_data = dict(time_data)
            hours = time_data.pop("duration_hours", None)
            if hours is not None:
                time_data["duration"] = timedelta(hours=float(hours))
        time_bonus = _modifier_from_dict(time_data, TimeBonus)

        return cls(
            rank=rank,
            base_probability=float(data["base_probability"]),
            weight_multiplier=float(data.get("weight_multiplier", 1.0)),
            dynamic_scaling=dynamic,
            streak_protection=streak,
            time_bonus=time_bonus,
        )


def _modifier_from_dict(value, modifier_cls):
    if value is None or value is False:
        return None
    if value is True:
        return modifier_cls()
    if isinstance(value, dict):
        try:
            return modifier_cls(**value)
        except TypeError as e:
            raise ConfigurationError(f"Bad {modifier_cls.__name__} settings {value}: {e}") from e
    raise ConfigurationError(f"Cannot read {modifier_cls.__name__} from {value!r}")


# =============================================================================
# ENGINE CONFIG
# =============================================================================

@dataclass
class EngineConfig:
    """Everything ProbabilityEngine.initialize() consumes."""
    tiers: List[TierConfig] = field(default_factory=list)

    # Global modifiers
    global_multiplier: float = 1.0
    luck_factor: Optional[float] = None  # None = luck disabled

    # Normalization
    auto_normalize: bool = True
    maintain_ratios: bool = True

    # Back-fill curve for tiers missing from `tiers`
    default_probabilities: Dict[TierRank, float] = field(
        default_factory=lambda: dict(DEFAULT_TIER_PROBABILITIES)
    )

    def validation_errors(self) -> List[str]:
        errors = []
        seen = set()
        for tier in self.tiers:
            if tier.rank in seen:
                errors.append(f"Duplicate tier config for {tier.rank.name}")
            seen.add(tier.rank)
            errors.extend(tier.validation_errors())
        if not _is_finite(self.global_multiplier) or self.global_multiplier < 0:
            errors.append(f"Invalid global multiplier: {self.global_multiplier} (must be >= 0)")
        if self.luck_factor is not None and (not _is_finite(self.luck_factor) or self.luck_factor < 0):
            errors.append(f"Invalid luck factor: {self.luck_factor} (must be >= 0)")
        for rank, prob in self.default_probabilities.items():
            if not _is_finite(prob) or not 0.0 <= prob <= 1.0:
                errors.append(f"Invalid default probability for {rank.name}: {prob}")
        return errors

    def validate(self) -> None:
        errors = self.validation_errors()
        if errors:
            raise ConfigurationError("; ".join(errors))

    def get_tier(self, rank: TierRank) -> Optional[TierConfig]:
        for tier in self.tiers:
            if tier.rank == rank:
                return tier
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tiers": [tier.to_dict() for tier in self.tiers],
            "global_multiplier": self.global_multiplier,
            "luck_factor": self.luck_factor,
            "auto_normalize": self.auto_normalize,
            "maintain_ratios": self.maintain_ratios,
            "default_probabilities": {
                rank.value: prob for rank, prob in self.default_probabilities.items()
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EngineConfig":
        defaults = data.get("default_probabilities")
        if defaults is None:
            default_probabilities = dict(DEFAULT_TIER_PROBABILITIES)
        else:
            default_probabilities = {
                (k if isinstance(k, TierRank) else tier_from_string(str(k))): float(v)
                for k, v in defaults.items()
            }

        luck = data.get("luck_factor")
        return cls(
            tiers=[TierConfig.from_dict(t) for t in data.get("tiers", [])],
            global_multiplier=float(data.get("global_multiplier", 1.0)),
            luck_factor=None if luck is None else float(luck),
            auto_normalize=bool(data.get("auto_normalize", True)),
            maintain_ratios=bool(data.get("maintain_ratios", True)),
            default_probabilities=default_probabilities,
        )
