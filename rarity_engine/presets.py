"""
Probability Presets
===================
Ready-made tier distributions, typically handed straight to
ProbabilityEngine.initialize().

SOURCE OF TRUTH:
- STANDARD: 50 / 30 / 15 / 4 / 0.8 / 0.2 %, streak protection from Rare up,
  time bonus on Legendary and Mythic, dynamic scaling on Mythic
- GENEROUS: flatter curve, no modifiers
- HARSH: steep curve, no modifiers (Mythic above Legendary on purpose)
"""

from typing import Callable, Dict, List

from .config import DynamicScaling, EngineConfig, StreakProtection, TierConfig, TimeBonus
from .constants import TierRank
from .errors import ConfigurationError


def create_standard_distribution() -> List[TierConfig]:
    """Standard gacha distribution with anti-frustration modifiers on the rare end."""
    return [
        TierConfig(TierRank.COMMON, 0.50),
        TierConfig(TierRank.UNCOMMON, 0.30),
        TierConfig(TierRank.RARE, 0.15,
                   streak_protection=StreakProtection(max_consecutive_failures=20)),
        TierConfig(TierRank.EPIC, 0.04,
                   streak_protection=StreakProtection(max_consecutive_failures=50)),
        TierConfig(TierRank.LEGENDARY, 0.008,
                   streak_protection=StreakProtection(max_consecutive_failures=75),
                   time_bonus=TimeBonus()),
        TierConfig(TierRank.MYTHIC, 0.002,
                   streak_protection=StreakProtection(max_consecutive_failures=100),
                   time_bonus=TimeBonus(),
                   dynamic_scaling=DynamicScaling()),
    ]


def create_generous_distribution() -> List[TierConfig]:
    """Flatter curve. Sums to 1.05, so auto-normalization rescales it."""
    return [
        TierConfig(TierRank.COMMON, 0.40),
        TierConfig(TierRank.UNCOMMON, 0.35),
        TierConfig(TierRank.RARE, 0.20),
        TierConfig(TierRank.EPIC, 0.08),
        TierConfig(TierRank.LEGENDARY, 0.015),
        TierConfig(TierRank.MYTHIC, 0.005),
    ]


def create_harsh_distribution() -> List[TierConfig]:
    """Steep curve for premium-currency pulls."""
    return [
        TierConfig(TierRank.COMMON, 0.70),
        TierConfig(TierRank.UNCOMMON, 0.25),
        TierConfig(TierRank.RARE, 0.04),
        TierConfig(TierRank.EPIC, 0.008),
        TierConfig(TierRank.MYTHIC, 0.0015),
        TierConfig(TierRank.LEGENDARY, 0.0005),
    ]


PRESETS: Dict[str, Callable[[], List[TierConfig]]] = {
    "standard": create_standard_distribution,
    "generous": create_generous_distribution,
    "harsh": create_harsh_distribution,
}


def get_preset(name: str) -> List[TierConfig]:
    """Fresh tier configs for a named preset."""
    factory = PRESETS.get(name.strip().lower())
    if factory is None:
        raise ConfigurationError(f"Unknown preset {name!r}. Available: {', '.join(PRESETS)}")
    return factory()


def preset_engine_config(name: str, **overrides) -> EngineConfig:
    """EngineConfig for a named preset; keyword overrides go to EngineConfig."""
    return EngineConfig(tiers=get_preset(name), **overrides)
