"""
Rarity Engine - Shared Constants
================================
Tier enum, default probability curve, modifier constants, and display tables
used across modules.
"""

from enum import Enum
from typing import Dict, List, Optional

from .errors import ConfigurationError


# =============================================================================
# ENUMS
# =============================================================================

class TierRank(Enum):
    """Rarity tier from most common to rarest.

    Declaration order is the iteration order of every engine walk and the
    tie-break between tiers. It is never used as a weight.
    """
    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"
    MYTHIC = "mythic"

    @property
    def order(self) -> int:
        """Position of this tier in declaration order (0 = Common)."""
        return _TIER_ORDER[self]

    def next_tier(self) -> Optional["TierRank"]:
        """Get the next rarer tier."""
        idx = self.order
        if idx < len(ALL_TIERS) - 1:
            return ALL_TIERS[idx + 1]
        return None

    def prev_tier(self) -> Optional["TierRank"]:
        """Get the next more common tier."""
        idx = self.order
        if idx > 0:
            return ALL_TIERS[idx - 1]
        return None

    def __lt__(self, other: "TierRank") -> bool:
        if not isinstance(other, TierRank):
            return NotImplemented
        return self.order < other.order


ALL_TIERS: List[TierRank] = list(TierRank)
_TIER_ORDER: Dict[TierRank, int] = {tier: idx for idx, tier in enumerate(ALL_TIERS)}


# =============================================================================
# DEFAULT PROBABILITY CURVE
# =============================================================================
# Used to back-fill any tier missing from a configuration.
# Monotonically decreasing with rank, sums to exactly 1.0.

DEFAULT_TIER_PROBABILITIES: Dict[TierRank, float] = {
    TierRank.COMMON: 0.50,
    TierRank.UNCOMMON: 0.30,
    TierRank.RARE: 0.15,
    TierRank.EPIC: 0.04,
    TierRank.LEGENDARY: 0.008,
    TierRank.MYTHIC: 0.002,
}

# Fallback for a tier absent from a custom default curve
FALLBACK_TIER_PROBABILITY = 0.01


# =============================================================================
# MODIFIER CONSTANTS
# =============================================================================

# Dynamic scaling only kicks in outside this band around the base rate
DYNAMIC_LOW_BAND = 0.8     # actual < 80% of base -> boost
DYNAMIC_HIGH_BAND = 1.2    # actual > 120% of base -> dampen
DYNAMIC_DAMPEN_RATIO = 0.5  # overperformers are pulled down at half strength

# Streak protection grows by 10% per failure past the threshold
STREAK_STEP = 0.1

# Modifier defaults
DEFAULT_DYNAMIC_SCALING_FACTOR = 1.0
DEFAULT_MAX_CONSECUTIVE_FAILURES = 10
DEFAULT_STREAK_MULTIPLIER = 1.5
DEFAULT_TIME_BONUS_MULTIPLIER = 1.2
DEFAULT_TIME_BONUS_HOURS = 24.0

# validate() warns (without failing) above this base-probability sum
VALIDATION_SUM_TOLERANCE = 1.01


# =============================================================================
# TIER DISPLAY (Colors, Abbreviations)
# =============================================================================

TIER_COLORS: Dict[TierRank, str] = {
    TierRank.COMMON: "#888888",
    TierRank.UNCOMMON: "#66ff66",
    TierRank.RARE: "#5599ff",
    TierRank.EPIC: "#cc77ff",
    TierRank.LEGENDARY: "#ffcc00",
    TierRank.MYTHIC: "#ff6666",
}

TIER_ABBREVIATIONS: Dict[TierRank, str] = {
    TierRank.COMMON: "COM",
    TierRank.UNCOMMON: "UNC",
    TierRank.RARE: "RAR",
    TierRank.EPIC: "EPC",
    TierRank.LEGENDARY: "LEG",
    TierRank.MYTHIC: "MYT",
}


def get_tier_color(tier: TierRank) -> str:
    return TIER_COLORS.get(tier, "#ffffff")


def get_tier_abbreviation(tier: TierRank) -> str:
    return TIER_ABBREVIATIONS.get(tier, "???")


def get_tier_display_name(tier: TierRank) -> str:
    return tier.value.capitalize()


def tier_from_string(s: str) -> TierRank:
    """
    Resolve a tier from its value ("rare"), member name ("RARE") or
    abbreviation ("RAR"). Case-insensitive.

    Raises:
        ConfigurationError: if nothing matches.
    """
    key = s.strip().lower()
    for tier in ALL_TIERS:
        if key in (tier.value, tier.name.lower(), TIER_ABBREVIATIONS[tier].lower()):
            return tier
    raise ConfigurationError(f"Unknown tier: {s!r}")


def get_default_probability(tier: TierRank) -> float:
    return DEFAULT_TIER_PROBABILITIES.get(tier, FALLBACK_TIER_PROBABILITY)
