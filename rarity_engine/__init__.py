"""
Rarity Engine
=============
Adaptive weighted rarity selection for gacha/loot rolls.

Import from here rather than from the individual modules. The pandas/plotly
diagnostics live in rarity_engine.reports and are not imported eagerly.
"""

from .constants import (
    # Enums
    TierRank,
    ALL_TIERS,
    # Data tables
    DEFAULT_TIER_PROBABILITIES,
    TIER_COLORS,
    TIER_ABBREVIATIONS,
    # Helper functions
    get_tier_color,
    get_tier_abbreviation,
    get_tier_display_name,
    get_default_probability,
    tier_from_string,
)

from .errors import (
    RarityEngineError,
    ConfigurationError,
    InvalidArgumentError,
)

from .sources import (
    RandomSource,
    SeededRandomSource,
    Clock,
    SystemClock,
    ManualClock,
)

from .config import (
    DynamicScaling,
    StreakProtection,
    TimeBonus,
    TierConfig,
    EngineConfig,
)

from .tier_state import (
    TierState,
    TierStats,
    TrackingSnapshot,
)

from .weighted_sampler import (
    WeightedSampler,
    pick_weighted_index,
    pick_weighted_indices,
    pick_unique_weighted_indices,
)

from .probability_engine import ProbabilityEngine

from .presets import (
    PRESETS,
    create_standard_distribution,
    create_generous_distribution,
    create_harsh_distribution,
    get_preset,
    preset_engine_config,
)

__all__ = [
    # Constants
    'TierRank',
    'ALL_TIERS',
    'DEFAULT_TIER_PROBABILITIES',
    'TIER_COLORS',
    'TIER_ABBREVIATIONS',
    'get_tier_color',
    'get_tier_abbreviation',
    'get_tier_display_name',
    'get_default_probability',
    'tier_from_string',
    # Errors
    'RarityEngineError',
    'ConfigurationError',
    'InvalidArgumentError',
    # Sources
    'RandomSource',
    'SeededRandomSource',
    'Clock',
    'SystemClock',
    'ManualClock',
    # Config
    'DynamicScaling',
    'StreakProtection',
    'TimeBonus',
    'TierConfig',
    'EngineConfig',
    # Tier state
    'TierState',
    'TierStats',
    'TrackingSnapshot',
    # Sampling
    'WeightedSampler',
    'pick_weighted_index',
    'pick_weighted_indices',
    'pick_unique_weighted_indices',
    # Engine
    'ProbabilityEngine',
    # Presets
    'PRESETS',
    'create_standard_distribution',
    'create_generous_distribution',
    'create_harsh_distribution',
    'get_preset',
    'preset_engine_config',
]
