"""
Unit tests for constants.py
"""
import pytest

from rarity_engine.constants import (
    ALL_TIERS,
    DEFAULT_TIER_PROBABILITIES,
    TIER_ABBREVIATIONS,
    TIER_COLORS,
    TierRank,
    get_default_probability,
    get_tier_abbreviation,
    get_tier_display_name,
    tier_from_string,
)
from rarity_engine.errors import ConfigurationError


class TestTierRank:
    """Tests for TierRank ordering helpers."""

    def test_declaration_order(self):
        assert ALL_TIERS == [
            TierRank.COMMON, TierRank.UNCOMMON, TierRank.RARE,
            TierRank.EPIC, TierRank.LEGENDARY, TierRank.MYTHIC,
        ]
        assert [t.order for t in ALL_TIERS] == list(range(6))

    def test_next_and_prev(self):
        assert TierRank.RARE.next_tier() == TierRank.EPIC
        assert TierRank.RARE.prev_tier() == TierRank.UNCOMMON
        assert TierRank.MYTHIC.next_tier() is None
        assert TierRank.COMMON.prev_tier() is None

    def test_sorting(self):
        assert sorted([TierRank.MYTHIC, TierRank.COMMON, TierRank.EPIC]) == [
            TierRank.COMMON, TierRank.EPIC, TierRank.MYTHIC,
        ]


class TestDefaultCurve:
    """Tests for the back-fill probability curve."""

    def test_sums_to_one(self):
        assert sum(DEFAULT_TIER_PROBABILITIES.values()) == pytest.approx(1.0)

    def test_decreasing_with_rank(self):
        probs = [DEFAULT_TIER_PROBABILITIES[t] for t in ALL_TIERS]
        assert probs == sorted(probs, reverse=True)

    def test_get_default_probability(self):
        assert get_default_probability(TierRank.LEGENDARY) == 0.008


class TestDisplay:
    """Tests for display tables and string lookups."""

    def test_tables_cover_every_tier(self):
        assert set(TIER_COLORS) == set(ALL_TIERS)
        assert set(TIER_ABBREVIATIONS) == set(ALL_TIERS)

    def test_display_name(self):
        assert get_tier_display_name(TierRank.LEGENDARY) == "Legendary"
        assert get_tier_abbreviation(TierRank.MYTHIC) == "MYT"

    @pytest.mark.parametrize("text", ["epic", "EPIC", "Epc", "  epic "])
    def test_tier_from_string(self, text):
        assert tier_from_string(text) == TierRank.EPIC

    def test_tier_from_display_name(self):
        for tier in ALL_TIERS:
            assert tier_from_string(get_tier_display_name(tier)) == tier

    def test_unknown_tier(self):
        with pytest.raises(ConfigurationError):
            tier_from_string("ultra rare")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
