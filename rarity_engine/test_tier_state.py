"""
Unit tests for tier_state.py - modifier math, tracking, and cache invalidation.

All time-dependent tests run on a ManualClock so elapsed time is exact.
"""
from datetime import timedelta

import pytest

from rarity_engine.config import DynamicScaling, StreakProtection, TierConfig, TimeBonus
from rarity_engine.constants import TierRank
from rarity_engine.sources import ManualClock
from rarity_engine.tier_state import TierState, TierStats, TrackingSnapshot


def make_tier(base=0.1, clock=None, **kwargs) -> TierState:
    return TierState(TierRank.RARE, base, clock=clock or ManualClock(), **kwargs)


def record(tier: TierState, successes: int, failures: int) -> None:
    for _ in range(successes):
        tier.record_attempt(True)
    for _ in range(failures):
        tier.record_attempt(False)


class TestBaseProbability:
    """Tests for the unmodified probability."""

    def test_base_only(self):
        assert make_tier(0.15).effective_probability() == pytest.approx(0.15)

    def test_weight_multiplier(self):
        tier = make_tier(0.15, weight_multiplier=2.0)
        assert tier.effective_probability() == pytest.approx(0.30)

    def test_clamped_to_one(self):
        tier = make_tier(0.8, weight_multiplier=2.0)
        assert tier.effective_probability() == 1.0

    def test_zero_multiplier(self):
        assert make_tier(0.5, weight_multiplier=0.0).effective_probability() == 0.0


class TestDynamicScaling:
    """Tests for the success-rate correction."""

    def test_no_attempts_is_neutral(self):
        tier = make_tier(0.5, dynamic_scaling=DynamicScaling(1.0))
        assert tier.effective_probability() == pytest.approx(0.5)

    def test_underperforming_is_boosted(self):
        """actual 0.1 < 0.8 * 0.5 -> 0.5 * (1 + 0.4 * 1.0) = 0.7"""
        tier = make_tier(0.5, dynamic_scaling=DynamicScaling(1.0))
        record(tier, successes=1, failures=9)
        assert tier.effective_probability() == pytest.approx(0.7)

    def test_overperforming_is_dampened_at_half_strength(self):
        """actual 0.5 > 1.2 * 0.2 -> 0.2 * (1 - 0.3 * 1.0 * 0.5) = 0.17"""
        tier = make_tier(0.2, dynamic_scaling=DynamicScaling(1.0))
        record(tier, successes=5, failures=5)
        assert tier.effective_probability() == pytest.approx(0.17)

    def test_inside_band_is_neutral(self):
        tier = make_tier(0.5, dynamic_scaling=DynamicScaling(1.0))
        record(tier, successes=1, failures=1)
        assert tier.effective_probability() == pytest.approx(0.5)

    def test_factor_scales_correction(self):
        """factor 2.0 doubles the boost: 0.5 * (1 + 0.4 * 2.0) = 0.9"""
        tier = make_tier(0.5, dynamic_scaling=DynamicScaling(2.0))
        record(tier, successes=1, failures=9)
        assert tier.effective_probability() == pytest.approx(0.9)


class TestStreakProtection:
    """Tests for the consecutive-failure boost."""

    def test_below_threshold_is_neutral(self):
        tier = make_tier(0.1, streak_protection=StreakProtection(3, 1.5))
        record(tier, successes=0, failures=2)
        assert tier.effective_probability() == pytest.approx(0.1)

    def test_at_threshold(self):
        """overage 1 -> 0.1 * 1.5 * 1.1 = 0.165"""
        tier = make_tier(0.1, streak_protection=StreakProtection(3, 1.5))
        record(tier, successes=0, failures=3)
        assert tier.effective_probability() == pytest.approx(0.165)

    def test_grows_past_threshold(self):
        """overage 3 -> 0.1 * 1.5 * 1.3 = 0.195"""
        tier = make_tier(0.1, streak_protection=StreakProtection(3, 1.5))
        record(tier, successes=0, failures=5)
        assert tier.effective_probability() == pytest.approx(0.195)

    def test_success_resets_streak(self):
        tier = make_tier(0.1, streak_protection=StreakProtection(3, 1.5))
        record(tier, successes=0, failures=5)
        tier.record_attempt(True)
        assert tier.consecutive_failures == 0
        assert tier.effective_probability() == pytest.approx(0.1)

    def test_monotonic_in_failures(self):
        """Longer streaks never lower the probability."""
        tier = make_tier(0.01, streak_protection=StreakProtection(5, 2.0))
        previous = tier.effective_probability()
        for _ in range(60):
            tier.record_attempt(False)
            current = tier.effective_probability()
            assert current >= previous
            previous = current
        assert previous > 0.01


class TestTimeBonus:
    """Tests for the time-since-success ramp."""

    def test_never_succeeded_gets_full_bonus(self):
        tier = make_tier(0.1, time_bonus=TimeBonus(1.2, timedelta(hours=24)))
        assert tier.effective_probability() == pytest.approx(0.12)

    def test_just_succeeded_has_no_bonus(self):
        tier = make_tier(0.1, time_bonus=TimeBonus(1.2, timedelta(hours=24)))
        tier.record_attempt(True)
        assert tier.effective_probability() == pytest.approx(0.1)

    def test_linear_ramp(self):
        clock = ManualClock()
        tier = make_tier(0.1, clock=clock, time_bonus=TimeBonus(1.2, timedelta(hours=24)))
        tier.record_attempt(True)

        clock.advance(timedelta(hours=12))
        assert tier.effective_probability() == pytest.approx(0.11)

        clock.advance(timedelta(hours=6))
        assert tier.effective_probability() == pytest.approx(0.115)

    def test_full_bonus_after_duration(self):
        clock = ManualClock()
        tier = make_tier(0.1, clock=clock, time_bonus=TimeBonus(1.2, timedelta(hours=24)))
        tier.record_attempt(True)

        clock.advance(timedelta(hours=24))
        assert tier.effective_probability() == pytest.approx(0.12)

        clock.advance(timedelta(days=10))
        assert tier.effective_probability() == pytest.approx(0.12)

    def test_ramp_is_not_served_stale_from_cache(self):
        clock = ManualClock()
        tier = make_tier(0.1, clock=clock, time_bonus=TimeBonus(2.0, timedelta(hours=10)))
        tier.record_attempt(True)
        first = tier.effective_probability()

        clock.advance(timedelta(hours=5))
        assert tier.effective_probability() > first


class TestCombinedModifiers:
    """Modifiers stack multiplicatively and are clamped last."""

    def test_streak_and_time_bonus_stack(self):
        """0.1 * (1.5 * 1.1) * 1.2 = 0.198"""
        tier = make_tier(
            0.1,
            streak_protection=StreakProtection(3, 1.5),
            time_bonus=TimeBonus(1.2, timedelta(hours=24)),
        )
        record(tier, successes=0, failures=3)
        assert tier.effective_probability() == pytest.approx(0.198)

    @pytest.mark.parametrize("base", [0.0, 0.002, 0.5, 1.0])
    @pytest.mark.parametrize("multiplier", [0.0, 1.0, 10.0])
    def test_always_within_unit_interval(self, base, multiplier):
        clock = ManualClock()
        tier = make_tier(
            base,
            clock=clock,
            weight_multiplier=multiplier,
            dynamic_scaling=DynamicScaling(2.0),
            streak_protection=StreakProtection(2, 5.0),
            time_bonus=TimeBonus(3.0, timedelta(hours=1)),
        )
        for step in range(40):
            tier.record_attempt(step % 7 == 0)
            clock.advance(timedelta(minutes=5))
            assert 0.0 <= tier.effective_probability() <= 1.0


class TestTracking:
    """Tests for record_attempt(), reset_tracking(), and stats."""

    def test_success_updates_stats(self):
        clock = ManualClock()
        tier = make_tier(clock=clock)
        tier.record_attempt(True)
        assert tier.total_attempts == 1
        assert tier.total_successes == 1
        assert tier.consecutive_failures == 0
        assert tier.last_success_time == clock.now()

    def test_failure_updates_stats(self):
        tier = make_tier()
        record(tier, successes=0, failures=3)
        assert tier.total_attempts == 3
        assert tier.total_successes == 0
        assert tier.consecutive_failures == 3
        assert tier.last_success_time is None

    def test_success_rate(self):
        tier = make_tier()
        assert tier.success_rate() == 0.0
        record(tier, successes=1, failures=3)
        assert tier.success_rate() == pytest.approx(0.25)

    def test_stats_tuple(self):
        tier = make_tier()
        record(tier, successes=1, failures=2)
        assert tier.stats() == TierStats(attempts=3, successes=1, success_rate=pytest.approx(1 / 3),
                                         consecutive_failures=2)

    def test_reset_tracking_keeps_configuration(self):
        tier = make_tier(0.2, weight_multiplier=1.5, streak_protection=StreakProtection(2, 2.0))
        record(tier, successes=2, failures=4)
        tier.reset_tracking()

        assert tier.stats() == TierStats(0, 0, 0.0, 0)
        assert tier.last_success_time is None
        assert tier.base_probability == 0.2
        assert tier.weight_multiplier == 1.5
        assert tier.effective_probability() == pytest.approx(0.3)

    def test_snapshot_and_restore(self):
        clock = ManualClock()
        tier = make_tier(clock=clock)
        record(tier, successes=1, failures=2)
        snapshot = tier.snapshot()

        clock.advance(timedelta(hours=1))
        record(tier, successes=3, failures=5)
        tier.restore(snapshot)

        assert tier.snapshot() == snapshot
        assert snapshot == TrackingSnapshot(2, 3, 1, clock.now() - timedelta(hours=1))


class TestCacheInvalidation:
    """Every mutator must invalidate the cached effective probability."""

    def test_cached_after_read(self):
        tier = make_tier(0.3)
        tier.effective_probability()
        assert not tier.is_dirty

    def test_base_probability_setter(self):
        tier = make_tier(0.3)
        assert tier.effective_probability() == pytest.approx(0.3)
        tier.base_probability = 0.4
        assert tier.is_dirty
        assert tier.effective_probability() == pytest.approx(0.4)

    def test_weight_multiplier_setter(self):
        tier = make_tier(0.3)
        tier.effective_probability()
        tier.weight_multiplier = 0.5
        assert tier.effective_probability() == pytest.approx(0.15)

    def test_modifier_setter(self):
        tier = make_tier(0.1)
        tier.effective_probability()
        tier.time_bonus = TimeBonus(1.5, timedelta(hours=1))
        assert tier.effective_probability() == pytest.approx(0.15)

    def test_record_attempt(self):
        tier = make_tier(0.1, streak_protection=StreakProtection(1, 2.0))
        assert tier.effective_probability() == pytest.approx(0.1)
        tier.record_attempt(False)
        assert tier.effective_probability() == pytest.approx(0.22)


class TestConfigConversion:
    """Tests for from_config() / to_config()."""

    def test_round_trip(self):
        config = TierConfig(
            TierRank.EPIC, 0.04,
            weight_multiplier=1.2,
            streak_protection=StreakProtection(50, 1.5),
        )
        tier = TierState.from_config(config, clock=ManualClock())
        assert tier.rank == TierRank.EPIC
        assert tier.to_config() == config


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
