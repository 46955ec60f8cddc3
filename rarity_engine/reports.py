"""
Engine Diagnostics
==================
Tabular and chart views of a ProbabilityEngine's state.

- stats_frame(): per-tier history and current odds as a DataFrame
- simulation_frame(): configured selection odds vs a simulated run
- create_odds_chart(): grouped Plotly bars of configured vs observed odds
- format_tier_summary(): plain-text table for consoles and logs

None of these mutate live tracking data (simulation_frame goes through
engine.simulate(), which restores every tier afterwards).
"""

from typing import Optional

import pandas as pd
import plotly.graph_objects as go

from .constants import (
    get_tier_abbreviation,
    get_tier_color,
    get_tier_display_name,
    tier_from_string,
)
from .probability_engine import ProbabilityEngine
from .tier_state import TierStats

STATS_COLUMNS = [
    "base_probability",
    "effective_probability",
    "selection_odds",
    "attempts",
    "successes",
    "success_rate",
    "consecutive_failures",
]

SIMULATION_COLUMNS = ["expected", "observed", "difference"]


def stats_frame(engine: ProbabilityEngine) -> pd.DataFrame:
    """One row per tier, indexed by display name, in TierRank order."""
    odds = engine.selection_odds()
    rows = []
    for rank, tier in engine.tiers.items():
        stats: TierStats = tier.stats()
        rows.append({
            "tier": get_tier_display_name(rank),
            "base_probability": tier.base_probability,
            "effective_probability": engine.probability_of(rank),
            "selection_odds": odds[rank],
            "attempts": stats.attempts,
            "successes": stats.successes,
            "success_rate": stats.success_rate,
            "consecutive_failures": stats.consecutive_failures,
        })
    return pd.DataFrame(rows, columns=["tier"] + STATS_COLUMNS).set_index("tier")


def simulation_frame(engine: ProbabilityEngine, roll_count: int = 10000) -> pd.DataFrame:
    """
    Compare the engine's current selection odds against a simulated run.

    Args:
        engine: Engine to simulate (its tracking data is restored afterwards)
        roll_count: Number of select_one() calls in the simulation

    Returns:
        DataFrame indexed by tier display name with expected / observed /
        difference columns (all as fractions, not percentages)
    """
    expected = engine.selection_odds()
    observed = engine.simulate(roll_count)
    rows = []
    for rank in expected:
        rows.append({
            "tier": get_tier_display_name(rank),
            "expected": expected[rank],
            "observed": observed[rank],
            "difference": observed[rank] - expected[rank],
        })
    return pd.DataFrame(rows, columns=["tier"] + SIMULATION_COLUMNS).set_index("tier")


def create_odds_chart(
    frame: pd.DataFrame,
    title: Optional[str] = None,
    height: int = 350,
) -> go.Figure:
    """
    Grouped bar chart of expected vs observed odds from simulation_frame().

    Expected bars use each tier's color, observed bars the same color at
    reduced opacity, so rarer tiers stay distinguishable at a glance.
    """
    tiers = [tier_from_string(name) for name in frame.index]
    colors = [get_tier_color(t) for t in tiers]
    labels = [get_tier_abbreviation(t) for t in tiers]

    fig = go.Figure()
    fig.add_trace(go.Bar(
        x=labels,
        y=(frame["expected"] * 100).tolist(),
        name="Expected",
        marker_color=colors,
        hovertemplate="%{x}: %{y:.3f}%<extra>Expected</extra>",
    ))
    fig.add_trace(go.Bar(
        x=labels,
        y=(frame["observed"] * 100).tolist(),
        name="Observed",
        marker_color=colors,
        opacity=0.55,
        hovertemplate="%{x}: %{y:.3f}%<extra>Observed</extra>",
    ))

    fig.update_layout(
        title=title or "Selection Odds: Expected vs Observed",
        barmode="group",
        height=height,
        yaxis_title="Probability (%)",
        xaxis_title="Tier",
        template="plotly_dark",
        margin=dict(l=40, r=20, t=50, b=40),
    )
    return fig


def format_rate(rate: float) -> str:
    """Format a probability for display (e.g. 0.0024 -> '0.240%')."""
    return f"{rate * 100:.3f}%"


def format_tier_summary(engine: ProbabilityEngine) -> str:
    frame = stats_frame(engine)
    lines = [
        f"{'Tier':<11}{'Base':>10}{'Effective':>11}{'Odds':>10}{'Tries':>8}{'Hits':>7}{'Streak':>8}",
        "-" * 65,
    ]
    for name, row in frame.iterrows():
        lines.append(
            f"{name:<11}"
            f"{format_rate(row['base_probability']):>10}"
            f"{format_rate(row['effective_probability']):>11}"
            f"{format_rate(row['selection_odds']):>10}"
            f"{int(row['attempts']):>8}"
            f"{int(row['successes']):>7}"
            f"{int(row['consecutive_failures']):>8}"
        )
    lines.append("-" * 65)
    lines.append(f"Total weight: {engine.total_weight:.4f}")
    return "\n".join(lines)


if __name__ == "__main__":
    from .presets import preset_engine_config
    from .sources import SeededRandomSource

    for preset in ("standard", "generous", "harsh"):
        engine = ProbabilityEngine(rng=SeededRandomSource(42))
        engine.initialize(preset_engine_config(preset))

        print("\n" + "=" * 65)
        print(f"{preset.upper()} PRESET")
        print("=" * 65)
        print(format_tier_summary(engine))

        print("\nSimulation (10,000 rolls):")
        sim = simulation_frame(engine, 10000)
        for name, row in sim.iterrows():
            print(f"  {name:<11} expected {format_rate(row['expected']):>9}  "
                  f"observed {format_rate(row['observed']):>9}  "
                  f"diff {row['difference'] * 100:+.3f}%")
