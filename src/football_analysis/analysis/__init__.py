"""Probability analysis engine: fixtures in, distributions, streaks and picks out."""

from .algo_settings import (
    DEFAULT_ALGO_SETTINGS,
    AlgoSettings,
    merge_algo_settings,
    normalize_algo_settings,
)
from .batch import TeamAnalysis, analyze_leagues, analyze_team, analyze_teams, next_fixture
from .fixtures import (
    CanonicalFixture,
    MalformedFixture,
    last_played,
    normalize_fixture,
    normalize_fixtures,
    team_fixtures,
)
from .markets import (
    DOUBLE_CHANCE_KEYS,
    GOAL_LINES,
    AggregationScope,
    MarketDistribution,
    ProbabilitySet,
    ScoreSelector,
    aggregate_league,
    aggregate_markets,
    orient_to_fixture,
)
from .picks import MarketCategory, PickRecord, best_pick, evaluate_distribution, meets_criteria, settle_pick
from .streaks import (
    ConditionStreak,
    Outcome,
    StreakSummary,
    analyze_streaks,
    condition_streaks,
    current_streak,
    form,
    longest_streaks,
)

__all__ = [
    "DEFAULT_ALGO_SETTINGS",
    "AlgoSettings",
    "merge_algo_settings",
    "normalize_algo_settings",
    "TeamAnalysis",
    "analyze_leagues",
    "analyze_team",
    "analyze_teams",
    "next_fixture",
    "CanonicalFixture",
    "MalformedFixture",
    "last_played",
    "normalize_fixture",
    "normalize_fixtures",
    "team_fixtures",
    "DOUBLE_CHANCE_KEYS",
    "GOAL_LINES",
    "AggregationScope",
    "MarketDistribution",
    "ProbabilitySet",
    "ScoreSelector",
    "aggregate_league",
    "aggregate_markets",
    "orient_to_fixture",
    "MarketCategory",
    "PickRecord",
    "best_pick",
    "evaluate_distribution",
    "meets_criteria",
    "settle_pick",
    "ConditionStreak",
    "Outcome",
    "StreakSummary",
    "analyze_streaks",
    "condition_streaks",
    "current_streak",
    "form",
    "longest_streaks",
]
