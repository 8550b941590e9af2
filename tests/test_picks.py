"""Tests for pick qualification and settlement."""

import pytest

from football_analysis.analysis import (
    AggregationScope,
    MarketCategory,
    PickRecord,
    aggregate_league,
    aggregate_markets,
    best_pick,
    evaluate_distribution,
    meets_criteria,
    normalize_algo_settings,
    settle_pick,
)


@pytest.fixture
def settings():
    return normalize_algo_settings({
        "minimum_sample_size": 4,
        "minimum_qualifying_percent": 60,
        "lines": ["1.5", "2.5", "1X", "X2"],
    })


def _pick(label, percent, meets=True):
    return PickRecord(
        fixture_id=1,
        market_label=label,
        market_category=MarketCategory.OVER_UNDER,
        percent_green=percent,
        sample_size=10,
        meets_criteria=meets,
    )


class TestMeetsCriteria:
    """Both thresholds must pass."""

    def test_small_sample_fails_despite_high_percent(self):
        settings = normalize_algo_settings({"minimum_sample_size": 5, "minimum_qualifying_percent": 60})

        assert meets_criteria(4, 80, settings) is False

    def test_thresholds_are_inclusive(self):
        settings = normalize_algo_settings({"minimum_sample_size": 5, "minimum_qualifying_percent": 60})

        assert meets_criteria(5, 60, settings) is True
        assert meets_criteria(5, 59, settings) is False

    def test_league_scope_uses_league_sample_size(self):
        settings = normalize_algo_settings({"minimum_sample_size": 5, "minimum_league_sample_size": 20})

        assert meets_criteria(10, 90, settings, AggregationScope.TEAM) is True
        assert meets_criteria(10, 90, settings, AggregationScope.LEAGUE) is False


class TestEvaluateDistribution:
    def test_records_per_selected_line(self, league_fixtures, settings):
        dist = aggregate_markets(league_fixtures)
        records = evaluate_distribution(500, dist, settings)

        assert [r.market_label for r in records] == [
            "Over 1.5", "Under 1.5", "Over 2.5", "Under 2.5",
            "Double Chance 1X", "Double Chance X2",
        ]
        assert all(r.fixture_id == 500 for r in records)
        assert all(r.sample_size == 4 for r in records)

    def test_each_line_judged_independently(self, league_fixtures, settings):
        records = {r.market_label: r for r in evaluate_distribution(500, aggregate_markets(league_fixtures), settings)}

        assert records["Over 1.5"].percent_green == 75
        assert records["Over 1.5"].meets_criteria
        assert not records["Under 1.5"].meets_criteria
        assert records["Over 2.5"].percent_green == 50
        assert not records["Over 2.5"].meets_criteria
        assert records["Double Chance 1X"].percent_green == 100
        assert records["Double Chance 1X"].meets_criteria
        assert records["Double Chance 1X"].market_category is MarketCategory.DOUBLE_CHANCE
        assert records["Under 2.5"].market_category is MarketCategory.OVER_UNDER

    def test_empty_distribution_never_qualifies(self, settings):
        records = evaluate_distribution(1, aggregate_markets([]), settings)

        assert records
        assert not any(r.meets_criteria for r in records)

    def test_league_distribution_carries_scope(self, league_fixtures, settings):
        records = evaluate_distribution(1, aggregate_league(league_fixtures), settings)

        assert all(r.scope is AggregationScope.LEAGUE for r in records)
        # Four fixtures is below the default league sample size of 10
        assert not any(r.meets_criteria for r in records)

    def test_to_dict(self, league_fixtures, settings):
        record = evaluate_distribution(500, aggregate_markets(league_fixtures), settings)[0]

        assert record.to_dict() == {
            "fixture_id": 500,
            "market_label": "Over 1.5",
            "market_category": "over_under",
            "percent_green": 75,
            "sample_size": 4,
            "meets_criteria": True,
            "team_id": None,
            "scope": "team",
        }


class TestBestPick:
    def test_highest_qualifying_percent(self):
        picks = [_pick("Over 1.5", 70), _pick("Under 3.5", 95, meets=False), _pick("Over 0.5", 88)]

        assert best_pick(picks).market_label == "Over 0.5"

    def test_ties_keep_first(self):
        picks = [_pick("Over 1.5", 80), _pick("Double Chance 1X", 80)]

        assert best_pick(picks).market_label == "Over 1.5"

    def test_none_qualifying(self):
        assert best_pick([_pick("Over 1.5", 90, meets=False)]) is None
        assert best_pick([]) is None


class TestSettlePick:
    """Grading labels against a final score."""

    @pytest.mark.parametrize("label, home, away, expected", [
        ("Over 2.5", 2, 1, True),
        ("Over 2.5", 1, 1, False),
        ("Under 2.5", 1, 1, True),
        ("Under 2.5", 3, 0, False),
        ("Double Chance 1X", 0, 0, True),
        ("Double Chance 1X", 0, 1, False),
        ("Double Chance X2", 1, 1, True),
        ("Double Chance X2", 2, 1, False),
        ("Double Chance 12", 1, 1, False),
        ("Double Chance 12", 0, 2, True),
        ("1X", 3, 3, True),
    ])
    def test_labels(self, label, home, away, expected):
        assert settle_pick(label, home, away) is expected

    def test_unknown_label(self):
        assert settle_pick("Correct Score 2-1", 2, 1) is None
