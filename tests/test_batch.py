"""Tests for per-team and per-league batch analysis."""

from datetime import timedelta

from football_analysis.analysis import (
    Outcome,
    ScoreSelector,
    aggregate_league,
    analyze_leagues,
    analyze_team,
    analyze_teams,
    next_fixture,
    normalize_algo_settings,
)

from conftest import BASE_KICKOFF, make_fixture


def _away_wins(team_id, count):
    """``count`` 2-0 away wins for ``team_id``, one a week."""
    return [
        make_fixture(200 + i, 30 + i, team_id, ft=(0, 2), day=7 * i)
        for i in range(count)
    ]


class TestNextFixture:
    def test_earliest_unplayed(self, team_season):
        assert next_fixture(team_season).fixture_id == 107

    def test_as_of_excludes_earlier(self, team_season):
        later = team_season + [make_fixture(108, 10, 90, day=60)]

        assert next_fixture(later, as_of=BASE_KICKOFF + timedelta(days=50)).fixture_id == 108

    def test_none_when_all_played(self, league_fixtures):
        assert next_fixture(league_fixtures) is None

    def test_postponed_fixture_overtaken_by_results_is_skipped(self):
        """An unplayed fixture older than the latest result is not the next one."""
        fixtures = [make_fixture(50, 1, 2, day=0)]
        fixtures += [make_fixture(60 + i, 1, 3 + i, ft=(1, 0), day=7 * (i + 1)) for i in range(6)]
        fixtures.append(make_fixture(99, 1, 9, day=56))

        assert next_fixture(fixtures).fixture_id == 99

    def test_as_of_after_every_fixture(self, team_season):
        assert next_fixture(team_season, as_of=BASE_KICKOFF + timedelta(days=43)) is None


class TestAnalyzeTeam:
    """Test the per-team analysis bundle."""

    def test_distributions_for_every_selector(self, team_season):
        analysis = analyze_team(team_season, 10)

        assert set(analysis.distributions) == set(ScoreSelector)
        assert analysis.distributions[ScoreSelector.FULL_TIME].sample_size == 6

    def test_window_limits_sample(self, team_season):
        settings = normalize_algo_settings({"window_size": 5})
        analysis = analyze_team(team_season, 10, settings)

        assert analysis.distributions[ScoreSelector.FULL_TIME].sample_size == 5

    def test_picks_for_next_fixture(self, team_season):
        analysis = analyze_team(team_season, 10)

        assert analysis.next_fixture_id == 107
        assert analysis.picks
        assert all(p.fixture_id == 107 for p in analysis.picks)
        assert all(p.team_id == 10 for p in analysis.picks)

    def test_criteria_applied(self, team_season):
        settings = normalize_algo_settings({"minimum_sample_size": 6, "minimum_qualifying_percent": 80})
        picks = {p.market_label: p for p in analyze_team(team_season, 10, settings).picks}

        # Totals 2,2,4,2,3,3 are all over 1.5
        assert picks["Over 1.5"].percent_green == 100
        assert picks["Over 1.5"].meets_criteria
        assert not picks["Over 3.5"].meets_criteria

    def test_double_chance_follows_team_into_home_fixture(self):
        """Away wins count towards 1X when the team hosts the next fixture."""
        fixtures = _away_wins(1, 6) + [make_fixture(99, 1, 2, day=70)]
        picks = {p.market_label: p for p in analyze_team(fixtures, 1).picks}

        assert picks["Double Chance 1X"].percent_green == 100
        assert picks["Double Chance 1X"].meets_criteria
        assert picks["Double Chance X2"].percent_green == 0
        assert picks["Double Chance 12"].percent_green == 100

    def test_double_chance_follows_team_into_away_fixture(self):
        fixtures = _away_wins(1, 6) + [make_fixture(99, 2, 1, day=70)]
        picks = {p.market_label: p for p in analyze_team(fixtures, 1).picks}

        assert picks["Double Chance X2"].percent_green == 100
        assert picks["Double Chance 1X"].percent_green == 0

    def test_distributions_use_team_perspective(self):
        analysis = analyze_team(_away_wins(1, 6), 1)
        distribution = analysis.distributions[ScoreSelector.FULL_TIME]

        assert distribution.team_id == 1
        assert distribution.result["1"].percent == 100

    def test_as_of_limits_history(self, team_season):
        """Results after the reference time stay out of window, streaks and form."""
        analysis = analyze_team(team_season, 10, as_of=BASE_KICKOFF + timedelta(days=20))

        assert analysis.distributions[ScoreSelector.FULL_TIME].sample_size == 3
        assert analysis.form == [Outcome.WIN, Outcome.DRAW, Outcome.WIN]
        assert analysis.streaks.current_type is Outcome.WIN
        assert analysis.streaks.longest[Outcome.LOSS] == 0
        assert analysis.next_fixture_id == 107

    def test_sample_below_minimum(self, team_season):
        settings = normalize_algo_settings({"minimum_sample_size": 10})
        analysis = analyze_team(team_season, 10, settings)

        assert not any(p.meets_criteria for p in analysis.picks)
        assert analysis.best_pick is None

    def test_no_upcoming_fixture(self, team_season):
        played_only = [f for f in team_season if f.is_played]
        analysis = analyze_team(played_only, 10)

        assert analysis.next_fixture_id is None
        assert analysis.picks == []

    def test_streaks_and_form(self, team_season):
        analysis = analyze_team(team_season, 10, form_window=3)

        assert analysis.streaks.current_type is Outcome.WIN
        assert analysis.streaks.current_length == 1
        assert analysis.form == [Outcome.WIN, Outcome.LOSS, Outcome.WIN]

    def test_to_dict(self, team_season):
        data = analyze_team(team_season, 10).to_dict()

        assert data["team_id"] == 10
        assert data["next_fixture_id"] == 107
        assert set(data["distributions"]) == {"ft", "ht", "2h"}
        assert data["settings"]["window_size"] == 30


class TestAnalyzeTeams:
    def test_matches_sequential_analysis(self, team_season, league_fixtures):
        fixtures = team_season + league_fixtures
        results = analyze_teams(fixtures, [10, 20, 30, 10], max_workers=3)

        assert list(results) == [10, 20, 30]
        for team_id, analysis in results.items():
            assert analysis.to_dict() == analyze_team(fixtures, team_id).to_dict()

    def test_settings_per_team(self, team_season):
        strict = normalize_algo_settings({"minimum_qualifying_percent": 100})
        results = analyze_teams(team_season, [10], settings_by_team={10: strict})

        assert results[10].settings == strict


class TestAnalyzeLeagues:
    def test_partitions_by_competition_and_season(self, league_fixtures):
        fixtures = league_fixtures + [
            make_fixture(90, 1, 2, ft=(1, 0), competition_id=140, season=2024),
            make_fixture(91, 1, 2, ft=(2, 2), competition_id=39, season=2023),
        ]
        results = analyze_leagues(fixtures, max_workers=2)

        assert set(results) == {(39, 2024), (39, 2023), (140, 2024)}
        assert results[(39, 2024)] == aggregate_league(league_fixtures)
        assert results[(140, 2024)].sample_size == 1

    def test_half_time_selector(self, league_fixtures):
        results = analyze_leagues(league_fixtures, selector=ScoreSelector.HALF_TIME)

        assert results[(39, 2024)].selector is ScoreSelector.HALF_TIME
