"""Batch analysis across many teams or leagues.

Every unit of work is a pure function of an immutable fixture tuple, so the
units run on a thread pool and their results are merged into plain dicts.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from .algo_settings import AlgoSettings, normalize_algo_settings
from .fixtures import CanonicalFixture, last_played, team_fixtures
from .markets import (
    MarketDistribution,
    ScoreSelector,
    aggregate_league,
    aggregate_markets,
    orient_to_fixture,
)
from .picks import PickRecord, best_pick, evaluate_distribution
from .streaks import Outcome, StreakSummary, analyze_streaks, form

logger = logging.getLogger(__name__)


@dataclass
class TeamAnalysis:
    """Everything the engine derives for one team."""

    team_id: int
    settings: AlgoSettings
    distributions: Dict[ScoreSelector, MarketDistribution]
    streaks: StreakSummary
    form: List[Outcome] = field(default_factory=list)
    next_fixture_id: Optional[int] = None
    picks: List[PickRecord] = field(default_factory=list)

    @property
    def best_pick(self) -> Optional[PickRecord]:
        return best_pick(self.picks)

    def to_dict(self) -> Dict:
        return {
            "team_id": self.team_id,
            "settings": self.settings.model_dump(),
            "distributions": {
                selector.value: distribution.to_dict()
                for selector, distribution in self.distributions.items()
            },
            "streaks": self.streaks.to_dict(),
            "form": [outcome.value for outcome in self.form],
            "next_fixture_id": self.next_fixture_id,
            "picks": [pick.to_dict() for pick in self.picks],
        }


def next_fixture(
    fixtures: Iterable[CanonicalFixture],
    as_of: Optional[datetime] = None,
) -> Optional[CanonicalFixture]:
    """Earliest unplayed fixture kicking off at or after ``as_of``.

    Without ``as_of`` the latest played kickoff is the reference point, so an
    unplayed fixture that later results have overtaken (a postponement still
    waiting for a new date) is never picked as the next one.
    """
    fixtures = list(fixtures)
    if as_of is None:
        latest = max((f.kickoff_utc for f in fixtures if f.is_played), default=None)
        upcoming = [
            f for f in fixtures
            if not f.is_played and (latest is None or f.kickoff_utc > latest)
        ]
    else:
        upcoming = [f for f in fixtures if not f.is_played and f.kickoff_utc >= as_of]
    if not upcoming:
        return None
    return min(upcoming, key=lambda f: (f.kickoff_utc, f.fixture_id))


def analyze_team(
    fixtures: Iterable[CanonicalFixture],
    team_id: int,
    settings: Optional[AlgoSettings] = None,
    form_window: int = 5,
    as_of: Optional[datetime] = None,
) -> TeamAnalysis:
    """Distributions over the settings window, streaks and picks for one team.

    Distributions use the team's last ``settings.window_size`` played
    fixtures, from the team's perspective; streaks and form use every
    fixture supplied. With ``as_of`` set, only fixtures kicking off before
    it count as history. Picks are evaluated for the team's next unplayed
    fixture on the full-time distribution, re-keyed to that fixture's home
    and away sides.
    """
    settings = settings or normalize_algo_settings()
    own = team_fixtures(fixtures, team_id)
    history = own if as_of is None else [f for f in own if f.kickoff_utc < as_of]
    window = last_played(history, settings.window_size)

    distributions = {
        selector: aggregate_markets(window, selector=selector, team_id=team_id)
        for selector in ScoreSelector
    }

    upcoming = next_fixture(own, as_of=as_of)
    picks: List[PickRecord] = []
    if upcoming is not None:
        oriented = orient_to_fixture(
            distributions[ScoreSelector.FULL_TIME], upcoming.is_home(team_id)
        )
        picks = evaluate_distribution(upcoming.fixture_id, oriented, settings)

    return TeamAnalysis(
        team_id=team_id,
        settings=settings,
        distributions=distributions,
        streaks=analyze_streaks(history, team_id),
        form=form(history, team_id, window=form_window),
        next_fixture_id=upcoming.fixture_id if upcoming else None,
        picks=picks,
    )


def analyze_teams(
    fixtures: Iterable[CanonicalFixture],
    team_ids: Iterable[int],
    settings_by_team: Optional[Mapping[int, AlgoSettings]] = None,
    max_workers: int = 4,
    form_window: int = 5,
    as_of: Optional[datetime] = None,
) -> Dict[int, TeamAnalysis]:
    """Analyze many teams in parallel over the same fixture pool."""
    shared = tuple(fixtures)
    settings_by_team = settings_by_team or {}
    team_ids = list(dict.fromkeys(team_ids))

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {
            team_id: executor.submit(
                analyze_team,
                shared,
                team_id,
                settings_by_team.get(team_id),
                form_window,
                as_of,
            )
            for team_id in team_ids
        }
        results = {team_id: future.result() for team_id, future in futures.items()}

    logger.info(f"Analyzed {len(results)} teams over {len(shared)} fixtures")
    return results


def analyze_leagues(
    fixtures: Iterable[CanonicalFixture],
    selector: ScoreSelector = ScoreSelector.FULL_TIME,
    max_workers: int = 4,
) -> Dict[Tuple[Optional[int], Optional[int]], MarketDistribution]:
    """League distributions keyed by (competition_id, season)."""
    shared = tuple(fixtures)
    partitions = sorted(
        {(f.competition_id, f.season) for f in shared},
        key=lambda key: (key[0] is None, key[0] or 0, key[1] is None, key[1] or 0),
    )

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {
            key: executor.submit(_league_partition, shared, selector, key)
            for key in partitions
        }
        results = {key: future.result() for key, future in futures.items()}

    logger.info(f"Aggregated {len(results)} league partitions")
    return results


def _league_partition(
    fixtures: Tuple[CanonicalFixture, ...],
    selector: ScoreSelector,
    key: Tuple[Optional[int], Optional[int]],
) -> MarketDistribution:
    competition_id, season = key
    pooled = [f for f in fixtures if f.competition_id == competition_id and f.season == season]
    return aggregate_league(pooled, selector=selector)
