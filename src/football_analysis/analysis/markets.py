"""Over/under and double-chance distributions for a collection of fixtures.

One aggregator serves full-time, half-time and second-half markets through a
ScoreSelector, and serves both team and league scope: league aggregation is
the same computation over the pooled fixtures of a competition.
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Iterable, Optional, Tuple

from .fixtures import CanonicalFixture

logger = logging.getLogger(__name__)

GOAL_LINES: Tuple[str, ...] = ("0.5", "1.5", "2.5", "3.5", "4.5", "5.5")
DOUBLE_CHANCE_KEYS: Tuple[str, ...] = ("1X", "X2", "12")
RESULT_KEYS: Tuple[str, ...] = ("1", "X", "2")


class ScoreSelector(Enum):
    """Which score pair of a fixture a market is settled on."""

    FULL_TIME = "ft"
    HALF_TIME = "ht"
    SECOND_HALF = "2h"

    def goals(self, fixture: CanonicalFixture) -> Optional[Tuple[int, int]]:
        """Return (home, away) goals for this period, or None if unknown."""
        if self is ScoreSelector.FULL_TIME:
            if not fixture.has_full_time:
                return None
            return fixture.goals_home_ft, fixture.goals_away_ft

        if self is ScoreSelector.HALF_TIME:
            if not fixture.has_half_time:
                return None
            return fixture.goals_home_ht, fixture.goals_away_ht

        if not (fixture.has_full_time and fixture.has_half_time):
            return None
        home = fixture.goals_home_ft - fixture.goals_home_ht
        away = fixture.goals_away_ft - fixture.goals_away_ht
        assert home >= 0 and away >= 0, (
            f"Fixture {fixture.fixture_id}: negative second-half goals {home}-{away}"
        )
        return home, away


class AggregationScope(Enum):
    """Whether a distribution pools one team's fixtures or a whole league."""

    TEAM = "team"
    LEAGUE = "league"


@dataclass(frozen=True)
class ProbabilitySet:
    """A raw count and its share of the sample as an integer percent."""

    raw: int = 0
    percent: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {"raw": self.raw, "percent": self.percent}


def percent_of(count: int, total: int) -> int:
    """Integer percentage rounded half away from zero; 0 for an empty sample."""
    if total <= 0:
        return 0
    # Exact integer form of floor(count / total * 100 + 0.5) for count >= 0
    return (200 * count + total) // (2 * total)


def _prob(count: int, total: int) -> ProbabilitySet:
    return ProbabilitySet(raw=count, percent=percent_of(count, total))


@dataclass(frozen=True)
class MarketDistribution:
    """Market statistics for one fixture collection and score period.

    Keys of ``result``, ``clean_sheet`` and ``draw_no_bet`` use betting side
    notation: "1" is the home side (or the analysed team in team
    perspective), "2" the other side, "X" the draw.
    """

    selector: ScoreSelector
    scope: AggregationScope
    sample_size: int
    over: Dict[str, ProbabilitySet]
    under: Dict[str, ProbabilitySet]
    double_chance: Dict[str, ProbabilitySet]
    result: Dict[str, ProbabilitySet] = field(default_factory=dict)
    btts: ProbabilitySet = ProbabilitySet()
    clean_sheet: Dict[str, ProbabilitySet] = field(default_factory=dict)
    draw_no_bet: Dict[str, ProbabilitySet] = field(default_factory=dict)
    team_id: Optional[int] = None

    def to_dict(self) -> Dict:
        def table(values: Dict[str, ProbabilitySet]) -> Dict[str, Dict[str, int]]:
            return {key: value.to_dict() for key, value in values.items()}

        return {
            "selector": self.selector.value,
            "scope": self.scope.value,
            "team_id": self.team_id,
            "sample_size": self.sample_size,
            "over": table(self.over),
            "under": table(self.under),
            "double_chance": table(self.double_chance),
            "result": table(self.result),
            "btts": self.btts.to_dict(),
            "clean_sheet": table(self.clean_sheet),
            "draw_no_bet": table(self.draw_no_bet),
        }


def _oriented_goals(
    fixture: CanonicalFixture,
    selector: ScoreSelector,
    team_id: Optional[int],
) -> Optional[Tuple[int, int]]:
    """Goals as (side 1, side 2); side 1 is the team when team_id is given."""
    goals = selector.goals(fixture)
    if goals is None or team_id is None:
        return goals
    if fixture.home_team_id == team_id:
        return goals
    if fixture.away_team_id == team_id:
        return goals[1], goals[0]
    return None


def aggregate_markets(
    fixtures: Iterable[CanonicalFixture],
    selector: ScoreSelector = ScoreSelector.FULL_TIME,
    team_id: Optional[int] = None,
    scope: AggregationScope = AggregationScope.TEAM,
) -> MarketDistribution:
    """Compute over/under and double-chance distributions for a fixture collection.

    Fixtures without the selected score pair are left out of the sample
    entirely. With ``team_id`` set, outcomes are read from that team's side
    and fixtures the team did not play are left out as well.

    Args:
        fixtures: Canonical fixtures, in any order
        selector: Score period the markets are settled on
        team_id: Optional team whose perspective defines side "1"
        scope: Recorded on the result so thresholds can tell team and
            league samples apart

    Returns:
        MarketDistribution
    """
    if not isinstance(selector, ScoreSelector):
        raise TypeError(f"selector must be a ScoreSelector, got {selector!r}")

    overs = {line: 0 for line in GOAL_LINES}
    side1 = draws = side2 = 0
    btts = clean1 = clean2 = 0
    total = 0

    for fixture in fixtures:
        goals = _oriented_goals(fixture, selector, team_id)
        if goals is None:
            continue
        g1, g2 = goals
        total += 1
        total_goals = g1 + g2

        for line in GOAL_LINES:
            if total_goals > float(line):
                overs[line] += 1

        if g1 > g2:
            side1 += 1
        elif g1 < g2:
            side2 += 1
        else:
            draws += 1

        if g1 > 0 and g2 > 0:
            btts += 1
        if g2 == 0:
            clean1 += 1
        if g1 == 0:
            clean2 += 1

    logger.debug(
        f"Aggregated {total} fixtures ({selector.value}, {scope.value}"
        f"{f', team {team_id}' if team_id is not None else ''})"
    )

    return MarketDistribution(
        selector=selector,
        scope=scope,
        team_id=team_id,
        sample_size=total,
        over={line: _prob(overs[line], total) for line in GOAL_LINES},
        under={line: _prob(total - overs[line], total) for line in GOAL_LINES},
        double_chance={
            "1X": _prob(side1 + draws, total),
            "X2": _prob(draws + side2, total),
            "12": _prob(side1 + side2, total),
        },
        result={
            "1": _prob(side1, total),
            "X": _prob(draws, total),
            "2": _prob(side2, total),
        },
        btts=_prob(btts, total),
        clean_sheet={"1": _prob(clean1, total), "2": _prob(clean2, total)},
        draw_no_bet={"1": _prob(side1, total), "2": _prob(side2, total)},
    )


def aggregate_league(
    fixtures: Iterable[CanonicalFixture],
    selector: ScoreSelector = ScoreSelector.FULL_TIME,
    competition_id: Optional[int] = None,
    season: Optional[int] = None,
) -> MarketDistribution:
    """Aggregate every fixture of a league, optionally one competition/season.

    Outcomes are read from the home side. The result carries LEAGUE scope so
    pick thresholds use the league sample size requirement.
    """
    pooled = [
        f for f in fixtures
        if (competition_id is None or f.competition_id == competition_id)
        and (season is None or f.season == season)
    ]
    return aggregate_markets(pooled, selector=selector, scope=AggregationScope.LEAGUE)


def orient_to_fixture(distribution: MarketDistribution, team_is_home: bool) -> MarketDistribution:
    """Re-key a team-perspective distribution onto an upcoming fixture's sides.

    In team perspective "1" is the analysed team. For a fixture the team
    plays away, its side is "2", so 1X and X2 trade places (as do the "1"
    and "2" entries of result, clean sheet and draw-no-bet); 12 and the goal
    lines do not depend on orientation.
    """
    if team_is_home:
        return distribution

    def swap(values: Dict[str, ProbabilitySet]) -> Dict[str, ProbabilitySet]:
        swapped = dict(values)
        swapped["1"], swapped["2"] = values["2"], values["1"]
        return swapped

    dc = distribution.double_chance
    return replace(
        distribution,
        double_chance={"1X": dc["X2"], "X2": dc["1X"], "12": dc["12"]},
        result=swap(distribution.result),
        clean_sheet=swap(distribution.clean_sheet),
        draw_no_bet=swap(distribution.draw_no_bet),
    )
