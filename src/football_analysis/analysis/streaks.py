"""Win/draw/loss streaks and per-market condition streaks for one team.

The current streak is read newest-first and the longest streaks oldest-first.
Each public entry point builds its own ordered copy of the input, so callers
may pass fixtures in any order and the two scans never share a buffer.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .fixtures import CanonicalFixture
from .markets import GOAL_LINES, ScoreSelector, percent_of

logger = logging.getLogger(__name__)


class Outcome(Enum):
    """Result of a match from one team's point of view."""

    WIN = "win"
    DRAW = "draw"
    LOSS = "loss"


@dataclass(frozen=True)
class StreakSummary:
    """Current run and longest runs of each outcome for one team."""

    current_type: Optional[Outcome]
    current_length: int
    longest: Dict[Outcome, int]
    sample_size: int = 0
    team_id: Optional[int] = None

    def to_dict(self) -> Dict:
        return {
            "team_id": self.team_id,
            "sample_size": self.sample_size,
            "current_type": self.current_type.value if self.current_type else None,
            "current_length": self.current_length,
            "longest": {outcome.value: length for outcome, length in self.longest.items()},
        }


@dataclass(frozen=True)
class ConditionStreak:
    """Active run of a market condition and how often such runs extended."""

    active: bool = False
    length: int = 0
    continuation_percent: Optional[int] = None

    def to_dict(self) -> Dict:
        return {
            "active": self.active,
            "length": self.length,
            "continuation_percent": self.continuation_percent,
        }


def classify(goals_for: int, goals_against: int) -> Outcome:
    if goals_for > goals_against:
        return Outcome.WIN
    if goals_for < goals_against:
        return Outcome.LOSS
    return Outcome.DRAW


def _team_goals(
    fixture: CanonicalFixture,
    team_id: int,
    selector: ScoreSelector,
) -> Optional[Tuple[int, int]]:
    """(goals for, goals against) of the team, or None if not resolvable."""
    goals = selector.goals(fixture)
    if goals is None:
        return None
    if fixture.home_team_id == team_id:
        return goals
    if fixture.away_team_id == team_id:
        return goals[1], goals[0]
    return None


def _resolved(
    fixtures: Iterable[CanonicalFixture],
    team_id: int,
    selector: ScoreSelector,
    newest_first: bool,
) -> List[Tuple[int, int]]:
    rows = []
    for fixture in fixtures:
        goals = _team_goals(fixture, team_id, selector)
        if goals is not None:
            rows.append((fixture, goals))
    rows.sort(key=lambda row: (row[0].kickoff_utc, row[0].fixture_id), reverse=newest_first)
    return [goals for _, goals in rows]


def current_streak(results_newest_first: Sequence[Outcome]) -> Tuple[Optional[Outcome], int]:
    """Outcome and length of the run ending at the most recent result."""
    if not results_newest_first:
        return None, 0

    streak_type = results_newest_first[0]
    length = 0
    for outcome in results_newest_first:
        if outcome is not streak_type:
            break
        length += 1
    return streak_type, length


def longest_streaks(results_oldest_first: Sequence[Outcome]) -> Dict[Outcome, int]:
    """Longest run of each outcome over a chronologically ordered sequence."""
    longest = {outcome: 0 for outcome in Outcome}
    previous: Optional[Outcome] = None
    running = 0

    for outcome in results_oldest_first:
        running = running + 1 if outcome is previous else 1
        previous = outcome
        if running > longest[outcome]:
            longest[outcome] = running

    return longest


def analyze_streaks(
    fixtures: Iterable[CanonicalFixture],
    team_id: int,
    selector: ScoreSelector = ScoreSelector.FULL_TIME,
) -> StreakSummary:
    """Build a team's StreakSummary from fixtures in any order.

    Fixtures without the selected score, or not involving the team, carry
    no result and are skipped.
    """
    fixtures = list(fixtures)

    newest_first = [classify(*g) for g in _resolved(fixtures, team_id, selector, newest_first=True)]
    oldest_first = [classify(*g) for g in _resolved(fixtures, team_id, selector, newest_first=False)]

    current_type, current_length = current_streak(newest_first)
    return StreakSummary(
        current_type=current_type,
        current_length=current_length,
        longest=longest_streaks(oldest_first),
        sample_size=len(oldest_first),
        team_id=team_id,
    )


def form(
    fixtures: Iterable[CanonicalFixture],
    team_id: int,
    window: int = 5,
) -> List[Outcome]:
    """The team's last ``window`` full-time results, newest first."""
    resolved = _resolved(fixtures, team_id, ScoreSelector.FULL_TIME, newest_first=True)
    return [classify(*g) for g in resolved[:window]]


def condition_streak(sequence: Sequence[bool]) -> ConditionStreak:
    """Streak statistics for a chronological sequence of condition hits.

    The continuation percentage looks at every earlier run at least as long
    as the active one and counts how often the match right after its first
    ``length`` hits was a hit too. None when no such run had a successor.
    """
    if not sequence or not sequence[-1]:
        return ConditionStreak()

    length = 0
    for hit in reversed(sequence):
        if not hit:
            break
        length += 1

    occurrences = confirmed = 0
    cursor = 0
    while cursor < len(sequence):
        if not sequence[cursor]:
            cursor += 1
            continue
        start = cursor
        while cursor < len(sequence) and sequence[cursor]:
            cursor += 1
        if cursor - start >= length:
            next_index = start + length
            if next_index < len(sequence):
                occurrences += 1
                if sequence[next_index]:
                    confirmed += 1

    return ConditionStreak(
        active=True,
        length=length,
        continuation_percent=percent_of(confirmed, occurrences) if occurrences else None,
    )


def _conditions() -> Dict[str, Callable[[int, int], bool]]:
    conditions: Dict[str, Callable[[int, int], bool]] = {
        "win": lambda gf, ga: gf > ga,
        "draw": lambda gf, ga: gf == ga,
        "loss": lambda gf, ga: gf < ga,
        "1X": lambda gf, ga: gf >= ga,
        "X2": lambda gf, ga: gf <= ga,
        "12": lambda gf, ga: gf != ga,
        "btts": lambda gf, ga: gf > 0 and ga > 0,
        "clean_sheet": lambda gf, ga: ga == 0,
        "failed_to_score": lambda gf, ga: gf == 0,
    }
    for line in GOAL_LINES:
        limit = float(line)
        conditions[f"over_{line}"] = lambda gf, ga, limit=limit: gf + ga > limit
        conditions[f"under_{line}"] = lambda gf, ga, limit=limit: gf + ga < limit
    return conditions


CONDITIONS = _conditions()


def condition_streaks(
    fixtures: Iterable[CanonicalFixture],
    team_id: int,
    selector: ScoreSelector = ScoreSelector.FULL_TIME,
) -> Dict[str, ConditionStreak]:
    """Active streak and continuation rate for every tracked market condition."""
    chronological = _resolved(fixtures, team_id, selector, newest_first=False)
    return {
        name: condition_streak([check(gf, ga) for gf, ga in chronological])
        for name, check in CONDITIONS.items()
    }
