"""Canonical fixture records and the normalizer that builds them from raw rows.

The normalizer is the single validation gate of the analysis engine. Every
aggregator downstream assumes its input satisfies the CanonicalFixture
invariants, so provider quirks (string scores, half filled score pairs,
epoch timestamps, nested team objects) are all resolved here.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

HOME = "home"
AWAY = "away"

# Candidate key paths per canonical field, tried in order.
_FIXTURE_ID_PATHS = (("fixture_id",), ("fixtureId",), ("fixture", "id"), ("id",))
_KICKOFF_PATHS = (
    ("kickoff_utc",), ("kickoffUtc",), ("date_utc",), ("fixture", "date"),
    ("fixture", "timestamp"), ("date",),
)
_HOME_TEAM_PATHS = (
    ("home_team_id",), ("homeTeamId",), ("teams", "home", "id"), ("home", "id"),
)
_AWAY_TEAM_PATHS = (
    ("away_team_id",), ("awayTeamId",), ("teams", "away", "id"), ("away", "id"),
)
_FT_HOME_PATHS = (
    ("goals_home_ft",), ("goalsHomeFullTime",), ("goals_home",),
    ("score", "fulltime", "home"), ("goals", "home"),
)
_FT_AWAY_PATHS = (
    ("goals_away_ft",), ("goalsAwayFullTime",), ("goals_away",),
    ("score", "fulltime", "away"), ("goals", "away"),
)
_HT_HOME_PATHS = (
    ("goals_home_ht",), ("goalsHomeHalfTime",), ("score", "halftime", "home"),
)
_HT_AWAY_PATHS = (
    ("goals_away_ht",), ("goalsAwayHalfTime",), ("score", "halftime", "away"),
)
_COMPETITION_PATHS = (("competition_id",), ("competitionId",), ("league", "id"))
_SEASON_PATHS = (("season",), ("league", "season"))


class MalformedFixture(ValueError):
    """Raised when a raw fixture lacks usable identity fields."""

    def __init__(self, message: str, record: Any = None):
        super().__init__(message)
        self.record = record


@dataclass(frozen=True)
class CanonicalFixture:
    """One played or scheduled match in provider-agnostic form.

    Goal fields are ``None`` when unknown; a scheduled match is never
    represented with sentinel zeros.
    """

    fixture_id: int
    kickoff_utc: datetime
    home_team_id: int
    away_team_id: int
    goals_home_ft: Optional[int] = None
    goals_away_ft: Optional[int] = None
    goals_home_ht: Optional[int] = None
    goals_away_ht: Optional[int] = None
    competition_id: Optional[int] = None
    season: Optional[int] = None

    def __post_init__(self):
        _check_pair("full-time", self.goals_home_ft, self.goals_away_ft)
        _check_pair("half-time", self.goals_home_ht, self.goals_away_ht)
        if self.has_full_time and self.has_half_time:
            if self.goals_home_ht > self.goals_home_ft or self.goals_away_ht > self.goals_away_ft:
                raise ValueError(
                    f"Fixture {self.fixture_id}: half-time score exceeds full-time score"
                )

    @property
    def has_full_time(self) -> bool:
        return self.goals_home_ft is not None

    @property
    def has_half_time(self) -> bool:
        return self.goals_home_ht is not None

    @property
    def is_played(self) -> bool:
        return self.has_full_time

    def involves(self, team_id: int) -> bool:
        return team_id in (self.home_team_id, self.away_team_id)

    def is_home(self, team_id: int) -> bool:
        return self.home_team_id == team_id


def _check_pair(label: str, home: Optional[int], away: Optional[int]) -> None:
    if (home is None) != (away is None):
        raise ValueError(f"{label} goals must be both present or both absent")
    if home is not None and (home < 0 or away < 0):
        raise ValueError(f"{label} goals must be non-negative")


def _lookup(raw: Mapping, path: Sequence[str]) -> Any:
    value: Any = raw
    for key in path:
        if not isinstance(value, Mapping) or key not in value:
            return None
        value = value[key]
    return value


def _first(raw: Mapping, paths: Iterable[Sequence[str]]) -> Any:
    for path in paths:
        value = _lookup(raw, path)
        if value is not None:
            return value
    return None


def _to_int(value: Any) -> Optional[int]:
    """Parse an integral number from ints, integral floats or numeric strings."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
        return int(number) if number.is_integer() else None
    return None


def _to_goals(value: Any) -> Optional[int]:
    goals = _to_int(value)
    if goals is None or goals < 0:
        return None
    return goals


def _to_kickoff(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _goal_pair(raw: Mapping, home_paths, away_paths) -> Tuple[Optional[int], Optional[int]]:
    home = _to_goals(_first(raw, home_paths))
    away = _to_goals(_first(raw, away_paths))
    if home is None or away is None:
        return None, None
    return home, away


def normalize_fixture(raw: Mapping) -> CanonicalFixture:
    """Convert one raw fixture record into a CanonicalFixture.

    Raises:
        MalformedFixture: fixture id, team ids or kickoff are missing or
            unparseable.
    """
    if not isinstance(raw, Mapping):
        raise MalformedFixture(f"Fixture record must be a mapping, got {type(raw).__name__}", raw)

    fixture_id = _to_int(_first(raw, _FIXTURE_ID_PATHS))
    if fixture_id is None:
        raise MalformedFixture("Fixture record has no numeric fixture id", raw)

    home_team_id = _to_int(_first(raw, _HOME_TEAM_PATHS))
    away_team_id = _to_int(_first(raw, _AWAY_TEAM_PATHS))
    if home_team_id is None or away_team_id is None:
        raise MalformedFixture(f"Fixture {fixture_id} has no numeric team ids", raw)

    kickoff = _to_kickoff(_first(raw, _KICKOFF_PATHS))
    if kickoff is None:
        raise MalformedFixture(f"Fixture {fixture_id} has no parseable kickoff", raw)

    ft_home, ft_away = _goal_pair(raw, _FT_HOME_PATHS, _FT_AWAY_PATHS)
    ht_home, ht_away = _goal_pair(raw, _HT_HOME_PATHS, _HT_AWAY_PATHS)

    if ft_home is not None and ht_home is not None:
        if ht_home > ft_home or ht_away > ft_away:
            logger.warning(
                f"Fixture {fixture_id}: half-time {ht_home}-{ht_away} exceeds "
                f"full-time {ft_home}-{ft_away}, dropping half-time score"
            )
            ht_home, ht_away = None, None

    return CanonicalFixture(
        fixture_id=fixture_id,
        kickoff_utc=kickoff,
        home_team_id=home_team_id,
        away_team_id=away_team_id,
        goals_home_ft=ft_home,
        goals_away_ft=ft_away,
        goals_home_ht=ht_home,
        goals_away_ht=ht_away,
        competition_id=_to_int(_first(raw, _COMPETITION_PATHS)),
        season=_to_int(_first(raw, _SEASON_PATHS)),
    )


def normalize_fixtures(
    records: Iterable[Mapping],
) -> Tuple[List[CanonicalFixture], List[MalformedFixture]]:
    """Normalize a batch of raw records without aborting on bad ones.

    Returns:
        Tuple of (canonical fixtures, malformed-record errors)
    """
    fixtures: List[CanonicalFixture] = []
    malformed: List[MalformedFixture] = []

    for record in records:
        try:
            fixtures.append(normalize_fixture(record))
        except MalformedFixture as e:
            malformed.append(e)

    if malformed:
        logger.warning(f"Excluded {len(malformed)} malformed fixture records: {malformed[0]}")
    logger.debug(f"Normalized {len(fixtures)} fixtures")

    return fixtures, malformed


def team_fixtures(
    fixtures: Iterable[CanonicalFixture],
    team_id: int,
    venue: Optional[str] = None,
) -> List[CanonicalFixture]:
    """Select the fixtures a team took part in, optionally only at home or away."""
    if venue not in (None, HOME, AWAY):
        raise ValueError(f"venue must be None, '{HOME}' or '{AWAY}', got {venue!r}")

    selected = []
    for fixture in fixtures:
        if venue == HOME and fixture.home_team_id != team_id:
            continue
        if venue == AWAY and fixture.away_team_id != team_id:
            continue
        if fixture.involves(team_id):
            selected.append(fixture)
    return selected


def last_played(
    fixtures: Iterable[CanonicalFixture],
    limit: Optional[int] = None,
) -> List[CanonicalFixture]:
    """Played fixtures ordered newest first, truncated to ``limit``."""
    played = sorted(
        (f for f in fixtures if f.is_played),
        key=lambda f: (f.kickoff_utc, f.fixture_id),
        reverse=True,
    )
    return played if limit is None else played[:limit]
