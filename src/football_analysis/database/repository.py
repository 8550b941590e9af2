"""Read/write helpers for team settings and pick snapshots.

All functions take an open Session so callers control the transaction,
typically through ``get_session()``.
"""

import logging
from datetime import date, datetime, timezone
from typing import Dict, Iterable, List, Mapping, Optional, Union
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from ..analysis.algo_settings import AlgoSettings, normalize_algo_settings
from ..analysis.fixtures import CanonicalFixture
from ..analysis.picks import MarketCategory, PickRecord, settle_pick
from ..config import get_settings
from .models import DailyPick, TeamAlgoSettingsRecord

logger = logging.getLogger(__name__)

CRITERIA_FILTERS = ("all", "met", "unmet")
CATEGORY_FILTERS = ("all",) + tuple(category.value for category in MarketCategory)


def _user(user_id: Optional[str]) -> str:
    return user_id or get_settings().anonymous_user_id


def _settings_record(session: Session, team_id: int, user_id: str) -> Optional[TeamAlgoSettingsRecord]:
    return (
        session.query(TeamAlgoSettingsRecord)
        .filter(
            TeamAlgoSettingsRecord.user_id == user_id,
            TeamAlgoSettingsRecord.team_id == team_id,
        )
        .one_or_none()
    )


def load_team_settings(
    session: Session,
    team_id: int,
    user_id: Optional[str] = None,
) -> Optional[AlgoSettings]:
    """Stored settings for (user, team), normalized; None if never customized."""
    record = _settings_record(session, team_id, _user(user_id))
    if record is None or not record.settings:
        return None
    return normalize_algo_settings(record.settings)


def resolve_team_settings(
    session: Session,
    team_id: int,
    user_id: Optional[str] = None,
) -> AlgoSettings:
    """Stored settings for (user, team), falling back to the defaults."""
    return load_team_settings(session, team_id, user_id) or normalize_algo_settings()


def save_team_settings(
    session: Session,
    team_id: int,
    settings: Union[AlgoSettings, Mapping, None],
    user_id: Optional[str] = None,
) -> AlgoSettings:
    """Normalize and store settings, replacing any previous record as a whole."""
    user_id = _user(user_id)
    normalized = normalize_algo_settings(settings)
    payload = normalized.model_dump(mode="json")

    record = _settings_record(session, team_id, user_id)
    if record is None:
        session.add(TeamAlgoSettingsRecord(user_id=user_id, team_id=team_id, settings=payload))
        logger.info(f"Created algo settings for team {team_id}")
    else:
        record.settings = payload
        record.updated_at = datetime.utcnow()
        logger.info(f"Updated algo settings for team {team_id}")

    session.flush()
    return normalized


def delete_team_settings(
    session: Session,
    team_id: int,
    user_id: Optional[str] = None,
) -> bool:
    """Drop a team override. Returns True if one existed."""
    record = _settings_record(session, team_id, _user(user_id))
    if record is None:
        return False
    session.delete(record)
    session.flush()
    return True


def snapshot_date_key(now: Optional[datetime] = None, tz: Optional[ZoneInfo] = None) -> date:
    """Calendar date a snapshot taken at ``now`` is filed under."""
    tz = tz or get_settings().tzinfo
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(tz).date()


def snapshot_picks(
    session: Session,
    snapshot_date: date,
    picks: Iterable[PickRecord],
    kickoffs: Optional[Mapping[int, datetime]] = None,
) -> int:
    """Store pick records under a date, updating rows already captured that day.

    Returns:
        Number of rows inserted or updated
    """
    kickoffs = kickoffs or {}
    count = 0

    for pick in picks:
        row = (
            session.query(DailyPick)
            .filter(
                DailyPick.snapshot_date == snapshot_date,
                DailyPick.fixture_id == pick.fixture_id,
                DailyPick.team_id.is_(None) if pick.team_id is None else DailyPick.team_id == pick.team_id,
                DailyPick.market_label == pick.market_label,
            )
            .one_or_none()
        )
        if row is None:
            row = DailyPick(
                snapshot_date=snapshot_date,
                fixture_id=pick.fixture_id,
                team_id=pick.team_id,
                market_label=pick.market_label,
                status="pending",
            )
            session.add(row)

        kickoff = kickoffs.get(pick.fixture_id)
        row.fixture_kickoff_utc = kickoff.replace(tzinfo=None) if kickoff else None
        row.market_category = pick.market_category.value
        row.scope = pick.scope.value
        row.percent_green = pick.percent_green
        row.sample_size = pick.sample_size
        row.meets_criteria = pick.meets_criteria
        count += 1

    session.flush()
    logger.info(f"Snapshot {snapshot_date}: stored {count} picks")
    return count


def pick_history(
    session: Session,
    since: date,
    criteria: str = "all",
    category: str = "all",
) -> List[DailyPick]:
    """Snapshotted picks from ``since`` onward, optionally filtered.

    Args:
        criteria: 'all', 'met' (meets_criteria) or 'unmet'
        category: 'all', 'over_under' or 'double_chance'
    """
    if criteria not in CRITERIA_FILTERS:
        raise ValueError(f"criteria must be one of {CRITERIA_FILTERS}")
    if category not in CATEGORY_FILTERS:
        raise ValueError(f"category must be one of {CATEGORY_FILTERS}")

    query = session.query(DailyPick).filter(DailyPick.snapshot_date >= since)
    if criteria == "met":
        query = query.filter(DailyPick.meets_criteria.is_(True))
    elif criteria == "unmet":
        query = query.filter(DailyPick.meets_criteria.is_(False))
    if category != "all":
        query = query.filter(DailyPick.market_category == category)

    return query.order_by(
        DailyPick.snapshot_date, DailyPick.fixture_kickoff_utc, DailyPick.id
    ).all()


def resolve_pending_picks(session: Session, fixtures: Iterable[CanonicalFixture]) -> int:
    """Grade pending picks whose fixtures now have a full-time score.

    Returns:
        Number of picks resolved
    """
    played: Dict[int, CanonicalFixture] = {f.fixture_id: f for f in fixtures if f.is_played}
    if not played:
        return 0

    pending = (
        session.query(DailyPick)
        .filter(DailyPick.status == "pending", DailyPick.fixture_id.in_(list(played)))
        .all()
    )

    for row in pending:
        fixture = played[row.fixture_id]
        outcome = settle_pick(row.market_label, fixture.goals_home_ft, fixture.goals_away_ft)
        row.goals_home = fixture.goals_home_ft
        row.goals_away = fixture.goals_away_ft
        row.status = "void" if outcome is None else ("won" if outcome else "lost")
        row.resolved_at = datetime.utcnow()

    session.flush()
    if pending:
        logger.info(f"Resolved {len(pending)} pending picks")
    return len(pending)
