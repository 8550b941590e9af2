"""Database models and operations."""

from .models import Base, DailyPick, TeamAlgoSettingsRecord
from .repository import (
    delete_team_settings,
    load_team_settings,
    pick_history,
    resolve_pending_picks,
    resolve_team_settings,
    save_team_settings,
    snapshot_date_key,
    snapshot_picks,
)
from .session import get_session, init_db, reset_engine

__all__ = [
    "Base",
    "DailyPick",
    "TeamAlgoSettingsRecord",
    "delete_team_settings",
    "load_team_settings",
    "pick_history",
    "resolve_pending_picks",
    "resolve_team_settings",
    "save_team_settings",
    "snapshot_date_key",
    "snapshot_picks",
    "get_session",
    "init_db",
    "reset_engine",
]
