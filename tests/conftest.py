"""Pytest fixtures for the football analysis test suite."""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from football_analysis.analysis import CanonicalFixture  # noqa: E402

BASE_KICKOFF = datetime(2024, 8, 17, 15, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Point configuration, database and logs at a temporary directory."""
    from football_analysis.config import get_settings
    from football_analysis.database import reset_engine
    from football_analysis.utils import logging as logging_utils

    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'test.db'}")
    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("LOGS_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("LOG_TO_FILE", "false")
    # Keep handlers off the root logger so CliRunner stream swaps are harmless
    monkeypatch.setattr(logging_utils, "_logging_configured", True)

    get_settings.cache_clear()
    reset_engine()
    yield
    reset_engine()
    get_settings.cache_clear()


def make_fixture(
    fixture_id,
    home,
    away,
    ft=None,
    ht=None,
    day=0,
    competition_id=39,
    season=2024,
):
    """Build a CanonicalFixture; ``day`` offsets the kickoff from a fixed base."""
    return CanonicalFixture(
        fixture_id=fixture_id,
        kickoff_utc=BASE_KICKOFF + timedelta(days=day),
        home_team_id=home,
        away_team_id=away,
        goals_home_ft=ft[0] if ft else None,
        goals_away_ft=ft[1] if ft else None,
        goals_home_ht=ht[0] if ht else None,
        goals_away_ht=ht[1] if ht else None,
        competition_id=competition_id,
        season=season,
    )


@pytest.fixture
def fixture_factory():
    return make_fixture


@pytest.fixture
def league_fixtures():
    """Four played league fixtures: (2,1), (0,0), (3,2), (1,1)."""
    return [
        make_fixture(1, 10, 20, ft=(2, 1), ht=(1, 0), day=0),
        make_fixture(2, 30, 40, ft=(0, 0), ht=(0, 0), day=1),
        make_fixture(3, 20, 30, ft=(3, 2), ht=(1, 2), day=2),
        make_fixture(4, 40, 10, ft=(1, 1), ht=(0, 1), day=3),
    ]


@pytest.fixture
def team_season():
    """Team 10's season: six played fixtures and one upcoming."""
    return [
        make_fixture(101, 10, 20, ft=(2, 0), ht=(1, 0), day=0),   # W
        make_fixture(102, 30, 10, ft=(1, 1), ht=(0, 0), day=7),   # D
        make_fixture(103, 10, 40, ft=(3, 1), ht=(2, 1), day=14),  # W
        make_fixture(104, 50, 10, ft=(0, 2), ht=(0, 1), day=21),  # W
        make_fixture(105, 10, 60, ft=(1, 2), ht=(1, 1), day=28),  # L
        make_fixture(106, 70, 10, ft=(0, 3), ht=(0, 2), day=35),  # W
        make_fixture(107, 10, 80, day=42),                        # upcoming
    ]


@pytest.fixture
def db_session():
    """In-memory SQLite session with all tables created."""
    from football_analysis.database import Base

    engine = create_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def raw_provider_fixture():
    """Fixture record as returned by the sports-data provider."""
    return {
        "fixture": {
            "id": 1035037,
            "date": "2024-08-16T19:00:00+00:00",
            "timestamp": 1723834800,
            "status": {"short": "FT"},
        },
        "league": {"id": 39, "season": 2024},
        "teams": {
            "home": {"id": 33, "name": "Manchester United"},
            "away": {"id": 36, "name": "Fulham"},
        },
        "goals": {"home": 1, "away": 0},
        "score": {
            "halftime": {"home": 0, "away": 0},
            "fulltime": {"home": 1, "away": 0},
        },
    }


@pytest.fixture
def raw_storage_row():
    """Fixture record as stored in the fixtures table."""
    return {
        "id": 5001,
        "date_utc": "2024-09-01T13:00:00Z",
        "competition_id": 61,
        "season": 2024,
        "home_team_id": 85,
        "away_team_id": 91,
        "goals_home": 2,
        "goals_away": 2,
        "goals_home_ht": 1,
        "goals_away_ht": 0,
    }
