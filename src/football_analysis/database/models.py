"""Database models for per-team settings and daily pick snapshots."""

from datetime import date, datetime
from typing import Optional

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

Base = declarative_base()


class TeamAlgoSettingsRecord(Base):
    """Pick thresholds customized by one user for one team."""

    __tablename__ = "team_algo_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    team_id: Mapped[int] = mapped_column(Integer, nullable=False)
    settings: Mapped[dict] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    __table_args__ = (
        UniqueConstraint("user_id", "team_id"),
    )


class DailyPick(Base):
    """A pick record captured on a given calendar date for later reporting."""

    __tablename__ = "daily_picks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    snapshot_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    fixture_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    team_id: Mapped[Optional[int]] = mapped_column(Integer)
    fixture_kickoff_utc: Mapped[Optional[datetime]] = mapped_column(DateTime)

    # Pick
    market_label: Mapped[str] = mapped_column(String(40), nullable=False)  # Over 2.5, Double Chance 1X
    market_category: Mapped[str] = mapped_column(String(20), nullable=False)  # over_under, double_chance
    scope: Mapped[str] = mapped_column(String(10), default="team")
    percent_green: Mapped[int] = mapped_column(Integer, nullable=False)
    sample_size: Mapped[int] = mapped_column(Integer, nullable=False)
    meets_criteria: Mapped[bool] = mapped_column(Boolean, nullable=False)

    # Settlement
    status: Mapped[str] = mapped_column(String(10), default="pending")  # pending, won, lost, void
    goals_home: Mapped[Optional[int]] = mapped_column(Integer)
    goals_away: Mapped[Optional[int]] = mapped_column(Integer)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("snapshot_date", "fixture_id", "team_id", "market_label"),
    )
