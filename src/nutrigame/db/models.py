"""ORM models for the gamification store.

Document-style identities are kept where the store contract relies on them:
missions use a deterministic ``{user_id}_{type}_{date}`` primary key so a
duplicate submission fails at insert time, and weekly rankings are keyed
``{squad_code}_{week_id}``.
"""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    ForeignKeyConstraint,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from nutrigame.db.base import Base


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """Player profile plus the denormalized XP / streak state."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    squad_code: Mapped[str | None] = mapped_column(String(6), nullable=True, index=True)
    is_coach: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")

    total_xp: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default="0")
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    last_completed_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    bonus_awarded_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    device_token: Mapped[str | None] = mapped_column(String(512), nullable=True)
    timezone: Mapped[str] = mapped_column(String(64), nullable=False, default="UTC", server_default="UTC")
    notifications_enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default="true"
    )
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


# ---------------------------------------------------------------------------
# Squads
# ---------------------------------------------------------------------------


class Squad(Base):
    """A group sharing a weekly leaderboard. ``member_count`` is counter-maintained."""

    __tablename__ = "squads"

    code: Mapped[str] = mapped_column(String(6), primary_key=True)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    owner_user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    member_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    max_members: Mapped[int] = mapped_column(Integer, nullable=False, default=100, server_default="100")
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


# ---------------------------------------------------------------------------
# Missions
# ---------------------------------------------------------------------------


class Mission(Base):
    """One completion per (user, type, day); hydration is updated in place."""

    __tablename__ = "missions"
    __table_args__ = (
        UniqueConstraint("user_id", "type", "date", name="uq_missions_user_type_date"),
        Index("idx_missions_user_date", "user_id", "date"),
    )

    id: Mapped[str] = mapped_column(String(160), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    squad_code: Mapped[str | None] = mapped_column(String(6), nullable=True)
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    photo_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    water_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    xp_earned: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    date: Mapped[str] = mapped_column(String(10), nullable=False)


# ---------------------------------------------------------------------------
# XP ledger
# ---------------------------------------------------------------------------


class XPLedger(Base):
    """Immutable XP transaction log with idempotency key."""

    __tablename__ = "xp_ledger"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    source: Mapped[str] = mapped_column(String(32), nullable=False)
    source_id: Mapped[str | None] = mapped_column(String(160), nullable=True)
    description: Mapped[str | None] = mapped_column(String(256), nullable=True)
    idempotency_key: Mapped[str | None] = mapped_column(String(256), unique=True, nullable=True)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


# ---------------------------------------------------------------------------
# Weekly rankings
# ---------------------------------------------------------------------------


class WeeklyRanking(Base):
    """Per-squad, per-ISO-week leaderboard document."""

    __tablename__ = "weekly_rankings"
    __table_args__ = (
        UniqueConstraint("squad_code", "week_id", name="uq_weekly_rankings_squad_week"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    squad_code: Mapped[str] = mapped_column(String(6), nullable=False)
    week_id: Mapped[str] = mapped_column(String(7), nullable=False)
    week_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    week_end: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    entries: Mapped[list[RankingEntry]] = relationship(
        "RankingEntry", back_populates="ranking", cascade="all, delete-orphan"
    )


class RankingEntry(Base):
    """A user's accumulated XP inside one weekly ranking."""

    __tablename__ = "ranking_entries"
    __table_args__ = (
        Index("idx_ranking_entries_xp", "ranking_id", "weekly_xp"),
    )

    ranking_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("weekly_rankings.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    weekly_xp: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default="0")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_updated: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    ranking: Mapped[WeeklyRanking] = relationship("WeeklyRanking", back_populates="entries")


class RankingEntryMission(Base):
    """Mission completed by an entry's user on a local day; today's rows form ``todayMissions``."""

    __tablename__ = "ranking_entry_missions"
    __table_args__ = (
        ForeignKeyConstraint(
            ["ranking_id", "user_id"],
            ["ranking_entries.ranking_id", "ranking_entries.user_id"],
            ondelete="CASCADE",
        ),
        Index("idx_ranking_entry_missions_date", "mission_date"),
    )

    ranking_id: Mapped[str] = mapped_column(String(32), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    mission_type: Mapped[str] = mapped_column(String(16), primary_key=True)
    mission_date: Mapped[str] = mapped_column(String(10), primary_key=True)
