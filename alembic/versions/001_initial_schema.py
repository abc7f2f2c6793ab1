"""Initial schema: users, squads, missions, XP ledger and weekly rankings.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Users ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS users (
            id VARCHAR(128) PRIMARY KEY,
            name VARCHAR(64) NOT NULL,
            email VARCHAR(320),
            avatar_url TEXT,
            squad_code VARCHAR(6),
            is_coach BOOLEAN NOT NULL DEFAULT false,
            total_xp BIGINT NOT NULL DEFAULT 0 CHECK (total_xp >= 0),
            level INTEGER NOT NULL DEFAULT 1,
            current_streak INTEGER NOT NULL DEFAULT 0 CHECK (current_streak >= 0),
            longest_streak INTEGER NOT NULL DEFAULT 0 CHECK (longest_streak >= current_streak),
            last_completed_date DATE,
            bonus_awarded_date DATE,
            device_token VARCHAR(512),
            timezone VARCHAR(64) NOT NULL DEFAULT 'UTC',
            notifications_enabled BOOLEAN NOT NULL DEFAULT true,
            created_at TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_users_squad_code
        ON users(squad_code)
    """)

    # --- Squads ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS squads (
            code VARCHAR(6) PRIMARY KEY,
            name VARCHAR(64) NOT NULL,
            owner_user_id VARCHAR(128) NOT NULL,
            member_count INTEGER NOT NULL DEFAULT 1,
            max_members INTEGER NOT NULL DEFAULT 100,
            created_at TIMESTAMPTZ DEFAULT NOW(),
            CHECK (member_count >= 0 AND member_count <= max_members)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_squads_owner_user_id
        ON squads(owner_user_id)
    """)

    # --- Missions ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS missions (
            id VARCHAR(160) PRIMARY KEY,
            user_id VARCHAR(128) NOT NULL,
            squad_code VARCHAR(6),
            type VARCHAR(16) NOT NULL,
            photo_url TEXT,
            water_count INTEGER CHECK (water_count BETWEEN 0 AND 5),
            xp_earned INTEGER NOT NULL DEFAULT 0,
            completed_at TIMESTAMPTZ NOT NULL,
            date VARCHAR(10) NOT NULL,
            CONSTRAINT uq_missions_user_type_date UNIQUE (user_id, type, date)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_missions_user_date
        ON missions(user_id, date)
    """)

    # --- XP Ledger ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS xp_ledger (
            id SERIAL PRIMARY KEY,
            user_id VARCHAR(128) NOT NULL,
            amount INTEGER NOT NULL,
            source VARCHAR(32) NOT NULL,
            source_id VARCHAR(160),
            description VARCHAR(256),
            idempotency_key VARCHAR(256) UNIQUE,
            created_at TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS ix_xp_ledger_user_id
        ON xp_ledger(user_id)
    """)

    # --- Weekly Rankings ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS weekly_rankings (
            id VARCHAR(32) PRIMARY KEY,
            squad_code VARCHAR(6) NOT NULL,
            week_id VARCHAR(7) NOT NULL,
            week_start TIMESTAMPTZ NOT NULL,
            week_end TIMESTAMPTZ NOT NULL,
            created_at TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT uq_weekly_rankings_squad_week UNIQUE (squad_code, week_id)
        )
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS ranking_entries (
            ranking_id VARCHAR(32) NOT NULL REFERENCES weekly_rankings(id) ON DELETE CASCADE,
            user_id VARCHAR(128) NOT NULL,
            name VARCHAR(64) NOT NULL,
            avatar_url TEXT,
            weekly_xp BIGINT NOT NULL DEFAULT 0 CHECK (weekly_xp >= 0),
            created_at TIMESTAMPTZ NOT NULL,
            last_updated TIMESTAMPTZ NOT NULL,
            PRIMARY KEY (ranking_id, user_id)
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_ranking_entries_xp
        ON ranking_entries(ranking_id, weekly_xp DESC)
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS ranking_entry_missions (
            ranking_id VARCHAR(32) NOT NULL,
            user_id VARCHAR(128) NOT NULL,
            mission_type VARCHAR(16) NOT NULL,
            mission_date VARCHAR(10) NOT NULL,
            PRIMARY KEY (ranking_id, user_id, mission_type, mission_date),
            FOREIGN KEY (ranking_id, user_id)
                REFERENCES ranking_entries(ranking_id, user_id) ON DELETE CASCADE
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_ranking_entry_missions_date
        ON ranking_entry_missions(mission_date)
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS ranking_entry_missions CASCADE")
    op.execute("DROP TABLE IF EXISTS ranking_entries CASCADE")
    op.execute("DROP TABLE IF EXISTS weekly_rankings CASCADE")
    op.execute("DROP TABLE IF EXISTS xp_ledger CASCADE")
    op.execute("DROP TABLE IF EXISTS missions CASCADE")
    op.execute("DROP TABLE IF EXISTS squads CASCADE")
    op.execute("DROP TABLE IF EXISTS users CASCADE")
