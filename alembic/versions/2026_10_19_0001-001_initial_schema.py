"""initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19

All 3 tables as defined in app/models/database_models.py:
profiles, events, user_settings.
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # ── Enum types ────────────────────────────────────────────────────────
    user_role = sa.Enum("user", "admin", name="userrole")
    user_role.create(op.get_bind(), checkfirst=True)

    rate_type = sa.Enum("hourly", "fixed", name="ratetype")
    rate_type.create(op.get_bind(), checkfirst=True)

    payment_status = sa.Enum("paid", "unpaid", name="paymentstatus")
    payment_status.create(op.get_bind(), checkfirst=True)

    event_source = sa.Enum("web", "whatsapp", "assistant", name="eventsource")
    event_source.create(op.get_bind(), checkfirst=True)

    # ── profiles ──────────────────────────────────────────────────────────
    op.create_table(
        "profiles",
        sa.Column("id", sa.String(255), primary_key=True),
        sa.Column("email", sa.String(255), nullable=True, index=True),
        sa.Column("full_name", sa.String(255), nullable=True),
        sa.Column("role", postgresql.ENUM("user", "admin", name="userrole", create_type=False), nullable=False, server_default="user"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # ── events ────────────────────────────────────────────────────────────
    op.create_table(
        "events",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column("user_id", sa.String(255), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("date", sa.Date, nullable=False, index=True),
        sa.Column("start_time", sa.String(5), nullable=False),
        sa.Column("duration_hours", sa.Float, nullable=False),
        sa.Column("client_name", sa.String(255), nullable=False, index=True),
        sa.Column("event_type", sa.String(100), nullable=False),
        sa.Column("rate_type", postgresql.ENUM("hourly", "fixed", name="ratetype", create_type=False), nullable=False, server_default="hourly"),
        sa.Column("rate", sa.Float, nullable=False),
        sa.Column("total_amount", sa.Float, nullable=False),
        sa.Column("payment_status", postgresql.ENUM("paid", "unpaid", name="paymentstatus", create_type=False), nullable=False, server_default="unpaid", index=True),
        sa.Column("source", postgresql.ENUM("web", "whatsapp", "assistant", name="eventsource", create_type=False), nullable=False, server_default="web"),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("tags", sa.JSON, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("duration_hours > 0", name="ck_events_duration_positive"),
        sa.CheckConstraint("rate >= 0", name="ck_events_rate_non_negative"),
    )

    # ── user_settings ─────────────────────────────────────────────────────
    op.create_table(
        "user_settings",
        sa.Column("id", sa.Integer, primary_key=True, index=True),
        sa.Column("user_id", sa.String(255), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, unique=True, index=True),
        sa.Column("business_name", sa.String(255), nullable=True),
        sa.Column("default_hourly_rate", sa.Float, nullable=False),
        sa.Column("default_fixed_rate", sa.Float, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("user_settings")
    op.drop_table("events")
    op.drop_table("profiles")

    op.execute("DROP TYPE IF EXISTS eventsource")
    op.execute("DROP TYPE IF EXISTS paymentstatus")
    op.execute("DROP TYPE IF EXISTS ratetype")
    op.execute("DROP TYPE IF EXISTS userrole")
