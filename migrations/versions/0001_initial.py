"""initial booking schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-17 09:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

BigId = sa.BigInteger().with_variant(sa.Integer(), "sqlite")
HOLDING = sa.text("status IN ('scheduled', 'completed')")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", BigId, primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(), nullable=False),
        sa.Column("password_hash", sa.String(), nullable=True),
        sa.Column("first_name", sa.String(), nullable=True),
        sa.Column("last_name", sa.String(), nullable=True),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("gender", sa.String(), nullable=True),
        sa.Column("country", sa.String(), nullable=True),
        sa.Column("timezone", sa.String(), nullable=True),
        sa.Column("role", sa.String(), server_default=sa.text("'User'"), nullable=False),
        sa.Column("email_verified", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.UniqueConstraint("phone", name="uq_users_phone"),
    )
    op.create_index("idx_users_role", "users", ["role"])

    op.create_table(
        "subscription_plans",
        sa.Column("id", BigId, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.String(500), nullable=True),
        sa.Column("sessions_per_month", sa.Integer(), nullable=False),
        sa.Column("sessions_per_week", sa.Integer(), nullable=False),
        sa.Column("price", sa.Float(), nullable=False),
        sa.Column("currency", sa.String(3), server_default=sa.text("'EGP'"), nullable=False),
        sa.Column("duration", sa.Integer(), server_default=sa.text("30"), nullable=False),
        sa.Column("features", sa.JSON(), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("created_by", BigId, nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_subscription_plans"),
        sa.UniqueConstraint("name", name="uq_subscription_plans_name"),
        sa.ForeignKeyConstraint(
            ["created_by"], ["users.id"],
            name="fk_subscription_plans_created_by_users", ondelete="SET NULL",
        ),
    )
    op.create_index("idx_plans_active_created", "subscription_plans", ["is_active", "created_at"])
    op.create_index("idx_plans_price", "subscription_plans", ["price"])

    op.create_table(
        "subscriptions",
        sa.Column("id", BigId, primary_key=True, autoincrement=True),
        sa.Column("user_id", BigId, nullable=False),
        sa.Column("user_email", sa.String(), nullable=False),
        sa.Column("user_country", sa.String(), nullable=False),
        sa.Column("plan_id", BigId, nullable=True),
        sa.Column("plan_name", sa.String(), nullable=False),
        sa.Column("plan_price", sa.Float(), nullable=False),
        sa.Column("plan_currency", sa.String(3), nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("total_sessions", sa.Integer(), nullable=False),
        sa.Column("sessions_per_week", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(), server_default=sa.text("'confirmed'"), nullable=False),
        sa.Column("payment_status", sa.String(), server_default=sa.text("'pending'"), nullable=False),
        sa.Column("payment_confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("payment_reference", sa.String(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_subscriptions"),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"],
            name="fk_subscriptions_user_id_users", ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["plan_id"], ["subscription_plans.id"],
            name="fk_subscriptions_plan_id_subscription_plans", ondelete="SET NULL",
        ),
    )
    op.create_index("idx_subscriptions_user_status", "subscriptions", ["user_id", "status"])
    op.create_index("idx_subscriptions_user_email", "subscriptions", ["user_email"])
    op.create_index("idx_subscriptions_window", "subscriptions", ["start_date", "end_date"])

    op.create_table(
        "session_slots",
        sa.Column("id", BigId, primary_key=True, autoincrement=True),
        sa.Column("subscription_id", BigId, nullable=False),
        sa.Column("user_id", BigId, nullable=False),
        sa.Column("starts_at_utc", sa.DateTime(timezone=True), nullable=False),
        sa.Column("local_date", sa.String(10), nullable=False),
        sa.Column("local_time", sa.String(5), nullable=False),
        sa.Column("country", sa.String(), nullable=False),
        sa.Column("timezone", sa.String(), nullable=False),
        sa.Column("slot_version", sa.Integer(), server_default=sa.text("2"), nullable=False),
        sa.Column("status", sa.String(), server_default=sa.text("'scheduled'"), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_session_slots"),
        sa.ForeignKeyConstraint(
            ["subscription_id"], ["subscriptions.id"],
            name="fk_session_slots_subscription_id_subscriptions", ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"],
            name="fk_session_slots_user_id_users", ondelete="CASCADE",
        ),
        sa.UniqueConstraint("subscription_id", "starts_at_utc", name="uq_session_slots_subscription_starts"),
    )
    # один пользователь не держит два слота на один и тот же момент
    op.create_index(
        "uq_session_slots_user_starts_holding",
        "session_slots",
        ["user_id", "starts_at_utc"],
        unique=True,
        postgresql_where=HOLDING,
        sqlite_where=HOLDING,
    )
    op.create_index("idx_session_slots_starts", "session_slots", ["starts_at_utc"])


def downgrade() -> None:
    op.drop_index("idx_session_slots_starts", table_name="session_slots")
    op.drop_index("uq_session_slots_user_starts_holding", table_name="session_slots")
    op.drop_table("session_slots")

    op.drop_index("idx_subscriptions_window", table_name="subscriptions")
    op.drop_index("idx_subscriptions_user_email", table_name="subscriptions")
    op.drop_index("idx_subscriptions_user_status", table_name="subscriptions")
    op.drop_table("subscriptions")

    op.drop_index("idx_plans_price", table_name="subscription_plans")
    op.drop_index("idx_plans_active_created", table_name="subscription_plans")
    op.drop_table("subscription_plans")

    op.drop_index("idx_users_role", table_name="users")
    op.drop_table("users")
