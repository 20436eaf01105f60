from sqlalchemy import (
    Column, String, Boolean,
    BigInteger, ForeignKey,
    Text, Float, Integer, JSON,
    UniqueConstraint, Index, text as sa_text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from src.booking.infra.db import Base, UTCDateTime


# BIGINT в Postgres, INTEGER в SQLite (иначе нет автоинкремента rowid)
BigId = BigInteger().with_variant(Integer, "sqlite")


class UserORM(Base):
    __tablename__ = "users"

    id = Column(BigId, primary_key=True, autoincrement=True)
    email = Column(String, nullable=False, unique=True)
    password_hash = Column(String, nullable=True)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    phone = Column(String, nullable=True, unique=True)
    gender = Column(String, nullable=True)
    country = Column(String, nullable=True)
    timezone = Column(String, nullable=True)
    role = Column(String, nullable=False, server_default=sa_text("'User'"))
    email_verified = Column(Boolean, nullable=False, server_default=sa_text("false"))
    is_active = Column(Boolean, nullable=False, server_default=sa_text("true"))
    created_at = Column(UTCDateTime, server_default=func.now(), nullable=False)
    updated_at = Column(UTCDateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        Index("idx_users_role", "role"),
    )


class SubscriptionPlanORM(Base):
    __tablename__ = "subscription_plans"

    id = Column(BigId, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(String(500), nullable=True)
    sessions_per_month = Column(Integer, nullable=False)
    sessions_per_week = Column(Integer, nullable=False)
    price = Column(Float, nullable=False)
    currency = Column(String(3), nullable=False, server_default=sa_text("'EGP'"))
    duration = Column(Integer, nullable=False, server_default=sa_text("30"))
    features = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, nullable=False, server_default=sa_text("true"))
    created_by = Column(BigId, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(UTCDateTime, server_default=func.now(), nullable=False)
    updated_at = Column(UTCDateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        Index("idx_plans_active_created", "is_active", "created_at"),
        Index("idx_plans_price", "price"),
    )


class SubscriptionORM(Base):
    __tablename__ = "subscriptions"

    id = Column(BigId, primary_key=True, autoincrement=True)
    user_id = Column(BigId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    user_email = Column(String, nullable=False)
    user_country = Column(String, nullable=False)

    # снапшот плана на момент покупки
    plan_id = Column(BigId, ForeignKey("subscription_plans.id", ondelete="SET NULL"), nullable=True)
    plan_name = Column(String, nullable=False)
    plan_price = Column(Float, nullable=False)
    plan_currency = Column(String(3), nullable=False)

    start_date = Column(UTCDateTime, nullable=False)
    end_date = Column(UTCDateTime, nullable=False)
    total_sessions = Column(Integer, nullable=False)
    sessions_per_week = Column(Integer, nullable=False)

    status = Column(String, nullable=False, server_default=sa_text("'confirmed'"))
    payment_status = Column(String, nullable=False, server_default=sa_text("'pending'"))
    payment_confirmed_at = Column(UTCDateTime, nullable=True)
    payment_reference = Column(String, nullable=True)
    notes = Column(Text, nullable=True)

    created_at = Column(UTCDateTime, server_default=func.now(), nullable=False)
    updated_at = Column(UTCDateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    slots = relationship(
        "SessionSlotORM",
        order_by="SessionSlotORM.starts_at_utc",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_subscriptions_user_status", "user_id", "status"),
        Index("idx_subscriptions_user_email", "user_email"),
        Index("idx_subscriptions_window", "start_date", "end_date"),
    )


class SessionSlotORM(Base):
    """
    Слот сессии. Момент хранится только в UTC, локальные строки – для отображения.
    Частичный уникальный индекс – последний рубеж против двойного бронирования.
    """
    __tablename__ = "session_slots"

    id = Column(BigId, primary_key=True, autoincrement=True)
    subscription_id = Column(
        BigId,
        ForeignKey("subscriptions.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id = Column(BigId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    starts_at_utc = Column(UTCDateTime, nullable=False)
    local_date = Column(String(10), nullable=False)
    local_time = Column(String(5), nullable=False)
    country = Column(String, nullable=False)
    timezone = Column(String, nullable=False)
    slot_version = Column(Integer, nullable=False, server_default=sa_text("2"))

    status = Column(String, nullable=False, server_default=sa_text("'scheduled'"))
    notes = Column(Text, nullable=True)

    created_at = Column(UTCDateTime, server_default=func.now(), nullable=False)
    updated_at = Column(UTCDateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("subscription_id", "starts_at_utc", name="uq_session_slots_subscription_starts"),
        Index(
            "uq_session_slots_user_starts_holding",
            "user_id", "starts_at_utc",
            unique=True,
            postgresql_where=sa_text("status IN ('scheduled', 'completed')"),
            sqlite_where=sa_text("status IN ('scheduled', 'completed')"),
        ),
        Index("idx_session_slots_starts", "starts_at_utc"),
    )
