"""SQLAlchemy ORM models for the journal tables."""

import uuid
from datetime import date, datetime, timezone

from sqlalchemy import (
    ARRAY,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _uuid() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class BiasStateORM(Base):
    __tablename__ = "bias_state"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    day_key: Mapped[date] = mapped_column(Date, nullable=False)
    bias: Mapped[str] = mapped_column(
        String(10),
        CheckConstraint("bias IN ('OOB_LONG', 'OOB_SHORT', 'MR_LONG', 'MR_SHORT', 'NONE')"),
        nullable=False,
    )
    market_state: Mapped[str | None] = mapped_column(
        String(16),
        CheckConstraint("market_state IN ('OUT_OF_BALANCE', 'IN_BALANCE')"),
    )
    confidence: Mapped[str | None] = mapped_column(
        String(6),
        CheckConstraint("confidence IN ('LOW', 'MEDIUM', 'HIGH')"),
    )
    tags: Mapped[list | None] = mapped_column(JSONB)
    selected_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    selected_by: Mapped[str | None] = mapped_column(String(36))
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        Index("idx_bias_state_day_user", "day_key", "selected_by"),
        Index("idx_bias_state_active", "active"),
    )


class HypothesisORM(Base):
    __tablename__ = "hypotheses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str | None] = mapped_column(
        String(10),
        CheckConstraint("status IN ('active', 'paused', 'completed')"),
        default="active",
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (Index("idx_hypotheses_user", "user_id"),)


class TradeORM(Base):
    __tablename__ = "trades"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(36), nullable=False)
    asset: Mapped[str] = mapped_column(String(20), nullable=False)
    direction: Mapped[str] = mapped_column(
        String(5),
        CheckConstraint("direction IN ('long', 'short')"),
        nullable=False,
    )
    model: Mapped[str] = mapped_column(String(40), nullable=False)
    entry_price: Mapped[float] = mapped_column(Numeric(20, 8), nullable=False)
    stop_loss: Mapped[float] = mapped_column(Numeric(20, 8), nullable=False)
    exit_price: Mapped[float | None] = mapped_column(Numeric(20, 8))
    entry_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    exit_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    duration_minutes: Mapped[int | None] = mapped_column(Integer)
    risk_tier: Mapped[str] = mapped_column(String(1), nullable=False)
    risk_amount: Mapped[float] = mapped_column(Numeric(12, 2), nullable=False)
    pnl: Mapped[float | None] = mapped_column(Numeric(14, 2))
    r_multiple: Mapped[float | None] = mapped_column(Numeric(10, 3))
    status: Mapped[str] = mapped_column(
        String(10),
        CheckConstraint("status IN ('open', 'closed')"),
        default="open",
    )
    session: Mapped[str | None] = mapped_column(String(40))
    trading_session: Mapped[str | None] = mapped_column(String(40))
    locations: Mapped[list[str] | None] = mapped_column(ARRAY(String))
    aggression: Mapped[list[str] | None] = mapped_column(ARRAY(String))
    scenarios: Mapped[list[str] | None] = mapped_column(ARRAY(String))
    externals: Mapped[list[str] | None] = mapped_column(ARRAY(String))
    mistake_tags: Mapped[list[str] | None] = mapped_column(ARRAY(String))
    emotions: Mapped[dict | None] = mapped_column(JSONB)
    checklist: Mapped[list] = mapped_column(JSONB, nullable=False)
    checklist_complete: Mapped[bool] = mapped_column(Boolean, default=False)
    bias_snapshot: Mapped[dict] = mapped_column(JSONB, nullable=False)
    screenshot_url: Mapped[str | None] = mapped_column(Text)
    notes: Mapped[str | None] = mapped_column(Text)
    is_experimental: Mapped[bool | None] = mapped_column(Boolean, default=False)
    hypothesis_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("hypotheses.id"))
    override_reason: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        Index("idx_trades_user", "user_id"),
        Index("idx_trades_status", "status"),
        Index("idx_trades_created_at", created_at.desc()),
        Index("idx_trades_hypothesis", "hypothesis_id"),
    )


class UserSettingsORM(Base):
    __tablename__ = "user_settings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(36), unique=True, nullable=False)
    last_model: Mapped[str | None] = mapped_column(String(40))
    last_locations: Mapped[list[str] | None] = mapped_column(ARRAY(String))
    last_aggression: Mapped[list[str] | None] = mapped_column(ARRAY(String))
    last_risk_tier: Mapped[str | None] = mapped_column(String(1))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )
