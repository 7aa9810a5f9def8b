"""DB repositories: TradeRepo, HypothesisRepo, UserSettingsRepo."""

from __future__ import annotations

from decimal import Decimal

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bias_journal.db.models import HypothesisORM, TradeORM, UserSettingsORM
from bias_journal.errors import TradeNotFoundError, TradeStateError
from bias_journal.models.hypothesis import HYPOTHESIS_STATUSES, Hypothesis, UserSettings
from bias_journal.models.trade import TradeRecord

logger = structlog.get_logger()


def _decimal(value) -> Decimal | None:
    if value is None:
        return None
    return value if isinstance(value, Decimal) else Decimal(str(value))


def _orm_to_trade_record(orm: TradeORM) -> TradeRecord:
    """Convert TradeORM to TradeRecord Pydantic model."""
    return TradeRecord(
        id=orm.id,
        user_id=orm.user_id,
        asset=orm.asset,
        direction=orm.direction,
        model=orm.model,
        entry_price=_decimal(orm.entry_price),
        stop_loss=_decimal(orm.stop_loss),
        exit_price=_decimal(orm.exit_price),
        entry_time=orm.entry_time,
        exit_time=orm.exit_time,
        duration_minutes=orm.duration_minutes,
        risk_tier=orm.risk_tier,
        risk_amount=_decimal(orm.risk_amount),
        pnl=_decimal(orm.pnl),
        r_multiple=_decimal(orm.r_multiple),
        status=orm.status or "open",
        session=orm.session,
        trading_session=orm.trading_session,
        locations=orm.locations or [],
        aggression=orm.aggression or [],
        scenarios=orm.scenarios or [],
        externals=orm.externals or [],
        mistake_tags=orm.mistake_tags or [],
        emotions=orm.emotions,
        checklist=orm.checklist or [],
        checklist_complete=bool(orm.checklist_complete),
        bias_snapshot=orm.bias_snapshot or {},
        screenshot_url=orm.screenshot_url,
        notes=orm.notes,
        is_experimental=bool(orm.is_experimental),
        hypothesis_id=orm.hypothesis_id,
        override_reason=orm.override_reason,
        created_at=orm.created_at,
    )


def _orm_to_hypothesis(orm: HypothesisORM) -> Hypothesis:
    return Hypothesis(
        id=orm.id,
        user_id=orm.user_id,
        title=orm.title,
        description=orm.description,
        status=orm.status or "active",
        created_at=orm.created_at,
        updated_at=orm.updated_at,
    )


class TradeRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def create(self, trade: dict) -> TradeRecord:
        """Insert a new open trade and return it as stored."""
        async with self.session_factory() as session:
            orm = TradeORM(**trade)
            session.add(orm)
            await session.flush()
            await session.refresh(orm)
            record = _orm_to_trade_record(orm)
            await session.commit()
            logger.info("trade_created", trade_id=record.id, asset=record.asset, model=record.model)
            return record

    async def close(self, trade_id: str, data: dict) -> TradeRecord:
        """Move an open trade to closed with its exit figures.

        This is the only mutation a stored trade ever receives.
        """
        async with self.session_factory() as session:
            stmt = select(TradeORM).where(TradeORM.id == trade_id)
            result = await session.execute(stmt)
            trade = result.scalar_one_or_none()
            if trade is None:
                raise TradeNotFoundError(f"Trade not found: {trade_id}")
            if trade.status != "open":
                raise TradeStateError(f"Trade {trade_id} is already {trade.status}")
            for key, value in data.items():
                setattr(trade, key, value)
            trade.status = "closed"
            await session.flush()
            record = _orm_to_trade_record(trade)
            await session.commit()
            logger.info("trade_closed", trade_id=trade_id, pnl=str(record.pnl), r=str(record.r_multiple))
            return record

    async def get(self, trade_id: str) -> TradeRecord | None:
        async with self.session_factory() as session:
            stmt = select(TradeORM).where(TradeORM.id == trade_id)
            result = await session.execute(stmt)
            orm = result.scalar_one_or_none()
            return _orm_to_trade_record(orm) if orm else None

    async def list_for_user(self, user_id: str) -> list[TradeRecord]:
        """All trades of a user, newest first."""
        async with self.session_factory() as session:
            stmt = (
                select(TradeORM)
                .where(TradeORM.user_id == user_id)
                .order_by(TradeORM.created_at.desc())
            )
            result = await session.execute(stmt)
            return [_orm_to_trade_record(t) for t in result.scalars().all()]


class HypothesisRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def create(self, user_id: str, title: str, description: str | None = None) -> Hypothesis:
        if not title.strip():
            raise ValueError("Hypothesis title is required")
        async with self.session_factory() as session:
            orm = HypothesisORM(user_id=user_id, title=title.strip(), description=description, status="active")
            session.add(orm)
            await session.flush()
            await session.refresh(orm)
            hypothesis = _orm_to_hypothesis(orm)
            await session.commit()
            logger.info("hypothesis_created", hypothesis_id=hypothesis.id)
            return hypothesis

    async def list_for_user(self, user_id: str) -> list[Hypothesis]:
        async with self.session_factory() as session:
            stmt = (
                select(HypothesisORM)
                .where(HypothesisORM.user_id == user_id)
                .order_by(HypothesisORM.created_at.desc())
            )
            result = await session.execute(stmt)
            return [_orm_to_hypothesis(h) for h in result.scalars().all()]

    async def set_status(self, hypothesis_id: str, status: str) -> Hypothesis:
        if status not in HYPOTHESIS_STATUSES:
            raise ValueError(f"Invalid hypothesis status: {status}")
        async with self.session_factory() as session:
            stmt = select(HypothesisORM).where(HypothesisORM.id == hypothesis_id)
            result = await session.execute(stmt)
            orm = result.scalar_one_or_none()
            if orm is None:
                raise ValueError(f"Hypothesis not found: {hypothesis_id}")
            orm.status = status
            await session.flush()
            hypothesis = _orm_to_hypothesis(orm)
            await session.commit()
            logger.info("hypothesis_status_changed", hypothesis_id=hypothesis_id, status=status)
            return hypothesis


class UserSettingsRepository:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def get(self, user_id: str) -> UserSettings | None:
        async with self.session_factory() as session:
            stmt = select(UserSettingsORM).where(UserSettingsORM.user_id == user_id)
            result = await session.execute(stmt)
            orm = result.scalar_one_or_none()
            if orm is None:
                return None
            return UserSettings(
                user_id=orm.user_id,
                last_model=orm.last_model,
                last_locations=orm.last_locations or [],
                last_aggression=orm.last_aggression or [],
                last_risk_tier=orm.last_risk_tier,
            )

    async def remember(self, settings: UserSettings) -> None:
        """Upsert the last-used entry choices for a user."""
        async with self.session_factory() as session:
            stmt = select(UserSettingsORM).where(UserSettingsORM.user_id == settings.user_id)
            result = await session.execute(stmt)
            orm = result.scalar_one_or_none()
            values = settings.model_dump(exclude={"user_id"})
            if orm is None:
                session.add(UserSettingsORM(user_id=settings.user_id, **values))
            else:
                for key, value in values.items():
                    setattr(orm, key, value)
            await session.commit()
            logger.debug("user_settings_saved", user_id=settings.user_id)
