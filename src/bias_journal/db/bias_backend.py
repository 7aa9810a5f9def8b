"""SQL access to bias state: server functions, the current-bias view and the base table.

Each method maps to exactly one backend capability so the store can fall back
from one to the next. Rows are returned as plain dicts in the backend's own
shape; normalisation happens in the store.
"""

from __future__ import annotations

import json
from datetime import date

import structlog
from sqlalchemy import select, text, update
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bias_journal.db.models import BiasStateORM
from bias_journal.models.bias import BiasResult

logger = structlog.get_logger()

_RPC_GET_CURRENT_BIAS = text(
    "SELECT * FROM get_current_bias(:day_key, :user_id)"
).columns(tags=JSONB)
_RPC_SET_BIAS_STATE = text(
    "SELECT * FROM set_bias_state("
    ":day_key, :user_id, :bias, :market_state, :confidence, CAST(:tags AS jsonb))"
).columns(tags=JSONB)
_VIEW_CURRENT_BIAS = text(
    "SELECT id, day_key, bias, market_state, confidence, tags, selected_at "
    "FROM v_current_bias WHERE day_key = :day_key AND selected_by = :user_id LIMIT 1"
).columns(tags=JSONB)


def _orm_to_row(orm: BiasStateORM) -> dict:
    return {
        "id": orm.id,
        "day_key": orm.day_key,
        "bias": orm.bias,
        "market_state": orm.market_state,
        "confidence": orm.confidence,
        "tags": orm.tags,
        "selected_at": orm.selected_at,
        "selected_by": orm.selected_by,
        "active": orm.active,
    }


def _result_params(result: BiasResult) -> dict:
    return {
        "bias": result.bias.value,
        "market_state": result.market_state.value if result.market_state else None,
        "confidence": result.confidence.value if result.confidence else None,
    }


class SqlBiasBackend:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    # --- server functions ---

    async def rpc_get_current_bias(self, user_id: str, day_key: date) -> dict | None:
        async with self.session_factory() as session:
            result = await session.execute(
                _RPC_GET_CURRENT_BIAS, {"day_key": day_key, "user_id": user_id}
            )
            row = result.mappings().first()
            return dict(row) if row else None

    async def rpc_set_bias_state(self, user_id: str, day_key: date, bias: BiasResult) -> dict:
        """Deactivate and insert in one server-side transaction."""
        async with self.session_factory() as session:
            result = await session.execute(
                _RPC_SET_BIAS_STATE,
                {
                    "day_key": day_key,
                    "user_id": user_id,
                    "tags": json.dumps(bias.tags),
                    **_result_params(bias),
                },
            )
            row = result.mappings().one()
            await session.commit()
            return dict(row)

    # --- read-optimised view ---

    async def view_current_bias(self, user_id: str, day_key: date) -> dict | None:
        async with self.session_factory() as session:
            result = await session.execute(
                _VIEW_CURRENT_BIAS, {"day_key": day_key, "user_id": user_id}
            )
            row = result.mappings().first()
            return dict(row) if row else None

    # --- base table ---

    async def table_select_active(self, user_id: str, day_key: date) -> dict | None:
        async with self.session_factory() as session:
            stmt = (
                select(BiasStateORM)
                .where(
                    BiasStateORM.day_key == day_key,
                    BiasStateORM.selected_by == user_id,
                    BiasStateORM.active.is_(True),
                )
                .order_by(BiasStateORM.selected_at.desc())
                .limit(1)
            )
            result = await session.execute(stmt)
            orm = result.scalar_one_or_none()
            return _orm_to_row(orm) if orm else None

    async def table_deactivate(self, user_id: str, day_key: date) -> int:
        """Set active=false on every active row for the day. Returns rows touched."""
        async with self.session_factory() as session:
            stmt = (
                update(BiasStateORM)
                .where(
                    BiasStateORM.day_key == day_key,
                    BiasStateORM.selected_by == user_id,
                    BiasStateORM.active.is_(True),
                )
                .values(active=False)
            )
            result = await session.execute(stmt)
            await session.commit()
            logger.debug("bias_rows_deactivated", day_key=str(day_key), count=result.rowcount)
            return result.rowcount

    async def table_insert(self, user_id: str, day_key: date, bias: BiasResult) -> dict:
        async with self.session_factory() as session:
            orm = BiasStateORM(
                day_key=day_key,
                tags=list(bias.tags),
                selected_by=user_id,
                active=True,
                **_result_params(bias),
            )
            session.add(orm)
            await session.flush()
            await session.refresh(orm)
            row = _orm_to_row(orm)
            await session.commit()
            return row
