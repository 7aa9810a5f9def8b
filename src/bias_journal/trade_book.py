"""The trader's book of trades: submission, closing and change-driven refresh."""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING

import structlog

from bias_journal import trade_math
from bias_journal.entry_rules import EntryRules
from bias_journal.errors import TradeNotFoundError, TradeStateError, TradeValidationError
from bias_journal.models.hypothesis import UserSettings
from bias_journal.models.trade import TradeDraft, TradeRecord
from bias_journal.sessions import active_session
from bias_journal.sessions import day_key as day_key_for

if TYPE_CHECKING:
    from bias_journal.db.repository import TradeRepository, UserSettingsRepository
    from bias_journal.execution_gate import ExecutionContextGate
    from bias_journal.models.messages import TradeChangeMessage
    from bias_journal.trade_feed import TradeFeed

logger = structlog.get_logger()

DEFAULT_RISK_TIERS = {"a": 100.0, "b": 50.0, "c": 25.0}


class TradeBook:
    def __init__(
        self,
        repo: TradeRepository,
        user_id: str,
        rules: EntryRules | None = None,
        feed: TradeFeed | None = None,
        settings_repo: UserSettingsRepository | None = None,
        risk_tiers: dict[str, float] | None = None,
        tz_name: str = "UTC",
    ) -> None:
        self.repo = repo
        self.user_id = user_id
        self.risk_tiers = risk_tiers or DEFAULT_RISK_TIERS
        self.rules = rules or EntryRules(risk_tiers=self.risk_tiers)
        self.feed = feed
        self.settings_repo = settings_repo
        self.tz_name = tz_name
        self.trades: list[TradeRecord] = []
        self._refresh_seq = 0
        self._applied_seq = 0

    # --- derived views ---

    @property
    def open_trades(self) -> list[TradeRecord]:
        return [t for t in self.trades if t.status == "open"]

    @property
    def closed_trades(self) -> list[TradeRecord]:
        return [t for t in self.trades if t.status == "closed"]

    def daily_losses(self, today: date | None = None) -> int:
        """Losing trades closed on ``today`` (trader's calendar day)."""
        today = today or day_key_for(datetime.now(timezone.utc), self.tz_name)
        return sum(
            1
            for t in self.closed_trades
            if t.exit_time is not None
            and day_key_for(t.exit_time, self.tz_name) == today
            and t.pnl is not None
            and t.pnl < 0
        )

    @property
    def can_add_trade(self) -> bool:
        return self.daily_losses() < self.rules.daily_loss_limit

    def risk_amount(self, tier: str) -> Decimal:
        if tier not in self.risk_tiers:
            raise ValueError(f"Unknown risk tier: {tier}")
        return Decimal(str(self.risk_tiers[tier]))

    # --- mutations ---

    async def submit(
        self,
        draft: TradeDraft,
        gate: ExecutionContextGate,
        now: datetime | None = None,
    ) -> TradeRecord:
        """Validate and store a new open trade.

        Nothing reaches the backend unless every entry rule passes.
        """
        result = self.rules.validate(draft, gate, self.daily_losses())
        if not result.approved:
            raise TradeValidationError(result.failures)

        entry_time = draft.entry_time or now or datetime.now(timezone.utc)
        session = active_session(entry_time)
        session_name = session.name if session else None
        bias_snapshot = gate.snapshot.model_dump(mode="json")
        bias_snapshot["session"] = session_name

        record = await self.repo.create(
            {
                "user_id": self.user_id,
                "asset": draft.asset,
                "direction": draft.direction,
                "model": gate.selected_model.value,
                "entry_price": draft.entry_price,
                "stop_loss": draft.stop_loss,
                "exit_price": draft.exit_price,
                "entry_time": entry_time,
                "risk_tier": draft.risk_tier,
                "risk_amount": self.risk_amount(draft.risk_tier),
                "status": "open",
                "session": session_name,
                "trading_session": session_name,
                "locations": list(draft.locations),
                "aggression": list(draft.aggression),
                "scenarios": list(draft.scenarios),
                "externals": list(draft.externals),
                "mistake_tags": list(draft.mistake_tags),
                "emotions": draft.emotions.model_dump(),
                "checklist": [item.model_dump() for item in gate.checklist],
                "checklist_complete": gate.checklist_complete,
                "bias_snapshot": bias_snapshot,
                "screenshot_url": draft.screenshot_url or None,
                "notes": draft.notes or None,
                "is_experimental": draft.is_experimental,
                "hypothesis_id": draft.hypothesis_id,
                "override_reason": draft.override_reason or None,
            }
        )
        self.trades.insert(0, record)
        await self._publish(record.id, "created")
        await self._remember_choices(draft, record)
        return record

    async def close(
        self,
        trade_id: str,
        exit_price: Decimal | float,
        exit_time: datetime | None = None,
    ) -> TradeRecord:
        """Close an open trade and record P&L, R-multiple and duration."""
        trade = next((t for t in self.trades if t.id == trade_id), None)
        if trade is None:
            trade = await self.repo.get(trade_id)
        if trade is None:
            raise TradeNotFoundError(f"Trade not found: {trade_id}")
        if trade.status != "open":
            raise TradeStateError(f"Trade {trade_id} is already {trade.status}")

        exit_time = exit_time or datetime.now(timezone.utc)
        exit_d = Decimal(str(exit_price))
        closed = await self.repo.close(
            trade_id,
            {
                "exit_price": exit_d,
                "exit_time": exit_time,
                "pnl": trade_math.pnl(trade.direction, trade.entry_price, exit_d, trade.risk_amount),
                "r_multiple": trade_math.r_multiple(
                    trade.direction, trade.entry_price, trade.stop_loss, exit_d
                ),
                "duration_minutes": trade_math.duration_minutes(trade.entry_time, exit_time),
            },
        )
        self.trades = [closed if t.id == trade_id else t for t in self.trades]
        await self._publish(trade_id, "closed")
        return closed

    async def refresh(self) -> list[TradeRecord]:
        """Re-fetch the full list and replace the local copy.

        A refresh that finishes after a newer one has already been applied is
        discarded.
        """
        self._refresh_seq += 1
        seq = self._refresh_seq
        trades = await self.repo.list_for_user(self.user_id)
        if seq < self._applied_seq:
            logger.debug("trade_refresh_stale", seq=seq, applied=self._applied_seq)
            return self.trades
        self._applied_seq = seq
        self.trades = trades
        logger.debug("trades_refreshed", count=len(trades))
        return self.trades

    async def on_change(self, message: TradeChangeMessage) -> None:
        """Feed callback: any change triggers a full refresh."""
        logger.debug("trade_change_received", trade_id=message.trade_id, trade_event=message.event)
        await self.refresh()

    # --- internals ---

    async def _publish(self, trade_id: str, event: str) -> None:
        if self.feed is None:
            return
        try:
            await self.feed.publish_change(self.user_id, trade_id, event)
        except Exception:
            logger.exception("trade_change_publish_failed", trade_id=trade_id, trade_event=event)

    async def _remember_choices(self, draft: TradeDraft, record: TradeRecord) -> None:
        if self.settings_repo is None:
            return
        try:
            await self.settings_repo.remember(
                UserSettings(
                    user_id=self.user_id,
                    last_model=record.model,
                    last_locations=list(draft.locations),
                    last_aggression=list(draft.aggression),
                    last_risk_tier=draft.risk_tier,
                )
            )
        except Exception:
            logger.exception("user_settings_save_failed", user_id=self.user_id)
