"""Execution-context gate: the bias of the day and the execution model it allows."""

from __future__ import annotations

import enum
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING

import structlog
from pydantic import BaseModel

from bias_journal.errors import BiasActivationError, ExecutionContextError
from bias_journal.execution_models import ExecutionModel, model_checklist, models_for
from bias_journal.models.bias import BiasResult, BiasStateSnapshot
from bias_journal.models.trade import ChecklistItem
from bias_journal.sessions import day_key as day_key_for

if TYPE_CHECKING:
    from bias_journal.bias_store import BiasStateStore

logger = structlog.get_logger()


class ContextState(enum.Enum):
    NO_BIAS = "no_bias"
    BIAS_SET = "bias_set"


class ContextNotice(BaseModel):
    title: str
    message: str
    created_at: datetime


class ExecutionContextGate:
    """Holds the active bias snapshot and the execution model selected under it.

    After every snapshot change the selected model is either one of
    ``allowed_models()`` or cleared, together with its checklist.
    """

    def __init__(self, store: BiasStateStore, tz_name: str = "UTC") -> None:
        self.store = store
        self.tz_name = tz_name
        self.state = ContextState.NO_BIAS
        self.snapshot: BiasStateSnapshot | None = None
        self.selected_model: ExecutionModel | None = None
        self.checklist: list[ChecklistItem] = []
        self.notices: list[ContextNotice] = []

    def _set_state(self, new_state: ContextState) -> None:
        """Update state with logging."""
        old = self.state
        self.state = new_state
        if old != new_state:
            logger.info("state_transition", old=old.value, new=new_state.value)

    def today(self) -> date:
        return day_key_for(datetime.now(timezone.utc), self.tz_name)

    # --- bias lifecycle ---

    async def load(self, day_key: date | None = None) -> BiasStateSnapshot | None:
        """Fetch the active snapshot for the day and apply it."""
        snapshot = await self.store.get_bias(day_key or self.today())
        self._apply_snapshot(snapshot)
        return snapshot

    async def set_bias(self, result: BiasResult, day_key: date | None = None) -> BiasStateSnapshot:
        """Persist a new bias for the day and make it the active context.

        If the old bias was deactivated but the new one was not stored the
        gate falls back to NO_BIAS before the error propagates. Any other
        error leaves the current context untouched.
        """
        try:
            snapshot = await self.store.set_bias(day_key or self.today(), result)
        except BiasActivationError:
            self._apply_snapshot(None)
            raise
        self._apply_snapshot(snapshot)
        return snapshot

    # --- model gating ---

    @property
    def can_use_execution_model(self) -> bool:
        return self.snapshot is not None and self.snapshot.is_actionable

    def allowed_models(self) -> list[ExecutionModel]:
        if not self.can_use_execution_model:
            return []
        return models_for(self.snapshot.market_state)

    def select_model(self, model: ExecutionModel | str) -> list[ChecklistItem]:
        """Select a model allowed by the active bias and seed its checklist."""
        try:
            chosen = ExecutionModel(model)
        except ValueError:
            raise ExecutionContextError(f"Unknown execution model: {model}") from None

        if chosen not in self.allowed_models():
            state = self.snapshot.market_state.value if self.snapshot and self.snapshot.market_state else None
            raise ExecutionContextError(
                f"{chosen.value} is not allowed for market state {state or 'unset'}"
            )

        self.selected_model = chosen
        self.checklist = [ChecklistItem(text=text) for text in model_checklist(chosen)]
        logger.debug("execution_model_selected", model=chosen.value, items=len(self.checklist))
        return self.checklist

    def clear_model(self) -> None:
        self.selected_model = None
        self.checklist = []

    def toggle_checklist(self, index: int) -> ChecklistItem:
        if not 0 <= index < len(self.checklist):
            raise ExecutionContextError(f"No checklist item at position {index}")
        item = self.checklist[index]
        self.checklist[index] = item.model_copy(update={"checked": not item.checked})
        return self.checklist[index]

    @property
    def checklist_complete(self) -> bool:
        return bool(self.checklist) and all(item.checked for item in self.checklist)

    def drain_notices(self) -> list[ContextNotice]:
        pending, self.notices = self.notices, []
        return pending

    # --- internals ---

    def _apply_snapshot(self, snapshot: BiasStateSnapshot | None) -> None:
        previous_id = self.snapshot.id if self.snapshot else None
        self.snapshot = snapshot
        self._set_state(ContextState.BIAS_SET if snapshot else ContextState.NO_BIAS)

        if self.selected_model is None or self.selected_model in self.allowed_models():
            return

        if previous_id and snapshot is not None and snapshot.id != previous_id:
            self._notify("Context changed", "Execution model reset to match new bias and market state.")
        elif previous_id and snapshot is None:
            self._notify("Context cleared", "Set a bias before adding a trade.")

        logger.info(
            "execution_model_reset",
            model=self.selected_model.value,
            bias=snapshot.bias.value if snapshot else None,
        )
        self.clear_model()

    def _notify(self, title: str, message: str) -> None:
        self.notices.append(
            ContextNotice(title=title, message=message, created_at=datetime.now(timezone.utc))
        )
