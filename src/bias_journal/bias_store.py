"""Bias-of-the-day persistence with a capability fallback cascade.

Reads try, in order: server function -> current-bias view -> base table ->
local cache. Writes try: server function -> base table (deactivate, insert)
-> local cache. A capability confirmed missing is switched off in
``BackendCapabilities`` for the rest of the session and an ``Advisory`` is
recorded; every other backend error is raised as ``BackendError``.
"""

from __future__ import annotations

import enum
import uuid
from collections.abc import Awaitable, Callable
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING, Any, Protocol

import structlog
from pydantic import BaseModel
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from bias_journal.errors import (
    BackendError,
    BiasActivationError,
    classify_backend_error,
    is_transient,
)
from bias_journal.models.bias import (
    BiasResult,
    BiasStateSnapshot,
    BiasTableRow,
    BiasViewRow,
)

if TYPE_CHECKING:
    from bias_journal.local_cache import LocalBiasCache

logger = structlog.get_logger()


class BiasBackend(Protocol):
    async def rpc_get_current_bias(self, user_id: str, day_key: date) -> dict | None: ...

    async def rpc_set_bias_state(self, user_id: str, day_key: date, bias: BiasResult) -> dict: ...

    async def view_current_bias(self, user_id: str, day_key: date) -> dict | None: ...

    async def table_select_active(self, user_id: str, day_key: date) -> dict | None: ...

    async def table_deactivate(self, user_id: str, day_key: date) -> int: ...

    async def table_insert(self, user_id: str, day_key: date, bias: BiasResult) -> dict: ...


class Tier(str, enum.Enum):
    RPC = "rpc"
    VIEW = "view"
    TABLE = "table"


ADVISORY_MESSAGES = {
    Tier.RPC: "Bias functions are not installed on the server; using the bias table directly.",
    Tier.VIEW: "Current-bias view is missing; reading the bias table directly.",
    Tier.TABLE: (
        "Bias table is missing on the server; today's bias is kept on this device "
        "until the schema is available."
    ),
}


class BackendCapabilities(BaseModel):
    """Which bias capabilities the backend still offers in this session."""

    rpc_available: bool = True
    view_available: bool = True
    table_available: bool = True

    def is_available(self, tier: Tier) -> bool:
        return getattr(self, f"{tier.value}_available")

    def disable(self, tier: Tier) -> None:
        setattr(self, f"{tier.value}_available", False)


class Advisory(BaseModel):
    tier: Tier
    message: str
    created_at: datetime


class BiasStateStore:
    def __init__(
        self,
        backend: BiasBackend,
        cache: LocalBiasCache,
        user_id: str,
        capabilities: BackendCapabilities | None = None,
        read_attempts: int = 3,
        read_wait_max: float = 5.0,
    ) -> None:
        self.backend = backend
        self.cache = cache
        self.user_id = user_id
        self.capabilities = capabilities or BackendCapabilities()
        self.read_attempts = max(1, read_attempts)
        self.read_wait_max = read_wait_max
        self.advisories: list[Advisory] = []

    def drain_advisories(self) -> list[Advisory]:
        pending, self.advisories = self.advisories, []
        return pending

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_bias(self, day_key: date) -> BiasStateSnapshot | None:
        """Return the active snapshot for the day, or None."""
        caps = self.capabilities

        if caps.rpc_available:
            try:
                row = await self._read(self.backend.rpc_get_current_bias, day_key)
            except Exception as e:
                self._downgrade_or_raise(e, Tier.RPC, "get_current_bias")
            else:
                return self._server_snapshot(day_key, row, BiasTableRow)

        if caps.view_available:
            try:
                row = await self._read(self.backend.view_current_bias, day_key)
            except Exception as e:
                self._downgrade_or_raise(e, Tier.VIEW, "v_current_bias")
            else:
                return self._server_snapshot(day_key, row, BiasViewRow)

        if caps.table_available:
            try:
                row = await self._read(self.backend.table_select_active, day_key)
            except Exception as e:
                self._downgrade_or_raise(e, Tier.TABLE, "bias_state.select")
            else:
                return self._server_snapshot(day_key, row, BiasTableRow)

        return self.cache.read(self.user_id, day_key)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def set_bias(self, day_key: date, result: BiasResult) -> BiasStateSnapshot:
        """Make ``result`` the single active bias for the day.

        Raises BiasActivationError when the old bias was deactivated but the
        new one could not be inserted; the day then has no active bias.
        """
        caps = self.capabilities

        if caps.rpc_available:
            try:
                row = await self.backend.rpc_set_bias_state(self.user_id, day_key, result)
            except Exception as e:
                self._downgrade_or_raise(e, Tier.RPC, "set_bias_state")
            else:
                return self._saved(day_key, row, Tier.RPC)

        if caps.table_available:
            try:
                await self.backend.table_deactivate(self.user_id, day_key)
            except Exception as e:
                self._downgrade_or_raise(e, Tier.TABLE, "bias_state.deactivate")
            else:
                try:
                    row = await self.backend.table_insert(self.user_id, day_key, result)
                except Exception as e:
                    failure = classify_backend_error(e)
                    logger.error(
                        "bias_activation_failed",
                        day_key=day_key.isoformat(),
                        kind=failure.kind.value,
                        error=failure.message,
                    )
                    raise BiasActivationError(
                        f"Previous bias for {day_key.isoformat()} was deactivated "
                        f"but the new one was not saved: {failure.message}"
                    ) from e
                return self._saved(day_key, row, Tier.TABLE)

        snapshot = BiasStateSnapshot(
            id=f"local-{uuid.uuid4()}",
            day_key=day_key,
            bias=result.bias,
            market_state=result.market_state,
            confidence=result.confidence,
            tags=list(result.tags),
            selected_at=datetime.now(timezone.utc),
        )
        self.cache.write(self.user_id, snapshot)
        logger.warning("bias_saved_locally", day_key=day_key.isoformat(), bias=result.bias.value)
        return snapshot

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _read(self, fn: Callable[[str, date], Awaitable[Any]], day_key: date) -> Any:
        """Run a read, retrying transient failures only."""
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.read_attempts),
            wait=wait_exponential(multiplier=0.5, max=self.read_wait_max),
            retry=retry_if_exception(is_transient),
            reraise=True,
        ):
            with attempt:
                return await fn(self.user_id, day_key)
        return None

    def _downgrade_or_raise(self, error: Exception, tier: Tier, operation: str) -> None:
        failure = classify_backend_error(error)
        if tier == Tier.RPC:
            missing = failure.is_missing_function or failure.is_missing_relation
        else:
            missing = failure.is_missing_relation
        if not missing:
            logger.warning(
                "bias_backend_error",
                operation=operation,
                kind=failure.kind.value,
                code=failure.code,
            )
            raise BackendError(failure, operation) from error

        self.capabilities.disable(tier)
        advisory = Advisory(
            tier=tier,
            message=ADVISORY_MESSAGES[tier],
            created_at=datetime.now(timezone.utc),
        )
        self.advisories.append(advisory)
        logger.warning(
            "bias_backend_downgraded",
            tier=tier.value,
            operation=operation,
            code=failure.code,
        )

    def _server_snapshot(
        self,
        day_key: date,
        row: dict | None,
        shape: type[BiasViewRow],
    ) -> BiasStateSnapshot | None:
        if row is None:
            return None
        snapshot = shape.model_validate(row).to_snapshot()
        self.cache.clear(self.user_id, day_key)
        return snapshot

    def _saved(self, day_key: date, row: dict, tier: Tier) -> BiasStateSnapshot:
        snapshot = BiasTableRow.model_validate(row).to_snapshot()
        self.cache.clear(self.user_id, day_key)
        logger.info(
            "bias_saved",
            day_key=day_key.isoformat(),
            bias=snapshot.bias.value,
            market_state=snapshot.market_state.value if snapshot.market_state else None,
            via=tier.value,
        )
        return snapshot
