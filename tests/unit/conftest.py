"""Shared fixtures for unit tests: an in-memory bias backend and a store over it."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timedelta, timezone

import pytest

from bias_journal.bias_store import BiasStateStore
from bias_journal.local_cache import LocalBiasCache
from bias_journal.models.bias import BiasResult

USER_ID = "user-1"
DAY = date(2026, 10, 19)


class FakeDBError(Exception):
    """Driver-style error carrying a SQLSTATE."""

    def __init__(self, message: str, sqlstate: str | None = None) -> None:
        super().__init__(message)
        self.sqlstate = sqlstate


def missing_function(name: str = "get_current_bias") -> FakeDBError:
    return FakeDBError(f"function {name}(date, text) does not exist", "42883")


def missing_relation(name: str = "bias_state") -> FakeDBError:
    return FakeDBError(f'relation "{name}" does not exist', "42P01")


class FakeBiasBackend:
    """In-memory bias_state table with per-operation failure injection.

    ``errors[op]`` is either an exception raised on every call or a list of
    exceptions consumed one per call.
    """

    def __init__(self) -> None:
        self.rows: list[dict] = []
        self.errors: dict[str, BaseException | list[BaseException]] = {}
        self.calls: list[str] = []
        self._clock = datetime(2026, 10, 19, 8, 0, tzinfo=timezone.utc)

    def _enter(self, op: str) -> None:
        self.calls.append(op)
        error = self.errors.get(op)
        if isinstance(error, list):
            if error:
                raise error.pop(0)
        elif error is not None:
            raise error

    def _active(self, user_id: str, day_key: date) -> dict | None:
        active = [
            r for r in self.rows if r["selected_by"] == user_id and r["day_key"] == day_key and r["active"]
        ]
        return dict(active[-1]) if active else None

    def _deactivate(self, user_id: str, day_key: date) -> int:
        count = 0
        for row in self.rows:
            if row["selected_by"] == user_id and row["day_key"] == day_key and row["active"]:
                row["active"] = False
                count += 1
        return count

    def _insert(self, user_id: str, day_key: date, bias: BiasResult) -> dict:
        self._clock += timedelta(minutes=1)
        row = {
            "id": str(uuid.uuid4()),
            "day_key": day_key,
            "bias": bias.bias.value,
            "market_state": bias.market_state.value if bias.market_state else None,
            "confidence": bias.confidence.value if bias.confidence else None,
            "tags": list(bias.tags),
            "selected_at": self._clock,
            "selected_by": user_id,
            "active": True,
        }
        self.rows.append(row)
        return dict(row)

    def active_count(self, user_id: str, day_key: date) -> int:
        return sum(
            1 for r in self.rows if r["selected_by"] == user_id and r["day_key"] == day_key and r["active"]
        )

    async def rpc_get_current_bias(self, user_id: str, day_key: date) -> dict | None:
        self._enter("rpc_get")
        return self._active(user_id, day_key)

    async def rpc_set_bias_state(self, user_id: str, day_key: date, bias: BiasResult) -> dict:
        self._enter("rpc_set")
        self._deactivate(user_id, day_key)
        return self._insert(user_id, day_key, bias)

    async def view_current_bias(self, user_id: str, day_key: date) -> dict | None:
        self._enter("view_get")
        row = self._active(user_id, day_key)
        if row is None:
            return None
        row.pop("selected_by")
        row.pop("active")
        return row

    async def table_select_active(self, user_id: str, day_key: date) -> dict | None:
        self._enter("table_get")
        return self._active(user_id, day_key)

    async def table_deactivate(self, user_id: str, day_key: date) -> int:
        self._enter("table_deactivate")
        return self._deactivate(user_id, day_key)

    async def table_insert(self, user_id: str, day_key: date, bias: BiasResult) -> dict:
        self._enter("table_insert")
        return self._insert(user_id, day_key, bias)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def backend():
    return FakeBiasBackend()


@pytest.fixture
def cache(tmp_path):
    return LocalBiasCache(tmp_path / "bias_cache")


@pytest.fixture
def store(backend, cache):
    return BiasStateStore(backend, cache, USER_ID, read_attempts=2, read_wait_max=0)
