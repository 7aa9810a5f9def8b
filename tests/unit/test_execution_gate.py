"""Unit tests for ExecutionContextGate: bias lifecycle and model gating."""

from __future__ import annotations

import pytest
from conftest import DAY, USER_ID, FakeDBError

from bias_journal.bias_store import Tier
from bias_journal.errors import BackendError, BiasActivationError, ExecutionContextError
from bias_journal.execution_gate import ContextState, ExecutionContextGate
from bias_journal.execution_models import ExecutionModel, models_for
from bias_journal.models.bias import Bias, BiasResult, Confidence, MarketState

OOB_LONG = BiasResult(bias=Bias.OOB_LONG, market_state=MarketState.OUT_OF_BALANCE, confidence=Confidence.HIGH)
OOB_SHORT = BiasResult(bias=Bias.OOB_SHORT, market_state=MarketState.OUT_OF_BALANCE)
MR_LONG = BiasResult(bias=Bias.MR_LONG, market_state=MarketState.IN_BALANCE)
MR_SHORT = BiasResult(bias=Bias.MR_SHORT, market_state=MarketState.IN_BALANCE)
NO_BIAS = BiasResult(bias=Bias.NONE)


@pytest.fixture
def gate(store):
    return ExecutionContextGate(store)


# ---------------------------------------------------------------------------
# Bias lifecycle
# ---------------------------------------------------------------------------


class TestLifecycle:
    async def test_starts_without_bias(self, gate):
        assert gate.state == ContextState.NO_BIAS
        assert gate.allowed_models() == []

    async def test_set_bias_moves_to_bias_set(self, gate):
        snapshot = await gate.set_bias(OOB_LONG, DAY)
        assert gate.state == ContextState.BIAS_SET
        assert gate.snapshot == snapshot
        assert gate.allowed_models() == models_for(MarketState.OUT_OF_BALANCE)

    async def test_load_applies_stored_bias(self, gate, backend):
        await backend.rpc_set_bias_state(USER_ID, DAY, MR_LONG)

        snapshot = await gate.load(DAY)
        assert snapshot.bias == Bias.MR_LONG
        assert gate.state == ContextState.BIAS_SET
        assert ExecutionModel.MR_VA_FADE in gate.allowed_models()

    async def test_none_bias_allows_no_models(self, gate):
        await gate.set_bias(NO_BIAS, DAY)
        assert gate.state == ContextState.BIAS_SET
        assert gate.can_use_execution_model is False
        assert gate.allowed_models() == []

    async def test_backend_error_keeps_current_context(self, gate, backend):
        await gate.set_bias(OOB_LONG, DAY)
        gate.select_model(ExecutionModel.TREND_VWAP_SIGMA)
        before = gate.snapshot
        backend.errors["rpc_set"] = FakeDBError("server exploded", "XX000")

        with pytest.raises(BackendError):
            await gate.set_bias(MR_SHORT, DAY)
        assert gate.snapshot == before
        assert gate.selected_model == ExecutionModel.TREND_VWAP_SIGMA

    async def test_activation_failure_drops_to_no_bias(self, gate, store, backend):
        store.capabilities.disable(Tier.RPC)
        await gate.set_bias(OOB_LONG, DAY)
        gate.select_model(ExecutionModel.TREND_IMPULSE_PB)
        backend.errors["table_insert"] = FakeDBError("disk full", "53100")

        with pytest.raises(BiasActivationError):
            await gate.set_bias(MR_SHORT, DAY)

        assert gate.state == ContextState.NO_BIAS
        assert gate.snapshot is None
        assert gate.selected_model is None
        assert gate.checklist == []
        assert [n.title for n in gate.drain_notices()] == ["Context cleared"]


# ---------------------------------------------------------------------------
# Model selection
# ---------------------------------------------------------------------------


class TestModelSelection:
    async def test_select_seeds_unchecked_checklist(self, gate):
        await gate.set_bias(OOB_LONG, DAY)
        checklist = gate.select_model("TREND_IMPULSE_PB")

        assert gate.selected_model == ExecutionModel.TREND_IMPULSE_PB
        assert len(checklist) == 6
        assert not any(item.checked for item in checklist)
        assert gate.checklist_complete is False

    async def test_select_model_outside_market_state_rejected(self, gate):
        await gate.set_bias(OOB_LONG, DAY)
        with pytest.raises(ExecutionContextError, match="not allowed"):
            gate.select_model(ExecutionModel.MR_VWAP_REVERT)
        assert gate.selected_model is None

    async def test_select_without_bias_rejected(self, gate):
        with pytest.raises(ExecutionContextError):
            gate.select_model(ExecutionModel.TREND_IMPULSE_PB)

    async def test_unknown_model_rejected(self, gate):
        await gate.set_bias(OOB_LONG, DAY)
        with pytest.raises(ExecutionContextError, match="Unknown execution model"):
            gate.select_model("BREAKOUT_YOLO")

    async def test_toggle_until_complete(self, gate):
        await gate.set_bias(MR_SHORT, DAY)
        gate.select_model(ExecutionModel.MR_VA_FADE)

        for index in range(len(gate.checklist)):
            gate.toggle_checklist(index)
        assert gate.checklist_complete is True

        item = gate.toggle_checklist(0)
        assert item.checked is False
        assert gate.checklist_complete is False

    async def test_toggle_out_of_range(self, gate):
        await gate.set_bias(MR_SHORT, DAY)
        gate.select_model(ExecutionModel.MR_VA_FADE)
        with pytest.raises(ExecutionContextError):
            gate.toggle_checklist(99)


# ---------------------------------------------------------------------------
# Context changes
# ---------------------------------------------------------------------------


class TestContextChange:
    async def test_switch_to_other_market_state_resets_model(self, gate):
        await gate.set_bias(OOB_LONG, DAY)
        gate.select_model(ExecutionModel.TREND_IMPULSE_PB)
        gate.toggle_checklist(0)

        await gate.set_bias(MR_LONG, DAY)

        assert gate.selected_model is None
        assert gate.checklist == []
        notices = gate.drain_notices()
        assert [n.title for n in notices] == ["Context changed"]

    async def test_same_market_state_keeps_model(self, gate):
        await gate.set_bias(OOB_LONG, DAY)
        gate.select_model(ExecutionModel.TREND_VALUE_MIGRATION)
        gate.toggle_checklist(0)

        await gate.set_bias(OOB_SHORT, DAY)

        assert gate.selected_model == ExecutionModel.TREND_VALUE_MIGRATION
        assert gate.checklist[0].checked is True
        assert gate.drain_notices() == []

    async def test_none_bias_clears_selection(self, gate):
        await gate.set_bias(MR_SHORT, DAY)
        gate.select_model(ExecutionModel.MR_FAIL_BREAKOUT_POC)

        await gate.set_bias(NO_BIAS, DAY)
        assert gate.selected_model is None

    @pytest.mark.parametrize(
        "sequence",
        [
            [OOB_LONG, MR_LONG, OOB_SHORT, NO_BIAS, MR_SHORT],
            [MR_SHORT, MR_LONG, NO_BIAS, NO_BIAS, OOB_LONG, OOB_LONG],
            [NO_BIAS, OOB_SHORT, MR_SHORT, OOB_LONG],
        ],
    )
    async def test_selected_model_always_fits_active_bias(self, gate, sequence):
        for result in sequence:
            await gate.set_bias(result, DAY)
            assert gate.selected_model is None or gate.selected_model in models_for(
                gate.snapshot.market_state
            )
            allowed = gate.allowed_models()
            if allowed:
                gate.select_model(allowed[-1])
