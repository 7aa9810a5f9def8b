"""Execution-model registry: which setups apply to which market state."""

from __future__ import annotations

import enum
from types import MappingProxyType

from pydantic import BaseModel

from bias_journal.models.bias import MarketState


class ExecutionModel(str, enum.Enum):
    TREND_IMPULSE_PB = "TREND_IMPULSE_PB"
    TREND_VWAP_SIGMA = "TREND_VWAP_SIGMA"
    TREND_VALUE_MIGRATION = "TREND_VALUE_MIGRATION"
    MR_FAIL_BREAKOUT_POC = "MR_FAIL_BREAKOUT_POC"
    MR_VA_FADE = "MR_VA_FADE"
    MR_VWAP_REVERT = "MR_VWAP_REVERT"


class ExecutionModelDetail(BaseModel):
    label: str
    category: str  # TREND, MR
    checklist: tuple[str, ...]

    model_config = {"frozen": True}


MODELS_BY_STATE: MappingProxyType[MarketState, tuple[ExecutionModel, ...]] = MappingProxyType(
    {
        MarketState.OUT_OF_BALANCE: (
            ExecutionModel.TREND_IMPULSE_PB,
            ExecutionModel.TREND_VWAP_SIGMA,
            ExecutionModel.TREND_VALUE_MIGRATION,
        ),
        MarketState.IN_BALANCE: (
            ExecutionModel.MR_FAIL_BREAKOUT_POC,
            ExecutionModel.MR_VA_FADE,
            ExecutionModel.MR_VWAP_REVERT,
        ),
    }
)

EXECUTION_MODEL_DETAILS: MappingProxyType[ExecutionModel, ExecutionModelDetail] = MappingProxyType(
    {
        ExecutionModel.TREND_IMPULSE_PB: ExecutionModelDetail(
            label="Trend • Impulse Pullback",
            category="TREND",
            checklist=(
                "HTF aligns with OOB direction",
                "Price outside value with trend control",
                "Impulse leg followed by shallow pullback",
                "CVD & imbalances backing the move",
                "No opposite absorption at point of interest",
                "Risk defined behind impulse origin",
            ),
        ),
        ExecutionModel.TREND_VWAP_SIGMA: ExecutionModelDetail(
            label="Trend • VWAP σ Ride",
            category="TREND",
            checklist=(
                "VWAP posture aligned with trend",
                "Holding above σ1 and pressing toward σ2",
                "No heavy counter absorption",
                "Liquidity target remains ahead",
                "Risk tucked under VWAP/σ reclaim",
            ),
        ),
        ExecutionModel.TREND_VALUE_MIGRATION: ExecutionModelDetail(
            label="Trend • Value Migration",
            category="TREND",
            checklist=(
                "POC / value shifting in trend direction",
                "Pullback respects migrated value area",
                "Continuation prints confirming migration",
                "No topping divergence into entry",
                "Risk placed behind migrated value",
            ),
        ),
        ExecutionModel.MR_FAIL_BREAKOUT_POC: ExecutionModelDetail(
            label="MR • Failed Breakout to POC",
            category="MR",
            checklist=(
                "Edge breakout failed and reclaimed",
                "Acceptance building back inside value",
                "Exhaustion where breakout failed",
                "Primary target set to session POC",
                "Risk placed beyond failed extreme",
            ),
        ),
        ExecutionModel.MR_VA_FADE: ExecutionModelDetail(
            label="MR • Value Area Fade",
            category="MR",
            checklist=(
                "Test & rejection of VAH/VAL",
                "Day type showing non-trend behavior",
                "Lack of aggression through the edge",
                "Target planned toward mid / POC",
                "Risk tucked beyond the value edge",
            ),
        ),
        ExecutionModel.MR_VWAP_REVERT: ExecutionModelDetail(
            label="MR • VWAP Revert",
            category="MR",
            checklist=(
                "Stretch extended from VWAP",
                "Momentum waning / divergence showing",
                "Entry planned on VWAP reclaim",
                "Target anchored at VWAP",
                "Risk set beyond stretch extreme",
            ),
        ),
    }
)


def _lookup(model: ExecutionModel | str) -> ExecutionModelDetail | None:
    try:
        return EXECUTION_MODEL_DETAILS[ExecutionModel(model)]
    except ValueError:
        return None


def models_for(state: MarketState | None) -> list[ExecutionModel]:
    if state is None:
        return []
    return list(MODELS_BY_STATE.get(state, ()))


def model_label(model: ExecutionModel | str | None) -> str:
    """Display label; unknown identifiers are returned unchanged."""
    if not model:
        return "Select model"
    detail = _lookup(model)
    if detail is None:
        return model.value if isinstance(model, ExecutionModel) else str(model)
    return detail.label


def model_checklist(model: ExecutionModel | str | None) -> list[str]:
    if not model:
        return []
    detail = _lookup(model)
    return list(detail.checklist) if detail else []


def is_trend_model(model: str | None) -> bool:
    return isinstance(model, str) and model.startswith("TREND")


def is_mean_reversion_model(model: str | None) -> bool:
    return isinstance(model, str) and model.startswith("MR_")
