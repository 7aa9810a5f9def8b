"""Bias, MarketState, BiasResult and BiasStateSnapshot Pydantic models."""

from __future__ import annotations

import enum
import json
from datetime import date, datetime

from pydantic import BaseModel, field_validator


class Bias(str, enum.Enum):
    OOB_LONG = "OOB_LONG"
    OOB_SHORT = "OOB_SHORT"
    MR_LONG = "MR_LONG"
    MR_SHORT = "MR_SHORT"
    NONE = "NONE"


class MarketState(str, enum.Enum):
    OUT_OF_BALANCE = "OUT_OF_BALANCE"
    IN_BALANCE = "IN_BALANCE"


class Confidence(str, enum.Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class Direction(str, enum.Enum):
    LONG = "LONG"
    SHORT = "SHORT"


BIAS_LABELS: dict[Bias, str] = {
    Bias.OOB_LONG: "Bias: OOB Long",
    Bias.OOB_SHORT: "Bias: OOB Short",
    Bias.MR_LONG: "Bias: MR Long",
    Bias.MR_SHORT: "Bias: MR Short",
    Bias.NONE: "Bias: None",
}

MARKET_STATE_LABELS: dict[MarketState, str] = {
    MarketState.OUT_OF_BALANCE: "State: Out of Balance",
    MarketState.IN_BALANCE: "State: In Balance",
}


def bias_label(bias: Bias | None) -> str:
    if bias is None:
        return "Not set"
    return BIAS_LABELS[bias]


def market_state_label(state: MarketState | None) -> str:
    if state is None:
        return "State: Not set"
    return MARKET_STATE_LABELS[state]


def _string_tags(value: object) -> list[str] | None:
    """Keep only string entries; None and non-list values become None."""
    if value is None:
        return None
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return None
    if isinstance(value, list):
        return [tag for tag in value if isinstance(tag, str)]
    return None


class BiasResult(BaseModel):
    """Output of the bias quiz."""

    bias: Bias = Bias.NONE
    market_state: MarketState | None = None
    confidence: Confidence | None = None
    tags: list[str] = []


class BiasStateSnapshot(BaseModel):
    """The normalised bias-of-the-day record used by business logic."""

    id: str
    day_key: date
    bias: Bias
    market_state: MarketState | None = None
    confidence: Confidence | None = None
    tags: list[str] | None = None
    selected_at: datetime
    session: str | None = None

    model_config = {"frozen": True}

    @property
    def is_actionable(self) -> bool:
        return self.bias != Bias.NONE and self.market_state is not None


class BiasViewRow(BaseModel):
    """Row shape of the v_current_bias view (no ownership or active flag)."""

    id: str
    day_key: date
    bias: Bias
    market_state: MarketState | None = None
    confidence: Confidence | None = None
    tags: list[str] | None = None
    selected_at: datetime

    @field_validator("tags", mode="before")
    @classmethod
    def _filter_tags(cls, value: object) -> list[str] | None:
        return _string_tags(value)

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: object) -> str:
        return str(value)

    def to_snapshot(self) -> BiasStateSnapshot:
        return BiasStateSnapshot(
            id=self.id,
            day_key=self.day_key,
            bias=self.bias,
            market_state=self.market_state,
            confidence=self.confidence,
            tags=self.tags,
            selected_at=self.selected_at,
        )


class BiasTableRow(BiasViewRow):
    """Row shape of the bias_state table and of the SQL functions."""

    selected_by: str | None = None
    active: bool = True
