"""TradeDraft, TradeRecord and related Pydantic models."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel

LOCATION_TAGS = ["LVN", "POC", "OB", "FVG", "IFVG", "Breaker"]
AGGRESSION_TAGS = ["Big Print", "Imbalance", "Delta Push", "Absorption", "Exhaustion"]
SCENARIO_TAGS = ["Move to BE", "BE Hit", "Partial @X", "Full TP", "Manual Exit", "Re-entry", "News", "Slippage"]
EXTERNAL_TAGS = ["Sleep<6h", "Distraction", "Family stress", "Illness", "Caffeine"]
MISTAKE_TAGS = ["Overtrade", "FOMO", "Chased", "Skipped Aggression", "Fought Balance"]
ASSETS = ["EURUSD", "GBPUSD", "USDJPY", "AUDUSD", "USDCAD", "NZDUSD", "USDCHF"]
DIRECTIONS = ("long", "short")
RISK_TIERS = ("a", "b", "c")


class ChecklistItem(BaseModel):
    text: str
    checked: bool = False


class Emotions(BaseModel):
    calm_stressed: int = 5
    focus: int = 7
    urge_recover: int = 3


class TradeDraft(BaseModel):
    """Everything the trader fills in before confirming an entry."""

    asset: str = "EURUSD"
    direction: str = "long"  # long, short
    entry_price: Decimal | None = None
    stop_loss: Decimal | None = None
    exit_price: Decimal | None = None
    risk_tier: str = "a"  # a, b, c
    locations: list[str] = []
    aggression: list[str] = []
    scenarios: list[str] = []
    externals: list[str] = []
    mistake_tags: list[str] = []
    emotions: Emotions = Emotions()
    screenshot_url: str | None = None
    notes: str | None = None
    is_experimental: bool = False
    hypothesis_id: str | None = None
    override_reason: str | None = None
    entry_time: datetime | None = None


class TradeRecord(BaseModel):
    id: str = ""
    user_id: str = ""
    asset: str = ""
    direction: str = ""  # long, short
    model: str = ""
    entry_price: Decimal = Decimal("0")
    stop_loss: Decimal = Decimal("0")
    exit_price: Decimal | None = None
    entry_time: datetime | None = None
    exit_time: datetime | None = None
    duration_minutes: int | None = None
    risk_tier: str = "a"
    risk_amount: Decimal = Decimal("0")
    pnl: Decimal | None = None
    r_multiple: Decimal | None = None
    status: str = "open"  # open, closed
    session: str | None = None
    trading_session: str | None = None
    locations: list[str] = []
    aggression: list[str] = []
    scenarios: list[str] = []
    externals: list[str] = []
    mistake_tags: list[str] = []
    emotions: dict | None = None
    checklist: list[ChecklistItem] = []
    checklist_complete: bool = False
    bias_snapshot: dict = {}
    screenshot_url: str | None = None
    notes: str | None = None
    is_experimental: bool = False
    hypothesis_id: str | None = None
    override_reason: str | None = None
    created_at: datetime | None = None

    @property
    def is_closed(self) -> bool:
        return self.status == "closed"
