"""Redis Stream message models for trade change notifications."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from pydantic import BaseModel, Field


class StreamMessage(BaseModel):
    """Base message for all Redis Stream communications."""

    msg_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    source: str = ""
    type: str = ""
    payload: dict = {}

    def to_redis(self) -> dict[str, str]:
        """Serialize to flat dict for XADD."""
        return {"data": self.model_dump_json()}

    @classmethod
    def from_redis(cls, data: dict[bytes | str, bytes | str]) -> StreamMessage:
        """Deserialize from Redis XREADGROUP result."""
        raw = data.get(b"data") or data.get("data")
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        return cls.model_validate_json(raw)


class TradeChangeMessage(StreamMessage):
    """Published to the trade stream after every insert or close."""

    source: str = "journal"
    type: str = "trade_change"
    user_id: str = ""
    trade_id: str = ""
    event: str = ""  # created, closed
