"""Trading session windows (New York time), weekend closure and day keys."""

from __future__ import annotations

from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo

from pydantic import BaseModel

NEW_YORK = ZoneInfo("America/New_York")
MINUTES_PER_DAY = 24 * 60
# Friday 17:00 -> Sunday 17:00 New York, counted with Sunday as day 7.
WEEKEND_START_MINUTE = 5 * MINUTES_PER_DAY + 17 * 60
WEEKEND_END_MINUTE = 7 * MINUTES_PER_DAY + 17 * 60


class TradingSession(BaseModel):
    id: str
    name: str
    start: time
    end: time
    description: str = ""

    model_config = {"frozen": True}

    def contains(self, moment: time) -> bool:
        """Inclusive window test; windows may wrap past midnight."""
        if self.start > self.end:
            return moment >= self.start or moment <= self.end
        return self.start <= moment <= self.end


TRADING_SESSIONS: tuple[TradingSession, ...] = (
    TradingSession(
        id="asian_range",
        name="Asian Range",
        start=time(20, 0),
        end=time(4, 0),
        description="Consolidation period",
    ),
    TradingSession(
        id="london_killzone",
        name="London Killzone",
        start=time(2, 0),
        end=time(5, 0),
        description="High volatility - London open",
    ),
    TradingSession(
        id="london_lunch",
        name="London Lunch",
        start=time(7, 0),
        end=time(8, 0),
        description="Lower volatility",
    ),
    TradingSession(
        id="london_ny_overlap",
        name="London vs. New York",
        start=time(8, 0),
        end=time(12, 0),
        description="Key trading window - Major overlap",
    ),
    TradingSession(
        id="silver_bullet",
        name="Silver Bullet Hours",
        start=time(10, 0),
        end=time(11, 0),
        description="Reversal window",
    ),
    TradingSession(
        id="ny_session",
        name="New York Session",
        start=time(8, 0),
        end=time(17, 0),
        description="Major U.S. trading hours",
    ),
)

UNKNOWN_SESSION = "Unknown session"


def _as_new_york(moment: datetime | None) -> datetime:
    moment = moment or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(NEW_YORK)


def active_session(moment: datetime | None = None) -> TradingSession | None:
    """First session (in table order) whose window contains ``moment``."""
    local = _as_new_york(moment).time().replace(second=0, microsecond=0)
    for session in TRADING_SESSIONS:
        if session.contains(local):
            return session
    return None


def active_session_name(moment: datetime | None = None) -> str:
    session = active_session(moment)
    return session.name if session else UNKNOWN_SESSION


class WeekendStatus(BaseModel):
    is_closed: bool
    countdown: str = ""


def weekend_status(moment: datetime | None = None) -> WeekendStatus:
    local = _as_new_york(moment)
    # isoweekday: Monday=1 .. Sunday=7
    minute_of_week = local.isoweekday() * MINUTES_PER_DAY + local.hour * 60 + local.minute
    is_closed = WEEKEND_START_MINUTE <= minute_of_week < WEEKEND_END_MINUTE
    if not is_closed:
        return WeekendStatus(is_closed=False)

    remaining = WEEKEND_END_MINUTE - minute_of_week
    days, rest = divmod(remaining, MINUTES_PER_DAY)
    hours, minutes = divmod(rest, 60)
    parts: list[str] = []
    if days > 0:
        parts.append(f"{days}d")
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0 or not parts:
        parts.append(f"{minutes}m")
    return WeekendStatus(is_closed=True, countdown=" ".join(parts))


def day_key(moment: datetime | None = None, tz_name: str = "UTC") -> date:
    """Calendar date of ``moment`` in the trader's timezone."""
    moment = moment or datetime.now(timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(ZoneInfo(tz_name)).date()


def display_session(moment: datetime | None = None) -> TradingSession | None:
    """Active session, or None while the market is closed for the weekend."""
    if weekend_status(moment).is_closed:
        return None
    return active_session(moment)
