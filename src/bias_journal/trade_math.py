"""R-multiple, P&L and duration arithmetic for trades."""

from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from pydantic import BaseModel

ZERO = Decimal("0")
PNL_QUANT = Decimal("0.01")
R_QUANT = Decimal("0.001")


def _d(value: Decimal | float | int | str | None) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def stop_distance(entry: Decimal | float, stop: Decimal | float) -> Decimal:
    return abs(_d(entry) - _d(stop))


def directional_diff(direction: str, entry: Decimal | float, exit_: Decimal | float) -> Decimal:
    """Price move in the trade's favour; negative when the trade went against it."""
    entry_d, exit_d = _d(entry), _d(exit_)
    if direction == "short":
        return entry_d - exit_d
    return exit_d - entry_d


def r_multiple(
    direction: str,
    entry: Decimal | float,
    stop: Decimal | float,
    exit_: Decimal | float,
) -> Decimal:
    """Profit or loss as a multiple of the entry-to-stop distance, 3 dp."""
    distance = stop_distance(entry, stop)
    if distance <= ZERO:
        return ZERO.quantize(R_QUANT)
    value = directional_diff(direction, entry, exit_) / distance
    return value.quantize(R_QUANT, rounding=ROUND_HALF_UP)


def pnl(
    direction: str,
    entry: Decimal | float,
    exit_: Decimal | float,
    risk_amount: Decimal | float,
) -> Decimal:
    """Relative price move scaled by the risk amount, 2 dp."""
    entry_d = _d(entry)
    if entry_d <= ZERO:
        return ZERO.quantize(PNL_QUANT)
    value = directional_diff(direction, entry_d, exit_) / entry_d * _d(risk_amount)
    return value.quantize(PNL_QUANT, rounding=ROUND_HALF_UP)


def duration_minutes(entry_time: datetime | None, exit_time: datetime) -> int | None:
    if entry_time is None:
        return None
    seconds = (exit_time - entry_time).total_seconds()
    return int(Decimal(seconds / 60).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class TradePreview(BaseModel):
    stop_distance: Decimal = ZERO
    r_multiple: Decimal = ZERO
    pnl: Decimal = ZERO


def preview(
    direction: str,
    entry: Decimal | None,
    stop: Decimal | None,
    exit_: Decimal | None,
    risk_amount: Decimal | float,
) -> TradePreview:
    """Live figures for an entry form; zero until the needed prices are filled in."""
    entry_d, stop_d, exit_d = _d(entry), _d(stop), _d(exit_)
    distance = stop_distance(entry_d, stop_d)
    if entry_d <= ZERO or exit_d <= ZERO:
        return TradePreview(stop_distance=distance)
    return TradePreview(
        stop_distance=distance,
        r_multiple=r_multiple(direction, entry_d, stop_d, exit_d),
        pnl=pnl(direction, entry_d, exit_d, risk_amount),
    )
