"""Performance analytics over closed trades."""

from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime
from zoneinfo import ZoneInfo

from pydantic import BaseModel

from bias_journal.execution_models import is_mean_reversion_model, is_trend_model
from bias_journal.models.trade import TradeRecord
from bias_journal.sessions import day_key as day_key_for


def _pnl(trade: TradeRecord) -> float:
    return float(trade.pnl) if trade.pnl is not None else 0.0


def _r(trade: TradeRecord) -> float:
    return float(trade.r_multiple) if trade.r_multiple is not None else 0.0


def _closed(trades: list[TradeRecord]) -> list[TradeRecord]:
    return [t for t in trades if t.status == "closed"]


class KPIStats(BaseModel):
    total_trades: int = 0
    wins: int = 0
    losses: int = 0
    win_rate: float = 0.0  # percent
    total_pnl: float = 0.0
    total_r: float = 0.0
    avg_r: float = 0.0
    avg_win: float = 0.0
    avg_loss: float = 0.0  # absolute value
    profit_factor: float = 0.0
    expectancy: float = 0.0


def kpi_stats(trades: list[TradeRecord]) -> KPIStats:
    """Headline statistics; open trades are ignored."""
    closed = _closed(trades)
    total = len(closed)
    if total == 0:
        return KPIStats()

    pnls = [_pnl(t) for t in closed]
    wins = [p for p in pnls if p > 0]
    losses = [p for p in pnls if p < 0]
    total_pnl = sum(pnls)
    total_r = sum(_r(t) for t in closed)
    gross_loss = abs(sum(losses))

    return KPIStats(
        total_trades=total,
        wins=len(wins),
        losses=len(losses),
        win_rate=len(wins) / total * 100,
        total_pnl=total_pnl,
        total_r=total_r,
        avg_r=total_r / total,
        avg_win=sum(wins) / len(wins) if wins else 0.0,
        avg_loss=gross_loss / len(losses) if losses else 0.0,
        profit_factor=sum(wins) / gross_loss if gross_loss > 0 else 0.0,
        expectancy=total_pnl / total,
    )


class HourBucket(BaseModel):
    hour: int
    trades: int = 0
    wins: int = 0
    pnl: float = 0.0
    total_r: float = 0.0

    @property
    def win_rate(self) -> float:
        return self.wins / self.trades * 100 if self.trades else 0.0

    @property
    def avg_r(self) -> float:
        return self.total_r / self.trades if self.trades else 0.0


def heat_band(bucket: HourBucket | None) -> str:
    """Win-rate band used to colour an hour cell."""
    if bucket is None or bucket.trades == 0:
        return "empty"
    rate = bucket.win_rate
    if rate >= 70:
        return "strong"
    if rate >= 50:
        return "positive"
    if rate >= 30:
        return "weak"
    return "negative"


def hour_performance(trades: list[TradeRecord], tz_name: str = "UTC") -> dict[int, HourBucket]:
    """Closed trades bucketed by entry hour (0-23) in the given timezone."""
    tz = ZoneInfo(tz_name)
    buckets: dict[int, HourBucket] = {}
    for t in _closed(trades):
        if t.entry_time is None:
            continue
        hour = _localize(t.entry_time, tz).hour
        bucket = buckets.setdefault(hour, HourBucket(hour=hour))
        bucket.trades += 1
        bucket.pnl += _pnl(t)
        bucket.total_r += _r(t)
        if _pnl(t) > 0:
            bucket.wins += 1
    return buckets


def _localize(moment: datetime, tz: ZoneInfo) -> datetime:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=ZoneInfo("UTC"))
    return moment.astimezone(tz)


class MistakeImpact(BaseModel):
    mistake: str
    count: int = 0
    total_r: float = 0.0
    total_pnl: float = 0.0


def mistake_impact(trades: list[TradeRecord]) -> list[MistakeImpact]:
    """Per mistake tag, sorted by absolute R impact, largest first."""
    impact: dict[str, MistakeImpact] = {}
    for t in _closed(trades):
        for mistake in t.mistake_tags:
            entry = impact.setdefault(mistake, MistakeImpact(mistake=mistake))
            entry.count += 1
            entry.total_r += _r(t)
            entry.total_pnl += _pnl(t)
    return sorted(impact.values(), key=lambda m: abs(m.total_r), reverse=True)


def _emotion_averages(trades: list[TradeRecord]) -> dict[str, float]:
    sums: dict[str, list[float]] = defaultdict(lambda: [0.0, 0])
    for t in trades:
        for emotion, value in (t.emotions or {}).items():
            if isinstance(value, (int, float)):
                sums[emotion][0] += value
                sums[emotion][1] += 1
    return {emotion: total / count for emotion, (total, count) in sums.items() if count}


def emotion_loss_analysis(trades: list[TradeRecord]) -> dict[str, float]:
    """Average emotion scores across losing closed trades."""
    return _emotion_averages([t for t in _closed(trades) if _pnl(t) < 0])


class FamilyPerformance(BaseModel):
    family: str  # trend, mean_reversion
    trades: int = 0
    win_rate: float = 0.0
    avg_r: float = 0.0
    total_pnl: float = 0.0


def model_family_performance(trades: list[TradeRecord]) -> list[FamilyPerformance]:
    families = {
        "trend": [t for t in _closed(trades) if is_trend_model(t.model)],
        "mean_reversion": [t for t in _closed(trades) if is_mean_reversion_model(t.model)],
    }
    result = []
    for family, members in families.items():
        count = len(members)
        wins = sum(1 for t in members if _pnl(t) > 0)
        result.append(
            FamilyPerformance(
                family=family,
                trades=count,
                win_rate=wins / count * 100 if count else 0.0,
                avg_r=sum(_r(t) for t in members) / count if count else 0.0,
                total_pnl=sum(_pnl(t) for t in members),
            )
        )
    return result


class ComparisonStats(BaseModel):
    win_rate: float = 0.0
    avg_r: float = 0.0
    total_trades: int = 0
    total_pnl: float = 0.0


class HypothesisComparison(BaseModel):
    hypothesis_id: str
    experimental: ComparisonStats
    classic: ComparisonStats

    @property
    def win_rate_delta(self) -> float:
        return self.experimental.win_rate - self.classic.win_rate

    @property
    def avg_r_delta(self) -> float:
        return self.experimental.avg_r - self.classic.avg_r


def _comparison_stats(trades: list[TradeRecord]) -> ComparisonStats:
    if not trades:
        return ComparisonStats()
    wins = sum(1 for t in trades if _pnl(t) > 0)
    return ComparisonStats(
        win_rate=wins / len(trades) * 100,
        avg_r=sum(_r(t) for t in trades) / len(trades),
        total_trades=len(trades),
        total_pnl=sum(_pnl(t) for t in trades),
    )


def hypothesis_comparison(
    trades: list[TradeRecord],
    hypothesis_id: str,
    start: datetime,
    end: datetime,
) -> HypothesisComparison:
    """Experimental trades of one hypothesis against classic trades, entered in [start, end]."""
    in_range = [
        t for t in _closed(trades) if t.entry_time is not None and start <= t.entry_time <= end
    ]
    experimental = [t for t in in_range if t.is_experimental and t.hypothesis_id == hypothesis_id]
    classic = [t for t in in_range if not t.is_experimental]
    return HypothesisComparison(
        hypothesis_id=hypothesis_id,
        experimental=_comparison_stats(experimental),
        classic=_comparison_stats(classic),
    )


class DailyWrap(BaseModel):
    date: date
    trades: list[TradeRecord] = []
    total_trades: int = 0
    total_pnl: float = 0.0
    total_r: float = 0.0
    wins: int = 0
    losses: int = 0
    win_rate: float = 0.0
    avg_r: float = 0.0
    best_trade: TradeRecord | None = None
    worst_trade: TradeRecord | None = None
    best_hour: int | None = None
    worst_hour: int | None = None
    top_mistakes: list[tuple[str, int]] = []
    emotion_averages: dict[str, float] = {}


def daily_wrap(trades: list[TradeRecord], day: date, tz_name: str = "UTC") -> DailyWrap:
    """End-of-day summary of trades closed on ``day``."""
    today = [
        t
        for t in _closed(trades)
        if t.exit_time is not None and day_key_for(t.exit_time, tz_name) == day
    ]
    if not today:
        return DailyWrap(date=day)

    total = len(today)
    total_r = sum(_r(t) for t in today)
    wins = sum(1 for t in today if _pnl(t) > 0)

    hours = hour_performance(today, tz_name)
    best_hour = max(hours.values(), key=lambda b: b.pnl, default=None)
    worst_hour = min(hours.values(), key=lambda b: b.pnl, default=None)

    mistake_counts: dict[str, int] = defaultdict(int)
    for t in today:
        for mistake in t.mistake_tags:
            mistake_counts[mistake] += 1
    top_mistakes = sorted(mistake_counts.items(), key=lambda item: item[1], reverse=True)[:3]

    return DailyWrap(
        date=day,
        trades=today,
        total_trades=total,
        total_pnl=sum(_pnl(t) for t in today),
        total_r=total_r,
        wins=wins,
        losses=sum(1 for t in today if _pnl(t) < 0),
        win_rate=wins / total * 100,
        avg_r=total_r / total,
        best_trade=max(today, key=_r),
        worst_trade=min(today, key=_r),
        best_hour=best_hour.hour if best_hour else None,
        worst_hour=worst_hour.hour if worst_hour else None,
        top_mistakes=top_mistakes,
        emotion_averages=_emotion_averages(today),
    )
