"""CSV trade export and the JSON daily report."""

from __future__ import annotations

import csv
import io
import json
from zoneinfo import ZoneInfo

from bias_journal.analytics import DailyWrap, emotion_loss_analysis, hour_performance, mistake_impact
from bias_journal.models.trade import TradeRecord

EXPORT_COLUMNS = [
    "Date",
    "Asset",
    "Direction",
    "Model",
    "Entry",
    "Exit",
    "Stop",
    "PnL",
    "R Multiple",
    "Risk Tier",
    "Duration",
    "Emotions",
    "Notes",
]


def _blank(value) -> str:
    return "" if value is None else str(value)


def _trade_to_export_row(trade: TradeRecord, tz: ZoneInfo) -> list[str]:
    entry_time = trade.entry_time.astimezone(tz).strftime("%Y-%m-%d %H:%M") if trade.entry_time else ""
    return [
        entry_time,
        trade.asset,
        trade.direction,
        trade.model,
        _blank(trade.entry_price),
        _blank(trade.exit_price),
        _blank(trade.stop_loss),
        _blank(trade.pnl),
        _blank(trade.r_multiple),
        trade.risk_tier.upper(),
        _blank(trade.duration_minutes),
        json.dumps(trade.emotions, separators=(",", ":")),
        trade.notes or "",
    ]


def trades_to_csv(trades: list[TradeRecord], tz_name: str = "UTC") -> str:
    """Closed trades as CSV, one row per trade in the given order."""
    tz = ZoneInfo(tz_name)
    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")
    writer.writerow(EXPORT_COLUMNS)
    for trade in trades:
        if trade.status != "closed":
            continue
        writer.writerow(_trade_to_export_row(trade, tz))
    return output.getvalue()


def daily_report(wrap: DailyWrap, tz_name: str = "UTC") -> dict:
    """JSON-ready bundle: {date, summary, trades, analysis}."""
    return {
        "date": wrap.date.isoformat(),
        "summary": {
            "total_trades": wrap.total_trades,
            "total_pnl": round(wrap.total_pnl, 2),
            "total_r": round(wrap.total_r, 3),
            "win_rate": round(wrap.win_rate, 1),
            "avg_r": round(wrap.avg_r, 3),
        },
        "trades": [
            {
                "asset": t.asset,
                "direction": t.direction,
                "model": t.model,
                "pnl": float(t.pnl) if t.pnl is not None else None,
                "r_multiple": float(t.r_multiple) if t.r_multiple is not None else None,
                "entry_time": t.entry_time.isoformat() if t.entry_time else None,
                "emotions": t.emotions,
                "mistakes": list(t.mistake_tags),
            }
            for t in wrap.trades
        ],
        "analysis": {
            "best_hour": wrap.best_hour,
            "worst_hour": wrap.worst_hour,
            "top_mistakes": [[name, count] for name, count in wrap.top_mistakes],
            "emotion_averages": wrap.emotion_averages,
            "hours": {
                str(hour): {"trades": b.trades, "wins": b.wins, "pnl": round(b.pnl, 2)}
                for hour, b in sorted(hour_performance(wrap.trades, tz_name).items())
            },
            "mistakes": [m.model_dump() for m in mistake_impact(wrap.trades)],
            "loss_emotions": emotion_loss_analysis(wrap.trades),
        },
    }


def daily_report_json(wrap: DailyWrap, tz_name: str = "UTC") -> str:
    return json.dumps(daily_report(wrap, tz_name), indent=2)
