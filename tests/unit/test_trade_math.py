"""Unit tests for R-multiple, P&L and duration arithmetic."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from bias_journal.trade_math import duration_minutes, pnl, preview, r_multiple, stop_distance


class TestLongTrade:
    def test_stop_distance(self):
        assert stop_distance(Decimal("1.1000"), Decimal("1.0950")) == Decimal("0.0050")

    def test_r_multiple(self):
        assert r_multiple("long", Decimal("1.1000"), Decimal("1.0950"), Decimal("1.1050")) == Decimal("1.000")

    def test_pnl(self):
        assert pnl("long", Decimal("1.1000"), Decimal("1.1050"), 100) == Decimal("0.45")

    def test_losing_trade(self):
        assert r_multiple("long", Decimal("1.1000"), Decimal("1.0950"), Decimal("1.0950")) == Decimal("-1.000")
        assert pnl("long", Decimal("1.1000"), Decimal("1.0950"), 100) == Decimal("-0.45")


class TestShortTrade:
    def test_symmetric_r_multiple(self):
        assert r_multiple("short", Decimal("1.1000"), Decimal("1.1050"), Decimal("1.0950")) == Decimal("1.000")

    def test_pnl(self):
        assert pnl("short", Decimal("1.1000"), Decimal("1.0950"), 100) == Decimal("0.45")


class TestEdgeCases:
    def test_zero_stop_distance_gives_zero_r(self):
        assert r_multiple("long", Decimal("1.1"), Decimal("1.1"), Decimal("1.2")) == Decimal("0")

    def test_float_inputs(self):
        assert r_multiple("long", 1.1, 1.095, 1.1075) == Decimal("1.500")

    def test_rounding_half_up(self):
        # 0.0025 / 1.0 * 50 = 0.125 -> 0.13
        assert pnl("long", Decimal("1.0"), Decimal("1.0025"), 50) == Decimal("0.13")

    def test_duration(self):
        entry = datetime(2026, 10, 19, 14, 0, tzinfo=timezone.utc)
        assert duration_minutes(entry, entry + timedelta(minutes=90, seconds=20)) == 90
        assert duration_minutes(entry, entry + timedelta(seconds=150)) == 3
        assert duration_minutes(None, entry) is None


class TestPreview:
    def test_without_exit_only_distance(self):
        result = preview("long", Decimal("1.1000"), Decimal("1.0950"), None, 100)
        assert result.stop_distance == Decimal("0.0050")
        assert result.r_multiple == 0
        assert result.pnl == 0

    def test_full(self):
        result = preview("short", Decimal("1.1000"), Decimal("1.1050"), Decimal("1.0950"), 100)
        assert result.r_multiple == Decimal("1.000")
        assert result.pnl == Decimal("0.45")
