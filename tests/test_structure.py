"""Deterministic tests for swing detection and market structure."""

import pytest

from marketlens.engine.models import Candle
from marketlens.engine.structure import analyze_structure, detect_swings
from marketlens.errors import ConfigurationError
from tests.conftest import BASE_TS, HOUR_MS


def _hl_candles(bars: list[tuple[float, float]], last_close: float | None = None) -> list[Candle]:
    """Candles from (high, low) pairs; close is the midpoint unless overridden."""
    candles = []
    for i, (h, l) in enumerate(bars):
        c = (h + l) / 2
        candles.append(Candle(timestamp=BASE_TS + i * HOUR_MS, open=c, high=h, low=l, close=c, volume=1))
    if last_close is not None:
        last = candles[-1]
        candles[-1] = Candle(
            timestamp=last.timestamp, open=last.open, high=last.high,
            low=last.low, close=last_close, volume=1,
        )
    return candles


# ── Swings ───────────────────────────────────────────────────────────────


class TestDetectSwings:
    def test_single_high_and_low(self):
        bars = [(10, 5), (11, 6), (15, 7), (12, 6), (11, 3), (12, 4), (13, 5)]
        swings = detect_swings(_hl_candles(bars), lookback=2)
        assert [(s.type, s.price, s.index) for s in swings] == [
            ("high", 15, 2),
            ("low", 3, 4),
        ]

    def test_strict_inequality(self):
        bars = [(1, 0.5), (2, 1), (5, 1.5), (5, 1.5), (2, 1), (1, 0.5)]
        swings = detect_swings(_hl_candles(bars), lookback=2)
        assert [s for s in swings if s.type == "high"] == []

    def test_boundaries_never_swings(self):
        # Extreme highs/lows at both ends of the series
        bars = [(50, 1), (20, 2), (10, 5), (11, 6), (12, 7), (20, 2), (50, 1)]
        swings = detect_swings(_hl_candles(bars), lookback=2)
        n = len(bars)
        assert all(2 <= s.index < n - 2 for s in swings)

    def test_outside_bar_is_high_only(self):
        bars = [(10, 5), (10, 5), (20, 1), (10, 5), (10, 5)]
        swings = detect_swings(_hl_candles(bars), lookback=2)
        assert len(swings) == 1
        assert swings[0].type == "high"

    def test_too_short_series(self):
        assert detect_swings(_hl_candles([(1, 0), (2, 1), (3, 2), (2, 1)]), lookback=2) == []

    def test_rejects_bad_lookback(self):
        with pytest.raises(ConfigurationError):
            detect_swings(_hl_candles([(1, 0)] * 5), lookback=0)

    def test_rejects_bool_lookback(self):
        with pytest.raises(ConfigurationError):
            detect_swings(_hl_candles([(1, 0)] * 5), lookback=True)

    def test_timestamps_carried(self):
        bars = [(10, 5), (11, 6), (15, 7), (12, 6), (11, 6)]
        swing = detect_swings(_hl_candles(bars), lookback=2)[0]
        assert swing.timestamp == BASE_TS + 2 * HOUR_MS


# ── Structure ────────────────────────────────────────────────────────────


class TestAnalyzeStructure:
    def test_short_series_is_range(self, zigzag):
        result = analyze_structure(zigzag(9))
        assert result.bias == "range"
        assert result.event is None

    def test_no_swings_is_range(self):
        bars = [(i + 1.0, float(i)) for i in range(15)]  # strictly rising, no swings
        result = analyze_structure(_hl_candles(bars))
        assert result.bias == "range"
        assert result.event is None
        assert result.swings == []

    def test_rising_break_is_bullish_bos(self, zigzag):
        candles = zigzag(40)
        result = analyze_structure(candles)
        assert result.bias == "bullish"
        assert result.event is not None
        assert result.event.type == "BOS"
        assert result.event.direction == "bullish"
        assert result.event.price == pytest.approx(result.last_high.price)
        assert candles[-1].close > max(s.price for s in result.swings if s.type == "high")
        assert result.event.timestamp == candles[-1].timestamp

    def test_falling_break_is_bearish_bos(self, zigzag):
        candles = zigzag(40, leg_step=-1.0, pullback_step=0.75)
        result = analyze_structure(candles)
        assert result.bias == "bearish"
        assert result.event.type == "BOS"
        assert result.event.direction == "bearish"
        assert result.event.price == pytest.approx(result.last_low.price)

    def test_inside_swings_is_range(self, zigzag):
        candles = zigzag(40)
        # Pull the final close back between the last swing low and high
        result = analyze_structure(candles)
        mid = (result.last_high.price + result.last_low.price) / 2
        last = candles[-1]
        candles[-1] = Candle(
            timestamp=last.timestamp, open=last.open, high=last.high,
            low=min(last.low, mid), close=mid, volume=last.volume,
        )
        result = analyze_structure(candles)
        assert result.bias == "range"
        assert result.event is None

    def test_double_break_bearish_wins(self):
        bars = [
            (112, 104), (111, 103), (110, 102),
            (109, 100),  # swing low 100
            (108, 101.5), (107, 101),
            (88, 87), (89, 86),
            (90, 85),  # swing high 90
            (89.5, 84), (89, 83),
            (96, 94),
        ]
        result = analyze_structure(_hl_candles(bars, last_close=95.0))
        assert [(s.type, s.price) for s in result.swings] == [("low", 100), ("high", 90)]
        assert result.bias == "bearish"
        assert result.event.direction == "bearish"
        assert result.event.type == "CHoCH"
        assert result.event.price == 100

    def test_idempotent(self, zigzag):
        candles = zigzag(60)
        assert analyze_structure(candles) == analyze_structure(candles)
