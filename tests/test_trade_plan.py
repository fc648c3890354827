"""Tests for trade plan synthesis and structural invalidation."""

import pytest

from marketlens.engine.models import Candle, Invalidation, StructureResult, Swing, Zone
from marketlens.risk.invalidation import build_invalidation
from marketlens.risk.trade_plan import (
    build_trade_plan,
    pick_levels,
    reward_to_risk,
    stop_padding,
)
from tests.conftest import BASE_TS, HOUR_MS


def _zone(low: float, high: float, type_: str, strength: float = 0.5) -> Zone:
    return Zone(
        low=low, high=high, price=(low + high) / 2, volume=100.0,
        strength=strength, touches=2, type=type_,
    )


def _few_candles(price: float = 100.0, n: int = 5) -> list[Candle]:
    """Too short for ATR(14), so stops use the 0.35 % fallback padding."""
    return [
        Candle(timestamp=BASE_TS + i * HOUR_MS, open=price, high=price + 1, low=price - 1, close=price, volume=1)
        for i in range(n)
    ]


# ── Helpers ──────────────────────────────────────────────────────────────


class TestHelpers:
    def test_reward_to_risk(self):
        assert reward_to_risk(100.0, 95.0, 105.0) == pytest.approx(1.0)
        assert reward_to_risk(100.0, 100.0, 105.0) is None

    def test_fallback_padding(self):
        assert stop_padding(_few_candles(), 200.0) == pytest.approx(0.7)

    def test_atr_padding(self):
        candles = _few_candles(n=30)  # true range is a constant 2
        assert stop_padding(candles, 100.0) == pytest.approx(1.6)

    def test_pick_levels(self):
        zones = [
            _zone(90, 91, "support"),
            _zone(95, 96, "support"),
            _zone(101, 102, "support"),
            _zone(103, 104, "resistance"),
            _zone(99, 100.5, "resistance"),
        ]
        support, resistance = pick_levels(zones, 100.0)
        assert (support.low, support.high) == (95, 96)
        assert (resistance.low, resistance.high) == (103, 104)

    def test_pick_levels_fallback_to_first(self):
        support, resistance = pick_levels([_zone(101, 102, "support")], 100.0)
        assert (support.low, support.high) == (101, 102)
        assert resistance is None


# ── Range regime ─────────────────────────────────────────────────────────


class TestRangeRegime:
    def test_long_at_support(self):
        zones = [_zone(98, 99, "support"), _zone(110, 111, "resistance")]
        plan = build_trade_plan(_few_candles(99.5), 99.5, StructureResult(bias="range"), zones)
        assert plan.decision == "long"
        assert plan.reason == "Range regime: price near support liquidity zone."
        assert plan.entry == pytest.approx(99.0)
        assert plan.sl == pytest.approx(97.65, abs=0.01)
        assert [tp.label for tp in plan.tps] == ["TP1", "TP2"]
        assert plan.tps[0].price == pytest.approx(100.35, abs=0.01)
        assert plan.tps[1].price == pytest.approx(101.43, abs=0.01)
        assert plan.rr == pytest.approx(1.0)

    def test_short_at_resistance(self):
        zones = [_zone(90, 91, "support"), _zone(101, 102, "resistance")]
        plan = build_trade_plan(_few_candles(100.5), 100.5, StructureResult(bias="range"), zones)
        assert plan.decision == "short"
        assert plan.entry == pytest.approx(101.0)
        assert plan.sl == pytest.approx(102.35, abs=0.01)
        assert plan.tps[0].price == pytest.approx(99.65, abs=0.01)
        assert plan.tps[1].price == pytest.approx(98.57, abs=0.01)

    def test_no_boundary_nearby(self):
        zones = [_zone(90, 91, "support"), _zone(110, 111, "resistance")]
        plan = build_trade_plan(_few_candles(), 100.0, StructureResult(bias="range"), zones)
        assert plan.decision == "none"
        assert plan.reason == "Range regime: price not near a boundary zone."
        assert plan.entry is None
        assert plan.sl is None
        assert plan.tps == []
        assert plan.rr is None


# ── Trend regimes ────────────────────────────────────────────────────────


class TestTrendRegimes:
    def test_bullish_pullback_long(self):
        zones = [_zone(95, 96, "support")]
        plan = build_trade_plan(
            _few_candles(), 100.0, StructureResult(bias="bullish"), zones,
            ema_distance=2.0, vwap_distance=1.0, rsi=55.0,
        )
        assert plan.decision == "long"
        assert plan.reason == "Bullish structure: long pullback into support zone."
        assert plan.entry == pytest.approx(96.0)
        assert plan.sl == pytest.approx(94.65, abs=0.01)
        assert plan.tps[0].price == pytest.approx(97.62, abs=0.01)
        assert plan.tps[1].price == pytest.approx(98.97, abs=0.01)
        assert plan.rr == pytest.approx(1.2)

    def test_bullish_under_pressure_is_none(self):
        zones = [_zone(95, 96, "support")]
        plan = build_trade_plan(
            _few_candles(), 100.0, StructureResult(bias="bullish"), zones,
            ema_distance=-2.0, vwap_distance=-1.0, rsi=55.0,
        )
        assert plan.decision == "none"

    def test_bullish_weak_rsi_is_none(self):
        zones = [_zone(95, 96, "support")]
        plan = build_trade_plan(
            _few_candles(), 100.0, StructureResult(bias="bullish"), zones,
            ema_distance=2.0, vwap_distance=1.0, rsi=35.0,
        )
        assert plan.decision == "none"

    def test_bullish_without_support_is_none(self):
        plan = build_trade_plan(_few_candles(), 100.0, StructureResult(bias="bullish"), [])
        assert plan.decision == "none"

    def test_bearish_rally_short(self):
        zones = [_zone(104, 105, "resistance")]
        plan = build_trade_plan(
            _few_candles(), 100.0, StructureResult(bias="bearish"), zones,
            ema_distance=-2.0, vwap_distance=-1.0, rsi=45.0,
        )
        assert plan.decision == "short"
        assert plan.entry == pytest.approx(104.0)
        assert plan.sl == pytest.approx(105.35, abs=0.01)
        assert plan.tps[0].price == pytest.approx(102.38, abs=0.01)
        assert plan.tps[1].price == pytest.approx(101.03, abs=0.01)

    def test_bearish_supportive_regime_is_none(self):
        zones = [_zone(104, 105, "resistance")]
        plan = build_trade_plan(
            _few_candles(), 100.0, StructureResult(bias="bearish"), zones,
            ema_distance=2.0, vwap_distance=1.0, rsi=45.0,
        )
        assert plan.decision == "none"

    def test_missing_indicators_default_neutral(self):
        zones = [_zone(95, 96, "support")]
        plan = build_trade_plan(_few_candles(), 100.0, StructureResult(bias="bullish"), zones)
        assert plan.decision == "long"


# ── Guards ───────────────────────────────────────────────────────────────


class TestGuards:
    def test_missing_price(self):
        plan = build_trade_plan(_few_candles(), None, StructureResult(bias="bullish"), [])
        assert plan.decision == "none"
        assert plan.reason == "Missing price or structure"

    def test_missing_structure(self):
        plan = build_trade_plan(_few_candles(), 100.0, None, [])
        assert plan.reason == "Missing price or structure"

    def test_stop_on_wrong_side_is_none(self):
        # Price below the only support: entry 90, stop just under 95
        zones = [_zone(95, 96, "support")]
        plan = build_trade_plan(_few_candles(90.0), 90.0, StructureResult(bias="bullish"), zones)
        assert plan.decision == "none"
        assert plan.sl is None

    def test_stop_always_beyond_entry(self, zigzag):
        candles = zigzag(80)
        price = candles[-1].close
        zones = [_zone(price * 0.97, price * 0.98, "support"), _zone(price * 1.02, price * 1.03, "resistance")]
        for bias in ("bullish", "bearish", "range"):
            plan = build_trade_plan(candles, price, StructureResult(bias=bias), zones)
            if plan.decision == "long":
                assert plan.sl < plan.entry
            elif plan.decision == "short":
                assert plan.sl > plan.entry

    def test_invalidation_attached(self):
        inv = Invalidation(side="bullish", text="x", level=1.0)
        plan = build_trade_plan(_few_candles(), 100.0, StructureResult(bias="range"), [], invalidation=inv)
        assert plan.invalidation is inv


# ── Invalidation ─────────────────────────────────────────────────────────


def _swing(type_: str, price: float) -> Swing:
    return Swing(type=type_, price=price, index=0, timestamp=BASE_TS)


class TestInvalidation:
    def test_bullish_cites_last_low(self):
        inv = build_invalidation(
            StructureResult(bias="bullish", last_low=_swing("low", 1234.5), last_high=_swing("high", 1300))
        )
        assert inv.side == "bullish"
        assert inv.level == 1234.5
        assert "1,234.50" in inv.text
        assert "below" in inv.text

    def test_bearish_cites_last_high(self):
        inv = build_invalidation(StructureResult(bias="bearish", last_high=_swing("high", 110.0)))
        assert inv.level == 110.0
        assert "above" in inv.text

    def test_range_cites_both(self):
        inv = build_invalidation(
            StructureResult(bias="range", last_high=_swing("high", 110.0), last_low=_swing("low", 90.0))
        )
        assert (inv.upper, inv.lower) == (110.0, 90.0)
        assert "110.00" in inv.text and "90.00" in inv.text

    def test_missing_swings(self):
        inv = build_invalidation(StructureResult(bias="bullish"))
        assert inv.level is None
        inv = build_invalidation(StructureResult(bias="range"))
        assert inv.upper is None and inv.lower is None
