"""Tests for the confidence scorer — one class per term plus totals."""

import pytest

from marketlens.engine.confidence import (
    BASE_SCORE,
    confluence_term,
    event_term,
    momentum_term,
    mtf_term,
    score_confidence,
    trend_term,
    zone_term,
)
from marketlens.engine.models import (
    MTFAlignment,
    NearestZone,
    StructureEvent,
    StructureResult,
    Zone,
)


def _structure(bias="range", event_type=None) -> StructureResult:
    event = None
    if event_type:
        direction = "bearish" if bias == "bearish" else "bullish"
        event = StructureEvent(type=event_type, direction=direction, price=100.0, timestamp=0)
    return StructureResult(bias=bias, event=event)


def _nearest(strength: float) -> NearestZone:
    zone = Zone(low=99.0, high=101.0, price=100.0, volume=1.0, strength=strength, touches=3, type="support")
    return NearestZone(zone=zone, distance_pct=0.5)


class TestTerms:
    def test_trend(self):
        assert trend_term(_structure("bullish")) == 10
        assert trend_term(_structure("bearish")) == 10
        assert trend_term(_structure("range")) == 0

    def test_event(self):
        assert event_term(_structure("bullish", "BOS")) == 15
        assert event_term(_structure("bearish", "CHoCH")) == 8
        assert event_term(_structure("range")) == 0

    def test_zone_linear(self):
        assert zone_term(None) == 0
        assert zone_term(_nearest(0.5)) == pytest.approx(9.0)
        assert zone_term(_nearest(1.0)) == pytest.approx(18.0)

    def test_confluence_needs_both_same_side(self):
        assert confluence_term(1.5, 2.0) == 10
        assert confluence_term(-1.5, -2.0) == 10
        assert confluence_term(1.5, -2.0) == 0
        assert confluence_term(1.0, 2.0) == 0  # strictly beyond 1 %
        assert confluence_term(None, 2.0) == 0

    def test_momentum(self):
        assert momentum_term(61) == 5
        assert momentum_term(39) == 5
        assert momentum_term(60) == 0
        assert momentum_term(None) == 0

    @pytest.mark.parametrize(
        "status,points",
        [("aligned", 12), ("conflict", -18), ("htf_range", 4), ("ltf_range", -6)],
    )
    def test_mtf(self, status, points):
        assert mtf_term(MTFAlignment(enabled=True, status=status)) == points

    def test_mtf_disabled(self):
        assert mtf_term(MTFAlignment(enabled=False)) == 0
        assert mtf_term(None) == 0


class TestScoreConfidence:
    def test_neutral_range_is_base(self):
        # Range bias, no zone, RSI 50, price within 1 % of EMA and VWAP
        result = score_confidence(_structure("range"), None, 0.5, -0.7, 50.0)
        assert result.score == BASE_SCORE
        assert result.terms == []

    def test_missing_inputs_is_base(self):
        result = score_confidence(_structure(), None, None, None, None)
        assert result.score == BASE_SCORE

    def test_trending_bos(self):
        result = score_confidence(_structure("bullish", "BOS"), None, 0.2, 0.1, 50)
        assert result.score == 70
        assert dict(result.terms) == {"trend": 10, "structure_event": 15}

    def test_zone_contribution(self):
        result = score_confidence(_structure(), _nearest(0.5), None, None, None)
        assert result.score == 54

    def test_clamped_high(self):
        mtf = MTFAlignment(enabled=True, status="aligned")
        result = score_confidence(_structure("bullish", "BOS"), _nearest(1.0), 2.0, 3.0, 70, mtf)
        # 45 + 10 + 15 + 18 + 10 + 5 + 12 = 115
        assert result.score == 100

    def test_conflict_lowers(self):
        mtf = MTFAlignment(enabled=True, status="conflict")
        result = score_confidence(_structure(), None, None, None, None, mtf)
        assert result.score == 27

    def test_always_int_in_range(self):
        result = score_confidence(_structure("bearish", "CHoCH"), _nearest(0.333), -1.2, -0.4, 35)
        assert isinstance(result.score, int)
        assert 0 <= result.score <= 100

    def test_to_dict(self):
        result = score_confidence(_structure("bullish", "BOS"), None, None, None, None)
        assert result.to_dict()["terms"][0] == {"label": "trend", "points": 10}
