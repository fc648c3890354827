"""Confidence scoring — an ordered sum of independent, additive terms.

Every term is its own function so its contribution can be checked in
isolation.  The total starts from ``BASE_SCORE`` and is clamped to
[0, 100] and rounded only once, at the end.
"""

from typing import Optional

from marketlens.engine.models import (
    ConfidenceBreakdown,
    MTFAlignment,
    NearestZone,
    StructureResult,
)

BASE_SCORE = 45

TREND_POINTS = 10
BOS_POINTS = 15
CHOCH_POINTS = 8
ZONE_MAX_POINTS = 18
CONFLUENCE_POINTS = 10
CONFLUENCE_THRESHOLD_PCT = 1.0
MOMENTUM_POINTS = 5
RSI_STRONG = 60
RSI_WEAK = 40

MTF_POINTS: dict[str, int] = {
    "aligned": 12,
    "conflict": -18,
    "htf_range": 4,
    "ltf_range": -6,
}


# ── Terms ────────────────────────────────────────────────────────────────


def trend_term(structure: StructureResult) -> float:
    """+10 when the bias is trending (not range)."""
    return TREND_POINTS if structure.bias in ("bullish", "bearish") else 0


def event_term(structure: StructureResult) -> float:
    """+15 for a BOS, +8 for a CHoCH.  One event per pass, so never both."""
    if structure.event is None:
        return 0
    if structure.event.type == "BOS":
        return BOS_POINTS
    if structure.event.type == "CHoCH":
        return CHOCH_POINTS
    return 0


def zone_term(nearest_zone: Optional[NearestZone]) -> float:
    """Up to +18, linear in the nearest zone's ranked strength."""
    if nearest_zone is None:
        return 0
    return min(max(nearest_zone.zone.strength * ZONE_MAX_POINTS, 0.0), ZONE_MAX_POINTS)


def confluence_term(ema_distance: Optional[float], vwap_distance: Optional[float]) -> float:
    """+10 when price is >1 % beyond both EMA and VWAP on the same side."""
    if ema_distance is None or vwap_distance is None:
        return 0
    above = ema_distance > CONFLUENCE_THRESHOLD_PCT and vwap_distance > CONFLUENCE_THRESHOLD_PCT
    below = ema_distance < -CONFLUENCE_THRESHOLD_PCT and vwap_distance < -CONFLUENCE_THRESHOLD_PCT
    return CONFLUENCE_POINTS if above or below else 0


def momentum_term(rsi: Optional[float]) -> float:
    """+5 when RSI confirms momentum (above 60 or below 40)."""
    if rsi is None:
        return 0
    return MOMENTUM_POINTS if rsi > RSI_STRONG or rsi < RSI_WEAK else 0


def mtf_term(mtf: Optional[MTFAlignment]) -> float:
    """Higher-timeframe context; zero when the aligner is disabled."""
    if mtf is None or not mtf.enabled or mtf.status is None:
        return 0
    return MTF_POINTS.get(mtf.status, 0)


# ── Total ────────────────────────────────────────────────────────────────


def score_confidence(
    structure: StructureResult,
    nearest_zone: Optional[NearestZone],
    ema_distance: Optional[float],
    vwap_distance: Optional[float],
    rsi: Optional[float],
    mtf: Optional[MTFAlignment] = None,
) -> ConfidenceBreakdown:
    """Combine all terms into a 0–100 integer score.

    Args:
        structure: Working-timeframe structure result.
        nearest_zone: Closest ranked zone, or ``None``.
        ema_distance: Price distance from EMA, percent.
        vwap_distance: Price distance from VWAP, percent.
        rsi: Latest RSI value.
        mtf: Multi-timeframe alignment (ignored when disabled).

    Returns:
        ``ConfidenceBreakdown`` with the clamped score and the non-zero terms.
    """
    terms = [
        ("trend", trend_term(structure)),
        ("structure_event", event_term(structure)),
        ("zone_strength", zone_term(nearest_zone)),
        ("ema_vwap_confluence", confluence_term(ema_distance, vwap_distance)),
        ("rsi_momentum", momentum_term(rsi)),
        ("mtf", mtf_term(mtf)),
    ]

    total = BASE_SCORE + sum(points for _, points in terms)
    score = int(round(min(max(total, 0), 100)))

    return ConfidenceBreakdown(
        score=score,
        terms=[(label, round(points, 2)) for label, points in terms if points],
    )
