"""Trade plan synthesis — regime-conditioned entry, stop and targets. Pure math, no I/O.

Regimes (from structure bias):
    range         — fade the boundaries: long at support, short at resistance.
    trend-bullish — long pullbacks into support, unless price is under
                    EMA/VWAP pressure or RSI is collapsing.
    trend-bearish — mirror image: short rallies into resistance.

Stops sit one padding beyond the zone edge; padding is 0.8 × ATR(14), or
0.35 % of price when ATR is unavailable.  Targets are multiples of the
entry-to-stop risk.  Values are rounded to 2 dp only when the plan is
returned.
"""

from typing import Optional, Sequence

from marketlens.engine.indicators import calculate_atr
from marketlens.engine.models import (
    Candle,
    Invalidation,
    StructureResult,
    TakeProfit,
    TradePlan,
    Zone,
)
from marketlens.engine.mtf import normalize_bias

ATR_PAD_MULT = 0.8
FALLBACK_PAD_PCT = 0.0035
NEAR_ZONE_PCT = 0.01

RANGE_TARGETS = (1.0, 1.8)
TREND_TARGETS = (1.2, 2.2)

RSI_LONG_FLOOR = 40
RSI_SHORT_CEILING = 60


def _round(value: Optional[float], dp: int = 2) -> Optional[float]:
    if value is None:
        return None
    return round(value, dp)


def stop_padding(candles: Sequence[Candle], price: float, atr_period: int = 14) -> float:
    """Distance placed beyond a zone edge for the stop."""
    atr = calculate_atr(candles, atr_period)
    if atr:
        return atr * ATR_PAD_MULT
    return price * FALLBACK_PAD_PCT


def pick_levels(zones: Sequence[Zone], price: float) -> tuple[Optional[Zone], Optional[Zone]]:
    """Return ``(nearest_support, nearest_resistance)`` around *price*.

    Supports are scanned from the highest top down and the first one whose
    top is at or below price wins; resistances are scanned from the lowest
    bottom up and the first one whose bottom is at or above price wins.
    Either falls back to the first zone of its type.
    """
    supports = sorted((z for z in zones if z.type == "support"), key=lambda z: -z.high)
    resistances = sorted((z for z in zones if z.type == "resistance"), key=lambda z: z.low)

    nearest_support = next((z for z in supports if z.high <= price), None)
    if nearest_support is None and supports:
        nearest_support = supports[0]

    nearest_resistance = next((z for z in resistances if z.low >= price), None)
    if nearest_resistance is None and resistances:
        nearest_resistance = resistances[0]

    return nearest_support, nearest_resistance


def _targets(entry: float, sl: float, direction: str, multiples: tuple[float, ...]) -> list[TakeProfit]:
    risk = abs(entry - sl)
    sign = 1 if direction == "long" else -1
    return [
        TakeProfit(label=f"TP{i}", price=entry + sign * risk * m)
        for i, m in enumerate(multiples, start=1)
    ]


def reward_to_risk(entry: float, sl: float, tp1: float) -> Optional[float]:
    """``|TP1 - entry| / |entry - sl|``; ``None`` for a zero risk."""
    risk = abs(entry - sl)
    if risk == 0:
        return None
    return abs(tp1 - entry) / risk


def _no_trade(reason: str, conditions: list[str], invalidation: Optional[Invalidation]) -> TradePlan:
    return TradePlan(
        decision="none",
        reason=reason,
        conditions=conditions,
        invalidation=invalidation,
    )


def _finalize(
    decision: str,
    entry: float,
    sl: float,
    tps: list[TakeProfit],
    reason: str,
    conditions: list[str],
    invalidation: Optional[Invalidation],
) -> TradePlan:
    wrong_side = (decision == "long" and sl >= entry) or (decision == "short" and sl <= entry)
    if wrong_side:
        return _no_trade(
            "Stop would sit on the wrong side of entry; no valid risk.",
            ["Wait for price to move away from the zone edge"],
            invalidation,
        )

    rr = reward_to_risk(entry, sl, tps[0].price)
    return TradePlan(
        decision=decision,
        reason=reason,
        entry=_round(entry),
        sl=_round(sl),
        tps=[TakeProfit(label=tp.label, price=_round(tp.price)) for tp in tps],
        rr=_round(rr),
        conditions=conditions,
        invalidation=invalidation,
    )


def build_trade_plan(
    candles: Sequence[Candle],
    price: Optional[float],
    structure: Optional[StructureResult],
    zones: Sequence[Zone],
    ema_distance: Optional[float] = None,
    vwap_distance: Optional[float] = None,
    rsi: Optional[float] = None,
    invalidation: Optional[Invalidation] = None,
    atr_period: int = 14,
) -> TradePlan:
    """Synthesize a trade plan for the current regime.

    Args:
        candles: The (live-patched) candle series, used for ATR padding.
        price: Current price.
        structure: Working-timeframe structure result.
        zones: Ranked volume zones.
        ema_distance: Price distance from EMA, percent (missing → 0).
        vwap_distance: Price distance from VWAP, percent (missing → 0).
        rsi: Latest RSI (missing → 50).
        invalidation: Structural invalidation, attached verbatim.
        atr_period: ATR period for stop padding.

    Returns:
        ``TradePlan``; ``decision="none"`` carries no entry, stop,
        targets or R:R.
    """
    if price is None or structure is None:
        return _no_trade("Missing price or structure", [], invalidation)

    bias = normalize_bias(structure.bias)
    support, resistance = pick_levels(zones, price)
    pad = stop_padding(candles, price, atr_period)

    ema_d = ema_distance if ema_distance is not None else 0.0
    vwap_d = vwap_distance if vwap_distance is not None else 0.0
    rsi_v = rsi if rsi is not None else 50.0

    trend_support = ema_d > 0 and vwap_d > 0
    trend_pressure = ema_d < 0 and vwap_d < 0

    # ── Range: fade the boundaries ──
    if bias == "range":
        if support is not None and abs(price - support.high) / price < NEAR_ZONE_PCT:
            entry = support.high
            sl = support.low - pad
            return _finalize(
                "long", entry, sl, _targets(entry, sl, "long", RANGE_TARGETS),
                "Range regime: price near support liquidity zone.",
                [
                    "Wait for rejection candle / bounce from support",
                    "Avoid entry if strong bearish BOS triggers",
                ],
                invalidation,
            )
        if resistance is not None and abs(resistance.low - price) / price < NEAR_ZONE_PCT:
            entry = resistance.low
            sl = resistance.high + pad
            return _finalize(
                "short", entry, sl, _targets(entry, sl, "short", RANGE_TARGETS),
                "Range regime: price near resistance liquidity zone.",
                [
                    "Wait for rejection candle / drop from resistance",
                    "Avoid entry if strong bullish BOS triggers",
                ],
                invalidation,
            )
        return _no_trade(
            "Range regime: price not near a boundary zone.",
            ["Wait for price to reach support or resistance zone"],
            invalidation,
        )

    # ── Trend-bullish: buy pullbacks into support ──
    if bias == "bullish":
        if not trend_pressure and rsi_v >= RSI_LONG_FLOOR and support is not None:
            entry = min(price, support.high)
            sl = support.low - pad
            return _finalize(
                "long", entry, sl, _targets(entry, sl, "long", TREND_TARGETS),
                "Bullish structure: long pullback into support zone.",
                [
                    "Confirm bullish hold above support zone",
                    "Avoid entry if bearish CHoCH prints",
                ],
                invalidation,
            )
        return _no_trade(
            "Bullish structure but conditions not favorable (pressure or no support zone).",
            ["Wait for pullback into support zone or reduce risk size"],
            invalidation,
        )

    # ── Trend-bearish: sell rallies into resistance ──
    if not trend_support and rsi_v <= RSI_SHORT_CEILING and resistance is not None:
        entry = max(price, resistance.low)
        sl = resistance.high + pad
        return _finalize(
            "short", entry, sl, _targets(entry, sl, "short", TREND_TARGETS),
            "Bearish structure: short pullback into resistance zone.",
            [
                "Confirm bearish rejection at resistance zone",
                "Avoid entry if bullish CHoCH prints",
            ],
            invalidation,
        )
    return _no_trade(
        "Bearish structure but conditions not favorable (supportive regime or no resistance zone).",
        ["Wait for bounce into resistance zone or reduce risk size"],
        invalidation,
    )
