"""Swing and market-structure detection — pure functions.

Swings are fractal extremes confirmed by *lookback* candles on each side.
Structure compares the final close with the most recent swing high and
swing low to emit a Break of Structure (BOS) or Change of Character (CHoCH).
"""

import logging
from typing import Optional, Sequence

from marketlens.engine.models import Candle, StructureEvent, StructureResult, Swing
from marketlens.errors import ConfigurationError

logger = logging.getLogger("marketlens")

MIN_STRUCTURE_CANDLES = 10


def _is_swing_high(candles: Sequence[Candle], i: int, lookback: int) -> bool:
    high = candles[i].high
    for j in range(1, lookback + 1):
        if candles[i - j].high >= high or candles[i + j].high >= high:
            return False
    return True


def _is_swing_low(candles: Sequence[Candle], i: int, lookback: int) -> bool:
    low = candles[i].low
    for j in range(1, lookback + 1):
        if candles[i - j].low <= low or candles[i + j].low <= low:
            return False
    return True


def detect_swings(candles: Sequence[Candle], lookback: int = 2) -> list[Swing]:
    """Identify swing highs and lows, oldest first.

    A swing high is a candle whose high is strictly higher than the highs
    of the *lookback* candles on each side; a swing low mirrors this on
    the lows.  The first and last *lookback* candles can never qualify.
    An outside bar satisfying both rules is kept as a swing high only.
    """
    if isinstance(lookback, bool) or not isinstance(lookback, int) or lookback <= 0:
        raise ConfigurationError(f"lookback must be a positive integer, got {lookback!r}")
    if len(candles) < lookback * 2 + 1:
        return []

    swings: list[Swing] = []
    for i in range(lookback, len(candles) - lookback):
        c = candles[i]
        if _is_swing_high(candles, i, lookback):
            swings.append(Swing(type="high", price=c.high, index=i, timestamp=c.timestamp))
        elif _is_swing_low(candles, i, lookback):
            swings.append(Swing(type="low", price=c.low, index=i, timestamp=c.timestamp))
    return swings


def _last_of_type(swings: list[Swing], kind: str) -> Optional[Swing]:
    for swing in reversed(swings):
        if swing.type == kind:
            return swing
    return None


def analyze_structure(
    candles: Sequence[Candle],
    lookback: int = 2,
    min_candles: int = MIN_STRUCTURE_CANDLES,
) -> StructureResult:
    """Classify bias and the latest structural break.

    Rules:
        - Fewer than *min_candles* candles or fewer than 2 swings → range,
          no event.
        - Final close above the last swing high → bullish event (CHoCH if
          the bias entering the check was bearish, else BOS).
        - Final close below the last swing low → bearish event, evaluated
          after the bullish check.  When both fire the bearish one wins
          (last write wins) and, since the bias is then bullish, it is
          labelled CHoCH.
    """
    swings = detect_swings(candles, lookback)
    last_high = _last_of_type(swings, "high")
    last_low = _last_of_type(swings, "low")

    if len(candles) < min_candles or len(swings) < 2:
        return StructureResult(
            bias="range", swings=swings, event=None,
            last_high=last_high, last_low=last_low,
        )

    last = candles[-1]
    bias = "range"
    event: Optional[StructureEvent] = None

    if last_high is not None and last.close > last_high.price:
        event = StructureEvent(
            type="CHoCH" if bias == "bearish" else "BOS",
            direction="bullish",
            price=last_high.price,
            timestamp=last.timestamp,
        )
        bias = "bullish"

    if last_low is not None and last.close < last_low.price:
        if event is not None:
            logger.warning(
                "Close %.8g broke both swing high %.8g and swing low %.8g; bearish wins",
                last.close, last_high.price, last_low.price,
            )
        event = StructureEvent(
            type="CHoCH" if bias == "bullish" else "BOS",
            direction="bearish",
            price=last_low.price,
            timestamp=last.timestamp,
        )
        bias = "bearish"

    return StructureResult(
        bias=bias, swings=swings, event=event,
        last_high=last_high, last_low=last_low,
    )
