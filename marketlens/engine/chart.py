"""Chart feed — candles plus the overlay series a chart renderer draws.

Overlays are EMA20, EMA50 and RSI(14) over the closes, index-aligned with
the candles; undefined positions are ``None``.
"""

from dataclasses import asdict
from typing import Sequence

from marketlens.engine.indicators import calculate_ema, calculate_rsi, validate_candles
from marketlens.engine.models import Candle
from marketlens.errors import InsufficientDataError

FAST_EMA = 20
SLOW_EMA = 50
RSI_PERIOD = 14


def build_chart_series(candles: Sequence[Candle]) -> dict:
    """Return ``{"candles", "ema20", "ema50", "rsi"}`` for *candles*.

    Raises ``InsufficientDataError`` when there are no candles, or fewer
    than the slow EMA needs.
    """
    if not candles:
        raise InsufficientDataError("No candle data")
    validate_candles(candles)

    closes = [c.close for c in candles]
    return {
        "candles": [asdict(c) for c in candles],
        "ema20": calculate_ema(closes, FAST_EMA),
        "ema50": calculate_ema(closes, SLOW_EMA),
        "rsi": calculate_rsi(closes, RSI_PERIOD),
    }
