"""Technical indicators — EMA, RSI, VWAP, ATR. Pure functions, no I/O.

Undefined positions are ``None`` (absent), never zero or NaN.  Non-finite
inputs fail fast with ``IndicatorError`` so a NaN can never leak into the
confidence score.
"""

import math
from datetime import date, datetime, timezone, tzinfo
from typing import Optional, Sequence
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from marketlens.engine.models import Candle
from marketlens.errors import ConfigurationError, IndicatorError, InsufficientDataError


def _check_period(period: int, name: str) -> None:
    if isinstance(period, bool) or not isinstance(period, int) or period <= 0:
        raise ConfigurationError(f"{name} period must be a positive integer, got {period!r}")


def _require_finite(values: Sequence[float], what: str) -> None:
    for i, v in enumerate(values):
        if v is None or not math.isfinite(v):
            raise IndicatorError(f"Non-finite {what} at index {i}: {v!r}")


def validate_candles(candles: Sequence[Candle]) -> None:
    """Reject candles carrying non-finite prices or a negative volume.

    Missing volume (``None``) is allowed; VWAP and the zone engine skip it.
    """
    for i, c in enumerate(candles):
        for name in ("open", "high", "low", "close"):
            value = getattr(c, name)
            if value is None or not math.isfinite(value):
                raise IndicatorError(f"Non-finite {name} at candle {i}: {value!r}")
        if c.volume is not None:
            if not math.isfinite(c.volume):
                raise IndicatorError(f"Non-finite volume at candle {i}: {c.volume!r}")
            if c.volume < 0:
                raise IndicatorError(f"Negative volume at candle {i}: {c.volume!r}")


def last_defined(series: Sequence[Optional[float]]) -> Optional[float]:
    """Return the last non-``None`` value of *series*, or ``None``."""
    for value in reversed(series):
        if value is not None:
            return value
    return None


# ── EMA ──────────────────────────────────────────────────────────────────


def calculate_ema(values: Sequence[float], period: int) -> list[Optional[float]]:
    """Calculate an Exponential Moving Average series.

    ``EMA_today = value × k + EMA_yesterday × (1 - k)`` with
    ``k = 2 / (period + 1)``.  The first EMA value, at index ``period - 1``,
    is the SMA of the first *period* values; earlier entries are ``None``.

    Raises ``InsufficientDataError`` if fewer than *period* values are given.
    """
    _check_period(period, "EMA")
    if len(values) < period:
        raise InsufficientDataError(
            f"Need at least {period} values for EMA({period}), got {len(values)}"
        )
    _require_finite(values, "EMA input")

    k = 2.0 / (period + 1)
    ema: list[Optional[float]] = [None] * len(values)

    prev = sum(values[:period]) / period
    ema[period - 1] = prev

    for i in range(period, len(values)):
        prev = values[i] * k + prev * (1 - k)
        ema[i] = prev

    return ema


# ── RSI ──────────────────────────────────────────────────────────────────


def calculate_rsi(closes: Sequence[float], period: int = 14) -> list[Optional[float]]:
    """Calculate Wilder's Relative Strength Index.

    Algorithm (Wilder-smoothed):
        1. delta = close[i] - close[i-1]
        2. Separate gains (positive) and losses (|negative|).
        3. Seed average gain/loss = SMA of first *period* deltas.
        4. Subsequent: avg = (prev_avg × (period-1) + current) / period
        5. RSI = 100 - 100 / (1 + avg_gain / avg_loss); 100 when avg_loss == 0.

    Returns a list the same length as *closes*.  Entries before index
    *period* are ``None``.

    Raises ``InsufficientDataError`` if fewer than ``period + 1`` closes.
    """
    _check_period(period, "RSI")
    if len(closes) < period + 1:
        raise InsufficientDataError(
            f"Need at least {period + 1} closes for RSI({period}), got {len(closes)}"
        )
    _require_finite(closes, "close")

    deltas = [closes[i] - closes[i - 1] for i in range(1, len(closes))]
    gains = [max(d, 0.0) for d in deltas]
    losses = [abs(min(d, 0.0)) for d in deltas]

    rsi: list[Optional[float]] = [None] * len(closes)

    avg_gain = sum(gains[:period]) / period
    avg_loss = sum(losses[:period]) / period

    def _rsi_from_avgs(ag: float, al: float) -> float:
        if al == 0:
            return 100.0
        return 100.0 - 100.0 / (1.0 + ag / al)

    rsi[period] = _rsi_from_avgs(avg_gain, avg_loss)

    for i in range(period, len(deltas)):
        avg_gain = (avg_gain * (period - 1) + gains[i]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i]) / period
        # deltas are offset by one against closes
        rsi[i + 1] = _rsi_from_avgs(avg_gain, avg_loss)

    return rsi


def rsi_state(value: Optional[float]) -> str:
    """Classify RSI momentum: >60 strong, <40 weak, otherwise neutral."""
    if value is None:
        return "neutral"
    if value > 60:
        return "strong"
    if value < 40:
        return "weak"
    return "neutral"


# ── VWAP ─────────────────────────────────────────────────────────────────


def _resolve_timezone(name: str) -> tzinfo:
    if name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigurationError(f"Unknown session timezone '{name}'") from exc


def session_date(timestamp_ms: int, tz: tzinfo) -> date:
    """Calendar day of *timestamp_ms* in the session timezone."""
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=tz).date()


def calculate_vwap(
    candles: Sequence[Candle],
    session_timezone: str = "UTC",
) -> list[Optional[float]]:
    """Session-anchored Volume-Weighted Average Price.

    Typical price ``(high + low + close) / 3`` weighted by volume,
    accumulated from the first candle of each calendar day in
    *session_timezone*.  The zone is pinned so results never depend on
    the host's local time.

    A candle with missing or zero volume yields ``None`` and leaves the
    running sums untouched.  A day boundary always resets the sums.
    """
    tz = _resolve_timezone(session_timezone)
    validate_candles(candles)

    vwap: list[Optional[float]] = []
    cum_pv = 0.0
    cum_volume = 0.0
    current_day: Optional[date] = None

    for c in candles:
        day = session_date(c.timestamp, tz)
        if day != current_day:
            cum_pv = 0.0
            cum_volume = 0.0
            current_day = day

        if not c.volume:
            vwap.append(None)
            continue

        typical = (c.high + c.low + c.close) / 3
        cum_pv += typical * c.volume
        cum_volume += c.volume
        vwap.append(cum_pv / cum_volume)

    return vwap


# ── ATR ──────────────────────────────────────────────────────────────────


def calculate_atr(candles: Sequence[Candle], period: int = 14) -> Optional[float]:
    """Wilder-smoothed Average True Range of the whole series.

    ``TR = max(high - low, |high - prev_close|, |low - prev_close|)``.
    The seed is the SMA of the first *period* true ranges; each later TR
    is folded in as ``(atr × (period-1) + tr) / period``.

    Returns ``None`` when fewer than ``period + 2`` candles are supplied
    (callers fall back to a percentage-of-price pad).
    """
    _check_period(period, "ATR")
    if len(candles) < period + 2:
        return None
    validate_candles(candles)

    true_ranges: list[float] = []
    for i in range(1, len(candles)):
        high = candles[i].high
        low = candles[i].low
        prev_close = candles[i - 1].close
        true_ranges.append(max(high - low, abs(high - prev_close), abs(low - prev_close)))

    atr = sum(true_ranges[:period]) / period
    for tr in true_ranges[period:]:
        atr = (atr * (period - 1) + tr) / period
    return atr


def distance_pct(price: float, reference: Optional[float]) -> Optional[float]:
    """Signed distance of *price* from *reference*, in percent of reference."""
    if not reference:
        return None
    return (price - reference) / reference * 100
