"""Facts assembly — the engine's single entry point.

Patches the live price into a copy of the series, runs every sub-analysis
and merges the results into one ``Facts`` snapshot.  No I/O, no clock, no
shared state: the same inputs always give the same ``Facts``.
"""

import dataclasses
import logging
import math
from typing import Optional, Sequence

from marketlens.config import EngineConfig
from marketlens.engine.confidence import score_confidence
from marketlens.engine.indicators import (
    calculate_ema,
    calculate_rsi,
    calculate_vwap,
    distance_pct,
    last_defined,
    rsi_state,
    validate_candles,
)
from marketlens.engine.models import (
    Candle,
    Facts,
    IndicatorReading,
    MTFAlignment,
    RSIReading,
    StructureResult,
)
from marketlens.engine.mtf import align_timeframes
from marketlens.engine.structure import analyze_structure
from marketlens.engine.zones import (
    calculate_volume_zones,
    find_nearest_zone,
    rank_zones_by_strength,
)
from marketlens.errors import AnalysisError, IndicatorError, InsufficientDataError
from marketlens.risk.invalidation import build_invalidation
from marketlens.risk.trade_plan import build_trade_plan

logger = logging.getLogger("marketlens")


def patch_live_price(candles: Sequence[Candle], live_price: Optional[float]) -> list[Candle]:
    """Return a copy of *candles* with the last bar moved to *live_price*.

    ``close = live``, ``high = max(high, live)``, ``low = min(low, live)``.
    The input sequence and its candles are left untouched.
    """
    patched = list(candles)
    if live_price is None or not patched:
        return patched
    if not math.isfinite(live_price) or live_price <= 0:
        raise IndicatorError(f"Live price must be a positive finite number, got {live_price!r}")

    last = patched[-1]
    patched[-1] = dataclasses.replace(
        last,
        close=live_price,
        high=max(last.high, live_price),
        low=min(last.low, live_price),
    )
    return patched


def higher_timeframe_structure(
    candles: Optional[Sequence[Candle]],
    config: EngineConfig,
) -> Optional[StructureResult]:
    """Run the same structure pass on the higher-timeframe series.

    Returns ``None`` (aligner disabled) when no series is given or it
    cannot be analysed; the working-timeframe request never fails on it.
    """
    if not candles:
        return None
    try:
        validate_candles(candles)
        if len(candles) < config.min_structure_candles:
            raise InsufficientDataError(
                f"Need at least {config.min_structure_candles} higher-timeframe "
                f"candles, got {len(candles)}"
            )
        return analyze_structure(candles, config.lookback, config.min_structure_candles)
    except AnalysisError as exc:
        logger.warning("Higher-timeframe structure unavailable (%s); MTF disabled", exc)
        return None


def analyze(
    candles: Sequence[Candle],
    config: Optional[EngineConfig] = None,
    higher_tf_candles: Optional[Sequence[Candle]] = None,
    *,
    live_price: Optional[float] = None,
    coin: str = "",
    timeframe: str = "",
    higher_timeframe: Optional[str] = None,
) -> Facts:
    """Analyse one candle series and return its ``Facts``.

    Args:
        candles: Ascending OHLCV candles for the working timeframe.
        config: Engine settings; defaults to ``EngineConfig()``.
        higher_tf_candles: Optional sibling series one step up the
            timeframe ladder.  Enables multi-timeframe alignment.
        live_price: Fresh price patched into the last candle first.
        coin: Asset identifier, carried into ``Facts``.
        timeframe: Working timeframe label, carried into ``Facts``.
        higher_timeframe: Higher timeframe label, carried into ``Facts``.

    Raises:
        InsufficientDataError: fewer than ``config.min_candles`` candles.
        IndicatorError: non-finite prices, negative volume, bad live price.
        ConfigurationError: invalid periods or session timezone.
    """
    config = config or EngineConfig()

    if not candles or len(candles) < config.min_candles:
        raise InsufficientDataError(
            f"Need at least {config.min_candles} candles for a full analysis, "
            f"got {len(candles) if candles else 0}"
        )
    validate_candles(candles)

    tf_close = candles[-1].close
    series = patch_live_price(candles, live_price)
    price = series[-1].close
    closes = [c.close for c in series]

    # 1 ── Indicators
    ema_series = calculate_ema(closes, config.ema_period)
    rsi_series = calculate_rsi(closes, config.rsi_period)
    vwap_series = calculate_vwap(series, config.session_timezone)

    ema_value = last_defined(ema_series)
    vwap_value = vwap_series[-1]
    rsi_value = last_defined(rsi_series)
    ema_distance = distance_pct(price, ema_value)
    vwap_distance = distance_pct(price, vwap_value)

    # 2 ── Structure (working and higher timeframe share one code path)
    structure = analyze_structure(series, config.lookback, config.min_structure_candles)
    htf_structure = higher_timeframe_structure(higher_tf_candles, config)
    mtf: MTFAlignment = align_timeframes(structure, htf_structure, higher_timeframe)

    # 3 ── Zones
    zones = rank_zones_by_strength(calculate_volume_zones(series), series)
    nearest = find_nearest_zone(zones, price)

    # 4 ── Scoring and plan
    confidence = score_confidence(
        structure, nearest, ema_distance, vwap_distance, rsi_value, mtf,
    )
    invalidation = build_invalidation(structure)
    trade_plan = build_trade_plan(
        series, price, structure, zones,
        ema_distance=ema_distance,
        vwap_distance=vwap_distance,
        rsi=rsi_value,
        invalidation=invalidation,
        atr_period=config.atr_period,
    )

    logger.debug(
        "Analysed %s %s: bias=%s event=%s zones=%d confidence=%d decision=%s",
        coin or "?", timeframe or "?", structure.bias,
        structure.event.type if structure.event else None,
        len(zones), confidence.score, trade_plan.decision,
    )

    return Facts(
        coin=coin,
        timeframe=timeframe,
        price=price,
        tf_close=tf_close,
        structure=structure,
        zones=zones,
        nearest_zone=nearest,
        ema=IndicatorReading(
            value=ema_value,
            distance_pct=round(ema_distance, 2) if ema_distance is not None else None,
        ),
        vwap=IndicatorReading(
            value=vwap_value,
            distance_pct=round(vwap_distance, 2) if vwap_distance is not None else None,
        ),
        rsi=RSIReading(
            value=round(rsi_value, 2) if rsi_value is not None else None,
            state=rsi_state(rsi_value),
        ),
        series={"ema": ema_series, "vwap": vwap_series, "rsi": rsi_series},
        mtf=mtf,
        confidence=confidence,
        trade_plan=trade_plan,
        invalidation=invalidation,
    )
