"""Analysis service — fetches market data, then runs the engine.

All I/O happens here, before the pure pipeline starts.  The working series,
the live price and the higher-timeframe series are fetched concurrently.
"""

import asyncio
import logging
from typing import Optional

import httpx

from marketlens.config import EngineConfig, get_timeframe
from marketlens.engine.chart import build_chart_series
from marketlens.engine.facts import analyze
from marketlens.engine.models import Candle, Facts
from marketlens.market.coingecko_client import MarketDataError

logger = logging.getLogger("marketlens")


async def _fetch_higher(client, coin: str, timeframe: Optional[str]) -> Optional[list[Candle]]:
    """Best-effort fetch of the higher-timeframe series."""
    if timeframe is None:
        return None
    try:
        candles = await client.fetch_candles(coin, timeframe)
    except (httpx.HTTPError, MarketDataError) as exc:
        logger.warning("Higher timeframe %s for %s unavailable: %s", timeframe, coin, exc)
        return None
    return candles[-get_timeframe(timeframe).limit:]


async def analyze_coin(
    client,
    coin: str,
    timeframe: str = "1h",
    config: Optional[EngineConfig] = None,
) -> Facts:
    """Fetch candles and live price for *coin* and return its ``Facts``.

    Args:
        client: A ``CoinGeckoClient`` (or compatible duck-type / mock).
        coin: Provider coin id.
        timeframe: Working timeframe on the ladder.
        config: Engine settings; defaults to ``EngineConfig()``.

    Raises:
        ConfigurationError: unknown timeframe.
        InsufficientDataError / IndicatorError: from the engine.
        httpx.HTTPError / MarketDataError: primary fetch failed.
    """
    tf = get_timeframe(timeframe)

    raw, live_price, higher = await asyncio.gather(
        client.fetch_candles(coin, timeframe),
        client.fetch_live_price(coin),
        _fetch_higher(client, coin, tf.higher),
    )

    candles = raw[-tf.limit:]
    logger.info(
        "Analysing %s %s: %d candles, live %.8g, higher %s",
        coin, timeframe, len(candles), live_price,
        f"{tf.higher} ({len(higher)} candles)" if higher else "disabled",
    )

    return analyze(
        candles,
        config,
        higher,
        live_price=live_price,
        coin=coin,
        timeframe=timeframe,
        higher_timeframe=tf.higher,
    )


async def chart_coin(client, coin: str, timeframe: str = "1h") -> dict:
    """Fetch the working series for *coin* and return its chart feed.

    The series is cut to the timeframe's candle limit, the same window
    ``analyze_coin`` uses, so overlays line up with the analysis.
    """
    tf = get_timeframe(timeframe)
    candles = (await client.fetch_candles(coin, timeframe))[-tf.limit:]
    logger.info("Chart feed %s %s: %d candles", coin, timeframe, len(candles))
    return {"coin": coin, "timeframe": timeframe, **build_chart_series(candles)}
