"""API routers — /analysis, /chart and /timeframes endpoints.

No engine arithmetic here.  Delegates fetching to the service layer and
maps the error taxonomy onto HTTP responses (kind + message only).
"""

import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse

from marketlens.config import TIMEFRAMES, EngineConfig
from marketlens.errors import AnalysisError, InsufficientDataError
from marketlens.market.coingecko_client import MarketDataError
from marketlens.narrative import explain
from marketlens.service import analyze_coin, chart_coin

logger = logging.getLogger("marketlens")
router = APIRouter()

# ── Shared state (set during app startup) ────────────────────────────────

_client = None  # Set via configure_routers()


def configure_routers(client) -> None:
    """Inject the market-data client from application startup.

    Args:
        client: A ``CoinGeckoClient`` instance (or duck-type for tests).
    """
    global _client  # noqa: PLW0603
    _client = client


def _error(status_code: int, kind: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": kind, "message": message})


# ── Timeframes ───────────────────────────────────────────────────────────


@router.get("/timeframes")
async def get_timeframes():
    """List the timeframe ladder."""
    return {
        "timeframes": [
            {"name": tf.name, "interval": tf.interval, "limit": tf.limit, "higher": tf.higher}
            for tf in TIMEFRAMES.values()
        ]
    }


# ── Analysis ─────────────────────────────────────────────────────────────


@router.get("/analysis/{coin}")
async def get_analysis(
    coin: str,
    tf: str = Query("1h"),
    lookback: Optional[int] = Query(None),
    ema_period: Optional[int] = Query(None),
    rsi_period: Optional[int] = Query(None),
):
    """Run a full market-structure analysis for *coin* on timeframe *tf*.

    Returns ``{"facts": ..., "explanation": ...}``.
    """
    if _client is None:
        return _error(503, "unavailable", "Market data client not configured")

    try:
        config = EngineConfig.from_mapping(
            {"lookback": lookback, "ema_period": ema_period, "rsi_period": rsi_period}
        )
        facts = await analyze_coin(_client, coin.lower(), tf, config)
    except InsufficientDataError as exc:
        return _error(400, exc.kind, str(exc))
    except AnalysisError as exc:
        return _error(422, exc.kind, str(exc))
    except (httpx.HTTPError, MarketDataError) as exc:
        logger.error("Market data fetch failed for %s %s: %s", coin, tf, exc)
        return _error(502, "market_data_error", f"Market data provider failed for '{coin}'")

    return {"facts": facts.to_dict(), "explanation": explain(facts)}


# ── Chart feed ───────────────────────────────────────────────────────────


@router.get("/chart/{coin}")
async def get_chart(coin: str, tf: str = Query("1h")):
    """Candles plus EMA20 / EMA50 / RSI overlays for the chart renderer."""
    if _client is None:
        return _error(503, "unavailable", "Market data client not configured")

    try:
        return await chart_coin(_client, coin.lower(), tf)
    except InsufficientDataError as exc:
        return _error(400, exc.kind, str(exc))
    except AnalysisError as exc:
        return _error(422, exc.kind, str(exc))
    except (httpx.HTTPError, MarketDataError) as exc:
        logger.error("Chart data fetch failed for %s %s: %s", coin, tf, exc)
        return _error(502, "market_data_error", f"Market data provider failed for '{coin}'")
