"""CoinGecko REST API async client.

Handles all communication with the market-data provider: OHLC candles,
traded volume, and the live spot price.  Returns engine ``Candle`` objects;
range validation of the numbers is left to the engine, but a payload that
cannot be read as candles at all is reported as ``MarketDataError``.
"""

import asyncio
import logging
from typing import Any, Optional

import httpx

from marketlens.config import AppConfig, get_timeframe
from marketlens.engine.models import Candle

logger = logging.getLogger("marketlens")

# Retry settings
_MAX_ATTEMPTS = 3
_BACKOFF_BASE = 2.0  # seconds; doubles each attempt
_RETRYABLE_STATUS_CODES = {429, 502, 503, 504}
_TIMEOUT = 30.0


class MarketDataError(RuntimeError):
    """The provider returned no usable data."""


def _backoff(attempt: int) -> float:
    return _BACKOFF_BASE * (2 ** attempt)


def _parse_ohlc(payload: Any, volumes: list) -> list[Candle]:
    """Turn ``[[ts, o, h, l, c], ...]`` rows into candles, oldest first.

    Volumes are joined by position; a missing or null volume becomes 0.
    """
    candles: list[Candle] = []
    for i, row in enumerate(payload):
        volume = 0.0
        if i < len(volumes) and volumes[i][1] is not None:
            volume = float(volumes[i][1])
        candles.append(
            Candle(
                timestamp=int(row[0]),
                open=float(row[1]),
                high=float(row[2]),
                low=float(row[3]),
                close=float(row[4]),
                volume=volume,
            )
        )
    candles.sort(key=lambda c: c.timestamp)
    return candles


class CoinGeckoClient:
    """Async client wrapping the CoinGecko v3 REST API."""

    def __init__(self, config: AppConfig) -> None:
        self._config = config
        self._base_url = config.coingecko_base_url.rstrip("/")
        self._headers = {
            "x-cg-demo-api-key": config.coingecko_api_key,
            "Accept": "application/json",
        }

    # ── Request helper ───────────────────────────────────────────────────

    async def _fetch_json(self, path: str, params: dict, *, coin: str) -> Any:
        """GET ``base_url + path`` and return the decoded JSON body.

        Rate limits (429) and gateway errors (502/503/504) are retried with
        exponential backoff, as are transport failures; any other HTTP error
        is raised at once.  A body that is not JSON raises
        ``MarketDataError``.
        """
        url = f"{self._base_url}{path}"
        failure: Optional[Exception] = None

        for attempt in range(_MAX_ATTEMPTS):
            try:
                async with httpx.AsyncClient() as client:
                    resp = await client.get(
                        url,
                        headers=self._headers,
                        params=params,
                        timeout=_TIMEOUT,
                    )
            except httpx.TransportError as exc:
                failure = exc
                logger.warning(
                    "CoinGecko %s for %s: transport error (%s), attempt %d/%d, backing off %.1fs",
                    path, coin, exc, attempt + 1, _MAX_ATTEMPTS, _backoff(attempt),
                )
                await asyncio.sleep(_backoff(attempt))
                continue

            if resp.status_code in _RETRYABLE_STATUS_CODES:
                failure = httpx.HTTPStatusError(
                    f"CoinGecko returned {resp.status_code} for {path}",
                    request=resp.request,
                    response=resp,
                )
                logger.warning(
                    "CoinGecko %s for %s: HTTP %d, attempt %d/%d, backing off %.1fs",
                    path, coin, resp.status_code, attempt + 1, _MAX_ATTEMPTS, _backoff(attempt),
                )
                await asyncio.sleep(_backoff(attempt))
                continue

            resp.raise_for_status()
            try:
                return resp.json()
            except ValueError as exc:
                raise MarketDataError(f"Unreadable response for '{coin}' from {path}") from exc

        raise failure  # type: ignore[misc]

    # ── Candle data ──────────────────────────────────────────────────────

    async def fetch_candles(self, coin: str, timeframe: str) -> list[Candle]:
        """Fetch OHLC candles with traded volume attached.

        The OHLC endpoint carries no volume, so ``market_chart`` volumes are
        joined by position; a missing volume becomes 0.

        Args:
            coin: CoinGecko coin id, e.g. ``"bitcoin"``.
            timeframe: ``"1h"``, ``"1d"`` or ``"7d"``.

        Returns:
            List of ``Candle`` objects ordered oldest-first.

        Raises:
            MarketDataError: the provider sent something other than rows
                of ``[timestamp, open, high, low, close]``.
        """
        tf = get_timeframe(timeframe)
        params = {"vs_currency": "usd", "days": tf.days}

        ohlc = await self._fetch_json(f"/coins/{coin}/ohlc", params, coin=coin)
        chart = await self._fetch_json(f"/coins/{coin}/market_chart", params, coin=coin)

        if not isinstance(ohlc, list):
            raise MarketDataError(f"Unexpected OHLC payload for '{coin}': {str(ohlc)[:200]}")
        volumes = chart.get("total_volumes") if isinstance(chart, dict) else None
        if not isinstance(volumes, list):
            volumes = []

        try:
            return _parse_ohlc(ohlc, volumes)
        except (TypeError, ValueError, IndexError) as exc:
            raise MarketDataError(f"Malformed candle data for '{coin}': {exc}") from exc

    # ── Spot price ───────────────────────────────────────────────────────

    async def fetch_live_price(self, coin: str) -> float:
        """Query the current USD price of *coin*.

        Raises ``MarketDataError`` if the provider has no price for it.
        """
        body = await self._fetch_json(
            "/simple/price", {"ids": coin, "vs_currencies": "usd"}, coin=coin,
        )
        quote = body.get(coin) if isinstance(body, dict) else None
        price = quote.get("usd") if isinstance(quote, dict) else None
        if price is None:
            raise MarketDataError(f"No live price for '{coin}'")
        try:
            return float(price)
        except (TypeError, ValueError) as exc:
            raise MarketDataError(f"Unreadable live price for '{coin}': {price!r}") from exc
