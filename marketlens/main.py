"""MarketLens — application entry point.

Boots the FastAPI server and provides the CLI entry point for one-shot
console analyses.
"""

import logging

from fastapi import FastAPI

from marketlens.api.routers import router

app = FastAPI(title="MarketLens API", version="0.1.0")
app.include_router(router)

logger = logging.getLogger("marketlens")


@app.get("/health")
async def health():
    """Liveness check."""
    return {"status": "ok"}


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging once for the process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


# ── CLI ──────────────────────────────────────────────────────────────────


def _run_cli(argv: list[str] | None = None) -> int:
    """Parse CLI arguments and dispatch to report or serve mode."""
    import argparse
    import asyncio

    import httpx

    from marketlens.api.routers import configure_routers
    from marketlens.config import TIMEFRAMES, EngineConfig, load_config
    from marketlens.errors import AnalysisError, ConfigurationError
    from marketlens.market.coingecko_client import CoinGeckoClient, MarketDataError

    parser = argparse.ArgumentParser(description="MarketLens market-structure analysis")
    parser.add_argument("--coin", help="CoinGecko coin id (default: DEFAULT_COIN)")
    parser.add_argument(
        "--tf",
        choices=sorted(TIMEFRAMES.keys()),
        default="1h",
        help="Working timeframe (default: 1h)",
    )
    parser.add_argument("--lookback", type=int, default=2, help="Swing lookback (default: 2)")
    parser.add_argument("--ema-period", type=int, default=50, help="EMA period (default: 50)")
    parser.add_argument("--rsi-period", type=int, default=14, help="RSI period (default: 14)")
    parser.add_argument("--explain", action="store_true", help="Also print the narrative")
    parser.add_argument("--serve", action="store_true", help="Serve the HTTP API instead")
    args = parser.parse_args(argv)

    try:
        config = load_config()
    except ConfigurationError as exc:
        configure_logging()
        logger.error("Configuration error (%s): %s", exc.kind, exc)
        return 2
    configure_logging(config.log_level)
    client = CoinGeckoClient(config)

    if args.serve:
        import uvicorn

        configure_routers(client=client)
        logger.info("MarketLens API available at http://localhost:%d", config.http_port)
        uvicorn.run(app, host="0.0.0.0", port=config.http_port, log_level="info")
        return 0

    from marketlens.cli.report import print_facts
    from marketlens.narrative import explain
    from marketlens.service import analyze_coin

    coin = (args.coin or config.default_coin).lower()
    try:
        engine_config = EngineConfig(
            lookback=args.lookback,
            ema_period=args.ema_period,
            rsi_period=args.rsi_period,
        )
        facts = asyncio.run(analyze_coin(client, coin, args.tf, engine_config))
    except AnalysisError as exc:
        logger.error("Analysis failed (%s): %s", exc.kind, exc)
        return 2
    except (httpx.HTTPError, MarketDataError) as exc:
        logger.error("Analysis failed (market_data_error): %s", exc)
        return 1

    print_facts(facts)
    if args.explain:
        print()
        print(explain(facts))
    return 0


if __name__ == "__main__":
    raise SystemExit(_run_cli())
