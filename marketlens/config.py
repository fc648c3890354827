"""MarketLens — configuration.

Two layers:

* ``EngineConfig`` — the explicit, passed-in settings of one analysis call
  (periods, lookback, minimum candle counts, VWAP session timezone).
* ``AppConfig`` — service settings loaded from ``.env`` / environment
  variables (API key, provider URL, log level, HTTP port).

The timeframe ladder (interval, candle limit, history depth, higher
timeframe) lives in ``TIMEFRAMES``.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from marketlens.errors import ConfigurationError


# ── Engine settings ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class EngineConfig:
    """Settings resolved once per ``analyze()`` call.

    Defaults:
        lookback: 2 candles on each side of a swing.
        ema_period: 50 (EMA50 is the trend reference).
        rsi_period: 14.
        atr_period: 14 (stop padding).
        min_candles: 60 candles for a full analysis.
        min_structure_candles: 10 candles for a structure pass.
        session_timezone: "UTC"; VWAP session boundaries are calendar
            days in this zone, never the host's local time.
    """

    lookback: int = 2
    ema_period: int = 50
    rsi_period: int = 14
    atr_period: int = 14
    min_candles: int = 60
    min_structure_candles: int = 10
    session_timezone: str = "UTC"

    def __post_init__(self) -> None:
        for name in ("lookback", "ema_period", "rsi_period", "atr_period",
                     "min_candles", "min_structure_candles"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ConfigurationError(
                    f"{name} must be a positive integer, got {value!r}"
                )

    @classmethod
    def from_mapping(cls, data: Optional[dict]) -> "EngineConfig":
        """Build from a loose mapping, accepting camelCase request keys.

        Unknown keys are ignored; missing keys keep their defaults.
        """
        if not data:
            return cls()
        aliases = {
            "emaPeriod": "ema_period",
            "rsiPeriod": "rsi_period",
            "atrPeriod": "atr_period",
            "minCandles": "min_candles",
            "sessionTimezone": "session_timezone",
        }
        fields = {}
        for key, value in data.items():
            name = aliases.get(key, key)
            if name in cls.__dataclass_fields__ and value is not None:
                fields[name] = value
        return cls(**fields)


# ── Timeframe ladder ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class TimeframeConfig:
    """How one user-facing timeframe maps onto provider requests."""

    name: str
    interval: str
    limit: int  # most recent candles kept for analysis
    days: int  # history requested from the provider
    higher: Optional[str]  # next timeframe up the ladder, None at the top


TIMEFRAMES: dict[str, TimeframeConfig] = {
    "1h": TimeframeConfig(name="1h", interval="1h", limit=400, days=14, higher="1d"),
    "1d": TimeframeConfig(name="1d", interval="1d", limit=180, days=180, higher="7d"),
    "7d": TimeframeConfig(name="7d", interval="1d", limit=110, days=365, higher=None),
}


def get_timeframe(name: str) -> TimeframeConfig:
    """Look up a timeframe by name.

    Raises ``ConfigurationError`` if the timeframe is not on the ladder.
    """
    if name not in TIMEFRAMES:
        raise ConfigurationError(
            f"Unknown timeframe '{name}'. "
            f"Available: {', '.join(TIMEFRAMES.keys())}"
        )
    return TIMEFRAMES[name]


def higher_timeframe(name: str) -> Optional[str]:
    """Return the next timeframe up the ladder, or None at the top."""
    return get_timeframe(name).higher


# ── Service settings ─────────────────────────────────────────────────────


_REQUIRED_VARS = [
    "COINGECKO_API_KEY",
]


@dataclass(frozen=True)
class AppConfig:
    """Typed configuration loaded from environment variables."""

    coingecko_api_key: str
    coingecko_base_url: str
    default_coin: str
    log_level: str
    http_port: int


def load_config(env_path: str | None = None) -> AppConfig:
    """Load configuration from environment variables.

    Raises ``ConfigurationError`` with a message naming the missing variable
    when a required variable is absent.
    """
    load_dotenv(dotenv_path=env_path)

    missing = [v for v in _REQUIRED_VARS if not os.environ.get(v)]
    if missing:
        raise ConfigurationError(
            f"Missing required environment variable(s): {', '.join(missing)}"
        )

    return AppConfig(
        coingecko_api_key=os.environ["COINGECKO_API_KEY"],
        coingecko_base_url=os.environ.get(
            "COINGECKO_BASE_URL", "https://api.coingecko.com/api/v3"
        ),
        default_coin=os.environ.get("DEFAULT_COIN", "bitcoin"),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        http_port=int(os.environ.get("HTTP_PORT", "8080")),
    )
