"""Shared candle fixtures.

All series are deterministic: same arguments = same candles, always.
"""

import pytest

from marketlens.engine.models import Candle

# 2024-01-01T00:00:00Z in epoch milliseconds
BASE_TS = 1_704_067_200_000
HOUR_MS = 3_600_000
DAY_MS = 24 * HOUR_MS


def make_zigzag(
    n: int,
    base: float = 100.0,
    leg_step: float = 1.0,
    pullback_step: float = -0.75,
    spread: float = 0.4,
    volume: float = 1000.0,
    step_ms: int = HOUR_MS,
) -> list[Candle]:
    """Five impulse bars then three pullback bars, repeating.

    The phase is set so the series always ends on the third impulse bar
    after a pullback: the final close clears the last impulse extreme by
    ``3 × leg_step + 3 × pullback_step``, i.e. it breaks structure in the
    impulse direction.  Swings form at every impulse/pullback turn.
    """
    candles: list[Candle] = []
    close = base
    phase = (2 - (n - 1)) % 8
    for i in range(n):
        if i > 0:
            close += leg_step if (i + phase) % 8 < 5 else pullback_step
        prev = candles[-1].close if candles else close
        candles.append(
            Candle(
                timestamp=BASE_TS + i * step_ms,
                open=prev,
                high=close + spread,
                low=close - spread,
                close=close,
                volume=volume,
            )
        )
    return candles


@pytest.fixture
def zigzag():
    """Factory fixture for trending zigzag series (see ``make_zigzag``)."""
    return make_zigzag


@pytest.fixture
def uptrend_400() -> list[Candle]:
    """400 hourly candles in a clean uptrend ending on a bullish break."""
    return make_zigzag(400, base=36_000.0, leg_step=100.0, pullback_step=-75.0, spread=40.0)
