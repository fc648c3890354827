"""Engine data models — typed, immutable representations of every pipeline artifact.

All models are frozen dataclasses.  ``to_dict()`` produces JSON-safe
primitives so a ``Facts`` object can be handed verbatim to the narrator and
the chart renderer.
"""

from dataclasses import asdict, dataclass, field
from typing import Literal, Optional

Bias = Literal["bullish", "bearish", "range"]
Decision = Literal["long", "short", "none"]


@dataclass(frozen=True)
class Candle:
    """A single OHLCV bar.  ``timestamp`` is epoch milliseconds."""

    timestamp: int
    open: float
    high: float
    low: float
    close: float
    volume: Optional[float] = None


@dataclass(frozen=True)
class Swing:
    """A local extremum confirmed by symmetric neighbouring candles."""

    type: Literal["high", "low"]
    price: float
    index: int
    timestamp: int


@dataclass(frozen=True)
class StructureEvent:
    """A close beyond the most recent opposite swing."""

    type: Literal["BOS", "CHoCH"]
    direction: Literal["bullish", "bearish"]
    price: float
    timestamp: int


@dataclass(frozen=True)
class StructureResult:
    """Bias, swings and the break event (if any) of one structure pass."""

    bias: Bias
    swings: list[Swing] = field(default_factory=list)
    event: Optional[StructureEvent] = None
    last_high: Optional[Swing] = None
    last_low: Optional[Swing] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class Zone:
    """A price band aggregating traded volume."""

    low: float
    high: float
    price: float
    volume: float
    strength: float
    touches: int
    type: Literal["support", "resistance"]

    @property
    def mid(self) -> float:
        return (self.low + self.high) / 2


@dataclass(frozen=True)
class NearestZone:
    """The ranked zone closest to price, with its signed distance in percent."""

    zone: Zone
    distance_pct: float

    def to_dict(self) -> dict:
        return {**asdict(self.zone), "distance_pct": self.distance_pct}


@dataclass(frozen=True)
class MTFAlignment:
    """Working-timeframe bias compared against the higher timeframe."""

    enabled: bool
    status: Optional[Literal["aligned", "conflict", "htf_range", "ltf_range"]] = None
    ltf_bias: Optional[Bias] = None
    htf_bias: Optional[Bias] = None
    aligned: Optional[bool] = None
    higher_timeframe: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class ConfidenceBreakdown:
    """Final 0–100 score plus the terms that produced it."""

    score: int
    terms: list[tuple[str, float]] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "terms": [{"label": label, "points": points} for label, points in self.terms],
        }


@dataclass(frozen=True)
class Invalidation:
    """Structural level whose break voids the current bias."""

    side: Bias
    text: str
    level: Optional[float] = None
    upper: Optional[float] = None
    lower: Optional[float] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class TakeProfit:
    label: str
    price: float


@dataclass(frozen=True)
class TradePlan:
    """A structured setup suggestion, never an order."""

    decision: Decision
    reason: str
    entry: Optional[float] = None
    sl: Optional[float] = None
    tps: list[TakeProfit] = field(default_factory=list)
    rr: Optional[float] = None
    conditions: list[str] = field(default_factory=list)
    invalidation: Optional[Invalidation] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class IndicatorReading:
    """Latest indicator value and price distance from it, in percent."""

    value: Optional[float]
    distance_pct: Optional[float]


@dataclass(frozen=True)
class RSIReading:
    value: Optional[float]
    state: Literal["strong", "weak", "neutral"]


@dataclass(frozen=True)
class Facts:
    """Read-only snapshot of one (coin, timeframe) analysis.

    The sole boundary artifact consumed by the narrator and the renderer.
    """

    coin: str
    timeframe: str
    price: float
    tf_close: float
    structure: StructureResult
    zones: list[Zone]
    nearest_zone: Optional[NearestZone]
    ema: IndicatorReading
    vwap: IndicatorReading
    rsi: RSIReading
    series: dict[str, list[Optional[float]]]
    mtf: MTFAlignment
    confidence: ConfidenceBreakdown
    trade_plan: TradePlan
    invalidation: Invalidation

    def to_dict(self) -> dict:
        """Serialize to JSON-safe primitives, keeping renderer keys stable."""
        return {
            "coin": self.coin,
            "timeframe": self.timeframe,
            "price": self.price,
            "tf_close": self.tf_close,
            "structure": self.structure.to_dict(),
            "zones": [asdict(z) for z in self.zones],
            "nearest_zone": self.nearest_zone.to_dict() if self.nearest_zone else None,
            "ema": asdict(self.ema),
            "vwap": asdict(self.vwap),
            "rsi": asdict(self.rsi),
            "series": {name: list(values) for name, values in self.series.items()},
            "mtf": self.mtf.to_dict(),
            "confidence": self.confidence.to_dict(),
            "trade_plan": self.trade_plan.to_dict(),
            "invalidation": self.invalidation.to_dict(),
        }
