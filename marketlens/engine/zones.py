"""Volume-profile liquidity zones — pure functions.

Closes are bucketed at 0.25 % of the current price and the traded volume of
each candle is accumulated into its bucket.  A fixed composition of the
heaviest buckets (supports, balance, resistances) is padded into bands and
then re-ranked by a composite of volume, touches and proximity.
"""

import math
from typing import Optional, Sequence

from marketlens.engine.models import Candle, NearestZone, Zone
from marketlens.errors import IndicatorError

BUCKET_PCT = 0.0025
BALANCE_PCT = 0.01
PAD_PCT = 0.005
PER_CATEGORY = 2

# Composite strength weights
VOLUME_WEIGHT = 0.5
TOUCH_WEIGHT = 0.3
PROXIMITY_WEIGHT = 0.2
TOUCH_SATURATION = 10
PROXIMITY_DECAY = 5.0


def _round_half_up(x: float) -> int:
    return math.floor(x + 0.5)


def _bucket_volumes(candles: Sequence[Candle], bucket_size: float) -> list[tuple[float, float]]:
    """Accumulate volume per price bucket.

    Returns ``(price, volume)`` pairs sorted by volume descending, ties
    broken by price ascending.  Candles without a volume are skipped.
    """
    buckets: dict[int, float] = {}
    for c in candles:
        if c.volume is None:
            continue
        key = _round_half_up(c.close / bucket_size)
        buckets[key] = buckets.get(key, 0.0) + c.volume

    pairs = [(key * bucket_size, volume) for key, volume in buckets.items()]
    pairs.sort(key=lambda p: (-p[1], p[0]))
    return pairs


def calculate_volume_zones(candles: Sequence[Candle]) -> list[Zone]:
    """Select up to six volume zones around the last close.

    Composition (each category picks its highest-volume buckets):
        * up to 2 buckets strictly below the last close (supports),
        * up to 2 buckets within ±1 % of the last close (balance),
        * up to 2 buckets strictly above the last close (resistances).

    A bucket qualifying for two categories is kept once.  Each bucket is
    padded to ``price ± 0.5 %``.  ``strength`` here is volume relative to
    the heaviest selected bucket; ``rank_zones_by_strength`` replaces it.
    """
    if not candles:
        return []

    last_price = candles[-1].close
    if not math.isfinite(last_price) or last_price <= 0:
        raise IndicatorError(f"Last close must be a positive finite price, got {last_price!r}")

    buckets = _bucket_volumes(candles, last_price * BUCKET_PCT)
    near_range = last_price * BALANCE_PCT

    supports = [b for b in buckets if b[0] < last_price][:PER_CATEGORY]
    balance = [b for b in buckets if abs(b[0] - last_price) <= near_range][:PER_CATEGORY]
    resistances = [b for b in buckets if b[0] > last_price][:PER_CATEGORY]

    selected: list[tuple[float, float]] = []
    for bucket in supports + balance + resistances:
        if bucket not in selected:
            selected.append(bucket)

    if not selected:
        return []

    max_volume = max(volume for _, volume in selected)

    zones: list[Zone] = []
    for price, volume in selected:
        pad = price * PAD_PCT
        zones.append(
            Zone(
                low=price - pad,
                high=price + pad,
                price=price,
                volume=volume,
                strength=round(volume / max_volume, 2) if max_volume > 0 else 0.0,
                touches=0,
                type="support" if price < last_price else "resistance",
            )
        )
    return zones


def _count_touches(zone: Zone, candles: Sequence[Candle]) -> int:
    """Candles whose high-low range overlaps the zone band."""
    return sum(1 for c in candles if c.high >= zone.low and c.low <= zone.high)


def rank_zones_by_strength(zones: Sequence[Zone], candles: Sequence[Candle]) -> list[Zone]:
    """Recompute zone strength and sort strongest first.

    ``strength = 0.5 × volume_score + 0.3 × min(touches / 10, 1)
    + 0.2 × proximity_score`` where ``proximity_score`` decays linearly
    from 1 at the last close to 0 at 20 % away.  Rounded to 3 dp.
    """
    if not zones or not candles:
        return []

    last_price = candles[-1].close
    max_volume = max(z.volume for z in zones) or 1.0

    ranked: list[Zone] = []
    for zone in zones:
        volume_score = zone.volume / max_volume
        touches = _count_touches(zone, candles)
        distance = abs(last_price - zone.mid) / last_price
        proximity_score = max(0.0, 1.0 - distance * PROXIMITY_DECAY)

        strength = (
            VOLUME_WEIGHT * volume_score
            + TOUCH_WEIGHT * min(touches / TOUCH_SATURATION, 1.0)
            + PROXIMITY_WEIGHT * proximity_score
        )
        ranked.append(
            Zone(
                low=zone.low,
                high=zone.high,
                price=zone.price,
                volume=zone.volume,
                strength=round(min(max(strength, 0.0), 1.0), 3),
                touches=touches,
                type=zone.type,
            )
        )

    ranked.sort(key=lambda z: -z.strength)
    return ranked


def find_nearest_zone(zones: Sequence[Zone], price: float) -> Optional[NearestZone]:
    """Return the zone whose lower edge is closest to *price*.

    ``distance_pct`` is signed: positive when price sits above the zone's
    lower edge.
    """
    if not zones or not price:
        return None
    scored = [NearestZone(zone=z, distance_pct=(price - z.low) / price * 100) for z in zones]
    return min(scored, key=lambda n: abs(n.distance_pct))
