"""Structural invalidation — where the current bias stops being valid.

Derived from swings only, never from the trade plan.
"""

from marketlens.engine.models import Invalidation, StructureResult
from marketlens.engine.mtf import normalize_bias


def _fmt(price: float) -> str:
    return f"{price:,.2f}"


def build_invalidation(structure: StructureResult) -> Invalidation:
    """Return the level whose break voids *structure*'s bias.

    - **Bullish**: a close below the last swing low.
    - **Bearish**: a close above the last swing high.
    - **Range**: a break out of either side, citing both swing extremes.
    """
    bias = normalize_bias(structure.bias)
    last_high = structure.last_high
    last_low = structure.last_low

    if bias == "bullish":
        if last_low is None:
            return Invalidation(side="bullish", text="Bullish bias invalidated by a bearish break of structure.")
        return Invalidation(
            side="bullish",
            level=last_low.price,
            text=f"Bullish bias invalidated on a close below the last swing low at {_fmt(last_low.price)}.",
        )

    if bias == "bearish":
        if last_high is None:
            return Invalidation(side="bearish", text="Bearish bias invalidated by a bullish break of structure.")
        return Invalidation(
            side="bearish",
            level=last_high.price,
            text=f"Bearish bias invalidated on a close above the last swing high at {_fmt(last_high.price)}.",
        )

    upper = last_high.price if last_high is not None else None
    lower = last_low.price if last_low is not None else None
    if upper is None or lower is None:
        return Invalidation(
            side="range",
            upper=upper,
            lower=lower,
            text="Range holds until a swing forms and price breaks out of it.",
        )
    return Invalidation(
        side="range",
        upper=upper,
        lower=lower,
        text=(
            f"Range invalidated on a close above {_fmt(upper)} (last swing high) "
            f"or below {_fmt(lower)} (last swing low)."
        ),
    )
