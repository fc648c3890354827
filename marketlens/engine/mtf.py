"""Multi-timeframe alignment — working-timeframe bias vs. the higher timeframe.

Both sides come from ``analyze_structure``; this module only compares them.
"""

from typing import Optional

from marketlens.engine.models import MTFAlignment, StructureResult


def normalize_bias(bias: Optional[str]) -> str:
    """Map any bias label onto ``bullish``, ``bearish`` or ``range``."""
    text = str(bias or "").lower()
    if "bull" in text:
        return "bullish"
    if "bear" in text:
        return "bearish"
    return "range"


def align_timeframes(
    ltf: StructureResult,
    htf: Optional[StructureResult],
    higher_timeframe: Optional[str] = None,
) -> MTFAlignment:
    """Compare the working structure against the higher-timeframe structure.

    Returns:
        ``MTFAlignment`` with status:

        * ``htf_range`` — higher timeframe is ranging; a neutral context
          never blocks the lower-timeframe thesis (aligned).
        * ``ltf_range`` — lower timeframe undecided against a trending
          higher timeframe (not aligned).
        * ``aligned`` / ``conflict`` — both trending, same / opposite way.

        When *htf* is ``None`` the aligner is disabled.
    """
    ltf_bias = normalize_bias(ltf.bias)
    if htf is None:
        return MTFAlignment(enabled=False, ltf_bias=ltf_bias, higher_timeframe=higher_timeframe)

    htf_bias = normalize_bias(htf.bias)

    if htf_bias == "range":
        status, aligned = "htf_range", True
    elif ltf_bias == "range":
        status, aligned = "ltf_range", False
    elif ltf_bias == htf_bias:
        status, aligned = "aligned", True
    else:
        status, aligned = "conflict", False

    return MTFAlignment(
        enabled=True,
        status=status,
        ltf_bias=ltf_bias,
        htf_bias=htf_bias,
        aligned=aligned,
        higher_timeframe=higher_timeframe,
    )
