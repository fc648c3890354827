"""CLI report — prints an analysis summary to the console."""

from marketlens.engine.models import Facts


def _num(value) -> str:
    return f"{value:,.2f}" if value is not None else "N/A"


def print_facts(facts: Facts) -> str:
    """Format and print a ``Facts`` summary.

    Args:
        facts: The analysis snapshot to summarise.

    Returns:
        The formatted string (also printed to stdout).
    """
    structure = facts.structure
    event = structure.event
    event_str = f"{event.type} {event.direction} @ {_num(event.price)}" if event else "none"
    mtf = facts.mtf
    mtf_str = f"{mtf.status} (HTF {mtf.higher_timeframe}: {mtf.htf_bias})" if mtf.enabled else "disabled"
    plan = facts.trade_plan
    tps = ", ".join(f"{tp.label} {_num(tp.price)}" for tp in plan.tps) or "N/A"
    rr_str = f"{plan.rr}R" if plan.rr is not None else "N/A"

    lines = [
        "──────────────── MarketLens Analysis ────────────────",
        f"  Asset:           {facts.coin} ({facts.timeframe})",
        f"  Price:           {_num(facts.price)}",
        f"  Bias:            {structure.bias}",
        f"  Event:           {event_str}",
        f"  EMA:             {_num(facts.ema.value)} ({_num(facts.ema.distance_pct)}%)",
        f"  VWAP:            {_num(facts.vwap.value)} ({_num(facts.vwap.distance_pct)}%)",
        f"  RSI:             {_num(facts.rsi.value)} ({facts.rsi.state})",
        f"  MTF:             {mtf_str}",
        f"  Confidence:      {facts.confidence.score}/100",
        "  Zones:",
    ]
    for z in facts.zones:
        lines.append(
            f"    {z.type:<10} {_num(z.low)} – {_num(z.high)}  "
            f"strength {z.strength:.3f}  touches {z.touches}"
        )
    if not facts.zones:
        lines.append("    none")
    lines += [
        f"  Decision:        {plan.decision}",
        f"  Entry / Stop:    {_num(plan.entry)} / {_num(plan.sl)}",
        f"  Targets:         {tps}",
        f"  R:R:             {rr_str}",
        f"  Invalidation:    {facts.invalidation.text}",
        "──────────────────────────────────────────────────────",
    ]
    output = "\n".join(lines)
    print(output)
    return output
