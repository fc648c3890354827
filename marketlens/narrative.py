"""Facts narrator — turns a ``Facts`` snapshot into plain prose.

Reads numbers from ``Facts`` and formats them; it never computes or
invents a figure.  Structure first, then zones, EMA/VWAP regime, RSI
momentum, higher-timeframe context, and the plan.
"""

from marketlens.engine.models import Facts


def _money(value: float) -> str:
    return f"{value:,.2f}" if abs(value) >= 1 else f"{value:.8g}"


def _regime_sentence(facts: Facts) -> str:
    ema_d = facts.ema.distance_pct
    vwap_d = facts.vwap.distance_pct
    if ema_d is None or vwap_d is None:
        return "EMA or VWAP is unavailable for this session, so the regime read is incomplete."
    if abs(ema_d) < 0.3 and abs(vwap_d) < 0.3:
        return (
            "Price is tightly aligned with both EMA and VWAP, indicating equilibrium "
            "conditions and a lack of directional commitment."
        )
    if ema_d < -2 and vwap_d < -2:
        return (
            f"Price is trading significantly below EMA ({ema_d:.1f}%) and VWAP "
            f"({vwap_d:.1f}%), signaling sustained selling pressure."
        )
    if ema_d > 2 and vwap_d > 2:
        return (
            f"Price is holding well above EMA ({ema_d:.1f}%) and VWAP "
            f"({vwap_d:.1f}%), confirming strong directional acceptance."
        )
    return (
        "Price is interacting with EMA and VWAP in a mixed regime, suggesting "
        "rotational behavior rather than trend expansion."
    )


def explain(facts: Facts) -> str:
    """Return a multi-paragraph explanation of *facts*."""
    structure = facts.structure
    parts: list[str] = [
        f"{facts.coin.upper()} is trading at ${_money(facts.price)} on the "
        f"{facts.timeframe} timeframe with a {structure.bias.upper()} structural bias."
    ]

    if structure.event is not None:
        parts.append(
            f"{structure.event.type} confirmed to the {structure.event.direction.upper()} "
            f"side at {_money(structure.event.price)}, reinforcing directional control."
        )
    else:
        parts.append(
            "No Break of Structure or Change of Character has been confirmed, "
            "suggesting rotational or balanced conditions."
        )

    nearest = facts.nearest_zone
    if nearest is not None:
        side = "above" if nearest.distance_pct > 0 else "below"
        parts.append(
            f"Price is {abs(nearest.distance_pct):.2f}% {side} a {nearest.zone.type.upper()} "
            f"liquidity zone between {_money(nearest.zone.low)}–{_money(nearest.zone.high)}."
        )

    parts.append(_regime_sentence(facts))

    if facts.rsi.value is not None:
        parts.append(
            f"RSI is currently at {facts.rsi.value:.1f}, indicating {facts.rsi.state} momentum. "
            "RSI is used strictly as momentum confirmation, not as a reversal signal."
        )

    if facts.mtf.enabled:
        parts.append(
            f"Higher timeframe ({facts.mtf.higher_timeframe}) bias is "
            f"{facts.mtf.htf_bias.upper()}: {facts.mtf.status.replace('_', ' ')}."
        )

    parts.append(f"Confidence: {facts.confidence.score}/100.")

    plan = facts.trade_plan
    if plan.decision == "none":
        parts.append(f"No trade setup. {plan.reason}")
    else:
        targets = ", ".join(f"{tp.label} {_money(tp.price)}" for tp in plan.tps)
        parts.append(
            f"Plan: {plan.decision.upper()} from {_money(plan.entry)}, stop {_money(plan.sl)}, "
            f"{targets} ({plan.rr}R). {plan.reason}"
        )

    parts.append(facts.invalidation.text)
    return "\n\n".join(parts)
