"""Rupiah display helpers used by tables, summary cards and chart axes."""

import math
from decimal import ROUND_HALF_UP, Context, Decimal
from typing import List

CURRENCY = "Rp"

# wide enough to quantize any finite float
_QUANTIZE = Context(prec=400, rounding=ROUND_HALF_UP)

# (threshold, divisor suffix) checked top-down, first match wins.
SHORT_SCALES = (
    (1e12, "T"),
    (1e9, "M"),    # miliar
    (1e6, "Jt"),   # juta
    (1e3, "K"),
)

PALETTE = (
    "#3b82f6", "#ef4444", "#10b981", "#f59e0b", "#8b5cf6",
    "#06b6d4", "#84cc16", "#f97316", "#ec4899", "#6366f1",
)


def _finite(amount) -> float:
    if isinstance(amount, bool):
        raise ValueError(f"Not a currency amount: {amount!r}")
    try:
        value = float(amount)
    except (TypeError, ValueError):
        raise ValueError(f"Not a currency amount: {amount!r}") from None
    if not math.isfinite(value):
        raise ValueError(f"Currency amount must be finite, got {amount!r}")
    return value


def format_full(amount) -> str:
    """Format as whole rupiah with id-ID grouping.

    format_full(15000000) -> "Rp 15.000.000"
    format_full(-1250.5)  -> "-Rp 1.251"

    Raises ValueError for NaN, infinities and non-numeric input.
    """
    value = _finite(amount)
    rounded = int(math.floor(abs(value) + 0.5))
    sign = "-" if value < 0 and rounded else ""
    grouped = f"{rounded:,}".replace(",", ".")
    return f"{sign}{CURRENCY} {grouped}"


def format_short(amount) -> str:
    """Abbreviated form for chart axes: T, M, Jt, K with one decimal.

    format_short(1_000_000_000) -> "Rp 1.0M"
    format_short(999_999)       -> "Rp 1000.0K"
    format_short(950)           -> "Rp 950"
    """
    value = _finite(amount)
    for threshold, suffix in SHORT_SCALES:
        if value >= threshold:
            # exact ties round up, as toFixed does
            scaled = Decimal(value / threshold).quantize(
                Decimal("0.1"), context=_QUANTIZE
            )
            return f"{CURRENCY} {scaled}{suffix}"
    return format_full(value)


def chart_colors(count: int) -> List[str]:
    return [PALETTE[i % len(PALETTE)] for i in range(max(0, count))]
