"""Number formatting helpers matching the dashboard's id-ID locale output."""

import math
from typing import Any, Optional


def to_float(value: Any, default: float = 0.0) -> float:
    """Coerce a DB/JSON numeric (Decimal, str, int, None) to float."""
    if value is None:
        return default
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(result) or math.isinf(result):
        return default
    return result


def format_number(value: Any, max_fraction_digits: int = 3) -> str:
    """Format like ``Number.toLocaleString('id-ID')``: ``1234567.5 -> 1.234.567,5``"""
    number = to_float(value)
    text = f"{number:,.{max_fraction_digits}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text in ("-0", ""):
        text = "0"
    # swap separators: 1,234.5 -> 1.234,5
    return text.replace(",", "_").replace(".", ",").replace("_", ".")


def format_rupiah(value: Any) -> str:
    return f"Rp {format_number(value)}"


def format_percent(value: Optional[float]) -> str:
    """Signed percentage with two decimals, e.g. ``+12.50%``."""
    number = to_float(value)
    sign = "+" if number > 0 else ""
    return f"{sign}{number:.2f}%"


def percent_change(current: float, base: float) -> float:
    if not base:
        return 0.0
    return (current - base) / base * 100
