from __future__ import annotations

import math
from typing import Any

import pandas as pd

from .data_processing_io import parse_instant


def _as_float(value: Any) -> float:
    try:
        v = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(v) or math.isinf(v):
        return 0.0
    return v


def round_half_up(value: Any) -> int:
    return int(math.floor(_as_float(value) + 0.5))


def format_integer(value: Any) -> str:
    return f"{round_half_up(value):,}"


def format_number(value: Any) -> str:
    '''Grouped, at most three decimals, trailing zeros dropped.'''
    v = _as_float(value)
    text = f"{v:,.3f}".rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


def format_currency(value: Any) -> str:
    return f"${format_integer(value)}"


def format_percent(value: Any, decimals: int = 2) -> str:
    return f"{_as_float(value):.{decimals}f}%"


def format_multiplier(value: Any, decimals: int = 2) -> str:
    return f"{_as_float(value):.{decimals}f}x"


def format_short_date(value: Any) -> str:
    ts = parse_instant(value)
    if pd.isna(ts):
        return "Invalid Date"
    return f"{ts.strftime('%b')} {ts.day}"


def truncate(text: Any, length: int) -> str:
    s = "" if text is None else str(text)
    return f"{s[:length]}..." if len(s) > length else s
