from __future__ import annotations

import numpy as np
import pandas as pd


# Scalar rate helpers. Every ratio yields 0 when its denominator is 0.

def safe_ratio(numerator: float, denominator: float) -> float:
    if not denominator:
        return 0.0
    return float(numerator) / float(denominator)


def ctr(clicks: float, impressions: float) -> float:
    return safe_ratio(clicks, impressions) * 100


def conversion_rate(conversions: float, clicks: float) -> float:
    return safe_ratio(conversions, clicks) * 100


def cpc(spend: float, clicks: float) -> float:
    return safe_ratio(spend, clicks)


def cpa(spend: float, conversions: float) -> float:
    return safe_ratio(spend, conversions)


def roas(revenue: float, spend: float) -> float:
    return safe_ratio(revenue, spend)


def safe_ratio_series(numerator: pd.Series, denominator: pd.Series) -> pd.Series:
    '''
    Vectorised ``safe_ratio``: element-wise division with 0 wherever the
    denominator is 0 (or missing).
    '''
    num = pd.to_numeric(numerator, errors="coerce").fillna(0).astype(float)
    den = pd.to_numeric(denominator, errors="coerce").fillna(0).astype(float)
    out = np.divide(
        num.to_numpy(),
        den.to_numpy(),
        out=np.zeros(len(num), dtype=float),
        where=den.to_numpy() != 0,
    )
    return pd.Series(out, index=num.index)


def add_rate_columns(df: pd.DataFrame) -> pd.DataFrame:
    '''
    Recompute ctr, conversion_rate, cpc, cpa and roas from the raw counts
    in ``df``. Returns a new frame.
    '''
    out = df.copy()
    out["ctr"] = safe_ratio_series(out["clicks"], out["impressions"]) * 100
    out["conversion_rate"] = safe_ratio_series(out["conversions"], out["clicks"]) * 100
    out["cpc"] = safe_ratio_series(out["spend"], out["clicks"])
    out["cpa"] = safe_ratio_series(out["spend"], out["conversions"])
    out["roas"] = safe_ratio_series(out["revenue"], out["spend"])
    return out
