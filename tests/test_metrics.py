import pandas as pd
import pytest

from dashboard.metrics import add_rate_columns, conversion_rate, cpa, cpc, ctr, roas, safe_ratio, safe_ratio_series


def test_scalar_rates():
    assert ctr(50, 1000) == pytest.approx(5.0)
    assert conversion_rate(5, 50) == pytest.approx(10.0)
    assert cpc(100, 50) == pytest.approx(2.0)
    assert cpa(100, 4) == pytest.approx(25.0)
    assert roas(250, 100) == pytest.approx(2.5)


def test_zero_denominators_yield_zero():
    assert safe_ratio(10, 0) == 0.0
    assert ctr(10, 0) == 0.0
    assert conversion_rate(3, 0) == 0.0
    assert cpc(10, 0) == 0.0
    assert cpa(10, 0) == 0.0
    assert roas(10, 0) == 0.0


def test_safe_ratio_series_guards_zero_and_missing():
    num = pd.Series([10.0, 5.0, 3.0])
    den = pd.Series([2.0, 0.0, None])
    assert safe_ratio_series(num, den).tolist() == [5.0, 0.0, 0.0]


def test_add_rate_columns_recomputes_from_counts():
    df = pd.DataFrame([{"impressions": 1000, "clicks": 100, "conversions": 10, "spend": 200, "revenue": 500}])
    out = add_rate_columns(df)
    row = out.iloc[0]
    assert row["ctr"] == pytest.approx(10.0)
    assert row["conversion_rate"] == pytest.approx(10.0)
    assert row["cpc"] == pytest.approx(2.0)
    assert row["cpa"] == pytest.approx(20.0)
    assert row["roas"] == pytest.approx(2.5)
    assert "ctr" not in df.columns
