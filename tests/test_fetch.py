import json

import httpx
import pandas as pd
import pytest

from dashboard.data_processing_io import (
    MarketingDataError,
    fetch_marketing_data,
    parse_dates_with_audit,
    parse_instant,
)


def client_for(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_fetch_from_url(sample_payload):
    seen = []

    def handler(request):
        seen.append(str(request.url))
        return httpx.Response(200, json=sample_payload)

    data = fetch_marketing_data("https://api.example.com/marketing", client=client_for(handler))
    assert seen == ["https://api.example.com/marketing"]
    assert [c.name for c in data.campaigns] == ["Spring Launch", "Search Only"]
    assert data.campaigns[1].device_performance is None
    assert data.fingerprint


def test_http_error_status_surfaces_readable_message():
    client = client_for(lambda request: httpx.Response(503))
    with pytest.raises(MarketingDataError, match="server responded with 503"):
        fetch_marketing_data("https://api.example.com/marketing", client=client)


def test_network_failure_is_wrapped():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(MarketingDataError, match="Failed to load data"):
        fetch_marketing_data("http://localhost:1/marketing", client=client_for(handler))


def test_fetch_from_file(data_file):
    data = fetch_marketing_data(str(data_file))
    assert len(data.campaigns) == 2


def test_settings_source_used_by_default(settings, data_file):
    settings.MARKETING_DATA_SOURCE = str(data_file)
    assert len(fetch_marketing_data().campaigns) == 2


def test_missing_file(tmp_path):
    with pytest.raises(MarketingDataError, match="Failed to read data file"):
        fetch_marketing_data(str(tmp_path / "nope.json"))


def test_invalid_json(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(MarketingDataError, match="Invalid marketing data"):
        fetch_marketing_data(str(path))


def test_wrong_shape(tmp_path):
    path = tmp_path / "list.json"
    path.write_text(json.dumps({"campaigns": {"name": "x"}}), encoding="utf-8")
    with pytest.raises(MarketingDataError, match="'campaigns' must be a list"):
        fetch_marketing_data(str(path))


def test_no_source_configured(settings):
    settings.MARKETING_DATA_SOURCE = ""
    with pytest.raises(MarketingDataError, match="No marketing data source"):
        fetch_marketing_data()


def test_fingerprint_follows_content(tmp_path, sample_payload):
    a = tmp_path / "a.json"
    b = tmp_path / "b.json"
    a.write_text(json.dumps(sample_payload), encoding="utf-8")
    b.write_text(json.dumps(sample_payload, indent=2), encoding="utf-8")
    assert fetch_marketing_data(str(a)).fingerprint == fetch_marketing_data(str(b)).fingerprint

    sample_payload["campaigns"][0]["spend"] = 1
    a.write_text(json.dumps(sample_payload), encoding="utf-8")
    assert fetch_marketing_data(str(a)).fingerprint != fetch_marketing_data(str(b)).fingerprint


# ------------------------
# Dates
# ------------------------

def test_parse_instant():
    assert parse_instant("2024-01-15") == pd.Timestamp("2024-01-15")
    assert parse_instant("2024-01-15T02:00:00+04:00") == pd.Timestamp("2024-01-14 22:00:00")
    assert pd.isna(parse_instant("garbage"))
    assert pd.isna(parse_instant(""))
    assert pd.isna(parse_instant(None))


def test_parse_dates_with_audit_explicit_format():
    parsed, audit = parse_dates_with_audit(["2024-01-01", "2024-01-08"])
    assert "explicit format" in audit
    assert parsed.tolist() == [pd.Timestamp("2024-01-01"), pd.Timestamp("2024-01-08")]


def test_parse_dates_with_audit_mixed():
    parsed, audit = parse_dates_with_audit(["2024-01-01", "oops"])
    assert audit == "parsed value by value"
    assert parsed.iloc[0] == pd.Timestamp("2024-01-01")
    assert pd.isna(parsed.iloc[1])


def test_non_object_performance_is_wrapped(tmp_path):
    path = tmp_path / "bad_slice.json"
    path.write_text(json.dumps({"campaigns": [{
        "name": "A",
        "demographic_breakdown": [{"gender": "Male", "age_group": "18-24", "percentage_of_audience": 50, "performance": "oops"}],
    }]}), encoding="utf-8")
    with pytest.raises(MarketingDataError, match="'performance' must be an object"):
        fetch_marketing_data(str(path))


def test_missing_performance_defaults_to_zero(tmp_path):
    path = tmp_path / "no_perf.json"
    path.write_text(json.dumps({"campaigns": [{
        "name": "A",
        "demographic_breakdown": [{"gender": "Male", "age_group": "18-24", "percentage_of_audience": 50}],
    }]}), encoding="utf-8")
    slice_ = fetch_marketing_data(str(path)).campaigns[0].demographic_breakdown[0]
    assert slice_.performance.clicks == 0
