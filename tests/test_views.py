import pytest
from django.urls import reverse


@pytest.fixture(autouse=True)
def _data_source(settings, data_file):
    settings.MARKETING_DATA_SOURCE = str(data_file)


def test_index_redirects_to_demographic(client):
    response = client.get("/")
    assert response.status_code == 302
    assert response["Location"] == reverse("demographic")


def test_demographic_view(client):
    response = client.get(reverse("demographic"))
    assert response.status_code == 200
    ctx = response.context
    assert ctx["error"] is None
    assert [g["title"] for g in ctx["card_groups"]] == ["Male Audience Performance", "Female Audience Performance"]
    # male allocation: 1000 * 40%
    assert ctx["card_groups"][0]["cards"][1]["value"] == "$400"
    assert [c["title"] for c in ctx["charts"]] == ["Total Spend by Age Group", "Total Revenue by Age Group"]
    male, female = ctx["tables"]
    assert male.rows[0].cells[0].text == "Spring Launch"
    assert female.rows[0].cells[-1].text == "13.33%"
    assert b"Male Audience Performance" in response.content


def test_device_view(client):
    response = client.get(reverse("device"))
    ctx = response.context
    mobile, desktop = ctx["card_groups"]
    assert mobile["subtitle"] == "75.0% of traffic"
    assert len(ctx["charts"]) == 6
    table = ctx["tables"][0]
    # default sort: revenue descending
    assert [r.cells[1].text for r in table.rows] == ["Mobile", "Desktop"]
    assert table.rows[0].cells[-1].text == "4.0x"


def test_device_table_sorts_from_query(client):
    response = client.get(reverse("device"), {"device-sort": "device", "device-dir": "asc"})
    table = response.context["tables"][0]
    assert [r.cells[1].text for r in table.rows] == ["Desktop", "Mobile"]
    header = next(h for h in table.headers if h.key == "device")
    assert header.active and header.direction == "asc"


def test_weekly_view(client):
    response = client.get(reverse("weekly"))
    ctx = response.context
    assert ctx["card_groups"][0]["cards"][0]["value"] == "$4,000"
    assert [c["title"] for c in ctx["charts"]] == [
        "Revenue by Week",
        "Spend by Week",
        "Revenue vs Spend by Week",
        "Conversions & Clicks by Week",
    ]
    table = ctx["tables"][0]
    # default sort: week start descending
    assert [r.cells[0].text for r in table.rows] == ["Jan 8", "Jan 1"]
    assert table.rows[0].cells[-1].text == "4.00x"


def test_region_view(client):
    response = client.get(reverse("region"))
    ctx = response.context
    cards = ctx["card_groups"][0]["cards"]
    assert cards[0]["value"] == 2
    assert cards[3]["value"] == "Dubai"
    assert len(ctx["bubble_maps"]) == 2
    revenue_map = ctx["bubble_maps"][0]
    assert revenue_map["table"].rows[0].cells[0].text == "Dubai"
    assert revenue_map["table"].headers[-1].label == "Spend"
    assert len(ctx["charts"]) == 4
    assert [r.cells[0].text for r in ctx["tables"][0].rows] == ["Dubai", "Sharjah"]


def test_fetch_error_renders_banner_only(client, settings, tmp_path):
    settings.MARKETING_DATA_SOURCE = str(tmp_path / "missing.json")
    response = client.get(reverse("weekly"))
    assert response.status_code == 200
    assert response.context["error"].startswith("Failed to read data file")
    assert "tables" not in response.context
    assert b"Error:" in response.content


def test_empty_dataset_shows_empty_states(client, settings, tmp_path):
    path = tmp_path / "empty.json"
    path.write_text('{"campaigns": []}', encoding="utf-8")
    settings.MARKETING_DATA_SOURCE = str(path)

    response = client.get(reverse("weekly"))
    ctx = response.context
    assert all(c["empty"] for c in ctx["charts"])
    assert ctx["tables"][0].empty
    assert b"No weekly performance data available" in response.content

    response = client.get(reverse("region"))
    assert response.context["card_groups"][0]["cards"][3]["value"] == "N/A"
    assert all(m["chart"]["empty"] for m in response.context["bubble_maps"])


def test_build_view_rejects_unknown_page(sample_payload):
    from dashboard.data_processing import build_aggregates
    from dashboard.data_processing_cases import build_view

    from .conftest import make_data

    with pytest.raises(ValueError):
        build_view("funnel", build_aggregates(make_data(*sample_payload["campaigns"])))
