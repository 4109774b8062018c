import json

import pytest
from django.core.cache import cache

from dashboard.marketing_data import MarketingData


def make_data(*campaigns: dict) -> MarketingData:
    return MarketingData.from_dict({"campaigns": list(campaigns)})


def region(name, spend, revenue, **kw):
    row = {"region": name, "country": "UAE", "impressions": 1000, "clicks": 100, "conversions": 10, "spend": spend, "revenue": revenue}
    row.update(kw)
    return row


@pytest.fixture(autouse=True)
def _clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def sample_payload():
    return {
        "campaigns": [
            {
                "name": "Spring Launch",
                "spend": 1000,
                "revenue": 4000,
                "demographic_breakdown": [
                    {"gender": "Male", "age_group": "18-24", "percentage_of_audience": 40,
                     "performance": {"impressions": 1000, "clicks": 50, "conversions": 5, "ctr": 5.0, "conversion_rate": 10.0}},
                    {"gender": "Female", "age_group": "18-24", "percentage_of_audience": 60,
                     "performance": {"impressions": 1500, "clicks": 90, "conversions": 12, "ctr": 6.0, "conversion_rate": 13.33}},
                ],
                "device_performance": [
                    {"device": "Mobile", "impressions": 3000, "clicks": 120, "conversions": 10, "spend": 600, "revenue": 2400, "ctr": 4.0, "conversion_rate": 8.33},
                    {"device": "Desktop", "impressions": 1000, "clicks": 20, "conversions": 7, "spend": 400, "revenue": 1600, "ctr": 2.0, "conversion_rate": 35.0},
                ],
                "weekly_performance": [
                    {"week_start": "2024-01-08", "week_end": "2024-01-14", "impressions": 2000, "clicks": 70, "conversions": 8, "spend": 500, "revenue": 2000},
                    {"week_start": "2024-01-01", "week_end": "2024-01-07", "impressions": 2000, "clicks": 70, "conversions": 9, "spend": 500, "revenue": 2000},
                ],
                "regional_performance": [
                    region("Dubai", 600, 2500, ctr=10.0, conversion_rate=10.0, cpc=6.0, cpa=60.0, roas=4.17),
                    region("Sharjah", 400, 1500, ctr=10.0, conversion_rate=10.0, cpc=4.0, cpa=40.0, roas=3.75),
                ],
            },
            {"name": "Search Only", "spend": 200, "revenue": 300},
        ]
    }


@pytest.fixture
def data_file(tmp_path, sample_payload):
    path = tmp_path / "marketing_data.json"
    path.write_text(json.dumps(sample_payload), encoding="utf-8")
    return path
