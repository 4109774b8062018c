from __future__ import annotations

from dataclasses import dataclass, field
import hashlib
import json
from typing import Any, Optional


# Immutable snapshot of the marketing dataset. Parsed once per fetch and
# replaced wholesale on the next one; the aggregation code only reads it.


def _num(raw: Any) -> float:
    if raw is None or isinstance(raw, bool):
        return 0.0
    try:
        return float(raw)
    except (TypeError, ValueError):
        return 0.0


def _str(raw: Any) -> str:
    if raw is None:
        return ""
    return str(raw)


@dataclass(frozen=True)
class SlicePerformance:
    impressions: float = 0.0
    clicks: float = 0.0
    conversions: float = 0.0
    ctr: float = 0.0
    conversion_rate: float = 0.0

    @classmethod
    def from_dict(cls, raw: dict) -> "SlicePerformance":
        return cls(
            impressions=_num(raw.get("impressions")),
            clicks=_num(raw.get("clicks")),
            conversions=_num(raw.get("conversions")),
            ctr=_num(raw.get("ctr")),
            conversion_rate=_num(raw.get("conversion_rate")),
        )


@dataclass(frozen=True)
class DemographicBreakdown:
    gender: str
    age_group: str
    percentage_of_audience: float
    performance: SlicePerformance = field(default_factory=SlicePerformance)

    @classmethod
    def from_dict(cls, raw: dict) -> "DemographicBreakdown":
        performance = raw.get("performance")
        if performance is None:
            performance = {}
        if not isinstance(performance, dict):
            raise ValueError(f"'performance' must be an object, got {type(performance).__name__}")
        return cls(
            gender=_str(raw.get("gender")),
            age_group=_str(raw.get("age_group")),
            percentage_of_audience=_num(raw.get("percentage_of_audience")),
            performance=SlicePerformance.from_dict(performance),
        )


@dataclass(frozen=True)
class DevicePerformance:
    device: str
    impressions: float = 0.0
    clicks: float = 0.0
    conversions: float = 0.0
    spend: float = 0.0
    revenue: float = 0.0
    ctr: float = 0.0
    conversion_rate: float = 0.0

    @classmethod
    def from_dict(cls, raw: dict) -> "DevicePerformance":
        return cls(
            device=_str(raw.get("device")),
            impressions=_num(raw.get("impressions")),
            clicks=_num(raw.get("clicks")),
            conversions=_num(raw.get("conversions")),
            spend=_num(raw.get("spend")),
            revenue=_num(raw.get("revenue")),
            ctr=_num(raw.get("ctr")),
            conversion_rate=_num(raw.get("conversion_rate")),
        )


@dataclass(frozen=True)
class WeeklyPerformance:
    week_start: str
    week_end: str = ""
    impressions: float = 0.0
    clicks: float = 0.0
    conversions: float = 0.0
    spend: float = 0.0
    revenue: float = 0.0

    @classmethod
    def from_dict(cls, raw: dict) -> "WeeklyPerformance":
        return cls(
            week_start=_str(raw.get("week_start")),
            week_end=_str(raw.get("week_end")),
            impressions=_num(raw.get("impressions")),
            clicks=_num(raw.get("clicks")),
            conversions=_num(raw.get("conversions")),
            spend=_num(raw.get("spend")),
            revenue=_num(raw.get("revenue")),
        )


@dataclass(frozen=True)
class RegionalPerformance:
    region: str
    country: str = ""
    impressions: float = 0.0
    clicks: float = 0.0
    conversions: float = 0.0
    spend: float = 0.0
    revenue: float = 0.0
    ctr: float = 0.0
    conversion_rate: float = 0.0
    cpc: float = 0.0
    cpa: float = 0.0
    roas: float = 0.0

    @classmethod
    def from_dict(cls, raw: dict) -> "RegionalPerformance":
        return cls(
            region=_str(raw.get("region")),
            country=_str(raw.get("country")),
            impressions=_num(raw.get("impressions")),
            clicks=_num(raw.get("clicks")),
            conversions=_num(raw.get("conversions")),
            spend=_num(raw.get("spend")),
            revenue=_num(raw.get("revenue")),
            ctr=_num(raw.get("ctr")),
            conversion_rate=_num(raw.get("conversion_rate")),
            cpc=_num(raw.get("cpc")),
            cpa=_num(raw.get("cpa")),
            roas=_num(raw.get("roas")),
        )


def _breakdown(raw: dict, key: str, factory) -> Optional[tuple]:
    # None means the campaign does not report this dimension at all.
    items = raw.get(key)
    if items is None:
        return None
    if not isinstance(items, list):
        raise ValueError(f"'{key}' must be a list, got {type(items).__name__}")
    return tuple(factory(item) for item in items if isinstance(item, dict))


@dataclass(frozen=True)
class Campaign:
    name: str
    spend: float = 0.0
    revenue: float = 0.0
    demographic_breakdown: Optional[tuple[DemographicBreakdown, ...]] = None
    device_performance: Optional[tuple[DevicePerformance, ...]] = None
    weekly_performance: Optional[tuple[WeeklyPerformance, ...]] = None
    regional_performance: Optional[tuple[RegionalPerformance, ...]] = None

    @classmethod
    def from_dict(cls, raw: dict) -> "Campaign":
        return cls(
            name=_str(raw.get("name")),
            spend=_num(raw.get("spend")),
            revenue=_num(raw.get("revenue")),
            demographic_breakdown=_breakdown(raw, "demographic_breakdown", DemographicBreakdown.from_dict),
            device_performance=_breakdown(raw, "device_performance", DevicePerformance.from_dict),
            weekly_performance=_breakdown(raw, "weekly_performance", WeeklyPerformance.from_dict),
            regional_performance=_breakdown(raw, "regional_performance", RegionalPerformance.from_dict),
        )


@dataclass(frozen=True)
class MarketingData:
    campaigns: tuple[Campaign, ...] = ()
    fingerprint: str = ""

    @classmethod
    def from_dict(cls, raw: dict) -> "MarketingData":
        if not isinstance(raw, dict):
            raise ValueError("Marketing data must be a JSON object")
        campaigns = raw.get("campaigns")
        if campaigns is None:
            campaigns = []
        if not isinstance(campaigns, list):
            raise ValueError("'campaigns' must be a list")
        return cls(
            campaigns=tuple(Campaign.from_dict(c) for c in campaigns if isinstance(c, dict)),
            fingerprint=content_fingerprint(raw),
        )


def content_fingerprint(raw: Any) -> str:
    canonical = json.dumps(raw, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
