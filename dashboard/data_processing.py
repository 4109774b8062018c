from __future__ import annotations

from dataclasses import dataclass, field
import logging

import numpy as np
import pandas as pd

from .data_processing_io import parse_dates_with_audit
from .marketing_data import MarketingData
from .metrics import add_rate_columns, conversion_rate, ctr, roas, safe_ratio, safe_ratio_series


logger = logging.getLogger(__name__)

# Cross-campaign rollups for the four dashboard dimensions.
#
# Rates of any merged record are recomputed from the summed raw counts.
# Pre-computed rates are only carried on records that were never merged
# (per-slice / per-campaign detail rows, single-occurrence regions).

COUNT_COLS = ["impressions", "clicks", "conversions"]
MONEY_COLS = ["spend", "revenue"]
RATE_COLS = ["ctr", "conversion_rate", "cpc", "cpa", "roas"]

SLICE_COLS = ["campaign", "age_group", "impressions", "clicks", "conversions", "ctr", "conversion_rate"]
DEVICE_DETAIL_COLS = ["campaign", "device", *COUNT_COLS, *MONEY_COLS, "ctr", "conversion_rate", "roas"]
WEEKLY_COLS = ["week_start", "week_end", *COUNT_COLS, *MONEY_COLS]
REGIONAL_COLS = ["region", "country", *COUNT_COLS, *MONEY_COLS, *RATE_COLS]


# ------------------------
# Result types
# ------------------------

@dataclass
class DemographicRollup:
    male_clicks: float = 0.0
    male_spend: float = 0.0
    male_revenue: float = 0.0
    female_clicks: float = 0.0
    female_spend: float = 0.0
    female_revenue: float = 0.0
    age_group_spend: dict[str, float] = field(default_factory=dict)
    age_group_revenue: dict[str, float] = field(default_factory=dict)
    male_age_group_performance: pd.DataFrame = field(default_factory=lambda: pd.DataFrame(columns=SLICE_COLS))
    female_age_group_performance: pd.DataFrame = field(default_factory=lambda: pd.DataFrame(columns=SLICE_COLS))


@dataclass
class DeviceBucket:
    device: str
    impressions: float = 0.0
    clicks: float = 0.0
    conversions: float = 0.0
    spend: float = 0.0
    revenue: float = 0.0
    ctr: float = 0.0
    conversion_rate: float = 0.0
    percentage_of_traffic: float = 0.0

    @property
    def roas(self) -> float:
        return roas(self.revenue, self.spend)


@dataclass
class DeviceRollup:
    mobile: DeviceBucket = field(default_factory=lambda: DeviceBucket("Mobile"))
    desktop: DeviceBucket = field(default_factory=lambda: DeviceBucket("Desktop"))
    campaign_breakdown: pd.DataFrame = field(default_factory=lambda: pd.DataFrame(columns=DEVICE_DETAIL_COLS))


@dataclass
class WeeklySummary:
    total_revenue: float = 0.0
    total_spend: float = 0.0
    total_conversions: float = 0.0
    total_clicks: float = 0.0
    average_weekly_revenue: float = 0.0
    average_weekly_spend: float = 0.0


@dataclass
class RegionalSummary:
    total_regions: int = 0
    total_revenue: float = 0.0
    total_spend: float = 0.0
    top_region: str = "N/A"


@dataclass
class DashboardAggregates:
    fingerprint: str
    demographic: DemographicRollup
    device: DeviceRollup
    weekly: pd.DataFrame
    regional: pd.DataFrame


# ------------------------
# Demographic
# ------------------------

def _demographic_frame(data: MarketingData) -> pd.DataFrame:
    rows: list[dict] = []
    for campaign in data.campaigns:
        if campaign.demographic_breakdown is None:
            continue
        for demo in campaign.demographic_breakdown:
            share = demo.percentage_of_audience / 100
            perf = demo.performance
            rows.append({
                "campaign": campaign.name,
                "gender": demo.gender,
                "age_group": demo.age_group,
                "percentage_of_audience": demo.percentage_of_audience,
                "impressions": perf.impressions,
                "clicks": perf.clicks,
                "conversions": perf.conversions,
                "ctr": perf.ctr,
                "conversion_rate": perf.conversion_rate,
                # allocation of the campaign totals, not a reported figure
                "demo_spend": campaign.spend * share,
                "demo_revenue": campaign.revenue * share,
            })
    cols = ["campaign", "gender", "age_group", "percentage_of_audience", *SLICE_COLS[2:], "demo_spend", "demo_revenue"]
    return pd.DataFrame(rows, columns=cols)


def aggregate_demographics(data: MarketingData) -> DemographicRollup:
    df = _demographic_frame(data)
    if df.empty:
        return DemographicRollup()

    male = df[df["gender"] == "Male"]
    female = df[df["gender"] == "Female"]

    # Every gender feeds the age-group mapping, including ones outside Male/Female.
    by_age = df.groupby("age_group", sort=False)[["demo_spend", "demo_revenue"]].sum()

    return DemographicRollup(
        male_clicks=float(male["clicks"].sum()),
        male_spend=float(male["demo_spend"].sum()),
        male_revenue=float(male["demo_revenue"].sum()),
        female_clicks=float(female["clicks"].sum()),
        female_spend=float(female["demo_spend"].sum()),
        female_revenue=float(female["demo_revenue"].sum()),
        age_group_spend={str(k): float(v) for k, v in by_age["demo_spend"].items()},
        age_group_revenue={str(k): float(v) for k, v in by_age["demo_revenue"].items()},
        male_age_group_performance=male[SLICE_COLS].reset_index(drop=True),
        female_age_group_performance=female[SLICE_COLS].reset_index(drop=True),
    )


# ------------------------
# Device
# ------------------------

def _device_bucket(df: pd.DataFrame, device: str) -> DeviceBucket:
    sub = df[df["device"] == device]
    totals = sub[COUNT_COLS + MONEY_COLS].sum()
    bucket = DeviceBucket(device=device, **{c: float(totals[c]) for c in COUNT_COLS + MONEY_COLS})
    bucket.ctr = ctr(bucket.clicks, bucket.impressions)
    bucket.conversion_rate = conversion_rate(bucket.conversions, bucket.clicks)
    return bucket


def aggregate_devices(data: MarketingData) -> DeviceRollup:
    rows: list[dict] = []
    for campaign in data.campaigns:
        if campaign.device_performance is None:
            continue
        for dev in campaign.device_performance:
            rows.append({
                "campaign": campaign.name,
                "device": dev.device,
                "impressions": dev.impressions,
                "clicks": dev.clicks,
                "conversions": dev.conversions,
                "spend": dev.spend,
                "revenue": dev.revenue,
                "ctr": dev.ctr,
                "conversion_rate": dev.conversion_rate,
            })
    df = pd.DataFrame(rows, columns=DEVICE_DETAIL_COLS[:-1])
    if df.empty:
        return DeviceRollup()

    mobile = _device_bucket(df, "Mobile")
    desktop = _device_bucket(df, "Desktop")
    total_impressions = mobile.impressions + desktop.impressions
    mobile.percentage_of_traffic = safe_ratio(mobile.impressions, total_impressions) * 100
    desktop.percentage_of_traffic = safe_ratio(desktop.impressions, total_impressions) * 100

    df["roas"] = safe_ratio_series(df["revenue"], df["spend"])
    return DeviceRollup(mobile=mobile, desktop=desktop, campaign_breakdown=df[DEVICE_DETAIL_COLS])


# ------------------------
# Weekly
# ------------------------

def aggregate_weekly(data: MarketingData) -> pd.DataFrame:
    '''
    One row per exact ``week_start`` string. The first record for a week
    seeds it (``week_end`` included); later ones add their raw counts.
    No rates are stored; sorted ascending by the parsed week start, ties
    and unparsable dates keep encounter order (unparsable last).
    '''
    rows: list[dict] = []
    for campaign in data.campaigns:
        if campaign.weekly_performance is None:
            continue
        for week in campaign.weekly_performance:
            rows.append({c: getattr(week, c) for c in WEEKLY_COLS})
    df = pd.DataFrame(rows, columns=WEEKLY_COLS)
    if df.empty:
        return df

    agg = {"week_end": "first", **{c: "sum" for c in COUNT_COLS + MONEY_COLS}}
    weekly = df.groupby("week_start", sort=False).agg(agg).reset_index()

    parsed, audit = parse_dates_with_audit(weekly["week_start"])
    logger.debug("week_start %s", audit)
    weekly["_order"] = parsed.to_numpy()
    weekly = weekly.sort_values("_order", kind="stable", na_position="last")
    return weekly.drop(columns="_order").reset_index(drop=True)[WEEKLY_COLS]


def weekly_summary(weekly: pd.DataFrame) -> WeeklySummary:
    if weekly.empty:
        return WeeklySummary()
    n = len(weekly)
    total_revenue = float(weekly["revenue"].sum())
    total_spend = float(weekly["spend"].sum())
    return WeeklySummary(
        total_revenue=total_revenue,
        total_spend=total_spend,
        total_conversions=float(weekly["conversions"].sum()),
        total_clicks=float(weekly["clicks"].sum()),
        average_weekly_revenue=total_revenue / n,
        average_weekly_spend=total_spend / n,
    )


# ------------------------
# Regional
# ------------------------

def aggregate_regional(data: MarketingData) -> pd.DataFrame:
    '''
    One row per ``region``. A region reported once keeps its own rates;
    a merged region has ctr, conversion_rate, cpc, cpa and roas recomputed
    from the summed counts. Sorted descending by revenue.
    '''
    rows: list[dict] = []
    for campaign in data.campaigns:
        if campaign.regional_performance is None:
            continue
        for region in campaign.regional_performance:
            rows.append({c: getattr(region, c) for c in REGIONAL_COLS})
    df = pd.DataFrame(rows, columns=REGIONAL_COLS)
    if df.empty:
        return df

    agg = {
        "country": "first",
        **{c: "sum" for c in COUNT_COLS + MONEY_COLS},
        **{c: "first" for c in RATE_COLS},
    }
    grouped = df.groupby("region", sort=False)
    regional = grouped.agg(agg)
    merged = (grouped.size() > 1).to_numpy()

    recomputed = add_rate_columns(regional)
    for c in RATE_COLS:
        regional[c] = np.where(merged, recomputed[c], regional[c])

    regional = regional.reset_index().sort_values("revenue", ascending=False, kind="stable")
    return regional.reset_index(drop=True)[REGIONAL_COLS]


def regional_summary(regional: pd.DataFrame) -> RegionalSummary:
    if regional.empty:
        return RegionalSummary()
    return RegionalSummary(
        total_regions=len(regional),
        total_revenue=float(regional["revenue"].sum()),
        total_spend=float(regional["spend"].sum()),
        top_region=str(regional.iloc[0]["region"]) or "N/A",
    )


# ------------------------
# All dimensions
# ------------------------

def build_aggregates(data: MarketingData) -> DashboardAggregates:
    aggregates = DashboardAggregates(
        fingerprint=data.fingerprint,
        demographic=aggregate_demographics(data),
        device=aggregate_devices(data),
        weekly=aggregate_weekly(data),
        regional=aggregate_regional(data),
    )
    logger.info(
        "Built aggregates for %d campaigns: %d weeks, %d regions, %d device rows",
        len(data.campaigns),
        len(aggregates.weekly),
        len(aggregates.regional),
        len(aggregates.device.campaign_breakdown),
    )
    return aggregates
