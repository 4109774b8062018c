from __future__ import annotations

from typing import Any, Mapping, Optional

import pandas as pd

from .data_processing import (
    DashboardAggregates,
    DeviceBucket,
    regional_summary,
    weekly_summary,
)
from .data_processing_charts import (
    layout_bar_chart,
    layout_bubble_map,
    layout_line_chart,
    render_bar_chart,
    render_bubble_map,
    render_line_chart,
)
from .formatting import (
    format_currency,
    format_multiplier,
    format_number,
    format_percent,
    format_short_date,
    truncate,
)
from .metrics import roas
from .table import DATE, DESC, NUMBER, STRING, Column, SortState, Table, collation_key


# Per-view compositions: aggregates in, template context out.

MALE_COLOR = "#3B82F6"
FEMALE_COLOR = "#EC4899"
MOBILE_COLOR = "#3B82F6"
DESKTOP_COLOR = "#8B5CF6"


def _card(title: str, value: Any, accent: str = "") -> dict:
    return {"title": title, "value": value, "accent": accent}


def _append_chart(charts: list[dict], chart: Optional[dict]) -> None:
    if chart:
        charts.append(chart)


def _table_view(table: Table, params: Optional[Mapping]):
    table.apply_query(params)
    return table.render(params)


def _count_col(key: str, header: str, width: Optional[str] = None) -> Column[float]:
    return Column(key, header, sort_type=NUMBER, render=lambda v, row: format_number(v), align="right", width=width)


def _money_col(key: str, header: str) -> Column[float]:
    return Column(key, header, sort_type=NUMBER, render=lambda v, row: format_currency(v), align="right")


def _pct_col(key: str, header: str) -> Column[float]:
    return Column(key, header, sort_type=NUMBER, render=lambda v, row: format_percent(v), align="right")


# ------------------------
# Demographic
# ------------------------

def _age_group_columns() -> list[Column]:
    return [
        Column("campaign", "Campaign", sort_type=STRING, render=lambda v, row: truncate(v, 40), width="30%"),
        Column("age_group", "Age Group", sort_type=STRING, render=lambda v, row: str(v or ""), align="center"),
        _count_col("impressions", "Impressions"),
        _count_col("clicks", "Clicks"),
        _count_col("conversions", "Conversions"),
        _pct_col("ctr", "CTR"),
        _pct_col("conversion_rate", "Conv. Rate"),
    ]


def _age_group_bars(mapping: dict[str, float], color: str) -> list[dict]:
    ordered = sorted(mapping.items(), key=lambda kv: collation_key(kv[0]))
    return [{"label": k, "value": v, "color": color} for k, v in ordered]


def _case_demographic(aggregates: DashboardAggregates, params: Optional[Mapping] = None) -> dict:
    demo = aggregates.demographic

    card_groups = [
        {
            "title": "Male Audience Performance",
            "cards": [
                _card("Total Clicks by Males", format_number(demo.male_clicks)),
                _card("Total Spend by Males", format_currency(demo.male_spend)),
                _card("Total Revenue by Males", format_currency(demo.male_revenue)),
            ],
        },
        {
            "title": "Female Audience Performance",
            "cards": [
                _card("Total Clicks by Females", format_number(demo.female_clicks)),
                _card("Total Spend by Females", format_currency(demo.female_spend)),
                _card("Total Revenue by Females", format_currency(demo.female_revenue)),
            ],
        },
    ]

    charts: list[dict] = []
    _append_chart(charts, render_bar_chart(layout_bar_chart(
        _age_group_bars(demo.age_group_spend, "#F59E0B"), "Total Spend by Age Group", format_currency,
    )))
    _append_chart(charts, render_bar_chart(layout_bar_chart(
        _age_group_bars(demo.age_group_revenue, "#10B981"), "Total Revenue by Age Group", format_currency,
    )))

    tables = [
        _table_view(Table(
            demo.male_age_group_performance,
            _age_group_columns(),
            default_sort=SortState("conversions", DESC),
            empty_message="No male demographic data available",
            title="Campaign Performance by Male Age Groups",
            prefix="male",
        ), params),
        _table_view(Table(
            demo.female_age_group_performance,
            _age_group_columns(),
            default_sort=SortState("conversions", DESC),
            empty_message="No female demographic data available",
            title="Campaign Performance by Female Age Groups",
            prefix="female",
        ), params),
    ]
    return {"card_groups": card_groups, "charts": charts, "bubble_maps": [], "tables": tables}


# ------------------------
# Device
# ------------------------

def _device_cards(bucket: DeviceBucket) -> dict:
    return {
        "title": f"{bucket.device} Performance",
        "subtitle": f"{bucket.percentage_of_traffic:.1f}% of traffic",
        "cards": [
            _card("Impressions", format_number(bucket.impressions)),
            _card("Clicks", format_number(bucket.clicks)),
            _card("Conversions", format_number(bucket.conversions)),
            _card("CTR", format_percent(bucket.ctr)),
            _card("Spend", format_currency(bucket.spend)),
            _card("Revenue", format_currency(bucket.revenue)),
            _card("Conv. Rate", format_percent(bucket.conversion_rate)),
            _card("ROAS", format_multiplier(bucket.roas)),
        ],
    }


def _device_columns() -> list[Column]:
    return [
        Column("campaign", "Campaign", sort_type=STRING, render=lambda v, row: truncate(v, 35), width="22%"),
        Column("device", "Device", sort_type=STRING, render=lambda v, row: str(v or ""), align="center"),
        _count_col("impressions", "Impressions"),
        _count_col("clicks", "Clicks"),
        _count_col("conversions", "Conversions"),
        _money_col("spend", "Spend"),
        _money_col("revenue", "Revenue"),
        _pct_col("ctr", "CTR"),
        _pct_col("conversion_rate", "Conv. Rate"),
        Column("roas", "ROAS", sort_type=NUMBER, render=lambda v, row: format_multiplier(v, 1), align="right"),
    ]


def _case_device(aggregates: DashboardAggregates, params: Optional[Mapping] = None) -> dict:
    mobile = aggregates.device.mobile
    desktop = aggregates.device.desktop

    comparisons = [
        ("Revenue Comparison", "revenue", format_currency),
        ("Spend Comparison", "spend", format_currency),
        ("Conversions Comparison", "conversions", format_number),
        ("ROAS Comparison", "roas", format_multiplier),
        ("CTR Comparison", "ctr", format_percent),
        ("Conversion Rate Comparison", "conversion_rate", format_percent),
    ]
    charts: list[dict] = []
    for title, attr, fmt in comparisons:
        entries = [
            {"label": "Mobile", "value": getattr(mobile, attr), "color": MOBILE_COLOR},
            {"label": "Desktop", "value": getattr(desktop, attr), "color": DESKTOP_COLOR},
        ]
        _append_chart(charts, render_bar_chart(layout_bar_chart(entries, title, fmt)))

    breakdown = aggregates.device.campaign_breakdown
    table = Table(
        breakdown,
        _device_columns(),
        default_sort=SortState("revenue", DESC),
        empty_message="No device performance data available",
        title=f"Campaign Performance by Device ({len(breakdown)} records)",
        prefix="device",
    )
    return {
        "card_groups": [_device_cards(mobile), _device_cards(desktop)],
        "charts": charts,
        "bubble_maps": [],
        "tables": [_table_view(table, params)],
    }


# ------------------------
# Weekly
# ------------------------

def _weekly_columns() -> list[Column]:
    return [
        Column("week_start", "Week Start", sort_type=DATE, render=lambda v, row: format_short_date(v)),
        Column("week_end", "Week End", sort_type=DATE, render=lambda v, row: format_short_date(v)),
        _count_col("impressions", "Impressions"),
        _count_col("clicks", "Clicks"),
        _count_col("conversions", "Conversions"),
        _money_col("spend", "Spend"),
        _money_col("revenue", "Revenue"),
        Column(
            "roas",
            "ROAS",
            sort_type=NUMBER,
            render=lambda v, row: format_multiplier(roas(row.get("revenue", 0), row.get("spend", 0))),
            align="right",
        ),
    ]


def _weekly_rows(weekly: pd.DataFrame) -> list[dict]:
    # roas is derived per row for display and sorting; the rollup stores none
    rows = []
    for rec in weekly.to_dict("records"):
        rows.append({**rec, "roas": roas(rec["revenue"], rec["spend"])})
    return rows


def _weekly_series(weekly: pd.DataFrame, name: str, col: str, color: str) -> dict:
    return {
        "name": name,
        "color": color,
        "data": [{"label": format_short_date(w), "value": v} for w, v in zip(weekly["week_start"], weekly[col])],
    }


def _case_weekly(aggregates: DashboardAggregates, params: Optional[Mapping] = None) -> dict:
    weekly = aggregates.weekly
    summary = weekly_summary(weekly)

    card_groups = [
        {
            "title": "Overall Performance Summary",
            "cards": [
                _card("Total Revenue", format_currency(summary.total_revenue)),
                _card("Total Spend", format_currency(summary.total_spend)),
                _card("Total Conversions", format_number(summary.total_conversions)),
                _card("Total Clicks", format_number(summary.total_clicks)),
            ],
        },
        {
            "title": "Weekly Averages",
            "cards": [
                _card("Average Weekly Revenue", format_currency(summary.average_weekly_revenue)),
                _card("Average Weekly Spend", format_currency(summary.average_weekly_spend)),
            ],
        },
    ]

    charts: list[dict] = []
    if weekly.empty:
        line_specs = [("Revenue by Week", []), ("Spend by Week", []), ("Revenue vs Spend by Week", []), ("Conversions & Clicks by Week", [])]
        for title, series in line_specs:
            _append_chart(charts, render_line_chart(layout_line_chart(series, title)))
    else:
        revenue = _weekly_series(weekly, "Revenue", "revenue", "#10B981")
        spend = _weekly_series(weekly, "Spend", "spend", "#3B82F6")
        line_specs = [
            ("Revenue by Week", [revenue], format_currency),
            ("Spend by Week", [spend], format_currency),
            ("Revenue vs Spend by Week", [revenue, {**spend, "color": "#EF4444"}], format_currency),
            (
                "Conversions & Clicks by Week",
                [
                    _weekly_series(weekly, "Conversions", "conversions", "#8B5CF6"),
                    _weekly_series(weekly, "Clicks", "clicks", "#F59E0B"),
                ],
                format_number,
            ),
        ]
        for title, series, fmt in line_specs:
            _append_chart(charts, render_line_chart(layout_line_chart(series, title, height=350, format_value=fmt)))

    table = Table(
        _weekly_rows(weekly),
        _weekly_columns(),
        default_sort=SortState("week_start", DESC),
        empty_message="No weekly performance data available",
        title="Detailed Weekly Performance",
        prefix="weekly",
    )
    return {"card_groups": card_groups, "charts": charts, "bubble_maps": [], "tables": [_table_view(table, params)]}


# ------------------------
# Region
# ------------------------

def _bubble_table(layout, secondary_label: str) -> Table:
    columns = [
        Column("region", "Region", sortable=False),
        Column("value", layout.metric, sortable=False, render=lambda v, row: format_currency(v), align="right"),
    ]
    if layout.has_secondary:
        columns.append(Column(
            "secondary_value",
            secondary_label,
            sortable=False,
            render=lambda v, row: "" if v is None else format_currency(v),
            align="right",
        ))
    return Table(layout.ranked, columns, show_index=False, empty_message="No data available")


def _bubble_map(
    regional: pd.DataFrame, title: str, metric: str, value_col: str, secondary_col: str, secondary_label: str, scheme: str
) -> dict:
    points = [
        {"region": r["region"], "country": r["country"], "value": r[value_col], "secondary_value": r[secondary_col]}
        for r in regional.to_dict("records")
    ]
    layout = layout_bubble_map(points, title, metric=metric, color_scheme=scheme, format_value=format_currency)
    return {
        "chart": render_bubble_map(layout),
        "metric": metric,
        "colors": layout.colors,
        "table": _bubble_table(layout, secondary_label).render(),
    }


def _regional_columns() -> list[Column]:
    return [
        Column("region", "Region", sort_type=STRING, render=lambda v, row: str(v or "")),
        Column("country", "Country", sort_type=STRING, render=lambda v, row: str(v or ""), align="center"),
        _count_col("impressions", "Impressions"),
        _count_col("clicks", "Clicks"),
        _count_col("conversions", "Conversions"),
        _money_col("spend", "Spend"),
        _money_col("revenue", "Revenue"),
        _pct_col("ctr", "CTR"),
        _pct_col("conversion_rate", "Conv. Rate"),
        Column("roas", "ROAS", sort_type=NUMBER, render=lambda v, row: format_multiplier(v, 1), align="right"),
    ]


def _top_regions(regional: pd.DataFrame, col: str, top_n: int = 8) -> pd.DataFrame:
    # top by revenue first, then re-ranked by the charted metric
    return regional.head(top_n).sort_values(col, ascending=False, kind="stable")


def _case_region(aggregates: DashboardAggregates, params: Optional[Mapping] = None) -> dict:
    regional = aggregates.regional
    summary = regional_summary(regional)

    card_groups = [
        {
            "title": "Regional Overview",
            "cards": [
                _card("Total Regions", summary.total_regions),
                _card("Total Revenue", format_currency(summary.total_revenue)),
                _card("Total Spend", format_currency(summary.total_spend)),
                _card("Top Performing Region", summary.top_region),
            ],
        },
    ]

    bubble_maps = [
        _bubble_map(regional, "Revenue by Region", "Revenue", "revenue", "spend", "Spend", "green"),
        _bubble_map(regional, "Spend by Region", "Spend", "spend", "revenue", "Revenue", "orange"),
    ]

    bar_specs = [
        ("Revenue by Region", "revenue", "#10B981", format_currency),
        ("ROAS by Region", "roas", "#8B5CF6", format_multiplier),
        ("Conversions by Region", "conversions", "#3B82F6", format_number),
        ("CTR by Region", "ctr", "#F59E0B", format_percent),
    ]
    charts: list[dict] = []
    for title, col, color, fmt in bar_specs:
        top = _top_regions(regional, col) if not regional.empty else regional
        entries = [{"label": r["region"], "value": r[col], "color": color} for r in top.to_dict("records")]
        _append_chart(charts, render_bar_chart(layout_bar_chart(entries, title, fmt), height=320))

    table = Table(
        regional,
        _regional_columns(),
        default_sort=SortState("revenue", DESC),
        empty_message="No regional performance data available",
        title="Detailed Regional Performance",
        prefix="region",
    )
    return {
        "card_groups": card_groups,
        "charts": charts,
        "bubble_maps": bubble_maps,
        "tables": [_table_view(table, params)],
    }


# ------------------------
# Dispatch
# ------------------------

_CASES = {
    "demographic": _case_demographic,
    "device": _case_device,
    "weekly": _case_weekly,
    "region": _case_region,
}


def build_view(page: str, aggregates: DashboardAggregates, params: Optional[Mapping] = None) -> dict:
    try:
        case = _CASES[page]
    except KeyError:
        raise ValueError(f"Unknown dashboard view '{page}'") from None
    return case(aggregates, params)
