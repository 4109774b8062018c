from __future__ import annotations

from dataclasses import dataclass, field
from io import BytesIO
import base64
import math
from typing import Any, Callable, Iterable, Optional, Sequence

import matplotlib
matplotlib.use("Agg")  # headless
import matplotlib.pyplot as plt
from matplotlib.patches import Circle, Polygon

from . import geocode
from .formatting import format_currency, format_integer, format_number


# Chart primitives. Each chart is first laid out as plain geometry
# (pure, testable), then rasterised with matplotlib for the page.

_PALETTE = [
    "#4e79a7", "#f28e2b", "#e15759", "#76b7b2", "#59a14f",
    "#edc949", "#af7aa1", "#ff9da7", "#9c755f", "#bab0ab",
]

COLOR_SCHEMES: dict[str, dict[str, str]] = {
    "blue": {"main": "#3B82F6", "light": "#60A5FA", "dark": "#1E40AF", "glow": "#3B82F6"},
    "green": {"main": "#10B981", "light": "#34D399", "dark": "#059669", "glow": "#10B981"},
    "red": {"main": "#EF4444", "light": "#F87171", "dark": "#B91C1C", "glow": "#EF4444"},
    "purple": {"main": "#8B5CF6", "light": "#A78BFA", "dark": "#6D28D9", "glow": "#8B5CF6"},
    "orange": {"main": "#F97316", "light": "#FB923C", "dark": "#C2410C", "glow": "#F97316"},
}

NO_DATA = "No data available"


def _colors(n: int) -> list[str]:
    base = list(_PALETTE)
    return (base * ((n + len(base) - 1) // len(base)))[:n]


def _apply_theme(ax) -> None:
    ax.set_facecolor("#f9fafb")
    ax.grid(True, axis="y", linestyle="--", alpha=0.35)
    ax.set_axisbelow(True)
    for spine in ("top", "right"):
        ax.spines[spine].set_visible(False)


def _fig_to_base64(fig) -> str:
    buf = BytesIO()
    fig.tight_layout()
    fig.savefig(buf, format="png", dpi=140)
    plt.close(fig)
    return base64.b64encode(buf.getvalue()).decode("ascii")


def _chart_from_fig(title: str, fig) -> dict:
    return {"title": title, "png_base64": _fig_to_base64(fig), "empty": False}


def _chart_placeholder(title: str) -> dict:
    return {"title": title, "png_base64": None, "empty": True, "message": NO_DATA}


def _get(item: Any, key: str, default: Any = None) -> Any:
    if isinstance(item, dict):
        return item.get(key, default)
    return getattr(item, key, default)


def _finite(value: Any) -> float:
    try:
        v = float(value)
    except (TypeError, ValueError):
        return 0.0
    return v if math.isfinite(v) else 0.0


# ------------------------
# Bar
# ------------------------

@dataclass
class Bar:
    label: str
    value: float
    color: str
    fraction: float
    text: str


@dataclass
class BarChartLayout:
    title: str
    bars: list[Bar] = field(default_factory=list)
    max_value: float = 0.0

    @property
    def empty(self) -> bool:
        return not self.bars


def layout_bar_chart(
    entries: Iterable[Any],
    title: str = "",
    format_value: Callable[[float], str] = format_integer,
) -> BarChartLayout:
    '''
    One bar per ``{label, value, color}`` entry, length proportional to the
    largest value. Zero (or negative) values get a zero-length bar.
    '''
    items = list(entries)
    values = [_finite(_get(e, "value", 0)) for e in items]
    max_value = max(values) if values else 0.0
    fallback = _colors(len(items))

    layout = BarChartLayout(title=title, max_value=max_value)
    for i, (entry, value) in enumerate(zip(items, values)):
        fraction = value / max_value if max_value > 0 else 0.0
        layout.bars.append(
            Bar(
                label=str(_get(entry, "label", "")),
                value=value,
                color=_get(entry, "color") or fallback[i],
                fraction=min(max(fraction, 0.0), 1.0),
                text=format_value(value),
            )
        )
    return layout


def render_bar_chart(layout: BarChartLayout, height: int = 280) -> dict:
    if layout.empty:
        return _chart_placeholder(layout.title)
    fig, ax = plt.subplots(figsize=(7.5, height / 80))
    xs = list(range(len(layout.bars)))
    ax.bar(
        xs,
        [b.fraction for b in layout.bars],
        color=[b.color for b in layout.bars],
        edgecolor="#ffffff",
        linewidth=0.6,
    )
    for x, b in zip(xs, layout.bars):
        ax.annotate(b.text, (x, b.fraction), xytext=(0, 4), textcoords="offset points", ha="center", fontsize=8)
    ax.set_xticks(xs)
    ax.set_xticklabels([b.label for b in layout.bars], rotation=30 if len(xs) > 4 else 0)
    ax.set_ylim(0, 1.15)
    ax.set_yticks([])
    ax.set_title(layout.title)
    _apply_theme(ax)
    return _chart_from_fig(layout.title, fig)


# ------------------------
# Line (multi-series)
# ------------------------

@dataclass
class LinePoint:
    label: str
    value: float
    x: float
    y: float
    tooltip: str


@dataclass
class LinePath:
    name: str
    color: str
    points: list[LinePoint] = field(default_factory=list)

    @property
    def polyline(self) -> str:
        return " ".join(f"{p.x:g},{p.y:g}" for p in self.points)


@dataclass
class LineChartLayout:
    title: str
    height: int
    chart_height: float
    width: float
    labels: list[str] = field(default_factory=list)
    series: list[LinePath] = field(default_factory=list)
    chart_min: float = 0.0
    chart_max: float = 0.0
    y_ticks: list[tuple[float, str]] = field(default_factory=list)
    grid_lines: list[float] = field(default_factory=list)
    empty: bool = False

    def y_position(self, value: float) -> float:
        chart_range = self.chart_max - self.chart_min
        if chart_range == 0:
            return self.chart_height / 2
        return self.chart_height - ((value - self.chart_min) / chart_range) * self.chart_height

    def x_position(self, index: int) -> float:
        if len(self.labels) <= 1:
            return self.width / 2
        return (index / (len(self.labels) - 1)) * self.width


def layout_line_chart(
    series: Sequence[Any],
    title: str = "",
    height: int = 300,
    width: float = 100,
    format_value: Callable[[float], str] = format_number,
    floor_at_zero: bool = True,
) -> LineChartLayout:
    '''
    Lay out N series over one shared value domain.

    The domain spans every value of every series, padded by 10% of its
    range on both ends. For non-negative data the lower end is floored at
    0 unless ``floor_at_zero`` is off. A flat domain draws at mid-height; a single
    label sits at mid-width. ``y`` grows downwards, so the maximum is on top.
    Series are ``{name, data: [{label, value}], color}``.
    '''
    layout = LineChartLayout(title=title, height=height, chart_height=height - 80, width=width)
    series = list(series or [])
    datasets = [list(_get(s, "data", None) or []) for s in series]
    if not datasets or all(len(d) == 0 for d in datasets):
        layout.empty = True
        return layout

    values = [_finite(_get(p, "value", 0)) for d in datasets for p in d]
    max_value = max(values)
    min_value = min(values)
    padding = (max_value - min_value) * 0.1
    layout.chart_min = min_value - padding
    if floor_at_zero and min_value >= 0:
        layout.chart_min = max(0.0, layout.chart_min)
    layout.chart_max = max_value + padding

    label_source = next(d for d in datasets if d)
    layout.labels = [str(_get(p, "label", "")) for p in label_source]

    fallback = _colors(len(series))
    for i, (s, data) in enumerate(zip(series, datasets)):
        name = str(_get(s, "name", ""))
        path = LinePath(name=name, color=_get(s, "color") or fallback[i])
        for j, p in enumerate(data):
            value = _finite(_get(p, "value", 0))
            path.points.append(
                LinePoint(
                    label=str(_get(p, "label", "")),
                    value=value,
                    x=layout.x_position(j),
                    y=layout.y_position(value),
                    tooltip=f"{name}: {format_value(value)}",
                )
            )
        layout.series.append(path)

    hi, lo = layout.chart_max, layout.chart_min
    for tick in (hi, hi * 0.75 + lo * 0.25, hi * 0.5 + lo * 0.5, hi * 0.25 + lo * 0.75):
        layout.y_ticks.append((tick, format_value(tick)))
    layout.grid_lines = [layout.chart_height * (1 - r) for r in (0.25, 0.5, 0.75)]
    return layout


def render_line_chart(layout: LineChartLayout, show_legend: bool = True) -> dict:
    if layout.empty:
        return _chart_placeholder(layout.title)
    fig, ax = plt.subplots(figsize=(12, layout.height / 70))
    for y in layout.grid_lines:
        ax.axhline(y, color="#374151", linewidth=0.4, alpha=0.5)
    for path in layout.series:
        xs = [p.x for p in path.points]
        ys = [p.y for p in path.points]
        ax.plot(xs, ys, label=path.name, color=path.color, linewidth=2.0, marker="o", markersize=3.5)
    ax.set_xlim(-2, layout.width + 2)
    ax.set_ylim(layout.chart_height, 0)
    ax.set_xticks([layout.x_position(i) for i in range(len(layout.labels))])
    ax.set_xticklabels(layout.labels, rotation=45 if len(layout.labels) > 8 else 0)
    ax.set_yticks([layout.y_position(v) for v, _ in layout.y_ticks])
    ax.set_yticklabels([text for _, text in layout.y_ticks])
    ax.set_title(layout.title)
    if show_legend:
        ax.legend(ncol=3, frameon=False)
    _apply_theme(ax)
    return _chart_from_fig(layout.title, fig)


# ------------------------
# Bubble map
# ------------------------

MIN_RADIUS = 8.0
SIZE_SPAN = 24.0


def bubble_fraction(value: float, min_value: float, max_value: float) -> float:
    '''
    Square root of the value's position in [min, max], so that bubble
    area, not radius, is linear in value. 0.5 for a flat batch.
    '''
    if max_value == min_value:
        return 0.5
    return math.sqrt((value - min_value) / (max_value - min_value))


@dataclass
class Bubble:
    region: str
    country: str
    value: float
    secondary_value: Optional[float]
    x: float
    y: float
    size: float
    opacity: float
    known_region: bool
    tooltip: str


@dataclass
class BubbleMapLayout:
    title: str
    metric: str
    colors: dict[str, str]
    bubbles: list[Bubble] = field(default_factory=list)
    ranked: list[Bubble] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.bubbles

    @property
    def has_secondary(self) -> bool:
        return any(b.secondary_value is not None for b in self.ranked)


def layout_bubble_map(
    points: Iterable[Any],
    title: str = "",
    metric: str = "Value",
    color_scheme: str = "green",
    format_value: Callable[[float], str] = format_currency,
    min_radius: float = MIN_RADIUS,
    size_span: float = SIZE_SPAN,
) -> BubbleMapLayout:
    '''
    Place ``{region, country, value, secondaryValue?}`` points on the static
    region map. Unknown regions fall back to the default coordinate.
    ``bubbles`` is in draw order (largest first); ``ranked`` is sorted by
    value, highest first, for the table under the map.
    '''
    colors = COLOR_SCHEMES.get(color_scheme, COLOR_SCHEMES["green"])
    layout = BubbleMapLayout(title=title, metric=metric, colors=colors)
    items = list(points)
    if not items:
        return layout

    values = [_finite(_get(p, "value", 0)) for p in items]
    lo, hi = min(values), max(values)

    placed: list[Bubble] = []
    for p, value in zip(items, values):
        region = str(_get(p, "region", ""))
        country = str(_get(p, "country", ""))
        secondary = _get(p, "secondary_value", _get(p, "secondaryValue"))
        secondary = None if secondary is None else _finite(secondary)
        coords = geocode.lookup(region)
        normalized = bubble_fraction(value, lo, hi)
        tooltip = f"{region}, {country}\n{metric}: {format_value(value)}"
        if secondary is not None:
            tooltip += f"\nSecondary: {format_value(secondary)}"
        placed.append(
            Bubble(
                region=region,
                country=country,
                value=value,
                secondary_value=secondary,
                x=coords.x,
                y=coords.y,
                size=min_radius + normalized * size_span,
                opacity=0.7 + normalized * 0.3,
                known_region=geocode.is_known(region),
                tooltip=tooltip,
            )
        )

    layout.bubbles = sorted(placed, key=lambda b: b.size, reverse=True)
    layout.ranked = sorted(placed, key=lambda b: b.value, reverse=True)
    return layout


def render_bubble_map(layout: BubbleMapLayout, height: int = 450) -> dict:
    if layout.empty:
        return _chart_placeholder(layout.title)
    colors = layout.colors
    size = height / 70
    px = 100 / height  # bubble sizes are pixels; the map axes span 0..100
    fig, ax = plt.subplots(figsize=(size, size))
    ax.add_patch(Polygon(geocode.MAP_OUTLINE, closed=True, facecolor="#1F2937", edgecolor="#374151", linewidth=0.6, alpha=0.8))
    for b in layout.bubbles:
        r = b.size * px
        ax.add_patch(Circle((b.x, b.y), r * 1.4, facecolor=colors["glow"], alpha=0.12, linewidth=0))
        ax.add_patch(Circle((b.x, b.y), r, facecolor=colors["main"], edgecolor=colors["dark"], linewidth=0.6, alpha=b.opacity))
        ax.text(b.x, b.y + r + 1.5, b.region, ha="center", va="top", fontsize=7, fontweight="semibold", color="#E5E7EB")
    ax.set_xlim(0, 100)
    ax.set_ylim(100, 0)
    ax.set_aspect("equal")
    ax.set_xticks([])
    ax.set_yticks([])
    ax.set_title(f"{layout.title}\nBubble size represents {layout.metric.lower()}")
    ax.set_facecolor("#111827")
    return _chart_from_fig(layout.title, fig)
