"""Price chart aggregation and SVG plot geometry."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Sequence

from ..models import ChartDataPoint
from .sparkline import nearest_index

CHART_WIDTH = 800.0
CHART_HEIGHT = 300.0
CHART_MARGIN = (10.0, 10.0, 30.0, 50.0)  # top, right, bottom, left
DOMAIN_PAD = 1.0


def display_price(minor_units: int | float) -> float:
    """Convert a price in cents to dollars."""
    return minor_units / 100


@dataclass(frozen=True)
class ChartPoint:
    timestamp: datetime
    price: int
    display_price: float
    change_pct: float


@dataclass(frozen=True)
class ChartSummary:
    points: tuple[ChartPoint, ...]
    change_value: float
    change_percent: float
    current_price: float
    hovered: ChartPoint | None = None

    @property
    def is_empty(self) -> bool:
        return not self.points

    @property
    def is_positive(self) -> bool:
        return self.change_percent >= 0

    @property
    def stroke_color(self) -> str:
        return "#22c55e" if self.is_positive else "#ef4444"


def to_display_points(series: Sequence[ChartDataPoint]) -> tuple[ChartPoint, ...]:
    return tuple(
        ChartPoint(
            timestamp=point.timestamp,
            price=point.price,
            display_price=display_price(point.price),
            change_pct=point.change_pct,
        )
        for point in series
    )


def net_change(points: Sequence[ChartPoint]) -> tuple[float, float]:
    """Absolute and percent change from the first to the last point."""
    if len(points) < 2:
        return 0.0, 0.0
    first = points[0].display_price
    last = points[-1].display_price
    value = last - first
    if first == 0:
        return value, 0.0
    return value, (last - first) / first * 100


def summarize_chart(series: Sequence[ChartDataPoint], hover_index: int | None = None) -> ChartSummary:
    """
    Aggregate a chart series for display.

    ``hover_index`` selects the point under the pointer; the displayed current
    price follows it while set and falls back to the latest point otherwise.
    """
    points = to_display_points(series)
    value, percent = net_change(points)
    hovered = None
    if hover_index is not None and points:
        hovered = points[min(max(hover_index, 0), len(points) - 1)]
    if hovered is not None:
        current = hovered.display_price
    elif points:
        current = points[-1].display_price
    else:
        current = 0.0
    return ChartSummary(points=points, change_value=value, change_percent=percent, current_price=current, hovered=hovered)


@dataclass(frozen=True)
class AxisTick:
    position: float
    label: str


@dataclass(frozen=True)
class ChartPlot:
    width: float
    height: float
    coords: tuple[tuple[float, float], ...]
    baseline: float
    x_ticks: tuple[AxisTick, ...]
    y_ticks: tuple[AxisTick, ...]

    def line_path(self) -> str:
        head, *rest = self.coords
        return " ".join([f"M{head[0]:.1f},{head[1]:.1f}", *(f"L{x:.1f},{y:.1f}" for x, y in rest)])

    def area_path(self) -> str:
        first_x = self.coords[0][0]
        last_x = self.coords[-1][0]
        return f"{self.line_path()} L{last_x:.1f},{self.baseline:.1f} L{first_x:.1f},{self.baseline:.1f} Z"

    def hover_index(self, fraction: float) -> int:
        return nearest_index(fraction, len(self.coords))


def _date_label(value: datetime) -> str:
    return f"{value:%b} {value.day}"


def build_chart_plot(
    points: Sequence[ChartPoint],
    width: float = CHART_WIDTH,
    height: float = CHART_HEIGHT,
    x_tick_count: int = 6,
    y_tick_count: int = 5,
) -> ChartPlot | None:
    """Scale display points into an SVG viewport with a padded price domain."""
    if not points:
        return None
    top, right, bottom, left = CHART_MARGIN
    prices = [p.display_price for p in points]
    low = min(prices) - DOMAIN_PAD
    high = max(prices) + DOMAIN_PAD
    span = high - low
    inner_w = width - left - right
    inner_h = height - top - bottom
    baseline = top + inner_h
    count = len(points)

    def x_at(index: int) -> float:
        return left if count == 1 else left + index / (count - 1) * inner_w

    def y_at(price: float) -> float:
        return baseline - (price - low) / span * inner_h

    coords = tuple((x_at(i), y_at(p.display_price)) for i, p in enumerate(points))

    tick_slots = min(x_tick_count, count)
    x_indexes = sorted({round(i * (count - 1) / max(tick_slots - 1, 1)) for i in range(tick_slots)})
    x_ticks = tuple(AxisTick(position=x_at(i), label=_date_label(points[i].timestamp)) for i in x_indexes)

    y_ticks = []
    for step in range(y_tick_count):
        price = low + span * step / max(y_tick_count - 1, 1)
        y_ticks.append(AxisTick(position=y_at(price), label=f"${price:.0f}"))

    return ChartPlot(
        width=width,
        height=height,
        coords=coords,
        baseline=baseline,
        x_ticks=x_ticks,
        y_ticks=tuple(y_ticks),
    )
