"""Sparkline geometry: scale samples into a small SVG plot and resolve hovers."""
from __future__ import annotations

from dataclasses import dataclass
from math import floor
from typing import Sequence

WIDTH = 100.0
HEIGHT = 32.0
PADDING = 2.0


@dataclass(frozen=True)
class SparkPoint:
    x: float
    y: float
    value: float
    index: int


@dataclass(frozen=True)
class Sparkline:
    points: tuple[SparkPoint, ...]
    width: float
    height: float
    padding: float
    low: float
    high: float

    @property
    def baseline(self) -> float:
        return self.height - self.padding

    @property
    def is_rising(self) -> bool:
        return self.points[-1].value >= self.points[0].value

    def polyline(self) -> str:
        """``points`` attribute for an SVG ``<polyline>``."""
        return " ".join(f"{_fmt(p.x)},{_fmt(p.y)}" for p in self.points)

    def area_polygon(self) -> list[tuple[float, float]]:
        """Closed fill shape: baseline-left, every point, baseline-right."""
        left = (self.padding, self.baseline)
        right = (self.points[-1].x, self.baseline)
        return [left, *((p.x, p.y) for p in self.points), right]

    def area_path(self) -> str:
        coords = self.area_polygon()
        head, *rest = coords
        segments = [f"M{_fmt(head[0])},{_fmt(head[1])}"]
        segments.extend(f"L{_fmt(x)},{_fmt(y)}" for x, y in rest)
        segments.append("Z")
        return " ".join(segments)

    def hover(self, fraction: float) -> SparkPoint:
        return self.points[nearest_index(fraction, len(self.points))]


def _fmt(value: float) -> str:
    return f"{value:.2f}".rstrip("0").rstrip(".")


def nearest_index(fraction: float, count: int) -> int:
    """Index of the sample closest to a pointer at ``fraction`` of the plot width."""
    if count <= 0:
        raise ValueError("count must be positive")
    fraction = min(max(fraction, 0.0), 1.0)
    # Half-up rounding, matching Math.round in the browser.
    index = floor(fraction * (count - 1) + 0.5)
    return min(max(index, 0), count - 1)


def build_sparkline(
    samples: Sequence[float] | None,
    width: float = WIDTH,
    height: float = HEIGHT,
    padding: float = PADDING,
) -> Sparkline | None:
    """Scale ``samples`` into plot coordinates; ``None`` when there is nothing to draw."""
    if not samples:
        return None
    values = [float(s) for s in samples]
    low = min(values)
    high = max(values)
    flat = high == low
    span = (high - low) or 1.0
    count = len(values)
    inner_width = width - 2 * padding
    inner_height = height - 2 * padding
    baseline = height - padding

    points = []
    for index, value in enumerate(values):
        x = padding if count == 1 else padding + index / (count - 1) * inner_width
        # Flat series sit on the vertical centre of the plot.
        y = height / 2 if flat else baseline - (value - low) / span * inner_height
        points.append(SparkPoint(x=x, y=y, value=value, index=index))
    return Sparkline(points=tuple(points), width=width, height=height, padding=padding, low=low, high=high)
