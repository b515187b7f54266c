"""Position of the current price within historical high/low ranges."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from ..models import PriceStat

NEAR_HIGH_ABOVE = 70.0
NEAR_LOW_BELOW = 30.0


class RangeZone(str, Enum):
    NEAR_HIGH = "near_high"
    NEAR_LOW = "near_low"
    NEUTRAL = "neutral"


def range_position(current: int, low: int, high: int) -> float:
    """Percent position of ``current`` between ``low`` and ``high``, clamped to [0, 100]."""
    current_major = current / 100
    low_major = low / 100
    high_major = high / 100
    span = high_major - low_major
    position = (current_major - low_major) / span * 100 if span > 0 else 50.0
    return max(0.0, min(100.0, position))


def classify_position(position: float) -> RangeZone:
    if position > NEAR_HIGH_ABOVE:
        return RangeZone.NEAR_HIGH
    if position < NEAR_LOW_BELOW:
        return RangeZone.NEAR_LOW
    return RangeZone.NEUTRAL


@dataclass(frozen=True)
class StatCard:
    interval: str
    label: str
    high: float
    low: float
    current: float
    position: float
    zone: RangeZone

    def to_dict(self) -> dict:
        return {
            "interval": self.interval,
            "label": self.label,
            "high": self.high,
            "low": self.low,
            "current": self.current,
            "position": round(self.position, 2),
            "zone": self.zone.value,
        }


def build_stat_card(stat: PriceStat, current_price: int) -> StatCard:
    position = range_position(current_price, stat.low_price, stat.high_price)
    return StatCard(
        interval=stat.interval,
        label=stat.label,
        high=stat.high_price / 100,
        low=stat.low_price / 100,
        current=current_price / 100,
        position=position,
        zone=classify_position(position),
    )


def build_stat_cards(stats: Sequence[PriceStat], current_price: int) -> list[StatCard]:
    return [build_stat_card(stat, current_price) for stat in stats]
