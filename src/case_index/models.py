"""Domain models and API envelopes for price-change data."""
from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

LOGGER = logging.getLogger(__name__)


class SortOption(str, Enum):
    """Ordering of search results by 24h change."""
    GAINERS = "gainers"
    LOSERS = "losers"


class ChartInterval(str, Enum):
    """History window of a price chart."""
    SEVEN_DAYS = "7d"
    ONE_MONTH = "1m"
    THREE_MONTHS = "3m"
    SIX_MONTHS = "6m"

    @property
    def label(self) -> str:
        return self.value.upper()


class CaseItem(BaseModel):
    """Immutable snapshot of one tradeable item and its latest price change."""

    item_id: int = Field(..., description="Upstream item identifier.")
    name: str = Field(..., description="Market display name.")
    icon_url: str = Field(default="", description="Steam economy image reference.")
    old_sell_price: int = Field(..., ge=0, description="Previous sell price in minor units (cents).")
    latest_sell_price: int = Field(..., ge=0, description="Latest sell price in minor units (cents).")
    change_pct: float = Field(..., description="Percent change from the previous to the latest price.")
    sparkline: list[float] | None = Field(default=None, description="Recent price samples, oldest first.")

    model_config = {
        "frozen": True,
        "extra": "ignore",
    }

    @model_validator(mode="after")
    def _check_change_sign(self) -> "CaseItem":
        if self.old_sell_price > 0 and self.change_pct != 0:
            delta = self.latest_sell_price - self.old_sell_price
            if delta != 0 and (delta > 0) != (self.change_pct > 0):
                raise ValueError(
                    f"change_pct {self.change_pct} disagrees with price move "
                    f"{self.old_sell_price} -> {self.latest_sell_price}"
                )
        return self

    @property
    def is_gainer(self) -> bool:
        return self.change_pct >= 0

    @property
    def latest_price(self) -> float:
        return self.latest_sell_price / 100

    @property
    def old_price(self) -> float:
        return self.old_sell_price / 100


class ChartDataPoint(BaseModel):
    timestamp: datetime
    price: int = Field(..., ge=0, description="Price in minor units.")
    change_pct: float = Field(default=0.0, description="Change relative to the first point of the series.")

    model_config = {"frozen": True, "extra": "ignore"}


class PriceStat(BaseModel):
    interval: str
    label: str
    high_price: int = Field(..., ge=0)
    low_price: int = Field(..., ge=0)

    model_config = {"frozen": True, "extra": "ignore"}

    @model_validator(mode="after")
    def _check_range(self) -> "PriceStat":
        if self.high_price < self.low_price:
            raise ValueError(f"high_price {self.high_price} is below low_price {self.low_price}")
        return self


class SearchParams(BaseModel):
    """Parameters of one paginated search; part of the search cache key."""

    query: str = ""
    page: int = Field(default=1, ge=1)
    sort_by: SortOption = SortOption.GAINERS

    model_config = {"frozen": True}

    @field_validator("query", mode="before")
    @classmethod
    def _coerce_query(cls, value: Any) -> str:
        return "" if value is None else str(value)

    def as_query_params(self) -> dict[str, Any]:
        return {"query": self.query, "page": self.page, "sort_by": self.sort_by.value}


class PriceChangesPage(BaseModel):
    items: list[CaseItem] = Field(default_factory=list)
    total: int = Field(default=0, ge=0)

    model_config = {"frozen": True}

    @field_validator("items", mode="before")
    @classmethod
    def _drop_invalid_items(cls, value: Any) -> Any:
        """Skip items that fail validation so one bad row does not sink the page."""
        if not isinstance(value, list):
            return value
        kept = []
        for raw in value:
            try:
                kept.append(raw if isinstance(raw, CaseItem) else CaseItem.model_validate(raw))
            except ValidationError as exc:
                LOGGER.warning("Dropping invalid item %r: %s", raw.get("item_id") if isinstance(raw, dict) else raw, exc)
        return kept


class PriceChangesResponse(BaseModel):
    success: bool
    data: PriceChangesPage = Field(default_factory=PriceChangesPage)

    model_config = {"frozen": True}


class ChartResponse(BaseModel):
    success: bool
    data: list[ChartDataPoint] = Field(default_factory=list)

    model_config = {"frozen": True}

    @field_validator("data")
    @classmethod
    def _check_order(cls, value: list[ChartDataPoint]) -> list[ChartDataPoint]:
        for previous, current in zip(value, value[1:]):
            if current.timestamp < previous.timestamp:
                raise ValueError("chart series is not ordered by timestamp")
        return value


class PriceStatsResponse(BaseModel):
    success: bool
    data: list[PriceStat] = Field(default_factory=list)

    model_config = {"frozen": True}
