from __future__ import annotations

from urllib.parse import quote

from ..config import get_settings


def format_price(minor_units: int | float) -> str:
    return f"${minor_units / 100:.2f}"


def format_dollars(value: float) -> str:
    return f"${value:.2f}"


def format_change(change_pct: float, signed: bool = True) -> str:
    if not signed:
        return f"{abs(change_pct):.2f}%"
    sign = "+" if change_pct >= 0 else ""
    return f"{sign}{change_pct:.2f}%"


def image_url(icon_url: str, size: int = 128) -> str:
    base = get_settings().steam_image_base_url
    return f"{base}{icon_url}/{size}fx{size}f"


def market_url(name: str) -> str:
    return f"{get_settings().steam_market_url}{quote(name, safe='')}"


def plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'' if count == 1 else 's'}"
