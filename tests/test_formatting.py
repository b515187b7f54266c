from case_index.core.formatting import format_change, format_dollars, format_price, image_url, market_url, plural


def test_format_price_from_cents():
    assert format_price(1234) == "$12.34"
    assert format_price(5) == "$0.05"
    assert format_dollars(3.5) == "$3.50"


def test_format_change():
    assert format_change(5.123) == "+5.12%"
    assert format_change(0) == "+0.00%"
    assert format_change(-2.5) == "-2.50%"
    assert format_change(-2.5, signed=False) == "2.50%"


def test_steam_links():
    assert image_url("abc", 64) == "https://community.fastly.steamstatic.com/economy/image/abc/64fx64f"
    assert market_url("Chroma 2 Case") == "https://steamcommunity.com/market/listings/730/Chroma%202%20Case"
    assert market_url("Operation Breakout/Case").endswith("Operation%20Breakout%2FCase")


def test_plural():
    assert plural(1, "case") == "1 case"
    assert plural(0, "case") == "0 cases"
    assert plural(45, "case") == "45 cases"
