import pytest
import pytest_asyncio
from httpx import ASGITransport

from chuka_market.client.api_client import MarketClient
from chuka_market.client.browser import (
    PLACEHOLDER_IMAGE,
    ListingBrowser,
    contact_seller_url,
    filter_products,
    normalise_phone_number,
)

CHAIR = {
    "id": 1,
    "title": "Chair",
    "description": "Wooden, four legs",
    "category": "furniture",
    "phone_number": "0712345678",
}
PHONE = {
    "id": 2,
    "title": "Phone",
    "description": "Android, cracked screen",
    "category": "electronics",
    "phone_number": "+254 700 000 001",
}


@pytest_asyncio.fixture()
async def market_client(app):
    async with MarketClient("http://test", transport=ASGITransport(app=app)) as client:
        yield client


def test_filter_by_category():
    assert filter_products([CHAIR, PHONE], category_filter="electronics") == [PHONE]


def test_search_ignores_case_with_all_categories():
    assert filter_products([CHAIR, PHONE], search_term="cha") == [CHAIR]
    assert filter_products([CHAIR, PHONE], search_term="CHA", category_filter="all") == [
        CHAIR
    ]


def test_search_matches_description():
    assert filter_products([CHAIR, PHONE], search_term="cracked") == [PHONE]


def test_search_and_category_combine():
    assert filter_products([CHAIR, PHONE], "cha", "electronics") == []


def test_empty_search_shows_everything():
    assert filter_products([CHAIR, PHONE]) == [CHAIR, PHONE]


def test_normalise_local_kenyan_number():
    assert normalise_phone_number("0712345678") == "254712345678"


def test_normalise_international_number():
    assert normalise_phone_number("+254 700 000 001") == "254700000001"


def test_normalise_falls_back_to_digits():
    assert normalise_phone_number("call 12") == "12"


def test_contact_seller_url():
    url = contact_seller_url("0712345678", "Chair & table")

    assert url == (
        "https://wa.me/254712345678?text="
        "Hi%2C%20I'm%20interested%20in%20your%20product%3A%20Chair%20%26%20table"
    )


@pytest.mark.asyncio
async def test_browser_loads_once_and_filters_locally(market_client, async_client):
    for title, category in (("Chair", "furniture"), ("Phone", "electronics")):
        payload = {
            "title": title,
            "description": f"Second hand {title.lower()}",
            "price": "500",
            "category": category,
        }
        response = await async_client.post("/api/products", data=payload)
        assert response.status_code == 201

    browser = ListingBrowser(market_client)
    assert browser.loading is True

    await browser.load()

    assert browser.loading is False
    assert browser.error is None
    assert len(browser.products) == 2

    browser.set_category_filter("electronics")
    assert [p["title"] for p in browser.visible] == ["Phone"]

    browser.set_category_filter("all")
    browser.set_search_term("cha")
    assert [p["title"] for p in browser.visible] == ["Chair"]

    browser.set_search_term("nothing like this")
    assert browser.is_empty


@pytest.mark.asyncio
async def test_browser_rejects_unknown_category(market_client):
    browser = ListingBrowser(market_client)

    with pytest.raises(ValueError):
        browser.set_category_filter("toys")


def test_image_src():
    browser = ListingBrowser(MarketClient("http://localhost:5000"))

    assert browser.image_src({"image_url": None}) == PLACEHOLDER_IMAGE
    assert browser.image_src({"image_url": "data:image/png;base64,AAAA"}) == (
        "data:image/png;base64,AAAA"
    )
    assert browser.image_src({"image_url": "/uploads/a.png"}) == (
        "http://localhost:5000/uploads/a.png"
    )
    assert browser.image_src(
        {"image_url": "https://storage.googleapis.com/bucket/products/a.png"}
    ) == ("https://storage.googleapis.com/bucket/products/a.png")


def test_contact_seller_from_product():
    browser = ListingBrowser(MarketClient("http://localhost:5000"))

    assert browser.contact_seller(PHONE).startswith("https://wa.me/254700000001?text=")
