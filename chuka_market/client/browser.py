import logging
from typing import Iterable, Optional
from urllib.parse import quote

import httpx
import phonenumbers

from chuka_market.client.api_client import MarketAPIError, MarketClient
from chuka_market.models.enums.product_category import ProductCategory

logger = logging.getLogger(__name__)

ALL_CATEGORIES = "all"
CATEGORY_FILTERS = [ALL_CATEGORIES] + [c.value for c in ProductCategory]
PLACEHOLDER_IMAGE = "/api/placeholder/400/300"
WHATSAPP_URL = "https://wa.me"


def matches(product: dict, search_term: str, category_filter: str) -> bool:
    term = search_term.lower()
    matches_search = (
        term in (product.get("title") or "").lower()
        or term in (product.get("description") or "").lower()
    )
    matches_category = (
        category_filter == ALL_CATEGORIES or product.get("category") == category_filter
    )
    return matches_search and matches_category


def filter_products(
    products: Iterable[dict],
    search_term: str = "",
    category_filter: str = ALL_CATEGORIES,
) -> list[dict]:
    return [p for p in products if matches(p, search_term, category_filter)]


def normalise_phone_number(phone_number: str, region: str = "KE") -> str:
    """Returns the number as international digits, the form wa.me expects."""
    try:
        parsed = phonenumbers.parse(phone_number, region)
    except phonenumbers.NumberParseException:
        parsed = None

    if parsed is not None and phonenumbers.is_possible_number(parsed):
        formatted = phonenumbers.format_number(
            parsed, phonenumbers.PhoneNumberFormat.E164
        )
        return formatted.lstrip("+")
    return "".join(ch for ch in phone_number if ch.isdigit())


def contact_seller_url(phone_number: str, product_title: str, region: str = "KE") -> str:
    # same escaping as encodeURIComponent
    text = f"Hi, I'm interested in your product: {product_title}"
    message = quote(text, safe="!~*'()")
    return f"{WHATSAPP_URL}/{normalise_phone_number(phone_number, region)}?text={message}"


class ListingBrowser:
    """
    View state of the listing grid.

    The whole collection is fetched once. Search and category filtering run
    over that cached list on every change, nothing is sent back to the server.
    """

    def __init__(self, client: MarketClient, phone_region: str = "KE") -> None:
        self.client = client
        self.phone_region = phone_region
        self.products: list[dict] = []
        self.loading = True
        self.error: Optional[str] = None
        self.search_term = ""
        self.category_filter = ALL_CATEGORIES

    async def load(self) -> None:
        try:
            self.products = await self.client.list_products()
        except MarketAPIError as e:
            logger.error("Error fetching products: %s", e)
            self.error = e.message
        except httpx.HTTPError as e:
            logger.error("Error fetching products: %s", e)
            self.error = "Could not reach the server"
        finally:
            self.loading = False

    def set_search_term(self, search_term: str) -> None:
        self.search_term = search_term

    def set_category_filter(self, category: str) -> None:
        if category not in CATEGORY_FILTERS:
            raise ValueError(f"Unknown category filter '{category}'")
        self.category_filter = category

    @property
    def visible(self) -> list[dict]:
        return filter_products(self.products, self.search_term, self.category_filter)

    @property
    def is_empty(self) -> bool:
        return not self.loading and not self.visible

    def image_src(self, product: dict) -> str:
        image_url = product.get("image_url")
        if not image_url:
            return PLACEHOLDER_IMAGE
        if image_url.startswith(("data:image", "http://", "https://")):
            return image_url
        return f"{self.client.base_url}{image_url}"

    def contact_seller(self, product: dict) -> str:
        return contact_seller_url(
            product.get("phone_number") or "", product["title"], self.phone_region
        )
