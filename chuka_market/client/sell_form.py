import asyncio
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Awaitable, Callable, Optional

import httpx

from chuka_market.client.api_client import ImageFile, MarketAPIError, MarketClient
from chuka_market.models.enums.product_category import ProductCategory

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("title", "description", "price", "category", "phone_number")
SUCCESS_MESSAGE = "Your item has been listed successfully!"
FAILURE_MESSAGE = "Failed to create listing"


def empty_form() -> dict[str, Any]:
    return {
        "title": "",
        "description": "",
        "price": "",
        "category": ProductCategory.ELECTRONICS.value,
        "location": "",
        "phone_number": "",
    }


class SellItemForm:
    """Local state of the "Sell Your Item" form."""

    def __init__(self, client: MarketClient, redirect_delay: float = 2.0) -> None:
        self.client = client
        self.redirect_delay = redirect_delay
        self.fields = empty_form()
        self.image: Optional[ImageFile] = None
        self.loading = False
        self.error = ""
        self.success = ""
        self.created: Optional[dict] = None

    def set_field(self, name: str, value: Any) -> None:
        if name not in self.fields:
            raise KeyError(name)
        self.fields[name] = value

    def set_image(self, filename: str, content: bytes, content_type: str) -> None:
        self.image = (filename, content, content_type)

    def reset(self) -> None:
        self.fields = empty_form()
        self.image = None

    def validate(self) -> list[str]:
        """Client-side required-field check, the server validates again."""
        problems = [
            f"{name} is required"
            for name in REQUIRED_FIELDS
            if not str(self.fields.get(name) or "").strip()
        ]
        if self.image is None:
            problems.append("image is required")

        price = str(self.fields.get("price") or "").strip()
        if price:
            try:
                if Decimal(price) < 0:
                    problems.append("price must not be negative")
            except InvalidOperation:
                problems.append("price must be a number")

        if self.fields.get("category") not in [c.value for c in ProductCategory]:
            problems.append("category is not valid")
        return problems

    async def submit(
        self, navigate: Optional[Callable[[], Awaitable[None]]] = None
    ) -> bool:
        self.loading = True
        self.error = ""
        self.success = ""
        try:
            problems = self.validate()
            if problems:
                self.error = "; ".join(problems)
                return False

            self.created = await self.client.create_product(self.fields, self.image)
        except MarketAPIError as e:
            self.error = e.message or FAILURE_MESSAGE
            return False
        except httpx.HTTPError as e:
            logger.error("Could not submit listing: %s", e)
            self.error = FAILURE_MESSAGE
            return False
        finally:
            self.loading = False

        self.success = SUCCESS_MESSAGE
        self.reset()

        if navigate is not None:
            await asyncio.sleep(self.redirect_delay)
            await navigate()
        return True
