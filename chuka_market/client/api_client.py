from typing import Any, Optional

import httpx

DEFAULT_BASE_URL = "http://localhost:5000"

# (filename, content, content_type) as httpx expects for a file part
ImageFile = tuple[str, bytes, str]


class MarketAPIError(Exception):
    """Raised for any non-2xx answer from the backend."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def error_message(response: httpx.Response, fallback: str) -> str:
    try:
        data = response.json()
    except ValueError:
        return fallback
    if isinstance(data, dict):
        detail = data.get("error") or data.get("detail")
        if isinstance(detail, str) and detail:
            return detail
    return fallback


class MarketClient:
    """Async HTTP client for the listing API and the auth endpoints."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        token: Optional[str] = None,
        timeout: float = 10.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        headers = {"Authorization": f"Bearer {token}"} if token else None
        self._http = httpx.AsyncClient(
            base_url=self.base_url, transport=transport, headers=headers, timeout=timeout
        )

    async def __aenter__(self) -> "MarketClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(self, method: str, url: str, fallback: str, **kwargs) -> Any:
        response = await self._http.request(method, url, **kwargs)
        if response.is_error:
            raise MarketAPIError(response.status_code, error_message(response, fallback))
        return response.json()

    async def list_products(self) -> list[dict]:
        return await self._request("GET", "/api/products", "Failed to load products")

    async def get_product(self, product_id: int) -> dict:
        return await self._request(
            "GET", f"/api/products/{product_id}", "Failed to load product"
        )

    async def create_product(
        self, fields: dict[str, Any], image: Optional[ImageFile] = None
    ) -> dict:
        return await self._request(
            "POST",
            "/api/products",
            "Failed to create listing",
            data=form_data(fields),
            files={"image": image} if image else None,
        )

    async def update_product(
        self, product_id: int, fields: dict[str, Any], image: Optional[ImageFile] = None
    ) -> dict:
        return await self._request(
            "PUT",
            f"/api/products/{product_id}",
            "Failed to update listing",
            data=form_data(fields),
            files={"image": image} if image else None,
        )

    async def delete_product(self, product_id: int) -> dict:
        return await self._request(
            "DELETE", f"/api/products/{product_id}", "Failed to delete listing"
        )

    async def test_connection(self) -> dict:
        return await self._request("GET", "/api/test", "Backend is not reachable")

    async def login(self, credentials: dict[str, str]) -> dict:
        return await self._request("POST", "/api/login", "Login failed.", json=credentials)

    async def register(self, details: dict[str, str]) -> dict:
        return await self._request(
            "POST", "/api/register", "Registration failed.", json=details
        )


def form_data(fields: dict[str, Any]) -> dict[str, str]:
    return {key: str(value) for key, value in fields.items() if value is not None}
