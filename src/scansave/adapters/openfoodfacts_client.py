"""Open Food Facts API client."""

from dataclasses import dataclass
from typing import Protocol

import httpx

ALTERNATIVE_FIELDS = (
    "code,product_name,brands,nutriscore_grade,image_front_url,categories_tags"
)


class OpenFoodFactsClient(Protocol):
    """Interface for Open Food Facts API interactions."""

    async def get_product(self, barcode: str) -> dict[str, object]:
        """Fetch a product by barcode and return raw API data."""

    async def search_products(
        self,
        category: str | None,
        nutriscore_grades: list[str] | None,
        page_size: int = 6,
    ) -> dict[str, object]:
        """Search popular products and return raw API data."""


@dataclass
class HttpxOpenFoodFactsClient(OpenFoodFactsClient):
    """HTTPX-backed Open Food Facts client."""

    base_url: str
    search_url: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, base_url: str, search_url: str) -> "HttpxOpenFoodFactsClient":
        """Create a client with a managed httpx session."""
        return cls(
            base_url=base_url,
            search_url=search_url,
            http_client=httpx.AsyncClient(
                headers={"User-Agent": "ScanSave/0.1 (scansave backend)"}
            ),
        )

    async def get_product(self, barcode: str) -> dict[str, object]:
        """Fetch a product; an unknown barcode yields an empty payload."""
        url = f"{self.base_url}/product/{barcode}.json"
        response = await self.http_client.get(url, timeout=15)
        if response.status_code == httpx.codes.NOT_FOUND:
            return {}
        response.raise_for_status()
        return response.json()

    async def search_products(
        self,
        category: str | None,
        nutriscore_grades: list[str] | None,
        page_size: int = 6,
    ) -> dict[str, object]:
        """Search products sorted by popularity."""
        params: dict[str, str] = {
            "fields": ALTERNATIVE_FIELDS,
            "page_size": str(page_size),
            "sort_by": "unique_scans_n",
        }
        if category:
            params["categories_tags"] = category
        if nutriscore_grades:
            params["nutriscore_grade"] = "|".join(nutriscore_grades)
        response = await self.http_client.get(self.search_url, params=params, timeout=15)
        response.raise_for_status()
        return response.json()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
