"""Open Food Facts product API client."""

from dataclasses import dataclass
from typing import Protocol

import httpx


class OpenFoodFactsClient(Protocol):
    """Interface for Open Food Facts product lookups."""

    async def get_product(self, barcode: str) -> dict[str, object]:
        """Fetch a product by barcode and return raw API data."""


@dataclass
class HttpxOpenFoodFactsClient(OpenFoodFactsClient):
    """HTTPX-backed Open Food Facts client."""

    base_url: str
    http_client: httpx.AsyncClient
    timeout_seconds: float = 15.0

    @classmethod
    def create(
        cls, base_url: str, timeout_seconds: float = 15.0
    ) -> "HttpxOpenFoodFactsClient":
        """Create a client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            http_client=httpx.AsyncClient(
                headers={"User-Agent": "NutriScan/0.1 (diary lookups)"}
            ),
            timeout_seconds=timeout_seconds,
        )

    async def get_product(self, barcode: str) -> dict[str, object]:
        """Fetch a product; an unknown code comes back with ``status == 0``."""
        url = f"{self.base_url}/api/v0/product/{barcode}.json"
        response = await self.http_client.get(url, timeout=self.timeout_seconds)
        if response.status_code == httpx.codes.NOT_FOUND:
            payload = _json_or_none(response)
            if isinstance(payload, dict) and payload.get("status") == 0:
                return payload
        response.raise_for_status()
        return response.json()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def _json_or_none(response: httpx.Response) -> object | None:
    try:
        return response.json()
    except ValueError:
        return None
