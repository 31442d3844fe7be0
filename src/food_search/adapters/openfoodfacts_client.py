"""Open Food Facts API client."""

import logging
import re
from dataclasses import dataclass
from typing import Protocol

import httpx

from food_search.domain.errors import (
    InvalidIdentifier,
    RetrievalError,
    RetrievalErrorKind,
)
from food_search.domain.foods import FoodRecord
from food_search.domain.normalization import normalize_product
from food_search.services.rate_limiter import RateLimiter

DEFAULT_BASE_URL = "https://world.openfoodfacts.org"
DEFAULT_USER_AGENT = "FoodSearch/1.0 (contact@example.com)"
DEFAULT_TIMEOUT_SECONDS = 10.0
MIN_QUERY_LENGTH = 2

_BARCODE_PATTERN = re.compile(r"^[0-9]{8,14}$")

_logger = logging.getLogger(__name__)


class ExternalFoodClient(Protocol):
    """Interface for the third-party nutrition database."""

    async def get_by_identifier(self, identifier: str) -> FoodRecord | None:
        """Fetch a single product by barcode, or None when it does not exist."""

    async def search_by_text(self, query: str, limit: int = 20) -> list[FoodRecord]:
        """Search products by free text."""


def is_valid_identifier(identifier: str) -> bool:
    """Return whether a barcode looks like an EAN/UPC code."""
    return bool(_BARCODE_PATTERN.fullmatch(identifier))


@dataclass
class HttpxOpenFoodFactsClient(ExternalFoodClient):
    """HTTPX-backed Open Food Facts client gated by a rate limiter."""

    base_url: str
    user_agent: str
    http_client: httpx.AsyncClient
    rate_limiter: RateLimiter
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    @classmethod
    def create(
        cls,
        rate_limiter: RateLimiter,
        base_url: str = DEFAULT_BASE_URL,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> "HttpxOpenFoodFactsClient":
        """Create a client with a managed httpx session."""
        return cls(
            base_url=base_url.rstrip("/"),
            user_agent=user_agent,
            http_client=httpx.AsyncClient(),
            rate_limiter=rate_limiter,
            timeout_seconds=timeout_seconds,
        )

    async def get_by_identifier(self, identifier: str) -> FoodRecord | None:
        """Fetch a product by barcode.

        Malformed barcodes raise InvalidIdentifier before any quota is spent.
        A product unknown to the database is a normal outcome and yields None.
        """
        if not is_valid_identifier(identifier):
            raise InvalidIdentifier(identifier)

        url = f"{self.base_url}/api/v2/product/{identifier}.json"
        response = await self._get(url, action=f"product:{identifier}")
        if response.status_code == httpx.codes.NOT_FOUND:
            _logger.info("Product not found: %s", identifier)
            return None
        _raise_for_status(response, action=f"product:{identifier}")

        payload = _json_object(response, action=f"product:{identifier}")
        product = payload.get("product")
        if payload.get("status") != 1 or not product:
            _logger.info("Product not found in Open Food Facts: %s", identifier)
            return None
        try:
            return normalize_product(product, fallback_code=identifier)
        except ValueError as exc:
            _logger.warning("Failed to parse product %s: %s", identifier, exc)
            raise RetrievalError(
                f"Failed to parse product {identifier}: {exc}",
                RetrievalErrorKind.PARSE,
            ) from exc

    async def search_by_text(self, query: str, limit: int = 20) -> list[FoodRecord]:
        """Search products by name or brand.

        Queries shorter than two characters return nothing without a network
        call. Products that fail to parse are skipped individually.
        """
        terms = query.strip() if query else ""
        if len(terms) < MIN_QUERY_LENGTH:
            _logger.warning("Query too short: %r", query)
            return []

        params = {
            "search_terms": terms,
            "search_simple": "1",
            "action": "process",
            "page_size": str(limit),
            "page": "1",
            "json": "1",
        }
        url = f"{self.base_url}/cgi/search.pl"
        response = await self._get(url, action="search", params=params)
        _raise_for_status(response, action="search")

        payload = _json_object(response, action="search")
        products = payload.get("products")
        if not isinstance(products, list):
            raise RetrievalError(
                "Search response has no products list", RetrievalErrorKind.PARSE
            )

        foods: list[FoodRecord] = []
        for product in products:
            try:
                foods.append(normalize_product(product))
            except ValueError as exc:
                code = product.get("code") if isinstance(product, dict) else None
                _logger.warning("Skipping unparseable product %s: %s", code, exc)
        _logger.info("Found %s products for %r", len(foods), terms)
        return foods

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

    async def _get(
        self,
        url: str,
        *,
        action: str,
        params: dict[str, str] | None = None,
    ) -> httpx.Response:
        await self.rate_limiter.admit()
        try:
            return await self.http_client.get(
                url,
                params=params,
                headers={"User-Agent": self.user_agent, "Accept": "application/json"},
                timeout=self.timeout_seconds,
            )
        except httpx.TimeoutException as exc:
            _logger.warning("Open Food Facts %s timed out: %s", action, exc)
            raise RetrievalError(
                f"Request timeout after {self.timeout_seconds}s",
                RetrievalErrorKind.TIMEOUT,
            ) from exc
        except httpx.HTTPError as exc:
            _logger.warning("Open Food Facts %s failed: %s", action, exc)
            raise RetrievalError(
                f"Request failed: {exc}", RetrievalErrorKind.NETWORK
            ) from exc


def _raise_for_status(response: httpx.Response, *, action: str) -> None:
    if response.is_success:
        return
    _logger.warning(
        "Open Food Facts %s returned HTTP %s", action, response.status_code
    )
    raise RetrievalError(
        f"HTTP {response.status_code}: {response.reason_phrase}",
        RetrievalErrorKind.HTTP_STATUS,
        status_code=response.status_code,
    )


def _json_object(response: httpx.Response, *, action: str) -> dict[str, object]:
    try:
        payload = response.json()
    except ValueError as exc:
        _logger.warning("Open Food Facts %s returned malformed JSON", action)
        raise RetrievalError(
            "Malformed JSON response", RetrievalErrorKind.PARSE
        ) from exc
    if not isinstance(payload, dict):
        raise RetrievalError(
            "Unexpected response shape", RetrievalErrorKind.PARSE
        )
    return payload
