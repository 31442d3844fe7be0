"""Shared test fixtures."""

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field

import pytest

from food_search.adapters.openfoodfacts_client import ExternalFoodClient
from food_search.config import Settings
from food_search.containers import AppContainer
from food_search.domain.foods import FoodRecord
from food_search.services.rate_limiter import RateLimiter, SlidingWindowRateLimiter
from food_search.services.ranking import RelevanceRanker
from food_search.services.search import (
    InMemoryUsageRepository,
    SearchPipeline,
    UsageRepository,
)


def make_food(
    name: str,
    brand: str | None = None,
    usage_count: int | None = None,
    *,
    identifier: str | None = None,
    localized_name: str | None = None,
) -> FoodRecord:
    """Build a food record with sensible defaults for ranking tests."""
    return FoodRecord(
        identifier=identifier or f"id-{name}",
        source_name=name,
        localized_name=localized_name,
        brand=brand,
        search_aliases=frozenset({name}),
        calories=100.0,
        protein=10.0,
        carbs=20.0,
        fat=5.0,
        usage_count=usage_count,
    )


def off_product(code: str = "4000417025005", **overrides: object) -> dict[str, object]:
    """Raw Open Food Facts product payload."""
    product: dict[str, object] = {
        "code": code,
        "product_name": "Whole Milk",
        "product_name_de": "Vollmilch",
        "generic_name": "milk",
        "brands": "Weihenstephan, Müller",
        "serving_size": "250 ml",
        "nutriscore_grade": "b",
        "nova_group": 1,
        "ecoscore_grade": "c",
        "categories_tags": ["en:dairies", "en:milks"],
        "allergens_tags": ["en:milk"],
        "nutriments": {
            "energy-kcal_100g": 64,
            "proteins_100g": 3.4,
            "carbohydrates_100g": 4.8,
            "fat_100g": 3.5,
            "sugars_100g": 4.8,
            "sodium_100g": 0.04,
        },
    }
    product.update(overrides)
    return product


@dataclass
class FakeClock:
    """Manually advanced monotonic clock."""

    now: float = 1000.0
    sleeps: list[float] = field(default_factory=list)

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


@dataclass
class CountingRateLimiter(RateLimiter):
    """Rate limiter that admits everything and counts admissions."""

    admitted: int = 0

    async def admit(self) -> None:
        self.admitted += 1


@dataclass
class FakeFoodClient(ExternalFoodClient):
    """Fake external client with in-memory responses."""

    search_results: list[FoodRecord] = field(default_factory=list)
    products: dict[str, FoodRecord] = field(default_factory=dict)
    error: Exception | None = None
    search_calls: list[tuple[str, int]] = field(default_factory=list)
    lookup_calls: list[str] = field(default_factory=list)

    async def get_by_identifier(self, identifier: str) -> FoodRecord | None:
        self.lookup_calls.append(identifier)
        if self.error:
            raise self.error
        return self.products.get(identifier)

    async def search_by_text(self, query: str, limit: int = 20) -> list[FoodRecord]:
        self.search_calls.append((query, limit))
        if self.error:
            raise self.error
        return list(self.search_results)


@dataclass
class FailingUsageRepository(UsageRepository):
    """Usage repository whose backend is down."""

    def get_usage_counts(self, identifiers: Sequence[str]) -> dict[str, int]:
        raise RuntimeError("usage store unavailable")


@pytest.fixture
def settings() -> Settings:
    return Settings(
        off_base_url="https://off.test",
        off_user_agent="FoodSearchTests/1.0",
        rate_limit_max_requests=5,
        rate_limit_window_ms=1000,
    )


@pytest.fixture
def food_client() -> FakeFoodClient:
    return FakeFoodClient()


@pytest.fixture
def usage_repository() -> InMemoryUsageRepository:
    return InMemoryUsageRepository()


@pytest.fixture
def container(
    settings: Settings,
    food_client: FakeFoodClient,
    usage_repository: InMemoryUsageRepository,
) -> AppContainer:
    ranker = RelevanceRanker(settings.ranking_config())
    pipeline = SearchPipeline(
        client=food_client,
        ranker=ranker,
        usage_repository=usage_repository,
        page_size=settings.search_page_size,
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        rate_limiter=SlidingWindowRateLimiter(
            settings.rate_limit_max_requests, settings.rate_limit_window_ms
        ),
        ranker=ranker,
        usage_repository=usage_repository,
        search_pipeline=pipeline,
        close_resources=close_resources,
    )
