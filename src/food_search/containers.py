"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from food_search.adapters.openfoodfacts_client import HttpxOpenFoodFactsClient
from food_search.adapters.supabase_usage_repository import SupabaseUsageRepository
from food_search.config import Settings
from food_search.services.rate_limiter import SlidingWindowRateLimiter
from food_search.services.ranking import RelevanceRanker
from food_search.services.search import (
    InMemoryUsageRepository,
    SearchPipeline,
    UsageRepository,
)


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    rate_limiter: SlidingWindowRateLimiter
    ranker: RelevanceRanker
    usage_repository: UsageRepository
    search_pipeline: SearchPipeline
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    rate_limiter = SlidingWindowRateLimiter(
        max_requests=resolved_settings.rate_limit_max_requests,
        window_ms=resolved_settings.rate_limit_window_ms,
    )
    food_client = HttpxOpenFoodFactsClient.create(
        rate_limiter=rate_limiter,
        base_url=resolved_settings.off_base_url,
        user_agent=resolved_settings.off_user_agent,
        timeout_seconds=resolved_settings.off_timeout_seconds,
    )
    usage_repository: UsageRepository
    if resolved_settings.usage_store_configured():
        supabase_client = create_client(
            resolved_settings.supabase_url, resolved_settings.supabase_service_key
        )
        usage_repository = SupabaseUsageRepository(supabase_client)
    else:
        usage_repository = InMemoryUsageRepository()
    ranker = RelevanceRanker(resolved_settings.ranking_config())
    search_pipeline = SearchPipeline(
        client=food_client,
        ranker=ranker,
        usage_repository=usage_repository,
        page_size=resolved_settings.search_page_size,
    )

    async def close_resources() -> None:
        await food_client.close()

    return AppContainer(
        settings=resolved_settings,
        rate_limiter=rate_limiter,
        ranker=ranker,
        usage_repository=usage_repository,
        search_pipeline=search_pipeline,
        close_resources=close_resources,
    )
