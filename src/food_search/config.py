"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

from food_search.domain.foods import RankingConfig

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    off_base_url: str = "https://world.openfoodfacts.org"
    off_user_agent: str = "FoodSearch/1.0 (contact@example.com)"
    off_timeout_seconds: float = 10.0
    rate_limit_max_requests: int = 100
    rate_limit_window_ms: int = 60000
    search_page_size: int = 50
    ranking_min_relevance_score: int = 30
    ranking_cached_item_boost: int = 10
    ranking_max_results: int = 50
    ranking_fuzzy_matching: bool = True
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )

    def ranking_config(self) -> RankingConfig:
        """Build the ranker configuration from settings."""
        return RankingConfig(
            min_relevance_score=self.ranking_min_relevance_score,
            cached_item_boost=self.ranking_cached_item_boost,
            max_results=self.ranking_max_results,
            fuzzy_matching=self.ranking_fuzzy_matching,
        )

    def usage_store_configured(self) -> bool:
        """Return whether Supabase credentials for usage counts are present."""
        return bool(self.supabase_url and self.supabase_service_key)
