"""Search pipeline tying rate-limited retrieval to relevance ranking."""

import logging
import time
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Protocol

from food_search.adapters.openfoodfacts_client import (
    MIN_QUERY_LENGTH,
    ExternalFoodClient,
)
from food_search.domain.foods import FoodRecord, RankedFoodRecord
from food_search.services.ranking import RelevanceRanker

_logger = logging.getLogger(__name__)


class UsageRepository(Protocol):
    """Source of per-identifier usage counts from the user's own history."""

    def get_usage_counts(self, identifiers: Sequence[str]) -> dict[str, int]:
        """Return usage counts for the identifiers that have any."""


@dataclass
class InMemoryUsageRepository(UsageRepository):
    """Usage counts held in memory."""

    counts: dict[str, int] = field(default_factory=dict)

    def get_usage_counts(self, identifiers: Sequence[str]) -> dict[str, int]:
        return {
            identifier: self.counts[identifier]
            for identifier in identifiers
            if identifier in self.counts
        }

    def record_use(self, identifier: str) -> None:
        self.counts[identifier] = self.counts.get(identifier, 0) + 1


@dataclass(frozen=True)
class SearchResult:
    """Ranked results for one query."""

    query: str
    items: list[RankedFoodRecord]
    total_candidates: int
    query_time_ms: int

    @property
    def total_count(self) -> int:
        return len(self.items)


@dataclass
class SearchPipeline:
    """Composition root: rate limiter, external client, ranker."""

    client: ExternalFoodClient
    ranker: RelevanceRanker
    usage_repository: UsageRepository
    page_size: int = 50

    async def search(self, query: str, limit: int | None = None) -> SearchResult:
        """Search the external database and rank the candidates."""
        started = time.perf_counter()
        trimmed = query.strip() if query else ""
        if len(trimmed) < MIN_QUERY_LENGTH:
            return SearchResult(query=query, items=[], total_candidates=0, query_time_ms=0)

        candidates = await self.client.search_by_text(
            trimmed, limit=limit or self.page_size
        )
        unique = _dedupe(candidates)
        enriched = self._with_usage(unique)
        ranked = self.ranker.rank(enriched, trimmed)
        elapsed_ms = int((time.perf_counter() - started) * 1000)
        _logger.info(
            "Search %r: %s candidates -> %s results (%sms)",
            trimmed,
            len(unique),
            len(ranked),
            elapsed_ms,
        )
        return SearchResult(
            query=query,
            items=ranked,
            total_candidates=len(unique),
            query_time_ms=elapsed_ms,
        )

    async def get_by_identifier(self, identifier: str) -> FoodRecord | None:
        """Look up a single product by barcode, skipping the ranker."""
        food = await self.client.get_by_identifier(identifier.strip())
        if food is None:
            return None
        return self._with_usage([food])[0]

    def _with_usage(self, foods: list[FoodRecord]) -> list[FoodRecord]:
        if not foods:
            return foods
        try:
            counts = self.usage_repository.get_usage_counts(
                [food.identifier for food in foods]
            )
        except Exception:
            _logger.exception("Usage count lookup failed; ranking without usage")
            return foods
        return [
            food.with_usage_count(counts[food.identifier])
            if food.identifier in counts
            else food
            for food in foods
        ]


def _dedupe(foods: Iterable[FoodRecord]) -> list[FoodRecord]:
    seen: set[str] = set()
    unique: list[FoodRecord] = []
    for food in foods:
        if food.identifier in seen:
            continue
        seen.add(food.identifier)
        unique.append(food)
    return unique
