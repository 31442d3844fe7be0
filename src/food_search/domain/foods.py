"""Food domain models."""

from dataclasses import dataclass, field, replace
from enum import StrEnum

UNKNOWN_PRODUCT_NAME = "Unknown Product"


class MatchType(StrEnum):
    """Heuristic rule that produced a candidate's winning score."""

    EXACT = "exact"
    STARTS_WITH = "starts_with"
    WORD_MATCH = "word_match"
    CONTAINS = "contains"
    BRAND_MATCH = "brand_match"
    FUZZY = "fuzzy"


@dataclass(frozen=True)
class FoodRecord:
    """Canonical food record normalized from an external source.

    Macro values are per 100g (or 100ml). ``usage_count`` is never taken from
    the external source; it is attached later from the caller's own history.
    """

    identifier: str
    source_name: str
    localized_name: str | None = None
    brand: str | None = None
    search_aliases: frozenset[str] = field(default_factory=frozenset)
    calories: float | None = None
    protein: float | None = None
    carbs: float | None = None
    fat: float | None = None
    fiber: float | None = None
    sugar: float | None = None
    sodium: float | None = None
    serving_size: float | None = None
    serving_unit: str | None = None
    nutriscore_grade: str | None = None
    nova_group: int | None = None
    ecoscore_grade: str | None = None
    usage_count: int | None = None
    source: str = "openfoodfacts"
    categories: tuple[str, ...] = ()
    allergens: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.source_name.strip() and not any(
            alias.strip() for alias in self.search_aliases
        ):
            raise ValueError("FoodRecord needs a name or at least one alias")

    def with_usage_count(self, usage_count: int | None) -> "FoodRecord":
        """Return a copy carrying the given usage count."""
        return replace(self, usage_count=usage_count)


@dataclass(frozen=True)
class RankedFoodRecord:
    """Food record annotated with its relevance to a query."""

    food: FoodRecord
    relevance_score: int
    match_type: MatchType
    match_position: int | None = None

    @property
    def usage_count(self) -> int:
        return self.food.usage_count or 0


@dataclass(frozen=True)
class RankingConfig:
    """Tuning knobs for relevance ranking."""

    min_relevance_score: int = 30
    cached_item_boost: int = 10
    max_results: int = 50
    fuzzy_matching: bool = True

    def __post_init__(self) -> None:
        if not 0 <= self.min_relevance_score <= 100:
            raise ValueError("min_relevance_score must be between 0 and 100")
        if self.max_results < 0:
            raise ValueError("max_results must not be negative")
