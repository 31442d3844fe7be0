"""Pydantic response models for the food search API."""

from pydantic import BaseModel, Field

from food_search.domain.foods import FoodRecord, MatchType, RankedFoodRecord
from food_search.services.search import SearchResult


class FoodRecordModel(BaseModel):
    """Canonical food record payload."""

    identifier: str
    source: str
    source_name: str
    localized_name: str | None = None
    brand: str | None = None
    search_aliases: list[str] = Field(default_factory=list)
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
    categories: list[str] = Field(default_factory=list)
    allergens: list[str] = Field(default_factory=list)

    @classmethod
    def from_record(cls, food: FoodRecord) -> "FoodRecordModel":
        return cls(
            identifier=food.identifier,
            source=food.source,
            source_name=food.source_name,
            localized_name=food.localized_name,
            brand=food.brand,
            search_aliases=sorted(food.search_aliases),
            calories=food.calories,
            protein=food.protein,
            carbs=food.carbs,
            fat=food.fat,
            fiber=food.fiber,
            sugar=food.sugar,
            sodium=food.sodium,
            serving_size=food.serving_size,
            serving_unit=food.serving_unit,
            nutriscore_grade=food.nutriscore_grade,
            nova_group=food.nova_group,
            ecoscore_grade=food.ecoscore_grade,
            usage_count=food.usage_count,
            categories=list(food.categories),
            allergens=list(food.allergens),
        )


class RankedFoodModel(BaseModel):
    """Food record with its relevance annotation."""

    food: FoodRecordModel
    relevance_score: int = Field(ge=0, le=100)
    match_type: MatchType
    match_position: int | None = None

    @classmethod
    def from_ranked(cls, item: RankedFoodRecord) -> "RankedFoodModel":
        return cls(
            food=FoodRecordModel.from_record(item.food),
            relevance_score=item.relevance_score,
            match_type=item.match_type,
            match_position=item.match_position,
        )


class SearchResponse(BaseModel):
    """Ranked search results."""

    query: str
    items: list[RankedFoodModel]
    total_count: int
    total_candidates: int
    query_time_ms: int

    @classmethod
    def from_result(cls, result: SearchResult) -> "SearchResponse":
        return cls(
            query=result.query,
            items=[RankedFoodModel.from_ranked(item) for item in result.items],
            total_count=result.total_count,
            total_candidates=result.total_candidates,
            query_time_ms=result.query_time_ms,
        )
