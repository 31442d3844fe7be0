"""Relevance ranking for loose full-text search results."""

import logging
import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from food_search.domain.foods import (
    FoodRecord,
    MatchType,
    RankedFoodRecord,
    RankingConfig,
)

LOCALIZED_FIELD_BONUS = 5
MAX_USAGE_BOOST = 20
FUZZY_MIN_RATIO = 0.7
FUZZY_MAX_SCORE = 25
BRAND_ONLY_SCORE = 25

_WHITESPACE = re.compile(r"\s+")

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldMatch:
    """Result of one matching rule applied to one text field."""

    score: int
    match_type: MatchType
    position: int | None = None


MatchRule = Callable[[str, str, bool], FieldMatch | None]


def normalize_text(value: str) -> str:
    """Lowercase, trim and collapse internal whitespace."""
    return _WHITESPACE.sub(" ", value.lower().strip())


def exact_match(text: str, query: str, is_primary: bool) -> FieldMatch | None:
    if text != query:
        return None
    return FieldMatch(100 if is_primary else 70, MatchType.EXACT, 0)


def starts_with_match(text: str, query: str, is_primary: bool) -> FieldMatch | None:
    if not text.startswith(query):
        return None
    return FieldMatch(80 if is_primary else 50, MatchType.STARTS_WITH, 0)


def word_match(text: str, query: str, is_primary: bool) -> FieldMatch | None:
    """Every query word must equal or prefix some word of the field.

    The score drops 5 points per word between the field start and the
    first query word's match.
    """
    words = text.split(" ")
    query_words = query.split(" ")
    if not all(
        any(word.startswith(query_word) for word in words)
        for query_word in query_words
    ):
        return None

    offset = 0
    for index, word in enumerate(words):
        if word.startswith(query_words[0]):
            break
        offset += len(word) + 1
    base, floor = (70, 50) if is_primary else (40, 30)
    return FieldMatch(max(base - index * 5, floor), MatchType.WORD_MATCH, offset)


def contains_match(text: str, query: str, is_primary: bool) -> FieldMatch | None:
    position = text.find(query)
    if position == -1:
        return None
    base, floor = (50, 35) if is_primary else (30, 20)
    return FieldMatch(max(base - position // 5, floor), MatchType.CONTAINS, position)


def brand_only_match(text: str, query: str, is_primary: bool) -> FieldMatch | None:
    """Flat score for a brand sharing at least one query word."""
    if is_primary:
        return None
    if not any(query_word in text for query_word in query.split(" ")):
        return None
    return FieldMatch(BRAND_ONLY_SCORE, MatchType.BRAND_MATCH)


def fuzzy_match(text: str, query: str, is_primary: bool) -> FieldMatch | None:
    """In-order character subsequence match on name fields."""
    if not is_primary:
        return None
    matched = 0
    last_index = -1
    for char in query:
        index = text.find(char, last_index + 1)
        if index != -1:
            matched += 1
            last_index = index
    ratio = matched / len(query)
    if ratio < FUZZY_MIN_RATIO:
        return None
    score = int(ratio * FUZZY_MAX_SCORE + 0.5)
    if score <= 0:
        return None
    return FieldMatch(score, MatchType.FUZZY)


STRICT_RULES: tuple[MatchRule, ...] = (
    exact_match,
    starts_with_match,
    word_match,
    contains_match,
    brand_only_match,
)


def match_field(
    text: str, query: str, is_primary: bool, rules: Sequence[MatchRule]
) -> FieldMatch | None:
    """Apply rules in precedence order and return the first hit."""
    for rule in rules:
        result = rule(text, query, is_primary)
        if result is not None:
            return result
    return None


class RelevanceRanker:
    """Scores, filters and orders candidates against a query."""

    def __init__(self, config: RankingConfig | None = None) -> None:
        self.config = config or RankingConfig()

    def rank(
        self,
        candidates: Sequence[FoodRecord],
        query: str,
        config: RankingConfig | None = None,
    ) -> list[RankedFoodRecord]:
        """Return candidates relevant to ``query``, best first."""
        active = config or self.config
        if not query or not query.strip():
            _logger.warning("Empty query provided to ranker")
            return []
        if not candidates:
            return []

        normalized_query = normalize_text(query)
        rules = STRICT_RULES + ((fuzzy_match,) if active.fuzzy_matching else ())
        scored = [
            self._score(candidate, normalized_query, rules, active)
            for candidate in candidates
        ]
        relevant = [
            item for item in scored if item.relevance_score >= active.min_relevance_score
        ]
        relevant.sort(key=lambda item: (-item.relevance_score, -item.usage_count))
        ranked = relevant[: active.max_results]

        _logger.info(
            "Ranked %s candidates for %r: %s relevant (threshold %s)",
            len(candidates),
            query,
            len(ranked),
            active.min_relevance_score,
        )
        if ranked:
            top = ranked[0]
            _logger.debug(
                "Top result %r score=%s type=%s",
                top.food.source_name,
                top.relevance_score,
                top.match_type,
            )
        return ranked

    def explain(
        self,
        item: RankedFoodRecord,
        query: str,
        config: RankingConfig | None = None,
    ) -> str:
        """Describe how a ranked item earned its score.

        Pass the same ``config`` that was given to ``rank`` when it was
        overridden there.
        """
        active = config or self.config
        food = item.food
        lines = [
            f'Query: "{query}"',
            f'Item: "{food.source_name}"' + (f" ({food.brand})" if food.brand else ""),
            f"Match Type: {item.match_type}",
            f"Score: {item.relevance_score}",
        ]
        if item.match_position is not None:
            lines.append(f"Match Position: {item.match_position}")
        if item.usage_count > 0:
            boost = active.cached_item_boost + min(
                item.usage_count * 2, MAX_USAGE_BOOST
            )
            lines.append(f"Usage Count: {item.usage_count} (+{boost} bonus)")
        return "\n".join(lines)

    def _score(
        self,
        food: FoodRecord,
        query: str,
        rules: Sequence[MatchRule],
        config: RankingConfig,
    ) -> RankedFoodRecord:
        fields = (
            (food.source_name, True, False),
            (food.localized_name, True, True),
            (food.brand, False, False),
        )
        best_score = 0
        best: FieldMatch | None = None
        for raw_text, is_primary, is_localized in fields:
            if not raw_text:
                continue
            text = normalize_text(raw_text)
            if not text:
                continue
            result = match_field(text, query, is_primary, rules)
            if result is None:
                continue
            score = result.score + (LOCALIZED_FIELD_BONUS if is_localized else 0)
            if score > best_score:
                best_score = score
                best = result

        score = best_score
        usage_count = food.usage_count or 0
        if usage_count > 0:
            score += config.cached_item_boost + min(usage_count * 2, MAX_USAGE_BOOST)
        score = min(max(score, 0), 100)

        return RankedFoodRecord(
            food=food,
            relevance_score=score,
            match_type=best.match_type if best else MatchType.CONTAINS,
            match_position=best.position if best else None,
        )
