"""Tests for the search pipeline."""

import asyncio

import pytest

from food_search.domain.errors import RetrievalError, RetrievalErrorKind
from food_search.services.ranking import RelevanceRanker
from food_search.services.search import InMemoryUsageRepository, SearchPipeline
from tests.conftest import FailingUsageRepository, FakeFoodClient, make_food


def _pipeline(client: FakeFoodClient, usage=None) -> SearchPipeline:  # type: ignore[no-untyped-def]
    return SearchPipeline(
        client=client,
        ranker=RelevanceRanker(),
        usage_repository=usage or InMemoryUsageRepository(),
    )


def test_search_ranks_candidates_with_usage_counts() -> None:
    client = FakeFoodClient(
        search_results=[
            make_food("Milch Bio", identifier="1"),
            make_food("Milch 1.5%", identifier="2"),
            make_food("Protein Shake", identifier="3"),
        ]
    )
    usage = InMemoryUsageRepository(counts={"2": 4})

    result = asyncio.run(_pipeline(client, usage).search("milch"))

    assert [item.food.identifier for item in result.items] == ["2", "1"]
    assert result.items[0].food.usage_count == 4
    assert result.items[0].relevance_score == 98
    assert result.total_candidates == 3
    assert result.total_count == 2
    assert client.search_calls == [("milch", 50)]


def test_search_deduplicates_by_identifier() -> None:
    client = FakeFoodClient(
        search_results=[
            make_food("Apfel", identifier="1"),
            make_food("Apfel", identifier="1"),
            make_food("Apfelsaft", identifier="2"),
        ]
    )

    result = asyncio.run(_pipeline(client).search("apfel", limit=10))

    assert [item.food.identifier for item in result.items] == ["1", "2"]
    assert result.total_candidates == 2
    assert client.search_calls == [("apfel", 10)]


@pytest.mark.parametrize("query", ["", " ", "x"])
def test_short_query_skips_client(query: str) -> None:
    client = FakeFoodClient(search_results=[make_food("x")])

    result = asyncio.run(_pipeline(client).search(query))

    assert result.items == []
    assert client.search_calls == []


def test_retrieval_errors_propagate_without_retry() -> None:
    client = FakeFoodClient(
        error=RetrievalError("boom", RetrievalErrorKind.HTTP_STATUS, 500)
    )

    with pytest.raises(RetrievalError):
        asyncio.run(_pipeline(client).search("milch"))

    assert len(client.search_calls) == 1


def test_usage_lookup_failure_does_not_fail_search() -> None:
    client = FakeFoodClient(search_results=[make_food("Apfel", identifier="1")])

    result = asyncio.run(
        _pipeline(client, FailingUsageRepository()).search("apfel")
    )

    assert result.items[0].food.usage_count is None
    assert result.items[0].relevance_score == 100


def test_get_by_identifier_skips_ranker_and_attaches_usage() -> None:
    food = make_food("Vollmilch", identifier="4000417025005")
    client = FakeFoodClient(products={"4000417025005": food})
    usage = InMemoryUsageRepository()
    usage.record_use("4000417025005")
    usage.record_use("4000417025005")

    found = asyncio.run(_pipeline(client, usage).get_by_identifier("4000417025005"))
    missing = asyncio.run(_pipeline(client, usage).get_by_identifier("12345678"))

    assert found is not None
    assert found.usage_count == 2
    assert food.usage_count is None
    assert missing is None
