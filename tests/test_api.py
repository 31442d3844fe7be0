"""Tests for the HTTP API."""

from fastapi.testclient import TestClient

from food_search.api.app import create_app
from food_search.domain.errors import (
    InvalidIdentifier,
    RetrievalError,
    RetrievalErrorKind,
)
from tests.conftest import make_food


def test_health(container) -> None:
    client = TestClient(create_app(container))

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_search_returns_ranked_items(container, food_client, usage_repository) -> None:
    food_client.search_results = [
        make_food("Eiersalat", identifier="1"),
        make_food("Eier", identifier="2"),
        make_food("Protein Shake", identifier="3"),
    ]
    usage_repository.counts["1"] = 1
    client = TestClient(create_app(container))

    response = client.get("/foods/search", params={"q": "eier", "limit": 20})

    assert response.status_code == 200
    data = response.json()
    assert data["query"] == "eier"
    assert [item["food"]["identifier"] for item in data["items"]] == ["2", "1"]
    assert data["items"][0]["match_type"] == "exact"
    assert data["items"][1]["relevance_score"] == 92
    assert data["total_candidates"] == 3
    assert food_client.search_calls == [("eier", 20)]


def test_search_timeout_maps_to_504(container, food_client) -> None:
    food_client.error = RetrievalError("slow", RetrievalErrorKind.TIMEOUT)
    client = TestClient(create_app(container))

    response = client.get("/foods/search", params={"q": "eier"})

    assert response.status_code == 504
    assert "try again" in response.json()["detail"]


def test_get_food_by_identifier(container, food_client) -> None:
    food_client.products["4000417025005"] = make_food(
        "Vollmilch", identifier="4000417025005"
    )
    client = TestClient(create_app(container))

    found = client.get("/foods/4000417025005")
    missing = client.get("/foods/12345678")

    assert found.status_code == 200
    assert found.json()["source_name"] == "Vollmilch"
    assert missing.status_code == 404


def test_get_food_error_mapping(container, food_client) -> None:
    client = TestClient(create_app(container))

    food_client.error = InvalidIdentifier("abc")
    invalid = client.get("/foods/abc")
    food_client.error = RetrievalError("down", RetrievalErrorKind.HTTP_STATUS, 500)
    upstream = client.get("/foods/4000417025005")

    assert invalid.status_code == 400
    assert upstream.status_code == 502
