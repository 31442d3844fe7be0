"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Query, Request, status

from food_search.api.models import FoodRecordModel, SearchResponse
from food_search.app_logging import configure_logging
from food_search.containers import AppContainer
from food_search.domain.errors import (
    InvalidIdentifier,
    RetrievalError,
    RetrievalErrorKind,
)


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/foods/search")
    async def search_foods(
        request: Request,
        q: str = Query(default=""),
        limit: int | None = Query(default=None, ge=1, le=200),
    ) -> SearchResponse:
        """Search foods and return them ranked by relevance."""
        state_container: AppContainer = request.app.state.container
        try:
            result = await state_container.search_pipeline.search(q, limit=limit)
        except RetrievalError as exc:
            logger.warning("Search for %r failed: %s", q, exc)
            raise _retrieval_http_error(exc) from exc
        return SearchResponse.from_result(result)

    @app.get("/foods/{identifier}")
    async def get_food(identifier: str, request: Request) -> FoodRecordModel:
        """Look up a single food by barcode."""
        state_container: AppContainer = request.app.state.container
        try:
            food = await state_container.search_pipeline.get_by_identifier(identifier)
        except InvalidIdentifier as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
            ) from exc
        except RetrievalError as exc:
            logger.warning("Lookup of %s failed: %s", identifier, exc)
            raise _retrieval_http_error(exc) from exc
        if food is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Product not found: {identifier}",
            )
        return FoodRecordModel.from_record(food)

    return app


def _retrieval_http_error(exc: RetrievalError) -> HTTPException:
    if exc.kind is RetrievalErrorKind.TIMEOUT:
        return HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail="Food database timed out, try again.",
        )
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail="Food database unavailable, try again.",
    )
