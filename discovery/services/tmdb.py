"""Typed access to The Movie Database (TMDB) catalog endpoints."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel

from ..config import Settings
from ..models import (
    Credits,
    MovieDetails,
    MovieDetailsBundle,
    MoviePage,
    ReviewPage,
)
from ..utils import build_image_url
from .gateway import CatalogGateway

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class TMDBClient:
    """Client responsible for fetching movies, credits and reviews from TMDB."""

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient,
        gateway: CatalogGateway,
    ):
        self._settings = settings
        self._client = http_client
        self._gateway = gateway

    def _params(self, **extra: Any) -> dict[str, Any]:
        params: dict[str, Any] = {
            "api_key": self._settings.tmdb_api_key,
            "language": self._settings.tmdb_language,
            "region": self._settings.tmdb_region,
        }
        params.update(extra)
        return params

    async def _get(self, path: str, model: type[ModelT], **params: Any) -> ModelT:
        logger.debug("Requesting TMDB %s (page=%s)", path, params.get("page"))
        response = await self._client.get(path, params=self._params(**params))
        response.raise_for_status()
        return model.model_validate(response.json())

    async def fetch_popular_movies(self, page: int) -> MoviePage:
        """Return one page of the popular movies listing."""

        return await self._gateway.request(
            lambda: self._get("/movie/popular", MoviePage, page=page)
        )

    async def search_movies(self, query: str, page: int) -> MoviePage:
        """Return one page of title search results for ``query``."""

        return await self._gateway.request(
            lambda: self._get(
                "/search/movie",
                MoviePage,
                query=query,
                page=page,
                include_adult="false",
            )
        )

    async def fetch_movie_details_bundle(
        self, movie_id: int, review_page: int = 1
    ) -> MovieDetailsBundle:
        """Fetch details, credits and a reviews page as one retriable unit."""

        async def operation() -> MovieDetailsBundle:
            tasks = [
                asyncio.ensure_future(self._get(f"/movie/{movie_id}", MovieDetails)),
                asyncio.ensure_future(self._get(f"/movie/{movie_id}/credits", Credits)),
                asyncio.ensure_future(
                    self._get(f"/movie/{movie_id}/reviews", ReviewPage, page=review_page)
                ),
            ]
            try:
                details, credits, reviews = await asyncio.gather(*tasks)
            except BaseException:
                # Tear the whole attempt down before the gateway retries it.
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
                raise
            return MovieDetailsBundle(details=details, cast=credits.cast, reviews=reviews)

        return await self._gateway.request(operation)

    async def fetch_movie_reviews(self, movie_id: int, page: int) -> ReviewPage:
        """Return one page of reviews for a movie."""

        return await self._gateway.request(
            lambda: self._get(f"/movie/{movie_id}/reviews", ReviewPage, page=page)
        )

    def image_url(self, path: str | None) -> str | None:
        return build_image_url(path, self._settings.tmdb_image_url)
