"""Screen-level controllers built on top of the paginated fetch controller."""

from __future__ import annotations

import asyncio
import logging
from functools import partial
from operator import attrgetter
from typing import Awaitable, Callable, Protocol

from .errors import CatalogError
from .models import CastMember, Movie, MovieDetails, MovieDetailsBundle, MoviePage, Review, ReviewPage
from .pagination import PaginatedFetchController

logger = logging.getLogger(__name__)

CAST_LIMIT = 10

SearchFetcher = Callable[[str, int], Awaitable[MoviePage]]


class MovieCatalog(Protocol):
    """Catalog operations the client needs; satisfied by ``TMDBClient``."""

    async def fetch_popular_movies(self, page: int) -> MoviePage: ...

    async def search_movies(self, query: str, page: int) -> MoviePage: ...

    async def fetch_movie_details_bundle(
        self, movie_id: int, review_page: int = 1
    ) -> MovieDetailsBundle: ...

    async def fetch_movie_reviews(self, movie_id: int, page: int) -> ReviewPage: ...

    def image_url(self, path: str | None) -> str | None: ...


class SearchController:
    """Keeps one fetch session per search query.

    A new query abandons the previous session so late pages for an old
    query are never merged into the new result list. With a non-zero
    ``debounce_seconds`` the search only starts once the query has been
    left unchanged for that long; queries typed in between never hit the
    catalog.
    """

    def __init__(self, search: SearchFetcher, *, debounce_seconds: float = 0.0) -> None:
        self._search = search
        self._debounce_seconds = debounce_seconds
        self._generation = 0
        self.query = ""
        self.session: PaginatedFetchController[Movie] | None = None

    async def set_query(self, text: str) -> None:
        query = (text or "").strip()
        if query == self.query:
            return
        self.query = query
        self._generation += 1
        generation = self._generation
        if query and self._debounce_seconds > 0:
            await asyncio.sleep(self._debounce_seconds)
            if generation != self._generation:
                logger.debug("Search for %r superseded before it started", query)
                return
        if self.session is not None:
            self.session.discard()
        if not query:
            self.session = None
            return
        session: PaginatedFetchController[Movie] = PaginatedFetchController(
            partial(self._search, query), name=f"search:{query}"
        )
        self.session = session
        await session.reset_and_load()

    async def load_next(self) -> None:
        if self.session is not None:
            await self.session.load_next()

    async def refresh(self) -> None:
        if self.session is not None:
            await self.session.refresh()

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {"query": self.query}
        if self.session is None:
            payload["results"] = None
        else:
            payload["results"] = self.session.snapshot().to_payload()
        return payload


class MovieDetailsController:
    """State behind the movie details screen."""

    def __init__(self, catalog: MovieCatalog, movie_id: int) -> None:
        self._catalog = catalog
        self.movie_id = movie_id
        self.details: MovieDetails | None = None
        self.cast: list[CastMember] = []
        self.loading = False
        self.error: str | None = None
        self._discarded = False
        self.reviews: PaginatedFetchController[Review] = PaginatedFetchController(
            partial(catalog.fetch_movie_reviews, movie_id),
            name=f"reviews:{movie_id}",
            key=attrgetter("id"),
        )

    @property
    def discarded(self) -> bool:
        return self._discarded

    def discard(self) -> None:
        self._discarded = True
        self.reviews.discard()

    async def load(self) -> None:
        if self.loading or self._discarded:
            return
        self.loading = True
        self.error = None
        try:
            bundle = await self._catalog.fetch_movie_details_bundle(self.movie_id, 1)
        except CatalogError as exc:
            if not self._discarded:
                logger.info("Loading movie %s failed: %s", self.movie_id, exc.message)
                self.error = exc.message
            return
        finally:
            self.loading = False

        if self._discarded:
            logger.debug("Dropping details for closed movie %s", self.movie_id)
            return
        self.details = bundle.details
        self.cast = bundle.cast[:CAST_LIMIT]
        self.reviews.seed(bundle.reviews)

    async def load_more_reviews(self) -> None:
        await self.reviews.load_next()

    def to_payload(self) -> dict[str, object]:
        details = self.details
        reviews = self.reviews.snapshot()
        payload: dict[str, object] = {
            "movieId": self.movie_id,
            "loading": self.loading,
            "error": self.error or reviews.error,
            "details": None,
            "cast": [
                {
                    **member.model_dump(mode="json"),
                    "profileUrl": self._catalog.image_url(member.profile_path),
                }
                for member in self.cast
            ],
            "reviews": reviews.to_payload(),
        }
        if details is not None:
            payload["details"] = {
                **details.model_dump(mode="json"),
                "backdropUrl": self._catalog.image_url(details.backdrop_path),
                "posterUrl": self._catalog.image_url(details.poster_path),
                "genreNames": details.genre_names(),
                "releaseLabel": details.display_release_date(),
                "rating": details.rating_label(),
            }
        return payload
