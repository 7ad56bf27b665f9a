"""Pytest configuration and test helpers."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable

import pytest

# Ensure the application package is importable when running tests without an
# editable install. This mirrors the expected runtime layout where
# ``discovery`` sits at the project root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from discovery.errors import CatalogError  # noqa: E402
from discovery.models import (  # noqa: E402
    CastMember,
    Movie,
    MovieDetails,
    MovieDetailsBundle,
    MoviePage,
    Review,
    ReviewPage,
)


def make_movie_page(
    page: int, ids: list[int], *, total_pages: int = 3, label: str = ""
) -> MoviePage:
    return MoviePage(
        page=page,
        total_pages=total_pages,
        total_results=len(ids),
        results=[Movie(id=movie_id, title=f"Movie {movie_id}{label}") for movie_id in ids],
    )


class FakeCatalog:
    """In-memory catalog recording every call it receives."""

    def __init__(self) -> None:
        self.popular_pages: dict[int, MoviePage] = {
            1: make_movie_page(1, [1, 2, 3], total_pages=2),
            2: make_movie_page(2, [3, 4], total_pages=2, label=" (p2)"),
        }
        self.search_results: dict[str, MoviePage] = {}
        self.review_pages: dict[int, ReviewPage] = {
            2: ReviewPage(
                page=2,
                total_pages=2,
                results=[Review(id="r3", author="Cleo", content="Third review")],
            )
        }
        self.calls: list[tuple[str, object]] = []
        self.failure: CatalogError | None = None

    def _maybe_fail(self) -> None:
        if self.failure is not None:
            raise self.failure

    async def fetch_popular_movies(self, page: int) -> MoviePage:
        self.calls.append(("popular", page))
        self._maybe_fail()
        return self.popular_pages[page]

    async def search_movies(self, query: str, page: int) -> MoviePage:
        self.calls.append(("search", (query, page)))
        self._maybe_fail()
        return self.search_results.get(query) or MoviePage(page=page, total_pages=0)

    async def fetch_movie_details_bundle(
        self, movie_id: int, review_page: int = 1
    ) -> MovieDetailsBundle:
        self.calls.append(("details", movie_id))
        self._maybe_fail()
        return MovieDetailsBundle(
            details=MovieDetails(id=movie_id, title=f"Movie {movie_id}", runtime=120),
            cast=[
                CastMember(id=index, name=f"Actor {index}", character="Lead")
                for index in range(12)
            ],
            reviews=ReviewPage(
                page=1,
                total_pages=2,
                results=[
                    Review(id="r1", author="Ada", content="First review"),
                    Review(id="r2", author="Ben", content="Second review"),
                ],
            ),
        )

    async def fetch_movie_reviews(self, movie_id: int, page: int) -> ReviewPage:
        self.calls.append(("reviews", (movie_id, page)))
        self._maybe_fail()
        return self.review_pages[page]

    def image_url(self, path: str | None) -> str | None:
        return f"https://images.example.com{path}" if path else None


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_catalog() -> FakeCatalog:
    return FakeCatalog()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def movie_page() -> Callable[..., MoviePage]:
    return make_movie_page
