"""Behaviour of the paginated fetch controller."""

from __future__ import annotations

import asyncio

import pytest

from discovery.errors import FailureKind, TransientNetworkError
from discovery.models import Movie, MoviePage
from discovery.pagination import FetchMode, FetchStatus, PaginatedFetchController

from conftest import make_movie_page


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO tests to run on asyncio without requiring trio."""

    return "asyncio"


class RecordingFetcher:
    """Serves canned pages and records every page number requested."""

    def __init__(self, pages: dict[int, MoviePage]) -> None:
        self.pages = pages
        self.calls: list[int] = []
        self.gate: asyncio.Event | None = None
        self.failures: dict[int, Exception] = {}

    async def __call__(self, page: int) -> MoviePage:
        self.calls.append(page)
        if self.gate is not None:
            await self.gate.wait()
        else:
            await asyncio.sleep(0)
        failure = self.failures.pop(page, None)
        if failure is not None:
            raise failure
        return self.pages[page]


def _overlapping_pages() -> dict[int, MoviePage]:
    return {
        1: make_movie_page(1, [1, 2, 3], total_pages=3),
        2: make_movie_page(2, [3, 4], total_pages=3, label=" v2"),
        3: make_movie_page(3, [1, 5], total_pages=3, label=" v3"),
    }


@pytest.mark.anyio("asyncio")
async def test_append_merges_overlapping_ids_with_latest_fields() -> None:
    fetcher = RecordingFetcher(_overlapping_pages())
    controller: PaginatedFetchController[Movie] = PaginatedFetchController(fetcher)

    await controller.reset_and_load()
    await controller.load_next()
    await controller.load_next()

    items = controller.items
    assert [movie.id for movie in items] == [1, 2, 3, 4, 5]
    titles = {movie.id: movie.title for movie in items}
    assert titles[1] == "Movie 1 v3"
    assert titles[3] == "Movie 3 v2"
    assert titles[2] == "Movie 2"
    assert controller.session.current_page == 3
    assert controller.session.fetched_pages == {1, 2, 3}


@pytest.mark.anyio("asyncio")
async def test_overlapping_loads_issue_a_single_fetch() -> None:
    fetcher = RecordingFetcher(_overlapping_pages())
    controller: PaginatedFetchController[Movie] = PaginatedFetchController(fetcher)

    await asyncio.gather(
        controller.load_page(1, FetchMode.INITIAL),
        controller.load_page(1, FetchMode.INITIAL),
    )

    assert fetcher.calls == [1]
    assert [movie.id for movie in controller.items] == [1, 2, 3]


@pytest.mark.anyio("asyncio")
async def test_triggers_while_busy_are_dropped_not_queued() -> None:
    fetcher = RecordingFetcher(_overlapping_pages())
    controller: PaginatedFetchController[Movie] = PaginatedFetchController(fetcher)
    await controller.reset_and_load()

    fetcher.gate = asyncio.Event()
    task = asyncio.create_task(controller.load_next())
    await asyncio.sleep(0)

    snapshot = controller.snapshot()
    assert snapshot.loading_more is True
    assert snapshot.initial_loading is False

    await controller.load_next()
    await controller.refresh()
    await controller.load_page(3, FetchMode.APPEND)

    fetcher.gate.set()
    await task

    assert fetcher.calls == [1, 2]
    assert controller.session.status is FetchStatus.IDLE


@pytest.mark.anyio("asyncio")
async def test_load_next_never_refetches_a_fetched_page() -> None:
    fetcher = RecordingFetcher(_overlapping_pages())
    controller: PaginatedFetchController[Movie] = PaginatedFetchController(fetcher)

    await controller.reset_and_load()
    for _ in range(6):
        await controller.load_next()
    await controller.load_page(2, FetchMode.APPEND)

    assert fetcher.calls == [1, 2, 3]
    assert len(fetcher.calls) == len(set(fetcher.calls))
    assert controller.snapshot().has_more is False


@pytest.mark.anyio("asyncio")
async def test_failed_append_keeps_items_and_records_message() -> None:
    fetcher = RecordingFetcher(_overlapping_pages())
    controller: PaginatedFetchController[Movie] = PaginatedFetchController(fetcher)
    await controller.reset_and_load()

    fetcher.failures[2] = TransientNetworkError(
        "TMDB is temporarily unavailable. Please try again shortly.",
        kind=FailureKind.SERVER_ERROR,
    )
    await controller.load_next()

    snapshot = controller.snapshot()
    assert [movie.id for movie in snapshot.items] == [1, 2, 3]
    assert snapshot.error == "TMDB is temporarily unavailable. Please try again shortly."
    assert snapshot.loading_more is False
    assert 2 not in controller.session.fetched_pages

    await controller.load_next()

    assert controller.snapshot().error is None
    assert [movie.id for movie in controller.items] == [1, 2, 3, 4]


@pytest.mark.anyio("asyncio")
async def test_unclassified_errors_propagate_and_release_busy_flag() -> None:
    fetcher = RecordingFetcher(_overlapping_pages())
    fetcher.failures[1] = RuntimeError("bug")
    controller: PaginatedFetchController[Movie] = PaginatedFetchController(fetcher)

    with pytest.raises(RuntimeError):
        await controller.reset_and_load()

    assert controller.session.busy is False
    await controller.reset_and_load()
    assert fetcher.calls == [1, 1]


@pytest.mark.anyio("asyncio")
async def test_refresh_replaces_items_with_first_page() -> None:
    pages = _overlapping_pages()
    fetcher = RecordingFetcher(pages)
    controller: PaginatedFetchController[Movie] = PaginatedFetchController(fetcher)
    await controller.reset_and_load()
    await controller.load_next()

    pages[1] = make_movie_page(1, [9, 1], total_pages=4, label=" fresh")
    await controller.refresh()

    assert [movie.id for movie in controller.items] == [9, 1]
    assert controller.session.fetched_pages == {1}
    assert controller.session.current_page == 1
    assert controller.session.total_pages == 4


@pytest.mark.anyio("asyncio")
async def test_reset_and_load_restarts_the_cursor() -> None:
    fetcher = RecordingFetcher(_overlapping_pages())
    controller: PaginatedFetchController[Movie] = PaginatedFetchController(fetcher)
    await controller.reset_and_load()
    await controller.load_next()

    await controller.reset_and_load()

    assert fetcher.calls == [1, 2, 1]
    assert controller.session.current_page == 1
    assert [movie.id for movie in controller.items] == [1, 2, 3]


@pytest.mark.anyio("asyncio")
async def test_discarded_controller_drops_late_results() -> None:
    fetcher = RecordingFetcher(_overlapping_pages())
    fetcher.gate = asyncio.Event()
    controller: PaginatedFetchController[Movie] = PaginatedFetchController(fetcher)

    task = asyncio.create_task(controller.reset_and_load())
    await asyncio.sleep(0)
    controller.discard()
    fetcher.gate.set()
    await task

    assert controller.items == []
    assert controller.session.fetched_pages == set()
    await controller.reset_and_load()
    assert fetcher.calls == [1]


def test_seed_adopts_a_prefetched_page() -> None:
    changes: list[int] = []
    controller: PaginatedFetchController[Movie] = PaginatedFetchController(
        RecordingFetcher({}), on_change=lambda ctrl: changes.append(len(ctrl.items))
    )

    controller.seed(make_movie_page(1, [4, 5, 4], total_pages=2))

    snapshot = controller.snapshot()
    assert [movie.id for movie in snapshot.items] == [4, 5]
    assert snapshot.page == 1
    assert snapshot.has_more is True
    assert changes == [2]
    payload = snapshot.to_payload()
    assert payload["hasMore"] is True
    assert payload["items"][0]["id"] == 4
