"""Incremental page loading with de-duplication for one list at a time."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from operator import attrgetter
from typing import Any, Awaitable, Callable, Generic, Hashable, Iterator, TypeVar

from pydantic import BaseModel

from .errors import CatalogError
from .models import PagedResponse
from .utils import merge_unique

logger = logging.getLogger(__name__)

ItemT = TypeVar("ItemT", bound=BaseModel)

PageFetcher = Callable[[int], Awaitable[PagedResponse[Any]]]


class FetchMode(str, Enum):
    INITIAL = "initial"
    REFRESH = "refresh"
    APPEND = "append"


class FetchStatus(str, Enum):
    IDLE = "idle"
    INITIAL_LOADING = "initial_loading"
    REFRESHING = "refreshing"
    LOADING_MORE = "loading_more"


_MODE_STATUS = {
    FetchMode.INITIAL: FetchStatus.INITIAL_LOADING,
    FetchMode.REFRESH: FetchStatus.REFRESHING,
    FetchMode.APPEND: FetchStatus.LOADING_MORE,
}


@dataclass(slots=True)
class FetchSession(Generic[ItemT]):
    """Accumulated state for one query context."""

    entries: dict[Hashable, ItemT] = field(default_factory=dict)
    current_page: int = 0
    total_pages: int = 1
    fetched_pages: set[int] = field(default_factory=set)
    status: FetchStatus = FetchStatus.IDLE
    last_error: str | None = None

    @property
    def items(self) -> list[ItemT]:
        return list(self.entries.values())

    @property
    def busy(self) -> bool:
        return self.status is not FetchStatus.IDLE

    @property
    def has_more(self) -> bool:
        return self.current_page < self.total_pages

    def reset(self) -> None:
        self.fetched_pages.clear()
        self.current_page = 0
        self.total_pages = 1


@dataclass(frozen=True, slots=True)
class FetchSnapshot(Generic[ItemT]):
    """Read-only view of a session handed to the UI layer."""

    items: tuple[ItemT, ...]
    page: int
    total_pages: int
    status: FetchStatus
    error: str | None

    @property
    def initial_loading(self) -> bool:
        return self.status is FetchStatus.INITIAL_LOADING

    @property
    def refreshing(self) -> bool:
        return self.status is FetchStatus.REFRESHING

    @property
    def loading_more(self) -> bool:
        return self.status is FetchStatus.LOADING_MORE

    @property
    def has_more(self) -> bool:
        return self.page < self.total_pages

    def to_payload(self) -> dict[str, object]:
        return {
            "items": [item.model_dump(mode="json") for item in self.items],
            "page": self.page,
            "totalPages": self.total_pages,
            "hasMore": self.has_more,
            "initialLoading": self.initial_loading,
            "refreshing": self.refreshing,
            "loadingMore": self.loading_more,
            "error": self.error,
        }


class PaginatedFetchController(Generic[ItemT]):
    """Drives one paged list: initial load, pull-to-refresh and load-more.

    At most one fetch is in flight at a time; triggers that arrive while a
    fetch is outstanding are dropped rather than queued. The busy check and
    the status change happen before the first ``await`` so overlapping
    calls on the event loop cannot both pass it.
    """

    def __init__(
        self,
        fetcher: PageFetcher,
        *,
        name: str = "list",
        key: Callable[[ItemT], Hashable] = attrgetter("id"),
        on_change: Callable[["PaginatedFetchController[ItemT]"], None] | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._key = key
        self._on_change = on_change
        self.name = name
        self.session: FetchSession[ItemT] = FetchSession()
        self._discarded = False

    @property
    def discarded(self) -> bool:
        return self._discarded

    @property
    def items(self) -> list[ItemT]:
        return self.session.items

    def discard(self) -> None:
        """Stop applying results; the owning screen has gone away."""

        self._discarded = True

    @contextmanager
    def _loading(self, mode: FetchMode) -> Iterator[None]:
        self.session.status = _MODE_STATUS[mode]
        self._notify()
        try:
            yield
        finally:
            self.session.status = FetchStatus.IDLE
            self._notify()

    async def load_page(self, page_number: int, mode: FetchMode = FetchMode.APPEND) -> None:
        """Fetch ``page_number`` and merge it into the session."""

        session = self.session
        if self._discarded or session.busy or page_number in session.fetched_pages:
            return

        with self._loading(FetchMode(mode)):
            session.last_error = None
            try:
                response = await self._fetcher(page_number)
            except CatalogError as exc:
                if self._discarded:
                    return
                logger.info(
                    "Loading page %s of %s failed: %s", page_number, self.name, exc.message
                )
                session.last_error = exc.message
                return

            if self._discarded:
                logger.debug("Dropping page %s of discarded %s", page_number, self.name)
                return
            self._apply(page_number, response, FetchMode(mode))

    def _apply(self, page_number: int, response: PagedResponse[Any], mode: FetchMode) -> None:
        session = self.session
        session.current_page = response.page
        session.total_pages = response.total_pages
        session.fetched_pages.add(page_number)
        if mode is FetchMode.APPEND:
            session.entries = merge_unique(session.entries.values(), response.results, self._key)
        else:
            session.entries = merge_unique((), response.results, self._key)

    async def reset_and_load(self) -> None:
        self.session.reset()
        await self.load_page(1, FetchMode.INITIAL)

    async def refresh(self) -> None:
        self.session.fetched_pages.clear()
        await self.load_page(1, FetchMode.REFRESH)

    async def load_next(self) -> None:
        session = self.session
        if session.current_page >= session.total_pages or session.busy:
            return
        await self.load_page(session.current_page + 1, FetchMode.APPEND)

    def seed(self, response: PagedResponse[Any]) -> None:
        """Adopt a first page that was fetched elsewhere."""

        if self._discarded or self.session.busy:
            return
        self.session.reset()
        self.session.last_error = None
        self._apply(response.page, response, FetchMode.INITIAL)
        self._notify()

    def snapshot(self) -> FetchSnapshot[ItemT]:
        session = self.session
        return FetchSnapshot(
            items=tuple(session.entries.values()),
            page=session.current_page,
            total_pages=session.total_pages,
            status=session.status,
            error=session.last_error,
        )

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(self)
