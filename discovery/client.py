"""Composition of the catalog, list controllers and navigator for one user."""

from __future__ import annotations

import logging
import time
from typing import Callable

from .config import Settings
from .controllers import MovieCatalog, MovieDetailsController, SearchController
from .errors import FailureKind
from .events import GATEWAY_FAILURE, EventBus
from .models import Movie, ReviewDraft, UserReview
from .navigation import (
    MovieDetails,
    NavigationTransition,
    Navigator,
    PostReview,
)
from .pagination import PaginatedFetchController
from .services.reviews import ReviewService

logger = logging.getLogger(__name__)

NETWORK_HELP_TITLE = "Can't load data?"
NETWORK_HELP_MESSAGE = (
    "If movie data isn't appearing, your network may be forcing a public DNS "
    "(for example dns.google). Try switching your device to your private DNS provider."
)
_NETWORK_HELP_KINDS = frozenset({FailureKind.NETWORK_UNREACHABLE, FailureKind.TIMEOUT})


class DiscoveryClient:
    """Everything the UI renders: navigation, lists, details and notices."""

    def __init__(
        self,
        settings: Settings,
        catalog: MovieCatalog,
        reviews: ReviewService | None = None,
        *,
        events: EventBus | None = None,
        clock: Callable[[], float] = time.monotonic,
        on_transition: Callable[[NavigationTransition], None] | None = None,
    ) -> None:
        self._settings = settings
        self._catalog = catalog
        self._reviews = reviews
        self._transition_hook = on_transition
        self.events = events or EventBus()
        self.navigator = Navigator(
            debounce_seconds=settings.back_debounce_seconds,
            clock=clock,
            on_transition=self._handle_transition,
        )
        self.popular: PaginatedFetchController[Movie] = PaginatedFetchController(
            catalog.fetch_popular_movies, name="popular"
        )
        self.search = SearchController(
            catalog.search_movies, debounce_seconds=settings.search_debounce_seconds
        )
        self._details: dict[int, MovieDetailsController] = {}
        self.network_help_visible = False
        self.review_progress: dict[int, int] = {}
        self._unsubscribe = self.events.subscribe(GATEWAY_FAILURE, self._on_gateway_failure)

    @property
    def configuration_error(self) -> str | None:
        return self._settings.configuration_error()

    def close(self) -> None:
        self._unsubscribe()
        self.popular.discard()
        if self.search.session is not None:
            self.search.session.discard()
        for controller in self._details.values():
            controller.discard()
        self._details.clear()

    def details_for(self, movie_id: int) -> MovieDetailsController:
        controller = self._details.get(movie_id)
        if controller is None:
            controller = MovieDetailsController(self._catalog, movie_id)
            self._details[movie_id] = controller
        return controller

    async def open_movie(self, movie_id: int) -> MovieDetailsController:
        self.navigator.push(MovieDetails(movie_id=movie_id))
        controller = self.details_for(movie_id)
        if controller.details is None:
            await controller.load()
        return controller

    def open_post_review(self, movie_id: int, movie_title: str) -> None:
        self.navigator.push(PostReview(movie_id=movie_id, movie_title=movie_title))

    async def submit_review(
        self,
        movie_id: int,
        movie_title: str,
        draft: ReviewDraft,
    ) -> UserReview:
        if self._reviews is None:
            raise RuntimeError("Review service not configured")

        def track(progress: int) -> None:
            self.review_progress[movie_id] = progress

        # Only uploads still running are reported.
        self.review_progress[movie_id] = 0
        try:
            return await self._reviews.submit(movie_id, movie_title, draft, on_progress=track)
        finally:
            self.review_progress.pop(movie_id, None)

    async def list_user_reviews(self, movie_id: int) -> list[UserReview]:
        if self._reviews is None:
            return []
        return await self._reviews.list_reviews(movie_id)

    def dismiss_network_help(self) -> None:
        self.network_help_visible = False

    def _on_gateway_failure(self, kind: object) -> None:
        if kind in _NETWORK_HELP_KINDS:
            self.network_help_visible = True

    def _handle_transition(self, transition: NavigationTransition) -> None:
        logger.debug(
            "Navigation %s: %s -> %s",
            transition.action,
            transition.previous.current_route.name,
            transition.current.current_route.name,
        )
        live_ids = {
            route.movie_id
            for route in transition.current.stack
            if isinstance(route, (MovieDetails, PostReview))
        }
        for movie_id in list(self._details):
            if movie_id not in live_ids:
                self._details.pop(movie_id).discard()
        if self._transition_hook is not None:
            self._transition_hook(transition)

    def to_payload(self) -> dict[str, object]:
        return {
            "appName": self._settings.app_name,
            "configurationError": self.configuration_error,
            "navigation": self.navigator.state.to_payload(),
            "popular": self.popular.snapshot().to_payload(),
            "search": self.search.to_payload(),
            "reviewUploads": {
                str(movie_id): progress for movie_id, progress in self.review_progress.items()
            },
            "notices": {
                "networkHelp": {
                    "visible": self.network_help_visible,
                    "title": NETWORK_HELP_TITLE,
                    "message": NETWORK_HELP_MESSAGE,
                }
            },
        }
