"""Logical screen stack, home tabs and hardware back-signal arbitration."""

from __future__ import annotations

import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, ClassVar, Mapping


class Tab(str, Enum):
    POPULAR = "popular"
    SEARCH = "search"


@dataclass(frozen=True, slots=True)
class ScreenRoute:
    """Base class for every screen that can sit on the stack."""

    name: ClassVar[str] = ""
    title: ClassVar[str] = ""

    def to_payload(self) -> dict[str, object]:
        return {"name": self.name, "title": self.title}


@dataclass(frozen=True, slots=True)
class Home(ScreenRoute):
    name: ClassVar[str] = "Home"
    title: ClassVar[str] = "Movie Discovery"


@dataclass(frozen=True, slots=True)
class MovieDetails(ScreenRoute):
    name: ClassVar[str] = "MovieDetails"
    title: ClassVar[str] = "Movie details"

    movie_id: int

    def to_payload(self) -> dict[str, object]:
        return {"name": self.name, "title": self.title, "movieId": self.movie_id}


@dataclass(frozen=True, slots=True)
class PostReview(ScreenRoute):
    name: ClassVar[str] = "PostReview"
    title: ClassVar[str] = "Write review"

    movie_id: int
    movie_title: str

    def to_payload(self) -> dict[str, object]:
        return {
            "name": self.name,
            "title": self.title,
            "movieId": self.movie_id,
            "movieTitle": self.movie_title,
        }


HOME = Home()


def parse_route(payload: Mapping[str, Any]) -> ScreenRoute:
    """Build a route from its payload form; raises ``ValueError`` if invalid."""

    name = payload.get("name")
    try:
        if name == Home.name:
            return HOME
        if name == MovieDetails.name:
            return MovieDetails(movie_id=int(payload["movieId"]))
        if name == PostReview.name:
            return PostReview(
                movie_id=int(payload["movieId"]),
                movie_title=str(payload["movieTitle"]),
            )
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError(f"Invalid {name} route payload") from exc
    raise ValueError(f"Unknown route {name!r}")


@dataclass(frozen=True, slots=True)
class NavigationState:
    """Immutable snapshot of the navigator; replaced whole on each change."""

    stack: tuple[ScreenRoute, ...] = (HOME,)
    active_tab: Tab = Tab.POPULAR
    tab_history: tuple[Tab, ...] = ()

    def __post_init__(self) -> None:
        if not self.stack or self.stack[0] != HOME:
            raise ValueError("Navigation stack must start with Home")

    @property
    def current_route(self) -> ScreenRoute:
        return self.stack[-1]

    @property
    def at_root(self) -> bool:
        return len(self.stack) == 1 and not self.tab_history

    def to_payload(self) -> dict[str, object]:
        return {
            "currentRoute": self.current_route.to_payload(),
            "stack": [route.to_payload() for route in self.stack],
            "activeTab": self.active_tab.value,
            "tabHistory": [tab.value for tab in self.tab_history],
        }


@dataclass(frozen=True, slots=True)
class NavigationTransition:
    """Passed to the observability hook after every committed change."""

    action: str
    previous: NavigationState
    current: NavigationState


class Navigator:
    """Stack machine shared by UI actions and the platform back signal.

    Back signals are debounced: once a back transition commits, further
    signals inside ``debounce_seconds`` are swallowed (reported as handled)
    so a burst of presses moves back one level, not several.
    """

    def __init__(
        self,
        *,
        debounce_seconds: float = 0.35,
        clock: Callable[[], float] = time.monotonic,
        on_transition: Callable[[NavigationTransition], None] | None = None,
    ) -> None:
        self._state = NavigationState()
        self._debounce_seconds = debounce_seconds
        self._clock = clock
        self._on_transition = on_transition
        self._last_back_at: float | None = None
        self._resolving_back = False

    @property
    def state(self) -> NavigationState:
        return self._state

    @property
    def current_route(self) -> ScreenRoute:
        return self._state.current_route

    @property
    def active_tab(self) -> Tab:
        return self._state.active_tab

    def push(self, route: ScreenRoute) -> None:
        if not isinstance(route, ScreenRoute):
            raise TypeError(f"Expected a ScreenRoute, got {type(route).__name__}")
        state = self._state
        self._commit("push", replace(state, stack=state.stack + (route,)))

    def pop(self) -> bool:
        """Leave the current screen; returns ``False`` at the root."""

        state = self._state
        if len(state.stack) <= 1:
            return False
        self._commit("pop", replace(state, stack=state.stack[:-1]))
        self._last_back_at = self._clock()
        return True

    def switch_tab(self, tab: Tab | str) -> bool:
        tab = Tab(tab)
        state = self._state
        if tab is state.active_tab:
            return False
        self._commit(
            "switch_tab",
            replace(
                state,
                active_tab=tab,
                tab_history=state.tab_history + (state.active_tab,),
            ),
        )
        return True

    def handle_back_signal(self) -> bool:
        """Resolve a hardware back press.

        Returns ``True`` when handled here, ``False`` when the host should
        run its default action (usually leaving the app).
        """

        now = self._clock()
        if self._resolving_back or self._within_debounce(now):
            return True

        self._resolving_back = True
        try:
            state = self._state
            if not isinstance(state.current_route, Home):
                self._commit("back", replace(state, stack=state.stack[:-1]))
            elif state.tab_history:
                self._commit(
                    "back",
                    replace(
                        state,
                        active_tab=state.tab_history[-1],
                        tab_history=state.tab_history[:-1],
                    ),
                )
            else:
                return False
            self._last_back_at = now
            return True
        finally:
            self._resolving_back = False

    def _within_debounce(self, now: float) -> bool:
        if self._last_back_at is None:
            return False
        return now - self._last_back_at < self._debounce_seconds

    def _commit(self, action: str, new_state: NavigationState) -> None:
        previous = self._state
        self._state = new_state
        if self._on_transition is not None:
            self._on_transition(NavigationTransition(action, previous, new_state))
