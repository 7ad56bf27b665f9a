"""Authenticated request execution with failure classification and retry."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

import httpx

from ..config import Settings
from ..errors import RETRIABLE_KINDS, CatalogError, FailureKind, build_error
from ..events import GATEWAY_FAILURE, EventBus

logger = logging.getLogger(__name__)

T = TypeVar("T")


def classify_failure(exc: BaseException) -> tuple[FailureKind, int | None]:
    """Map a raw exception onto a failure kind and optional HTTP status."""

    if isinstance(exc, httpx.TimeoutException):
        return FailureKind.TIMEOUT, None
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        if status == 401:
            return FailureKind.UNAUTHORIZED, status
        if status == 429:
            return FailureKind.RATE_LIMITED, status
        if status >= 500:
            return FailureKind.SERVER_ERROR, status
        if status >= 400:
            return FailureKind.CLIENT_ERROR, status
        return FailureKind.UNEXPECTED, status
    if isinstance(exc, httpx.TransportError):
        return FailureKind.NETWORK_UNREACHABLE, None
    return FailureKind.UNEXPECTED, None


class CatalogGateway:
    """Runs single-call operations against the catalog API with retries."""

    def __init__(self, settings: Settings, *, events: EventBus | None = None):
        self._settings = settings
        self._events = events
        self._max_retries = settings.retry_limit
        self._backoff = settings.retry_backoff_seconds

    async def request(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Await ``operation`` and return its payload.

        Raises a :class:`CatalogError` subclass carrying a user-facing message.
        """

        # Fails before any network attempt when the key is absent.
        self._settings.require_api_key()

        attempt = 0
        while True:
            try:
                return await operation()
            except CatalogError:
                raise
            except Exception as exc:
                kind, status = classify_failure(exc)
                if kind in RETRIABLE_KINDS and attempt < self._max_retries:
                    attempt += 1
                    backoff = self._backoff * attempt
                    logger.info(
                        "Transient error talking to TMDB (%s). Retry %s/%s in %.1fs",
                        kind.value,
                        attempt,
                        self._max_retries,
                        backoff,
                    )
                    await asyncio.sleep(backoff)
                    continue
                logger.warning(
                    "TMDB request failed after %s attempt(s): %s (%s)",
                    attempt + 1,
                    kind.value,
                    exc.__class__.__name__,
                )
                self._publish_failure(kind)
                raise build_error(kind, status) from exc

    def _publish_failure(self, kind: FailureKind) -> None:
        if self._events is not None:
            self._events.publish(GATEWAY_FAILURE, kind)
