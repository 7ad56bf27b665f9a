"""Minimal publish/subscribe bus owned by the composing layer."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable

logger = logging.getLogger(__name__)

GATEWAY_FAILURE = "gateway.failure"

Handler = Callable[[Any], None]


class EventBus:
    """Synchronous topic-based event dispatch."""

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = defaultdict(list)

    def subscribe(self, topic: str, handler: Handler) -> Callable[[], None]:
        """Register ``handler`` for ``topic`` and return an unsubscribe callable."""

        self._handlers[topic].append(handler)

        def unsubscribe() -> None:
            handlers = self._handlers.get(topic)
            if handlers and handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def publish(self, topic: str, payload: Any = None) -> int:
        """Deliver ``payload`` to every handler of ``topic``.

        Returns the number of handlers invoked.
        """

        handlers = list(self._handlers.get(topic, ()))
        for handler in handlers:
            handler(payload)
        logger.debug("Published %s to %d handler(s)", topic, len(handlers))
        return len(handlers)

    def handler_count(self, topic: str) -> int:
        return len(self._handlers.get(topic, ()))
