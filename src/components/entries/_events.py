"""
In-process notification of completed saves.

Delivery is synchronous and best-effort: observers run in subscription
order after the save transaction has committed, and an observer that
raises is logged without affecting the save or the other observers.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from src.core.entities import EntrySaved

logger = logging.getLogger(__name__)

EntrySavedHandler = Callable[[EntrySaved], None]


class EntryEventBus:
    def __init__(self) -> None:
        self._handlers: list[EntrySavedHandler] = []

    def subscribe(self, handler: EntrySavedHandler) -> Callable[[], None]:
        """Register an observer. Returns a callable that unsubscribes it."""
        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    def emit(self, event: EntrySaved) -> None:
        for handler in list(self._handlers):
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "EntrySaved observer %r failed for entry %s", handler, event.entry.id
                )
