from __future__ import annotations

"""Tiny pub/sub event bus used by sessions to notify the presentation layer."""

import logging
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)


class EventBus:
    def __init__(self) -> None:
        self._subs: Dict[str, List[Callable[[Any], None]]] = {}

    def subscribe(self, event: str, handler: Callable[[Any], None]) -> None:
        self._subs.setdefault(event, []).append(handler)

    def unsubscribe(self, event: str, handler: Callable[[Any], None]) -> None:
        handlers = self._subs.get(event, [])
        if handler in handlers:
            handlers.remove(handler)

    def emit(self, event: str, payload: Any = None) -> None:
        # A failing observer must not break the session that emitted the event
        for h in list(self._subs.get(event, [])):
            try:
                h(payload)
            except Exception:
                logger.exception("Handler for %r failed", event)
