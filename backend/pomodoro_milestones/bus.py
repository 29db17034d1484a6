# backend/pomodoro_milestones/bus.py

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

MILESTONES_CHANGED = "milestones-changed"
TASKS_CHANGED = "tasks-changed"


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    project_id: str
    payload: Any = None


Handler = Callable[[ChangeEvent], Any]


class ChangeNotificationBus:
    """
    In-process publish/subscribe keyed by topic name.

    Handlers run synchronously, in subscription order. A handler that raises is
    logged and skipped; the publisher and the remaining handlers are unaffected.
    Regions that subscribe must call the returned unsubscribe when they go away.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[Handler]] = {}

    def subscribe(self, topic: str, handler: Handler) -> Callable[[], None]:
        self._handlers.setdefault(topic, []).append(handler)
        released = False

        def unsubscribe() -> None:
            nonlocal released
            if released:
                return
            released = True
            handlers = self._handlers.get(topic)
            if handlers is None:
                return
            # identity match; subscribing the same callable twice yields two entries
            for idx, h in enumerate(handlers):
                if h is handler:
                    del handlers[idx]
                    break
            if not handlers:
                self._handlers.pop(topic, None)

        return unsubscribe

    def publish(self, topic: str, event: ChangeEvent) -> int:
        """Deliver `event` to every handler of `topic`. Returns how many handlers ran cleanly."""
        handlers = list(self._handlers.get(topic, ()))
        ok = 0
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception("Handler %r failed on %s (project=%s)", handler, topic, event.project_id)
                continue
            ok += 1
        return ok

    def subscriber_count(self, topic: str) -> int:
        return len(self._handlers.get(topic, ()))


# Process-wide bus shared by every UI region.
bus = ChangeNotificationBus()
