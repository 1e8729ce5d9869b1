from __future__ import annotations

import asyncio
import inspect
import logging
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

TOPIC_WINDOW_FOCUS = "window.focus"
TOPIC_WINDOW_VISIBLE = "window.visible"
TOPIC_OPEN_CREATE_PART = "parts.open_create"


@dataclass(frozen=True)
class Event:
    topic: str
    payload: Mapping[str, Any] = field(default_factory=dict)


EventHandler = Callable[[Event], Any]


class EventBus:
    def __init__(self) -> None:
        self._subscribers: dict[str, tuple[str, EventHandler]] = {}
        self._topic_index: dict[str, list[str]] = {}
        self._tasks: set[asyncio.Task[Any]] = set()

    def subscribe(self, topic: str, handler: EventHandler) -> str:
        sub_id = str(uuid.uuid4())
        self._subscribers[sub_id] = (topic, handler)
        self._topic_index.setdefault(topic, []).append(sub_id)
        return sub_id

    def unsubscribe(self, sub_id: str) -> None:
        topic, _ = self._subscribers.pop(sub_id, (None, None))
        if topic is None:
            return
        sub_ids = self._topic_index.get(topic, [])
        if sub_id in sub_ids:
            sub_ids.remove(sub_id)
        if not sub_ids:
            self._topic_index.pop(topic, None)

    def subscriber_count(self, topic: str) -> int:
        return len(self._topic_index.get(topic, []))

    def publish(self, topic: str, payload: Mapping[str, Any] | None = None) -> list[asyncio.Task[Any]]:
        event = Event(topic=topic, payload=dict(payload or {}))
        scheduled: list[asyncio.Task[Any]] = []
        for sub_id in list(self._topic_index.get(topic, [])):
            entry = self._subscribers.get(sub_id)
            if entry is None:
                continue
            handler = entry[1]
            try:
                outcome = handler(event)
            except Exception as exc:
                logger.error("Event handler error on %s: %s", topic, exc)
                continue
            if inspect.isawaitable(outcome):
                scheduled.append(self._schedule(topic, outcome))
        return scheduled

    async def drain(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _schedule(self, topic: str, awaitable: Any) -> asyncio.Task[Any]:
        task = asyncio.ensure_future(awaitable)
        self._tasks.add(task)

        def _done(finished: asyncio.Task[Any]) -> None:
            self._tasks.discard(finished)
            if not finished.cancelled() and finished.exception() is not None:
                logger.error("Event handler error on %s: %s", topic, finished.exception())

        task.add_done_callback(_done)
        return task
