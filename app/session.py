from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from app.config import BrowserSettings
from domain.events import (
    TOPIC_OPEN_CREATE_PART,
    TOPIC_WINDOW_FOCUS,
    TOPIC_WINDOW_VISIBLE,
    Event,
    EventBus,
)
from domain.models import PartSummary
from domain.ports.part_bom import PartBomApi
from domain.services.bom_link_mutations import BomLinkMutations
from domain.services.create_part import CreatePart
from domain.services.part_catalog_index import PartCatalogIndex
from domain.services.part_search import PartSearch, choose_selection
from domain.services.part_selection_cache import PartSelectionCache

logger = logging.getLogger(__name__)


class BomBrowserSession:
    def __init__(
        self,
        api: PartBomApi,
        settings: BrowserSettings | None = None,
        *,
        bus: EventBus | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._settings = settings or BrowserSettings()
        self.api = api
        self.bus = bus or EventBus()
        self.catalog = PartCatalogIndex(api)
        self.cache = PartSelectionCache(
            api,
            initial_depth=self._settings.initial_depth,
            expand_depth=self._settings.expand_depth,
            node_limit=self._settings.node_limit,
            on_part_refreshed=self._on_part_refreshed,
        )
        self.search = PartSearch(
            api,
            self._on_search_results,
            debounce_seconds=self._settings.search_debounce_seconds,
            sleep=sleep,
        )
        self.mutations = BomLinkMutations(
            api, self.cache, self.catalog, resolve_part=self._find_search_result
        )
        self.parts = CreatePart(api, self.catalog, self.search, self.cache)
        self.create_view_open = False
        self._subscriptions: list[str] = []
        self._refresh_stop: asyncio.Event | None = None
        self._refresh_task: asyncio.Task[None] | None = None

    @property
    def active(self) -> bool:
        return bool(self._subscriptions)

    @property
    def selected_part(self) -> PartSummary | None:
        selected_id = self.cache.selected_id
        if selected_id is None:
            return None
        details = self.cache.details.data
        if details is not None and details.id == selected_id:
            return details.summary()
        return self._find_search_result(selected_id) or self.catalog.find(selected_id)

    async def activate(self) -> None:
        if self.active:
            return
        self._subscriptions = [
            self.bus.subscribe(TOPIC_WINDOW_FOCUS, self._on_window_event),
            self.bus.subscribe(TOPIC_WINDOW_VISIBLE, self._on_window_event),
            self.bus.subscribe(TOPIC_OPEN_CREATE_PART, self._on_open_create),
        ]
        interval = self._settings.catalog_refresh_interval_seconds
        if interval > 0:
            self._refresh_stop = asyncio.Event()
            self._refresh_task = asyncio.create_task(
                self.catalog.run_refresh_loop(interval, self._refresh_stop)
            )
        await asyncio.gather(self.catalog.refresh(), self.search.start())

    async def close(self) -> None:
        for sub_id in self._subscriptions:
            self.bus.unsubscribe(sub_id)
        self._subscriptions = []
        if self._refresh_task is not None and self._refresh_stop is not None:
            self._refresh_stop.set()
            await self._refresh_task
        self._refresh_task = None
        self._refresh_stop = None
        self.search.close()
        self.cache.cancel_pending()

    async def select(self, part_id: str | None) -> None:
        await self.cache.select(part_id)

    async def refresh_silently(self) -> None:
        if await self.catalog.refresh():
            await self.search.refresh_silently(self.catalog.parts)
        if self.cache.selected_id is not None:
            await self.cache.refresh(silent=True)

    def link_candidates(self) -> list[PartSummary]:
        details = self.cache.details.data
        linked_ids = [child.id for child in details.child_parts] if details is not None else []
        return self.catalog.link_candidates(self.cache.bom.root_id, linked_ids)

    def close_create_view(self) -> None:
        self.create_view_open = False

    async def _on_window_event(self, event: Event) -> None:
        logger.debug("Refreshing on %s", event.topic)
        await self.refresh_silently()

    def _on_open_create(self, event: Event) -> None:
        self.create_view_open = True

    async def _on_search_results(self, results: list[PartSummary]) -> None:
        next_id = choose_selection(self.cache.selected_id, results)
        if next_id != self.cache.selected_id:
            await self.cache.select(next_id)

    def _on_part_refreshed(self, part: PartSummary) -> None:
        self.catalog.upsert(part)
        self.search.upsert(part, only_existing=True)

    def _find_search_result(self, part_id: str) -> PartSummary | None:
        for part in self.search.results:
            if part.id == part_id:
                return part
        return None
