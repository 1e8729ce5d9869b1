from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence

from domain.errors import error_message
from domain.models import PartSummary
from domain.ports.part_bom import PartBomApi
from domain.services.part_catalog_index import upsert_part_summary

logger = logging.getLogger(__name__)

SEARCH_DEBOUNCE_SECONDS = 0.28

SearchResultsHandler = Callable[[list[PartSummary]], Awaitable[None] | None]


def choose_selection(current_id: str | None, results: Sequence[PartSummary]) -> str | None:
    if current_id is not None and any(part.id == current_id for part in results):
        return current_id
    return results[0].id if results else None


class PartSearch:
    def __init__(
        self,
        api: PartBomApi,
        on_results: SearchResultsHandler | None = None,
        *,
        debounce_seconds: float = SEARCH_DEBOUNCE_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._api = api
        self._on_results = on_results
        self._debounce_seconds = debounce_seconds
        self._sleep = sleep
        self._generation = 0
        self._pending: asyncio.Task[None] | None = None

        self.query = ""
        self.results: list[PartSummary] = []
        self.loading = False
        self.error: str | None = None

    async def start(self) -> None:
        await self.run(self.query)

    def set_query(self, text: str) -> asyncio.Task[None]:
        self.query = text
        self._cancel_pending()
        self._pending = asyncio.create_task(self._debounced(text))
        return self._pending

    async def run(self, query: str) -> None:
        self.query = query
        self._generation += 1
        generation = self._generation
        self.loading = True
        self.error = None
        try:
            results = await self._api.search_parts(query.strip())
        except Exception as exc:
            if generation != self._generation:
                return
            logger.warning("Part search for %r failed: %s", query, exc)
            self.error = error_message(exc)
            self.loading = False
            return
        if generation != self._generation:
            logger.debug("Discarding stale search results for %r", query)
            return
        self.results = list(results)
        self.loading = False
        if self._on_results is not None:
            outcome = self._on_results(self.results)
            if outcome is not None:
                await outcome

    async def refresh_silently(self, catalog_parts: Sequence[PartSummary]) -> None:
        if not self.query.strip():
            self.results = list(catalog_parts)
            return
        generation = self._generation
        try:
            results = await self._api.search_parts(self.query.strip())
        except Exception as exc:
            logger.info("Silent search refresh failed: %s", exc)
            return
        if generation == self._generation:
            self.results = list(results)

    def upsert(self, part: PartSummary, *, only_existing: bool = False) -> None:
        if only_existing and not any(item.id == part.id for item in self.results):
            return
        self.results = upsert_part_summary(self.results, part)

    def close(self) -> None:
        self._cancel_pending()

    async def _debounced(self, text: str) -> None:
        await self._sleep(self._debounce_seconds)
        await self.run(text)

    def _cancel_pending(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None
