from __future__ import annotations

import asyncio
import logging
from collections.abc import Collection, Sequence

from domain.models import PartSummary
from domain.ports.part_bom import PartBomApi

logger = logging.getLogger(__name__)


def sort_parts(parts: Sequence[PartSummary]) -> list[PartSummary]:
    return sorted(parts, key=lambda part: (part.part_number, part.id))


def upsert_part_summary(parts: Sequence[PartSummary], part: PartSummary) -> list[PartSummary]:
    remaining = [item for item in parts if item.id != part.id]
    return sort_parts([*remaining, part.summary()])


class PartCatalogIndex:
    def __init__(self, api: PartBomApi) -> None:
        self._api = api
        self._parts: list[PartSummary] = []
        self._by_id: dict[str, PartSummary] = {}
        self._generation = 0

    @property
    def parts(self) -> list[PartSummary]:
        return list(self._parts)

    async def refresh(self) -> bool:
        self._generation += 1
        generation = self._generation
        try:
            parts = await self._api.search_parts("")
        except Exception as exc:
            logger.info("Catalog refresh failed, keeping %s cached parts: %s", len(self._parts), exc)
            return False
        if generation != self._generation:
            return False
        self._replace(parts)
        return True

    async def run_refresh_loop(self, interval_seconds: float, stop_event: asyncio.Event) -> None:
        while True:
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
                if stop_event.is_set():
                    return
            except TimeoutError:
                pass
            try:
                await self.refresh()
            except Exception:
                logger.exception("Periodic catalog refresh failed.")

    def find(self, part_id: str) -> PartSummary | None:
        return self._by_id.get(part_id)

    def label_for(self, part_id: str) -> str:
        part = self._by_id.get(part_id)
        return part.label() if part is not None else part_id

    def upsert(self, part: PartSummary) -> None:
        self._replace(upsert_part_summary(self._parts, part))

    def link_candidates(self, root_id: str | None, linked_ids: Collection[str]) -> list[PartSummary]:
        excluded = set(linked_ids)
        if root_id is not None:
            excluded.add(root_id)
        return [part for part in self._parts if part.id not in excluded]

    def _replace(self, parts: Sequence[PartSummary]) -> None:
        self._parts = [part.summary() for part in parts]
        self._by_id = {part.id: part for part in self._parts}
