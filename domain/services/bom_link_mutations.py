from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from domain.errors import NoSelectionError, error_message
from domain.models import BomLinkPayload, ChildPartUsage, PartSummary
from domain.ports.part_bom import PartBomApi
from domain.services.part_catalog_index import PartCatalogIndex
from domain.services.part_selection_cache import ChildLinkUpdater, PartSelectionCache
from domain.validation import BomLinkInput, UpdateBomLinkInput, validate_input

logger = logging.getLogger(__name__)


def insert_or_replace_child(
    children: list[ChildPartUsage],
    part: PartSummary | None,
    child_id: str,
    quantity: int,
) -> list[ChildPartUsage]:
    for index, child in enumerate(children):
        if child.id == child_id:
            patched = list(children)
            patched[index] = child.model_copy(update={"quantity": quantity})
            return patched
    if part is None:
        return children
    added = ChildPartUsage(
        id=part.id,
        part_number=part.part_number,
        name=part.name,
        quantity=quantity,
    )
    return sorted([*children, added], key=lambda child: (child.part_number, child.id))


def replace_child_quantity(
    children: list[ChildPartUsage],
    child_id: str,
    quantity: int,
) -> list[ChildPartUsage]:
    return [
        child.model_copy(update={"quantity": quantity}) if child.id == child_id else child
        for child in children
    ]


def remove_child(children: list[ChildPartUsage], child_id: str) -> list[ChildPartUsage]:
    return [child for child in children if child.id != child_id]


class BomLinkMutations:
    def __init__(
        self,
        api: PartBomApi,
        cache: PartSelectionCache,
        catalog: PartCatalogIndex,
        resolve_part: Callable[[str], PartSummary | None] | None = None,
    ) -> None:
        self._api = api
        self._cache = cache
        self._catalog = catalog
        self._resolve_part = resolve_part

    async def create_link(self, child_id: str, quantity: Any) -> None:
        parent_id = self._require_parent("creating")
        link = validate_input(BomLinkInput, {"child_id": child_id, "quantity": quantity})
        payload = BomLinkPayload(parent_id=parent_id, child_id=link.child_id, quantity=link.quantity)
        part = self._lookup_part(link.child_id)
        await self._run(
            parent_id,
            lambda: self._api.create_bom_link(payload),
            lambda children: insert_or_replace_child(children, part, link.child_id, payload.quantity),
        )

    async def update_link(self, child_id: str, quantity: Any) -> None:
        parent_id = self._require_parent("updating")
        update = validate_input(UpdateBomLinkInput, {"quantity": quantity})
        payload = BomLinkPayload(parent_id=parent_id, child_id=child_id, quantity=update.quantity)
        await self._run(
            parent_id,
            lambda: self._api.update_bom_link(payload),
            lambda children: replace_child_quantity(children, child_id, payload.quantity),
        )

    async def delete_link(self, child_id: str) -> None:
        parent_id = self._require_parent("deleting")
        await self._run(
            parent_id,
            lambda: self._api.delete_bom_link(parent_id, child_id),
            lambda children: remove_child(children, child_id),
        )

    def clear_error(self) -> None:
        self._cache.mutation.error = None

    def _require_parent(self, verb: str) -> str:
        parent_id = self._cache.selected_id
        if parent_id is None:
            msg = f"Select a parent part before {verb} a BOM link."
            raise NoSelectionError(msg)
        return parent_id

    def _lookup_part(self, part_id: str) -> PartSummary | None:
        part = self._catalog.find(part_id)
        if part is None and self._resolve_part is not None:
            part = self._resolve_part(part_id)
        return part

    async def _run(
        self,
        parent_id: str,
        write: Callable[[], Awaitable[Any]],
        patch: ChildLinkUpdater,
    ) -> None:
        mutation = self._cache.mutation
        mutation.loading = True
        mutation.error = None
        try:
            try:
                await write()
            except Exception as exc:
                logger.warning("BOM link write failed: %s", exc)
                mutation.error = error_message(exc)
                raise
            if self._cache.selected_id != parent_id:
                logger.info("Selection moved away from %s, skipping BOM link refresh", parent_id)
                return
            self._cache.apply_child_link_update(parent_id, patch)
            await self._cache.refresh()
        finally:
            mutation.loading = False
