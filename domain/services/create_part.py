from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from domain.errors import error_message
from domain.models import PartDetails, PartSummary
from domain.ports.part_bom import PartBomApi
from domain.services.part_catalog_index import PartCatalogIndex
from domain.services.part_search import PartSearch
from domain.services.part_selection_cache import PartSelectionCache
from domain.validation import CreatePartInput, validate_input

logger = logging.getLogger(__name__)


class CreatePart:
    def __init__(
        self,
        api: PartBomApi,
        catalog: PartCatalogIndex,
        search: PartSearch,
        cache: PartSelectionCache,
    ) -> None:
        self._api = api
        self._catalog = catalog
        self._search = search
        self._cache = cache
        self.loading = False
        self.error: str | None = None

    async def create(self, data: Mapping[str, Any], *, select: bool = True) -> PartSummary:
        form = validate_input(CreatePartInput, data)
        self.loading = True
        self.error = None
        self._search.error = None
        try:
            record = await self._api.create_part(form.to_payload())
        except Exception as exc:
            logger.warning("Creating part %r failed: %s", form.name, exc)
            self.error = error_message(exc)
            raise
        finally:
            self.loading = False

        summary = record.summary()
        self._catalog.upsert(summary)
        self._search.upsert(summary)
        if select:
            self._search.set_query("")
            self._cache.details.data = PartDetails.from_record(record)
            await self._cache.select(record.id)
        return summary

    def clear_error(self) -> None:
        self.error = None
