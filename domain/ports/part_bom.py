from __future__ import annotations

from typing import Any, Protocol

from domain.models import (
    AuditLogEntry,
    BomLinkPayload,
    BomTreeResponse,
    CreatePartPayload,
    PartDetails,
    PartRecord,
    PartSummary,
    TreeDepth,
)


class PartBomApi(Protocol):
    async def search_parts(self, query: str) -> list[PartSummary]: ...

    async def get_part_details(self, part_id: str) -> PartDetails: ...

    async def get_part_audit_logs(self, part_id: str) -> list[AuditLogEntry]: ...

    async def get_bom_tree(
        self,
        root_id: str,
        depth: TreeDepth = 1,
        node_limit: int | None = None,
    ) -> BomTreeResponse: ...

    async def create_part(self, payload: CreatePartPayload) -> PartRecord: ...

    async def create_bom_link(self, payload: BomLinkPayload) -> Any: ...

    async def update_bom_link(self, payload: BomLinkPayload) -> Any: ...

    async def delete_bom_link(self, parent_id: str, child_id: str) -> Any: ...
