from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

AuditAction = Literal[
    "PART_CREATED",
    "PART_UPDATED",
    "BOM_LINK_CREATED",
    "BOM_LINK_UPDATED",
    "BOM_LINK_REMOVED",
]

TreeDepth = int | Literal["all"]


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class PartSummary(WireModel):
    id: str = Field(..., min_length=1)
    part_number: str = ""
    name: str = ""

    def summary(self) -> PartSummary:
        return PartSummary(id=self.id, part_number=self.part_number, name=self.name)

    def label(self) -> str:
        if self.part_number and self.name:
            return f"{self.part_number} {self.name}"
        return self.part_number or self.name or self.id


class ChildPartUsage(PartSummary):
    quantity: int


class PartRecord(PartSummary):
    description: str = ""
    created_at: str = ""
    updated_at: str = ""


class PartDetails(PartRecord):
    parent_count: int = 0
    child_count: int = 0
    parent_parts: list[PartSummary] = Field(default_factory=list)
    child_parts: list[ChildPartUsage] = Field(default_factory=list)

    @field_validator("parent_count", "child_count", mode="before")
    @classmethod
    def normalize_count(cls, value: object) -> int:
        try:
            return max(0, int(value))  # type: ignore[call-overload]
        except (TypeError, ValueError):
            return 0

    @classmethod
    def from_record(cls, record: PartRecord) -> PartDetails:
        return cls(**record.model_dump())


class AuditLogEntry(WireModel):
    id: str
    part_id: str
    action: AuditAction
    message: str = ""
    timestamp: str = ""
    metadata: dict[str, str | int | float] | None = None


class BomTreeNode(WireModel):
    part: PartSummary
    quantity_from_parent: int | None = None
    has_children: bool = False
    children: list[BomTreeNode] = Field(default_factory=list)


class BomTreeResponse(WireModel):
    root_part_id: str
    requested_depth: TreeDepth = 1
    node_limit: int | None = None
    node_count: int = 0
    tree: BomTreeNode


class CreatePartPayload(WireModel):
    name: str
    part_number: str | None = None
    description: str | None = None


class BomLinkPayload(WireModel):
    parent_id: str
    child_id: str
    quantity: int
