from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field, replace

from domain.models import PartSummary

BomNodeMap = Mapping[str, "CacheTreeNode"]


@dataclass(frozen=True)
class CacheTreeNode:
    part: PartSummary
    has_children: bool
    child_ids: tuple[str, ...] = ()
    children_loaded: bool = False
    loading_children: bool = False
    quantity_from_parent: int | None = None
    children_error: str | None = None

    @property
    def node_id(self) -> str:
        return self.part.id

    def start_loading(self) -> CacheTreeNode:
        return replace(self, loading_children=True, children_error=None)

    def fail_loading(self, message: str) -> CacheTreeNode:
        return replace(self, loading_children=False, children_error=message)

    def mark_loaded(self) -> CacheTreeNode:
        return replace(
            self,
            children_loaded=True,
            loading_children=False,
            children_error=None,
        )


@dataclass(frozen=True)
class TreeRow:
    depth: int
    node: CacheTreeNode
    expanded: bool


@dataclass
class BomTreeState:
    root_id: str | None = None
    nodes: dict[str, CacheTreeNode] = field(default_factory=dict)
    expanded_ids: set[str] = field(default_factory=set)
    loading: bool = False
    error: str | None = None

    def clear(self) -> None:
        self.root_id = None
        self.nodes = {}
        self.expanded_ids = set()

    def is_expanded(self, node_id: str) -> bool:
        return node_id in self.expanded_ids

    def visible_rows(self) -> Iterator[TreeRow]:
        if self.root_id is None or self.root_id not in self.nodes:
            return
        stack: list[tuple[int, str]] = [(0, self.root_id)]
        while stack:
            depth, node_id = stack.pop()
            node = self.nodes.get(node_id)
            if node is None:
                continue
            expanded = node_id in self.expanded_ids
            yield TreeRow(depth=depth, node=node, expanded=expanded)
            if expanded:
                for child_id in reversed(node.child_ids):
                    stack.append((depth + 1, child_id))


def reachable_ids(nodes: BomNodeMap, root_id: str) -> set[str]:
    seen: set[str] = set()
    pending = [root_id]
    while pending:
        node_id = pending.pop()
        if node_id in seen or node_id not in nodes:
            continue
        seen.add(node_id)
        pending.extend(nodes[node_id].child_ids)
    return seen
