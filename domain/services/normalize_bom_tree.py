from __future__ import annotations

from domain.bom_tree import CacheTreeNode
from domain.models import BomTreeNode, TreeDepth

UNBOUNDED_DEPTH = "all"


def normalize_bom_tree(tree: BomTreeNode, requested_depth: TreeDepth) -> dict[str, CacheTreeNode]:
    nodes: dict[str, CacheTreeNode] = {}
    stack: list[tuple[BomTreeNode, int]] = [(tree, 0)]
    while stack:
        node, depth = stack.pop()
        nodes[node.part.id] = CacheTreeNode(
            part=node.part,
            quantity_from_parent=node.quantity_from_parent,
            has_children=node.has_children,
            child_ids=tuple(child.part.id for child in node.children),
            children_loaded=not node.has_children or _within_depth(depth, requested_depth),
            loading_children=False,
        )
        for child in reversed(node.children):
            stack.append((child, depth + 1))
    return nodes


def _within_depth(depth: int, requested_depth: TreeDepth) -> bool:
    if requested_depth == UNBOUNDED_DEPTH:
        return True
    return depth < int(requested_depth)
