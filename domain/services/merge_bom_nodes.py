from __future__ import annotations

from dataclasses import replace

from domain.bom_tree import BomNodeMap, CacheTreeNode


def merge_bom_nodes(current: BomNodeMap, incoming: BomNodeMap) -> dict[str, CacheTreeNode]:
    merged = dict(current)
    for node_id, incoming_node in incoming.items():
        existing = merged.get(node_id)
        merged[node_id] = _merge_node(existing, incoming_node)
    return merged


def _merge_node(existing: CacheTreeNode | None, incoming: CacheTreeNode) -> CacheTreeNode:
    child_ids = incoming.child_ids
    children_loaded = incoming.children_loaded
    quantity = incoming.quantity_from_parent
    if existing is not None:
        # a shallower payload never truncates an already resolved subtree
        if existing.children_loaded and not incoming.children_loaded:
            child_ids = existing.child_ids
            children_loaded = True
        if quantity is None:
            quantity = existing.quantity_from_parent
    return replace(
        incoming,
        child_ids=child_ids,
        children_loaded=children_loaded,
        quantity_from_parent=quantity,
        loading_children=False,
        children_error=None,
    )
