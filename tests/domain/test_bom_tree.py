from __future__ import annotations

from domain.bom_tree import BomTreeState, CacheTreeNode, reachable_ids
from domain.models import PartSummary


def _node(part_id: str, child_ids: tuple[str, ...] = (), loaded: bool = True) -> CacheTreeNode:
    return CacheTreeNode(
        part=PartSummary(id=part_id, part_number=part_id, name=part_id),
        has_children=bool(child_ids) or not loaded,
        child_ids=child_ids,
        children_loaded=loaded,
    )


def _state() -> BomTreeState:
    nodes = {
        "A": _node("A", ("B", "C")),
        "B": _node("B", ("D",)),
        "C": _node("C"),
        "D": _node("D"),
        "Z": _node("Z"),
    }
    return BomTreeState(root_id="A", nodes=nodes, expanded_ids={"A"})


def test_visible_rows_follow_expansion() -> None:
    state = _state()

    rows = [(row.depth, row.node.node_id) for row in state.visible_rows()]
    assert rows == [(0, "A"), (1, "B"), (1, "C")]

    state.expanded_ids.add("B")
    rows = [(row.depth, row.node.node_id) for row in state.visible_rows()]
    assert rows == [(0, "A"), (1, "B"), (2, "D"), (1, "C")]


def test_visible_rows_skip_children_missing_from_map() -> None:
    state = _state()
    del state.nodes["C"]

    rows = [row.node.node_id for row in state.visible_rows()]

    assert rows == ["A", "B"]


def test_visible_rows_empty_without_root() -> None:
    assert list(BomTreeState().visible_rows()) == []


def test_reachable_ids_excludes_orphans() -> None:
    state = _state()

    assert reachable_ids(state.nodes, "A") == {"A", "B", "C", "D"}
    assert reachable_ids(state.nodes, "missing") == set()


def test_node_loading_transitions() -> None:
    node = _node("B", (), loaded=False)

    loading = node.start_loading()
    assert loading.loading_children is True

    failed = loading.fail_loading("boom")
    assert failed.loading_children is False
    assert failed.children_error == "boom"
    assert failed.children_loaded is False

    loaded = failed.start_loading().mark_loaded()
    assert loaded.children_loaded is True
    assert loaded.children_error is None
