from __future__ import annotations

from domain.models import BomTreeNode, PartSummary
from domain.services.normalize_bom_tree import normalize_bom_tree


def _part(part_id: str, name: str) -> PartSummary:
    suffix = part_id.split("-")[-1]
    return PartSummary(id=part_id, part_number=f"PRT-00{suffix}", name=name)


def sample_tree() -> BomTreeNode:
    return BomTreeNode.model_validate(
        {
            "part": {"id": "PART-0001", "partNumber": "PRT-000001", "name": "Root Assembly"},
            "hasChildren": True,
            "children": [
                {
                    "part": {"id": "PART-0002", "partNumber": "PRT-000002", "name": "Child Module"},
                    "quantityFromParent": 2,
                    "hasChildren": True,
                    "children": [
                        {
                            "part": {
                                "id": "PART-0003",
                                "partNumber": "PRT-000003",
                                "name": "Leaf Component",
                            },
                            "quantityFromParent": 4,
                            "hasChildren": False,
                            "children": [],
                        }
                    ],
                }
            ],
        }
    )


def test_normalize_marks_full_tree_loaded_for_depth_all() -> None:
    nodes = normalize_bom_tree(sample_tree(), "all")

    assert set(nodes) == {"PART-0001", "PART-0002", "PART-0003"}
    assert all(node.children_loaded for node in nodes.values())
    assert nodes["PART-0001"].child_ids == ("PART-0002",)
    assert nodes["PART-0002"].child_ids == ("PART-0003",)
    assert nodes["PART-0003"].child_ids == ()
    assert nodes["PART-0002"].quantity_from_parent == 2
    assert nodes["PART-0003"].quantity_from_parent == 4
    assert nodes["PART-0001"].quantity_from_parent is None


def test_normalize_marks_boundary_node_not_loaded() -> None:
    tree = BomTreeNode(
        part=_part("PART-0001", "Root"),
        has_children=True,
        children=[
            BomTreeNode(
                part=_part("PART-0002", "Child"),
                quantity_from_parent=2,
                has_children=True,
                children=[],
            ),
            BomTreeNode(
                part=_part("PART-0004", "Leaf"),
                quantity_from_parent=1,
                has_children=False,
                children=[],
            ),
        ],
    )

    nodes = normalize_bom_tree(tree, 1)

    assert nodes["PART-0001"].children_loaded is True
    assert nodes["PART-0001"].child_ids == ("PART-0002", "PART-0004")
    assert nodes["PART-0002"].children_loaded is False
    assert nodes["PART-0002"].child_ids == ()
    assert nodes["PART-0004"].children_loaded is True


def test_normalize_respects_depth_for_every_level() -> None:
    nodes = normalize_bom_tree(sample_tree(), 2)

    assert nodes["PART-0001"].children_loaded is True
    assert nodes["PART-0002"].children_loaded is True
    assert nodes["PART-0003"].children_loaded is True


def test_normalize_root_with_children_at_depth_zero_is_not_loaded() -> None:
    tree = BomTreeNode(part=_part("PART-0001", "Root"), has_children=True, children=[])

    nodes = normalize_bom_tree(tree, 0)

    assert nodes["PART-0001"].children_loaded is False


def test_normalize_is_deterministic() -> None:
    tree = sample_tree()

    assert normalize_bom_tree(tree, 1) == normalize_bom_tree(tree, 1)
    assert normalize_bom_tree(tree, "all") == normalize_bom_tree(tree, "all")


def test_normalize_clears_transient_state() -> None:
    nodes = normalize_bom_tree(sample_tree(), "all")

    assert not any(node.loading_children for node in nodes.values())
    assert all(node.children_error is None for node in nodes.values())
