"""Tests for the literal data-integrity check."""

from slicelens.kernel.integrity import validate_data_integrity
from slicelens.kernel.model import Edge, SliceDocument, TextRange, VisualNode


def test_missing_data_source_warns():
    document = SliceDocument(
        id="s1",
        nodes=[
            VisualNode(key="buy", type="cmd", name="buy", data={"itemId": 1}),
            VisualNode(key="bought", type="evt", name="bought", data={"itemId": 1, "price": 10},
                       source_range=TextRange(start=20, end=30)),
        ],
        edges=[Edge(from_key="buy", to="bought")],
    )
    warnings = validate_data_integrity(document)

    assert len(warnings) == 1
    assert warnings[0].message == 'Missing data source for key "price" for node evt:bought'
    assert warnings[0].node_key == "bought"
    assert warnings[0].key == "price"
    assert warnings[0].range == TextRange(start=20, end=30)


def test_one_supplying_predecessor_is_enough():
    document = SliceDocument(
        id="s1",
        nodes=[
            VisualNode(key="a", type="evt", name="a", data={"x": 1}),
            VisualNode(key="b", type="evt", name="b", data={"y": 2}),
            VisualNode(key="c", type="rm", name="c", data={"x": 1, "y": 2}),
        ],
        edges=[Edge(from_key="a", to="c"), Edge(from_key="b", to="c")],
    )
    assert validate_data_integrity(document) == []


def test_nodes_without_incoming_edges_are_not_checked():
    document = SliceDocument(
        id="s1",
        nodes=[VisualNode(key="a", type="evt", name="a", data={"x": 1})],
    )
    assert validate_data_integrity(document) == []


def test_uses_mappings_are_ignored():
    """A key supplied only through a predecessor's uses block still warns."""
    document = SliceDocument(
        id="s1",
        dsl="evt:b\n  uses:\n    x\n",
        nodes=[
            VisualNode(key="a", type="cmd", name="a", data={"x": 1}),
            VisualNode(key="b", type="evt", name="b"),
            VisualNode(key="c", type="rm", name="c", data={"x": 1}),
        ],
        edges=[Edge(from_key="a", to="b"), Edge(from_key="b", to="c")],
    )
    warnings = validate_data_integrity(document)
    assert [(w.node_key, w.key) for w in warnings] == [("c", "x")]
