"""Tests for backward data tracing."""

from slicelens.codes import DataIssueCode
from slicelens.kernel.graph import source_override_key
from slicelens.kernel.issues import collect_data_issues, get_ambiguous_source_candidates
from slicelens.kernel.model import Edge, SliceDocument, VisualNode
from slicelens.kernel.trace import (
    TraceHop,
    create_data_trace_query,
    trace_data,
    trace_node_ref,
    uses_keys_for_ref,
)


def _document(nodes, edges, dsl):
    return SliceDocument(
        id="s1",
        dsl=dsl,
        nodes=nodes,
        edges=[Edge(from_key=a, to=b) for a, b in edges],
    )


CHAIN_DSL = """slice "Buy Things"

evt:bought
  uses:
    itemId
rm:cart
  uses:
    item <- itemId
    price
"""


def _chain_document():
    return _document(
        [
            VisualNode(key="buy", type="cmd", name="buy", data={"itemId": 7}),
            VisualNode(key="bought", type="evt", name="bought"),
            VisualNode(key="cart", type="rm", name="cart"),
        ],
        [("buy", "bought"), ("bought", "cart")],
        CHAIN_DSL,
    )


def test_literal_data_terminates_immediately():
    result = trace_data(_chain_document(), "buy", "itemId")
    assert result.hops == ()
    assert result.source == 7
    assert result.resolved


def test_chain_through_rename():
    result = trace_data(_chain_document(), "cart", "item")
    assert result.hops == (TraceHop("bought", "itemId"), TraceHop("buy", "itemId"))
    assert result.source == 7
    assert result.resolved
    assert result.contributors is None


def test_missing_source_dead_ends():
    result = trace_data(_chain_document(), "cart", "price")
    assert result.hops == ()
    assert result.source is None
    assert not result.resolved


def test_unknown_key_generic_or_unknown_node_returns_none():
    document = _chain_document()
    assert trace_data(document, "buy", "nope") is None
    assert trace_data(document, "missing", "itemId") is None

    generic = _document(
        [VisualNode(key="note", type="generic", name="note", data={"x": 1})],
        [],
        "",
    )
    assert trace_data(generic, "note", "x") is None


def test_key_is_trimmed():
    assert trace_data(_chain_document(), "cart", " item ").key == "item"


def test_ambiguous_source_needs_override():
    dsl = "rm:total\n  uses:\n    amount\n"
    document = _document(
        [
            VisualNode(key="one", type="evt", name="one", data={"amount": 1}),
            VisualNode(key="two", type="evt", name="two", data={"amount": 2}),
            VisualNode(key="total", type="rm", name="total"),
        ],
        [("one", "total"), ("two", "total")],
        dsl,
    )

    unresolved = trace_data(document, "total", "amount")
    assert not unresolved.resolved
    assert unresolved.hops == ()

    resolved = trace_data(document, "total", "amount", {"total:amount": "two"})
    assert resolved.resolved
    assert resolved.hops == (TraceHop("two", "amount"),)
    assert resolved.source == 2


def test_jsonpath_trace_applies_path():
    dsl = "evt:checked-out\n  uses:\n    first <- $.cart.items[0].sku\n"
    document = _document(
        [
            VisualNode(key="checkout", type="cmd", name="checkout",
                       data={"cart": {"items": [{"sku": "a-1"}, {"sku": "b-2"}]}}),
            VisualNode(key="checked-out", type="evt", name="checked-out"),
        ],
        [("checkout", "checked-out")],
        dsl,
    )
    result = trace_data(document, "checked-out", "first")
    assert result.hops == (TraceHop("checkout", "cart"),)
    assert result.source == "a-1"
    assert result.resolved


def test_collect_produces_one_contributor_per_version():
    dsl = "evt:thing-added@1\n  uses:\n    id\nrm:list\n  uses:\n    items <- collect({id,name})\n"
    document = _document(
        [
            VisualNode(key="seed", type="cmd", name="seed", data={"id": 1}),
            VisualNode(key="thing-added@1", type="evt", name="thing-added@1", data={"name": "a"}),
            VisualNode(key="thing-added@2", type="evt", name="thing-added@2", data={"id": 2}),
            VisualNode(key="list", type="rm", name="list"),
        ],
        [("seed", "thing-added@1"), ("thing-added@1", "list"), ("thing-added@2", "list")],
        dsl,
    )
    result = trace_data(document, "list", "items")

    assert result.resolved
    assert result.hops == ()
    assert result.source == [{"id": 1, "name": "a"}, {"id": 2, "name": None}]

    first, second = result.contributors
    assert first.label == "item[0]"
    # The first field with an upstream chain extends the branch
    assert first.hops == (TraceHop("thing-added@1", "collect({id,name})"), TraceHop("seed", "id"))
    assert first.value == {"id": 1, "name": "a"}
    assert second.label == "item[1]"
    assert second.hops == (TraceHop("thing-added@2", "collect({id,name})"),)
    assert second.value == {"id": 2, "name": None}


def test_collect_contributors_exclude_other_refs():
    dsl = "rm:my-rm\n  uses:\n    things <- collect({id})\n"
    document = _document(
        [
            VisualNode(key="thing-added@1", type="evt", name="thing-added@1", data={"id": 100}),
            VisualNode(key="other", type="cmd", name="other", data={"id": 999}),
            VisualNode(key="thing-added@2", type="evt", name="thing-added@2", data={"id": 200}),
            VisualNode(key="my-rm", type="rm", name="my-rm"),
        ],
        [("thing-added@1", "my-rm"), ("other", "my-rm"), ("thing-added@2", "my-rm")],
        dsl,
    )
    result = trace_data(document, "my-rm", "things")

    assert [c.label for c in result.contributors] == ["item[0]", "item[1]"]
    assert [c.hops[-1].node_key for c in result.contributors] == ["thing-added@1", "thing-added@2"]
    assert result.source == [{"id": 100}, {"id": 200}]


def test_collect_without_predecessors_is_unresolved():
    dsl = "rm:list\n  uses:\n    items <- collect({id})\n"
    document = _document([VisualNode(key="list", type="rm", name="list")], [], dsl)
    result = trace_data(document, "list", "items")
    assert not result.resolved
    assert result.contributors is None


def test_cycle_truncates_chain():
    dsl = "evt:a\n  uses:\n    x\nevt:b\n  uses:\n    x\n"
    document = _document(
        [VisualNode(key="a", type="evt", name="a"), VisualNode(key="b", type="evt", name="b")],
        [("a", "b"), ("b", "a")],
        dsl,
    )
    result = trace_data(document, "a", "x")
    assert result.hops == (TraceHop("b", "x"),)
    assert not result.resolved


VERSIONS_DSL = """cmd:buy@1
  uses:
    price
cmd:buy@2
  uses:
    price
    qty
"""


def _versions_document():
    return _document(
        [
            VisualNode(key="old-price", type="evt", name="old-price", data={"price": 5}),
            VisualNode(key="new-price", type="evt", name="new-price", data={"price": 9, "qty": 1}),
            VisualNode(key="buy@1", type="cmd", name="buy@1"),
            VisualNode(key="buy@2", type="cmd", name="buy@2"),
        ],
        [("old-price", "buy@1"), ("new-price", "buy@2")],
        VERSIONS_DSL,
    )


def test_uses_keys_for_ref_covers_all_versions():
    assert uses_keys_for_ref(_versions_document(), "cmd:buy") == ["price", "qty"]
    assert uses_keys_for_ref(_versions_document(), "cmd:buy@7") == ["price", "qty"]
    assert uses_keys_for_ref(_versions_document(), "evt:old-price") == []


def test_trace_node_ref_reports_each_version():
    traces = trace_node_ref(_versions_document(), "cmd:buy")

    assert list(traces) == ["price", "qty"]
    assert [(t.node_key, t.result.source) for t in traces["price"]] == [("buy@1", 5), ("buy@2", 9)]
    # Only versions that map the key appear
    assert [(t.node_key, t.result.source) for t in traces["qty"]] == [("buy@2", 1)]


def test_trace_query_binds_overrides():
    dsl = "rm:total\n  uses:\n    amount\n"
    document = _document(
        [
            VisualNode(key="one", type="evt", name="one", data={"amount": 1}),
            VisualNode(key="two", type="evt", name="two", data={"amount": 2}),
            VisualNode(key="total", type="rm", name="total"),
        ],
        [("one", "total"), ("two", "total")],
        dsl,
    )
    query = create_data_trace_query(document, {"total:amount": "evt:one"})
    assert query.trace_data("total", "amount").source == 1


def test_quick_fix_candidate_resolves_trace():
    """Applying a quick-fix candidate as an override ends the trace at that event."""
    dsl = "cmd:buy\n  uses:\n    amount\n"
    document = _document(
        [
            VisualNode(key="one", type="evt", name="one", data={"amount": 1}),
            VisualNode(key="two", type="evt", name="two", data={"amount": 2}),
            VisualNode(key="buy", type="cmd", name="buy"),
        ],
        [("one", "buy"), ("two", "buy")],
        dsl,
    )
    (issue,) = collect_data_issues(document)
    assert issue.code == DataIssueCode.AMBIGUOUS_SOURCE

    candidates = get_ambiguous_source_candidates(document, "buy", "amount")
    assert candidates == ["evt:one", "evt:two"]

    overrides = {source_override_key("buy", "amount"): candidates[1]}
    assert collect_data_issues(document, overrides) == []

    result = trace_data(document, "buy", "amount", overrides)
    assert result.resolved
    assert result.hops == (TraceHop("two", "amount"),)
    assert result.source == 2
