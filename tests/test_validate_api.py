"""Contract tests for slicelens.api.validate()."""

from slicelens.api import ValidationResult, validate
from slicelens.codes import ValidationCode


def _slice(slice_id, dsl="", nodes=None, edges=None):
    return {"id": slice_id, "dsl": dsl, "nodes": nodes or [], "edges": edges or []}


def test_validate_clean_bundle():
    bundle = {"slices": [
        _slice(
            "s1",
            dsl="evt:bought\n  uses:\n    itemId\n",
            nodes=[
                {"key": "buy", "type": "cmd", "name": "buy", "data": {"itemId": 1}},
                {"key": "bought", "type": "evt", "name": "bought"},
            ],
            edges=[{"from": "buy", "to": "bought"}],
        ),
    ]}
    result = validate(bundle)

    assert isinstance(result, ValidationResult)
    assert result.ok is True
    assert result.errors == []
    assert result.warnings == []


def test_validate_invalid_bundle():
    result = validate({"no-slices": True})
    assert result.ok is False
    assert [e.code for e in result.errors] == [ValidationCode.INVALID_BUNDLE]


def test_validate_duplicate_slice_ids():
    result = validate({"slices": [_slice("s1"), _slice("s1")]})
    assert result.ok is False
    assert [e.code for e in result.errors] == [ValidationCode.DUPLICATE_SLICE_ID]
    assert result.errors[0].slice_id == "s1"


def test_validate_dangling_edge():
    bundle = {"slices": [_slice(
        "s1",
        nodes=[{"key": "a", "type": "evt", "name": "a"}],
        edges=[{"from": "a", "to": "ghost"}],
    )]}
    result = validate(bundle)
    assert result.ok is False
    assert [e.code for e in result.errors] == [ValidationCode.DANGLING_EDGE]
    assert "ghost" in result.errors[0].message


def test_validate_data_issues_are_warnings():
    bundle = {"slices": [_slice(
        "s1",
        dsl="rm:total\n  uses:\n    amount\n    missing\n",
        nodes=[
            {"key": "one", "type": "evt", "name": "one", "data": {"amount": 1}},
            {"key": "two", "type": "evt", "name": "two", "data": {"amount": 2}},
            {"key": "total", "type": "rm", "name": "total", "data": {"amount": 3}},
        ],
        edges=[{"from": "one", "to": "total"}, {"from": "two", "to": "total"}],
    )]}
    result = validate(bundle)

    assert result.ok is True
    codes = [w.code for w in result.warnings]
    assert codes == [
        ValidationCode.AMBIGUOUS_SOURCE,
        ValidationCode.MISSING_SOURCE,
        ValidationCode.DUPLICATE_DATA_KEY,
    ]
    assert result.warnings[0].candidates == ["evt:one", "evt:two"]
    assert result.warnings[1].key == "missing"


def test_validate_override_clears_ambiguity():
    bundle = {"slices": [_slice(
        "s1",
        dsl="rm:total\n  uses:\n    amount\n",
        nodes=[
            {"key": "one", "type": "evt", "name": "one", "data": {"amount": 1}},
            {"key": "two", "type": "evt", "name": "two", "data": {"amount": 2}},
            {"key": "total", "type": "rm", "name": "total"},
        ],
        edges=[{"from": "one", "to": "total"}, {"from": "two", "to": "total"}],
    )]}
    result = validate(bundle, source_overrides={"total:amount": "one"})
    assert result.warnings == []


def test_validate_integrity_warning():
    bundle = {"slices": [_slice(
        "s1",
        nodes=[
            {"key": "a", "type": "cmd", "name": "a", "data": {}},
            {"key": "b", "type": "evt", "name": "b", "data": {"x": 1}},
        ],
        edges=[{"from": "a", "to": "b"}],
    )]}
    result = validate(bundle)
    assert [w.code for w in result.warnings] == [ValidationCode.MISSING_DATA_SOURCE]
    assert result.warnings[0].key == "x"
