"""Performance sentinels: synthetic slices sized like large real models."""

from __future__ import annotations

import os
from typing import List

from slicelens.kernel.model import Edge, SliceDocument, VisualNode


def _budget_from_env(var_name: str, default_ms: float) -> float:
    raw = os.getenv(var_name)
    if not raw:
        return default_ms
    try:
        return float(raw)
    except ValueError:
        return default_ms


MAX_LINEAR_CHAIN_TRACE_MS = _budget_from_env("SLICELENS_MAX_LINEAR_CHAIN_TRACE_MS", 500.0)
MAX_WIDE_COLLECT_MS = _budget_from_env("SLICELENS_MAX_WIDE_COLLECT_MS", 500.0)
MAX_SLICE_ANALYSIS_MS = _budget_from_env("SLICELENS_MAX_SLICE_ANALYSIS_MS", 1000.0)


def linear_chain_document(length: int) -> SliceDocument:
    """``evt:n0`` holds ``value``; every later node re-exports it via ``uses``."""
    nodes: List[VisualNode] = []
    edges: List[Edge] = []
    dsl_lines = ['slice "Linear chain"', "", "evt:n0"]
    nodes.append(VisualNode(key="n0", type="evt", name="n0", data={"value": 0}))
    for i in range(1, length):
        nodes.append(VisualNode(key=f"n{i}", type="evt", name=f"n{i}"))
        edges.append(Edge(from_key=f"n{i - 1}", to=f"n{i}"))
        dsl_lines.extend([f"evt:n{i}", "  uses:", "    value"])
    return SliceDocument(id="linear-chain", dsl="\n".join(dsl_lines), nodes=nodes, edges=edges)


def wide_collect_document(width: int) -> SliceDocument:
    """``width`` versions of one event all feeding a read model that collects them."""
    nodes: List[VisualNode] = [VisualNode(key="list", type="rm", name="list")]
    edges: List[Edge] = []
    for i in range(width):
        key = f"item-added@{i + 1}"
        nodes.append(VisualNode(key=key, type="evt", name=key, data={"id": i, "name": f"item {i}"}))
        edges.append(Edge(from_key=key, to="list"))
    dsl = 'slice "Wide collect"\n\nrm:list\n  uses:\n    items <- collect({id,name})\n'
    return SliceDocument(id="wide-collect", dsl=dsl, nodes=nodes, edges=edges)

