"""Backward data provenance: where did a node's value come from.

A trace walks ``uses`` mappings from a node to the literal data that
ultimately supplies a key. Linear mappings (implicit, rename, jsonpath)
produce a hop chain; ``collect`` mappings produce one contributor chain per
predecessor of the collected family.

A visited set of ``(node_key, key)`` pairs is threaded through the walk, so
cycles truncate the affected chain instead of recursing forever.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, List, Optional, Tuple, Union

from slicelens.codes import UsesSourceKind
from slicelens.kernel.graph import SliceGraph, SourceOverrides
from slicelens.kernel.identity import to_node_analysis_ref, to_node_analysis_ref_from_node
from slicelens.kernel.model import SliceDocument
from slicelens.kernel.paths import MISSING, evaluate_jsonpath
from slicelens.kernel.uses import UsesMapping

logger = logging.getLogger(__name__)

_Visited = FrozenSet[Tuple[str, str]]


@dataclass(frozen=True)
class TraceHop:
    node_key: str
    key: str


@dataclass(frozen=True)
class TraceContributor:
    """One predecessor's branch under a collect aggregate."""
    label: str  # "item[i]"
    hops: Tuple[TraceHop, ...]
    value: Dict[str, Any]  # Projected fields; None where the contributor lacks one


@dataclass(frozen=True)
class TraceResult:
    """Outcome of tracing one key.

    ``resolved`` is False when the chain dead-ends (no source, an unresolved
    ambiguity, or a cycle); ``source`` is then None. For collect aggregates
    ``contributors`` is set and ``source`` is the aggregated list.
    """
    key: str
    hops: Tuple[TraceHop, ...] = ()
    source: Any = None
    resolved: bool = False
    contributors: Optional[Tuple[TraceContributor, ...]] = None


@dataclass(frozen=True)
class VersionTrace:
    node_key: str
    result: TraceResult


@dataclass(frozen=True)
class _Walk:
    hops: Tuple[TraceHop, ...] = ()
    source: Any = None
    resolved: bool = False
    contributors: Optional[Tuple[TraceContributor, ...]] = None


_DEAD_END = _Walk()


class _Tracer:
    def __init__(self, graph: SliceGraph, source_overrides: Optional[SourceOverrides]):
        self.graph = graph
        self.source_overrides = dict(source_overrides or {})

    def walk(self, node_key: str, key: str, visited: _Visited) -> Optional[_Walk]:
        """Trace ``key`` on a node; None when it has neither literal data nor a mapping."""
        node = self.graph.nodes[node_key]
        if node.data is not None and key in node.data:
            return _Walk(source=node.data[key], resolved=True)

        mapping = self.graph.get_mapping(node_key, key)
        if mapping is None:
            return None
        if mapping.source_kind == UsesSourceKind.COLLECT:
            return self._walk_collect(node_key, mapping, visited)
        return self._walk_linear(node_key, mapping, visited)

    def _walk_linear(self, node_key: str, mapping: UsesMapping, visited: _Visited) -> _Walk:
        selection = self.graph.select_source(node_key, mapping, self.source_overrides)
        if selection.chosen is None:
            # Missing or ambiguous; reported by the issue collector
            return _DEAD_END

        source_key = mapping.source_key
        pair = (selection.chosen, source_key)
        if pair in visited:
            logger.debug("Trace cycle at %s.%s, truncating", *pair)
            return _DEAD_END

        hop = TraceHop(node_key=selection.chosen, key=source_key)
        upstream = self.walk(selection.chosen, source_key, visited | {pair})
        if upstream is None:
            return _Walk(hops=(hop,))

        hops = (hop,) + upstream.hops
        if not upstream.resolved or mapping.source_kind != UsesSourceKind.JSONPATH:
            return _Walk(hops, upstream.source, upstream.resolved, upstream.contributors)

        value = evaluate_jsonpath(mapping.source_expr, {source_key: upstream.source})
        if value is MISSING:
            return _Walk(hops=hops, contributors=upstream.contributors)
        return _Walk(hops, value, True, upstream.contributors)

    def _walk_collect(self, node_key: str, mapping: UsesMapping, visited: _Visited) -> _Walk:
        predecessors = self.graph.get_collect_sources(node_key)
        if not predecessors:
            return _DEAD_END

        contributors: List[TraceContributor] = []
        for index, predecessor in enumerate(predecessors):
            hops: Tuple[TraceHop, ...] = (TraceHop(node_key=predecessor, key=mapping.source_expr),)
            value: Dict[str, Any] = {}
            extended = False
            for field in mapping.fields:
                pair = (predecessor, field)
                upstream = None if pair in visited else self.walk(predecessor, field, visited | {pair})
                value[field] = upstream.source if upstream is not None and upstream.resolved else None
                # The first field that leads further upstream extends the branch
                if not extended and upstream is not None and upstream.hops:
                    hops += upstream.hops
                    extended = True
            contributors.append(TraceContributor(label=f"item[{index}]", hops=hops, value=value))

        return _Walk(
            source=[contributor.value for contributor in contributors],
            resolved=True,
            contributors=tuple(contributors),
        )


def trace_data(
    graph: Union[SliceGraph, SliceDocument],
    node_key: str,
    key: str,
    source_overrides: Optional[SourceOverrides] = None,
) -> Optional[TraceResult]:
    """
    Trace where ``key`` of ``node_key`` comes from.

    Returns:
        None for unknown or generic nodes, and when the node has neither
        literal data nor a ``uses`` mapping for ``key``. Literal data
        terminates immediately with no hops.
    """
    graph = SliceGraph.coerce(graph)
    node = graph.nodes.get(node_key)
    if node is None or not node.is_traceable:
        return None

    key = key.strip()
    walked = _Tracer(graph, source_overrides).walk(node_key, key, frozenset({(node_key, key)}))
    if walked is None:
        return None
    return TraceResult(
        key=key,
        hops=walked.hops,
        source=walked.source,
        resolved=walked.resolved,
        contributors=walked.contributors,
    )


def uses_keys_for_ref(graph: Union[SliceGraph, SliceDocument], node_ref: str) -> List[str]:
    """Sorted ``uses`` target keys across every version of a canonical ref."""
    graph = SliceGraph.coerce(graph)
    analysis_ref = to_node_analysis_ref(node_ref)
    keys = set()
    for node_key, node in graph.nodes.items():
        if node.is_traceable and to_node_analysis_ref_from_node(node) == analysis_ref:
            keys.update(mapping.target_key for mapping in graph.get_mappings(node_key))
    return sorted(keys)


def trace_node_ref(
    graph: Union[SliceGraph, SliceDocument],
    node_ref: str,
    source_overrides: Optional[SourceOverrides] = None,
) -> Dict[str, List[VersionTrace]]:
    """
    Trace every ``uses`` key of every version of a canonical node.

    Returns:
        ``{key: [VersionTrace(node_key, result), ...]}`` in node order, so a
        key that resolves differently per version shows one entry per version.
    """
    graph = SliceGraph.coerce(graph)
    analysis_ref = to_node_analysis_ref(node_ref)
    versions = [
        node_key for node_key, node in graph.nodes.items()
        if node.is_traceable and to_node_analysis_ref_from_node(node) == analysis_ref
    ]

    by_key: Dict[str, List[VersionTrace]] = {}
    for key in uses_keys_for_ref(graph, analysis_ref):
        entries = []
        for node_key in versions:
            if graph.get_mapping(node_key, key) is None:
                continue
            result = trace_data(graph, node_key, key, source_overrides)
            if result is not None:
                entries.append(VersionTrace(node_key=node_key, result=result))
        by_key[key] = entries
    return by_key


class DataTraceQuery:
    """Trace queries bound to one graph and one override set."""

    def __init__(
        self,
        graph: Union[SliceGraph, SliceDocument],
        source_overrides: Optional[SourceOverrides] = None,
    ):
        self.graph = SliceGraph.coerce(graph)
        self.source_overrides = dict(source_overrides or {})

    def trace_data(self, node_key: str, key: str) -> Optional[TraceResult]:
        return trace_data(self.graph, node_key, key, self.source_overrides)


def create_data_trace_query(
    graph: Union[SliceGraph, SliceDocument],
    source_overrides: Optional[SourceOverrides] = None,
) -> DataTraceQuery:
    return DataTraceQuery(graph, source_overrides)
