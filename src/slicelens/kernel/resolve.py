"""Effective node data: literal data plus values resolved through ``uses``.

A mapped value is resolved from the single selected predecessor (see
``SliceGraph.select_source``); missing and ambiguous mappings resolve to
nothing and are left to the issue collector to report.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Set, Tuple, Union

from slicelens.codes import UsesSourceKind, WarningLevel
from slicelens.kernel.graph import SliceGraph, SourceOverrides
from slicelens.kernel.identity import to_node_ref
from slicelens.kernel.model import SliceDocument, TextRange
from slicelens.kernel.paths import MISSING, evaluate_jsonpath

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MappingWarning:
    message: str
    range: TextRange
    level: WarningLevel = WarningLevel.WARNING


class DataResolver:
    """Memoized, cycle-guarded value lookup for ``(node_key, key)`` pairs.

    One resolver belongs to one query; it is never shared across override sets.
    """

    def __init__(self, graph: SliceGraph, source_overrides: Optional[SourceOverrides] = None):
        self.graph = graph
        self.source_overrides = dict(source_overrides or {})
        self._memo: Dict[Tuple[str, str], Any] = {}
        self._in_progress: Set[Tuple[str, str]] = set()

    def value(self, node_key: str, key: str) -> Any:
        """Resolved value of ``key`` on a node, or ``MISSING``."""
        pair = (node_key, key)
        if pair in self._memo:
            return self._memo[pair]
        if pair in self._in_progress:
            logger.debug("Cycle while resolving %s.%s", node_key, key)
            return MISSING

        self._in_progress.add(pair)
        try:
            result = self._compute(node_key, key)
        finally:
            self._in_progress.discard(pair)
        self._memo[pair] = result
        return result

    def _compute(self, node_key: str, key: str) -> Any:
        node = self.graph.nodes.get(node_key)
        if node is None:
            return MISSING
        if node.data is not None and key in node.data:
            return node.data[key]

        mapping = self.graph.get_mapping(node_key, key)
        if mapping is None:
            return MISSING

        if mapping.source_kind == UsesSourceKind.COLLECT:
            return [
                self.project(predecessor, mapping.fields)
                for predecessor in self.graph.get_collect_sources(node_key)
            ]

        selection = self.graph.select_source(node_key, mapping, self.source_overrides)
        if selection.chosen is None:
            return MISSING
        upstream = self.value(selection.chosen, mapping.source_key)
        if upstream is MISSING or mapping.source_kind != UsesSourceKind.JSONPATH:
            return upstream
        return evaluate_jsonpath(mapping.source_expr, {mapping.source_key: upstream})

    def project(self, node_key: str, fields) -> Dict[str, Any]:
        """One collect item: each field's value, None where the node lacks it."""
        item = {}
        for field in fields:
            value = self.value(node_key, field)
            item[field] = None if value is MISSING else value
        return item

    def node_data(self, node_key: str) -> Optional[Dict[str, Any]]:
        """Resolved mapped values merged under the node's literal data."""
        node = self.graph.nodes[node_key]
        literal = node.data or {}
        mapped: Dict[str, Any] = {}
        for mapping in self.graph.get_mappings(node_key):
            if mapping.target_key in literal:
                continue
            value = self.value(node_key, mapping.target_key)
            if value is not MISSING:
                mapped[mapping.target_key] = value
        merged = {**mapped, **literal}
        return merged or None


def apply_uses_mappings(
    graph: Union[SliceGraph, SliceDocument],
    source_overrides: Optional[SourceOverrides] = None,
) -> Tuple[Dict[str, Optional[Dict[str, Any]]], List[MappingWarning]]:
    """Effective data for every node, plus duplicate-declaration warnings.

    The input graph is not modified; a fresh ``{node_key: data}`` map is returned.
    """
    graph = SliceGraph.coerce(graph)
    resolver = DataResolver(graph, source_overrides)
    warnings: List[MappingWarning] = []

    for node_key, node in graph.nodes.items():
        for mapping in graph.get_mappings(node_key):
            if node.data is not None and mapping.target_key in node.data:
                warnings.append(MappingWarning(
                    message=(
                        f'Duplicate data key "{mapping.target_key}" in node {to_node_ref(node)} '
                        f"(declared in both data and uses)"
                    ),
                    range=mapping.range,
                ))

    data = {node_key: resolver.node_data(node_key) for node_key in graph.nodes}
    return data, warnings


def resolve_node_data(
    graph: Union[SliceGraph, SliceDocument],
    source_overrides: Optional[SourceOverrides] = None,
) -> Dict[str, Optional[Dict[str, Any]]]:
    data, _ = apply_uses_mappings(graph, source_overrides)
    return data
