"""Predecessor index and source selection for one slice graph."""

from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple, Union

from slicelens.codes import UsesSourceKind
from slicelens.kernel.identity import to_node_analysis_ref_from_node, to_node_ref
from slicelens.kernel.model import Edge, SliceDocument, VisualNode
from slicelens.kernel.uses import UsesMapping, find_mapping, parse_uses_blocks

SourceOverrides = Mapping[str, str]


def source_override_key(node_key: str, key: str) -> str:
    """Key of a source override entry: ``"<nodeKey>:<key>"``."""
    return f"{node_key}:{key}"


@dataclass(frozen=True)
class SourceSelection:
    """Predecessors able to supply a mapping, and the one that was picked."""
    candidates: Tuple[str, ...]  # Node keys, edge order
    chosen: Optional[str]
    aggregate: bool = False  # collect: every candidate contributes, none is chosen

    @property
    def is_missing(self) -> bool:
        return not self.candidates

    @property
    def is_ambiguous(self) -> bool:
        return not self.aggregate and len(self.candidates) > 1 and self.chosen is None


class SliceGraph:
    """Key-indexed view of one slice document.

    Nodes never reference each other; predecessor and successor lists are
    derived once from the flat edge list. Edges whose endpoints are not
    nodes of the document are ignored.
    """

    def __init__(
        self,
        nodes: Mapping[str, VisualNode],
        edges: Iterable[Edge],
        dsl: str = "",
        slice_id: Optional[str] = None,
    ):
        self.nodes: Mapping[str, VisualNode] = nodes
        self.edges: List[Edge] = list(edges)
        self.dsl = dsl
        self.slice_id = slice_id
        self.predecessors: Dict[str, List[str]] = defaultdict(list)  # node -> direct predecessors
        self.successors: Dict[str, List[str]] = defaultdict(list)  # node -> direct successors
        self.mappings_by_ref: Dict[str, List[UsesMapping]] = parse_uses_blocks(dsl)
        self._build()

    @classmethod
    def from_document(cls, document: SliceDocument) -> "SliceGraph":
        return cls(document.nodes, document.edges, dsl=document.dsl, slice_id=document.id)

    @classmethod
    def coerce(cls, graph: Union["SliceGraph", SliceDocument]) -> "SliceGraph":
        if isinstance(graph, SliceGraph):
            return graph
        return cls.from_document(graph)

    def _build(self) -> None:
        for edge in self.edges:
            if edge.from_key not in self.nodes or edge.to not in self.nodes:
                continue
            # Parallel edges collapse to one dependency
            if edge.from_key not in self.predecessors[edge.to]:
                self.predecessors[edge.to].append(edge.from_key)
                self.successors[edge.from_key].append(edge.to)

    def get_predecessors(self, node_key: str) -> List[str]:
        """Direct predecessors of a node, in edge order."""
        return list(self.predecessors.get(node_key, []))

    def get_successors(self, node_key: str) -> List[str]:
        return list(self.successors.get(node_key, []))

    def get_transitive_predecessors(self, node_key: str) -> Set[str]:
        """All upstream nodes (recursive)."""
        return self._walk(node_key, self.get_predecessors)

    def get_transitive_successors(self, node_key: str) -> Set[str]:
        """All downstream nodes (recursive)."""
        return self._walk(node_key, self.get_successors)

    def _walk(self, node_key: str, step) -> Set[str]:
        visited = set()
        stack = [node_key]

        while stack:
            current = stack.pop()
            if current in visited:
                continue
            visited.add(current)
            for nxt in step(current):
                if nxt not in visited:
                    stack.append(nxt)

        visited.discard(node_key)  # Don't include the node itself
        return visited

    def get_related_elements(self, node_key: Optional[str]) -> Tuple[Set[str], Set[Tuple[str, str]]]:
        """Node keys upstream and downstream of ``node_key`` (itself included),
        plus the ``(from, to)`` edges connecting them."""
        if not node_key or node_key not in self.nodes:
            return set(), set()
        related = {node_key}
        related |= self.get_transitive_predecessors(node_key)
        related |= self.get_transitive_successors(node_key)
        edges = {
            (from_key, to_key)
            for to_key, from_keys in self.predecessors.items()
            for from_key in from_keys
            if from_key in related and to_key in related
        }
        return related, edges

    def get_mappings(self, node_key: str) -> List[UsesMapping]:
        """``uses`` mappings declared for a node (none for generic nodes)."""
        node = self.nodes.get(node_key)
        if node is None or not node.is_traceable:
            return []
        return self.mappings_by_ref.get(to_node_ref(node), [])

    def get_mapping(self, node_key: str, key: str) -> Optional[UsesMapping]:
        return find_mapping(self.get_mappings(node_key), key)

    def has_literal_key(self, node_key: str, key: str) -> bool:
        node = self.nodes.get(node_key)
        return node is not None and node.data is not None and key in node.data

    def supplies_key(self, node_key: str, key: Optional[str]) -> bool:
        """Whether a node offers ``key``, as literal data or through its own mapping."""
        if key is None:
            return False
        return self.has_literal_key(node_key, key) or self.get_mapping(node_key, key) is not None

    def find_source_candidates(self, node_key: str, mapping: UsesMapping) -> List[str]:
        """Direct predecessors that could supply ``mapping``.

        For ``collect`` these are the aggregated predecessors (see
        ``get_collect_sources``).
        """
        if mapping.source_kind == UsesSourceKind.COLLECT:
            return self.get_collect_sources(node_key)
        predecessors = self.get_predecessors(node_key)
        return [p for p in predecessors if self.supplies_key(p, mapping.source_key)]

    def get_collect_sources(self, node_key: str) -> List[str]:
        """Direct predecessors a ``collect`` aggregates, in edge order.

        The collected family is the canonical ref of the first predecessor;
        predecessors of any other ref are not part of the aggregate.
        """
        predecessors = self.get_predecessors(node_key)
        if not predecessors:
            return []
        family = to_node_analysis_ref_from_node(self.nodes[predecessors[0]])
        return [p for p in predecessors if to_node_analysis_ref_from_node(self.nodes[p]) == family]

    def select_source(
        self,
        node_key: str,
        mapping: UsesMapping,
        source_overrides: Optional[SourceOverrides] = None,
    ) -> SourceSelection:
        """Pick the single predecessor a non-collect mapping reads from.

        With several candidates an override entry naming one of them (by node
        key or by ``type:name`` ref) breaks the tie; otherwise nothing is chosen.
        """
        candidates = tuple(self.find_source_candidates(node_key, mapping))
        if mapping.source_kind == UsesSourceKind.COLLECT:
            return SourceSelection(candidates, None, aggregate=True)
        if len(candidates) == 1:
            return SourceSelection(candidates, candidates[0])
        if not candidates:
            return SourceSelection(candidates, None)
        override = (source_overrides or {}).get(source_override_key(node_key, mapping.target_key))
        return SourceSelection(candidates, self._match_candidate(candidates, override))

    def _match_candidate(self, candidates: Tuple[str, ...], override: Optional[str]) -> Optional[str]:
        if not override:
            return None
        for candidate in candidates:
            if override == candidate or override == to_node_ref(self.nodes[candidate]):
                return candidate
        return None

    def candidate_refs(self, candidates: Iterable[str]) -> List[str]:
        return [to_node_ref(self.nodes[c]) for c in candidates]
