"""Index which slices reference each canonical node."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from slicelens.kernel.identity import to_node_analysis_ref, to_node_analysis_ref_from_node
from slicelens.kernel.model import SliceDocument


@dataclass(frozen=True)
class CrossSliceUsageRef:
    slice_id: str
    node_key: str


@dataclass
class CrossSliceUsageEntry:
    node_ref: str  # Canonical ref
    node_type: str  # Type of the first occurrence
    slice_refs: List[CrossSliceUsageRef] = field(default_factory=list)


CrossSliceUsageIndex = Dict[str, CrossSliceUsageEntry]


def build_cross_slice_usage_index(documents: Sequence[SliceDocument]) -> CrossSliceUsageIndex:
    """
    Group every traceable node of every document by canonical ref.

    Occurrences are listed in document order, then node order within a
    document. Generic nodes are never indexed.
    """
    index: CrossSliceUsageIndex = {}

    for document in documents:
        for node in document.nodes.values():
            if not node.is_traceable:
                continue
            node_ref = to_node_analysis_ref_from_node(node)
            entry = index.get(node_ref)
            if entry is None:
                entry = index[node_ref] = CrossSliceUsageEntry(node_ref=node_ref, node_type=node.type)
            entry.slice_refs.append(CrossSliceUsageRef(slice_id=document.id, node_key=node.key))

    return index


def get_cross_slice_usage(
    documents: Sequence[SliceDocument],
    node_key: str,
    index: Optional[CrossSliceUsageIndex] = None,
) -> List[CrossSliceUsageRef]:
    """Occurrences of ``node_key`` (a ``type:name`` ref, any version) across documents."""
    if index is None:
        index = build_cross_slice_usage_index(documents)
    entry = index.get(to_node_analysis_ref(node_key))
    return list(entry.slice_refs) if entry else []


class CrossSliceUsageQuery:
    """Usage lookups against an index built once."""

    def __init__(self, documents: Sequence[SliceDocument]):
        self.documents = list(documents)
        self.index = build_cross_slice_usage_index(self.documents)

    def get_cross_slice_usage(self, node_key: str) -> List[CrossSliceUsageRef]:
        return get_cross_slice_usage(self.documents, node_key, index=self.index)


def create_cross_slice_usage_query(documents: Sequence[SliceDocument]) -> CrossSliceUsageQuery:
    return CrossSliceUsageQuery(documents)
