"""Detect missing and ambiguous sources for ``uses`` mappings.

Issues are recomputed from the graph and the caller's source overrides on
every call; nothing is cached or persisted here.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

from slicelens.codes import DataIssueCode, UsesSourceKind, WarningLevel
from slicelens.kernel.graph import SliceGraph, SourceOverrides
from slicelens.kernel.identity import to_node_analysis_ref, to_node_ref
from slicelens.kernel.model import SliceDocument, TextRange


@dataclass(frozen=True)
class DataIssue:
    """A ``uses`` key whose source is missing or ambiguous."""
    code: DataIssueCode
    node_key: str
    node_ref: str  # Raw type:name ref (version suffix kept)
    key: str
    range: TextRange
    candidates: Tuple[str, ...] = ()  # Candidate refs in edge order, ambiguous issues only
    slice_id: Optional[str] = None
    severity: WarningLevel = WarningLevel.WARNING


@dataclass
class NodeIssueSummary:
    """Issues of every version of one canonical node."""
    node_ref: str  # Canonical ref
    keys: List[str] = field(default_factory=list)  # Sorted, unique
    issues: List[DataIssue] = field(default_factory=list)


def collect_data_issues(
    graph: Union[SliceGraph, SliceDocument],
    source_overrides: Optional[SourceOverrides] = None,
) -> List[DataIssue]:
    """
    Classify every ``uses`` key of every traceable node.

    Returns:
        Issues in node order, then mapping order. Keys with exactly one
        candidate, or with an override naming one of several, yield nothing.
    """
    graph = SliceGraph.coerce(graph)
    issues: List[DataIssue] = []

    for node_key, node in graph.nodes.items():
        for mapping in graph.get_mappings(node_key):
            selection = graph.select_source(node_key, mapping, source_overrides)
            if selection.is_missing:
                code = DataIssueCode.MISSING_SOURCE
                candidates: Tuple[str, ...] = ()
            elif selection.is_ambiguous:
                code = DataIssueCode.AMBIGUOUS_SOURCE
                candidates = tuple(graph.candidate_refs(selection.candidates))
            else:
                continue
            issues.append(DataIssue(
                code=code,
                node_key=node_key,
                node_ref=to_node_ref(node),
                key=mapping.target_key,
                range=mapping.range,
                candidates=candidates,
                slice_id=graph.slice_id,
            ))

    return issues


def get_ambiguous_source_candidates(
    graph: Union[SliceGraph, SliceDocument],
    node_key: str,
    key: str,
) -> List[str]:
    """
    Quick-fix choices for an ambiguous key: the refs of every predecessor
    that could supply it. Empty when the key is not ambiguous.

    Keys without a ``uses`` mapping are looked up by name, as if implicit.
    """
    graph = SliceGraph.coerce(graph)
    node = graph.nodes.get(node_key)
    if node is None or not node.is_traceable:
        return []

    mapping = graph.get_mapping(node_key, key)
    if mapping is None:
        candidates = [p for p in graph.get_predecessors(node_key) if graph.supplies_key(p, key)]
    elif mapping.source_kind == UsesSourceKind.COLLECT:
        return []
    else:
        candidates = graph.find_source_candidates(node_key, mapping)

    if len(candidates) < 2:
        return []
    return graph.candidate_refs(candidates)


def summarize_issues_by_ref(issues: List[DataIssue]) -> Dict[str, NodeIssueSummary]:
    """Group issues by canonical node ref so versions report as one node."""
    summaries: Dict[str, NodeIssueSummary] = {}
    for issue in issues:
        node_ref = to_node_analysis_ref(issue.node_ref)
        summary = summaries.get(node_ref)
        if summary is None:
            summary = summaries[node_ref] = NodeIssueSummary(node_ref=node_ref)
        summary.issues.append(issue)

    for summary in summaries.values():
        summary.keys = sorted({issue.key for issue in summary.issues})
    return summaries
