"""Data-integrity check for nodes that declare literal data directly.

For every node with incoming edges, each literal data key must be present
in the data of at least one direct predecessor. This check knows nothing
about ``uses`` mappings or other slices.
"""

from dataclasses import dataclass
from typing import List, Union

from slicelens.codes import WarningLevel
from slicelens.kernel.graph import SliceGraph
from slicelens.kernel.identity import to_node_ref
from slicelens.kernel.model import SliceDocument, TextRange


@dataclass(frozen=True)
class IntegrityWarning:
    message: str
    node_key: str
    key: str
    range: TextRange
    level: WarningLevel = WarningLevel.WARNING


def validate_data_integrity(graph: Union[SliceGraph, SliceDocument]) -> List[IntegrityWarning]:
    """Warn for literal keys that no direct predecessor supplies.

    Nodes are checked in the order their first incoming edge appears.
    """
    graph = SliceGraph.coerce(graph)
    warnings: List[IntegrityWarning] = []

    for target_key, predecessor_keys in graph.predecessors.items():
        target = graph.nodes[target_key]
        if not target.data:
            continue

        supplied_keys = set()
        for predecessor_key in predecessor_keys:
            supplied_keys.update(graph.nodes[predecessor_key].data or {})

        for key in target.data:
            if key in supplied_keys:
                continue
            warnings.append(IntegrityWarning(
                message=f'Missing data source for key "{key}" for node {to_node_ref(target)}',
                node_key=target_key,
                key=key,
                range=target.source_range,
            ))

    return warnings
