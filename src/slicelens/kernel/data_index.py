"""Literal data of one canonical node, gathered across slices."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from slicelens.kernel.identity import to_node_analysis_ref, to_node_analysis_ref_from_node
from slicelens.kernel.model import SliceDocument


@dataclass(frozen=True)
class CrossSliceDataValue:
    slice_id: str
    slice_name: str
    value: Any


@dataclass
class CrossSliceDataResult:
    keys: List[str] = field(default_factory=list)  # Sorted alphabetically
    by_key: Dict[str, List[CrossSliceDataValue]] = field(default_factory=dict)


def get_cross_slice_data(documents: Sequence[SliceDocument], node_ref: str) -> CrossSliceDataResult:
    """
    Every literal data key of every version of ``node_ref``, per slice.

    Values keep document order; a slice lacking a key is simply absent from
    that key's list. Only literal data is reported, never ``uses`` values.
    """
    analysis_ref = to_node_analysis_ref(node_ref)
    by_key: Dict[str, List[CrossSliceDataValue]] = {}

    for document in documents:
        slice_name = document.slice_name
        for node in document.nodes.values():
            if not node.is_traceable or not node.data:
                continue
            if to_node_analysis_ref_from_node(node) != analysis_ref:
                continue
            for key, value in node.data.items():
                by_key.setdefault(key, []).append(CrossSliceDataValue(
                    slice_id=document.id,
                    slice_name=slice_name,
                    value=value,
                ))

    return CrossSliceDataResult(keys=sorted(by_key), by_key=by_key)
