"""Pydantic models for parsed slice documents.

These are produced by the external DSL parser (or loaded from a JSON bundle)
and are read-only to the kernel: every model is frozen.
"""

import re
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

GENERIC_NODE_TYPE = "generic"
UNTITLED_SLICE_NAME = "Untitled"

_SLICE_HEADER = re.compile(r'^\s*slice\s+"([^"]+)"', re.MULTILINE)


class TextRange(BaseModel):
    """Character offsets into a document's DSL text."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    start: int = Field(0, alias="from")
    end: int = Field(0, alias="to")


class VisualNode(BaseModel):
    """A node of one slice graph.

    ``key`` is the raw identifier, unique within its document and possibly
    versioned (``buy@2``). ``type == "generic"`` marks an untyped node that
    takes no part in cross-slice identity tracking.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    key: str
    type: str
    name: str
    alias: Optional[str] = None
    stream: Optional[str] = None
    data: Optional[Dict[str, Any]] = None
    source_range: TextRange = Field(
        default_factory=TextRange,
        validation_alias=AliasChoices("srcRange", "sourceRange", "source_range"),
        serialization_alias="srcRange",
    )

    @property
    def is_traceable(self) -> bool:
        return self.type != GENERIC_NODE_TYPE


class Edge(BaseModel):
    """Direct dependency arrow: ``from_key`` is a predecessor of ``to``."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    from_key: str = Field(..., alias="from")
    to: str
    label: Optional[str] = None


class SliceDocument(BaseModel):
    """One slice: its DSL text plus the graph parsed from it."""
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    id: str
    dsl: str = ""
    name: Optional[str] = None  # Human title; derived from the dsl header when absent
    nodes: Dict[str, VisualNode] = Field(default_factory=dict)
    edges: List[Edge] = Field(default_factory=list)

    @field_validator("nodes", mode="before")
    @classmethod
    def accept_node_list(cls, v: Any) -> Any:
        """Allow ``nodes`` as a list of node dicts keyed by their ``key``."""
        if isinstance(v, list):
            keyed: Dict[str, Any] = {}
            for position, item in enumerate(v):
                if isinstance(item, VisualNode):
                    key = item.key
                elif isinstance(item, dict):
                    key = item.get("key")
                else:
                    raise ValueError(f"Node at position {position} must be an object, got {type(item).__name__}")
                keyed[key] = item
            return keyed
        return v

    @model_validator(mode="after")
    def check_node_keys(self) -> "SliceDocument":
        mismatched = sorted(k for k, node in self.nodes.items() if node.key != k)
        if mismatched:
            raise ValueError(f"Node map keys do not match node.key: {mismatched}")
        return self

    @property
    def slice_name(self) -> str:
        return self.name or slice_name_from_dsl(self.dsl)


def slice_name_from_dsl(dsl: str) -> str:
    """Title from the ``slice "<Name>"`` header line, or ``Untitled``."""
    match = _SLICE_HEADER.search(dsl)
    if match:
        return match.group(1)
    return UNTITLED_SLICE_NAME
