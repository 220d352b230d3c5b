"""Canonical node identity: strip version suffixes, build type:name refs.

All cross-version grouping goes through these helpers. ``cmd:buy@1`` and
``cmd:buy@2`` are the same conceptual node ``cmd:buy``.
"""

import re
from typing import Protocol

NODE_VERSION_SUFFIX = re.compile(r"@\d+$")


class _TypedNamed(Protocol):
    type: str
    name: str


def to_node_analysis_key(node_key: str) -> str:
    """Remove a trailing ``@<integer>`` version suffix (no-op when absent)."""
    return NODE_VERSION_SUFFIX.sub("", node_key)


def to_node_analysis_ref(node_ref: str) -> str:
    """Canonicalize a ``type:name`` ref; refs without a type are treated as keys."""
    split_at = node_ref.find(":")
    if split_at < 0:
        return to_node_analysis_key(node_ref)
    node_type = node_ref[:split_at]
    name = node_ref[split_at + 1:]
    return f"{node_type}:{to_node_analysis_key(name)}"


def to_node_analysis_ref_from_node(node: _TypedNamed) -> str:
    return f"{node.type}:{to_node_analysis_key(node.name)}"


def to_node_ref(node: _TypedNamed) -> str:
    """Raw (versioned) ref of a node, as written in a declaration line."""
    return f"{node.type}:{node.name}"
