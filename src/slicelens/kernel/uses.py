"""Parse ``uses:`` blocks from slice DSL text into structured mappings.

Grammar (one mapping per line, indented under ``uses:``)::

    uses:
      plainKey
      renamed <- otherKey
      extracted <- $.path.to[?(@.filter==true)].field
      aggregated <- collect({fieldA,fieldB})

Blocks are keyed by the raw ref (``type:name``, version suffix kept) of the
node declaration they appear under. Unrecognized lines are skipped so the
editor stays usable on partially typed input.
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from slicelens.codes import UsesSourceKind
from slicelens.kernel.model import TextRange
from slicelens.kernel.paths import (
    IDENTIFIER,
    is_jsonpath,
    jsonpath_root_key,
    parse_collect_fields,
)

logger = logging.getLogger(__name__)

_NODE_DECLARATION = re.compile(r'^([a-zA-Z][\w-]*):([^\s"<]+)')
_BARE_KEY = re.compile(rf"^({IDENTIFIER})$")
_ARROW = re.compile(rf"^({IDENTIFIER})\s*<-\s*(.*)$")
_TOP_LEVEL_KEYWORDS = ("uses:", "data:", "slice ", "<-", "->", "---")


@dataclass(frozen=True)
class UsesMapping:
    """One output data key of a node and where it comes from."""
    target_key: str
    source_kind: UsesSourceKind
    source_expr: str  # Bare key, JSONPath expression, or collect(...) text
    range: TextRange
    fields: Tuple[str, ...] = ()  # Projected fields (collect only)

    @property
    def source_key(self) -> Optional[str]:
        """Key to look for in predecessor data (None for collect)."""
        if self.source_kind == UsesSourceKind.COLLECT:
            return None
        if self.source_kind == UsesSourceKind.JSONPATH:
            return jsonpath_root_key(self.source_expr)
        return self.source_expr


def parse_uses_blocks(dsl: str) -> Dict[str, List[UsesMapping]]:
    """Map each node ref to the mappings declared in its ``uses:`` block(s)."""
    lines = dsl.split("\n")
    line_starts = _build_line_starts(lines)
    result: Dict[str, List[UsesMapping]] = {}
    current_ref: Optional[str] = None

    for i, line in enumerate(lines):
        if line and not line[0].isspace() and not line.startswith(_TOP_LEVEL_KEYWORDS):
            declaration = _NODE_DECLARATION.match(line)
            # Untyped (generic) declarations reset the owner; their uses are not tracked
            current_ref = f"{declaration.group(1)}:{declaration.group(2)}" if declaration else None

        if current_ref is None or line.strip() != "uses:":
            continue

        uses_indent = _indent(line)
        mappings = result.setdefault(current_ref, [])
        for j in range(i + 1, len(lines)):
            block_line = lines[j]
            if not block_line.strip():
                continue
            if _indent(block_line) <= uses_indent:
                break
            mapping = _parse_mapping_line(block_line, line_starts[j])
            if mapping is None:
                logger.debug("Skipping unrecognized uses line %d under %s: %r", j + 1, current_ref, block_line)
                continue
            mappings.append(mapping)

    return result


def find_mapping(mappings: List[UsesMapping], target_key: str) -> Optional[UsesMapping]:
    for mapping in mappings:
        if mapping.target_key == target_key:
            return mapping
    return None


def _parse_mapping_line(line: str, line_start: int) -> Optional[UsesMapping]:
    content_start = _indent(line)
    content = line.strip()
    offset = line_start + content_start

    bare = _BARE_KEY.match(content)
    if bare:
        key = bare.group(1)
        return UsesMapping(
            target_key=key,
            source_kind=UsesSourceKind.IMPLICIT,
            source_expr=key,
            range=TextRange(start=offset, end=offset + len(key)),
        )

    arrow = _ARROW.match(content)
    if not arrow:
        return None

    target_key = arrow.group(1)
    source = arrow.group(2).strip()
    key_range = TextRange(start=offset, end=offset + len(target_key))

    if not source:
        return None
    if is_jsonpath(source):
        if jsonpath_root_key(source) is None:
            return None
        return UsesMapping(target_key, UsesSourceKind.JSONPATH, source, key_range)
    fields = parse_collect_fields(source)
    if fields is not None:
        return UsesMapping(target_key, UsesSourceKind.COLLECT, source, key_range, fields)
    if _BARE_KEY.match(source):
        return UsesMapping(target_key, UsesSourceKind.RENAME, source, key_range)
    return None


def _indent(line: str) -> int:
    return len(line) - len(line.lstrip())


def _build_line_starts(lines: List[str]) -> List[int]:
    starts = []
    offset = 0
    for line in lines:
        starts.append(offset)
        offset += len(line) + 1
    return starts
