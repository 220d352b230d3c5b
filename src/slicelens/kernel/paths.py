"""Path primitives for ``uses`` source expressions.

JSONPath evaluation is delegated to jsonpath-ng (extended grammar, so filter
expressions such as ``[?(@.selected==true)]`` work).
"""

import logging
import re
from typing import Any, Dict, Optional, Sequence, Tuple

from jsonpath_ng.exceptions import JsonPathLexerError, JsonPathParserError
from jsonpath_ng.ext import parse as parse_jsonpath

logger = logging.getLogger(__name__)

IDENTIFIER = r"[A-Za-z_][\w-]*"

_ROOT_DOT = re.compile(rf"^\$\.({IDENTIFIER})")
_ROOT_BRACKET = re.compile(r"""^\$\[\s*['"]([^'"]+)['"]\s*\]""")
_COLLECT = re.compile(rf"^collect\(\{{\s*({IDENTIFIER}(?:\s*,\s*{IDENTIFIER})*)\s*\}}\)$")

# Sentinel for "no value"; JSON null is a legitimate value.
MISSING = object()


def is_jsonpath(expr: str) -> bool:
    return expr.startswith("$")


def jsonpath_root_key(expr: str) -> Optional[str]:
    """Top-level data key a JSONPath expression reads from, if determinable."""
    match = _ROOT_DOT.match(expr) or _ROOT_BRACKET.match(expr)
    return match.group(1) if match else None


def evaluate_jsonpath(expr: str, data: Any) -> Any:
    """First match of ``expr`` against ``data``, or ``MISSING``.

    Invalid expressions and non-matching paths both yield ``MISSING``.
    """
    try:
        compiled = parse_jsonpath(expr)
    except (JsonPathLexerError, JsonPathParserError) as e:
        logger.debug("Ignoring invalid JSONPath expression %r: %s", expr, e)
        return MISSING
    matches = compiled.find(data)
    if not matches:
        return MISSING
    return matches[0].value


def parse_collect_fields(expr: str) -> Optional[Tuple[str, ...]]:
    """Field names of a ``collect({a,b})`` expression, or None if not one."""
    match = _COLLECT.match(expr.strip())
    if not match:
        return None
    return tuple(part.strip() for part in match.group(1).split(","))


def project_fields(data: Optional[Dict[str, Any]], fields: Sequence[str]) -> Dict[str, Any]:
    """Project ``fields`` from ``data``; absent fields project to None."""
    data = data or {}
    return {field: data.get(field) for field in fields}
