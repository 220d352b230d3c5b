"""Byte-stable JSON output for CLI reports.

Same input, same bytes: sorted keys, fixed separators, UTF-8. Lists are
written in the order the kernel produced them, which is already deterministic.
"""

import json
from typing import Any

from pydantic import BaseModel


def canonical_dumps(obj: Any) -> str:
    """Serialize ``obj`` (a JSON-compatible value) canonically."""
    return json.dumps(
        obj,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False  # UTF-8 encoding
    )


def dump_result(result: BaseModel) -> str:
    """Canonical JSON of a result model; text ranges use their from/to names."""
    return canonical_dumps(result.model_dump(mode="json", by_alias=True))
