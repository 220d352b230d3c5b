"""Code constants for slicelens results.

These constants prevent stringly-typed issue codes and ensure
client code uses the correct values.
"""

from enum import Enum


class DataIssueCode(str, Enum):
    """Data issue codes surfaced for ``uses`` mappings."""

    MISSING_SOURCE = "missing-source"      # No predecessor supplies the key
    AMBIGUOUS_SOURCE = "ambiguous-source"  # Several do and no override picks one


class UsesSourceKind(str, Enum):
    """How a ``uses`` line sources its value from a predecessor."""

    IMPLICIT = "implicit"
    RENAME = "rename"
    JSONPATH = "jsonpath"
    COLLECT = "collect"


class WarningLevel(str, Enum):
    WARNING = "warning"


class ValidationCode(str, Enum):
    """Validation error and warning codes for ``slicelens.api.validate()``."""

    # Errors (blocking)
    INVALID_BUNDLE = "INVALID_BUNDLE"
    DUPLICATE_SLICE_ID = "DUPLICATE_SLICE_ID"
    DANGLING_EDGE = "DANGLING_EDGE"

    # Warnings (non-blocking)
    MISSING_SOURCE = "MISSING_SOURCE"
    AMBIGUOUS_SOURCE = "AMBIGUOUS_SOURCE"
    MISSING_DATA_SOURCE = "MISSING_DATA_SOURCE"
    DUPLICATE_DATA_KEY = "DUPLICATE_DATA_KEY"
