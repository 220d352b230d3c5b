"""slicelens: cross-slice data lineage and dependency resolution for event-model slices."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("slicelens")
except PackageNotFoundError:
    __version__ = "dev"

# Public API exports
# Note: trace is exported from slicelens.api, not from root
# This avoids a name clash with slicelens.kernel.trace
from slicelens.api import analyze_slice, validate, SliceBundleError, ValidationResult
from slicelens.codes import DataIssueCode, ValidationCode
from slicelens.kernel.model import Edge, SliceDocument, VisualNode

__all__ = [
    "__version__",
    "analyze_slice",
    "validate",
    "SliceBundleError",
    "ValidationResult",
    "DataIssueCode",
    "ValidationCode",
    "Edge",
    "SliceDocument",
    "VisualNode",
]
