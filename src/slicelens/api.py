"""Public API for slicelens.

High-level functions that take a slice bundle (path, dict, or list of
documents) and return complete, structured results. Editors and the CLI
should use these instead of wiring kernel modules together themselves.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from slicelens.codes import DataIssueCode, ValidationCode, WarningLevel
from slicelens.kernel.data_index import get_cross_slice_data
from slicelens.kernel.graph import SliceGraph
from slicelens.kernel.identity import to_node_analysis_ref
from slicelens.kernel.integrity import validate_data_integrity
from slicelens.kernel.issues import collect_data_issues, summarize_issues_by_ref
from slicelens.kernel.model import SliceDocument, TextRange
from slicelens.kernel.resolve import apply_uses_mappings
from slicelens.kernel.trace import trace_node_ref
from slicelens.kernel.usage import build_cross_slice_usage_index, get_cross_slice_usage

BundleInput = Union[str, os.PathLike, Path, Dict[str, Any], Sequence[Any]]
OverridesInput = Union[str, os.PathLike, Path, Mapping[str, str], None]


class SliceBundleError(ValueError):
    """Raised when a slice bundle or overrides file cannot be loaded."""


# ---------------------------------------------------------------------------
# Result models
# ---------------------------------------------------------------------------

class _Result(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class DataIssueEntry(_Result):
    code: DataIssueCode
    node_key: str
    node_ref: str
    key: str
    range: TextRange
    candidates: List[str] = Field(default_factory=list)
    slice_id: Optional[str] = None
    severity: WarningLevel = WarningLevel.WARNING


class NodeIssueSummaryEntry(_Result):
    node_ref: str
    keys: List[str]
    issues: List[DataIssueEntry]


class WarningEntry(_Result):
    message: str
    range: TextRange
    level: WarningLevel = WarningLevel.WARNING


class SliceAnalysisResult(BaseModel):
    """Issues, warnings, and effective data of one slice."""
    slice_id: str
    slice_name: str
    issues: List[DataIssueEntry]
    issues_by_node: Dict[str, NodeIssueSummaryEntry]  # canonical ref -> summary
    integrity_warnings: List[WarningEntry]
    mapping_warnings: List[WarningEntry]
    resolved_data: Dict[str, Optional[Dict[str, Any]]]  # node key -> effective data


class TraceHopEntry(_Result):
    node_key: str
    key: str


class TraceContributorEntry(_Result):
    label: str
    hops: List[TraceHopEntry]
    value: Dict[str, Any]


class TraceResultEntry(_Result):
    key: str
    hops: List[TraceHopEntry]
    source: Any = None
    resolved: bool
    contributors: Optional[List[TraceContributorEntry]] = None


class VersionTraceEntry(_Result):
    node_key: str
    result: TraceResultEntry


class TraceReport(BaseModel):
    """Traces of every uses key of every version of one node."""
    slice_id: str
    node_ref: str  # Canonical ref
    traces: Dict[str, List[VersionTraceEntry]]


class UsageRefEntry(_Result):
    slice_id: str
    slice_name: str
    node_key: str


class UsageReport(BaseModel):
    node_ref: str
    node_type: Optional[str] = None
    slice_refs: List[UsageRefEntry]


class DataValueEntry(_Result):
    slice_id: str
    slice_name: str
    value: Any = None


class DataReport(BaseModel):
    node_ref: str
    keys: List[str]
    by_key: Dict[str, List[DataValueEntry]]


class ValidationIssue(BaseModel):
    """A single validation issue (error or warning)."""
    code: ValidationCode
    message: str
    slice_id: Optional[str] = None
    node_key: Optional[str] = None
    key: Optional[str] = None
    candidates: Optional[List[str]] = None  # For AMBIGUOUS_SOURCE warnings


class ValidationResult(BaseModel):
    """Result of validating a bundle."""
    ok: bool  # True if no errors (warnings don't block)
    errors: List[ValidationIssue]
    warnings: List[ValidationIssue]


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def _normalize_path(path: Union[str, os.PathLike, Path]) -> Path:
    """Normalize path input to Path object."""
    return Path(path) if not isinstance(path, Path) else path


def _read_json(path: Path, what: str) -> Any:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except OSError as e:
        raise SliceBundleError(f"Cannot read {what} {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise SliceBundleError(f"Invalid JSON in {what} {path}: {e}") from e


def load_slice_bundle(bundle: BundleInput) -> List[SliceDocument]:
    """
    Load slice documents.

    Accepts a path to a JSON file, a ``{"slices": [...]}`` dict, or a list of
    documents (dicts or ``SliceDocument`` instances).
    """
    if isinstance(bundle, (str, os.PathLike)):
        bundle = _read_json(_normalize_path(bundle), "slice bundle")

    if isinstance(bundle, dict):
        if "slices" not in bundle:
            raise SliceBundleError("Slice bundle must contain a 'slices' list")
        items = bundle["slices"]
    else:
        items = bundle

    if not isinstance(items, (list, tuple)):
        raise SliceBundleError("Slice bundle 'slices' must be a list")

    documents: List[SliceDocument] = []
    for position, item in enumerate(items):
        if isinstance(item, SliceDocument):
            documents.append(item)
            continue
        try:
            documents.append(SliceDocument.model_validate(item))
        except ValidationError as e:
            raise SliceBundleError(f"Invalid slice at position {position}: {e}") from e
    return documents


def load_source_overrides(overrides: OverridesInput) -> Dict[str, str]:
    """Load a ``{"<nodeKey>:<key>": "<candidate>"}`` map (path or mapping)."""
    if overrides is None:
        return {}
    if isinstance(overrides, (str, os.PathLike)):
        overrides = _read_json(_normalize_path(overrides), "source overrides")
    if not isinstance(overrides, Mapping):
        raise SliceBundleError("Source overrides must be a JSON object")
    bad = sorted(k for k, v in overrides.items() if not isinstance(k, str) or not isinstance(v, str))
    if bad:
        raise SliceBundleError(f"Source override entries must map strings to strings: {bad}")
    return dict(overrides)


def _select_slice(documents: List[SliceDocument], slice_id: Optional[str]) -> SliceDocument:
    if not documents:
        raise SliceBundleError("Slice bundle contains no slices")
    if slice_id is None:
        return documents[0]
    for document in documents:
        if document.id == slice_id:
            return document
    raise SliceBundleError(f"Slice '{slice_id}' not found in bundle")


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def analyze_slice(
    bundle: BundleInput,
    slice_id: Optional[str] = None,
    source_overrides: OverridesInput = None,
) -> SliceAnalysisResult:
    """Issues, integrity warnings, and effective data for one slice."""
    documents = load_slice_bundle(bundle)
    overrides = load_source_overrides(source_overrides)
    document = _select_slice(documents, slice_id)
    graph = SliceGraph.from_document(document)

    issues = collect_data_issues(graph, overrides)
    resolved_data, mapping_warnings = apply_uses_mappings(graph, overrides)

    return SliceAnalysisResult(
        slice_id=document.id,
        slice_name=document.slice_name,
        issues=[DataIssueEntry.model_validate(issue) for issue in issues],
        issues_by_node={
            node_ref: NodeIssueSummaryEntry.model_validate(summary)
            for node_ref, summary in summarize_issues_by_ref(issues).items()
        },
        integrity_warnings=[WarningEntry.model_validate(w) for w in validate_data_integrity(graph)],
        mapping_warnings=[WarningEntry.model_validate(w) for w in mapping_warnings],
        resolved_data=resolved_data,
    )


def trace(
    bundle: BundleInput,
    node_ref: str,
    slice_id: Optional[str] = None,
    source_overrides: OverridesInput = None,
) -> TraceReport:
    """Trace every uses key of every version of ``node_ref`` in one slice."""
    documents = load_slice_bundle(bundle)
    overrides = load_source_overrides(source_overrides)
    document = _select_slice(documents, slice_id)

    traces = trace_node_ref(SliceGraph.from_document(document), node_ref, overrides)
    return TraceReport(
        slice_id=document.id,
        node_ref=to_node_analysis_ref(node_ref),
        traces={
            key: [VersionTraceEntry.model_validate(entry) for entry in entries]
            for key, entries in traces.items()
        },
    )


def cross_slice_usage(bundle: BundleInput, node_ref: str) -> UsageReport:
    """Every slice occurrence of a canonical node."""
    documents = load_slice_bundle(bundle)
    names = {document.id: document.slice_name for document in documents}
    index = build_cross_slice_usage_index(documents)
    analysis_ref = to_node_analysis_ref(node_ref)
    entry = index.get(analysis_ref)

    return UsageReport(
        node_ref=analysis_ref,
        node_type=entry.node_type if entry else None,
        slice_refs=[
            UsageRefEntry(slice_id=ref.slice_id, slice_name=names[ref.slice_id], node_key=ref.node_key)
            for ref in get_cross_slice_usage(documents, analysis_ref, index=index)
        ],
    )


def cross_slice_data(bundle: BundleInput, node_ref: str) -> DataReport:
    """Literal data of a canonical node across every slice."""
    documents = load_slice_bundle(bundle)
    result = get_cross_slice_data(documents, node_ref)
    return DataReport(
        node_ref=to_node_analysis_ref(node_ref),
        keys=result.keys,
        by_key={
            key: [DataValueEntry.model_validate(value) for value in values]
            for key, values in result.by_key.items()
        },
    )


def validate(
    bundle: BundleInput,
    source_overrides: OverridesInput = None,
) -> ValidationResult:
    """
    Preflight check of a whole bundle.

    Structural problems (unreadable bundle, duplicate slice ids, edges to
    unknown nodes) are errors; data issues and integrity findings are
    warnings and do not block.
    """
    errors: List[ValidationIssue] = []
    warnings: List[ValidationIssue] = []

    try:
        documents = load_slice_bundle(bundle)
        overrides = load_source_overrides(source_overrides)
    except SliceBundleError as e:
        errors.append(ValidationIssue(code=ValidationCode.INVALID_BUNDLE, message=str(e)))
        return ValidationResult(ok=False, errors=errors, warnings=warnings)

    seen_ids = set()
    for document in documents:
        if document.id in seen_ids:
            errors.append(ValidationIssue(
                code=ValidationCode.DUPLICATE_SLICE_ID,
                message=f"Slice id '{document.id}' appears more than once",
                slice_id=document.id,
            ))
        seen_ids.add(document.id)

        for edge in document.edges:
            missing = [k for k in (edge.from_key, edge.to) if k not in document.nodes]
            if missing:
                errors.append(ValidationIssue(
                    code=ValidationCode.DANGLING_EDGE,
                    message=f"Edge {edge.from_key} -> {edge.to} references unknown node(s): {', '.join(missing)}",
                    slice_id=document.id,
                ))

        graph = SliceGraph.from_document(document)
        for issue in collect_data_issues(graph, overrides):
            if issue.code == DataIssueCode.MISSING_SOURCE:
                warnings.append(ValidationIssue(
                    code=ValidationCode.MISSING_SOURCE,
                    message=f'No predecessor supplies "{issue.key}" for node {issue.node_ref}',
                    slice_id=document.id,
                    node_key=issue.node_key,
                    key=issue.key,
                ))
            else:
                warnings.append(ValidationIssue(
                    code=ValidationCode.AMBIGUOUS_SOURCE,
                    message=(
                        f'Several predecessors supply "{issue.key}" for node {issue.node_ref}: '
                        f"{', '.join(issue.candidates)}"
                    ),
                    slice_id=document.id,
                    node_key=issue.node_key,
                    key=issue.key,
                    candidates=list(issue.candidates),
                ))

        for warning in validate_data_integrity(graph):
            warnings.append(ValidationIssue(
                code=ValidationCode.MISSING_DATA_SOURCE,
                message=warning.message,
                slice_id=document.id,
                node_key=warning.node_key,
                key=warning.key,
            ))

        _, mapping_warnings = apply_uses_mappings(graph, overrides)
        for warning in mapping_warnings:
            warnings.append(ValidationIssue(
                code=ValidationCode.DUPLICATE_DATA_KEY,
                message=warning.message,
                slice_id=document.id,
            ))

    return ValidationResult(ok=not errors, errors=errors, warnings=warnings)
