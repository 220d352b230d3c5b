"""Generate JSON schemas for slice bundles and API results into schemas/."""

import json
from pathlib import Path
from typing import List, Optional

from slicelens.api import SliceAnalysisResult, TraceReport, ValidationResult
from slicelens.kernel.model import SliceDocument

SCHEMA_MODELS = {
    "slice_document.schema.json": SliceDocument,
    "slice_analysis_result.schema.json": SliceAnalysisResult,
    "trace_report.schema.json": TraceReport,
    "validation_result.schema.json": ValidationResult,
}


def generate_schemas(schemas_dir: Optional[Path] = None) -> List[Path]:
    """Write one schema file per model; returns the paths written."""
    if schemas_dir is None:
        schemas_dir = Path(__file__).parent.parent / "schemas"
    schemas_dir.mkdir(parents=True, exist_ok=True)

    written = []
    for filename, model in SCHEMA_MODELS.items():
        # Input documents are read by alias ("from"/"to"); results are written by alias too
        schema = model.model_json_schema(by_alias=True)
        schema_path = schemas_dir / filename
        with open(schema_path, "w", encoding="utf-8") as f:
            json.dump(schema, f, indent=2, ensure_ascii=False)
        print(f"Generated: {schema_path}")
        written.append(schema_path)

    print("\nSchema generation complete!")
    return written


if __name__ == "__main__":
    generate_schemas()
