"""
JSON exporter for parsed data criteria.

Exports data criteria as clean, human-readable JSON keyed by criteria id.
"""

from __future__ import annotations

import json
from collections import Counter
from pathlib import Path
from typing import Any, Iterable

from hqmf.models import DataCriteriaModel


def export_json(
    criteria: Iterable[DataCriteriaModel],
    output_path: Path | None = None,
    indent: int = 2,
    include_nulls: bool = False,
) -> str:
    """
    Export data criteria to JSON format.

    Args:
        criteria: The exported criteria models
        output_path: Optional path to write the JSON file
        indent: JSON indentation level
        include_nulls: Whether to include null values in output

    Returns:
        JSON string mapping each criteria id to its fields
    """
    data = {
        model.id: model.model_dump(mode="json", exclude_none=not include_nulls)
        for model in criteria
    }

    json_str = json.dumps(data, indent=indent)

    if output_path:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(json_str)

    return json_str


def export_json_summary(criteria: Iterable[DataCriteriaModel]) -> dict[str, Any]:
    """
    Summarize a parse (useful for listings/previews).

    Returns a dict with counts by definition plus the variables and
    specific occurrences found.
    """
    models = list(criteria)
    return {
        "criteria_count": len(models),
        "definitions": dict(Counter(m.definition or "unknown" for m in models)),
        "variables": [m.id for m in models if m.variable],
        "specific_occurrences": {
            m.id: m.specific_occurrence for m in models if m.is_specific_occurrence
        },
        "derived": [m.id for m in models if m.is_derived],
    }
