from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple


SAMPLE_LINES = 20
DEFAULT_TABLE_NAME = "Generated"
PARSE_ERROR = "Failed to parse AI analysis response."

SYSTEM_PROMPT = """You are a data analyst expert. Analyze the provided CSV data sample and generate:
1. A SQL CREATE TABLE statement with appropriate column names and data types
2. A detailed analysis of each column including data type, sample values, and any patterns

IMPORTANT: Return ONLY a valid JSON object with this exact structure (no markdown formatting, no code blocks):
{
  "sql_schema": "CREATE TABLE table_name (...);",
  "column_analysis": [
    {
      "column_name": "string",
      "data_type": "string",
      "sql_type": "string",
      "sample_values": ["value1", "value2"],
      "null_count": number,
      "unique_count": number,
      "description": "string"
    }
  ],
  "table_name": "string",
  "total_columns": number
}

Use appropriate SQL data types like VARCHAR(255), INTEGER, DECIMAL(10,2), DATE, BOOLEAN, TEXT, etc.
Make table_name a clean version of the dataset name (lowercase, underscores, no spaces)."""

JSON_FENCE_RE = re.compile(r"```json\s*")
TRAILING_FENCE_RE = re.compile(r"```\s*$")
ANY_FENCE_RE = re.compile(r"```\s*")

SHAPE_BARE_ARRAY = "bare_array"
SHAPE_NESTED = "nested"
SHAPE_FLAT = "flat"


@dataclass
class AnalysisView:
    """One normalized reading of a stored ``column_analysis`` value.

    The AI answer has been seen in three shapes: a bare list of column
    analyses, an object wrapping its own ``column_analysis`` key, and a
    flat object that is already the analysis. ``shape`` records which one
    was found.
    """

    shape: str
    columns: List[Any] = field(default_factory=list)
    table_name: str | None = None
    total_columns: int | None = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "shape": self.shape,
            "column_analysis": self.columns,
            "table_name": self.table_name,
            "total_columns": self.total_columns,
        }


def build_sample(raw_text: str, max_lines: int = SAMPLE_LINES) -> str:
    return "\n".join(raw_text.split("\n")[:max_lines])


def build_messages(sample: str, dataset_name: str) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {
            "role": "user",
            "content": f"Analyze this CSV data sample:\n\n{sample}\n\nDataset name: {dataset_name}",
        },
    ]


def clean_ai_content(content: str) -> str:
    if "```json" in content:
        content = JSON_FENCE_RE.sub("", content)
        content = TRAILING_FENCE_RE.sub("", content)
    elif "```" in content:
        content = ANY_FENCE_RE.sub("", content)
    return content.strip()


def parse_ai_content(content: str | None) -> Tuple[Dict[str, Any] | None, str | None]:
    if not content:
        return None, PARSE_ERROR
    try:
        parsed = json.loads(clean_ai_content(content))
    except json.JSONDecodeError:
        return None, PARSE_ERROR
    if not isinstance(parsed, dict):
        return None, PARSE_ERROR
    return parsed, None


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _as_list(value: Any) -> List[Any]:
    return list(value) if isinstance(value, list) else []


def normalize_analysis(value: Any) -> AnalysisView | None:
    if isinstance(value, list):
        return AnalysisView(
            shape=SHAPE_BARE_ARRAY,
            columns=list(value),
            table_name=DEFAULT_TABLE_NAME,
            total_columns=len(value),
        )

    if not isinstance(value, dict):
        return None

    inner = value.get("column_analysis")
    # An empty list or object still marks the nested shape.
    if isinstance(inner, (list, dict)) or inner:
        return AnalysisView(
            shape=SHAPE_NESTED,
            columns=_as_list(inner),
            table_name=value.get("table_name"),
            total_columns=_as_int(value.get("total_columns")),
        )

    return AnalysisView(
        shape=SHAPE_FLAT,
        columns=_as_list(inner),
        table_name=value.get("table_name"),
        total_columns=_as_int(value.get("total_columns")),
    )


def analysis_view_for(schema_record: Dict[str, Any] | None) -> AnalysisView | None:
    if not schema_record:
        return None
    return normalize_analysis(schema_record.get("column_analysis"))
