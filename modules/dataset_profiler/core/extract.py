from __future__ import annotations

import math
import re
import time
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Sequence


MAX_SAMPLES = 5
BOOL_TOKENS = {"true", "false", "1", "0", "yes", "no"}

DECIMAL_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")
INFINITY_RE = re.compile(r"^[+-]?Infinity$")
PREFIXED_RE = re.compile(r"^0(?:[xX][0-9a-fA-F]+|[oO][0-7]+|[bB][01]+)$")
DATE_PATTERN_RE = re.compile(r"\d{4}-\d{2}-\d{2}|\d{2}/\d{2}/\d{4}|\d{2}-\d{2}-\d{4}")
DATE_FORMATS = ("%m/%d/%Y", "%m-%d-%Y")
TIME_FORMATS = ("", " %H:%M", " %H:%M:%S")


@dataclass
class ColumnMetadata:
    column_name: str
    data_type_detected: str
    sample_values: List[str] = field(default_factory=list)
    null_count: int = 0
    unique_count: int = 0
    min_value: str | None = None
    max_value: str | None = None
    mean_value: float | None = None
    std_dev: float | None = None

    def to_dict(self) -> Dict[str, object]:
        payload: Dict[str, object] = {
            "column_name": self.column_name,
            "data_type_detected": self.data_type_detected,
            "sample_values": list(self.sample_values),
            "null_count": self.null_count,
            "unique_count": self.unique_count,
        }
        for key in ("min_value", "max_value"):
            value = getattr(self, key)
            if value is not None:
                payload[key] = value
        # Infinity and NaN are not JSON; they serialize as null.
        for key in ("mean_value", "std_dev"):
            value = getattr(self, key)
            if value is not None:
                payload[key] = value if math.isfinite(value) else None
        return payload


@dataclass
class DatasetMetadata:
    total_rows: int = 0
    total_columns: int = 0
    columns: List[ColumnMetadata] = field(default_factory=list)
    file_size: int = 0
    processing_time: float = 0.0

    def to_dict(self) -> Dict[str, object]:
        return {
            "total_rows": self.total_rows,
            "total_columns": self.total_columns,
            "columns": [column.to_dict() for column in self.columns],
            "file_size": self.file_size,
            "processing_time": self.processing_time,
        }


def _non_empty(values: Sequence[str | None]) -> List[str]:
    return [value for value in values if value is not None and value.strip() != ""]


def _to_number(value: str) -> float | None:
    compact = value.strip()
    if DECIMAL_RE.match(compact):
        return float(compact)
    if INFINITY_RE.match(compact):
        return -math.inf if compact.startswith("-") else math.inf
    if PREFIXED_RE.match(compact):
        try:
            return float(int(compact, 0))
        except OverflowError:
            return math.inf
    return None


def _is_calendar_date(value: str) -> bool:
    compact = value.strip()
    try:
        datetime.fromisoformat(compact.replace("Z", "+00:00"))
        return True
    except ValueError:
        pass
    for date_format in DATE_FORMATS:
        for time_format in TIME_FORMATS:
            try:
                datetime.strptime(compact, date_format + time_format)
                return True
            except ValueError:
                continue
    return False


def _is_date(value: str) -> bool:
    return bool(DATE_PATTERN_RE.search(value)) and _is_calendar_date(value)


def format_number(value: float) -> str:
    """Render a float the way a dashboard shows it: ``10`` not ``10.0``."""
    if math.isinf(value):
        return "-Infinity" if value < 0 else "Infinity"
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    text = repr(value)
    if "e" in text and 1e-6 <= abs(value) < 1e21:
        return format(Decimal(text), "f")
    return re.sub(r"e([+-])0*(\d)", r"e\1\2", text)


def detect_data_type(values: Sequence[str | None]) -> str:
    non_null = _non_empty(values)
    if not non_null:
        return "text"

    if all(_to_number(value) is not None for value in non_null):
        has_decimals = any("." in value for value in non_null)
        return "numeric" if has_decimals else "integer"

    if all(_is_date(value) for value in non_null):
        return "date"

    if all(value.strip().lower() in BOOL_TOKENS for value in non_null):
        return "boolean"

    return "text"


def calculate_column_stats(
    values: Sequence[str | None], data_type: str
) -> Dict[str, object]:
    non_null = _non_empty(values)

    if data_type in {"numeric", "integer"}:
        numbers = [number for number in map(_to_number, non_null) if number is not None]
        if not numbers:
            return {}
        count = len(numbers)
        mean = sum(numbers) / count
        # Multiplication overflows to inf where ** raises.
        variance = sum((number - mean) * (number - mean) for number in numbers) / count
        return {
            "min_value": format_number(min(numbers)),
            "max_value": format_number(max(numbers)),
            "mean_value": mean,
            "std_dev": math.sqrt(variance),
        }

    if data_type == "text" and non_null:
        ordered = sorted(non_null)
        return {"min_value": ordered[0], "max_value": ordered[-1]}

    return {}


def _column_metadata(header: str, column_values: List[str]) -> ColumnMetadata:
    non_empty = _non_empty(column_values)
    unique_values = list(dict.fromkeys(non_empty))
    data_type = detect_data_type(column_values)
    stats = calculate_column_stats(column_values, data_type)
    return ColumnMetadata(
        column_name=header.strip(),
        data_type_detected=data_type,
        sample_values=unique_values[:MAX_SAMPLES],
        null_count=len(column_values) - len(non_empty),
        unique_count=len(unique_values),
        **stats,
    )


def extract_basic_metadata(grid: Sequence[Sequence[str]]) -> DatasetMetadata:
    """Profile a parsed CSV grid whose first row holds the headers.

    Short rows read as empty cells for the missing positions. ``file_size``
    stays ``0`` for the caller to fill in; ``processing_time`` is the
    wall-clock duration of this call in milliseconds.
    """
    started = time.perf_counter()

    if not grid:
        return DatasetMetadata(processing_time=(time.perf_counter() - started) * 1000)

    headers = list(grid[0])
    data_rows = grid[1:]

    columns: List[ColumnMetadata] = []
    for idx, header in enumerate(headers):
        column_values = [row[idx] if idx < len(row) else "" for row in data_rows]
        columns.append(_column_metadata(header, column_values))

    return DatasetMetadata(
        total_rows=len(data_rows),
        total_columns=len(headers),
        columns=columns,
        processing_time=(time.perf_counter() - started) * 1000,
    )
