from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Tuple

from modules.dataset_profiler.core import storage
from modules.dataset_profiler.core.analysis import (
    analysis_view_for,
    build_messages,
    build_sample,
    parse_ai_content,
)
from modules.dataset_profiler.core.config import ProfilerConfig, load_config
from modules.dataset_profiler.core.extract import extract_basic_metadata
from modules.dataset_profiler.core.openai_client import AIClientError, request_chat_completion
from modules.dataset_profiler.core.parse import parse_csv
from modules.dataset_profiler.core.suggestions import parse_analysis_suggestions

logger = logging.getLogger(__name__)

STATUS_PROCESSING = "processing"
STATUS_READY = "ready"
STATUS_ANALYZED = "analyzed"


class AnalysisError(RuntimeError):
    def __init__(self, message: str, *, status_code: int = 500) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _dataset_name(file_name: str) -> str:
    return file_name.replace(".csv", "", 1)


def _validate_upload(file_name: str | None, raw_bytes: bytes | None) -> Tuple[str | None, str | None]:
    name = (file_name or "").strip()
    if not name:
        return None, "Upload a CSV file."
    if not name.lower().endswith(".csv"):
        return None, "Only .csv files are supported."
    if not raw_bytes:
        return None, "CSV is empty."
    return name, None


def preview_metadata(
    file_name: str | None, raw_bytes: bytes | None
) -> Tuple[Dict[str, Any] | None, str | None]:
    """Profile an upload without storing it."""
    name, error = _validate_upload(file_name, raw_bytes)
    if error or name is None or raw_bytes is None:
        return None, error

    raw_text = raw_bytes.decode("utf-8", errors="replace")
    metadata = extract_basic_metadata(parse_csv(raw_text))
    metadata.file_size = len(raw_bytes)
    return {"file_name": name, "metadata": metadata.to_dict()}, None


def extract_immediate_metadata(
    dataset_id: str, csv_text: str, file_size: int
) -> Dict[str, Any]:
    logger.info("Extracting immediate metadata for dataset %s", dataset_id)
    metadata = extract_basic_metadata(parse_csv(csv_text))
    metadata.file_size = file_size
    payload = metadata.to_dict()

    storage.update_dataset(
        dataset_id,
        basic_metadata=payload,
        metadata_extracted_at=datetime.now(timezone.utc).isoformat(),
        status=STATUS_READY,
    )
    for index, column in enumerate(payload["columns"]):
        storage.update_column(
            dataset_id,
            index,
            {
                "data_type_detected": column["data_type_detected"],
                "null_count": column["null_count"],
                "unique_count": column["unique_count"],
                "sample_values": column["sample_values"],
                "min_value": column.get("min_value"),
                "max_value": column.get("max_value"),
                "mean_value": column.get("mean_value"),
                "std_dev": column.get("std_dev"),
            },
        )

    logger.info(
        "Metadata ready for dataset %s: %d rows, %d columns in %.2f ms",
        dataset_id,
        metadata.total_rows,
        metadata.total_columns,
        metadata.processing_time,
    )
    return payload


def analyze_dataset(
    dataset_id: str, *, config: ProfilerConfig | None = None
) -> Dict[str, Any]:
    config = config or load_config()
    if not config.ai_enabled:
        raise AnalysisError("OpenAI API key not configured.", status_code=500)

    dataset = storage.get_dataset(dataset_id)
    if dataset is None:
        raise AnalysisError("Dataset not found.", status_code=404)

    csv_text = storage.get_dataset_text(dataset_id)
    if csv_text is None:
        raise AnalysisError("Failed to load the CSV file.", status_code=500)

    logger.info("Sending dataset %s (%s) for AI analysis", dataset_id, dataset["name"])
    messages = build_messages(build_sample(csv_text, config.sample_lines), dataset["name"])
    try:
        content = request_chat_completion(messages, config=config)
    except AIClientError as exc:
        logger.warning("AI analysis request failed for dataset %s: %s", dataset_id, exc)
        raise AnalysisError(
            "Failed to analyze CSV with OpenAI.", status_code=exc.status_code
        ) from exc

    analysis, error = parse_ai_content(content)
    if error or analysis is None:
        logger.warning("Could not parse AI analysis for dataset %s", dataset_id)
        raise AnalysisError(error or "Failed to parse AI analysis response.", status_code=500)

    schema = storage.save_schema(dataset_id, analysis.get("sql_schema"), analysis)
    storage.update_dataset(dataset_id, status=STATUS_ANALYZED)
    logger.info("Schema analysis stored for dataset %s", dataset_id)
    return {"success": True, "schema": schema, "analysis": analysis}


def upload_dataset(
    file_name: str | None,
    raw_bytes: bytes | None,
    *,
    analyze: bool | None = None,
    config: ProfilerConfig | None = None,
) -> Tuple[Dict[str, Any] | None, str | None]:
    name, error = _validate_upload(file_name, raw_bytes)
    if error or name is None or raw_bytes is None:
        return None, error

    config = config or load_config()
    raw_text = raw_bytes.decode("utf-8", errors="replace")
    grid = parse_csv(raw_text)
    headers = grid[0] if grid else []

    dataset = storage.create_dataset(
        name=_dataset_name(name),
        file_name=name,
        file_size=len(raw_bytes),
        row_count=max(0, len(grid) - 1),
        column_count=len(headers),
        csv_text=raw_text,
        status=STATUS_PROCESSING,
    )
    storage.add_columns(dataset["id"], headers)
    logger.info(
        "Dataset %s created from %s (%d rows, %d columns)",
        dataset["id"],
        name,
        dataset["row_count"],
        dataset["column_count"],
    )

    metadata = extract_immediate_metadata(dataset["id"], raw_text, len(raw_bytes))
    payload: Dict[str, Any] = {"dataset": storage.get_dataset(dataset["id"]), "metadata": metadata}

    should_analyze = config.analyze_on_upload if analyze is None else analyze
    if should_analyze and config.ai_enabled:
        try:
            payload["analysis"] = analyze_dataset(dataset["id"], config=config)
        except AnalysisError as exc:
            payload["analysis_error"] = exc.message
        payload["dataset"] = storage.get_dataset(dataset["id"])

    return payload, None


def preview_dataset(
    dataset_id: str, *, config: ProfilerConfig | None = None
) -> Dict[str, Any] | None:
    config = config or load_config()
    dataset = storage.get_dataset(dataset_id)
    if dataset is None:
        return None

    csv_text = storage.get_dataset_text(dataset_id) or ""
    rows = parse_csv(csv_text)[: config.preview_rows]
    headers = rows[0] if rows else []
    data_rows = rows[1:]
    view = analysis_view_for(storage.latest_schema(dataset_id))

    return {
        "dataset": dataset,
        "headers": headers,
        "rows": data_rows,
        "rows_shown": len(data_rows),
        "limited": len(data_rows) >= config.preview_rows - 1,
        "analysis": view.to_dict() if view else None,
    }


def record_suggestions(
    dataset_id: str | None, analysis_id: str | None, content: str | None
) -> Tuple[Dict[str, Any] | None, str | None]:
    if not dataset_id or not analysis_id or not content:
        return None, "Missing required fields: analysis_id, content, dataset_id."

    suggestions = parse_analysis_suggestions(content)
    saved: List[Dict[str, Any]] = storage.save_suggestions(dataset_id, analysis_id, suggestions)
    logger.info("Saved %d analysis suggestions for dataset %s", len(saved), dataset_id)
    return {"success": True, "suggestions": saved, "count": len(saved)}, None
