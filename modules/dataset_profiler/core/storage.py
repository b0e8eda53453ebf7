from __future__ import annotations

import copy
import json
import os
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

import psycopg
from psycopg import sql
from psycopg.rows import dict_row


_MEMORY: Dict[str, Any] = {
    "datasets": {},
    "texts": {},
    "columns": {},
    "schemas": [],
    "suggestions": [],
}
_SCHEMA_READY = False

DATASET_FIELDS = {
    "name",
    "file_name",
    "file_size",
    "row_count",
    "column_count",
    "status",
    "basic_metadata",
    "metadata_extracted_at",
}
COLUMN_FIELDS = {
    "column_type",
    "data_type_detected",
    "null_count",
    "unique_count",
    "sample_values",
    "min_value",
    "max_value",
    "mean_value",
    "std_dev",
}
JSON_FIELDS = {"basic_metadata", "sample_values", "column_analysis", "required_columns", "metadata"}


def _dsn() -> str | None:
    return os.getenv("DATA_AGENT_DB_DSN") or os.getenv("DATABASE_URL")


def _db_available() -> bool:
    return bool(_dsn())


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _connect() -> psycopg.Connection:
    conn = psycopg.connect(_dsn(), autocommit=True, row_factory=dict_row)
    _ensure_schema(conn)
    return conn


def _ensure_schema(conn: Any) -> None:
    global _SCHEMA_READY
    if _SCHEMA_READY:
        return
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS data_agent_datasets (
            id TEXT PRIMARY KEY,
            name TEXT NOT NULL,
            file_name TEXT NOT NULL,
            file_size BIGINT NOT NULL DEFAULT 0,
            row_count INTEGER NOT NULL DEFAULT 0,
            column_count INTEGER NOT NULL DEFAULT 0,
            status TEXT NOT NULL,
            basic_metadata JSONB,
            metadata_extracted_at TIMESTAMPTZ,
            csv_text TEXT NOT NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
        """
    )
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS data_agent_dataset_columns (
            dataset_id TEXT NOT NULL REFERENCES data_agent_datasets (id) ON DELETE CASCADE,
            column_index INTEGER NOT NULL,
            column_name TEXT NOT NULL,
            column_type TEXT NOT NULL DEFAULT 'text',
            data_type_detected TEXT,
            null_count INTEGER,
            unique_count INTEGER,
            sample_values JSONB,
            min_value TEXT,
            max_value TEXT,
            mean_value DOUBLE PRECISION,
            std_dev DOUBLE PRECISION,
            PRIMARY KEY (dataset_id, column_index)
        );
        """
    )
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS data_agent_dataset_schemas (
            id BIGSERIAL PRIMARY KEY,
            dataset_id TEXT NOT NULL REFERENCES data_agent_datasets (id) ON DELETE CASCADE,
            generated_sql TEXT,
            column_analysis JSONB,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
        """
    )
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS data_agent_analysis_suggestions (
            id BIGSERIAL PRIMARY KEY,
            dataset_id TEXT NOT NULL REFERENCES data_agent_datasets (id) ON DELETE CASCADE,
            analysis_id TEXT,
            title TEXT NOT NULL,
            description TEXT NOT NULL,
            analysis_type TEXT NOT NULL,
            suggested_prompt TEXT,
            complexity_level TEXT,
            estimated_time_minutes INTEGER,
            required_columns JSONB,
            metadata JSONB,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
        """
    )
    _SCHEMA_READY = True


def _encode(key: str, value: Any) -> Any:
    if key in JSON_FIELDS and value is not None:
        return json.dumps(value)
    return value


def _decode(row: Dict[str, Any] | None) -> Dict[str, Any] | None:
    if row is None:
        return None
    record = dict(row)
    for key, value in record.items():
        if isinstance(value, datetime):
            record[key] = value.isoformat()
        elif key in JSON_FIELDS and isinstance(value, str):
            try:
                record[key] = json.loads(value)
            except json.JSONDecodeError:
                record[key] = {"raw": value}
    return record


def _assignments(fields: Dict[str, Any]) -> sql.Composed:
    return sql.SQL(", ").join(
        sql.SQL("{} = %s").format(sql.Identifier(key)) for key in fields
    )


def reset_memory() -> None:
    global _SCHEMA_READY
    _MEMORY["datasets"] = {}
    _MEMORY["texts"] = {}
    _MEMORY["columns"] = {}
    _MEMORY["schemas"] = []
    _MEMORY["suggestions"] = []
    _SCHEMA_READY = False


def create_dataset(
    *,
    name: str,
    file_name: str,
    file_size: int,
    row_count: int,
    column_count: int,
    csv_text: str,
    status: str = "processing",
) -> Dict[str, Any]:
    record = {
        "id": uuid.uuid4().hex,
        "name": name,
        "file_name": file_name,
        "file_size": file_size,
        "row_count": row_count,
        "column_count": column_count,
        "status": status,
        "basic_metadata": None,
        "metadata_extracted_at": None,
        "created_at": _utc_now(),
    }
    if _db_available():
        with _connect() as conn:
            row = conn.execute(
                """
                INSERT INTO data_agent_datasets (
                    id, name, file_name, file_size, row_count, column_count,
                    status, csv_text
                ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING id, name, file_name, file_size, row_count, column_count,
                    status, basic_metadata, metadata_extracted_at, created_at;
                """,
                (
                    record["id"],
                    name,
                    file_name,
                    file_size,
                    row_count,
                    column_count,
                    status,
                    csv_text,
                ),
            ).fetchone()
        return _decode(row)

    _MEMORY["datasets"][record["id"]] = record
    _MEMORY["texts"][record["id"]] = csv_text
    return copy.deepcopy(record)


def get_dataset(dataset_id: str) -> Optional[Dict[str, Any]]:
    if _db_available():
        with _connect() as conn:
            row = conn.execute(
                """
                SELECT id, name, file_name, file_size, row_count, column_count,
                    status, basic_metadata, metadata_extracted_at, created_at
                FROM data_agent_datasets
                WHERE id = %s;
                """,
                (dataset_id,),
            ).fetchone()
        return _decode(row)

    record = _MEMORY["datasets"].get(dataset_id)
    return copy.deepcopy(record) if record else None


def list_datasets(limit: int = 100) -> List[Dict[str, Any]]:
    if _db_available():
        with _connect() as conn:
            rows = conn.execute(
                """
                SELECT id, name, file_name, file_size, row_count, column_count,
                    status, basic_metadata, metadata_extracted_at, created_at
                FROM data_agent_datasets
                ORDER BY created_at DESC
                LIMIT %s;
                """,
                (limit,),
            ).fetchall()
        return [_decode(row) for row in rows]

    records = sorted(
        _MEMORY["datasets"].values(),
        key=lambda item: item["created_at"],
        reverse=True,
    )
    return [copy.deepcopy(record) for record in records[:limit]]


def update_dataset(dataset_id: str, **fields: Any) -> Optional[Dict[str, Any]]:
    unknown = set(fields) - DATASET_FIELDS
    if unknown:
        raise ValueError(f"Unknown dataset fields: {', '.join(sorted(unknown))}")
    if not fields:
        return get_dataset(dataset_id)

    if _db_available():
        query = sql.SQL(
            """
            UPDATE data_agent_datasets SET {}
            WHERE id = %s
            RETURNING id, name, file_name, file_size, row_count, column_count,
                status, basic_metadata, metadata_extracted_at, created_at;
            """
        ).format(_assignments(fields))
        params = [_encode(key, value) for key, value in fields.items()]
        with _connect() as conn:
            row = conn.execute(query, (*params, dataset_id)).fetchone()
        return _decode(row)

    record = _MEMORY["datasets"].get(dataset_id)
    if record is None:
        return None
    record.update(copy.deepcopy(fields))
    return copy.deepcopy(record)


def delete_dataset(dataset_id: str) -> bool:
    if _db_available():
        with _connect() as conn:
            cursor = conn.execute(
                "DELETE FROM data_agent_datasets WHERE id = %s;", (dataset_id,)
            )
            return cursor.rowcount > 0

    if dataset_id not in _MEMORY["datasets"]:
        return False
    del _MEMORY["datasets"][dataset_id]
    _MEMORY["texts"].pop(dataset_id, None)
    _MEMORY["columns"].pop(dataset_id, None)
    _MEMORY["schemas"] = [
        item for item in _MEMORY["schemas"] if item["dataset_id"] != dataset_id
    ]
    _MEMORY["suggestions"] = [
        item for item in _MEMORY["suggestions"] if item["dataset_id"] != dataset_id
    ]
    return True


def get_dataset_text(dataset_id: str) -> Optional[str]:
    if _db_available():
        with _connect() as conn:
            row = conn.execute(
                "SELECT csv_text FROM data_agent_datasets WHERE id = %s;",
                (dataset_id,),
            ).fetchone()
        return row["csv_text"] if row else None

    return _MEMORY["texts"].get(dataset_id)


def add_columns(dataset_id: str, headers: Iterable[str]) -> None:
    names = list(headers)
    if _db_available():
        with _connect() as conn:
            for index, name in enumerate(names):
                conn.execute(
                    """
                    INSERT INTO data_agent_dataset_columns (
                        dataset_id, column_index, column_name, column_type
                    ) VALUES (%s, %s, %s, 'text')
                    ON CONFLICT (dataset_id, column_index) DO NOTHING;
                    """,
                    (dataset_id, index, name),
                )
        return

    _MEMORY["columns"][dataset_id] = [
        {
            "dataset_id": dataset_id,
            "column_index": index,
            "column_name": name,
            "column_type": "text",
        }
        for index, name in enumerate(names)
    ]


def update_column(dataset_id: str, column_index: int, fields: Dict[str, Any]) -> bool:
    values = {key: value for key, value in fields.items() if key in COLUMN_FIELDS}
    if not values:
        return False

    if _db_available():
        query = sql.SQL(
            """
            UPDATE data_agent_dataset_columns SET {}
            WHERE dataset_id = %s AND column_index = %s;
            """
        ).format(_assignments(values))
        params = [_encode(key, value) for key, value in values.items()]
        with _connect() as conn:
            cursor = conn.execute(query, (*params, dataset_id, column_index))
            return cursor.rowcount > 0

    for column in _MEMORY["columns"].get(dataset_id, []):
        if column["column_index"] == column_index:
            column.update(copy.deepcopy(values))
            return True
    return False


def list_columns(dataset_id: str) -> List[Dict[str, Any]]:
    if _db_available():
        with _connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM data_agent_dataset_columns
                WHERE dataset_id = %s
                ORDER BY column_index;
                """,
                (dataset_id,),
            ).fetchall()
        return [_decode(row) for row in rows]

    return copy.deepcopy(_MEMORY["columns"].get(dataset_id, []))


def save_schema(
    dataset_id: str, generated_sql: str | None, column_analysis: Any
) -> Dict[str, Any]:
    if _db_available():
        with _connect() as conn:
            row = conn.execute(
                """
                INSERT INTO data_agent_dataset_schemas (
                    dataset_id, generated_sql, column_analysis
                ) VALUES (%s, %s, %s)
                RETURNING *;
                """,
                (dataset_id, generated_sql, _encode("column_analysis", column_analysis)),
            ).fetchone()
        return _decode(row)

    record = {
        "id": len(_MEMORY["schemas"]) + 1,
        "dataset_id": dataset_id,
        "generated_sql": generated_sql,
        "column_analysis": copy.deepcopy(column_analysis),
        "created_at": _utc_now(),
    }
    _MEMORY["schemas"].append(record)
    return copy.deepcopy(record)


def latest_schema(dataset_id: str) -> Optional[Dict[str, Any]]:
    if _db_available():
        with _connect() as conn:
            row = conn.execute(
                """
                SELECT * FROM data_agent_dataset_schemas
                WHERE dataset_id = %s
                ORDER BY created_at DESC, id DESC
                LIMIT 1;
                """,
                (dataset_id,),
            ).fetchone()
        return _decode(row)

    for record in reversed(_MEMORY["schemas"]):
        if record["dataset_id"] == dataset_id:
            return copy.deepcopy(record)
    return None


def save_suggestions(
    dataset_id: str, analysis_id: str, suggestions: List[Dict[str, Any]]
) -> List[Dict[str, Any]]:
    saved: List[Dict[str, Any]] = []
    if _db_available():
        with _connect() as conn:
            for suggestion in suggestions:
                row = conn.execute(
                    """
                    INSERT INTO data_agent_analysis_suggestions (
                        dataset_id, analysis_id, title, description, analysis_type,
                        suggested_prompt, complexity_level, estimated_time_minutes,
                        required_columns, metadata
                    ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                    RETURNING *;
                    """,
                    (
                        dataset_id,
                        analysis_id,
                        suggestion["title"],
                        suggestion["description"],
                        suggestion["analysis_type"],
                        suggestion.get("suggested_prompt"),
                        suggestion.get("complexity_level"),
                        suggestion.get("estimated_time_minutes"),
                        _encode("required_columns", suggestion.get("required_columns")),
                        _encode("metadata", suggestion.get("metadata")),
                    ),
                ).fetchone()
                saved.append(_decode(row))
        return saved

    for suggestion in suggestions:
        record = {
            **copy.deepcopy(suggestion),
            "id": len(_MEMORY["suggestions"]) + 1,
            "dataset_id": dataset_id,
            "analysis_id": analysis_id,
            "created_at": _utc_now(),
        }
        _MEMORY["suggestions"].append(record)
        saved.append(copy.deepcopy(record))
    return saved


def list_suggestions(dataset_id: str) -> List[Dict[str, Any]]:
    if _db_available():
        with _connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM data_agent_analysis_suggestions
                WHERE dataset_id = %s
                ORDER BY id;
                """,
                (dataset_id,),
            ).fetchall()
        return [_decode(row) for row in rows]

    return [
        copy.deepcopy(item)
        for item in _MEMORY["suggestions"]
        if item["dataset_id"] == dataset_id
    ]
