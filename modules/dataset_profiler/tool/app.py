from __future__ import annotations

from pathlib import Path

from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from pydantic import BaseModel

from hub.errors import error_response
from hub.settings import configure_templates, shared_templates_dir
from modules.dataset_profiler.core import storage
from modules.dataset_profiler.core.analysis import analysis_view_for
from modules.dataset_profiler.core.config import load_config
from modules.dataset_profiler.core.workflow import (
    AnalysisError,
    analyze_dataset,
    preview_dataset,
    preview_metadata,
    record_suggestions,
    upload_dataset,
)

app = FastAPI(title="Dataset Profiler")

BASE_DIR = Path(__file__).parent
ROOT_DIR = BASE_DIR.parents[2]
SHARED_TEMPLATES = shared_templates_dir(ROOT_DIR)

templates = Jinja2Templates(
    directory=[str(BASE_DIR / "templates"), str(SHARED_TEMPLATES)]
)
configure_templates(templates)


class SuggestionsIn(BaseModel):
    analysis_id: str | None = None
    content: str | None = None


def _not_found():
    return error_response("Dataset not found.", status_code=404)


@app.get("/", response_class=HTMLResponse)
def index(request: Request):
    base_path = request.url.path.rstrip("/")
    config = load_config()
    return templates.TemplateResponse(
        request,
        "index.html",
        {
            "base_path": base_path,
            "datasets": storage.list_datasets(),
            "ai_enabled": config.ai_enabled,
        },
    )


@app.post("/metadata")
async def metadata(file: UploadFile | None = File(None)):
    if not file:
        return error_response("Upload a CSV file.")
    raw_bytes = await file.read()
    payload, error = preview_metadata(file.filename, raw_bytes)
    if error:
        return error_response(error)
    return payload


@app.post("/upload")
async def upload(
    file: UploadFile | None = File(None),
    analyze: bool | None = Form(None),
):
    if not file:
        return error_response("Upload a CSV file.")
    raw_bytes = await file.read()
    payload, error = upload_dataset(file.filename, raw_bytes, analyze=analyze)
    if error:
        return error_response(error)
    return payload


@app.get("/api/datasets")
def api_datasets():
    return {"datasets": storage.list_datasets()}


@app.get("/api/datasets/{dataset_id}")
def api_dataset(dataset_id: str):
    dataset = storage.get_dataset(dataset_id)
    if dataset is None:
        return _not_found()
    return {"dataset": dataset, "columns": storage.list_columns(dataset_id)}


@app.delete("/api/datasets/{dataset_id}")
def api_delete_dataset(dataset_id: str):
    if not storage.delete_dataset(dataset_id):
        return _not_found()
    return {"success": True}


@app.get("/api/datasets/{dataset_id}/preview")
def api_preview(dataset_id: str):
    payload = preview_dataset(dataset_id)
    if payload is None:
        return _not_found()
    return payload


@app.post("/api/datasets/{dataset_id}/analyze")
def api_analyze(dataset_id: str):
    try:
        return analyze_dataset(dataset_id)
    except AnalysisError as exc:
        return error_response(exc.message, status_code=exc.status_code)


@app.get("/api/datasets/{dataset_id}/schema")
def api_schema(dataset_id: str):
    if storage.get_dataset(dataset_id) is None:
        return _not_found()
    schema = storage.latest_schema(dataset_id)
    view = analysis_view_for(schema)
    return {"schema": schema, "analysis": view.to_dict() if view else None}


@app.post("/api/datasets/{dataset_id}/suggestions")
def api_record_suggestions(dataset_id: str, body: SuggestionsIn):
    if storage.get_dataset(dataset_id) is None:
        return _not_found()
    payload, error = record_suggestions(dataset_id, body.analysis_id, body.content)
    if error:
        return error_response(error)
    return payload


@app.get("/api/datasets/{dataset_id}/suggestions")
def api_suggestions(dataset_id: str):
    if storage.get_dataset(dataset_id) is None:
        return _not_found()
    return {"suggestions": storage.list_suggestions(dataset_id)}
