import asyncio

from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from hub.limits import (
    RequestLimits,
    RequestLimitsMiddleware,
    _parse_int,
    _parse_mapping,
    load_limits,
    resolve_module,
)


def test_parse_int():
    assert _parse_int(None, 5) == 5
    assert _parse_int("  ", 5) == 5
    assert _parse_int("abc", 5) == 5
    assert _parse_int("12", 5) == 12
    assert _parse_int("0", 5) is None


def test_parse_mapping_skips_bad_pairs():
    assert _parse_mapping("dataset_profiler=100, bad, =3, other=x, csv=7") == {
        "dataset_profiler": 100,
        "csv": 7,
    }
    assert _parse_mapping(None) == {}


def test_load_limits_from_env(monkeypatch):
    monkeypatch.setenv("DATA_AGENT_MAX_BODY_BYTES", "-1")
    monkeypatch.setenv("DATA_AGENT_REQUEST_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("DATA_AGENT_MODULE_MAX_BODY_BYTES", "dataset_profiler=1000")
    monkeypatch.delenv("DATA_AGENT_MODULE_TIMEOUTS", raising=False)

    limits = load_limits()

    assert limits.max_body is None
    assert limits.timeout_seconds == 2.5
    assert limits.for_module("dataset_profiler") == (1000, 2.5)
    assert limits.for_module(None) == (None, 2.5)


def test_defaults_without_env(monkeypatch):
    monkeypatch.delenv("DATA_AGENT_MAX_BODY_BYTES", raising=False)
    monkeypatch.delenv("DATA_AGENT_REQUEST_TIMEOUT_SECONDS", raising=False)

    limits = load_limits()

    assert limits.max_body == 5_000_000
    assert limits.timeout_seconds == 15.0


def test_resolve_module_prefers_longest_mount():
    mount_map = {"/datasets": "dataset_profiler", "/datasets/admin": "admin"}

    assert resolve_module("/datasets/upload", mount_map) == "dataset_profiler"
    assert resolve_module("/datasets/admin/x", mount_map) == "admin"
    assert resolve_module("datasets", mount_map) == "dataset_profiler"
    assert resolve_module("/datasetsx", mount_map) is None


def _client(limits):
    app = FastAPI()

    @app.post("/datasets/echo")
    async def echo(request: Request):
        body = await request.body()
        return {"size": len(body)}

    @app.get("/datasets/slow")
    async def slow():
        await asyncio.sleep(1)
        return {"done": True}

    app.add_middleware(
        RequestLimitsMiddleware,
        mount_map={"/datasets": "dataset_profiler"},
        limits=limits,
    )
    return TestClient(app)


def test_large_body_is_rejected():
    client = _client(RequestLimits(max_body=10, timeout_seconds=None))

    response = client.post("/datasets/echo", content=b"x" * 50)

    assert response.status_code == 413
    assert response.json() == {"error": "Payload too large."}


def test_module_override_beats_global_limit():
    limits = RequestLimits(max_body=10, module_max_body={"dataset_profiler": 100})

    response = _client(limits).post("/datasets/echo", content=b"x" * 50)

    assert response.status_code == 200
    assert response.json() == {"size": 50}


def test_slow_request_times_out():
    client = _client(RequestLimits(max_body=None, timeout_seconds=0.05))

    response = client.get("/datasets/slow")

    assert response.status_code == 504
    assert response.json() == {"error": "Request timed out."}
