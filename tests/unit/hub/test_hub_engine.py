import pytest
from fastapi.testclient import TestClient

from hub.engine import build_app, import_attr, public_modules


@pytest.fixture
def client():
    return TestClient(build_app())


def test_index_lists_profiler(client):
    response = client.get("/")

    assert response.status_code == 200
    assert "Dataset Profiler" in response.text


def test_module_api_lists_mounts(client):
    modules = client.get("/api/modules").json()["modules"]

    profiler = next(item for item in modules if item["name"] == "dataset_profiler")
    assert profiler["mount"] == "/datasets"
    assert profiler["title"] == "Dataset Profiler"


def test_profiler_is_mounted(client):
    response = client.get("/datasets/api/datasets")

    assert response.status_code == 200
    assert response.json() == {"datasets": []}


def test_validation_errors_become_400(client):
    response = client.post(
        "/datasets/api/datasets/abc/suggestions",
        content=b"not json",
        headers={"content-type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid input."}


def test_upload_over_body_limit(monkeypatch):
    monkeypatch.setenv("DATA_AGENT_MAX_BODY_BYTES", "64")
    client = TestClient(build_app())

    response = client.post(
        "/datasets/upload",
        files={"file": ("big.csv", b"a,b\n" + b"1,2\n" * 100, "text/csv")},
    )

    assert response.status_code == 413


def test_import_attr_requires_colon():
    with pytest.raises(ValueError):
        import_attr("hub.engine.build_app")

    assert import_attr("hub.engine:build_app") is build_app


def test_public_modules_sorted_by_title():
    modules = {
        "b": {"name": "b", "title": "Beta"},
        "a": {"name": "a", "title": "Alpha"},
        "h": {"name": "h", "title": "Hidden", "public": False},
    }

    assert [item["name"] for item in public_modules(modules)] == ["a", "b"]
