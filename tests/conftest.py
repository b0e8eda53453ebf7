import pytest

from modules.dataset_profiler.core import storage


@pytest.fixture(autouse=True)
def memory_store(monkeypatch):
    monkeypatch.delenv("DATA_AGENT_DB_DSN", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    storage.reset_memory()
    yield
    storage.reset_memory()
