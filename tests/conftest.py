import pytest
from fastapi.testclient import TestClient

from docstore.api.dependencies import get_store
from docstore.api.main import app
from docstore.store.crud import DocumentStore


@pytest.fixture
def store(tmp_path):
    s = DocumentStore.from_path(str(tmp_path / "test.sqlite"))
    yield s
    s.close()


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
