import pytest
from fastapi.testclient import TestClient

from backend.main import app
from backend.provider import get_provider
from tests.fakes import FakeProvider


@pytest.fixture
def provider():
    return FakeProvider("{}")


@pytest.fixture
def client(provider):
    app.dependency_overrides[get_provider] = lambda: provider
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
