import mongomock
import pytest
from fastapi.testclient import TestClient

from main import app
from database import DATABASE_NAME, get_db


@pytest.fixture
def db():
    """Fresh in-memory database per test, swapped in for the real MongoDB."""
    mock_db = mongomock.MongoClient()[DATABASE_NAME]
    app.dependency_overrides[get_db] = lambda: mock_db
    yield mock_db
    app.dependency_overrides.clear()


@pytest.fixture
def client(db):
    # Not used as a context manager so the lifespan never opens a real client
    return TestClient(app)
