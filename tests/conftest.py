import os
import io

# keep test runs from writing logs/app.log
os.environ["LOG_FILE"] = ""

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from main import create_app
from utils.config import AppConfig
from utils.database_manager import DatabaseManager

CLIENT_ORIGIN = "http://localhost:3000"


@pytest.fixture()
def upload_dir(tmp_path, monkeypatch):
    path = tmp_path / "uploads"
    monkeypatch.setenv("UPLOAD_DIR", str(path))
    return path


@pytest.fixture()
def db_manager(tmp_path):
    """Gateway over a fresh sqlite file."""
    return DatabaseManager(str(tmp_path / "test.db"))


@pytest.fixture()
def app(db_manager, upload_dir, monkeypatch):
    """Create a new FastAPI app instance for each test."""
    monkeypatch.setenv("CLIENT_ORIGIN", CLIENT_ORIGIN)
    monkeypatch.setenv("MAX_UPLOAD_MB", "1")
    return create_app(config=AppConfig(), db_manager=db_manager)


@pytest.fixture()
def client(app):
    """A test client with the app's lifespan running."""
    with TestClient(app) as client:
        yield client


@pytest.fixture()
def signup_payload():
    return {
        "fname": "Foo",
        "lname": "Bar",
        "email": "foo@tezu.ac.in",
        "password": "secret123",
    }


@pytest.fixture()
def png_bytes():
    buffer = io.BytesIO()
    Image.new("RGB", (4, 4), color=(200, 30, 30)).save(buffer, format="PNG")
    return buffer.getvalue()
