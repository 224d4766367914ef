from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="studio-uploads-"))
os.environ.setdefault("MEDIA_BASE_URL", "http://media.test")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")


@pytest.fixture()
def database(tmp_path):
    from tests.database import SqliteDatabase

    db = SqliteDatabase(tmp_path / "studio.db")
    yield db
    db.dispose()

@pytest.fixture()
def api(database):
    """TestClient whose requests run against the throwaway database."""
    from fastapi.testclient import TestClient

    from studio.db.session import get_db
    from studio.main import app

    app.dependency_overrides[get_db] = database.get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
