import os

os.environ.setdefault("LOG_FILE", "")
os.environ.setdefault("SECRET_KEY", "test-secret")

import httpx
import pandas as pd
import pytest
from httpx import ASGITransport

from attendance_tracker.config import settings
from attendance_tracker.database import database
from attendance_tracker.dependencies import get_current_user
from attendance_tracker.main import app
from attendance_tracker.models.user import User


def write_sheet(path, rows):
    """Write rows (header first) to an .xlsx file without a pandas header row."""
    pd.DataFrame(rows).to_excel(path, header=False, index=False)
    return str(path)


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    path = tmp_path / "uploads"
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(path))
    return path


@pytest.fixture
async def db(tmp_path):
    await database.connect(f"sqlite+aiosqlite:///{tmp_path / 'attendance.db'}")
    await database.create_tables()
    yield database
    await database.disconnect()


@pytest.fixture
async def session(db):
    async with db.get_session() as db_session:
        yield db_session


@pytest.fixture
def signed_in_user():
    return User(id=1, external_id="google-1", name="Test User", email="user@example.com")


@pytest.fixture
async def anon_client(db, upload_dir):
    async with httpx.AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
async def client(anon_client, signed_in_user):
    app.dependency_overrides[get_current_user] = lambda: signed_in_user
    yield anon_client
