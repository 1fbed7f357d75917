"""
Shared fixtures: every test gets its own in-memory SQLite key-value store.
DATABASE_URL is forced to in-memory before uninotes is imported so nothing touches disk.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

from datetime import datetime, timezone

import pytest

from uninotes.config import Settings
from uninotes.database import init_db, make_engine, make_session_factory
from uninotes.state import AppState
from uninotes.storage.kv_store import KeyValueStore

FIXED_NOW = datetime(2025, 3, 10, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock the tests can move forward."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def engine():
    eng = make_engine("sqlite://")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def store(engine):
    return KeyValueStore(make_session_factory(engine), quota_bytes=64 * 1024, retry_attempts=3)


@pytest.fixture
def test_settings():
    return Settings(database_url="sqlite://", max_upload_bytes=1024 * 1024, storage_quota_bytes=5 * 1024 * 1024)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def state(engine, test_settings, clock):
    return AppState.from_settings(test_settings, engine=engine, clock=clock)


def make_note(note_id: str, uploaded_by: str = "a@x.com", **overrides) -> dict:
    note = {
        "id": note_id,
        "courseCode": "IF101",
        "courseTitle": "Algoritma dan Pemrograman",
        "faculty": "Engineering",
        "prodi": "CS",
        "semester": "1",
        "type": "PDF",
        "fileType": "PDF",
        "title": f"Note {note_id}",
        "description": "Lecture summary",
        "fileName": "notes.pdf",
        "fileSize": "1.00 KB",
        "fileData": "data:application/pdf;base64,JVBERi0=",
        "author": "Alice",
        "uploadedBy": uploaded_by,
        "createdAt": "2025-03-10T12:00:00.000Z",
        "uploadDate": "2025-03-10T12:00:00.000Z",
        "uploadStatus": "complete",
    }
    note.update(overrides)
    return note
