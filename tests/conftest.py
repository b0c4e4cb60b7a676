import os
from collections import defaultdict
from datetime import datetime

import pytest

# Settings are read at import time; give them something before main is imported.
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "postgresql://localhost/streamsphere_test")

from fastapi.testclient import TestClient  # noqa: E402

from main import app  # noqa: E402
from streamsphere import auth_utils, crud  # noqa: E402
from streamsphere.database import get_db_connection  # noqa: E402

CREATED = datetime(2024, 5, 1, 12, 0, 0)


def make_user(user_id=1, role="consumer", **overrides):
    row = {
        "id": user_id,
        "email": f"user{user_id}@example.com",
        "username": f"user{user_id}",
        "hashed_password": "not-a-real-hash",
        "first_name": None,
        "last_name": None,
        "profile_image_url": None,
        "role": role,
        "created_at": CREATED,
        "updated_at": CREATED,
    }
    row.update(overrides)
    return row


def make_video(video_id=1, creator=None, **overrides):
    creator = creator or make_user(user_id=7, role="creator")
    row = {
        "id": video_id,
        "title": "Morning Yoga Routine",
        "publisher": "Wellness Studio",
        "producer": "John Creator",
        "genre": "education",
        "age_rating": "G",
        "description": None,
        "thumbnail_url": None,
        "video_url": None,
        "duration": 300,
        "views": 0,
        "creator_id": creator["id"],
        "created_at": CREATED,
        "updated_at": CREATED,
        "creator": {key: creator[key] for key in crud.USER_SUMMARY_COLUMNS},
        "average_rating": 0.0,
        "total_ratings": 0,
    }
    row.update(overrides)
    return row


def auth_header(user):
    return {"Authorization": f"Bearer {auth_utils.create_access_token(user)}"}


@pytest.fixture(scope="session")
def database_url(tmp_path_factory):
    """A PostgreSQL to run the store's SQL against.

    STREAMSPHERE_TEST_DATABASE_URL points at an existing server; otherwise a
    throwaway one is started from the binaries pgserver ships.
    """
    url = os.environ.get("STREAMSPHERE_TEST_DATABASE_URL")
    if url:
        yield url
        return

    import pgserver

    server = pgserver.get_server(tmp_path_factory.mktemp("pgdata"), cleanup_mode="delete")
    try:
        yield server.get_uri()
    finally:
        server.cleanup()


async def _fake_connection():
    yield object()


@pytest.fixture
def client():
    app.dependency_overrides[get_db_connection] = _fake_connection
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def fake_crud(monkeypatch):
    """Replace ``crud.<name>`` with an async stub.

    ``result`` may be a value or a callable receiving the call's kwargs.
    Calls are recorded in ``fake_crud.calls[name]``.
    """
    calls = defaultdict(list)

    def install(name, result=None, raises=None):
        async def fake(conn, *args, **kwargs):
            calls[name].append(kwargs if kwargs else args)
            if raises is not None:
                raise raises
            return result(**kwargs) if callable(result) else result

        monkeypatch.setattr(crud, name, fake)

    install.calls = calls
    return install
