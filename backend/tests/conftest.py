import os
import tempfile
from pathlib import Path

# The engine is built at import time, so the database must be chosen before bannerhub is imported.
_DB_DIR = tempfile.mkdtemp(prefix="bannerhub-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{Path(_DB_DIR) / 'test.db'}"
os.environ["ENV"] = "test"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import delete  # noqa: E402

from bannerhub.core.security import create_access_token  # noqa: E402
from bannerhub.db.init_db import create_tables  # noqa: E402
from bannerhub.db.session import SessionLocal  # noqa: E402
from bannerhub.main import app  # noqa: E402
from bannerhub.models.banner import Banner  # noqa: E402
from bannerhub.services import banners as banner_service  # noqa: E402
from bannerhub.services import lifecycle  # noqa: E402

create_tables()


@pytest.fixture(autouse=True)
def clean_banners():
    yield
    db = SessionLocal()
    try:
        db.execute(delete(Banner))
        db.commit()
    finally:
        db.close()


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def auth_headers():
    token = create_access_token("admin-1")
    return {"Authorization": f"Bearer {token}"}


def banner_payload(**overrides):
    payload = {
        "title": "Spring Sale",
        "detail": "Save on everything this spring.",
        "image": {"url": "https://cdn.example.com/spring.png"},
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def make_banner(db):
    """Create a banner through the service layer; ``published=True`` also publishes it."""
    def _make(published=False, **overrides):
        banner = banner_service.create_banner(db, banner_payload(**overrides), actor="tester")
        if published:
            banner = lifecycle.publish(db, banner.id, actor="tester")
        return banner
    return _make


@pytest.fixture
def payload():
    return banner_payload
