# tests/conftest.py
import os

os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest

from fakes import (
    BRAND,
    INACTIVE_BRAND,
    MESOTHELIOMA,
    OTHER_BRAND,
    OTHER_ROUNDUP,
    PAUSED,
    ROUNDUP,
    FakeDatabase,
    FakeSession,
)


@pytest.fixture
def fake_db():
    return FakeDatabase(
        brands=[BRAND, OTHER_BRAND, INACTIVE_BRAND],
        case_types=[ROUNDUP, OTHER_ROUNDUP, PAUSED, MESOTHELIOMA],
    )


@pytest.fixture
def client(fake_db):
    from fastapi.testclient import TestClient

    from intake.db.session import get_session
    from intake.main import app

    async def _override_session():
        session = FakeSession(fake_db)
        try:
            yield session
        finally:
            await session.close()

    app.dependency_overrides[get_session] = _override_session
    yield TestClient(app)
    app.dependency_overrides.clear()
