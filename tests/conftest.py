"""Shared test fixtures for the datadocs test suite.

All tests run against a single in-memory SQLite database (StaticPool, so
every session shares one connection). Tables are dropped and recreated
before each test for complete isolation.

Environment is configured before any datadocs import: settings are read
once at import time.
"""

import os
import uuid

os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key-do-not-use"
os.environ["LOG_FORMAT"] = "text"
os.environ["ENVIRONMENT"] = "development"

import pytest
from fastapi.testclient import TestClient

from datadocs.database import Base, engine, get_db, SessionLocal
from datadocs.main import app
from datadocs.core.crypto import TextCipher
from datadocs.core.keywords import KeywordExtractor
from datadocs.services import TextService

TEST_SECRET = os.environ["SECRET_KEY"]


@pytest.fixture(autouse=True)
def _clean_tables():
    """Recreate all tables before each test.

    Runs before the test (not after) so test failures leave data
    available for debugging.
    """
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture()
def db():
    """Per-test database session."""
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture(scope="session")
def cipher() -> TextCipher:
    return TextCipher.from_secret(TEST_SECRET)


@pytest.fixture(scope="session")
def extractor() -> KeywordExtractor:
    return KeywordExtractor.from_file()


@pytest.fixture()
def service(db, cipher, extractor) -> TextService:
    return TextService(db, cipher, extractor, keyword_summary_size=1, markdown_tables=True)


@pytest.fixture()
def author_id() -> str:
    return str(uuid.uuid4())


@pytest.fixture()
def client(db):
    """FastAPI TestClient with the DB dependency overridden to use the test session."""

    def _override_get_db():
        yield db

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def editor_headers() -> dict:
    """Identity headers of a signed-in user, as forwarded by the proxy."""
    return {"X-User-Id": str(uuid.uuid4()), "X-User-Role": "user"}


def make_text(content: str = "The ~~budget is $5M~~[PersonalInformation] this year", **overrides) -> dict:
    """Factory for text creation payloads."""
    payload = {"content": content, "section_id": str(uuid.uuid4())}
    payload.update(overrides)
    return payload
