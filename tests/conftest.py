"""Pytest configuration and fixtures."""

import os

# Settings are read once; configure them before the application is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")

import time
import uuid
from typing import Generator

import jwt
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from refhub.backend.config import get_settings
from refhub.backend.database import Base, get_db
from refhub.backend.main import app
from refhub.backend.models import ExtractedMetadata
from refhub.backend.models_db import Role, UserRole
from refhub.backend.services.ai import AIServiceError, get_metadata_extractor
from refhub.backend.services.storage_service import StorageError, get_storage_service


class FakeExtractor:
    """Stands in for MetadataExtractor; records calls."""

    def __init__(self, metadata: ExtractedMetadata | None = None, error: str | None = None):
        self.metadata = metadata or ExtractedMetadata()
        self.error = error
        self.calls: list[tuple[str, str]] = []

    async def extract(self, pdf_base64: str, filename: str) -> ExtractedMetadata:
        self.calls.append((pdf_base64, filename))
        if self.error:
            raise AIServiceError(self.error)
        return self.metadata


class FakeStorage:
    """In-memory object storage; records uploads."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.objects: dict[str, bytes] = {}
        self.upload_calls = 0

    async def upload(self, path: str, content: bytes, content_type: str = "application/pdf") -> str:
        self.upload_calls += 1
        if self.fail:
            raise StorageError("bucket unavailable")
        self.objects[path] = content
        return path

    def get_public_url(self, path: str) -> str:
        return f"https://storage.test/object/public/pdfs/{path}"


@pytest.fixture
def db_session() -> Generator[Session, None, None]:
    """Session bound to a fresh in-memory SQLite database."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def fake_extractor() -> FakeExtractor:
    return FakeExtractor(
        ExtractedMetadata(
            title="Study X",
            journal="Nature",
            doi="10.1/xyz",
            authors=["J. Doe"],
        )
    )


@pytest.fixture
def fake_storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture
def api_overrides(db_session: Session, fake_extractor: FakeExtractor, fake_storage: FakeStorage):
    """Point the application's dependencies at the test doubles."""
    app.dependency_overrides[get_db] = lambda: db_session
    app.dependency_overrides[get_metadata_extractor] = lambda: fake_extractor
    app.dependency_overrides[get_storage_service] = lambda: fake_storage
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client(api_overrides) -> Generator[TestClient, None, None]:
    """Create a test client for the FastAPI application."""
    with TestClient(app) as test_client:
        yield test_client


def make_token(user_id: uuid.UUID, email: str = "researcher@example.org", ttl: int = 3600) -> str:
    """Sign an access token the way the identity provider does."""
    now = int(time.time())
    claims = {
        "sub": str(user_id),
        "email": email,
        "aud": get_settings().jwt_audience,
        "iat": now,
        "exp": now + ttl,
    }
    return jwt.encode(claims, get_settings().jwt_secret, algorithm="HS256")


@pytest.fixture
def user_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def auth_headers(user_id: uuid.UUID) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user_id)}"}


@pytest.fixture
def admin_headers(db_session: Session) -> dict[str, str]:
    admin_id = uuid.uuid4()
    db_session.add(UserRole(user_id=admin_id, role=Role.ADMIN))
    db_session.commit()
    return {"Authorization": f"Bearer {make_token(admin_id, email='admin@example.org')}"}


@pytest.fixture
def sample_pdf_bytes() -> bytes:
    """
    Create a minimal valid PDF for testing.

    This is a minimal PDF structure that should be recognized as a valid PDF.
    """
    return b"""%PDF-1.4
1 0 obj
<< /Type /Catalog /Pages 2 0 R >>
endobj
2 0 obj
<< /Type /Pages /Kids [3 0 R] /Count 1 >>
endobj
3 0 obj
<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] >>
endobj
trailer
<< /Size 4 /Root 1 0 R >>
%%EOF"""
