"""Pytest configuration and fixtures."""

import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("NOTIFIER_BACKEND", "memory")

from datetime import datetime, timedelta  # noqa: E402
from io import BytesIO  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from reportlab.lib.pagesizes import letter  # noqa: E402
from reportlab.pdfgen import canvas  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import Session, sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from sealsign_api.auth.owner import issue_owner_token  # noqa: E402
from sealsign_api.db.base import Base  # noqa: E402
from sealsign_api.db.session import get_db, use_explicit_sqlite_transactions  # noqa: E402
from sealsign_api.dependencies import get_clock  # noqa: E402
from sealsign_api.documents.service import DocumentRegistry  # noqa: E402
from sealsign_api.main import app  # noqa: E402
from sealsign_api.models import Document, SignatureRequest  # noqa: E402
from sealsign_api.notifications.service import MemoryNotifier, get_notifier  # noqa: E402
from sealsign_api.sealing.pipeline import DocumentSealer  # noqa: E402
from sealsign_api.signing.service import SignatureRequestService  # noqa: E402
from sealsign_api.storage.service import InMemoryBlobStore, get_blob_store  # noqa: E402
from sealsign_api.tokens.service import SigningTokenService, get_token_service  # noqa: E402

FIXED_NOW = datetime(2026, 1, 15, 12, 0, 0)
OWNER_ID = "owner-1"
OWNER_EMAIL = "owner@example.com"
SIGNER_EMAIL = "signer@example.com"
TEST_SIGNING_SECRET = "test-signing-secret"


class FakeClock:
    """Mutable clock for expiry tests."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def make_pdf(pages: int = 1, text: str = "Service agreement") -> bytes:
    """Build a small PDF with reportlab."""
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=letter, invariant=1)
    for number in range(1, pages + 1):
        c.drawString(72, 720, f"{text} - page {number}")
        c.showPage()
    c.save()
    return buf.getvalue()


def owner_headers(owner_id: str = OWNER_ID, email: str = OWNER_EMAIL) -> dict:
    return {"Authorization": f"Bearer {issue_owner_token(owner_id, email)}"}


@pytest.fixture(scope="function")
def engine():
    """SQLite in-memory engine shared by one test."""
    engine = use_explicit_sqlite_transactions(
        create_engine(
            "sqlite:///:memory:",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db(engine):
    """Create a test database session."""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(FIXED_NOW)


@pytest.fixture
def blob_store() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def notifier() -> MemoryNotifier:
    return MemoryNotifier()


@pytest.fixture
def token_service(clock) -> SigningTokenService:
    return SigningTokenService(secret=TEST_SIGNING_SECRET, clock=clock)


@pytest.fixture
def registry(db: Session, blob_store, clock) -> DocumentRegistry:
    return DocumentRegistry(db, blob_store, clock)


@pytest.fixture
def service(db: Session, blob_store, notifier, token_service, clock) -> SignatureRequestService:
    return SignatureRequestService(
        db,
        blob_store,
        notifier,
        token_service,
        sealer=DocumentSealer(blob_store, stamp_text="Digitally Signed"),
        clock=clock,
    )


@pytest.fixture
def pdf_bytes() -> bytes:
    return make_pdf()


@pytest.fixture
def document(registry: DocumentRegistry, pdf_bytes: bytes) -> Document:
    """An uploaded DRAFT document owned by OWNER_ID."""
    return registry.upload(
        OWNER_ID,
        "Service Agreement",
        "Annual services",
        pdf_bytes,
        filename="agreement.pdf",
        content_type="application/pdf",
    )


@pytest.fixture
def pending_request(service: SignatureRequestService, document: Document) -> SignatureRequest:
    return service.create(
        document.id,
        SIGNER_EMAIL,
        "Please sign by Friday",
        OWNER_ID,
        requester_email=OWNER_EMAIL,
    )


@pytest.fixture
def signer_token(token_service: SigningTokenService, pending_request: SignatureRequest) -> str:
    return token_service.mint(pending_request.id, pending_request.signer_email)


@pytest.fixture
def client(db: Session, blob_store, notifier, token_service, clock):
    """TestClient wired to the test session and in-memory collaborators."""
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    app.dependency_overrides[get_notifier] = lambda: notifier
    app.dependency_overrides[get_token_service] = lambda: token_service
    app.dependency_overrides[get_clock] = lambda: clock
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
