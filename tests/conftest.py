"""
Shared fixtures for the auth backend tests.

The database is a throwaway SQLite file configured before any app module is
imported, so the module-level engine picks it up.
"""
import os
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

_TEST_DIR = Path(tempfile.mkdtemp(prefix="license-auth-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_DIR / 'test.db'}"
os.environ["JWT_SECRET"] = "test-secret-with-enough-length-for-hs256"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["EMAIL_BACKEND"] = "console"
os.environ["OTP_TTL_SECONDS"] = "60"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.database import Base, engine, init_db  # noqa: E402
from app.deps import build_auth_service  # noqa: E402
from app.main import app  # noqa: E402
from app.services.email import EmailSendError  # noqa: E402
from app.services.principals import principal_store  # noqa: E402


class FakeClock:
    """Clock that only moves when a test advances it."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


class RecordingTransport:
    """Email transport that keeps messages in memory."""

    def __init__(self) -> None:
        self.messages = []
        self.fail = False
        self.verify_calls = 0

    def send(self, address, subject, body, html=None):
        if self.fail:
            raise EmailSendError("SMTP server unavailable")
        self.messages.append(
            {"address": address, "subject": subject, "body": body, "html": html}
        )

    def verify(self):
        self.verify_calls += 1
        if self.fail:
            raise EmailSendError("SMTP server unavailable")

    @property
    def last_code(self) -> str:
        body = self.messages[-1]["body"]
        return body.split("one-time password is ", 1)[1][:6]


class CodeSequence:
    """Code factory returning preset codes in order."""

    def __init__(self, *codes: str) -> None:
        self._codes = list(codes)

    def __call__(self) -> str:
        return self._codes.pop(0)


@pytest.fixture(autouse=True)
def fresh_database():
    init_db()
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def principals():
    alice = principal_store.ensure_principal(
        "alice", "correct-pw", "admin", email="alice@example.com"
    )
    bob = principal_store.ensure_principal("bob", "correct", "reseller")
    return {"alice": alice, "bob": bob}


@pytest.fixture
def service(transport, clock, principals):
    return build_auth_service(transport=transport, clock=clock)


@pytest.fixture
def make_service(transport, clock, principals):
    def _make(*codes: str):
        return build_auth_service(
            transport=transport, clock=clock, code_factory=CodeSequence(*codes)
        )

    return _make


@pytest.fixture
def client(service):
    app.state.auth_service = service
    with TestClient(app) as test_client:
        yield test_client
    app.state.auth_service = None
