from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import secrets

from sqlalchemy import delete, select, update

from app.config import settings
from app.database import session_scope
from app.models.schema.session import SessionEntry
from app.services.tokens import create_access_token


@dataclass(frozen=True)
class SessionInfo:
    principal_id: int
    role: str


@dataclass(frozen=True)
class IssuedSession:
    session_id: str
    access_token: str
    expires_in_seconds: int


class SessionStore:
    def create_session(self, principal_id: int, role: str) -> str:
        now = datetime.now(timezone.utc)
        token = secrets.token_urlsafe(32)
        expires_at = now + timedelta(seconds=settings.session_ttl_seconds)
        with session_scope() as session:
            session.execute(delete(SessionEntry).where(SessionEntry.expires_at <= now))
            session.add(
                SessionEntry(
                    token=token,
                    principal_id=principal_id,
                    role=role,
                    created_at=now,
                    expires_at=expires_at,
                    revoked_at=None,
                )
            )
        return token

    def revoke_session(self, token: str) -> bool:
        now = datetime.now(timezone.utc)
        with session_scope() as session:
            result = session.execute(
                update(SessionEntry)
                .where(SessionEntry.token == token, SessionEntry.revoked_at.is_(None))
                .values(revoked_at=now)
            )
            return result.rowcount > 0

    def get_session(self, token: str) -> SessionInfo | None:
        now = datetime.now(timezone.utc)
        with session_scope() as session:
            entry = session.execute(
                select(SessionEntry).where(
                    SessionEntry.token == token,
                    SessionEntry.revoked_at.is_(None),
                    SessionEntry.expires_at > now,
                )
            ).scalar_one_or_none()
            if entry is None:
                return None
            return SessionInfo(principal_id=entry.principal_id, role=entry.role)


class SessionIssuer:
    """Creates the persisted session and the access token handed to the caller."""

    def __init__(self, store: SessionStore) -> None:
        self._store = store

    def issue(self, principal_id: int, role: str) -> IssuedSession:
        session_id = self._store.create_session(principal_id, role)
        access_token = create_access_token(principal_id, session_id, role)
        return IssuedSession(
            session_id=session_id,
            access_token=access_token,
            expires_in_seconds=settings.access_token_expire_minutes * 60,
        )


session_store = SessionStore()
