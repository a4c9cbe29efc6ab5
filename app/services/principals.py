from dataclasses import dataclass
from datetime import datetime, timezone
import logging
from typing import Literal

import bcrypt
from sqlalchemy import select

from app.config import settings
from app.database import session_scope
from app.models.schema.principal import PrincipalEntry

LOGGER = logging.getLogger(__name__)

Role = Literal["admin", "reseller"]
ROLES = ("admin", "reseller")


@dataclass(frozen=True)
class PrincipalRecord:
    id: int
    username: str
    role: str
    password_hash: str
    email: str | None


def hash_password(password: str, rounds: int | None = None) -> str:
    salt = bcrypt.gensalt(rounds=rounds or settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash.
        return False


def _normalize_username(username: str) -> str:
    return username.strip().lower()


def _to_record(entry: PrincipalEntry) -> PrincipalRecord:
    return PrincipalRecord(
        id=entry.id,
        username=entry.username,
        role=entry.role,
        password_hash=entry.password_hash,
        email=entry.email,
    )


class PrincipalStore:
    def __init__(self) -> None:
        # Built up front so the first unknown-user attempt costs one bcrypt check.
        self._dummy_hash = hash_password("dummy-password-for-timing")

    def find_principal(self, username: str, role: str) -> PrincipalRecord | None:
        key = _normalize_username(username)
        with session_scope() as session:
            entry = session.execute(
                select(PrincipalEntry).where(
                    PrincipalEntry.username == key,
                    PrincipalEntry.role == role,
                )
            ).scalar_one_or_none()
            if entry is None:
                return None
            return _to_record(entry)

    def authenticate(self, username: str, password: str, role: str) -> PrincipalRecord | None:
        principal = self.find_principal(username, role)
        if principal is None:
            # Spend the same bcrypt work as a real check so lookups for
            # unknown usernames are not distinguishable by latency.
            verify_password(password, self._dummy_hash)
            return None
        if not verify_password(password, principal.password_hash):
            return None
        return principal

    def ensure_principal(
        self, username: str, password: str, role: str, email: str | None = None
    ) -> PrincipalRecord:
        if role not in ROLES:
            raise ValueError("Invalid role")
        key = _normalize_username(username)
        if not key:
            raise ValueError("Username is required")
        if role == "admin" and not email:
            raise ValueError("Admin accounts need an email address")
        with session_scope() as session:
            entry = session.execute(
                select(PrincipalEntry).where(
                    PrincipalEntry.username == key,
                    PrincipalEntry.role == role,
                )
            ).scalar_one_or_none()
            if entry is None:
                entry = PrincipalEntry(
                    username=key,
                    role=role,
                    password_hash=hash_password(password),
                    email=email.strip().lower() if email else None,
                    created_at=datetime.now(timezone.utc),
                )
                session.add(entry)
                LOGGER.info("Seeded %s account %s", role, key)
            elif email and entry.email != email.strip().lower():
                entry.email = email.strip().lower()
            session.flush()
            return _to_record(entry)


principal_store = PrincipalStore()
