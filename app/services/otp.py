from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import logging
import secrets
from typing import Callable

from sqlalchemy import delete, func, select, update
from sqlalchemy.orm import aliased

from app.database import session_scope
from app.models.schema.otp import OtpEntry

LOGGER = logging.getLogger(__name__)

CODE_LENGTH = 6

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def generate_code(length: int = CODE_LENGTH) -> str:
    value = secrets.randbelow(10**length)
    return str(value).zfill(length)


@dataclass(frozen=True)
class OtpRecord:
    id: int
    principal_id: int
    code: str
    issued_at: datetime
    expires_at: datetime
    consumed: bool


def _to_record(entry: OtpEntry) -> OtpRecord:
    return OtpRecord(
        id=entry.id,
        principal_id=entry.principal_id,
        code=entry.code,
        issued_at=entry.issued_at,
        expires_at=entry.expires_at,
        consumed=bool(entry.consumed),
    )


class OtpStore:
    """One-time codes keyed by admin principal.

    Only the newest record for a principal is ever authoritative. Every read
    compares ``expires_at`` against the clock, so purging expired rows is an
    optimization and never needed for correctness.
    """

    def __init__(self, ttl_seconds: int, clock: Clock = utcnow) -> None:
        self._ttl_seconds = ttl_seconds
        self._clock = clock

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    def put(
        self, principal_id: int, code: str, expires_at: datetime | None = None
    ) -> OtpRecord:
        now = self._clock()
        if expires_at is None:
            expires_at = now + timedelta(seconds=self._ttl_seconds)
        with session_scope() as session:
            session.execute(delete(OtpEntry).where(OtpEntry.expires_at <= now))
            entry = OtpEntry(
                principal_id=principal_id,
                code=code,
                issued_at=now,
                expires_at=expires_at,
                consumed=False,
            )
            session.add(entry)
            session.flush()
            record = OtpRecord(
                id=entry.id,
                principal_id=principal_id,
                code=code,
                issued_at=now,
                expires_at=expires_at,
                consumed=False,
            )
        return record

    def get_latest_valid(self, principal_id: int) -> OtpRecord | None:
        now = self._clock()
        with session_scope() as session:
            entry = session.execute(
                select(OtpEntry)
                .where(
                    OtpEntry.id == self._latest_id(principal_id),
                    OtpEntry.consumed.is_(False),
                    OtpEntry.expires_at > now,
                )
            ).scalar_one_or_none()
            if entry is None:
                return None
            return _to_record(entry)

    def consume(self, principal_id: int, code: str) -> bool:
        now = self._clock()
        with session_scope() as session:
            # Single conditional UPDATE: concurrent callers with the same code
            # serialize on the row and only one sees rowcount == 1.
            result = session.execute(
                update(OtpEntry)
                .where(
                    OtpEntry.id == self._latest_id(principal_id),
                    OtpEntry.code == code,
                    OtpEntry.consumed.is_(False),
                    OtpEntry.expires_at > now,
                )
                .values(consumed=True, consumed_at=now)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount == 1

    def discard(self, record_id: int) -> None:
        with session_scope() as session:
            session.execute(delete(OtpEntry).where(OtpEntry.id == record_id))

    def purge_expired(self) -> int:
        now = self._clock()
        with session_scope() as session:
            result = session.execute(
                delete(OtpEntry).where(OtpEntry.expires_at <= now)
            )
            removed = result.rowcount
        if removed:
            LOGGER.debug("Purged %s expired OTP record(s)", removed)
        return removed

    @staticmethod
    def _latest_id(principal_id: int):
        # Aliased so the subquery is not correlated to the outer row.
        newer = aliased(OtpEntry)
        return (
            select(func.max(newer.id))
            .where(newer.principal_id == principal_id)
            .scalar_subquery()
        )
