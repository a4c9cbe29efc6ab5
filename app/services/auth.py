"""Admin two-factor and reseller single-factor login.

Admin attempt:  AwaitingCredentials -> AwaitingCode -> Authenticated
Reseller attempt: AwaitingCredentials -> Authenticated
Any failed check ends the attempt as Rejected; the caller starts over.
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
import re
from typing import Callable

from app.services.email import mask_address
from app.services.errors import (
    DeliveryFailure,
    InputValidationError,
    InvalidCredentials,
    InvalidOrExpiredCode,
)
from app.services.notifications import NotificationGateway
from app.services.otp import CODE_LENGTH, OtpStore, generate_code
from app.services.principals import PrincipalStore
from app.services.sessions import SessionIssuer, SessionStore
from app.services.tokens import TokenError, create_pending_token, decode_pending_token

LOGGER = logging.getLogger(__name__)

_CODE_PATTERN = re.compile(rf"[0-9]{{{CODE_LENGTH}}}")


@dataclass(frozen=True)
class AdminChallenge:
    masked_address: str
    pending_token: str
    expires_in_seconds: int
    requires_code: bool = True


@dataclass(frozen=True)
class AuthResult:
    principal_id: int
    role: str
    session_id: str
    access_token: str
    expires_in_seconds: int
    authenticated: bool = True


def _require_credentials(username: str, password: str) -> None:
    if not isinstance(username, str) or not username.strip():
        raise InputValidationError("Username is required")
    if not isinstance(password, str) or not password:
        raise InputValidationError("Password is required")


def _require_code(code: str) -> str:
    if not isinstance(code, str) or not _CODE_PATTERN.fullmatch(code):
        raise InputValidationError(f"OTP must be {CODE_LENGTH} digits")
    return code


class AuthService:
    def __init__(
        self,
        principals: PrincipalStore,
        otp_store: OtpStore,
        gateway: NotificationGateway,
        sessions: SessionIssuer,
        session_store: SessionStore,
        code_factory: Callable[[], str] = generate_code,
    ) -> None:
        self._principals = principals
        self._otp_store = otp_store
        self._gateway = gateway
        self._sessions = sessions
        self._session_store = session_store
        self._code_factory = code_factory

    def begin_admin_login(self, username: str, password: str) -> AdminChallenge:
        _require_credentials(username, password)
        principal = self._principals.authenticate(username, password, "admin")
        if principal is None:
            LOGGER.info("Rejected admin credentials")
            raise InvalidCredentials()
        if not principal.email:
            LOGGER.error("Admin %s has no contact address", principal.id)
            raise DeliveryFailure()

        # Persist and commit before delivery; the send may block on the network.
        record = self._otp_store.put(principal.id, self._code_factory())
        if not self._gateway.send(principal.email, record.code):
            self._otp_store.discard(record.id)
            raise DeliveryFailure()

        ttl = self._otp_store.ttl_seconds
        return AdminChallenge(
            masked_address=mask_address(principal.email),
            pending_token=create_pending_token(principal.id, ttl),
            expires_in_seconds=ttl,
        )

    def verify_admin_otp(self, pending_token: str, code: str) -> AuthResult:
        code = _require_code(code)
        try:
            pending = decode_pending_token(pending_token)
        except TokenError as exc:
            LOGGER.info("Rejected OTP verification: %s", exc)
            raise InvalidOrExpiredCode() from exc
        if pending.role != "admin":
            raise InvalidOrExpiredCode()

        if not self._otp_store.consume(pending.principal_id, code):
            LOGGER.info("Rejected OTP for admin %s", pending.principal_id)
            raise InvalidOrExpiredCode()

        LOGGER.info("Admin %s authenticated", pending.principal_id)
        return self._issue(pending.principal_id, "admin")

    def login_reseller(self, username: str, password: str) -> AuthResult:
        _require_credentials(username, password)
        principal = self._principals.authenticate(username, password, "reseller")
        if principal is None:
            LOGGER.info("Rejected reseller credentials")
            raise InvalidCredentials()
        LOGGER.info("Reseller %s authenticated", principal.id)
        return self._issue(principal.id, "reseller")

    def check_email_delivery(self) -> bool:
        return self._gateway.check()

    def logout(self, session_id: str) -> bool:
        return self._session_store.revoke_session(session_id)

    def _issue(self, principal_id: int, role: str) -> AuthResult:
        issued = self._sessions.issue(principal_id, role)
        return AuthResult(
            principal_id=principal_id,
            role=role,
            session_id=issued.session_id,
            access_token=issued.access_token,
            expires_in_seconds=issued.expires_in_seconds,
        )
