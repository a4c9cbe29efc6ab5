from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt

from app.config import settings

PENDING_TOKEN_TYPE = "otp_pending"
ACCESS_TOKEN_TYPE = "access"


class TokenError(ValueError):
    pass


@dataclass(frozen=True)
class AccessTokenData:
    principal_id: int
    session_id: str
    role: str


@dataclass(frozen=True)
class PendingLoginData:
    principal_id: int
    role: str


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _require_secret() -> str:
    if not settings.jwt_secret:
        raise TokenError("JWT secret is not configured")
    return settings.jwt_secret


def create_access_token(principal_id: int, session_id: str, role: str) -> str:
    secret = _require_secret()
    now = _utcnow()
    expires_at = now + timedelta(minutes=settings.access_token_expire_minutes)
    payload = {
        "sub": str(principal_id),
        "sid": session_id,
        "role": role,
        "type": ACCESS_TOKEN_TYPE,
        "iat": int(now.timestamp()),
        "exp": int(expires_at.timestamp()),
    }
    return jwt.encode(payload, secret, algorithm=settings.jwt_algorithm)


def create_pending_token(principal_id: int, ttl_seconds: int) -> str:
    """Token linking the code step to the principal that passed the password step."""
    secret = _require_secret()
    now = _utcnow()
    payload = {
        "sub": str(principal_id),
        "role": "admin",
        "type": PENDING_TOKEN_TYPE,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=ttl_seconds)).timestamp()),
    }
    return jwt.encode(payload, secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> AccessTokenData:
    payload = _decode_token(token, expected_type=ACCESS_TOKEN_TYPE)
    session_id = payload.get("sid")
    if not session_id:
        raise TokenError("Access token is missing session id")
    return AccessTokenData(
        principal_id=_parse_subject(payload),
        session_id=session_id,
        role=str(payload.get("role", "")),
    )


def decode_pending_token(token: str) -> PendingLoginData:
    payload = _decode_token(token, expected_type=PENDING_TOKEN_TYPE)
    return PendingLoginData(
        principal_id=_parse_subject(payload),
        role=str(payload.get("role", "")),
    )


def _decode_token(token: str, expected_type: str) -> dict:
    if not token:
        raise TokenError("Token is missing")
    try:
        payload = jwt.decode(
            token,
            _require_secret(),
            algorithms=[settings.jwt_algorithm],
        )
    except jwt.ExpiredSignatureError as exc:
        raise TokenError("Token has expired") from exc
    except jwt.InvalidTokenError as exc:
        raise TokenError("Invalid token") from exc
    if payload.get("type") != expected_type:
        raise TokenError("Invalid token type")
    return payload


def _parse_subject(payload: dict) -> int:
    subject = payload.get("sub")
    if not subject:
        raise TokenError("Token subject is missing")
    try:
        return int(subject)
    except (TypeError, ValueError) as exc:
        raise TokenError("Invalid token subject") from exc
