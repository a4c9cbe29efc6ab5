"""FastAPI dependencies: service wiring and the current session."""
from dataclasses import dataclass
import logging
from typing import Callable, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.config import Settings, settings
from app.services.auth import AuthService
from app.services.email import EmailTransport, build_transport
from app.services.notifications import NotificationGateway
from app.services.otp import Clock, OtpStore, generate_code, utcnow
from app.services.principals import principal_store
from app.services.sessions import SessionIssuer, session_store
from app.services.tokens import TokenError, decode_access_token

LOGGER = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def build_auth_service(
    config: Settings = settings,
    transport: EmailTransport | None = None,
    clock: Clock = utcnow,
    code_factory: Callable[[], str] = generate_code,
) -> AuthService:
    """Assemble the login service; the transport is created once and reused."""
    if transport is None:
        transport = build_transport(config)
    otp_store = OtpStore(config.otp_ttl_seconds, clock=clock)
    gateway = NotificationGateway(
        transport,
        product_name=config.product_name,
        subject=config.otp_email_subject,
        ttl_seconds=otp_store.ttl_seconds,
    )
    return AuthService(
        principals=principal_store,
        otp_store=otp_store,
        gateway=gateway,
        sessions=SessionIssuer(session_store),
        session_store=session_store,
        code_factory=code_factory,
    )


def get_auth_service(request: Request) -> AuthService:
    service = getattr(request.app.state, "auth_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Authentication service is not ready",
        )
    return service


@dataclass(frozen=True)
class CurrentPrincipal:
    principal_id: int
    role: str
    session_id: str


def _extract_token(
    request: Request, credentials: Optional[HTTPAuthorizationCredentials]
) -> str | None:
    if credentials is not None and credentials.scheme.lower() == "bearer":
        return credentials.credentials
    return request.cookies.get(settings.session_cookie_name)


def get_current_principal(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> CurrentPrincipal:
    token = _extract_token(request, credentials)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        token_data = decode_access_token(token)
    except TokenError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc
    info = session_store.get_session(token_data.session_id)
    if info is None or info.principal_id != token_data.principal_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired session",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return CurrentPrincipal(
        principal_id=info.principal_id,
        role=info.role,
        session_id=token_data.session_id,
    )
