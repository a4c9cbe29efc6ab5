from fastapi import APIRouter, Depends, HTTPException, Response, status

from app.config import settings
from app.deps import CurrentPrincipal, get_auth_service, get_current_principal
from app.schemas.auth import (
    AdminChallengeResponse,
    AuthenticatedResponse,
    CurrentPrincipalResponse,
    LoginRequest,
    MessageResponse,
    OtpVerifyRequest,
)
from app.services.auth import AuthResult, AuthService
from app.services.errors import (
    AuthError,
    DeliveryFailure,
    InputValidationError,
    InvalidCredentials,
    InvalidOrExpiredCode,
)
from app.services.tokens import TokenError

router = APIRouter(prefix="/auth", tags=["auth"])

_STATUS_BY_ERROR = {
    InvalidCredentials: status.HTTP_401_UNAUTHORIZED,
    DeliveryFailure: status.HTTP_502_BAD_GATEWAY,
    InvalidOrExpiredCode: status.HTTP_400_BAD_REQUEST,
    InputValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
}


def _to_http(exc: AuthError) -> HTTPException:
    status_code = _STATUS_BY_ERROR.get(type(exc), status.HTTP_400_BAD_REQUEST)
    return HTTPException(status_code=status_code, detail=exc.message)


def _session_response(result: AuthResult, response: Response) -> AuthenticatedResponse:
    response.set_cookie(
        settings.session_cookie_name,
        result.access_token,
        max_age=result.expires_in_seconds,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )
    return AuthenticatedResponse(
        role=result.role,
        principal_id=result.principal_id,
        access_token=result.access_token,
        token_type="bearer",
        expires_in_seconds=result.expires_in_seconds,
    )


@router.post("/admin/login", response_model=AdminChallengeResponse)
def admin_login(
    payload: LoginRequest, service: AuthService = Depends(get_auth_service)
) -> AdminChallengeResponse:
    try:
        challenge = service.begin_admin_login(payload.username, payload.password)
    except AuthError as exc:
        raise _to_http(exc) from exc
    except TokenError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc
    return AdminChallengeResponse(
        requires_code=True,
        masked_address=challenge.masked_address,
        pending_token=challenge.pending_token,
        expires_in_seconds=challenge.expires_in_seconds,
    )


@router.post("/admin/verify-otp", response_model=AuthenticatedResponse)
def admin_verify_otp(
    payload: OtpVerifyRequest,
    response: Response,
    service: AuthService = Depends(get_auth_service),
) -> AuthenticatedResponse:
    try:
        result = service.verify_admin_otp(payload.pending_token, payload.code)
    except AuthError as exc:
        raise _to_http(exc) from exc
    except TokenError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc
    return _session_response(result, response)


@router.post("/reseller/login", response_model=AuthenticatedResponse)
def reseller_login(
    payload: LoginRequest,
    response: Response,
    service: AuthService = Depends(get_auth_service),
) -> AuthenticatedResponse:
    try:
        result = service.login_reseller(payload.username, payload.password)
    except AuthError as exc:
        raise _to_http(exc) from exc
    except TokenError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc
    return _session_response(result, response)


@router.get("/me", response_model=CurrentPrincipalResponse)
def me(
    current: CurrentPrincipal = Depends(get_current_principal),
) -> CurrentPrincipalResponse:
    return CurrentPrincipalResponse(principal_id=current.principal_id, role=current.role)


@router.post("/logout", response_model=MessageResponse)
def logout(
    response: Response,
    current: CurrentPrincipal = Depends(get_current_principal),
    service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    if not service.logout(current.session_id):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid session token",
        )
    response.delete_cookie(settings.session_cookie_name)
    return MessageResponse(message="Logged out")
