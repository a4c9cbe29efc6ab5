from typing import Literal

from pydantic import BaseModel, Field, field_validator

from app.services.otp import CODE_LENGTH


class LoginRequest(BaseModel):
    username: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=1, max_length=256)

    @field_validator("username")
    @classmethod
    def normalize_username(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("Username is required")
        return cleaned


class AdminChallengeResponse(BaseModel):
    requires_code: bool = True
    masked_address: str
    pending_token: str
    expires_in_seconds: int


class OtpVerifyRequest(BaseModel):
    pending_token: str = Field(min_length=10, max_length=2048)
    code: str = Field(
        min_length=CODE_LENGTH,
        max_length=CODE_LENGTH,
        pattern=rf"^[0-9]{{{CODE_LENGTH}}}$",
    )


class AuthenticatedResponse(BaseModel):
    authenticated: bool = True
    role: Literal["admin", "reseller"]
    principal_id: int
    access_token: str
    token_type: str = "bearer"
    expires_in_seconds: int


class CurrentPrincipalResponse(BaseModel):
    principal_id: int
    role: str


class MessageResponse(BaseModel):
    message: str
