"""
Tests for access and pending-login tokens.
"""
import jwt
import pytest

from app.config import settings
from app.services.tokens import (
    TokenError,
    create_access_token,
    create_pending_token,
    decode_pending_token,
)


def _claims(token):
    return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])


class TestPendingToken:
    def test_claims(self):
        claims = _claims(create_pending_token(7, 60))
        assert set(claims) == {"sub", "role", "type", "iat", "exp"}
        assert claims["sub"] == "7"
        assert claims["type"] == "otp_pending"
        assert claims["exp"] - claims["iat"] == 60

    def test_decodes_to_principal(self):
        pending = decode_pending_token(create_pending_token(7, 60))
        assert pending.principal_id == 7
        assert pending.role == "admin"

    def test_access_token_is_not_a_pending_token(self):
        with pytest.raises(TokenError):
            decode_pending_token(create_access_token(7, "session-1", "admin"))
