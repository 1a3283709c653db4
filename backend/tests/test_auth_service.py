"""
Unit tests for scheduler token verification.
"""
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from studyblock.services.auth_service import verify_project_token
from studyblock.utils.errors import AuthError

SECRET = "super-secret-jwt-token-with-at-least-32-characters"


def make_token(secret: str = SECRET, **claims) -> str:
    payload = {"iss": "supabase", "role": "service_role", **claims}
    return jwt.encode(payload, secret, algorithm="HS256")


class TestVerifyProjectToken:
    """Test JWT claim validation."""

    @pytest.mark.parametrize("role", ["service_role", "anon"])
    def test_project_roles_accepted(self, role):
        claims = verify_project_token(make_token(role=role), secret=SECRET)
        assert claims["role"] == role

    def test_audience_is_ignored(self):
        claims = verify_project_token(make_token(aud="authenticated", role="anon"), secret=SECRET)
        assert claims["role"] == "anon"

    def test_user_token_rejected(self):
        with pytest.raises(AuthError) as exc_info:
            verify_project_token(make_token(role="authenticated"), secret=SECRET)
        assert exc_info.value.code == "FORBIDDEN_ROLE"

    def test_expired_token(self):
        expired = datetime.now(timezone.utc) - timedelta(minutes=5)
        with pytest.raises(AuthError) as exc_info:
            verify_project_token(make_token(exp=expired), secret=SECRET)
        assert exc_info.value.code == "TOKEN_EXPIRED"

    def test_wrong_secret(self):
        with pytest.raises(AuthError) as exc_info:
            verify_project_token(make_token(secret="x" * 40), secret=SECRET)
        assert exc_info.value.code == "INVALID_TOKEN"

    def test_garbage_token(self):
        with pytest.raises(AuthError):
            verify_project_token("not.a.jwt", secret=SECRET)

    def test_missing_secret(self):
        with pytest.raises(AuthError) as exc_info:
            verify_project_token(make_token(), secret="")
        assert exc_info.value.code == "AUTH_NOT_CONFIGURED"
