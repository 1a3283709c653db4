"""
Scheduler authentication.

The reminder trigger is called by a scheduler holding a Supabase project key
(anon or service_role). Both are HS256 JWTs signed with the project's JWT
secret, so verifying the bearer token is enough to know the caller belongs
to the project.
"""
from typing import Optional

import jwt
from fastapi import HTTPException, Request

from studyblock.config import get_settings
from studyblock.utils.logger import get_logger
from studyblock.utils.errors import AuthError

logger = get_logger(__name__)

ALLOWED_ROLES = {"anon", "service_role"}


def verify_project_token(token: str, secret: Optional[str] = None) -> dict:
    """
    Validate a Supabase project JWT and return its claims.

    Args:
        token: Raw JWT from the Authorization header
        secret: Signing secret (defaults to settings.supabase_jwt_secret)

    Raises:
        AuthError: Signature, expiry or role check failed
    """
    secret = secret if secret is not None else get_settings().supabase_jwt_secret
    if not secret:
        raise AuthError("JWT secret is not configured", "AUTH_NOT_CONFIGURED")

    try:
        claims = jwt.decode(
            token,
            secret,
            algorithms=["HS256"],
            # Project keys carry no audience; user tokens use "authenticated"
            options={"verify_aud": False},
        )
    except jwt.ExpiredSignatureError:
        logger.warning("Scheduler JWT expired")
        raise AuthError("Token expired", "TOKEN_EXPIRED")
    except jwt.InvalidTokenError as e:
        logger.warning(f"Invalid scheduler JWT: {e}")
        raise AuthError("Invalid token", "INVALID_TOKEN")

    role = claims.get("role")
    if role not in ALLOWED_ROLES:
        logger.warning(f"Scheduler JWT has disallowed role: {role}")
        raise AuthError("Token role not allowed", "FORBIDDEN_ROLE")

    return claims


def _bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


# Dependency for the scheduler-triggered routes
async def require_project_token(request: Request) -> Optional[dict]:
    """
    FastAPI dependency guarding scheduler endpoints.

    Returns the token claims, or None when verification is disabled.

    Raises:
        HTTPException 401: Missing or invalid token
    """
    if not get_settings().verify_jwt:
        return None

    token = _bearer_token(request)
    if not token:
        raise HTTPException(
            status_code=401,
            detail={"error": True, "code": "AUTH_REQUIRED", "message": "Authentication required"}
        )

    try:
        return verify_project_token(token)
    except AuthError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())
