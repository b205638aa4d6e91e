"""Verification of Supabase access tokens."""

from enum import Enum
from typing import Any
from uuid import UUID

import jwt

from src.core.config import get_settings
from src.schemas.auth import TokenPayload

REQUIRED_CLAIMS = ["exp", "iat", "sub", "aud"]


class AuthErrorCode(str, Enum):
    """Reasons a bearer token is refused."""

    UNAUTHORIZED = "UNAUTHORIZED"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    INVALID_TOKEN = "INVALID_TOKEN"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"


class AuthError(Exception):
    """A bearer token failed verification."""

    def __init__(self, message: str, code: AuthErrorCode) -> None:
        self.message = message
        self.code = code
        super().__init__(message)


# Checked in order; subclasses must precede their bases.
_JWT_ERRORS: list[tuple[type[jwt.PyJWTError], str, AuthErrorCode]] = [
    (jwt.ExpiredSignatureError, "Token has expired", AuthErrorCode.TOKEN_EXPIRED),
    (jwt.InvalidSignatureError, "Invalid token signature", AuthErrorCode.INVALID_SIGNATURE),
    (jwt.InvalidAudienceError, "Token audience is not accepted", AuthErrorCode.INVALID_TOKEN),
    (jwt.MissingRequiredClaimError, "Token missing required claim", AuthErrorCode.INVALID_TOKEN),
    (jwt.DecodeError, "Invalid token format", AuthErrorCode.INVALID_TOKEN),
]


def _translate(error: jwt.PyJWTError) -> AuthError:
    for error_type, message, code in _JWT_ERRORS:
        if isinstance(error, error_type):
            if isinstance(error, jwt.MissingRequiredClaimError):
                message = f"{message}: {error.claim}"
            return AuthError(message, code)
    return AuthError(f"Token validation failed: {error}", AuthErrorCode.INVALID_TOKEN)


def decode_jwt(token: str) -> TokenPayload:
    """Decode a Supabase access token issued to a marketplace user.

    The HS256 signature is checked against the project JWT secret, along
    with expiry (allowing the configured clock leeway), issued-at and
    audience. The subject must be a user UUID since it keys the users table.

    Args:
        token: Raw bearer token.

    Returns:
        TokenPayload: The verified claims.

    Raises:
        AuthError: If any check fails.
    """
    settings = get_settings()

    try:
        claims: dict[str, Any] = jwt.decode(
            token,
            settings.supabase_jwt_secret,
            algorithms=["HS256"],
            audience=settings.supabase_jwt_audience,
            leeway=settings.jwt_leeway_seconds,
            options={"require": REQUIRED_CLAIMS},
        )
    except jwt.PyJWTError as e:
        raise _translate(e) from e

    try:
        UUID(str(claims["sub"]))
    except ValueError as e:
        raise AuthError("Token subject is not a user id", AuthErrorCode.INVALID_TOKEN) from e

    return TokenPayload(
        sub=claims["sub"],
        email=claims.get("email"),
        role=claims.get("role"),
        exp=claims["exp"],
        iat=claims["iat"],
        aud=claims.get("aud"),
        iss=claims.get("iss"),
    )
