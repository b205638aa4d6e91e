"""FastAPI dependency injection functions."""

from typing import Annotated

from fastapi import Cookie, Depends, Header, HTTPException, Query, status

from src.api.middleware.auth import AuthError, AuthErrorCode, decode_jwt
from src.api.middleware.error_handler import AuthorizationError
from src.core.config import get_settings
from src.core.i18n import Locale, resolve_locale
from src.schemas.auth import UserContext
from src.services.user_service import UserService


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    authorization: Annotated[str, Header(description="Bearer token")] = "",
) -> UserContext:
    """Extract and validate the current user from the Authorization header.

    Args:
        authorization: The Authorization header value (Bearer token).

    Returns:
        UserContext: The authenticated user's context.

    Raises:
        HTTPException: 401 if token is missing, invalid, or expired.
    """
    if not authorization:
        raise _unauthorized("Authorization header required")

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise _unauthorized("Invalid authorization header format. Expected: Bearer <token>")

    try:
        payload = decode_jwt(parts[1])
    except AuthError as e:
        if e.code == AuthErrorCode.TOKEN_EXPIRED:
            raise _unauthorized("Token has expired") from e
        raise _unauthorized(e.message) from e

    return payload.to_user_context()


async def get_admin_user(user: Annotated[UserContext, Depends(get_current_user)]) -> UserContext:
    """Require the authenticated user to be an administrator.

    The role is read from the users table, not from token claims.

    Raises:
        AuthorizationError: 403 if the user is not an admin.
    """
    if not await UserService().is_admin(user.user_id):
        raise AuthorizationError("Administrator access required")
    return user


async def get_request_locale(
    lang: Annotated[str | None, Query(description="Locale override (en or es)")] = None,
    locale: Annotated[str | None, Cookie()] = None,
    accept_language: Annotated[str | None, Header()] = None,
) -> Locale:
    """Resolve the display locale from query, cookie and Accept-Language."""
    return resolve_locale(
        query_locale=lang,
        cookie_locale=locale,
        accept_language=accept_language,
        default=get_settings().default_locale,
    )


# Type aliases for cleaner dependency injection
CurrentUser = Annotated[UserContext, Depends(get_current_user)]
AdminUser = Annotated[UserContext, Depends(get_admin_user)]
RequestLocale = Annotated[Locale, Depends(get_request_locale)]
