"""Profile and language preference API routes."""

from fastapi import APIRouter, Response

from src.api.deps import CurrentUser
from src.api.middleware.error_handler import NotFoundError
from src.core.config import get_settings
from src.schemas.profile import (
    LanguagePreferenceResponse,
    LanguagePreferenceUpdate,
    UserProfileResponse,
)
from src.services.preference_service import UserPreferenceService

router = APIRouter(prefix="/profiles", tags=["profiles"])

LOCALE_COOKIE = "locale"
LOCALE_COOKIE_MAX_AGE = 60 * 60 * 24 * 365


@router.get(
    "/me",
    response_model=UserProfileResponse,
    summary="Get current user's profile",
    description="Returns the authenticated user's profile, including the preferred language.",
)
async def get_my_profile(user: CurrentUser) -> UserProfileResponse:
    """Get the authenticated user's profile.

    Raises:
        NotFoundError: 404 if the user row is missing or deleted.
    """
    profile = await UserPreferenceService().get_user_profile(user.user_id)
    if not profile:
        raise NotFoundError("User not found.")

    return UserProfileResponse(**profile)


@router.get(
    "/me/language",
    response_model=LanguagePreferenceResponse,
    summary="Get preferred language",
)
async def get_my_language(user: CurrentUser) -> LanguagePreferenceResponse:
    """Return the stored language preference, defaulting to English."""
    language = await UserPreferenceService().get_user_language_preference(user.user_id)
    return LanguagePreferenceResponse(language=language)


@router.put(
    "/me/language",
    response_model=UserProfileResponse,
    summary="Set preferred language",
    description="Stores the preferred language and sets the locale cookie used for page rendering.",
)
async def update_my_language(
    data: LanguagePreferenceUpdate,
    user: CurrentUser,
    response: Response,
) -> UserProfileResponse:
    """Update the authenticated user's preferred language.

    Args:
        data: The new language code.
        user: The authenticated user context.
        response: Response used to set the locale cookie.

    Returns:
        UserProfileResponse: The updated profile.

    Raises:
        ValidationError: 422 if the language is not supported.
        NotFoundError: 404 if the user row is missing or deleted.
    """
    profile = await UserPreferenceService().update_user_language_preference(user.user_id, data.language)

    response.set_cookie(
        key=LOCALE_COOKIE,
        value=profile["preferred_language"],
        max_age=LOCALE_COOKIE_MAX_AGE,
        secure=get_settings().is_production,
        samesite="lax",
        path="/",
    )

    return UserProfileResponse(**profile)
