"""Per-user language preference storage."""

import logging
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from src.api.middleware.error_handler import NotFoundError, ValidationError
from src.core.i18n import DEFAULT_LOCALE, Locale, is_valid_locale
from src.core.supabase import get_supabase_client

logger = logging.getLogger(__name__)

PROFILE_COLUMNS = "id, email, name, preferred_language, whatsapp, created_at"


def _to_profile(row: dict[str, Any]) -> dict[str, Any]:
    preference = row.get("preferred_language")
    return {
        "id": row["id"],
        "email": row["email"],
        "name": row["name"],
        "preferred_language": preference if is_valid_locale(preference) else DEFAULT_LOCALE,
        "whatsapp": row.get("whatsapp"),
        "created_at": row["created_at"],
    }


class UserPreferenceService:
    """Service for reading and updating a user's preferred language."""

    def __init__(self) -> None:
        """Initialize preference service with Supabase client."""
        self.client = get_supabase_client()

    async def get_user_language_preference(self, user_id: UUID) -> Locale:
        """Get a user's preferred language.

        Args:
            user_id: The user's UUID.

        Returns:
            Locale: The stored locale, or "en" when the user is missing or
            the stored value is not a supported locale.
        """
        response = (
            self.client.table("users")
            .select("preferred_language")
            .eq("id", str(user_id))
            .maybe_single()
            .execute()
        )

        if not response or not response.data:
            return DEFAULT_LOCALE

        preference = response.data.get("preferred_language")
        return preference if is_valid_locale(preference) else DEFAULT_LOCALE

    async def update_user_language_preference(self, user_id: UUID, language: str) -> dict[str, Any]:
        """Set a user's preferred language.

        Args:
            user_id: The user's UUID.
            language: Locale code; must be "en" or "es".

        Returns:
            dict: The updated profile read model.

        Raises:
            ValidationError: If the language is not supported.
            NotFoundError: If the user does not exist or was deleted.
        """
        if not is_valid_locale(language):
            raise ValidationError('Invalid language. Must be "en" or "es".')

        response = (
            self.client.table("users")
            .update(
                {
                    "preferred_language": language,
                    "updated_at": datetime.now(timezone.utc).isoformat(),
                }
            )
            .eq("id", str(user_id))
            .is_("deleted_at", "null")
            .execute()
        )

        if not response.data:
            raise NotFoundError("User not found.")

        logger.info("User %s language preference set to %s", user_id, language)
        return _to_profile(response.data[0])

    async def get_user_profile(self, user_id: UUID) -> dict[str, Any] | None:
        """Get the profile read model for a user.

        Args:
            user_id: The user's UUID.

        Returns:
            dict | None: Profile data or None for missing or deleted users.
        """
        response = (
            self.client.table("users")
            .select(PROFILE_COLUMNS)
            .eq("id", str(user_id))
            .is_("deleted_at", "null")
            .maybe_single()
            .execute()
        )

        if not response or not response.data:
            return None

        return _to_profile(response.data)
