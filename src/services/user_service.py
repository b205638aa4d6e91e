"""User lookups shared by the order, booking and auth layers."""

from typing import Any
from uuid import UUID

from src.core.supabase import get_supabase_client


class UserService:
    """Service for reading marketplace users."""

    def __init__(self) -> None:
        """Initialize user service with Supabase client."""
        self.client = get_supabase_client()

    async def get_active_user(self, user_id: UUID) -> dict[str, Any] | None:
        """Get a user that has not been soft-deleted.

        Args:
            user_id: The user's UUID.

        Returns:
            dict | None: The user row or None if missing or deleted.
        """
        response = (
            self.client.table("users")
            .select("id, email, name, role, preferred_language, whatsapp, created_at")
            .eq("id", str(user_id))
            .is_("deleted_at", "null")
            .maybe_single()
            .execute()
        )

        return response.data if response and response.data else None

    async def is_admin(self, user_id: UUID) -> bool:
        """Check whether a user has the admin role."""
        user = await self.get_active_user(user_id)
        return bool(user and user.get("role") == "admin")
