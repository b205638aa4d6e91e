"""Supabase client and helpers for reading PostgREST failures."""

from functools import lru_cache
from typing import Any

from postgrest.exceptions import APIError as PostgrestAPIError
from supabase import Client, create_client

from src.core.config import get_settings

# Postgres SQLSTATE for a unique constraint violation
UNIQUE_VIOLATION = "23505"


@lru_cache
def get_supabase_client() -> Client:
    """Return the shared service-role client.

    The secret key bypasses row level security, so every service checks
    ownership itself before reading or writing a user's orders, bookings
    or preferences.
    """
    settings = get_settings()
    return create_client(settings.supabase_url, settings.supabase_secret_key)


def is_unique_violation(error: PostgrestAPIError) -> bool:
    return error.code == UNIQUE_VIOLATION


def raised_by_function(error: PostgrestAPIError, marker: str) -> bool:
    """Whether a database function aborted with ``marker`` in its message.

    The order and booking RPCs raise named exceptions such as
    ``insufficient_capacity``; PostgREST passes them through as the message.
    """
    return marker in (error.message or "")


async def check_database_connection() -> dict[str, Any]:
    """Query the users table for the readiness check.

    Returns:
        dict: ``healthy`` flag, plus ``error`` when the query failed.
    """
    try:
        get_supabase_client().table("users").select("id").limit(1).execute()
    except Exception as e:
        return {"healthy": False, "error": str(e)}
    return {"healthy": True}
