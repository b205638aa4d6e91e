"""User model type definitions for database operations."""

from datetime import datetime
from typing import Literal, TypedDict
from uuid import UUID

UserRole = Literal["user", "admin"]


class User(TypedDict):
    """Users table row representation.

    preferred_language is constrained to ('en', 'es') by the database.
    """

    id: UUID
    email: str
    name: str
    role: UserRole
    preferred_language: str
    whatsapp: str | None
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None
