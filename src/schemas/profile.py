"""User profile and language preference schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.core.i18n import Locale


class UserProfileResponse(BaseModel):
    """Profile read model for the current user."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(description="User unique identifier")
    email: str = Field(description="User email address")
    name: str = Field(description="User display name")
    preferred_language: Locale = Field(description="Preferred UI and email language")
    whatsapp: str | None = Field(default=None, description="WhatsApp number, if provided")
    created_at: datetime = Field(description="Account creation timestamp")


class LanguagePreferenceUpdate(BaseModel):
    """Request body for PUT /profiles/me/language.

    The value is validated by the service so unsupported codes get the
    same error message regardless of entry point.
    """

    language: str = Field(min_length=1, max_length=10, description="Locale code, 'en' or 'es'")


class LanguagePreferenceResponse(BaseModel):
    """Current language preference."""

    language: Locale = Field(description="Preferred locale code")
