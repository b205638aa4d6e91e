"""Token claims and the authenticated caller."""

from datetime import datetime, timezone
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class UserContext(BaseModel):
    """The caller behind a verified bearer token.

    ``role`` is the Supabase token role (usually "authenticated"). The
    marketplace admin role is stored on the users row and checked by the
    ``AdminUser`` dependency.
    """

    model_config = ConfigDict(from_attributes=True)

    user_id: UUID = Field(description="User id from the token subject")
    email: str | None = Field(default=None, description="Email claim if present")
    role: str | None = Field(default=None, description="Token role claim")
    expires_at: datetime | None = Field(default=None, description="Token expiry")


class TokenPayload(BaseModel):
    """Claims of a verified Supabase access token."""

    sub: str
    email: str | None = None
    role: str | None = None
    exp: int
    iat: int
    aud: str | None = None
    iss: str | None = None

    def to_user_context(self) -> UserContext:
        return UserContext(
            user_id=UUID(self.sub),
            email=self.email,
            role=self.role,
            expires_at=datetime.fromtimestamp(self.exp, tz=timezone.utc),
        )


class AuthenticatedResponse(BaseModel):
    """Body of the authenticated health check."""

    authenticated: bool
    user_id: str
    email: str | None = None
    role: str | None = None
    expires_at: datetime | None = None
