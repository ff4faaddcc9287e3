"""Pydantic schemas for authentication."""

from pydantic import BaseModel, ConfigDict, Field

from brandcoach.auth.permissions import UserRole, is_admin


class UserResponse(BaseModel):
    """Authenticated user as described by the access token."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="Subject of the token")
    email: str
    role: UserRole = UserRole.USER
    name: str = ""

    @property
    def is_admin(self) -> bool:
        return is_admin(self.role)

    def owns_email(self, email: str) -> bool:
        """Case-insensitive match against the token email."""
        return self.email.strip().lower() == email.strip().lower()
