"""Pydantic schemas for the authenticated caller."""

from uuid import UUID

from pydantic import BaseModel

from .permissions import UserRole, is_admin


class AuthenticatedUser(BaseModel):
    """Caller identity resolved from the access token."""

    id: UUID
    email: str | None = None
    role: UserRole

    @property
    def is_admin(self) -> bool:
        """Check if caller is an admin."""
        return is_admin(self.role)
