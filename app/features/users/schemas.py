"""
Pydantic schemas for user-related requests and responses.
"""
from pydantic import BaseModel, Field


class UserResponse(BaseModel):
    """The authenticated user with the identifiers access decisions use."""
    id: str
    email: str
    name: str
    is_active: bool
    is_admin: bool
    organization_id: str | None = None
    profile_id: str | None = None

    model_config = {"from_attributes": True}


class ProfileAssignment(BaseModel):
    """Assign a profile to a user; null clears the assignment."""
    profile_id: str | None = Field(None, description="Profile ULID, or null to clear")


class OrganizationAssignment(BaseModel):
    organization_id: str | None = None
