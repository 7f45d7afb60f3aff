"""
Organization lookups shared by the resolvers and routes.
"""
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ForbiddenError, NotFoundError
from app.features.organizations.models import Organization


async def get_organization_by_id(db: AsyncSession, organization_id: str) -> Organization:
    """The organization, or NotFoundError."""
    organization = await db.get(Organization, organization_id)
    if organization is None:
        raise NotFoundError(f"Organization {organization_id} not found")
    return organization


def ensure_member(ctx, organization_id: str) -> None:
    """
    Raise ForbiddenError unless ctx belongs to the organization.

    ctx is any object with organization_id and is_super_admin (normally an
    AccessContext); super administrators belong everywhere.
    """
    if not ctx.is_super_admin and ctx.organization_id != organization_id:
        raise ForbiddenError("Not a member of this organization")
