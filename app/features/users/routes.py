"""
User feature routes.
"""
from typing import Annotated
from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.core.exceptions import NotFoundError
from app.features.access.dependencies import get_access_context, require_super_admin
from app.features.access.facade import AccessContext
from app.features.entitlements.quota import ResourceKind, quota_slot
from app.features.organizations.dependencies import get_organization_by_id
from app.features.profiles.service import assign_profile, ensure_can_manage_organization
from app.features.users.models import User
from app.features.users.schemas import OrganizationAssignment, ProfileAssignment, UserResponse
from app.features.users.dependencies import get_current_user
from app.utils import get_logger


log = get_logger(__name__)
router = APIRouter(tags=["users"])


async def _get_user(db: AsyncSession, user_id: str) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError(f"User {user_id} not found")
    return user


@router.get("/me", response_model=UserResponse)
async def get_me(
    user: Annotated[User, Depends(get_current_user)]
):
    """Get current authenticated user."""
    return user


@router.put("/{user_id}/profile", response_model=UserResponse)
async def set_user_profile(
    user_id: str,
    assignment: ProfileAssignment,
    ctx: Annotated[AccessContext, Depends(get_access_context)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """
    Assign a profile to a user.

    Requires canManageProfiles in the user's organization. Users without an
    organization can only be assigned by super administrators.
    """
    user = await _get_user(db, user_id)
    await ensure_can_manage_organization(db, ctx, user.organization_id)
    user = await assign_profile(db, user_id, assignment.profile_id)
    await db.commit()
    return user


@router.put("/{user_id}/organization", response_model=UserResponse)
async def set_user_organization(
    user_id: str,
    assignment: OrganizationAssignment,
    _admin: Annotated[AccessContext, Depends(require_super_admin)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """
    Move a user to an organization (super admin only). The profile is cleared.

    Raises:
        QuotaExceededError: if an active user would exceed the target plan's user limit
    """
    user = await _get_user(db, user_id)
    target = assignment.organization_id
    if target is None or user.organization_id == target:
        if user.organization_id != target:
            user.organization_id = None
            user.profile_id = None
        await db.commit()
        return user

    await get_organization_by_id(db, target)
    if user.is_active:
        async with quota_slot(db, target, ResourceKind.USERS):
            user.organization_id = target
            user.profile_id = None
    else:
        user.organization_id = target
        user.profile_id = None
        await db.commit()
    log.info(f"Moved user {user_id} to org {target}")
    return user
