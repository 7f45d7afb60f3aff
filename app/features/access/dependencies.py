"""
FastAPI dependencies for route protection.

Usage:
    @router.post("/units")
    async def create_unit(
        ctx: AccessContext = Depends(require_object_access(ObjectType.UNIT, ObjectAction.CREATE))
    ):
        ...
"""
from typing import Annotated, Iterable, Optional, Tuple

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.core.exceptions import ForbiddenError
from app.features.access.facade import (
    AccessContext,
    can_access_feature,
    can_access_object,
    can_perform_action,
)
from app.features.profiles.models import ObjectAction, ObjectType, Profile
from app.features.profiles.service import ensure_can_manage_profile
from app.features.users.dependencies import get_current_user
from app.features.users.models import User
from app.utils import get_logger


log = get_logger(__name__)


async def get_access_context(user: Annotated[User, Depends(get_current_user)]) -> AccessContext:
    """AccessContext of the authenticated user."""
    return AccessContext.from_user(user)


def require_object_access(object_type: ObjectType, action: ObjectAction):
    """
    Require an object capability.

    Returns:
        Dependency function that returns the AccessContext if allowed

    Raises:
        ForbiddenError: if the profile lacks the capability
    """
    async def object_dependency(
        ctx: Annotated[AccessContext, Depends(get_access_context)],
        db: Annotated[AsyncSession, Depends(get_db)],
    ) -> AccessContext:
        if not await can_access_object(db, ctx, object_type, action):
            log.warning(f"User {ctx.user_id} denied {ObjectAction(action).value} on {ObjectType(object_type).value}")
            raise ForbiddenError(
                f"Permission denied: {ObjectAction(action).value} on {ObjectType(object_type).value}"
            )
        return ctx

    return object_dependency


def require_feature(feature_key: str, permission_name: Optional[str] = None):
    """Require a plan feature, optionally combined with a named permission."""
    async def feature_dependency(
        ctx: Annotated[AccessContext, Depends(get_access_context)],
        db: Annotated[AsyncSession, Depends(get_db)],
    ) -> AccessContext:
        if not await can_access_feature(db, ctx, feature_key, permission_name):
            raise ForbiddenError(f"Feature not available: {feature_key}", feature_key=feature_key)
        return ctx

    return feature_dependency


def require_action(permission_name: str):
    """Require a named permission such as "canManageProfiles"."""
    async def action_dependency(
        ctx: Annotated[AccessContext, Depends(get_access_context)],
        db: Annotated[AsyncSession, Depends(get_db)],
    ) -> AccessContext:
        if not await can_perform_action(db, ctx, permission_name):
            raise ForbiddenError(f"Permission denied: {permission_name}")
        return ctx

    return action_dependency


def require_any_access(
    objects: Iterable[Tuple[ObjectType, ObjectAction]] = (),
    features: Iterable[str] = (),
    actions: Iterable[str] = (),
):
    """
    Require ANY of the given checks to pass.

    Usage:
        @router.get("/reports")
        async def get_reports(
            ctx: AccessContext = Depends(require_any_access(
                objects=[(ObjectType.REPORT, ObjectAction.READ)],
                actions=["canViewReports"],
            ))
        ):
            ...
    """
    objects, features, actions = list(objects), list(features), list(actions)

    async def any_dependency(
        ctx: Annotated[AccessContext, Depends(get_access_context)],
        db: Annotated[AsyncSession, Depends(get_db)],
    ) -> AccessContext:
        for object_type, action in objects:
            if await can_access_object(db, ctx, object_type, action):
                return ctx
        for feature_key in features:
            if await can_access_feature(db, ctx, feature_key):
                return ctx
        for permission_name in actions:
            if await can_perform_action(db, ctx, permission_name):
                return ctx
        raise ForbiddenError("Permission denied: none of the required accesses granted")

    return any_dependency


async def require_profile_admin(
    profile_id: str,
    ctx: Annotated[AccessContext, Depends(get_access_context)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Profile:
    """Path dependency: the profile in the URL, if the caller may administer it."""
    return await ensure_can_manage_profile(db, ctx, profile_id)


async def require_super_admin(
    ctx: Annotated[AccessContext, Depends(get_access_context)],
) -> AccessContext:
    if not ctx.is_super_admin:
        raise ForbiddenError("Super administrator privileges required")
    return ctx

