"""
Access decision facade.

The single entry point request handlers use to ask "may this user do X?".
Combines the profile resolver, the feature gate and the quota enforcer for
an AccessContext built once per request.

Decisions return booleans. They raise only for malformed input (unknown
object type, action or resource kind) or for subjects that do not exist.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationError
from app.features.entitlements import quota as quota_enforcer
from app.features.entitlements.quota import QuotaStatus
from app.features.entitlements.resolver import resolve_enabled_features
from app.features.profiles.access_levels import ObjectCapabilities
from app.features.profiles.models import ObjectType
from app.features.profiles.resolver import (
    get_profile,
    parse_object_action,
    parse_object_type,
    resolve_action_permission,
    resolve_object_permission,
)
from app.features.ui.buttons import ButtonPermissionView, get_button_permissions, list_active_buttons, button_enabled_for
from app.features.ui.navigation import NavigationNode, resolve_navigation
from app.features.users.models import User
from app.utils import get_logger


log = get_logger(__name__)


@dataclass(frozen=True)
class AccessContext:
    """Who is asking. Built once per request from the authenticated user."""
    user_id: str
    organization_id: Optional[str]
    profile_id: Optional[str]
    is_super_admin: bool = False

    @classmethod
    def from_user(cls, user: User) -> "AccessContext":
        return cls(
            user_id=user.id,
            organization_id=user.organization_id,
            profile_id=user.profile_id,
            is_super_admin=user.is_admin,
        )


async def load_access_context(db: AsyncSession, user_id: str) -> AccessContext:
    """Build the context of a user by ID. Raises NotFoundError for unknown users."""
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError(f"User {user_id} not found")
    return AccessContext.from_user(user)


# ============================================================================
# Decisions
# ============================================================================

async def can_access_object(db: AsyncSession, ctx: AccessContext, object_type, action) -> bool:
    """Profile check for one object type and action. Super administrators always pass."""
    object_type = parse_object_type(object_type)
    action = parse_object_action(action)

    if ctx.is_super_admin:
        return True

    capabilities = await resolve_object_permission(db, ctx.profile_id, object_type)
    allowed = capabilities.allows(action)
    log.debug(f"User {ctx.user_id} {action.value} {object_type.value}: {allowed}")
    return allowed


async def can_access_feature(
    db: AsyncSession,
    ctx: AccessContext,
    feature_key: str,
    permission_name: Optional[str] = None,
) -> bool:
    """
    Is the feature enabled on the organization's plan, and, if
    permission_name is given, does the user also hold that permission?
    Super administrators are still bound by the plan.
    """
    if not feature_key:
        raise ValidationError("feature_key is required", field="feature_key")
    if ctx.organization_id is None:
        log.debug(f"User {ctx.user_id} has no organization - feature {feature_key} denied")
        return False

    if feature_key not in await resolve_enabled_features(db, ctx.organization_id):
        log.debug(f"Feature {feature_key} not enabled for org {ctx.organization_id}")
        return False

    if permission_name is None:
        return True
    return await can_perform_action(db, ctx, permission_name)


async def can_perform_action(db: AsyncSession, ctx: AccessContext, permission_name: str) -> bool:
    """Named capability check such as "canManageProfiles"."""
    if not permission_name:
        raise ValidationError("permission_name is required", field="permission_name")
    if ctx.is_super_admin:
        return True
    return await resolve_action_permission(db, ctx.profile_id, permission_name)


async def check_quota(
    db: AsyncSession,
    ctx: AccessContext,
    resource_kind: str,
    increment: int = 1,
) -> QuotaStatus:
    """Quota of the user's organization. Super administrators are still bound by the plan."""
    if ctx.organization_id is None:
        raise NotFoundError(f"User {ctx.user_id} has no organization")
    return await quota_enforcer.check_quota(db, ctx.organization_id, resource_kind, increment)


# ============================================================================
# Permission matrix
# ============================================================================

@dataclass
class EffectiveButton:
    key: str
    label: str
    icon: Optional[str]
    object_type: ObjectType
    action: str
    is_enabled: bool
    is_visible: bool


@dataclass
class PermissionMatrix:
    """Everything a client needs to render the UI for one user."""
    objects: Dict[str, ObjectCapabilities] = field(default_factory=dict)
    features: List[str] = field(default_factory=list)
    buttons: List[EffectiveButton] = field(default_factory=list)
    navigation: List[NavigationNode] = field(default_factory=list)


async def _button_views(db: AsyncSession, ctx: AccessContext) -> List[Any]:
    if ctx.profile_id is not None and not ctx.is_super_admin:
        profile = await get_profile(db, ctx.profile_id)
        if profile.is_active:
            return await get_button_permissions(db, ctx.profile_id)

    views = []
    for button in await list_active_buttons(db):
        capabilities = (
            ObjectCapabilities(True, True, True, True, True)
            if ctx.is_super_admin
            else await resolve_object_permission(db, ctx.profile_id, button.object_type)
        )
        views.append(ButtonPermissionView(
            button=button,
            is_enabled=button_enabled_for(button, capabilities),
            is_visible=True,
            custom_label=None,
            custom_icon=None,
            is_override=False,
            is_stored=False,
            object_permission=capabilities,
        ))
    return views


async def build_permission_matrix(db: AsyncSession, ctx: AccessContext) -> PermissionMatrix:
    """
    Objects, enabled features, effective buttons and navigation for ctx.

    Buttons come from the profile's rows, or from computed defaults when the
    profile was never synced; nothing is written. A button whose required
    feature is off is disabled whatever its row says.
    """
    features: Set[str] = (
        await resolve_enabled_features(db, ctx.organization_id) if ctx.organization_id else set()
    )

    matrix = PermissionMatrix(features=sorted(features))

    for object_type in ObjectType:
        if ctx.is_super_admin:
            matrix.objects[object_type.value] = ObjectCapabilities(True, True, True, True, True)
        else:
            matrix.objects[object_type.value] = await resolve_object_permission(db, ctx.profile_id, object_type)

    for view in await _button_views(db, ctx):
        button = view.button
        feature_ok = button.required_feature is None or button.required_feature in features
        matrix.buttons.append(EffectiveButton(
            key=button.key,
            label=view.custom_label or button.label,
            icon=view.custom_icon or button.icon,
            object_type=button.object_type,
            action=button.action.value,
            is_enabled=view.is_enabled and feature_ok,
            is_visible=view.is_visible,
        ))

    matrix.navigation = await resolve_navigation(db, ctx, enabled_features=features)
    return matrix
