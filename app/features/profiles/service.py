"""
Profile write operations.

Every write re-derives the access-level labels from the booleans, and
object permission writes re-sync the profile's non-override buttons in the
same transaction. Concurrent edits of one profile are last-writer-wins.
"""
from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy import select, delete, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from app.features.organizations.dependencies import get_organization_by_id
from app.features.profiles.access_levels import derive_access_level, derive_field_access_level
from app.features.profiles.catalog import DEFAULT_PROFILES, is_sensitive_field
from app.features.profiles.models import (
    AccessLevel,
    ActionPermission,
    FieldPermission,
    ObjectPermission,
    Profile,
)
from app.features.profiles.resolver import (
    get_object_permissions,
    get_profile,
    parse_object_type,
    resolve_action_permission,
)
from app.features.ui.buttons import sync_button_permissions
from app.features.ui.models import ProfileButtonPermission, ProfileNavigationItem
from app.features.users.models import User
from app.utils import get_logger


log = get_logger(__name__)


MANAGE_PROFILES_PERMISSION = "canManageProfiles"

OBJECT_FLAGS = ("can_create", "can_read", "can_edit", "can_delete", "can_view_all")


# ============================================================================
# Authorization
# ============================================================================

async def ensure_can_manage_organization(db: AsyncSession, ctx, organization_id: Optional[str]) -> None:
    """
    Raise ForbiddenError unless ctx may administer the profiles of organization_id.

    Super administrators may administer everything, including global
    profiles (organization_id None). Anyone else must belong to the
    organization and hold canManageProfiles.
    """
    if ctx.is_super_admin:
        return
    if organization_id is None:
        log.warning(f"User {ctx.user_id} denied write on global profiles")
        raise ForbiddenError("Only super administrators can modify global profiles")
    if ctx.organization_id != organization_id:
        log.warning(f"User {ctx.user_id} denied profile write outside organization {ctx.organization_id}")
        raise ForbiddenError("Cannot modify profiles of another organization")
    if not await resolve_action_permission(db, ctx.profile_id, MANAGE_PROFILES_PERMISSION):
        log.warning(f"User {ctx.user_id} lacks {MANAGE_PROFILES_PERMISSION}")
        raise ForbiddenError(f"Permission denied: {MANAGE_PROFILES_PERMISSION} required")


async def ensure_can_manage_profile(db: AsyncSession, ctx, profile_id: str) -> Profile:
    """Load a profile and check that ctx may administer it."""
    profile = await get_profile(db, profile_id)
    await ensure_can_manage_organization(db, ctx, profile.organization_id)
    return profile


# ============================================================================
# Profile lifecycle
# ============================================================================

async def _name_taken(db: AsyncSession, organization_id: Optional[str], name: str, exclude_id: Optional[str] = None) -> bool:
    if organization_id is None:
        stmt = select(Profile.id).where(and_(Profile.organization_id.is_(None), Profile.name == name))
    else:
        stmt = select(Profile.id).where(and_(Profile.organization_id == organization_id, Profile.name == name))
    if exclude_id is not None:
        stmt = stmt.where(Profile.id != exclude_id)
    result = await db.execute(stmt.limit(1))
    return result.scalar_one_or_none() is not None


async def create_profile(
    db: AsyncSession,
    name: str,
    organization_id: Optional[str] = None,
    display_name: Optional[str] = None,
    description: Optional[str] = None,
    is_system_profile: bool = False,
    is_active: bool = True,
) -> Profile:
    """Create an empty profile. Names are unique per organization (or among global profiles)."""
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required", field="name")
    if organization_id is not None:
        await get_organization_by_id(db, organization_id)
    if await _name_taken(db, organization_id, name):
        raise ValidationError(f"Profile {name!r} already exists", field="name")

    profile = Profile(
        name=name,
        organization_id=organization_id,
        display_name=display_name,
        description=description,
        is_system_profile=is_system_profile,
        is_active=is_active,
    )
    db.add(profile)
    await db.flush()
    log.info(f"Created profile {profile.id} ({name}) in org {organization_id}")
    return profile


async def update_profile(db: AsyncSession, profile_id: str, **fields: Any) -> Profile:
    """
    Update name, display_name, description or is_active.

    System profiles keep their name. Toggling is_active re-syncs the
    non-override buttons.
    """
    allowed = {"name", "display_name", "description", "is_active"}
    unknown = set(fields) - allowed
    if unknown:
        raise ValidationError(f"Unknown profile fields: {sorted(unknown)}")

    profile = await get_profile(db, profile_id)

    if "name" in fields and fields["name"] != profile.name:
        if profile.is_system_profile:
            raise ForbiddenError("System profiles cannot be renamed")
        name = (fields["name"] or "").strip()
        if not name:
            raise ValidationError("name is required", field="name")
        if await _name_taken(db, profile.organization_id, name, exclude_id=profile.id):
            raise ValidationError(f"Profile {name!r} already exists", field="name")
        fields["name"] = name

    toggled = "is_active" in fields and fields["is_active"] is not None and fields["is_active"] != profile.is_active
    for key, value in fields.items():
        setattr(profile, key, value)
    await db.flush()
    if toggled:
        await sync_button_permissions(db, profile_id)
    log.info(f"Updated profile {profile_id}: {sorted(fields)}")
    return profile


async def delete_profile(db: AsyncSession, profile_id: str) -> None:
    """
    Delete a custom profile and every row it owns.

    System profiles raise ForbiddenError; profiles still assigned to users
    raise ValidationError.
    """
    profile = await get_profile(db, profile_id)
    if profile.is_system_profile:
        raise ForbiddenError("System profiles cannot be deleted")

    result = await db.execute(select(func.count(User.id)).where(User.profile_id == profile_id))
    assigned = result.scalar_one()
    if assigned:
        raise ValidationError(f"Profile is assigned to {assigned} user(s)", assigned_users=assigned)

    for model in (ProfileButtonPermission, ProfileNavigationItem, ActionPermission, FieldPermission, ObjectPermission):
        await db.execute(delete(model).where(model.profile_id == profile_id))
    await db.execute(delete(Profile).where(Profile.id == profile_id))
    await db.flush()
    log.info(f"Deleted profile {profile_id}")


async def list_profiles(db: AsyncSession, organization_id: Optional[str], include_global: bool = True) -> List[Profile]:
    """Profiles of an organization, plus the global profiles when include_global is set."""
    if organization_id is None:
        condition = Profile.organization_id.is_(None)
    elif include_global:
        condition = (Profile.organization_id == organization_id) | Profile.organization_id.is_(None)
    else:
        condition = Profile.organization_id == organization_id
    result = await db.execute(select(Profile).where(condition).order_by(Profile.name))
    return list(result.scalars().all())


# ============================================================================
# Permission writes
# ============================================================================

def _validate_object_item(item: Mapping[str, Any]) -> Dict[str, Any]:
    object_type = parse_object_type(item.get("object_type"))
    flags = {name: bool(item.get(name, False)) for name in OBJECT_FLAGS}

    if not flags["can_read"]:
        if flags["can_view_all"]:
            raise ValidationError(f"{object_type.value}: can_view_all requires can_read", object_type=object_type.value)
        if flags["can_delete"]:
            raise ValidationError(f"{object_type.value}: can_delete requires can_read", object_type=object_type.value)

    derived = derive_access_level(**flags)
    supplied = item.get("access_level")
    if supplied is not None:
        try:
            supplied = AccessLevel(supplied)
        except ValueError:
            raise ValidationError(f"Unknown access level: {supplied!r}", field="access_level")
        if supplied != derived:
            raise ValidationError(
                f"{object_type.value}: access_level {supplied.value} does not match the capabilities ({derived.value})",
                object_type=object_type.value,
            )

    return {"object_type": object_type, "access_level": derived, **flags}


async def put_object_permissions(
    db: AsyncSession,
    profile_id: str,
    items: Iterable[Mapping[str, Any]],
) -> List[ObjectPermission]:
    """
    Upsert object permissions of a profile and re-sync its buttons.

    The whole batch is validated before anything is written. Object types
    not mentioned keep their rows. Returns the full matrix.
    """
    await get_profile(db, profile_id)

    cleaned = [_validate_object_item(item) for item in items]
    seen = set()
    for item in cleaned:
        if item["object_type"] in seen:
            raise ValidationError(f"Duplicate object type {item['object_type'].value}")
        seen.add(item["object_type"])

    result = await db.execute(
        select(ObjectPermission).where(ObjectPermission.profile_id == profile_id)
    )
    existing = {row.object_type: row for row in result.scalars().all()}

    for item in cleaned:
        row = existing.get(item["object_type"])
        if row is None:
            db.add(ObjectPermission(profile_id=profile_id, **item))
        else:
            for key, value in item.items():
                setattr(row, key, value)

    await db.flush()
    await sync_button_permissions(db, profile_id)
    log.info(f"Updated {len(cleaned)} object permissions for profile {profile_id}")
    return await get_object_permissions(db, profile_id)


async def put_field_permissions(
    db: AsyncSession,
    profile_id: str,
    items: Iterable[Mapping[str, Any]],
) -> List[FieldPermission]:
    """Upsert field permissions. can_edit requires can_read. Returns every field row of the profile."""
    await get_profile(db, profile_id)

    cleaned = []
    seen = set()
    for item in items:
        object_type = parse_object_type(item.get("object_type"))
        field_name = (item.get("field_name") or "").strip()
        if not field_name:
            raise ValidationError("field_name is required", field="field_name")
        can_read = bool(item.get("can_read", False))
        can_edit = bool(item.get("can_edit", False))
        if can_edit and not can_read:
            raise ValidationError(f"{object_type.value}.{field_name}: can_edit requires can_read")
        if (object_type, field_name) in seen:
            raise ValidationError(f"Duplicate field {object_type.value}.{field_name}")
        seen.add((object_type, field_name))

        is_sensitive = item.get("is_sensitive")
        if is_sensitive is None:
            is_sensitive = is_sensitive_field(object_type, field_name)

        cleaned.append({
            "object_type": object_type,
            "field_name": field_name,
            "can_read": can_read,
            "can_edit": can_edit,
            "is_sensitive": bool(is_sensitive),
            "access_level": derive_field_access_level(can_read, can_edit),
        })

    result = await db.execute(select(FieldPermission).where(FieldPermission.profile_id == profile_id))
    existing = {(row.object_type, row.field_name): row for row in result.scalars().all()}

    for item in cleaned:
        row = existing.get((item["object_type"], item["field_name"]))
        if row is None:
            db.add(FieldPermission(profile_id=profile_id, **item))
        else:
            for key, value in item.items():
                setattr(row, key, value)

    await db.flush()
    log.info(f"Updated {len(cleaned)} field permissions for profile {profile_id}")

    result = await db.execute(
        select(FieldPermission)
        .where(FieldPermission.profile_id == profile_id)
        .order_by(FieldPermission.object_type, FieldPermission.field_name)
    )
    return list(result.scalars().all())


async def put_action_permissions(
    db: AsyncSession,
    profile_id: str,
    grants: Mapping[str, bool],
) -> List[ActionPermission]:
    """Upsert named action grants, e.g. {"canManageProfiles": True}."""
    await get_profile(db, profile_id)

    for name in grants:
        if not name or not name.strip():
            raise ValidationError("permission_name is required", field="permission_name")

    result = await db.execute(select(ActionPermission).where(ActionPermission.profile_id == profile_id))
    existing = {row.permission_name: row for row in result.scalars().all()}

    for name, granted in grants.items():
        row = existing.get(name)
        if row is None:
            db.add(ActionPermission(profile_id=profile_id, permission_name=name, is_granted=bool(granted)))
        else:
            row.is_granted = bool(granted)

    await db.flush()
    log.info(f"Updated {len(grants)} action permissions for profile {profile_id}")

    result = await db.execute(
        select(ActionPermission)
        .where(ActionPermission.profile_id == profile_id)
        .order_by(ActionPermission.permission_name)
    )
    return list(result.scalars().all())


# ============================================================================
# Defaults and assignment
# ============================================================================

async def create_default_profiles(db: AsyncSession, organization_id: Optional[str] = None) -> List[Profile]:
    """
    Create the Owner, Accountant, Agent and Viewer profiles.

    organization_id None creates them as global profiles. Profiles that
    already exist are left alone, so the call is safe to repeat.
    """
    if organization_id is not None:
        await get_organization_by_id(db, organization_id)

    profiles = []
    for name, (display_name, description, grants) in DEFAULT_PROFILES.items():
        if organization_id is None:
            condition = and_(Profile.organization_id.is_(None), Profile.name == name)
        else:
            condition = and_(Profile.organization_id == organization_id, Profile.name == name)
        result = await db.execute(select(Profile).where(condition))
        profile = result.scalar_one_or_none()
        if profile is not None:
            profiles.append(profile)
            continue

        profile = Profile(
            name=name,
            display_name=display_name,
            description=description,
            organization_id=organization_id,
            is_system_profile=True,
            object_permissions=[
                ObjectPermission(
                    object_type=object_type,
                    access_level=derive_access_level(**flags),
                    **flags,
                )
                for object_type, flags in grants.items()
            ],
        )
        db.add(profile)
        await db.flush()
        await sync_button_permissions(db, profile.id)
        log.info(f"Created default profile {name} ({profile.id}) in org {organization_id}")
        profiles.append(profile)

    return profiles


async def assign_profile(db: AsyncSession, user_id: str, profile_id: Optional[str]) -> User:
    """
    Assign a profile to a user, or clear it with None.

    The profile must be active and either global or owned by the user's
    organization.
    """
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError(f"User {user_id} not found")

    if profile_id is not None:
        profile = await get_profile(db, profile_id)
        if not profile.is_active:
            raise ValidationError("Cannot assign an inactive profile", field="profile_id")
        if profile.organization_id is not None and profile.organization_id != user.organization_id:
            raise ValidationError("Profile belongs to another organization", field="profile_id")

    user.profile_id = profile_id
    await db.flush()
    log.info(f"Assigned profile {profile_id} to user {user_id}")
    return user


async def ensure_can_view_profile(db: AsyncSession, ctx, profile_id: str) -> Profile:
    """Global profiles are readable by everyone, organization profiles by its members."""
    profile = await get_profile(db, profile_id)
    if ctx.is_super_admin or profile.organization_id is None:
        return profile
    if profile.organization_id != ctx.organization_id:
        raise ForbiddenError("Cannot read profiles of another organization")
    return profile
