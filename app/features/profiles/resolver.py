"""
Object, field and named-action permission resolution.

Every function here is a read: no writes, no caching. Given the same rows
they return the same answer, so they are safe to call concurrently from any
number of requests.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Optional

from sqlalchemy import select, and_, exists
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import config
from app.core.exceptions import NotFoundError, ValidationError
from app.features.profiles.access_levels import (
    NO_ACCESS,
    READ_ONLY,
    ObjectCapabilities,
    derive_field_access_level,
    most_permissive,
)
from app.features.profiles.catalog import PERMISSION_NAME_MAP, SENSITIVE_FIELDS, is_sensitive_field
from app.features.profiles.models import (
    AccessLevel,
    ActionPermission,
    FieldAccessLevel,
    FieldPermission,
    ObjectAction,
    ObjectPermission,
    ObjectType,
    Profile,
)
from app.utils import get_logger


log = get_logger(__name__)


# ============================================================================
# Input coercion
# ============================================================================

def parse_object_type(value: Any) -> ObjectType:
    """Coerce a string to ObjectType or raise ValidationError."""
    try:
        return ObjectType(value)
    except ValueError:
        raise ValidationError(f"Unknown object type: {value!r}", field="object_type")


def parse_object_action(value: Any) -> ObjectAction:
    """Coerce a string to ObjectAction or raise ValidationError."""
    try:
        return ObjectAction(value)
    except ValueError:
        raise ValidationError(f"Unknown object action: {value!r}", field="action")


def no_profile_capabilities() -> ObjectCapabilities:
    """
    Capabilities granted to a user without a profile.

    One policy for every call site, chosen by config.NO_PROFILE_POLICY.
    """
    if config.NO_PROFILE_POLICY == "read_only":
        return READ_ONLY
    return NO_ACCESS


# ============================================================================
# Profiles
# ============================================================================

async def get_profile(db: AsyncSession, profile_id: str) -> Profile:
    """Get a profile by ID or raise NotFoundError."""
    result = await db.execute(select(Profile).where(Profile.id == profile_id))
    profile = result.scalar_one_or_none()
    if profile is None:
        raise NotFoundError(f"Profile {profile_id} not found")
    return profile


# ============================================================================
# Object permissions
# ============================================================================

def capabilities_from_row(row: Optional[ObjectPermission]) -> ObjectCapabilities:
    if row is None:
        return NO_ACCESS
    return ObjectCapabilities(
        can_create=row.can_create,
        can_read=row.can_read,
        can_edit=row.can_edit,
        can_delete=row.can_delete,
        can_view_all=row.can_view_all,
    )


async def resolve_object_permission(
    db: AsyncSession,
    profile_id: Optional[str],
    object_type: ObjectType | str,
) -> ObjectCapabilities:
    """
    Resolve the capability set of a profile on an object type.

    A missing row means no access. A missing profile_id falls back to the
    configured no-profile policy; an inactive profile grants nothing.
    """
    object_type = parse_object_type(object_type)

    if profile_id is None:
        return no_profile_capabilities()

    profile = await get_profile(db, profile_id)
    if not profile.is_active:
        log.debug(f"Profile {profile_id} is inactive - no access to {object_type.value}")
        return NO_ACCESS

    result = await db.execute(
        select(ObjectPermission).where(
            and_(
                ObjectPermission.profile_id == profile_id,
                ObjectPermission.object_type == object_type,
            )
        )
    )
    return capabilities_from_row(result.scalar_one_or_none())


async def get_object_permissions(db: AsyncSession, profile_id: str) -> List[ObjectPermission]:
    """
    Return one row per object type for a profile.

    Object types without a stored row are returned as unsaved rows with
    every capability false, so callers always see the full matrix.
    """
    await get_profile(db, profile_id)

    result = await db.execute(
        select(ObjectPermission).where(ObjectPermission.profile_id == profile_id)
    )
    stored = {row.object_type: row for row in result.scalars().all()}

    rows = []
    for object_type in ObjectType:
        row = stored.get(object_type)
        if row is None:
            row = ObjectPermission(
                profile_id=profile_id,
                object_type=object_type,
                access_level=AccessLevel.NONE,
                can_create=False,
                can_read=False,
                can_edit=False,
                can_delete=False,
                can_view_all=False,
            )
        rows.append(row)
    return rows


# ============================================================================
# Field permissions
# ============================================================================

@dataclass(frozen=True)
class FieldCapabilities:
    """Resolved field capability set."""
    can_read: bool
    can_edit: bool
    is_sensitive: bool
    explicit: bool

    @property
    def access_level(self) -> FieldAccessLevel:
        return derive_field_access_level(self.can_read, self.can_edit)


async def field_is_sensitive(db: AsyncSession, object_type: ObjectType, field_name: str) -> bool:
    """A field is sensitive if the catalog says so or any profile row flags it."""
    if is_sensitive_field(object_type, field_name):
        return True
    result = await db.execute(
        select(
            exists().where(
                and_(
                    FieldPermission.object_type == object_type,
                    FieldPermission.field_name == field_name,
                    FieldPermission.is_sensitive.is_(True),
                )
            )
        )
    )
    return bool(result.scalar())


async def resolve_field_permission(
    db: AsyncSession,
    profile_id: Optional[str],
    object_type: ObjectType | str,
    field_name: str,
) -> FieldCapabilities:
    """
    Resolve read/edit on one field.

    Without a row the field is readable unless it is sensitive, in which case
    it stays hidden until explicitly granted.
    """
    object_type = parse_object_type(object_type)
    if not field_name:
        raise ValidationError("field_name is required", field="field_name")

    if profile_id is not None:
        profile = await get_profile(db, profile_id)
        result = await db.execute(
            select(FieldPermission).where(
                and_(
                    FieldPermission.profile_id == profile_id,
                    FieldPermission.object_type == object_type,
                    FieldPermission.field_name == field_name,
                )
            )
        )
        row = result.scalar_one_or_none()
        if row is not None:
            active = profile.is_active
            return FieldCapabilities(
                can_read=active and row.can_read,
                can_edit=active and row.can_edit,
                is_sensitive=row.is_sensitive,
                explicit=True,
            )
        if not profile.is_active:
            return FieldCapabilities(False, False, await field_is_sensitive(db, object_type, field_name), False)
    elif not no_profile_capabilities().can_read:
        return FieldCapabilities(False, False, await field_is_sensitive(db, object_type, field_name), False)

    sensitive = await field_is_sensitive(db, object_type, field_name)
    return FieldCapabilities(can_read=not sensitive, can_edit=False, is_sensitive=sensitive, explicit=False)


async def get_field_permissions(
    db: AsyncSession,
    profile_id: str,
    object_type: Optional[ObjectType | str] = None,
) -> List[FieldPermission]:
    """List stored field permission rows of a profile, optionally for one object type."""
    await get_profile(db, profile_id)

    stmt = select(FieldPermission).where(FieldPermission.profile_id == profile_id)
    if object_type is not None:
        stmt = stmt.where(FieldPermission.object_type == parse_object_type(object_type))
    stmt = stmt.order_by(FieldPermission.object_type, FieldPermission.field_name)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def load_sensitive_fields(db: AsyncSession, object_type: ObjectType | str) -> FrozenSet[str]:
    """Catalogued sensitive fields of an object type plus any field a profile row flags."""
    object_type = parse_object_type(object_type)
    result = await db.execute(
        select(FieldPermission.field_name)
        .where(
            and_(
                FieldPermission.object_type == object_type,
                FieldPermission.is_sensitive.is_(True),
            )
        )
        .distinct()
    )
    return SENSITIVE_FIELDS.get(object_type, frozenset()) | frozenset(result.scalars().all())


def filter_fields(
    record: Dict[str, Any],
    object_type: ObjectType,
    field_permissions: Iterable[FieldPermission],
    sensitive_fields: Optional[FrozenSet[str]] = None,
) -> Dict[str, Any]:
    """
    Drop the keys of record the profile cannot read.

    Fields without a row stay visible unless they are sensitive
    (sensitive_fields, or the catalog when not given); object-level checks
    still apply on top of this.
    """
    if sensitive_fields is None:
        sensitive_fields = SENSITIVE_FIELDS.get(object_type, frozenset())
    by_name = {
        p.field_name: p for p in field_permissions if p.object_type == object_type
    }
    filtered = {}
    for key, value in record.items():
        permission = by_name.get(key)
        if permission is None:
            if key in sensitive_fields:
                continue
            filtered[key] = value
        elif permission.can_read:
            filtered[key] = value
    return filtered


async def filter_readable_fields(
    db: AsyncSession,
    profile_id: Optional[str],
    object_type: ObjectType | str,
    record: Dict[str, Any],
) -> Dict[str, Any]:
    """
    filter_fields with the same rules as resolve_field_permission: profile
    rows, sensitivity flagged by any profile, inactive profiles and the
    no-profile policy.
    """
    object_type = parse_object_type(object_type)
    if profile_id is None:
        if not no_profile_capabilities().can_read:
            return {}
        permissions: List[FieldPermission] = []
    else:
        profile = await get_profile(db, profile_id)
        if not profile.is_active:
            return {}
        permissions = await get_field_permissions(db, profile_id, object_type)
    return filter_fields(record, object_type, permissions, await load_sensitive_fields(db, object_type))


# ============================================================================
# Named action permissions
# ============================================================================

async def resolve_action_permission(
    db: AsyncSession,
    profile_id: Optional[str],
    permission_name: str,
) -> bool:
    """
    Resolve a named capability such as "canManageProfiles".

    An explicit ActionPermission row decides. Otherwise a known permission
    name is answered by the object permission it maps to. Unknown names
    without a row are denied.
    """
    if not permission_name:
        raise ValidationError("permission_name is required", field="permission_name")

    mapping = PERMISSION_NAME_MAP.get(permission_name)

    if profile_id is None:
        if mapping is None:
            return False
        return no_profile_capabilities().allows(mapping[1])

    profile = await get_profile(db, profile_id)
    if not profile.is_active:
        return False

    result = await db.execute(
        select(ActionPermission).where(
            and_(
                ActionPermission.profile_id == profile_id,
                ActionPermission.permission_name == permission_name,
            )
        )
    )
    row = result.scalar_one_or_none()
    if row is not None:
        return row.is_granted

    if mapping is None:
        log.debug(f"Unknown permission name {permission_name!r} for profile {profile_id}")
        return False

    object_type, action = mapping
    capabilities = await resolve_object_permission(db, profile_id, object_type)
    return capabilities.allows(action)


async def get_action_permissions(db: AsyncSession, profile_id: str) -> List[ActionPermission]:
    await get_profile(db, profile_id)
    result = await db.execute(
        select(ActionPermission)
        .where(ActionPermission.profile_id == profile_id)
        .order_by(ActionPermission.permission_name)
    )
    return list(result.scalars().all())


# ============================================================================
# Profile access summary
# ============================================================================

@dataclass
class ProfileAccessSummary:
    profile_id: str
    profile_name: str
    overall_access_level: AccessLevel
    object_access_levels: Dict[str, AccessLevel] = field(default_factory=dict)
    can_create_any: bool = False
    can_edit_any: bool = False
    can_delete_any: bool = False
    can_view_all_any: bool = False
    total_objects: int = 0
    accessible_objects: int = 0


async def summarize_profile_access(db: AsyncSession, profile_id: str) -> ProfileAccessSummary:
    """Summarize what a profile can do across every object type."""
    profile = await get_profile(db, profile_id)
    result = await db.execute(
        select(ObjectPermission).where(ObjectPermission.profile_id == profile_id)
    )
    rows = list(result.scalars().all())

    summary = ProfileAccessSummary(
        profile_id=profile.id,
        profile_name=profile.name,
        overall_access_level=AccessLevel.NONE,
        total_objects=len(rows),
    )
    levels = []
    for row in rows:
        capabilities = capabilities_from_row(row)
        level = capabilities.access_level
        levels.append(level)
        summary.object_access_levels[row.object_type.value] = level
        summary.can_create_any = summary.can_create_any or row.can_create
        summary.can_edit_any = summary.can_edit_any or row.can_edit
        summary.can_delete_any = summary.can_delete_any or row.can_delete
        summary.can_view_all_any = summary.can_view_all_any or row.can_view_all
        if row.can_read:
            summary.accessible_objects += 1

    summary.overall_access_level = most_permissive(levels)
    return summary
