"""
Button synchronizer.

Keeps ProfileButtonPermission rows in line with the profile's object
permissions. Rows flagged is_override belong to administrators and are never
rewritten by a sync; everything else is recomputed from the object grant the
button's action maps to.
"""
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationError
from app.features.profiles.access_levels import NO_ACCESS, ObjectCapabilities
from app.features.profiles.models import ObjectPermission, ObjectType, Profile
from app.features.profiles.resolver import capabilities_from_row, get_profile
from app.features.ui.models import ButtonAction, ButtonDefinition, ProfileButtonPermission
from app.utils import get_logger


log = get_logger(__name__)


_ACTION_TO_FIELD = {
    ButtonAction.CREATE: "can_create",
    ButtonAction.READ: "can_read",
    ButtonAction.VIEW: "can_read",
    ButtonAction.EDIT: "can_edit",
    ButtonAction.UPDATE: "can_edit",
    ButtonAction.DELETE: "can_delete",
}

OVERRIDE_FIELDS = ("is_enabled", "is_visible", "custom_label", "custom_icon")


def permission_field_for_action(action: ButtonAction | str) -> str:
    """
    Map a button verb to the object capability that enables it.

    export, import, print and custom buttons follow read access.
    """
    try:
        action = ButtonAction(action)
    except ValueError:
        raise ValidationError(f"Unknown button action: {action!r}", field="action")
    return _ACTION_TO_FIELD.get(action, "can_read")


def button_enabled_for(button: ButtonDefinition, capabilities: ObjectCapabilities) -> bool:
    return getattr(capabilities, permission_field_for_action(button.action))


# ============================================================================
# Loading
# ============================================================================

async def list_active_buttons(db: AsyncSession) -> List[ButtonDefinition]:
    result = await db.execute(
        select(ButtonDefinition)
        .where(ButtonDefinition.is_active.is_(True))
        .order_by(ButtonDefinition.key)
    )
    return list(result.scalars().all())


async def get_active_button(db: AsyncSession, button_key: str) -> ButtonDefinition:
    """Get an active button by key or raise NotFoundError."""
    result = await db.execute(
        select(ButtonDefinition).where(
            and_(ButtonDefinition.key == button_key, ButtonDefinition.is_active.is_(True))
        )
    )
    button = result.scalar_one_or_none()
    if button is None:
        raise NotFoundError(f"Button {button_key} not found")
    return button


async def load_object_capabilities(db: AsyncSession, profile_id: str) -> Dict[ObjectType, ObjectCapabilities]:
    """
    Snapshot of every stored object permission of a profile.

    Empty for an inactive profile, matching resolve_object_permission.
    """
    profile = await get_profile(db, profile_id)
    if not profile.is_active:
        return {}
    result = await db.execute(
        select(ObjectPermission).where(ObjectPermission.profile_id == profile_id)
    )
    return {row.object_type: capabilities_from_row(row) for row in result.scalars().all()}


async def _load_rows(db: AsyncSession, profile_id: str) -> Dict[str, ProfileButtonPermission]:
    result = await db.execute(
        select(ProfileButtonPermission).where(ProfileButtonPermission.profile_id == profile_id)
    )
    return {row.button_key: row for row in result.scalars().all()}


async def _list_rows(db: AsyncSession, profile_id: str) -> List[ProfileButtonPermission]:
    result = await db.execute(
        select(ProfileButtonPermission)
        .where(ProfileButtonPermission.profile_id == profile_id)
        .order_by(ProfileButtonPermission.button_key)
    )
    return list(result.scalars().all())


# ============================================================================
# Synchronization
# ============================================================================

async def sync_button_permissions(db: AsyncSession, profile_id: str) -> List[ProfileButtonPermission]:
    """
    Recompute the non-override button rows of a profile.

    Running it twice without an intervening permission change writes
    nothing new. Returns every button row of the profile, ordered by key.
    """
    await get_profile(db, profile_id)

    capabilities = await load_object_capabilities(db, profile_id)
    rows = await _load_rows(db, profile_id)

    created = updated = 0
    for button in await list_active_buttons(db):
        enabled = button_enabled_for(button, capabilities.get(button.object_type, NO_ACCESS))
        row = rows.get(button.key)

        if row is None:
            db.add(ProfileButtonPermission(
                profile_id=profile_id,
                button_key=button.key,
                is_enabled=enabled,
                is_visible=True,
                is_override=False,
            ))
            created += 1
        elif not row.is_override and (not row.is_visible or row.is_enabled != enabled):
            row.is_enabled = enabled
            row.is_visible = True
            updated += 1

    await db.flush()
    log.info(f"Synced buttons for profile {profile_id}: {created} created, {updated} updated")
    return await _list_rows(db, profile_id)


async def sync_all_profiles(db: AsyncSession) -> int:
    """Sync buttons for every active profile. Returns the number of profiles synced."""
    result = await db.execute(
        select(Profile.id).where(Profile.is_active.is_(True)).order_by(Profile.id)
    )
    profile_ids = list(result.scalars().all())
    for profile_id in profile_ids:
        await sync_button_permissions(db, profile_id)
    return len(profile_ids)


# ============================================================================
# Overrides
# ============================================================================

async def set_button_override(
    db: AsyncSession,
    profile_id: str,
    button_key: str,
    **fields: Any,
) -> ProfileButtonPermission:
    """
    Pin the state of one button for a profile.

    Accepts any of is_enabled, is_visible, custom_label, custom_icon.
    Fields not given keep their current value (or the computed default for
    a new row). The row is always marked as an override.
    """
    unknown = set(fields) - set(OVERRIDE_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown button fields: {sorted(unknown)}")

    await get_profile(db, profile_id)
    button = await get_active_button(db, button_key)

    result = await db.execute(
        select(ProfileButtonPermission).where(
            and_(
                ProfileButtonPermission.profile_id == profile_id,
                ProfileButtonPermission.button_key == button_key,
            )
        )
    )
    row = result.scalar_one_or_none()
    if row is None:
        capabilities = await load_object_capabilities(db, profile_id)
        row = ProfileButtonPermission(
            profile_id=profile_id,
            button_key=button_key,
            is_enabled=button_enabled_for(button, capabilities.get(button.object_type, NO_ACCESS)),
            is_visible=True,
        )
        db.add(row)

    for key, value in fields.items():
        if value is None and key in ("is_enabled", "is_visible"):
            continue
        setattr(row, key, value)
    row.is_override = True

    await db.flush()
    log.info(f"Button override set for profile {profile_id} on {button_key}: {fields}")
    return row


async def reset_button_override(db: AsyncSession, profile_id: str, button_key: str) -> ProfileButtonPermission:
    """Drop the override of one button and recompute it from the object permission."""
    await get_profile(db, profile_id)
    button = await get_active_button(db, button_key)

    result = await db.execute(
        select(ProfileButtonPermission).where(
            and_(
                ProfileButtonPermission.profile_id == profile_id,
                ProfileButtonPermission.button_key == button_key,
            )
        )
    )
    row = result.scalar_one_or_none()
    if row is None:
        row = ProfileButtonPermission(profile_id=profile_id, button_key=button_key)
        db.add(row)

    capabilities = await load_object_capabilities(db, profile_id)
    row.is_enabled = button_enabled_for(button, capabilities.get(button.object_type, NO_ACCESS))
    row.is_visible = True
    row.custom_label = None
    row.custom_icon = None
    row.is_override = False

    await db.flush()
    log.info(f"Button override reset for profile {profile_id} on {button_key}")
    return row


async def put_button_permissions(
    db: AsyncSession,
    profile_id: str,
    items: Iterable[Dict[str, Any]],
) -> List[ProfileButtonPermission]:
    """
    Apply a batch of overrides. Each item needs a button_key plus any of
    the override fields. Returns every button row of the profile.
    """
    for item in items:
        item = dict(item)
        button_key = item.pop("button_key", None)
        if not button_key:
            raise ValidationError("button_key is required", field="button_key")
        await set_button_override(db, profile_id, button_key, **item)
    return await _list_rows(db, profile_id)


# ============================================================================
# Read model
# ============================================================================

@dataclass
class ButtonPermissionView:
    """A button with its effective state for one profile."""
    button: ButtonDefinition
    is_enabled: bool
    is_visible: bool
    custom_label: Optional[str]
    custom_icon: Optional[str]
    is_override: bool
    is_stored: bool
    object_permission: ObjectCapabilities

    @property
    def key(self) -> str:
        return self.button.key


async def get_button_permissions(db: AsyncSession, profile_id: str) -> List[ButtonPermissionView]:
    """
    Every active button with the profile's row, or the computed defaults
    when no row was synced yet. Never writes.
    """
    await get_profile(db, profile_id)

    capabilities = await load_object_capabilities(db, profile_id)
    rows = await _load_rows(db, profile_id)

    views = []
    for button in await list_active_buttons(db):
        snapshot = capabilities.get(button.object_type, NO_ACCESS)
        row = rows.get(button.key)
        if row is None:
            views.append(ButtonPermissionView(
                button=button,
                is_enabled=button_enabled_for(button, snapshot),
                is_visible=True,
                custom_label=None,
                custom_icon=None,
                is_override=False,
                is_stored=False,
                object_permission=snapshot,
            ))
        else:
            views.append(ButtonPermissionView(
                button=button,
                is_enabled=row.is_enabled,
                is_visible=row.is_visible,
                custom_label=row.custom_label,
                custom_icon=row.custom_icon,
                is_override=row.is_override,
                is_stored=True,
                object_permission=snapshot,
            ))
    return views
