"""
Profile management API routes.

Provides endpoints for profiles and their object, field, action and button
permissions. Reads are open to members of the profile's organization;
writes require canManageProfiles in that organization, and global profiles
are writable by super administrators only.
"""
from typing import Annotated, List, Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.features.access.dependencies import get_access_context, require_profile_admin, require_super_admin
from app.features.access.facade import AccessContext
from app.features.profiles.models import Profile
from app.features.profiles import resolver, service
from app.features.profiles.schemas import (
    ActionPermissionResponse,
    ActionPermissionsUpdate,
    ButtonPermissionResponse,
    ButtonPermissionsUpdate,
    ButtonRowResponse,
    DefaultProfilesRequest,
    FieldPermissionResponse,
    FieldPermissionsUpdate,
    ObjectCapabilitiesResponse,
    ObjectPermissionResponse,
    ObjectPermissionsUpdate,
    ProfileAccessSummaryResponse,
    ProfileCreate,
    ProfileResponse,
    ProfileUpdate,
)
from app.features.ui import buttons
from app.utils import get_logger


log = get_logger(__name__)
router = APIRouter()


def _button_response(view: buttons.ButtonPermissionView) -> ButtonPermissionResponse:
    button = view.button
    return ButtonPermissionResponse(
        key=button.key,
        name=button.name,
        label=button.label,
        object_type=button.object_type,
        action=button.action,
        icon=button.icon,
        variant=button.variant,
        required_feature=button.required_feature,
        is_enabled=view.is_enabled,
        is_visible=view.is_visible,
        custom_label=view.custom_label,
        custom_icon=view.custom_icon,
        is_override=view.is_override,
        is_stored=view.is_stored,
        object_permission=ObjectCapabilitiesResponse(**view.object_permission.as_dict()),
    )


# ============================================================================
# Profile Routes
# ============================================================================

@router.get("", response_model=List[ProfileResponse])
async def list_profiles(
    ctx: Annotated[AccessContext, Depends(get_access_context)],
    db: Annotated[AsyncSession, Depends(get_db)],
    organization_id: Optional[str] = None,
    include_global: bool = True,
):
    """List the profiles of the caller's organization (any organization for super admins)."""
    if not ctx.is_super_admin or organization_id is None:
        organization_id = ctx.organization_id
    return await service.list_profiles(db, organization_id, include_global)


@router.post("", response_model=ProfileResponse, status_code=status.HTTP_201_CREATED)
async def create_profile(
    profile: ProfileCreate,
    ctx: Annotated[AccessContext, Depends(get_access_context)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Create a custom profile."""
    await service.ensure_can_manage_organization(db, ctx, profile.organization_id)
    db_profile = await service.create_profile(db, **profile.model_dump())
    await db.commit()
    return db_profile


@router.post("/defaults", response_model=List[ProfileResponse], status_code=status.HTTP_201_CREATED)
async def create_default_profiles(
    request: DefaultProfilesRequest,
    ctx: Annotated[AccessContext, Depends(get_access_context)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Create the Owner, Accountant, Agent and Viewer profiles if missing."""
    await service.ensure_can_manage_organization(db, ctx, request.organization_id)
    profiles = await service.create_default_profiles(db, request.organization_id)
    await db.commit()
    return profiles


@router.post("/buttons/sync")
async def sync_all_buttons(
    _admin: Annotated[AccessContext, Depends(require_super_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Re-sync the buttons of every active profile (super admin only)."""
    count = await buttons.sync_all_profiles(db)
    await db.commit()
    return {"profiles_synced": count}


@router.get("/{profile_id}", response_model=ProfileResponse)
async def get_profile(
    profile_id: str,
    ctx: Annotated[AccessContext, Depends(get_access_context)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Get a profile by ID."""
    return await service.ensure_can_view_profile(db, ctx, profile_id)


@router.patch("/{profile_id}", response_model=ProfileResponse)
async def update_profile(
    profile_update: ProfileUpdate,
    profile: Annotated[Profile, Depends(require_profile_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Update a profile."""
    db_profile = await service.update_profile(db, profile.id, **profile_update.model_dump(exclude_unset=True))
    await db.commit()
    return db_profile


@router.delete("/{profile_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_profile(
    profile: Annotated[Profile, Depends(require_profile_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Delete a custom profile that no user is assigned to."""
    await service.delete_profile(db, profile.id)
    await db.commit()


@router.get("/{profile_id}/access-summary", response_model=ProfileAccessSummaryResponse)
async def get_access_summary(
    profile_id: str,
    ctx: Annotated[AccessContext, Depends(get_access_context)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Overall and per-object access levels of a profile."""
    await service.ensure_can_view_profile(db, ctx, profile_id)
    return await resolver.summarize_profile_access(db, profile_id)


# ============================================================================
# Object Permission Routes
# ============================================================================

@router.get("/{profile_id}/object-permissions", response_model=List[ObjectPermissionResponse])
async def get_object_permissions(
    profile_id: str,
    ctx: Annotated[AccessContext, Depends(get_access_context)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """One entry per object type; types without a row report no access."""
    await service.ensure_can_view_profile(db, ctx, profile_id)
    return await resolver.get_object_permissions(db, profile_id)


@router.put("/{profile_id}/object-permissions", response_model=List[ObjectPermissionResponse])
async def put_object_permissions(
    update: ObjectPermissionsUpdate,
    profile: Annotated[Profile, Depends(require_profile_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Upsert object permissions; non-override buttons are re-synced."""
    rows = await service.put_object_permissions(
        db, profile.id, [item.model_dump() for item in update.permissions]
    )
    await db.commit()
    return rows


# ============================================================================
# Field Permission Routes
# ============================================================================

@router.get("/{profile_id}/field-permissions", response_model=List[FieldPermissionResponse])
async def get_field_permissions(
    profile_id: str,
    ctx: Annotated[AccessContext, Depends(get_access_context)],
    db: Annotated[AsyncSession, Depends(get_db)],
    object_type: Optional[str] = None,
):
    """Stored field permissions, optionally for one object type."""
    await service.ensure_can_view_profile(db, ctx, profile_id)
    return await resolver.get_field_permissions(db, profile_id, object_type)


@router.put("/{profile_id}/field-permissions", response_model=List[FieldPermissionResponse])
async def put_field_permissions(
    update: FieldPermissionsUpdate,
    profile: Annotated[Profile, Depends(require_profile_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Upsert field permissions."""
    rows = await service.put_field_permissions(
        db, profile.id, [item.model_dump() for item in update.permissions]
    )
    await db.commit()
    return rows


# ============================================================================
# Action Permission Routes
# ============================================================================

@router.get("/{profile_id}/action-permissions", response_model=List[ActionPermissionResponse])
async def get_action_permissions(
    profile_id: str,
    ctx: Annotated[AccessContext, Depends(get_access_context)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Explicit named action grants of a profile."""
    await service.ensure_can_view_profile(db, ctx, profile_id)
    return await resolver.get_action_permissions(db, profile_id)


@router.put("/{profile_id}/action-permissions", response_model=List[ActionPermissionResponse])
async def put_action_permissions(
    update: ActionPermissionsUpdate,
    profile: Annotated[Profile, Depends(require_profile_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Upsert named action grants."""
    rows = await service.put_action_permissions(db, profile.id, update.grants)
    await db.commit()
    return rows


# ============================================================================
# Button Permission Routes
# ============================================================================

@router.get("/{profile_id}/button-permissions", response_model=List[ButtonPermissionResponse])
async def get_button_permissions(
    profile_id: str,
    ctx: Annotated[AccessContext, Depends(get_access_context)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Every active button with the profile's state and its object permission snapshot."""
    await service.ensure_can_view_profile(db, ctx, profile_id)
    views = await buttons.get_button_permissions(db, profile_id)
    return [_button_response(view) for view in views]


@router.put("/{profile_id}/button-permissions", response_model=List[ButtonRowResponse])
async def put_button_permissions(
    update: ButtonPermissionsUpdate,
    profile: Annotated[Profile, Depends(require_profile_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Pin button states. Every written row becomes an override."""
    rows = await buttons.put_button_permissions(
        db, profile.id, [item.model_dump(exclude_unset=True) for item in update.button_permissions]
    )
    await db.commit()
    return rows


@router.delete("/{profile_id}/button-permissions/{button_key}/override", response_model=ButtonRowResponse)
async def reset_button_override(
    button_key: str,
    profile: Annotated[Profile, Depends(require_profile_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Drop the override of one button and recompute it."""
    row = await buttons.reset_button_override(db, profile.id, button_key)
    await db.commit()
    return row


@router.post("/{profile_id}/buttons/sync", response_model=List[ButtonRowResponse])
async def sync_buttons(
    profile: Annotated[Profile, Depends(require_profile_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Recompute every non-override button row of the profile."""
    rows = await buttons.sync_button_permissions(db, profile.id)
    await db.commit()
    return rows
