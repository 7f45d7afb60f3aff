"""
Navigation API routes.

GET /navigation returns the tree visible to the caller. The item and
override routes are administration endpoints.
"""
from typing import Annotated, List
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.features.access.dependencies import get_access_context, require_profile_admin, require_super_admin
from app.features.access.facade import AccessContext
from app.features.profiles.models import Profile
from app.features.profiles.service import ensure_can_manage_organization
from app.features.ui import navigation
from app.features.ui.schemas import (
    NavigationItemResponse,
    NavigationItemUpsert,
    NavigationNodeResponse,
    NavigationOverrideResponse,
    NavigationOverrideUpdate,
    NavigationParentUpdate,
)


router = APIRouter()


@router.get("", response_model=List[NavigationNodeResponse])
async def get_navigation(
    ctx: Annotated[AccessContext, Depends(get_access_context)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Navigation tree visible to the current user."""
    return await navigation.resolve_navigation(db, ctx)


@router.get("/items", response_model=List[NavigationItemResponse])
async def list_navigation_items(
    _admin: Annotated[AccessContext, Depends(require_super_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Every navigation item, active or not (super admin only)."""
    return await navigation.list_navigation_items(db)


@router.put("/items/{key}", response_model=NavigationItemResponse)
async def upsert_navigation_item(
    key: str,
    item: NavigationItemUpsert,
    _admin: Annotated[AccessContext, Depends(require_super_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Create or update a navigation item (super admin only)."""
    db_item = await navigation.upsert_navigation_item(db, key, **item.model_dump(exclude_unset=True))
    await db.commit()
    return db_item


@router.put("/items/{key}/parent", response_model=NavigationItemResponse)
async def set_navigation_parent(
    key: str,
    update: NavigationParentUpdate,
    _admin: Annotated[AccessContext, Depends(require_super_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Move an item under another one. Cycles are rejected."""
    db_item = await navigation.set_navigation_parent(db, key, update.parent_key)
    await db.commit()
    return db_item


@router.put("/items/{key}/profiles/{profile_id}", response_model=NavigationOverrideResponse)
async def set_profile_override(
    key: str,
    update: NavigationOverrideUpdate,
    profile: Annotated[Profile, Depends(require_profile_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Enable, hide or re-order an item for one profile."""
    row = await navigation.set_profile_navigation_override(
        db, profile.id, key, **update.model_dump(exclude_unset=True)
    )
    await db.commit()
    return row


@router.put("/items/{key}/organizations/{organization_id}", response_model=NavigationOverrideResponse)
async def set_organization_override(
    key: str,
    organization_id: str,
    update: NavigationOverrideUpdate,
    ctx: Annotated[AccessContext, Depends(get_access_context)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Enable, hide or re-order an item for a whole organization."""
    await ensure_can_manage_organization(db, ctx, organization_id)
    row = await navigation.set_organization_navigation_override(
        db, organization_id, key, **update.model_dump(exclude_unset=True)
    )
    await db.commit()
    return row
