"""
Access decision API routes.

Lets clients ask the same questions route guards ask, for the current user.
"""
from typing import Annotated
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.features.access import facade
from app.features.access.dependencies import get_access_context
from app.features.access.facade import AccessContext
from app.features.access.schemas import (
    AccessDecisionResponse,
    ActionAccessRequest,
    FeatureAccessRequest,
    ObjectAccessRequest,
    PermissionMatrixResponse,
)
from app.features.entitlements.schemas import QuotaStatusResponse


router = APIRouter()


@router.post("/object", response_model=AccessDecisionResponse)
async def check_object_access(
    request: ObjectAccessRequest,
    ctx: Annotated[AccessContext, Depends(get_access_context)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    allowed = await facade.can_access_object(db, ctx, request.object_type, request.action)
    return AccessDecisionResponse(allowed=allowed)


@router.post("/feature", response_model=AccessDecisionResponse)
async def check_feature_access(
    request: FeatureAccessRequest,
    ctx: Annotated[AccessContext, Depends(get_access_context)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    allowed = await facade.can_access_feature(db, ctx, request.feature_key, request.permission_name)
    return AccessDecisionResponse(allowed=allowed)


@router.post("/action", response_model=AccessDecisionResponse)
async def check_action_access(
    request: ActionAccessRequest,
    ctx: Annotated[AccessContext, Depends(get_access_context)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    allowed = await facade.can_perform_action(db, ctx, request.permission_name)
    return AccessDecisionResponse(allowed=allowed)


@router.get("/quota/{resource_kind}", response_model=QuotaStatusResponse)
async def check_quota(
    resource_kind: str,
    ctx: Annotated[AccessContext, Depends(get_access_context)],
    db: Annotated[AsyncSession, Depends(get_db)],
    increment: int = Query(1, ge=1),
):
    """Would creating `increment` more resources stay within the plan?"""
    quota = await facade.check_quota(db, ctx, resource_kind, increment)
    return QuotaStatusResponse.model_validate(quota)


@router.get("/matrix", response_model=PermissionMatrixResponse)
async def get_permission_matrix(
    ctx: Annotated[AccessContext, Depends(get_access_context)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Objects, features, buttons and navigation for the current user."""
    return await facade.build_permission_matrix(db, ctx)
