"""
Entitlement API routes.

The organization's enabled features and plan, plus super-admin
administration of per-plan feature rows.
"""
from typing import Annotated, List
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.core.exceptions import NotFoundError
from app.features.access.dependencies import get_access_context, require_super_admin
from app.features.access.facade import AccessContext
from app.features.entitlements import resolver
from app.features.entitlements.schemas import (
    EnabledFeaturesResponse,
    FeatureResponse,
    PlanFeatureStatusResponse,
    PlanFeatureUpdate,
    PlanResponse,
)


router = APIRouter()


@router.get("/features", response_model=EnabledFeaturesResponse)
async def get_enabled_features(
    ctx: Annotated[AccessContext, Depends(get_access_context)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Features enabled for the caller's organization."""
    if ctx.organization_id is None:
        raise NotFoundError(f"User {ctx.user_id} has no organization")
    plan = await resolver.get_effective_plan(db, ctx.organization_id)
    features = await resolver.resolve_enabled_features(db, ctx.organization_id)
    return EnabledFeaturesResponse(
        organization_id=ctx.organization_id,
        plan=PlanResponse.model_validate(plan) if plan is not None else None,
        features=sorted(features),
    )


@router.get("/catalog", response_model=List[FeatureResponse])
async def list_feature_catalog(
    _ctx: Annotated[AccessContext, Depends(get_access_context)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Every feature of the catalog, active or not."""
    return await resolver.list_features(db)


@router.get("/plans/{plan_id}/features", response_model=List[PlanFeatureStatusResponse])
async def list_plan_features(
    plan_id: str,
    _admin: Annotated[AccessContext, Depends(require_super_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Resolved state of every feature for a plan (super admin only)."""
    return await resolver.list_plan_features(db, plan_id)


@router.put("/plans/{plan_id}/features/{feature_name}", response_model=PlanFeatureStatusResponse)
async def set_plan_feature(
    plan_id: str,
    feature_name: str,
    update: PlanFeatureUpdate,
    _admin: Annotated[AccessContext, Depends(require_super_admin)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Enable or disable a feature for a plan (super admin only)."""
    await resolver.set_plan_feature(db, plan_id, feature_name, update.is_enabled)
    await db.commit()
    statuses = await resolver.resolve_plan_features(db, await resolver.get_plan(db, plan_id))
    return statuses[feature_name]
