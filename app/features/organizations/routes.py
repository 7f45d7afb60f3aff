"""
Organization feature routes.
"""
from typing import Annotated
from fastapi import APIRouter, Depends, status
from sqlalchemy import select, update, and_
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.core.exceptions import ValidationError
from app.features.access.dependencies import get_access_context, require_super_admin
from app.features.access.facade import AccessContext
from app.features.entitlements.models import LIVE_SUBSCRIPTION_STATUSES, Subscription, SubscriptionStatus
from app.features.entitlements.resolver import get_active_subscription, get_plan
from app.features.organizations.dependencies import ensure_member, get_organization_by_id
from app.features.organizations.models import Organization
from app.features.organizations.schemas import (
    OrganizationCreate,
    OrganizationResponse,
    SubscriptionCreate,
    SubscriptionResponse,
)
from app.features.profiles.service import create_default_profiles
from app.utils import get_logger


log = get_logger(__name__)
router = APIRouter(tags=["organizations"])


@router.post("", response_model=OrganizationResponse, status_code=status.HTTP_201_CREATED)
async def create_organization(
    org_data: OrganizationCreate,
    _admin: Annotated[AccessContext, Depends(require_super_admin)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Create a new organization (super admin only)."""
    if org_data.subdomain:
        existing = await db.scalar(
            select(Organization.id).where(Organization.subdomain == org_data.subdomain)
        )
        if existing:
            raise ValidationError("Subdomain already in use", field="subdomain")

    organization = Organization(**org_data.model_dump(exclude={"with_default_profiles"}))
    db.add(organization)
    await db.flush()

    if org_data.with_default_profiles:
        await create_default_profiles(db, organization.id)

    await db.commit()
    log.info(f"Created organization {organization.id}")
    return organization


@router.get("/{organization_id}", response_model=OrganizationResponse)
async def get_organization(
    organization_id: str,
    ctx: Annotated[AccessContext, Depends(get_access_context)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Get an organization. Members and super admins only."""
    ensure_member(ctx, organization_id)
    return await get_organization_by_id(db, organization_id)


@router.get("/{organization_id}/subscription", response_model=SubscriptionResponse | None)
async def get_subscription(
    organization_id: str,
    ctx: Annotated[AccessContext, Depends(get_access_context)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """The live subscription, or null when the fallback plan applies."""
    ensure_member(ctx, organization_id)
    await get_organization_by_id(db, organization_id)
    return await get_active_subscription(db, organization_id)


@router.post(
    "/{organization_id}/subscriptions",
    response_model=SubscriptionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_subscription(
    organization_id: str,
    sub_data: SubscriptionCreate,
    _admin: Annotated[AccessContext, Depends(require_super_admin)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Bind the organization to a plan (super admin only)."""
    await get_organization_by_id(db, organization_id)
    plan = await get_plan(db, sub_data.plan_id)
    if not plan.is_active:
        raise ValidationError(f"Plan {plan.name} is not active", field="plan_id")

    if sub_data.status in LIVE_SUBSCRIPTION_STATUSES:
        await db.execute(
            update(Subscription)
            .where(
                and_(
                    Subscription.organization_id == organization_id,
                    Subscription.status.in_(LIVE_SUBSCRIPTION_STATUSES),
                )
            )
            .values(status=SubscriptionStatus.CANCELED)
        )

    subscription = Subscription(organization_id=organization_id, **sub_data.model_dump())
    db.add(subscription)
    await db.commit()
    log.info(f"Organization {organization_id} subscribed to plan {plan.name}")
    return subscription
