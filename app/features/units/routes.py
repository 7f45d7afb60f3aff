"""
Unit and tenant API routes.

Creation is guarded by the object permission of the caller's profile and by
the plan quota of the caller's organization.
"""
from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List
from fastapi import APIRouter, Depends, status
from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db
from app.core.exceptions import NotFoundError, ValidationError
from app.features.access.dependencies import (
    require_action,
    require_any_access,
    require_feature,
    require_object_access,
)
from app.features.access.facade import AccessContext
from app.features.entitlements.quota import ResourceKind, quota_slot
from app.features.profiles.models import ObjectAction, ObjectType
from app.features.profiles.resolver import filter_readable_fields
from app.features.units.models import Property, Tenant, Unit
from app.features.units.schemas import TenantCreate, UnitCreate, UnitResponse
from app.utils import get_logger


log = get_logger(__name__)
router = APIRouter()


def _require_organization(ctx: AccessContext) -> str:
    if ctx.organization_id is None:
        raise ValidationError("User has no organization", field="organization_id")
    return ctx.organization_id


def _tenant_record(tenant: Tenant) -> Dict[str, Any]:
    return {
        "id": tenant.id,
        "organization_id": tenant.organization_id,
        "first_name": tenant.first_name,
        "last_name": tenant.last_name,
        "email": tenant.email,
        "has_extranet_access": tenant.has_extranet_access,
    }


async def _visible_tenant(db: AsyncSession, ctx: AccessContext, tenant: Tenant) -> Dict[str, Any]:
    record = _tenant_record(tenant)
    if ctx.is_super_admin:
        return record
    return await filter_readable_fields(db, ctx.profile_id, ObjectType.TENANT, record)


@router.post("", response_model=UnitResponse, status_code=status.HTTP_201_CREATED)
async def create_unit(
    unit_data: UnitCreate,
    ctx: Annotated[AccessContext, Depends(require_object_access(ObjectType.UNIT, ObjectAction.CREATE))],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Create a unit in the caller's organization.

    Raises:
        ForbiddenError: without Unit create, or when the plan's lot limit is reached
        NotFoundError: if property_id does not belong to the organization
    """
    organization_id = _require_organization(ctx)

    if unit_data.property_id:
        owner = await db.scalar(
            select(Property.organization_id).where(
                and_(Property.id == unit_data.property_id, Property.deleted_at.is_(None))
            )
        )
        if owner != organization_id:
            raise NotFoundError(f"Property {unit_data.property_id} not found")

    async with quota_slot(db, organization_id, ResourceKind.UNITS):
        unit = Unit(organization_id=organization_id, **unit_data.model_dump())
        db.add(unit)
    log.info(f"Created unit {unit.id} for org {organization_id}")
    return unit


@router.get("", response_model=List[UnitResponse])
async def list_units(
    ctx: Annotated[AccessContext, Depends(require_object_access(ObjectType.UNIT, ObjectAction.READ))],
    db: Annotated[AsyncSession, Depends(get_db)],
    skip: int = 0,
    limit: int = 100,
):
    organization_id = _require_organization(ctx)
    result = await db.execute(
        select(Unit)
        .where(and_(Unit.organization_id == organization_id, Unit.deleted_at.is_(None)))
        .order_by(Unit.unit_number)
        .offset(skip)
        .limit(limit)
    )
    return result.scalars().all()


@router.post("/tenants", status_code=status.HTTP_201_CREATED)
async def create_tenant(
    tenant_data: TenantCreate,
    ctx: Annotated[AccessContext, Depends(require_object_access(ObjectType.TENANT, ObjectAction.CREATE))],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Create a tenant. Extranet access counts against the plan's extranet tenant limit."""
    organization_id = _require_organization(ctx)
    tenant = Tenant(organization_id=organization_id, **tenant_data.model_dump())

    if tenant_data.has_extranet_access:
        async with quota_slot(db, organization_id, ResourceKind.EXTRANET_TENANTS):
            db.add(tenant)
    else:
        db.add(tenant)
        await db.commit()
    return await _visible_tenant(db, ctx, tenant)


async def _get_unit(db: AsyncSession, organization_id: str | None, unit_id: str) -> Unit:
    unit = await db.scalar(
        select(Unit).where(
            and_(Unit.id == unit_id, Unit.organization_id == organization_id, Unit.deleted_at.is_(None))
        )
    )
    if unit is None:
        raise NotFoundError(f"Unit {unit_id} not found")
    return unit


@router.get("/tenants/extranet")
async def list_extranet_tenants(
    ctx: Annotated[AccessContext, Depends(require_feature("extranet_tenant", "canViewAllTenants"))],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Tenants with extranet access. Needs the extranet feature and canViewAllTenants."""
    result = await db.execute(
        select(Tenant)
        .where(
            and_(
                Tenant.organization_id == ctx.organization_id,
                Tenant.has_extranet_access.is_(True),
                Tenant.deleted_at.is_(None),
            )
        )
        .order_by(Tenant.last_name, Tenant.first_name)
    )
    return [await _visible_tenant(db, ctx, tenant) for tenant in result.scalars().all()]


@router.get("/tenants/{tenant_id}")
async def get_tenant(
    tenant_id: str,
    ctx: Annotated[AccessContext, Depends(require_object_access(ObjectType.TENANT, ObjectAction.READ))],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """A tenant with the fields the caller's profile cannot read removed."""
    tenant = await db.scalar(
        select(Tenant).where(
            and_(
                Tenant.id == tenant_id,
                Tenant.organization_id == ctx.organization_id,
                Tenant.deleted_at.is_(None),
            )
        )
    )
    if tenant is None:
        raise NotFoundError(f"Tenant {tenant_id} not found")
    return await _visible_tenant(db, ctx, tenant)


@router.get("/{unit_id}", response_model=UnitResponse)
async def get_unit(
    unit_id: str,
    ctx: Annotated[AccessContext, Depends(require_any_access(
        objects=[(ObjectType.UNIT, ObjectAction.READ)],
        actions=["canViewAllUnits"],
    ))],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return await _get_unit(db, ctx.organization_id, unit_id)


@router.delete("/{unit_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_unit(
    unit_id: str,
    ctx: Annotated[AccessContext, Depends(require_action("canDeleteUnits"))],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Soft delete. The unit stops counting against the lot limit."""
    unit = await _get_unit(db, ctx.organization_id, unit_id)
    unit.deleted_at = datetime.now(timezone.utc)
    await db.commit()
    log.info(f"Deleted unit {unit_id} for org {ctx.organization_id}")
