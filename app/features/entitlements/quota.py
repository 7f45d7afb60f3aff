"""
Quota enforcement against plan limits.

Counts are always read live from the resource tables. check_quota and the
insert that follows are two steps; quota_slot serializes them per
organization and resource kind inside this process. Two processes can still
both pass the check and overshoot the limit.
"""
import asyncio
import enum
import weakref
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Dict, Optional, Tuple

from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import config
from app.core.exceptions import NotFoundError, QuotaExceededError, ValidationError
from app.features.entitlements.resolver import get_effective_plan
from app.features.units.models import Tenant, Unit
from app.features.users.models import User
from app.utils import get_logger


log = get_logger(__name__)


class ResourceKind(str, enum.Enum):
    UNITS = "units"
    USERS = "users"
    EXTRANET_TENANTS = "extranet_tenants"


# resource kind -> Plan column holding its limit
PLAN_LIMIT_FIELDS: Dict[ResourceKind, str] = {
    ResourceKind.UNITS: "max_lots",
    ResourceKind.USERS: "max_users",
    ResourceKind.EXTRANET_TENANTS: "max_extranet_tenants",
}


@dataclass(frozen=True)
class QuotaStatus:
    allowed: bool
    current_count: int
    limit: Optional[int]
    resource_kind: str
    requested: int = 1

    @property
    def unlimited(self) -> bool:
        return is_unlimited(self.limit)

    @property
    def remaining(self) -> Optional[int]:
        if self.unlimited:
            return None
        return max(self.limit - self.current_count, 0)


def is_unlimited(limit: Optional[int]) -> bool:
    return limit is None or limit < 0


def parse_resource_kind(value) -> ResourceKind:
    try:
        return ResourceKind(value)
    except ValueError:
        raise ValidationError(f"Unknown resource kind: {value!r}", field="resource_kind")


async def count_usage(db: AsyncSession, organization_id: str, resource_kind: ResourceKind) -> int:
    """Live count of the resources of one kind held by an organization."""
    if resource_kind == ResourceKind.UNITS:
        stmt = select(func.count(Unit.id)).where(
            and_(Unit.organization_id == organization_id, Unit.deleted_at.is_(None))
        )
    elif resource_kind == ResourceKind.USERS:
        stmt = select(func.count(User.id)).where(
            and_(User.organization_id == organization_id, User.is_active.is_(True))
        )
    else:
        stmt = select(func.count(Tenant.id)).where(
            and_(
                Tenant.organization_id == organization_id,
                Tenant.has_extranet_access.is_(True),
                Tenant.deleted_at.is_(None),
            )
        )
    result = await db.execute(stmt)
    return result.scalar_one()


async def check_quota(
    db: AsyncSession,
    organization_id: str,
    resource_kind: ResourceKind | str,
    increment: int = 1,
) -> QuotaStatus:
    """
    Would adding `increment` resources stay within the plan limit?

    A limit of None or -1 is unlimited. Raises NotFoundError when the
    organization is unknown or has no plan at all.
    """
    resource_kind = parse_resource_kind(resource_kind)
    if increment < 0:
        raise ValidationError("increment must be >= 0", field="increment")

    plan = await get_effective_plan(db, organization_id)
    if plan is None:
        raise NotFoundError(f"Organization {organization_id} has no plan")

    limit = getattr(plan, PLAN_LIMIT_FIELDS[resource_kind])
    current = await count_usage(db, organization_id, resource_kind)
    allowed = is_unlimited(limit) or current + increment <= limit

    log.debug(
        f"Quota {resource_kind.value} for org {organization_id}: "
        f"{current}+{increment}/{limit} allowed={allowed}"
    )
    return QuotaStatus(
        allowed=allowed,
        current_count=current,
        limit=limit,
        resource_kind=resource_kind.value,
        requested=increment,
    )


async def enforce_quota(
    db: AsyncSession,
    organization_id: str,
    resource_kind: ResourceKind | str,
    increment: int = 1,
) -> QuotaStatus:
    """check_quota, raising QuotaExceededError when not allowed."""
    quota = await check_quota(db, organization_id, resource_kind, increment)
    if not quota.allowed:
        log.warning(
            f"Quota exceeded for org {organization_id}: {quota.resource_kind} "
            f"{quota.current_count}/{quota.limit}"
        )
        raise QuotaExceededError(quota.resource_kind, quota.current_count, quota.limit, increment)
    return quota


# ============================================================================
# In-process serialization
# ============================================================================

# Entries vanish once no holder or waiter references the lock
_locks: "weakref.WeakValueDictionary[Tuple[str, str], asyncio.Lock]" = weakref.WeakValueDictionary()


def _lock_for(organization_id: str, resource_kind: ResourceKind) -> asyncio.Lock:
    key = (organization_id, resource_kind.value)
    lock = _locks.get(key)
    if lock is None:
        lock = asyncio.Lock()
        _locks[key] = lock
    return lock


@asynccontextmanager
async def quota_slot(
    db: AsyncSession,
    organization_id: str,
    resource_kind: ResourceKind | str,
    increment: int = 1,
) -> AsyncIterator[QuotaStatus]:
    """
    Enforce the quota and hold it while the caller inserts.

    The session is committed on a clean exit so the next holder of the slot
    counts the new rows.

    Usage:
        async with quota_slot(db, org_id, "units"):
            db.add(Unit(...))
    """
    resource_kind = parse_resource_kind(resource_kind)

    if not config.QUOTA_SERIALIZE:
        quota = await enforce_quota(db, organization_id, resource_kind, increment)
        yield quota
        await db.commit()
        return

    lock = _lock_for(organization_id, resource_kind)
    async with lock:
        quota = await enforce_quota(db, organization_id, resource_kind, increment)
        yield quota
        await db.commit()
