"""
Feature gate resolution.

The effective plan of an organization is the plan of its most recent live
subscription, else the configured fallback plan. A feature is enabled when
the plan's PlanFeature row says so, or, without a row, when the plan's JSON
feature map says so. Inactive catalog features are never enabled.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Set

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import config
from app.core.exceptions import NotFoundError, ValidationError
from app.features.entitlements.models import (
    Feature,
    LIVE_SUBSCRIPTION_STATUSES,
    Plan,
    PlanFeature,
    Subscription,
)
from app.features.organizations.dependencies import get_organization_by_id
from app.utils import get_logger


log = get_logger(__name__)


_DISABLED_FLAGS = {"", "false", "no", "none", "off", "disabled", "0"}


def flag_enabled(value: Any) -> bool:
    """
    Interpret a value of a plan's feature map.

    Besides booleans, plans may carry strings such as "limited" or
    "unlimited" for tiered features; any non-negative string enables.
    """
    if isinstance(value, str):
        return value.strip().lower() not in _DISABLED_FLAGS
    return bool(value)


# ============================================================================
# Plans and subscriptions
# ============================================================================

async def get_plan(db: AsyncSession, plan_id: str) -> Plan:
    """Get a plan by ID or raise NotFoundError."""
    result = await db.execute(select(Plan).where(Plan.id == plan_id))
    plan = result.scalar_one_or_none()
    if plan is None:
        raise NotFoundError(f"Plan {plan_id} not found")
    return plan


async def get_plan_by_name(db: AsyncSession, name: str) -> Optional[Plan]:
    result = await db.execute(select(Plan).where(Plan.name == name))
    return result.scalar_one_or_none()


async def get_active_subscription(db: AsyncSession, organization_id: str) -> Optional[Subscription]:
    """Most recent subscription of the organization whose status is active, trialing or past_due."""
    result = await db.execute(
        select(Subscription)
        .where(
            and_(
                Subscription.organization_id == organization_id,
                Subscription.status.in_(LIVE_SUBSCRIPTION_STATUSES),
            )
        )
        .order_by(
            Subscription.current_period_start.desc().nulls_last(),
            Subscription.created_at.desc(),
            Subscription.id.desc(),
        )
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_effective_plan(db: AsyncSession, organization_id: str) -> Optional[Plan]:
    """
    Plan whose features and limits apply to the organization.

    Raises NotFoundError for an unknown organization. Returns None when the
    organization has no live subscription and no fallback plan exists.
    """
    await get_organization_by_id(db, organization_id)

    subscription = await get_active_subscription(db, organization_id)
    if subscription is not None:
        return await get_plan(db, subscription.plan_id)

    if config.FALLBACK_PLAN_NAME:
        plan = await get_plan_by_name(db, config.FALLBACK_PLAN_NAME)
        if plan is not None and plan.is_active:
            log.debug(f"Organization {organization_id} has no live subscription - using plan {plan.name}")
            return plan

    log.debug(f"Organization {organization_id} has no plan")
    return None


# ============================================================================
# Features
# ============================================================================

@dataclass
class PlanFeatureStatus:
    """Resolved state of one feature for one plan."""
    feature_name: str
    is_enabled: bool
    # "plan_feature", "plan_map" or "default"
    source: str
    display_name: Optional[str] = None
    category: Optional[str] = None
    is_active: bool = True


async def list_features(db: AsyncSession, include_inactive: bool = True) -> List[Feature]:
    stmt = select(Feature).order_by(Feature.name)
    if not include_inactive:
        stmt = stmt.where(Feature.is_active.is_(True))
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def resolve_plan_features(db: AsyncSession, plan: Plan) -> Dict[str, PlanFeatureStatus]:
    """State of every feature known to the catalog, the plan map or the plan's rows."""
    catalog = {feature.name: feature for feature in await list_features(db)}

    result = await db.execute(select(PlanFeature).where(PlanFeature.plan_id == plan.id))
    rows = {row.feature_name: row for row in result.scalars().all()}

    feature_map = plan.features or {}
    names = set(catalog) | set(rows) | set(feature_map)

    statuses = {}
    for name in sorted(names):
        if name in rows:
            enabled, source = rows[name].is_enabled, "plan_feature"
        elif name in feature_map:
            enabled, source = flag_enabled(feature_map[name]), "plan_map"
        else:
            enabled, source = False, "default"

        feature = catalog.get(name)
        active = feature.is_active if feature is not None else True
        statuses[name] = PlanFeatureStatus(
            feature_name=name,
            is_enabled=enabled and active,
            source=source,
            display_name=feature.display_name if feature is not None else None,
            category=feature.category if feature is not None else None,
            is_active=active,
        )
    return statuses


async def resolve_enabled_features(db: AsyncSession, organization_id: str) -> Set[str]:
    """Names of the features enabled for the organization. Empty without a plan."""
    plan = await get_effective_plan(db, organization_id)
    if plan is None:
        return set()
    statuses = await resolve_plan_features(db, plan)
    return {name for name, status in statuses.items() if status.is_enabled}


async def is_feature_enabled(db: AsyncSession, organization_id: str, feature_name: str) -> bool:
    if not feature_name:
        raise ValidationError("feature_key is required", field="feature_key")
    return feature_name in await resolve_enabled_features(db, organization_id)


# ============================================================================
# Catalog administration
# ============================================================================

async def list_plan_features(db: AsyncSession, plan_id: str) -> List[PlanFeatureStatus]:
    plan = await get_plan(db, plan_id)
    statuses = await resolve_plan_features(db, plan)
    return list(statuses.values())


async def set_plan_feature(
    db: AsyncSession,
    plan_id: str,
    feature_name: str,
    is_enabled: bool,
) -> PlanFeature:
    """Upsert the PlanFeature row of a plan. The feature must exist in the catalog."""
    await get_plan(db, plan_id)

    result = await db.execute(select(Feature).where(Feature.name == feature_name))
    if result.scalar_one_or_none() is None:
        raise NotFoundError(f"Feature {feature_name} not found")

    result = await db.execute(
        select(PlanFeature).where(
            and_(PlanFeature.plan_id == plan_id, PlanFeature.feature_name == feature_name)
        )
    )
    row = result.scalar_one_or_none()
    if row is None:
        row = PlanFeature(plan_id=plan_id, feature_name=feature_name, is_enabled=is_enabled)
        db.add(row)
    else:
        row.is_enabled = is_enabled

    await db.flush()
    log.info(f"Plan {plan_id} feature {feature_name} set to {is_enabled}")
    return row
