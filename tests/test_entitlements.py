from datetime import datetime, timedelta

import pytest
from sqlalchemy import select

from app.core import config
from app.core.exceptions import NotFoundError
from app.features.entitlements.models import Feature, Plan, Subscription, SubscriptionStatus
from app.features.entitlements.resolver import (
    flag_enabled,
    get_active_subscription,
    get_effective_plan,
    is_feature_enabled,
    list_plan_features,
    resolve_enabled_features,
    set_plan_feature,
)


async def _plan(db, name):
    return await db.scalar(select(Plan).where(Plan.name == name))


@pytest.mark.parametrize(
    "value, expected",
    [
        (True, True),
        (False, False),
        (None, False),
        ("limited", True),
        ("unlimited", True),
        ("false", False),
        ("Disabled", False),
        ("", False),
        (1, True),
        (0, False),
    ],
)
def test_flag_enabled(value, expected):
    assert flag_enabled(value) is expected


async def test_organization_without_subscription_uses_freemium(db, catalog, make_org):
    org = await make_org()

    plan = await get_effective_plan(db, org.id)

    assert plan.name == "freemium"
    assert await is_feature_enabled(db, org.id, "dashboard")
    assert not await is_feature_enabled(db, org.id, "accounting_basic")


async def test_no_fallback_plan_means_no_features(db, catalog, make_org, monkeypatch):
    monkeypatch.setattr(config, "FALLBACK_PLAN_NAME", None)
    org = await make_org()

    assert await get_effective_plan(db, org.id) is None
    assert await resolve_enabled_features(db, org.id) == set()


async def test_unknown_organization(db, catalog):
    with pytest.raises(NotFoundError):
        await get_effective_plan(db, "01HZZZZZZZZZZZZZZZZZZZZZZZ")


async def test_subscription_plan_applies(db, catalog, make_org):
    org = await make_org(plan_name="pro")

    features = await resolve_enabled_features(db, org.id)

    assert "accounting_full" in features
    assert "api_access" not in features


async def test_canceled_subscription_falls_back(db, catalog, make_org):
    org = await make_org(plan_name="pro", status=SubscriptionStatus.CANCELED)

    assert await get_active_subscription(db, org.id) is None
    assert (await get_effective_plan(db, org.id)).name == "freemium"


async def test_most_recent_live_subscription_wins(db, catalog, make_org):
    org = await make_org()
    starter = await _plan(db, "starter")
    agency = await _plan(db, "agency")
    now = datetime(2026, 1, 1)
    db.add(Subscription(organization_id=org.id, plan_id=starter.id, current_period_start=now - timedelta(days=30)))
    db.add(Subscription(
        organization_id=org.id,
        plan_id=agency.id,
        status=SubscriptionStatus.TRIALING,
        current_period_start=now,
    ))
    await db.flush()

    assert (await get_effective_plan(db, org.id)).name == "agency"


async def test_plan_feature_row_beats_plan_map(db, catalog, make_org):
    org = await make_org()
    freemium = await _plan(db, "freemium")

    await set_plan_feature(db, freemium.id, "accounting_basic", True)
    await set_plan_feature(db, freemium.id, "dashboard", False)

    features = await resolve_enabled_features(db, org.id)
    assert "accounting_basic" in features
    assert "dashboard" not in features

    statuses = {s.feature_name: s for s in await list_plan_features(db, freemium.id)}
    assert statuses["accounting_basic"].source == "plan_feature"
    assert statuses["messaging"].source == "plan_map"
    assert statuses["api_access"].source == "default"
    assert not statuses["api_access"].is_enabled


async def test_inactive_feature_is_never_enabled(db, catalog, make_org):
    org = await make_org()
    dashboard = await db.scalar(select(Feature).where(Feature.name == "dashboard"))
    dashboard.is_active = False
    await db.flush()

    assert not await is_feature_enabled(db, org.id, "dashboard")


async def test_string_flags_in_plan_map(db, catalog, make_org):
    org = await make_org()
    freemium = await _plan(db, "freemium")
    freemium.features = {**freemium.features, "bank_sync": "limited", "messaging": "off"}
    await db.flush()

    features = await resolve_enabled_features(db, org.id)
    assert "bank_sync" in features
    assert "messaging" not in features


async def test_set_plan_feature_requires_catalog_feature(db, catalog):
    freemium = await _plan(db, "freemium")

    with pytest.raises(NotFoundError):
        await set_plan_feature(db, freemium.id, "teleportation", True)
