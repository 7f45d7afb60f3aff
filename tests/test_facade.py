import pytest
from sqlalchemy import select

from app.core.exceptions import NotFoundError, ValidationError
from app.features.access.facade import (
    AccessContext,
    build_permission_matrix,
    can_access_feature,
    can_access_object,
    can_perform_action,
    check_quota,
    load_access_context,
)
from app.features.entitlements.models import Plan
from app.features.profiles.models import ObjectAction, ObjectType
from app.features.profiles.service import create_default_profiles, put_object_permissions, update_profile
from app.features.units.models import Unit


GRANT_STEPS = [
    {"can_read": True},
    {"can_read": True, "can_create": True, "can_edit": True},
    {"can_read": True, "can_create": True, "can_edit": True, "can_delete": True, "can_view_all": True},
]


async def test_viewer_can_read_but_not_edit_tenants(db, make_org, make_profile, make_user):
    org = await make_org()
    viewer = await make_profile(org.id, name="Viewer", grants={"Tenant": {"can_read": True}})
    user = await make_user(org.id, viewer.id)

    ctx = await load_access_context(db, user.id)

    assert not await can_access_object(db, ctx, "Tenant", "edit")
    assert await can_access_object(db, ctx, ObjectType.TENANT, ObjectAction.READ)


async def test_unknown_inputs_raise(db, make_org, make_profile, make_user):
    org = await make_org()
    profile = await make_profile(org.id)
    ctx = AccessContext("u1", org.id, profile.id)

    with pytest.raises(ValidationError):
        await can_access_object(db, ctx, "Tenant", "fly")
    with pytest.raises(ValidationError):
        await can_perform_action(db, ctx, "")
    with pytest.raises(NotFoundError):
        await load_access_context(db, "01HZZZZZZZZZZZZZZZZZZZZZZZ")


async def test_super_admin_bypasses_profiles_not_plans(db, catalog, make_org):
    org = await make_org()
    ctx = AccessContext("admin", org.id, None, is_super_admin=True)

    assert await can_access_object(db, ctx, "JournalEntry", "delete")
    assert await can_perform_action(db, ctx, "canLaunchRockets")
    assert not await can_access_feature(db, ctx, "accounting_basic")
    assert await can_access_feature(db, ctx, "dashboard")


async def test_feature_with_permission_name(db, catalog, make_org, make_profile):
    org = await make_org()
    profile = await make_profile(org.id, grants={"Report": {"can_read": True}})
    ctx = AccessContext("u1", org.id, profile.id)

    assert await can_access_feature(db, ctx, "reports_basic", "canViewReports")
    assert not await can_access_feature(db, ctx, "reports_basic", "canCreateReports")
    assert not await can_access_feature(db, ctx, "reports_advanced", "canViewReports")


async def test_user_without_organization_has_no_features(db, catalog):
    ctx = AccessContext("u1", None, None)

    assert not await can_access_feature(db, ctx, "dashboard")
    with pytest.raises(NotFoundError):
        await check_quota(db, ctx, "units")


async def test_starter_plan_rejects_unit_eleven(db, catalog, make_org):
    org = await make_org(plan_name="starter")
    starter = await db.scalar(select(Plan).where(Plan.name == "starter"))
    starter.max_lots = 10
    for i in range(10):
        db.add(Unit(organization_id=org.id, unit_number=f"{i + 1}"))
    await db.flush()

    quota = await check_quota(db, AccessContext("u1", org.id, None), "units")

    assert not quota.allowed
    assert (quota.current_count, quota.limit) == (10, 10)


async def test_permission_matrix(db, catalog, make_org):
    org = await make_org()
    profiles = await create_default_profiles(db, org.id)
    owner = next(p for p in profiles if p.name == "owner")
    ctx = AccessContext("u1", org.id, owner.id)

    matrix = await build_permission_matrix(db, ctx)

    assert set(matrix.objects) == {t.value for t in ObjectType}
    assert matrix.objects["Unit"].can_delete
    assert matrix.features == sorted(matrix.features)
    assert "dashboard" in matrix.features
    buttons = {button.key: button for button in matrix.buttons}
    assert buttons["unit.create"].is_enabled
    # Owner holds JournalEntry but freemium lacks accounting_basic
    assert not buttons["journal.create"].is_enabled
    assert [node.key for node in matrix.navigation][0] == "dashboard"


async def test_inactive_profile_matrix_is_empty_handed(db, catalog, make_org):
    org = await make_org()
    profiles = await create_default_profiles(db, org.id)
    owner = next(p for p in profiles if p.name == "owner")
    await update_profile(db, owner.id, is_active=False)

    matrix = await build_permission_matrix(db, AccessContext("u1", org.id, owner.id))

    assert not any(button.is_enabled for button in matrix.buttons)
    assert not matrix.objects["Unit"].can_read


@pytest.mark.parametrize("object_type", [ObjectType.TENANT, ObjectType.UNIT, ObjectType.PAYMENT])
async def test_adding_grants_never_revokes_access(db, make_org, make_profile, object_type):
    org = await make_org()
    profile = await make_profile(org.id)
    ctx = AccessContext("u1", org.id, profile.id)

    previously_allowed = set()
    for flags in GRANT_STEPS:
        await put_object_permissions(db, profile.id, [{"object_type": object_type, **flags}])
        allowed = {action for action in ObjectAction if await can_access_object(db, ctx, object_type, action)}
        assert previously_allowed <= allowed
        previously_allowed = allowed

    assert previously_allowed == set(ObjectAction)
