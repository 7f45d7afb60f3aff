import pytest

from app.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from app.features.access.facade import AccessContext
from app.features.profiles.models import AccessLevel, ObjectType
from app.features.profiles.resolver import get_profile
from app.features.profiles.service import (
    assign_profile,
    create_default_profiles,
    create_profile,
    delete_profile,
    ensure_can_manage_organization,
    ensure_can_view_profile,
    list_profiles,
    put_action_permissions,
    put_field_permissions,
    put_object_permissions,
    update_profile,
)
from app.features.ui.buttons import get_button_permissions


def _ctx(user_id="u1", organization_id=None, profile_id=None, is_super_admin=False):
    return AccessContext(user_id, organization_id, profile_id, is_super_admin)


async def test_put_object_permissions_derives_access_level(db, make_org, make_profile):
    org = await make_org()
    profile = await make_profile(org.id)

    rows = await put_object_permissions(db, profile.id, [
        {"object_type": "Unit", "can_create": True, "can_read": True, "can_edit": True},
        {"object_type": "Tenant", "can_read": True},
    ])

    by_type = {row.object_type: row for row in rows}
    assert len(rows) == len(ObjectType)
    assert by_type[ObjectType.UNIT].access_level == AccessLevel.READ_WRITE
    assert by_type[ObjectType.TENANT].access_level == AccessLevel.READ

    rows = await put_object_permissions(db, profile.id, [
        {"object_type": "Unit", "can_read": True},
    ])
    by_type = {row.object_type: row for row in rows}
    assert by_type[ObjectType.UNIT].access_level == AccessLevel.READ
    assert not by_type[ObjectType.UNIT].can_create
    assert by_type[ObjectType.TENANT].can_read


@pytest.mark.parametrize(
    "item",
    [
        {"object_type": "Unit", "can_view_all": True},
        {"object_type": "Unit", "can_delete": True},
        {"object_type": "Unit", "can_read": True, "access_level": "All"},
        {"object_type": "Unit", "can_read": True, "access_level": "Everything"},
        {"object_type": "Spaceship", "can_read": True},
    ],
)
async def test_put_object_permissions_rejects_bad_items(db, make_org, make_profile, item):
    org = await make_org()
    profile = await make_profile(org.id)

    with pytest.raises(ValidationError):
        await put_object_permissions(db, profile.id, [item])


async def test_matching_access_level_is_accepted(db, make_org, make_profile):
    org = await make_org()
    profile = await make_profile(org.id)

    rows = await put_object_permissions(db, profile.id, [
        {"object_type": "Unit", "can_read": True, "access_level": "Read"},
    ])
    assert {row.object_type: row for row in rows}[ObjectType.UNIT].access_level == AccessLevel.READ


async def test_duplicate_object_types_are_rejected(db, make_org, make_profile):
    org = await make_org()
    profile = await make_profile(org.id)

    with pytest.raises(ValidationError):
        await put_object_permissions(db, profile.id, [
            {"object_type": "Unit", "can_read": True},
            {"object_type": "Unit", "can_read": False},
        ])


async def test_field_edit_requires_read(db, make_org, make_profile):
    org = await make_org()
    profile = await make_profile(org.id)

    with pytest.raises(ValidationError):
        await put_field_permissions(db, profile.id, [
            {"object_type": "Tenant", "field_name": "email", "can_edit": True},
        ])


async def test_field_rows_default_sensitivity_from_catalog(db, make_org, make_profile):
    org = await make_org()
    profile = await make_profile(org.id)

    rows = await put_field_permissions(db, profile.id, [
        {"object_type": "Tenant", "field_name": "bank_account", "can_read": True},
        {"object_type": "Tenant", "field_name": "email", "can_read": True, "can_edit": True},
    ])

    by_name = {row.field_name: row for row in rows}
    assert by_name["bank_account"].is_sensitive
    assert not by_name["email"].is_sensitive
    assert by_name["email"].access_level.value == "ReadWrite"


async def test_action_grants_upsert(db, make_org, make_profile):
    org = await make_org()
    profile = await make_profile(org.id)

    await put_action_permissions(db, profile.id, {"canManageProfiles": True})
    rows = await put_action_permissions(db, profile.id, {"canManageProfiles": False, "canViewReports": True})

    assert {row.permission_name: row.is_granted for row in rows} == {
        "canManageProfiles": False,
        "canViewReports": True,
    }


async def test_profile_names_are_unique_per_organization(db, make_org):
    acme = await make_org("Acme")
    other = await make_org("Other")
    await create_profile(db, "Agents", organization_id=acme.id)
    await create_profile(db, "Agents", organization_id=other.id)

    with pytest.raises(ValidationError):
        await create_profile(db, "Agents", organization_id=acme.id)


async def test_create_profile_in_unknown_organization(db):
    with pytest.raises(NotFoundError):
        await create_profile(db, "Agents", organization_id="01HZZZZZZZZZZZZZZZZZZZZZZZ")


async def test_system_profiles_cannot_be_renamed_or_deleted(db, make_org):
    org = await make_org()
    profiles = await create_default_profiles(db, org.id)
    viewer = next(p for p in profiles if p.name == "viewer")

    with pytest.raises(ForbiddenError):
        await update_profile(db, viewer.id, name="readers")
    with pytest.raises(ForbiddenError):
        await delete_profile(db, viewer.id)

    updated = await update_profile(db, viewer.id, display_name="Read only")
    assert updated.display_name == "Read only"


async def test_assigned_profile_cannot_be_deleted(db, make_org, make_profile, make_user):
    org = await make_org()
    profile = await make_profile(org.id)
    await make_user(org.id, profile.id)

    with pytest.raises(ValidationError) as excinfo:
        await delete_profile(db, profile.id)
    assert excinfo.value.extra["assigned_users"] == 1


async def test_delete_profile_removes_its_rows(db, catalog, make_org, make_profile):
    org = await make_org()
    profile = await make_profile(org.id, grants={"Unit": {"can_read": True}})
    profile_id = profile.id

    await delete_profile(db, profile_id)
    db.expunge_all()

    with pytest.raises(NotFoundError):
        await get_profile(db, profile_id)


async def test_default_profiles_are_idempotent(db, catalog, make_org):
    org = await make_org()

    first = await create_default_profiles(db, org.id)
    second = await create_default_profiles(db, org.id)

    assert sorted(p.name for p in first) == ["accountant", "agent", "owner", "viewer"]
    assert [p.id for p in first] == [p.id for p in second]
    assert all(p.is_system_profile for p in first)

    owner = next(p for p in first if p.name == "owner")
    views = await get_button_permissions(db, owner.id)
    assert all(view.is_stored for view in views)


async def test_list_profiles_includes_global(db, make_org):
    org = await make_org()
    await create_default_profiles(db)
    await create_profile(db, "Custom", organization_id=org.id)

    names = [p.name for p in await list_profiles(db, org.id)]
    assert "Custom" in names and "viewer" in names

    names = [p.name for p in await list_profiles(db, org.id, include_global=False)]
    assert names == ["Custom"]


async def test_assign_profile_rules(db, make_org, make_profile, make_user):
    acme = await make_org("Acme")
    other = await make_org("Other")
    own = await make_profile(acme.id, name="Own")
    foreign = await make_profile(other.id, name="Foreign")
    inactive = await make_profile(acme.id, name="Inactive", is_active=False)
    user = await make_user(acme.id)

    assert (await assign_profile(db, user.id, own.id)).profile_id == own.id

    with pytest.raises(ValidationError):
        await assign_profile(db, user.id, foreign.id)
    with pytest.raises(ValidationError):
        await assign_profile(db, user.id, inactive.id)

    assert (await assign_profile(db, user.id, None)).profile_id is None


async def test_manage_organization_authorization(db, make_org, make_profile):
    org = await make_org("Acme")
    other = await make_org("Other")
    admin_profile = await make_profile(org.id, name="Admins", grants={"Profile": {"can_read": True, "can_edit": True}})
    plain_profile = await make_profile(org.id, name="Plain", grants={"Profile": {"can_read": True}})

    await ensure_can_manage_organization(db, _ctx(is_super_admin=True), None)
    await ensure_can_manage_organization(db, _ctx(organization_id=org.id, profile_id=admin_profile.id), org.id)

    with pytest.raises(ForbiddenError):
        await ensure_can_manage_organization(db, _ctx(organization_id=org.id, profile_id=admin_profile.id), None)
    with pytest.raises(ForbiddenError):
        await ensure_can_manage_organization(db, _ctx(organization_id=org.id, profile_id=admin_profile.id), other.id)
    with pytest.raises(ForbiddenError):
        await ensure_can_manage_organization(db, _ctx(organization_id=org.id, profile_id=plain_profile.id), org.id)


async def test_view_profile_authorization(db, make_org, make_profile):
    org = await make_org("Acme")
    other = await make_org("Other")
    profile = await make_profile(org.id)
    [global_profile, *_] = await create_default_profiles(db)

    assert (await ensure_can_view_profile(db, _ctx(organization_id=org.id), profile.id)).id == profile.id
    assert await ensure_can_view_profile(db, _ctx(organization_id=other.id), global_profile.id)
    with pytest.raises(ForbiddenError):
        await ensure_can_view_profile(db, _ctx(organization_id=other.id), profile.id)
