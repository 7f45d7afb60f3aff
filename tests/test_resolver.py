import pytest

from app.core import config
from app.core.exceptions import NotFoundError, ValidationError
from app.features.profiles.access_levels import NO_ACCESS
from app.features.profiles.models import AccessLevel, FieldPermission, ObjectAction, ObjectType
from app.features.profiles.resolver import (
    filter_fields,
    filter_readable_fields,
    get_object_permissions,
    resolve_action_permission,
    resolve_field_permission,
    resolve_object_permission,
    summarize_profile_access,
)
from app.features.profiles.service import put_action_permissions, put_field_permissions, update_profile


async def test_missing_row_means_no_access(db, make_org, make_profile):
    org = await make_org()
    profile = await make_profile(org.id, grants={"Unit": {"can_read": True}})

    assert await resolve_object_permission(db, profile.id, ObjectType.TENANT) == NO_ACCESS
    unit = await resolve_object_permission(db, profile.id, "Unit")
    assert unit.can_read and not unit.can_create


async def test_unknown_object_type_is_rejected(db, make_org, make_profile):
    org = await make_org()
    profile = await make_profile(org.id)

    with pytest.raises(ValidationError):
        await resolve_object_permission(db, profile.id, "Spaceship")


async def test_unknown_profile_is_not_found(db):
    with pytest.raises(NotFoundError):
        await resolve_object_permission(db, "01HZZZZZZZZZZZZZZZZZZZZZZZ", ObjectType.UNIT)


async def test_no_profile_policy(db, monkeypatch):
    monkeypatch.setattr(config, "NO_PROFILE_POLICY", "deny")
    assert await resolve_object_permission(db, None, ObjectType.UNIT) == NO_ACCESS

    monkeypatch.setattr(config, "NO_PROFILE_POLICY", "read_only")
    capabilities = await resolve_object_permission(db, None, ObjectType.UNIT)
    assert capabilities.can_read
    assert not capabilities.can_create


async def test_inactive_profile_grants_nothing(db, make_org, make_profile):
    org = await make_org()
    profile = await make_profile(org.id, grants={"Unit": {"can_read": True, "can_create": True, "can_edit": True}})
    await update_profile(db, profile.id, is_active=False)

    assert await resolve_object_permission(db, profile.id, ObjectType.UNIT) == NO_ACCESS
    assert not await resolve_action_permission(db, profile.id, "canCreateUnits")


async def test_object_matrix_covers_every_type(db, make_org, make_profile):
    org = await make_org()
    profile = await make_profile(org.id, grants={"Tenant": {"can_read": True}})

    rows = await get_object_permissions(db, profile.id)

    assert [row.object_type for row in rows] == list(ObjectType)
    by_type = {row.object_type: row for row in rows}
    assert by_type[ObjectType.TENANT].access_level == AccessLevel.READ
    assert by_type[ObjectType.LEASE].access_level == AccessLevel.NONE
    assert not by_type[ObjectType.LEASE].can_read


async def test_field_defaults_follow_sensitivity(db, make_org, make_profile):
    org = await make_org()
    profile = await make_profile(org.id, grants={"Tenant": {"can_read": True}})

    plain = await resolve_field_permission(db, profile.id, ObjectType.TENANT, "first_name")
    assert plain.can_read and not plain.can_edit and not plain.explicit

    sensitive = await resolve_field_permission(db, profile.id, ObjectType.TENANT, "bank_account")
    assert sensitive.is_sensitive
    assert not sensitive.can_read


async def test_explicit_field_row_wins(db, make_org, make_profile):
    org = await make_org()
    profile = await make_profile(org.id)
    await put_field_permissions(db, profile.id, [
        {"object_type": "Tenant", "field_name": "bank_account", "can_read": True},
        {"object_type": "Tenant", "field_name": "email", "can_read": False},
    ])

    bank = await resolve_field_permission(db, profile.id, "Tenant", "bank_account")
    assert bank.can_read and bank.is_sensitive and bank.explicit

    email = await resolve_field_permission(db, profile.id, "Tenant", "email")
    assert not email.can_read


async def test_field_flagged_sensitive_elsewhere_is_hidden(db, make_org, make_profile):
    org = await make_org()
    flagging = await make_profile(org.id, name="Flagging")
    other = await make_profile(org.id, name="Other")
    await put_field_permissions(db, flagging.id, [
        {"object_type": "Tenant", "field_name": "notes", "can_read": True, "is_sensitive": True},
    ])

    result = await resolve_field_permission(db, other.id, "Tenant", "notes")
    assert result.is_sensitive
    assert not result.can_read


def test_filter_fields_drops_unreadable_keys():
    record = {"first_name": "Ana", "email": "ana@example.com", "bank_account": "FR76", "date_of_birth": "1990-01-01"}
    permissions = [
        FieldPermission(object_type=ObjectType.TENANT, field_name="email", can_read=False, can_edit=False),
        FieldPermission(object_type=ObjectType.TENANT, field_name="date_of_birth", can_read=True, can_edit=False),
    ]

    filtered = filter_fields(record, ObjectType.TENANT, permissions)

    assert filtered == {"first_name": "Ana", "date_of_birth": "1990-01-01"}


async def test_permission_name_maps_to_object_grant(db, make_org, make_profile):
    org = await make_org()
    profile = await make_profile(org.id, grants={"Tenant": {"can_read": True, "can_view_all": True}})

    assert await resolve_action_permission(db, profile.id, "canViewAllTenants")
    assert not await resolve_action_permission(db, profile.id, "canCreateTenants")
    assert not await resolve_action_permission(db, profile.id, "canLaunchRockets")


async def test_explicit_action_row_overrides_mapping(db, make_org, make_profile):
    org = await make_org()
    profile = await make_profile(org.id, grants={"Tenant": {"can_read": True, "can_view_all": True}})
    await put_action_permissions(db, profile.id, {"canViewAllTenants": False, "canExportData": True})

    assert not await resolve_action_permission(db, profile.id, "canViewAllTenants")
    assert await resolve_action_permission(db, profile.id, "canExportData")


async def test_access_summary(db, make_org, make_profile):
    org = await make_org()
    profile = await make_profile(org.id, grants={
        "Tenant": {"can_read": True},
        "Unit": {"can_create": True, "can_read": True, "can_edit": True, "can_delete": True, "can_view_all": True},
        "Lease": {},
    })

    summary = await summarize_profile_access(db, profile.id)

    assert summary.overall_access_level == AccessLevel.ALL
    assert summary.total_objects == 3
    assert summary.accessible_objects == 2
    assert summary.object_access_levels["Tenant"] == AccessLevel.READ
    assert summary.can_delete_any


async def test_readable_fields_match_field_resolution(db, make_org, make_profile):
    org = await make_org()
    owner = await make_profile(org.id, name="Owner", grants={"Tenant": {"can_read": True}})
    viewer = await make_profile(org.id, name="Viewer", grants={"Tenant": {"can_read": True}})
    await put_field_permissions(db, owner.id, [
        {"object_type": "Tenant", "field_name": "email", "can_read": True, "is_sensitive": True},
    ])
    record = {"first_name": "Ana", "email": "ana@example.com", "bank_account": "FR76"}

    visible = await filter_readable_fields(db, viewer.id, ObjectType.TENANT, record)

    assert visible == {"first_name": "Ana"}
    for name in record:
        resolved = await resolve_field_permission(db, viewer.id, ObjectType.TENANT, name)
        assert resolved.can_read == (name in visible)
    assert await filter_readable_fields(db, owner.id, "Tenant", record) == {
        "first_name": "Ana", "email": "ana@example.com",
    }


async def test_inactive_profile_reads_no_fields(db, make_org, make_profile):
    org = await make_org()
    profile = await make_profile(org.id, grants={"Tenant": {"can_read": True}})
    await update_profile(db, profile.id, is_active=False)

    assert await filter_readable_fields(db, profile.id, "Tenant", {"first_name": "Ana"}) == {}
