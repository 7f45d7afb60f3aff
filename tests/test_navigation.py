import pytest

from app.core.exceptions import NotFoundError, ValidationError
from app.features.access.facade import AccessContext
from app.features.profiles.service import create_default_profiles
from app.features.ui.navigation import (
    creates_cycle,
    resolve_navigation,
    set_navigation_parent,
    set_organization_navigation_override,
    set_profile_navigation_override,
    upsert_navigation_item,
)


async def _viewer_ctx(db, org):
    profiles = await create_default_profiles(db, org.id)
    viewer = next(p for p in profiles if p.name == "viewer")
    return AccessContext("u1", org.id, viewer.id)


def _keys(nodes):
    return [node.key for node in nodes]


def test_creates_cycle():
    parents = {"a": None, "b": "a", "c": "b"}
    assert creates_cycle(parents, "a", "c")
    assert creates_cycle(parents, "a", "a")
    assert not creates_cycle(parents, "c", "a")
    assert not creates_cycle(parents, "a", None)


async def test_cycles_are_rejected(db, catalog):
    with pytest.raises(ValidationError):
        await set_navigation_parent(db, "payments", "payments-tenant")
    with pytest.raises(ValidationError):
        await set_navigation_parent(db, "payments", "payments")
    with pytest.raises(NotFoundError):
        await set_navigation_parent(db, "payments", "nowhere")

    item = await set_navigation_parent(db, "reports", "payments")
    assert item.parent_key == "payments"


async def test_navigation_actions_are_restricted(db, catalog):
    with pytest.raises(ValidationError):
        await upsert_navigation_item(db, "audit", name="Audit", href="/audit", required_object_action="view_all")
    with pytest.raises(ValidationError):
        await upsert_navigation_item(db, "audit", href="/audit")


async def test_viewer_tree_on_freemium(db, catalog, make_org):
    org = await make_org()
    ctx = await _viewer_ctx(db, org)

    tree = await resolve_navigation(db, ctx)

    assert _keys(tree) == ["dashboard", "properties", "units", "tenants", "leases", "payments", "tasks", "settings"]
    payments = next(node for node in tree if node.key == "payments")
    assert _keys(payments.children) == ["payments-tenant", "payments-owner"]


async def test_super_admin_is_still_bound_by_features(db, catalog, make_org):
    org = await make_org()
    ctx = AccessContext("admin", org.id, None, is_super_admin=True)

    keys = _keys(await resolve_navigation(db, ctx))

    assert "reports" in keys and "messages" in keys
    assert "accounting" not in keys


async def test_organization_row_beats_profile_row(db, catalog, make_org):
    org = await make_org()
    ctx = await _viewer_ctx(db, org)

    await set_profile_navigation_override(db, ctx.profile_id, "tasks", is_visible=False)
    assert "tasks" not in _keys(await resolve_navigation(db, ctx))

    await set_organization_navigation_override(db, org.id, "tasks", is_enabled=True, is_visible=True)
    assert "tasks" in _keys(await resolve_navigation(db, ctx))

    await set_organization_navigation_override(db, org.id, "units", is_enabled=False)
    assert "units" not in _keys(await resolve_navigation(db, ctx))


async def test_hidden_parent_hides_children(db, catalog, make_org):
    org = await make_org()
    ctx = await _viewer_ctx(db, org)

    await set_profile_navigation_override(db, ctx.profile_id, "payments", is_enabled=False)

    tree = await resolve_navigation(db, ctx)
    assert "payments" not in _keys(tree)
    assert "payments-tenant" not in _keys(tree)


async def test_custom_sort_order(db, catalog, make_org):
    org = await make_org()
    ctx = await _viewer_ctx(db, org)

    await set_profile_navigation_override(db, ctx.profile_id, "settings", custom_sort_order=0)

    assert _keys(await resolve_navigation(db, ctx))[0] == "settings"


async def test_unknown_override_fields(db, catalog, make_org):
    org = await make_org()
    ctx = await _viewer_ctx(db, org)

    with pytest.raises(ValidationError):
        await set_profile_navigation_override(db, ctx.profile_id, "tasks", colour="red")
