import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select

from app.core.database.engine import get_db
from app.features.entitlements.models import Plan
from app.features.profiles.service import create_default_profiles, put_field_permissions
from app.features.units.models import Tenant, Unit
from app.features.users.dependencies import get_current_user
from app.main import app


@pytest.fixture()
def login():
    current = {}

    def _login(user):
        current["user"] = user
    _login.current = current
    return _login


@pytest_asyncio.fixture()
async def client(db, login):
    async def override_db():
        yield db

    async def override_user():
        return login.current["user"]

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_current_user] = override_user
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def org_profiles(db, catalog, make_org):
    org = await make_org()
    profiles = {p.name: p for p in await create_default_profiles(db, org.id)}
    await db.commit()
    return org, profiles


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200


async def test_viewer_cannot_create_units(client, login, org_profiles, make_user):
    org, profiles = org_profiles
    login(await make_user(org.id, profiles["viewer"].id))

    response = await client.post("/units", json={"unit_number": "A1"})

    assert response.status_code == 403
    assert response.json()["error"] == "forbidden"


async def test_agent_creates_unit(client, login, org_profiles, make_user):
    org, profiles = org_profiles
    login(await make_user(org.id, profiles["agent"].id))

    response = await client.post("/units", json={"unit_number": "A1"})

    assert response.status_code == 201
    assert response.json()["organization_id"] == org.id


async def test_quota_exceeded_response(client, login, db, catalog, make_org, make_user):
    org = await make_org(plan_name="starter")
    profiles = {p.name: p for p in await create_default_profiles(db, org.id)}
    starter = await db.scalar(select(Plan).where(Plan.name == "starter"))
    starter.max_lots = 10
    for i in range(10):
        db.add(Unit(organization_id=org.id, unit_number=f"{i + 1}"))
    await db.commit()
    login(await make_user(org.id, profiles["owner"].id))

    response = await client.post("/units", json={"unit_number": "11"})

    assert response.status_code == 403
    body = response.json()
    assert body["error"] == "quota_exceeded"
    assert body["current_count"] == 10
    assert body["limit"] == 10


async def test_access_decisions(client, login, org_profiles, make_user):
    org, profiles = org_profiles
    login(await make_user(org.id, profiles["viewer"].id))

    response = await client.post("/access/object", json={"object_type": "Tenant", "action": "edit"})
    assert response.json() == {"allowed": False}

    response = await client.post("/access/object", json={"object_type": "Tenant", "action": "read"})
    assert response.json() == {"allowed": True}

    response = await client.post("/access/object", json={"object_type": "Spaceship", "action": "read"})
    assert response.status_code == 422
    assert response.json()["error"] == "validation_error"

    response = await client.post("/access/feature", json={"feature_key": "accounting_basic"})
    assert response.json() == {"allowed": False}

    response = await client.get("/access/quota/units", params={"increment": 2})
    body = response.json()
    assert body["allowed"] is True
    assert body["limit"] == 5
    assert body["requested"] == 2


async def test_profile_writes_require_manage_permission(client, login, org_profiles, make_user):
    org, profiles = org_profiles
    viewer = profiles["viewer"]
    login(await make_user(org.id, viewer.id))

    response = await client.put(
        f"/profiles/{viewer.id}/object-permissions",
        json={"permissions": [{"object_type": "Unit", "can_read": True, "can_create": True}]},
    )
    assert response.status_code == 403

    response = await client.get(f"/profiles/{viewer.id}/object-permissions")
    assert response.status_code == 200
    assert len(response.json()) == 13


async def test_owner_edits_profiles(client, login, org_profiles, make_user):
    org, profiles = org_profiles
    login(await make_user(org.id, profiles["owner"].id))

    response = await client.post("/profiles", json={"name": "Interns", "organization_id": org.id})
    assert response.status_code == 201
    profile_id = response.json()["id"]

    response = await client.put(
        f"/profiles/{profile_id}/object-permissions",
        json={"permissions": [{"object_type": "Unit", "can_view_all": True}]},
    )
    assert response.status_code == 422

    response = await client.put(
        f"/profiles/{profile_id}/object-permissions",
        json={"permissions": [{"object_type": "Unit", "can_read": True, "can_create": True, "can_edit": True}]},
    )
    assert response.status_code == 200
    unit = next(row for row in response.json() if row["object_type"] == "Unit")
    assert unit["access_level"] == "ReadWrite"

    response = await client.get(f"/profiles/{profile_id}/button-permissions")
    buttons = {row["key"]: row for row in response.json()}
    assert buttons["unit.create"]["is_enabled"]
    assert not buttons["unit.delete"]["is_enabled"]

    response = await client.delete(f"/profiles/{profiles['viewer'].id}")
    assert response.status_code == 403

    response = await client.delete(f"/profiles/{profile_id}")
    assert response.status_code == 204


async def test_tenant_fields_are_filtered(client, login, db, org_profiles, make_user):
    org, profiles = org_profiles
    agent = profiles["agent"]
    await put_field_permissions(db, agent.id, [{"object_type": "Tenant", "field_name": "email", "can_read": False}])
    await db.commit()
    login(await make_user(org.id, agent.id))

    response = await client.post(
        "/units/tenants",
        json={"first_name": "Ana", "last_name": "Silva", "email": "ana@example.com", "has_extranet_access": True},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["first_name"] == "Ana"
    assert "email" not in body


async def test_navigation_and_matrix(client, login, org_profiles, make_user):
    org, profiles = org_profiles
    login(await make_user(org.id, profiles["viewer"].id))

    response = await client.get("/navigation")
    assert response.status_code == 200
    keys = [node["key"] for node in response.json()]
    assert "accounting" not in keys and "tenants" in keys

    response = await client.get("/access/matrix")
    assert response.status_code == 200
    body = response.json()
    assert body["objects"]["Tenant"]["can_read"]
    assert not body["objects"]["Tenant"]["can_edit"]


async def test_super_admin_routes(client, login, org_profiles, make_user):
    org, profiles = org_profiles
    login(await make_user(org.id, profiles["owner"].id))

    response = await client.get("/navigation/items")
    assert response.status_code == 403

    login(await make_user(is_admin=True))
    response = await client.get("/navigation/items")
    assert response.status_code == 200

    response = await client.put("/navigation/items/help", json={"name": "Help", "href": "/help", "sort_order": 12})
    assert response.status_code == 200
    assert response.json()["key"] == "help"


async def test_assign_profile_route(client, login, org_profiles, make_user):
    org, profiles = org_profiles
    member = await make_user(org.id)

    login(await make_user(org.id, profiles["agent"].id))
    response = await client.put(f"/users/{member.id}/profile", json={"profile_id": profiles["viewer"].id})
    assert response.status_code == 403

    login(await make_user(org.id, profiles["owner"].id))
    response = await client.put(f"/users/{member.id}/profile", json={"profile_id": profiles["viewer"].id})
    assert response.status_code == 200
    assert response.json()["profile_id"] == profiles["viewer"].id


async def test_subscription_switches_plan(client, login, db, org_profiles, make_user):
    org, profiles = org_profiles
    pro = await db.scalar(select(Plan).where(Plan.name == "pro"))
    login(await make_user(is_admin=True))

    response = await client.post(f"/organizations/{org.id}/subscriptions", json={"plan_id": pro.id})
    assert response.status_code == 201

    login(await make_user(org.id, profiles["owner"].id))
    response = await client.get("/entitlements/features")
    body = response.json()
    assert body["plan"]["name"] == "pro"
    assert "accounting_full" in body["features"]


async def test_unit_delete_needs_delete_grant(client, login, db, org_profiles, make_user):
    org, profiles = org_profiles
    unit = Unit(organization_id=org.id, unit_number="B2")
    db.add(unit)
    await db.commit()

    login(await make_user(org.id, profiles["viewer"].id))
    assert (await client.get(f"/units/{unit.id}")).status_code == 200

    login(await make_user(org.id, profiles["agent"].id))
    response = await client.delete(f"/units/{unit.id}")
    assert response.status_code == 403

    login(await make_user(org.id, profiles["owner"].id))
    assert (await client.delete(f"/units/{unit.id}")).status_code == 204
    assert (await client.get(f"/units/{unit.id}")).status_code == 404


async def test_extranet_tenants_need_feature_and_permission(client, login, db, org_profiles, make_user):
    org, profiles = org_profiles
    login(await make_user(org.id, profiles["agent"].id))
    await client.post("/units/tenants", json={"first_name": "Ana", "last_name": "Diaz", "has_extranet_access": True})
    await client.post("/units/tenants", json={"first_name": "Ben", "last_name": "Roy"})

    response = await client.get("/units/tenants/extranet")
    assert response.status_code == 200
    assert [t["first_name"] for t in response.json()] == ["Ana"]

    login(await make_user(None, None))
    response = await client.get("/units/tenants/extranet")
    assert response.status_code == 403
    assert response.json()["feature_key"] == "extranet_tenant"


async def test_moving_a_user_respects_the_users_quota(client, login, db, org_profiles, make_org, make_user):
    org, _profiles = org_profiles
    await make_user(org.id)
    newcomer = await make_user()
    await db.commit()
    login(await make_user(is_admin=True))

    response = await client.put(f"/users/{newcomer.id}/organization", json={"organization_id": org.id})

    assert response.status_code == 403
    body = response.json()
    assert body["error"] == "quota_exceeded"
    assert body["current_count"] == 1
    assert body["limit"] == 1
    assert newcomer.organization_id is None

    other = await make_org("Empty Lettings")
    await db.commit()
    response = await client.put(f"/users/{newcomer.id}/organization", json={"organization_id": other.id})
    assert response.status_code == 200
    assert response.json()["organization_id"] == other.id


async def test_field_flagged_sensitive_elsewhere_is_hidden(client, login, db, org_profiles, make_user):
    org, profiles = org_profiles
    await put_field_permissions(db, profiles["owner"].id, [
        {"object_type": "Tenant", "field_name": "email", "can_read": True, "is_sensitive": True},
    ])
    tenant = Tenant(organization_id=org.id, first_name="Ana", last_name="Silva", email="ana@example.com")
    db.add(tenant)
    await db.commit()

    login(await make_user(org.id, profiles["viewer"].id))
    body = (await client.get(f"/units/tenants/{tenant.id}")).json()
    assert body["first_name"] == "Ana"
    assert "email" not in body

    login(await make_user(org.id, profiles["owner"].id))
    body = (await client.get(f"/units/tenants/{tenant.id}")).json()
    assert body["email"] == "ana@example.com"
