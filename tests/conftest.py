import pytest
import pytest_asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.database.base import Base
from app.core.database.engine import import_models
from app.features.entitlements.models import Plan, Subscription
from app.features.organizations.models import Organization
from app.features.profiles.service import create_profile, put_object_permissions
from app.features.users.models import User
from scripts.seed_access import seed_buttons, seed_features, seed_navigation, seed_plans


@pytest_asyncio.fixture()
async def db():
    import_models()
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    SessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    async with SessionLocal() as session:
        yield session
    await engine.dispose()


@pytest_asyncio.fixture()
async def catalog(db):
    """Features, plans, buttons and navigation as the seed script creates them."""
    await seed_features(db)
    await seed_plans(db)
    await seed_buttons(db)
    await seed_navigation(db)
    await db.commit()


@pytest.fixture()
def make_org(db):
    async def _make(name="Acme Lettings", plan_name=None, **subscription):
        org = Organization(name=name)
        db.add(org)
        await db.flush()
        if plan_name is not None:
            plan = await db.scalar(select(Plan).where(Plan.name == plan_name))
            db.add(Subscription(organization_id=org.id, plan_id=plan.id, **subscription))
            await db.flush()
        return org
    return _make


@pytest.fixture()
def make_user(db):
    counter = {"n": 0}

    async def _make(organization_id=None, profile_id=None, is_admin=False, is_active=True):
        counter["n"] += 1
        n = counter["n"]
        user = User(
            appwrite_id=f"appwrite-{n}",
            email=f"user{n}@example.com",
            name=f"User {n}",
            organization_id=organization_id,
            profile_id=profile_id,
            is_admin=is_admin,
            is_active=is_active,
        )
        db.add(user)
        await db.flush()
        return user
    return _make


@pytest.fixture()
def make_profile(db):
    """Create a profile with the given object grants, e.g. {"Tenant": {"can_read": True}}."""
    async def _make(organization_id=None, name="Custom", grants=None, **kwargs):
        profile = await create_profile(db, name, organization_id=organization_id, **kwargs)
        if grants:
            await put_object_permissions(
                db, profile.id, [{"object_type": object_type, **flags} for object_type, flags in grants.items()]
            )
        return profile
    return _make
