"""
Async engine, session factory and schema bootstrap.

Every request gets its own AsyncSession from get_db. Nothing is cached across
sessions, so access decisions always read the current permission and
entitlement rows.
"""
from collections.abc import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from app.core import config
from app.utils import get_logger


log = get_logger(__name__)

_is_sqlite = config.SQLALCHEMY_DATABASE_URL.startswith("sqlite")

engine = create_async_engine(
    config.SQLALCHEMY_DATABASE_URL,
    # aiosqlite connections are cheap; pooling them only holds file locks
    poolclass=NullPool if _is_sqlite else None,
    echo=config.LOG_LEVEL == "DEBUG",
)

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session.

    Services only flush; route handlers commit. Whatever is still pending
    when the handler returns is committed here, and any error rolls the
    request back.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def import_models() -> None:
    """Register every table on Base.metadata."""
    from app.features.organizations.models import Organization  # noqa: F401
    from app.features.users.models import User  # noqa: F401
    from app.features.profiles.models import (  # noqa: F401
        Profile, ObjectPermission, FieldPermission, ActionPermission
    )
    from app.features.entitlements.models import (  # noqa: F401
        Feature, Plan, PlanFeature, Subscription
    )
    from app.features.ui.models import (  # noqa: F401
        ButtonDefinition, ProfileButtonPermission, NavigationItem,
        ProfileNavigationItem, OrganizationNavigationItem
    )
    from app.features.units.models import Property, Unit, Tenant  # noqa: F401


async def init_db() -> None:
    """Create missing tables. Run at startup and by the seed script."""
    from app.core.database.base import Base

    import_models()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    log.info(f"Schema ready on {engine.url.render_as_string(hide_password=True)}")


async def dispose_db() -> None:
    """Close pooled connections on shutdown."""
    await engine.dispose()
