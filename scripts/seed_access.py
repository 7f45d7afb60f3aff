"""
Seed script for the access engine catalogs.

Run this script after database initialization to create:
- The feature catalog and the plans (freemium to enterprise)
- The button definitions and the navigation items
- The global system profiles (Owner, Accountant, Agent, Viewer)
- Button permission rows for every active profile

Every step is idempotent; existing rows are updated in place.

Usage:
    uv run python -m scripts.seed_access
"""
import asyncio
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database.engine import get_db, init_db
from app.features.entitlements.catalog import FEATURES, PLANS
from app.features.entitlements.models import Feature, Plan
from app.features.profiles.service import create_default_profiles
from app.features.ui.buttons import sync_all_profiles
from app.features.ui.catalog import BUTTON_DEFINITIONS, NAVIGATION_ITEMS
from app.features.ui.models import ButtonDefinition
from app.features.ui.navigation import upsert_navigation_item
from app.utils import get_logger


log = get_logger(__name__)


async def seed_features(db: AsyncSession) -> None:
    log.info("Seeding feature catalog...")
    for name, (display_name, category, is_premium) in FEATURES.items():
        feature = await db.scalar(select(Feature).where(Feature.name == name))
        if feature is None:
            feature = Feature(name=name)
            db.add(feature)
        feature.display_name = display_name
        feature.category = category
        feature.is_premium = is_premium
    await db.flush()
    log.info(f"{len(FEATURES)} features seeded")


async def seed_plans(db: AsyncSession) -> None:
    log.info("Seeding plans...")
    for name, (display_name, max_lots, max_users, max_extranet_tenants, features) in PLANS.items():
        plan = await db.scalar(select(Plan).where(Plan.name == name))
        if plan is None:
            plan = Plan(name=name)
            db.add(plan)
        plan.display_name = display_name
        plan.max_lots = max_lots
        plan.max_users = max_users
        plan.max_extranet_tenants = max_extranet_tenants
        plan.features = dict(features)
    await db.flush()
    log.info(f"{len(PLANS)} plans seeded")


async def seed_buttons(db: AsyncSession) -> None:
    log.info("Seeding button definitions...")
    for definition in BUTTON_DEFINITIONS:
        button = await db.scalar(select(ButtonDefinition).where(ButtonDefinition.key == definition["key"]))
        if button is None:
            button = ButtonDefinition(key=definition["key"])
            db.add(button)
        for name, value in definition.items():
            setattr(button, name, value)
    await db.flush()
    log.info(f"{len(BUTTON_DEFINITIONS)} buttons seeded")


async def seed_navigation(db: AsyncSession) -> None:
    log.info("Seeding navigation items...")
    for definition in NAVIGATION_ITEMS:
        fields = dict(definition)
        key = fields.pop("key")
        await upsert_navigation_item(db, key, **fields)
    log.info(f"{len(NAVIGATION_ITEMS)} navigation items seeded")


async def main():
    """Seed catalogs, global profiles and button rows."""
    log.info("Starting access seeding...")

    log.info("Initializing database tables...")
    await init_db()

    async for db in get_db():
        try:
            await seed_features(db)
            await seed_plans(db)
            await seed_buttons(db)
            await seed_navigation(db)

            profiles = await create_default_profiles(db)
            log.info(f"Global profiles: {', '.join(p.name for p in profiles)}")

            synced = await sync_all_profiles(db)
            log.info(f"Button permissions synced for {synced} profiles")

            await db.commit()
            log.info("Access seeding completed successfully!")

        except Exception as e:
            log.error(f"Error seeding access catalogs: {e}", exc_info=True)
            await db.rollback()
            raise

        break  # Only use first session


if __name__ == "__main__":
    asyncio.run(main())
