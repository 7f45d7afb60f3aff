"""
Navigation items, overrides and the per-user navigation tree.

Enabled/visible precedence for an item: the organization row, else the
profile row, else the item default (enabled and visible). An item shows
only if it passes its feature, permission and object gates, and a hidden
parent hides its whole subtree.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError, ValidationError
from app.features.entitlements.resolver import resolve_enabled_features
from app.features.organizations.dependencies import get_organization_by_id
from app.features.profiles.models import ObjectAction
from app.features.profiles.resolver import (
    get_profile,
    parse_object_action,
    parse_object_type,
    resolve_action_permission,
    resolve_object_permission,
)
from app.features.ui.models import NavigationItem, OrganizationNavigationItem, ProfileNavigationItem
from app.utils import get_logger


log = get_logger(__name__)


NAVIGATION_ACTIONS = (ObjectAction.READ, ObjectAction.CREATE, ObjectAction.EDIT, ObjectAction.DELETE)

ITEM_FIELDS = (
    "name", "href", "icon", "description", "sort_order", "parent_key",
    "required_feature", "required_permission", "required_object_type", "required_object_action",
    "is_active", "is_system_item",
)

OVERRIDE_FIELDS = ("is_enabled", "is_visible", "custom_sort_order")


# ============================================================================
# Items
# ============================================================================

async def get_navigation_item(db: AsyncSession, key: str) -> NavigationItem:
    """Get a navigation item by key or raise NotFoundError."""
    result = await db.execute(select(NavigationItem).where(NavigationItem.key == key))
    item = result.scalar_one_or_none()
    if item is None:
        raise NotFoundError(f"Navigation item {key} not found")
    return item


async def list_navigation_items(db: AsyncSession) -> List[NavigationItem]:
    result = await db.execute(
        select(NavigationItem).order_by(NavigationItem.sort_order, NavigationItem.key)
    )
    return list(result.scalars().all())


async def _parent_map(db: AsyncSession) -> Dict[str, Optional[str]]:
    result = await db.execute(select(NavigationItem.key, NavigationItem.parent_key))
    return {key: parent for key, parent in result.all()}


def creates_cycle(parents: Dict[str, Optional[str]], key: str, parent_key: Optional[str]) -> bool:
    """True if making parent_key the parent of key closes a loop."""
    seen = set()
    current = parent_key
    while current is not None:
        if current == key:
            return True
        if current in seen:
            # pre-existing loop not involving key
            return True
        seen.add(current)
        current = parents.get(current)
    return False


async def set_navigation_parent(db: AsyncSession, key: str, parent_key: Optional[str]) -> NavigationItem:
    """Re-parent an item, rejecting unknown parents and cycles."""
    item = await get_navigation_item(db, key)
    if parent_key is not None:
        await get_navigation_item(db, parent_key)
        if creates_cycle(await _parent_map(db), key, parent_key):
            raise ValidationError(
                f"Setting {parent_key} as parent of {key} would create a cycle",
                field="parent_key",
            )
    item.parent_key = parent_key
    await db.flush()
    return item


def _clean_item_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    unknown = set(fields) - set(ITEM_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown navigation item fields: {sorted(unknown)}")

    cleaned = dict(fields)
    if cleaned.get("required_object_type") is not None:
        cleaned["required_object_type"] = parse_object_type(cleaned["required_object_type"])
    if "required_object_action" in cleaned:
        action = parse_object_action(cleaned["required_object_action"] or ObjectAction.READ)
        if action not in NAVIGATION_ACTIONS:
            raise ValidationError(
                f"Navigation items cannot require {action.value}",
                field="required_object_action",
            )
        cleaned["required_object_action"] = action
    return cleaned


async def upsert_navigation_item(db: AsyncSession, key: str, **fields: Any) -> NavigationItem:
    """Create or update a navigation item by key. parent_key goes through the cycle check."""
    if not key:
        raise ValidationError("key is required", field="key")
    fields = _clean_item_fields(fields)
    parent_given = "parent_key" in fields
    parent_key = fields.pop("parent_key", None)

    result = await db.execute(select(NavigationItem).where(NavigationItem.key == key))
    item = result.scalar_one_or_none()
    if item is None:
        for required in ("name", "href"):
            if not fields.get(required):
                raise ValidationError(f"{required} is required", field=required)
        item = NavigationItem(key=key, **fields)
        db.add(item)
        await db.flush()
        log.info(f"Created navigation item {key}")
    else:
        for name, value in fields.items():
            setattr(item, name, value)
        await db.flush()

    if parent_given:
        await set_navigation_parent(db, key, parent_key)
    return item


# ============================================================================
# Overrides
# ============================================================================

async def set_profile_navigation_override(
    db: AsyncSession,
    profile_id: str,
    navigation_key: str,
    **fields: Any,
) -> ProfileNavigationItem:
    """Upsert the profile row of a navigation item. Fields not given keep their value."""
    _check_override_fields(fields)
    await get_profile(db, profile_id)
    await get_navigation_item(db, navigation_key)

    result = await db.execute(
        select(ProfileNavigationItem).where(
            and_(
                ProfileNavigationItem.profile_id == profile_id,
                ProfileNavigationItem.navigation_key == navigation_key,
            )
        )
    )
    row = result.scalar_one_or_none()
    if row is None:
        row = ProfileNavigationItem(
            profile_id=profile_id, navigation_key=navigation_key, is_enabled=True, is_visible=True
        )
        db.add(row)
    _apply_override(row, fields)
    await db.flush()
    return row


async def set_organization_navigation_override(
    db: AsyncSession,
    organization_id: str,
    navigation_key: str,
    **fields: Any,
) -> OrganizationNavigationItem:
    """Upsert the organization row of a navigation item. Fields not given keep their value."""
    _check_override_fields(fields)
    await get_organization_by_id(db, organization_id)
    await get_navigation_item(db, navigation_key)

    result = await db.execute(
        select(OrganizationNavigationItem).where(
            and_(
                OrganizationNavigationItem.organization_id == organization_id,
                OrganizationNavigationItem.navigation_key == navigation_key,
            )
        )
    )
    row = result.scalar_one_or_none()
    if row is None:
        row = OrganizationNavigationItem(
            organization_id=organization_id, navigation_key=navigation_key, is_enabled=True, is_visible=True
        )
        db.add(row)
    _apply_override(row, fields)
    await db.flush()
    return row


def _check_override_fields(fields: Dict[str, Any]) -> None:
    unknown = set(fields) - set(OVERRIDE_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown navigation override fields: {sorted(unknown)}")


def _apply_override(row, fields: Dict[str, Any]) -> None:
    for name, value in fields.items():
        if value is None and name != "custom_sort_order":
            continue
        setattr(row, name, value)


# ============================================================================
# Tree
# ============================================================================

@dataclass
class NavigationNode:
    key: str
    name: str
    href: str
    icon: Optional[str]
    sort_order: int
    children: List["NavigationNode"] = field(default_factory=list)


async def _item_passes_gates(db: AsyncSession, ctx, item: NavigationItem, enabled_features: Set[str]) -> bool:
    if item.required_feature and item.required_feature not in enabled_features:
        return False
    if ctx.is_super_admin:
        return True
    if item.required_object_type is not None:
        capabilities = await resolve_object_permission(db, ctx.profile_id, item.required_object_type)
        if not capabilities.allows(item.required_object_action or ObjectAction.READ):
            return False
    if item.required_permission:
        if not await resolve_action_permission(db, ctx.profile_id, item.required_permission):
            return False
    return True


async def resolve_navigation(
    db: AsyncSession,
    ctx,
    enabled_features: Optional[Set[str]] = None,
) -> List[NavigationNode]:
    """
    Build the navigation tree visible to an access context.

    ctx needs profile_id, organization_id and is_super_admin. Pass
    enabled_features when they are already resolved.
    """
    if enabled_features is None:
        enabled_features = (
            await resolve_enabled_features(db, ctx.organization_id) if ctx.organization_id else set()
        )

    result = await db.execute(select(NavigationItem))
    all_items = {item.key: item for item in result.scalars().all()}
    items = {key: item for key, item in all_items.items() if item.is_active}

    profile_rows: Dict[str, ProfileNavigationItem] = {}
    if ctx.profile_id is not None:
        result = await db.execute(
            select(ProfileNavigationItem).where(ProfileNavigationItem.profile_id == ctx.profile_id)
        )
        profile_rows = {row.navigation_key: row for row in result.scalars().all()}

    organization_rows: Dict[str, OrganizationNavigationItem] = {}
    if ctx.organization_id is not None:
        result = await db.execute(
            select(OrganizationNavigationItem).where(
                OrganizationNavigationItem.organization_id == ctx.organization_id
            )
        )
        organization_rows = {row.navigation_key: row for row in result.scalars().all()}

    shown: Dict[str, NavigationNode] = {}
    for key, item in items.items():
        override = organization_rows.get(key) or profile_rows.get(key)
        if override is not None and not (override.is_enabled and override.is_visible):
            continue
        if not await _item_passes_gates(db, ctx, item, enabled_features):
            continue

        sort_order = item.sort_order
        for row in (organization_rows.get(key), profile_rows.get(key)):
            if row is not None and row.custom_sort_order is not None:
                sort_order = row.custom_sort_order
                break

        shown[key] = NavigationNode(
            key=item.key, name=item.name, href=item.href, icon=item.icon, sort_order=sort_order
        )

    children: Dict[Optional[str], List[NavigationNode]] = {}
    for key, node in shown.items():
        parent_key = items[key].parent_key
        if parent_key is not None and parent_key not in all_items:
            parent_key = None
        children.setdefault(parent_key, []).append(node)

    def attach(parent_key: Optional[str]) -> List[NavigationNode]:
        nodes = sorted(children.get(parent_key, []), key=lambda n: (n.sort_order, n.key))
        for node in nodes:
            node.children = attach(node.key)
        return nodes

    # Children of hidden or inactive parents never get attached
    return attach(None)
