"""
Pydantic schemas for navigation items, overrides and the navigation tree.
"""
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from app.features.profiles.models import ObjectAction, ObjectType


class NavigationItemUpsert(BaseModel):
    """Create or update a navigation item. Omitted fields keep their value."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    href: Optional[str] = Field(None, min_length=1, max_length=500)
    icon: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = None
    sort_order: Optional[int] = None
    parent_key: Optional[str] = None
    required_feature: Optional[str] = None
    required_permission: Optional[str] = None
    required_object_type: Optional[str] = None
    required_object_action: Optional[str] = None
    is_active: Optional[bool] = None


class NavigationParentUpdate(BaseModel):
    parent_key: Optional[str] = None


class NavigationItemResponse(BaseModel):
    key: str
    name: str
    href: str
    icon: Optional[str] = None
    description: Optional[str] = None
    sort_order: int
    parent_key: Optional[str] = None
    required_feature: Optional[str] = None
    required_permission: Optional[str] = None
    required_object_type: Optional[ObjectType] = None
    required_object_action: ObjectAction
    is_active: bool
    is_system_item: bool

    model_config = ConfigDict(from_attributes=True)


class NavigationOverrideUpdate(BaseModel):
    is_enabled: Optional[bool] = None
    is_visible: Optional[bool] = None
    custom_sort_order: Optional[int] = None


class NavigationOverrideResponse(BaseModel):
    navigation_key: str
    is_enabled: bool
    is_visible: bool
    custom_sort_order: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)


class NavigationNodeResponse(BaseModel):
    key: str
    name: str
    href: str
    icon: Optional[str] = None
    sort_order: int
    children: List["NavigationNodeResponse"] = []

    model_config = ConfigDict(from_attributes=True)


NavigationNodeResponse.model_rebuild()
