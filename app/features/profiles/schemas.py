"""
Pydantic schemas for profiles and their permissions.

Enum-valued request fields are plain strings so unknown values reach the
service layer and come back as validation_error responses.
"""
from typing import Dict, List, Optional
from pydantic import BaseModel, Field, ConfigDict

from app.features.profiles.models import AccessLevel, FieldAccessLevel, ObjectType
from app.features.ui.models import ButtonAction


# ============================================================================
# Profile Schemas
# ============================================================================

class ProfileCreate(BaseModel):
    """Schema for creating a profile."""
    name: str = Field(..., min_length=1, max_length=100)
    display_name: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    organization_id: Optional[str] = Field(None, description="Owning organization (null for a global profile)")
    is_active: bool = True


class ProfileUpdate(BaseModel):
    """Schema for updating a profile."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    display_name: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    is_active: Optional[bool] = None


class ProfileResponse(BaseModel):
    id: str
    name: str
    display_name: Optional[str] = None
    description: Optional[str] = None
    organization_id: Optional[str] = None
    is_system_profile: bool
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class ProfileAccessSummaryResponse(BaseModel):
    profile_id: str
    profile_name: str
    overall_access_level: AccessLevel
    object_access_levels: Dict[str, AccessLevel]
    can_create_any: bool
    can_edit_any: bool
    can_delete_any: bool
    can_view_all_any: bool
    total_objects: int
    accessible_objects: int

    model_config = ConfigDict(from_attributes=True)


class DefaultProfilesRequest(BaseModel):
    organization_id: Optional[str] = Field(None, description="Organization to seed (null for global profiles)")


# ============================================================================
# Object Permission Schemas
# ============================================================================

class ObjectCapabilitiesResponse(BaseModel):
    can_create: bool
    can_read: bool
    can_edit: bool
    can_delete: bool
    can_view_all: bool

    model_config = ConfigDict(from_attributes=True)


class ObjectPermissionItem(BaseModel):
    object_type: str
    access_level: Optional[str] = Field(None, description="Optional; must match the capabilities when given")
    can_create: bool = False
    can_read: bool = False
    can_edit: bool = False
    can_delete: bool = False
    can_view_all: bool = False


class ObjectPermissionsUpdate(BaseModel):
    permissions: List[ObjectPermissionItem]


class ObjectPermissionResponse(ObjectCapabilitiesResponse):
    object_type: ObjectType
    access_level: AccessLevel


# ============================================================================
# Field Permission Schemas
# ============================================================================

class FieldPermissionItem(BaseModel):
    object_type: str
    field_name: str = Field(..., min_length=1, max_length=100)
    can_read: bool = False
    can_edit: bool = False
    is_sensitive: Optional[bool] = Field(None, description="Defaults to the sensitive field catalog")


class FieldPermissionsUpdate(BaseModel):
    permissions: List[FieldPermissionItem]


class FieldPermissionResponse(BaseModel):
    object_type: ObjectType
    field_name: str
    access_level: FieldAccessLevel
    can_read: bool
    can_edit: bool
    is_sensitive: bool

    model_config = ConfigDict(from_attributes=True)


# ============================================================================
# Action Permission Schemas
# ============================================================================

class ActionPermissionsUpdate(BaseModel):
    grants: Dict[str, bool] = Field(..., description="permission name -> granted")


class ActionPermissionResponse(BaseModel):
    permission_name: str
    is_granted: bool

    model_config = ConfigDict(from_attributes=True)


# ============================================================================
# Button Permission Schemas
# ============================================================================

class ButtonPermissionItem(BaseModel):
    button_key: str = Field(..., min_length=1)
    is_enabled: Optional[bool] = None
    is_visible: Optional[bool] = None
    custom_label: Optional[str] = Field(None, max_length=255)
    custom_icon: Optional[str] = Field(None, max_length=50)


class ButtonPermissionsUpdate(BaseModel):
    button_permissions: List[ButtonPermissionItem]


class ButtonRowResponse(BaseModel):
    """A stored ProfileButtonPermission row."""
    button_key: str
    is_enabled: bool
    is_visible: bool
    custom_label: Optional[str] = None
    custom_icon: Optional[str] = None
    is_override: bool

    model_config = ConfigDict(from_attributes=True)


class ButtonPermissionResponse(BaseModel):
    """A button with its effective state for a profile."""
    key: str
    name: str
    label: str
    object_type: ObjectType
    action: ButtonAction
    icon: Optional[str] = None
    variant: Optional[str] = None
    required_feature: Optional[str] = None
    is_enabled: bool
    is_visible: bool
    custom_label: Optional[str] = None
    custom_icon: Optional[str] = None
    is_override: bool
    is_stored: bool
    object_permission: ObjectCapabilitiesResponse
