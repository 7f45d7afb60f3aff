"""
Pydantic schemas for access decisions and the permission matrix.
"""
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field

from app.features.profiles.models import ObjectType
from app.features.profiles.schemas import ObjectCapabilitiesResponse
from app.features.ui.schemas import NavigationNodeResponse


class ObjectAccessRequest(BaseModel):
    object_type: str
    action: str


class FeatureAccessRequest(BaseModel):
    feature_key: str = Field(..., min_length=1)
    permission_name: Optional[str] = None


class ActionAccessRequest(BaseModel):
    permission_name: str = Field(..., min_length=1)


class AccessDecisionResponse(BaseModel):
    allowed: bool


class EffectiveButtonResponse(BaseModel):
    key: str
    label: str
    icon: Optional[str] = None
    object_type: ObjectType
    action: str
    is_enabled: bool
    is_visible: bool

    model_config = ConfigDict(from_attributes=True)


class PermissionMatrixResponse(BaseModel):
    objects: Dict[str, ObjectCapabilitiesResponse]
    features: List[str]
    buttons: List[EffectiveButtonResponse]
    navigation: List[NavigationNodeResponse]

    model_config = ConfigDict(from_attributes=True)
