"""
Pydantic schemas for features, plans and quotas.
"""
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class FeatureResponse(BaseModel):
    name: str
    display_name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    is_premium: bool
    is_beta: bool
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class PlanResponse(BaseModel):
    id: str
    name: str
    display_name: Optional[str] = None
    max_lots: Optional[int] = None
    max_users: Optional[int] = None
    max_extranet_tenants: Optional[int] = None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class EnabledFeaturesResponse(BaseModel):
    organization_id: str
    plan: Optional[PlanResponse] = None
    features: List[str]


class PlanFeatureStatusResponse(BaseModel):
    feature_name: str
    is_enabled: bool
    source: str = Field(..., description="plan_feature, plan_map or default")
    display_name: Optional[str] = None
    category: Optional[str] = None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class PlanFeatureUpdate(BaseModel):
    is_enabled: bool


class QuotaStatusResponse(BaseModel):
    resource_kind: str
    allowed: bool
    current_count: int
    limit: Optional[int] = None
    requested: int
    remaining: Optional[int] = None
    unlimited: bool

    model_config = ConfigDict(from_attributes=True)
