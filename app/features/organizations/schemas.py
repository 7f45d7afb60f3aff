"""
Pydantic schemas for organizations and their subscriptions.
"""
from datetime import datetime
from pydantic import BaseModel, Field

from app.features.entitlements.models import BillingPeriod, SubscriptionStatus


class OrganizationCreate(BaseModel):
    """Schema for creating an organization."""
    name: str = Field(..., min_length=1, max_length=255)
    subdomain: str | None = Field(None, min_length=1, max_length=63)
    contact_email: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=20)
    with_default_profiles: bool = Field(True, description="Create Owner, Accountant, Agent and Viewer")


class OrganizationResponse(BaseModel):
    id: str
    name: str
    subdomain: str | None = None
    contact_email: str | None = None
    phone: str | None = None
    is_active: bool

    model_config = {"from_attributes": True}


class SubscriptionCreate(BaseModel):
    """Bind an organization to a plan. Earlier live subscriptions are canceled."""
    plan_id: str
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    billing_period: BillingPeriod = BillingPeriod.MONTHLY
    current_period_start: datetime | None = None
    current_period_end: datetime | None = None


class SubscriptionResponse(BaseModel):
    id: str
    organization_id: str
    plan_id: str
    status: SubscriptionStatus
    billing_period: BillingPeriod
    current_period_start: datetime | None = None
    current_period_end: datetime | None = None

    model_config = {"from_attributes": True}
