"""
Pydantic schemas for units and tenants.
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class UnitCreate(BaseModel):
    unit_number: str = Field(..., min_length=1, max_length=50)
    property_id: Optional[str] = None


class UnitResponse(BaseModel):
    id: str
    organization_id: str
    property_id: Optional[str] = None
    unit_number: str

    model_config = ConfigDict(from_attributes=True)


class TenantCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: Optional[str] = Field(None, max_length=255)
    has_extranet_access: bool = False
