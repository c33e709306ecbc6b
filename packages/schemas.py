# src/packages/schemas.py
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional

class PackageCreate(BaseModel):
    """Schema for creating a package."""
    name: str = Field(min_length=1)
    description: Optional[str] = None
    price: Decimal = Field(ge=0)
    promo_price: Optional[Decimal] = Field(default=None, ge=0)
    promo_expires_at: Optional[datetime] = None
    duration_days: int = Field(gt=0)
    pt_sessions_quota: Optional[int] = Field(default=None, ge=0)
    is_active: bool = True

class PackageUpdate(BaseModel):
    """Schema for a partial package update."""
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[Decimal] = Field(default=None, ge=0)
    promo_price: Optional[Decimal] = Field(default=None, ge=0)
    promo_expires_at: Optional[datetime] = None
    duration_days: Optional[int] = Field(default=None, gt=0)
    pt_sessions_quota: Optional[int] = Field(default=None, ge=0)
    is_active: Optional[bool] = None

class PackageResponse(BaseModel):
    """Schema for package response."""
    id: int
    name: str
    description: Optional[str]
    price: Decimal
    promo_price: Optional[Decimal]
    promo_expires_at: Optional[datetime]
    duration_days: int
    pt_sessions_quota: Optional[int]
    is_active: bool

    model_config = ConfigDict(from_attributes=True)
