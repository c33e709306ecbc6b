# src/promo/schemas.py
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

class DiscountType(str, Enum):
    PERCENT = "PERCENT"
    FIXED = "FIXED"

class PromoCreate(BaseModel):
    """Schema for creating a promo code."""
    code: str = Field(min_length=3)
    description: Optional[str] = None
    discount_type: DiscountType
    value: Decimal = Field(ge=0)
    max_discount: Optional[Decimal] = Field(default=None, ge=0)
    min_amount: Optional[Decimal] = Field(default=None, ge=0)
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    usage_limit: Optional[int] = Field(default=None, ge=1)
    package_id: Optional[int] = None
    is_active: bool = True

class PromoUpdate(BaseModel):
    """Schema for a partial promo code update."""
    code: Optional[str] = Field(default=None, min_length=3)
    description: Optional[str] = None
    discount_type: Optional[DiscountType] = None
    value: Optional[Decimal] = Field(default=None, ge=0)
    max_discount: Optional[Decimal] = Field(default=None, ge=0)
    min_amount: Optional[Decimal] = Field(default=None, ge=0)
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    usage_limit: Optional[int] = Field(default=None, ge=1)
    package_id: Optional[int] = None
    is_active: Optional[bool] = None

class PromoResponse(BaseModel):
    """Schema for promo code response."""
    id: int
    code: str
    description: Optional[str]
    discount_type: str
    value: Decimal
    max_discount: Optional[Decimal]
    min_amount: Optional[Decimal]
    starts_at: Optional[datetime]
    ends_at: Optional[datetime]
    usage_limit: Optional[int]
    used_count: int
    package_id: Optional[int]
    is_active: bool

    model_config = ConfigDict(from_attributes=True)

class PromoValidateRequest(BaseModel):
    code: str = Field(min_length=1)
    package_id: int

class PromoQuoteResponse(BaseModel):
    """Price breakdown for a promo applied to a package."""
    promo: PromoResponse
    base_price: Decimal
    discount: Decimal
    final_amount: Decimal
