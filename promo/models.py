# src/promo/models.py
from sqlalchemy import Column, Integer, String, Numeric, DateTime, Boolean, Text, ForeignKey
from sqlalchemy.orm import relationship
from database import Base, utcnow
from datetime import datetime
from decimal import Decimal
from typing import Optional

DISCOUNT_PERCENT = "PERCENT"
DISCOUNT_FIXED = "FIXED"

class PromoCode(Base):
    """Represents a promo code redeemable on package purchases."""
    __tablename__ = "promo_codes"

    id: int = Column(Integer, primary_key=True, index=True)
    code: str = Column(String, unique=True, index=True, nullable=False)  # always uppercase
    description: Optional[str] = Column(Text, nullable=True)
    discount_type: str = Column(String, nullable=False)  # PERCENT, FIXED
    value: Decimal = Column(Numeric(12, 2), nullable=False)
    max_discount: Optional[Decimal] = Column(Numeric(12, 2), nullable=True)
    min_amount: Optional[Decimal] = Column(Numeric(12, 2), nullable=True)
    starts_at: Optional[datetime] = Column(DateTime, nullable=True)
    ends_at: Optional[datetime] = Column(DateTime, nullable=True)
    usage_limit: Optional[int] = Column(Integer, nullable=True)
    used_count: int = Column(Integer, nullable=False, default=0)
    package_id: Optional[int] = Column(Integer, ForeignKey("packages.id"), nullable=True)
    is_active: bool = Column(Boolean, nullable=False, default=True)
    created_at: datetime = Column(DateTime, default=utcnow)

    package = relationship("Package", back_populates="promo_codes")
    transactions = relationship("Transaction", back_populates="promo_code")
