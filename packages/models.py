# src/packages/models.py
from sqlalchemy import Column, Integer, String, Numeric, DateTime, Boolean, Text
from sqlalchemy.orm import relationship
from database import Base, utcnow
from datetime import datetime
from decimal import Decimal
from typing import Optional

class Package(Base):
    """Represents a purchasable gym membership package."""
    __tablename__ = "packages"

    id: int = Column(Integer, primary_key=True, index=True)
    name: str = Column(String, unique=True, nullable=False)
    description: Optional[str] = Column(Text, nullable=True)
    price: Decimal = Column(Numeric(12, 2), nullable=False)
    promo_price: Optional[Decimal] = Column(Numeric(12, 2), nullable=True)
    promo_expires_at: Optional[datetime] = Column(DateTime, nullable=True)
    duration_days: int = Column(Integer, nullable=False)
    pt_sessions_quota: Optional[int] = Column(Integer, nullable=True)
    is_active: bool = Column(Boolean, nullable=False, default=True)
    created_at: datetime = Column(DateTime, default=utcnow)

    transactions = relationship("Transaction", back_populates="package")
    promo_codes = relationship("PromoCode", back_populates="package")
