# src/payment/models.py
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Numeric, JSON
from sqlalchemy.orm import relationship
from database import Base, utcnow
from datetime import datetime
from decimal import Decimal
from typing import Optional

STATUS_PENDING = "pending"
STATUS_SUCCESS = "success"
STATUS_FAILED = "failed"

class Transaction(Base):
    """Represents a package purchase attempt paid through the gateway."""
    __tablename__ = "transactions"

    id: int = Column(Integer, primary_key=True, index=True)
    order_id: str = Column(String, unique=True, index=True, nullable=False)  # gateway external reference
    user_id: int = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    package_id: int = Column(Integer, ForeignKey("packages.id"), nullable=False)
    promo_code_id: Optional[int] = Column(Integer, ForeignKey("promo_codes.id"), nullable=True)
    amount: Decimal = Column(Numeric(12, 2), nullable=False)  # final amount charged
    discount_amount: Decimal = Column(Numeric(12, 2), nullable=False, default=Decimal("0"))
    status: str = Column(String, nullable=False, default=STATUS_PENDING, index=True)  # pending, success, failed
    payment_gateway: str = Column(String, nullable=False, default="midtrans")
    payment_token: Optional[str] = Column(String, nullable=True)
    payment_gateway_response: Optional[dict] = Column(JSON(none_as_null=True), nullable=True)
    created_at: datetime = Column(DateTime, nullable=False, default=utcnow, index=True)

    user = relationship("User", back_populates="transactions")
    package = relationship("Package", back_populates="transactions")
    promo_code = relationship("PromoCode", back_populates="transactions")
    membership = relationship("UserMembership", back_populates="transaction", uselist=False)
