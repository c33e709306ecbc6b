# src/membership/models.py
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from database import Base
from datetime import datetime

MEMBERSHIP_UPCOMING = "upcoming"
MEMBERSHIP_ACTIVE = "active"
MEMBERSHIP_EXPIRED = "expired"

class UserMembership(Base):
    """Represents one membership period bought by a user."""
    __tablename__ = "user_memberships"

    id: int = Column(Integer, primary_key=True, index=True)
    user_id: int = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    package_id: int = Column(Integer, ForeignKey("packages.id"), nullable=False)
    transaction_id: int = Column(Integer, ForeignKey("transactions.id"), nullable=False, unique=True)  # one per transaction
    start_date: datetime = Column(DateTime, nullable=False)
    end_date: datetime = Column(DateTime, nullable=False)
    status: str = Column(String, nullable=False, default=MEMBERSHIP_ACTIVE)  # upcoming, active, expired

    user = relationship("User", back_populates="memberships")
    package = relationship("Package")
    transaction = relationship("Transaction", back_populates="membership")
