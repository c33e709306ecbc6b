# src/auth/models.py
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Boolean
from sqlalchemy.orm import relationship
from database import Base, utcnow
from datetime import datetime
from typing import Optional

ROLE_ADMIN = "admin"
ROLE_MEMBER = "member"
ROLE_TRAINER = "trainer"
ROLES = (ROLE_ADMIN, ROLE_MEMBER, ROLE_TRAINER)


class User(Base):
    """Represents a gym user (admin, member or trainer)."""
    __tablename__ = "users"

    id: int = Column(Integer, primary_key=True, index=True)
    name: str = Column(String, nullable=False)
    email: str = Column(String, unique=True, index=True, nullable=False)
    phone: Optional[str] = Column(String, nullable=True)
    password_hash: str = Column(String, nullable=False)
    role: str = Column(String, nullable=False, default=ROLE_MEMBER)
    is_active: bool = Column(Boolean, nullable=False, default=True)
    created_at: datetime = Column(DateTime, default=utcnow)

    transactions = relationship("Transaction", back_populates="user")
    memberships = relationship("UserMembership", back_populates="user")
    trainer_profile = relationship("TrainerProfile", back_populates="user", uselist=False)
    admin_actions = relationship("AdminActionLog", back_populates="admin")


class AdminActionLog(Base):
    """Represents a log of admin actions."""
    __tablename__ = "admin_action_logs"

    id: int = Column(Integer, primary_key=True, index=True)
    admin_id: int = Column(Integer, ForeignKey("users.id"), nullable=False)
    action: str = Column(String, nullable=False)
    timestamp: datetime = Column(DateTime, nullable=False, default=utcnow)

    admin = relationship("User", back_populates="admin_actions")
