# src/trainer/models.py
from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime, Numeric, JSON
from sqlalchemy.orm import relationship
from database import Base, utcnow
from datetime import datetime
from decimal import Decimal
from typing import Any, List, Optional

SESSION_BOOKED = "BOOKED"
SESSION_COMPLETED = "COMPLETED"
SESSION_NOSHOW = "NOSHOW"
SESSION_CANCELLED = "CANCELLED"

class TrainerProfile(Base):
    """Marks a user as a trainer."""
    __tablename__ = "trainer_profiles"

    id: int = Column(Integer, primary_key=True, index=True)
    user_id: int = Column(Integer, ForeignKey("users.id"), nullable=False, unique=True)
    bio: Optional[str] = Column(Text, nullable=True)
    specialties: Optional[str] = Column(String, nullable=True)
    rate: Optional[Decimal] = Column(Numeric(12, 2), nullable=True)  # per session, IDR
    rating: Optional[Decimal] = Column(Numeric(3, 2), nullable=True)

    user = relationship("User", back_populates="trainer_profile")
    availabilities = relationship(
        "TrainerAvailability",
        back_populates="trainer",
        cascade="all, delete-orphan",
        order_by="[TrainerAvailability.day_of_week, TrainerAvailability.start_time]",
    )

class TrainerAvailability(Base):
    """One weekly working window of a trainer."""
    __tablename__ = "trainer_availabilities"

    id: int = Column(Integer, primary_key=True, index=True)
    trainer_id: int = Column(Integer, ForeignKey("trainer_profiles.id"), nullable=False, index=True)
    day_of_week: int = Column(Integer, nullable=False)  # 0=Sunday .. 6=Saturday
    start_time: str = Column(String(5), nullable=False)  # HH:MM
    end_time: str = Column(String(5), nullable=False)

    trainer = relationship("TrainerProfile", back_populates="availabilities")

class PTSession(Base):
    """A personal-training session booked by a member."""
    __tablename__ = "pt_sessions"

    id: int = Column(Integer, primary_key=True, index=True)
    trainer_id: int = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)  # trainer's user id
    member_id: int = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    scheduled_at: datetime = Column(DateTime, nullable=False, index=True)
    duration_minutes: int = Column(Integer, nullable=False, default=60)
    status: str = Column(String, nullable=False, default=SESSION_BOOKED)  # BOOKED, COMPLETED, NOSHOW, CANCELLED
    notes: Optional[str] = Column(Text, nullable=True)
    exercises: Optional[List[Any]] = Column(JSON, nullable=True)
    feedback: Optional[str] = Column(Text, nullable=True)
    completed_at: Optional[datetime] = Column(DateTime, nullable=True)
    created_at: datetime = Column(DateTime, nullable=False, default=utcnow)

    trainer = relationship("User", foreign_keys=[trainer_id])
    member = relationship("User", foreign_keys=[member_id])
