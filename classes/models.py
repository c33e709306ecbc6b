# src/classes/models.py
from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from database import Base, utcnow
from datetime import datetime
from typing import Optional

BOOKING_BOOKED = "booked"
BOOKING_CHECKED_IN = "checked_in"
BOOKING_CANCELLED = "cancelled"
ACTIVE_BOOKING_STATUSES = (BOOKING_BOOKED, BOOKING_CHECKED_IN)

DEFAULT_CAPACITY = 20

class GymClass(Base):
    """A scheduled group class."""
    __tablename__ = "gym_classes"

    id: int = Column(Integer, primary_key=True, index=True)
    title: str = Column(String, nullable=False)
    description: Optional[str] = Column(Text, nullable=True)
    instructor: Optional[str] = Column(String, nullable=True)
    location: Optional[str] = Column(String, nullable=True)
    start_time: datetime = Column(DateTime, nullable=False, index=True)
    end_time: datetime = Column(DateTime, nullable=False)
    capacity: int = Column(Integer, nullable=False, default=DEFAULT_CAPACITY)
    created_at: datetime = Column(DateTime, nullable=False, default=utcnow)

    bookings = relationship("ClassBooking", back_populates="gym_class", cascade="all, delete-orphan")

class ClassBooking(Base):
    """A member's seat in a class, checked in with its code."""
    __tablename__ = "class_bookings"

    id: int = Column(Integer, primary_key=True, index=True)
    user_id: int = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    class_id: int = Column(Integer, ForeignKey("gym_classes.id"), nullable=False, index=True)
    status: str = Column(String, nullable=False, default=BOOKING_BOOKED)  # booked, checked_in, cancelled
    checkin_code: str = Column(String, nullable=False, unique=True, index=True)
    checked_in_at: Optional[datetime] = Column(DateTime, nullable=True)
    created_at: datetime = Column(DateTime, nullable=False, default=utcnow)

    user = relationship("User")
    gym_class = relationship("GymClass", back_populates="bookings")
