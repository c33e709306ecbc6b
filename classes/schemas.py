# src/classes/schemas.py
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional
from classes.models import DEFAULT_CAPACITY

class ClassCreate(BaseModel):
    """Schema for scheduling a class."""
    title: str = Field(min_length=1)
    description: Optional[str] = None
    instructor: Optional[str] = None
    location: Optional[str] = None
    start_time: datetime
    end_time: datetime
    capacity: int = Field(default=DEFAULT_CAPACITY, ge=1)

class ClassUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    instructor: Optional[str] = None
    location: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    capacity: Optional[int] = Field(default=None, ge=1)

class ClassResponse(BaseModel):
    id: int
    title: str
    description: Optional[str] = None
    instructor: Optional[str] = None
    location: Optional[str] = None
    start_time: datetime
    end_time: datetime
    capacity: int
    booked_count: int = 0
    available_slots: int = 0

    model_config = ConfigDict(from_attributes=True)

class BookingUser(BaseModel):
    id: int
    name: str
    email: str

    model_config = ConfigDict(from_attributes=True)

class BookingResponse(BaseModel):
    id: int
    user_id: int
    class_id: int
    status: str
    checkin_code: str
    checked_in_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

class BookingWithClassResponse(BookingResponse):
    """A member's booking together with the class it is for."""
    gym_class: ClassResponse

class BookingWithUserResponse(BookingResponse):
    user: BookingUser

class CheckinRequest(BaseModel):
    code: str = Field(min_length=1)

class CheckinResponse(BaseModel):
    message: str
    booking: BookingResponse
