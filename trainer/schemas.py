# src/trainer/schemas.py
from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

class AvailabilitySlot(BaseModel):
    """One weekly window; day_of_week 0=Sunday .. 6=Saturday."""
    day_of_week: int = Field(ge=0, le=6)
    start_time: str
    end_time: str

class AvailabilityUpdate(BaseModel):
    """Replace the windows of every day present in slots. Admins may target another trainer."""
    trainer_id: Optional[int] = None
    slots: List[AvailabilitySlot] = Field(min_length=1)

class AvailabilityResponse(BaseModel):
    id: int
    day_of_week: int
    start_time: str
    end_time: str

    model_config = ConfigDict(from_attributes=True)

class TrainerProfileResponse(BaseModel):
    id: int
    bio: Optional[str]
    specialties: Optional[str]
    rate: Optional[Decimal] = None
    rating: Optional[Decimal] = None
    availabilities: List[AvailabilityResponse] = []

    model_config = ConfigDict(from_attributes=True)

class TrainerResponse(BaseModel):
    id: int
    name: str
    email: str
    trainer_profile: Optional[TrainerProfileResponse] = None

    model_config = ConfigDict(from_attributes=True)

class SessionBook(BaseModel):
    """Schema for booking a PT session."""
    scheduled_at: datetime
    duration_minutes: Optional[int] = Field(default=None, ge=15, le=180)
    notes: Optional[str] = Field(default=None, max_length=500)

class ExerciseEntry(BaseModel):
    name: str = Field(min_length=1)
    sets: Optional[int] = Field(default=None, ge=0)
    reps: Optional[int] = Field(default=None, ge=0)
    weight: Optional[float] = Field(default=None, ge=0)

class SessionResponse(BaseModel):
    id: int
    trainer_id: int
    member_id: int
    scheduled_at: datetime
    duration_minutes: int
    status: str
    notes: Optional[str]
    exercises: Optional[List[ExerciseEntry]] = None
    feedback: Optional[str] = None
    completed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class TrainerAvailabilityDay(BaseModel):
    """Free slots of one trainer on one date."""
    trainer_id: int
    date: datetime
    slots: List[datetime]
    booked_sessions: List[SessionResponse]

class SessionComplete(BaseModel):
    """Trainer's wrap-up of a session: outcome, notes and what was trained."""
    status: Literal["COMPLETED", "NOSHOW"] = "COMPLETED"
    notes: Optional[str] = Field(default=None, max_length=1000)
    exercises: Optional[List[ExerciseEntry]] = None
    feedback: Optional[str] = Field(default=None, max_length=500)

class SessionMember(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

class TrainerSessionResponse(SessionResponse):
    """A session as the trainer sees it, with the member's contact."""
    member: SessionMember

class TrainerProfileCreate(BaseModel):
    """Admin: make an existing user a trainer."""
    user_id: int
    specialties: str = Field(min_length=1, max_length=255)
    bio: str = Field(min_length=1, max_length=500)
    rate: Optional[Decimal] = Field(default=None, ge=0)
    rating: Optional[Decimal] = Field(default=None, ge=0)

class TrainerProfileUpdate(BaseModel):
    specialties: Optional[str] = Field(default=None, min_length=1, max_length=255)
    bio: Optional[str] = Field(default=None, min_length=1, max_length=500)
    rate: Optional[Decimal] = Field(default=None, ge=0)
    rating: Optional[Decimal] = Field(default=None, ge=0)
