# src/auth/schemas.py
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from datetime import datetime
from typing import Optional

class UserCreate(BaseModel):
    """Schema for member registration."""
    name: str
    email: EmailStr
    password: str
    phone: Optional[str] = None

class UserLogin(BaseModel):
    """Schema for user login."""
    email: EmailStr
    password: str

class UserResponse(BaseModel):
    """Schema for user response."""
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    role: str
    is_active: bool = True
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class Token(BaseModel):
    """Schema for token response."""
    access_token: str
    token_type: str

class AdminActionLogResponse(BaseModel):
    """Schema for admin action log response."""
    id: int
    admin_id: int
    action: str
    timestamp: datetime

    model_config = ConfigDict(from_attributes=True)

class RoleUpdate(BaseModel):
    """Schema for an admin role change; bio/specialties seed a new trainer profile."""
    role: str
    bio: Optional[str] = None
    specialties: Optional[str] = None

class ProfileUpdate(BaseModel):
    """Fields a user may change on their own account."""
    name: Optional[str] = Field(default=None, min_length=1)
    phone: Optional[str] = None

class AdminUserCreate(BaseModel):
    """Schema for an admin creating an account with any role."""
    name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=8)
    phone: Optional[str] = None
    role: str

class AdminUserUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    phone: Optional[str] = None
    is_active: Optional[bool] = None
    role: Optional[str] = None
