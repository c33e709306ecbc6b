# src/users/routes.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from auth.models import User
from auth.routes import get_current_user
from auth.schemas import ProfileUpdate, UserResponse
from auth.services import AuthService
from database import get_db

router = APIRouter(prefix="/users", tags=["users"])

@router.get("/profile", response_model=UserResponse)
def get_profile(current_user: User = Depends(get_current_user)):
    return UserResponse.model_validate(current_user)

@router.put("/profile", response_model=UserResponse)
def update_profile(data: ProfileUpdate, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Update the caller's name and phone. Email and role are admin-managed."""
    return AuthService.update_profile(current_user, data, db)
