# src/membership/routes.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
from membership.services import MembershipService
from membership.schemas import MembershipResponse
from auth.routes import get_current_user, check_admin_role
from database import get_db
from auth.models import User

router = APIRouter(tags=["memberships"])

@router.get("/memberships/my-status", response_model=List[MembershipResponse])
def get_my_memberships(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Retrieve the current user's membership history."""
    return MembershipService.find_user_memberships(current_user.id, db)

@router.get("/admin/memberships/user/{user_id}", response_model=List[MembershipResponse])
def get_user_memberships(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(check_admin_role)
):
    """Retrieve another user's membership history."""
    return MembershipService.find_user_memberships(user_id, db)
