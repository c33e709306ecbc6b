# src/admin/routes.py
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List, Optional
from auth.models import User, AdminActionLog
from auth.schemas import AdminUserCreate, AdminUserUpdate, UserResponse, AdminActionLogResponse, RoleUpdate
from auth.routes import check_admin_role
from auth.services import AuthService
from database import get_db

router = APIRouter(prefix="/admin", tags=["admin"])

@router.get("/users", response_model=List[UserResponse])
def get_users(
    role: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(check_admin_role)
):
    """Retrieve users with optional role filter."""
    query = db.query(User)
    if role:
        query = query.filter(User.role == role)
    return [UserResponse.model_validate(user) for user in query.order_by(User.id).all()]

@router.post("/users", response_model=UserResponse)
def create_user(data: AdminUserCreate, db: Session = Depends(get_db), current_user: User = Depends(check_admin_role)):
    """Create an account with any role."""
    return AuthService.create_user_by_admin(data, current_user.id, db)

@router.get("/users/{user_id}", response_model=UserResponse)
def get_user(user_id: int, db: Session = Depends(get_db), current_user: User = Depends(check_admin_role)):
    user = AuthService.get_user(user_id, db)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return UserResponse.model_validate(user)

@router.put("/users/{user_id}", response_model=UserResponse)
def update_user(user_id: int, data: AdminUserUpdate, db: Session = Depends(get_db), current_user: User = Depends(check_admin_role)):
    """Edit name, phone, role or the active flag of an account."""
    return AuthService.update_user_by_admin(user_id, data, current_user.id, db)

@router.patch("/users/{user_id}/role", response_model=UserResponse)
def update_user_role(
    user_id: int,
    data: RoleUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(check_admin_role)
):
    """Change a user's role. Promoting to trainer also creates the trainer profile."""
    user = AuthService.get_user(user_id, db)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    AuthService.set_role(user, data.role, db, bio=data.bio, specialties=data.specialties)
    AuthService.log_admin_action(current_user.id, f"Changed role of user {user_id} to {data.role}", db)
    db.commit()
    db.refresh(user)
    return UserResponse.model_validate(user)

@router.get("/logs", response_model=List[AdminActionLogResponse])
def get_admin_logs(db: Session = Depends(get_db), current_user: User = Depends(check_admin_role)):
    """Retrieve admin action logs."""
    logs = db.query(AdminActionLog).order_by(AdminActionLog.timestamp.desc()).all()
    return [AdminActionLogResponse.model_validate(log) for log in logs]
