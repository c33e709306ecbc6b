# src/auth/services.py
import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session
from jose import jwt
from passlib.context import CryptContext
from datetime import datetime, timedelta, timezone
from typing import Optional
from auth.models import User, AdminActionLog, ROLES, ROLE_MEMBER, ROLE_TRAINER
from auth.schemas import AdminUserCreate, AdminUserUpdate, ProfileUpdate, UserCreate, UserResponse
from config import settings
from trainer.models import TrainerProfile

logger = logging.getLogger(__name__)

class AuthService:
    pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

    @staticmethod
    def hash_password(password: str) -> str:
        """Hash a password using bcrypt."""
        return AuthService.pwd_context.hash(password)

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        """Verify a password against its hash."""
        return AuthService.pwd_context.verify(plain_password, hashed_password)

    @staticmethod
    def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
        """Create a JWT access token."""
        to_encode = data.copy()
        expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
        to_encode.update({"exp": expire})
        return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

    @staticmethod
    def get_user_by_email(email: str, db: Session) -> Optional[User]:
        """Retrieve a user by email."""
        return db.query(User).filter(User.email == email).first()

    @staticmethod
    def get_user(user_id: int, db: Session) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def authenticate_user(email: str, password: str, db: Session) -> Optional[User]:
        user = AuthService.get_user_by_email(email, db)
        if not user or not AuthService.verify_password(password, user.password_hash):
            return None
        if not user.is_active:
            logger.info(f"Login refused for deactivated user {user.id}")
            return None
        return user

    @staticmethod
    def create_user(user_data: UserCreate, db: Session) -> UserResponse:
        if AuthService.get_user_by_email(user_data.email, db):
            raise HTTPException(status_code=400, detail="Email already registered")

        new_user = User(
            name=user_data.name,
            email=user_data.email,
            phone=user_data.phone,
            password_hash=AuthService.hash_password(user_data.password),
            role=ROLE_MEMBER,
        )
        db.add(new_user)
        db.commit()
        db.refresh(new_user)
        logger.info(f"Registered member {new_user.id} ({new_user.email})")
        return UserResponse.model_validate(new_user)

    @staticmethod
    def set_role(user: User, role: str, db: Session, bio: Optional[str] = None, specialties: Optional[str] = None) -> None:
        """Change a role in the caller's unit. Promoting to trainer also creates the trainer profile."""
        if role not in ROLES:
            raise HTTPException(status_code=400, detail=f"Role must be one of {', '.join(ROLES)}")
        user.role = role
        if role == ROLE_TRAINER and user.trainer_profile is None:
            db.add(TrainerProfile(user_id=user.id, bio=bio, specialties=specialties))

    @staticmethod
    def update_profile(user: User, data: ProfileUpdate, db: Session) -> UserResponse:
        for key, value in data.model_dump(exclude_unset=True).items():
            if key == "name" and value is None:
                continue
            setattr(user, key, value)
        db.commit()
        db.refresh(user)
        return UserResponse.model_validate(user)

    @staticmethod
    def create_user_by_admin(user_data: AdminUserCreate, admin_id: int, db: Session) -> UserResponse:
        if AuthService.get_user_by_email(user_data.email, db):
            raise HTTPException(status_code=400, detail="Email already registered")
        if user_data.role not in ROLES:
            raise HTTPException(status_code=400, detail=f"Role must be one of {', '.join(ROLES)}")

        new_user = User(
            name=user_data.name,
            email=user_data.email,
            phone=user_data.phone,
            password_hash=AuthService.hash_password(user_data.password),
            role=ROLE_MEMBER,
        )
        db.add(new_user)
        db.flush()
        AuthService.set_role(new_user, user_data.role, db)
        AuthService.log_admin_action(admin_id, f"Created user {new_user.id} ({new_user.email}) as {user_data.role}", db)
        db.commit()
        db.refresh(new_user)
        return UserResponse.model_validate(new_user)

    @staticmethod
    def update_user_by_admin(user_id: int, data: AdminUserUpdate, admin_id: int, db: Session) -> UserResponse:
        user = AuthService.get_user(user_id, db)
        if not user:
            raise HTTPException(status_code=404, detail="User not found")
        changes = data.model_dump(exclude_unset=True)
        if changes.get("role") and changes["role"] not in ROLES:
            raise HTTPException(status_code=400, detail=f"Role must be one of {', '.join(ROLES)}")
        if changes.get("is_active") is False and user.id == admin_id:
            raise HTTPException(status_code=400, detail="Admins cannot deactivate themselves")
        for key in ("name", "phone", "is_active"):
            if key in changes and (changes[key] is not None or key == "phone"):
                setattr(user, key, changes[key])
        if changes.get("role"):
            AuthService.set_role(user, changes["role"], db)
        AuthService.log_admin_action(admin_id, f"Updated user {user_id}: {', '.join(sorted(changes)) or 'no changes'}", db)
        db.commit()
        db.refresh(user)
        return UserResponse.model_validate(user)

    @staticmethod
    def log_admin_action(admin_id: int, action: str, db: Session) -> AdminActionLog:
        """Add an audit row to the session; the caller owns the commit."""
        log = AdminActionLog(admin_id=admin_id, action=action)
        db.add(log)
        return log
