# src/trainer/routes.py
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session
from typing import List
from trainer.services import TrainerService
from trainer.schemas import (
    AvailabilityResponse,
    AvailabilityUpdate,
    SessionBook,
    SessionComplete,
    SessionResponse,
    TrainerAvailabilityDay,
    TrainerProfileCreate,
    TrainerProfileUpdate,
    TrainerResponse,
    TrainerSessionResponse,
)
from auth.routes import get_current_user, require_roles, check_admin_role
from auth.models import User, ROLE_ADMIN, ROLE_MEMBER, ROLE_TRAINER
from database import get_db

router = APIRouter(tags=["trainers"])

@router.get("/trainers", response_model=List[TrainerResponse])
def get_trainers(db: Session = Depends(get_db)):
    """List trainers with their weekly availability."""
    return [TrainerResponse.model_validate(t) for t in TrainerService.find_all_trainers(db)]

@router.get("/trainers/sessions/me", response_model=List[SessionResponse])
def get_my_sessions(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Upcoming PT sessions of the current member."""
    return TrainerService.find_member_sessions(current_user.id, db)

@router.put("/trainers/availability", response_model=List[AvailabilityResponse])
def set_availability(
    data: AvailabilityUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(ROLE_TRAINER, ROLE_ADMIN)),
):
    trainer_id = current_user.id
    if data.trainer_id is not None and data.trainer_id != current_user.id:
        if current_user.role != ROLE_ADMIN:
            raise HTTPException(status_code=403, detail="Trainers can only edit their own availability")
        trainer_id = data.trainer_id
    return [AvailabilityResponse.model_validate(a) for a in TrainerService.set_availability(trainer_id, data.slots, db)]

@router.get("/trainers/{trainer_id}/availability", response_model=TrainerAvailabilityDay)
def get_availability(
    trainer_id: int,
    day: date = Query(alias="date"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Free slots of a trainer on a date."""
    return TrainerService.get_trainer_availability(trainer_id, day, db)

@router.post("/trainers/{trainer_id}/sessions", response_model=SessionResponse)
def book_session(
    trainer_id: int,
    data: SessionBook,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(ROLE_MEMBER)),
):
    session = TrainerService.book_session(current_user, trainer_id, data.scheduled_at, data.duration_minutes, data.notes, db)
    trainer = session.trainer
    request.app.state.dispatcher.submit(
        request.app.state.notifications.send_booking_notifications,
        current_user.name,
        current_user.email,
        trainer.name,
        trainer.email,
        session.scheduled_at,
        session.duration_minutes,
        session.notes,
    )
    return SessionResponse.model_validate(session)

@router.get("/trainer/sessions", response_model=List[TrainerSessionResponse])
def get_trainer_sessions(db: Session = Depends(get_db), current_user: User = Depends(require_roles(ROLE_TRAINER, ROLE_ADMIN))):
    """Sessions where the current user is the trainer."""
    return TrainerService.find_trainer_sessions(current_user.id, db)

@router.post("/trainer/sessions/{session_id}/complete", response_model=SessionResponse)
@router.patch("/trainer/sessions/{session_id}/complete", response_model=SessionResponse)
def complete_session(
    session_id: int,
    data: SessionComplete,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(ROLE_TRAINER, ROLE_ADMIN)),
):
    """Mark a session completed or no-show, with notes and the workout log."""
    return SessionResponse.model_validate(TrainerService.complete_session(current_user, session_id, data, db))

@router.post("/admin/trainers", response_model=TrainerResponse)
def create_trainer(data: TrainerProfileCreate, db: Session = Depends(get_db), current_user: User = Depends(check_admin_role)):
    return TrainerResponse.model_validate(TrainerService.create_profile(data, current_user.id, db))

@router.put("/admin/trainers/{user_id}", response_model=TrainerResponse)
def update_trainer(user_id: int, data: TrainerProfileUpdate, db: Session = Depends(get_db), current_user: User = Depends(check_admin_role)):
    return TrainerResponse.model_validate(TrainerService.update_profile(user_id, data, current_user.id, db))

@router.delete("/admin/trainers/{user_id}")
def delete_trainer(user_id: int, db: Session = Depends(get_db), current_user: User = Depends(check_admin_role)):
    TrainerService.delete_profile(user_id, current_user.id, db)
    return {"message": "Trainer removed"}
