# src/classes/routes.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Optional
from classes.services import ClassService
from classes.schemas import (
    BookingResponse,
    BookingWithClassResponse,
    BookingWithUserResponse,
    CheckinRequest,
    CheckinResponse,
    ClassCreate,
    ClassResponse,
    ClassUpdate,
)
from auth.routes import get_current_user, check_admin_role
from auth.models import User
from database import get_db

router = APIRouter(tags=["classes"])

@router.get("/classes", response_model=List[ClassResponse])
def get_upcoming_classes(db: Session = Depends(get_db)):
    """Classes that have not ended, with free seats."""
    return ClassService.find_upcoming(db)

@router.get("/classes/bookings/me", response_model=List[BookingWithClassResponse])
def get_my_bookings(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return ClassService.find_user_bookings(current_user.id, db)

@router.post("/classes/checkin", response_model=CheckinResponse)
def checkin(data: CheckinRequest, db: Session = Depends(get_db)):
    """Check in with the code from the booking (front desk scanner)."""
    return ClassService.checkin_by_code(data.code, db)

@router.post("/classes/{class_id}/book", response_model=BookingResponse)
def book_class(class_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return ClassService.book_class(class_id, current_user, db)

@router.get("/admin/classes", response_model=List[ClassResponse])
def get_classes(status: Optional[str] = None, db: Session = Depends(get_db), current_user: User = Depends(check_admin_role)):
    """All classes, optionally only upcoming, ongoing or finished ones."""
    return ClassService.find_all(status, db)

@router.post("/admin/classes", response_model=ClassResponse)
def create_class(data: ClassCreate, db: Session = Depends(get_db), current_user: User = Depends(check_admin_role)):
    return ClassService.create_class(data, current_user.id, db)

@router.put("/admin/classes/{class_id}", response_model=ClassResponse)
def update_class(class_id: int, data: ClassUpdate, db: Session = Depends(get_db), current_user: User = Depends(check_admin_role)):
    return ClassService.update_class(class_id, data, current_user.id, db)

@router.delete("/admin/classes/{class_id}")
def delete_class(class_id: int, db: Session = Depends(get_db), current_user: User = Depends(check_admin_role)):
    ClassService.delete_class(class_id, current_user.id, db)
    return {"message": "Class deleted"}

@router.get("/admin/classes/{class_id}/bookings", response_model=List[BookingWithUserResponse])
def get_class_bookings(class_id: int, db: Session = Depends(get_db), current_user: User = Depends(check_admin_role)):
    return ClassService.find_class_bookings(class_id, db)

@router.patch("/admin/classes/bookings/{booking_id}/cancel", response_model=BookingResponse)
def cancel_booking(booking_id: int, db: Session = Depends(get_db), current_user: User = Depends(check_admin_role)):
    return ClassService.cancel_booking(booking_id, current_user.id, db)

@router.patch("/admin/classes/bookings/{booking_id}/checkin", response_model=BookingResponse)
def force_checkin(booking_id: int, db: Session = Depends(get_db), current_user: User = Depends(check_admin_role)):
    return ClassService.force_checkin(booking_id, current_user.id, db)
