# src/classes/services.py
import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional
from uuid import uuid4

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from auth.models import User
from auth.services import AuthService
from classes.models import (
    GymClass,
    ClassBooking,
    ACTIVE_BOOKING_STATUSES,
    BOOKING_BOOKED,
    BOOKING_CHECKED_IN,
    BOOKING_CANCELLED,
)
from classes.schemas import (
    BookingResponse,
    BookingWithClassResponse,
    BookingWithUserResponse,
    CheckinResponse,
    ClassCreate,
    ClassResponse,
    ClassUpdate,
)
from database import atomic, utcnow
from errors import InvalidState, NotFound
from trainer.services import to_naive_utc

logger = logging.getLogger(__name__)

CLASS_FILTERS = ("upcoming", "ongoing", "finished")


def _booked_counts(class_ids: Iterable[int], db: Session) -> Dict[int, int]:
    ids = list(class_ids)
    if not ids:
        return {}
    rows = (
        db.query(ClassBooking.class_id, func.count(ClassBooking.id))
        .filter(ClassBooking.class_id.in_(ids), ClassBooking.status.in_(ACTIVE_BOOKING_STATUSES))
        .group_by(ClassBooking.class_id)
        .all()
    )
    return {class_id: count for class_id, count in rows}


def _to_response(gym_class: GymClass, booked: int) -> ClassResponse:
    response = ClassResponse.model_validate(gym_class)
    response.booked_count = booked
    response.available_slots = max(0, gym_class.capacity - booked)
    return response


def _with_counts(classes: List[GymClass], db: Session) -> List[ClassResponse]:
    counts = _booked_counts((c.id for c in classes), db)
    return [_to_response(c, counts.get(c.id, 0)) for c in classes]


class ClassService:
    @staticmethod
    def get_class(class_id: int, db: Session) -> GymClass:
        gym_class = db.query(GymClass).filter(GymClass.id == class_id).first()
        if not gym_class:
            raise NotFound("Class not found")
        return gym_class

    @staticmethod
    def find_upcoming(db: Session, now: Optional[datetime] = None) -> List[ClassResponse]:
        """Classes that have not ended yet, soonest first, with their free seats."""
        now = now or utcnow()
        classes = db.query(GymClass).filter(GymClass.end_time >= now).order_by(GymClass.start_time).all()
        return _with_counts(classes, db)

    @staticmethod
    def find_all(status: Optional[str], db: Session, now: Optional[datetime] = None) -> List[ClassResponse]:
        now = now or utcnow()
        query = db.query(GymClass)
        if status == "upcoming":
            query = query.filter(GymClass.start_time > now)
        elif status == "ongoing":
            query = query.filter(GymClass.start_time <= now, GymClass.end_time >= now)
        elif status == "finished":
            query = query.filter(GymClass.end_time < now)
        elif status:
            raise InvalidState(f"Status must be one of {', '.join(CLASS_FILTERS)}")
        return _with_counts(query.order_by(GymClass.start_time).all(), db)

    @staticmethod
    def create_class(data: ClassCreate, admin_id: int, db: Session) -> ClassResponse:
        start, end = to_naive_utc(data.start_time), to_naive_utc(data.end_time)
        if end <= start:
            raise InvalidState("end_time must be after start_time")
        gym_class = GymClass(
            title=data.title,
            description=data.description,
            instructor=data.instructor,
            location=data.location,
            start_time=start,
            end_time=end,
            capacity=data.capacity,
        )
        db.add(gym_class)
        db.flush()
        AuthService.log_admin_action(admin_id, f"Created class {gym_class.id} ({gym_class.title})", db)
        db.commit()
        db.refresh(gym_class)
        logger.info(f"Class {gym_class.id} scheduled at {start.isoformat()} by admin {admin_id}")
        return _to_response(gym_class, 0)

    @staticmethod
    def update_class(class_id: int, data: ClassUpdate, admin_id: int, db: Session) -> ClassResponse:
        with atomic(db):
            gym_class = (
                db.query(GymClass)
                .filter(GymClass.id == class_id)
                .with_for_update()
                .populate_existing()
                .first()
            )
            if not gym_class:
                raise NotFound("Class not found")
            changes = data.model_dump(exclude_unset=True)
            for key in ("start_time", "end_time"):
                if changes.get(key) is not None:
                    changes[key] = to_naive_utc(changes[key])
            for key, value in changes.items():
                if value is not None:
                    setattr(gym_class, key, value)
            if gym_class.end_time <= gym_class.start_time:
                raise InvalidState("end_time must be after start_time")
            booked = _booked_counts([class_id], db).get(class_id, 0)
            if gym_class.capacity < booked:
                raise InvalidState(f"Capacity cannot be lower than the {booked} seats already booked")
            AuthService.log_admin_action(admin_id, f"Updated class {class_id}", db)
        db.refresh(gym_class)
        return _to_response(gym_class, booked)

    @staticmethod
    def delete_class(class_id: int, admin_id: int, db: Session) -> None:
        """Remove a class together with its bookings."""
        with atomic(db):
            gym_class = ClassService.get_class(class_id, db)
            # bookings go with it through the relationship cascade
            db.delete(gym_class)
            AuthService.log_admin_action(admin_id, f"Deleted class {class_id}", db)
        logger.info(f"Class {class_id} deleted by admin {admin_id}")

    @staticmethod
    def find_class_bookings(class_id: int, db: Session) -> List[BookingWithUserResponse]:
        ClassService.get_class(class_id, db)
        bookings = (
            db.query(ClassBooking)
            .options(joinedload(ClassBooking.user))
            .filter(ClassBooking.class_id == class_id)
            .order_by(ClassBooking.created_at)
            .all()
        )
        return [BookingWithUserResponse.model_validate(b) for b in bookings]

    @staticmethod
    def find_user_bookings(user_id: int, db: Session) -> List[BookingWithClassResponse]:
        bookings = (
            db.query(ClassBooking)
            .options(joinedload(ClassBooking.gym_class))
            .filter(ClassBooking.user_id == user_id)
            .order_by(ClassBooking.created_at.desc(), ClassBooking.id.desc())
            .all()
        )
        counts = _booked_counts({b.class_id for b in bookings}, db)
        responses = []
        for booking in bookings:
            response = BookingWithClassResponse.model_validate(booking)
            response.gym_class = _to_response(booking.gym_class, counts.get(booking.class_id, 0))
            responses.append(response)
        return responses

    @staticmethod
    def book_class(class_id: int, user: User, db: Session, now: Optional[datetime] = None) -> BookingResponse:
        """Take a seat in a class that has not started yet.

        The class row is locked so two members cannot both take the last seat.
        """
        now = now or utcnow()
        with atomic(db):
            gym_class = (
                db.query(GymClass)
                .filter(GymClass.id == class_id)
                .with_for_update()
                .populate_existing()
                .first()
            )
            if not gym_class:
                raise NotFound("Class not found")
            if gym_class.start_time <= now:
                raise InvalidState("Class already started")
            booked = _booked_counts([class_id], db).get(class_id, 0)
            if booked >= gym_class.capacity:
                raise InvalidState("Class is full")
            existing = (
                db.query(ClassBooking)
                .filter(
                    ClassBooking.class_id == class_id,
                    ClassBooking.user_id == user.id,
                    ClassBooking.status != BOOKING_CANCELLED,
                )
                .first()
            )
            if existing:
                raise InvalidState("You already booked this class")
            booking = ClassBooking(
                user_id=user.id,
                class_id=class_id,
                status=BOOKING_BOOKED,
                checkin_code=str(uuid4()),
            )
            db.add(booking)
        db.refresh(booking)
        logger.info(f"User {user.id} booked class {class_id} (booking {booking.id})")
        return BookingResponse.model_validate(booking)

    @staticmethod
    def _lock_booking(booking_id: int, db: Session) -> ClassBooking:
        booking = (
            db.query(ClassBooking)
            .filter(ClassBooking.id == booking_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if not booking:
            raise NotFound("Booking not found")
        return booking

    @staticmethod
    def cancel_booking(booking_id: int, admin_id: int, db: Session) -> BookingResponse:
        with atomic(db):
            booking = ClassService._lock_booking(booking_id, db)
            if booking.status != BOOKING_CANCELLED:
                booking.status = BOOKING_CANCELLED
                AuthService.log_admin_action(admin_id, f"Cancelled class booking {booking_id}", db)
        db.refresh(booking)
        return BookingResponse.model_validate(booking)

    @staticmethod
    def force_checkin(booking_id: int, admin_id: int, db: Session, now: Optional[datetime] = None) -> BookingResponse:
        """Admin check-in without the member's code."""
        now = now or utcnow()
        with atomic(db):
            booking = ClassService._lock_booking(booking_id, db)
            if booking.status == BOOKING_CANCELLED:
                raise InvalidState("Booking was cancelled")
            if booking.status != BOOKING_CHECKED_IN:
                booking.status = BOOKING_CHECKED_IN
                booking.checked_in_at = now
                AuthService.log_admin_action(admin_id, f"Checked in class booking {booking_id}", db)
        db.refresh(booking)
        return BookingResponse.model_validate(booking)

    @staticmethod
    def checkin_by_code(code: str, db: Session, now: Optional[datetime] = None) -> CheckinResponse:
        now = now or utcnow()
        with atomic(db):
            booking = (
                db.query(ClassBooking)
                .filter(ClassBooking.checkin_code == code)
                .with_for_update()
                .populate_existing()
                .first()
            )
            if not booking:
                raise NotFound("Booking not found")
            if booking.status == BOOKING_CANCELLED:
                raise InvalidState("Booking was cancelled")
            if booking.status == BOOKING_CHECKED_IN:
                message = "Already checked in."
            else:
                booking.status = BOOKING_CHECKED_IN
                booking.checked_in_at = now
                message = "Check-in successful."
        db.refresh(booking)
        return CheckinResponse(message=message, booking=BookingResponse.model_validate(booking))
