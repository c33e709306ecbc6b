# src/trainer/services.py
import logging
import re
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session, joinedload

from auth.models import User, ROLE_ADMIN, ROLE_MEMBER, ROLE_TRAINER
from auth.services import AuthService
from config import settings
from database import atomic, utcnow
from errors import Forbidden, InvalidState, NotFound
from membership.services import MembershipService
from trainer.models import TrainerProfile, TrainerAvailability, PTSession, SESSION_BOOKED, SESSION_CANCELLED
from trainer.schemas import (
    AvailabilitySlot,
    SessionComplete,
    SessionResponse,
    TrainerAvailabilityDay,
    TrainerProfileCreate,
    TrainerProfileUpdate,
    TrainerSessionResponse,
)

logger = logging.getLogger(__name__)

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def parse_time(value: str) -> time:
    match = TIME_PATTERN.match(value or "")
    if not match:
        raise InvalidState("Time must be in HH:MM format")
    return time(int(match.group(1)), int(match.group(2)))


def validate_time_range(start: str, end: str) -> Tuple[time, time]:
    start_time, end_time = parse_time(start), parse_time(end)
    if end_time <= start_time:
        raise InvalidState("end_time must be after start_time")
    return start_time, end_time


def day_of_week(value: date) -> int:
    """0=Sunday .. 6=Saturday."""
    return (value.weekday() + 1) % 7


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def overlaps(start: datetime, end: datetime, other_start: datetime, other_end: datetime) -> bool:
    return start < other_end and end > other_start


class TrainerService:
    @staticmethod
    def find_all_trainers(db: Session) -> List[User]:
        return (
            db.query(User)
            .join(User.trainer_profile)
            .options(joinedload(User.trainer_profile).joinedload(TrainerProfile.availabilities))
            .order_by(User.name)
            .all()
        )

    @staticmethod
    def get_profile(trainer_user_id: int, db: Session) -> TrainerProfile:
        profile = db.query(TrainerProfile).filter(TrainerProfile.user_id == trainer_user_id).first()
        if not profile:
            raise NotFound("Trainer not found")
        return profile

    @staticmethod
    def _sessions_on(trainer_user_id: int, day_start: datetime, db: Session) -> List[PTSession]:
        return (
            db.query(PTSession)
            .filter(
                PTSession.trainer_id == trainer_user_id,
                PTSession.scheduled_at >= day_start,
                PTSession.scheduled_at < day_start + timedelta(days=1),
                PTSession.status != SESSION_CANCELLED,
            )
            .order_by(PTSession.scheduled_at)
            .all()
        )

    @staticmethod
    def get_trainer_availability(trainer_user_id: int, target: date, db: Session) -> TrainerAvailabilityDay:
        """Free default-length slots inside the trainer's windows on the given date."""
        profile = TrainerService.get_profile(trainer_user_id, db)
        day_start = datetime.combine(target, time(0, 0))
        sessions = TrainerService._sessions_on(trainer_user_id, day_start, db)
        booked = [(s.scheduled_at, s.scheduled_at + timedelta(minutes=s.duration_minutes)) for s in sessions]

        slot_length = timedelta(minutes=settings.PT_DEFAULT_DURATION_MINUTES)
        slots = []
        weekday = day_of_week(target)
        for window in profile.availabilities:
            if window.day_of_week != weekday:
                continue
            window_start, window_end = validate_time_range(window.start_time, window.end_time)
            cursor = datetime.combine(target, window_start)
            end = datetime.combine(target, window_end)
            while cursor + slot_length <= end:
                candidate_end = cursor + slot_length
                if not any(overlaps(cursor, candidate_end, s, e) for s, e in booked):
                    slots.append(cursor)
                cursor = candidate_end

        return TrainerAvailabilityDay(
            trainer_id=trainer_user_id,
            date=day_start,
            slots=slots,
            booked_sessions=[SessionResponse.model_validate(s) for s in sessions],
        )

    @staticmethod
    def _ensure_trainer_free(profile: TrainerProfile, start: datetime, end: datetime, db: Session) -> None:
        weekday = day_of_week(start.date())
        fits = False
        for window in profile.availabilities:
            if window.day_of_week != weekday:
                continue
            window_start, window_end = validate_time_range(window.start_time, window.end_time)
            if datetime.combine(start.date(), window_start) <= start and end <= datetime.combine(start.date(), window_end):
                fits = True
                break
        if not fits:
            raise InvalidState("Trainer is not available at the requested time")

        day_start = datetime.combine(start.date(), time(0, 0))
        for session in TrainerService._sessions_on(profile.user_id, day_start, db):
            session_end = session.scheduled_at + timedelta(minutes=session.duration_minutes)
            if overlaps(start, end, session.scheduled_at, session_end):
                raise InvalidState("Trainer already has a session at that time")

    @staticmethod
    def book_session(
        member: User,
        trainer_user_id: int,
        scheduled_at: datetime,
        duration_minutes: Optional[int],
        notes: Optional[str],
        db: Session,
        now: Optional[datetime] = None,
    ) -> PTSession:
        """Book a PT session for a member.

        The member needs a membership covering the start time whose package
        carries a PT quota with room left, and the session must sit inside one
        of the trainer's windows without overlapping another booking.
        """
        now = now or utcnow()
        start = to_naive_utc(scheduled_at)
        duration = duration_minutes or settings.PT_DEFAULT_DURATION_MINUTES
        if duration <= 0:
            raise InvalidState("Duration must be greater than zero")
        end = start + timedelta(minutes=duration)

        with atomic(db):
            profile = (
                db.query(TrainerProfile)
                .filter(TrainerProfile.user_id == trainer_user_id)
                .with_for_update()
                .first()
            )
            if not profile:
                raise NotFound("Trainer not found")

            membership = MembershipService.get_active_membership(member.id, db, now=now)
            if not membership:
                raise InvalidState("Active membership is required to book a PT session")
            if start < membership.start_date or start > membership.end_date:
                raise InvalidState("Session must be within your active membership period")

            package = membership.package
            quota = (package.pt_sessions_quota or 0) if package else 0
            if quota <= 0:
                raise InvalidState("Your package does not include PT sessions")
            used = (
                db.query(PTSession)
                .filter(
                    PTSession.member_id == member.id,
                    PTSession.scheduled_at >= membership.start_date,
                    PTSession.scheduled_at <= membership.end_date,
                    PTSession.status != SESSION_CANCELLED,
                )
                .count()
            )
            if used >= quota:
                raise InvalidState("PT session quota exceeded for your package")

            TrainerService._ensure_trainer_free(profile, start, end, db)

            session = PTSession(
                trainer_id=trainer_user_id,
                member_id=member.id,
                scheduled_at=start,
                duration_minutes=duration,
                status=SESSION_BOOKED,
                notes=notes,
            )
            db.add(session)
        db.refresh(session)
        logger.info(f"PT session {session.id} booked: member {member.id} with trainer {trainer_user_id} at {start.isoformat()}")
        return session

    @staticmethod
    def set_availability(trainer_user_id: int, slots: List[AvailabilitySlot], db: Session) -> List[TrainerAvailability]:
        """Replace the windows of every day mentioned in slots; other days are kept."""
        if not slots:
            raise InvalidState("Availability slots are required")
        for slot in slots:
            validate_time_range(slot.start_time, slot.end_time)

        with atomic(db):
            profile = TrainerService.get_profile(trainer_user_id, db)
            days = {slot.day_of_week for slot in slots}
            db.query(TrainerAvailability).filter(
                TrainerAvailability.trainer_id == profile.id,
                TrainerAvailability.day_of_week.in_(days),
            ).delete(synchronize_session=False)
            for slot in slots:
                db.add(TrainerAvailability(
                    trainer_id=profile.id,
                    day_of_week=slot.day_of_week,
                    start_time=slot.start_time,
                    end_time=slot.end_time,
                ))
            profile_id = profile.id

        logger.info(f"Availability of trainer {trainer_user_id} replaced for days {sorted(days)}")
        return (
            db.query(TrainerAvailability)
            .filter(TrainerAvailability.trainer_id == profile_id)
            .order_by(TrainerAvailability.day_of_week, TrainerAvailability.start_time)
            .all()
        )

    @staticmethod
    def find_member_sessions(member_id: int, db: Session, now: Optional[datetime] = None) -> List[SessionResponse]:
        now = now or utcnow()
        sessions = (
            db.query(PTSession)
            .filter(
                PTSession.member_id == member_id,
                PTSession.scheduled_at >= now,
                PTSession.status != SESSION_CANCELLED,
            )
            .order_by(PTSession.scheduled_at)
            .all()
        )
        return [SessionResponse.model_validate(s) for s in sessions]

    @staticmethod
    def find_trainer_sessions(trainer_user_id: int, db: Session) -> List[TrainerSessionResponse]:
        """Every session of a trainer, newest first, with the member's contact."""
        sessions = (
            db.query(PTSession)
            .options(joinedload(PTSession.member))
            .filter(PTSession.trainer_id == trainer_user_id)
            .order_by(PTSession.scheduled_at.desc())
            .all()
        )
        return [TrainerSessionResponse.model_validate(s) for s in sessions]

    @staticmethod
    def complete_session(
        actor: User,
        session_id: int,
        data: SessionComplete,
        db: Session,
        now: Optional[datetime] = None,
    ) -> PTSession:
        """Record the outcome of a session that has started.

        Trainers may only close their own sessions; admins may close any. A
        closed session can be closed again to correct its log.
        """
        now = now or utcnow()
        with atomic(db):
            session = (
                db.query(PTSession)
                .filter(PTSession.id == session_id)
                .with_for_update()
                .populate_existing()
                .first()
            )
            if not session:
                raise NotFound("Session not found")
            if actor.role != ROLE_ADMIN and session.trainer_id != actor.id:
                raise Forbidden("You can only complete your own sessions")
            if session.status == SESSION_CANCELLED:
                raise InvalidState("Session was cancelled")
            if session.scheduled_at > now:
                raise InvalidState("Session has not started yet")

            session.status = data.status
            if data.notes is not None:
                session.notes = data.notes
            if data.exercises is not None:
                session.exercises = [e.model_dump(exclude_none=True) for e in data.exercises]
            if data.feedback is not None:
                session.feedback = data.feedback
            session.completed_at = now
        db.refresh(session)
        logger.info(f"PT session {session_id} closed as {session.status} by user {actor.id}")
        return session

    @staticmethod
    def create_profile(data: TrainerProfileCreate, admin_id: int, db: Session) -> User:
        with atomic(db):
            user = AuthService.get_user(data.user_id, db)
            if not user:
                raise NotFound("User not found")
            if user.trainer_profile is not None:
                raise InvalidState("User is already a trainer")
            db.add(TrainerProfile(
                user_id=user.id,
                bio=data.bio,
                specialties=data.specialties,
                rate=data.rate,
                rating=data.rating,
            ))
            user.role = ROLE_TRAINER
            AuthService.log_admin_action(admin_id, f"Made user {user.id} a trainer", db)
        db.refresh(user)
        return user

    @staticmethod
    def update_profile(trainer_user_id: int, data: TrainerProfileUpdate, admin_id: int, db: Session) -> User:
        with atomic(db):
            profile = TrainerService.get_profile(trainer_user_id, db)
            for key, value in data.model_dump(exclude_unset=True).items():
                setattr(profile, key, value)
            AuthService.log_admin_action(admin_id, f"Updated trainer profile of user {trainer_user_id}", db)
        user = AuthService.get_user(trainer_user_id, db)
        db.refresh(user)
        return user

    @staticmethod
    def delete_profile(trainer_user_id: int, admin_id: int, db: Session, now: Optional[datetime] = None) -> None:
        """Turn a trainer back into a member. Upcoming booked sessions block this."""
        now = now or utcnow()
        with atomic(db):
            profile = TrainerService.get_profile(trainer_user_id, db)
            upcoming = (
                db.query(PTSession)
                .filter(
                    PTSession.trainer_id == trainer_user_id,
                    PTSession.status == SESSION_BOOKED,
                    PTSession.scheduled_at >= now,
                )
                .count()
            )
            if upcoming:
                raise InvalidState(f"Trainer still has {upcoming} upcoming session(s)")
            profile.user.role = ROLE_MEMBER
            db.delete(profile)
            AuthService.log_admin_action(admin_id, f"Removed trainer profile of user {trainer_user_id}", db)
        logger.info(f"Trainer profile of user {trainer_user_id} removed by admin {admin_id}")
