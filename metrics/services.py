# src/metrics/services.py
from datetime import datetime
from typing import Optional
from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload
from auth.models import User, ROLE_ADMIN, ROLE_TRAINER
from database import utcnow
from membership.models import UserMembership, MEMBERSHIP_ACTIVE, MEMBERSHIP_UPCOMING
from metrics.schemas import MetricsSummary

LATEST_MEMBERS = 3

class MetricsService:
    @staticmethod
    def get_summary(db: Session, now: Optional[datetime] = None) -> MetricsSummary:
        """Members with a period covering now, staff count, and initials of the latest buyers."""
        now = now or utcnow()
        active_members = (
            db.query(func.count(func.distinct(UserMembership.user_id)))
            .filter(
                UserMembership.status.in_([MEMBERSHIP_ACTIVE, MEMBERSHIP_UPCOMING]),
                UserMembership.start_date <= now,
                UserMembership.end_date > now,
            )
            .scalar()
        )
        active_instructors = (
            db.query(func.count(User.id))
            .filter(User.role.in_([ROLE_ADMIN, ROLE_TRAINER]), User.is_active == True)
            .scalar()
        )
        latest = (
            db.query(UserMembership)
            .options(joinedload(UserMembership.user))
            .order_by(UserMembership.end_date.desc())
            .limit(LATEST_MEMBERS)
            .all()
        )
        initials = [(m.user.name or "?").strip()[:1].upper() or "?" for m in latest]
        return MetricsSummary(
            active_members=active_members or 0,
            active_instructors=active_instructors or 0,
            latest_initials=initials,
        )
