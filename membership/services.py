# src/membership/services.py
import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session, joinedload

from database import utcnow
from errors import NotFound
from membership.models import UserMembership, MEMBERSHIP_ACTIVE, MEMBERSHIP_UPCOMING
from membership.schemas import MembershipResponse
from payment.models import Transaction, STATUS_SUCCESS

logger = logging.getLogger(__name__)


class MembershipService:
    @staticmethod
    def latest_open_membership(user_id: int, db: Session) -> Optional[UserMembership]:
        """The active or upcoming membership that ends last, row-locked."""
        return (
            db.query(UserMembership)
            .filter(
                UserMembership.user_id == user_id,
                UserMembership.status.in_([MEMBERSHIP_ACTIVE, MEMBERSHIP_UPCOMING]),
            )
            .order_by(UserMembership.end_date.desc())
            .with_for_update()
            .first()
        )

    @staticmethod
    def activate(transaction_id: int, db: Session, now: Optional[datetime] = None) -> UserMembership:
        """Create the membership paid for by a successful transaction.

        A new period stacks onto the end of the user's latest unexpired
        membership, otherwise it starts now. Runs inside the caller's unit of
        work and never touches the transaction: any failure is raised for the
        caller to handle.
        """
        now = now or utcnow()
        transaction = db.query(Transaction).filter(Transaction.id == transaction_id).first()
        if not transaction or transaction.status != STATUS_SUCCESS:
            raise NotFound("Successful transaction not found")
        if not transaction.package:
            raise NotFound("Package details not found for this transaction")

        last_membership = MembershipService.latest_open_membership(transaction.user_id, db)
        if last_membership and last_membership.end_date > now:
            start_date = last_membership.end_date
        else:
            start_date = now
        end_date = start_date + timedelta(days=transaction.package.duration_days)

        membership = UserMembership(
            user_id=transaction.user_id,
            package_id=transaction.package_id,
            transaction_id=transaction.id,
            start_date=start_date,
            end_date=end_date,
            status=MEMBERSHIP_UPCOMING if start_date > now else MEMBERSHIP_ACTIVE,
        )
        db.add(membership)
        db.flush()
        logger.info(
            f"Membership {membership.id} for user {membership.user_id}: "
            f"{start_date.isoformat()} -> {end_date.isoformat()} ({membership.status})"
        )
        return membership

    @staticmethod
    def find_user_memberships(user_id: int, db: Session) -> List[MembershipResponse]:
        memberships = (
            db.query(UserMembership)
            .options(joinedload(UserMembership.package))
            .filter(UserMembership.user_id == user_id)
            .order_by(UserMembership.end_date.desc())
            .all()
        )
        return [MembershipResponse.model_validate(m) for m in memberships]

    @staticmethod
    def get_active_membership(user_id: int, db: Session, now: Optional[datetime] = None) -> Optional[UserMembership]:
        """The membership covering `now`, if any.

        Stored status is only written at creation and on refund, so an
        upcoming period whose start has passed counts as active here.
        """
        now = now or utcnow()
        return (
            db.query(UserMembership)
            .options(joinedload(UserMembership.package))
            .filter(
                UserMembership.user_id == user_id,
                UserMembership.status.in_([MEMBERSHIP_ACTIVE, MEMBERSHIP_UPCOMING]),
                UserMembership.start_date <= now,
                UserMembership.end_date >= now,
            )
            .order_by(UserMembership.end_date.desc())
            .first()
        )
