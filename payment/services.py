# src/payment/services.py
import csv
import io
import logging
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from pydantic import ValidationError
from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload, sessionmaker

from auth.models import User, ROLE_ADMIN
from auth.services import AuthService
from config import settings
from database import atomic, utcnow
from errors import (
    AmountMismatch,
    ExternalServiceError,
    GymError,
    InternalInconsistency,
    InvalidSignature,
    InvalidState,
    NotFound,
)
from membership.models import UserMembership, MEMBERSHIP_EXPIRED
from membership.services import MembershipService
from notification.dispatcher import NotificationDispatcher
from notification.services import NotificationService
from packages.services import PackageService
from payment.gateway import MidtransClient
from payment.models import Transaction, STATUS_PENDING, STATUS_SUCCESS, STATUS_FAILED
from payment.schemas import (
    NotificationOutcome,
    PaymentNotification,
    PaymentResultResponse,
    TransactionCreateResponse,
    TransactionPage,
    TransactionResponse,
)
from payment.signature import is_valid_signature
from promo.services import PromoService

logger = logging.getLogger(__name__)

WHOLE_UNIT = Decimal("1")
ENABLED_PAYMENTS = [
    "bca_va", "bri_va", "bni_va", "permata_va", "other_va",
    "echannel", "gopay", "shopeepay", "credit_card",
]


class TransactionService:
    """The purchase ledger: creation, lookups and failure marking."""

    @staticmethod
    def find_by_order_id(order_id: str, db: Session) -> Transaction:
        transaction = db.query(Transaction).filter(Transaction.order_id == order_id).first()
        if not transaction:
            raise NotFound(f"Transaction with order_id {order_id} not found")
        return transaction

    @staticmethod
    def find_by_id(transaction_id: int, db: Session) -> Transaction:
        transaction = db.query(Transaction).filter(Transaction.id == transaction_id).first()
        if not transaction:
            raise NotFound("Transaction not found")
        return transaction

    @staticmethod
    def lock_by_order_id(order_id: str, db: Session) -> Transaction:
        """Fetch with FOR UPDATE: every writer of a transaction serializes here."""
        transaction = (
            db.query(Transaction)
            .filter(Transaction.order_id == order_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if not transaction:
            raise NotFound(f"Transaction with order_id {order_id} not found")
        return transaction

    @staticmethod
    def lock_by_id(transaction_id: int, db: Session) -> Transaction:
        transaction = (
            db.query(Transaction)
            .filter(Transaction.id == transaction_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if not transaction:
            raise NotFound("Transaction not found")
        return transaction

    @staticmethod
    def mark_failed(
        transaction: Transaction,
        db: Session,
        reason: Optional[str] = None,
        clear_payload: bool = False,
    ) -> bool:
        """Move to failed. Returns False when it already was failed."""
        if transaction.status == STATUS_FAILED:
            return False
        transaction.status = STATUS_FAILED
        if clear_payload:
            transaction.payment_gateway_response = None
        elif reason:
            payload = dict(transaction.payment_gateway_response or {})
            payload["failure_reason"] = reason
            transaction.payment_gateway_response = payload
        logger.info(f"Transaction {transaction.order_id} marked failed ({reason or 'no reason'})")
        return True

    @staticmethod
    def price_purchase(package, promo_code: Optional[str], db: Session) -> Tuple[Decimal, Decimal, Optional[int]]:
        """Return (gross amount, discount, promo id) for a package purchase.

        The gateway only takes whole IDR amounts, so the gross is rounded half
        up. The calculator's discount is kept verbatim; if rounding makes the
        two disagree it is logged, never silently recomputed.
        """
        base_price = PromoService.base_price(package)
        discount = Decimal("0")
        promo_id = None
        final_amount = base_price
        if promo_code:
            quote = PromoService.validate_and_compute(promo_code, package, db)
            discount = quote.discount
            final_amount = quote.final_amount
            promo_id = quote.promo.id

        gross_amount = final_amount.quantize(WHOLE_UNIT, rounding=ROUND_HALF_UP)
        if gross_amount <= 0:
            raise InvalidState("Total after promo is not valid")
        if base_price - discount != gross_amount:
            logger.warning(
                f"Rounded gross {gross_amount} differs from base {base_price} - discount {discount} "
                f"for package {package.id}"
            )
        return gross_amount, discount, promo_id

    @staticmethod
    def create(
        user: User,
        package_id: int,
        promo_code: Optional[str],
        gateway: MidtransClient,
        db: Session,
    ) -> TransactionCreateResponse:
        """Record a pending purchase and obtain a Snap payment token for it.

        If the gateway call fails the new row is marked failed at once and
        ExternalServiceError carrying the order id is raised.
        """
        package = PackageService.find_by_id(package_id, db)
        if not package or not package.is_active:
            raise NotFound("Package not found or is not active")

        gross_amount, discount, promo_id = TransactionService.price_purchase(package, promo_code, db)

        transaction = Transaction(
            order_id=str(uuid4()),
            user_id=user.id,
            package_id=package.id,
            promo_code_id=promo_id,
            amount=gross_amount,
            discount_amount=discount,
            status=STATUS_PENDING,
            payment_gateway="midtrans",
            created_at=utcnow(),
        )
        db.add(transaction)
        db.commit()
        db.refresh(transaction)
        order_id = transaction.order_id

        parameter = {
            "transaction_details": {"order_id": order_id, "gross_amount": int(gross_amount)},
            "item_details": [
                {
                    "id": f"PKG-{package.id}",
                    "price": int(gross_amount),
                    "quantity": 1,
                    "name": f"{package.name} (promo)" if promo_id else package.name,
                }
            ],
            "customer_details": {
                "first_name": user.name,
                "email": user.email,
                "phone": user.phone or "",
            },
            "enabled_payments": ENABLED_PAYMENTS,
        }

        try:
            snap = gateway.create_transaction(parameter)
        except GymError as e:
            TransactionService.mark_failed(transaction, db, reason=f"gateway: {e.message}")
            db.commit()
            logger.error(f"Snap token for {order_id} failed, transaction marked failed: {e.message}")
            raise ExternalServiceError("Could not create payment at gateway", extra={"order_id": order_id}) from e

        transaction.payment_token = snap["token"]
        db.commit()
        logger.info(f"Transaction {order_id} created for user {user.id}: amount={gross_amount}, discount={discount}")

        return TransactionCreateResponse(
            message="Transaction created successfully.",
            order_id=order_id,
            payment_token=snap["token"],
            redirect_url=snap.get("redirect_url"),
            final_amount=gross_amount,
            discount_amount=discount,
        )

    @staticmethod
    def find_user_transactions(user_id: int, db: Session) -> List[TransactionResponse]:
        transactions = (
            db.query(Transaction)
            .options(joinedload(Transaction.package))
            .filter(Transaction.user_id == user_id)
            .order_by(Transaction.created_at.desc())
            .all()
        )
        return [TransactionResponse.model_validate(t) for t in transactions]

    @staticmethod
    def _filtered_query(status: Optional[str], search: Optional[str], db: Session):
        query = db.query(Transaction).join(Transaction.user).options(
            joinedload(Transaction.package), joinedload(Transaction.user)
        )
        if status:
            query = query.filter(Transaction.status == status)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(
                Transaction.order_id.ilike(pattern),
                User.name.ilike(pattern),
                User.email.ilike(pattern),
            ))
        return query

    @staticmethod
    def find_all(status: Optional[str], search: Optional[str], page: int, limit: int, db: Session) -> TransactionPage:
        limit = min(max(limit, 1), 100)
        page = max(page, 1)
        query = TransactionService._filtered_query(status, search, db)
        total = query.count()
        items = (
            query.order_by(Transaction.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return TransactionPage(
            items=[TransactionResponse.model_validate(t) for t in items],
            total=total,
            page=page,
            limit=limit,
        )

    @staticmethod
    def export_csv(status: Optional[str], search: Optional[str], db: Session) -> str:
        query = TransactionService._filtered_query(status, search, db)
        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow([
            "order_id", "created_at", "status", "user_name", "user_email",
            "package", "amount", "discount_amount",
        ])
        for t in query.order_by(Transaction.created_at.desc()).all():
            writer.writerow([
                t.order_id,
                t.created_at.isoformat(),
                t.status,
                t.user.name,
                t.user.email,
                t.package.name if t.package else "",
                f"{Decimal(t.amount):.2f}",
                f"{Decimal(t.discount_amount):.2f}",
            ])
        return buffer.getvalue()


class _ActivationFailed(Exception):
    """Unexpected error inside the success unit; carries the transaction to fail."""

    def __init__(self, transaction_id: int):
        super().__init__(transaction_id)
        self.transaction_id = transaction_id


class PaymentService:
    """Processes gateway notifications and the admin/member payment actions."""

    def __init__(
        self,
        gateway: MidtransClient,
        notifications: NotificationService,
        dispatcher: NotificationDispatcher,
        server_key: Optional[str] = None,
    ):
        self.gateway = gateway
        self.notifications = notifications
        self.dispatcher = dispatcher
        self.server_key = server_key if server_key is not None else gateway.server_key

    def verify_signature(self, notification: PaymentNotification) -> None:
        if not self.server_key:
            raise InternalInconsistency("Missing MIDTRANS_SERVER_KEY")
        if not is_valid_signature(
            notification.order_id,
            notification.status_code,
            notification.gross_amount,
            self.server_key,
            notification.signature_key,
        ):
            logger.warning(f"Invalid signature on notification for {notification.order_id}")
            raise InvalidSignature("Invalid signature")

    def handle_notification(
        self,
        notification: PaymentNotification,
        db: Session,
        now: Optional[datetime] = None,
    ) -> PaymentResultResponse:
        """Apply one gateway notification to its transaction.

        The transaction row is locked for the whole unit, so concurrent
        deliveries for the same order apply one after the other and the
        terminal-state checks make repeats no-ops.
        """
        self.verify_signature(notification)
        now = now or utcnow()
        membership_id = None

        try:
            with atomic(db):
                transaction = TransactionService.lock_by_order_id(notification.order_id, db)
                result, membership_id = self._apply(transaction, notification, db, now)
        except _ActivationFailed as e:
            logger.error(f"Activation unit for {notification.order_id} rolled back", exc_info=e.__cause__)
            self._fail_after_rollback(e.transaction_id, db)
            raise InternalInconsistency("Failed to process payment") from e.__cause__

        if membership_id is not None:
            self._notify_purchase(membership_id, db)
        return result

    def _apply(
        self,
        transaction: Transaction,
        notification: PaymentNotification,
        db: Session,
        now: datetime,
    ) -> Tuple[PaymentResultResponse, Optional[int]]:
        order_id = transaction.order_id
        if transaction.status == STATUS_SUCCESS:
            return PaymentResultResponse(message="Transaction already processed successfully.", status=STATUS_SUCCESS, transaction_id=order_id), None
        if transaction.status == STATUS_FAILED:
            return PaymentResultResponse(message="Transaction already marked as failed.", status=STATUS_FAILED, transaction_id=order_id), None

        try:
            amount_matches = Decimal(transaction.amount) == Decimal(notification.gross_amount)
        except InvalidOperation:
            amount_matches = False
        if not amount_matches:
            logger.warning(f"Amount mismatch for {order_id}: stored {transaction.amount}, notified {notification.gross_amount}")
            raise AmountMismatch("Invalid amount")

        outcome = notification.outcome
        payload = notification.model_dump()

        if outcome == NotificationOutcome.PENDING:
            if now - transaction.created_at > timedelta(minutes=settings.PENDING_TTL_MINUTES):
                TransactionService.mark_failed(transaction, db, reason="pending TTL expired", clear_payload=True)
                return PaymentResultResponse(message="Transaction expired and marked as failed.", status=STATUS_FAILED, transaction_id=order_id), None
            return PaymentResultResponse(message="Transaction is still pending.", status=STATUS_PENDING, transaction_id=order_id), None

        if outcome in (NotificationOutcome.SETTLEMENT, NotificationOutcome.CAPTURE_ACCEPT):
            membership_id = self._settle(transaction, payload, db, now)
            return PaymentResultResponse(
                message="Payment successful, membership activated.",
                status=STATUS_SUCCESS,
                transaction_id=order_id,
                membership_id=membership_id,
            ), membership_id

        if outcome == NotificationOutcome.CAPTURE_CHALLENGE:
            transaction.status = STATUS_PENDING
            transaction.payment_gateway_response = payload
            return PaymentResultResponse(message="Transaction is challenged and pending manual review.", status=STATUS_PENDING, transaction_id=order_id), None

        if outcome in (NotificationOutcome.CAPTURE_DENY, NotificationOutcome.FAILED):
            transaction.status = STATUS_FAILED
            transaction.payment_gateway_response = payload
            logger.info(f"Transaction {order_id} failed at gateway ({notification.transaction_status}/{notification.fraud_status})")
            message = "Transaction denied by bank." if outcome == NotificationOutcome.CAPTURE_DENY else "Transaction marked as failed."
            return PaymentResultResponse(message=message, status=STATUS_FAILED, transaction_id=order_id), None

        logger.warning(f"Unhandled transaction status {notification.transaction_status!r} for {order_id}")
        return PaymentResultResponse(message="Unhandled transaction status.", status=transaction.status, transaction_id=order_id), None

    def _settle(self, transaction: Transaction, payload: Dict[str, Any], db: Session, now: datetime) -> int:
        """Success path: status, promo usage and membership in the caller's unit."""
        try:
            transaction.status = STATUS_SUCCESS
            transaction.payment_gateway_response = payload
            db.flush()
            if transaction.promo_code_id:
                PromoService.increment_usage(transaction.promo_code_id, db)
            membership = MembershipService.activate(transaction.id, db, now=now)
        except GymError:
            # Domain errors leave nothing behind once the unit rolls back.
            raise
        except Exception as e:
            raise _ActivationFailed(transaction.id) from e
        logger.info(f"Transaction {transaction.order_id} settled, membership {membership.id} created")
        return membership.id

    def _fail_after_rollback(self, transaction_id: int, db: Session) -> None:
        with atomic(db):
            transaction = TransactionService.lock_by_id(transaction_id, db)
            if transaction.status == STATUS_PENDING:
                TransactionService.mark_failed(transaction, db, reason="membership activation failed")

    def _notify_purchase(self, membership_id: int, db: Session) -> None:
        """Best effort: the payment is already committed when this runs."""
        try:
            membership = db.query(UserMembership).filter(UserMembership.id == membership_id).first()
            if not membership:
                return
            user = membership.user
            self.dispatcher.submit(
                self.notifications.send_purchase_notifications,
                user.name,
                user.email,
                user.phone,
                membership.package.name,
                membership.start_date,
                membership.end_date,
            )
        except Exception:
            logger.exception(f"Could not dispatch purchase notifications for membership {membership_id}")

    def process_in_background(self, notification: PaymentNotification, session_factory: sessionmaker) -> None:
        """Webhook body processing after the 200 receipt went out. Errors are logged only."""
        db = session_factory()
        try:
            result = self.handle_notification(notification, db)
            logger.info(f"Notification for {notification.order_id}: {result.message}")
        except GymError as e:
            logger.warning(f"Webhook processing for {notification.order_id} rejected: {e.message}")
        except Exception:
            logger.exception(f"Webhook processing for {notification.order_id} failed")
        finally:
            db.close()

    def refund_transaction(self, transaction_id: int, admin: User, db: Session, now: Optional[datetime] = None) -> PaymentResultResponse:
        """Admin refund/void: fail the transaction and end its membership now."""
        now = now or utcnow()
        with atomic(db):
            transaction = TransactionService.lock_by_id(transaction_id, db)
            order_id = transaction.order_id
            if transaction.status == STATUS_FAILED:
                return PaymentResultResponse(message="Transaction already failed.", status=STATUS_FAILED, transaction_id=order_id)

            payload = dict(transaction.payment_gateway_response or {})
            payload.update({
                "admin_action": "refund",
                "admin_action_at": now.isoformat(),
                "admin_action_by": admin.id,
            })
            transaction.status = STATUS_FAILED
            transaction.payment_gateway_response = payload

            membership = transaction.membership
            if membership:
                membership.status = MEMBERSHIP_EXPIRED
                membership.end_date = now

            AuthService.log_admin_action(admin.id, f"Refunded transaction {order_id}", db)

        logger.info(f"Transaction {order_id} refunded by admin {admin.id}")
        return PaymentResultResponse(
            message="Transaction refunded/voided and membership updated.",
            status=STATUS_FAILED,
            transaction_id=order_id,
        )

    def sync_transaction_status(self, order_id: str, user: User, db: Session) -> PaymentResultResponse:
        """Pull the gateway status and run it through the notification pipeline."""
        transaction = db.query(Transaction).filter(Transaction.order_id == order_id).first()
        if not transaction or (user.role != ROLE_ADMIN and transaction.user_id != user.id):
            raise NotFound("Transaction not found")

        status_response = self.gateway.transaction_status(order_id)
        try:
            notification = PaymentNotification(**status_response)
        except ValidationError as e:
            logger.error(f"Unexpected gateway status body for {order_id}: {status_response}")
            raise ExternalServiceError("Payment gateway returned an unexpected status") from e
        return self.handle_notification(notification, db)

    @staticmethod
    def sweep_expired_pending(db: Session, now: Optional[datetime] = None) -> int:
        """Fail every pending transaction older than the TTL and drop its stored payload."""
        now = now or utcnow()
        cutoff = now - timedelta(minutes=settings.PENDING_TTL_MINUTES)
        with atomic(db):
            count = (
                db.query(Transaction)
                .filter(Transaction.status == STATUS_PENDING, Transaction.created_at < cutoff)
                .update(
                    {Transaction.status: STATUS_FAILED, Transaction.payment_gateway_response: None},
                    synchronize_session=False,
                )
            )
        if count:
            logger.info(f"Swept {count} expired pending transactions")
        return count
