# src/payment/routes.py
from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import Response
from sqlalchemy.orm import Session, sessionmaker
from typing import List, Optional
from payment.services import PaymentService, TransactionService
from payment.schemas import (
    PaymentNotification,
    PaymentResultResponse,
    TransactionCreate,
    TransactionCreateResponse,
    TransactionPage,
    TransactionResponse,
)
from auth.routes import get_current_user, check_admin_role
from auth.models import User
from database import get_db, get_session_factory, utcnow

router = APIRouter(tags=["payments"])

def get_payment_service(request: Request) -> PaymentService:
    """The PaymentService built at startup."""
    return request.app.state.payment_service

@router.post("/transactions", response_model=TransactionCreateResponse)
def create_transaction(
    data: TransactionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    payment_service: PaymentService = Depends(get_payment_service),
):
    """Start a package purchase and return the Snap payment token."""
    return TransactionService.create(current_user, data.package_id, data.promo_code, payment_service.gateway, db)

@router.get("/transactions", response_model=List[TransactionResponse])
def get_my_transactions(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    return TransactionService.find_user_transactions(current_user.id, db)

@router.get("/admin/transactions", response_model=TransactionPage)
def get_transactions(
    status: Optional[str] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
    db: Session = Depends(get_db),
    current_user: User = Depends(check_admin_role),
):
    return TransactionService.find_all(status, search, page, limit, db)

@router.get("/admin/transactions/export")
def export_transactions(
    status: Optional[str] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(check_admin_role),
):
    content = TransactionService.export_csv(status, search, db)
    filename = f"transactions-{utcnow():%Y%m%d%H%M%S}.csv"
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )

@router.post("/payments/notification")
def payment_notification(
    notification: PaymentNotification,
    background_tasks: BackgroundTasks,
    payment_service: PaymentService = Depends(get_payment_service),
    session_factory: sessionmaker = Depends(get_session_factory),
):
    """Gateway webhook: verify now, acknowledge, process after the response."""
    payment_service.verify_signature(notification)
    background_tasks.add_task(payment_service.process_in_background, notification, session_factory)
    return {"message": "Notification received."}

@router.post("/payments/sync/{order_id}", response_model=PaymentResultResponse)
def sync_transaction(
    order_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    payment_service: PaymentService = Depends(get_payment_service),
):
    """Re-check a transaction against the gateway and apply its status."""
    return payment_service.sync_transaction_status(order_id, current_user, db)

@router.post("/payments/admin/transactions/{transaction_id}/refund", response_model=PaymentResultResponse)
def refund_transaction(
    transaction_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(check_admin_role),
    payment_service: PaymentService = Depends(get_payment_service),
):
    return payment_service.refund_transaction(transaction_id, current_user, db)
