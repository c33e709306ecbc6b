# src/scheduler/tasks.py
import logging
from typing import Optional
from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy.orm import Session, sessionmaker
from config import settings
from database import SessionLocal
from payment.services import PaymentService

logger = logging.getLogger(__name__)

def expire_pending_transactions(session_factory: sessionmaker = SessionLocal) -> int:
    """Fail pending transactions older than the TTL."""
    logger.info("Starting expire_pending_transactions task")
    db: Session = session_factory()
    try:
        count = PaymentService.sweep_expired_pending(db)
    except Exception as e:
        logger.error(f"Error in expire_pending_transactions: {str(e)}")
        return 0
    finally:
        db.close()
    logger.info(f"Finished expire_pending_transactions task ({count} expired)")
    return count

def start_scheduler(session_factory: sessionmaker = SessionLocal) -> BackgroundScheduler:
    """Start the background scheduler."""
    scheduler = BackgroundScheduler()
    scheduler.add_job(
        expire_pending_transactions,
        "interval",
        minutes=settings.SWEEP_INTERVAL_MINUTES,
        kwargs={"session_factory": session_factory},
        id="expire_pending_transactions",
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    return scheduler

def shutdown_scheduler(scheduler: Optional[BackgroundScheduler]) -> None:
    if scheduler is not None and scheduler.running:
        scheduler.shutdown(wait=False)
