from datetime import timedelta

from database import utcnow
from payment.models import STATUS_FAILED
from payment.services import TransactionService
from scheduler import tasks


def test_expire_pending_transactions_uses_fresh_session(db, session_factory, gateway, member, package):
    order_id = TransactionService.create(member, package.id, None, gateway, db).order_id
    transaction = TransactionService.find_by_order_id(order_id, db)
    transaction.created_at = utcnow() - timedelta(days=3)
    db.commit()

    assert tasks.expire_pending_transactions(session_factory) == 1
    db.expire_all()
    assert TransactionService.find_by_order_id(order_id, db).status == STATUS_FAILED


def test_expire_pending_transactions_logs_errors(session_factory, monkeypatch, caplog):
    def broken(db, now=None):
        raise RuntimeError("db down")

    monkeypatch.setattr(tasks.PaymentService, "sweep_expired_pending", staticmethod(broken))
    assert tasks.expire_pending_transactions(session_factory) == 0
    assert "db down" in caplog.text


def test_scheduler_registers_sweep_job(session_factory):
    scheduler = tasks.start_scheduler(session_factory)
    try:
        job = scheduler.get_job("expire_pending_transactions")
        assert job is not None
        assert job.trigger.interval == timedelta(minutes=15)
    finally:
        tasks.shutdown_scheduler(scheduler)
    assert not scheduler.running
