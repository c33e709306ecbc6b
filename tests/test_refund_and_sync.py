from datetime import timedelta

import pytest

from auth.models import AdminActionLog
from database import utcnow
from errors import NotFound
from membership.models import UserMembership, MEMBERSHIP_EXPIRED
from payment.models import Transaction, STATUS_FAILED, STATUS_SUCCESS
from payment.services import TransactionService
from conftest import auth_headers, make_user, signed_notification


@pytest.fixture
def paid(db, member, package, gateway, payment_service):
    order_id = TransactionService.create(member, package.id, None, gateway, db).order_id
    payment_service.handle_notification(signed_notification(order_id, "settlement", "300000.00"), db)
    return TransactionService.find_by_order_id(order_id, db)


def test_refund_expires_membership(db, payment_service, paid, admin):
    now = utcnow() + timedelta(days=3)
    result = payment_service.refund_transaction(paid.id, admin, db, now=now)
    assert result.status == STATUS_FAILED

    db.expire_all()
    transaction = TransactionService.find_by_id(paid.id, db)
    assert transaction.status == STATUS_FAILED
    payload = transaction.payment_gateway_response
    assert payload["admin_action"] == "refund"
    assert payload["admin_action_by"] == admin.id
    assert payload["transaction_status"] == "settlement"

    membership = db.query(UserMembership).filter(UserMembership.transaction_id == paid.id).one()
    assert membership.status == MEMBERSHIP_EXPIRED
    assert membership.end_date == now
    assert db.query(AdminActionLog).filter(AdminActionLog.admin_id == admin.id).count() == 1


def test_refund_twice_is_a_noop(db, payment_service, paid, admin):
    payment_service.refund_transaction(paid.id, admin, db)
    again = payment_service.refund_transaction(paid.id, admin, db)
    assert again.message == "Transaction already failed."
    assert db.query(AdminActionLog).count() == 1


def test_refund_unknown_transaction(db, payment_service, admin):
    with pytest.raises(NotFound):
        payment_service.refund_transaction(12345, admin, db)


def test_refund_route_requires_admin(client, paid, member, admin):
    url = f"/payments/admin/transactions/{paid.id}/refund"
    assert client.post(url, headers=auth_headers(member)).status_code == 403
    response = client.post(url, headers=auth_headers(admin))
    assert response.status_code == 200
    assert response.json()["status"] == STATUS_FAILED


def test_sync_applies_gateway_status(db, payment_service, gateway, member, package):
    order_id = TransactionService.create(member, package.id, None, gateway, db).order_id
    gateway.status_response = signed_notification(order_id, "settlement", "300000.00").model_dump()

    result = payment_service.sync_transaction_status(order_id, member, db)
    assert result.status == STATUS_SUCCESS
    assert db.query(UserMembership).count() == 1


def test_sync_hides_other_members_transactions(db, payment_service, gateway, member, package, admin):
    order_id = TransactionService.create(member, package.id, None, gateway, db).order_id
    stranger = make_user(db, "stranger@example.com")
    with pytest.raises(NotFound):
        payment_service.sync_transaction_status(order_id, stranger, db)

    gateway.status_response = signed_notification(order_id, "pending", "300000.00").model_dump()
    assert payment_service.sync_transaction_status(order_id, admin, db).status == "pending"


def test_sync_route(client, db, gateway, member, package):
    order_id = TransactionService.create(member, package.id, None, gateway, db).order_id
    gateway.status_response = signed_notification(order_id, "expire", "300000.00").model_dump()
    response = client.post(f"/payments/sync/{order_id}", headers=auth_headers(member))
    assert response.status_code == 200
    assert response.json()["status"] == STATUS_FAILED
    db.expire_all()
    assert db.query(Transaction).filter(Transaction.order_id == order_id).one().status == STATUS_FAILED
