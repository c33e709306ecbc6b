from datetime import timedelta
from decimal import Decimal

import pytest

from database import utcnow
from errors import ExternalServiceError, InvalidState, NotFound
from payment.models import Transaction, STATUS_FAILED, STATUS_PENDING
from payment.services import PaymentService, TransactionService
from promo.models import PromoCode, DISCOUNT_FIXED
from conftest import auth_headers, make_user


def test_create_pending_transaction(db, member, package, promo, gateway):
    response = TransactionService.create(member, package.id, "hemat", gateway, db)

    assert response.final_amount == Decimal("200000")
    assert response.discount_amount == Decimal("100000.00")
    assert response.payment_token == f"snap-{response.order_id}"

    transaction = TransactionService.find_by_order_id(response.order_id, db)
    assert transaction.status == STATUS_PENDING
    assert transaction.promo_code_id == promo.id
    assert transaction.payment_token == response.payment_token

    payload = gateway.created[0]
    assert payload["transaction_details"] == {"order_id": response.order_id, "gross_amount": 200000}
    assert payload["item_details"][0]["price"] == 200000
    assert payload["customer_details"]["email"] == "member@example.com"


def test_order_ids_are_unique(db, member, package, gateway):
    first = TransactionService.create(member, package.id, None, gateway, db)
    second = TransactionService.create(member, package.id, None, gateway, db)
    assert first.order_id != second.order_id
    assert first.final_amount == Decimal("300000")


def test_inactive_package_is_rejected(db, member, package, gateway):
    package.is_active = False
    db.commit()
    with pytest.raises(NotFound):
        TransactionService.create(member, package.id, None, gateway, db)
    assert db.query(Transaction).count() == 0


def test_zero_total_is_rejected(db, member, package, gateway):
    db.add(PromoCode(code="FREE", discount_type=DISCOUNT_FIXED, value=Decimal("300000"), is_active=True))
    db.commit()
    with pytest.raises(InvalidState):
        TransactionService.create(member, package.id, "FREE", gateway, db)
    assert db.query(Transaction).count() == 0


def test_gateway_failure_marks_transaction_failed(db, member, package, gateway):
    gateway.fail_create = True
    with pytest.raises(ExternalServiceError) as excinfo:
        TransactionService.create(member, package.id, None, gateway, db)

    order_id = excinfo.value.extra["order_id"]
    transaction = TransactionService.find_by_order_id(order_id, db)
    assert transaction.status == STATUS_FAILED
    assert "gateway" in transaction.payment_gateway_response["failure_reason"]


def test_sweep_fails_only_stale_pending(db, member, package, gateway):
    stale = TransactionService.find_by_order_id(TransactionService.create(member, package.id, None, gateway, db).order_id, db)
    fresh = TransactionService.find_by_order_id(TransactionService.create(member, package.id, None, gateway, db).order_id, db)
    stale.created_at = utcnow() - timedelta(days=2)
    stale.payment_gateway_response = {"transaction_status": "pending"}
    db.commit()
    stale_id, fresh_id = stale.id, fresh.id

    assert PaymentService.sweep_expired_pending(db) == 1
    db.expire_all()
    stale = TransactionService.find_by_id(stale_id, db)
    assert stale.status == STATUS_FAILED
    assert stale.payment_gateway_response is None
    assert TransactionService.find_by_id(fresh_id, db).status == STATUS_PENDING
    assert PaymentService.sweep_expired_pending(db) == 0


def test_mark_failed_is_idempotent(db, member, package, gateway):
    transaction = TransactionService.find_by_order_id(TransactionService.create(member, package.id, None, gateway, db).order_id, db)
    assert TransactionService.mark_failed(transaction, db, reason="test")
    assert not TransactionService.mark_failed(transaction, db, reason="again")
    assert transaction.payment_gateway_response == {"failure_reason": "test"}


def test_purchase_route(client, member, package, promo):
    response = client.post(
        "/transactions",
        json={"package_id": package.id, "promo_code": "HEMAT"},
        headers=auth_headers(member),
    )
    assert response.status_code == 200
    body = response.json()
    assert Decimal(body["final_amount"]) == Decimal("200000")

    history = client.get("/transactions", headers=auth_headers(member))
    assert history.status_code == 200
    assert [t["order_id"] for t in history.json()] == [body["order_id"]]


def test_purchase_route_gateway_error(client, gateway, member, package):
    gateway.fail_create = True
    response = client.post("/transactions", json={"package_id": package.id}, headers=auth_headers(member))
    assert response.status_code == 502
    assert "order_id" in response.json()


def test_admin_listing_and_export(client, db, admin, member, package, gateway):
    TransactionService.create(member, package.id, None, gateway, db)
    other = make_user(db, "siti@example.com", name="Siti")
    TransactionService.create(other, package.id, None, gateway, db)

    response = client.get("/admin/transactions", params={"search": "siti"}, headers=auth_headers(admin))
    assert response.status_code == 200
    page = response.json()
    assert page["total"] == 1
    assert page["items"][0]["user"]["email"] == "siti@example.com"

    export = client.get("/admin/transactions/export", headers=auth_headers(admin))
    assert export.status_code == 200
    assert export.headers["content-type"].startswith("text/csv")
    lines = export.text.strip().splitlines()
    assert lines[0].startswith("order_id,created_at,status")
    assert len(lines) == 3

    assert client.get("/admin/transactions", headers=auth_headers(member)).status_code == 403
