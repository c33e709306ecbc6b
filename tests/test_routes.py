from payment.models import Transaction, STATUS_PENDING, STATUS_SUCCESS
from membership.models import UserMembership
from payment.services import TransactionService
from conftest import auth_headers, signed_notification


def test_webhook_rejects_bad_signature(client, db, gateway, member, package):
    order_id = TransactionService.create(member, package.id, None, gateway, db).order_id
    body = signed_notification(order_id, "settlement", "300000.00", key="wrong").model_dump()

    response = client.post("/payments/notification", json=body)
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_signature"
    db.expire_all()
    assert db.query(Transaction).filter(Transaction.order_id == order_id).one().status == STATUS_PENDING


def test_webhook_acknowledges_and_processes(client, db, gateway, notifications, member, package):
    order_id = TransactionService.create(member, package.id, None, gateway, db).order_id
    body = signed_notification(order_id, "settlement", "300000.00").model_dump()
    body["payment_type"] = "bank_transfer"

    response = client.post("/payments/notification", json=body)
    assert response.status_code == 200
    assert response.json() == {"message": "Notification received."}

    db.expire_all()
    transaction = db.query(Transaction).filter(Transaction.order_id == order_id).one()
    assert transaction.status == STATUS_SUCCESS
    assert transaction.payment_gateway_response["payment_type"] == "bank_transfer"
    assert db.query(UserMembership).count() == 1
    assert len(notifications.purchases) == 1


def test_webhook_business_errors_still_get_receipt(client, db, gateway, member, package):
    order_id = TransactionService.create(member, package.id, None, gateway, db).order_id
    body = signed_notification(order_id, "settlement", "1.00").model_dump()

    response = client.post("/payments/notification", json=body)
    assert response.status_code == 200
    db.expire_all()
    assert db.query(Transaction).filter(Transaction.order_id == order_id).one().status == STATUS_PENDING


def test_webhook_malformed_body(client):
    response = client.post("/payments/notification", json={"order_id": "x"})
    assert response.status_code == 422


def test_auth_flow(client):
    response = client.post(
        "/auth/register",
        json={"name": "Ayu", "email": "ayu@example.com", "password": "secret123", "phone": "+628123"},
    )
    assert response.status_code == 200
    assert response.json()["role"] == "member"

    assert client.post("/auth/register", json={"name": "Ayu", "email": "ayu@example.com", "password": "x"}).status_code == 400

    login = client.post("/auth/login", json={"email": "ayu@example.com", "password": "secret123"})
    assert login.status_code == 200
    token = login.json()["access_token"]
    me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.json()["email"] == "ayu@example.com"

    assert client.post("/auth/login", json={"email": "ayu@example.com", "password": "wrong"}).status_code == 401
    assert client.get("/auth/me").status_code == 401


def test_package_admin(client, admin, member):
    payload = {"name": "Quarterly", "price": "800000", "duration_days": 90, "pt_sessions_quota": 4}
    assert client.post("/admin/packages", json=payload, headers=auth_headers(member)).status_code == 403
    created = client.post("/admin/packages", json=payload, headers=auth_headers(admin))
    assert created.status_code == 200
    package_id = created.json()["id"]

    assert [p["name"] for p in client.get("/packages").json()] == ["Quarterly"]
    assert client.delete(f"/admin/packages/{package_id}", headers=auth_headers(admin)).status_code == 200
    assert client.get("/packages").json() == []


def test_promote_to_trainer(client, db, admin, member):
    response = client.patch(
        f"/admin/users/{member.id}/role",
        json={"role": "trainer", "bio": "Yoga"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 200
    assert response.json()["role"] == "trainer"
    trainers = client.get("/trainers").json()
    assert [t["email"] for t in trainers] == ["member@example.com"]
    logs = client.get("/admin/logs", headers=auth_headers(admin)).json()
    assert "trainer" in logs[0]["action"]
