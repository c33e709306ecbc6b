import os
from concurrent.futures import Future
from decimal import Decimal

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["MIDTRANS_SERVER_KEY"] = "server-key"
os.environ["MIDTRANS_CLIENT_KEY"] = "client-key"
os.environ["ENABLE_SCHEDULER"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, get_db, get_session_factory, utcnow
from errors import ExternalServiceError
from auth.models import User, ROLE_ADMIN, ROLE_MEMBER, ROLE_TRAINER
from auth.services import AuthService
from notification.dispatcher import NotificationDispatcher
from packages.models import Package
from payment.schemas import PaymentNotification
from payment.services import PaymentService
from payment.signature import compute_signature
from promo.models import PromoCode, DISCOUNT_PERCENT
from trainer.models import TrainerProfile
from main import app

SERVER_KEY = "server-key"


class FakeGateway:
    """Stands in for MidtransClient; records every call."""

    def __init__(self):
        self.server_key = SERVER_KEY
        self.created = []
        self.status_response = None
        self.fail_create = False

    def create_transaction(self, payload):
        self.created.append(payload)
        if self.fail_create:
            raise ExternalServiceError("Payment gateway rejected the transaction (500)")
        order_id = payload["transaction_details"]["order_id"]
        return {"token": f"snap-{order_id}", "redirect_url": f"https://pay.example/{order_id}"}

    def transaction_status(self, order_id):
        return self.status_response


class FakeNotifications:
    def __init__(self):
        self.purchases = []
        self.bookings = []

    def send_purchase_notifications(self, *args):
        self.purchases.append(args)
        return 0

    def send_booking_notifications(self, *args):
        self.bookings.append(args)
        return 0


class ImmediateExecutor:
    """Runs submitted work inline so dispatch results are visible to the test."""

    def submit(self, fn, *args, **kwargs):
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future

    def shutdown(self, wait=True):
        pass


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def notifications():
    return FakeNotifications()


@pytest.fixture
def dispatcher():
    return NotificationDispatcher(executor=ImmediateExecutor())


@pytest.fixture
def payment_service(gateway, notifications, dispatcher):
    return PaymentService(gateway=gateway, notifications=notifications, dispatcher=dispatcher, server_key=SERVER_KEY)


@pytest.fixture
def client(db, session_factory, payment_service, notifications, dispatcher):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.state.payment_service = payment_service
    app.state.notifications = notifications
    app.state.dispatcher = dispatcher
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_user(db, email, role=ROLE_MEMBER, name=None, phone="+6281200000000"):
    user = User(
        name=name or email.split("@")[0].title(),
        email=email,
        phone=phone,
        password_hash=AuthService.hash_password("secret123"),
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def auth_headers(user):
    token = AuthService.create_access_token({"sub": user.email, "role": user.role})
    return {"Authorization": f"Bearer {token}"}


def signed_notification(order_id, transaction_status, gross_amount, fraud_status=None, status_code="200", key=SERVER_KEY):
    data = {
        "transaction_status": transaction_status,
        "order_id": order_id,
        "gross_amount": gross_amount,
        "status_code": status_code,
        "signature_key": compute_signature(order_id, status_code, gross_amount, key),
    }
    if fraud_status:
        data["fraud_status"] = fraud_status
    return PaymentNotification(**data)


@pytest.fixture
def member(db):
    return make_user(db, "member@example.com", name="Budi")


@pytest.fixture
def admin(db):
    return make_user(db, "admin@example.com", role=ROLE_ADMIN)


@pytest.fixture
def trainer(db):
    user = make_user(db, "trainer@example.com", role=ROLE_TRAINER, name="Coach Rina")
    db.add(TrainerProfile(user_id=user.id, bio="Strength coach", specialties="strength"))
    db.commit()
    return user


@pytest.fixture
def package(db):
    package = Package(
        name="Monthly",
        price=Decimal("300000.00"),
        duration_days=30,
        pt_sessions_quota=2,
        is_active=True,
    )
    db.add(package)
    db.commit()
    db.refresh(package)
    return package


@pytest.fixture
def promo(db):
    promo = PromoCode(
        code="HEMAT",
        discount_type=DISCOUNT_PERCENT,
        value=Decimal("50"),
        max_discount=Decimal("100000"),
        used_count=0,
        is_active=True,
        created_at=utcnow(),
    )
    db.add(promo)
    db.commit()
    db.refresh(promo)
    return promo
