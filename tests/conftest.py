import json

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from paygate import models  # noqa: F401
from paygate.config import Settings
from paygate.database import Base
from paygate.main import create_app
from paygate.razorpay_service import RazorpayGateway
from paygate.signature import compute_signature

WEBHOOK_SECRET = "whsec_test_secret"
KEY_ID = "rzp_test_key"


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(bind=engine, autocommit=False, autoflush=False)
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def settings():
    s = Settings()
    s.RAZORPAY_KEY_ID = KEY_ID
    s.RAZORPAY_KEY_SECRET = "rzp_test_secret"
    s.RAZORPAY_WEBHOOK_SECRET = WEBHOOK_SECRET
    s.CURRENCY = "INR"
    s.LOG_FORMAT = "console"
    return s


@pytest.fixture
def gateway(mocker):
    gw = mocker.Mock(spec=RazorpayGateway)
    gw.key_id = KEY_ID
    gw.create_order.return_value = {"id": "order_test_123", "amount": 10000, "currency": "INR"}
    return gw


@pytest.fixture
def client(settings, session_factory, gateway):
    app = create_app(settings=settings, session_factory=session_factory, gateway=gateway)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def seed_payment(db):
    """Insert a customer with one pending payment for ``order_id``."""

    def _seed(order_id="order_seed_1", status="pending", payment_id=None, email="seed@example.com"):
        customer = db.query(models.Customer).filter_by(email=email).first()
        if customer is None:
            customer = models.Customer(name="Seed", email=email, phone="9999999999")
            db.add(customer)
            db.commit()
        payment = models.Payment(
            order_id=order_id,
            customer_id=customer.id,
            amount=100,
            currency="INR",
            status=status,
            payment_id=payment_id,
            description="Payment",
        )
        db.add(payment)
        db.commit()
        return payment

    return _seed


@pytest.fixture
def make_event():
    def _make(kind, order_id, payment_id="pay_test_1"):
        return {
            "entity": "event",
            "event": kind,
            "payload": {
                "payment": {
                    "entity": {"id": payment_id, "order_id": order_id, "amount": 10000, "currency": "INR"}
                }
            },
        }

    return _make

@pytest.fixture
def post_event(client):
    """POST a webhook body signed with the test secret (or a given signature)."""

    def _post(event, signature=None):
        body = json.dumps(event).encode() if not isinstance(event, bytes) else event
        sig = signature if signature is not None else compute_signature(body, WEBHOOK_SECRET)
        return client.post(
            "/webhook",
            content=body,
            headers={"Content-Type": "application/json", "x-razorpay-signature": sig},
        )

    return _post
