import hashlib
import hmac
import itertools
import json
import os
import time
from datetime import datetime
from types import SimpleNamespace

# Settings are read at import time, so the environment has to be ready first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "development"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ["ADMIN_PASSWORD"] = "letmein"
os.environ["BAKERY_TIMEZONE"] = "America/New_York"
os.environ["SAME_DAY_CUTOFF_HOUR"] = "9"
for _key in ("STRIPE_SECRET_KEY", "SMTP_PASSWORD", "TWILIO_ACCOUNT_SID", "TWILIO_AUTH_TOKEN", "ADMIN_SECRET"):
    os.environ.pop(_key, None)

import pytest
import pytz
import stripe
from fastapi.testclient import TestClient

import app.domain.models  # noqa: F401  (registers tables)
from app.core.security import create_admin_token
from app.domain.delivery import SameDayCutoffGuard
from app.domain.exceptions import EmailDeliveryError
from app.infrastructure.database import Base, get_engine
from app.infrastructure.notification_service import NotificationService
from app.infrastructure.payment_gateway import StripePaymentGateway
from app.infrastructure.repositories.order_repository import SqlAlchemyOrderRepository
from app.main import create_app

WEBHOOK_SECRET = "whsec_test_secret"
BAKERY_TZ = pytz.timezone("America/New_York")


# ---------------------------------------------------------
# FAKES
# ---------------------------------------------------------
class RecordingEmailService:
    """Stands in for SMTP: keeps every message, fails for chosen recipients."""

    def __init__(self):
        self.sent = []
        self.fail_for = set()
        self.enabled = True

    def send(self, to, subject, text, html=None, sender_name=None, reply_to=None):
        if to in self.fail_for:
            raise EmailDeliveryError(f"mailbox {to} unavailable")
        self.sent.append(
            {"to": to, "subject": subject, "text": text, "html": html, "sender_name": sender_name, "reply_to": reply_to}
        )
        return f"<msg-{len(self.sent)}@test>"

    def to(self, address):
        return [m for m in self.sent if m["to"] == address]


class _StubPaymentIntents:
    def __init__(self):
        self.calls = []
        self.error = None
        self._ids = itertools.count(1)

    def create(self, params):
        self.calls.append(params)
        if self.error is not None:
            raise self.error
        n = next(self._ids)
        return SimpleNamespace(
            id=f"pi_test_{n}",
            client_secret=f"pi_test_{n}_secret_abc",
            status="requires_payment_method",
        )


class StubStripeClient:
    def __init__(self):
        self.payment_intents = _StubPaymentIntents()


class FrozenClock:
    def __init__(self, local_dt: datetime):
        self.set_local(local_dt)

    def set_local(self, local_dt: datetime):
        self.now = BAKERY_TZ.localize(local_dt)

    def __call__(self):
        return self.now


# ---------------------------------------------------------
# FIXTURES
# ---------------------------------------------------------
@pytest.fixture(autouse=True)
def database():
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def email_service():
    return RecordingEmailService()


@pytest.fixture
def notifier(email_service):
    return NotificationService(
        email_service=email_service,
        business_name="Caramel & Jo",
        staff_email="staff@bakery.test",
        app_url="https://bakery.test",
    )


@pytest.fixture
def stripe_client():
    return StubStripeClient()


@pytest.fixture
def gateway(stripe_client):
    return StripePaymentGateway(api_key=None, webhook_secret=WEBHOOK_SECRET, client=stripe_client)


@pytest.fixture
def clock():
    # Monday 2026-10-19, 08:00 at the bakery
    return FrozenClock(datetime(2026, 10, 19, 8, 0))


@pytest.fixture
def order_repo():
    return SqlAlchemyOrderRepository()


@pytest.fixture
def client(order_repo, gateway, notifier, clock):
    api = create_app(
        order_repo=order_repo,
        payment_gateway=gateway,
        notifier=notifier,
        cutoff_guard=SameDayCutoffGuard("America/New_York", 9, clock=clock),
    )
    return TestClient(api)


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {create_admin_token()}"}


# ---------------------------------------------------------
# HELPERS
# ---------------------------------------------------------
def checkout_payload(**overrides):
    payload = {
        "customerName": "Jane Doe",
        "customerEmail": "jane@example.com",
        "items": [{"productName": "Flan", "quantity": 1, "unitPrice": 30}],
    }
    payload.update(overrides)
    return payload


def place_order_payload(**overrides):
    payload = {
        "customerName": "Jane Doe",
        "customerEmail": "jane@example.com",
        "customerPhone": "555-0100",
        "deliveryAddress": "12 Baker St",
        "deliveryDate": "2026-10-20",
        "deliveryTime": "7:00pm",
        "items": [
            {"productName": "Flan", "quantity": 1, "unitPrice": 30},
            {"productName": "Cinnamon Rolls", "quantity": 2, "unitPrice": 15},
        ],
    }
    payload.update(overrides)
    return payload


def payment_event(
    event_type,
    order_id=None,
    intent_id="pi_test_1",
    event_id="evt_test_1",
    amount=1500,
    order_key="order_id",
):
    metadata = {"order_number": "CJ-TEST"}
    if order_id is not None:
        metadata[order_key] = order_id
    return json.dumps(
        {
            "id": event_id,
            "object": "event",
            "type": event_type,
            "data": {
                "object": {
                    "id": intent_id,
                    "object": "payment_intent",
                    "amount": amount,
                    "status": "succeeded" if event_type.endswith("succeeded") else "requires_payment_method",
                    "metadata": metadata,
                }
            },
        }
    ).encode()


def sign(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.{payload.decode()}".encode()
    signature = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def post_webhook(client, payload: bytes, signature: str | None = None):
    headers = {"Content-Type": "application/json"}
    if signature is not None:
        headers["Stripe-Signature"] = signature
    return client.post("/webhooks/payment", content=payload, headers=headers)


@pytest.fixture
def stripe_error():
    return stripe.APIConnectionError("network down")
