import smtplib
from datetime import date, datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest

from app.domain.exceptions import EmailDeliveryError
from app.domain.models import Contact, Order, OrderItem, OrderStatus
from app.infrastructure import email_service as email_module
from app.infrastructure.email_service import SmtpEmailService
from app.infrastructure.notification_service import (
    NotificationService,
    format_long_date,
    format_money,
    text_to_html,
)


def make_order(**overrides) -> Order:
    fields = dict(
        id="a" * 32,
        order_number="CJ-261019-0123456789",
        customer_name="Jane Doe",
        customer_email="jane@example.com",
        customer_phone="555-0100",
        total_amount=Decimal("60.00"),
        deposit_amount=Decimal("30.00"),
        remaining_amount=Decimal("30.00"),
        deposit_paid=False,
        delivery_confirmed=False,
        delivery_location="12 Baker St",
        delivery_date=date(2026, 10, 20),
        delivery_time="7:00pm",
        status=OrderStatus.PENDING,
        notes="Ring twice",
        created_at=datetime(2026, 10, 19, 8, 5),
        items=[
            OrderItem(product_name="Flan", quantity=1, unit_price=Decimal("30.00"), total_price=Decimal("30.00")),
            OrderItem(product_name="Cinnamon Rolls", quantity=2, unit_price=Decimal("15.00"), total_price=Decimal("30.00")),
        ],
    )
    fields.update(overrides)
    return Order(**fields)


class FakeTwilioMessages:
    def __init__(self):
        self.sent = []

    def create(self, from_, body, to):
        self.sent.append({"from_": from_, "body": body, "to": to})
        return SimpleNamespace(sid="SM123")


def test_formatters():
    assert format_money(Decimal("1234.5")) == "$1,234.50"
    assert format_long_date(date(2026, 10, 5)) == "Monday, October 5, 2026"
    assert format_long_date(None) == ""
    assert text_to_html("a <b>\n━━━━━━") == "a &lt;b&gt;<br><hr>"


def test_order_confirmation_content(notifier, email_service):
    notifier.send_order_confirmation(make_order())

    message = email_service.sent[0]
    assert message["to"] == "jane@example.com"
    assert message["subject"] == "Order Confirmation - CJ-261019-0123456789"
    assert message["sender_name"] == "Caramel & Jo"
    text = message["text"]
    assert "Dear Jane Doe" in text
    assert "Flan × 1 = $30.00" in text
    assert "Cinnamon Rolls × 2 = $30.00" in text
    assert "Total: $60.00" in text
    assert "Deposit (50%): $30.00" in text
    assert "Tuesday, October 20, 2026 at 7:00pm" in text
    assert "Ring twice" in text
    assert "<hr>" in message["html"]


def test_order_date_is_shown_in_bakery_time(notifier, email_service):
    # 02:30 UTC on the 20th is still the evening of the 19th in New York
    notifier.send_order_confirmation(make_order(created_at=datetime(2026, 10, 20, 2, 30)))
    notifier.send_order_notification(make_order(created_at=datetime(2026, 10, 19, 14, 5)))

    assert "Order Date: Monday, October 19, 2026 at 10:30 PM" in email_service.to("jane@example.com")[0]["text"]
    assert "Order Date: Monday, October 19, 2026 at 10:05 AM" in email_service.to("staff@bakery.test")[0]["text"]


def test_staff_notification_links_to_admin(notifier, email_service):
    notifier.send_order_notification(make_order(deposit_paid=True))

    message = email_service.sent[0]
    assert message["to"] == "staff@bakery.test"
    assert message["reply_to"] == "jane@example.com"
    assert "Jane Doe" in message["subject"]
    assert "https://bakery.test/admin/orders/" + "a" * 32 + "/view" in message["text"]
    assert "Deposit of $30.00 received" in message["text"]


def test_one_failed_email_does_not_stop_the_other(notifier, email_service):
    email_service.fail_for.add("staff@bakery.test")

    report = notifier.notify_order(make_order())

    assert report.sent == ["customer_email"]
    assert set(report.failed) == {"staff_email"}
    assert report.ok is False
    assert len(email_service.to("jane@example.com")) == 1


def test_disabled_smtp_skips_without_raising(notifier, email_service):
    email_service.enabled = False

    report = notifier.notify_order(make_order())

    assert report.skipped == ["customer_email", "staff_email"]
    assert report.ok
    assert email_service.sent == []


def test_staff_whatsapp_alert(email_service):
    messages = FakeTwilioMessages()
    notifier = NotificationService(
        email_service=email_service,
        business_name="Caramel & Jo",
        staff_email="staff@bakery.test",
        app_url="https://bakery.test/",
        twilio_client=SimpleNamespace(messages=messages),
        twilio_from_number="+14155238886",
        admin_phone_number="+15550001111",
    )

    report = notifier.notify_order(make_order())

    assert sorted(report.sent) == ["customer_email", "staff_email", "staff_whatsapp"]
    alert = messages.sent[0]
    assert alert["from_"] == "whatsapp:+14155238886"
    assert alert["to"] == "whatsapp:+15550001111"
    assert "CJ-261019-0123456789" in alert["body"]
    assert "2x Cinnamon Rolls" in alert["body"]


def test_contact_emails(notifier, email_service):
    contact = Contact(
        id="c" * 32, name="Sam Lee", email="sam@example.com", phone=None,
        subject="Wedding cake", message="Do you deliver on Sundays?",
    )

    report = notifier.notify_contact(contact)

    assert report.ok
    staff = email_service.to("staff@bakery.test")[0]
    assert staff["subject"] == "Contact Form: Wedding cake"
    assert "Phone:" not in staff["text"]
    ack = email_service.to("sam@example.com")[0]
    assert "Dear Sam Lee" in ack["text"]


class FakeSMTP:
    instances = []

    def __init__(self, host, port, timeout=None, context=None):
        self.host, self.port = host, port
        self.logged_in = None
        self.messages = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def login(self, user, password):
        self.logged_in = (user, password)

    def starttls(self, context=None):
        pass

    def send_message(self, msg):
        self.messages.append(msg)


@pytest.fixture
def fake_smtp(monkeypatch):
    FakeSMTP.instances = []
    monkeypatch.setattr(email_module.smtplib, "SMTP_SSL", FakeSMTP)
    monkeypatch.setattr(email_module.smtplib, "SMTP", FakeSMTP)
    return FakeSMTP


def test_smtp_send_builds_multipart_message(fake_smtp):
    service = SmtpEmailService("smtp.test", 465, None, "app-password", "orders@bakery.test")

    message_id = service.send(
        "jane@example.com", "Hello", "plain body", html="<p>html body</p>",
        sender_name="Caramel & Jo", reply_to="staff@bakery.test",
    )

    smtp = fake_smtp.instances[0]
    assert smtp.logged_in == ("orders@bakery.test", "app-password")
    msg = smtp.messages[0]
    assert msg["To"] == "jane@example.com"
    assert msg["Reply-To"] == "staff@bakery.test"
    assert "Caramel & Jo" in msg["From"]
    assert msg["Message-ID"] == message_id
    assert msg.get_body(("html",)).get_content().strip() == "<p>html body</p>"


def test_smtp_failure_raises_delivery_error(monkeypatch):
    def refuse(*args, **kwargs):
        raise smtplib.SMTPConnectError(421, "busy")

    monkeypatch.setattr(email_module.smtplib, "SMTP_SSL", refuse)
    service = SmtpEmailService("smtp.test", 465, None, "app-password", "orders@bakery.test")

    with pytest.raises(EmailDeliveryError):
        service.send("jane@example.com", "Hello", "plain body")


def test_smtp_disabled_without_password():
    assert SmtpEmailService("smtp.test", 465, "u", None, "orders@bakery.test").enabled is False
