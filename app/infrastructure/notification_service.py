import logging
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from functools import partial
from pathlib import Path
from typing import Callable, Dict

import pytz
from jinja2 import Environment, FileSystemLoader, StrictUndefined
from markupsafe import escape
from twilio.base.exceptions import TwilioException
from twilio.rest import Client

from app.domain.models import Contact, Order
from app.infrastructure.email_service import SmtpEmailService

logger = logging.getLogger(__name__)

EMAIL_TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates" / "emails"
RULE = re.compile(r"━{3,}")


def format_money(value) -> str:
    return f"${Decimal(value):,.2f}"


def format_long_date(value, tz=None) -> str:
    if isinstance(value, datetime):
        if tz is not None:
            # stored timestamps are UTC; SQLite hands them back naive
            if value.tzinfo is None:
                value = pytz.utc.localize(value)
            value = value.astimezone(tz)
        return value.strftime("%A, %B %d, %Y at %I:%M %p").replace(" 0", " ")
    if isinstance(value, date):
        return value.strftime("%A, %B %d, %Y").replace(" 0", " ")
    return ""


def text_to_html(text: str) -> str:
    html = str(escape(text)).replace("\n", "<br>")
    return RULE.sub("<hr>", html)


def _whatsapp(number: str) -> str:
    # Twilio requires the "whatsapp:" prefix
    return number if number.startswith("whatsapp:") else f"whatsapp:{number}"


@dataclass
class NotificationReport:
    sent: list = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)
    skipped: list = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


class NotificationService:
    """
    Best-effort customer and staff notifications.

    Nothing in here raises: the order row is the source of truth and a lost
    email must never undo or block a state transition.
    """

    def __init__(
        self,
        email_service: SmtpEmailService,
        business_name: str,
        staff_email: str,
        app_url: str,
        twilio_client: Client | None = None,
        twilio_from_number: str | None = None,
        admin_phone_number: str | None = None,
        timezone_name: str = "America/New_York",
    ):
        self.email = email_service
        self.timezone = pytz.timezone(timezone_name)
        self.business_name = business_name
        self.staff_email = staff_email
        self.app_url = app_url.rstrip("/")
        self.twilio_client = twilio_client
        self.twilio_from_number = twilio_from_number
        self.admin_phone_number = admin_phone_number

        self.templates = Environment(
            loader=FileSystemLoader(str(EMAIL_TEMPLATES_DIR)),
            autoescape=False,
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.templates.filters["money"] = format_money
        self.templates.filters["long_date"] = partial(format_long_date, tz=self.timezone)

    @classmethod
    def from_settings(cls, settings, email_service: SmtpEmailService | None = None) -> "NotificationService":
        email_service = email_service or SmtpEmailService(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            username=settings.SMTP_USER,
            password=settings.SMTP_PASSWORD,
            default_from=settings.EMAIL_FROM,
            timeout_seconds=settings.SMTP_TIMEOUT_SECONDS,
        )

        twilio_client = None
        # Only initialize if credentials exist in .env
        if settings.TWILIO_ACCOUNT_SID and settings.TWILIO_AUTH_TOKEN:
            try:
                twilio_client = Client(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN)
                logger.info("✅ NotificationService: Twilio Client Initialized")
            except TwilioException as e:
                logger.error("❌ Failed to initialize Twilio Client: %s", e)

        return cls(
            email_service=email_service,
            business_name=settings.BUSINESS_NAME,
            staff_email=settings.EMAIL_TO,
            app_url=settings.APP_URL,
            twilio_client=twilio_client,
            twilio_from_number=settings.TWILIO_FROM_NUMBER,
            admin_phone_number=settings.ADMIN_PHONE_NUMBER,
            timezone_name=settings.BAKERY_TIMEZONE,
        )

    @property
    def whatsapp_enabled(self) -> bool:
        return bool(self.twilio_client and self.twilio_from_number and self.admin_phone_number)

    # ---------------------------------------------------------
    # DISPATCH
    # ---------------------------------------------------------
    def notify_order(self, order: Order) -> NotificationReport:
        """Customer confirmation + staff notification (+ staff WhatsApp alert), sent side by side."""
        tasks: Dict[str, Callable[[], object]] = {}
        report = NotificationReport()

        if self.email.enabled:
            tasks["customer_email"] = partial(self.send_order_confirmation, order)
            tasks["staff_email"] = partial(self.send_order_notification, order)
        else:
            logger.warning("⚠️ SMTP not configured - confirmation emails not sent for order %s", order.order_number)
            report.skipped += ["customer_email", "staff_email"]

        if self.whatsapp_enabled:
            tasks["staff_whatsapp"] = partial(self.send_staff_whatsapp, order)

        return self._fan_out(f"order {order.order_number}", tasks, report)

    def notify_contact(self, contact: Contact) -> NotificationReport:
        report = NotificationReport()
        if not self.email.enabled:
            logger.warning("⚠️ SMTP not configured - contact message %s not forwarded", contact.id)
            report.skipped += ["staff_email", "customer_email"]
            return report
        tasks = {
            "staff_email": partial(self.send_contact_notification, contact),
            "customer_email": partial(self.send_contact_acknowledgement, contact),
        }
        return self._fan_out(f"contact {contact.id}", tasks, report)

    def _fan_out(self, ref: str, tasks: Dict[str, Callable[[], object]], report: NotificationReport) -> NotificationReport:
        if not tasks:
            return report

        with ThreadPoolExecutor(max_workers=len(tasks), thread_name_prefix="notify") as pool:
            futures = {name: pool.submit(task) for name, task in tasks.items()}
            for name, future in futures.items():
                try:
                    future.result()
                    report.sent.append(name)
                except Exception as e:  # one failed channel must not hide the others
                    logger.error("❌ %s failed for %s: %s", name, ref, e)
                    report.failed[name] = str(e)

        if report.ok:
            logger.info("✅ All notifications sent for %s", ref)
        else:
            logger.error("⚠️ Notifications for %s completed with errors: %s", ref, report.failed)
        return report

    # ---------------------------------------------------------
    # MESSAGES
    # ---------------------------------------------------------
    def send_order_confirmation(self, order: Order) -> str:
        text = self._render("order_confirmation.txt", order=order)
        return self.email.send(
            to=order.customer_email,
            subject=f"Order Confirmation - {order.order_number}",
            text=text,
            html=text_to_html(text),
            sender_name=self.business_name,
        )

    def send_order_notification(self, order: Order) -> str:
        text = self._render("order_notification.txt", order=order, admin_url=self.admin_url(order))
        return self.email.send(
            to=self.staff_email,
            subject=f"New Order: {order.order_number} - {order.customer_name}",
            text=text,
            html=text_to_html(text),
            sender_name="Order System",
            reply_to=order.customer_email,
        )

    def send_contact_notification(self, contact: Contact) -> str:
        text = self._render("contact_notification.txt", contact=contact)
        return self.email.send(
            to=self.staff_email,
            subject=f"Contact Form: {contact.subject}",
            text=text,
            html=text_to_html(text),
            sender_name="Contact Form",
            reply_to=contact.email,
        )

    def send_contact_acknowledgement(self, contact: Contact) -> str:
        text = self._render("contact_acknowledgement.txt", contact=contact)
        return self.email.send(
            to=contact.email,
            subject=f"Thank you for contacting {self.business_name}",
            text=text,
            html=text_to_html(text),
            sender_name=self.business_name,
        )

    def send_staff_whatsapp(self, order: Order) -> str:
        order_summary = "\n".join(f"- {item.quantity}x {item.product_name}" for item in order.items)
        paid = "deposit paid" if order.deposit_paid else "payment pending"
        message_body = (
            f"🔔 *NEW ORDER {order.order_number}*\n\n"
            f"👤 Customer: {order.customer_name} ({order.customer_phone or order.customer_email})\n"
            f"🛒 Items:\n{order_summary}\n\n"
            f"💵 Total {format_money(order.total_amount)} - {paid}\n"
            f"💡 {self.admin_url(order)}"
        )
        message = self.twilio_client.messages.create(
            from_=_whatsapp(self.twilio_from_number),
            body=message_body,
            to=_whatsapp(self.admin_phone_number),
        )
        logger.info("✅ Staff WhatsApp alert sent for order %s", order.order_number)
        return message.sid

    def admin_url(self, order: Order) -> str:
        return f"{self.app_url}/admin/orders/{order.id}/view"

    def _render(self, template_name: str, **context) -> str:
        return self.templates.get_template(template_name).render(business_name=self.business_name, **context)
