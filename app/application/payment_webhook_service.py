import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from app.domain.exceptions import MissingOrderReferenceError
from app.domain.payments import PaymentEvent, PaymentEventType
from app.domain.pricing import to_minor_units
from app.infrastructure.notification_service import NotificationService
from app.interfaces.IOrderRepository import IOrderRepository
from app.interfaces.IPaymentGateway import IPaymentGateway

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WebhookOutcome:
    event_type: str
    order_id: str | None = None
    transitioned: bool = False
    duplicate: bool = False

    def to_response(self) -> dict:
        body = {"received": True, "eventType": self.event_type}
        if self.order_id:
            body.update(success=True, orderId=self.order_id)
        if self.duplicate:
            body["message"] = "Order already processed"
        return body


class PaymentWebhookService:
    """
    Applies processor notifications to orders.

    The processor delivers at least once. Each transition is a conditional
    update that only the first delivery wins, so a redelivered "succeeded"
    event leaves deposit_paid_at untouched and sends no second email.
    Database errors propagate so the processor retries.
    """

    def __init__(
        self,
        order_repo: IOrderRepository,
        payment_gateway: IPaymentGateway,
        notifier: NotificationService,
        clock: Callable[[], datetime] | None = None,
    ):
        self.order_repo = order_repo
        self.payment_gateway = payment_gateway
        self.notifier = notifier
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def handle(self, payload: bytes, signature: str) -> WebhookOutcome:
        # Raises before anything is read from the payload if the signature is wrong
        event = self.payment_gateway.parse_webhook(payload, signature)
        logger.info("📥 Received %s webhook (%s)", event.raw_type, event.event_id)

        if event.kind is PaymentEventType.UNHANDLED:
            return WebhookOutcome(event_type=event.raw_type)

        if not event.order_id:
            logger.error(
                "❌ Order ID missing from payment intent metadata (intent=%s, metadata=%s)",
                event.intent_id, event.metadata,
            )
            raise MissingOrderReferenceError(f"{event.raw_type} {event.event_id} has no order_id metadata")

        if event.kind is PaymentEventType.SUCCEEDED:
            return self._deposit_succeeded(event)
        return self._deposit_failed(event)

    def _deposit_succeeded(self, event: PaymentEvent) -> WebhookOutcome:
        # The repository hands back the order from the same transaction; no reload after commit
        order = self.order_repo.mark_deposit_paid(event.order_id, paid_at=self._clock())
        if order is None:
            logger.info("⚠️ Order %s already has deposit paid - skipping notifications", event.order_id)
            return WebhookOutcome(event.raw_type, order_id=event.order_id, duplicate=True)

        logger.info("✅ Order %s confirmed - deposit paid (intent %s)", order.order_number, event.intent_id)
        expected = to_minor_units(order.deposit_amount)
        if event.amount is not None and event.amount != expected:
            logger.warning(
                "⚠️ Order %s paid %s minor units, deposit is %s",
                order.order_number, event.amount, expected,
            )
        if order.payment_intent_id and event.intent_id and order.payment_intent_id != event.intent_id:
            logger.warning(
                "⚠️ Order %s confirmed by intent %s but stores %s",
                order.order_number, event.intent_id, order.payment_intent_id,
            )

        self.notifier.notify_order(order)
        return WebhookOutcome(event.raw_type, order_id=order.id, transitioned=True)

    def _deposit_failed(self, event: PaymentEvent) -> WebhookOutcome:
        transitioned = self.order_repo.mark_payment_failed(event.order_id)
        if transitioned:
            logger.info("Order %s cancelled - payment failed", event.order_id)
        else:
            logger.info("⚠️ Payment failure for order %s ignored: already paid or no longer pending", event.order_id)
        return WebhookOutcome(event.raw_type, order_id=event.order_id, transitioned=transitioned, duplicate=not transitioned)
