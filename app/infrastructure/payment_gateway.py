import json
import logging

import stripe

from app.domain.exceptions import ConfigurationError, PaymentGatewayError, WebhookSignatureError
from app.domain.models import Order
from app.domain.payments import PaymentEvent, PaymentEventType, PaymentIntent
from app.domain.pricing import to_minor_units
from app.interfaces.IPaymentGateway import IPaymentGateway

logger = logging.getLogger(__name__)


class StripePaymentGateway(IPaymentGateway):
    """
    Deposit-only payment intents and webhook verification on top of the Stripe SDK.

    The client is built on first use, so the app still boots (and the
    no-payment flow keeps working) when STRIPE_SECRET_KEY is absent.
    """

    def __init__(
        self,
        api_key: str | None,
        webhook_secret: str | None,
        currency: str = "usd",
        timeout_seconds: float = 10.0,
        client=None,
    ):
        self._api_key = api_key
        self._webhook_secret = webhook_secret
        self._currency = currency
        self._timeout_seconds = timeout_seconds
        self._client = client

    @property
    def is_configured(self) -> bool:
        return self._client is not None or bool(self._api_key)

    def _get_client(self):
        if self._client is None:
            if not self._api_key:
                raise ConfigurationError("STRIPE_SECRET_KEY is not configured")
            self._client = stripe.StripeClient(
                self._api_key,
                http_client=stripe.RequestsClient(timeout=self._timeout_seconds),
                # the customer retries checkout, not the SDK
                max_network_retries=0,
            )
        return self._client

    def create_deposit_intent(self, order: Order) -> PaymentIntent:
        params = {
            "amount": to_minor_units(order.deposit_amount),
            "currency": self._currency,
            "metadata": {
                "order_id": order.id,
                "order_number": order.order_number,
                "customer_name": order.customer_name,
                "customer_email": order.customer_email,
                "total_amount": str(order.total_amount),
                "deposit_amount": str(order.deposit_amount),
                "remaining_amount": str(order.remaining_amount),
            },
            "description": f"Order {order.order_number} - 50% Deposit",
            "receipt_email": order.customer_email,
        }
        client = self._get_client()
        try:
            intent = client.payment_intents.create(params=params)
        except stripe.StripeError as e:
            logger.error("❌ Stripe refused intent for order %s: %s", order.order_number, e)
            raise PaymentGatewayError(f"create intent for {order.order_number}: {e}") from e

        if not intent.client_secret:
            raise PaymentGatewayError(f"intent {intent.id} for {order.order_number} came back without a client secret")

        logger.info("✅ Payment intent %s created for order %s", intent.id, order.order_number)
        return PaymentIntent(id=intent.id, client_secret=intent.client_secret)

    def parse_webhook(self, payload: bytes, signature: str) -> PaymentEvent:
        if not signature:
            raise WebhookSignatureError("missing Stripe-Signature header", message="Missing signature")
        if not self._webhook_secret:
            raise ConfigurationError("STRIPE_WEBHOOK_SECRET is not configured")

        try:
            stripe.Webhook.construct_event(payload, signature, self._webhook_secret)
        except stripe.SignatureVerificationError as e:
            raise WebhookSignatureError(f"signature verification failed: {e}") from e
        except ValueError as e:
            raise WebhookSignatureError(f"unreadable payload: {e}") from e

        # Signature checked: the body can now be read as trusted data
        body = json.loads(payload)
        raw_type = body.get("type", "")
        obj = (body.get("data") or {}).get("object") or {}
        metadata = obj.get("metadata") or {}

        return PaymentEvent(
            event_id=body.get("id", ""),
            raw_type=raw_type,
            kind=PaymentEventType.from_raw(raw_type),
            intent_id=obj.get("id"),
            # intents opened by the previous storefront carry the camelCase key
            order_id=metadata.get("order_id") or metadata.get("orderId") or None,
            amount=obj.get("amount"),
            metadata=dict(metadata),
        )
