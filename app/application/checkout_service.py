import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Tuple

from app.domain.delivery import SameDayCutoffGuard
from app.domain.exceptions import (
    ConfigurationError,
    OrderNotFoundError,
    OrderStateError,
    PaymentGatewayError,
    PaymentSetupError,
    ValidationFailedError,
)
from app.domain.models import Order
from app.domain.pricing import MAX_ORDER_TOTAL, DepositSplit, PricedLine, calculate_deposit, price_lines
from app.domain.schemas import CheckoutRequest, PlaceOrderRequest
from app.infrastructure.notification_service import NotificationService
from app.interfaces.IOrderRepository import IOrderRepository, OrderDraft
from app.interfaces.IPaymentGateway import IPaymentGateway

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckoutResult:
    order: Order
    client_secret: str


class CheckoutService:
    """
    Creates orders. Two entry points:

    - start_checkout: PENDING order + deposit-only payment intent; the webhook
      confirms it later.
    - place_order: PENDING order with delivery details and no online payment;
      notifications go out immediately.
    """

    def __init__(
        self,
        order_repo: IOrderRepository,
        payment_gateway: IPaymentGateway,
        notifier: NotificationService,
        cutoff_guard: SameDayCutoffGuard,
    ):
        self.order_repo = order_repo
        self.payment_gateway = payment_gateway
        self.notifier = notifier
        self.cutoff_guard = cutoff_guard

    def start_checkout(self, request: CheckoutRequest) -> CheckoutResult:
        # Refuse before saving anything if we could never take the payment
        if not self.payment_gateway.is_configured:
            raise ConfigurationError(
                "payment processor is not configured",
                message="Payment service is not configured. Please contact support.",
            )

        lines, split = self._price(request.items)

        order = self.order_repo.create_order(
            OrderDraft(
                customer_name=request.customer_name,
                customer_email=str(request.customer_email),
                customer_phone=request.customer_phone or None,
                notes=request.notes or None,
                lines=lines,
                split=split,
            )
        )
        logger.info(
            "📦 Checkout order %s: total=%s deposit=%s remaining=%s",
            order.order_number, split.total, split.deposit, split.remaining,
        )
        return self._issue_intent(order)

    def retry_payment(self, order_id: str) -> CheckoutResult:
        """New deposit intent for an order whose first intent could not be created."""
        order = self.order_repo.get_order(order_id)
        if order is None:
            raise OrderNotFoundError(f"retry for unknown order {order_id}")
        if not order.awaiting_payment_setup:
            raise OrderStateError(
                f"order {order.order_number} is {order.status.value}, intent={order.payment_intent_id}, "
                f"deposit_paid={order.deposit_paid}",
                message="This order already has a payment in progress or has been paid.",
            )
        if not self.payment_gateway.is_configured:
            raise ConfigurationError("payment processor is not configured")
        return self._issue_intent(order)

    @staticmethod
    def _price(items) -> Tuple[List[PricedLine], DepositSplit]:
        lines = price_lines(items)
        total = sum((line.total_price for line in lines), Decimal("0"))
        if total > MAX_ORDER_TOTAL:
            raise ValidationFailedError(
                f"order total {total} exceeds {MAX_ORDER_TOTAL}",
                message="Order total is too large.",
                extra={"details": [{"field": "items", "message": f"Order total cannot exceed {MAX_ORDER_TOTAL}"}]},
            )
        return lines, calculate_deposit(total)

    def _issue_intent(self, order: Order) -> CheckoutResult:
        try:
            intent = self.payment_gateway.create_deposit_intent(order)
        except (PaymentGatewayError, ConfigurationError) as e:
            # The order row stays, flagged, so staff can see it and the customer can retry
            logger.error("❌ Payment setup failed for order %s: %s", order.order_number, e)
            self.order_repo.record_payment_setup_failure(order.id, str(e))
            raise PaymentSetupError(
                str(e),
                extra={"orderId": order.id, "orderNumber": order.order_number},
            ) from e

        self.order_repo.attach_payment_intent(order.id, intent.id)
        order.payment_intent_id = intent.id
        order.payment_setup_error = None
        logger.info("✅ Checkout ready for order %s (intent %s)", order.order_number, intent.id)
        return CheckoutResult(order=order, client_secret=intent.client_secret)

    def place_order(self, request: PlaceOrderRequest) -> Order:
        self.cutoff_guard.check(request.delivery_date)

        lines, split = self._price(request.items)

        order = self.order_repo.create_order(
            OrderDraft(
                customer_name=request.customer_name,
                customer_email=str(request.customer_email),
                customer_phone=request.customer_phone,
                delivery_location=request.delivery_address,
                delivery_date=request.delivery_date,
                delivery_time=request.delivery_time,
                notes=request.special_instructions or None,
                lines=lines,
                split=split,
            )
        )
        logger.info("✅ Order %s placed for delivery on %s %s", order.order_number, order.delivery_date, order.delivery_time)

        self.notifier.notify_order(order)
        return order
