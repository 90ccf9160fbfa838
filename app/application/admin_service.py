import logging
from datetime import datetime, timezone
from typing import Callable, List

from app.domain.exceptions import OrderNotFoundError
from app.domain.models import Order
from app.interfaces.IOrderRepository import IOrderRepository

logger = logging.getLogger(__name__)


class AdminOrderService:
    """Staff-side reads and the delivery confirmation transition. Callers are already authenticated."""

    def __init__(self, order_repo: IOrderRepository, clock: Callable[[], datetime] | None = None):
        self.order_repo = order_repo
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def list_orders(self, limit: int = 100) -> List[Order]:
        return self.order_repo.list_orders(limit=limit)

    def get_order(self, order_id: str) -> Order:
        order = self.order_repo.get_order(order_id)
        if order is None:
            raise OrderNotFoundError(f"order {order_id} does not exist")
        return order

    def confirm_delivery(self, order_id: str) -> Order:
        # Idempotent: a second confirmation returns the order with its original timestamp
        order = self.order_repo.confirm_delivery(order_id, confirmed_at=self._clock())
        logger.info("✅ Delivery confirmed for order %s (%s)", order.order_number, order.delivery_confirmed_at)
        return order
