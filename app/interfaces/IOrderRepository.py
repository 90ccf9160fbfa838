from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime
from typing import List, Optional

from app.domain.models import Order
from app.domain.pricing import DepositSplit, PricedLine


@dataclass(frozen=True)
class OrderDraft:
    """Everything needed to insert an order and its items in one transaction."""
    customer_name: str
    customer_email: str
    lines: List[PricedLine]
    split: DepositSplit
    customer_phone: Optional[str] = None
    notes: Optional[str] = None
    delivery_location: Optional[str] = None
    delivery_date: Optional[date] = None
    delivery_time: Optional[str] = None


class IOrderRepository(ABC):
    @abstractmethod
    def create_order(self, draft: OrderDraft) -> Order:
        pass

    @abstractmethod
    def get_order(self, order_id: str) -> Optional[Order]:
        pass

    @abstractmethod
    def list_orders(self, limit: int = 100) -> List[Order]:
        pass

    @abstractmethod
    def attach_payment_intent(self, order_id: str, payment_intent_id: str) -> None:
        pass

    @abstractmethod
    def record_payment_setup_failure(self, order_id: str, reason: str) -> None:
        pass

    @abstractmethod
    def mark_deposit_paid(self, order_id: str, paid_at: datetime) -> Optional[Order]:
        """The confirmed order (items loaded) for the call that flipped deposit_paid, None for every later call."""
        pass

    @abstractmethod
    def mark_payment_failed(self, order_id: str) -> bool:
        pass

    @abstractmethod
    def confirm_delivery(self, order_id: str, confirmed_at: datetime) -> Order:
        pass
