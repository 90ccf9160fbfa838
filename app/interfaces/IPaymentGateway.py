from abc import ABC, abstractmethod

from app.domain.models import Order
from app.domain.payments import PaymentEvent, PaymentIntent


class IPaymentGateway(ABC):
    @property
    @abstractmethod
    def is_configured(self) -> bool:
        pass

    @abstractmethod
    def create_deposit_intent(self, order: Order) -> PaymentIntent:
        pass

    @abstractmethod
    def parse_webhook(self, payload: bytes, signature: str) -> PaymentEvent:
        pass
