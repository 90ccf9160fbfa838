import enum
from dataclasses import dataclass, field


class PaymentEventType(enum.Enum):
    SUCCEEDED = "payment_intent.succeeded"
    FAILED = "payment_intent.payment_failed"
    UNHANDLED = "unhandled"

    @classmethod
    def from_raw(cls, raw_type: str) -> "PaymentEventType":
        for member in (cls.SUCCEEDED, cls.FAILED):
            if member.value == raw_type:
                return member
        return cls.UNHANDLED


@dataclass(frozen=True)
class PaymentIntent:
    id: str
    client_secret: str


@dataclass(frozen=True)
class PaymentEvent:
    """A verified payment-processor notification."""
    event_id: str
    raw_type: str
    kind: PaymentEventType
    intent_id: str | None = None
    order_id: str | None = None
    amount: int | None = None
    metadata: dict = field(default_factory=dict)
