import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from app.infrastructure.database import Base


def _new_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    IN_PROGRESS = "IN_PROGRESS"
    READY = "READY"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class ContactStatus(str, enum.Enum):
    NEW = "NEW"
    READ = "READ"
    RESPONDED = "RESPONDED"


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="ck_orders_total_non_negative"),
        CheckConstraint("deposit_amount >= 0", name="ck_orders_deposit_non_negative"),
        CheckConstraint("remaining_amount >= 0", name="ck_orders_remaining_non_negative"),
        CheckConstraint(
            "deposit_amount + remaining_amount = total_amount",
            name="ck_orders_split_matches_total",
        ),
    )

    id = Column(String(32), primary_key=True, default=_new_id)
    order_number = Column(String(32), unique=True, nullable=False, index=True)

    customer_name = Column(String(200), nullable=False)
    customer_email = Column(String(320), nullable=False, index=True)
    customer_phone = Column(String(50), nullable=True)

    # Derived once at creation and stored, never recomputed
    total_amount = Column(Numeric(10, 2), nullable=False)
    deposit_amount = Column(Numeric(10, 2), nullable=False)
    remaining_amount = Column(Numeric(10, 2), nullable=False)

    deposit_paid = Column(Boolean, nullable=False, default=False)
    deposit_paid_at = Column(DateTime(timezone=True), nullable=True)
    payment_intent_id = Column(String(255), unique=True, nullable=True)
    # Set when the processor intent could not be created after the order was saved
    payment_setup_error = Column(Text, nullable=True)

    delivery_location = Column(Text, nullable=True)
    delivery_date = Column(Date, nullable=True)
    delivery_time = Column(String(50), nullable=True)
    delivery_confirmed = Column(Boolean, nullable=False, default=False)
    delivery_confirmed_at = Column(DateTime(timezone=True), nullable=True)

    status = Column(
        Enum(OrderStatus, native_enum=False, length=20),
        nullable=False,
        default=OrderStatus.PENDING,
        index=True,
    )
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    items = relationship(
        "OrderItem",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderItem.id",
    )

    @property
    def awaiting_payment_setup(self) -> bool:
        return (
            self.status == OrderStatus.PENDING
            and not self.deposit_paid
            and self.payment_intent_id is None
        )

    def __repr__(self) -> str:
        return f"<Order {self.order_number} {self.status.value if self.status else None}>"


class OrderItem(Base):
    __tablename__ = "order_items"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
        CheckConstraint("unit_price > 0", name="ck_order_items_unit_price_positive"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(String(32), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)

    # Snapshot of the catalog entry at order time, not a foreign key
    product_name = Column(String(200), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)

    order = relationship("Order", back_populates="items")


class Contact(Base):
    __tablename__ = "contacts"

    id = Column(String(32), primary_key=True, default=_new_id)
    name = Column(String(200), nullable=False)
    email = Column(String(320), nullable=False)
    phone = Column(String(50), nullable=True)
    subject = Column(String(300), nullable=False)
    message = Column(Text, nullable=False)
    status = Column(
        Enum(ContactStatus, native_enum=False, length=20),
        nullable=False,
        default=ContactStatus.NEW,
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
