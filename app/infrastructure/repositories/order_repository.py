import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, List, Optional

from sqlalchemy import desc, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.domain.exceptions import OrderNotFoundError, PersistenceError
from app.domain.models import Order, OrderItem, OrderStatus
from app.domain.order_number import generate_order_number
from app.infrastructure.database import get_session_factory
from app.interfaces.IOrderRepository import IOrderRepository, OrderDraft

logger = logging.getLogger(__name__)

ORDER_NUMBER_ATTEMPTS = 3


class SqlAlchemyOrderRepository(IOrderRepository):
    """
    Order persistence. Every lifecycle transition is a single conditional
    UPDATE, so concurrent or repeated calls converge on the same row state
    without explicit locks.
    """

    def __init__(self, session_factory: sessionmaker | None = None):
        self._session_factory = session_factory or get_session_factory()

    @contextmanager
    def _session(self, action: str) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
        except SQLAlchemyError as e:
            session.rollback()
            logger.error("❌ DB Error while trying to %s: %s", action, e)
            raise PersistenceError(f"{action}: {e}") from e
        finally:
            session.close()

    # ---------------------------------------------------------
    # CREATE
    # ---------------------------------------------------------
    def create_order(self, draft: OrderDraft) -> Order:
        for attempt in range(1, ORDER_NUMBER_ATTEMPTS + 1):
            order = self._build_order(draft)
            session = self._session_factory()
            try:
                # order row and items go in together or not at all
                session.add(order)
                session.commit()
                logger.info("✅ Order %s saved with %d item(s)", order.order_number, len(order.items))
                return order
            except IntegrityError as e:
                session.rollback()
                if "order_number" in str(e.orig) and attempt < ORDER_NUMBER_ATTEMPTS:
                    logger.warning("⚠️ Order number %s already taken, retrying", order.order_number)
                    continue
                logger.error("❌ DB Error creating order: %s", e)
                raise PersistenceError(f"create order: {e}") from e
            except SQLAlchemyError as e:
                session.rollback()
                logger.error("❌ DB Error creating order: %s", e)
                raise PersistenceError(f"create order: {e}") from e
            finally:
                session.close()
        raise PersistenceError("create order: no free order number")  # pragma: no cover

    @staticmethod
    def _build_order(draft: OrderDraft) -> Order:
        return Order(
            order_number=generate_order_number(),
            customer_name=draft.customer_name,
            customer_email=draft.customer_email,
            customer_phone=draft.customer_phone,
            total_amount=draft.split.total,
            deposit_amount=draft.split.deposit,
            remaining_amount=draft.split.remaining,
            deposit_paid=False,
            delivery_confirmed=False,
            delivery_location=draft.delivery_location,
            delivery_date=draft.delivery_date,
            delivery_time=draft.delivery_time,
            status=OrderStatus.PENDING,
            notes=draft.notes,
            items=[
                OrderItem(
                    product_name=line.product_name,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    total_price=line.total_price,
                )
                for line in draft.lines
            ],
        )

    # ---------------------------------------------------------
    # READ
    # ---------------------------------------------------------
    def get_order(self, order_id: str) -> Optional[Order]:
        with self._session("load order") as session:
            return session.get(Order, order_id)

    def list_orders(self, limit: int = 100) -> List[Order]:
        """Latest orders first."""
        with self._session("list orders") as session:
            stmt = select(Order).order_by(desc(Order.created_at)).limit(limit)
            return list(session.scalars(stmt).all())

    # ---------------------------------------------------------
    # PAYMENT TRANSITIONS
    # ---------------------------------------------------------
    def attach_payment_intent(self, order_id: str, payment_intent_id: str) -> None:
        with self._session("attach payment intent") as session:
            result = session.execute(
                update(Order)
                .where(Order.id == order_id)
                .values(payment_intent_id=payment_intent_id, payment_setup_error=None)
            )
            session.commit()
            if result.rowcount == 0:
                raise OrderNotFoundError(f"order {order_id} vanished before intent {payment_intent_id} was attached")

    def record_payment_setup_failure(self, order_id: str, reason: str) -> None:
        with self._session("record payment setup failure") as session:
            session.execute(
                update(Order)
                .where(Order.id == order_id, Order.payment_intent_id.is_(None))
                .values(payment_setup_error=reason[:500])
            )
            session.commit()

    def mark_deposit_paid(self, order_id: str, paid_at: datetime) -> Optional[Order]:
        with self._session("mark deposit paid") as session:
            result = session.execute(
                update(Order)
                .where(Order.id == order_id, Order.deposit_paid.is_(False))
                .values(
                    deposit_paid=True,
                    deposit_paid_at=paid_at,
                    status=OrderStatus.CONFIRMED,
                    payment_setup_error=None,
                )
            )
            if result.rowcount == 0:
                session.rollback()
                self._ensure_exists(session, order_id)
                return None
            # Loaded before commit: if this read fails the update rolls back and a redelivery can still win
            order = session.get(Order, order_id, populate_existing=True)
            session.commit()
            return order

    def mark_payment_failed(self, order_id: str) -> bool:
        with self._session("mark payment failed") as session:
            result = session.execute(
                update(Order)
                .where(
                    Order.id == order_id,
                    Order.deposit_paid.is_(False),
                    Order.status == OrderStatus.PENDING,
                )
                .values(status=OrderStatus.CANCELLED)
            )
            session.commit()
            if result.rowcount == 1:
                return True
            self._ensure_exists(session, order_id)
            return False

    # ---------------------------------------------------------
    # DELIVERY
    # ---------------------------------------------------------
    def confirm_delivery(self, order_id: str, confirmed_at: datetime) -> Order:
        with self._session("confirm delivery") as session:
            result = session.execute(
                update(Order)
                .where(Order.id == order_id, Order.delivery_confirmed.is_(False))
                .values(delivery_confirmed=True, delivery_confirmed_at=confirmed_at)
            )
            session.commit()
            order = session.get(Order, order_id, populate_existing=True)
            if order is None:
                raise OrderNotFoundError(f"order {order_id} does not exist")
            if result.rowcount == 0:
                logger.info("Delivery for order %s was already confirmed, keeping original timestamp", order.order_number)
            return order

    @staticmethod
    def _ensure_exists(session: Session, order_id: str) -> None:
        if session.get(Order, order_id) is None:
            raise OrderNotFoundError(f"order {order_id} does not exist")
