import logging

from fastapi import APIRouter, Depends

from app.application.checkout_service import CheckoutResult, CheckoutService
from app.domain.schemas import CheckoutRequest, CheckoutResponse, PlaceOrderRequest, PlaceOrderResponse
from app.interfaces.dependencies import get_checkout_service

router = APIRouter(tags=["checkout"])
logger = logging.getLogger(__name__)


def _checkout_response(result: CheckoutResult) -> CheckoutResponse:
    order = result.order
    return CheckoutResponse(
        order_id=order.id,
        order_number=order.order_number,
        client_secret=result.client_secret,
        deposit_amount=order.deposit_amount,
        remaining_amount=order.remaining_amount,
        total_amount=order.total_amount,
    )


@router.post("/checkout", status_code=201, response_model=CheckoutResponse)
def checkout(payload: CheckoutRequest, service: CheckoutService = Depends(get_checkout_service)):
    """Save a PENDING order and open a deposit-only payment intent for it."""
    logger.info("📥 Checkout API called (%s, %d item(s))", payload.customer_email, len(payload.items))
    return _checkout_response(service.start_checkout(payload))


@router.post("/checkout/{order_id}/retry", response_model=CheckoutResponse)
def retry_checkout_payment(order_id: str, service: CheckoutService = Depends(get_checkout_service)):
    logger.info("📥 Payment retry requested for order %s", order_id)
    return _checkout_response(service.retry_payment(order_id))


@router.post("/orders/place", status_code=201, response_model=PlaceOrderResponse)
def place_order(payload: PlaceOrderRequest, service: CheckoutService = Depends(get_checkout_service)):
    """Order without online payment: delivery details up front, notifications sent right away."""
    logger.info(
        "📥 Place order API called (%s, delivery %s, %d item(s))",
        payload.customer_email, payload.delivery_date, len(payload.items),
    )
    order = service.place_order(payload)
    return PlaceOrderResponse(order_id=order.id, order_number=order.order_number)
