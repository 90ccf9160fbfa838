import logging

from fastapi import APIRouter, Depends, Header, Request
from fastapi.concurrency import run_in_threadpool

from app.application.payment_webhook_service import PaymentWebhookService
from app.interfaces.dependencies import get_webhook_service

router = APIRouter(tags=["webhooks"])
logger = logging.getLogger(__name__)


@router.post("/webhooks/payment")
async def payment_webhook(
    request: Request,
    stripe_signature: str | None = Header(default=None, alias="Stripe-Signature"),
    service: PaymentWebhookService = Depends(get_webhook_service),
):
    """
    Stripe webhook endpoint.

    The raw body is needed untouched for signature verification. Errors are
    raised, not swallowed: a 5xx makes Stripe redeliver the event.
    """
    payload = await request.body()
    outcome = await run_in_threadpool(service.handle, payload, stripe_signature or "")
    return outcome.to_response()


@router.get("/webhooks/payment")
def payment_webhook_status():
    return {"message": "Payment webhook endpoint is active"}
