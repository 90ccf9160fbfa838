"""Service lookups for the routers. Instances are built once in app.main and kept on app.state."""
from fastapi import Request

from app.application.admin_service import AdminOrderService
from app.application.checkout_service import CheckoutService
from app.application.contact_service import ContactService
from app.application.payment_webhook_service import PaymentWebhookService


def get_checkout_service(request: Request) -> CheckoutService:
    return request.app.state.checkout_service


def get_webhook_service(request: Request) -> PaymentWebhookService:
    return request.app.state.webhook_service


def get_admin_service(request: Request) -> AdminOrderService:
    return request.app.state.admin_service


def get_contact_service(request: Request) -> ContactService:
    return request.app.state.contact_service
