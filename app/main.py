import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.application.admin_service import AdminOrderService
from app.application.checkout_service import CheckoutService
from app.application.contact_service import ContactService
from app.application.payment_webhook_service import PaymentWebhookService
from app.domain.delivery import SameDayCutoffGuard
from app.domain.exceptions import BakeryError
from app.infrastructure.database import init_db
from app.infrastructure.notification_service import NotificationService
from app.infrastructure.payment_gateway import StripePaymentGateway
from app.infrastructure.repositories.contact_repository import SqlAlchemyContactRepository
from app.infrastructure.repositories.order_repository import SqlAlchemyOrderRepository
from app.interfaces import admin_api, checkout_api, contact_api, stripe_webhook
from app.interfaces.IOrderRepository import IOrderRepository
from app.interfaces.IPaymentGateway import IPaymentGateway

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


def _validation_details(exc: RequestValidationError) -> list:
    details = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part != "body"]
        details.append({"field": ".".join(loc), "message": error.get("msg", "Invalid value")})
    return details


def register_error_handlers(app: FastAPI) -> None:

    @app.exception_handler(BakeryError)
    async def bakery_error_handler(request: Request, exc: BakeryError):
        if exc.status_code >= 500:
            logger.error("❌ %s %s -> %s: %s", request.method, request.url.path, exc.code, exc)
        else:
            logger.warning("⚠️ %s %s -> %s: %s", request.method, request.url.path, exc.code, exc)

        body = {"success": False, "error": exc.code, "message": exc.message, **exc.extra}
        if settings.is_development and exc.detail:
            body["detail"] = exc.detail
        return JSONResponse(status_code=exc.status_code, content=body)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        details = _validation_details(exc)
        logger.warning("⚠️ Validation failed on %s: %s", request.url.path, details)
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "error": "validation_failed",
                "message": ", ".join(f"{d['field']}: {d['message']}" for d in details),
                "details": details,
            },
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("💥 Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": BakeryError.code, "message": BakeryError.public_message},
        )


# ---------------------------------------------------------
# COMPOSITION ROOT
# ---------------------------------------------------------
def create_app(
    order_repo: IOrderRepository | None = None,
    payment_gateway: IPaymentGateway | None = None,
    notifier: NotificationService | None = None,
    contact_repo: SqlAlchemyContactRepository | None = None,
    cutoff_guard: SameDayCutoffGuard | None = None,
) -> FastAPI:
    app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)

    order_repo = order_repo or SqlAlchemyOrderRepository()
    payment_gateway = payment_gateway or StripePaymentGateway(
        api_key=settings.STRIPE_SECRET_KEY,
        webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
        currency=settings.PAYMENT_CURRENCY,
        timeout_seconds=settings.PAYMENT_TIMEOUT_SECONDS,
    )
    notifier = notifier or NotificationService.from_settings(settings)
    cutoff_guard = cutoff_guard or SameDayCutoffGuard(settings.BAKERY_TIMEZONE, settings.SAME_DAY_CUTOFF_HOUR)

    app.state.checkout_service = CheckoutService(order_repo, payment_gateway, notifier, cutoff_guard)
    app.state.webhook_service = PaymentWebhookService(order_repo, payment_gateway, notifier)
    app.state.admin_service = AdminOrderService(order_repo)
    app.state.contact_service = ContactService(contact_repo or SqlAlchemyContactRepository(), notifier)

    if not payment_gateway.is_configured:
        logger.warning("⚠️ STRIPE_SECRET_KEY missing - online checkout disabled, /orders/place still works.")

    register_error_handlers(app)

    # Include Routers
    app.include_router(checkout_api.router)
    app.include_router(stripe_webhook.router)
    app.include_router(admin_api.router)
    app.include_router(admin_api.staff)
    app.include_router(contact_api.router)

    @app.get("/")
    def health_check():
        return {"status": "active", "system": f"{settings.BUSINESS_NAME} Storefront"}

    return app


app = create_app()
