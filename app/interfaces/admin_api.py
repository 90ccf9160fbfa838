import logging
from pathlib import Path

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.templating import Jinja2Templates

from app.application.admin_service import AdminOrderService
from app.core.config import settings
from app.core.security import (
    ADMIN_COOKIE_NAME,
    check_admin_password,
    create_admin_token,
    require_admin,
    session_max_age,
)
from app.domain.exceptions import AuthenticationError
from app.domain.schemas import AdminLoginRequest, OrderEnvelope, OrderListEnvelope, OrderOut
from app.interfaces.dependencies import get_admin_service

logger = logging.getLogger(__name__)
templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent.parent / "templates"))

# Login/logout are open; everything on `staff` needs a valid admin token
router = APIRouter(prefix="/admin", tags=["admin"])
staff = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.post("/login")
def admin_login(payload: AdminLoginRequest):
    if not check_admin_password(payload.password):
        raise AuthenticationError("wrong admin password", message="Invalid password")

    token = create_admin_token()
    response = JSONResponse({"success": True, "token": token})
    response.set_cookie(
        ADMIN_COOKIE_NAME,
        token,
        max_age=session_max_age(),
        path="/",
        httponly=True,
        samesite="lax",
        secure=not settings.is_development,
    )
    logger.info("✅ Admin session started")
    return response


@router.post("/logout")
def admin_logout():
    response = JSONResponse({"success": True})
    response.delete_cookie(ADMIN_COOKIE_NAME, path="/")
    return response


@staff.get("", response_class=HTMLResponse)
def admin_dashboard(request: Request, service: AdminOrderService = Depends(get_admin_service)):
    orders = service.list_orders(limit=50)
    return templates.TemplateResponse(
        request, "dashboard.html", {"orders": orders, "business_name": settings.BUSINESS_NAME}
    )


@staff.get("/orders", response_model=OrderListEnvelope)
def list_orders(limit: int = 100, service: AdminOrderService = Depends(get_admin_service)):
    orders = service.list_orders(limit=max(1, min(limit, 500)))
    return OrderListEnvelope(orders=[OrderOut.model_validate(o) for o in orders])


@staff.get("/orders/{order_id}/view", response_class=HTMLResponse)
def admin_order_page(order_id: str, request: Request, service: AdminOrderService = Depends(get_admin_service)):
    """Order page linked from the staff email and the dashboard."""
    return templates.TemplateResponse(
        request, "order_detail.html", {"order": service.get_order(order_id), "business_name": settings.BUSINESS_NAME}
    )


@staff.get("/orders/{order_id}", response_model=OrderEnvelope)
def get_order(order_id: str, service: AdminOrderService = Depends(get_admin_service)):
    return OrderEnvelope(order=OrderOut.model_validate(service.get_order(order_id)))


@staff.patch("/orders/{order_id}/confirm", response_model=OrderEnvelope)
def confirm_delivery(order_id: str, service: AdminOrderService = Depends(get_admin_service)):
    """Lock in the requested delivery slot. Confirming twice keeps the first timestamp."""
    return OrderEnvelope(order=OrderOut.model_validate(service.confirm_delivery(order_id)))
