"""
Admin session tokens.

A token is "<expiry-unix-seconds>.<hex hmac-sha256 of the expiry>", signed with
ADMIN_SECRET (or ADMIN_PASSWORD when no separate secret is set). It travels as a
Bearer header or in the admin_session cookie.
"""
import hashlib
import hmac
import time

from fastapi import Request

from app.core.config import settings
from app.domain.exceptions import AuthenticationError, ConfigurationError

ADMIN_COOKIE_NAME = "admin_session"


def _get_secret() -> str:
    secret = settings.ADMIN_SECRET or settings.ADMIN_PASSWORD
    if not secret:
        raise ConfigurationError("ADMIN_PASSWORD or ADMIN_SECRET must be set for admin access")
    return secret


def _sign(payload: str) -> str:
    return hmac.new(_get_secret().encode(), payload.encode(), hashlib.sha256).hexdigest()


def session_max_age() -> int:
    return settings.ADMIN_SESSION_HOURS * 3600


def create_admin_token(now: float | None = None) -> str:
    expires_at = int((now if now is not None else time.time()) + session_max_age())
    payload = str(expires_at)
    return f"{payload}.{_sign(payload)}"


def verify_admin_token(token: str, now: float | None = None) -> bool:
    payload, _, signature = token.rpartition(".")
    if not payload or not signature or not payload.isdigit():
        return False
    if int(payload) < (now if now is not None else time.time()):
        return False
    try:
        expected = _sign(payload)
    except ConfigurationError:
        return False
    return hmac.compare_digest(expected, signature)


def check_admin_password(password: str) -> bool:
    expected = (settings.ADMIN_PASSWORD or "").strip()
    if not expected:
        raise ConfigurationError("ADMIN_PASSWORD is not configured")
    return hmac.compare_digest(password.strip().encode(), expected.encode())


def _token_from_request(request: Request) -> str | None:
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        return auth[7:].strip() or None
    return request.cookies.get(ADMIN_COOKIE_NAME)


def is_admin_authenticated(request: Request) -> bool:
    token = _token_from_request(request)
    return bool(token) and verify_admin_token(token)


def require_admin(request: Request) -> None:
    """FastAPI dependency guarding every staff-only route."""
    if not is_admin_authenticated(request):
        raise AuthenticationError(f"rejected admin request to {request.url.path}")
