import secrets
from datetime import datetime, timezone

ORDER_NUMBER_PREFIX = "CJ"


def generate_order_number(now: datetime | None = None) -> str:
    """
    Human-readable order number, e.g. CJ-261019-8F2A4C91D0.

    The date part helps staff read it over the phone; the 40 random bits make
    collisions practically impossible. The unique column is the final guard.
    """
    now = now or datetime.now(timezone.utc)
    return f"{ORDER_NUMBER_PREFIX}-{now:%y%m%d}-{secrets.token_hex(5).upper()}"
