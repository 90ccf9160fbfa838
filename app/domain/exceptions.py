"""
Error taxonomy for the storefront.

Each error carries the HTTP status, a stable code and a message that is safe to
show to customers. The constructor argument is internal detail for the logs.
"""


class BakeryError(Exception):
    status_code = 500
    code = "internal_error"
    public_message = "Something went wrong on our side. Please try again later."

    def __init__(self, detail: str | None = None, *, message: str | None = None, extra: dict | None = None):
        super().__init__(detail or message or self.public_message)
        self.detail = detail
        self.message = message or self.public_message
        self.extra = extra or {}


# --- Client errors ---

class ValidationFailedError(BakeryError):
    status_code = 400
    code = "validation_failed"
    public_message = "Validation failed"


class SameDayCutoffError(BakeryError):
    status_code = 400
    code = "same_day_cutoff"
    public_message = (
        "Same-day delivery is no longer available for today. "
        "Please select tomorrow or a later date."
    )


class MissingOrderReferenceError(BakeryError):
    status_code = 400
    code = "missing_order_reference"
    public_message = "Order reference missing from payment event"


class OrderNotFoundError(BakeryError):
    status_code = 404
    code = "order_not_found"
    public_message = "Order not found"


class OrderStateError(BakeryError):
    status_code = 409
    code = "invalid_order_state"
    public_message = "This order cannot be changed in its current state"


# --- Authentication ---

class AuthenticationError(BakeryError):
    status_code = 401
    code = "unauthorized"
    public_message = "Unauthorized"


class WebhookSignatureError(BakeryError):
    status_code = 400
    code = "invalid_signature"
    public_message = "Invalid webhook signature"


# --- Upstream / infrastructure ---

class ConfigurationError(BakeryError):
    status_code = 500
    code = "not_configured"
    public_message = "This service is not configured. Please contact support."


class PaymentGatewayError(BakeryError):
    status_code = 502
    code = "payment_processor_error"
    public_message = "The payment processor could not be reached."


class PaymentSetupError(BakeryError):
    """The order row exists but the processor intent could not be created."""
    status_code = 500
    code = "payment_setup_failed"
    public_message = (
        "Your order was saved but the payment could not be started. "
        "Please retry or contact support."
    )


class PersistenceError(BakeryError):
    status_code = 500
    code = "persistence_error"
    public_message = "We could not save your request. Please try again later."


class EmailDeliveryError(BakeryError):
    code = "email_delivery_failed"
    public_message = "Email delivery failed"
