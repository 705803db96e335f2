class PaymentGatewayError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code = 500
    public_message = "Something went wrong"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.public_message)
        self.message = message or self.public_message


class OrderValidationError(PaymentGatewayError):
    status_code = 400
    public_message = "Missing required fields"


class UpstreamError(PaymentGatewayError):
    """Payment processor or order store failure.

    ``message`` is for the server log only; clients get ``public_message``.
    """

    status_code = 500
    public_message = "Payment service is temporarily unavailable"


class PaymentNotFound(PaymentGatewayError):
    status_code = 404
    public_message = "Payment not found"


class MalformedEvent(Exception):
    """A verified webhook whose payload does not carry the expected fields."""
