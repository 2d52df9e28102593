class PaymentError(Exception):
    """Base class for failures surfaced to API callers as ``{"detail": ...}``."""

    status_code = 500
    default_message = "Payment error"

    def __init__(self, message=None, payload=None):
        self.message = message or self.default_message
        self.payload = payload
        super().__init__(self.message)


class InvalidInput(PaymentError):
    status_code = 400
    default_message = "Invalid input"


class InvalidAmount(InvalidInput):
    default_message = "Invalid amount"


class UserNotFound(PaymentError):
    status_code = 404
    default_message = "User not found."


class UserBanned(PaymentError):
    status_code = 403
    default_message = "This account has been banned."


class NoGatewayAvailable(PaymentError):
    status_code = 503
    default_message = "No active payment gateway found."


class GatewayNotFound(PaymentError):
    status_code = 404
    default_message = "Gateway not found."


class OrderNotFound(PaymentError):
    status_code = 404
    default_message = "Order not found."


class WithdrawMethodNotFound(PaymentError):
    status_code = 404
    default_message = "Withdrawal method not found."


class GatewayError(PaymentError):
    """The provider could not be reached or answered with something unusable."""

    status_code = 502
    default_message = "Payment gateway error"

    def __init__(self, message=None, payload=None, provider_status=None):
        super().__init__(message, payload)
        self.provider_status = provider_status


class VerificationFailed(PaymentError):
    status_code = 402
    default_message = "Payment verification failed."


class InternalError(PaymentError):
    status_code = 500
    default_message = "Internal Server Error"
