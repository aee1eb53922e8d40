"""
Custom exception classes for the checkout client.
"""
from typing import Optional


class CheckoutError(Exception):
    """Base class for errors raised while driving a checkout."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class TokenizationError(CheckoutError):
    """Raised when the payment provider rejects card or source details."""

    def __init__(self, message: str, code: Optional[str] = None, param: Optional[str] = None):
        super().__init__(message)
        self.code = code
        self.param = param


class StoreRequestError(CheckoutError):
    """Raised when the store API answers with an error envelope."""

    def __init__(self, message: str, status_code: int, code: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class PollTimeout(CheckoutError):
    """Order status did not settle before the polling deadline. Logged, never raised to the page."""

    def __init__(self, order_id: str, timeout: float):
        super().__init__(f"Polling timed out for order {order_id} after {timeout:g}s")
        self.order_id = order_id
        self.timeout = timeout


class RedirectRequired(CheckoutError):
    """Checkout cannot be shown; the page must navigate to `location`."""

    def __init__(self, location: str, reason: str = ""):
        super().__init__(reason or f"Redirect to {location}")
        self.location = location
