"""
Domain enums for orders, sources and payment method flows.
"""

from enum import Enum


class OrderStatus(str, Enum):
    CREATED = "created"
    PENDING = "pending"
    FAILED = "failed"
    PAID = "paid"
    CAPTURED = "captured"


class SourceStatus(str, Enum):
    CHARGEABLE = "chargeable"
    FAILED = "failed"
    CANCELED = "canceled"
    PENDING = "pending"


class PaymentFlow(str, Enum):
    NONE = "none"
    REDIRECT = "redirect"
    RECEIVER = "receiver"
