"""Exceptions raised by the order engine.

Each exception carries the HTTP status the API answers with, so the web layer
maps them in one place.
"""

from typing import Optional


class LuxeMoonError(Exception):
    """Base exception for all order engine errors."""

    status_code = 500


class ValidationFailed(LuxeMoonError):
    """Raised when a request passes the schema but is still malformed."""

    status_code = 400


class BusinessRuleError(LuxeMoonError):
    """Expected condition the customer can fix; nothing was written."""

    status_code = 400


class ProductNotFound(BusinessRuleError):
    def __init__(self, product_id: int):
        self.product_id = product_id
        super().__init__(f"Product not found: {product_id}")


class InsufficientStock(BusinessRuleError):
    def __init__(self, product_name: str, product_id: Optional[int] = None):
        self.product_name = product_name
        self.product_id = product_id
        super().__init__(f"Insufficient stock for: {product_name}")


class CustomerBlocked(BusinessRuleError):
    status_code = 403

    def __init__(self, phone: str):
        self.phone = phone
        super().__init__("Order cannot be processed.")


class TooManyRequests(BusinessRuleError):
    status_code = 429

    def __init__(self, ip_address: str):
        self.ip_address = ip_address
        super().__init__("Too many requests.")


class InvalidCoupon(BusinessRuleError):
    """Raised when a coupon code cannot be applied to the cart."""

    def __init__(self, message: str, status_code: int = 400):
        self.status_code = status_code
        super().__init__(message)


class OrderNotFound(LuxeMoonError):
    status_code = 404

    def __init__(self, order_id: int):
        self.order_id = order_id
        super().__init__("Order not found")


class ConcurrentModification(LuxeMoonError):
    """Raised when the order changed since the caller last read it."""

    status_code = 409

    def __init__(self, order_id: int):
        self.order_id = order_id
        super().__init__(
            "Order was modified by someone else. Please refresh and try again."
        )


class InvalidStatusTransition(LuxeMoonError):
    status_code = 400

    def __init__(self, current: str, new: str):
        self.current = current
        self.new = new
        super().__init__(f"Cannot change order status from {current} to {new}")
