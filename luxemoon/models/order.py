# luxemoon/models/order.py
from decimal import Decimal
from enum import Enum
from typing import Dict, FrozenSet, List, Optional
from .base import ApiModel, Money, TimeStampedModel

class OrderStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"

VALID_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

# Statuses whose arrival is announced to the customer
CUSTOMER_NOTIFY_STATUSES = frozenset({OrderStatus.CONFIRMED, OrderStatus.SHIPPED})

def can_transition(current: OrderStatus, new: OrderStatus) -> bool:
    """Re-applying the current status is always allowed"""
    return current == new or new in VALID_TRANSITIONS[current]

class NotificationChannel(str, Enum):
    SMS = "SMS"
    EMAIL = "EMAIL"
    TELEGRAM = "TELEGRAM"

class CustomerInfo(ApiModel):
    """Delivery details captured at checkout"""
    customer_name: str
    phone: str
    province: str
    district: str
    address: str
    email: Optional[str] = None
    landmark: Optional[str] = None
    notes: Optional[str] = None

class CartItem(ApiModel):
    product_id: int
    quantity: int

class OrderItem(ApiModel):
    """Individual item in an order; price is the unit price at purchase time"""
    product_id: int
    quantity: int
    price: Money
    name: Optional[str] = None

    @property
    def total_price(self) -> Decimal:
        return self.price * self.quantity

class Order(TimeStampedModel):
    """Customer purchase"""
    order_id: int
    idempotency_key: str
    customer_name: str
    phone: str
    email: Optional[str] = None
    province: str
    district: str
    address: str
    landmark: Optional[str] = None
    notes: Optional[str] = None
    is_inside_valley: bool
    items: List[OrderItem] = []
    subtotal: Money
    coupon_code: Optional[str] = None
    coupon_discount: Money = Decimal(0)
    delivery_charge: Money
    total: Money
    status: OrderStatus
    ip_address: str = "unknown"
    payment_received: bool = False
    admin_notes: Optional[str] = None
    tracking_number: Optional[str] = None
    courier_name: Optional[str] = None
    rejection_reason: Optional[str] = None
