# luxemoon/models/coupon.py
from datetime import datetime
from enum import Enum
from typing import List, Optional
from .base import Money, TimeStampedModel

class CouponType(str, Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED = "FIXED"

class Coupon(TimeStampedModel):
    """Checkout coupon code"""
    coupon_id: int
    code: str
    discount_type: CouponType
    discount_value: Money  # percent or fixed amount
    min_order_amount: Optional[Money] = None
    max_discount_cap: Optional[Money] = None
    usage_limit: Optional[int] = None
    usage_count: int = 0
    starts_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    is_active: bool = True
    deleted_at: Optional[datetime] = None
    applies_to_all: bool = True
    product_ids: List[int] = []
