# luxemoon/models/product.py
from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from .base import Money, TimeStampedModel

class Product(TimeStampedModel):
    """Catalog product as seen by the order engine"""
    product_id: int
    name: str
    slug: Optional[str] = None
    price_inside: Money
    price_outside: Money
    stock: int = 0
    is_active: bool = True

    # Product-level discount, active inside [discount_start, discount_end]
    discount_percent: Money = Decimal(0)
    discount_fixed: Optional[Money] = None
    discount_start: Optional[datetime] = None
    discount_end: Optional[datetime] = None

    # Bundles decrement the stock of their component products too
    is_bundle: bool = False
    bundle_item_ids: List[int] = []
