# luxemoon/services/coupon_service.py
import math
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, Optional
from ..errors import InvalidCoupon
from ..models.coupon import Coupon, CouponType
from .pricing_service import ZERO, HUNDRED

class CouponService:
    """Coupon lookup, validation and discount calculation"""

    def __init__(self, db):
        self.db = db

    async def validate_coupon(self, code: str, subtotal: Decimal,
                              item_ids: Iterable[int]) -> Coupon:
        """Validate a coupon against a cart without reserving it"""
        async with self.db.pool.acquire() as conn:
            return await self.fetch_valid_coupon(conn, code, subtotal, item_ids)

    async def fetch_valid_coupon(self, conn, code: str, subtotal: Decimal,
                                 item_ids: Iterable[int], for_update: bool = False,
                                 now: Optional[datetime] = None) -> Coupon:
        """Load the coupon on ``conn`` and raise InvalidCoupon if it cannot apply"""
        query = "SELECT * FROM coupons WHERE code = $1"
        if for_update:
            query += " FOR UPDATE"
        row = await conn.fetchrow(query, code.strip().upper())

        if not row:
            raise InvalidCoupon("Invalid coupon code.", status_code=404)

        coupon = Coupon.model_validate(dict(row))
        self.check_coupon(coupon, subtotal, item_ids, now)
        return coupon

    @staticmethod
    def check_coupon(coupon: Coupon, subtotal: Decimal, item_ids: Iterable[int],
                     now: Optional[datetime] = None):
        now = now or datetime.now(timezone.utc)

        if not coupon.is_active or coupon.deleted_at:
            raise InvalidCoupon("This coupon is no longer active.")

        if coupon.starts_at and now < coupon.starts_at:
            raise InvalidCoupon("This coupon is not yet active.")

        if coupon.expires_at and now > coupon.expires_at:
            raise InvalidCoupon("This coupon has expired.")

        if coupon.usage_limit is not None and coupon.usage_count >= coupon.usage_limit:
            raise InvalidCoupon("This coupon usage limit has been reached.")

        if coupon.min_order_amount is not None and subtotal < coupon.min_order_amount:
            raise InvalidCoupon(
                f"Minimum order amount of NPR {coupon.min_order_amount:,.0f} required."
            )

        if not coupon.applies_to_all and coupon.product_ids:
            if not any(item_id in coupon.product_ids for item_id in item_ids):
                raise InvalidCoupon("This coupon does not apply to the items in your cart.")

    @staticmethod
    def calculate_coupon_discount(coupon: Coupon, subtotal: Decimal) -> Decimal:
        """Discount amount, capped and never more than the subtotal"""
        if coupon.discount_type == CouponType.FIXED:
            amount = coupon.discount_value
        else:
            amount = Decimal(math.floor(subtotal * coupon.discount_value / HUNDRED))

        if coupon.max_discount_cap and amount > coupon.max_discount_cap:
            amount = coupon.max_discount_cap

        return max(min(amount, subtotal), ZERO)

    @staticmethod
    async def record_usage(conn, coupon_id: int):
        """Count one use of the coupon inside the order transaction"""
        await conn.execute("""
            UPDATE coupons
            SET usage_count = usage_count + 1, updated_at = NOW()
            WHERE coupon_id = $1
        """, coupon_id)
