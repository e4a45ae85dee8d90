# luxemoon/api/coupons.py
from fastapi import APIRouter, Depends
from .base import get_services
from .schemas import CouponValidateRequest

router = APIRouter(prefix="/api/coupons", tags=["coupons"])

@router.post("/validate")
async def validate_coupon(payload: CouponValidateRequest, services=Depends(get_services)):
    """Check a coupon code against the cart shown at checkout"""
    coupon = await services.coupons.validate_coupon(payload.code, payload.subtotal, payload.item_ids)
    discount = services.coupons.calculate_coupon_discount(coupon, payload.subtotal)
    return {
        **coupon.model_dump(mode="json", by_alias=True),
        "discountAmount": discount
    }
