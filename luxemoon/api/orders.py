# luxemoon/api/orders.py
import logging
import time
from fastapi import APIRouter, Depends, Request
from ..errors import OrderNotFound, ValidationFailed
from ..utils.nepal import is_valid_province_district
from .base import client_ip, get_services
from .schemas import OrderCreateRequest

router = APIRouter(prefix="/api/orders", tags=["orders"])
logger = logging.getLogger(__name__)

@router.post("")
async def create_order(payload: OrderCreateRequest, request: Request, services=Depends(get_services)):
    """Place an order from the checkout form"""
    # bots fill the hidden field; answer like a success and write nothing
    if payload.website:
        logger.info(f"Honeypot triggered from {client_ip(request)}")
        return {"id": f"bot-{int(time.time() * 1000)}"}

    if not is_valid_province_district(payload.province, payload.district):
        raise ValidationFailed("Invalid province/district combination")

    return await services.orders.create_order(
        customer=payload.customer_info(),
        is_inside_valley=payload.is_inside_valley,
        items=payload.cart_items(),
        idempotency_key=payload.idempotency_key,
        ip_address=client_ip(request),
        coupon_code=payload.coupon_code
    )

@router.get("/{order_id}")
async def get_order(order_id: int, services=Depends(get_services)):
    """Order confirmation page data"""
    order = await services.orders.get_order(order_id)
    if not order:
        raise OrderNotFound(order_id)
    return order
