# luxemoon/api/admin.py
import logging
from typing import Optional
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from ..models.order import OrderStatus
from .base import get_services, require_admin
from .schemas import (
    AdminNotesRequest,
    BlockCustomerRequest,
    PaymentReceivedRequest,
    ResendNotificationRequest,
    SiteConfigUpdateRequest,
    StatusUpdateRequest,
)

router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(require_admin)])
logger = logging.getLogger(__name__)

# site settings that may be cleared by sending null
NULLABLE_SETTINGS = {"global_discount_start", "global_discount_end"}

@router.get("/orders")
async def list_orders(status: Optional[OrderStatus] = None,
                      limit: int = Query(default=50, ge=1, le=500),
                      services=Depends(get_services)):
    orders = await services.orders.list_orders(status=status, limit=limit)
    return {"orders": orders, "count": len(orders)}

@router.post("/orders/status")
async def update_order_status(payload: StatusUpdateRequest, services=Depends(get_services)):
    """Move an order along its lifecycle with an optimistic lock on updatedAt"""
    order = await services.orders.update_order_status(
        order_id=payload.order_id,
        new_status=payload.new_status,
        expected_updated_at=payload.last_updated_at,
        phone=payload.phone,
        reason=payload.reason,
        tracking_number=payload.tracking_number,
        courier_name=payload.courier_name
    )
    return {"success": True, "order": order}

@router.post("/orders/{order_id}/payment")
async def set_payment_received(order_id: int, payload: PaymentReceivedRequest,
                               services=Depends(get_services)):
    if not await services.orders.set_payment_received(order_id, payload.received):
        return JSONResponse({"success": False, "error": "Order not found"}, status_code=404)
    return {"success": True}

@router.post("/orders/{order_id}/notes")
async def update_admin_notes(order_id: int, payload: AdminNotesRequest,
                             services=Depends(get_services)):
    if not await services.orders.update_admin_notes(order_id, payload.notes):
        return JSONResponse({"success": False, "error": "Order not found"}, status_code=404)
    return {"success": True}

@router.post("/orders/{order_id}/resend")
async def resend_notification(order_id: int, payload: ResendNotificationRequest,
                              services=Depends(get_services)):
    result = await services.orders.resend_notification(order_id, payload.channel)
    if not result["success"]:
        status_code = 404 if result["error"] == "Order not found" else 502
        return JSONResponse(result, status_code=status_code)
    return result

@router.get("/blacklist")
async def list_blocked(services=Depends(get_services)):
    blocked = await services.customers.list_blocked()
    return {"blocked": blocked, "count": len(blocked)}

@router.post("/blacklist")
async def block_customer(payload: BlockCustomerRequest, services=Depends(get_services)):
    result = await services.customers.block_customer(payload.phone, payload.reason)
    if not result["success"]:
        return JSONResponse(result, status_code=409)
    return result

@router.delete("/blacklist/{blocked_id}")
async def unblock_customer(blocked_id: int, services=Depends(get_services)):
    if not await services.customers.unblock_customer(blocked_id):
        return JSONResponse({"success": False, "error": "Entry not found"}, status_code=404)
    return {"success": True}

@router.get("/settings")
async def get_settings(services=Depends(get_services)):
    return await services.settings.get_site_config()

@router.put("/settings")
async def update_settings(payload: SiteConfigUpdateRequest, services=Depends(get_services)):
    """Store changed settings and drop the cached snapshot"""
    data = {
        key: value for key, value in payload.model_dump(exclude_unset=True).items()
        if value is not None or key in NULLABLE_SETTINGS
    }
    config = await services.settings.update_site_config(data)
    services.config_cache.invalidate()
    logger.info("Site config cache invalidated after admin update")
    return {"success": True, "config": config}
