# luxemoon/api/schemas.py
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional
from pydantic import Field, StrictBool, field_validator
from ..models.base import ApiModel
from ..models.order import CartItem, CustomerInfo, NotificationChannel, OrderStatus
from ..utils.nepal import NEPAL_PROVINCES

PHONE_PATTERN = r"^9\d{9}$"

class OrderItemRequest(ApiModel):
    product_id: int
    quantity: int = Field(ge=1, le=100)

class OrderCreateRequest(ApiModel):
    """Checkout payload"""
    customer_name: str = Field(min_length=1, max_length=100)
    phone: str = Field(pattern=PHONE_PATTERN)
    province: str
    district: str = Field(min_length=1, max_length=100)
    address: str = Field(min_length=1, max_length=500)
    landmark: Optional[str] = Field(default=None, max_length=200)
    notes: Optional[str] = Field(default=None, max_length=500)
    website: Optional[str] = Field(default=None, max_length=100)  # honeypot
    email: Optional[str] = Field(default=None, max_length=200, pattern=r"^$|^[^@\s]+@[^@\s]+\.[^@\s]+$")
    is_inside_valley: StrictBool
    idempotency_key: Optional[str] = Field(default=None, max_length=255)
    coupon_code: Optional[str] = Field(default=None, max_length=50)
    items: List[OrderItemRequest] = Field(min_length=1)

    @field_validator("province")
    @classmethod
    def province_must_exist(cls, value: str) -> str:
        if value not in NEPAL_PROVINCES:
            raise ValueError("Invalid province")
        return value

    def customer_info(self) -> CustomerInfo:
        return CustomerInfo(
            customer_name=self.customer_name,
            phone=self.phone,
            email=self.email or None,
            province=self.province,
            district=self.district,
            address=self.address,
            landmark=self.landmark,
            notes=self.notes
        )

    def cart_items(self) -> List[CartItem]:
        return [CartItem(product_id=item.product_id, quantity=item.quantity) for item in self.items]

class StatusUpdateRequest(ApiModel):
    """Admin status change, carrying the updatedAt the admin last saw"""
    order_id: int
    new_status: OrderStatus
    phone: Optional[str] = None
    last_updated_at: datetime
    reason: Optional[str] = Field(default=None, max_length=500)
    tracking_number: Optional[str] = Field(default=None, max_length=100)
    courier_name: Optional[str] = Field(default=None, max_length=100)

    @field_validator("last_updated_at")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

class PaymentReceivedRequest(ApiModel):
    received: StrictBool

class AdminNotesRequest(ApiModel):
    notes: Optional[str] = Field(default=None, max_length=2000)

class ResendNotificationRequest(ApiModel):
    channel: NotificationChannel

class BlockCustomerRequest(ApiModel):
    phone: str = Field(pattern=PHONE_PATTERN)
    reason: Optional[str] = Field(default=None, max_length=500)

class SiteConfigUpdateRequest(ApiModel):
    """Partial site settings update; omitted fields keep their value"""
    store_name: Optional[str] = Field(default=None, max_length=100)
    delivery_charge_inside: Optional[Decimal] = Field(default=None, ge=0)
    delivery_charge_outside: Optional[Decimal] = Field(default=None, ge=0)
    free_delivery_threshold: Optional[Decimal] = Field(default=None, ge=0)
    global_discount_percent: Optional[Decimal] = Field(default=None, ge=0, le=100)
    global_discount_start: Optional[datetime] = None
    global_discount_end: Optional[datetime] = None
    allow_stacking: Optional[bool] = None
    email_notifications_enabled: Optional[bool] = None
    sms_notifications_enabled: Optional[bool] = None

class CouponValidateRequest(ApiModel):
    code: str = Field(min_length=1, max_length=50)
    subtotal: Decimal = Field(ge=0)
    item_ids: List[int] = []
