# luxemoon/models/site_config.py
from datetime import datetime
from decimal import Decimal
from typing import Optional
from .base import ApiModel, Money

class SiteConfig(ApiModel):
    """Store-wide settings consumed by pricing and delivery"""
    store_name: str = "Luxe Moon"
    delivery_charge_inside: Money = Decimal(0)
    delivery_charge_outside: Money = Decimal(150)
    free_delivery_threshold: Money = Decimal(5000)

    global_discount_percent: Money = Decimal(0)
    global_discount_start: Optional[datetime] = None
    global_discount_end: Optional[datetime] = None
    allow_stacking: bool = False

    email_notifications_enabled: bool = True
    sms_notifications_enabled: bool = True
