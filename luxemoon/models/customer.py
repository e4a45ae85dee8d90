# luxemoon/models/customer.py
from typing import Optional
from .base import TimeStampedModel

class BlockedCustomer(TimeStampedModel):
    """Phone number barred from placing orders"""
    blocked_id: int
    phone: str
    reason: Optional[str] = None
