# luxemoon/api/__init__.py
from .orders import router as orders_router
from .coupons import router as coupons_router
from .admin import router as admin_router

__all__ = [
    'orders_router',
    'coupons_router',
    'admin_router'
]
