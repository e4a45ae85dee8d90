"""Pytest fixtures for the order engine tests."""

import asyncio
import os
from datetime import datetime, timezone
from decimal import Decimal

import pytest

# Config refuses to import without a database URL
os.environ.setdefault("DATABASE_URL", "postgresql://localhost/luxemoon_test")

from luxemoon.models.order import CustomerInfo, Order, OrderItem, OrderStatus  # noqa: E402
from luxemoon.models.product import Product  # noqa: E402
from luxemoon.models.site_config import SiteConfig  # noqa: E402

CREATED_AT = datetime(2025, 3, 1, 9, 30, tzinfo=timezone.utc)


def make_product(**overrides) -> Product:
    data = {
        "product_id": 1,
        "name": "Argan Repair Shampoo",
        "price_inside": Decimal("1000"),
        "price_outside": Decimal("1100"),
        "stock": 5,
        "created_at": CREATED_AT,
    }
    data.update(overrides)
    return Product(**data)


def make_order(**overrides) -> Order:
    data = {
        "order_id": 42,
        "idempotency_key": "9812345678_1700000000000",
        "customer_name": "Sita Sharma",
        "phone": "9812345678",
        "province": "Bagmati Province",
        "district": "Kathmandu",
        "address": "Durbarmarg",
        "is_inside_valley": True,
        "items": [OrderItem(product_id=1, quantity=2, price=Decimal("1000"), name="Argan Repair Shampoo")],
        "subtotal": Decimal("2000"),
        "delivery_charge": Decimal("0"),
        "total": Decimal("2000"),
        "status": OrderStatus.PENDING,
        "created_at": CREATED_AT,
        "updated_at": CREATED_AT,
    }
    data.update(overrides)
    return Order(**data)


class StaticConfigCache:
    """Config cache stand-in that always returns the same snapshot."""

    def __init__(self, config: SiteConfig | None = None):
        self.config = config or SiteConfig()
        self.invalidations = 0

    async def get(self) -> SiteConfig:
        return self.config

    def invalidate(self):
        self.invalidations += 1


class RecordingNotifications:
    """Notification stand-in that records what would have been sent."""

    def __init__(self):
        self.new_orders = []
        self.status_changes = []

    def notify_new_order(self, order):
        self.new_orders.append(order)

    def notify_status_change(self, order, status, phone=None, tracking_number=None, courier_name=None):
        self.status_changes.append((order.order_id, status, phone, tracking_number, courier_name))

    async def drain(self):
        pass


@pytest.fixture
def site_config():
    return SiteConfig()


@pytest.fixture
def now():
    return datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def customer():
    return CustomerInfo(
        customer_name="Sita Sharma",
        phone="9812345678",
        province="Bagmati Province",
        district="Kathmandu",
        address="Durbarmarg",
    )


@pytest.fixture
def run():
    """Run a coroutine to completion on a fresh event loop."""
    return asyncio.run
