"""OrderService tests over a scripted in-memory connection."""

from contextlib import asynccontextmanager
from decimal import Decimal

import asyncpg
import pytest

from conftest import CREATED_AT, RecordingNotifications, StaticConfigCache, make_order, make_product
from luxemoon.errors import ConcurrentModification, TooManyRequests
from luxemoon.models.order import CartItem, OrderItem, OrderStatus
from luxemoon.services.order_service import OrderService


class ScriptedConnection:
    """Answers the order queries by matching on their text."""

    def __init__(self, *products, order=None):
        self.products = {product.product_id: product for product in products}
        self.order_row = {k: v for k, v in (order or make_order()).model_dump().items() if k != "items"}
        self.recent_orders = 0
        self.key_owners = []
        self.cas_result = 42
        self.inserted_order = None
        self.inserted_items = []
        self.status_updates = []

    async def fetch(self, query, *args):
        if "FROM order_items" in query:
            return []
        if "FOR UPDATE" in query:
            return [self.products[pid].model_dump() for pid in args[0] if pid in self.products]
        return []

    async def fetchval(self, query, *args):
        if "COUNT(*)" in query:
            return self.recent_orders
        if "blocked_customers" in query:
            return None
        if "idempotency_key = $1" in query:
            return self.key_owners.pop(0) if self.key_owners else None
        if "INSERT INTO orders" in query:
            self.inserted_order = args
            return 42
        if "UPDATE orders" in query:
            self.status_updates.append(args)
            return self.cas_result
        raise AssertionError(f"unexpected query: {query}")

    async def fetchrow(self, query, *args):
        return self.order_row

    async def execute(self, query, *args):
        return "UPDATE 1"

    async def executemany(self, query, rows):
        self.inserted_items = list(rows)

    @asynccontextmanager
    async def transaction(self):
        yield


class FakeDatabase:
    def __init__(self, conn):
        self.conn = conn
        self.pool = self

    @asynccontextmanager
    async def acquire(self):
        yield self.conn


@pytest.fixture
def conn():
    return ScriptedConnection(
        make_product(product_id=1, price_inside=Decimal("1000"), stock=10),
        make_product(product_id=2, name="Silk Serum", price_inside=Decimal("900"), stock=10),
    )


@pytest.fixture
def notifications():
    return RecordingNotifications()


@pytest.fixture
def service(conn, notifications):
    return OrderService(FakeDatabase(conn), StaticConfigCache(), notifications)


class TestOrderItem:
    def test_total_price(self):
        item = OrderItem(product_id=1, quantity=3, price=Decimal("1250"))
        assert item.total_price == Decimal("3750")


class TestCreateOrder:
    def test_subtotal_is_sum_of_line_totals(self, service, conn, customer, notifications, run):
        items = [CartItem(product_id=1, quantity=2), CartItem(product_id=2, quantity=1)]

        order = run(service.create_order(customer, True, items, "key-1"))

        subtotal, delivery_charge, total = (
            conn.inserted_order[10], conn.inserted_order[13], conn.inserted_order[14]
        )
        assert subtotal == Decimal("2900")
        assert delivery_charge == Decimal("0")
        assert total == Decimal("2900")
        assert conn.inserted_items == [(42, 1, 2, Decimal("1000")), (42, 2, 1, Decimal("900"))]
        assert [o.order_id for o in notifications.new_orders] == [order.order_id]

    def test_replayed_key_skips_insert(self, service, conn, customer, notifications, run):
        conn.key_owners = [42]

        order = run(service.create_order(customer, True, [CartItem(product_id=1, quantity=1)], "key-1"))

        assert order.order_id == 42
        assert conn.inserted_order is None
        assert notifications.new_orders == []

    def test_key_race_returns_winning_order(self, service, conn, customer, notifications, run, monkeypatch):
        conn.key_owners = [None, 42]

        async def lose_race(*args, **kwargs):
            raise asyncpg.UniqueViolationError("duplicate key value violates unique constraint")

        monkeypatch.setattr(service, "_insert_order", lose_race)

        order = run(service.create_order(customer, True, [CartItem(product_id=1, quantity=1)], "key-1"))

        assert order.order_id == 42
        assert notifications.new_orders == []

    def test_unique_violation_without_winner_propagates(self, service, conn, customer, run, monkeypatch):
        async def fail(*args, **kwargs):
            raise asyncpg.UniqueViolationError("duplicate key value violates unique constraint")

        monkeypatch.setattr(service, "_insert_order", fail)

        with pytest.raises(asyncpg.UniqueViolationError):
            run(service.create_order(customer, True, [CartItem(product_id=1, quantity=1)], "key-1"))

    def test_rate_limit_checked_before_anything_else(self, service, conn, customer, run):
        conn.recent_orders = 5

        with pytest.raises(TooManyRequests):
            run(service.create_order(customer, True, [CartItem(product_id=1, quantity=1)], "key-1"))
        assert conn.inserted_order is None


class TestUpdateStatus:
    def test_write_losing_race_is_rejected(self, service, conn, notifications, run):
        conn.cas_result = None

        with pytest.raises(ConcurrentModification):
            run(service.update_order_status(42, OrderStatus.CONFIRMED, CREATED_AT))

        assert len(conn.status_updates) == 1
        assert notifications.status_changes == []

    def test_stale_read_is_rejected_before_writing(self, service, conn, run):
        conn.order_row["updated_at"] = CREATED_AT.replace(minute=31)

        with pytest.raises(ConcurrentModification):
            run(service.update_order_status(42, OrderStatus.CONFIRMED, CREATED_AT))

        assert conn.status_updates == []

    def test_successful_write_notifies_customer(self, service, conn, notifications, run):
        run(service.update_order_status(42, OrderStatus.CONFIRMED, CREATED_AT, tracking_number=""))

        order_id, expected, status = conn.status_updates[0][:3]
        assert (order_id, expected, status) == (42, CREATED_AT, "CONFIRMED")
        assert notifications.status_changes == [(42, OrderStatus.CONFIRMED, None, None, None)]
