"""Tests for stock checks and decrements against an in-memory connection."""

import pytest

from conftest import make_product
from luxemoon.errors import InsufficientStock, ProductNotFound
from luxemoon.models.order import CartItem
from luxemoon.services.inventory_service import InventoryService


class FakeConnection:
    """Answers the inventory queries from a dict of products, recording row locks and writes."""

    def __init__(self, *products):
        self.products = {product.product_id: product for product in products}
        self.locked = []
        self.lock_calls = []
        self.written = []

    async def fetch(self, query, ids):
        if "FOR UPDATE" not in query:
            return [
                {"bundle_item_ids": self.products[product_id].bundle_item_ids}
                for product_id in ids
                if product_id in self.products and self.products[product_id].is_bundle
            ]
        self.lock_calls.append(list(ids))
        self.locked.extend(ids)
        return [self.products[product_id].model_dump() for product_id in ids if product_id in self.products]

    async def execute(self, query, quantity, product_id):
        self.written.append(product_id)
        product = self.products.get(product_id)
        if product is None or product.stock < quantity:
            return "UPDATE 0"
        product.stock -= quantity
        return "UPDATE 1"


@pytest.fixture
def inventory():
    return InventoryService()


class TestRequestedQuantities:
    def test_repeated_lines_are_summed(self):
        items = [CartItem(product_id=2, quantity=1), CartItem(product_id=1, quantity=2),
                 CartItem(product_id=2, quantity=3)]
        assert InventoryService.requested_quantities(items) == {2: 4, 1: 2}


class TestLockProducts:
    def test_locks_in_ascending_order(self, inventory, run):
        conn = FakeConnection(make_product(product_id=1), make_product(product_id=3))

        products = run(inventory.lock_products(conn, [3, 1, 3]))

        assert conn.locked == [1, 3]
        assert set(products) == {1, 3}

    def test_missing_product(self, inventory, run):
        conn = FakeConnection(make_product(product_id=1))

        with pytest.raises(ProductNotFound):
            run(inventory.lock_products(conn, [1, 9]))

    def test_inactive_product_counts_as_missing(self, inventory, run):
        conn = FakeConnection(make_product(product_id=1, is_active=False))

        with pytest.raises(ProductNotFound):
            run(inventory.lock_products(conn, [1]))

    def test_bundle_components_locked_with_cart_in_one_pass(self, inventory, run):
        bundle = make_product(product_id=7, is_bundle=True, bundle_item_ids=[3, 9])
        conn = FakeConnection(
            bundle,
            make_product(product_id=3),
            make_product(product_id=5),
            make_product(product_id=9),
        )

        products = run(inventory.lock_products(conn, [7, 5]))

        assert conn.lock_calls == [[3, 5, 7, 9]]
        assert set(products) == {3, 5, 7, 9}

    def test_inactive_component_is_still_locked(self, inventory, run):
        bundle = make_product(product_id=7, is_bundle=True, bundle_item_ids=[3])
        conn = FakeConnection(bundle, make_product(product_id=3, is_active=False))

        products = run(inventory.lock_products(conn, [7]))

        assert set(products) == {3, 7}

    def test_every_written_row_was_locked_first(self, inventory, run):
        bundle = make_product(product_id=7, stock=5, is_bundle=True, bundle_item_ids=[3])
        conn = FakeConnection(bundle, make_product(product_id=3, stock=5))
        items = [CartItem(product_id=7, quantity=1)]

        async def checkout():
            products = await inventory.lock_products(conn, [item.product_id for item in items])
            locked_before_writes = list(conn.locked)
            await inventory.decrement_stock(conn, products, items)
            return locked_before_writes

        locked_before_writes = run(checkout())

        assert conn.written == [7, 3]
        assert set(conn.written) <= set(locked_before_writes)

    def test_component_added_after_first_read_is_locked(self, inventory, run):
        bundle = make_product(product_id=7, is_bundle=True, bundle_item_ids=[3])
        conn = FakeConnection(bundle, make_product(product_id=3), make_product(product_id=4))
        lock_rows = conn.fetch

        async def edit_bundle_then_lock(query, ids):
            if "FOR UPDATE" in query and 7 in ids:
                conn.products[7].bundle_item_ids = [3, 4]
            return await lock_rows(query, ids)

        conn.fetch = edit_bundle_then_lock

        products = run(inventory.lock_products(conn, [7]))

        assert conn.lock_calls == [[3, 7], [4]]
        assert set(products) == {3, 4, 7}


class TestCheckStock:
    def test_enough_stock(self, inventory):
        products = {1: make_product(product_id=1, stock=3)}
        inventory.check_stock(products, [CartItem(product_id=1, quantity=3)])

    def test_repeated_lines_exceeding_stock(self, inventory):
        products = {1: make_product(product_id=1, name="Keratin Mask", stock=3)}
        items = [CartItem(product_id=1, quantity=2), CartItem(product_id=1, quantity=2)]

        with pytest.raises(InsufficientStock, match="Keratin Mask"):
            inventory.check_stock(products, items)

    def test_out_of_stock_product_is_named(self, inventory):
        products = {
            1: make_product(product_id=1, name="Argan Oil", stock=5),
            2: make_product(product_id=2, name="Silk Serum", stock=0),
        }
        items = [CartItem(product_id=1, quantity=1), CartItem(product_id=2, quantity=1)]

        with pytest.raises(InsufficientStock) as exc_info:
            inventory.check_stock(products, items)
        assert str(exc_info.value) == "Insufficient stock for: Silk Serum"
        assert exc_info.value.product_id == 2


class TestDecrementStock:
    def test_decrements_purchased_products(self, inventory, run):
        product = make_product(product_id=1, stock=5)
        conn = FakeConnection(product)

        run(inventory.decrement_stock(conn, {1: product}, [CartItem(product_id=1, quantity=2)]))

        assert conn.products[1].stock == 3

    def test_bundle_decrements_components(self, inventory, run):
        bundle = make_product(product_id=10, name="Repair Kit", stock=4, is_bundle=True, bundle_item_ids=[1, 2])
        shampoo = make_product(product_id=1, stock=6)
        conditioner = make_product(product_id=2, stock=6)
        conn = FakeConnection(bundle, shampoo, conditioner)

        run(inventory.decrement_stock(conn, {10: bundle}, [CartItem(product_id=10, quantity=2)]))

        assert conn.products[10].stock == 2
        assert conn.products[1].stock == 4
        assert conn.products[2].stock == 4

    def test_short_bundle_component_fails(self, inventory, run):
        bundle = make_product(product_id=10, stock=4, is_bundle=True, bundle_item_ids=[1])
        shampoo = make_product(product_id=1, stock=1)
        conn = FakeConnection(bundle, shampoo)

        with pytest.raises(InsufficientStock, match="bundled item"):
            run(inventory.decrement_stock(conn, {10: bundle}, [CartItem(product_id=10, quantity=2)]))
