# luxemoon/services/inventory_service.py
from collections import OrderedDict
from typing import Dict, Iterable, List, Set
from ..errors import InsufficientStock, ProductNotFound
from ..models.order import CartItem
from ..models.product import Product

class InventoryService:
    """Stock checks and decrements; every method runs on the caller's transaction"""

    @staticmethod
    def requested_quantities(items: Iterable[CartItem]) -> Dict[int, int]:
        """Quantities per product, summing repeated lines"""
        totals: Dict[int, int] = OrderedDict()
        for item in items:
            totals[item.product_id] = totals.get(item.product_id, 0) + item.quantity
        return totals

    async def lock_products(self, conn, product_ids: Iterable[int]) -> Dict[int, Product]:
        """Row-lock every product the checkout may write.

        The cart's products and the components of any bundle among them are
        locked together in ascending id order, so two checkouts sharing
        products cannot deadlock each other. The result holds the components
        too; cart products must be active.
        """
        ids = sorted(set(product_ids))
        component_ids = await self._bundle_components(conn, ids)
        locked = await self._lock_rows(conn, sorted(set(ids) | component_ids))

        # a bundle edited between the two reads may name a component not locked yet
        missing = {
            component_id
            for product_id in ids if product_id in locked
            for component_id in locked[product_id].bundle_item_ids
            if locked[product_id].is_bundle and component_id not in locked
        }
        if missing:
            locked.update(await self._lock_rows(conn, sorted(missing)))

        for product_id in ids:
            product = locked.get(product_id)
            if product is None or not product.is_active:
                raise ProductNotFound(product_id)
        return locked

    @staticmethod
    async def _bundle_components(conn, product_ids: List[int]) -> Set[int]:
        rows = await conn.fetch("""
            SELECT bundle_item_ids
            FROM products
            WHERE product_id = ANY($1::int[]) AND is_bundle = true
        """, product_ids)
        return {component_id for row in rows for component_id in (row['bundle_item_ids'] or [])}

    @staticmethod
    async def _lock_rows(conn, product_ids: List[int]) -> Dict[int, Product]:
        rows = await conn.fetch("""
            SELECT *
            FROM products
            WHERE product_id = ANY($1::int[])
            ORDER BY product_id
            FOR UPDATE
        """, product_ids)
        return {row['product_id']: Product.model_validate(dict(row)) for row in rows}

    def check_stock(self, products: Dict[int, Product], items: List[CartItem]):
        """Raise for the first product whose stock cannot cover the cart"""
        for product_id, quantity in self.requested_quantities(items).items():
            product = products.get(product_id)
            if product is None:
                raise ProductNotFound(product_id)
            if product.stock < quantity:
                raise InsufficientStock(product.name, product_id)

    async def decrement_stock(self, conn, products: Dict[int, Product], items: List[CartItem]):
        """Decrement purchased products and the components of any bundle"""
        quantities = self.requested_quantities(items)

        for product_id, quantity in quantities.items():
            await self._decrement(conn, product_id, quantity, products[product_id].name)

        for product_id, quantity in quantities.items():
            product = products[product_id]
            if not product.is_bundle or not product.bundle_item_ids:
                continue
            for bundle_item_id in product.bundle_item_ids:
                await self._decrement(conn, bundle_item_id, quantity, "bundled item")

    @staticmethod
    async def _decrement(conn, product_id: int, quantity: int, label: str):
        result = await conn.execute("""
            UPDATE products
            SET stock = stock - $1
            WHERE product_id = $2 AND stock >= $1
        """, quantity, product_id)

        if result != "UPDATE 1":
            raise InsufficientStock(label, product_id)
