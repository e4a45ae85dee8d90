# luxemoon/services/order_service.py
import logging
import time
from datetime import datetime
from typing import Any, Dict, List, Optional
import asyncpg
from ..config import Config
from ..errors import (
    ConcurrentModification,
    CustomerBlocked,
    InvalidStatusTransition,
    OrderNotFound,
    TooManyRequests,
    ValidationFailed,
)
from ..models.order import (
    CUSTOMER_NOTIFY_STATUSES,
    CartItem,
    CustomerInfo,
    NotificationChannel,
    Order,
    OrderItem,
    OrderStatus,
    can_transition,
)
from .coupon_service import CouponService
from .customer_service import CustomerService
from .inventory_service import InventoryService
from .pricing_service import ZERO, calculate_delivery_charge, calculate_unit_price

class OrderService:
    """Order creation and the admin-driven order lifecycle"""

    def __init__(self, db, config_cache, notification_service,
                 customer_service: Optional[CustomerService] = None,
                 coupon_service: Optional[CouponService] = None,
                 inventory_service: Optional[InventoryService] = None,
                 enforce_transitions: bool = Config.ENFORCE_STATUS_TRANSITIONS):
        self.db = db
        self.config_cache = config_cache
        self.notification_service = notification_service
        self.customer_service = customer_service or CustomerService(db)
        self.coupon_service = coupon_service or CouponService(db)
        self.inventory_service = inventory_service or InventoryService()
        self.enforce_transitions = enforce_transitions
        self.logger = logging.getLogger(__name__)

    async def create_order(self, customer: CustomerInfo, is_inside_valley: bool,
                           items: List[CartItem], idempotency_key: Optional[str] = None,
                           ip_address: str = "unknown", coupon_code: Optional[str] = None,
                           now: Optional[datetime] = None) -> Order:
        """Place an order atomically, or return the order already placed under the key"""
        if not items:
            raise ValidationFailed("Order must contain at least one item")
        if any(item.quantity < 1 for item in items):
            raise ValidationFailed("Item quantity must be at least 1")

        async with self.db.pool.acquire() as conn:
            recent_orders = await self.count_recent_orders(conn, ip_address)
            if recent_orders >= Config.RATE_LIMIT_MAX_ORDERS:
                self.logger.warning(f"Rate limit hit for {ip_address}: {recent_orders} recent orders")
                raise TooManyRequests(ip_address)

            if await self.customer_service.is_blocked(customer.phone, conn):
                self.logger.warning(f"Blocked customer {customer.phone} tried to order")
                raise CustomerBlocked(customer.phone)

            idempotency_key = idempotency_key or f"{customer.phone}_{int(time.time() * 1000)}"
            existing = await self._fetch_order_by_key(conn, idempotency_key)
            if existing:
                self.logger.info(f"Idempotent replay of order #{existing.order_id}")
                return existing

            config = await self.config_cache.get()

            try:
                async with conn.transaction():
                    order_id = await self._insert_order(
                        conn, customer, is_inside_valley, items, idempotency_key,
                        ip_address, coupon_code, config, now
                    )
            except asyncpg.UniqueViolationError:
                # a concurrent request with the same key committed first
                existing = await self._fetch_order_by_key(conn, idempotency_key)
                if existing is None:
                    raise
                self.logger.info(f"Idempotency race resolved to order #{existing.order_id}")
                return existing

            order = await self._fetch_order(conn, order_id)

        self.logger.info(f"Order #{order.order_id} created: total {order.total}, {len(order.items)} items")
        self.notification_service.notify_new_order(order)
        return order

    async def _insert_order(self, conn, customer: CustomerInfo, is_inside_valley: bool,
                            items: List[CartItem], idempotency_key: str, ip_address: str,
                            coupon_code: Optional[str], config, now: Optional[datetime]) -> int:
        """Runs inside the order transaction; any exception rolls everything back"""
        products = await self.inventory_service.lock_products(
            conn, [item.product_id for item in items]
        )
        self.inventory_service.check_stock(products, items)

        order_items = [
            OrderItem(
                product_id=item.product_id,
                quantity=item.quantity,
                price=calculate_unit_price(products[item.product_id], is_inside_valley, config, now)
            )
            for item in items
        ]
        subtotal = sum((order_item.total_price for order_item in order_items), ZERO)

        coupon = None
        coupon_discount = ZERO
        if coupon_code:
            coupon = await self.coupon_service.fetch_valid_coupon(
                conn, coupon_code, subtotal, [item.product_id for item in items],
                for_update=True, now=now
            )
            coupon_discount = self.coupon_service.calculate_coupon_discount(coupon, subtotal)
            await self.coupon_service.record_usage(conn, coupon.coupon_id)

        delivery_charge = calculate_delivery_charge(subtotal - coupon_discount, is_inside_valley, config)
        total = subtotal - coupon_discount + delivery_charge

        await self.inventory_service.decrement_stock(conn, products, items)

        order_id = await conn.fetchval("""
            INSERT INTO orders (
                idempotency_key, customer_name, phone, email, province, district,
                address, landmark, notes, is_inside_valley, subtotal, coupon_code,
                coupon_discount, delivery_charge, total, status, ip_address
            ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $13, $14, $15, $16, $17)
            RETURNING order_id
        """,
            idempotency_key,
            customer.customer_name,
            customer.phone,
            customer.email or None,
            customer.province,
            customer.district,
            customer.address,
            customer.landmark,
            customer.notes,
            is_inside_valley,
            subtotal,
            coupon.code if coupon else None,
            coupon_discount,
            delivery_charge,
            total,
            OrderStatus.PENDING.value,
            ip_address
        )

        await conn.executemany("""
            INSERT INTO order_items (
                order_id, product_id, quantity, price
            ) VALUES ($1, $2, $3, $4)
        """, [(order_id, item.product_id, item.quantity, item.price) for item in order_items])

        return order_id

    async def count_recent_orders(self, conn, ip_address: str) -> int:
        """Orders placed from the address inside the rate-limit window"""
        return await conn.fetchval("""
            SELECT COUNT(*)
            FROM orders
            WHERE ip_address = $1
            AND created_at > clock_timestamp() - ($2::int * interval '1 second')
        """, ip_address, Config.RATE_LIMIT_WINDOW_SECONDS)

    async def get_order(self, order_id: int) -> Optional[Order]:
        """Order with its line items"""
        async with self.db.pool.acquire() as conn:
            return await self._fetch_order(conn, order_id)

    async def update_order_status(self, order_id: int, new_status: OrderStatus,
                                  expected_updated_at: datetime, phone: Optional[str] = None,
                                  reason: Optional[str] = None,
                                  tracking_number: Optional[str] = None,
                                  courier_name: Optional[str] = None) -> Order:
        """Move an order to ``new_status`` if nobody changed it since ``expected_updated_at``"""
        new_status = OrderStatus(new_status)

        async with self.db.pool.acquire() as conn:
            order = await self._fetch_order(conn, order_id)
            if not order:
                raise OrderNotFound(order_id)

            if order.updated_at != expected_updated_at:
                raise ConcurrentModification(order_id)

            if self.enforce_transitions and not can_transition(order.status, new_status):
                raise InvalidStatusTransition(order.status.value, new_status.value)

            # the WHERE clause re-checks the version atomically with the write
            updated_id = await conn.fetchval("""
                UPDATE orders
                SET status = $3::varchar,
                    rejection_reason = CASE WHEN $3::varchar = 'CANCELLED'
                        THEN COALESCE($4, rejection_reason)
                        ELSE rejection_reason END,
                    tracking_number = COALESCE($5, tracking_number),
                    courier_name = COALESCE($6, courier_name),
                    updated_at = GREATEST(clock_timestamp(), updated_at + interval '1 microsecond')
                WHERE order_id = $1 AND updated_at = $2
                RETURNING order_id
            """,
                order_id,
                expected_updated_at,
                new_status.value,
                reason or None,
                tracking_number or None,
                courier_name or None
            )

            if updated_id is None:
                raise ConcurrentModification(order_id)

            updated = await self._fetch_order(conn, order_id)

        self.logger.info(f"Order #{order_id} status {order.status.value} -> {new_status.value}")

        if new_status in CUSTOMER_NOTIFY_STATUSES:
            self.notification_service.notify_status_change(
                updated, new_status, phone, tracking_number or None, courier_name or None
            )

        return updated

    async def set_payment_received(self, order_id: int, received: bool) -> bool:
        """Flag whether cash on delivery has been collected"""
        async with self.db.pool.acquire() as conn:
            result = await conn.execute("""
                UPDATE orders
                SET payment_received = $1,
                    updated_at = GREATEST(clock_timestamp(), updated_at + interval '1 microsecond')
                WHERE order_id = $2
            """, received, order_id)
            return result == "UPDATE 1"

    async def update_admin_notes(self, order_id: int, notes: Optional[str]) -> bool:
        """Replace the internal notes on an order"""
        async with self.db.pool.acquire() as conn:
            result = await conn.execute("""
                UPDATE orders
                SET admin_notes = $1,
                    updated_at = GREATEST(clock_timestamp(), updated_at + interval '1 microsecond')
                WHERE order_id = $2
            """, notes or None, order_id)
            return result == "UPDATE 1"

    async def resend_notification(self, order_id: int, channel: NotificationChannel) -> Dict[str, Any]:
        """Send an order notification again and report whether it went out"""
        order = await self.get_order(order_id)
        if not order:
            return {
                "success": False,
                "error": "Order not found"
            }

        sent = await self.notification_service.resend(order, NotificationChannel(channel))
        if not sent:
            return {
                "success": False,
                "error": f"{NotificationChannel(channel).value} could not be sent"
            }
        return {"success": True}

    async def list_orders(self, status: Optional[OrderStatus] = None, limit: int = 50) -> List[Order]:
        """Newest orders first, optionally filtered by status"""
        query = "SELECT * FROM orders WHERE 1=1"
        params = []
        param_index = 1

        if status is not None:
            query += f" AND status = ${param_index}"
            params.append(OrderStatus(status).value)
            param_index += 1

        query += f" ORDER BY created_at DESC LIMIT ${param_index}"
        params.append(limit)

        async with self.db.pool.acquire() as conn:
            rows = await conn.fetch(query, *params)
            items = await self._fetch_items(conn, [row['order_id'] for row in rows])
            return [self._build_order(row, items.get(row['order_id'], [])) for row in rows]

    async def _fetch_order(self, conn, order_id: int) -> Optional[Order]:
        row = await conn.fetchrow("""
            SELECT *
            FROM orders
            WHERE order_id = $1
        """, order_id)
        if not row:
            return None
        items = await self._fetch_items(conn, [order_id])
        return self._build_order(row, items.get(order_id, []))

    async def _fetch_order_by_key(self, conn, idempotency_key: str) -> Optional[Order]:
        order_id = await conn.fetchval("""
            SELECT order_id
            FROM orders
            WHERE idempotency_key = $1
        """, idempotency_key)
        if order_id is None:
            return None
        return await self._fetch_order(conn, order_id)

    @staticmethod
    async def _fetch_items(conn, order_ids: List[int]) -> Dict[int, List[OrderItem]]:
        if not order_ids:
            return {}
        rows = await conn.fetch("""
            SELECT oi.order_id, oi.product_id, oi.quantity, oi.price, p.name
            FROM order_items oi
            JOIN products p ON p.product_id = oi.product_id
            WHERE oi.order_id = ANY($1::int[])
            ORDER BY oi.order_item_id
        """, order_ids)

        items: Dict[int, List[OrderItem]] = {}
        for row in rows:
            items.setdefault(row['order_id'], []).append(OrderItem.model_validate(dict(row)))
        return items

    @staticmethod
    def _build_order(row, items: List[OrderItem]) -> Order:
        return Order.model_validate({**dict(row), "items": items})