# luxemoon/services/customer_service.py
import logging
from typing import Any, Dict, List, Optional
import asyncpg
from ..models.customer import BlockedCustomer

class CustomerService:
    """Phone number blacklist"""

    def __init__(self, db):
        self.db = db
        self.logger = logging.getLogger(__name__)

    async def is_blocked(self, phone: str, conn=None) -> bool:
        """Check whether the phone number is blacklisted"""
        if conn is not None:
            return await self._is_blocked(conn, phone)
        async with self.db.pool.acquire() as conn:
            return await self._is_blocked(conn, phone)

    @staticmethod
    async def _is_blocked(conn, phone: str) -> bool:
        blocked = await conn.fetchval("""
            SELECT 1 FROM blocked_customers
            WHERE phone = $1
        """, phone)
        return blocked is not None

    async def block_customer(self, phone: str, reason: Optional[str] = None) -> Dict[str, Any]:
        """Add a phone number to the blacklist"""
        try:
            async with self.db.pool.acquire() as conn:
                blocked_id = await conn.fetchval("""
                    INSERT INTO blocked_customers (phone, reason)
                    VALUES ($1, $2)
                    RETURNING blocked_id
                """, phone, reason)
        except asyncpg.UniqueViolationError:
            return {
                "success": False,
                "error": "Failed or already exists"
            }

        self.logger.info(f"Customer {phone} blacklisted")
        return {
            "success": True,
            "blocked_id": blocked_id
        }

    async def unblock_customer(self, blocked_id: int) -> bool:
        """Remove a blacklist entry"""
        async with self.db.pool.acquire() as conn:
            result = await conn.execute("""
                DELETE FROM blocked_customers
                WHERE blocked_id = $1
            """, blocked_id)
            return result == "DELETE 1"

    async def list_blocked(self) -> List[BlockedCustomer]:
        """All blacklist entries, newest first"""
        async with self.db.pool.acquire() as conn:
            rows = await conn.fetch("""
                SELECT *
                FROM blocked_customers
                ORDER BY created_at DESC
            """)
            return [BlockedCustomer.model_validate(dict(row)) for row in rows]
