# luxemoon/database/database.py
import asyncpg
import logging
from pathlib import Path
from typing import List, Optional
from ..config import Config

MIGRATIONS_DIR = Path(__file__).parent / "migrations"

# advisory lock key held for the whole migration run
MIGRATION_LOCK_ID = 7_150_301

class Database:
    """Owns the asyncpg connection pool and applies schema migrations"""

    def __init__(self, dsn: Optional[str] = None):
        self.dsn = dsn or Config.DATABASE_URL
        self.pool: Optional[asyncpg.Pool] = None
        self.logger = logging.getLogger(__name__)

    async def connect(self):
        """Open the pool and bring the schema up to date"""
        try:
            self.pool = await asyncpg.create_pool(
                self.dsn,
                min_size=Config.DB_POOL_MIN_SIZE,
                max_size=Config.DB_POOL_MAX_SIZE
            )
            applied = await self._run_migrations()
            self.logger.info(f"Database connection established ({len(applied)} migrations applied)")
        except (OSError, asyncpg.PostgresError) as e:
            self.logger.error(f"Failed to connect to database: {e}")
            await self.close()
            raise

    async def close(self):
        if self.pool:
            await self.pool.close()
            self.pool = None
            self.logger.info("Database connection closed")

    async def ping(self) -> bool:
        """True when a pooled connection answers a trivial query"""
        if self.pool is None:
            return False
        try:
            async with self.pool.acquire() as conn:
                return await conn.fetchval("SELECT 1") == 1
        except (OSError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
            self.logger.warning(f"Database ping failed: {e}")
            return False

    async def _run_migrations(self) -> List[str]:
        """Apply pending .sql files in name order; returns the names applied now"""
        applied = []
        async with self.pool.acquire() as conn:
            await conn.execute("SELECT pg_advisory_lock($1)", MIGRATION_LOCK_ID)
            try:
                await conn.execute("""
                    CREATE TABLE IF NOT EXISTS migrations (
                        id SERIAL PRIMARY KEY,
                        name VARCHAR(255) NOT NULL UNIQUE,
                        applied_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
                    )
                """)
                done = {
                    row['name'] for row in await conn.fetch("SELECT name FROM migrations")
                }

                for migration_file in sorted(MIGRATIONS_DIR.glob("*.sql")):
                    if migration_file.name in done:
                        continue
                    async with conn.transaction():
                        await conn.execute(migration_file.read_text())
                        await conn.execute(
                            "INSERT INTO migrations (name) VALUES ($1)",
                            migration_file.name
                        )
                    applied.append(migration_file.name)
                    self.logger.info(f"Migration {migration_file.name} applied")
            finally:
                await conn.execute("SELECT pg_advisory_unlock($1)", MIGRATION_LOCK_ID)
        return applied
