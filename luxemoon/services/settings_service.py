# luxemoon/services/settings_service.py
import asyncio
import json
import logging
import time
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, Optional
from ..config import Config
from ..models.site_config import SiteConfig

class SettingsService:
    """Reads and writes the key/value settings table"""

    def __init__(self, db):
        self.db = db
        self.logger = logging.getLogger(__name__)

    async def get_all_settings(self) -> Dict[str, Any]:
        """All stored settings, converted to their Python types"""
        async with self.db.pool.acquire() as conn:
            settings = await conn.fetch("""
                SELECT key, value, type
                FROM settings
            """)

            return {s['key']: self._convert_value(s['value'], s['type']) for s in settings}

    async def get_site_config(self) -> SiteConfig:
        """Stored settings layered over the defaults"""
        stored = await self.get_all_settings()
        known = {k: v for k, v in stored.items() if k in SiteConfig.model_fields}
        return SiteConfig(**known)

    async def update_site_config(self, data: Dict[str, Any]) -> SiteConfig:
        """Validate a partial update against SiteConfig and store the changed keys"""
        current = await self.get_site_config()
        merged = SiteConfig.model_validate({**current.model_dump(), **data})

        async with self.db.pool.acquire() as conn:
            async with conn.transaction():
                for key in data:
                    if key not in SiteConfig.model_fields:
                        continue
                    value = getattr(merged, key)
                    await conn.execute("""
                        INSERT INTO settings (key, value, type)
                        VALUES ($1, $2, $3)
                        ON CONFLICT (key)
                        DO UPDATE SET value = $2, type = $3
                    """, key, self._serialize_value(value), self._get_value_type(value))

        self.logger.info(f"Site config updated: {sorted(k for k in data if k in SiteConfig.model_fields)}")
        return merged

    @staticmethod
    def _get_value_type(value: Any) -> str:
        """Type tag stored alongside the value"""
        if value is None:
            return 'null'
        elif isinstance(value, bool):
            return 'boolean'
        elif isinstance(value, int):
            return 'integer'
        elif isinstance(value, float) or isinstance(value, Decimal):
            return 'decimal'
        elif isinstance(value, datetime):
            return 'datetime'
        elif isinstance(value, dict):
            return 'json'
        else:
            return 'string'

    @staticmethod
    def _serialize_value(value: Any) -> Optional[str]:
        if value is None:
            return None
        if isinstance(value, bool):
            return 'true' if value else 'false'
        if isinstance(value, datetime):
            return value.isoformat()
        if isinstance(value, dict):
            return json.dumps(value)
        return str(value)

    @staticmethod
    def _convert_value(value: Optional[str], type_: str) -> Any:
        """Convert a stored string back to its Python type"""
        if value is None or type_ == 'null':
            return None
        if type_ == 'boolean':
            return value.lower() == 'true'
        elif type_ == 'integer':
            return int(value)
        elif type_ == 'decimal':
            return Decimal(value)
        elif type_ == 'datetime':
            return datetime.fromisoformat(value)
        elif type_ == 'json':
            return json.loads(value)
        else:
            return value


class SiteConfigCache:
    """Process-local SiteConfig snapshot refreshed after ``ttl`` seconds"""

    def __init__(self, settings_service: SettingsService,
                 ttl: float = Config.SITE_CONFIG_TTL_SECONDS,
                 clock: Callable[[], float] = time.monotonic):
        self.settings_service = settings_service
        self.ttl = ttl
        self._clock = clock
        self._value: Optional[SiteConfig] = None
        self._expires_at = 0.0
        self._lock = asyncio.Lock()

    async def get(self) -> SiteConfig:
        if self._value is not None and self._clock() < self._expires_at:
            return self._value

        async with self._lock:
            # another waiter may have refreshed while we queued
            if self._value is not None and self._clock() < self._expires_at:
                return self._value
            self._value = await self.settings_service.get_site_config()
            self._expires_at = self._clock() + self.ttl
            return self._value

    def invalidate(self):
        self._value = None
        self._expires_at = 0.0
