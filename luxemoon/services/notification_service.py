# luxemoon/services/notification_service.py
import asyncio
import logging
from functools import partial
from typing import Awaitable, Optional, Set
import aiohttp
from telegram import Bot
from telegram.error import TelegramError
from ..config import Config
from ..models.order import NotificationChannel, Order, OrderStatus
from ..models.site_config import SiteConfig
from ..utils.messages import Messages

class NotificationService:
    """Best-effort customer and admin notifications.

    ``notify_*`` methods schedule the sends as background tasks and return
    immediately; a failed send is logged and recorded, never raised to the
    caller whose order or status change has already been committed.
    """

    def __init__(self, db=None, config_cache=None):
        self.db = db
        self.config_cache = config_cache
        self.messages = Messages()
        self.logger = logging.getLogger(__name__)
        self._tasks: Set[asyncio.Task] = set()

    def dispatch(self, coro: Awaitable, description: str) -> asyncio.Task:
        """Run ``coro`` in the background, keeping a reference until it finishes"""
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(partial(self._on_task_done, description))
        return task

    def _on_task_done(self, description: str, task: asyncio.Task):
        self._tasks.discard(task)
        if task.cancelled():
            self.logger.warning(f"Notification task cancelled: {description}")
            return
        exc = task.exception()
        if exc is not None:
            self.logger.error(f"Notification task failed: {description}", exc_info=exc)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self):
        """Wait for every scheduled notification to finish"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def notify_new_order(self, order: Order) -> asyncio.Task:
        return self.dispatch(self._announce_new_order(order), f"new order #{order.order_id}")

    def notify_status_change(self, order: Order, status: OrderStatus, phone: Optional[str] = None,
                             tracking_number: Optional[str] = None,
                             courier_name: Optional[str] = None) -> asyncio.Task:
        return self.dispatch(
            self._announce_status(order, status, phone or order.phone, tracking_number, courier_name),
            f"order #{order.order_id} {status.value}"
        )

    async def resend(self, order: Order, channel: NotificationChannel) -> bool:
        """Send the notification for the order's current state again, awaiting the result"""
        if channel == NotificationChannel.SMS:
            return await self.send_sms(
                order.phone,
                self.messages.status_sms(order, order.status, order.tracking_number, order.courier_name),
                order.order_id
            )
        if channel == NotificationChannel.EMAIL:
            if order.email:
                return await self.send_email(
                    order.email,
                    f"Your order #{order.order_id}",
                    self.messages.status_email(order, order.status, order.tracking_number, order.courier_name),
                    order.order_id
                )
            return await self.send_email(
                Config.ADMIN_NOTIFY_EMAIL,
                self.messages.new_order_subject(order),
                self.messages.new_order_email(order),
                order.order_id
            )
        return await self.send_telegram(self.messages.new_order_alert(order), order.order_id)

    async def _announce_new_order(self, order: Order):
        await self.send_email(
            Config.ADMIN_NOTIFY_EMAIL,
            self.messages.new_order_subject(order),
            self.messages.new_order_email(order),
            order.order_id
        )
        await self.send_telegram(self.messages.new_order_alert(order), order.order_id)

    async def _announce_status(self, order: Order, status: OrderStatus, phone: str,
                               tracking_number: Optional[str], courier_name: Optional[str]):
        config = await self._site_config()

        if config.sms_notifications_enabled:
            await self.send_sms(
                phone,
                self.messages.status_sms(order, status, tracking_number, courier_name),
                order.order_id
            )

        if order.email and config.email_notifications_enabled:
            await self.send_email(
                order.email,
                f"Your order #{order.order_id} is {status.value.lower()}",
                self.messages.status_email(order, status, tracking_number, courier_name),
                order.order_id
            )

    async def _site_config(self) -> SiteConfig:
        if self.config_cache is None:
            return SiteConfig()
        return await self.config_cache.get()

    async def send_email(self, to: str, subject: str, html: str, order_id: Optional[int] = None) -> bool:
        """Send an email through the Resend API"""
        if not Config.RESEND_API_KEY:
            self.logger.info(f"Mocking email send to {to} (no API key), order {order_id}")
            await self._record(order_id, NotificationChannel.EMAIL, "SKIPPED")
            return True

        try:
            timeout = aiohttp.ClientTimeout(total=Config.NOTIFICATION_TIMEOUT_SECONDS)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(
                    Config.RESEND_API_URL,
                    headers={"Authorization": f"Bearer {Config.RESEND_API_KEY}"},
                    json={
                        "from": Config.ORDER_EMAIL_FROM,
                        "to": [to],
                        "subject": subject,
                        "html": html
                    }
                ) as response:
                    if response.status >= 300:
                        body = await response.text()
                        raise RuntimeError(f"Resend responded {response.status}: {body}")

            self.logger.info(f"Email sent to {to}, order {order_id}")
            await self._record(order_id, NotificationChannel.EMAIL, "SUCCESS")
            return True

        except (aiohttp.ClientError, asyncio.TimeoutError, RuntimeError) as e:
            self.logger.error(f"Email sending failed for order {order_id}: {e}")
            await self._record(order_id, NotificationChannel.EMAIL, "FAILED", str(e))
            return False

    async def send_sms(self, phone: str, text: str, order_id: Optional[int] = None) -> bool:
        """Send an SMS through the Sparrow SMS gateway"""
        if not Config.SPARROW_SMS_TOKEN:
            self.logger.info(f"Mocking SMS to {phone}, order {order_id}")
            await self._record(order_id, NotificationChannel.SMS, "SKIPPED")
            return True

        try:
            timeout = aiohttp.ClientTimeout(total=Config.NOTIFICATION_TIMEOUT_SECONDS)
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(
                    Config.SPARROW_SMS_URL,
                    data={
                        "token": Config.SPARROW_SMS_TOKEN,
                        "from": Config.SPARROW_SMS_FROM,
                        "to": phone,
                        "text": text
                    }
                ) as response:
                    if response.status != 200:
                        body = await response.text()
                        raise RuntimeError(f"Sparrow responded {response.status}: {body}")

            self.logger.info(f"Order status SMS sent to {phone}, order {order_id}")
            await self._record(order_id, NotificationChannel.SMS, "SUCCESS")
            return True

        except (aiohttp.ClientError, asyncio.TimeoutError, RuntimeError) as e:
            self.logger.error(f"SMS sending failed for order {order_id}: {e}")
            await self._record(order_id, NotificationChannel.SMS, "FAILED", str(e))
            return False

    async def send_telegram(self, text: str, order_id: Optional[int] = None) -> bool:
        """Alert every admin chat through the Telegram bot"""
        if not Config.TELEGRAM_TOKEN or not Config.ADMIN_CHAT_IDS:
            self.logger.info(f"Mocking Telegram alert (no token or chats), order {order_id}")
            await self._record(order_id, NotificationChannel.TELEGRAM, "SKIPPED")
            return True

        try:
            async with Bot(Config.TELEGRAM_TOKEN) as bot:
                for chat_id in Config.ADMIN_CHAT_IDS:
                    await bot.send_message(chat_id=chat_id, text=text)

            await self._record(order_id, NotificationChannel.TELEGRAM, "SUCCESS")
            return True

        except TelegramError as e:
            self.logger.error(f"Telegram alert failed for order {order_id}: {e}")
            await self._record(order_id, NotificationChannel.TELEGRAM, "FAILED", str(e))
            return False

    async def _record(self, order_id: Optional[int], channel: NotificationChannel,
                      status: str, error: Optional[str] = None):
        if self.db is None or self.db.pool is None or order_id is None:
            return
        try:
            async with self.db.pool.acquire() as conn:
                await conn.execute("""
                    INSERT INTO notification_logs (order_id, channel, status, error)
                    VALUES ($1, $2, $3, $4)
                """, order_id, channel.value, status, error)
        except Exception as e:
            self.logger.error(f"Failed to record {channel.value} notification for order {order_id}: {e}")
