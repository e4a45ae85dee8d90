# luxemoon/utils/messages.py
from html import escape
from typing import Optional
from ..config import Config
from ..models.order import Order, OrderStatus
from ..utils.formatters import format_price, format_datetime

class Messages:
    @staticmethod
    def new_order_subject(order: Order) -> str:
        return f"New Order #{order.order_id} from {order.customer_name}"

    @staticmethod
    def new_order_email(order: Order) -> str:
        """Admin email for a freshly placed order"""
        return (
            "<h1>New Order Received</h1>"
            f"<p><strong>Customer:</strong> {escape(order.customer_name)}</p>"
            f"<p><strong>Phone:</strong> {escape(order.phone)}</p>"
            f"<p><strong>Total:</strong> {format_price(order.total)}</p>"
            f"<p><a href=\"{Config.SITE_URL}/admin\">View in Dashboard</a></p>"
        )

    @staticmethod
    def new_order_alert(order: Order) -> str:
        """Telegram alert for admins"""
        items_text = "\n".join([
            f"- {item.quantity}x {item.name or item.product_id}: {format_price(item.price)}"
            for item in order.items
        ])
        zone = "inside valley" if order.is_inside_valley else "outside valley"

        return (
            f"🛍 Order #{order.order_id}\n"
            f"------------------\n"
            f"{items_text}\n"
            f"------------------\n"
            f"👤 {order.customer_name} ({order.phone})\n"
            f"📍 {order.district}, {order.province} ({zone})\n"
            f"💰 Total: {format_price(order.total)}\n"
            f"🕒 {format_datetime(order.created_at)}\n"
        )

    @staticmethod
    def status_sms(order: Order, status: OrderStatus,
                   tracking_number: Optional[str] = None,
                   courier_name: Optional[str] = None) -> str:
        """Short customer SMS for a status change"""
        if status == OrderStatus.CONFIRMED:
            return (
                f"Namaste {order.customer_name}, your Luxe Moon order #{order.order_id} "
                f"({format_price(order.total)}) is confirmed."
            )
        if status == OrderStatus.SHIPPED:
            text = f"Your Luxe Moon order #{order.order_id} has been shipped"
            if courier_name:
                text += f" via {courier_name}"
            if tracking_number:
                text += f". Tracking: {tracking_number}"
            return text + "."
        return f"Your Luxe Moon order #{order.order_id} is now {status.value.lower()}."

    @staticmethod
    def status_email(order: Order, status: OrderStatus,
                     tracking_number: Optional[str] = None,
                     courier_name: Optional[str] = None) -> str:
        lines = [
            f"<h1>Order #{order.order_id} {status.value.title()}</h1>",
            f"<p>Hi {escape(order.customer_name)},</p>",
            f"<p>{escape(Messages.status_sms(order, status, tracking_number, courier_name))}</p>",
        ]
        return "".join(lines)
