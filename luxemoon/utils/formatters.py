# luxemoon/utils/formatters.py
from datetime import datetime
import pytz
from decimal import Decimal, ROUND_HALF_UP
from ..config import Config

def format_price(amount: Decimal) -> str:
    """Whole rupees with thousands separators"""
    whole = Decimal(amount).quantize(Decimal(1), rounding=ROUND_HALF_UP)
    return f"NPR {whole:,.0f}"

def format_datetime(dt: datetime) -> str:
    """Render a timestamp in the shop time zone"""
    shop_tz = pytz.timezone(Config.TIMEZONE)
    if dt.tzinfo is None:
        dt = pytz.utc.localize(dt)
    local_time = dt.astimezone(shop_tz)
    return local_time.strftime("%Y-%m-%d %H:%M:%S")
