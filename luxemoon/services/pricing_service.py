# luxemoon/services/pricing_service.py
"""Unit pricing, discount rules and delivery charges.

Everything here is a pure function of its arguments so the same cart always
prices the same way; callers pass ``now`` when they need a fixed clock.
"""
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional
from ..models.product import Product
from ..models.site_config import SiteConfig

ZERO = Decimal(0)
ONE_UNIT = Decimal(1)
HUNDRED = Decimal(100)


def _round_currency(amount: Decimal) -> Decimal:
    return amount.quantize(ONE_UNIT, rounding=ROUND_HALF_UP)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_window_active(start: Optional[datetime], end: Optional[datetime],
                     now: datetime) -> bool:
    """Both bounds are optional and inclusive"""
    now = _as_utc(now)
    if start is not None and now < _as_utc(start):
        return False
    if end is not None and now > _as_utc(end):
        return False
    return True


def apply_percentage(price: Decimal, percent: Decimal) -> Decimal:
    """Take ``percent`` off ``price``, rounded to a whole unit"""
    return _round_currency(price * (HUNDRED - Decimal(percent)) / HUNDRED)


def unit_price_for_zone(product: Product, is_inside_valley: bool) -> Decimal:
    """Base unit price for the delivery zone"""
    return product.price_inside if is_inside_valley else product.price_outside


def calculate_discounted_price(base_price: Decimal, product: Product,
                               config: SiteConfig,
                               now: Optional[datetime] = None) -> Decimal:
    """Apply the product discount, then the global discount when allowed"""
    now = now or datetime.now(timezone.utc)
    price = Decimal(base_price)
    product_discount_applied = False

    if is_window_active(product.discount_start, product.discount_end, now):
        if product.discount_fixed is not None and product.discount_fixed > ZERO:
            price = price - product.discount_fixed
            product_discount_applied = True
        elif product.discount_percent and product.discount_percent > ZERO:
            price = apply_percentage(price, product.discount_percent)
            product_discount_applied = True

    if product_discount_applied and not config.allow_stacking:
        return max(price, ZERO)

    if (config.global_discount_percent > ZERO
            and is_window_active(config.global_discount_start,
                                 config.global_discount_end, now)):
        price = apply_percentage(price, config.global_discount_percent)

    return max(price, ZERO)


def calculate_unit_price(product: Product, is_inside_valley: bool,
                         config: SiteConfig,
                         now: Optional[datetime] = None) -> Decimal:
    return calculate_discounted_price(
        unit_price_for_zone(product, is_inside_valley), product, config, now
    )


def calculate_delivery_charge(subtotal: Decimal, is_inside_valley: bool,
                              config: SiteConfig) -> Decimal:
    """Free at or above the threshold, otherwise the flat zone charge"""
    if subtotal >= config.free_delivery_threshold:
        return ZERO
    if is_inside_valley:
        return config.delivery_charge_inside
    return config.delivery_charge_outside
