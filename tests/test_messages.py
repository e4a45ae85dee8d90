"""Tests for notification texts and formatting helpers."""

from datetime import datetime, timezone
from decimal import Decimal

from conftest import make_order
from luxemoon.models.order import OrderStatus
from luxemoon.utils.formatters import format_datetime, format_price
from luxemoon.utils.messages import Messages
from luxemoon.utils.nepal import NEPAL_PROVINCES, is_valid_province_district


class TestFormatters:
    def test_price_has_thousands_separator(self):
        assert format_price(Decimal("5149")) == "NPR 5,149"

    def test_half_rupee_rounds_up(self):
        assert format_price(Decimal("2500.5")) == "NPR 2,501"
        assert format_price(Decimal("2502.5")) == "NPR 2,503"

    def test_datetime_in_shop_time_zone(self, monkeypatch):
        from luxemoon.config import Config
        monkeypatch.setattr(Config, "TIMEZONE", "Asia/Kathmandu")
        value = datetime(2025, 1, 1, 0, 0, tzinfo=timezone.utc)
        assert format_datetime(value) == "2025-01-01 05:45:00"


class TestMessages:
    def test_confirmed_sms_mentions_total(self):
        order = make_order(total=Decimal("5149"))
        text = Messages.status_sms(order, OrderStatus.CONFIRMED)
        assert "#42" in text
        assert "NPR 5,149" in text

    def test_shipped_sms_with_courier_and_tracking(self):
        text = Messages.status_sms(make_order(), OrderStatus.SHIPPED, "TRK-99", "Pathao")
        assert text == "Your Luxe Moon order #42 has been shipped via Pathao. Tracking: TRK-99."

    def test_admin_alert_lists_items(self):
        text = Messages.new_order_alert(make_order())
        assert "2x Argan Repair Shampoo: NPR 1,000" in text
        assert "inside valley" in text

    def test_email_escapes_customer_name(self):
        order = make_order(customer_name="<b>Ram</b>")
        assert "&lt;b&gt;Ram&lt;/b&gt;" in Messages.new_order_email(order)


class TestNepal:
    def test_all_districts_listed(self):
        assert sum(len(districts) for districts in NEPAL_PROVINCES.values()) == 77

    def test_district_must_belong_to_province(self):
        assert is_valid_province_district("Bagmati Province", "Kathmandu")
        assert not is_valid_province_district("Koshi Province", "Kathmandu")
        assert not is_valid_province_district("Atlantis", "Kathmandu")
