from datetime import datetime, timedelta

import pytest
import pytz

from order_intake.domain.errors import OrderRejected
from order_intake.domain.models import Coupon, MenuItem, MenuItemAddon, MenuItemVariant
from order_intake.domain.pricing import (
    MAX_SAFE_INTEGER,
    apply_coupon,
    discount_for,
    final_total,
    normalize_coupon_code,
    price_cart,
)
from order_intake.domain.schemas import AddonRef, CartLine

NOW = datetime(2026, 3, 14, 12, 0, tzinfo=pytz.utc)


@pytest.fixture
def menu():
    item = MenuItem(id="burger", restaurant_id="r", name="Burger", price_cents=500, is_active=True)
    variants = [
        MenuItemVariant(id="large", restaurant_id="r", menu_item_id="burger", name="Large", price_cents=700, is_active=True),
        MenuItemVariant(id="foreign", restaurant_id="r", menu_item_id="soup", name="Bowl", price_cents=50, is_active=True),
    ]
    addons = [
        MenuItemAddon(id="cheese", restaurant_id="r", menu_item_id="burger", name="Cheese", price_cents=100, is_active=True),
        MenuItemAddon(id="bacon", restaurant_id="r", menu_item_id="burger", name="Bacon", price_cents=150, is_active=True),
        MenuItemAddon(id="stale", restaurant_id="r", menu_item_id="burger", name="Stale", price_cents=10, is_active=False),
    ]
    return [item], variants, addons


def line(**kwargs):
    values = {"menu_item_id": "burger", "quantity": 1}
    values.update(kwargs)
    return CartLine(**values)


def coupon(**kwargs):
    values = dict(id="c-1", code="SAVE", discount_type="percentage", discount_value=10,
                  usage_count=0, is_active=True)
    values.update(kwargs)
    return Coupon(**values)


class TestPriceComposition:
    def test_variant_replaces_and_addons_add(self, menu):
        priced, subtotal = price_cart(
            [line(quantity=2, variant_id="large", addons=[AddonRef(id="cheese"), AddonRef(id="bacon")])],
            *menu,
        )

        assert priced[0].unit_price_cents == 950
        assert priced[0].line_total_cents == 1900
        assert subtotal == 1900

    def test_addons_stack_on_base_price_without_variant(self, menu):
        priced, _ = price_cart([line(addons=[AddonRef(id="cheese")])], *menu)
        assert priced[0].unit_price_cents == 600
        assert priced[0].variant_id is None

    def test_addon_snapshot(self, menu):
        priced, _ = price_cart([line(addons=[AddonRef(id="bacon")])], *menu)
        assert priced[0].addons[0].model_dump() == {"id": "bacon", "name": "Bacon", "price_cents": 150}

    def test_foreign_variant(self, menu):
        with pytest.raises(OrderRejected, match="Invalid variant for Burger"):
            price_cart([line(variant_id="foreign")], *menu)

    def test_inactive_addon(self, menu):
        with pytest.raises(OrderRejected, match="Invalid add-on for Burger"):
            price_cart([line(addons=[AddonRef(id="stale")])], *menu)

    def test_overflow_guard(self):
        huge = MenuItem(id="burger", restaurant_id="r", name="Gold Burger", price_cents=MAX_SAFE_INTEGER, is_active=True)
        with pytest.raises(OrderRejected, match="Order value too large"):
            price_cart([line(quantity=2)], [huge], [], [])

    def test_order_value_ceiling_is_inclusive(self):
        item = MenuItem(id="burger", restaurant_id="r", name="Burger", price_cents=10_000, is_active=True)
        _, subtotal = price_cart([line(quantity=100)], [item], [], [])
        assert subtotal == 1_000_000

        item.price_cents = 10_001
        with pytest.raises(OrderRejected, match=r"Order value cannot exceed \$10000"):
            price_cart([line(quantity=100)], [item], [], [])


class TestCoupons:
    def test_normalize_code(self):
        assert normalize_coupon_code("  summer24 ") == "SUMMER24"

    def test_percentage_capped(self):
        assert discount_for(coupon(discount_value=10, max_discount_cents=150), 1900) == 150

    def test_percentage_rounds_half_up(self):
        assert discount_for(coupon(discount_value=10), 1905) == 191
        assert discount_for(coupon(discount_value=15), 333) == 50

    def test_fixed_clamped_to_subtotal(self):
        assert discount_for(coupon(discount_type="fixed", discount_value=500), 300) == 300
        assert final_total(300, 300) == 0

    def test_applied_discount_records_coupon(self):
        applied = apply_coupon(coupon(discount_type="fixed", discount_value=200), 1000, NOW)
        assert applied.coupon_id == "c-1"
        assert applied.coupon_code == "SAVE"
        assert applied.discount_type == "coupon"
        assert applied.discount_cents == 200

    @pytest.mark.parametrize("kwargs", [
        {"is_active": False},
        {"expires_at": NOW - timedelta(seconds=1)},
        {"starts_at": NOW + timedelta(seconds=1)},
        {"usage_limit": 5, "usage_count": 5},
        {"min_order_cents": 1001},
    ])
    def test_unusable_coupon_gives_no_discount(self, kwargs):
        applied = apply_coupon(coupon(**kwargs), 1000, NOW)
        assert applied.discount_cents == 0
        assert applied.coupon_id is None

    def test_boundaries_are_usable(self):
        applied = apply_coupon(
            coupon(expires_at=NOW, usage_limit=5, usage_count=4, min_order_cents=1000),
            1000,
            NOW,
        )
        assert applied.discount_cents == 100

    def test_naive_timestamps_are_treated_as_utc(self):
        naive_past = datetime(2026, 3, 14, 11, 0)
        assert apply_coupon(coupon(expires_at=naive_past), 1000, NOW).discount_cents == 0

    def test_no_coupon(self):
        assert apply_coupon(None, 1000, NOW).discount_cents == 0

    def test_unknown_discount_type_gives_no_discount(self):
        applied = apply_coupon(coupon(discount_type="bogo"), 1000, NOW)
        assert applied.discount_cents == 0
        assert applied.coupon_id is None
        assert applied.discount_type is None

    def test_final_total_never_negative(self):
        assert final_total(1900, 150) == 1750
        assert final_total(300, 500) == 0
