"""
Price composition and coupon rules.

Prices are integer minor units. A variant price replaces the item price; add-on
prices are added on top of whichever of the two applies.
"""
import logging
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

import pytz

from order_intake.core.config import settings
from order_intake.domain.errors import OrderRejected
from order_intake.domain.models import Coupon, MenuItem, MenuItemAddon, MenuItemVariant
from order_intake.domain.schemas import AddonSnapshot, AppliedDiscount, CartLine, PricedLine

logger = logging.getLogger(__name__)

MAX_SAFE_INTEGER = 2 ** 53 - 1  # largest integer a JSON client can hold exactly

DISCOUNT_FIXED = "fixed"
DISCOUNT_PERCENTAGE = "percentage"


def _find(rows: Iterable, row_id: str, menu_item_id: str):
    for row in rows:
        if row.id == row_id and row.menu_item_id == menu_item_id and row.is_active:
            return row
    return None


def price_line(
    line: CartLine,
    item: Optional[MenuItem],
    variants: List[MenuItemVariant],
    addons: List[MenuItemAddon],
) -> PricedLine:
    if item is None:
        raise OrderRejected(f"Menu item not found: {line.menu_item_id}")
    if not item.is_active:
        raise OrderRejected(f"Item unavailable: {item.name}")

    unit_price = item.price_cents
    variant_id = None
    if line.variant_id:
        variant = _find(variants, line.variant_id, item.id)
        if variant is None:
            raise OrderRejected(f"Invalid variant for {item.name}")
        unit_price = variant.price_cents
        variant_id = variant.id

    chosen = []
    for ref in line.addons:
        addon = _find(addons, ref.id, item.id)
        if addon is None:
            raise OrderRejected(f"Invalid add-on for {item.name}")
        unit_price += addon.price_cents
        chosen.append(AddonSnapshot(id=addon.id, name=addon.name, price_cents=addon.price_cents))

    line_total = unit_price * line.quantity
    if line_total > MAX_SAFE_INTEGER:
        raise OrderRejected("Order value too large")

    return PricedLine(
        menu_item_id=item.id,
        variant_id=variant_id,
        addons=chosen,
        quantity=line.quantity,
        unit_price_cents=unit_price,
        line_total_cents=line_total,
        name_snapshot=item.name,
        notes=line.notes,
    )


def price_cart(
    lines: List[CartLine],
    items: List[MenuItem],
    variants: List[MenuItemVariant],
    addons: List[MenuItemAddon],
) -> Tuple[List[PricedLine], int]:
    """Resolves every line against the catalog snapshot. Returns (priced lines, subtotal)."""
    items_by_id = {item.id: item for item in items}
    priced = [price_line(line, items_by_id.get(line.menu_item_id), variants, addons) for line in lines]

    subtotal = sum(p.line_total_cents for p in priced)
    if subtotal > settings.MAX_ORDER_VALUE_CENTS:
        raise OrderRejected(f"Order value cannot exceed ${settings.MAX_ORDER_VALUE_CENTS // 100}")
    return priced, subtotal


def normalize_coupon_code(code: str) -> str:
    return code.strip().upper()


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value.tzinfo is None:
        return pytz.utc.localize(value)
    return value


def coupon_is_usable(coupon: Coupon, subtotal_cents: int, now: datetime) -> bool:
    if not coupon.is_active:
        return False
    if coupon.starts_at is not None and _as_utc(coupon.starts_at) > now:
        return False
    if coupon.expires_at is not None and _as_utc(coupon.expires_at) < now:
        return False
    if coupon.usage_limit is not None and (coupon.usage_count or 0) >= coupon.usage_limit:
        return False
    # Minimum is checked against the pre-discount subtotal
    if coupon.min_order_cents and subtotal_cents < coupon.min_order_cents:
        return False
    return True


def discount_for(coupon: Coupon, subtotal_cents: int) -> int:
    if coupon.discount_type == DISCOUNT_FIXED:
        return min(coupon.discount_value, subtotal_cents)
    if coupon.discount_type == DISCOUNT_PERCENTAGE:
        # round half up, as the storefront displays it
        discount = (subtotal_cents * coupon.discount_value + 50) // 100
        if coupon.max_discount_cents:
            discount = min(discount, coupon.max_discount_cents)
        return min(discount, subtotal_cents)
    return 0


def apply_coupon(coupon: Optional[Coupon], subtotal_cents: int, now: datetime) -> AppliedDiscount:
    """An unusable or missing coupon yields no discount rather than an error."""
    if coupon is None or not coupon_is_usable(coupon, subtotal_cents, now):
        return AppliedDiscount()
    if coupon.discount_type not in (DISCOUNT_FIXED, DISCOUNT_PERCENTAGE):
        logger.warning(f"Coupon {coupon.code} has unknown discount type {coupon.discount_type!r}, ignoring it")
        return AppliedDiscount()
    return AppliedDiscount(
        coupon_id=coupon.id,
        coupon_code=coupon.code,
        discount_type="coupon",
        discount_cents=discount_for(coupon, subtotal_cents),
    )


def final_total(subtotal_cents: int, discount_cents: int) -> int:
    return max(0, subtotal_cents - discount_cents)
