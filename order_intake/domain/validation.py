from typing import Any, Optional

from order_intake.core.config import settings
from order_intake.domain.errors import OrderRejected
from order_intake.domain.schemas import AddonRef, CartLine, OrderRequest


def _coerce_quantity(value: Any) -> Optional[int]:
    """Accept 2, 2.0 and "2" as the integer 2. Anything else is not a quantity."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        try:
            return _coerce_quantity(float(value.strip()))
        except ValueError:
            return None
    return None


def _is_missing(value: Any) -> bool:
    return value is None or value == ""


def _parse_addons(raw: Any) -> list[AddonRef]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise OrderRejected("Add-ons must be a list of {id} objects")
    addons = []
    for entry in raw:
        if not isinstance(entry, dict) or _is_missing(entry.get("id")):
            raise OrderRejected("Add-ons must be a list of {id} objects")
        addons.append(AddonRef(id=str(entry["id"])))
    return addons


def validate_order_payload(payload: Any) -> OrderRequest:
    """
    Checks a decoded request body against the order limits.
    Raises OrderRejected on the first violated constraint; nothing is looked up here.
    """
    if not isinstance(payload, dict):
        raise OrderRejected("Invalid JSON")

    restaurant_id = payload.get("restaurant_id")
    items = payload.get("items")
    if _is_missing(restaurant_id) or items is None:
        raise OrderRejected("Missing required fields: restaurant_id and items")

    if not isinstance(items, list):
        raise OrderRejected("Items must be an array")
    if not items:
        raise OrderRejected("Order must contain at least one item")
    if len(items) > settings.MAX_ITEMS_PER_ORDER:
        raise OrderRejected(f"Order cannot contain more than {settings.MAX_ITEMS_PER_ORDER} different items")

    quantities = []
    for item in items:
        if not isinstance(item, dict) or _is_missing(item.get("menu_item_id")) or _is_missing(item.get("quantity")):
            raise OrderRejected("Each item must have menu_item_id and quantity")

        quantity = _coerce_quantity(item["quantity"])
        if quantity is None or quantity < settings.MIN_QUANTITY_PER_ITEM:
            raise OrderRejected(f"Quantity must be a positive integer (minimum {settings.MIN_QUANTITY_PER_ITEM})")
        if quantity > settings.MAX_QUANTITY_PER_ITEM:
            raise OrderRejected(f"Quantity cannot exceed {settings.MAX_QUANTITY_PER_ITEM} per item")
        quantities.append(quantity)

    if sum(quantities) > settings.MAX_TOTAL_ITEMS:
        raise OrderRejected(f"Total items in order cannot exceed {settings.MAX_TOTAL_ITEMS}")

    table_label = payload.get("table_label")
    if _is_missing(table_label):
        table_label = None
    elif not isinstance(table_label, str):
        raise OrderRejected("Table label must be a string")
    elif len(table_label) > settings.MAX_TABLE_LABEL_LENGTH:
        raise OrderRejected(f"Table label is too long (max {settings.MAX_TABLE_LABEL_LENGTH} chars)")

    lines = []
    for item, quantity in zip(items, quantities):
        variant_id = item.get("variant_id")
        notes = item.get("notes")
        lines.append(CartLine(
            menu_item_id=str(item["menu_item_id"]),
            quantity=quantity,
            variant_id=None if _is_missing(variant_id) else str(variant_id),
            addons=_parse_addons(item.get("addons")),
            notes=None if _is_missing(notes) else str(notes),
        ))

    coupon_code = payload.get("coupon_code")
    return OrderRequest(
        restaurant_id=str(restaurant_id),
        items=lines,
        table_label=table_label,
        coupon_code=None if _is_missing(coupon_code) else str(coupon_code),
    )
