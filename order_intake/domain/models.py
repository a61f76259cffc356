import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from order_intake.infrastructure.database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


class Restaurant(Base):
    __tablename__ = "restaurants"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String, nullable=False)
    is_accepting_orders = Column(Boolean, nullable=False, default=True)
    currency_code = Column(String(3), nullable=False, default="INR")  # ISO 4217


class MenuItem(Base):
    __tablename__ = "menu_items"

    id = Column(String(36), primary_key=True, default=_new_id)
    restaurant_id = Column(String(36), ForeignKey("restaurants.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    price_cents = Column(Integer, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    variants = relationship("MenuItemVariant", back_populates="menu_item")
    addons = relationship("MenuItemAddon", back_populates="menu_item")


class MenuItemVariant(Base):
    """A priced alternative of an item (e.g. a size). Its price replaces the item price."""
    __tablename__ = "menu_item_variants"

    id = Column(String(36), primary_key=True, default=_new_id)
    restaurant_id = Column(String(36), ForeignKey("restaurants.id"), nullable=False)
    menu_item_id = Column(String(36), ForeignKey("menu_items.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    price_cents = Column(Integer, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    menu_item = relationship("MenuItem", back_populates="variants")


class MenuItemAddon(Base):
    """An optional extra. Its price is added on top of the item or variant price."""
    __tablename__ = "menu_item_addons"

    id = Column(String(36), primary_key=True, default=_new_id)
    restaurant_id = Column(String(36), ForeignKey("restaurants.id"), nullable=False)
    menu_item_id = Column(String(36), ForeignKey("menu_items.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    price_cents = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    menu_item = relationship("MenuItem", back_populates="addons")


class Coupon(Base):
    __tablename__ = "coupons"

    id = Column(String(36), primary_key=True, default=_new_id)
    restaurant_id = Column(String(36), ForeignKey("restaurants.id"), nullable=False, index=True)
    code = Column(String, nullable=False)  # stored uppercase, matched case-insensitively
    discount_type = Column(String, nullable=False)  # percentage, fixed
    discount_value = Column(Integer, nullable=False)
    min_order_cents = Column(Integer, nullable=True)
    max_discount_cents = Column(Integer, nullable=True)  # percentage coupons only
    usage_limit = Column(Integer, nullable=True)
    usage_count = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    starts_at = Column(DateTime(timezone=True), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)


class Order(Base):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=_new_id)
    restaurant_id = Column(String(36), ForeignKey("restaurants.id"), nullable=False, index=True)
    status = Column(String, nullable=False, default="pending")  # advanced by kitchen workflows

    subtotal_cents = Column(Integer, nullable=False)
    discount_cents = Column(Integer, nullable=False, default=0)
    total_cents = Column(Integer, nullable=False)

    coupon_id = Column(String(36), ForeignKey("coupons.id"), nullable=True)
    coupon_code = Column(String, nullable=True)  # snapshot of the code at order time
    discount_type = Column(String, nullable=True)  # coupon, manual
    currency_code = Column(String(3), nullable=False)
    payment_method = Column(String, nullable=True, default="cash")

    table_label = Column(String(20), nullable=True)
    ip_address = Column(String, nullable=False, index=True)
    order_token = Column(String(128), nullable=False, unique=True, index=True)

    placed_at = Column(DateTime(timezone=True), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    items = relationship("OrderItem", back_populates="order", order_by="OrderItem.position")


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(String(36), primary_key=True, default=_new_id)
    order_id = Column(String(36), ForeignKey("orders.id"), nullable=False, index=True)
    restaurant_id = Column(String(36), ForeignKey("restaurants.id"), nullable=False)
    position = Column(Integer, nullable=False)  # line order within the cart

    menu_item_id = Column(String(36), nullable=False)
    variant_id = Column(String(36), nullable=True)
    # [{"id": ..., "name": ..., "price_cents": ...}] copied from the catalog, not live references
    addons = Column(JSON, nullable=False, default=list)

    quantity = Column(Integer, nullable=False)
    unit_price_cents = Column(Integer, nullable=False)
    line_total_cents = Column(Integer, nullable=False)
    name_snapshot = Column(String, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    order = relationship("Order", back_populates="items")
