from datetime import datetime
from pydantic import BaseModel, Field
from typing import List, Optional


class AddonRef(BaseModel):
    id: str


class CartLine(BaseModel):
    menu_item_id: str
    quantity: int
    variant_id: Optional[str] = None
    addons: List[AddonRef] = Field(default_factory=list)
    notes: Optional[str] = None


class OrderRequest(BaseModel):
    restaurant_id: str
    items: List[CartLine]
    table_label: Optional[str] = None
    coupon_code: Optional[str] = None


class AddonSnapshot(BaseModel):
    id: str
    name: str
    price_cents: int


class PricedLine(BaseModel):
    """A cart line after price resolution, ready to be written as an order item."""
    menu_item_id: str
    variant_id: Optional[str] = None
    addons: List[AddonSnapshot] = Field(default_factory=list)
    quantity: int
    unit_price_cents: int
    line_total_cents: int
    name_snapshot: str
    notes: Optional[str] = None


class AppliedDiscount(BaseModel):
    coupon_id: Optional[str] = None
    coupon_code: Optional[str] = None
    discount_type: Optional[str] = None
    discount_cents: int = 0


class OrderRead(BaseModel):
    id: str
    restaurant_id: str
    status: str
    subtotal_cents: int
    discount_cents: int
    total_cents: int
    coupon_id: Optional[str]
    coupon_code: Optional[str]
    discount_type: Optional[str]
    currency_code: str
    payment_method: Optional[str]
    table_label: Optional[str]
    order_token: str
    placed_at: datetime

    class Config:
        from_attributes = True


class LookupOrderRead(BaseModel):
    id: str
    status: str
    placed_at: datetime
    subtotal_cents: int
    discount_cents: int
    total_cents: int
    currency_code: str
    table_label: Optional[str]

    class Config:
        from_attributes = True


class LookupItemRead(BaseModel):
    id: str
    name_snapshot: str
    quantity: int
    unit_price_cents: int
    line_total_cents: int
    addons: List[AddonSnapshot]
    notes: Optional[str]

    class Config:
        from_attributes = True


class OrderLookupResponse(BaseModel):
    order: LookupOrderRead
    items: List[LookupItemRead]
