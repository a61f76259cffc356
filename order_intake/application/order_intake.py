import logging
import uuid
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

import pytz

from order_intake.core.config import settings
from order_intake.domain.errors import OrderRejected, StoreError
from order_intake.domain.models import Order
from order_intake.domain.pricing import apply_coupon, normalize_coupon_code, price_cart
from order_intake.domain.validation import validate_order_payload
from order_intake.interfaces.ICatalogRepository import ICatalogRepository
from order_intake.interfaces.ICouponRepository import ICouponRepository
from order_intake.interfaces.IOrderRepository import IOrderRepository

logger = logging.getLogger(__name__)

# Callers without a resolvable address share one bucket instead of skipping the limit
UNKNOWN_IP = "unknown"


def utc_now() -> datetime:
    return datetime.now(pytz.utc)


class OrderIntakeService:
    def __init__(
        self,
        catalog_repo: ICatalogRepository,
        coupon_repo: ICouponRepository,
        order_repo: IOrderRepository,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.catalog_repo = catalog_repo
        self.coupon_repo = coupon_repo
        self.order_repo = order_repo
        self.clock = clock

    def place_order(self, payload: Any, client_ip: Optional[str]) -> Order:
        """
        Pipeline:
        1. Per-IP rate limit over recently placed orders.
        2. Validate the request shape and limits.
        3. Restaurant gate.
        4. Resolve authoritative prices from the catalog.
        5. Apply at most one coupon.
        6. Persist order + items in one transaction.
        """
        now = self.clock()
        ip_address = client_ip or UNKNOWN_IP

        # 1. RATE LIMIT
        since = now - timedelta(seconds=settings.ORDER_RATE_WINDOW_SECONDS)
        if self.order_repo.count_recent_by_ip(ip_address, since) >= settings.ORDER_RATE_MAX:
            logger.warning(f"⚠️ Rate limit exceeded for IP: {ip_address}")
            raise OrderRejected("Too many orders. Please wait.", 429)

        # 2. VALIDATION
        request = validate_order_payload(payload)

        # 3. RESTAURANT
        restaurant = self.catalog_repo.get_restaurant(request.restaurant_id)
        if restaurant is None:
            raise OrderRejected("Restaurant not found", 404)
        if not restaurant.is_accepting_orders:
            raise OrderRejected("Restaurant is not accepting orders at this time")

        # 4. PRICING
        item_ids = list({line.menu_item_id for line in request.items})
        items = self.catalog_repo.get_menu_items(restaurant.id, item_ids)
        variants = self.catalog_repo.get_active_variants(restaurant.id, item_ids)
        addons = self.catalog_repo.get_active_addons(restaurant.id, item_ids)
        priced_lines, subtotal = price_cart(request.items, items, variants, addons)

        # 5. COUPON
        coupon = None
        if request.coupon_code:
            try:
                coupon = self.coupon_repo.find_by_code(restaurant.id, normalize_coupon_code(request.coupon_code))
            except StoreError as e:
                logger.error(f"❌ Coupon lookup failed, continuing without discount: {e}")
        discount = apply_coupon(coupon, subtotal, now)

        # 6. PERSIST
        order = Order(
            restaurant_id=restaurant.id,
            status="pending",
            subtotal_cents=subtotal,
            currency_code=restaurant.currency_code,
            payment_method="cash",
            table_label=request.table_label,
            ip_address=ip_address,
            order_token=str(uuid.uuid4()),
            placed_at=now,
        )
        order = self.order_repo.place_order(order, priced_lines, discount)

        logger.info(f"✅ Order created: {order.id}, total_cents={order.total_cents} {order.currency_code}")
        return order
