import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, or_, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload

from order_intake.domain.errors import StoreError
from order_intake.domain.models import Coupon, Order, OrderItem
from order_intake.domain.pricing import final_total
from order_intake.domain.schemas import AppliedDiscount, PricedLine
from order_intake.infrastructure.database import SessionLocal
from order_intake.interfaces.IOrderRepository import IOrderRepository

logger = logging.getLogger(__name__)

class PostgresOrderRepository(IOrderRepository):

    def __init__(self, session_factory=SessionLocal):
        self.session_factory = session_factory

    def count_recent_by_ip(self, ip_address: str, since: datetime) -> int:
        session = self.session_factory()
        try:
            return (
                session.query(func.count(Order.id))
                .filter(Order.ip_address == ip_address, Order.placed_at >= since)
                .scalar()
            )
        except SQLAlchemyError as e:
            logger.error(f"❌ Order count failed: {e}")
            raise StoreError("Failed to check order rate") from e
        finally:
            session.close()

    def place_order(self, order: Order, lines: List[PricedLine], discount: AppliedDiscount) -> Order:
        """
        Claims one coupon use, inserts the order and inserts its items in a single transaction.
        If the coupon was used up by a concurrent checkout the order goes through at full price.
        """
        session = self.session_factory()
        try:
            if discount.coupon_id and not self._claim_coupon_use(session, discount.coupon_id):
                logger.warning(f"⚠️ Coupon {discount.coupon_code} exhausted during checkout. Placing without discount.")
                discount = AppliedDiscount()

            order.coupon_id = discount.coupon_id
            order.coupon_code = discount.coupon_code
            order.discount_type = discount.discount_type
            order.discount_cents = discount.discount_cents
            order.total_cents = final_total(order.subtotal_cents, discount.discount_cents)

            session.add(order)
            session.flush()  # get order.id

            for position, line in enumerate(lines):
                session.add(OrderItem(
                    order_id=order.id,
                    restaurant_id=order.restaurant_id,
                    position=position,
                    menu_item_id=line.menu_item_id,
                    variant_id=line.variant_id,
                    addons=[addon.model_dump() for addon in line.addons],
                    quantity=line.quantity,
                    unit_price_cents=line.unit_price_cents,
                    line_total_cents=line.line_total_cents,
                    name_snapshot=line.name_snapshot,
                    notes=line.notes,
                ))

            session.commit()
            session.refresh(order)
            return order
        except SQLAlchemyError as e:
            logger.error(f"❌ Order write failed, rolled back: {e}")
            session.rollback()
            raise StoreError("Failed to create order") from e
        finally:
            session.close()

    def _claim_coupon_use(self, session, coupon_id: str) -> bool:
        # Conditional increment, so two checkouts cannot both take the last use
        result = session.execute(
            update(Coupon)
            .where(
                Coupon.id == coupon_id,
                or_(Coupon.usage_limit.is_(None), Coupon.usage_count < Coupon.usage_limit),
            )
            .values(usage_count=Coupon.usage_count + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def get_by_token(self, order_token: str) -> Optional[Order]:
        session = self.session_factory()
        try:
            return (
                session.query(Order)
                .options(selectinload(Order.items))
                .filter(Order.order_token == order_token)
                .first()
            )
        except SQLAlchemyError as e:
            logger.error(f"❌ Order lookup failed: {e}")
            raise StoreError("Failed to fetch order") from e
        finally:
            session.close()
