import logging
from typing import Optional

from sqlalchemy import desc, func
from sqlalchemy.exc import SQLAlchemyError

from order_intake.domain.errors import StoreError
from order_intake.domain.models import Coupon
from order_intake.infrastructure.database import SessionLocal
from order_intake.interfaces.ICouponRepository import ICouponRepository

logger = logging.getLogger(__name__)

class PostgresCouponRepository(ICouponRepository):

    def __init__(self, session_factory=SessionLocal):
        self.session_factory = session_factory

    def find_by_code(self, restaurant_id: str, code: str) -> Optional[Coupon]:
        """
        Case-insensitive match on the code within one restaurant.
        Only one active coupon may hold a code, so an active row wins over retired ones.
        """
        session = self.session_factory()
        try:
            return (
                session.query(Coupon)
                .filter(Coupon.restaurant_id == restaurant_id, func.upper(Coupon.code) == code.upper())
                .order_by(desc(Coupon.is_active))
                .first()
            )
        except SQLAlchemyError as e:
            logger.error(f"❌ Coupon read failed: {e}")
            raise StoreError("Failed to fetch coupon") from e
        finally:
            session.close()
