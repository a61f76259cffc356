from abc import ABC, abstractmethod
from typing import Optional

from order_intake.domain.models import Coupon

class ICouponRepository(ABC):
    @abstractmethod
    def find_by_code(self, restaurant_id: str, code: str) -> Optional[Coupon]:
        pass
