from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from order_intake.domain.models import Order
from order_intake.domain.schemas import AppliedDiscount, PricedLine

class IOrderRepository(ABC):
    @abstractmethod
    def count_recent_by_ip(self, ip_address: str, since: datetime) -> int:
        pass

    @abstractmethod
    def place_order(self, order: Order, lines: List[PricedLine], discount: AppliedDiscount) -> Order:
        """Writes the order, its items and the coupon usage in one transaction."""
        pass

    @abstractmethod
    def get_by_token(self, order_token: str) -> Optional[Order]:
        pass
